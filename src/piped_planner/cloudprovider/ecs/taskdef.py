"""ECS task definition loading and image tag extraction."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

import botocore.session
import structlog
import yaml
from botocore.exceptions import ParamValidationError
from botocore.validate import validate_parameters

from piped_planner.core.exceptions import (
    ImageTagNotFoundError,
    TaskDefinitionMalformedError,
    TaskDefinitionNotFoundError,
)

logger = structlog.get_logger()


@lru_cache(maxsize=1)
def _task_definition_shape():
    """Input shape of ECS RegisterTaskDefinition from botocore's bundled model."""
    session = botocore.session.get_session()
    model = session.get_service_model("ecs")
    return model.operation_model("RegisterTaskDefinition").input_shape


def load_task_definition(app_dir: Path, path: str) -> Dict[str, Any]:
    """Load and validate a task definition file.

    Files ending in ``.json`` are decoded as JSON, anything else as YAML.
    Keys that RegisterTaskDefinition does not accept (e.g. ``taskDefinitionArn``
    or ``revision`` in the output of ``describe-task-definition``) are dropped
    before validation.

    Args:
        app_dir: Materialized application directory
        path: Task definition file, relative to ``app_dir``

    Returns:
        The task definition as RegisterTaskDefinition parameters

    Raises:
        TaskDefinitionNotFoundError: If the file does not exist
        TaskDefinitionMalformedError: If the file is not a valid task definition
    """
    file_path = Path(app_dir) / path
    if not file_path.is_file():
        raise TaskDefinitionNotFoundError(f"task definition file not found: {file_path}")

    try:
        with open(file_path, encoding="utf-8") as f:
            content = f.read()
        if file_path.suffix == ".json":
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError, OSError) as e:
        raise TaskDefinitionMalformedError(f"unable to parse task definition {file_path}: {e}") from e

    if not isinstance(data, dict):
        raise TaskDefinitionMalformedError(f"task definition {file_path} must be a mapping")

    shape = _task_definition_shape()
    params = {k: v for k, v in data.items() if k in shape.members}
    dropped = sorted(set(data) - set(params))
    if dropped:
        logger.debug("Ignoring task definition keys", path=str(file_path), keys=dropped)

    try:
        validate_parameters(params, shape)
    except ParamValidationError as e:
        raise TaskDefinitionMalformedError(f"invalid task definition {file_path}: {e}") from e

    return params


def parse_container_image(image: str) -> Tuple[str, str]:
    """Split a container image reference into (name, tag).

    The name is the last path segment without tag or digest. The tag is empty
    when the reference carries none.

    >>> parse_container_image("123456789012.dkr.ecr.us-east-1.amazonaws.com/web:v1.2.3")
    ('web', 'v1.2.3')
    >>> parse_container_image("registry:5000/team/web")
    ('web', '')
    """
    ref = image.split("@", 1)[0]
    last = ref.rsplit("/", 1)[-1]
    name, _, tag = last.partition(":")
    return name, tag


def find_image_tag(task_definition: Dict[str, Any]) -> str:
    """Return the image tag of the primary container.

    Raises:
        ImageTagNotFoundError: If there is no container, no image name or no tag
    """
    containers = task_definition.get("containerDefinitions") or []
    if not containers:
        raise ImageTagNotFoundError("container definition could not be empty")

    image = containers[0].get("image") or ""
    name, tag = parse_container_image(image)
    if not name:
        raise ImageTagNotFoundError("image name could not be empty")
    if not tag:
        raise ImageTagNotFoundError(f"image {image} has no tag")
    return tag


def resolve_version(app_dir: Path, task_definition_file: str) -> str:
    """Determine the application version from its task definition.

    Raises:
        TaskDefinitionError: If the version cannot be determined
    """
    task_definition = load_task_definition(app_dir, task_definition_file)
    return find_image_tag(task_definition)
