"""Deployment configuration (.pipe.yaml) models and loader."""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from piped_planner.core.exceptions import DeploymentConfigError

logger = structlog.get_logger()

SUPPORTED_API_VERSION = "pipecd.dev/v1beta1"


class ConfigKind(str, Enum):
    """Kind of deployment configuration document."""

    KUBERNETES_APP = "KubernetesApp"
    TERRAFORM_APP = "TerraformApp"
    CROSSPLANE_APP = "CrossplaneApp"
    LAMBDA_APP = "LambdaApp"
    CLOUDRUN_APP = "CloudRunApp"
    ECS_APP = "ECSApp"


class StageName(str, Enum):
    """Stage kinds a pipeline may declare."""

    WAIT = "WAIT"
    WAIT_APPROVAL = "WAIT_APPROVAL"
    ECS_SYNC = "ECS_SYNC"
    ECS_CANARY_ROLLOUT = "ECS_CANARY_ROLLOUT"
    ECS_PRIMARY_ROLLOUT = "ECS_PRIMARY_ROLLOUT"
    ECS_CANARY_CLEAN = "ECS_CANARY_CLEAN"
    ECS_TRAFFIC_ROUTING = "ECS_TRAFFIC_ROUTING"
    ROLLBACK = "ROLLBACK"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")


class PipelineStageConfig(_ConfigModel):
    """One stage declared in the pipeline section."""

    name: StageName
    desc: str = ""
    timeout: Optional[str] = None
    with_: Dict[str, Any] = Field(default_factory=dict, alias="with")


class DeploymentPipeline(_ConfigModel):
    """Explicit pipeline of an application."""

    stages: List[PipelineStageConfig] = Field(default_factory=list)


class ECSDeploymentInput(_ConfigModel):
    """Input section of an ECS application."""

    service_definition_file: str = Field("servicedef.yaml", alias="serviceDefinitionFile")
    task_definition_file: str = Field("taskdef.json", alias="taskDefinitionFile")
    target_groups: Dict[str, Any] = Field(default_factory=dict, alias="targetGroups")
    auto_rollback: bool = Field(True, alias="autoRollback")


class ECSDeploymentSpec(_ConfigModel):
    """Spec section of an ECSApp configuration."""

    input: ECSDeploymentInput = Field(default_factory=ECSDeploymentInput)
    pipeline: Optional[DeploymentPipeline] = None

    @property
    def has_pipeline(self) -> bool:
        return self.pipeline is not None and len(self.pipeline.stages) > 0


class DeploymentConfiguration(BaseModel):
    """Resolved deployment configuration of one application revision.

    Only the section matching ``kind`` is populated; planners for other kinds
    find their own section ``None``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    api_version: str = Field(SUPPORTED_API_VERSION, alias="apiVersion")
    kind: ConfigKind
    ecs_deployment_spec: Optional[ECSDeploymentSpec] = None
    raw_spec: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_api_version(self) -> "DeploymentConfiguration":
        if self.api_version != SUPPORTED_API_VERSION:
            raise ValueError(f"Unsupported apiVersion: {self.api_version}")
        return self


def parse_deployment_configuration(data: Any) -> DeploymentConfiguration:
    """Build a DeploymentConfiguration from a decoded YAML document.

    Raises:
        DeploymentConfigError: If the document is not a valid configuration
    """
    if not isinstance(data, dict):
        raise DeploymentConfigError("deployment configuration must be a mapping")

    spec = data.get("spec") or {}
    if not isinstance(spec, dict):
        raise DeploymentConfigError("spec must be a mapping")

    try:
        fields: Dict[str, Any] = {
            "apiVersion": data.get("apiVersion", SUPPORTED_API_VERSION),
            "kind": data.get("kind"),
            "raw_spec": spec,
        }
        if fields["kind"] == ConfigKind.ECS_APP.value:
            fields["ecs_deployment_spec"] = ECSDeploymentSpec.model_validate(spec)
        return DeploymentConfiguration.model_validate(fields)
    except ValidationError as e:
        raise DeploymentConfigError(f"invalid deployment configuration: {e}") from e


def load_deployment_configuration(app_dir: Path, filename: str = ".pipe.yaml") -> DeploymentConfiguration:
    """Load the deployment configuration file of an application directory.

    Raises:
        DeploymentConfigError: If the file is missing or invalid
    """
    path = Path(app_dir) / filename
    if not path.is_file():
        raise DeploymentConfigError(f"deployment configuration not found: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (yaml.YAMLError, UnicodeDecodeError, OSError) as e:
        raise DeploymentConfigError(f"malformed deployment configuration {path}: {e}") from e

    config = parse_deployment_configuration(data)
    logger.debug("Loaded deployment configuration", path=str(path), kind=config.kind.value)
    return config
