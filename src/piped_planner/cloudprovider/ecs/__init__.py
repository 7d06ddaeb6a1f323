"""ECS task definition helpers."""

from .taskdef import (
    find_image_tag,
    load_task_definition,
    parse_container_image,
    resolve_version,
)

__all__ = [
    "find_image_tag",
    "load_task_definition",
    "parse_container_image",
    "resolve_version",
]
