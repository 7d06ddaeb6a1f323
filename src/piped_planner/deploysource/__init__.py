"""Deploy source abstraction consumed by planners."""

from .provider import DeploySource, DeploySourceProvider, LocalDeploySourceProvider

__all__ = [
    "DeploySource",
    "DeploySourceProvider",
    "LocalDeploySourceProvider",
]
