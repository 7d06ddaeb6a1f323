"""Custom exceptions for the piped planner."""

from typing import Optional


class PipedPlannerError(Exception):
    """Base exception for all planner errors."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class ConfigurationError(PipedPlannerError):
    """Process configuration error."""
    pass


class DeploymentConfigError(PipedPlannerError):
    """Deployment configuration file could not be loaded."""
    pass


class DeploySourceError(PipedPlannerError):
    """Deploy source could not be materialized."""
    pass


class PlanningError(PipedPlannerError):
    """Planning failed and produced no output."""
    pass


class MissingDeploymentSpecError(PlanningError):
    """Deployment configuration lacks the section the planner needs."""
    pass


class RegistryError(PipedPlannerError):
    """Planner registry errors."""
    pass


class DuplicatePlannerError(RegistryError):
    """A planner is already registered for the application kind."""
    pass


class PlannerNotFoundError(RegistryError):
    """No planner registered for the application kind."""
    pass


class TaskDefinitionError(PipedPlannerError):
    """Task definition could not be turned into a version."""
    pass


class TaskDefinitionNotFoundError(TaskDefinitionError):
    """Task definition file does not exist."""
    pass


class TaskDefinitionMalformedError(TaskDefinitionError):
    """Task definition file is not a valid task definition."""
    pass


class ImageTagNotFoundError(TaskDefinitionError):
    """Primary container image carries no usable tag."""
    pass
