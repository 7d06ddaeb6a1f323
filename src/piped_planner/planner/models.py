"""Planner input model."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from piped_planner.core.models import Deployment
from piped_planner.deploysource import DeploySourceProvider


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PlannerInput(BaseModel):
    """Everything a planner needs to plan one deployment."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    deployment: Deployment
    # Empty when the application has never been deployed successfully.
    most_recent_successful_commit_hash: str = ""
    target_dsp: DeploySourceProvider
    logger: Optional[Any] = None
    clock: Callable[[], datetime] = Field(default=_utcnow)

    def get_logger(self):
        if self.logger is not None:
            return self.logger
        return structlog.get_logger().bind(
            deploymentId=self.deployment.id,
            applicationId=self.deployment.application_id,
        )
