"""Core data models for the piped planner."""

from datetime import datetime
from enum import Enum
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ApplicationKind(str, Enum):
    """Kind of application a planner handles."""

    KUBERNETES = "KUBERNETES"
    TERRAFORM = "TERRAFORM"
    CROSSPLANE = "CROSSPLANE"
    LAMBDA = "LAMBDA"
    CLOUDRUN = "CLOUDRUN"
    ECS = "ECS"


class SyncStrategy(str, Enum):
    """Sync strategy requested by a deployment trigger."""

    AUTO = "AUTO"
    QUICK_SYNC = "QUICK_SYNC"
    PIPELINE = "PIPELINE"


class StageStatus(str, Enum):
    """Stage status enum."""

    STAGE_NOT_STARTED_YET = "STAGE_NOT_STARTED_YET"
    STAGE_RUNNING = "STAGE_RUNNING"
    STAGE_SUCCESS = "STAGE_SUCCESS"
    STAGE_FAILURE = "STAGE_FAILURE"
    STAGE_CANCELLED = "STAGE_CANCELLED"
    STAGE_SKIPPED = "STAGE_SKIPPED"


class DeploymentTrigger(BaseModel):
    """What caused a deployment to be created."""

    model_config = ConfigDict(frozen=True)

    commit_hash: str = Field("", description="Commit the deployment targets")
    commander: str = Field("", description="User who triggered the deployment, if any")
    timestamp: int = Field(0, description="Unix time the trigger fired")
    sync_strategy: SyncStrategy = Field(SyncStrategy.AUTO, description="Requested sync strategy")
    strategy_summary: str = Field("", description="Why the sync strategy was requested")


class Deployment(BaseModel):
    """A deployment of one application revision."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Deployment ID")
    application_id: str = Field(..., description="Application ID")
    application_name: str = Field("", description="Human-readable application name")
    kind: ApplicationKind = Field(..., description="Application kind")
    trigger: DeploymentTrigger = Field(default_factory=DeploymentTrigger)


class Stage(BaseModel):
    """One step of a deployment pipeline."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stage ID, unique within the pipeline")
    name: str = Field(..., description="Stage kind")
    desc: str = Field("", description="Stage description for display")
    index: int = Field(..., ge=0, description="Position of the stage in the pipeline")
    predefined: bool = Field(False, description="Whether the stage was added by the planner")
    visible: bool = Field(True, description="Whether the stage is shown to operators")
    status: StageStatus = Field(StageStatus.STAGE_NOT_STARTED_YET)
    created_at: int = Field(..., description="Unix time the stage was created")
    updated_at: int = Field(..., description="Unix time the stage was last updated")


class PlanOutput(BaseModel):
    """Result of planning one deployment."""

    model_config = ConfigDict(frozen=True)

    version: str = Field(..., description="Version label of the target revision")
    stages: Tuple[Stage, ...] = Field(..., description="Ordered stages to execute")
    summary: str = Field(..., description="Human-readable explanation of the plan")

    @field_validator("stages")
    @classmethod
    def validate_stages(cls, v: Tuple[Stage, ...]) -> Tuple[Stage, ...]:
        """Stages must be non-empty with contiguous increasing indices."""
        if not v:
            raise ValueError("plan must contain at least one stage")
        base = v[0].index
        for offset, stage in enumerate(v):
            if stage.index != base + offset:
                raise ValueError(f"stage {stage.id} has index {stage.index}, expected {base + offset}")
        return v

    def stage_names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)


def unix_seconds(now: datetime) -> int:
    """Convert a datetime to whole unix seconds."""
    return int(now.timestamp())
