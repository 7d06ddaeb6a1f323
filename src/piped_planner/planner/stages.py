"""Predefined stages and stage list builders shared by planners."""

from datetime import datetime
from typing import Dict, List, NamedTuple

from piped_planner.config.deployment import StageName
from piped_planner.core.models import Stage, StageStatus, unix_seconds

# Stages from every planner are merged for display, so they all count from here.
STAGE_INDEX_BASE = 0

PREDEFINED_STAGE_ECS_SYNC = "EcsSync"
PREDEFINED_STAGE_ROLLBACK = "Rollback"


class PredefinedStage(NamedTuple):
    id: str
    name: StageName
    desc: str
    visible: bool


_PREDEFINED_STAGES: Dict[str, PredefinedStage] = {
    PREDEFINED_STAGE_ECS_SYNC: PredefinedStage(
        id=PREDEFINED_STAGE_ECS_SYNC,
        name=StageName.ECS_SYNC,
        desc="Deploy the new version and configure all traffic to it",
        visible=True,
    ),
    PREDEFINED_STAGE_ROLLBACK: PredefinedStage(
        id=PREDEFINED_STAGE_ROLLBACK,
        name=StageName.ROLLBACK,
        desc="Rollback the deployment",
        visible=False,
    ),
}


def get_predefined_stage(stage_id: str) -> PredefinedStage:
    """Look up a predefined stage by ID.

    Raises:
        KeyError: If no stage is predefined under ``stage_id``
    """
    return _PREDEFINED_STAGES[stage_id]


def _new_stage(stage_id: str, index: int, now: datetime) -> Stage:
    predefined = get_predefined_stage(stage_id)
    ts = unix_seconds(now)
    return Stage(
        id=predefined.id,
        name=predefined.name.value,
        desc=predefined.desc,
        index=index,
        predefined=True,
        visible=predefined.visible,
        status=StageStatus.STAGE_NOT_STARTED_YET,
        created_at=ts,
        updated_at=ts,
    )


def build_quick_sync_stages(auto_rollback: bool, now: datetime) -> List[Stage]:
    """Build the quick sync pipeline: sync everything, then optionally roll back."""
    stage_ids = [PREDEFINED_STAGE_ECS_SYNC]
    if auto_rollback:
        stage_ids.append(PREDEFINED_STAGE_ROLLBACK)

    return [
        _new_stage(stage_id, STAGE_INDEX_BASE + offset, now)
        for offset, stage_id in enumerate(stage_ids)
    ]
