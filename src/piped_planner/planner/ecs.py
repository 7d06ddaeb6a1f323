"""Planner for ECS applications."""

from __future__ import annotations

import asyncio
import io
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Protocol, Tuple

from piped_planner.cloudprovider.ecs import resolve_version
from piped_planner.config.deployment import ECSDeploymentSpec
from piped_planner.core.exceptions import MissingDeploymentSpecError, PlanningError, TaskDefinitionError
from piped_planner.core.models import ApplicationKind, PlanOutput, Stage, SyncStrategy
from piped_planner.planner.models import PlannerInput
from piped_planner.planner.registry import Planner
from piped_planner.planner.stages import build_quick_sync_stages

UNKNOWN_VERSION = "unknown"


class Registerer(Protocol):
    def register(self, kind: ApplicationKind, planner: Planner) -> None:
        ...


def register(registerer: Registerer) -> None:
    """Register the ECS planner into the given registerer."""
    registerer.register(ApplicationKind.ECS, ECSPlanner())


@dataclass(frozen=True)
class StrategyRule:
    """A strategy choice: applies when ``matches`` holds, first match wins."""

    name: str
    matches: Callable[[PlannerInput, ECSDeploymentSpec], bool]
    build_stages: Callable[[bool, datetime], List[Stage]]
    summary: str


# Ordered; the last rule always matches.
STRATEGY_RULES: Tuple[StrategyRule, ...] = (
    # The user forced a quick sync from the web UI, so rely on their decision.
    StrategyRule(
        name="forced_quick_sync",
        matches=lambda in_, cfg: in_.deployment.trigger.sync_strategy == SyncStrategy.QUICK_SYNC,
        build_stages=build_quick_sync_stages,
        summary="Quick sync to deploy image {version} and configure all traffic to it (forced via web)",
    ),
    # First deployment, or the last successful commit could not be retrieved.
    StrategyRule(
        name="first_deployment",
        matches=lambda in_, cfg: in_.most_recent_successful_commit_hash == "",
        build_stages=build_quick_sync_stages,
        summary="Quick sync to deploy image {version} and configure all traffic to it (it seems this is the first deployment)",
    ),
    StrategyRule(
        name="pipeline_not_configured",
        matches=lambda in_, cfg: not cfg.has_pipeline,
        build_stages=build_quick_sync_stages,
        summary="Quick sync to deploy image {version} and configure all traffic to it (pipeline was not configured)",
    ),
    # TODO: build a canary/primary rollout from cfg.pipeline once the ECS executor supports it.
    StrategyRule(
        name="default",
        matches=lambda in_, cfg: True,
        build_stages=build_quick_sync_stages,
        summary="Quick sync to deploy image {version} and configure all traffic to it",
    ),
)


def select_strategy(input: PlannerInput, cfg: ECSDeploymentSpec) -> StrategyRule:
    for rule in STRATEGY_RULES:
        if rule.matches(input, cfg):
            return rule
    raise PlanningError("no strategy rule matched")


class ECSPlanner:
    """Plans the deployment pipeline for ECS applications."""

    async def plan(self, input: PlannerInput) -> PlanOutput:
        """Decide which pipeline should be used for the given input.

        Raises:
            PlanningError: If the deploy source cannot be prepared or lacks an ECS spec
            asyncio.CancelledError: If cancelled while preparing the deploy source
        """
        log = input.get_logger()

        try:
            ds = await input.target_dsp.get(io.StringIO())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise PlanningError(f"error while preparing deploy source data ({e})", code="deploy_source") from e

        cfg = ds.deployment_config.ecs_deployment_spec
        if cfg is None:
            raise MissingDeploymentSpecError(
                "missing ECSDeploymentSpec in deployment configuration",
                code="missing_spec",
            )

        try:
            version = resolve_version(ds.app_dir, cfg.input.task_definition_file)
        except TaskDefinitionError as e:
            version = UNKNOWN_VERSION
            log.warning("unable to determine target version", error=str(e))

        rule = select_strategy(input, cfg)
        stages = rule.build_stages(cfg.input.auto_rollback, input.clock())
        out = PlanOutput(
            version=version,
            stages=tuple(stages),
            summary=rule.summary.format(version=version),
        )
        log.info("planned deployment", strategy=rule.name, version=version, stages=len(out.stages))
        return out
