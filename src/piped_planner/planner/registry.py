"""Registry mapping application kinds to planners."""

from __future__ import annotations

from typing import Dict, List, Protocol

import structlog

from piped_planner.core.exceptions import DuplicatePlannerError, PlannerNotFoundError
from piped_planner.core.models import ApplicationKind, PlanOutput
from piped_planner.planner.models import PlannerInput

logger = structlog.get_logger()


class Planner(Protocol):
    """Decides the pipeline for one deployment."""

    async def plan(self, input: PlannerInput) -> PlanOutput:
        ...


class PlannerRegistry:
    """Planners keyed by application kind.

    Built once at process startup and handed to whatever composes planners.
    """

    def __init__(self):
        self._planners: Dict[ApplicationKind, Planner] = {}

    def register(self, kind: ApplicationKind, planner: Planner) -> None:
        """Register a planner for an application kind.

        Raises:
            DuplicatePlannerError: If a planner is already registered for ``kind``
        """
        if kind in self._planners:
            raise DuplicatePlannerError(
                f"planner for application kind {kind.value} has already been registered",
                code="duplicate_planner",
            )
        self._planners[kind] = planner
        logger.debug("Registered planner", kind=kind.value, planner=type(planner).__name__)

    def get(self, kind: ApplicationKind) -> Planner:
        """Return the planner for an application kind.

        Raises:
            PlannerNotFoundError: If no planner is registered for ``kind``
        """
        try:
            return self._planners[kind]
        except KeyError:
            raise PlannerNotFoundError(
                f"no registered planner for application kind {kind.value}",
                code="planner_not_found",
            ) from None

    def kinds(self) -> List[ApplicationKind]:
        return list(self._planners)

    def __contains__(self, kind: object) -> bool:
        return kind in self._planners

    def __len__(self) -> int:
        return len(self._planners)


def default_registry() -> PlannerRegistry:
    """Build a registry with every built-in planner registered."""
    from piped_planner.planner import ecs

    registry = PlannerRegistry()
    ecs.register(registry)
    return registry
