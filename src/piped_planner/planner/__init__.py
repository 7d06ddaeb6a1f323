"""Planners deciding the stages of a deployment."""

from .ecs import ECSPlanner
from .models import PlannerInput
from .registry import Planner, PlannerRegistry, default_registry

__all__ = [
    "ECSPlanner",
    "Planner",
    "PlannerInput",
    "PlannerRegistry",
    "default_registry",
]
