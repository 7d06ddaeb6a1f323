"""piped-planner - decides the deployment pipeline of an application revision."""

__version__ = "0.1.0"

from piped_planner.core.config import Settings
from piped_planner.core.models import PlanOutput, Stage

__all__ = ["Settings", "PlanOutput", "Stage", "__version__"]
