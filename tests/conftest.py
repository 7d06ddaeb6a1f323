"""
Pytest configuration and fixtures for planner tests.
"""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
import structlog
import yaml
from structlog.contextvars import clear_contextvars

from piped_planner.core.models import ApplicationKind, Deployment, DeploymentTrigger, SyncStrategy
from piped_planner.deploysource import LocalDeploySourceProvider
from piped_planner.planner.models import PlannerInput


FIXED_NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def reset_structlog():
    """
    Restore structlog defaults after each test.

    configure_logging binds the current stderr, which pytest swaps per test.
    """
    yield
    structlog.reset_defaults()
    clear_contextvars()


def write_task_definition(app_dir: Path, image: str = "123456789012.dkr.ecr.us-east-1.amazonaws.com/web:v1.2.3",
                          filename: str = "taskdef.json") -> Path:
    path = app_dir / filename
    path.write_text(json.dumps({
        "family": "web",
        "cpu": "256",
        "memory": "512",
        "networkMode": "awsvpc",
        "containerDefinitions": [
            {"name": "web", "image": image, "essential": True,
             "portMappings": [{"containerPort": 8080, "protocol": "tcp"}]},
            {"name": "sidecar", "image": "envoyproxy/envoy:v1.28.0", "essential": False},
        ],
    }))
    return path


def write_pipe_config(app_dir: Path, auto_rollback: bool = True, pipeline=None,
                      task_definition_file: str = "taskdef.json") -> Path:
    spec = {
        "input": {
            "serviceDefinitionFile": "servicedef.yaml",
            "taskDefinitionFile": task_definition_file,
            "autoRollback": auto_rollback,
        },
    }
    if pipeline is not None:
        spec["pipeline"] = pipeline
    path = app_dir / ".pipe.yaml"
    path.write_text(yaml.safe_dump({"apiVersion": "pipecd.dev/v1beta1", "kind": "ECSApp", "spec": spec}))
    return path


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """An ECS application with a valid task definition and default config."""
    d = tmp_path / "repo" / "apps" / "web"
    d.mkdir(parents=True)
    write_task_definition(d)
    write_pipe_config(d)
    return d


@pytest.fixture
def make_input(app_dir: Path):
    """Build a PlannerInput over the app_dir fixture."""

    def _make(sync_strategy: SyncStrategy = SyncStrategy.AUTO,
              last_commit: str = "abc123",
              dsp=None,
              logger=None) -> PlannerInput:
        if dsp is None:
            dsp = LocalDeploySourceProvider(app_dir.parents[1], app_path="apps/web", revision="def456")
        return PlannerInput(
            deployment=Deployment(
                id="dep-1",
                application_id="app-1",
                application_name="web",
                kind=ApplicationKind.ECS,
                trigger=DeploymentTrigger(commit_hash="def456", sync_strategy=sync_strategy),
            ),
            most_recent_successful_commit_hash=last_commit,
            target_dsp=dsp,
            logger=logger,
            clock=lambda: FIXED_NOW,
        )

    return _make
