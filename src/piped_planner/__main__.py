"""CLI entrypoint for planning a deployment from a local checkout."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path

import structlog
from pydantic import ValidationError

from piped_planner.core.config import Settings
from piped_planner.core.exceptions import PipedPlannerError
from piped_planner.core.models import ApplicationKind, Deployment, DeploymentTrigger, SyncStrategy
from piped_planner.deploysource import LocalDeploySourceProvider
from piped_planner.planner import PlannerInput, default_registry
from piped_planner.utils.logging import bind_deployment_context, configure_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="piped-planner", description="Deployment pipeline planner")
    sub = parser.add_subparsers(dest="cmd")

    cmd_plan = sub.add_parser("plan", help="Plan the deployment of a local application checkout")
    cmd_plan.add_argument("repo_dir", help="Path to the checked-out repository")
    cmd_plan.add_argument("--app-path", default=".", help="Application directory relative to the repository")
    cmd_plan.add_argument("--kind", default=ApplicationKind.ECS.value, choices=[k.value for k in ApplicationKind])
    cmd_plan.add_argument("--commit", default="", help="Commit hash being deployed")
    cmd_plan.add_argument(
        "--last-successful-commit",
        default="",
        help="Commit hash of the most recent successful deployment (empty for first deployment)",
    )
    cmd_plan.add_argument("--quick-sync", action="store_true", help="Force the quick sync strategy")
    cmd_plan.add_argument("--application-id", default="local", help="Application ID")
    return parser


async def plan(args: argparse.Namespace, settings: Settings) -> dict:
    kind = ApplicationKind(args.kind)
    registry = default_registry()
    planner = registry.get(kind)

    deployment = Deployment(
        id=str(uuid.uuid4()),
        application_id=args.application_id,
        application_name=Path(args.repo_dir, args.app_path).resolve().name,
        kind=kind,
        trigger=DeploymentTrigger(
            commit_hash=args.commit,
            commander="cli",
            sync_strategy=SyncStrategy.QUICK_SYNC if args.quick_sync else SyncStrategy.AUTO,
        ),
    )
    bind_deployment_context(deployment.id, deployment.application_id, deployment.kind)

    dsp = LocalDeploySourceProvider(
        Path(args.repo_dir),
        app_path=args.app_path,
        revision=args.commit,
        config_filename=settings.deployment_config_filename,
    )
    out = await planner.plan(
        PlannerInput(
            deployment=deployment,
            most_recent_successful_commit_hash=args.last_successful_commit,
            target_dsp=dsp,
        )
    )
    return out.model_dump(mode="json")


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd != "plan":
        parser.print_help()
        return 2

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"ERROR: invalid configuration: {e}", file=sys.stderr)
        return 1
    configure_logging(settings.log_level, settings.log_format)
    logger = structlog.get_logger()

    try:
        result = asyncio.run(plan(args, settings))
    except PipedPlannerError as e:
        logger.error("Planning failed", error=str(e), code=e.code)
        return 1

    print(json.dumps(result, indent=2))
    return 0


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
