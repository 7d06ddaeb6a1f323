"""Tests for the ECS planner's strategy selection and failure handling."""

import asyncio

import pytest
from structlog.testing import capture_logs

from conftest import FIXED_NOW, write_pipe_config
from piped_planner.core.exceptions import MissingDeploymentSpecError, PlanningError
from piped_planner.core.models import SyncStrategy
from piped_planner.planner.ecs import STRATEGY_RULES, ECSPlanner, select_strategy


CANARY_PIPELINE = {
    "stages": [
        {"name": "ECS_CANARY_ROLLOUT", "with": {"scale": 30}},
        {"name": "ECS_TRAFFIC_ROUTING", "with": {"canary": 20}},
        {"name": "ECS_PRIMARY_ROLLOUT"},
        {"name": "ECS_CANARY_CLEAN"},
    ]
}


class FailingProvider:
    async def get(self, sink):
        raise RuntimeError("unable to clone repository")


class BlockingProvider:
    def __init__(self):
        self.started = asyncio.Event()

    async def get(self, sink):
        self.started.set()
        await asyncio.Event().wait()


def assert_contiguous(stages):
    assert stages
    assert [s.index for s in stages] == list(range(stages[0].index, stages[0].index + len(stages)))


@pytest.mark.asyncio
async def test_forced_quick_sync_with_auto_rollback(make_input):
    out = await ECSPlanner().plan(make_input(sync_strategy=SyncStrategy.QUICK_SYNC))

    assert out.version == "v1.2.3"
    assert out.stage_names() == ("ECS_SYNC", "ROLLBACK")
    assert [s.index for s in out.stages] == [0, 1]
    assert "forced via web" in out.summary
    assert out.summary == "Quick sync to deploy image v1.2.3 and configure all traffic to it (forced via web)"
    assert all(s.created_at == int(FIXED_NOW.timestamp()) for s in out.stages)


@pytest.mark.asyncio
async def test_forced_quick_sync_overrides_pipeline_and_history(app_dir, make_input):
    write_pipe_config(app_dir, pipeline=CANARY_PIPELINE)

    out = await ECSPlanner().plan(make_input(sync_strategy=SyncStrategy.QUICK_SYNC, last_commit=""))

    assert out.stage_names() == ("ECS_SYNC", "ROLLBACK")
    assert "forced via web" in out.summary


@pytest.mark.asyncio
async def test_first_deployment_with_missing_task_definition(app_dir, make_input):
    write_pipe_config(app_dir, auto_rollback=False)
    (app_dir / "taskdef.json").unlink()

    with capture_logs() as logs:
        out = await ECSPlanner().plan(make_input(last_commit=""))

    assert out.version == "unknown"
    assert out.stage_names() == ("ECS_SYNC",)
    assert out.stages[0].index == 0
    assert "first deployment" in out.summary
    warnings = [e for e in logs if e["log_level"] == "warning"]
    assert len(warnings) == 1
    assert warnings[0]["event"] == "unable to determine target version"


@pytest.mark.asyncio
async def test_pipeline_not_configured(make_input):
    out = await ECSPlanner().plan(make_input())

    assert out.summary.endswith("(pipeline was not configured)")
    assert out.stage_names() == ("ECS_SYNC", "ROLLBACK")


@pytest.mark.asyncio
async def test_empty_pipeline_counts_as_not_configured(app_dir, make_input):
    write_pipe_config(app_dir, pipeline={"stages": []})

    out = await ECSPlanner().plan(make_input())

    assert "pipeline was not configured" in out.summary


@pytest.mark.asyncio
async def test_configured_pipeline_falls_back_to_quick_sync(app_dir, make_input):
    write_pipe_config(app_dir, auto_rollback=False, pipeline=CANARY_PIPELINE)

    out = await ECSPlanner().plan(make_input())

    assert out.summary == "Quick sync to deploy image v1.2.3 and configure all traffic to it"
    assert out.stage_names() == ("ECS_SYNC",)


@pytest.mark.asyncio
@pytest.mark.parametrize("sync_strategy", [SyncStrategy.AUTO, SyncStrategy.QUICK_SYNC, SyncStrategy.PIPELINE])
@pytest.mark.parametrize("last_commit", ["", "abc123"])
@pytest.mark.parametrize("auto_rollback", [True, False])
async def test_stage_invariants_hold_for_every_branch(app_dir, make_input, sync_strategy, last_commit, auto_rollback):
    write_pipe_config(app_dir, auto_rollback=auto_rollback, pipeline=CANARY_PIPELINE)

    out = await ECSPlanner().plan(make_input(sync_strategy=sync_strategy, last_commit=last_commit))

    assert_contiguous(out.stages)
    assert out.stages[0].index == 0
    rollbacks = [s for s in out.stages if s.name == "ROLLBACK"]
    if auto_rollback:
        assert out.stages[-1].name == "ROLLBACK"
        assert len(rollbacks) == 1
    else:
        assert rollbacks == []


@pytest.mark.asyncio
async def test_deploy_source_failure_is_fatal(make_input):
    with pytest.raises(PlanningError) as exc_info:
        await ECSPlanner().plan(make_input(dsp=FailingProvider()))

    assert "error while preparing deploy source data" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_missing_config_file_is_fatal(app_dir, make_input):
    (app_dir / ".pipe.yaml").unlink()

    with pytest.raises(PlanningError):
        await ECSPlanner().plan(make_input())


@pytest.mark.asyncio
async def test_missing_ecs_spec_is_fatal(app_dir, make_input):
    (app_dir / ".pipe.yaml").write_text(
        "apiVersion: pipecd.dev/v1beta1\nkind: KubernetesApp\nspec:\n  input:\n    manifests: [deployment.yaml]\n"
    )

    with pytest.raises(MissingDeploymentSpecError, match="missing ECSDeploymentSpec"):
        await ECSPlanner().plan(make_input())


@pytest.mark.asyncio
async def test_cancellation_while_preparing_deploy_source(make_input):
    dsp = BlockingProvider()
    task = asyncio.create_task(ECSPlanner().plan(make_input(dsp=dsp)))
    await asyncio.wait_for(dsp.started.wait(), timeout=1)

    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_timeout_propagates_while_preparing_deploy_source(make_input):
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(ECSPlanner().plan(make_input(dsp=BlockingProvider())), timeout=0.05)


def test_strategy_rules_are_ordered_with_catch_all_last():
    assert [r.name for r in STRATEGY_RULES] == [
        "forced_quick_sync",
        "first_deployment",
        "pipeline_not_configured",
        "default",
    ]
    summaries = {r.summary for r in STRATEGY_RULES}
    assert len(summaries) == len(STRATEGY_RULES)


def test_select_strategy_first_match_wins(make_input):
    from piped_planner.config.deployment import ECSDeploymentSpec

    cfg = ECSDeploymentSpec()
    assert select_strategy(make_input(sync_strategy=SyncStrategy.QUICK_SYNC, last_commit=""), cfg).name == "forced_quick_sync"
    assert select_strategy(make_input(last_commit=""), cfg).name == "first_deployment"
    assert select_strategy(make_input(), cfg).name == "pipeline_not_configured"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "content",
    [
        b'{"family": "web\xff\xfe"}',
        b'{"family": "web",',
        b'{"family": "web", "containerDefinitions": "web"}',
        b'{"family": "web", "containerDefinitions": [{"name": "web", "image": "acme/web"}]}',
    ],
    ids=["undecodable", "truncated", "wrong-shape", "untagged-image"],
)
async def test_unusable_task_definition_degrades_to_unknown(app_dir, make_input, content):
    (app_dir / "taskdef.json").write_bytes(content)

    with capture_logs() as logs:
        out = await ECSPlanner().plan(make_input())

    assert out.version == "unknown"
    assert out.summary == "Quick sync to deploy image unknown and configure all traffic to it (pipeline was not configured)"
    assert out.stage_names() == ("ECS_SYNC", "ROLLBACK")
    warnings = [e for e in logs if e["log_level"] == "warning"]
    assert [w["event"] for w in warnings] == ["unable to determine target version"]
