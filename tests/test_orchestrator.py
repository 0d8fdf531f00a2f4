"""Tests for MeasurementOrchestrator against the SQLite repository."""

import uuid
from datetime import date

import pytest
from sqlalchemy import select

from brandmonitor.core.exceptions import ConfigurationError, PersistenceError
from brandmonitor.models.result import Result
from brandmonitor.services.orchestrator import MeasurementOrchestrator
from brandmonitor.services.progress import CancellationToken, CollectingSink, EventType

TODAY = date(2026, 3, 1)


def _orchestrator(repo, factory, **kwargs) -> MeasurementOrchestrator:
    return MeasurementOrchestrator(repo, factory, num_samples=2, sample_delay=0, **kwargs)


@pytest.fixture
async def workspace_with_prompts(seed):
    ws = await seed.workspace()
    prompts = [
        await seed.prompt(ws, "best crm tools"),
        await seed.prompt(ws, "FAIL crm pricing"),
        await seed.prompt(ws, "crm for startups"),
    ]
    return ws, prompts


class TestRunWorkspace:
    @pytest.mark.asyncio
    async def test_failing_prompt_does_not_stop_run(self, repo, fake_adapters, workspace_with_prompts):
        ws, prompts = workspace_with_prompts
        fake_adapters("openai", fail_on=("FAIL",))
        sink = CollectingSink()

        summary = await _orchestrator(repo, fake_adapters).run_workspace(ws.id, sink=sink, today=TODAY)

        assert summary.total == 3
        assert summary.processed == 2
        assert summary.errors == 1
        assert summary.skipped == 0
        assert summary.error is None

        types = [e.type for e in sink.events]
        assert types[0] == EventType.START
        assert types[-1] == EventType.COMPLETE
        assert len(sink.of_type(EventType.PROGRESS)) == 3
        assert len(sink.of_type(EventType.SUCCESS)) == 2
        error = sink.of_type(EventType.ERROR)[0]
        assert error.payload["prompt_id"] == str(prompts[1].id)
        assert error.payload["llm_provider"] == "openai"

        assert await repo.get_prompt_snapshot(prompts[0].id, TODAY) is not None
        assert await repo.get_prompt_snapshot(prompts[1].id, TODAY) is None
        assert await repo.get_prompt_snapshot(prompts[2].id, TODAY) is not None

    @pytest.mark.asyncio
    async def test_persistence_failure_isolated_to_prompt(
        self, repo, fake_adapters, workspace_with_prompts, monkeypatch
    ):
        ws, prompts = workspace_with_prompts
        upsert = repo.upsert_prompt_snapshot

        async def flaky_upsert(snapshot):
            if snapshot.prompt_id == prompts[0].id:
                raise PersistenceError("prompt snapshot upsert failed: disk full")
            await upsert(snapshot)

        monkeypatch.setattr(repo, "upsert_prompt_snapshot", flaky_upsert)
        sink = CollectingSink()

        summary = await _orchestrator(repo, fake_adapters).run_workspace(ws.id, sink=sink, today=TODAY)

        assert summary.processed == 2
        assert summary.errors == 1
        assert summary.error is None
        error = sink.of_type(EventType.ERROR)[0]
        assert error.payload["prompt_id"] == str(prompts[0].id)
        assert "disk full" in error.payload["error"]
        assert sink.events[-1].type == EventType.COMPLETE
        assert await repo.get_prompt_snapshot(prompts[0].id, TODAY) is None
        assert await repo.get_prompt_snapshot(prompts[2].id, TODAY) is not None

    @pytest.mark.asyncio
    async def test_start_and_success_payloads(self, repo, fake_adapters, workspace_with_prompts):
        ws, _ = workspace_with_prompts
        sink = CollectingSink()

        await _orchestrator(repo, fake_adapters).run_workspace(ws.id, sink=sink, today=TODAY)

        start = sink.of_type(EventType.START)[0]
        assert start.payload == {"total": 3, "prompt_count": 3, "llm_count": 1}
        success = sink.of_type(EventType.SUCCESS)[0]
        assert success.payload["llm_model"] == "fake-model"
        assert set(success.payload["kpis"]) == {"visibility_score", "mention_rate", "citation_rate", "avg_position"}
        assert success.payload["kpis"]["visibility_score"] == 100
        progress = sink.of_type(EventType.PROGRESS)
        assert [p.payload["current"] for p in progress] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_second_run_skips_measured_prompts(self, repo, fake_adapters, workspace_with_prompts):
        ws, _ = workspace_with_prompts
        fake_adapters("openai", fail_on=("FAIL",))
        orchestrator = _orchestrator(repo, fake_adapters)
        await orchestrator.run_workspace(ws.id, today=TODAY)

        sink = CollectingSink()
        summary = await orchestrator.run_workspace(ws.id, sink=sink, today=TODAY)

        assert summary.skipped == 2
        assert summary.errors == 1
        assert summary.processed == 0
        assert sink.of_type(EventType.SKIPPED)[0].payload["reason"] == "Already calculated today with openai"

    @pytest.mark.asyncio
    async def test_force_recomputes(self, repo, fake_adapters, workspace_with_prompts):
        ws, _ = workspace_with_prompts
        orchestrator = _orchestrator(repo, fake_adapters)
        await orchestrator.run_workspace(ws.id, today=TODAY)

        summary = await orchestrator.run_workspace(ws.id, force=True, today=TODAY)

        assert summary.processed == 3
        assert summary.skipped == 0

    @pytest.mark.asyncio
    async def test_results_recorded_per_sample(self, db, repo, fake_adapters, workspace_with_prompts):
        ws, prompts = workspace_with_prompts
        run_id = uuid.uuid4()

        await _orchestrator(repo, fake_adapters).run_workspace(ws.id, run_id=run_id, today=TODAY)

        rows = (await db.execute(select(Result).where(Result.prompt_id == prompts[0].id))).scalars().all()
        assert len(rows) == 2
        assert all(r.run_id == run_id for r in rows)
        assert all(r.mention_present for r in rows)

    @pytest.mark.asyncio
    async def test_cancel_between_tasks(self, repo, fake_adapters, workspace_with_prompts):
        ws, _ = workspace_with_prompts
        cancel = CancellationToken()
        events = []

        def sink(event):
            events.append(event)
            if event.type == EventType.SUCCESS:
                cancel.cancel()

        summary = await _orchestrator(repo, fake_adapters).run_workspace(
            ws.id, sink=sink, cancel=cancel, today=TODAY
        )

        assert summary.cancelled is True
        assert summary.processed == 1
        assert events[-1].type == EventType.COMPLETE

    @pytest.mark.asyncio
    async def test_unknown_workspace_reports_error(self, repo, fake_adapters):
        sink = CollectingSink()

        summary = await _orchestrator(repo, fake_adapters).run_workspace(uuid.uuid4(), sink=sink, today=TODAY)

        assert "not found" in summary.error
        assert [e.type for e in sink.events] == [EventType.ERROR, EventType.COMPLETE]

    @pytest.mark.asyncio
    async def test_workspace_without_brand(self, repo, seed, fake_adapters):
        ws = await seed.workspace(brand_name=None)

        summary = await _orchestrator(repo, fake_adapters).run_workspace(ws.id, today=TODAY)

        assert "no brand name" in summary.error

    @pytest.mark.asyncio
    async def test_unconfigured_provider_errors_per_task(self, repo, seed, fake_adapters):
        ws = await seed.workspace(llms=["openai", "anthropic"])
        await seed.prompt(ws, "crm one")
        await seed.prompt(ws, "crm two")

        def factory(name):
            if name == "anthropic":
                raise ConfigurationError("API key for provider 'anthropic' is not configured")
            return fake_adapters(name)

        summary = await _orchestrator(repo, factory).run_workspace(ws.id, today=TODAY)

        assert summary.total == 4
        assert summary.processed == 2
        assert summary.errors == 2

    @pytest.mark.asyncio
    async def test_plan_caps_providers(self, repo, seed, fake_adapters):
        ws = await seed.workspace(llms=["openai", "perplexity"], plan="starter")
        await seed.prompt(ws)

        summary = await _orchestrator(repo, fake_adapters).run_workspace(ws.id, today=TODAY)

        assert summary.llm_count == 1
        assert list(fake_adapters.adapters) == ["openai"]

    @pytest.mark.asyncio
    async def test_topic_competitors_and_rollup(self, db, repo, seed, fake_adapters):
        ws = await seed.workspace()
        topic = await seed.topic(ws, competitors=["HubSpot"])
        prompt = await seed.prompt(ws, "best crm", topic_id=topic.id)

        summary = await _orchestrator(repo, fake_adapters).run_workspace(ws.id, today=TODAY)

        assert summary.topics_processed == 1
        topic_snapshot = await repo.get_topic_snapshot(topic.id, TODAY)
        assert topic_snapshot.visibility_score == 100
        row = (await db.execute(select(Result).where(Result.prompt_id == prompt.id))).scalars().first()
        assert row.brands_mentioned == ["Acme", "HubSpot"]
        assert row.competitor_mentions == 1

    @pytest.mark.asyncio
    async def test_region_context_used_in_system_prompt(self, repo, seed, fake_adapters):
        ws = await seed.workspace()
        region = await seed.region(ws, region="Germany", language="German")
        await seed.prompt(ws, "bestes crm", region_id=region.id)

        await _orchestrator(repo, fake_adapters).run_workspace(ws.id, region_id=region.id, today=TODAY)

        _, system = fake_adapters.adapters["openai"].calls[0]
        assert "Target region: Germany" in system
        assert "Target language: German" in system


class TestRunDaily:
    @pytest.mark.asyncio
    async def test_collects_failures(self, repo, seed, fake_adapters):
        ok = await seed.workspace(name="ok")
        await seed.prompt(ok)
        broken = await seed.workspace(brand_name="", name="broken")
        await seed.workspace(name="inactive", is_active=False)

        daily = await _orchestrator(repo, fake_adapters).run_daily()

        assert daily.workspaces == 2
        assert daily.succeeded == 1
        assert daily.failed[0]["workspace_id"] == str(broken.id)
        assert daily.processed == 1
