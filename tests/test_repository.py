"""Tests for SqlAlchemyRepository on SQLite."""

import uuid
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from brandmonitor.analysis.types import CitationInfo, KPIMetrics
from brandmonitor.core.exceptions import PersistenceError
from brandmonitor.services.types import PromptKPIResult


class TestWorkspaceConfig:
    @pytest.mark.asyncio
    async def test_unknown_workspace(self, repo):
        assert await repo.get_workspace_config(uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_defaults(self, repo, seed):
        ws = await seed.workspace(llms=None)

        config = await repo.get_workspace_config(ws.id)

        assert config.providers == ("openai",)
        assert config.brand.name == "Acme"
        assert config.brand.domain == "acme.com"
        assert config.region == "United States"
        assert config.language == "English"
        assert config.region_id is None

    @pytest.mark.asyncio
    async def test_region_overrides_workspace_context(self, repo, seed):
        ws = await seed.workspace(region="France", language="French")
        region = await seed.region(ws, region="Germany", language="German")

        base = await repo.get_workspace_config(ws.id)
        regional = await repo.get_workspace_config(ws.id, region.id)

        assert (base.region, base.language) == ("France", "French")
        assert (regional.region, regional.language) == ("Germany", "German")
        assert regional.region_id == region.id

    @pytest.mark.asyncio
    async def test_plan_caps_providers(self, repo, seed):
        ws = await seed.workspace(llms=["openai", "anthropic", "perplexity", "openai"], plan="starter")
        config = await repo.get_workspace_config(ws.id)
        assert config.providers == ("openai",)

    @pytest.mark.asyncio
    async def test_list_workspace_ids_active_only(self, repo, seed):
        first = await seed.workspace(name="first")
        await seed.workspace(name="paused", is_active=False)
        second = await seed.workspace(name="second")

        assert await repo.list_workspace_ids() == [first.id, second.id]


class TestPrompts:
    @pytest.mark.asyncio
    async def test_pinned_first_inactive_excluded(self, repo, seed):
        ws = await seed.workspace()
        older = await seed.prompt(ws, "older")
        await seed.prompt(ws, "inactive", is_active=False)
        pinned = await seed.prompt(ws, "pinned", is_pinned=True)

        prompts = await repo.get_active_prompts(ws.id)

        assert [p.id for p in prompts] == [pinned.id, older.id]

    @pytest.mark.asyncio
    async def test_region_filter(self, repo, seed):
        ws = await seed.workspace()
        region = await seed.region(ws)
        regional = await seed.prompt(ws, "regional", region_id=region.id)
        await seed.prompt(ws, "global")

        prompts = await repo.get_active_prompts(ws.id, region.id)

        assert [p.id for p in prompts] == [regional.id]

    @pytest.mark.asyncio
    async def test_topic_lookup(self, repo, seed):
        ws = await seed.workspace()
        topic = await seed.topic(ws, competitors=["HubSpot", "", "Pipedrive"])
        await seed.topic(ws, name="Hidden", is_selected=False)

        record = await repo.get_topic(topic.id)

        assert record.competitors == ("HubSpot", "Pipedrive")
        assert await repo.list_topic_ids(ws.id) == [topic.id]
        assert await repo.get_topic(uuid.uuid4()) is None


class TestResults:
    @pytest.mark.asyncio
    async def test_record_results_with_citations(self, repo, seed):
        ws = await seed.workspace()
        prompt = await seed.prompt(ws)
        metrics = [
            KPIMetrics(
                mention_present=True,
                sentiment=0.5,
                citations=(
                    CitationInfo(url="https://nih.gov/a", domain="nih.gov", position=1),
                    CitationInfo(url="https://blog.example.com", domain="blog.example.com", position=2),
                ),
            ),
            KPIMetrics(mention_present=False),
        ]
        result = PromptKPIResult(prompt_id=prompt.id, llm_provider="openai", llm_model="gpt-4o", metrics=metrics)

        ids = await repo.record_results(result, ws.id)

        assert len(ids) == 2
        recent = await repo.get_recent_results(ws.id)
        assert {r.id for r in recent} == set(ids)
        citations = await repo.get_citations_for_results(ids)
        authority = {c.domain: c.authority_cached for c in citations}
        assert authority["nih.gov"] == pytest.approx(0.7)
        assert authority["nih.gov"] > authority["blog.example.com"]

    @pytest.mark.asyncio
    async def test_empty_lookups(self, repo, seed):
        ws = await seed.workspace()
        assert await repo.get_recent_results(ws.id) == []
        assert await repo.get_citations_for_results([]) == []
        assert await repo.get_prompt_snapshots([], date(2026, 3, 1)) == []


class TestReadFailures:
    @pytest.mark.asyncio
    async def test_failed_read_rolls_back(self, repo, seed):
        ws = await seed.workspace()
        failure = OperationalError("SELECT", {}, Exception("server closed the connection"))

        with (
            patch.object(repo.session, "execute", AsyncMock(side_effect=failure)),
            patch.object(repo.session, "rollback", AsyncMock()) as mock_rollback,
        ):
            with pytest.raises(PersistenceError, match="server closed the connection"):
                await repo.get_active_prompts(ws.id)

        mock_rollback.assert_awaited_once()
        assert await repo.get_active_prompts(ws.id) == []
