"""Tests for structured logging and Sentry event scrubbing."""

import json
import logging
import uuid
from datetime import date

import pytest

from brandmonitor.core.config import settings
from brandmonitor.core.logging import ContextFormatter, JSONFormatter
from brandmonitor.core.sentry import REDACTED, init_sentry, scrub_event
from brandmonitor.services.orchestrator import MeasurementOrchestrator

ORCHESTRATOR_LOGGER = "brandmonitor.services.orchestrator"


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("brandmonitor.test", logging.INFO, __file__, 1, "Run %s done", ("r1",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "brandmonitor.test"
        assert data["message"] == "Run r1 done"
        assert "workspace_id" not in data

    def test_run_context_fields(self):
        workspace_id = uuid.uuid4()
        data = json.loads(JSONFormatter().format(_record(workspace_id=workspace_id, run_id="run-1")))
        assert data["workspace_id"] == str(workspace_id)
        assert data["run_id"] == "run-1"
        assert "prompt_id" not in data


class TestContextFormatter:
    def test_plain_line_without_context(self):
        assert ContextFormatter("%(message)s").format(_record()) == "Run r1 done"

    def test_context_appended_in_fixed_order(self):
        record = _record(llm_provider="openai", run_id="run-1", workspace_id="ws-1")
        line = ContextFormatter("%(levelname)s %(message)s").format(record)
        assert line == "INFO Run r1 done | workspace_id=ws-1 run_id=run-1 llm_provider=openai"


class TestOrchestratorLogContext:
    @pytest.mark.asyncio
    async def test_run_logs_carry_workspace_and_run(self, repo, seed, fake_adapters, caplog):
        ws = await seed.workspace()
        await seed.prompt(ws)
        run_id = uuid.uuid4()
        orchestrator = MeasurementOrchestrator(repo, fake_adapters, num_samples=1, sample_delay=0)

        with caplog.at_level(logging.INFO, logger=ORCHESTRATOR_LOGGER):
            await orchestrator.run_workspace(ws.id, run_id=run_id, today=date(2026, 3, 1))

        records = [r for r in caplog.records if r.name == ORCHESTRATOR_LOGGER]
        assert records
        assert all(r.workspace_id == str(ws.id) for r in records)
        assert all(r.run_id == str(run_id) for r in records)

    @pytest.mark.asyncio
    async def test_task_error_carries_prompt_and_provider(self, repo, seed, fake_adapters, caplog):
        ws = await seed.workspace()
        prompt = await seed.prompt(ws, "FAIL crm pricing")
        fake_adapters("openai", fail_on=("FAIL",))
        orchestrator = MeasurementOrchestrator(repo, fake_adapters, num_samples=1, sample_delay=0)

        with caplog.at_level(logging.ERROR, logger=ORCHESTRATOR_LOGGER):
            await orchestrator.run_workspace(ws.id, today=date(2026, 3, 1))

        errors = [r for r in caplog.records if r.name == ORCHESTRATOR_LOGGER and r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].prompt_id == str(prompt.id)
        assert errors[0].llm_provider == "openai"
        assert errors[0].workspace_id == str(ws.id)
        assert not hasattr(errors[0], "run_id")


class TestSentry:
    def test_disabled_without_dsn(self, monkeypatch):
        monkeypatch.setattr(settings, "sentry_dsn", "")
        assert init_sentry() is False

    def test_scrub_redacts_provider_keys(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", "sk-live-123")
        monkeypatch.setattr(settings, "cron_secret", "s3cret")
        event = {
            "message": "401 from openai with key sk-live-123",
            "request": {"headers": {"Authorization": "Bearer s3cret"}},
            "breadcrumbs": {"values": [{"message": "retry sk-live-123"}]},
            "level": "error",
        }

        scrubbed = scrub_event(event)

        assert scrubbed["message"] == f"401 from openai with key {REDACTED}"
        assert scrubbed["request"]["headers"]["Authorization"] == f"Bearer {REDACTED}"
        assert scrubbed["breadcrumbs"]["values"][0]["message"] == f"retry {REDACTED}"
        assert scrubbed["level"] == "error"

    def test_scrub_without_secrets_is_identity(self, monkeypatch):
        for name in ("openai_api_key", "anthropic_api_key", "perplexity_api_key", "cron_secret"):
            monkeypatch.setattr(settings, name, "")
        event = {"message": "boom"}
        assert scrub_event(event) is event
