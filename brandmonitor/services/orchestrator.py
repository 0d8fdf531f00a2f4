"""Measurement orchestrator.

Runs every active prompt of a workspace against every enabled provider:

  for each prompt:
      skip all providers when today's snapshot exists (unless force)
      for each provider:
          KpiCalculator → Result rows → prompt snapshot upsert
  then roll the touched topics up to topic snapshots.

Tasks run sequentially. A failing (prompt, provider) task becomes an
``error`` event and the loop moves on; ``complete`` is always emitted.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import uuid
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone

from brandmonitor.core.exceptions import ConfigurationError
from brandmonitor.core.metrics import MEASUREMENT_TASKS
from brandmonitor.gateway.base import BaseProviderAdapter
from brandmonitor.services.kpi_calculator import DEFAULT_NUM_SAMPLES, DEFAULT_SAMPLE_DELAY, KpiCalculator
from brandmonitor.services.progress import CancellationToken, EventType, ProgressEvent, ProgressSink, emit
from brandmonitor.services.prompt_aggregator import aggregate_prompt, fold_results
from brandmonitor.services.topic_aggregator import calculate_topic_kpis
from brandmonitor.services.types import PromptKPIResult, PromptRecord, TopicRecord, WorkspaceConfig

logger = logging.getLogger(__name__)


def _log_context(workspace_id: uuid.UUID, run_id: uuid.UUID | None, **fields: str) -> dict[str, str]:
    context = {"workspace_id": str(workspace_id), **fields}
    if run_id is not None:
        context["run_id"] = str(run_id)
    return context

AdapterFactory = Callable[[str], BaseProviderAdapter]


@dataclass
class RunSummary:
    total: int = 0
    prompt_count: int = 0
    llm_count: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    topics_processed: int = 0
    topics_skipped: int = 0
    topics_errors: int = 0
    cancelled: bool = False
    error: str | None = None

    @property
    def done(self) -> int:
        return self.processed + self.skipped + self.errors

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DailySummary:
    workspaces: int = 0
    succeeded: int = 0
    failed: list[dict] = field(default_factory=list)
    processed: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class MeasurementOrchestrator:
    def __init__(
        self,
        repo,
        adapter_factory: AdapterFactory,
        *,
        num_samples: int = DEFAULT_NUM_SAMPLES,
        sample_delay: float = DEFAULT_SAMPLE_DELAY,
        workspace_delay: float = 0.0,
        embedding_api_key: str | None = None,
        embedding_client=None,
    ):
        self.repo = repo
        self.adapter_factory = adapter_factory
        self.num_samples = num_samples
        self.sample_delay = sample_delay
        self.workspace_delay = workspace_delay
        self.embedding_api_key = embedding_api_key
        self.embedding_client = embedding_client

    @classmethod
    def from_settings(cls, repo, adapter_factory: AdapterFactory, config=None, embedding_client=None):
        from brandmonitor.core.config import settings

        config = config or settings
        embedding_key = config.openai_api_key if config.embedding_enabled else ""
        return cls(
            repo,
            adapter_factory,
            num_samples=config.measurement_num_samples,
            sample_delay=config.measurement_sample_delay,
            workspace_delay=config.workspace_delay,
            embedding_api_key=embedding_key or None,
            embedding_client=embedding_client if embedding_key else None,
        )

    # ------------------------------------------------------------------
    # One workspace
    # ------------------------------------------------------------------

    async def run_workspace(
        self,
        workspace_id: uuid.UUID,
        *,
        region_id: uuid.UUID | None = None,
        force: bool = False,
        sink: ProgressSink | None = None,
        cancel: CancellationToken | None = None,
        run_id: uuid.UUID | None = None,
        today: date | None = None,
    ) -> RunSummary:
        """Measure one workspace (optionally one region). Never raises."""
        today = today or datetime.now(timezone.utc).date()
        summary = RunSummary()
        log_extra = _log_context(workspace_id, run_id)
        try:
            config = await self.repo.get_workspace_config(workspace_id, region_id)
            if config is None:
                raise ConfigurationError(f"Workspace {workspace_id} not found")
            if not config.brand.name:
                raise ConfigurationError(f"Workspace {workspace_id} has no brand name")

            prompts = await self.repo.get_active_prompts(workspace_id, region_id)
            providers = list(config.providers)
            summary.prompt_count = len(prompts)
            summary.llm_count = len(providers)
            summary.total = len(prompts) * len(providers)

            await emit(
                sink,
                ProgressEvent(
                    EventType.START,
                    {"total": summary.total, "prompt_count": summary.prompt_count, "llm_count": summary.llm_count},
                ),
            )
            logger.info(
                "Workspace %s: %d prompts x %d providers = %d tasks (force=%s)",
                workspace_id,
                summary.prompt_count,
                summary.llm_count,
                summary.total,
                force,
                extra=log_extra,
            )

            calculators, adapter_errors = self._build_calculators(providers, log_extra)
            topics: dict[uuid.UUID, TopicRecord | None] = {}
            touched_topics: list[uuid.UUID] = []

            for prompt in prompts:
                if cancel is not None and cancel.cancelled:
                    summary.cancelled = True
                    break
                await self._measure_prompt(
                    prompt,
                    config,
                    providers,
                    calculators,
                    adapter_errors,
                    topics,
                    touched_topics,
                    summary,
                    force=force,
                    sink=sink,
                    cancel=cancel,
                    run_id=run_id,
                    today=today,
                )

            if touched_topics and not summary.cancelled:
                topic_summary = await calculate_topic_kpis(
                    self.repo, workspace_id, topic_ids=touched_topics, snapshot_date=today, force=True
                )
                summary.topics_processed = topic_summary.processed
                summary.topics_skipped = topic_summary.skipped
                summary.topics_errors = topic_summary.errors

        except Exception as e:
            logger.error(
                "Measurement run failed for workspace %s: %s", workspace_id, e, exc_info=True, extra=log_extra
            )
            summary.error = str(e)
            await emit(sink, ProgressEvent(EventType.ERROR, {"error": str(e)}))
        finally:
            await emit(sink, ProgressEvent(EventType.COMPLETE, {"summary": summary.to_dict()}))
            logger.info(
                "Workspace %s done: processed=%d skipped=%d errors=%d cancelled=%s",
                workspace_id,
                summary.processed,
                summary.skipped,
                summary.errors,
                summary.cancelled,
                extra=log_extra,
            )
        return summary

    def _build_calculators(
        self, providers: list[str], log_extra: dict[str, str]
    ) -> tuple[dict[str, KpiCalculator], dict[str, str]]:
        calculators: dict[str, KpiCalculator] = {}
        errors: dict[str, str] = {}
        for name in providers:
            try:
                adapter = self.adapter_factory(name)
            except ConfigurationError as e:
                logger.error("Provider %s unavailable: %s", name, e, extra=log_extra)
                errors[name] = str(e)
                continue
            calculators[name] = KpiCalculator(
                adapter,
                num_samples=self.num_samples,
                sample_delay=self.sample_delay,
                embedding_api_key=self.embedding_api_key,
                embedding_client=self.embedding_client,
            )
        return calculators, errors

    async def _topic(self, topic_id: uuid.UUID | None, cache: dict) -> TopicRecord | None:
        if topic_id is None:
            return None
        if topic_id not in cache:
            cache[topic_id] = await self.repo.get_topic(topic_id)
        return cache[topic_id]

    async def _measure_prompt(
        self,
        prompt: PromptRecord,
        config: WorkspaceConfig,
        providers: list[str],
        calculators: dict[str, KpiCalculator],
        adapter_errors: dict[str, str],
        topics: dict,
        touched_topics: list[uuid.UUID],
        summary: RunSummary,
        *,
        force: bool,
        sink: ProgressSink | None,
        cancel: CancellationToken | None,
        run_id: uuid.UUID | None,
        today: date,
    ) -> None:
        base = {"prompt_id": str(prompt.id), "prompt_text": prompt.prompt_text}

        existing = None if force else await self.repo.get_prompt_snapshot(prompt.id, today)

        topic = await self._topic(prompt.topic_id, topics)
        brand = config.brand
        if topic is not None and topic.competitors:
            brand = dataclasses.replace(brand, competitors=topic.competitors)

        region, language = config.region, config.language
        context = await self.repo.get_region_context(prompt.region_id)
        if context:
            region = context[0] or region
            language = context[1] or language
        region_id = prompt.region_id or config.region_id

        results: list[PromptKPIResult] = []
        for provider in providers:
            if cancel is not None and cancel.cancelled:
                summary.cancelled = True
                return
            task = {**base, "llm_provider": provider}
            await emit(sink, ProgressEvent(EventType.PROGRESS, {**task, "current": summary.done + 1, "total": summary.total}))

            if existing is not None:
                summary.skipped += 1
                MEASUREMENT_TASKS.labels(outcome="skipped").inc()
                await emit(
                    sink,
                    ProgressEvent(EventType.SKIPPED, {**task, "reason": f"Already calculated today with {provider}"}),
                )
                continue

            try:
                if provider in adapter_errors:
                    raise ConfigurationError(adapter_errors[provider])
                result = await calculators[provider].calculate_kpis(
                    prompt.prompt_text,
                    brand,
                    prompt_id=prompt.id,
                    region=region,
                    language=language,
                )
                await self.repo.record_results(result, config.workspace_id, region_id, run_id)
                results.append(result)
                await aggregate_prompt(
                    self.repo,
                    results,
                    prompt_id=prompt.id,
                    workspace_id=config.workspace_id,
                    snapshot_date=today,
                    region_id=region_id,
                    force=True,
                )
            except Exception as e:
                summary.errors += 1
                MEASUREMENT_TASKS.labels(outcome="error").inc()
                logger.error(
                    "%s error for prompt %s (%s): %s",
                    provider,
                    prompt.id,
                    prompt.prompt_text[:50],
                    e,
                    extra=_log_context(config.workspace_id, run_id, prompt_id=str(prompt.id), llm_provider=provider),
                )
                await emit(sink, ProgressEvent(EventType.ERROR, {**task, "error": str(e)}))
                continue

            summary.processed += 1
            MEASUREMENT_TASKS.labels(outcome="success").inc()
            if prompt.topic_id is not None and prompt.topic_id not in touched_topics:
                touched_topics.append(prompt.topic_id)

            kpis = fold_results(
                [result],
                prompt_id=prompt.id,
                workspace_id=config.workspace_id,
                snapshot_date=today,
            ).kpis()
            await emit(sink, ProgressEvent(EventType.SUCCESS, {**task, "llm_model": result.llm_model, "kpis": kpis}))

    # ------------------------------------------------------------------
    # All workspaces
    # ------------------------------------------------------------------

    async def run_daily(self, *, force: bool = False) -> DailySummary:
        """Measure every active workspace in turn, pausing between them."""
        daily = DailySummary()
        workspace_ids = await self.repo.list_workspace_ids()
        daily.workspaces = len(workspace_ids)
        logger.info("Daily measurement: %d workspaces", daily.workspaces)

        for i, workspace_id in enumerate(workspace_ids):
            if i > 0 and self.workspace_delay:
                await asyncio.sleep(self.workspace_delay)
            summary = await self.run_workspace(workspace_id, force=force)
            daily.processed += summary.processed
            daily.skipped += summary.skipped
            daily.errors += summary.errors
            if summary.error:
                daily.failed.append({"workspace_id": str(workspace_id), "error": summary.error})
            else:
                daily.succeeded += 1

        logger.info(
            "Daily measurement done: %d/%d workspaces ok, processed=%d skipped=%d errors=%d",
            daily.succeeded,
            daily.workspaces,
            daily.processed,
            daily.skipped,
            daily.errors,
        )
        return daily
