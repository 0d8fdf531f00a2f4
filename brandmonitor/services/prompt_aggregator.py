"""Prompt KPI aggregation: folds provider samples into one daily snapshot."""

from __future__ import annotations

import logging
import uuid
from datetime import date

from brandmonitor.core.metrics import AGGREGATION_SKIPS, SNAPSHOT_UPSERTS
from brandmonitor.services.types import AggregationSkip, PromptKPIResult, PromptSnapshotRecord, round_half_up

logger = logging.getLogger(__name__)


def _mean(values: list[float | None]) -> float | None:
    present = [v for v in values if v is not None]
    return sum(present) / len(present) if present else None


def _percent(part: int, whole: int) -> int:
    return round_half_up(100 * part / whole) if whole else 0


def fold_results(
    results: list[PromptKPIResult],
    *,
    prompt_id: uuid.UUID,
    workspace_id: uuid.UUID,
    snapshot_date: date,
    region_id: uuid.UUID | None = None,
) -> PromptSnapshotRecord:
    """Fold the samples of every provider result into one snapshot record."""
    metrics = [m for r in results for m in r.metrics]
    total = len(metrics)
    mention_count = sum(1 for m in metrics if m.mention_present)
    with_citations = sum(1 for m in metrics if m.citation_count > 0)
    citation_count = sum(m.citation_count for m in metrics)

    providers = list(dict.fromkeys(r.llm_provider for r in results))
    models = list(dict.fromkeys(r.llm_model for r in results))

    visibility = _percent(mention_count, total)
    return PromptSnapshotRecord(
        prompt_id=prompt_id,
        workspace_id=workspace_id,
        snapshot_date=snapshot_date,
        visibility_score=visibility,
        mention_rate=visibility,
        citation_rate=_percent(with_citations, total),
        avg_position=_mean([m.position for m in metrics]),
        total_measurements=total,
        mention_count=mention_count,
        citation_count=citation_count,
        llm_provider=",".join(providers),
        llm_model=",".join(models),
        region_id=region_id,
        avg_sentiment=_mean([m.sentiment for m in metrics]),
        avg_prominence=_mean([m.prominence for m in metrics]),
        avg_alignment=_mean([m.alignment for m in metrics]),
    )


async def aggregate_prompt(
    repo,
    results: list[PromptKPIResult],
    *,
    prompt_id: uuid.UUID,
    workspace_id: uuid.UUID,
    snapshot_date: date,
    region_id: uuid.UUID | None = None,
    force: bool = False,
) -> PromptSnapshotRecord | AggregationSkip:
    """Write the (prompt, date) snapshot unless one exists and *force* is off.

    Idempotent: re-running with the same inputs rewrites the same row.
    """
    if not force:
        existing = await repo.get_prompt_snapshot(prompt_id, snapshot_date)
        if existing is not None:
            AGGREGATION_SKIPS.labels(kind="prompt", reason="already_computed").inc()
            logger.info("Prompt %s already has a snapshot for %s, skipping", prompt_id, snapshot_date)
            return AggregationSkip(AggregationSkip.ALREADY_COMPUTED)

    if not any(r.metrics for r in results):
        AGGREGATION_SKIPS.labels(kind="prompt", reason="no_results").inc()
        return AggregationSkip(AggregationSkip.NO_RESULTS)

    snapshot = fold_results(
        results,
        prompt_id=prompt_id,
        workspace_id=workspace_id,
        snapshot_date=snapshot_date,
        region_id=region_id,
    )
    await repo.upsert_prompt_snapshot(snapshot)
    SNAPSHOT_UPSERTS.labels(kind="prompt").inc()
    logger.info(
        "Prompt %s snapshot %s: visibility=%d citations=%d samples=%d",
        prompt_id,
        snapshot_date,
        snapshot.visibility_score,
        snapshot.citation_count,
        snapshot.total_measurements,
    )
    return snapshot
