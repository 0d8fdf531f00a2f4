"""Topic KPI aggregation: rolls prompt snapshots of a day up to the topic."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, timezone

from brandmonitor.core.metrics import AGGREGATION_SKIPS, SNAPSHOT_UPSERTS
from brandmonitor.services.types import AggregationSkip, PromptSnapshotRecord, TopicSnapshotRecord, round_half_up

logger = logging.getLogger(__name__)


@dataclass
class TopicAggregationSummary:
    total: int = 0
    processed: int = 0
    skipped: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def fold_prompt_snapshots(
    snapshots: list[PromptSnapshotRecord],
    *,
    topic_id: uuid.UUID,
    workspace_id: uuid.UUID,
    snapshot_date: date,
    region_id: uuid.UUID | None = None,
) -> TopicSnapshotRecord:
    """Sum counts and summarise ranks of the given prompt snapshots."""
    total_queries = sum(s.total_measurements or 0 for s in snapshots)
    mentions = sum(s.mention_count or 0 for s in snapshots)
    visibility = round_half_up(100 * mentions / total_queries) if total_queries else 0
    positions = [s.avg_position for s in snapshots if s.avg_position is not None]

    # Relevancy and competitor maps are not derived from results yet:
    # relevancy mirrors visibility and the maps stay empty.
    return TopicSnapshotRecord(
        topic_id=topic_id,
        workspace_id=workspace_id,
        snapshot_date=snapshot_date,
        visibility_score=visibility,
        relevancy_score=visibility,
        avg_rank=sum(positions) / len(positions) if positions else None,
        best_rank=min(positions) if positions else None,
        worst_rank=max(positions) if positions else None,
        total_citations=sum(s.citation_count or 0 for s in snapshots),
        our_brand_mention_count=mentions,
        total_brand_mentions=mentions,
        total_prompts_measured=len(snapshots),
        total_llm_queries=total_queries,
        competitor_mentions={},
        competitor_positions={},
        region_id=region_id,
    )


async def aggregate_topic(
    repo,
    topic_id: uuid.UUID,
    workspace_id: uuid.UUID,
    *,
    snapshot_date: date | None = None,
    force: bool = False,
) -> TopicSnapshotRecord | AggregationSkip:
    """Write the (topic, date) snapshot from the prompt snapshots of that date.

    Prompts without a snapshot for the date are left out, not counted as zero.
    No row is written when none of them has one.
    """
    day = snapshot_date or datetime.now(timezone.utc).date()

    if not force:
        existing = await repo.get_topic_snapshot(topic_id, day)
        if existing is not None:
            AGGREGATION_SKIPS.labels(kind="topic", reason="already_computed").inc()
            logger.info("Topic %s already has a snapshot for %s, skipping", topic_id, day)
            return AggregationSkip(AggregationSkip.ALREADY_COMPUTED)

    prompts = await repo.get_topic_prompts(topic_id)
    snapshots = await repo.get_prompt_snapshots([p.id for p in prompts], day) if prompts else []
    if not snapshots:
        AGGREGATION_SKIPS.labels(kind="topic", reason="no_prompt_snapshots").inc()
        logger.info("Topic %s: no prompt snapshots for %s", topic_id, day)
        return AggregationSkip(AggregationSkip.NO_PROMPT_SNAPSHOTS)

    snapshot = fold_prompt_snapshots(
        snapshots,
        topic_id=topic_id,
        workspace_id=workspace_id,
        snapshot_date=day,
        region_id=prompts[0].region_id,
    )
    await repo.upsert_topic_snapshot(snapshot)
    SNAPSHOT_UPSERTS.labels(kind="topic").inc()
    logger.info(
        "Topic %s snapshot %s: visibility=%d prompts=%d queries=%d",
        topic_id,
        day,
        snapshot.visibility_score,
        snapshot.total_prompts_measured,
        snapshot.total_llm_queries,
    )
    return snapshot


async def calculate_topic_kpis(
    repo,
    workspace_id: uuid.UUID,
    *,
    topic_ids: list[uuid.UUID] | None = None,
    region_id: uuid.UUID | None = None,
    snapshot_date: date | None = None,
    force: bool = False,
) -> TopicAggregationSummary:
    """Aggregate every selected topic of a workspace (or only *topic_ids*)."""
    if topic_ids is None:
        topic_ids = await repo.list_topic_ids(workspace_id, region_id)

    summary = TopicAggregationSummary(total=len(topic_ids))
    for topic_id in topic_ids:
        try:
            outcome = await aggregate_topic(
                repo, topic_id, workspace_id, snapshot_date=snapshot_date, force=force
            )
        except Exception as e:
            logger.error("Topic aggregation error for topic %s: %s", topic_id, e)
            summary.errors += 1
            continue
        if isinstance(outcome, AggregationSkip):
            summary.skipped += 1
        else:
            summary.processed += 1
    return summary
