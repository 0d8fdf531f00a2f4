"""Workspace composite scores: visibility, trust and share of voice.

  V   = 0.40·mention_rate + 0.25·prominence + 0.20·citation_authority + 0.15·alignment
  T   = 0.50·citation_authority + 0.30·(sentiment + 1)/2 + 0.20·prominence
  SoV = mentions / (mentions + competitor mentions)

Every average is taken over rows where the value is present; an empty
denominator yields 0. Scores are reported as rounded percentages.
"""

from __future__ import annotations

import logging
import uuid

from brandmonitor.services.types import CitationRecord, CompositeScores, ResultRecord, round_half_up

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 20

VISIBILITY_WEIGHTS = {
    "mention_rate": 0.40,
    "prominence": 0.25,
    "citation_authority": 0.20,
    "alignment": 0.15,
}

TRUST_WEIGHTS = {
    "citation_authority": 0.50,
    "sentiment": 0.30,
    "prominence": 0.20,
}


def _avg(values) -> float:
    present = [v for v in values if v is not None]
    return sum(present) / len(present) if present else 0.0


def compute_scores(results: list[ResultRecord], citations: list[CitationRecord]) -> CompositeScores:
    total = len(results)
    mentions = sum(1 for r in results if r.mention_present)
    competitor_touches = sum(r.competitor_mentions or 0 for r in results)

    mention_rate = mentions / total if total else 0.0
    avg_prominence = _avg(r.prominence for r in results)
    avg_alignment = _avg(r.alignment for r in results)
    avg_sentiment = _avg(r.sentiment for r in results)
    authority = _avg(c.authority_cached for c in citations)
    sentiment_normalized = (avg_sentiment + 1) / 2 if any(r.sentiment is not None for r in results) else 0.0

    visibility = (
        VISIBILITY_WEIGHTS["mention_rate"] * mention_rate
        + VISIBILITY_WEIGHTS["prominence"] * avg_prominence
        + VISIBILITY_WEIGHTS["citation_authority"] * authority
        + VISIBILITY_WEIGHTS["alignment"] * avg_alignment
    )
    trust = (
        TRUST_WEIGHTS["citation_authority"] * authority
        + TRUST_WEIGHTS["sentiment"] * sentiment_normalized
        + TRUST_WEIGHTS["prominence"] * avg_prominence
    )
    sov_denominator = mentions + competitor_touches
    share_of_voice = round_half_up(100 * mentions / sov_denominator) if sov_denominator else 0

    return CompositeScores(
        visibility=round_half_up(100 * visibility),
        trust=round_half_up(100 * trust),
        share_of_voice=share_of_voice,
        sample_size=total,
        mention_rate=mention_rate,
        avg_prominence=avg_prominence,
        avg_alignment=avg_alignment,
        avg_sentiment=avg_sentiment,
        citation_authority=authority,
    )


async def workspace_scores(
    repo,
    workspace_id: uuid.UUID,
    region_id: uuid.UUID | None = None,
    window: int = DEFAULT_WINDOW,
) -> CompositeScores:
    """Composite scores over the *window* most recent results of a workspace."""
    results = await repo.get_recent_results(workspace_id, region_id, limit=window)
    citations = await repo.get_citations_for_results([r.id for r in results])
    scores = compute_scores(results, citations)
    logger.debug(
        "Workspace %s scores: V=%d T=%d SoV=%d (n=%d)",
        workspace_id,
        scores.visibility,
        scores.trust,
        scores.share_of_voice,
        scores.sample_size,
    )
    return scores
