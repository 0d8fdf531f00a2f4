"""Analysis pipeline: turns one raw provider answer into KPIMetrics.

Steps:
  1. Brand detection (our brand vs. competitors, positions)
  2. Citation extraction (in-text + vendor-native)
  3. Mention / sentiment / prominence heuristics
  4. Alignment (embedding similarity when supplied, structural heuristic otherwise)
"""

from __future__ import annotations

import logging

from brandmonitor.analysis import heuristics
from brandmonitor.analysis.brand_detector import detect_brands
from brandmonitor.analysis.citation_extractor import extract_citations
from brandmonitor.analysis.types import BrandContext, KPIMetrics

logger = logging.getLogger(__name__)


def analyze_sample(
    text: str,
    brand: BrandContext,
    native_citations: list[str] | None = None,
    alignment: float | None = None,
) -> KPIMetrics:
    """Extract every per-sample signal from *text*.

    *alignment* overrides the structural heuristic; callers pass an
    embedding similarity here when one is available.
    """
    text = text or ""
    brand_analysis = detect_brands(text, brand.name, brand.competitors)
    citations = extract_citations(text, native_urls=native_citations)

    mention = heuristics.detect_mention(text, brand.name or None, brand.domain or None)
    if alignment is None:
        alignment = heuristics.alignment_score(text)

    metrics = KPIMetrics(
        mention_present=mention,
        position=brand_analysis.our_brand_position,
        sentiment=heuristics.sentiment_score(text),
        prominence=heuristics.prominence_score(text, brand.name or None, brand.domain or None),
        alignment=alignment,
        citations=tuple(citations),
        response_text=text,
        brand_analysis=brand_analysis,
    )

    logger.debug(
        "Analyzed sample: mention=%s position=%s citations=%d brands=%d",
        metrics.mention_present,
        metrics.position,
        metrics.citation_count,
        brand_analysis.total_brands_mentioned,
    )
    return metrics
