"""Brand detection: our brand vs. competitors within a response."""

from __future__ import annotations

import re

from brandmonitor.analysis.types import BrandAnalysis, BrandPosition

# Characters that may surround a whole-word brand match
_BOUNDARY_CHARS = set(" \t\r\n.,;:!?()[]{}\"'`-")


def _is_boundary(ch: str) -> bool:
    return ch in _BOUNDARY_CHARS or ch.isspace()


def find_brand_occurrences(text: str, brand: str) -> list[int]:
    """Character offsets of whole-word, case-insensitive occurrences of *brand*."""
    needle = (brand or "").strip().lower()
    if not text or not needle:
        return []
    haystack = text.lower()
    positions: list[int] = []
    for match in re.finditer(re.escape(needle), haystack):
        start, end = match.start(), match.end()
        before = haystack[start - 1] if start > 0 else " "
        after = haystack[end] if end < len(haystack) else " "
        if _is_boundary(before) and _is_boundary(after):
            positions.append(start)
    return positions


def detect_brands(text: str, our_brand: str, competitors: list[str] | tuple[str, ...] = ()) -> BrandAnalysis:
    """Rank our brand and competitors by first occurrence in *text*.

    Relevancy is 100 when our brand is present, 50 when only competitors are,
    0 otherwise.
    """
    if not text or not our_brand:
        return BrandAnalysis()

    candidates = [(our_brand, True)] + [(c, False) for c in competitors if c]
    first_seen: list[tuple[int, str, bool]] = []
    seen_names: set[str] = set()
    for name, is_ours in candidates:
        key = name.strip().lower()
        if key in seen_names:
            continue
        seen_names.add(key)
        occurrences = find_brand_occurrences(text, name)
        if occurrences:
            first_seen.append((occurrences[0], name, is_ours))

    first_seen.sort(key=lambda item: item[0])
    detected = tuple(
        BrandPosition(brand=name, position=i + 1, first_occurrence=offset, is_our_brand=is_ours)
        for i, (offset, name, is_ours) in enumerate(first_seen)
    )

    ours = next((b for b in detected if b.is_our_brand), None)
    if ours is not None:
        relevancy = 100
    elif detected:
        relevancy = 50
    else:
        relevancy = 0

    return BrandAnalysis(
        brands_detected=detected,
        our_brand_mentioned=ours is not None,
        our_brand_position=ours.position if ours else None,
        relevancy_score=relevancy,
    )
