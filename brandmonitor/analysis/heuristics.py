"""Text-signal heuristics: citations, mention, sentiment, prominence, alignment.

All functions are pure and deterministic. They are cheap proxies, not NLP:
sentiment counts a fixed word list, prominence looks at where the brand first
appears and what surrounds it.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

# ---------------------------------------------------------------------------
# Patterns and word lists
# ---------------------------------------------------------------------------

# Absolute URLs and bare www. hosts
_URL_PATTERN = re.compile(r"(https?://[^\s)]+)|(www\.[^\s)]+)", re.IGNORECASE)

# Ordered/bulleted list marker near a brand mention
_LIST_MARKER_PATTERN = re.compile(r"\b(1\.|2\.|3\.|-\s)")
_LINK_PATTERN = re.compile(r"https?://", re.IGNORECASE)

# Numbered items, bullets or paragraph breaks
_STRUCTURE_PATTERN = re.compile(r"\d+\.|-|\n\n")

POSITIVE_WORDS = ("best", "recommended", "great", "top", "ideal", "trusted")
NEGATIVE_WORDS = ("avoid", "poor", "bad", "limitations", "issues", "problem")

_SENTIMENT_SCALE = 3
_PROMINENCE_WINDOW_BEFORE = 80
_PROMINENCE_WINDOW_AFTER = 120
_ALIGNMENT_WORDS = 200


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Citations
# ---------------------------------------------------------------------------


def extract_urls(text: str) -> list[str]:
    """Return URL-like substrings in order of appearance, de-duplicated."""
    if not text:
        return []
    seen: dict[str, None] = {}
    for match in _URL_PATTERN.finditer(text):
        seen.setdefault(match.group(0), None)
    return list(seen)


def url_to_domain(url: str) -> str | None:
    """Lower-cased host with leading ``www.`` removed, or None when unparseable."""
    with_scheme = url if url.lower().startswith("http") else f"https://{url}"
    try:
        host = urlparse(with_scheme).hostname
    except ValueError:
        return None
    if not host:
        return None
    host = host.rstrip(".")
    if host.startswith("www."):
        host = host[4:]
    return host or None


def extract_citations(text: str) -> set[str]:
    """Distinct cited domains found in *text*. Malformed URLs are dropped."""
    domains: set[str] = set()
    for url in extract_urls(text):
        domain = url_to_domain(url)
        if domain:
            domains.add(domain)
    return domains


# ---------------------------------------------------------------------------
# Mention
# ---------------------------------------------------------------------------


def detect_mention(text: str, brand_name: str | None = None, domain: str | None = None) -> bool:
    """Case-insensitive substring match of brand name or domain."""
    haystack = (text or "").lower()
    needles: list[str] = []
    if brand_name:
        needles.append(brand_name.lower())
    if domain:
        needles.append(domain.lower())
        needles.append(re.sub(r"^www\.", "", domain.lower()))
    return any(n and n in haystack for n in needles)


# ---------------------------------------------------------------------------
# Sentiment
# ---------------------------------------------------------------------------


def sentiment_score(text: str) -> float | None:
    """Net count of positive minus negative marker words, scaled to [-1, 1].

    Each word counts once regardless of repetitions. Returns 0 when no marker
    is present and None only for empty input.
    """
    if not text:
        return None
    lowered = text.lower()
    score = sum(1 for w in POSITIVE_WORDS if w in lowered)
    score -= sum(1 for w in NEGATIVE_WORDS if w in lowered)
    if score == 0:
        return 0.0
    return _clamp(score / _SENTIMENT_SCALE, -1.0, 1.0)


# ---------------------------------------------------------------------------
# Prominence
# ---------------------------------------------------------------------------


def prominence_score(text: str, brand_name: str | None = None, domain: str | None = None) -> float | None:
    """How early and how emphatically the brand appears, in [0, 1].

    Base score by relative position of the first occurrence (0.6 in the first
    15 %, 0.35 before 40 %, else 0.15), plus 0.15 for a list marker and 0.15
    for a link in the surrounding window.
    """
    if not text:
        return None
    needle = brand_name or domain or ""
    if not needle:
        return 0.0
    idx = text.lower().find(needle.lower())
    if idx < 0:
        return 0.0

    length = len(text)
    position = idx / length
    if position < 0.15:
        score = 0.6
    elif position < 0.4:
        score = 0.35
    else:
        score = 0.15

    snippet = text[max(0, idx - _PROMINENCE_WINDOW_BEFORE) : min(length, idx + _PROMINENCE_WINDOW_AFTER)]
    if _LIST_MARKER_PATTERN.search(snippet):
        score += 0.15
    if _LINK_PATTERN.search(snippet):
        score += 0.15
    return _clamp(score, 0.0, 1.0)


# ---------------------------------------------------------------------------
# Alignment & authority
# ---------------------------------------------------------------------------


def alignment_score(text: str) -> float | None:
    """Structural proxy for answer completeness: length plus a bonus for structure."""
    if not text:
        return None
    words = len(text.split())
    score = min(1.0, words / _ALIGNMENT_WORDS)
    if _STRUCTURE_PATTERN.search(text):
        score += 0.1
    return _clamp(score, 0.0, 1.0)


def citation_authority(domain: str) -> float:
    """Heuristic authority of a cited domain in [0, 1]."""
    d = (domain or "").lower()
    score = 0.3
    if d.endswith(".gov") or d.endswith(".edu"):
        score += 0.3
    if len(d.replace(".", "")) < 12:
        score += 0.1
    return _clamp(score, 0.0, 1.0)
