"""Core types and DTOs for response analysis."""

from __future__ import annotations

import re
from dataclasses import dataclass, field


_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def domain_from_website(website: str | None) -> str:
    """Normalise a website to a bare host: no scheme, no ``www.``, no path, lower-case."""
    if not website:
        return ""
    host = _SCHEME_RE.sub("", website.strip())
    host = host.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    host = host.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrandContext:
    """The brand being monitored. Immutable for the duration of a run."""

    name: str
    domain: str = ""
    description: str = ""
    competitors: tuple[str, ...] = ()

    @classmethod
    def from_website(
        cls,
        name: str,
        website: str | None = None,
        description: str | None = None,
        competitors: list[str] | tuple[str, ...] | None = None,
    ) -> BrandContext:
        return cls(
            name=(name or "").strip(),
            domain=domain_from_website(website),
            description=description or "",
            competitors=tuple(c.strip() for c in competitors or () if c and c.strip()),
        )


# ---------------------------------------------------------------------------
# Extraction results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CitationInfo:
    """A URL cited in a response."""

    url: str
    domain: str
    title: str | None = None
    favicon_url: str | None = None
    position: int = 0  # 1-based order of first occurrence
    is_native: bool = False  # provided by the vendor API rather than found in text

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "title": self.title,
            "favicon_url": self.favicon_url,
            "position": self.position,
            "is_native": self.is_native,
        }


@dataclass(frozen=True)
class BrandPosition:
    """A brand detected in a response and its rank by first occurrence."""

    brand: str
    position: int  # 1 = mentioned first
    first_occurrence: int  # character offset
    is_our_brand: bool = False


@dataclass(frozen=True)
class BrandAnalysis:
    """Our brand vs. competitors within one response."""

    brands_detected: tuple[BrandPosition, ...] = ()
    our_brand_mentioned: bool = False
    our_brand_position: int | None = None
    relevancy_score: int = 0  # 100 ours, 50 competitors only, 0 none

    @property
    def total_brands_mentioned(self) -> int:
        return len(self.brands_detected)

    @property
    def competitor_mentions(self) -> int:
        return sum(1 for b in self.brands_detected if not b.is_our_brand)

    @property
    def brand_names(self) -> list[str]:
        return [b.brand for b in self.brands_detected]

    @property
    def brand_positions(self) -> list[dict]:
        return [{"brand": b.brand, "position": b.position} for b in self.brands_detected]


@dataclass(frozen=True)
class KPIMetrics:
    """Signals extracted from a single provider sample."""

    mention_present: bool
    position: int | None = None
    sentiment: float | None = None  # -1 .. 1
    prominence: float | None = None  # 0 .. 1
    alignment: float | None = None  # 0 .. 1
    citations: tuple[CitationInfo, ...] = ()
    response_text: str = ""
    brand_analysis: BrandAnalysis = field(default_factory=BrandAnalysis)

    @property
    def citation_domains(self) -> set[str]:
        return {c.domain for c in self.citations}

    @property
    def citation_count(self) -> int:
        """Size of the cited-domain set."""
        return len(self.citation_domains)

    @property
    def relevancy_score(self) -> int:
        return self.brand_analysis.relevancy_score

    @property
    def competitor_mentions(self) -> int:
        return self.brand_analysis.competitor_mentions

    def to_dict(self) -> dict:
        return {
            "mention_present": self.mention_present,
            "position": self.position,
            "sentiment": self.sentiment,
            "prominence": self.prominence,
            "alignment": self.alignment,
            "citation_count": self.citation_count,
            "citations": [c.to_dict() for c in self.citations],
            "brands_mentioned": self.brand_analysis.brand_names,
            "relevancy_score": self.relevancy_score,
        }
