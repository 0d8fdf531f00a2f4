"""Records exchanged between the repository and the measurement services.

ORM rows never leave the repository; everything the services see is one of
these dataclasses.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from brandmonitor.analysis.types import BrandContext, KPIMetrics

# Max number of LLM providers measured per workspace, by plan
PLAN_MODEL_CAP = {
    "starter": 1,
    "growth": 3,
}
DEFAULT_MODEL_CAP = 99


def model_cap(plan: str | None) -> int:
    return PLAN_MODEL_CAP.get((plan or "").lower(), DEFAULT_MODEL_CAP)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for the non-negative scores (12.5 -> 13, not 12)."""
    return math.floor(value + 0.5)


# ---------------------------------------------------------------------------
# Inputs read from storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkspaceConfig:
    """Read-only view of everything a run needs about a workspace/region."""

    workspace_id: uuid.UUID
    brand: BrandContext
    providers: tuple[str, ...]
    region_id: uuid.UUID | None = None
    region: str = "United States"
    language: str = "English"
    plan: str = "starter"


@dataclass(frozen=True)
class PromptRecord:
    id: uuid.UUID
    workspace_id: uuid.UUID
    prompt_text: str
    region_id: uuid.UUID | None = None
    topic_id: uuid.UUID | None = None
    is_active: bool = True
    is_pinned: bool = False
    source: str = "custom"


@dataclass(frozen=True)
class TopicRecord:
    id: uuid.UUID
    workspace_id: uuid.UUID
    name: str
    region_id: uuid.UUID | None = None
    keywords: tuple[str, ...] = ()
    competitors: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResultRecord:
    """The fields of a stored Result used by the composite scorer."""

    id: uuid.UUID
    prompt_id: uuid.UUID
    llm_provider: str
    mention_present: bool
    sentiment: float | None = None
    prominence: float | None = None
    alignment: float | None = None
    competitor_mentions: int = 0
    created_at: datetime | None = None


@dataclass(frozen=True)
class CitationRecord:
    result_id: uuid.UUID
    domain: str
    url: str | None = None
    authority_cached: float | None = None


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@dataclass
class PromptKPIResult:
    """All successful samples of one prompt against one provider."""

    prompt_id: uuid.UUID | None
    llm_provider: str
    llm_model: str
    metrics: list[KPIMetrics] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    calculated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class PromptSnapshotRecord:
    prompt_id: uuid.UUID
    workspace_id: uuid.UUID
    snapshot_date: date
    visibility_score: int
    mention_rate: int
    citation_rate: int
    avg_position: float | None
    total_measurements: int
    mention_count: int
    citation_count: int
    llm_provider: str
    llm_model: str
    region_id: uuid.UUID | None = None
    avg_sentiment: float | None = None
    avg_prominence: float | None = None
    avg_alignment: float | None = None

    def kpis(self) -> dict:
        return {
            "visibility_score": self.visibility_score,
            "mention_rate": self.mention_rate,
            "citation_rate": self.citation_rate,
            "avg_position": self.avg_position,
        }


@dataclass(frozen=True)
class TopicSnapshotRecord:
    topic_id: uuid.UUID
    workspace_id: uuid.UUID
    snapshot_date: date
    visibility_score: int
    relevancy_score: int
    avg_rank: float | None
    best_rank: float | None
    worst_rank: float | None
    total_citations: int
    our_brand_mention_count: int
    total_brand_mentions: int
    total_prompts_measured: int
    total_llm_queries: int
    competitor_mentions: dict = field(default_factory=dict)
    competitor_positions: dict = field(default_factory=dict)
    region_id: uuid.UUID | None = None


@dataclass(frozen=True)
class AggregationSkip:
    """An aggregation that intentionally wrote nothing."""

    reason: str

    ALREADY_COMPUTED = "already computed"
    NO_PROMPT_SNAPSHOTS = "no prompt snapshots"
    NO_RESULTS = "no successful results"


@dataclass(frozen=True)
class CompositeScores:
    """Workspace-level scores in 0-100."""

    visibility: int
    trust: int
    share_of_voice: int
    sample_size: int
    mention_rate: float = 0.0
    avg_prominence: float = 0.0
    avg_alignment: float = 0.0
    avg_sentiment: float = 0.0
    citation_authority: float = 0.0

    def to_dict(self) -> dict:
        return {
            "visibility": self.visibility,
            "trust": self.trust,
            "share_of_voice": self.share_of_voice,
            "sample_size": self.sample_size,
            "mention_rate": self.mention_rate,
            "avg_prominence": self.avg_prominence,
            "avg_alignment": self.avg_alignment,
            "avg_sentiment": self.avg_sentiment,
            "citation_authority": self.citation_authority,
        }
