import uuid
from datetime import date, datetime, timezone

from sqlalchemy import Date, DateTime, Float, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from brandmonitor.db.base import Base, JSONType


class PromptKpiSnapshot(Base):
    """Daily KPIs of one prompt, folded from all provider samples of that day."""

    __tablename__ = "prompt_kpi_snapshots"
    __table_args__ = (UniqueConstraint("prompt_id", "snapshot_date", name="uq_prompt_kpi_snapshot"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("monitoring_prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    region_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)

    visibility_score: Mapped[int] = mapped_column(Integer, default=0)  # 0-100
    mention_rate: Mapped[int] = mapped_column(Integer, default=0)  # 0-100
    citation_rate: Mapped[int] = mapped_column(Integer, default=0)  # 0-100
    avg_position: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_sentiment: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_prominence: Mapped[float | None] = mapped_column(Float, nullable=True)
    avg_alignment: Mapped[float | None] = mapped_column(Float, nullable=True)

    total_measurements: Mapped[int] = mapped_column(Integer, default=0)
    mention_count: Mapped[int] = mapped_column(Integer, default=0)
    citation_count: Mapped[int] = mapped_column(Integer, default=0)

    llm_provider: Mapped[str] = mapped_column(String(100), nullable=False)  # "openai" or "openai,perplexity"
    llm_model: Mapped[str] = mapped_column(String(255), nullable=False)

    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )


class TopicKpiSnapshot(Base):
    """Daily KPIs of one topic, rolled up from its prompt snapshots."""

    __tablename__ = "topic_kpi_snapshots"
    __table_args__ = (UniqueConstraint("topic_id", "snapshot_date", name="uq_topic_kpi_snapshot"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True
    )
    workspace_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    region_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False)

    visibility_score: Mapped[int] = mapped_column(Integer, default=0)
    relevancy_score: Mapped[int] = mapped_column(Integer, default=0)
    avg_rank: Mapped[float | None] = mapped_column(Float, nullable=True)
    best_rank: Mapped[float | None] = mapped_column(Float, nullable=True)
    worst_rank: Mapped[float | None] = mapped_column(Float, nullable=True)

    total_citations: Mapped[int] = mapped_column(Integer, default=0)
    our_brand_mention_count: Mapped[int] = mapped_column(Integer, default=0)
    total_brand_mentions: Mapped[int] = mapped_column(Integer, default=0)
    competitor_mentions: Mapped[dict | None] = mapped_column(JSONType, nullable=True)  # {"HubSpot": 3}
    competitor_positions: Mapped[dict | None] = mapped_column(JSONType, nullable=True)  # {"HubSpot": 1.5}

    total_prompts_measured: Mapped[int] = mapped_column(Integer, default=0)
    total_llm_queries: Mapped[int] = mapped_column(Integer, default=0)

    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )
