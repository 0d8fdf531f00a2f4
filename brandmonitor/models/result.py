import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brandmonitor.db.base import Base, JSONType


class Result(Base):
    """One provider sample for one prompt. Append-only."""

    __tablename__ = "results"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    region_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    prompt_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("monitoring_prompts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    run_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)

    llm_provider: Mapped[str] = mapped_column(String(20), nullable=False)
    llm_model: Mapped[str] = mapped_column(String(100), nullable=False)
    response_text: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Brand detection
    brands_mentioned: Mapped[list | None] = mapped_column(JSONType, nullable=True)  # ["Acme", "HubSpot"]
    brand_positions: Mapped[list | None] = mapped_column(JSONType, nullable=True)  # [{"brand": ..., "position": 1}]
    our_brand_mentioned: Mapped[bool] = mapped_column(Boolean, default=False)
    our_brand_position: Mapped[int | None] = mapped_column(Integer, nullable=True)
    relevancy_score: Mapped[int] = mapped_column(Integer, default=0)
    competitor_mentions: Mapped[int] = mapped_column(Integer, default=0)

    # Heuristic signals
    mention_present: Mapped[bool] = mapped_column(Boolean, default=False)
    sentiment: Mapped[float | None] = mapped_column(Float, nullable=True)
    prominence: Mapped[float | None] = mapped_column(Float, nullable=True)
    alignment: Mapped[float | None] = mapped_column(Float, nullable=True)
    citations_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )

    citations: Mapped[list["Citation"]] = relationship(
        "Citation", back_populates="result", cascade="all, delete-orphan"
    )


class Citation(Base):
    """A URL cited in a result."""

    __tablename__ = "citations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    result_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("results.id", ondelete="CASCADE"), nullable=False, index=True
    )
    url: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    title: Mapped[str | None] = mapped_column(String(500), nullable=True)
    favicon_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0)
    authority_cached: Mapped[float | None] = mapped_column(Float, nullable=True)

    result: Mapped["Result"] = relationship("Result", back_populates="citations")
