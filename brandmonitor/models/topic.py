import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from brandmonitor.db.base import Base, JSONType


class Topic(Base):
    """A theme grouping monitoring prompts, with its own competitor list."""

    __tablename__ = "topics"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    region_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("workspace_regions.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    keywords: Mapped[list | None] = mapped_column(JSONType, nullable=True)  # ["crm", "sales software"]
    competitors: Mapped[list | None] = mapped_column(JSONType, nullable=True)  # ["HubSpot", "Pipedrive"]
    is_selected: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
