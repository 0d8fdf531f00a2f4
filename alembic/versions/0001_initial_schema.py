"""initial brand monitoring schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    # =========================================================
    # 1. Workspaces and their regions
    # =========================================================
    op.create_table(
        "workspaces",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("brand_name", sa.String(255), nullable=True),
        sa.Column("domain", sa.String(255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("plan", sa.String(20), nullable=False, server_default="starter"),
        sa.Column("llms", JSONB(), nullable=True),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("language", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
    )

    op.create_table(
        "workspace_regions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "workspace_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("region", sa.String(100), nullable=False),
        sa.Column("language", sa.String(50), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
    )

    # =========================================================
    # 2. Topics and monitoring prompts
    # =========================================================
    op.create_table(
        "topics",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "workspace_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "region_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workspace_regions.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("keywords", JSONB(), nullable=True),
        sa.Column("competitors", JSONB(), nullable=True),
        sa.Column("is_selected", sa.Boolean(), nullable=False, server_default="true"),
        _created_at(),
    )

    op.create_table(
        "monitoring_prompts",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "workspace_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "region_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workspace_regions.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column(
            "topic_id",
            UUID(as_uuid=True),
            sa.ForeignKey("topics.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("prompt_text", sa.String(2000), nullable=False),
        sa.Column("source", sa.String(20), nullable=False, server_default="custom"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_pinned", sa.Boolean(), nullable=False, server_default="false"),
        _created_at(),
    )

    # =========================================================
    # 3. Raw results and their citations (append-only)
    # =========================================================
    op.create_table(
        "results",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "workspace_id",
            UUID(as_uuid=True),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("region_id", UUID(as_uuid=True), nullable=True, index=True),
        sa.Column(
            "prompt_id",
            UUID(as_uuid=True),
            sa.ForeignKey("monitoring_prompts.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("run_id", UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("llm_provider", sa.String(20), nullable=False),
        sa.Column("llm_model", sa.String(100), nullable=False),
        sa.Column("response_text", sa.Text(), nullable=True),
        sa.Column("brands_mentioned", JSONB(), nullable=True),
        sa.Column("brand_positions", JSONB(), nullable=True),
        sa.Column("our_brand_mentioned", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("our_brand_position", sa.Integer(), nullable=True),
        sa.Column("relevancy_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("competitor_mentions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mention_present", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("sentiment", sa.Float(), nullable=True),
        sa.Column("prominence", sa.Float(), nullable=True),
        sa.Column("alignment", sa.Float(), nullable=True),
        sa.Column("citations_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True
        ),
    )

    op.create_table(
        "citations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "result_id",
            UUID(as_uuid=True),
            sa.ForeignKey("results.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("url", sa.String(2000), nullable=True),
        sa.Column("domain", sa.String(255), nullable=False, index=True),
        sa.Column("title", sa.String(500), nullable=True),
        sa.Column("favicon_url", sa.String(500), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("authority_cached", sa.Float(), nullable=True),
    )

    # =========================================================
    # 4. Daily KPI snapshots (one row per entity per day)
    # =========================================================
    op.create_table(
        "prompt_kpi_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "prompt_id",
            UUID(as_uuid=True),
            sa.ForeignKey("monitoring_prompts.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("workspace_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("region_id", UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("visibility_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mention_rate", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("citation_rate", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_position", sa.Float(), nullable=True),
        sa.Column("avg_sentiment", sa.Float(), nullable=True),
        sa.Column("avg_prominence", sa.Float(), nullable=True),
        sa.Column("avg_alignment", sa.Float(), nullable=True),
        sa.Column("total_measurements", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("mention_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("citation_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("llm_provider", sa.String(100), nullable=False),
        sa.Column("llm_model", sa.String(255), nullable=False),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("prompt_id", "snapshot_date", name="uq_prompt_kpi_snapshot"),
    )

    op.create_table(
        "topic_kpi_snapshots",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "topic_id",
            UUID(as_uuid=True),
            sa.ForeignKey("topics.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("workspace_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("region_id", UUID(as_uuid=True), nullable=True, index=True),
        sa.Column("snapshot_date", sa.Date(), nullable=False),
        sa.Column("visibility_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("relevancy_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_rank", sa.Float(), nullable=True),
        sa.Column("best_rank", sa.Float(), nullable=True),
        sa.Column("worst_rank", sa.Float(), nullable=True),
        sa.Column("total_citations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("our_brand_mention_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_brand_mentions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("competitor_mentions", JSONB(), nullable=True),
        sa.Column("competitor_positions", JSONB(), nullable=True),
        sa.Column("total_prompts_measured", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_llm_queries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("calculated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("topic_id", "snapshot_date", name="uq_topic_kpi_snapshot"),
    )

    # =========================================================
    # 5. Background run status
    # =========================================================
    op.create_table(
        "measurement_runs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("workspace_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("region_id", UUID(as_uuid=True), nullable=True),
        sa.Column("force", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("status", sa.String(20), nullable=False, server_default="queued"),
        sa.Column("task_id", sa.String(255), nullable=True),
        sa.Column("total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("processed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("skipped", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("errors", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        _created_at(),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
    )


def downgrade() -> None:
    op.drop_table("measurement_runs")
    op.drop_table("topic_kpi_snapshots")
    op.drop_table("prompt_kpi_snapshots")
    op.drop_table("citations")
    op.drop_table("results")
    op.drop_table("monitoring_prompts")
    op.drop_table("topics")
    op.drop_table("workspace_regions")
    op.drop_table("workspaces")
