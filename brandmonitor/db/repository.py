"""Measurement repository: the only place that talks to the database.

Reads return records from ``brandmonitor.services.types`` (empty collections
or None when nothing matches). Snapshot writes are single
INSERT ... ON CONFLICT DO UPDATE statements keyed on (entity, date), committed
immediately.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timezone
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from brandmonitor.analysis.heuristics import citation_authority
from brandmonitor.analysis.types import BrandContext
from brandmonitor.core.config import settings
from brandmonitor.core.exceptions import PersistenceError
from brandmonitor.models.kpi_snapshot import PromptKpiSnapshot, TopicKpiSnapshot
from brandmonitor.models.monitoring_prompt import MonitoringPrompt
from brandmonitor.models.result import Citation, Result
from brandmonitor.models.topic import Topic
from brandmonitor.models.workspace import Workspace, WorkspaceRegion
from brandmonitor.services.types import (
    CitationRecord,
    PromptKPIResult,
    PromptRecord,
    PromptSnapshotRecord,
    ResultRecord,
    TopicRecord,
    TopicSnapshotRecord,
    WorkspaceConfig,
    model_cap,
)

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS = ("openai",)

_PROMPT_SNAPSHOT_FIELDS = (
    "workspace_id",
    "region_id",
    "visibility_score",
    "mention_rate",
    "citation_rate",
    "avg_position",
    "avg_sentiment",
    "avg_prominence",
    "avg_alignment",
    "total_measurements",
    "mention_count",
    "citation_count",
    "llm_provider",
    "llm_model",
)

_TOPIC_SNAPSHOT_FIELDS = (
    "workspace_id",
    "region_id",
    "visibility_score",
    "relevancy_score",
    "avg_rank",
    "best_rank",
    "worst_rank",
    "total_citations",
    "our_brand_mention_count",
    "total_brand_mentions",
    "competitor_mentions",
    "competitor_positions",
    "total_prompts_measured",
    "total_llm_queries",
)


class MeasurementRepository(Protocol):
    """Storage operations the measurement services depend on."""

    async def get_workspace_config(
        self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None
    ) -> WorkspaceConfig | None: ...

    async def list_workspace_ids(self) -> list[uuid.UUID]: ...

    async def get_region_context(self, region_id: uuid.UUID | None) -> tuple[str | None, str | None] | None: ...

    async def get_active_prompts(
        self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None
    ) -> list[PromptRecord]: ...

    async def get_topic(self, topic_id: uuid.UUID) -> TopicRecord | None: ...

    async def list_topic_ids(self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None) -> list[uuid.UUID]: ...

    async def get_topic_prompts(self, topic_id: uuid.UUID) -> list[PromptRecord]: ...

    async def get_prompt_snapshot(self, prompt_id: uuid.UUID, day: date) -> PromptSnapshotRecord | None: ...

    async def get_prompt_snapshots(self, prompt_ids: list[uuid.UUID], day: date) -> list[PromptSnapshotRecord]: ...

    async def upsert_prompt_snapshot(self, snapshot: PromptSnapshotRecord) -> None: ...

    async def get_topic_snapshot(self, topic_id: uuid.UUID, day: date) -> TopicSnapshotRecord | None: ...

    async def upsert_topic_snapshot(self, snapshot: TopicSnapshotRecord) -> None: ...

    async def record_results(
        self,
        result: PromptKPIResult,
        workspace_id: uuid.UUID,
        region_id: uuid.UUID | None = None,
        run_id: uuid.UUID | None = None,
    ) -> list[uuid.UUID]: ...

    async def get_recent_results(
        self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None, limit: int = 20
    ) -> list[ResultRecord]: ...

    async def get_citations_for_results(self, result_ids: list[uuid.UUID]) -> list[CitationRecord]: ...


# ---------------------------------------------------------------------------
# Row → record conversion
# ---------------------------------------------------------------------------


def _prompt_record(row: MonitoringPrompt) -> PromptRecord:
    return PromptRecord(
        id=row.id,
        workspace_id=row.workspace_id,
        prompt_text=row.prompt_text,
        region_id=row.region_id,
        topic_id=row.topic_id,
        is_active=row.is_active,
        is_pinned=row.is_pinned,
        source=row.source,
    )


def _prompt_snapshot_record(row: PromptKpiSnapshot) -> PromptSnapshotRecord:
    return PromptSnapshotRecord(
        prompt_id=row.prompt_id,
        workspace_id=row.workspace_id,
        snapshot_date=row.snapshot_date,
        visibility_score=row.visibility_score,
        mention_rate=row.mention_rate,
        citation_rate=row.citation_rate,
        avg_position=row.avg_position,
        total_measurements=row.total_measurements,
        mention_count=row.mention_count,
        citation_count=row.citation_count,
        llm_provider=row.llm_provider,
        llm_model=row.llm_model,
        region_id=row.region_id,
        avg_sentiment=row.avg_sentiment,
        avg_prominence=row.avg_prominence,
        avg_alignment=row.avg_alignment,
    )


def _topic_snapshot_record(row: TopicKpiSnapshot) -> TopicSnapshotRecord:
    return TopicSnapshotRecord(
        topic_id=row.topic_id,
        workspace_id=row.workspace_id,
        snapshot_date=row.snapshot_date,
        visibility_score=row.visibility_score,
        relevancy_score=row.relevancy_score,
        avg_rank=row.avg_rank,
        best_rank=row.best_rank,
        worst_rank=row.worst_rank,
        total_citations=row.total_citations,
        our_brand_mention_count=row.our_brand_mention_count,
        total_brand_mentions=row.total_brand_mentions,
        total_prompts_measured=row.total_prompts_measured,
        total_llm_queries=row.total_llm_queries,
        competitor_mentions=dict(row.competitor_mentions or {}),
        competitor_positions=dict(row.competitor_positions or {}),
        region_id=row.region_id,
    )


def _str_list(value) -> tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v) for v in value if v)


class SqlAlchemyRepository:
    """MeasurementRepository backed by an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        return pg_insert if dialect == "postgresql" else sqlite_insert

    async def _scalars(self, stmt) -> list:
        # Snapshots are rewritten with Core upserts; refresh rows already in the identity map
        stmt = stmt.execution_options(populate_existing=True)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(str(e)) from e
        return list(result.scalars().all())

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(str(e)) from e

    # --- Workspaces ---

    async def get_workspace_config(
        self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None
    ) -> WorkspaceConfig | None:
        rows = await self._scalars(select(Workspace).where(Workspace.id == workspace_id))
        if not rows:
            return None
        ws = rows[0]

        region = ws.region or settings.default_region
        language = ws.language or settings.default_language
        if region_id is not None:
            context = await self.get_region_context(region_id)
            if context:
                region = context[0] or region
                language = context[1] or language

        providers = _str_list(ws.llms) or DEFAULT_PROVIDERS
        cap = model_cap(ws.plan)
        if len(providers) > cap:
            logger.info("Workspace %s: plan %s allows %d of %d providers", ws.id, ws.plan, cap, len(providers))
            providers = providers[:cap]

        return WorkspaceConfig(
            workspace_id=ws.id,
            brand=BrandContext.from_website(ws.brand_name or "", ws.domain, ws.description),
            providers=providers,
            region_id=region_id,
            region=region,
            language=language,
            plan=ws.plan or "starter",
        )

    async def list_workspace_ids(self) -> list[uuid.UUID]:
        return await self._scalars(
            select(Workspace.id).where(Workspace.is_active == True).order_by(Workspace.created_at)  # noqa: E712
        )

    async def get_region_context(self, region_id: uuid.UUID | None) -> tuple[str | None, str | None] | None:
        if region_id is None:
            return None
        rows = await self._scalars(select(WorkspaceRegion).where(WorkspaceRegion.id == region_id))
        if not rows:
            return None
        return rows[0].region, rows[0].language

    # --- Prompts & topics ---

    async def get_active_prompts(
        self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None
    ) -> list[PromptRecord]:
        stmt = select(MonitoringPrompt).where(
            MonitoringPrompt.workspace_id == workspace_id,
            MonitoringPrompt.is_active == True,  # noqa: E712
        )
        if region_id is not None:
            stmt = stmt.where(MonitoringPrompt.region_id == region_id)
        stmt = stmt.order_by(MonitoringPrompt.is_pinned.desc(), MonitoringPrompt.created_at)
        return [_prompt_record(r) for r in await self._scalars(stmt)]

    async def get_topic(self, topic_id: uuid.UUID) -> TopicRecord | None:
        rows = await self._scalars(select(Topic).where(Topic.id == topic_id))
        if not rows:
            return None
        t = rows[0]
        return TopicRecord(
            id=t.id,
            workspace_id=t.workspace_id,
            name=t.name,
            region_id=t.region_id,
            keywords=_str_list(t.keywords),
            competitors=_str_list(t.competitors),
        )

    async def list_topic_ids(self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None) -> list[uuid.UUID]:
        stmt = select(Topic.id).where(Topic.workspace_id == workspace_id, Topic.is_selected == True)  # noqa: E712
        if region_id is not None:
            stmt = stmt.where(Topic.region_id == region_id)
        return await self._scalars(stmt.order_by(Topic.created_at))

    async def get_topic_prompts(self, topic_id: uuid.UUID) -> list[PromptRecord]:
        stmt = select(MonitoringPrompt).where(
            MonitoringPrompt.topic_id == topic_id,
            MonitoringPrompt.is_active == True,  # noqa: E712
        )
        return [_prompt_record(r) for r in await self._scalars(stmt)]

    # --- Prompt snapshots ---

    async def get_prompt_snapshot(self, prompt_id: uuid.UUID, day: date) -> PromptSnapshotRecord | None:
        rows = await self._scalars(
            select(PromptKpiSnapshot).where(
                PromptKpiSnapshot.prompt_id == prompt_id,
                PromptKpiSnapshot.snapshot_date == day,
            )
        )
        return _prompt_snapshot_record(rows[0]) if rows else None

    async def get_prompt_snapshots(self, prompt_ids: list[uuid.UUID], day: date) -> list[PromptSnapshotRecord]:
        if not prompt_ids:
            return []
        rows = await self._scalars(
            select(PromptKpiSnapshot).where(
                PromptKpiSnapshot.prompt_id.in_(prompt_ids),
                PromptKpiSnapshot.snapshot_date == day,
            )
        )
        return [_prompt_snapshot_record(r) for r in rows]

    async def upsert_prompt_snapshot(self, snapshot: PromptSnapshotRecord) -> None:
        values = {f: getattr(snapshot, f) for f in _PROMPT_SNAPSHOT_FIELDS}
        values["calculated_at"] = datetime.now(timezone.utc)
        stmt = self._insert()(PromptKpiSnapshot).values(
            prompt_id=snapshot.prompt_id,
            snapshot_date=snapshot.snapshot_date,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["prompt_id", "snapshot_date"],
            set_={k: stmt.excluded[k] for k in values},
        )
        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(f"prompt snapshot upsert failed: {e}") from e
        await self._commit()

    # --- Topic snapshots ---

    async def get_topic_snapshot(self, topic_id: uuid.UUID, day: date) -> TopicSnapshotRecord | None:
        rows = await self._scalars(
            select(TopicKpiSnapshot).where(
                TopicKpiSnapshot.topic_id == topic_id,
                TopicKpiSnapshot.snapshot_date == day,
            )
        )
        return _topic_snapshot_record(rows[0]) if rows else None

    async def upsert_topic_snapshot(self, snapshot: TopicSnapshotRecord) -> None:
        values = {f: getattr(snapshot, f) for f in _TOPIC_SNAPSHOT_FIELDS}
        values["calculated_at"] = datetime.now(timezone.utc)
        stmt = self._insert()(TopicKpiSnapshot).values(
            topic_id=snapshot.topic_id,
            snapshot_date=snapshot.snapshot_date,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["topic_id", "snapshot_date"],
            set_={k: stmt.excluded[k] for k in values},
        )
        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise PersistenceError(f"topic snapshot upsert failed: {e}") from e
        await self._commit()

    # --- Results & citations ---

    async def record_results(
        self,
        result: PromptKPIResult,
        workspace_id: uuid.UUID,
        region_id: uuid.UUID | None = None,
        run_id: uuid.UUID | None = None,
    ) -> list[uuid.UUID]:
        """Append one Result row (plus its Citations) per successful sample."""
        ids: list[uuid.UUID] = []
        for m in result.metrics:
            analysis = m.brand_analysis
            row = Result(
                id=uuid.uuid4(),
                workspace_id=workspace_id,
                region_id=region_id,
                prompt_id=result.prompt_id,
                run_id=run_id,
                llm_provider=result.llm_provider,
                llm_model=result.llm_model,
                response_text=m.response_text,
                brands_mentioned=analysis.brand_names,
                brand_positions=analysis.brand_positions,
                our_brand_mentioned=analysis.our_brand_mentioned,
                our_brand_position=analysis.our_brand_position,
                relevancy_score=analysis.relevancy_score,
                competitor_mentions=analysis.competitor_mentions,
                mention_present=m.mention_present,
                sentiment=m.sentiment,
                prominence=m.prominence,
                alignment=m.alignment,
                citations_count=m.citation_count,
                created_at=result.calculated_at,
            )
            row.citations = [
                Citation(
                    url=c.url,
                    domain=c.domain,
                    title=c.title[:500] if c.title else None,
                    favicon_url=c.favicon_url,
                    position=c.position,
                    authority_cached=citation_authority(c.domain),
                )
                for c in m.citations
            ]
            self.session.add(row)
            ids.append(row.id)
        await self._commit()
        return ids

    async def get_recent_results(
        self, workspace_id: uuid.UUID, region_id: uuid.UUID | None = None, limit: int = 20
    ) -> list[ResultRecord]:
        stmt = select(Result).where(Result.workspace_id == workspace_id)
        if region_id is not None:
            stmt = stmt.where(Result.region_id == region_id)
        stmt = stmt.order_by(Result.created_at.desc()).limit(limit)
        return [
            ResultRecord(
                id=r.id,
                prompt_id=r.prompt_id,
                llm_provider=r.llm_provider,
                mention_present=r.mention_present,
                sentiment=r.sentiment,
                prominence=r.prominence,
                alignment=r.alignment,
                competitor_mentions=r.competitor_mentions or 0,
                created_at=r.created_at,
            )
            for r in await self._scalars(stmt)
        ]

    async def get_citations_for_results(self, result_ids: list[uuid.UUID]) -> list[CitationRecord]:
        if not result_ids:
            return []
        rows = await self._scalars(select(Citation).where(Citation.result_id.in_(result_ids)))
        return [
            CitationRecord(result_id=c.result_id, domain=c.domain, url=c.url, authority_cached=c.authority_cached)
            for c in rows
        ]
