"""Celery tasks for measurement runs.

  - run_daily_measurements: every active workspace, one after the other (Beat)
  - run_workspace_measurement: one workspace/region on demand, tracked by a
    measurement_runs row that the API polls
"""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from functools import partial

from sqlalchemy import select

from brandmonitor.tasks.celery_app import celery_app

logger = logging.getLogger(__name__)


def _run_async(coro):
    """Run an async coroutine from sync Celery task context.

    Creates a fresh event loop each time so the module-level engine used by
    the API process is never shared with a worker loop.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _make_session_factory():
    """Create a fresh async engine + session factory for the worker loop."""
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from brandmonitor.db.postgres import make_engine

    engine = make_engine()
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False), engine


def build_orchestrator(session, clients):
    """Wire a MeasurementOrchestrator from settings."""
    from brandmonitor.core.config import settings
    from brandmonitor.db.repository import SqlAlchemyRepository
    from brandmonitor.gateway.registry import build_adapter
    from brandmonitor.services.orchestrator import MeasurementOrchestrator

    return MeasurementOrchestrator.from_settings(
        SqlAlchemyRepository(session),
        partial(build_adapter, clients=clients, config=settings),
        embedding_client=clients.get("openai"),
    )


# ---------------------------------------------------------------------------
# Daily run
# ---------------------------------------------------------------------------


async def _daily(force: bool) -> dict:
    from brandmonitor.core.config import settings
    from brandmonitor.gateway.base import ClientRegistry

    session_factory, engine = _make_session_factory()
    try:
        async with ClientRegistry(timeout=settings.provider_timeout) as clients:
            async with session_factory() as session:
                orchestrator = build_orchestrator(session, clients)
                summary = await orchestrator.run_daily(force=force)
                return summary.to_dict()
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="run_daily_measurements", max_retries=0)
def run_daily_measurements(self, force: bool = False):
    """Measure every active workspace. Scheduled daily by Beat."""
    logger.info("Daily measurements started (force=%s)", force)
    result = _run_async(_daily(force))
    logger.info("Daily measurements finished: %s", result)
    return result


# ---------------------------------------------------------------------------
# Single workspace run with status row
# ---------------------------------------------------------------------------


async def _set_run_status(session, run_id: uuid.UUID, **fields) -> None:
    from brandmonitor.models.measurement_run import MeasurementRun

    run = (await session.execute(select(MeasurementRun).where(MeasurementRun.id == run_id))).scalar_one_or_none()
    if run is None:
        logger.warning("Measurement run %s not found", run_id)
        return
    for key, value in fields.items():
        setattr(run, key, value)
    await session.commit()


async def execute_workspace_run(session, clients, run_id: uuid.UUID) -> dict:
    """Run the measurement tracked by *run_id* and record its outcome on the row."""
    from brandmonitor.core.sentry import tag_run
    from brandmonitor.models.measurement_run import MeasurementRun, RunStatus

    run = (await session.execute(select(MeasurementRun).where(MeasurementRun.id == run_id))).scalar_one_or_none()
    if run is None:
        raise ValueError(f"Measurement run {run_id} not found")
    workspace_id, region_id, force = run.workspace_id, run.region_id, run.force
    tag_run(workspace_id, run_id)

    await _set_run_status(session, run_id, status=RunStatus.RUNNING, started_at=datetime.now(timezone.utc))

    orchestrator = build_orchestrator(session, clients)
    summary = await orchestrator.run_workspace(workspace_id, region_id=region_id, force=force, run_id=run_id)

    await _set_run_status(
        session,
        run_id,
        status=RunStatus.FAILED if summary.error else RunStatus.COMPLETED,
        total=summary.total,
        processed=summary.processed,
        skipped=summary.skipped,
        errors=summary.errors,
        error=summary.error,
        finished_at=datetime.now(timezone.utc),
    )
    return summary.to_dict()


async def _workspace_run(run_id: uuid.UUID) -> dict:
    from brandmonitor.core.config import settings
    from brandmonitor.gateway.base import ClientRegistry

    session_factory, engine = _make_session_factory()
    try:
        async with ClientRegistry(timeout=settings.provider_timeout) as clients:
            async with session_factory() as session:
                return await execute_workspace_run(session, clients, run_id)
    finally:
        await engine.dispose()


@celery_app.task(bind=True, name="run_workspace_measurement", max_retries=0)
def run_workspace_measurement(self, run_id: str):
    """Measure one workspace/region; progress is reflected on the measurement_runs row."""
    logger.info("Workspace measurement started (run=%s, task=%s)", run_id, self.request.id)
    return _run_async(_workspace_run(uuid.UUID(run_id)))
