"""Measurement API endpoints: live SSE runs, background runs and the daily trigger."""

import asyncio
import logging
import uuid

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from brandmonitor.core.dependencies import get_adapter_factory, get_clients, get_session_factory, verify_cron_secret
from brandmonitor.core.exceptions import NotFoundError
from brandmonitor.core.rate_limit import limiter
from brandmonitor.db.postgres import get_db
from brandmonitor.db.repository import SqlAlchemyRepository
from brandmonitor.gateway.base import ClientRegistry
from brandmonitor.models.measurement_run import MeasurementRun
from brandmonitor.models.workspace import Workspace
from brandmonitor.schemas.common import MessageResponse
from brandmonitor.schemas.measurement import DailyRunRequest, MeasureRequest, MeasurementRunResponse
from brandmonitor.services.orchestrator import MeasurementOrchestrator
from brandmonitor.services.progress import CancellationToken, EventType, ProgressEvent, QueueProgressSink

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/measure", tags=["measure"])

# Streaming runs keep going after the request handler returns
_running: set[asyncio.Task] = set()


async def _get_workspace(db: AsyncSession, workspace_id: uuid.UUID) -> Workspace:
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFoundError("Workspace not found")
    return workspace


@router.post("/stream")
@limiter.limit("5/minute")
async def measure_stream(
    request: Request,
    body: MeasureRequest,
    db: AsyncSession = Depends(get_db),
    session_factory=Depends(get_session_factory),
    adapter_factory=Depends(get_adapter_factory),
    clients: ClientRegistry = Depends(get_clients),
):
    """Measure a workspace now and stream progress as Server-Sent Events.

    Closing the connection cancels the run before its next prompt x provider task.
    """
    await _get_workspace(db, body.workspace_id)

    sink = QueueProgressSink()
    cancel = CancellationToken()

    async def run():
        try:
            async with session_factory() as session:
                orchestrator = MeasurementOrchestrator.from_settings(
                    SqlAlchemyRepository(session),
                    adapter_factory,
                    embedding_client=clients.get("openai"),
                )
                await orchestrator.run_workspace(
                    body.workspace_id,
                    region_id=body.region_id,
                    force=body.force,
                    sink=sink,
                    cancel=cancel,
                )
        except Exception as e:
            logger.error("Streaming run failed for workspace %s: %s", body.workspace_id, e, exc_info=True)
            sink(ProgressEvent(EventType.ERROR, {"error": str(e)}))
            sink(ProgressEvent(EventType.COMPLETE, {"summary": None}))

    task = asyncio.create_task(run())
    _running.add(task)
    task.add_done_callback(_running.discard)

    async def event_stream():
        try:
            async for frame in sink.stream():
                yield frame
        finally:
            if not task.done():
                logger.info("Client left the stream, cancelling run for workspace %s", body.workspace_id)
                cancel.cancel()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.post("/runs", response_model=MeasurementRunResponse, status_code=202)
@limiter.limit("10/minute")
async def create_run(
    request: Request,
    body: MeasureRequest,
    db: AsyncSession = Depends(get_db),
):
    """Queue a background measurement run. Poll GET /runs/{id} for its status."""
    await _get_workspace(db, body.workspace_id)

    run = MeasurementRun(workspace_id=body.workspace_id, region_id=body.region_id, force=body.force)
    db.add(run)
    await db.commit()

    from brandmonitor.tasks.measurement_tasks import run_workspace_measurement

    task = run_workspace_measurement.delay(str(run.id))
    run.task_id = task.id
    await db.commit()
    logger.info("Queued measurement run %s for workspace %s (task=%s)", run.id, body.workspace_id, task.id)
    return run


@router.get("/runs/{run_id}", response_model=MeasurementRunResponse)
async def get_run(run_id: uuid.UUID, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(MeasurementRun).where(MeasurementRun.id == run_id))
    run = result.scalar_one_or_none()
    if run is None:
        raise NotFoundError("Measurement run not found")
    return run


@router.post(
    "/daily",
    response_model=MessageResponse,
    status_code=202,
    dependencies=[Depends(verify_cron_secret)],
)
@limiter.limit("2/minute")
async def trigger_daily(request: Request, body: DailyRunRequest | None = None):
    """Measure every active workspace in the background. Cron only."""
    from brandmonitor.tasks.measurement_tasks import run_daily_measurements

    force = body.force if body else False
    task = run_daily_measurements.delay(force)
    return MessageResponse(message=f"Daily measurements started (task_id={task.id})")
