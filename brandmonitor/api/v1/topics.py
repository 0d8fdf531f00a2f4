from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from brandmonitor.core.exceptions import NotFoundError
from brandmonitor.core.rate_limit import limiter
from brandmonitor.db.postgres import get_db
from brandmonitor.db.repository import SqlAlchemyRepository
from brandmonitor.models.workspace import Workspace
from brandmonitor.schemas.topic import TopicKpiRequest, TopicKpiResponse
from brandmonitor.services.topic_aggregator import calculate_topic_kpis

router = APIRouter(prefix="/topics", tags=["topics"])


@router.post("/calculate-kpis", response_model=TopicKpiResponse)
@limiter.limit("10/minute")
async def calculate_kpis(
    request: Request,
    body: TopicKpiRequest,
    db: AsyncSession = Depends(get_db),
):
    """Roll today's prompt snapshots up to topic snapshots."""
    if await db.get(Workspace, body.workspace_id) is None:
        raise NotFoundError("Workspace not found")

    repo = SqlAlchemyRepository(db)
    topic_ids = None
    if body.topic_id is not None:
        topic = await repo.get_topic(body.topic_id)
        if topic is None or topic.workspace_id != body.workspace_id:
            raise NotFoundError("Topic not found")
        topic_ids = [topic.id]

    summary = await calculate_topic_kpis(
        repo,
        body.workspace_id,
        topic_ids=topic_ids,
        region_id=body.region_id,
        force=body.force,
    )
    return TopicKpiResponse(**summary.to_dict())
