import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from brandmonitor.core.config import settings
from brandmonitor.core.exceptions import NotFoundError
from brandmonitor.db.postgres import get_db
from brandmonitor.db.repository import SqlAlchemyRepository
from brandmonitor.models.workspace import Workspace
from brandmonitor.schemas.scores import WorkspaceScoresResponse
from brandmonitor.services.workspace_scores import workspace_scores

router = APIRouter(prefix="/workspaces", tags=["scores"])


@router.get("/{workspace_id}/scores", response_model=WorkspaceScoresResponse)
async def get_workspace_scores(
    workspace_id: uuid.UUID,
    region_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Visibility, Trust and Share of Voice over the most recent results."""
    if await db.get(Workspace, workspace_id) is None:
        raise NotFoundError("Workspace not found")

    scores = await workspace_scores(
        SqlAlchemyRepository(db),
        workspace_id,
        region_id,
        window=settings.recent_results_window,
    )
    return WorkspaceScoresResponse(workspace_id=workspace_id, region_id=region_id, **scores.to_dict())
