import uuid
from datetime import datetime

from pydantic import BaseModel


class MeasureRequest(BaseModel):
    workspace_id: uuid.UUID
    region_id: uuid.UUID | None = None
    force: bool = False


class DailyRunRequest(BaseModel):
    force: bool = False


class MeasurementRunResponse(BaseModel):
    id: uuid.UUID
    workspace_id: uuid.UUID
    region_id: uuid.UUID | None
    force: bool
    status: str
    task_id: str | None
    total: int
    processed: int
    skipped: int
    errors: int
    error: str | None
    created_at: datetime
    started_at: datetime | None
    finished_at: datetime | None

    model_config = {"from_attributes": True}
