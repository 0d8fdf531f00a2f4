import uuid

from pydantic import BaseModel


class TopicKpiRequest(BaseModel):
    workspace_id: uuid.UUID
    topic_id: uuid.UUID | None = None  # None = every selected topic
    region_id: uuid.UUID | None = None
    force: bool = False


class TopicKpiResponse(BaseModel):
    total: int
    processed: int
    skipped: int
    errors: int
