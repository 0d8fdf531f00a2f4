import uuid

from pydantic import BaseModel


class WorkspaceScoresResponse(BaseModel):
    workspace_id: uuid.UUID
    region_id: uuid.UUID | None = None
    visibility: int  # 0-100
    trust: int  # 0-100
    share_of_voice: int  # 0-100
    sample_size: int
    mention_rate: float
    avg_prominence: float
    avg_alignment: float
    avg_sentiment: float
    citation_authority: float
