from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class ActivityResponse(BaseModel):
    id: str
    actor_id: str = Field(..., description="The user who performed the action")
    folder_id: Optional[str] = None
    file_id: Optional[str] = None
    action: str = Field(..., description='Action kind, e.g. "upload" or "move-file"')
    message: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = {"from_attributes": True}


class ActivityListResponse(BaseModel):
    activities: List[ActivityResponse]
