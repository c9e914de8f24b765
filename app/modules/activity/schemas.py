from pydantic import BaseModel
from typing import Optional, List, Dict, Any
from datetime import datetime


class ContentActivityCreate(BaseModel):
    action: str
    entity_id: str
    details: Dict[str, Any] = {}

    class Config:
        extra = "forbid"


class ActivityEntryResponse(BaseModel):
    id: int
    group_id: str
    actor_user_id: str
    action: str
    entity_type: str
    entity_id: str
    details: Dict[str, Any] = {}
    created_at: datetime

    class Config:
        from_attributes = True


class ActivityPageResponse(BaseModel):
    entries: List[ActivityEntryResponse]
    next_cursor: Optional[int] = None
    has_more: bool = False
