from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.modules.groups.models import DEFAULT_GROUP_COLOR


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: Optional[str] = None
    color: Optional[str] = DEFAULT_GROUP_COLOR

    class Config:
        extra = "forbid"


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    description: Optional[str] = None
    color: Optional[str] = None

    class Config:
        extra = "forbid"


class GroupResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupWithRoleResponse(GroupResponse):
    role: str


class GroupListResponse(BaseModel):
    leader: List[GroupWithRoleResponse]
    member: List[GroupWithRoleResponse]
