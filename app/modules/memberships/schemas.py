from pydantic import BaseModel, EmailStr
from typing import Optional, List
from datetime import datetime


# Request payloads carry only the target and, where relevant, the new role.
# The actor always comes from the bearer token; extra fields are rejected.

class MemberAdd(BaseModel):
    target_user_id: str

    class Config:
        extra = "forbid"


class MemberAddByEmail(BaseModel):
    email: EmailStr

    class Config:
        extra = "forbid"


class RoleChange(BaseModel):
    # Plain str so unknown roles reach the service and fail as invalid_role
    new_role: str

    class Config:
        extra = "forbid"


class LeadershipTransfer(BaseModel):
    target_user_id: str

    class Config:
        extra = "forbid"


class MemberResponse(BaseModel):
    group_id: str
    user_id: str
    role: str
    joined_at: datetime

    class Config:
        from_attributes = True


class MemberMutationResponse(BaseModel):
    member: Optional[MemberResponse] = None
    changed: bool = True
    audit_recorded: bool = True


class LeadershipTransferResponse(BaseModel):
    group_id: str
    old_leader: MemberResponse
    new_leader: MemberResponse
    audit_recorded: bool = True


class MemberListResponse(BaseModel):
    group_id: str
    members: List[MemberResponse]
