from typing import Dict, List

from fastapi import APIRouter, Depends
from supabase import Client
from app.config.permissions_config import PERMISSION_MATRIX
from app.core.dependencies import get_actor_id, get_membership_store, get_activity_log
from app.database.supabase_client import get_service_supabase
from app.modules.activity.service import ActivityLog
from app.modules.groups.schemas import GroupCreate, GroupUpdate, GroupResponse, GroupListResponse
from app.modules.groups.service import GroupService
from app.modules.memberships.store import MembershipStore

router = APIRouter(prefix="/groups", tags=["groups"])


def get_group_service(
    supabase: Client = Depends(get_service_supabase),
    store: MembershipStore = Depends(get_membership_store),
    activity: ActivityLog = Depends(get_activity_log)
) -> GroupService:
    return GroupService(supabase, store, activity)


@router.post("", response_model=GroupResponse, status_code=201)
async def create_group(
    group_data: GroupCreate,
    actor_id: str = Depends(get_actor_id),
    service: GroupService = Depends(get_group_service)
):
    """Create a new group; the caller becomes its creator and leader"""
    return service.create_group(group_data, actor_id)


@router.get("", response_model=GroupListResponse)
async def list_groups(
    actor_id: str = Depends(get_actor_id),
    service: GroupService = Depends(get_group_service)
):
    """List the caller's groups, split into led and joined"""
    return service.list_groups(actor_id)


@router.get("/permissions", response_model=Dict[str, List[str]])
async def get_group_permissions(actor_id: str = Depends(get_actor_id)):
    """Actions each group role may perform (for frontend UI)"""
    return PERMISSION_MATRIX


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    actor_id: str = Depends(get_actor_id),
    service: GroupService = Depends(get_group_service)
):
    """Get group by ID (only if user is a member)"""
    return service.get_group(group_id, actor_id)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    actor_id: str = Depends(get_actor_id),
    service: GroupService = Depends(get_group_service)
):
    """Update group (leader or admin)"""
    return service.update_group(group_id, actor_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    actor_id: str = Depends(get_actor_id),
    service: GroupService = Depends(get_group_service)
):
    """Delete group (leader only)"""
    service.delete_group(group_id, actor_id)
    return None
