from fastapi import APIRouter, Depends
from app.core.dependencies import get_actor_id, get_membership_service
from app.modules.memberships.schemas import (
    MemberAdd, MemberAddByEmail, RoleChange, LeadershipTransfer,
    MemberListResponse, MemberMutationResponse, LeadershipTransferResponse
)
from app.modules.memberships.service import MembershipService

router = APIRouter(prefix="/groups/{group_id}", tags=["memberships"])


@router.get("/members", response_model=MemberListResponse)
async def list_members(
    group_id: str,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service)
):
    """List members of the group (any member)"""
    return service.list_members(group_id, actor_id)


@router.post("/members", response_model=MemberMutationResponse, status_code=201)
async def add_member(
    group_id: str,
    member_data: MemberAdd,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service)
):
    """Add a user to the group (leader or admin)"""
    return service.add_member(group_id, actor_id, member_data.target_user_id)


@router.post("/members/by-email", response_model=MemberMutationResponse, status_code=201)
async def add_member_by_email(
    group_id: str,
    member_data: MemberAddByEmail,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service)
):
    """Add an existing account by email (leader or admin)"""
    return service.add_member_by_email(group_id, actor_id, member_data.email)


@router.delete("/members/{target_user_id}", response_model=MemberMutationResponse)
async def remove_member(
    group_id: str,
    target_user_id: str,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service)
):
    """Remove a member from the group (leader only; never the creator)"""
    return service.remove_member(group_id, actor_id, target_user_id)


@router.patch("/members/{target_user_id}/role", response_model=MemberMutationResponse)
async def change_role(
    group_id: str,
    target_user_id: str,
    role_change: RoleChange,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service)
):
    """Promote to admin or demote to member (leader only)"""
    return service.change_role(group_id, actor_id, target_user_id, role_change.new_role)


@router.post("/leadership", response_model=LeadershipTransferResponse)
async def transfer_leadership(
    group_id: str,
    transfer: LeadershipTransfer,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service)
):
    """Hand leadership to another member; the caller becomes a member"""
    return service.transfer_leadership(group_id, actor_id, transfer.target_user_id)


@router.post("/leave", response_model=MemberMutationResponse)
async def leave_group(
    group_id: str,
    actor_id: str = Depends(get_actor_id),
    service: MembershipService = Depends(get_membership_service)
):
    """Leave the group (not allowed for the creator or the current leader)"""
    return service.leave_group(group_id, actor_id)
