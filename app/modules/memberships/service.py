import logging
from typing import Any, Dict, Optional

from supabase import Client

from app.core.errors import AuditWriteFailed, InvalidRole, NotFound
from app.modules.activity.models import ActivityAction, EntityType
from app.modules.activity.service import ActivityLog
from app.modules.memberships.models import DenialReason, GroupAction, Role, ROLE_ORDER
from app.modules.memberships.policy import enforce, evaluate, raise_for_denial
from app.modules.memberships.schemas import (
    LeadershipTransferResponse, MemberListResponse, MemberMutationResponse, MemberResponse
)
from app.modules.memberships.store import MembershipStore

logger = logging.getLogger(__name__)


class MembershipService:
    """Add, remove and re-role group members.

    Every operation runs policy check, then store mutation, then audit append.
    The actor id must come from the authenticated session. An audit failure is
    logged and reported as `audit_recorded=False`; it never undoes or fails the
    mutation.
    """

    def __init__(
        self,
        supabase: Client,
        store: Optional[MembershipStore] = None,
        activity: Optional[ActivityLog] = None
    ):
        self.store = store or MembershipStore(supabase)
        self.activity = activity or ActivityLog(supabase, self.store)

    def _load_group(self, group_id: str) -> Dict:
        group = self.store.get_group(group_id)
        if group is None:
            raise NotFound("Group not found")
        return group

    def _record(
        self,
        group_id: str,
        actor_id: str,
        action: ActivityAction,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None
    ) -> bool:
        try:
            self.activity.append(group_id, actor_id, action, EntityType.MEMBER, entity_id, details)
            return True
        except AuditWriteFailed as e:
            logger.error(
                "Audit gap: %s in group %s by %s committed but was not recorded (%s)",
                action.value, group_id, actor_id, e.message
            )
            return False

    def list_members(self, group_id: str, actor_id: str) -> MemberListResponse:
        """List members sorted leader, admin, member, then by join date"""
        self._load_group(group_id)
        enforce(self.store.get_role(group_id, actor_id), None, GroupAction.VIEW_MEMBERS)

        rows = self.store.list_memberships(group_id)
        members = sorted(
            (MemberResponse(**row) for row in rows),
            key=lambda m: (ROLE_ORDER[Role.parse(m.role)], m.joined_at)
        )
        return MemberListResponse(group_id=group_id, members=members)

    def add_member(
        self,
        group_id: str,
        actor_id: str,
        target_user_id: str,
        details: Optional[Dict[str, Any]] = None
    ) -> MemberMutationResponse:
        """Add target as a plain member.

        A duplicate is reported as AlreadyMember whether it is caught by the
        pre-check or by the unique constraint when two requests race.
        """
        group = self._load_group(group_id)
        enforce(
            self.store.get_role(group_id, actor_id),
            self.store.get_role(group_id, target_user_id),
            GroupAction.ADD_MEMBER,
            is_actor_target_same=actor_id == target_user_id,
            is_target_creator=target_user_id == group["created_by"]
        )

        row = self.store.insert_membership(group_id, target_user_id, Role.MEMBER)
        logger.info("User %s added %s to group %s", actor_id, target_user_id, group_id)

        recorded = self._record(group_id, actor_id, ActivityAction.MEMBER_ADDED, target_user_id, details)
        return MemberMutationResponse(member=MemberResponse(**row), audit_recorded=recorded)

    def add_member_by_email(self, group_id: str, actor_id: str, email: str) -> MemberMutationResponse:
        """Resolve an existing account by email and add it. No placeholder
        profile is created for unknown addresses."""
        self._load_group(group_id)
        # Authorize before the lookup so non-admins cannot probe which emails exist
        enforce(self.store.get_role(group_id, actor_id), None, GroupAction.ADD_MEMBER)

        profile = self.store.find_profile_by_email(email)
        if profile is None:
            raise NotFound("No account is registered with this email address")
        return self.add_member(group_id, actor_id, profile["id"], details={"member_email": email})

    def remove_member(self, group_id: str, actor_id: str, target_user_id: str) -> MemberMutationResponse:
        group = self._load_group(group_id)
        target_role = self.store.get_role(group_id, target_user_id)
        enforce(
            self.store.get_role(group_id, actor_id),
            target_role,
            GroupAction.REMOVE_MEMBER,
            is_actor_target_same=actor_id == target_user_id,
            is_target_creator=target_user_id == group["created_by"]
        )

        row = self.store.delete_membership(group_id, target_user_id, target_role)
        logger.info("User %s removed %s from group %s", actor_id, target_user_id, group_id)

        recorded = self._record(
            group_id, actor_id, ActivityAction.MEMBER_REMOVED, target_user_id,
            {"removed_role": target_role.value}
        )
        return MemberMutationResponse(member=MemberResponse(**row), audit_recorded=recorded)

    def leave_group(self, group_id: str, actor_id: str) -> MemberMutationResponse:
        """Voluntary leave. The creator never leaves; a leader transfers first."""
        group = self._load_group(group_id)
        actor_role = self.store.get_role(group_id, actor_id)
        enforce(
            actor_role,
            actor_role,
            GroupAction.LEAVE_GROUP,
            is_actor_target_same=True,
            is_target_creator=actor_id == group["created_by"]
        )

        row = self.store.delete_membership(group_id, actor_id, actor_role)
        logger.info("User %s left group %s", actor_id, group_id)

        recorded = self._record(group_id, actor_id, ActivityAction.MEMBER_LEFT, actor_id)
        return MemberMutationResponse(member=MemberResponse(**row), audit_recorded=recorded)

    def change_role(
        self,
        group_id: str,
        actor_id: str,
        target_user_id: str,
        new_role: str
    ) -> MemberMutationResponse:
        """Promote member to admin or demote admin to member.

        Leadership can only move through transfer_leadership. Asking for the
        role the target already holds is a no-op without an audit entry.
        """
        role = Role.parse(new_role)
        if role == Role.LEADER:
            raise InvalidRole("The leader role can only be assigned through leadership transfer")

        group = self._load_group(group_id)
        target = self.store.get_membership(group_id, target_user_id)
        target_role = Role.parse(target["role"]) if target else None
        action = GroupAction.PROMOTE_ADMIN if role == Role.ADMIN else GroupAction.DEMOTE_ADMIN

        decision = evaluate(
            self.store.get_role(group_id, actor_id),
            target_role,
            action,
            is_actor_target_same=actor_id == target_user_id,
            is_target_creator=target_user_id == group["created_by"]
        )
        if decision.reason == DenialReason.INVALID_TRANSITION and target_role == role:
            return MemberMutationResponse(member=MemberResponse(**target), changed=False, audit_recorded=False)
        raise_for_denial(decision, action)

        row = self.store.update_role(group_id, target_user_id, role, expected_role=target_role)
        logger.info(
            "User %s changed role of %s in group %s: %s -> %s",
            actor_id, target_user_id, group_id, target_role.value, role.value
        )

        recorded = self._record(
            group_id, actor_id, ActivityAction.ROLE_CHANGED, target_user_id,
            {"old_role": target_role.value, "new_role": role.value}
        )
        return MemberMutationResponse(member=MemberResponse(**row), audit_recorded=recorded)

    def transfer_leadership(
        self,
        group_id: str,
        actor_id: str,
        candidate_user_id: str
    ) -> LeadershipTransferResponse:
        """Hand the leader role to an existing member; the actor becomes a member.

        Both role writes happen inside one server-side function, so no reader
        ever sees zero or two leaders. The checks here fail fast; the function
        repeats them under row locks.
        """
        group = self._load_group(group_id)
        enforce(
            self.store.get_role(group_id, actor_id),
            self.store.get_role(group_id, candidate_user_id),
            GroupAction.TRANSFER_LEADERSHIP,
            is_actor_target_same=actor_id == candidate_user_id,
            is_target_creator=candidate_user_id == group["created_by"]
        )

        rows = {row["user_id"]: row for row in self.store.transfer_leadership(group_id, actor_id, candidate_user_id)}
        logger.info("Leadership of group %s moved from %s to %s", group_id, actor_id, candidate_user_id)

        recorded = self._record(
            group_id, actor_id, ActivityAction.LEADER_CHANGED, candidate_user_id,
            {"old_leader_id": actor_id, "new_leader_id": candidate_user_id}
        )
        return LeadershipTransferResponse(
            group_id=group_id,
            old_leader=MemberResponse(**rows[actor_id]),
            new_leader=MemberResponse(**rows[candidate_user_id]),
            audit_recorded=recorded
        )
