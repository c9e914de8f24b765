"""
Membership store: the only code path that reads or writes group_members.

Postgres constraint violations surface through PostgREST as APIError with the
SQLSTATE in `code`; they are translated into the typed group errors here so
every caller sees the same error kind regardless of which path detected it.
"""

import logging
from typing import Dict, List, Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.errors import AlreadyMember, Forbidden, GroupError, NotFound, StoreError
from app.modules.memberships.models import DenialReason, Role

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INSUFFICIENT_PRIVILEGE = "42501"
NO_DATA_FOUND = "P0002"


def translate_store_error(exc: APIError, context: str) -> GroupError:
    """Map a PostgREST error to the group error it stands for."""
    code = getattr(exc, "code", None)
    message = getattr(exc, "message", None) or str(exc)
    if code == UNIQUE_VIOLATION:
        return AlreadyMember()
    if code == FOREIGN_KEY_VIOLATION:
        return NotFound("The user or group referenced does not exist")
    if code == INSUFFICIENT_PRIVILEGE:
        return Forbidden(message)
    if code == NO_DATA_FOUND:
        return NotFound(message)
    logger.error("Store error while %s: [%s] %s", context, code, message)
    return StoreError(f"Failed while {context}")


class MembershipStore:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_group(self, group_id: str) -> Optional[Dict]:
        """Return the group row (id, name, created_by) or None"""
        try:
            result = self.supabase.table("groups")\
                .select("id, name, created_by")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except APIError as e:
            raise translate_store_error(e, "loading group")

    def get_membership(self, group_id: str, user_id: str) -> Optional[Dict]:
        try:
            result = self.supabase.table("group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except APIError as e:
            raise translate_store_error(e, "loading membership")

    def get_role(self, group_id: str, user_id: str) -> Optional[Role]:
        membership = self.get_membership(group_id, user_id)
        return Role.parse(membership["role"]) if membership else None

    def list_memberships(self, group_id: str) -> List[Dict]:
        try:
            result = self.supabase.table("group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("joined_at")\
                .execute()
            return result.data or []
        except APIError as e:
            raise translate_store_error(e, "listing members")

    def insert_membership(self, group_id: str, user_id: str, role: Role = Role.MEMBER) -> Dict:
        """Insert a membership. A concurrent duplicate insert raises AlreadyMember."""
        try:
            result = self.supabase.table("group_members").insert({
                "group_id": group_id,
                "user_id": user_id,
                "role": Role(role).value
            }).execute()
        except APIError as e:
            raise translate_store_error(e, "adding member")

        if not result.data:
            raise StoreError("Failed to add member")
        return result.data[0]

    def _guarded_write_missed(self, group_id: str, user_id: str, expected_role: Role, context: str) -> GroupError:
        """A write filtered on the expected role matched nothing: the row is gone or its role moved on"""
        current = self.get_role(group_id, user_id)
        if current is None:
            return NotFound("The target user is not a member of this group")
        logger.info(
            "Skipped %s for %s in group %s: role is %s, expected %s",
            context, user_id, group_id, current.value, Role(expected_role).value
        )
        return Forbidden(
            "The member's role changed while the request was processed",
            reason=DenialReason.INVALID_TRANSITION.value
        )

    def update_role(self, group_id: str, user_id: str, role: Role, expected_role: Role) -> Dict:
        """Set the role only if the row still holds `expected_role`"""
        try:
            result = self.supabase.table("group_members")\
                .update({"role": Role(role).value})\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .eq("role", Role(expected_role).value)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "changing role")

        if not result.data:
            raise self._guarded_write_missed(group_id, user_id, expected_role, "role change")
        return result.data[0]

    def delete_membership(self, group_id: str, user_id: str, expected_role: Role) -> Dict:
        """Delete the row only if it still holds `expected_role`"""
        try:
            result = self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .eq("role", Role(expected_role).value)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "removing member")

        if not result.data:
            raise self._guarded_write_missed(group_id, user_id, expected_role, "removal")
        return result.data[0]

    def transfer_leadership(self, group_id: str, current_leader_id: str, new_leader_id: str) -> List[Dict]:
        """Run the server-side transfer function; both role writes commit together or not at all"""
        try:
            result = self.supabase.rpc("transfer_group_leadership", {
                "p_group_id": group_id,
                "p_current_leader_id": current_leader_id,
                "p_new_leader_id": new_leader_id
            }).execute()
        except APIError as e:
            raise translate_store_error(e, "transferring leadership")

        if not result.data:
            raise StoreError("Leadership transfer returned no rows")
        return result.data

    def find_profile_by_email(self, email: str) -> Optional[Dict]:
        """Case-insensitive exact match on the profile email"""
        address = email.strip()
        pattern = address.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        try:
            result = self.supabase.table("profiles")\
                .select("id, email, username, full_name")\
                .ilike("email", pattern)\
                .limit(10)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "looking up profile")

        # PostgREST also reads `*` as a wildcard
        matches = [p for p in result.data or [] if (p.get("email") or "").lower() == address.lower()]
        return matches[0] if matches else None
