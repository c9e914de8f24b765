import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.core.errors import AuditWriteFailed, NotFound, StoreError
from app.modules.activity.models import ActivityAction, EntityType
from app.modules.activity.service import ActivityLog
from app.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupWithRoleResponse, GroupListResponse
)
from app.modules.memberships.models import GroupAction, Role
from app.modules.memberships.policy import enforce
from app.modules.memberships.store import MembershipStore, translate_store_error

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(
        self,
        supabase: Client,
        store: Optional[MembershipStore] = None,
        activity: Optional[ActivityLog] = None
    ):
        self.supabase = supabase
        self.store = store or MembershipStore(supabase)
        self.activity = activity or ActivityLog(supabase, self.store)

    def _record(self, group_id: str, actor_id: str, action: ActivityAction, details: Optional[Dict] = None) -> None:
        try:
            self.activity.append(group_id, actor_id, action, EntityType.GROUP, group_id, details)
        except AuditWriteFailed as e:
            logger.error("Audit gap: %s for group %s by %s not recorded (%s)", action.value, group_id, actor_id, e.message)

    def _fetch_group(self, group_id: str) -> Dict:
        try:
            result = self.supabase.table("groups")\
                .select("*")\
                .eq("id", group_id)\
                .limit(1)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "loading group")
        if not result.data:
            raise NotFound("Group not found")
        return result.data[0]

    def create_group(self, group_data: GroupCreate, creator_id: str) -> GroupResponse:
        """Create the group and make the creator its leader in one server-side call"""
        try:
            result = self.supabase.rpc("create_group_with_leader", {
                "p_name": group_data.name.strip(),
                "p_description": (group_data.description or "").strip(),
                "p_color": group_data.color,
                "p_creator_id": creator_id
            }).execute()
        except APIError as e:
            raise translate_store_error(e, "creating group")

        if not result.data:
            raise StoreError("Failed to create group")

        group = result.data[0]
        logger.info("User %s created group %s", creator_id, group["id"])
        self._record(group["id"], creator_id, ActivityAction.GROUP_CREATED, {"group_name": group["name"]})
        return GroupResponse(**group)

    def get_group(self, group_id: str, actor_id: str) -> GroupResponse:
        """Get group by ID (members only)"""
        group = self._fetch_group(group_id)
        enforce(self.store.get_role(group_id, actor_id), None, GroupAction.VIEW_MEMBERS)
        return GroupResponse(**group)

    def list_groups(self, user_id: str) -> GroupListResponse:
        """Groups the user belongs to, split into the ones they lead and the rest"""
        try:
            members_result = self.supabase.table("group_members")\
                .select("group_id, role")\
                .eq("user_id", user_id)\
                .execute()
            roles = {m["group_id"]: m["role"] for m in members_result.data or []}
            if not roles:
                return GroupListResponse(leader=[], member=[])

            groups_result = self.supabase.table("groups")\
                .select("*")\
                .in_("id", list(roles.keys()))\
                .order("created_at", desc=True)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "listing groups")

        leader, member = [], []
        for group in groups_result.data or []:
            item = GroupWithRoleResponse(**group, role=roles[group["id"]])
            (leader if item.role == Role.LEADER.value else member).append(item)
        return GroupListResponse(leader=leader, member=member)

    def update_group(self, group_id: str, actor_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Update name/description/color (leader or admin)"""
        self._fetch_group(group_id)
        enforce(self.store.get_role(group_id, actor_id), None, GroupAction.EDIT_GROUP)

        update_data = {}
        if group_data.name:
            update_data["name"] = group_data.name.strip()
        if group_data.description is not None:
            update_data["description"] = group_data.description.strip()
        if group_data.color:
            update_data["color"] = group_data.color
        if not update_data:
            return self.get_group(group_id, actor_id)
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

        try:
            result = self.supabase.table("groups")\
                .update(update_data)\
                .eq("id", group_id)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "updating group")

        if not result.data:
            raise NotFound("Group not found")

        group = result.data[0]
        self._record(
            group_id, actor_id, ActivityAction.GROUP_UPDATED,
            {"group_name": group["name"], "fields": sorted(k for k in update_data if k != "updated_at")}
        )
        return GroupResponse(**group)

    def delete_group(self, group_id: str, actor_id: str) -> None:
        """Delete the group (leader only); memberships and activity go with it"""
        self._fetch_group(group_id)
        enforce(self.store.get_role(group_id, actor_id), None, GroupAction.DELETE_GROUP)

        try:
            self.supabase.table("groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "deleting group")
        logger.info("User %s deleted group %s", actor_id, group_id)
