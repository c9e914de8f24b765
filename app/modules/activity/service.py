import logging
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError
from supabase import Client

from app.config import settings
from app.core.errors import AuditWriteFailed, InvalidActivity, NotFound
from app.modules.activity.models import ActivityAction, CONTENT_ACTIONS, EntityType
from app.modules.activity.schemas import ActivityEntryResponse, ActivityPageResponse
from app.modules.memberships.models import GroupAction
from app.modules.memberships.policy import enforce
from app.modules.memberships.store import MembershipStore, translate_store_error

logger = logging.getLogger(__name__)


class ActivityLog:
    """Append-only group activity feed.

    `append` only checks the shape of an entry; whoever calls it has already
    authorized the action it records. Reads are restricted to group members.
    """

    def __init__(self, supabase: Client, store: Optional[MembershipStore] = None):
        self.supabase = supabase
        self.store = store or MembershipStore(supabase)

    def append(
        self,
        group_id: str,
        actor_user_id: str,
        action: ActivityAction,
        entity_type: EntityType,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None
    ) -> ActivityEntryResponse:
        """Insert one entry. Raises InvalidActivity for a malformed entry and
        AuditWriteFailed when the store rejects the insert."""
        try:
            action = ActivityAction(action)
            entity_type = EntityType(entity_type)
        except ValueError as e:
            raise InvalidActivity(str(e))
        if not group_id or not actor_user_id or not entity_id:
            raise InvalidActivity("group_id, actor_user_id and entity_id are required")

        try:
            result = self.supabase.table("group_activity").insert({
                "group_id": group_id,
                "actor_user_id": actor_user_id,
                "action": action.value,
                "entity_type": entity_type.value,
                "entity_id": str(entity_id),
                "details": details or {}
            }).execute()
        except Exception as e:
            raise AuditWriteFailed(f"Failed to record {action.value}: {e}")

        if not result.data:
            raise AuditWriteFailed(f"Failed to record {action.value}: no row returned")
        logger.debug("Recorded %s in group %s by %s", action.value, group_id, actor_user_id)
        return ActivityEntryResponse(**result.data[0])

    def list_for_group(
        self,
        group_id: str,
        actor_id: str,
        cursor: Optional[int] = None,
        limit: Optional[int] = None
    ) -> ActivityPageResponse:
        """Newest-first page of the feed. `cursor` is the id of the last entry
        of the previous page; keyset paging keeps "load more" stable while new
        entries are appended."""
        if self.store.get_group(group_id) is None:
            raise NotFound("Group not found")
        enforce(self.store.get_role(group_id, actor_id), None, GroupAction.VIEW_ACTIVITY)

        page_size = limit or settings.activity_page_size
        page_size = max(1, min(page_size, settings.activity_max_page_size))

        try:
            query = self.supabase.table("group_activity")\
                .select("*")\
                .eq("group_id", group_id)
            if cursor is not None:
                query = query.lt("id", cursor)
            result = query.order("id", desc=True)\
                .limit(page_size + 1)\
                .execute()
        except APIError as e:
            raise translate_store_error(e, "loading activity")

        rows = result.data or []
        has_more = len(rows) > page_size
        entries = [ActivityEntryResponse(**row) for row in rows[:page_size]]
        return ActivityPageResponse(
            entries=entries,
            next_cursor=entries[-1].id if has_more else None,
            has_more=has_more
        )

    def record_content_activity(
        self,
        group_id: str,
        actor_id: str,
        action: str,
        entity_id: str,
        details: Optional[Dict[str, Any]] = None
    ) -> ActivityEntryResponse:
        """Integration point for note and goal collaborators"""
        try:
            parsed = ActivityAction(action)
        except ValueError:
            raise InvalidActivity(f"Unknown activity action '{action}'")
        if parsed not in CONTENT_ACTIONS:
            raise InvalidActivity(f"'{action}' can only be recorded by the membership service")

        if self.store.get_group(group_id) is None:
            raise NotFound("Group not found")
        enforce(self.store.get_role(group_id, actor_id), None, GroupAction.LOG_CONTENT_ACTIVITY)

        return self.append(group_id, actor_id, parsed, CONTENT_ACTIONS[parsed], entity_id, details)
