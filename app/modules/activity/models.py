# Supabase table: group_activity
# Append-only; rows disappear only through the group delete cascade.

"""
Expected Supabase table structure:

group_activity:
- id: bigserial (primary key, monotonically increasing; feed order and cursor key)
- group_id: uuid (foreign key to groups.id, on delete cascade)
- actor_user_id: uuid (foreign key to profiles.id) - always the authenticated caller
- action: text (closed taxonomy, see ActivityAction)
- entity_type: text (group, member, note, goal)
- entity_id: text
- details: jsonb (action-specific payload, default '{}')
- created_at: timestamp (default: now())
"""
from enum import Enum


class ActivityAction(str, Enum):
    GROUP_CREATED = "group_created"
    GROUP_UPDATED = "group_updated"
    MEMBER_ADDED = "member_added"
    MEMBER_REMOVED = "member_removed"
    MEMBER_LEFT = "member_left"
    ROLE_CHANGED = "role_changed"
    LEADER_CHANGED = "leader_changed"
    CREATE_NOTE = "create_note"
    UPDATE_NOTE = "update_note"
    DELETE_NOTE = "delete_note"
    CREATE_GOAL = "create_goal"
    UPDATE_GOAL = "update_goal"
    UPDATE_GOAL_STATUS = "update_goal_status"
    DELETE_GOAL = "delete_goal"


class EntityType(str, Enum):
    GROUP = "group"
    MEMBER = "member"
    NOTE = "note"
    GOAL = "goal"


# Actions that note/goal collaborators may record through the API
CONTENT_ACTIONS = {
    ActivityAction.CREATE_NOTE: EntityType.NOTE,
    ActivityAction.UPDATE_NOTE: EntityType.NOTE,
    ActivityAction.DELETE_NOTE: EntityType.NOTE,
    ActivityAction.CREATE_GOAL: EntityType.GOAL,
    ActivityAction.UPDATE_GOAL: EntityType.GOAL,
    ActivityAction.UPDATE_GOAL_STATUS: EntityType.GOAL,
    ActivityAction.DELETE_GOAL: EntityType.GOAL,
}
