# Supabase tables: groups, group_members, profiles
# Schema, constraints and server-side functions live in
# app/database/migrations/001_membership_schema.sql

"""
Expected Supabase table structure:

group_members:
- id: uuid (primary key)
- group_id: uuid (foreign key to groups.id, on delete cascade)
- user_id: uuid (foreign key to profiles.id, on delete cascade)
- role: group_role enum (leader, admin, member; default: 'member')
- joined_at: timestamp (default: now())
- unique constraint on (group_id, user_id)
- partial unique index on (group_id) where role = 'leader'

profiles (read-only here):
- id: uuid (primary key, same as auth.users.id)
- email: text
- username: text (nullable)
- full_name: text (nullable)
"""
from enum import Enum

from app.core.errors import InvalidRole


class Role(str, Enum):
    LEADER = "leader"
    ADMIN = "admin"
    MEMBER = "member"

    @classmethod
    def parse(cls, value) -> "Role":
        """Reject anything outside the closed set at the boundary."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidRole(f"Unknown role '{value}'. Valid roles are: leader, admin, member")


ROLE_ORDER = {Role.LEADER: 0, Role.ADMIN: 1, Role.MEMBER: 2}


class GroupAction(str, Enum):
    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"
    PROMOTE_ADMIN = "promote_admin"
    DEMOTE_ADMIN = "demote_admin"
    TRANSFER_LEADERSHIP = "transfer_leadership"
    EDIT_GROUP = "edit_group"
    DELETE_GROUP = "delete_group"
    VIEW_MEMBERS = "view_members"
    VIEW_ACTIVITY = "view_activity"
    LEAVE_GROUP = "leave_group"
    LOG_CONTENT_ACTIVITY = "log_content_activity"


class DenialReason(str, Enum):
    NOT_A_MEMBER = "not_a_member"
    INSUFFICIENT_ROLE = "insufficient_role"
    TARGET_IS_CREATOR = "target_is_creator"
    SELF_TARGET = "self_target"
    ALREADY_MEMBER = "already_member"
    TARGET_NOT_MEMBER = "target_not_member"
    INVALID_TRANSITION = "invalid_transition"
