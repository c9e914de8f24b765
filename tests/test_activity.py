"""Tests for the activity audit log."""

import pytest

from app.config import settings
from app.core.errors import AuditWriteFailed, Forbidden, InvalidActivity, NotFound
from app.modules.activity.models import ActivityAction, EntityType


class TestListForGroup:
    def test_newest_first(self, activity, group_id, users):
        page = activity.list_for_group(group_id, users["member"])

        actions = [e.action for e in page.entries]
        assert actions == ["role_changed", "member_added", "member_added", "group_created"]
        ids = [e.id for e in page.entries]
        assert ids == sorted(ids, reverse=True)
        assert page.has_more is False
        assert page.next_cursor is None

    def test_load_more_is_stable_under_concurrent_appends(self, activity, service, group_id, users):
        first = activity.list_for_group(group_id, users["member"], limit=2)
        assert first.has_more is True

        # New entries land between the two page loads
        service.add_member(group_id, users["creator"], users["outsider"])
        activity.record_content_activity(group_id, users["member"], "create_note", "note-1")

        second = activity.list_for_group(group_id, users["member"], cursor=first.next_cursor, limit=2)

        seen = [e.id for e in first.entries + second.entries]
        assert len(seen) == len(set(seen)) == 4
        assert [e.action for e in second.entries] == ["member_added", "group_created"]
        assert second.has_more is False

    def test_default_page_size(self, activity, group_id, users, monkeypatch):
        monkeypatch.setattr(settings, "activity_page_size", 3)
        page = activity.list_for_group(group_id, users["member"])
        assert len(page.entries) == 3
        assert page.has_more is True

    def test_page_size_is_capped(self, activity, group_id, users, monkeypatch):
        monkeypatch.setattr(settings, "activity_max_page_size", 2)
        page = activity.list_for_group(group_id, users["member"], limit=50)
        assert len(page.entries) == 2

    def test_non_member_cannot_read(self, activity, group_id, users):
        with pytest.raises(Forbidden):
            activity.list_for_group(group_id, users["outsider"])

    def test_unknown_group(self, activity, users):
        with pytest.raises(NotFound):
            activity.list_for_group("missing-group", users["creator"])


class TestAppend:
    def test_append_requires_taxonomy_action(self, activity, group_id, users):
        with pytest.raises(InvalidActivity):
            activity.append(group_id, users["creator"], "hacked_the_planet", EntityType.GROUP, group_id)

    def test_append_requires_ids(self, activity, group_id, users):
        with pytest.raises(InvalidActivity):
            activity.append(group_id, "", ActivityAction.GROUP_UPDATED, EntityType.GROUP, group_id)
        with pytest.raises(InvalidActivity):
            activity.append(group_id, users["creator"], ActivityAction.GROUP_UPDATED, EntityType.GROUP, "")

    def test_store_failure_is_audit_write_failed(self, activity, db, group_id, users):
        db.failing_tables.add("group_activity")
        with pytest.raises(AuditWriteFailed):
            activity.append(group_id, users["creator"], ActivityAction.GROUP_UPDATED, EntityType.GROUP, group_id)

    def test_details_default_to_empty(self, activity, group_id, users):
        entry = activity.append(group_id, users["creator"], ActivityAction.GROUP_UPDATED, EntityType.GROUP, group_id)
        assert entry.details == {}


class TestContentActivity:
    def test_member_records_goal_event(self, activity, db, group_id, users):
        entry = activity.record_content_activity(
            group_id, users["member"], "update_goal_status", "goal-7", {"new_status": "completed"}
        )

        assert entry.entity_type == "goal"
        assert entry.actor_user_id == users["member"]
        assert db.activity(group_id, "update_goal_status")[0]["details"] == {"new_status": "completed"}

    def test_membership_actions_are_reserved(self, activity, db, group_id, users):
        entries = len(db.tables["group_activity"])
        with pytest.raises(InvalidActivity):
            activity.record_content_activity(group_id, users["creator"], "leader_changed", users["member"])
        assert len(db.tables["group_activity"]) == entries

    def test_unknown_action(self, activity, group_id, users):
        with pytest.raises(InvalidActivity):
            activity.record_content_activity(group_id, users["member"], "share_meme", "x")

    def test_non_member_cannot_record(self, activity, group_id, users):
        with pytest.raises(Forbidden):
            activity.record_content_activity(group_id, users["outsider"], "create_note", "note-1")
