"""Tests for MembershipService against the in-memory store."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from app.config.permissions_config import GROUP_ACTIONS
from app.core.errors import AlreadyMember, Forbidden, InvalidRole, NotFound, StoreError
from app.modules.memberships.models import GroupAction


def _snapshot(db):
    return [dict(m) for m in db.tables["group_members"]], len(db.tables["group_activity"])


class TestAddMember:
    def test_leader_adds_member(self, service, db, group_id, users):
        result = service.add_member(group_id, users["creator"], users["outsider"])

        assert result.member.role == "member"
        assert result.audit_recorded is True
        assert db.role_of(group_id, users["outsider"]) == "member"
        entry = db.activity(group_id, "member_added")[-1]
        assert entry["actor_user_id"] == users["creator"]
        assert entry["entity_id"] == users["outsider"]
        assert entry["entity_type"] == "member"

    def test_admin_adds_member(self, service, db, group_id, users):
        service.add_member(group_id, users["admin"], users["outsider"])
        assert db.role_of(group_id, users["outsider"]) == "member"

    def test_member_cannot_add(self, service, db, group_id, users):
        before = _snapshot(db)
        with pytest.raises(Forbidden):
            service.add_member(group_id, users["member"], users["outsider"])
        assert _snapshot(db) == before

    def test_non_member_cannot_add(self, service, db, group_id, users):
        with pytest.raises(Forbidden):
            service.add_member(group_id, users["outsider"], users["extra"])
        assert db.role_of(group_id, users["extra"]) is None

    def test_existing_member_is_already_member(self, service, db, group_id, users):
        entries = len(db.tables["group_activity"])
        with pytest.raises(AlreadyMember):
            service.add_member(group_id, users["creator"], users["member"])
        assert len(db.tables["group_activity"]) == entries

    def test_unknown_user_is_not_found(self, service, group_id, users):
        with pytest.raises(NotFound):
            service.add_member(group_id, users["creator"], "00000000-0000-0000-0000-000000000000")

    def test_unknown_group_is_not_found(self, service, users):
        with pytest.raises(NotFound):
            service.add_member("missing-group", users["creator"], users["outsider"])

    def test_stale_precheck_maps_unique_violation(self, service, store, db, group_id, users, monkeypatch):
        """A duplicate that slips past the pre-check is still AlreadyMember."""
        service.add_member(group_id, users["creator"], users["outsider"])
        entries = len(db.tables["group_activity"])

        original = store.get_role
        monkeypatch.setattr(
            store, "get_role",
            lambda g, u: None if u == users["outsider"] else original(g, u)
        )
        with pytest.raises(AlreadyMember):
            service.add_member(group_id, users["creator"], users["outsider"])

        assert len([m for m in db.memberships(group_id) if m["user_id"] == users["outsider"]]) == 1
        assert len(db.tables["group_activity"]) == entries

    def test_concurrent_duplicate_adds(self, service, store, db, group_id, users, monkeypatch):
        target = users["outsider"]
        barrier = threading.Barrier(2)
        original = store.get_role

        def racing_get_role(g, u):
            role = original(g, u)
            if u == target:
                # Both requests finish their pre-check before either inserts
                barrier.wait(timeout=5)
            return role

        monkeypatch.setattr(store, "get_role", racing_get_role)

        def attempt(actor):
            try:
                service.add_member(group_id, actor, target)
                return "ok"
            except AlreadyMember:
                return "already_member"

        with ThreadPoolExecutor(max_workers=2) as pool:
            outcomes = sorted(pool.map(attempt, [users["creator"], users["admin"]]))

        assert outcomes == ["already_member", "ok"]
        assert len([m for m in db.memberships(group_id) if m["user_id"] == target]) == 1
        added = [a for a in db.activity(group_id, "member_added") if a["entity_id"] == target]
        assert len(added) == 1

    def test_add_by_email(self, service, db, group_id, users):
        result = service.add_member_by_email(group_id, users["admin"], "outsider@example.com")

        assert result.member.user_id == users["outsider"]
        entry = db.activity(group_id, "member_added")[-1]
        assert entry["details"] == {"member_email": "outsider@example.com"}

    def test_add_by_email_ignores_case(self, service, db, group_id, users):
        alice = db.add_profile("Alice.Smith@example.com")

        result = service.add_member_by_email(group_id, users["creator"], "Alice.Smith@example.com")
        assert result.member.user_id == alice

        bob = db.add_profile("bob@example.com")
        result = service.add_member_by_email(group_id, users["creator"], "  BOB@Example.COM ")
        assert result.member.user_id == bob

    @pytest.mark.parametrize("email", ["a_b@example.com", "%@example.com", "*@example.com"])
    def test_add_by_email_has_no_wildcards(self, service, db, group_id, users, email):
        db.add_profile("axb@example.com")
        with pytest.raises(NotFound):
            service.add_member_by_email(group_id, users["creator"], email)

    def test_add_by_unknown_email_creates_nothing(self, service, db, group_id, users):
        profiles = len(db.tables["profiles"])
        with pytest.raises(NotFound):
            service.add_member_by_email(group_id, users["creator"], "nobody@example.com")
        assert len(db.tables["profiles"]) == profiles

    def test_add_by_email_checks_role_before_lookup(self, service, store, group_id, users, monkeypatch):
        monkeypatch.setattr(store, "find_profile_by_email", lambda email: pytest.fail("lookup before authorization"))
        with pytest.raises(Forbidden):
            service.add_member_by_email(group_id, users["member"], "outsider@example.com")


class TestRemoveMember:
    def test_leader_removes_member(self, service, db, group_id, users):
        result = service.remove_member(group_id, users["creator"], users["member"])

        assert result.audit_recorded is True
        assert db.role_of(group_id, users["member"]) is None
        entry = db.activity(group_id, "member_removed")[-1]
        assert entry["actor_user_id"] == users["creator"]
        assert entry["details"] == {"removed_role": "member"}

    @pytest.mark.parametrize("actor", ["admin", "member", "outsider"])
    def test_only_leader_removes(self, service, db, group_id, users, actor):
        before = _snapshot(db)
        with pytest.raises(Forbidden):
            service.remove_member(group_id, users[actor], users["member"])
        assert _snapshot(db) == before

    def test_creator_cannot_be_removed_even_after_transfer(self, service, db, group_id, users):
        service.transfer_leadership(group_id, users["creator"], users["admin"])
        with pytest.raises(Forbidden) as exc_info:
            service.remove_member(group_id, users["admin"], users["creator"])
        assert exc_info.value.reason == "target_is_creator"
        assert db.role_of(group_id, users["creator"]) == "member"

    def test_leader_cannot_remove_self(self, service, group_id, users):
        with pytest.raises(Forbidden):
            service.remove_member(group_id, users["creator"], users["creator"])

    def test_missing_target_is_not_found(self, service, group_id, users):
        with pytest.raises(NotFound):
            service.remove_member(group_id, users["creator"], users["outsider"])

    def test_retry_after_success_is_not_found(self, service, db, group_id, users):
        service.remove_member(group_id, users["creator"], users["member"])
        entries = len(db.tables["group_activity"])
        with pytest.raises(NotFound):
            service.remove_member(group_id, users["creator"], users["member"])
        assert len(db.tables["group_activity"]) == entries


class TestChangeRole:
    def test_promote_and_demote(self, service, db, group_id, users):
        service.change_role(group_id, users["creator"], users["member"], "admin")
        assert db.role_of(group_id, users["member"]) == "admin"
        entry = db.activity(group_id, "role_changed")[-1]
        assert entry["details"] == {"old_role": "member", "new_role": "admin"}

        service.change_role(group_id, users["creator"], users["member"], "member")
        assert db.role_of(group_id, users["member"]) == "member"
        assert db.activity(group_id, "role_changed")[-1]["details"] == {"old_role": "admin", "new_role": "member"}

    @pytest.mark.parametrize("new_role", ["owner", "superadmin", ""])
    def test_unknown_role_is_invalid(self, service, group_id, users, new_role):
        with pytest.raises(InvalidRole):
            service.change_role(group_id, users["creator"], users["member"], new_role)

    def test_leader_role_only_through_transfer(self, service, db, group_id, users):
        with pytest.raises(InvalidRole):
            service.change_role(group_id, users["creator"], users["member"], "leader")
        assert db.leaders(group_id) == [users["creator"]]

    def test_admin_cannot_change_roles(self, service, db, group_id, users):
        with pytest.raises(Forbidden):
            service.change_role(group_id, users["admin"], users["member"], "admin")
        assert db.role_of(group_id, users["member"]) == "member"

    def test_leader_cannot_demote_self(self, service, db, group_id, users):
        with pytest.raises(Forbidden):
            service.change_role(group_id, users["creator"], users["creator"], "member")
        assert db.leaders(group_id) == [users["creator"]]

    def test_creator_role_is_frozen_after_transfer(self, service, db, group_id, users):
        service.transfer_leadership(group_id, users["creator"], users["admin"])
        with pytest.raises(Forbidden):
            service.change_role(group_id, users["admin"], users["creator"], "admin")
        assert db.role_of(group_id, users["creator"]) == "member"

    def test_same_role_is_a_noop(self, service, db, group_id, users):
        entries = len(db.tables["group_activity"])
        result = service.change_role(group_id, users["creator"], users["admin"], "admin")
        assert result.changed is False
        assert len(db.tables["group_activity"]) == entries

    def test_missing_target_is_not_found(self, service, group_id, users):
        with pytest.raises(NotFound):
            service.change_role(group_id, users["creator"], users["outsider"], "admin")


class TestLeaveGroup:
    def test_member_leaves(self, service, db, group_id, users):
        service.leave_group(group_id, users["member"])
        assert db.role_of(group_id, users["member"]) is None
        assert db.activity(group_id, "member_left")[-1]["actor_user_id"] == users["member"]

    def test_leader_must_transfer_first(self, service, db, group_id, users):
        with pytest.raises(Forbidden):
            service.leave_group(group_id, users["creator"])
        assert db.leaders(group_id) == [users["creator"]]

    def test_creator_never_leaves(self, service, db, group_id, users):
        service.transfer_leadership(group_id, users["creator"], users["admin"])
        with pytest.raises(Forbidden):
            service.leave_group(group_id, users["creator"])

    def test_non_member_cannot_leave(self, service, group_id, users):
        with pytest.raises(Forbidden):
            service.leave_group(group_id, users["outsider"])


class TestListMembers:
    def test_sorted_by_role(self, service, group_id, users):
        listing = service.list_members(group_id, users["member"])
        assert [m.role for m in listing.members] == ["leader", "admin", "member"]
        assert listing.members[0].user_id == users["creator"]

    def test_non_member_cannot_list(self, service, group_id, users):
        with pytest.raises(Forbidden):
            service.list_members(group_id, users["outsider"])


class TestAuditBestEffort:
    def test_mutation_survives_audit_failure(self, service, db, group_id, users, caplog):
        db.failing_tables.add("group_activity")
        entries = len(db.tables["group_activity"])

        result = service.add_member(group_id, users["creator"], users["outsider"])

        assert result.audit_recorded is False
        assert db.role_of(group_id, users["outsider"]) == "member"
        assert len(db.tables["group_activity"]) == entries
        assert any("Audit gap" in r.getMessage() for r in caplog.records)

    def test_transfer_survives_audit_failure(self, service, db, group_id, users):
        db.failing_tables.add("group_activity")
        result = service.transfer_leadership(group_id, users["creator"], users["member"])
        assert result.audit_recorded is False
        assert db.leaders(group_id) == [users["member"]]

    def test_failed_mutation_writes_no_audit(self, service, db, group_id, users):
        db.failing_tables.add("group_members")
        entries = len(db.tables["group_activity"])
        with pytest.raises(StoreError):
            service.add_member(group_id, users["creator"], users["outsider"])
        assert len(db.tables["group_activity"]) == entries


class TestAuthorizationCompleteness:
    """Every operation denied by the policy leaves the store untouched."""

    OPERATIONS = {
        GroupAction.ADD_MEMBER: lambda s, g, actor, u: s.add_member(g, actor, u["outsider"]),
        GroupAction.REMOVE_MEMBER: lambda s, g, actor, u: s.remove_member(g, actor, u["extra"]),
        GroupAction.PROMOTE_ADMIN: lambda s, g, actor, u: s.change_role(g, actor, u["extra"], "admin"),
        GroupAction.DEMOTE_ADMIN: lambda s, g, actor, u: s.change_role(g, actor, u["admin"], "member"),
        GroupAction.TRANSFER_LEADERSHIP: lambda s, g, actor, u: s.transfer_leadership(g, actor, u["extra"]),
    }

    @pytest.mark.parametrize("action", list(OPERATIONS))
    @pytest.mark.parametrize("actor", ["admin", "member", "outsider"])
    def test_denied_operations_have_no_side_effects(self, service, db, group_id, users, action, actor):
        service.add_member(group_id, users["creator"], users["extra"])
        actor_role = db.role_of(group_id, users[actor])
        if actor_role in GROUP_ACTIONS[action.value]["roles"]:
            pytest.skip("allowed for this role")

        before = _snapshot(db)
        with pytest.raises(Forbidden):
            self.OPERATIONS[action](service, group_id, users[actor], users)
        assert _snapshot(db) == before
