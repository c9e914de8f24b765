"""
Shared fixtures: an in-memory Supabase fake, services wired on top of it,
a handful of users and a group created by `creator`.
"""

import pytest
from fastapi.testclient import TestClient

from app.database.supabase_client import get_service_supabase, get_supabase
from app.main import app
from app.modules.activity.service import ActivityLog
from app.modules.auth.service import clear_auth_cache
from app.modules.groups.schemas import GroupCreate
from app.modules.groups.service import GroupService
from app.modules.memberships.service import MembershipService
from app.modules.memberships.store import MembershipStore
from tests.fakes import FakeDatabase, FakeSupabase


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def supabase(db):
    return FakeSupabase(db)


@pytest.fixture
def store(supabase):
    return MembershipStore(supabase)


@pytest.fixture
def activity(supabase, store):
    return ActivityLog(supabase, store)


@pytest.fixture
def service(supabase, store, activity):
    return MembershipService(supabase, store, activity)


@pytest.fixture
def group_service(supabase, store, activity):
    return GroupService(supabase, store, activity)


@pytest.fixture
def users(db):
    """creator, admin, member, outsider, extra"""
    return {
        name: db.add_profile(f"{name}@example.com", username=name)
        for name in ("creator", "admin", "member", "outsider", "extra")
    }


@pytest.fixture
def group_id(group_service, service, users):
    """Group led by its creator with one admin and one plain member"""
    group = group_service.create_group(GroupCreate(name="Study Circle"), users["creator"])
    service.add_member(group.id, users["creator"], users["admin"])
    service.add_member(group.id, users["creator"], users["member"])
    service.change_role(group.id, users["creator"], users["admin"], "admin")
    return group.id


@pytest.fixture
def client(supabase):
    clear_auth_cache()
    app.dependency_overrides[get_supabase] = lambda: supabase
    app.dependency_overrides[get_service_supabase] = lambda: supabase
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    clear_auth_cache()


@pytest.fixture
def auth(db):
    def headers(user_id):
        return {"Authorization": f"Bearer {db.token_for(user_id)}"}
    return headers
