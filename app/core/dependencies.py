"""
Core dependencies for route protection and service wiring.

The acting user is always taken from the bearer token; request bodies never
carry an actor id.
"""

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from supabase import Client

from app.database.supabase_client import get_supabase, get_service_supabase
from app.modules.activity.service import ActivityLog
from app.modules.auth.service import AuthService
from app.modules.memberships.service import MembershipService
from app.modules.memberships.store import MembershipStore

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_actor_id(user_data: dict = Depends(get_current_user_id)) -> str:
    return user_data["id"]


def get_membership_store(supabase: Client = Depends(get_service_supabase)) -> MembershipStore:
    return MembershipStore(supabase)


def get_activity_log(
    supabase: Client = Depends(get_service_supabase),
    store: MembershipStore = Depends(get_membership_store)
) -> ActivityLog:
    return ActivityLog(supabase, store)


def get_membership_service(
    supabase: Client = Depends(get_service_supabase),
    store: MembershipStore = Depends(get_membership_store),
    activity: ActivityLog = Depends(get_activity_log)
) -> MembershipService:
    return MembershipService(supabase, store, activity)
