import logging

from supabase import create_client, Client
from app.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = create_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Client with service_role key; bypasses RLS. Membership writes and the
        leadership/group functions are only executable with this key."""
        if cls._service_client is None:
            if settings.supabase_service_role_key:
                cls._service_client = create_client(
                    settings.supabase_url, settings.supabase_service_role_key
                )
            else:
                logger.warning(
                    "SUPABASE_SERVICE_ROLE_KEY is not set; falling back to the anon key. "
                    "Membership writes and group functions will be rejected with 403"
                )
                cls._service_client = cls.get_client()
        return cls._service_client


def get_supabase() -> Client:
    return SupabaseClient.get_client()


def get_service_supabase() -> Client:
    return SupabaseClient.get_service_client()
