from typing import Optional
import logging

from supabase import AsyncClient, Client, acreate_client, create_client
from app.config import settings

logger = logging.getLogger(__name__)


class SupabaseClient:
    """Process-wide holders for the anon and service-role clients."""

    _anon: Optional[Client] = None
    _service: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Anon-key client; only used to resolve bearer tokens through Supabase Auth"""
        if cls._anon is None:
            cls._anon = create_client(settings.supabase_url, settings.supabase_key)
        return cls._anon

    @classmethod
    def get_service_client(cls) -> Client:
        """
        Service-role client for the group services. It bypasses RLS, so the
        services check membership themselves before touching group rows.
        """
        if cls._service is None:
            if not settings.supabase_service_role_key:
                logger.warning("SUPABASE_SERVICE_ROLE_KEY not set; group services will run with the anon key")
                return cls.get_client()
            cls._service = create_client(settings.supabase_url, settings.supabase_service_role_key)
        return cls._service

    @classmethod
    def reset_client(cls):
        cls._anon = None
        cls._service = None


async def create_realtime_client(access_token: Optional[str] = None) -> AsyncClient:
    """Anon-key async client for change subscriptions, acting as the signed-in user when a token is given"""
    client = await acreate_client(settings.supabase_url, settings.supabase_key)
    if access_token:
        await client.realtime.set_auth(access_token)
    return client


def get_supabase() -> Client:
    return SupabaseClient.get_service_client()


def get_auth_supabase() -> Client:
    return SupabaseClient.get_client()
