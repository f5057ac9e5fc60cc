"""
Process-wide Supabase clients.

Queries go through the anon client so row-level security applies. User
provisioning (auth admin calls) needs the service-role client; without a
service key it degrades to the anon client and those calls are refused by
Supabase.
"""
import logging
from typing import Optional
from supabase import create_client, Client
from app.config import settings

logger = logging.getLogger(__name__)


class SupabaseClients:
    anon: Optional[Client] = None
    service: Optional[Client] = None

    @classmethod
    def get_anon(cls) -> Client:
        if cls.anon is None:
            cls.anon = create_client(settings.supabase_url, settings.supabase_key)
        return cls.anon

    @classmethod
    def get_service(cls) -> Client:
        if cls.service is not None:
            return cls.service
        if not settings.supabase_service_role_key:
            logger.warning("SUPABASE_SERVICE_ROLE_KEY is not set; user provisioning will be rejected")
            return cls.get_anon()
        cls.service = create_client(settings.supabase_url, settings.supabase_service_role_key)
        return cls.service

    @classmethod
    def reset(cls) -> None:
        cls.anon = None
        cls.service = None


def get_supabase() -> Client:
    return SupabaseClients.get_anon()


def get_service_supabase() -> Client:
    return SupabaseClients.get_service()
