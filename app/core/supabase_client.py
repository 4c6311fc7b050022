# app/core/supabase_client.py
from functools import lru_cache

from supabase import Client, create_client

from app.core.config import get_settings


@lru_cache
def supabase_admin() -> Client:
    """
    Service-role client used for Storage writes (payment screenshots,
    catalog images). It bypasses RLS, so it must stay server-side.
    """
    settings = get_settings()
    key = settings.SUPABASE_SERVICE_ROLE_KEY
    if not key:
        raise RuntimeError("SUPABASE_SERVICE_ROLE_KEY is not configured; storage uploads are unavailable")
    return create_client(settings.SUPABASE_URL, key)
