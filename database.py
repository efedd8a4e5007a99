from typing import AsyncGenerator

from config import settings, IS_PRODUCTION
from services.supabase_client import SupabaseClient

# Validate production BaaS configuration
if IS_PRODUCTION and not (settings.supabase_url and settings.supabase_service_role_key):
    raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set in production.")


def create_client() -> SupabaseClient:
    """Build a BaaS client from settings."""
    if not settings.supabase_url or not settings.supabase_service_role_key:
        raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are not set. Cannot reach the BaaS.")
    return SupabaseClient(
        url=settings.supabase_url,
        service_key=settings.supabase_service_role_key,
        anon_key=settings.supabase_anon_key,
        timeout=settings.http_timeout_seconds,
    )


async def get_db() -> AsyncGenerator[SupabaseClient, None]:
    """
    Dependency function that yields a BaaS client for the current request.

    Example:
        @app.get("/api/planos")
        async def list_plans(db: SupabaseClient = Depends(get_db)):
            ...
    """
    async with create_client() as client:
        yield client
