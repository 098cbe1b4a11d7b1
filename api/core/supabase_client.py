"""Construction of the managed Supabase client for the supabase backend."""

from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from core.config import Settings, get_settings
from core.logger import get_logger

logger = get_logger(__name__)


async def create_supabase_client(settings: Settings | None = None) -> AsyncClient:
    """Create the process-wide async client. Owned by the Supabase repository."""
    settings = settings or get_settings()
    options = AsyncClientOptions(postgrest_client_timeout=settings.supabase_timeout)
    client = await acreate_client(
        settings.supabase_url, settings.supabase_key, options=options
    )
    logger.info("supabase.client.created", url=settings.supabase_url)
    return client


async def close_supabase_client(client: AsyncClient) -> None:
    await client.postgrest.aclose()
    logger.info("supabase.client.closed")
