"""Build the configured UserStore at process start."""

from core.config import Settings
from core.database import create_engine, create_tables, dispose_engine, init_db
from core.logger import get_logger
from core.supabase_client import create_supabase_client
from repositories.base import UserStore
from repositories.supabase_user_repository import SupabaseUserRepository
from repositories.user_repository import UserRepository

logger = get_logger(__name__)


async def create_user_store(settings: Settings) -> UserStore:
    """Construct the backend named by PERSISTENCE_BACKEND.

    The returned store owns its engine or client; call ``close()`` on
    shutdown.
    """
    if settings.use_supabase:
        client = await create_supabase_client(settings)
        store: UserStore = SupabaseUserRepository(client, table=settings.supabase_table)
    else:
        engine = create_engine(settings)
        try:
            await init_db(engine)
            if settings.db_auto_create:
                await create_tables(engine)
        except Exception:
            await dispose_engine(engine)
            raise
        store = UserRepository(engine)

    logger.info("user_store.ready", backend=store.backend)
    return store
