"""Database engine, session factory, and pool management for the sql backend.

The engine is created once in the application lifespan and owned by the
SQL user repository; nothing here holds module-level connection state.
"""

from __future__ import annotations

import asyncio
import logging
from typing import NamedTuple

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import QueuePool

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class PoolStatus(NamedTuple):
    """Connection pool status for health checks."""

    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


def _setup_pool_event_listeners(engine: AsyncEngine) -> None:
    pool = engine.sync_engine.pool
    if not isinstance(pool, QueuePool):
        return

    @event.listens_for(pool, "checkout")
    def _on_checkout(dbapi_conn, connection_record, connection_proxy):
        overflow = pool.overflow()
        if overflow > 0:
            logger.warning(
                "db.pool.overflow",
                extra={
                    "db_pool_checked_out": pool.checkedout(),
                    "db_pool_size": pool.size(),
                    "db_pool_overflow_count": overflow,
                },
            )


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    settings = settings or get_settings()
    url = make_url(settings.database_url)

    engine_kwargs: dict = {"echo": settings.db_echo}

    # SQLite (local runs, tests) keeps SQLAlchemy's default pool
    if url.get_backend_name() != "sqlite":
        engine_kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_pool_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=False,
        )

    if url.get_driver_name() == "asyncpg":
        engine_kwargs["connect_args"] = {
            "server_settings": {
                "statement_timeout": str(settings.db_statement_timeout_ms)
            }
        }

    engine = create_async_engine(url, **engine_kwargs)
    _setup_pool_event_listeners(engine)
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Verify database is reachable."""
    logger.info("db.connectivity.verifying")
    await check_db_connection(engine)
    logger.info("db.connectivity.verified")


async def create_tables(engine: AsyncEngine) -> None:
    """Create missing tables and indexes. Existing tables are left untouched."""
    # Registers User with Base.metadata
    import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db.tables.created")


async def dispose_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("db.engine.disposed")


async def check_db_connection(engine: AsyncEngine) -> None:
    """Verify database is reachable (30s timeout)."""
    async with asyncio.timeout(30):
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.rollback()


def get_pool_status(engine: AsyncEngine) -> PoolStatus | None:
    """Returns pool status, or None if pool is not a QueuePool."""
    pool = engine.sync_engine.pool

    if isinstance(pool, QueuePool):
        return PoolStatus(
            pool_size=pool.size(),
            checked_out=pool.checkedout(),
            overflow=pool.overflow(),
            checked_in=pool.checkedin(),
        )
    return None
