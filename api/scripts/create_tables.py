#!/usr/bin/env python3
"""Create the users table and, optionally, insert sample users.

create_all() only creates missing tables - it won't modify existing ones.
Sample users whose email already exists are skipped.

Usage:
    cd api
    python -m cli create-tables [--seed]
"""

import logging

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine

from core.database import create_tables
from models import User, utcnow

logger = logging.getLogger(__name__)

SAMPLE_USERS = (
    {"name": "John Doe", "email": "john@example.com", "age": 30},
    {"name": "Jane Smith", "email": "jane@example.com", "age": 25},
    {"name": "Bob Johnson", "email": "bob@example.com", "age": 35},
)


def _insert_ignoring_duplicates(dialect_name: str, rows: list[dict]):
    if dialect_name == "postgresql":
        stmt = postgresql.insert(User)
    elif dialect_name == "sqlite":
        stmt = sqlite.insert(User)
    else:
        raise ValueError(f"Seeding is not supported for dialect {dialect_name!r}")
    return stmt.values(rows).on_conflict_do_nothing(index_elements=["email"])


async def seed_sample_users(engine: AsyncEngine) -> int:
    """Insert SAMPLE_USERS, skipping emails already present. Returns rows inserted."""
    now = utcnow()
    rows = [{**user, "created_at": now, "updated_at": now} for user in SAMPLE_USERS]
    stmt = _insert_ignoring_duplicates(engine.dialect.name, rows)

    async with engine.begin() as conn:
        result = await conn.execute(stmt)

    inserted = max(result.rowcount or 0, 0)
    logger.info(
        "db.seed.complete",
        extra={"inserted": inserted, "skipped": len(rows) - inserted},
    )
    return inserted


async def create_schema(engine: AsyncEngine, *, seed: bool = False) -> None:
    """Create tables, then seed sample users when asked."""
    logger.info("Creating database tables...")
    await create_tables(engine)
    logger.info("Tables created successfully")

    if seed:
        await seed_sample_users(engine)
