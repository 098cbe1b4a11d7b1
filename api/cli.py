#!/usr/bin/env python3
"""CLI for users API management tasks.

Usage:
    python -m cli <command>

Commands:
    serve          Run the API server with uvicorn
    create-tables  Create the users table (sql backend only)
"""

import argparse
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def cmd_serve() -> int:
    """Run the API server."""
    import uvicorn

    from core.config import get_settings

    settings = get_settings()
    logger.info(f"Starting server on {settings.host}:{settings.port}")
    uvicorn.run("main:app", host=settings.host, port=settings.port)
    return 0


def cmd_create_tables(seed: bool) -> int:
    """Create the users table and optionally insert sample users."""
    from core.config import get_settings
    from core.database import create_engine, dispose_engine
    from scripts.create_tables import create_schema

    settings = get_settings()
    if settings.use_supabase:
        logger.error("create-tables needs PERSISTENCE_BACKEND=sql")
        return 1

    async def _run() -> None:
        engine = create_engine(settings)
        try:
            await create_schema(engine, seed=seed)
        finally:
            await dispose_engine(engine)

    asyncio.run(_run())
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Users API CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("serve", help="Run the API server with uvicorn")
    create_parser = subparsers.add_parser(
        "create-tables",
        help="Create the users table (sql backend only)",
    )
    create_parser.add_argument(
        "--seed",
        action="store_true",
        help="Insert sample users, skipping emails that already exist",
    )

    args = parser.parse_args(argv)

    if args.command == "serve":
        return cmd_serve()
    elif args.command == "create-tables":
        return cmd_create_tables(args.seed)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
