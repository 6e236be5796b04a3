"""
Postgres connection pool for the docstore Postgres adapter.

Pools are created explicitly and handed to PostgresStorage; nothing here
holds a module-level pool.
"""

from __future__ import annotations

import json

import asyncpg

from docstore.config import Settings, settings


async def create_pool(config: Settings | None = None) -> asyncpg.Pool:
    """
    Create a connection pool from settings.
    Raises RuntimeError if DATABASE_URL is not set.
    """
    config = config or settings
    return await asyncpg.create_pool(
        dsn=config.require_database_url(),
        min_size=config.POOL_MIN_SIZE,
        max_size=config.POOL_MAX_SIZE,
        command_timeout=config.COMMAND_TIMEOUT,
        init=init_connection,
    )


async def init_connection(conn: asyncpg.Connection) -> None:
    """
    Initialize each new connection.
    JSON and JSONB columns encode from and decode to Python dicts/lists.
    """
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )
    await conn.set_type_codec(
        "json",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )
