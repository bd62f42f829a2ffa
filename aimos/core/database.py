"""
Async PostgreSQL connection pool module for Supabase database connectivity.

This module owns the single asyncpg connection pool used by the backend. Every
read and write made by the dashboard services, the admin seed endpoint and the
alert digest job is issued over a connection acquired from this pool.

Key Components:
- Global connection pool singleton (_pool)
- init_db(): Initialize the connection pool at application startup
- get_db_pool(): Get the pool instance (initializes if needed)
- close_db(): Gracefully close the pool at application shutdown

Connection Pool Configuration (from Settings):
- db_pool_min_size: minimum idle connections kept in pool (default 2)
- db_pool_max_size: maximum connections in pool (default 10)
- db_command_timeout: query timeout in seconds (default 60)

JSON and JSONB columns (growth alert action_details, seed diff summaries)
are decoded to Python objects on every connection, so rows come back as
plain dicts and lists rather than JSON strings.

Usage:
    # At application startup (in FastAPI lifespan)
    await init_db()

    # In services
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        rows = await conn.fetch("SELECT * FROM referral_sources")

    # At application shutdown
    await close_db()
"""

import json
from typing import Optional

import asyncpg
from asyncpg import Connection, Pool

from aimos.core.config import get_settings


# Global connection pool instance - None until init_db() is called
_pool: Optional[Pool] = None


async def _init_connection(conn: Connection) -> None:
    """Register JSON codecs so json/jsonb columns round-trip as Python objects."""
    for type_name in ('json', 'jsonb'):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema='pg_catalog',
        )


async def init_db() -> Pool:
    """
    Initialize the database connection pool.

    Idempotent: if the pool is already initialized the existing pool is
    returned without creating a new one.

    Returns:
        Pool: The asyncpg connection pool instance.

    Raises:
        asyncpg.PostgresError: If connection to the database fails.
        OSError: If the database host is unreachable.
    """
    global _pool

    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
            init=_init_connection,
        )

    return _pool


async def get_db_pool() -> Pool:
    """
    Get the database connection pool, initializing if needed.

    Prefer calling init_db() explicitly at application startup; the first lazy
    initialization adds connection latency to whichever request triggers it.

    Returns:
        Pool: The asyncpg connection pool instance.
    """
    global _pool

    if _pool is None:
        await init_db()

    assert _pool is not None, "Pool should be initialized after init_db()"

    return _pool


async def close_db() -> None:
    """
    Close the database connection pool gracefully.

    Waits for active queries to complete before closing connections. Safe to
    call when the pool was never initialized.
    """
    global _pool

    if _pool is not None:
        await _pool.close()
        _pool = None
