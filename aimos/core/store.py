"""
Row store: the only data access path used by the dashboard services.

RowStore wraps the asyncpg pool with three table-level operations built on the
parameterized builders in ``aimos.sql.row_queries``:

- fetch_rows(): SELECT with AND-ed filters, ordering and an optional limit
- insert_row(): INSERT ... RETURNING *
- update_row(): UPDATE ... WHERE id = $n RETURNING *

Driver failures never leak past this module. Reads raise FetchError, writes
raise WriteError (ConstraintViolationError for integrity violations,
RecordNotFoundError when an update matched nothing). The original asyncpg
exception is always chained as ``__cause__``.

Rows come back as plain dicts with uuid values as strings and numeric values
as floats (see to_raw_record).

Usage:
    store = RowStore()
    sources = await store.fetch_rows(
        "referral_sources",
        filters=[Filter("is_active", "eq", True)],
        order_by=["organization_name"],
    )
"""

import asyncio
import logging
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

import asyncpg
from asyncpg import Pool

from aimos.core.database import get_db_pool
from aimos.core.exceptions import (
    ConstraintViolationError,
    FetchError,
    RecordNotFoundError,
    WriteError,
)
from aimos.sql.row_queries import (
    Filter,
    build_insert_query,
    build_select_query,
    build_update_query,
)


logger = logging.getLogger(__name__)

RawRecord = Dict[str, Any]

# Connectivity and query failures raised by asyncpg or the socket layer
DRIVER_ERRORS = (
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
    OSError,
    asyncio.TimeoutError,
)


def to_raw_record(record: Mapping[str, Any]) -> RawRecord:
    """
    Convert an asyncpg Record into a plain dict.

    uuid columns become strings and numeric columns become floats, so ids
    compare equal to path parameters and values feed straight into pydantic
    models and numpy.
    """
    row: RawRecord = {}
    for key, value in record.items():
        if isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, Decimal):
            value = float(value)
        row[key] = value
    return row


class RowStore:
    """
    Table-level async access to the Supabase Postgres database.

    Args:
        pool: asyncpg pool to use. When omitted the application pool from
            ``get_db_pool()`` is acquired lazily on first use.
    """

    def __init__(self, pool: Optional[Pool] = None):
        self._pool = pool

    async def _get_pool(self) -> Pool:
        if self._pool is None:
            self._pool = await get_db_pool()
        return self._pool

    async def fetch_rows(
        self,
        table: str,
        filters: Optional[Sequence[Filter]] = None,
        order_by: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[RawRecord]:
        """
        Read rows from one table.

        Args:
            table: Table name.
            filters: Predicates combined with AND.
            order_by: Column names, ``-`` prefix for descending.
            limit: Maximum number of rows.

        Returns:
            List of rows as plain dicts.

        Raises:
            FetchError: If the pool or the query fails.
        """
        query, args = build_select_query(table, filters, order_by, limit)

        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                records = await conn.fetch(query, *args)
        except DRIVER_ERRORS as exc:
            logger.error(f"Failed to fetch rows from {table}: {exc}", exc_info=True)
            raise FetchError(f"Failed to fetch rows from {table}: {exc}", table=table) from exc

        return [to_raw_record(record) for record in records]

    async def insert_row(self, table: str, record: RawRecord) -> RawRecord:
        """
        Insert one row and return it as stored (defaults and id populated).

        Raises:
            ConstraintViolationError: On unique/foreign key/not-null/check violations.
            WriteError: On any other failure.
        """
        query, args = build_insert_query(table, record)

        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
        except asyncpg.IntegrityConstraintViolationError as exc:
            logger.warning(f"Insert into {table} violated a constraint: {exc}")
            raise ConstraintViolationError(
                f"Insert into {table} violated a constraint: {exc}", table=table
            ) from exc
        except DRIVER_ERRORS as exc:
            logger.error(f"Failed to insert into {table}: {exc}", exc_info=True)
            raise WriteError(f"Failed to insert into {table}: {exc}", table=table) from exc

        if row is None:
            raise WriteError(f"Insert into {table} returned no row", table=table)

        logger.info(f"Inserted row into {table} (id={row.get('id')})")
        return to_raw_record(row)

    async def update_row(self, table: str, row_id: str, patch: RawRecord) -> RawRecord:
        """
        Apply a partial update to the row with the given id.

        Raises:
            RecordNotFoundError: If no row has that id.
            ConstraintViolationError: On constraint violations.
            WriteError: On any other failure.
        """
        query, args = build_update_query(table, row_id, patch)

        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
        except asyncpg.IntegrityConstraintViolationError as exc:
            logger.warning(f"Update of {table} {row_id} violated a constraint: {exc}")
            raise ConstraintViolationError(
                f"Update of {table} {row_id} violated a constraint: {exc}", table=table
            ) from exc
        except DRIVER_ERRORS as exc:
            logger.error(f"Failed to update {table} {row_id}: {exc}", exc_info=True)
            raise WriteError(f"Failed to update {table} {row_id}: {exc}", table=table) from exc

        if row is None:
            raise RecordNotFoundError(table, row_id)

        logger.info(f"Updated {table} {row_id} ({', '.join(patch)})")
        return to_raw_record(row)
