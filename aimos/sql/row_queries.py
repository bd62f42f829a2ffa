"""
Parameterized SQL builders for the row store.

Each builder returns a ``(query, args)`` pair ready for asyncpg: identifiers
are validated and double-quoted, values are always passed as positional
``$n`` parameters and never interpolated into the SQL text.

Supported filter operators:
    eq, neq, gt, gte, lt, lte -> column <op> $n
    in                        -> column = ANY($n)   (value is a list)

Ordering uses Django-style names: ``"referral_date"`` sorts ascending,
``"-referral_date"`` descending.

Example:
    >>> sql, args = build_select_query(
    ...     "revops_bottlenecks",
    ...     filters=[Filter("status", "in", ["active", "monitoring"])],
    ...     order_by=["-priority"],
    ... )
    >>> sql
    'SELECT * FROM "revops_bottlenecks" WHERE "status" = ANY($1) ORDER BY "priority" DESC'
"""

import re
from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple


# Lower-case snake_case, optionally schema-qualified (public.referrals)
_IDENTIFIER_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")

FILTER_OPERATORS: Dict[str, str] = {
    "eq": "=",
    "neq": "<>",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


@dataclass(frozen=True)
class Filter:
    """A single ``column <op> value`` predicate."""

    column: str
    op: str
    value: Any


def quote_identifier(name: str) -> str:
    """
    Validate and double-quote a table or column name.

    Raises:
        ValueError: If the name is not a plain lower-case identifier.
    """
    parts = name.split(".")
    if len(parts) > 2 or not all(_IDENTIFIER_PATTERN.match(part) for part in parts):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return ".".join(f'"{part}"' for part in parts)


def bind_value(value: Any) -> Any:
    """Unwrap enum members to their raw value before handing them to asyncpg."""
    if isinstance(value, Enum):
        return value.value
    return value


def build_where_clause(
    filters: Optional[Sequence[Filter]],
    start_index: int = 1,
) -> Tuple[str, List[Any]]:
    """Build a WHERE clause (without the keyword) and its bound arguments."""
    conditions: List[str] = []
    args: List[Any] = []

    for flt in filters or ():
        column = quote_identifier(flt.column)
        placeholder = f"${start_index + len(args)}"
        if flt.op == "in":
            conditions.append(f"{column} = ANY({placeholder})")
            args.append([bind_value(item) for item in flt.value])
        elif flt.op in FILTER_OPERATORS:
            conditions.append(f"{column} {FILTER_OPERATORS[flt.op]} {placeholder}")
            args.append(bind_value(flt.value))
        else:
            raise ValueError(f"Unsupported filter operator: {flt.op!r}")

    return " AND ".join(conditions), args


def build_order_clause(order_by: Optional[Sequence[str]]) -> str:
    """Translate ``["-priority", "name"]`` into ``"priority" DESC, "name" ASC``."""
    terms: List[str] = []
    for term in order_by or ():
        if term.startswith("-"):
            terms.append(f"{quote_identifier(term[1:])} DESC")
        else:
            terms.append(f"{quote_identifier(term)} ASC")
    return ", ".join(terms)


def build_select_query(
    table: str,
    filters: Optional[Sequence[Filter]] = None,
    order_by: Optional[Sequence[str]] = None,
    limit: Optional[int] = None,
) -> Tuple[str, List[Any]]:
    """
    Generate a ``SELECT *`` over one table.

    Args:
        table: Table name.
        filters: Predicates combined with AND.
        order_by: Column names, ``-`` prefix for descending.
        limit: Maximum rows to return.

    Returns:
        Tuple of (query, args).
    """
    query = f"SELECT * FROM {quote_identifier(table)}"

    where_clause, args = build_where_clause(filters)
    if where_clause:
        query += f" WHERE {where_clause}"

    order_clause = build_order_clause(order_by)
    if order_clause:
        query += f" ORDER BY {order_clause}"

    if limit is not None:
        args.append(int(limit))
        query += f" LIMIT ${len(args)}"

    return query, args


def build_insert_query(table: str, record: Dict[str, Any]) -> Tuple[str, List[Any]]:
    """
    Generate ``INSERT ... RETURNING *`` for a single record.

    Raises:
        ValueError: If the record is empty.
    """
    if not record:
        raise ValueError(f"Cannot insert an empty record into {table}")

    columns = [quote_identifier(column) for column in record]
    placeholders = [f"${index}" for index in range(1, len(record) + 1)]

    query = (
        f"INSERT INTO {quote_identifier(table)} ({', '.join(columns)}) "
        f"VALUES ({', '.join(placeholders)}) RETURNING *"
    )
    return query, [bind_value(value) for value in record.values()]


def build_update_query(
    table: str,
    row_id: Any,
    patch: Dict[str, Any],
    id_column: str = "id",
) -> Tuple[str, List[Any]]:
    """
    Generate ``UPDATE ... WHERE id = $n RETURNING *`` for one row.

    Raises:
        ValueError: If the patch is empty or tries to change the id column.
    """
    if not patch:
        raise ValueError(f"Cannot apply an empty update to {table}")
    if id_column in patch:
        raise ValueError(f"Refusing to update primary key column {id_column!r}")

    assignments = [
        f"{quote_identifier(column)} = ${index}"
        for index, column in enumerate(patch, start=1)
    ]
    args = [bind_value(value) for value in patch.values()]
    args.append(row_id)

    query = (
        f"UPDATE {quote_identifier(table)} SET {', '.join(assignments)} "
        f"WHERE {quote_identifier(id_column)} = ${len(args)} RETURNING *"
    )
    return query, args
