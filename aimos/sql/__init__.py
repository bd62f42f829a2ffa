"""
SQL Query Module for the AIM OS Growth Intelligence backend.

Provides parameterized SQL builders for the row store (row_queries). Every
builder returns a ``(query, args)`` pair with ``$n`` placeholders suitable for
asyncpg; identifiers are validated and quoted, values are never interpolated.

Example usage:
    from aimos.sql import Filter, build_select_query

    sql, args = build_select_query(
        'referrals',
        filters=[Filter('referral_source_id', 'eq', 'src-1')],
        order_by=['-referral_date'],
    )
"""

from aimos.sql.row_queries import (
    FILTER_OPERATORS,
    bind_value,
    Filter,
    build_insert_query,
    build_order_clause,
    build_select_query,
    build_update_query,
    build_where_clause,
    quote_identifier,
)

__all__ = [
    'FILTER_OPERATORS',
    'bind_value',
    'Filter',
    'build_insert_query',
    'build_order_clause',
    'build_select_query',
    'build_update_query',
    'build_where_clause',
    'quote_identifier',
]
