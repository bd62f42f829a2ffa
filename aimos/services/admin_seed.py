"""
Admin Seed Service

Applies a named block of SQL to the database at most once.

Each applied seed is recorded as a row in evidence_version_sets (publisher
'AIM OS', name = seed_name). A seed whose name is already recorded is skipped.
Otherwise the tracking row is inserted and the SQL executed in a single
transaction, so a failing seed leaves neither the tracking row nor any partial
effect behind.

The key check happens in the API layer (aimos.core.dependencies) before this
module is reached.
"""

import logging
from typing import Any

from asyncpg import Connection
from pydantic import ValidationError

from aimos.core.exceptions import SeedValidationError
from aimos.models.enums import SeedStatus
from aimos.models.schemas import SeedRequest, SeedResponse


logger = logging.getLogger(__name__)


SEED_PUBLISHER = 'AIM OS'

SEED_LOOKUP_QUERY = """
    SELECT version_set_id
    FROM evidence_version_sets
    WHERE name = $1
    LIMIT 1
"""

SEED_TRACKING_INSERT = """
    INSERT INTO evidence_version_sets (publisher, name, release_date, diff_summary)
    VALUES ($1, $2, CURRENT_DATE, '{}'::jsonb)
"""


def validate_seed_request(body: Any) -> SeedRequest:
    """
    Validate a raw request body.

    Raises:
        SeedValidationError: If the body is not an object, seed_name is shorter
            than 3 characters, or sql_content is missing or empty.
    """
    if not isinstance(body, dict):
        raise SeedValidationError("Request body must be a JSON object")

    seed_name = body.get('seed_name')
    if not isinstance(seed_name, str) or len(seed_name) < 3:
        raise SeedValidationError("Invalid seed_name - must be at least 3 characters")

    sql_content = body.get('sql_content')
    if not isinstance(sql_content, str) or not sql_content:
        raise SeedValidationError("sql_content is required in request body")

    try:
        return SeedRequest(seed_name=seed_name, sql_content=sql_content)
    except ValidationError as e:
        raise SeedValidationError(str(e)) from e


async def apply_seed(conn: Connection, request: SeedRequest) -> SeedResponse:
    """
    Apply one seed, skipping it if its name is already recorded.

    Never raises for database failures; they come back as a SeedResponse with
    status "error" and the driver message in ``detail``.

    Args:
        conn: Connection the lookup and the seed transaction run on.
        request: Validated seed request.

    Returns:
        SeedResponse with status applied, skipped or error.
    """
    try:
        existing = await conn.fetchrow(SEED_LOOKUP_QUERY, request.seed_name)
    except Exception as e:
        logger.error(f"Failed to check existing seed {request.seed_name}: {e}", exc_info=True)
        return SeedResponse(
            status=SeedStatus.ERROR,
            message="Failed to check existing seed",
            seed_name=request.seed_name,
            detail=str(e),
        )

    if existing is not None:
        logger.info(f"Seed {request.seed_name} already applied, skipping")
        return SeedResponse(
            status=SeedStatus.SKIPPED,
            message="Seed already applied",
            seed_name=request.seed_name,
        )

    try:
        async with conn.transaction():
            await conn.execute(SEED_TRACKING_INSERT, SEED_PUBLISHER, request.seed_name)
            await conn.execute(request.sql_content)
    except Exception as e:
        logger.error(f"Seed {request.seed_name} failed, rolled back: {e}", exc_info=True)
        return SeedResponse(
            status=SeedStatus.ERROR,
            message="Seed failed - transaction rolled back",
            seed_name=request.seed_name,
            detail=str(e),
        )

    logger.info(f"Applied seed {request.seed_name}")
    return SeedResponse(
        status=SeedStatus.APPLIED,
        message="Seed successfully applied",
        seed_name=request.seed_name,
    )


def seed_http_status(response: SeedResponse) -> int:
    """HTTP status for a seed outcome: 500 for errors, 200 otherwise."""
    return 500 if response.status == SeedStatus.ERROR else 200
