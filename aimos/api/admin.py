"""
FastAPI router for operator-only endpoints.

Key Endpoints:
- POST /admin/seed - Apply a named SQL seed at most once

Request handling order:
1. X-Admin-Key is checked against ADMIN_SEED_KEY (403 on mismatch, missing
   header or unset key). Nothing else about the request is looked at first.
2. The JSON body is parsed and validated here rather than by FastAPI so that
   a malformed body is a 400 with a SeedResponse-shaped error.
3. Only then is a pooled connection acquired and the seed run through
   aimos.services.admin_seed.

Response body is always a SeedResponse:
    { "status": "applied" | "skipped" | "error", "message": "...",
      "seed_name": "...", "detail": "..." }
"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from aimos.core.database import get_db_pool
from aimos.core.dependencies import require_admin_key
from aimos.core.exceptions import SeedValidationError
from aimos.models.enums import SeedStatus
from aimos.models.schemas import SeedResponse
from aimos.services.admin_seed import apply_seed, seed_http_status, validate_seed_request


logger = logging.getLogger(__name__)

router = APIRouter()


def _seed_json(response: SeedResponse, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode='json', exclude_none=True),
    )


@router.post("/seed", dependencies=[Depends(require_admin_key)])
async def seed_database(request: Request) -> JSONResponse:
    """
    Apply a SQL seed unless one with the same name was already applied.

    A connection is acquired only once the body has validated, so malformed
    requests are rejected even while the database is unreachable.

    Returns:
        200 with status "applied" or "skipped", 400 for an invalid body,
        500 with status "error" when the database was unreachable or the
        lookup or the seed SQL failed.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _seed_json(
            SeedResponse(status=SeedStatus.ERROR, message="Request body must be valid JSON"),
            400,
        )

    try:
        seed_request = validate_seed_request(body)
    except SeedValidationError as e:
        logger.info(f"Rejected seed request: {e}")
        return _seed_json(SeedResponse(status=SeedStatus.ERROR, message=str(e)), 400)

    try:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            result = await apply_seed(conn, seed_request)
    except Exception as e:
        logger.error(f"Admin seed endpoint error: {str(e)}", exc_info=True)
        return _seed_json(
            SeedResponse(
                status=SeedStatus.ERROR,
                message="Internal server error",
                seed_name=seed_request.seed_name,
                detail=str(e),
            ),
            500,
        )

    return _seed_json(result, seed_http_status(result))
