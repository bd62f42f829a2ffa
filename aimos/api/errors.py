"""
Translation of service-layer exceptions into HTTP errors.

Routers wrap their service calls in ``try`` blocks and hand anything they
catch to ``raise_http_error``:

    try:
        row = await update_referral_source(store, source_id, updates)
    except Exception as e:
        raise_http_error(e, "Failed to update referral source")

Mapping:
- HTTPException: re-raised unchanged
- RecordNotFoundError: 404
- ConstraintViolationError: 409
- ValueError (including SeedValidationError): 400
- FetchError: 503, the database could not be read
- WriteError and anything else: 500, logged with the traceback
"""

import logging
from typing import NoReturn

from fastapi import HTTPException

from aimos.core.exceptions import (
    ConstraintViolationError,
    FetchError,
    RecordNotFoundError,
    WriteError,
)


logger = logging.getLogger(__name__)


def raise_http_error(error: Exception, action: str) -> NoReturn:
    """
    Raise the HTTPException that corresponds to ``error``.

    Args:
        error: Exception caught around a service call.
        action: Human readable failure summary used as the 500/503 detail,
            e.g. "Failed to fetch referrals".
    """
    if isinstance(error, HTTPException):
        raise error

    if isinstance(error, RecordNotFoundError):
        logger.info(f"{action}: {error.message}")
        raise HTTPException(status_code=404, detail=error.message) from error

    if isinstance(error, ConstraintViolationError):
        logger.warning(f"{action}: {error.message}")
        raise HTTPException(status_code=409, detail=error.message) from error

    if isinstance(error, ValueError):
        logger.info(f"{action}: {error}")
        raise HTTPException(status_code=400, detail=str(error)) from error

    if isinstance(error, FetchError):
        logger.error(f"{action}: {error.message}")
        raise HTTPException(status_code=503, detail=action) from error

    if isinstance(error, WriteError):
        logger.error(f"{action}: {error.message}")
        raise HTTPException(status_code=500, detail=action) from error

    logger.error(f"{action}: {str(error)}", exc_info=True)
    raise HTTPException(status_code=500, detail=action) from error
