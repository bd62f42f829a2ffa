"""
FastAPI router for referral intelligence.

Key Endpoints:
- GET /referrals/dashboard - Referral intelligence dashboard (live or mock)
- GET /referrals/sources - List referral sources
- POST /referrals/sources - Create a referral source
- PATCH /referrals/sources/{source_id} - Update a referral source
- GET /referrals/ - List referrals (clinic_id / source_id filters)
- POST /referrals/ - Record a referral
- GET /referrals/metrics - Stored per-period referral metrics
- GET /referrals/employers - Employer accounts with their referral source

The dashboard endpoint never fails because of the database: the service
falls back to its mock payload and marks it with ``data_source: "mock"``.
The list and write endpoints surface store failures (503 for reads, 404/409/500
for writes, see aimos.api.errors).

Dependencies:
- aimos/core/dependencies.py: StoreDep
- aimos/services/referrals.py: dashboard assembly, reads and writes
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query

from aimos.api.errors import raise_http_error
from aimos.core.dependencies import StoreDep
from aimos.models.schemas import (
    ReferralCreate,
    ReferralDashboard,
    ReferralSourceCreate,
    ReferralSourceUpdate,
)
from aimos.services.referrals import (
    create_referral,
    create_referral_source,
    get_employer_accounts,
    get_referral_metrics,
    get_referral_sources,
    get_referrals,
    load_referral_dashboard,
    update_referral_source,
)


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Dashboard
# =============================================================================


@router.get("/dashboard", response_model=ReferralDashboard)
async def get_referral_dashboard(store: StoreDep) -> ReferralDashboard:
    """
    Referral intelligence dashboard.

    Returns sources with 30-day metrics, conversion and time-to-appointment
    breakdowns, trend alerts ordered by severity and employer intelligence.
    """
    return await load_referral_dashboard(store)


# =============================================================================
# Referral Sources
# =============================================================================


@router.get("/sources", response_model=dict)
async def list_referral_sources(store: StoreDep) -> dict:
    """List every referral source. Response: { sources: [...] }"""
    try:
        sources = await get_referral_sources(store)
        return {"sources": sources}
    except Exception as e:
        raise_http_error(e, "Failed to fetch referral sources")


@router.post("/sources", response_model=dict, status_code=201)
async def add_referral_source(source: ReferralSourceCreate, store: StoreDep) -> dict:
    """Create a referral source. Response: { success: true, source: {...} }"""
    try:
        row = await create_referral_source(store, source)
        return {"success": True, "source": row}
    except Exception as e:
        raise_http_error(e, "Failed to create referral source")


@router.patch("/sources/{source_id}", response_model=dict)
async def edit_referral_source(
    source_id: str,
    updates: ReferralSourceUpdate,
    store: StoreDep,
) -> dict:
    """
    Update the fields present in the body.

    Raises:
        HTTPException 400: Empty body.
        HTTPException 404: Unknown source_id.
    """
    try:
        row = await update_referral_source(store, source_id, updates)
        return {"success": True, "source": row}
    except Exception as e:
        raise_http_error(e, "Failed to update referral source")


# =============================================================================
# Referrals
# =============================================================================


@router.get("/metrics", response_model=dict)
async def list_referral_metrics(
    store: StoreDep,
    source_id: Optional[str] = Query(default=None, description="Filter by referral source"),
) -> dict:
    """Stored referral metrics, newest period first. Response: { metrics: [...] }"""
    try:
        metrics = await get_referral_metrics(store, source_id)
        return {"metrics": metrics}
    except Exception as e:
        raise_http_error(e, "Failed to fetch referral metrics")


@router.get("/employers", response_model=dict)
async def list_employer_accounts(store: StoreDep) -> dict:
    """Employer accounts with ``referral_source`` attached. Response: { employers: [...] }"""
    try:
        employers = await get_employer_accounts(store)
        return {"employers": employers}
    except Exception as e:
        raise_http_error(e, "Failed to fetch employer accounts")


@router.get("/", response_model=dict)
async def list_referrals(
    store: StoreDep,
    clinic_id: Optional[str] = Query(default=None, description="Filter by clinic"),
    source_id: Optional[str] = Query(default=None, description="Filter by referral source"),
) -> dict:
    """
    List referrals, newest referral_date first.

    Example Request:
        GET /referrals/?source_id=src-1

    Example Response:
        { "referrals": [ { "id": "...", "referral_date": "2024-06-28", ... } ] }
    """
    try:
        referrals = await get_referrals(store, clinic_id=clinic_id, source_id=source_id)
        logger.debug(
            f"Listed {len(referrals)} referrals "
            f"(clinic: {clinic_id or 'all'}, source: {source_id or 'all'})"
        )
        return {"referrals": referrals}
    except Exception as e:
        raise_http_error(e, "Failed to fetch referrals")


@router.post("/", response_model=dict, status_code=201)
async def add_referral(referral: ReferralCreate, store: StoreDep) -> dict:
    """Record a referral. Response: { success: true, referral: {...} }"""
    try:
        row = await create_referral(store, referral)
        return {"success": True, "referral": row}
    except Exception as e:
        raise_http_error(e, "Failed to create referral")
