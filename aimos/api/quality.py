"""
FastAPI router for clinical quality.

Key Endpoints:
- GET /quality/dashboard - Clinical quality dashboard (live or mock)
- GET /quality/outcomes - Clinical outcomes, optional clinic_id filter
- POST /quality/outcomes - Record a clinical outcome
- PATCH /quality/outcomes/{outcome_id} - Update a clinical outcome
- GET /quality/clinician-performance - Clinician performance snapshots
- GET /quality/outcome-metrics - Outcome metric catalogue
"""

import logging
from typing import Optional

from fastapi import APIRouter, Query

from aimos.api.errors import raise_http_error
from aimos.core.dependencies import StoreDep
from aimos.models.schemas import (
    ClinicalOutcomeCreate,
    ClinicalOutcomeUpdate,
    QualityDashboard,
)
from aimos.services.quality import (
    create_clinical_outcome,
    get_clinical_outcomes,
    get_clinician_performance,
    get_outcome_metrics,
    load_quality_dashboard,
    update_clinical_outcome,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard", response_model=QualityDashboard)
async def get_quality_dashboard(store: StoreDep) -> QualityDashboard:
    """Clinical quality dashboard; clinicians are anonymized."""
    return await load_quality_dashboard(store)


@router.get("/outcomes", response_model=dict)
async def list_clinical_outcomes(
    store: StoreDep,
    clinic_id: Optional[str] = Query(default=None, description="Filter by clinic"),
) -> dict:
    """Clinical outcomes, newest first. Response: { outcomes: [...] }"""
    try:
        outcomes = await get_clinical_outcomes(store, clinic_id)
        return {"outcomes": outcomes}
    except Exception as e:
        raise_http_error(e, "Failed to fetch clinical outcomes")


@router.post("/outcomes", response_model=dict, status_code=201)
async def add_clinical_outcome(outcome: ClinicalOutcomeCreate, store: StoreDep) -> dict:
    try:
        row = await create_clinical_outcome(store, outcome)
        return {"success": True, "outcome": row}
    except Exception as e:
        raise_http_error(e, "Failed to create clinical outcome")


@router.patch("/outcomes/{outcome_id}", response_model=dict)
async def edit_clinical_outcome(
    outcome_id: str,
    updates: ClinicalOutcomeUpdate,
    store: StoreDep,
) -> dict:
    try:
        row = await update_clinical_outcome(store, outcome_id, updates)
        return {"success": True, "outcome": row}
    except Exception as e:
        raise_http_error(e, "Failed to update clinical outcome")


@router.get("/clinician-performance", response_model=dict)
async def list_clinician_performance(
    store: StoreDep,
    clinic_id: Optional[str] = Query(default=None, description="Filter by clinic"),
) -> dict:
    """Performance snapshots, newest period first. Response: { performance: [...] }"""
    try:
        snapshots = await get_clinician_performance(store, clinic_id)
        return {"performance": snapshots}
    except Exception as e:
        raise_http_error(e, "Failed to fetch clinician performance")


@router.get("/outcome-metrics", response_model=dict)
async def list_outcome_metrics(store: StoreDep) -> dict:
    try:
        metrics = await get_outcome_metrics(store)
        return {"metrics": metrics}
    except Exception as e:
        raise_http_error(e, "Failed to fetch outcome metrics")
