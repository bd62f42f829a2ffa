"""
FastAPI router for revenue operations.

Key Endpoints:
- GET /revops/dashboard - Pipeline, capacity, bottleneck and growth alert view
- POST /revops/alerts/{alert_id}/acknowledge - Acknowledge a growth alert
- POST /revops/alerts/{alert_id}/dismiss - Dismiss a growth alert
- POST /revops/bottlenecks/{bottleneck_id}/resolve - Resolve a bottleneck

The dashboard falls back to mock rows when the pipeline tables cannot be read
or hold nothing for the last 30 days. Status changes propagate store errors
(404 for unknown ids).
"""

import logging

from fastapi import APIRouter

from aimos.api.errors import raise_http_error
from aimos.core.dependencies import StoreDep
from aimos.models.schemas import (
    AcknowledgeAlertRequest,
    ResolveBottleneckRequest,
    RevOpsDashboard,
)
from aimos.services.revops import (
    acknowledge_growth_alert,
    dismiss_growth_alert,
    load_revops_dashboard,
    resolve_bottleneck,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/dashboard", response_model=RevOpsDashboard)
async def get_revops_dashboard(store: StoreDep) -> RevOpsDashboard:
    """
    Revenue operations dashboard.

    ``latest_pipeline.primary_bottleneck`` names the pipeline stage furthest
    below its conversion benchmark, if any.
    """
    return await load_revops_dashboard(store)


@router.post("/alerts/{alert_id}/acknowledge", response_model=dict)
async def acknowledge_alert(
    alert_id: str,
    body: AcknowledgeAlertRequest,
    store: StoreDep,
) -> dict:
    """Acknowledge a growth alert on behalf of ``body.user_id``."""
    try:
        row = await acknowledge_growth_alert(store, alert_id, body.user_id)
        return {"success": True, "alert": row}
    except Exception as e:
        raise_http_error(e, "Failed to acknowledge growth alert")


@router.post("/alerts/{alert_id}/dismiss", response_model=dict)
async def dismiss_alert(alert_id: str, store: StoreDep) -> dict:
    """Dismiss a growth alert."""
    try:
        row = await dismiss_growth_alert(store, alert_id)
        return {"success": True, "alert": row}
    except Exception as e:
        raise_http_error(e, "Failed to dismiss growth alert")


@router.post("/bottlenecks/{bottleneck_id}/resolve", response_model=dict)
async def resolve_pipeline_bottleneck(
    bottleneck_id: str,
    store: StoreDep,
    body: ResolveBottleneckRequest = ResolveBottleneckRequest(),
) -> dict:
    """Resolve a bottleneck, optionally recording resolution notes."""
    try:
        row = await resolve_bottleneck(store, bottleneck_id, notes=body.notes)
        return {"success": True, "bottleneck": row}
    except Exception as e:
        raise_http_error(e, "Failed to resolve bottleneck")
