"""
Revenue Operations Service

Assembles the RevOps dashboard (marketing-to-revenue pipeline, clinic
capacity, bottlenecks, clinician productivity and growth alerts) and applies
the status changes made from it.

Pipeline model:
    marketing leads -> intake qualified -> appointments scheduled
                    -> appointments completed -> revenue

Stage conversion rates are recomputed from the stage counts on every load:
    intake      = qualified / leads
    scheduling  = scheduled / qualified
    completion  = completed / scheduled
    overall     = completed / leads

The primary bottleneck is the stage with the largest shortfall against its
benchmark rate (intake 60%, scheduling 80%, completion 85%). Severity:
critical for a shortfall of 25 points or more, warning for 10 or more, info
for anything below benchmark. A stage with no upstream volume is not judged.

Fetch failures, an empty pipeline table or rows that fail validation switch
the dashboard to the fixed RevOps mock rows, which are assembled through the
same code path. NULL counts and amounts in bottleneck and growth alert rows
read as zero; a bottleneck or alert row missing its id, stage, type or
severity is skipped with a warning.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from aimos.core.exceptions import FetchError
from aimos.core.store import RawRecord, RowStore
from aimos.models.enums import (
    AlertSeverity,
    BottleneckStatus,
    DataSource,
    GrowthAlertStatus,
    PipelineStage,
)
from aimos.models.schemas import (
    Bottleneck,
    BottleneckDetection,
    GrowthAlert,
    PipelineSnapshot,
    RevOpsDashboard,
    RevOpsSummary,
)
from aimos.services.alerting import severity_rank
from aimos.services.mock_data import (
    MOCK_BOTTLENECK_ROWS,
    MOCK_CAPACITY_ROWS,
    MOCK_GROWTH_ALERT_ROWS,
    MOCK_PIPELINE_ROWS,
    MOCK_PRODUCTIVITY_ROWS,
    MOCK_SNAPSHOT_AT,
)
from aimos.sql.row_queries import Filter


logger = logging.getLogger(__name__)

RowModel = TypeVar('RowModel', bound=BaseModel)


# =============================================================================
# Module Constants
# =============================================================================

LOOKBACK_DAYS: int = 30

STAGE_BENCHMARKS: Dict[PipelineStage, float] = {
    PipelineStage.INTAKE: 60.0,
    PipelineStage.SCHEDULING: 80.0,
    PipelineStage.COMPLETION: 85.0,
}

CRITICAL_SHORTFALL_POINTS: float = 25.0
WARNING_SHORTFALL_POINTS: float = 10.0

OPEN_BOTTLENECK_STATUSES = [BottleneckStatus.ACTIVE.value, BottleneckStatus.MONITORING.value]
OPEN_ALERT_STATUSES = [GrowthAlertStatus.ACTIVE.value, GrowthAlertStatus.ACKNOWLEDGED.value]


# =============================================================================
# Pipeline Calculations
# =============================================================================


def _stage_rate(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return min(numerator / denominator * 100, 100.0)


def _number(row: RawRecord, key: str) -> float:
    value = row.get(key)
    return float(value) if value is not None else 0.0


def _validate_rows(model: Type[RowModel], rows: Sequence[RawRecord], table: str) -> List[RowModel]:
    """Validate stored rows, skipping any that do not fit ``model``."""
    validated = []
    for row in rows:
        try:
            validated.append(model.model_validate(row))
        except ValidationError as e:
            logger.warning(f"Skipping invalid {table} row {row.get('id')}: {e.error_count()} errors")
    return validated


def build_pipeline_snapshot(row: RawRecord) -> PipelineSnapshot:
    """
    Build a PipelineSnapshot from one revops_pipeline_metrics row.

    Stored rate columns are ignored; every rate is recomputed from the counts
    so the snapshot is internally consistent.

    Args:
        row: Pipeline metrics row with stage counts, spend and revenue.

    Returns:
        PipelineSnapshot with rates, unit economics and primary bottleneck.
    """
    leads = _number(row, 'marketing_leads')
    spend = _number(row, 'marketing_spend')
    qualified = _number(row, 'intake_qualified')
    scheduled = _number(row, 'appointments_scheduled')
    completed = _number(row, 'appointments_completed')
    revenue = _number(row, 'total_revenue')

    snapshot = PipelineSnapshot(
        id=row.get('id'),
        clinic_id=row.get('clinic_id'),
        period_start=row.get('period_start'),
        period_end=row.get('period_end'),
        marketing_leads=int(leads),
        marketing_spend=spend,
        intake_qualified=int(qualified),
        appointments_scheduled=int(scheduled),
        appointments_completed=int(completed),
        total_revenue=revenue,
        intake_conversion_rate=_stage_rate(qualified, leads),
        schedule_conversion_rate=_stage_rate(scheduled, qualified),
        completion_rate=_stage_rate(completed, scheduled),
        overall_conversion_rate=_stage_rate(completed, leads),
        revenue_per_appointment=revenue / completed if completed > 0 else 0.0,
        revenue_per_lead=revenue / leads if leads > 0 else 0.0,
        marketing_roi=(revenue - spend) / spend * 100 if spend > 0 else 0.0,
    )

    detection = detect_primary_bottleneck(snapshot)
    if detection is None:
        return snapshot

    return snapshot.model_copy(update={
        'primary_bottleneck': detection.stage,
        'bottleneck_severity': detection.severity,
    })


def detect_primary_bottleneck(snapshot: PipelineSnapshot) -> Optional[BottleneckDetection]:
    """
    Find the funnel stage furthest below its benchmark conversion rate.

    Returns:
        BottleneckDetection for the worst stage, or None when every judged
        stage meets its benchmark. On equal shortfalls the earlier stage wins.
    """
    stages = [
        (PipelineStage.INTAKE, snapshot.marketing_leads, snapshot.intake_conversion_rate),
        (PipelineStage.SCHEDULING, snapshot.intake_qualified, snapshot.schedule_conversion_rate),
        (PipelineStage.COMPLETION, snapshot.appointments_scheduled, snapshot.completion_rate),
    ]

    worst: Optional[BottleneckDetection] = None
    for stage, upstream, rate in stages:
        if upstream <= 0:
            continue

        benchmark = STAGE_BENCHMARKS[stage]
        shortfall = benchmark - rate
        if shortfall <= 0 or (worst is not None and shortfall <= worst.shortfall):
            continue

        if shortfall >= CRITICAL_SHORTFALL_POINTS:
            severity = AlertSeverity.CRITICAL
        elif shortfall >= WARNING_SHORTFALL_POINTS:
            severity = AlertSeverity.WARNING
        else:
            severity = AlertSeverity.INFO

        worst = BottleneckDetection(
            stage=stage,
            severity=severity,
            actual_rate=rate,
            benchmark_rate=benchmark,
            shortfall=shortfall,
        )

    return worst


# =============================================================================
# Dashboard Assembly
# =============================================================================


async def load_revops_dashboard(
    store: RowStore,
    now: Optional[datetime] = None,
) -> RevOpsDashboard:
    """
    Load the RevOps dashboard, falling back to the mock rows.

    Five independent fetches are issued concurrently and joined before any
    computation starts.
    """
    now = now or datetime.now(timezone.utc)
    since = now.date() - timedelta(days=LOOKBACK_DAYS)
    window = [Filter('period_start', 'gte', since)]

    try:
        pipeline_rows, capacity_rows, bottleneck_rows, productivity_rows, alert_rows = await asyncio.gather(
            store.fetch_rows('revops_pipeline_metrics', filters=window, order_by=['-period_start']),
            store.fetch_rows('revops_capacity_metrics', filters=window, order_by=['-period_start']),
            store.fetch_rows(
                'revops_bottlenecks',
                filters=[Filter('status', 'in', OPEN_BOTTLENECK_STATUSES)],
                order_by=['-priority'],
            ),
            store.fetch_rows('revops_clinician_productivity', filters=window, order_by=['-revenue_per_hour']),
            store.fetch_rows(
                'revops_growth_alerts',
                filters=[Filter('status', 'in', OPEN_ALERT_STATUSES)],
                order_by=['-triggered_at'],
            ),
        )
    except FetchError as e:
        logger.warning(f"RevOps dashboard fetch failed, serving mock data: {e}")
        return mock_revops_dashboard()

    if not pipeline_rows:
        logger.warning(f"No pipeline metrics since {since}, serving mock data")
        return mock_revops_dashboard()

    try:
        return assemble_revops_dashboard(
            pipeline_rows,
            capacity_rows,
            bottleneck_rows,
            productivity_rows,
            alert_rows,
            data_source=DataSource.LIVE,
            generated_at=now,
        )
    except ValidationError as e:
        logger.warning(f"RevOps rows failed validation, serving mock data: {e}")
        return mock_revops_dashboard()


def mock_revops_dashboard() -> RevOpsDashboard:
    """RevOps payload built from the fixed mock rows."""
    return assemble_revops_dashboard(
        MOCK_PIPELINE_ROWS,
        MOCK_CAPACITY_ROWS,
        MOCK_BOTTLENECK_ROWS,
        MOCK_PRODUCTIVITY_ROWS,
        MOCK_GROWTH_ALERT_ROWS,
        data_source=DataSource.MOCK,
        generated_at=MOCK_SNAPSHOT_AT,
    )


def assemble_revops_dashboard(
    pipeline_rows: Sequence[RawRecord],
    capacity_rows: Sequence[RawRecord],
    bottleneck_rows: Sequence[RawRecord],
    productivity_rows: Sequence[RawRecord],
    alert_rows: Sequence[RawRecord],
    data_source: DataSource,
    generated_at: datetime,
) -> RevOpsDashboard:
    """
    Compute the dashboard from fetched rows. Pure; performs no I/O.

    Pipeline and capacity rows are expected newest first; the first row of
    each is treated as the latest period.
    """
    pipelines = [build_pipeline_snapshot(row) for row in pipeline_rows]
    latest_pipeline = pipelines[0] if pipelines else None
    latest_capacity = dict(capacity_rows[0]) if capacity_rows else None

    bottlenecks = _validate_rows(Bottleneck, bottleneck_rows, 'revops_bottlenecks')
    growth_alerts = _validate_rows(
        GrowthAlert,
        sorted(alert_rows, key=lambda row: severity_rank(row.get('severity'))),
        'revops_growth_alerts',
    )

    summary = RevOpsSummary(
        latest_period_revenue=latest_pipeline.total_revenue if latest_pipeline else 0.0,
        revenue_per_hour=_number(latest_capacity, 'revenue_per_hour') if latest_capacity else 0.0,
        utilization_rate=_number(latest_capacity, 'utilization_rate') if latest_capacity else 0.0,
        capacity_gap=_number(latest_capacity, 'capacity_gap') if latest_capacity else 0.0,
        bottlenecks_count=len(bottlenecks),
        alerts_count=len(growth_alerts),
        marketing_roi=latest_pipeline.marketing_roi if latest_pipeline else 0.0,
        overall_conversion_rate=latest_pipeline.overall_conversion_rate if latest_pipeline else 0.0,
    )

    if latest_pipeline is not None and latest_pipeline.primary_bottleneck is not None:
        logger.info(
            f"Primary pipeline bottleneck: {latest_pipeline.primary_bottleneck.value} "
            f"({latest_pipeline.bottleneck_severity.value})"
        )

    return RevOpsDashboard(
        data_source=data_source,
        generated_at=generated_at,
        pipeline_metrics=pipelines,
        latest_pipeline=latest_pipeline,
        capacity_metrics=[dict(row) for row in capacity_rows],
        latest_capacity=latest_capacity,
        active_bottlenecks=bottlenecks,
        clinician_productivity=[dict(row) for row in productivity_rows],
        growth_alerts=growth_alerts,
        summary=summary,
    )


# =============================================================================
# Status Changes
# =============================================================================


async def acknowledge_growth_alert(
    store: RowStore,
    alert_id: str,
    user_id: str,
    now: Optional[datetime] = None,
) -> RawRecord:
    """Mark a growth alert acknowledged by ``user_id``."""
    row = await store.update_row('revops_growth_alerts', alert_id, {
        'status': GrowthAlertStatus.ACKNOWLEDGED.value,
        'acknowledged_by': user_id,
        'acknowledged_at': now or datetime.now(timezone.utc),
    })
    logger.info(f"Growth alert {alert_id} acknowledged by {user_id}")
    return row


async def dismiss_growth_alert(store: RowStore, alert_id: str) -> RawRecord:
    """Mark a growth alert dismissed."""
    row = await store.update_row('revops_growth_alerts', alert_id, {
        'status': GrowthAlertStatus.DISMISSED.value,
    })
    logger.info(f"Growth alert {alert_id} dismissed")
    return row


async def resolve_bottleneck(
    store: RowStore,
    bottleneck_id: str,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> RawRecord:
    """Mark a bottleneck resolved, stamping the time and optional notes."""
    row = await store.update_row('revops_bottlenecks', bottleneck_id, {
        'status': BottleneckStatus.RESOLVED.value,
        'resolved_at': now or datetime.now(timezone.utc),
        'notes': notes or None,
    })
    logger.info(f"Bottleneck {bottleneck_id} resolved")
    return row
