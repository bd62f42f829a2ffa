"""
Referral Intelligence Service

Assembles the referral intelligence dashboard and provides the plain reads and
writes behind the referral endpoints.

Dashboard assembly:
1. Fetch referral_sources and referrals concurrently (asyncio.gather)
2. Slice referrals into the current window (last 30 days) and the comparison
   window (30 to 60 days ago) by referral_date
3. Per source: EntityMetrics, 30-day revenue (conversions x 1850) and average
   time to first appointment
4. Overview, conversion and time-to-appointment breakdowns, trend alerts
5. Employer intelligence from the reference fixture

If either fetch fails, or either table is empty, the fixed mock payload is
returned instead and the fallback is logged at WARNING. The dashboard read
never raises for store failures.

Every other read propagates FetchError and every write propagates WriteError
so the API can report them.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from aimos.core.exceptions import FetchError
from aimos.core.store import RawRecord, RowStore
from aimos.models.enums import DataSource, HealthStatus, ReferralStatus
from aimos.models.schemas import (
    ConversionMetrics,
    ReferralCreate,
    ReferralDashboard,
    ReferralOverview,
    ReferralSourceCreate,
    ReferralSourceUpdate,
    ReferralSourceWithMetrics,
    SourceConversion,
    SourceTimeToAppointment,
    TimeToAppointmentMetrics,
)
from aimos.services.alerting import generate_alerts
from aimos.services.metrics import (
    build_entity_metrics,
    build_metric_window,
    compute_conversion_rate,
    compute_sla_compliance_rate,
    compute_time_to_appointment_stats,
    group_by_key,
)
from aimos.services.mock_data import employer_intelligence, mock_referral_dashboard
from aimos.sql.row_queries import Filter


logger = logging.getLogger(__name__)


# =============================================================================
# Module Constants
# =============================================================================

# Average first-episode revenue credited to each converted referral
REVENUE_PER_CONVERSION: float = 1850.0

CURRENT_WINDOW_DAYS: int = 30
COMPARISON_WINDOW_DAYS: int = 30

LOST_STATUSES = (ReferralStatus.CANCELLED.value, ReferralStatus.NO_SHOW.value)


# =============================================================================
# Dashboard Assembly
# =============================================================================


async def load_referral_dashboard(
    store: RowStore,
    now: Optional[datetime] = None,
) -> ReferralDashboard:
    """
    Load the referral intelligence dashboard, falling back to mock data.

    Args:
        store: Row store to read from.
        now: Reference time for the windows; defaults to now (UTC).

    Returns:
        ReferralDashboard with data_source "live", or the mock payload with
        data_source "mock" when the fetch failed, returned no rows or the rows
        failed validation. Sources without an id or name are skipped.
    """
    now = now or datetime.now(timezone.utc)

    try:
        sources, referrals = await asyncio.gather(
            get_referral_sources(store),
            get_referrals(store),
        )
    except FetchError as e:
        logger.warning(f"Referral dashboard fetch failed, serving mock data: {e}")
        return mock_referral_dashboard()

    if not sources or not referrals:
        logger.warning(
            f"Referral dashboard has no data ({len(sources)} sources, "
            f"{len(referrals)} referrals), serving mock data"
        )
        return mock_referral_dashboard()

    try:
        return assemble_referral_dashboard(sources, referrals, now)
    except ValidationError as e:
        logger.warning(f"Referral rows failed validation, serving mock data: {e}")
        return mock_referral_dashboard()


def assemble_referral_dashboard(
    sources: Sequence[RawRecord],
    referrals: Sequence[RawRecord],
    now: datetime,
) -> ReferralDashboard:
    """
    Compute the live dashboard from fetched rows. Pure; performs no I/O.

    Args:
        sources: referral_sources rows.
        referrals: referrals rows (any order).
        now: Reference time; the current window ends with today.
    """
    today = now.date()
    sources = _named_sources(sources)
    current = build_metric_window(
        referrals,
        start=today - timedelta(days=CURRENT_WINDOW_DAYS),
        end=today + timedelta(days=1),
        date_field='referral_date',
    )
    previous = build_metric_window(
        referrals,
        start=today - timedelta(days=CURRENT_WINDOW_DAYS + COMPARISON_WINDOW_DAYS),
        end=today - timedelta(days=CURRENT_WINDOW_DAYS),
        date_field='referral_date',
    )

    current_by_source = group_by_key(current.rows, 'referral_source_id')
    previous_by_source = group_by_key(previous.rows, 'referral_source_id')

    entity_metrics = []
    sources_with_metrics = []
    for source in sources:
        current_rows = current_by_source.get(source['id'], [])
        previous_rows = previous_by_source.get(source['id'], [])

        metrics = build_entity_metrics(
            entity_id=str(source['id']),
            entity_name=source['organization_name'],
            current_rows=current_rows,
            previous_rows=previous_rows,
        )
        entity_metrics.append(metrics)

        conversions = sum(1 for row in current_rows if row.get('converted'))
        sources_with_metrics.append(ReferralSourceWithMetrics(
            id=str(source['id']),
            organization_name=source['organization_name'],
            source_type=source.get('source_type'),
            relationship_tier=source.get('relationship_tier'),
            sla_hours=source.get('sla_hours'),
            contact_person=source.get('contact_person'),
            contact_email=source.get('contact_email'),
            contact_phone=source.get('contact_phone'),
            is_active=_is_active(source),
            referral_count_30d=metrics.volume_current,
            referral_count_60d=metrics.volume_previous,
            conversion_rate=metrics.conversion_rate,
            avg_time_to_first_appt=compute_time_to_appointment_stats(current_rows).avg_days,
            sla_compliance_rate=metrics.sla_compliance_rate,
            revenue_30d=conversions * REVENUE_PER_CONVERSION,
            trend=metrics.trend_direction,
            trend_percentage=metrics.trend_percentage,
            health_status=metrics.health_status,
        ))

    total_conversions = sum(1 for row in current.rows if row.get('converted'))
    overview = ReferralOverview(
        total_sources=len(sources),
        active_sources=sum(1 for source in sources if _is_active(source)),
        total_referrals_30d=len(current),
        total_referrals_60d=len(previous),
        overall_conversion_rate=compute_conversion_rate(current.rows),
        avg_time_to_first_appt=compute_time_to_appointment_stats(current.rows).avg_days,
        sla_compliance_rate=compute_sla_compliance_rate(current.rows),
        total_revenue_30d=total_conversions * REVENUE_PER_CONVERSION,
        revenue_at_risk=sum(
            s.revenue_30d for s in sources_with_metrics
            if s.health_status != HealthStatus.HEALTHY
        ),
    )

    logger.info(
        f"Assembled referral dashboard: {len(sources)} sources, "
        f"{len(current)} referrals in window"
    )

    return ReferralDashboard(
        data_source=DataSource.LIVE,
        generated_at=now,
        overview=overview,
        sources_with_metrics=sources_with_metrics,
        conversion_metrics=calculate_conversion_metrics(current.rows, sources),
        time_to_appt_metrics=calculate_time_to_appointment_metrics(current.rows, sources),
        trend_alerts=generate_alerts(entity_metrics, detected_at=now),
        employer_intelligence=employer_intelligence(now),
    )


def _is_active(source: RawRecord) -> bool:
    """Sources without an is_active value count as active."""
    value = source.get('is_active')
    return True if value is None else bool(value)


def _named_sources(sources: Sequence[RawRecord]) -> List[RawRecord]:
    named = []
    for source in sources:
        if source.get('id') is None or not source.get('organization_name'):
            logger.warning(f"Skipping referral source without id or name: {source.get('id')}")
            continue
        named.append(source)
    return named


def calculate_conversion_metrics(
    referrals: Sequence[RawRecord],
    sources: Sequence[RawRecord],
) -> ConversionMetrics:
    """
    Conversion breakdown over one window of referrals.

    Sources without referrals in the window are left out of the per-source list.
    """
    by_source = group_by_key(referrals, 'referral_source_id')
    converted = [row for row in referrals if row.get('converted')]

    conversion_by_source = []
    for source in sources:
        rows = by_source.get(source['id'], [])
        if not rows:
            continue
        conversion_by_source.append(SourceConversion(
            source_id=str(source['id']),
            source_name=source['organization_name'],
            referrals=len(rows),
            conversions=sum(1 for row in rows if row.get('converted')),
            rate=compute_conversion_rate(rows),
        ))

    return ConversionMetrics(
        total_referrals=len(referrals),
        converted_referrals=len(converted),
        conversion_rate=compute_conversion_rate(referrals),
        pending_referrals=sum(
            1 for row in referrals if row.get('referral_status') == ReferralStatus.PENDING.value
        ),
        lost_referrals=sum(1 for row in referrals if row.get('referral_status') in LOST_STATUSES),
        avg_conversion_days=compute_time_to_appointment_stats(converted).avg_days,
        conversion_by_source=conversion_by_source,
    )


def calculate_time_to_appointment_metrics(
    referrals: Sequence[RawRecord],
    sources: Sequence[RawRecord],
) -> TimeToAppointmentMetrics:
    """Lead time distribution over one window, overall and per source."""
    stats = compute_time_to_appointment_stats(referrals)
    by_source = group_by_key(referrals, 'referral_source_id')

    per_source = []
    for source in sources:
        rows = by_source.get(source['id'], [])
        if not rows:
            continue
        per_source.append(SourceTimeToAppointment(
            source_id=str(source['id']),
            source_name=source['organization_name'],
            avg_days=compute_time_to_appointment_stats(rows).avg_days,
            sla_compliance=compute_sla_compliance_rate(rows),
        ))

    return TimeToAppointmentMetrics(
        avg_days=stats.avg_days,
        median_days=stats.median_days,
        within_24h=stats.within_24h,
        within_48h=stats.within_48h,
        within_72h=stats.within_72h,
        over_72h=stats.over_72h,
        by_source=per_source,
    )


# =============================================================================
# Reads
# =============================================================================


async def get_referral_sources(store: RowStore) -> List[RawRecord]:
    """All referral sources, alphabetical by organization name."""
    return await store.fetch_rows('referral_sources', order_by=['organization_name'])


async def get_referrals(
    store: RowStore,
    clinic_id: Optional[str] = None,
    source_id: Optional[str] = None,
) -> List[RawRecord]:
    """Referrals, newest first, optionally narrowed to a clinic and/or source."""
    filters = []
    if clinic_id:
        filters.append(Filter('clinic_id', 'eq', clinic_id))
    if source_id:
        filters.append(Filter('referral_source_id', 'eq', source_id))

    return await store.fetch_rows('referrals', filters=filters, order_by=['-referral_date'])


async def get_referral_metrics(store: RowStore, source_id: Optional[str] = None) -> List[RawRecord]:
    """Stored per-period referral metrics, newest period first."""
    filters = [Filter('referral_source_id', 'eq', source_id)] if source_id else []
    return await store.fetch_rows('referral_metrics', filters=filters, order_by=['-period_start'])


async def get_employer_accounts(store: RowStore) -> List[Dict[str, Any]]:
    """
    Employer accounts, newest first, each with its referral source attached
    under ``referral_source`` (None when the source no longer exists).
    """
    accounts, sources = await asyncio.gather(
        store.fetch_rows('employer_accounts', order_by=['-created_at']),
        store.fetch_rows('referral_sources'),
    )
    sources_by_id = {source['id']: source for source in sources}

    return [
        {**account, 'referral_source': sources_by_id.get(account.get('referral_source_id'))}
        for account in accounts
    ]


# =============================================================================
# Writes
# =============================================================================


async def create_referral_source(store: RowStore, source: ReferralSourceCreate) -> RawRecord:
    """Insert a referral source and return the stored row."""
    row = await store.insert_row('referral_sources', source.model_dump())
    logger.info(f"Created referral source {row.get('id')} ({source.organization_name})")
    return row


async def update_referral_source(
    store: RowStore,
    source_id: str,
    updates: ReferralSourceUpdate,
) -> RawRecord:
    """
    Apply the fields set on ``updates`` to one referral source.

    Raises:
        ValueError: If no field was set.
        RecordNotFoundError: If the source does not exist.
    """
    patch = updates.model_dump(exclude_unset=True)
    if not patch:
        raise ValueError("No fields to update")

    return await store.update_row('referral_sources', source_id, patch)


async def create_referral(store: RowStore, referral: ReferralCreate) -> RawRecord:
    """Insert a referral and return the stored row."""
    row = await store.insert_row('referrals', referral.model_dump())
    logger.info(f"Created referral {row.get('id')} for source {referral.referral_source_id}")
    return row
