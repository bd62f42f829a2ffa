"""
Metric Calculator Service

Pure reduction of raw store rows into the derived metrics shown on every
dashboard: conversion and SLA compliance rates, window-over-window trends and
the relationship health classification built from them.

Rules (fixed product constants):
- trend_percentage = (current - previous) / previous * 100, or 0 when previous is 0
- direction: up when percentage > 10, down when percentage < -10, else stable
- health, evaluated critical first:
    critical  when direction is down AND conversion < 30
    warning   when direction is down OR conversion < 50 OR sla < 80
    healthy   otherwise

Clinics and clinicians are additionally bucketed into performance tiers by
their distance from the average (classify_performance_tier).

Every function here is total over its documented inputs: empty collections
produce zeros, never exceptions. Inputs are expected to be grouped per entity
(see group_by_key) before calling build_entity_metrics.

Dependencies:
    - numpy: mean/median over appointment lead times
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Hashable, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from aimos.models.enums import HealthStatus, PerformanceTier, TrendDirection
from aimos.models.schemas import EntityMetrics


RawRecord = Dict[str, Any]

# =============================================================================
# Thresholds
# =============================================================================

TREND_THRESHOLD_PCT = 10.0

CRITICAL_CONVERSION_THRESHOLD = 30.0
WARNING_CONVERSION_THRESHOLD = 50.0
WARNING_SLA_THRESHOLD = 80.0

# Lead time buckets for time-to-first-appointment, in hours
APPOINTMENT_BUCKET_HOURS = (24, 48, 72)

# Distance from the average, in percent, that separates top from avg and avg from below_avg
TOP_TIER_MIN_PCT = 5.0


# =============================================================================
# Value types
# =============================================================================


class TrendResult(NamedTuple):
    """Direction and signed percentage change between two windows."""
    direction: TrendDirection
    percentage: float


class TimeToAppointmentStats(NamedTuple):
    """
    Distribution of referral-to-first-appointment lead times.

    The within_* buckets are cumulative: a referral seen in 20 hours counts
    toward within_24h, within_48h and within_72h.
    """
    avg_days: float
    median_days: float
    within_24h: int
    within_48h: int
    within_72h: int
    over_72h: int
    sample_size: int


@dataclass(frozen=True)
class MetricWindow:
    """
    Immutable, time-bounded slice of raw rows.

    Attributes:
        start: First date included in the window.
        end: First date after the window (exclusive bound).
        rows: Rows whose date field falls in [start, end).
    """
    start: date
    end: date
    rows: Tuple[RawRecord, ...]

    def __len__(self) -> int:
        return len(self.rows)


# =============================================================================
# Helpers
# =============================================================================


def to_date(value: Any) -> Optional[date]:
    """
    Normalize a date-ish value from the store to a ``date``.

    Accepts date, datetime and ISO-8601 strings (only the date part is used).
    Returns None for missing or unparseable values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def classify_performance_tier(vs_avg: float) -> PerformanceTier:
    """
    Bucket a clinic or clinician by its percentage difference from the average.

    >= +5% top, > 0 above_avg, >= -5% avg, otherwise below_avg.
    """
    if vs_avg >= TOP_TIER_MIN_PCT:
        return PerformanceTier.TOP
    if vs_avg > 0:
        return PerformanceTier.ABOVE_AVG
    if vs_avg >= -TOP_TIER_MIN_PCT:
        return PerformanceTier.AVG
    return PerformanceTier.BELOW_AVG


def clinician_label(index: int) -> str:
    """
    Anonymous label for the clinician at ``index`` in ranked order.

    0 -> "Clinician A", 25 -> "Clinician Z", 26 -> "Clinician AA".
    """
    letters = ''
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return f"Clinician {letters}"


def _percent(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


# =============================================================================
# Rates
# =============================================================================


def compute_conversion_rate(rows: Sequence[RawRecord]) -> float:
    """
    Percentage of rows whose ``converted`` flag is truthy.

    Returns:
        Rate in [0, 100]; 0 for an empty collection.
    """
    converted = sum(1 for row in rows if row.get('converted'))
    return _percent(converted, len(rows))


def compute_sla_compliance_rate(rows: Sequence[RawRecord]) -> float:
    """
    Percentage of rows with ``sla_met`` set to True.

    Rows where sla_met is NULL (no appointment yet) count against compliance.

    Returns:
        Rate in [0, 100]; 0 for an empty collection.
    """
    compliant = sum(1 for row in rows if row.get('sla_met') is True)
    return _percent(compliant, len(rows))


def compute_rate_change(current: float, previous: float) -> float:
    """Relative change from previous to current in percent, 0 when previous <= 0."""
    if previous > 0:
        return (current - previous) / previous * 100
    return 0.0


# =============================================================================
# Trend and Health
# =============================================================================


def compute_trend(current: float, previous: float) -> TrendResult:
    """
    Classify the change between the current and comparison window volumes.

    Args:
        current: Volume in the current window.
        previous: Volume in the comparison window.

    Returns:
        TrendResult with direction up (> +10%), down (< -10%) or stable.

    Example:
        >>> compute_trend(23, 48)
        TrendResult(direction=<TrendDirection.DOWN: 'down'>, percentage=-52.083...)
    """
    percentage = compute_rate_change(current, previous)

    if percentage > TREND_THRESHOLD_PCT:
        direction = TrendDirection.UP
    elif percentage < -TREND_THRESHOLD_PCT:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.STABLE

    return TrendResult(direction=direction, percentage=percentage)


def compute_health_status(
    direction: TrendDirection,
    conversion_rate: float,
    sla_rate: float,
) -> HealthStatus:
    """
    Apply the health rule, critical check first.

    A declining source with poor conversion is critical even when its SLA
    compliance is fine.
    """
    is_down = direction == TrendDirection.DOWN

    if is_down and conversion_rate < CRITICAL_CONVERSION_THRESHOLD:
        return HealthStatus.CRITICAL
    if is_down or conversion_rate < WARNING_CONVERSION_THRESHOLD or sla_rate < WARNING_SLA_THRESHOLD:
        return HealthStatus.WARNING
    return HealthStatus.HEALTHY


# =============================================================================
# Windowing and Grouping
# =============================================================================


def group_by_key(rows: Iterable[RawRecord], key: str) -> Dict[Hashable, List[RawRecord]]:
    """Partition rows by the value of one column, preserving input order."""
    groups: Dict[Hashable, List[RawRecord]] = {}
    for row in rows:
        groups.setdefault(row.get(key), []).append(row)
    return groups


def build_metric_window(
    rows: Iterable[RawRecord],
    start: date,
    end: date,
    date_field: str,
) -> MetricWindow:
    """
    Select the rows whose ``date_field`` falls in [start, end).

    Rows with a missing or unparseable date are left out.
    """
    start_date = to_date(start)
    end_date = to_date(end)

    selected = []
    for row in rows:
        row_date = to_date(row.get(date_field))
        if row_date is not None and start_date <= row_date < end_date:
            selected.append(row)

    return MetricWindow(start=start_date, end=end_date, rows=tuple(selected))


# =============================================================================
# Entity Metrics
# =============================================================================


def build_entity_metrics(
    entity_id: str,
    entity_name: str,
    current_rows: Sequence[RawRecord],
    previous_rows: Sequence[RawRecord],
) -> EntityMetrics:
    """
    Reduce one entity's current and comparison rows to an EntityMetrics value.

    Args:
        entity_id: Id of the referral source, clinic or clinician.
        entity_name: Display name used in alert messages.
        current_rows: Rows in the current window.
        previous_rows: Rows in the comparison window.

    Returns:
        EntityMetrics with rates, trend and health populated. Comparison-window
        rates are None when the comparison window is empty.
    """
    conversion_rate = compute_conversion_rate(current_rows)
    sla_rate = compute_sla_compliance_rate(current_rows)
    trend = compute_trend(len(current_rows), len(previous_rows))

    return EntityMetrics(
        entity_id=entity_id,
        entity_name=entity_name,
        volume_current=len(current_rows),
        volume_previous=len(previous_rows),
        conversion_rate=conversion_rate,
        sla_compliance_rate=sla_rate,
        trend_direction=trend.direction,
        trend_percentage=trend.percentage,
        health_status=compute_health_status(trend.direction, conversion_rate, sla_rate),
        conversion_rate_previous=compute_conversion_rate(previous_rows) if previous_rows else None,
        sla_compliance_rate_previous=compute_sla_compliance_rate(previous_rows) if previous_rows else None,
    )


# =============================================================================
# Time to Appointment
# =============================================================================


def compute_time_to_appointment_stats(rows: Sequence[RawRecord]) -> TimeToAppointmentStats:
    """
    Summarize ``hours_to_first_appointment`` across rows.

    Rows without a lead time (not yet scheduled) are ignored. Averages are
    reported in days, rounded to two decimals.

    Returns:
        TimeToAppointmentStats; all zeros when no row has a lead time.
    """
    hours = [
        float(row['hours_to_first_appointment'])
        for row in rows
        if row.get('hours_to_first_appointment') is not None
    ]

    if not hours:
        return TimeToAppointmentStats(0.0, 0.0, 0, 0, 0, 0, 0)

    values = np.array(hours, dtype=np.float64)
    within = [int(np.count_nonzero(values <= limit)) for limit in APPOINTMENT_BUCKET_HOURS]

    return TimeToAppointmentStats(
        avg_days=round(float(np.mean(values)) / 24, 2),
        median_days=round(float(np.median(values)) / 24, 2),
        within_24h=within[0],
        within_48h=within[1],
        within_72h=within[2],
        over_72h=int(np.count_nonzero(values > APPOINTMENT_BUCKET_HOURS[-1])),
        sample_size=len(hours),
    )
