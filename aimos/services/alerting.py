"""
Threshold Alerting Engine

Scans EntityMetrics values and emits trend alerts with human-readable
recommendations, then orders the combined list by severity.

Rules, evaluated independently per entity in this order (an entity can raise
zero to three alerts):

1. volume_decline (critical)
   direction is down AND |trend_percentage| > 30
2. conversion_decline (warning)
   conversion_rate < 40 AND volume_current > 5
3. sla_breach (critical when sla < 50, otherwise warning)
   sla_compliance_rate < 70 AND volume_current > 3

For rules 2 and 3 the previous value is the comparison-window rate when one
exists, otherwise the historical reference level (65% conversion, 90% SLA).

Ordering: stable sort by rank critical (0) < warning (1) < info (2), so
alerts of equal severity keep their input order. The same ranking orders the
stored RevOps growth alerts.

The engine is pure and never raises; acknowledging or dismissing an alert is
a store update handled elsewhere.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from aimos.models.enums import AlertSeverity, AlertType, TrendDirection
from aimos.models.schemas import Alert, EntityMetrics
from aimos.services.metrics import compute_rate_change


# =============================================================================
# Thresholds
# =============================================================================

VOLUME_DECLINE_THRESHOLD_PCT = 30.0

CONVERSION_ALERT_THRESHOLD = 40.0
CONVERSION_ALERT_MIN_VOLUME = 5

SLA_ALERT_THRESHOLD = 70.0
SLA_CRITICAL_THRESHOLD = 50.0
SLA_ALERT_MIN_VOLUME = 3

# Reference levels reported as previous_value when there is no prior window
BASELINE_CONVERSION_RATE = 65.0
BASELINE_SLA_COMPLIANCE_RATE = 90.0

SEVERITY_RANK: Dict[AlertSeverity, int] = {
    AlertSeverity.CRITICAL: 0,
    AlertSeverity.WARNING: 1,
    AlertSeverity.INFO: 2,
}

RECOMMENDATIONS: Dict[AlertType, str] = {
    AlertType.VOLUME_DECLINE: (
        "Schedule relationship review call with key contact. "
        "Review recent service quality feedback."
    ),
    AlertType.CONVERSION_DECLINE: (
        "Review referral quality criteria with source. "
        "Analyze patient demographics and conditions."
    ),
    AlertType.SLA_BREACH: (
        "Immediate action required. "
        "Review scheduling capacity and intake process efficiency."
    ),
}


# =============================================================================
# Severity ordering
# =============================================================================


def severity_rank(severity: Union[AlertSeverity, str, None]) -> int:
    """
    Sort rank for a severity value; unknown values sort after info.

    Accepts the enum or its raw string so stored rows can be ranked directly.
    """
    try:
        return SEVERITY_RANK[AlertSeverity(severity)]
    except ValueError:
        return len(SEVERITY_RANK)


def sort_alerts_by_severity(alerts: Iterable[Alert]) -> List[Alert]:
    """Stable sort by severity rank, critical first."""
    return sorted(alerts, key=lambda alert: severity_rank(alert.severity))


# =============================================================================
# Rule evaluation
# =============================================================================


def evaluate_entity_alerts(metrics: EntityMetrics, detected_at: datetime) -> List[Alert]:
    """
    Apply the three threshold rules to one entity.

    Args:
        metrics: Derived metrics for the entity.
        detected_at: Timestamp stamped on every alert raised in this cycle.

    Returns:
        Alerts in rule order (volume, conversion, SLA). Empty when no rule fires.
    """
    alerts: List[Alert] = []
    name = metrics.entity_name

    if (
        metrics.trend_direction == TrendDirection.DOWN
        and abs(metrics.trend_percentage) > VOLUME_DECLINE_THRESHOLD_PCT
    ):
        alerts.append(Alert(
            id=f"alert-volume-{metrics.entity_id}",
            severity=AlertSeverity.CRITICAL,
            alert_type=AlertType.VOLUME_DECLINE,
            entity_id=metrics.entity_id,
            entity_name=name,
            message=f"{name} referrals down {abs(metrics.trend_percentage):.0f}% vs prior period",
            current_value=metrics.volume_current,
            previous_value=metrics.volume_previous,
            change_percentage=metrics.trend_percentage,
            recommendation=RECOMMENDATIONS[AlertType.VOLUME_DECLINE],
            detected_at=detected_at,
        ))

    if (
        metrics.conversion_rate < CONVERSION_ALERT_THRESHOLD
        and metrics.volume_current > CONVERSION_ALERT_MIN_VOLUME
    ):
        previous = metrics.conversion_rate_previous
        if previous is None:
            previous = BASELINE_CONVERSION_RATE
        alerts.append(Alert(
            id=f"alert-conversion-{metrics.entity_id}",
            severity=AlertSeverity.WARNING,
            alert_type=AlertType.CONVERSION_DECLINE,
            entity_id=metrics.entity_id,
            entity_name=name,
            message=f"{name} conversion rate at {metrics.conversion_rate:.0f}%",
            current_value=metrics.conversion_rate,
            previous_value=previous,
            change_percentage=compute_rate_change(metrics.conversion_rate, previous),
            recommendation=RECOMMENDATIONS[AlertType.CONVERSION_DECLINE],
            detected_at=detected_at,
        ))

    if (
        metrics.sla_compliance_rate < SLA_ALERT_THRESHOLD
        and metrics.volume_current > SLA_ALERT_MIN_VOLUME
    ):
        previous = metrics.sla_compliance_rate_previous
        if previous is None:
            previous = BASELINE_SLA_COMPLIANCE_RATE
        severity = (
            AlertSeverity.CRITICAL
            if metrics.sla_compliance_rate < SLA_CRITICAL_THRESHOLD
            else AlertSeverity.WARNING
        )
        alerts.append(Alert(
            id=f"alert-sla-{metrics.entity_id}",
            severity=severity,
            alert_type=AlertType.SLA_BREACH,
            entity_id=metrics.entity_id,
            entity_name=name,
            message=f"{name} SLA compliance at {metrics.sla_compliance_rate:.0f}%",
            current_value=metrics.sla_compliance_rate,
            previous_value=previous,
            change_percentage=compute_rate_change(metrics.sla_compliance_rate, previous),
            recommendation=RECOMMENDATIONS[AlertType.SLA_BREACH],
            detected_at=detected_at,
        ))

    return alerts


def generate_alerts(
    metrics_list: Iterable[EntityMetrics],
    detected_at: Optional[datetime] = None,
) -> List[Alert]:
    """
    Evaluate every entity and return all alerts, critical first.

    Args:
        metrics_list: EntityMetrics in display order.
        detected_at: Timestamp for this cycle; defaults to now (UTC).

    Returns:
        Severity-sorted alerts; entities that trip no rule contribute nothing.
    """
    if detected_at is None:
        detected_at = datetime.now(timezone.utc)

    alerts: List[Alert] = []
    for metrics in metrics_list:
        alerts.extend(evaluate_entity_alerts(metrics, detected_at))

    return sort_alerts_by_severity(alerts)
