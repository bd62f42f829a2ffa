"""
Enumeration definitions for the AIM OS Growth Intelligence backend.

All enums inherit from both `str` and `Enum` so that pydantic serializes them
as their plain string values in API responses and so they compare equal to the
raw strings stored in Postgres (``HealthStatus.WARNING == "warning"``).

Groups:
- Metric calculation: TrendDirection, HealthStatus
- Alerting: AlertSeverity, AlertType
- Revenue operations: PipelineStage, BottleneckStatus, GrowthAlertStatus
- Referrals: ReferralStatus, RiskLevel
- Clinical quality: OutcomeStatus, PerformanceTier, IndicatorCategory,
  IndicatorPriority, BenchmarkComparison
- Operations: SeedStatus, DataSource
"""

from enum import Enum


# =============================================================================
# Metric calculation
# =============================================================================


class TrendDirection(str, Enum):
    """
    Direction of change between the current and comparison windows.

    - up: volume grew by more than 10%
    - down: volume fell by more than 10%
    - stable: anything in between, including exactly +/-10%
    """
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


class HealthStatus(str, Enum):
    """
    Relationship health of a referral source (or any tracked entity).

    Evaluated critical first:
    - critical: trend down AND conversion below 30%
    - warning: trend down OR conversion below 50% OR SLA compliance below 80%
    - healthy: otherwise
    """
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


# =============================================================================
# Alerting
# =============================================================================


class AlertSeverity(str, Enum):
    """
    Severity for generated trend alerts and stored growth alerts.

    Sorting rank: critical (0) < warning (1) < info (2).
    """
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class AlertType(str, Enum):
    """
    Kind of trend alert raised for an entity.

    relationship_risk is part of the stored vocabulary but is not produced by
    the threshold rules.
    """
    VOLUME_DECLINE = "volume_decline"
    CONVERSION_DECLINE = "conversion_decline"
    SLA_BREACH = "sla_breach"
    RELATIONSHIP_RISK = "relationship_risk"


# =============================================================================
# Revenue operations
# =============================================================================


class PipelineStage(str, Enum):
    """Funnel stage that can be flagged as the primary bottleneck."""
    INTAKE = "intake"
    SCHEDULING = "scheduling"
    COMPLETION = "completion"


class BottleneckStatus(str, Enum):
    """Lifecycle of a revops_bottlenecks row."""
    ACTIVE = "active"
    MONITORING = "monitoring"
    RESOLVED = "resolved"


class GrowthAlertStatus(str, Enum):
    """Lifecycle of a revops_growth_alerts row."""
    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    DISMISSED = "dismissed"
    RESOLVED = "resolved"


# =============================================================================
# Referrals
# =============================================================================


class ReferralStatus(str, Enum):
    """
    Status of an individual referral.

    cancelled and no_show both count as lost referrals.
    """
    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class RiskLevel(str, Enum):
    """Account risk for employer intelligence."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Clinical quality
# =============================================================================


class OutcomeStatus(str, Enum):
    """Status of a clinical outcome episode."""
    ACTIVE = "active"
    COMPLETED = "completed"
    DISCONTINUED = "discontinued"


class PerformanceTier(str, Enum):
    """
    Relative performance bucket for clinics and clinicians.

    Assigned from the percentage difference against the average:
    >= +5% top, > 0 above_avg, >= -5% avg, otherwise below_avg.
    """
    TOP = "top"
    ABOVE_AVG = "above_avg"
    AVG = "avg"
    BELOW_AVG = "below_avg"


class IndicatorCategory(str, Enum):
    CLINICAL = "clinical"
    SATISFACTION = "satisfaction"
    SAFETY = "safety"
    EFFICIENCY = "efficiency"


class IndicatorPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class BenchmarkComparison(str, Enum):
    """Where our value lands against industry percentiles."""
    ABOVE_P90 = "above_p90"
    ABOVE_P75 = "above_p75"
    ABOVE_AVG = "above_avg"
    BELOW_AVG = "below_avg"


# =============================================================================
# Operations
# =============================================================================


class SeedStatus(str, Enum):
    """Outcome reported by the admin seed endpoint."""
    APPLIED = "applied"
    SKIPPED = "skipped"
    ERROR = "error"


class DataSource(str, Enum):
    """
    Provenance of a dashboard payload.

    - live: assembled from rows in the database
    - mock: the fixed fallback dataset, served when the fetch failed or the
      primary table was empty
    """
    LIVE = "live"
    MOCK = "mock"
