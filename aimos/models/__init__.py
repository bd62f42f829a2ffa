"""
Package initialization file for aimos models.

Exports all pydantic schemas and enumerations from schemas.py and enums.py so
other modules can import them from ``aimos.models`` directly.

Usage:
    from aimos.models import (
        EntityMetrics,
        Alert,
        HealthStatus,
        ReferralDashboard,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from aimos.models.enums import (
    # Metric calculation
    TrendDirection,
    HealthStatus,
    # Alerting
    AlertSeverity,
    AlertType,
    # Revenue operations
    PipelineStage,
    BottleneckStatus,
    GrowthAlertStatus,
    # Referrals
    ReferralStatus,
    RiskLevel,
    # Clinical quality
    OutcomeStatus,
    PerformanceTier,
    IndicatorCategory,
    IndicatorPriority,
    BenchmarkComparison,
    # Operations
    SeedStatus,
    DataSource,
)

# =============================================================================
# Schemas
# =============================================================================

from aimos.models.schemas import (
    # Derived metrics and alerts
    EntityMetrics,
    Alert,
    # Referral intelligence
    ReferralSourceCreate,
    ReferralSourceUpdate,
    ReferralCreate,
    ReferralSourceWithMetrics,
    ReferralOverview,
    SourceConversion,
    ConversionMetrics,
    SourceTimeToAppointment,
    TimeToAppointmentMetrics,
    EmployerIntelligence,
    ReferralDashboard,
    # Revenue operations
    PipelineSnapshot,
    BottleneckDetection,
    Bottleneck,
    GrowthAlert,
    RevOpsSummary,
    RevOpsDashboard,
    AcknowledgeAlertRequest,
    ResolveBottleneckRequest,
    # Clinical quality
    ClinicalOutcomeCreate,
    ClinicalOutcomeUpdate,
    QualityOverview,
    OutcomeTrend,
    ClinicBenchmark,
    ClinicianPerformance,
    QualityIndicator,
    IndustryBenchmark,
    QualityDashboard,
    # Admin seed
    SeedRequest,
    SeedResponse,
)

__all__ = [
    # Enums
    'TrendDirection',
    'HealthStatus',
    'AlertSeverity',
    'AlertType',
    'PipelineStage',
    'BottleneckStatus',
    'GrowthAlertStatus',
    'ReferralStatus',
    'RiskLevel',
    'OutcomeStatus',
    'PerformanceTier',
    'IndicatorCategory',
    'IndicatorPriority',
    'BenchmarkComparison',
    'SeedStatus',
    'DataSource',
    # Derived metrics and alerts
    'EntityMetrics',
    'Alert',
    # Referral intelligence
    'ReferralSourceCreate',
    'ReferralSourceUpdate',
    'ReferralCreate',
    'ReferralSourceWithMetrics',
    'ReferralOverview',
    'SourceConversion',
    'ConversionMetrics',
    'SourceTimeToAppointment',
    'TimeToAppointmentMetrics',
    'EmployerIntelligence',
    'ReferralDashboard',
    # Revenue operations
    'PipelineSnapshot',
    'BottleneckDetection',
    'Bottleneck',
    'GrowthAlert',
    'RevOpsSummary',
    'RevOpsDashboard',
    'AcknowledgeAlertRequest',
    'ResolveBottleneckRequest',
    # Clinical quality
    'ClinicalOutcomeCreate',
    'ClinicalOutcomeUpdate',
    'QualityOverview',
    'OutcomeTrend',
    'ClinicBenchmark',
    'ClinicianPerformance',
    'QualityIndicator',
    'IndustryBenchmark',
    'QualityDashboard',
    # Admin seed
    'SeedRequest',
    'SeedResponse',
]
