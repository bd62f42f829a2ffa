"""
Pydantic request/response models for the AIM OS Growth Intelligence API.

This module provides type-safe validation and serialization for every API
contract: the derived metric and alert models shared by all dashboards, the
three dashboard payloads (referral intelligence, revenue operations, clinical
quality), the write requests for referral sources, referrals, clinical
outcomes and RevOps status changes, and the admin seed request/response.

Field names follow the snake_case column names of the Supabase tables so rows
can be validated directly with ``Model.model_validate(row)``.

All models use Pydantic v2 syntax.
"""

from datetime import date as DateType, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from aimos.models.enums import (
    AlertSeverity,
    AlertType,
    BenchmarkComparison,
    DataSource,
    HealthStatus,
    IndicatorCategory,
    IndicatorPriority,
    OutcomeStatus,
    PerformanceTier,
    PipelineStage,
    ReferralStatus,
    RiskLevel,
    SeedStatus,
    TrendDirection,
)


# =============================================================================
# Derived Metrics and Alerts (shared by all dashboards)
# =============================================================================


class EntityMetrics(BaseModel):
    """
    Per-entity metrics computed from a current and a comparison window.

    Produced by ``aimos.services.metrics.build_entity_metrics`` on every
    dashboard load and never persisted. Every generated alert is derived from
    one of these.

    Invariants:
    - conversion_rate and sla_compliance_rate lie in [0, 100]
    - trend_percentage is 0 when volume_previous is 0
    """
    model_config = ConfigDict(frozen=True)

    entity_id: str = Field(..., description="Referral source, clinic or clinician id")
    entity_name: str = Field(..., description="Display name of the entity")
    volume_current: int = Field(..., ge=0, description="Row count in the current window")
    volume_previous: int = Field(..., ge=0, description="Row count in the comparison window")
    conversion_rate: float = Field(..., ge=0, le=100)
    sla_compliance_rate: float = Field(..., ge=0, le=100)
    trend_direction: TrendDirection
    trend_percentage: float
    health_status: HealthStatus
    conversion_rate_previous: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="Conversion rate over the comparison window, None when it was empty",
    )
    sla_compliance_rate_previous: Optional[float] = Field(
        default=None,
        ge=0,
        le=100,
        description="SLA compliance over the comparison window, None when it was empty",
    )


class Alert(BaseModel):
    """
    A threshold alert raised for one entity.

    Alerts are regenerated on every computation cycle; the id is derived from
    the rule and the entity so the same condition keeps the same id across
    loads, but no acknowledgment state is attached.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "alert-volume-src-4",
                "severity": "critical",
                "alert_type": "volume_decline",
                "entity_id": "src-4",
                "entity_name": "Metro Sports Medicine",
                "message": "Metro Sports Medicine referrals down 52% vs prior period",
                "current_value": 23,
                "previous_value": 48,
                "change_percentage": -52.08,
                "recommendation": "Schedule relationship review call with key contact. "
                                  "Review recent service quality feedback.",
                "detected_at": "2024-06-30T12:00:00Z",
            }
        }
    )

    id: str
    severity: AlertSeverity
    alert_type: AlertType
    entity_id: str
    entity_name: str
    message: str
    current_value: float
    previous_value: float
    change_percentage: float
    recommendation: str
    detected_at: datetime


# =============================================================================
# Referral Intelligence
# =============================================================================


class ReferralSourceCreate(BaseModel):
    """Request body for POST /referrals/sources."""
    model_config = ConfigDict(str_strip_whitespace=True)

    organization_name: str = Field(..., min_length=1)
    source_type: str = Field(..., description="physician, hospital, employer, insurer, ...")
    relationship_tier: str = Field(default="standard")
    sla_hours: int = Field(default=48, gt=0)
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True


class ReferralSourceUpdate(BaseModel):
    """Request body for PATCH /referrals/sources/{source_id}. Only set fields are written."""
    model_config = ConfigDict(str_strip_whitespace=True)

    organization_name: Optional[str] = Field(default=None, min_length=1)
    source_type: Optional[str] = None
    relationship_tier: Optional[str] = None
    sla_hours: Optional[int] = Field(default=None, gt=0)
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class ReferralCreate(BaseModel):
    """Request body for POST /referrals/."""
    model_config = ConfigDict(str_strip_whitespace=True)

    patient_reference: str = Field(..., min_length=1)
    referral_date: DateType
    referral_source_id: Optional[str] = None
    clinic_id: Optional[str] = None
    first_appointment_date: Optional[DateType] = None
    referral_status: ReferralStatus = ReferralStatus.PENDING
    sla_met: Optional[bool] = None
    hours_to_first_appointment: Optional[float] = Field(default=None, ge=0)
    converted: bool = False


class ReferralSourceWithMetrics(BaseModel):
    """A referral source row joined with its 30/60 day derived metrics."""
    id: str
    organization_name: str
    source_type: Optional[str] = None
    relationship_tier: Optional[str] = None
    sla_hours: Optional[int] = None
    contact_person: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    is_active: bool = True
    referral_count_30d: int
    referral_count_60d: int
    conversion_rate: float
    avg_time_to_first_appt: float = Field(..., description="Days, 0 when no appointment data")
    sla_compliance_rate: float
    revenue_30d: float
    trend: TrendDirection
    trend_percentage: float
    health_status: HealthStatus


class ReferralOverview(BaseModel):
    total_sources: int
    active_sources: int
    total_referrals_30d: int
    total_referrals_60d: int
    overall_conversion_rate: float
    avg_time_to_first_appt: float
    sla_compliance_rate: float
    total_revenue_30d: float
    revenue_at_risk: float = Field(
        ...,
        description="30-day revenue of sources whose health is not healthy",
    )


class SourceConversion(BaseModel):
    source_id: str
    source_name: str
    referrals: int
    conversions: int
    rate: float


class ConversionMetrics(BaseModel):
    total_referrals: int
    converted_referrals: int
    conversion_rate: float
    pending_referrals: int
    lost_referrals: int = Field(..., description="cancelled + no_show")
    avg_conversion_days: float
    conversion_by_source: List[SourceConversion]


class SourceTimeToAppointment(BaseModel):
    source_id: str
    source_name: str
    avg_days: float
    sla_compliance: float


class TimeToAppointmentMetrics(BaseModel):
    """Distribution of time from referral to first appointment."""
    avg_days: float
    median_days: float
    within_24h: int
    within_48h: int
    within_72h: int
    over_72h: int
    by_source: List[SourceTimeToAppointment]


class EmployerIntelligence(BaseModel):
    employer_id: str
    employer_name: str
    employee_count: int
    referral_volume_30d: int
    referral_volume_trend: TrendDirection
    conversion_rate: float
    avg_revenue_per_employee: float
    total_revenue_30d: float
    contract_value: float
    health_score: int = Field(..., ge=0, le=100)
    last_referral_date: datetime
    days_since_last_referral: int
    risk_level: RiskLevel


class ReferralDashboard(BaseModel):
    """Response model for GET /referrals/dashboard."""
    data_source: DataSource
    generated_at: datetime
    overview: ReferralOverview
    sources_with_metrics: List[ReferralSourceWithMetrics]
    conversion_metrics: ConversionMetrics
    time_to_appt_metrics: TimeToAppointmentMetrics
    trend_alerts: List[Alert]
    employer_intelligence: List[EmployerIntelligence]


# =============================================================================
# Revenue Operations
# =============================================================================


class PipelineSnapshot(BaseModel):
    """
    One revops_pipeline_metrics row with its stage conversion rates recomputed
    from the stage counts, and the primary bottleneck detected from them.
    """
    id: Optional[str] = None
    clinic_id: Optional[str] = None
    period_start: Optional[DateType] = None
    period_end: Optional[DateType] = None
    marketing_leads: int = 0
    marketing_spend: float = 0.0
    intake_qualified: int = 0
    appointments_scheduled: int = 0
    appointments_completed: int = 0
    total_revenue: float = 0.0
    intake_conversion_rate: float = 0.0
    schedule_conversion_rate: float = 0.0
    completion_rate: float = 0.0
    overall_conversion_rate: float = 0.0
    revenue_per_appointment: float = 0.0
    revenue_per_lead: float = 0.0
    marketing_roi: float = 0.0
    primary_bottleneck: Optional[PipelineStage] = None
    bottleneck_severity: Optional[AlertSeverity] = None


class BottleneckDetection(BaseModel):
    """Result of comparing each funnel stage against its benchmark rate."""
    stage: PipelineStage
    severity: AlertSeverity
    actual_rate: float
    benchmark_rate: float
    shortfall: float = Field(..., description="Percentage points below benchmark")


class Bottleneck(BaseModel):
    """A revops_bottlenecks row. Unknown columns are passed through."""
    model_config = ConfigDict(extra='allow')

    id: str
    clinic_id: Optional[str] = None
    bottleneck_stage: str
    severity: str = Field(..., description="critical, warning or info")
    appointments_delayed: int = 0
    appointments_lost: int = 0
    revenue_delayed: float = 0.0
    revenue_lost: float = 0.0
    root_cause: Optional[str] = None
    contributing_factors: List[str] = Field(default_factory=list)
    recommended_actions: List[str] = Field(default_factory=list)
    status: str = "active"
    priority: int = 0
    detected_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    notes: Optional[str] = None

    @field_validator('contributing_factors', 'recommended_actions', mode='before')
    @classmethod
    def _null_list_to_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator('appointments_delayed', 'appointments_lost', 'revenue_delayed',
                     'revenue_lost', 'priority', mode='before')
    @classmethod
    def _null_number_to_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator('status', mode='before')
    @classmethod
    def _null_status_to_active(cls, value: Any) -> Any:
        return "active" if value is None else value


class GrowthAlert(BaseModel):
    """A revops_growth_alerts row. Unknown columns are passed through."""
    model_config = ConfigDict(extra='allow')

    id: str
    clinic_id: Optional[str] = None
    alert_type: str
    severity: str = Field(..., description="critical, warning or info")
    current_demand: float = 0.0
    current_capacity: float = 0.0
    gap_percentage: float = 0.0
    potential_revenue_loss: float = 0.0
    revenue_opportunity: float = 0.0
    recommended_action: Optional[str] = None
    action_details: Dict[str, Any] = Field(default_factory=dict)
    status: str = "active"
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    triggered_at: Optional[datetime] = None

    @field_validator('action_details', mode='before')
    @classmethod
    def _null_details_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @field_validator('current_demand', 'current_capacity', 'gap_percentage',
                     'potential_revenue_loss', 'revenue_opportunity', mode='before')
    @classmethod
    def _null_number_to_zero(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator('status', mode='before')
    @classmethod
    def _null_status_to_active(cls, value: Any) -> Any:
        return "active" if value is None else value


class RevOpsSummary(BaseModel):
    latest_period_revenue: float
    revenue_per_hour: float
    utilization_rate: float
    capacity_gap: float
    bottlenecks_count: int
    alerts_count: int
    marketing_roi: float
    overall_conversion_rate: float


class RevOpsDashboard(BaseModel):
    """Response model for GET /revops/dashboard."""
    data_source: DataSource
    generated_at: datetime
    pipeline_metrics: List[PipelineSnapshot]
    latest_pipeline: Optional[PipelineSnapshot] = None
    capacity_metrics: List[Dict[str, Any]]
    latest_capacity: Optional[Dict[str, Any]] = None
    active_bottlenecks: List[Bottleneck]
    clinician_productivity: List[Dict[str, Any]]
    growth_alerts: List[GrowthAlert]
    summary: RevOpsSummary


class AcknowledgeAlertRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class ResolveBottleneckRequest(BaseModel):
    notes: Optional[str] = None


# =============================================================================
# Clinical Quality
# =============================================================================


class ClinicalOutcomeCreate(BaseModel):
    """Request body for POST /quality/outcomes."""
    model_config = ConfigDict(str_strip_whitespace=True)

    clinic_id: str = Field(..., min_length=1)
    episode_reference: str = Field(..., min_length=1)
    metric_id: Optional[str] = None
    clinician_id: Optional[str] = None
    baseline_value: Optional[float] = None
    final_value: Optional[float] = None
    improvement_percentage: Optional[float] = None
    episode_start_date: Optional[DateType] = None
    episode_end_date: Optional[DateType] = None
    outcome_status: OutcomeStatus = OutcomeStatus.ACTIVE
    notes: Optional[str] = None


class ClinicalOutcomeUpdate(BaseModel):
    """Request body for PATCH /quality/outcomes/{outcome_id}."""
    clinician_id: Optional[str] = None
    metric_id: Optional[str] = None
    baseline_value: Optional[float] = None
    final_value: Optional[float] = None
    improvement_percentage: Optional[float] = None
    episode_start_date: Optional[DateType] = None
    episode_end_date: Optional[DateType] = None
    outcome_status: Optional[OutcomeStatus] = None
    notes: Optional[str] = None


class QualityOverview(BaseModel):
    total_episodes: int
    completed_episodes: int
    active_episodes: int
    avg_improvement: float
    patient_satisfaction_avg: float
    clinician_count: int
    excellent_outcomes_pct: float
    readmission_rate: float


class OutcomeTrend(BaseModel):
    period: str = Field(..., description="YYYY-MM")
    month: str = Field(..., description="Abbreviated month name")
    total_episodes: int
    avg_improvement: float
    patient_satisfaction: float
    completion_rate: float
    excellent_outcomes: int


class ClinicBenchmark(BaseModel):
    clinic_id: str
    clinic_name: str
    total_episodes: int
    avg_improvement: float
    patient_satisfaction: float
    completion_rate: float
    excellent_outcomes_pct: float
    vs_network_avg: float
    rank: int
    total_clinics: int
    performance_tier: PerformanceTier


class ClinicianPerformance(BaseModel):
    """Clinician results with the identity replaced by a letter label."""
    clinician_id: str
    clinician_label: str
    specialty: Optional[str] = None
    total_episodes: int
    avg_improvement: float
    patient_satisfaction: float
    completion_rate: float
    excellent_outcomes_pct: float
    vs_avg: float
    performance_tier: PerformanceTier


class QualityIndicator(BaseModel):
    indicator_name: str
    category: IndicatorCategory
    current_value: float
    target_value: float
    unit: str
    trend: TrendDirection
    meets_target: bool
    priority: IndicatorPriority


class IndustryBenchmark(BaseModel):
    metric_name: str
    our_value: float
    industry_p50: float
    industry_p75: float
    industry_p90: float
    unit: str
    comparison: BenchmarkComparison


class QualityDashboard(BaseModel):
    """Response model for GET /quality/dashboard."""
    data_source: DataSource
    generated_at: datetime
    overview: QualityOverview
    outcome_trends: List[OutcomeTrend]
    clinic_benchmarks: List[ClinicBenchmark]
    clinician_performance: List[ClinicianPerformance]
    quality_indicators: List[QualityIndicator]
    industry_benchmarks: List[IndustryBenchmark]


# =============================================================================
# Admin Seed
# =============================================================================


class SeedRequest(BaseModel):
    """
    Body of POST /admin/seed.

    Validated by the endpoint itself so that a malformed body yields 400
    rather than FastAPI's default 422.
    """
    seed_name: str = Field(..., min_length=3)
    sql_content: str = Field(..., min_length=1)


class SeedResponse(BaseModel):
    status: SeedStatus
    message: str
    seed_name: Optional[str] = None
    detail: Optional[str] = None
