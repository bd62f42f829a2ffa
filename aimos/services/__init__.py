"""
Backend Services Module

Business logic for the AIM OS growth intelligence dashboards. Services are
stateless: every function receives the RowStore (or pool) it works against,
so tests can pass in fakes.

Services:
- metrics: Metric calculator (windows, rates, trend, health, lead time stats)
- alerting: Threshold alerting engine over entity metrics
- referrals: Referral intelligence dashboard plus referral reads/writes
- revops: Revenue operations dashboard plus alert/bottleneck workflow writes
- quality: Clinical quality dashboard plus outcome reads/writes
- mock_data: Deterministic fallback payloads and reference fixtures
- admin_seed: Run-once SQL seeds tracked in evidence_version_sets

All services are consumed by the API layer (aimos/api/) and the alert
digest job (aimos/jobs/).
"""

# =============================================================================
# Metric Calculator Exports
# Pure functions over raw rows: windowing, conversion and SLA rates, trend
# direction, health status and time-to-appointment statistics
# =============================================================================

from aimos.services.metrics import (
    MetricWindow,
    TimeToAppointmentStats,
    TrendResult,
    build_entity_metrics,
    build_metric_window,
    classify_performance_tier,
    clinician_label,
    compute_conversion_rate,
    compute_health_status,
    compute_rate_change,
    compute_sla_compliance_rate,
    compute_time_to_appointment_stats,
    compute_trend,
    group_by_key,
)

# =============================================================================
# Alerting Engine Exports
# Volume, conversion and SLA threshold rules ordered by severity
# =============================================================================

from aimos.services.alerting import (
    evaluate_entity_alerts,
    generate_alerts,
    severity_rank,
    sort_alerts_by_severity,
)

# =============================================================================
# Dashboard Service Exports
# Each load_* function falls back to its mock payload on fetch failure or
# empty data and never raises for store errors
# =============================================================================

from aimos.services.referrals import (
    assemble_referral_dashboard,
    create_referral,
    create_referral_source,
    get_employer_accounts,
    get_referral_metrics,
    get_referral_sources,
    get_referrals,
    load_referral_dashboard,
    update_referral_source,
)

from aimos.services.revops import (
    acknowledge_growth_alert,
    assemble_revops_dashboard,
    build_pipeline_snapshot,
    detect_primary_bottleneck,
    dismiss_growth_alert,
    load_revops_dashboard,
    mock_revops_dashboard,
    resolve_bottleneck,
)

from aimos.services.quality import (
    assemble_quality_dashboard,
    create_clinical_outcome,
    get_clinical_outcomes,
    get_clinician_performance,
    get_outcome_metrics,
    load_quality_dashboard,
    update_clinical_outcome,
)

from aimos.services.mock_data import (
    mock_quality_dashboard,
    mock_referral_dashboard,
)

# =============================================================================
# Admin Seed Exports
# =============================================================================

from aimos.services.admin_seed import (
    apply_seed,
    validate_seed_request,
)


__all__ = [
    # Metric calculator
    'MetricWindow',
    'TimeToAppointmentStats',
    'TrendResult',
    'build_entity_metrics',
    'build_metric_window',
    'classify_performance_tier',
    'clinician_label',
    'compute_conversion_rate',
    'compute_health_status',
    'compute_rate_change',
    'compute_sla_compliance_rate',
    'compute_time_to_appointment_stats',
    'compute_trend',
    'group_by_key',
    # Alerting
    'evaluate_entity_alerts',
    'generate_alerts',
    'severity_rank',
    'sort_alerts_by_severity',
    # Referrals
    'assemble_referral_dashboard',
    'create_referral',
    'create_referral_source',
    'get_employer_accounts',
    'get_referral_metrics',
    'get_referral_sources',
    'get_referrals',
    'load_referral_dashboard',
    'update_referral_source',
    # RevOps
    'acknowledge_growth_alert',
    'assemble_revops_dashboard',
    'build_pipeline_snapshot',
    'detect_primary_bottleneck',
    'dismiss_growth_alert',
    'load_revops_dashboard',
    'mock_revops_dashboard',
    'resolve_bottleneck',
    # Quality
    'assemble_quality_dashboard',
    'create_clinical_outcome',
    'get_clinical_outcomes',
    'get_clinician_performance',
    'get_outcome_metrics',
    'load_quality_dashboard',
    'update_clinical_outcome',
    # Mock payloads
    'mock_quality_dashboard',
    'mock_referral_dashboard',
    # Admin seed
    'apply_seed',
    'validate_seed_request',
]
