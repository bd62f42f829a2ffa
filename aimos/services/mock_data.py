"""
Fixed fallback datasets and reference fixtures for the dashboards.

Two kinds of data live here:

Reference fixtures
    Values the product shows alongside live data because no table backs them
    yet: employer intelligence, quality indicators, industry benchmarks and the
    30-day readmission rate.

Mock fallback datasets
    The payloads served when a dashboard fetch fails or its primary table is
    empty, so the dashboards always render a usable demo state. They are
    anchored to MOCK_SNAPSHOT_AT and contain no randomness: two calls return
    identical payloads. Trends, health, tiers and alerts in the mock payloads
    are computed by the same calculator and alerting code as live data.

RevOps fallback rows are exposed as raw rows (MOCK_PIPELINE_ROWS, ...) and are
assembled by aimos.services.revops through the live code path.
"""

import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List

from aimos.models.enums import (
    BenchmarkComparison,
    DataSource,
    IndicatorCategory,
    IndicatorPriority,
    TrendDirection,
)
from aimos.models.schemas import (
    ClinicBenchmark,
    ClinicianPerformance,
    ConversionMetrics,
    EmployerIntelligence,
    EntityMetrics,
    IndustryBenchmark,
    OutcomeTrend,
    QualityDashboard,
    QualityIndicator,
    QualityOverview,
    ReferralDashboard,
    ReferralOverview,
    ReferralSourceWithMetrics,
    SourceConversion,
    SourceTimeToAppointment,
    TimeToAppointmentMetrics,
)
from aimos.services.alerting import generate_alerts
from aimos.services.metrics import (
    classify_performance_tier,
    clinician_label,
    compute_health_status,
    compute_trend,
)


MOCK_SNAPSHOT_AT = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)
MOCK_SNAPSHOT_DATE = MOCK_SNAPSHOT_AT.date()

READMISSION_RATE_30D = 3.2


# =============================================================================
# Reference fixtures
# =============================================================================

_EMPLOYERS: List[Dict[str, Any]] = [
    {
        'employer_id': 'emp-1', 'employer_name': 'TechCorp Industries',
        'employee_count': 1250, 'referral_volume_30d': 47, 'referral_volume_trend': 'up',
        'conversion_rate': 78.5, 'avg_revenue_per_employee': 68, 'total_revenue_30d': 85100,
        'contract_value': 1200000, 'health_score': 92, 'days_since_last_referral': 2,
        'risk_level': 'low',
    },
    {
        'employer_id': 'emp-2', 'employer_name': 'Healthcare Partners LLC',
        'employee_count': 850, 'referral_volume_30d': 32, 'referral_volume_trend': 'stable',
        'conversion_rate': 72.3, 'avg_revenue_per_employee': 71, 'total_revenue_30d': 60350,
        'contract_value': 850000, 'health_score': 85, 'days_since_last_referral': 5,
        'risk_level': 'low',
    },
    {
        'employer_id': 'emp-3', 'employer_name': 'Manufacturing Solutions Inc',
        'employee_count': 620, 'referral_volume_30d': 18, 'referral_volume_trend': 'down',
        'conversion_rate': 55.6, 'avg_revenue_per_employee': 48, 'total_revenue_30d': 29760,
        'contract_value': 480000, 'health_score': 62, 'days_since_last_referral': 18,
        'risk_level': 'high',
    },
    {
        'employer_id': 'emp-4', 'employer_name': 'City School District',
        'employee_count': 2100, 'referral_volume_30d': 25, 'referral_volume_trend': 'down',
        'conversion_rate': 64.0, 'avg_revenue_per_employee': 22, 'total_revenue_30d': 46200,
        'contract_value': 720000, 'health_score': 68, 'days_since_last_referral': 12,
        'risk_level': 'medium',
    },
]


def employer_intelligence(as_of: datetime) -> List[EmployerIntelligence]:
    """
    Employer account intelligence, healthiest account first.

    Args:
        as_of: Reference time used to derive last_referral_date from
            days_since_last_referral.
    """
    employers = [
        EmployerIntelligence(
            **employer,
            last_referral_date=as_of - timedelta(days=employer['days_since_last_referral']),
        )
        for employer in _EMPLOYERS
    ]
    return sorted(employers, key=lambda e: e.health_score, reverse=True)


def quality_indicators() -> List[QualityIndicator]:
    """Quality indicators tracked against internal targets."""
    rows = [
        ('Patient Functional Improvement', 'clinical', 71.2, 70.0, '%', 'up', 'high'),
        ('Patient Satisfaction Score', 'satisfaction', 8.9, 8.5, '/10', 'up', 'high'),
        ('Episode Completion Rate', 'clinical', 93.5, 90.0, '%', 'stable', 'medium'),
        ('Readmission Rate (30-day)', 'safety', READMISSION_RATE_30D, 5.0, '%', 'down', 'high'),
        ('Average Treatment Duration', 'efficiency', 8.3, 9.0, 'weeks', 'down', 'medium'),
        ('Excellent Outcomes Rate', 'clinical', 78.5, 75.0, '%', 'up', 'high'),
        ('Patient Referral Rate', 'satisfaction', 67.3, 65.0, '%', 'stable', 'low'),
        ('Care Plan Adherence', 'clinical', 86.7, 85.0, '%', 'up', 'medium'),
    ]
    # Lower is better for readmissions and treatment duration
    lower_is_better = {'Readmission Rate (30-day)', 'Average Treatment Duration'}

    indicators = []
    for name, category, current, target, unit, trend, priority in rows:
        meets = current <= target if name in lower_is_better else current >= target
        indicators.append(QualityIndicator(
            indicator_name=name,
            category=IndicatorCategory(category),
            current_value=current,
            target_value=target,
            unit=unit,
            trend=TrendDirection(trend),
            meets_target=meets,
            priority=IndicatorPriority(priority),
        ))
    return indicators


def industry_benchmarks() -> List[IndustryBenchmark]:
    """Our results against industry percentile benchmarks."""
    rows = [
        ('Functional Improvement', 71.2, 65.0, 68.5, 72.0, '%', 'above_p75'),
        ('Patient Satisfaction', 8.9, 8.2, 8.6, 9.1, '/10', 'above_p75'),
        ('Completion Rate', 93.5, 87.0, 90.5, 94.0, '%', 'above_p90'),
        ('Readmission Rate', READMISSION_RATE_30D, 6.5, 4.8, 3.5, '%', 'above_p90'),
        ('Treatment Duration', 8.3, 10.2, 9.1, 8.5, 'weeks', 'above_p75'),
        ('Net Promoter Score', 72, 58, 65, 73, 'score', 'above_p75'),
    ]
    return [
        IndustryBenchmark(
            metric_name=name,
            our_value=ours,
            industry_p50=p50,
            industry_p75=p75,
            industry_p90=p90,
            unit=unit,
            comparison=BenchmarkComparison(comparison),
        )
        for name, ours, p50, p75, p90, unit, comparison in rows
    ]


# =============================================================================
# Referral intelligence fallback
# =============================================================================

_MOCK_SOURCES: List[Dict[str, Any]] = [
    {
        'id': 'src-1', 'organization_name': 'Premier Orthopedics',
        'contact_person': 'Dr. Sarah Johnson', 'contact_email': 'sjohnson@premierortho.com',
        'contact_phone': '555-0101', 'source_type': 'physician', 'relationship_tier': 'platinum',
        'sla_hours': 24, 'current': 67, 'previous': 58, 'conversion_rate': 82.5,
        'avg_time_to_first_appt': 1.8, 'sla_compliance_rate': 94.2, 'revenue_30d': 102350,
    },
    {
        'id': 'src-2', 'organization_name': 'Community Health Network',
        'contact_person': 'Maria Rodriguez', 'contact_email': 'mrodriguez@chn.org',
        'contact_phone': '555-0102', 'source_type': 'hospital', 'relationship_tier': 'gold',
        'sla_hours': 48, 'current': 45, 'previous': 52, 'conversion_rate': 68.9,
        'avg_time_to_first_appt': 2.4, 'sla_compliance_rate': 87.3, 'revenue_30d': 57405,
    },
    {
        'id': 'src-3', 'organization_name': 'WorkWell Corporate Health',
        'contact_person': 'James Chen', 'contact_email': 'jchen@workwell.com',
        'contact_phone': '555-0103', 'source_type': 'employer', 'relationship_tier': 'platinum',
        'sla_hours': 24, 'current': 89, 'previous': 87, 'conversion_rate': 76.4,
        'avg_time_to_first_appt': 2.1, 'sla_compliance_rate': 91.0, 'revenue_30d': 125860,
    },
    {
        'id': 'src-4', 'organization_name': 'Metro Sports Medicine',
        'contact_person': 'Dr. Michael Thompson', 'contact_email': 'mthompson@metrosports.com',
        'contact_phone': '555-0104', 'source_type': 'physician', 'relationship_tier': 'gold',
        'sla_hours': 48, 'current': 23, 'previous': 48, 'conversion_rate': 34.8,
        'avg_time_to_first_appt': 3.8, 'sla_compliance_rate': 52.2, 'revenue_30d': 14810,
    },
]


def _mock_source_metrics(source: Dict[str, Any]) -> EntityMetrics:
    trend = compute_trend(source['current'], source['previous'])
    return EntityMetrics(
        entity_id=source['id'],
        entity_name=source['organization_name'],
        volume_current=source['current'],
        volume_previous=source['previous'],
        conversion_rate=source['conversion_rate'],
        sla_compliance_rate=source['sla_compliance_rate'],
        trend_direction=trend.direction,
        trend_percentage=trend.percentage,
        health_status=compute_health_status(
            trend.direction, source['conversion_rate'], source['sla_compliance_rate']
        ),
    )


def mock_referral_dashboard() -> ReferralDashboard:
    """Referral intelligence payload used when referral data is unavailable."""
    metrics = [_mock_source_metrics(source) for source in _MOCK_SOURCES]

    sources = [
        ReferralSourceWithMetrics(
            id=source['id'],
            organization_name=source['organization_name'],
            source_type=source['source_type'],
            relationship_tier=source['relationship_tier'],
            sla_hours=source['sla_hours'],
            contact_person=source['contact_person'],
            contact_email=source['contact_email'],
            contact_phone=source['contact_phone'],
            is_active=True,
            referral_count_30d=m.volume_current,
            referral_count_60d=m.volume_previous,
            conversion_rate=m.conversion_rate,
            avg_time_to_first_appt=source['avg_time_to_first_appt'],
            sla_compliance_rate=m.sla_compliance_rate,
            revenue_30d=source['revenue_30d'],
            trend=m.trend_direction,
            trend_percentage=m.trend_percentage,
            health_status=m.health_status,
        )
        for source, m in zip(_MOCK_SOURCES, metrics)
    ]

    overview = ReferralOverview(
        total_sources=47,
        active_sources=42,
        total_referrals_30d=224,
        total_referrals_60d=245,
        overall_conversion_rate=71.4,
        avg_time_to_first_appt=2.3,
        sla_compliance_rate=86.2,
        total_revenue_30d=300425,
        revenue_at_risk=89500,
    )

    conversion_metrics = ConversionMetrics(
        total_referrals=224,
        converted_referrals=160,
        conversion_rate=71.4,
        pending_referrals=38,
        lost_referrals=26,
        avg_conversion_days=3.2,
        conversion_by_source=[
            SourceConversion(
                source_id=s.id,
                source_name=s.organization_name,
                referrals=s.referral_count_30d,
                conversions=math.floor(s.referral_count_30d * s.conversion_rate / 100),
                rate=s.conversion_rate,
            )
            for s in sources
        ],
    )

    time_to_appt_metrics = TimeToAppointmentMetrics(
        avg_days=2.3,
        median_days=2.0,
        within_24h=78,
        within_48h=123,
        within_72h=168,
        over_72h=56,
        by_source=[
            SourceTimeToAppointment(
                source_id=s.id,
                source_name=s.organization_name,
                avg_days=s.avg_time_to_first_appt,
                sla_compliance=s.sla_compliance_rate,
            )
            for s in sources
        ],
    )

    return ReferralDashboard(
        data_source=DataSource.MOCK,
        generated_at=MOCK_SNAPSHOT_AT,
        overview=overview,
        sources_with_metrics=sources,
        conversion_metrics=conversion_metrics,
        time_to_appt_metrics=time_to_appt_metrics,
        trend_alerts=generate_alerts(metrics, detected_at=MOCK_SNAPSHOT_AT),
        employer_intelligence=employer_intelligence(MOCK_SNAPSHOT_AT),
    )


# =============================================================================
# Revenue operations fallback rows
# =============================================================================

MOCK_PIPELINE_ROWS: List[Dict[str, Any]] = [
    {
        'id': 'pm-1', 'clinic_id': 'clinic-1',
        'period_start': date(2024, 6, 24), 'period_end': date(2024, 6, 30),
        'marketing_leads': 420, 'marketing_spend': 18500.0,
        'intake_qualified': 273, 'appointments_scheduled': 191, 'appointments_completed': 168,
        'total_revenue': 310800.0,
    },
    {
        'id': 'pm-2', 'clinic_id': 'clinic-1',
        'period_start': date(2024, 6, 17), 'period_end': date(2024, 6, 23),
        'marketing_leads': 398, 'marketing_spend': 17900.0,
        'intake_qualified': 251, 'appointments_scheduled': 199, 'appointments_completed': 171,
        'total_revenue': 316350.0,
    },
]

MOCK_CAPACITY_ROWS: List[Dict[str, Any]] = [
    {
        'id': 'cm-1', 'clinic_id': 'clinic-1',
        'period_start': date(2024, 6, 24), 'period_end': date(2024, 6, 30),
        'total_clinicians': 14, 'active_clinicians': 12,
        'total_available_hours': 480.0, 'booked_hours': 418.0, 'completed_hours': 396.0,
        'utilization_rate': 87.1, 'efficiency_rate': 94.7,
        'total_revenue': 310800.0, 'revenue_per_hour': 784.85, 'revenue_per_clinician': 25900.0,
        'hours_at_capacity': 22.0, 'constrained_demand': 31, 'estimated_lost_revenue': 57350.0,
        'demand_growth_rate': 8.4, 'capacity_growth_rate': 2.1, 'capacity_gap': 6.3,
    },
    {
        'id': 'cm-2', 'clinic_id': 'clinic-1',
        'period_start': date(2024, 6, 17), 'period_end': date(2024, 6, 23),
        'total_clinicians': 14, 'active_clinicians': 12,
        'total_available_hours': 480.0, 'booked_hours': 401.0, 'completed_hours': 388.0,
        'utilization_rate': 83.5, 'efficiency_rate': 96.8,
        'total_revenue': 316350.0, 'revenue_per_hour': 815.34, 'revenue_per_clinician': 26362.5,
        'hours_at_capacity': 14.0, 'constrained_demand': 19, 'estimated_lost_revenue': 35150.0,
        'demand_growth_rate': 6.9, 'capacity_growth_rate': 2.1, 'capacity_gap': 4.8,
    },
]

MOCK_BOTTLENECK_ROWS: List[Dict[str, Any]] = [
    {
        'id': 'bn-1', 'clinic_id': 'clinic-1', 'bottleneck_stage': 'scheduling',
        'severity': 'warning', 'appointments_delayed': 38, 'appointments_lost': 14,
        'revenue_delayed': 70300.0, 'revenue_lost': 25900.0,
        'root_cause': 'Front desk scheduling backlog during peak intake hours',
        'contributing_factors': [
            'Two front desk vacancies',
            'Manual insurance verification before booking',
        ],
        'recommended_actions': [
            'Enable online self-scheduling for qualified referrals',
            'Batch insurance verification after booking',
        ],
        'status': 'active', 'priority': 8, 'detected_at': MOCK_SNAPSHOT_AT - timedelta(days=3),
    },
    {
        'id': 'bn-2', 'clinic_id': 'clinic-1', 'bottleneck_stage': 'completion',
        'severity': 'info', 'appointments_delayed': 9, 'appointments_lost': 5,
        'revenue_delayed': 16650.0, 'revenue_lost': 9250.0,
        'root_cause': 'Elevated no-show rate for late afternoon slots',
        'contributing_factors': ['No reminder for same-day appointments'],
        'recommended_actions': ['Send SMS reminders two hours before late slots'],
        'status': 'monitoring', 'priority': 4, 'detected_at': MOCK_SNAPSHOT_AT - timedelta(days=10),
    },
]

MOCK_PRODUCTIVITY_ROWS: List[Dict[str, Any]] = [
    {
        'id': 'cp-1', 'clinician_id': 'clinician-1', 'clinic_id': 'clinic-1',
        'period_start': date(2024, 6, 24), 'period_end': date(2024, 6, 30),
        'scheduled_hours': 40.0, 'worked_hours': 38.5, 'productive_hours': 35.0,
        'patients_seen': 42, 'appointments_completed': 44, 'total_revenue': 30525.0,
        'revenue_per_hour': 872.14, 'utilization_rate': 91.0, 'rebooking_rate': 84.0,
    },
    {
        'id': 'cp-2', 'clinician_id': 'clinician-2', 'clinic_id': 'clinic-1',
        'period_start': date(2024, 6, 24), 'period_end': date(2024, 6, 30),
        'scheduled_hours': 40.0, 'worked_hours': 37.0, 'productive_hours': 32.5,
        'patients_seen': 38, 'appointments_completed': 39, 'total_revenue': 26825.0,
        'revenue_per_hour': 825.38, 'utilization_rate': 87.8, 'rebooking_rate': 79.5,
    },
    {
        'id': 'cp-3', 'clinician_id': 'clinician-3', 'clinic_id': 'clinic-1',
        'period_start': date(2024, 6, 24), 'period_end': date(2024, 6, 30),
        'scheduled_hours': 32.0, 'worked_hours': 30.0, 'productive_hours': 25.5,
        'patients_seen': 29, 'appointments_completed': 30, 'total_revenue': 18500.0,
        'revenue_per_hour': 725.49, 'utilization_rate': 85.0, 'rebooking_rate': 71.0,
    },
]

MOCK_GROWTH_ALERT_ROWS: List[Dict[str, Any]] = [
    {
        'id': 'ga-1', 'clinic_id': 'clinic-1', 'alert_type': 'capacity_constraint',
        'severity': 'warning', 'current_demand': 452.0, 'current_capacity': 418.0,
        'gap_percentage': 8.1, 'potential_revenue_loss': 57350.0, 'revenue_opportunity': 62900.0,
        'recommended_action': 'Add two evening clinician shifts',
        'action_details': {'shifts': 2, 'days': ['Tue', 'Thu']},
        'status': 'active', 'triggered_at': MOCK_SNAPSHOT_AT - timedelta(days=2),
    },
    {
        'id': 'ga-2', 'clinic_id': 'clinic-1', 'alert_type': 'demand_surge',
        'severity': 'critical', 'current_demand': 498.0, 'current_capacity': 418.0,
        'gap_percentage': 19.1, 'potential_revenue_loss': 148000.0, 'revenue_opportunity': 155400.0,
        'recommended_action': 'Open recruiting for one full-time physiotherapist',
        'action_details': {'role': 'PT', 'fte': 1.0},
        'status': 'acknowledged', 'acknowledged_by': 'ops-lead',
        'acknowledged_at': MOCK_SNAPSHOT_AT - timedelta(days=1),
        'triggered_at': MOCK_SNAPSHOT_AT - timedelta(days=4),
    },
    {
        'id': 'ga-3', 'clinic_id': 'clinic-1', 'alert_type': 'utilization_opportunity',
        'severity': 'info', 'current_demand': 120.0, 'current_capacity': 132.0,
        'gap_percentage': -9.1, 'potential_revenue_loss': 0.0, 'revenue_opportunity': 22200.0,
        'recommended_action': 'Promote Monday morning availability to employer accounts',
        'action_details': {},
        'status': 'active', 'triggered_at': MOCK_SNAPSHOT_AT - timedelta(days=6),
    },
]


# =============================================================================
# Clinical quality fallback
# =============================================================================

_MOCK_CLINICS = [
    ('clinic-1', 'Downtown Physical Therapy', 287, 72.5, 9.1, 95.2, 82.3),
    ('clinic-2', 'Westside Rehabilitation Center', 245, 69.8, 8.8, 93.5, 78.9),
    ('clinic-3', 'Northpoint Sports Medicine', 198, 71.2, 8.9, 94.1, 80.5),
    ('clinic-4', 'Eastgate Wellness Clinic', 176, 66.3, 8.5, 90.8, 74.2),
    ('clinic-5', 'Southside Therapy Group', 164, 68.9, 8.7, 92.3, 77.1),
    ('clinic-6', 'Central Health & Rehab', 143, 64.7, 8.3, 89.5, 71.8),
]

_SPECIALTIES = ['PT', 'OT', 'Sports Med', 'Orthopedic', 'Neuro']

# Reference improvement level clinicians are compared against in the demo data
_MOCK_CLINICIAN_BASELINE = 68.0

_MONTHS = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun']


def _mock_outcome_trends() -> List[OutcomeTrend]:
    base_episodes, base_improvement, base_satisfaction = 145, 68.0, 8.3

    trends = []
    for index, month in enumerate(_MONTHS):
        trend = index * 0.08
        variance = math.sin(index) * 5
        trends.append(OutcomeTrend(
            period=f"{MOCK_SNAPSHOT_DATE.year}-{index + 1:02d}",
            month=month,
            total_episodes=math.floor(base_episodes + index * 12 + variance),
            avg_improvement=base_improvement + trend * 10 + variance / 2,
            patient_satisfaction=base_satisfaction + trend + variance / 10,
            completion_rate=92 + trend * 5 + variance / 3,
            excellent_outcomes=math.floor((base_episodes + index * 12) * (0.75 + trend)),
        ))
    return trends


def _mock_clinic_benchmarks() -> List[ClinicBenchmark]:
    network_avg = sum(clinic[3] for clinic in _MOCK_CLINICS) / len(_MOCK_CLINICS)
    ranked = sorted(_MOCK_CLINICS, key=lambda clinic: clinic[3], reverse=True)

    benchmarks = []
    for rank, (clinic_id, name, episodes, improvement, satisfaction, completion, excellent) in enumerate(ranked, start=1):
        vs_network = (improvement - network_avg) / network_avg * 100
        benchmarks.append(ClinicBenchmark(
            clinic_id=clinic_id,
            clinic_name=name,
            total_episodes=episodes,
            avg_improvement=improvement,
            patient_satisfaction=satisfaction,
            completion_rate=completion,
            excellent_outcomes_pct=excellent,
            vs_network_avg=vs_network,
            rank=rank,
            total_clinics=len(ranked),
            performance_tier=classify_performance_tier(vs_network),
        ))
    return benchmarks


def _mock_clinician_performance() -> List[ClinicianPerformance]:
    clinicians = []
    for i in range(12):
        wobble = math.sin(i + 1)
        improvement = 70 - i * 3 + wobble * 5
        vs_avg = (improvement - _MOCK_CLINICIAN_BASELINE) / _MOCK_CLINICIAN_BASELINE * 100
        clinicians.append({
            'clinician_id': f"clinician-{i + 1}",
            'specialty': _SPECIALTIES[i % len(_SPECIALTIES)],
            'total_episodes': math.floor(195 - i * 12 + wobble * 15),
            'avg_improvement': improvement,
            'patient_satisfaction': 9.15 - i * 0.15 + wobble * 0.25,
            'completion_rate': 96 - i * 1.2 + wobble * 2,
            'excellent_outcomes_pct': 84 - i * 2 + wobble * 4,
            'vs_avg': vs_avg,
            'performance_tier': classify_performance_tier(vs_avg),
        })

    clinicians.sort(key=lambda c: c['avg_improvement'], reverse=True)
    return [
        ClinicianPerformance(clinician_label=clinician_label(index), **clinician)
        for index, clinician in enumerate(clinicians)
    ]


def mock_quality_dashboard() -> QualityDashboard:
    """Clinical quality payload used when outcome data is unavailable."""
    return QualityDashboard(
        data_source=DataSource.MOCK,
        generated_at=MOCK_SNAPSHOT_AT,
        overview=QualityOverview(
            total_episodes=1213,
            completed_episodes=1089,
            active_episodes=124,
            avg_improvement=71.2,
            patient_satisfaction_avg=8.9,
            clinician_count=12,
            excellent_outcomes_pct=78.5,
            readmission_rate=READMISSION_RATE_30D,
        ),
        outcome_trends=_mock_outcome_trends(),
        clinic_benchmarks=_mock_clinic_benchmarks(),
        clinician_performance=_mock_clinician_performance(),
        quality_indicators=quality_indicators(),
        industry_benchmarks=industry_benchmarks(),
    )
