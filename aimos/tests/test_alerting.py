"""
Tests for the threshold alerting engine (aimos.services.alerting).

Covers the three rules (volume decline, conversion decline, SLA breach), the
global severity ordering and the Metro Sports Medicine acceptance scenario.
"""

from datetime import datetime, timezone

import pytest

from aimos.models.enums import AlertSeverity, AlertType, HealthStatus, TrendDirection
from aimos.models.schemas import Alert, EntityMetrics
from aimos.services.alerting import (
    BASELINE_CONVERSION_RATE,
    RECOMMENDATIONS,
    evaluate_entity_alerts,
    generate_alerts,
    severity_rank,
    sort_alerts_by_severity,
)
from aimos.services.metrics import build_entity_metrics


DETECTED_AT = datetime(2024, 6, 30, 12, 0, tzinfo=timezone.utc)


def make_metrics(**overrides) -> EntityMetrics:
    values = dict(
        entity_id='src-1',
        entity_name='Valley Orthopedics',
        volume_current=50,
        volume_previous=50,
        conversion_rate=90.0,
        sla_compliance_rate=95.0,
        trend_direction=TrendDirection.STABLE,
        trend_percentage=0.0,
        health_status=HealthStatus.HEALTHY,
    )
    values.update(overrides)
    return EntityMetrics(**values)


def make_alert(alert_id: str, severity: AlertSeverity) -> Alert:
    return Alert(
        id=alert_id,
        severity=severity,
        alert_type=AlertType.SLA_BREACH,
        entity_id='src-1',
        entity_name='Valley Orthopedics',
        message='test',
        current_value=0,
        previous_value=0,
        change_percentage=0,
        recommendation='test',
        detected_at=DETECTED_AT,
    )


class TestRules:

    def test_steep_decline_emits_single_volume_alert(self) -> None:
        metrics = make_metrics(
            trend_direction=TrendDirection.DOWN,
            trend_percentage=-35.0,
            volume_previous=77,
        )

        alerts = evaluate_entity_alerts(metrics, DETECTED_AT)

        assert len(alerts) == 1
        assert alerts[0].alert_type == AlertType.VOLUME_DECLINE
        assert alerts[0].severity == AlertSeverity.CRITICAL
        assert alerts[0].recommendation == RECOMMENDATIONS[AlertType.VOLUME_DECLINE]
        assert alerts[0].detected_at == DETECTED_AT

    def test_decline_of_exactly_thirty_percent_does_not_alert(self) -> None:
        metrics = make_metrics(trend_direction=TrendDirection.DOWN, trend_percentage=-30.0)
        assert evaluate_entity_alerts(metrics, DETECTED_AT) == []

    def test_low_conversion_emits_single_warning(self) -> None:
        metrics = make_metrics(conversion_rate=35.0, volume_current=10)

        alerts = evaluate_entity_alerts(metrics, DETECTED_AT)

        assert [alert.alert_type for alert in alerts] == [AlertType.CONVERSION_DECLINE]
        assert alerts[0].severity == AlertSeverity.WARNING
        assert alerts[0].message == 'Valley Orthopedics conversion rate at 35%'
        assert alerts[0].previous_value == BASELINE_CONVERSION_RATE

    def test_low_conversion_needs_more_than_five_referrals(self) -> None:
        metrics = make_metrics(conversion_rate=10.0, volume_current=5)
        assert evaluate_entity_alerts(metrics, DETECTED_AT) == []

    def test_conversion_alert_compares_with_prior_window_when_known(self) -> None:
        metrics = make_metrics(conversion_rate=30.0, volume_current=10, conversion_rate_previous=60.0)

        alert = evaluate_entity_alerts(metrics, DETECTED_AT)[0]

        assert alert.previous_value == 60.0
        assert alert.change_percentage == pytest.approx(-50.0)

    @pytest.mark.parametrize('sla,severity', [
        (69.9, AlertSeverity.WARNING),
        (50.0, AlertSeverity.WARNING),
        (49.9, AlertSeverity.CRITICAL),
    ])
    def test_sla_breach_severity(self, sla: float, severity: AlertSeverity) -> None:
        alerts = evaluate_entity_alerts(make_metrics(sla_compliance_rate=sla, volume_current=4), DETECTED_AT)

        assert [alert.alert_type for alert in alerts] == [AlertType.SLA_BREACH]
        assert alerts[0].severity == severity

    def test_sla_breach_needs_more_than_three_referrals(self) -> None:
        metrics = make_metrics(sla_compliance_rate=10.0, volume_current=3)
        assert evaluate_entity_alerts(metrics, DETECTED_AT) == []

    def test_healthy_entity_emits_nothing(self) -> None:
        assert evaluate_entity_alerts(make_metrics(), DETECTED_AT) == []

    def test_all_three_rules_in_rule_order(self) -> None:
        metrics = make_metrics(
            trend_direction=TrendDirection.DOWN,
            trend_percentage=-60.0,
            conversion_rate=20.0,
            sla_compliance_rate=40.0,
            volume_current=10,
        )

        alerts = evaluate_entity_alerts(metrics, DETECTED_AT)

        assert [alert.id for alert in alerts] == [
            'alert-volume-src-1',
            'alert-conversion-src-1',
            'alert-sla-src-1',
        ]


class TestOrdering:

    def test_stable_sort_by_severity(self) -> None:
        alerts = [
            make_alert('w1', AlertSeverity.WARNING),
            make_alert('c1', AlertSeverity.CRITICAL),
            make_alert('i1', AlertSeverity.INFO),
            make_alert('c2', AlertSeverity.CRITICAL),
        ]

        ordered = sort_alerts_by_severity(alerts)

        assert [alert.id for alert in ordered] == ['c1', 'c2', 'w1', 'i1']

    def test_severity_rank_accepts_raw_strings(self) -> None:
        assert severity_rank('critical') == 0
        assert severity_rank(AlertSeverity.INFO) == 2
        assert severity_rank('unknown') == 3
        assert severity_rank(None) == 3

    def test_generate_alerts_sorts_across_entities(self) -> None:
        warning_entity = make_metrics(entity_id='a', conversion_rate=35.0, volume_current=10)
        critical_entity = make_metrics(
            entity_id='b',
            trend_direction=TrendDirection.DOWN,
            trend_percentage=-40.0,
        )

        alerts = generate_alerts([warning_entity, critical_entity], detected_at=DETECTED_AT)

        assert [alert.id for alert in alerts] == ['alert-volume-b', 'alert-conversion-a']

    def test_generate_alerts_empty(self) -> None:
        assert generate_alerts([]) == []


@pytest.mark.scenario
class TestMetroSportsMedicineScenario:
    """23 referrals in the last 30 days against 48 in the 30 days before."""

    @pytest.fixture
    def metro(self) -> EntityMetrics:
        current = [{'converted': i < 8, 'sla_met': True} for i in range(23)]
        previous = [{'converted': True, 'sla_met': True} for _ in range(48)]
        return build_entity_metrics('src-metro', 'Metro Sports Medicine', current, previous)

    def test_trend(self, metro: EntityMetrics) -> None:
        assert metro.trend_percentage == pytest.approx((23 - 48) / 48 * 100, abs=1e-9)
        assert metro.trend_direction == TrendDirection.DOWN
        assert metro.conversion_rate == pytest.approx(34.78, abs=0.01)

    def test_volume_and_conversion_alerts(self, metro: EntityMetrics) -> None:
        alerts = generate_alerts([metro], detected_at=DETECTED_AT)

        assert [alert.alert_type for alert in alerts] == [
            AlertType.VOLUME_DECLINE,
            AlertType.CONVERSION_DECLINE,
        ]
        volume = alerts[0]
        assert volume.severity == AlertSeverity.CRITICAL
        assert '52%' in volume.message
        assert volume.message == 'Metro Sports Medicine referrals down 52% vs prior period'
        assert volume.current_value == 23
        assert volume.previous_value == 48
