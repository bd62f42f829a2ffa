"""
HTTP-level tests for the AIM OS API using FastAPI's TestClient.

The row store and the settings are replaced through ``app.dependency_overrides``
and the admin router's pool is patched; the lifespan (pool creation) is not run.
"""

from typing import Callable, Iterator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from aimos.core.dependencies import get_row_store, get_settings_dependency
from aimos.main import app
from aimos.tests.conftest import FakeRowStore


ADMIN_HEADERS = {'X-Admin-Key': 'test-admin-key'}


@pytest.fixture
def make_client(mock_settings, mock_db_pool) -> Iterator[Callable[[FakeRowStore], TestClient]]:
    """Build a TestClient serving the given store."""
    def factory(store: FakeRowStore) -> TestClient:
        app.dependency_overrides[get_row_store] = lambda: store
        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
        return TestClient(app)

    with patch('aimos.api.admin.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
        yield factory
    app.dependency_overrides.clear()


class TestRoot:

    def test_health(self, make_client, empty_store) -> None:
        response = make_client(empty_store).get('/health')

        assert response.status_code == 200
        assert response.json() == {'status': 'healthy'}

    def test_root(self, make_client, empty_store) -> None:
        body = make_client(empty_store).get('/').json()

        assert body['name'] == 'AIM OS Growth Intelligence API'
        assert body['docs'] == '/docs'


class TestDashboards:

    @pytest.mark.parametrize('path', ['/referrals/dashboard', '/revops/dashboard', '/quality/dashboard'])
    def test_unreachable_store_serves_mock(self, make_client, path: str) -> None:
        store = FakeRowStore(failing_tables=[
            'referral_sources', 'referrals', 'revops_pipeline_metrics',
            'revops_capacity_metrics', 'revops_bottlenecks',
            'revops_clinician_productivity', 'revops_growth_alerts',
            'clinical_outcomes', 'clinician_performance_snapshots', 'clinics',
        ])

        response = make_client(store).get(path)

        assert response.status_code == 200
        assert response.json()['data_source'] == 'mock'

    def test_mock_referral_alerts_serialize(self, make_client, empty_store) -> None:
        body = make_client(empty_store).get('/referrals/dashboard').json()

        volume = body['trend_alerts'][0]
        assert volume['id'] == 'alert-volume-src-4'
        assert volume['severity'] == 'critical'
        assert volume['alert_type'] == 'volume_decline'

    def test_live_quality_dashboard(self, make_client, quality_store) -> None:
        body = make_client(quality_store).get('/quality/dashboard').json()

        assert body['data_source'] == 'live'
        assert body['overview']['total_episodes'] == 6
        assert [c['clinician_label'] for c in body['clinician_performance']] == [
            'Clinician A', 'Clinician B', 'Clinician C',
        ]


class TestReferralEndpoints:

    def test_list_sources(self, make_client, referral_store) -> None:
        body = make_client(referral_store).get('/referrals/sources').json()
        assert [s['organization_name'] for s in body['sources']] == [
            'Metro Sports Medicine', 'Valley Orthopedics',
        ]

    def test_list_referrals_by_source(self, make_client, referral_store) -> None:
        response = make_client(referral_store).get('/referrals/', params={'source_id': 'src-metro'})

        assert response.status_code == 200
        assert len(response.json()['referrals']) == 71

    def test_list_fails_with_503_when_store_unreachable(self, make_client) -> None:
        response = make_client(FakeRowStore(failing_tables=['referrals'])).get('/referrals/')

        assert response.status_code == 503
        assert response.json()['detail'] == 'Failed to fetch referrals'

    def test_create_source(self, make_client, empty_store) -> None:
        response = make_client(empty_store).post(
            '/referrals/sources',
            json={'organization_name': 'Lakeside Clinic', 'source_type': 'physician'},
        )

        assert response.status_code == 201
        assert response.json()['success'] is True
        assert response.json()['source']['organization_name'] == 'Lakeside Clinic'

    def test_create_source_requires_name(self, make_client, empty_store) -> None:
        response = make_client(empty_store).post('/referrals/sources', json={'source_type': 'physician'})
        assert response.status_code == 422

    def test_patch_source(self, make_client, referral_store) -> None:
        response = make_client(referral_store).patch('/referrals/sources/src-valley', json={'is_active': False})

        assert response.status_code == 200
        assert response.json()['source']['is_active'] is False

    def test_empty_patch_is_400(self, make_client, referral_store) -> None:
        response = make_client(referral_store).patch('/referrals/sources/src-valley', json={})

        assert response.status_code == 400
        assert response.json()['detail'] == 'No fields to update'

    def test_patch_unknown_source_is_404(self, make_client, referral_store) -> None:
        response = make_client(referral_store).patch('/referrals/sources/src-404', json={'sla_hours': 24})
        assert response.status_code == 404

    def test_create_referral(self, make_client, empty_store) -> None:
        response = make_client(empty_store).post(
            '/referrals/',
            json={'patient_reference': 'P-77', 'referral_date': '2024-06-28', 'referral_source_id': 'src-1'},
        )

        assert response.status_code == 201
        assert response.json()['referral']['referral_status'] == 'pending'


class TestRevOpsEndpoints:

    def test_acknowledge(self, make_client, revops_store) -> None:
        response = make_client(revops_store).post(
            '/revops/alerts/ga-info/acknowledge', json={'user_id': 'user-7'},
        )

        assert response.status_code == 200
        assert response.json()['alert']['acknowledged_by'] == 'user-7'

    def test_acknowledge_requires_user(self, make_client, revops_store) -> None:
        response = make_client(revops_store).post('/revops/alerts/ga-info/acknowledge', json={})
        assert response.status_code == 422

    def test_dismiss_unknown_alert(self, make_client, revops_store) -> None:
        response = make_client(revops_store).post('/revops/alerts/ga-404/dismiss')
        assert response.status_code == 404

    def test_resolve_without_body(self, make_client, revops_store) -> None:
        response = make_client(revops_store).post('/revops/bottlenecks/bn-open/resolve')

        assert response.status_code == 200
        assert response.json()['bottleneck']['status'] == 'resolved'
        assert response.json()['bottleneck']['notes'] is None


class TestQualityEndpoints:

    def test_outcomes_for_clinic(self, make_client, quality_store) -> None:
        body = make_client(quality_store).get('/quality/outcomes', params={'clinic_id': 'clinic-a'}).json()
        assert {o['id'] for o in body['outcomes']} == {'o1', 'o2', 'o3'}

    def test_clinician_performance(self, make_client, quality_store) -> None:
        body = make_client(quality_store).get('/quality/clinician-performance').json()
        assert len(body['performance']) == 3

    def test_create_and_update_outcome(self, make_client, empty_store) -> None:
        client = make_client(empty_store)

        created = client.post('/quality/outcomes', json={'clinic_id': 'clinic-a', 'episode_reference': 'EP-1'})
        outcome_id = created.json()['outcome']['id']
        updated = client.patch(f'/quality/outcomes/{outcome_id}', json={'outcome_status': 'completed'})

        assert created.status_code == 201
        assert updated.status_code == 200
        assert updated.json()['outcome']['outcome_status'] == 'completed'


class TestAdminSeed:

    def test_missing_key_is_403(self, make_client, empty_store, mock_conn) -> None:
        response = make_client(empty_store).post('/admin/seed', json={'seed_name': 'abc', 'sql_content': 'x'})

        assert response.status_code == 403
        mock_conn.fetchrow.assert_not_awaited()

    def test_wrong_key_is_403_before_body_is_read(self, make_client, empty_store) -> None:
        response = make_client(empty_store).post(
            '/admin/seed', content=b'not json', headers={'X-Admin-Key': 'wrong'},
        )
        assert response.status_code == 403

    def test_unconfigured_key_is_403(self, make_client, empty_store, mock_settings) -> None:
        mock_settings.admin_seed_key = None

        response = make_client(empty_store).post(
            '/admin/seed', json={'seed_name': 'abc', 'sql_content': 'x'}, headers=ADMIN_HEADERS,
        )

        assert response.status_code == 403

    def test_invalid_json_is_400(self, make_client, empty_store) -> None:
        response = make_client(empty_store).post(
            '/admin/seed',
            content=b'{"seed_name":',
            headers={**ADMIN_HEADERS, 'Content-Type': 'application/json'},
        )

        assert response.status_code == 400
        assert response.json() == {'status': 'error', 'message': 'Request body must be valid JSON'}

    def test_short_seed_name_is_400(self, make_client, empty_store) -> None:
        response = make_client(empty_store).post(
            '/admin/seed', json={'seed_name': 'ab', 'sql_content': 'SELECT 1;'}, headers=ADMIN_HEADERS,
        )

        assert response.status_code == 400
        assert response.json()['message'] == 'Invalid seed_name - must be at least 3 characters'

    def test_applied(self, make_client, empty_store, mock_conn) -> None:
        response = make_client(empty_store).post(
            '/admin/seed', json={'seed_name': 'demo_v1', 'sql_content': 'SELECT 1;'}, headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        assert response.json() == {
            'status': 'applied',
            'message': 'Seed successfully applied',
            'seed_name': 'demo_v1',
        }
        assert mock_conn.execute.await_count == 2

    def test_skipped(self, make_client, empty_store, mock_conn) -> None:
        mock_conn.fetchrow.return_value = {'version_set_id': 'vs-1'}

        response = make_client(empty_store).post(
            '/admin/seed', json={'seed_name': 'demo_v1', 'sql_content': 'SELECT 1;'}, headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()['status'] == 'skipped'

    def test_failing_sql_is_500(self, make_client, empty_store, mock_conn) -> None:
        mock_conn.execute.side_effect = [None, RuntimeError('relation "nope" does not exist')]

        response = make_client(empty_store).post(
            '/admin/seed', json={'seed_name': 'demo_v1', 'sql_content': 'SELECT * FROM nope;'},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 500
        assert response.json()['status'] == 'error'
        assert response.json()['message'] == 'Seed failed - transaction rolled back'
        assert 'nope' in response.json()['detail']

    def test_invalid_body_is_400_while_database_is_down(self, make_client, empty_store) -> None:
        unreachable = AsyncMock(side_effect=OSError('connection refused'))

        with patch('aimos.api.admin.get_db_pool', new=unreachable):
            response = make_client(empty_store).post(
                '/admin/seed', json={'seed_name': 'ab', 'sql_content': 'SELECT 1'}, headers=ADMIN_HEADERS,
            )

        assert response.status_code == 400
        assert response.json()['message'] == 'Invalid seed_name - must be at least 3 characters'
        unreachable.assert_not_awaited()

    def test_database_down_is_500(self, make_client, empty_store) -> None:
        with patch('aimos.api.admin.get_db_pool', new=AsyncMock(side_effect=OSError('connection refused'))):
            response = make_client(empty_store).post(
                '/admin/seed', json={'seed_name': 'demo_v1', 'sql_content': 'SELECT 1;'}, headers=ADMIN_HEADERS,
            )

        assert response.status_code == 500
        assert response.json() == {
            'status': 'error',
            'message': 'Internal server error',
            'seed_name': 'demo_v1',
            'detail': 'connection refused',
        }
