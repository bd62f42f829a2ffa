"""
Tests for the Slack referral alert digest job (aimos.jobs.alert_digest).

Test Classes:
- TestDigestState: job_digest_state reads/writes and the status report
- TestSendAlertDigest: skip rules, idempotency, force and Slack failures
- TestFormatting: Block Kit layout and currency formatting
"""

from datetime import date
from unittest.mock import AsyncMock, Mock, patch

import pytest

from aimos.jobs.alert_digest import (
    DIGEST_JOB_TYPE,
    MAX_LISTED_ALERTS,
    check_already_sent,
    format_currency,
    format_slack_message,
    get_digest_status,
    mark_digest_sent,
    send_alert_digest,
)
from aimos.services.referrals import load_referral_dashboard
from aimos.tests.conftest import FakeRowStore, make_referrals


DIGEST_DATE = date(2024, 6, 30)


@pytest.fixture
def patched_job(mock_settings, mock_db_pool):
    """Point the job at mock settings and the mock pool."""
    with patch('aimos.jobs.alert_digest.get_settings', return_value=mock_settings), \
            patch('aimos.jobs.alert_digest.get_db_pool', new=AsyncMock(return_value=mock_db_pool)):
        yield


@pytest.mark.asyncio
class TestDigestState:

    async def test_check_already_sent(self, patched_job, mock_conn) -> None:
        mock_conn.fetchrow.return_value = {'digest_date': DIGEST_DATE, 'sent_at': None}

        assert await check_already_sent(DIGEST_DATE) is True
        assert mock_conn.fetchrow.await_args.args[1:] == (DIGEST_JOB_TYPE, DIGEST_DATE)

    async def test_check_not_sent(self, patched_job, mock_conn) -> None:
        assert await check_already_sent(DIGEST_DATE) is False

    async def test_mark_digest_sent_upserts(self, patched_job, mock_conn) -> None:
        await mark_digest_sent(DIGEST_DATE)

        query, job_type, digest_date, _sent_at = mock_conn.execute.await_args.args
        assert 'ON CONFLICT (job_type, digest_date)' in query
        assert (job_type, digest_date) == (DIGEST_JOB_TYPE, DIGEST_DATE)

    async def test_status(self, patched_job, mock_conn) -> None:
        mock_conn.fetch.return_value = [
            {'digest_date': date(2024, 6, 30), 'sent_at': None},
            {'digest_date': date(2024, 6, 29), 'sent_at': None},
        ]
        mock_conn.fetchval.return_value = 3

        status = await get_digest_status()

        assert status['last_successful_date'] == '2024-06-30'
        assert status['total_digest_count'] == 3
        assert [entry['date'] for entry in status['recent_dates']] == ['2024-06-30', '2024-06-29']
        assert status['configured'] is True

    async def test_status_without_state_table(self, patched_job, mock_conn) -> None:
        mock_conn.fetch.side_effect = RuntimeError('relation "job_digest_state" does not exist')

        status = await get_digest_status()

        assert status['total_digest_count'] == 0
        assert status['last_successful_date'] is None
        assert 'note' in status


@pytest.mark.asyncio
class TestSendAlertDigest:

    async def test_sends_live_alerts(self, patched_job, mock_conn, mock_slack_client, referral_store, now) -> None:
        result = await send_alert_digest(store=referral_store, now=now)

        assert result == {'success': True, 'date': '2024-06-30', 'alerts_count': 2, 'critical_count': 1}
        mock_slack_client.send.assert_called_once()
        assert 'Metro Sports Medicine referrals down 52%' in str(mock_slack_client.send.call_args.kwargs['blocks'])
        assert mock_conn.execute.await_args.args[1:3] == (DIGEST_JOB_TYPE, DIGEST_DATE)

    async def test_missing_webhook(self, patched_job, mock_settings, mock_slack_client, referral_store) -> None:
        mock_settings.slack_webhook_url = None

        result = await send_alert_digest(store=referral_store)

        assert result['success'] is False
        assert 'SLACK_WEBHOOK_URL' in result['error']
        mock_slack_client.send.assert_not_called()

    async def test_already_sent_is_skipped(self, patched_job, mock_conn, mock_slack_client, referral_store, now) -> None:
        mock_conn.fetchrow.return_value = {'digest_date': DIGEST_DATE, 'sent_at': None}

        result = await send_alert_digest(store=referral_store, now=now)

        assert result['skipped'] is True
        assert result['reason'] == 'Digest already sent for 2024-06-30'
        mock_slack_client.send.assert_not_called()

    async def test_force_resends(self, patched_job, mock_conn, mock_slack_client, referral_store, now) -> None:
        mock_conn.fetchrow.return_value = {'digest_date': DIGEST_DATE, 'sent_at': None}

        result = await send_alert_digest(store=referral_store, now=now, force=True)

        assert result['success'] is True
        assert 'skipped' not in result
        mock_conn.fetchrow.assert_not_awaited()
        mock_slack_client.send.assert_called_once()

    async def test_mock_data_is_never_posted(self, patched_job, mock_slack_client, empty_store, now) -> None:
        result = await send_alert_digest(store=empty_store, now=now)

        assert result['success'] is True
        assert result['skipped'] is True
        assert 'mock' in result['reason']
        mock_slack_client.send.assert_not_called()

    async def test_no_alerts_is_skipped(self, patched_job, mock_slack_client, referral_source_rows, now) -> None:
        store = FakeRowStore({
            'referral_sources': referral_source_rows,
            'referrals': make_referrals('src-valley', 20, start_days_ago=0),
        })

        result = await send_alert_digest(store=store, now=now)

        assert result['reason'] == 'No referral alerts for 2024-06-30'
        mock_slack_client.send.assert_not_called()

    async def test_slack_error_status(self, patched_job, mock_conn, mock_slack_client, referral_store, now) -> None:
        mock_slack_client.send.return_value = Mock(status_code=404, body='no_service')

        result = await send_alert_digest(store=referral_store, now=now)

        assert result['success'] is False
        assert result['error'] == 'Slack API returned status 404: no_service'
        mock_conn.execute.assert_not_awaited()

    async def test_slack_exception(self, patched_job, mock_slack_client, referral_store, now) -> None:
        mock_slack_client.send.side_effect = ConnectionError('webhook unreachable')

        result = await send_alert_digest(store=referral_store, now=now)

        assert result['success'] is False
        assert 'webhook unreachable' in result['error']

    async def test_state_table_unavailable_still_sends(
        self, mock_settings, mock_slack_client, referral_store, now,
    ) -> None:
        with patch('aimos.jobs.alert_digest.get_settings', return_value=mock_settings), \
                patch('aimos.jobs.alert_digest.get_db_pool', new=AsyncMock(side_effect=RuntimeError('no pool'))):
            result = await send_alert_digest(store=referral_store, now=now)

        assert result['success'] is True
        assert result['alerts_count'] == 2
        mock_slack_client.send.assert_called_once()


@pytest.mark.asyncio
class TestFormatting:

    async def test_layout(self, referral_store, now) -> None:
        dashboard = await load_referral_dashboard(referral_store, now=now)

        blocks = format_slack_message(DIGEST_DATE, dashboard)

        assert blocks[0]['type'] == 'header'
        assert blocks[0]['text']['text'].endswith('June 30, 2024')
        assert 'Referrals: *43*' in blocks[2]['text']['text']
        assert 'Critical: *1*' in blocks[3]['text']['text']
        assert 'Warning: *1*' in blocks[3]['text']['text']
        assert blocks[-1]['type'] == 'context'

    async def test_overflow_is_summarized(self, referral_store, now) -> None:
        dashboard = await load_referral_dashboard(referral_store, now=now)
        crowded = dashboard.model_copy(update={'trend_alerts': dashboard.trend_alerts * 6})

        blocks = format_slack_message(DIGEST_DATE, crowded)

        alert_section = blocks[5]['text']['text']
        assert alert_section.count('referrals down 52%') == MAX_LISTED_ALERTS // 2
        assert blocks[-2]['elements'][0]['text'] == '…and 2 more in the referral dashboard'


class TestFormatCurrency:

    @pytest.mark.parametrize('value,expected', [
        (14800, '$14.8K'),
        (1_250_000, '$1.25M'),
        (950, '$950.00'),
    ])
    def test_format(self, value: float, expected: str) -> None:
        assert format_currency(value) == expected
