"""
Slack referral alert digest job.

Posts the referral trend alerts (volume decline, conversion decline, SLA
breach) from the referral intelligence dashboard to a Slack channel once per
day, using the WebhookClient from slack-sdk and Block Kit formatting.

Behaviour:
- Skips when SLACK_WEBHOOK_URL is not configured (reported as a failure)
- Skips when a digest was already sent for the date, unless force=True
- Skips when the dashboard came back as mock data, so demo alerts are never
  posted to a real channel
- Skips when there are no alerts
- Never raises; every outcome is described by the returned dict

Idempotency:
- Successful sends are recorded in job_digest_state with
  job_type = 'referral_alert_digest', keyed by digest date
- force=True re-sends and bumps digest_count

Usage:
    # Digest for today
    result = await send_alert_digest()

    # Specific date, ignoring the sent marker
    result = await send_alert_digest(digest_date=date(2024, 6, 30), force=True)
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from slack_sdk.webhook import WebhookClient

from aimos.core.config import get_settings
from aimos.core.database import get_db_pool
from aimos.core.store import RowStore
from aimos.models.enums import AlertSeverity, DataSource
from aimos.models.schemas import Alert, ReferralDashboard
from aimos.services.referrals import load_referral_dashboard


logger = logging.getLogger(__name__)

DIGEST_JOB_TYPE = 'referral_alert_digest'

# Alerts listed individually in the message; the rest are summarized
MAX_LISTED_ALERTS = 10

SEVERITY_EMOJI = {
    AlertSeverity.CRITICAL: "🚨",
    AlertSeverity.WARNING: "⚠️",
    AlertSeverity.INFO: "ℹ️",
}


# =============================================================================
# Idempotency
# =============================================================================


async def check_already_sent(digest_date: date) -> bool:
    """True if a referral alert digest was already sent for ``digest_date``."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            """
            SELECT digest_date, sent_at
            FROM job_digest_state
            WHERE job_type = $1
              AND digest_date = $2
            """,
            DIGEST_JOB_TYPE,
            digest_date,
        )
        return row is not None


async def mark_digest_sent(digest_date: date) -> None:
    """Record a successful send; a forced re-send increments digest_count."""
    pool = await get_db_pool()
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO job_digest_state (job_type, digest_date, sent_at, digest_count)
            VALUES ($1, $2, $3, 1)
            ON CONFLICT (job_type, digest_date)
            DO UPDATE SET
                sent_at = EXCLUDED.sent_at,
                digest_count = job_digest_state.digest_count + 1
            """,
            DIGEST_JOB_TYPE,
            digest_date,
            datetime.now(timezone.utc),
        )


async def get_digest_status() -> Dict[str, Any]:
    """
    Report recent digest sends, for monitoring the job.

    Returns:
        Dict with:
        - last_successful_date: Most recent digest date (or None)
        - total_digest_count: Sum of digest_count over all dates
        - recent_dates: Up to 7 most recent {date, sent_at} entries
        - configured: Whether SLACK_WEBHOOK_URL is set
    """
    configured = bool(get_settings().slack_webhook_url)

    try:
        pool = await get_db_pool()
        async with pool.acquire() as conn:
            recent = await conn.fetch(
                """
                SELECT digest_date, sent_at
                FROM job_digest_state
                WHERE job_type = $1
                ORDER BY digest_date DESC
                LIMIT 7
                """,
                DIGEST_JOB_TYPE,
            )
            total = await conn.fetchval(
                """
                SELECT COALESCE(SUM(digest_count), 0)
                FROM job_digest_state
                WHERE job_type = $1
                """,
                DIGEST_JOB_TYPE,
            )
    except Exception as e:
        logger.warning(f"Could not read digest state: {e}")
        return {
            'last_successful_date': None,
            'total_digest_count': 0,
            'recent_dates': [],
            'configured': configured,
            'note': 'Digest state table may not be initialized yet',
        }

    return {
        'last_successful_date': str(recent[0]['digest_date']) if recent else None,
        'total_digest_count': int(total or 0),
        'recent_dates': [
            {
                'date': str(row['digest_date']),
                'sent_at': row['sent_at'].isoformat() if row['sent_at'] else None,
            }
            for row in recent
        ],
        'configured': configured,
    }


# =============================================================================
# Slack Message Formatting
# =============================================================================


def format_currency(value: float) -> str:
    if value >= 1_000_000:
        return f"${value / 1_000_000:.2f}M"
    elif value >= 1_000:
        return f"${value / 1_000:.1f}K"
    return f"${value:.2f}"


def format_alert_line(alert: Alert) -> str:
    """One mrkdwn line per alert: emoji, message and recommendation."""
    emoji = SEVERITY_EMOJI.get(alert.severity, "•")
    return f"{emoji} *{alert.message}*\n      _{alert.recommendation}_"


def format_slack_message(digest_date: date, dashboard: ReferralDashboard) -> List[Dict[str, Any]]:
    """
    Build the Block Kit blocks for one digest.

    Layout: header, referral overview, alert counts by severity, up to
    MAX_LISTED_ALERTS alert lines (already ordered critical first), footer.
    """
    blocks: List[Dict[str, Any]] = []
    alerts = dashboard.trend_alerts
    overview = dashboard.overview

    blocks.append({
        "type": "header",
        "text": {
            "type": "plain_text",
            "text": f"📈 AIM OS Referral Alerts - {digest_date.strftime('%B %d, %Y')}",
            "emoji": True,
        },
    })
    blocks.append({"type": "divider"})

    overview_text = (
        f"*📊 Last 30 Days*\n\n"
        f"Referrals: *{overview.total_referrals_30d:,}* "
        f"(prior 30 days: {overview.total_referrals_60d:,})\n"
        f"Conversion: *{overview.overall_conversion_rate:.1f}%*  |  "
        f"SLA compliance: *{overview.sla_compliance_rate:.1f}%*\n"
        f"Revenue at risk: *{format_currency(overview.revenue_at_risk)}*"
    )
    blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": overview_text}})

    counts = {severity: 0 for severity in AlertSeverity}
    for alert in alerts:
        counts[alert.severity] += 1
    counts_text = "  |  ".join(
        f"{SEVERITY_EMOJI[severity]} {severity.value.title()}: *{counts[severity]}*"
        for severity in AlertSeverity
    )
    blocks.append({"type": "section", "text": {"type": "mrkdwn", "text": counts_text}})

    listed = alerts[:MAX_LISTED_ALERTS]
    if listed:
        blocks.append({"type": "divider"})
        blocks.append({
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": "*Alerts*\n\n" + "\n".join(format_alert_line(alert) for alert in listed),
            },
        })
    if len(alerts) > len(listed):
        blocks.append({
            "type": "context",
            "elements": [{
                "type": "mrkdwn",
                "text": f"…and {len(alerts) - len(listed)} more in the referral dashboard",
            }],
        })

    blocks.append({
        "type": "context",
        "elements": [{
            "type": "mrkdwn",
            "text": f"Generated {dashboard.generated_at.strftime('%Y-%m-%d %H:%M UTC')}",
        }],
    })

    return blocks


# =============================================================================
# Main Entry Point
# =============================================================================


async def send_alert_digest(
    digest_date: Optional[date] = None,
    force: bool = False,
    store: Optional[RowStore] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Send the daily referral alert digest to Slack.

    Args:
        digest_date: Date the digest is filed under (default: today, UTC).
        force: Send even if a digest was already sent for this date.
        store: Row store to read the dashboard from (default: application pool).
        now: Reference time for the referral windows (default: now, UTC).

    Returns:
        Dict with:
        - success: True if the digest was sent or skipped appropriately
        - skipped / reason: Present when nothing was sent
        - date: The digest date as string
        - alerts_count / critical_count: Present when sent
        - error: Error message (if failed)
    """
    settings = get_settings()

    if not settings.slack_webhook_url:
        return {
            'success': False,
            'error': 'SLACK_WEBHOOK_URL not configured. Set this environment variable to enable Slack digests.',
        }

    now = now or datetime.now(timezone.utc)
    target_date = digest_date or now.date()

    if not force:
        try:
            if await check_already_sent(target_date):
                return {
                    'success': True,
                    'skipped': True,
                    'reason': f'Digest already sent for {target_date}',
                    'date': str(target_date),
                }
        except Exception as e:
            # First run before job_digest_state exists; the send records state
            logger.warning(f"Could not check digest state for {target_date}: {e}")

    try:
        dashboard = await load_referral_dashboard(store or RowStore(), now=now)
    except Exception as e:
        logger.error(f"Failed to load referral dashboard for digest: {e}", exc_info=True)
        return {
            'success': False,
            'error': f'Failed to load referral dashboard: {str(e)}',
            'date': str(target_date),
        }

    if dashboard.data_source == DataSource.MOCK:
        return {
            'success': True,
            'skipped': True,
            'reason': 'Referral data unavailable, dashboard is serving mock data',
            'date': str(target_date),
        }

    if not dashboard.trend_alerts:
        return {
            'success': True,
            'skipped': True,
            'reason': f'No referral alerts for {target_date}',
            'date': str(target_date),
        }

    blocks = format_slack_message(target_date, dashboard)

    try:
        client = WebhookClient(settings.slack_webhook_url)
        response = client.send(
            text=f"AIM OS referral alerts for {target_date}",
            blocks=blocks,
        )
    except Exception as e:
        logger.error(f"Failed to send referral alert digest: {e}", exc_info=True)
        return {
            'success': False,
            'error': f'Failed to send Slack message: {str(e)}',
            'date': str(target_date),
        }

    if response.status_code != 200:
        logger.error(f"Slack webhook returned {response.status_code}: {response.body}")
        return {
            'success': False,
            'error': f'Slack API returned status {response.status_code}: {response.body}',
            'date': str(target_date),
        }

    try:
        await mark_digest_sent(target_date)
    except Exception as e:
        # The message went out; a retry may duplicate it
        logger.warning(f"Sent digest for {target_date} but could not record it: {e}")

    critical = sum(1 for alert in dashboard.trend_alerts if alert.severity == AlertSeverity.CRITICAL)
    logger.info(
        f"Sent referral alert digest for {target_date}: "
        f"{len(dashboard.trend_alerts)} alerts ({critical} critical)"
    )

    return {
        'success': True,
        'date': str(target_date),
        'alerts_count': len(dashboard.trend_alerts),
        'critical_count': critical,
    }
