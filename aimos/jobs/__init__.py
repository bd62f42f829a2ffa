"""
Scheduled jobs for the AIM OS Growth Intelligence backend.

- alert_digest: Daily Slack digest of referral trend alerts

Idempotency:
- The digest is sent at most once per date; successful sends are recorded in
  job_digest_state (job_type 'referral_alert_digest')
- force=True re-sends intentionally, e.g. after a manual correction

Environment:
- SLACK_WEBHOOK_URL: Slack incoming webhook URL
  (https://hooks.slack.com/services/xxx/yyy/zzz)

Usage:
    from aimos.jobs import send_alert_digest

    result = await send_alert_digest()
    if not result['success']:
        logger.error(result['error'])
"""

from aimos.jobs.alert_digest import (
    check_already_sent,
    format_slack_message,
    get_digest_status,
    mark_digest_sent,
    send_alert_digest,
)

__all__ = [
    'check_already_sent',
    'format_slack_message',
    'get_digest_status',
    'mark_digest_sent',
    'send_alert_digest',
]
