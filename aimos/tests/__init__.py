'''
AIM OS Growth Intelligence Test Suite

Test Modules:
-------------
- test_row_queries.py: SQL text and argument binding for row reads/writes
- test_store.py: RowStore error contract against a mocked asyncpg pool
- test_metrics.py: Rates, trend, health status, windows, lead time statistics
- test_alerting.py: Alert rules, severity ordering, Metro Sports Medicine scenario
- test_referrals.py: Referral dashboard assembly, mock fallback, reads and writes
- test_revops.py: Pipeline rates, bottleneck detection, alert/bottleneck workflow
- test_quality.py: Outcome trends, clinic benchmarks, anonymized clinicians
- test_admin_seed.py: Seed validation, idempotent apply, transaction rollback
- test_api.py: HTTP contract through FastAPI's TestClient
- test_alert_digest.py: Slack digest skip rules, idempotency and formatting

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

    # Acceptance scenarios only
    pytest -m scenario

Configuration:
--------------
See conftest.py for shared fixtures and pyproject.toml for pytest settings.
'''

__all__ = []
