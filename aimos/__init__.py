"""
AIM OS Growth Intelligence Backend Package.

FastAPI service layer that turns clinic operational rows (referrals, revenue
pipeline, clinical outcomes) into derived growth metrics, threshold alerts and
dashboard payloads.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database pool, row store, errors and dependencies
    - models: Pydantic schemas and enums
    - services: Metric calculator, alerting engine and dashboard assemblers
    - jobs: Slack alert digest
    - sql: Parameterized SQL builders for the row store
"""

__version__ = "1.0.0"
