"""
Error taxonomy for the AIM OS Growth Intelligence backend.

All error surface area sits at the I/O boundary. Metric calculation and
threshold alerting are total functions and never raise.

- FetchError: a read against the data store failed. Dashboard assemblers
  convert it into their mock payload; every other read propagates it.
- WriteError: an insert or update failed. Always propagated, never masked.
  - ConstraintViolationError: the write violated a unique, foreign key,
    not-null or check constraint.
  - RecordNotFoundError: an update matched no row.
- SeedValidationError: malformed admin seed request (HTTP 400).
- AdminAuthError: admin key missing or mismatched (HTTP 403).
"""

from typing import Optional


class StoreError(Exception):
    """Base class for data store failures."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.table = table


class FetchError(StoreError):
    """Raised when rows cannot be read from the store."""


class WriteError(StoreError):
    """Raised when an insert or update against the store fails."""


class ConstraintViolationError(WriteError):
    """Raised when a write violates a database constraint."""


class RecordNotFoundError(WriteError):
    """Raised when an update targets a row that does not exist."""

    def __init__(self, table: str, row_id: str):
        super().__init__(f"No row in {table} with id {row_id}", table=table)
        self.row_id = row_id


class SeedValidationError(ValueError):
    """Raised for admin seed requests with a bad seed_name or sql_content."""


class AdminAuthError(Exception):
    """Raised when the X-Admin-Key header does not match the configured key."""
