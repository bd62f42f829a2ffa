"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- The RowStore data access layer and its error taxonomy
- FastAPI dependency injection utilities

Re-exports let callers write:

    from aimos.core import get_settings, RowStore, StoreDep

instead of importing each submodule separately.

Usage Examples:
    # Database pool lifecycle (in FastAPI lifespan)
    from aimos.core import init_db, close_db

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await init_db()
        yield
        await close_db()

    # FastAPI endpoint with dependencies
    from aimos.core import StoreDep

    @router.get("/sources")
    async def list_sources(store: StoreDep):
        return await get_referral_sources(store)
"""

# =============================================================================
# Re-exports from aimos.core.config
# =============================================================================
from aimos.core.config import Settings, get_settings

# =============================================================================
# Re-exports from aimos.core.database
# =============================================================================
from aimos.core.database import init_db, close_db, get_db_pool

# =============================================================================
# Re-exports from aimos.core.exceptions
# =============================================================================
from aimos.core.exceptions import (
    StoreError,
    FetchError,
    WriteError,
    ConstraintViolationError,
    RecordNotFoundError,
    SeedValidationError,
    AdminAuthError,
)

# =============================================================================
# Re-exports from aimos.core.store
# =============================================================================
from aimos.core.store import RowStore, RawRecord, to_raw_record

# =============================================================================
# Re-exports from aimos.core.dependencies
# =============================================================================
from aimos.core.dependencies import (
    get_settings_dependency,
    get_row_store,
    check_admin_key,
    require_admin_key,
    SettingsDep,
    StoreDep,
    AdminKeyDep,
)

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    # Error taxonomy (from exceptions.py)
    'StoreError',
    'FetchError',
    'WriteError',
    'ConstraintViolationError',
    'RecordNotFoundError',
    'SeedValidationError',
    'AdminAuthError',
    # Data access (from store.py)
    'RowStore',
    'RawRecord',
    'to_raw_record',
    # FastAPI dependency injection (from dependencies.py)
    'get_settings_dependency',
    'get_row_store',
    'check_admin_key',
    'require_admin_key',
    'SettingsDep',
    'StoreDep',
    'AdminKeyDep',
]
