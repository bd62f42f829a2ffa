"""
FastAPI dependency injection module for the AIM OS Growth Intelligence backend.

Endpoint handlers do not reach for the row store or the settings singleton;
they declare one of the type aliases below and FastAPI wires them in. Tests
swap any of them through ``app.dependency_overrides``.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_row_store: Returns a RowStore bound to the application pool
- check_admin_key: Constant-time admin key comparison (raises AdminAuthError)
- require_admin_key: Validates the X-Admin-Key header for /admin routes

Type aliases:
- SettingsDep, StoreDep, AdminKeyDep

Usage Examples:
    @router.get("/dashboard")
    async def get_dashboard(store: StoreDep) -> ReferralDashboard:
        return await load_referral_dashboard(store)

    @router.post("/seed", dependencies=[Depends(require_admin_key)])
    async def seed(request: Request):
        ...

    # In tests
    app.dependency_overrides[get_row_store] = lambda: fake_store
"""

import hmac
import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException

from aimos.core.config import Settings, get_settings
from aimos.core.exceptions import AdminAuthError
from aimos.core.store import RowStore


logger = logging.getLogger(__name__)


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: mock_settings
    """
    return get_settings()


# =============================================================================
# Row Store Dependency
# =============================================================================

def get_row_store() -> RowStore:
    """Return a RowStore that acquires the application pool lazily."""
    return RowStore()


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

StoreDep = Annotated[RowStore, Depends(get_row_store)]


# =============================================================================
# Admin Key Dependency
# =============================================================================

def check_admin_key(provided: Optional[str], expected: Optional[str]) -> None:
    """
    Compare a presented admin key against the configured one.

    An unset expected key rejects every caller, so the seed endpoint stays
    closed unless ADMIN_SEED_KEY is explicitly configured.

    Raises:
        AdminAuthError: When either key is missing or they differ.
    """
    if not expected or not provided:
        raise AdminAuthError("Admin key missing or not configured")

    if not hmac.compare_digest(provided.encode('utf-8'), expected.encode('utf-8')):
        raise AdminAuthError("Admin key mismatch")


def require_admin_key(
    settings: SettingsDep,
    x_admin_key: Annotated[Optional[str], Header()] = None,
) -> None:
    """
    Reject the request with 403 unless X-Admin-Key matches ADMIN_SEED_KEY.

    Declared as a route dependency, so it runs before the request body is
    inspected.

    Raises:
        HTTPException: 403 when the key is missing, unconfigured or wrong.
    """
    try:
        check_admin_key(x_admin_key, settings.admin_seed_key)
    except AdminAuthError as e:
        logger.warning(f"Rejected admin request: {e}")
        raise HTTPException(status_code=403, detail="Forbidden")


AdminKeyDep = Annotated[None, Depends(require_admin_key)]
