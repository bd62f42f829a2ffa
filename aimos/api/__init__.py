"""
API package for the AIM OS Growth Intelligence backend.

Router modules:
- referrals: Referral intelligence dashboard, sources, referrals, employers
- revops: Revenue operations dashboard and alert/bottleneck workflow
- quality: Clinical quality dashboard, outcomes and clinician performance
- admin: Operator endpoints guarded by X-Admin-Key (SQL seeds)
"""

from fastapi import APIRouter

from aimos.api.referrals import router as referrals_router
from aimos.api.revops import router as revops_router
from aimos.api.quality import router as quality_router
from aimos.api.admin import router as admin_router

api_router = APIRouter()

api_router.include_router(referrals_router, prefix="/referrals", tags=["referrals"])
api_router.include_router(revops_router, prefix="/revops", tags=["revops"])
api_router.include_router(quality_router, prefix="/quality", tags=["quality"])
api_router.include_router(admin_router, prefix="/admin", tags=["admin"])

__all__ = [
    "api_router",
    "referrals_router",
    "revops_router",
    "quality_router",
    "admin_router",
]
