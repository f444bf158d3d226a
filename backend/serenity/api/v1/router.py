"""API v1 router aggregator.

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from serenity.api.v1 import clients, consultants, onboarding_admin

router = APIRouter()

# =============================================================================
# Onboarding
# =============================================================================

_ONBOARDING_PREFIX = "/onboarding"

router.include_router(
    onboarding_admin.router,
    prefix=f"{_ONBOARDING_PREFIX}/admin",
    tags=["onboarding-admin"],
)
router.include_router(
    clients.router, prefix=f"{_ONBOARDING_PREFIX}/clients", tags=["onboarding"]
)
router.include_router(
    consultants.router,
    prefix=f"{_ONBOARDING_PREFIX}/consultants",
    tags=["onboarding"],
)
