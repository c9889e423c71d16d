"""API v1 router aggregator.

URL structure: /api/v1/<resource>[/<id>][/<action>].

All v1 endpoint routers are included here.
"""

from fastapi import APIRouter

from app.api.v1 import (
    addons,
    admin,
    auth,
    billing,
    cron,
    images,
    inquiries,
    listings,
    profiles,
    uploads,
    verification,
    watchlist,
)

router = APIRouter()

# =============================================================================
# Authentication
# =============================================================================

router.include_router(auth.router, prefix="/auth", tags=["auth"])

# =============================================================================
# Core Resource Routers
# =============================================================================

router.include_router(listings.router, prefix="/listings", tags=["listings"])
router.include_router(profiles.router, prefix="/profiles", tags=["profiles"])
router.include_router(inquiries.router, prefix="/inquiries", tags=["inquiries"])
router.include_router(watchlist.router, prefix="/watchlist", tags=["watchlist"])
router.include_router(addons.router, prefix="/addons", tags=["addons"])
router.include_router(
    verification.router, prefix="/verification", tags=["verification"]
)

# =============================================================================
# Files
# =============================================================================

router.include_router(uploads.router, prefix="/uploads", tags=["uploads"])
router.include_router(images.router, tags=["images"])

# =============================================================================
# Billing, Admin and Scheduled Jobs
# =============================================================================

router.include_router(billing.router, prefix="/billing", tags=["billing"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(cron.router, prefix="/cron", tags=["cron"])
