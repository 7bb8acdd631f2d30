"""
API v1 Router

Organizations, opportunities, signups and the calling user's own views.
"""

from fastapi import APIRouter
from . import opportunities, organizations, signups, users

router = APIRouter()

router.include_router(organizations.router, prefix="/organizations", tags=["Organizations"])
router.include_router(opportunities.router, prefix="/opportunities", tags=["Opportunities"])
router.include_router(signups.router, prefix="/signups", tags=["Signups"])
router.include_router(users.router, prefix="/user", tags=["Users"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/organizations",
            "/organizations/{orgId}/members",
            "/organizations/{orgId}/stats",
            "/opportunities",
            "/opportunities/{opportunityId}/signup",
            "/signups/{signupId}",
            "/user/signups",
            "/user/stats",
        ],
    }
