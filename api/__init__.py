"""
API Router Package.
Domain-separated routers for better organization.
"""
from fastapi import APIRouter

from .deps import get_current_user, get_principal, handle_service_error, TAGS_METADATA
from .auth import router as auth_router
from .worklogs import router as worklogs_router
from .dashboard import router as dashboard_router
from .teams import router as teams_router

# Main router that includes all sub-routers
router = APIRouter()

router.include_router(auth_router)
router.include_router(worklogs_router)
router.include_router(dashboard_router)
router.include_router(teams_router)

__all__ = [
    "router",
    "TAGS_METADATA",
    "get_current_user",
    "get_principal",
    "handle_service_error",
]
