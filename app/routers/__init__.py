"""API routers."""

from app.routers.auth import router as auth_router
from app.routers.folders import router as folders_router

__all__ = ["auth_router", "folders_router"]
