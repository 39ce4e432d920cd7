"""API routers."""

from .auth import router as auth_router
from .avatars import router as avatars_router

__all__ = ["auth_router", "avatars_router"]
