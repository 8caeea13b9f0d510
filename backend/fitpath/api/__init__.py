"""API module."""

from .auth import router as auth_router
from .users import router as users_router
from .onboarding import router as onboarding_router
from .admin import router as admin_router

__all__ = ['auth_router', 'users_router', 'onboarding_router', 'admin_router']
