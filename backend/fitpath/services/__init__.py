"""Services module - account, onboarding and admin operations."""

from .auth_service import AuthService, AuthResult
from .onboarding_service import OnboardingService
from .admin_service import AdminService

__all__ = ['AuthService', 'AuthResult', 'OnboardingService', 'AdminService']
