"""Models module."""

from .onboarding import (
    Section, BasicInfo, Lifestyle, MedicalHistory, Goals, Preferences, LabResults,
    DataQuality, SessionInfo, OnboardingStatus, SECTION_MODELS
)
from .user import (
    User, RefreshTokenEntry, SignupRequest, SigninRequest, RefreshTokenRequest,
    LogoutRequest, ChangePasswordRequest, ChangeEmailRequest, AdminStatusUpdate
)

__all__ = [
    'Section', 'BasicInfo', 'Lifestyle', 'MedicalHistory', 'Goals', 'Preferences', 'LabResults',
    'DataQuality', 'SessionInfo', 'OnboardingStatus', 'SECTION_MODELS',
    'User', 'RefreshTokenEntry', 'SignupRequest', 'SigninRequest', 'RefreshTokenRequest',
    'LogoutRequest', 'ChangePasswordRequest', 'ChangeEmailRequest', 'AdminStatusUpdate'
]
