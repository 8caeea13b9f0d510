"""
Authentication utilities - shared token/hash components and FastAPI dependencies.
"""

from typing import Optional

from fastapi import Depends, Header

from ..config import settings
from ..core.exceptions import ForbiddenError, InvalidTokenError, UserNotFoundError
from ..core.security import PasswordHasher
from ..core.tokens import ACCESS, TokenConfig, TokenService
from ..models.user import User
from ..services import AdminService, AuthService, OnboardingService
from ..storage.user_repository import get_user_repository

token_service = TokenService(TokenConfig.from_settings(settings))
password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)


def get_auth_service() -> AuthService:
    return AuthService(
        get_user_repository(),
        token_service,
        password_hasher,
        max_refresh_tokens=settings.max_refresh_tokens,
    )


def get_onboarding_service() -> OnboardingService:
    return OnboardingService(get_user_repository())


def get_admin_service() -> AdminService:
    return AdminService(get_user_repository())


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> str:
    """
    Dependency to get current user ID from the bearer access token.

    Args:
        authorization: Raw ``Authorization`` header

    Returns:
        str: User ID (the token's ``sub`` claim)

    Raises:
        InvalidTokenError: Header missing or token malformed/invalid
        TokenExpiredError: Access token expired
        WrongTokenTypeError: A refresh token was presented
    """
    token = TokenService.extract_from_header(authorization)
    if token is None:
        raise InvalidTokenError("Access token is required")
    if not TokenService.is_well_formed(token):
        raise InvalidTokenError("Malformed authentication token")

    claims = token_service.verify(token, expected_type=ACCESS)
    return claims["sub"]


async def get_current_user(user_id: str = Depends(get_current_user_id)) -> User:
    user = await get_user_repository().get_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Dependency that only lets admins through."""
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
