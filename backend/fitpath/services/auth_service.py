"""
Auth Service - registration, sign-in, refresh-token lifecycle and credential changes.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

from ..core.exceptions import (
    DuplicateEntryError,
    InvalidCredentialsError,
    InvalidCurrentPasswordError,
    RevokedTokenError,
    UserNotFoundError,
)
from ..core.security import PasswordHasher
from ..core.tokens import REFRESH, TokenPair, TokenService
from ..models.base import utcnow
from ..models.user import MAX_REFRESH_TOKENS, User
from ..storage.user_repository import UserRepository

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Outcome of signup/signin: the stored user and the freshly issued tokens."""
    user: User
    tokens: TokenPair

    def to_response(self, message: str) -> Dict[str, Any]:
        return {
            "success": True,
            "message": message,
            "token": self.tokens.access_token,
            "refreshToken": self.tokens.refresh_token,
            "user": self.user.summary(),
        }


class AuthService:
    """
    Account operations on top of the user repository.

    Args:
        repository: Where user documents live
        token_service: Issues and verifies JWTs
        hasher: bcrypt wrapper
        max_refresh_tokens: How many refresh tokens a user keeps
        refresh_ttl: How long a stored refresh token stays usable. Defaults to
            the token service's refresh lifetime
    """

    def __init__(
        self,
        repository: UserRepository,
        token_service: TokenService,
        hasher: PasswordHasher,
        max_refresh_tokens: int = MAX_REFRESH_TOKENS,
        refresh_ttl: Optional[timedelta] = None,
    ):
        self.repository = repository
        self.token_service = token_service
        self.hasher = hasher
        self.max_refresh_tokens = max_refresh_tokens
        self.refresh_ttl = refresh_ttl or token_service.config.refresh_ttl

    async def get_user(self, user_id: str) -> User:
        user = await self.repository.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    def _start_session(self, user: User) -> TokenPair:
        now = utcnow()
        tokens = self.token_service.issue_token_pair(user.id)
        user.clean_expired_tokens(now, self.refresh_ttl)
        user.add_refresh_token(tokens.refresh_token, now, limit=self.max_refresh_tokens)
        user.last_login_at = now
        return tokens

    async def signup(self, email: str, password: str) -> AuthResult:
        """
        Register a new account and sign it in.

        Raises:
            DuplicateEntryError: If the email is already registered
        """
        email = email.strip().lower()
        if await self.repository.get_by_email(email) is not None:
            raise DuplicateEntryError(
                "A user with this email address already exists",
                details={"field": "email", "value": email},
            )

        user = User(email=email, hashed_password=await self.hasher.hash(password))
        tokens = self._start_session(user)
        user = await self.repository.create(user)

        logger.info(f"User registered: {user.id}")
        return AuthResult(user=user, tokens=tokens)

    async def signin(self, email: str, password: str) -> AuthResult:
        """
        Authenticate with email and password.

        Raises:
            InvalidCredentialsError: Unknown email or wrong password (same message)
        """
        user = await self.repository.get_by_email(email)
        if user is None or not await self.hasher.verify(password, user.hashed_password):
            logger.warning("Failed sign-in attempt")
            raise InvalidCredentialsError()

        tokens = self._start_session(user)
        user = await self.repository.save(user)

        logger.info(f"User signed in: {user.id}")
        return AuthResult(user=user, tokens=tokens)

    async def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Exchange a stored refresh token for a new access token.

        The refresh token itself is not rotated.

        Raises:
            InvalidTokenError, TokenExpiredError, WrongTokenTypeError: Verification failed
            UserNotFoundError: The token's subject no longer exists
            RevokedTokenError: The token is not (or no longer) stored for the user
        """
        claims = self.token_service.verify(refresh_token, expected_type=REFRESH)
        user = await self.repository.get_by_id(claims["sub"])
        if user is None:
            raise UserNotFoundError()

        if not user.is_valid_refresh_token(refresh_token, utcnow(), self.refresh_ttl):
            logger.warning(f"Revoked or expired refresh token used for user {user.id}")
            raise RevokedTokenError("Refresh token has been revoked")

        return {
            "accessToken": self.token_service.issue_access_token(user.id),
            "expiresIn": self.token_service.access_expires_in,
        }

    async def logout(self, user_id: str, refresh_token: Optional[str] = None) -> None:
        """Revoke one refresh token. Without a token this only confirms the user exists."""
        user = await self.get_user(user_id)
        if refresh_token and user.revoke_refresh_token(refresh_token):
            await self.repository.save(user)
        logger.info(f"User logged out: {user_id}")

    async def logout_all(self, user_id: str) -> None:
        user = await self.get_user(user_id)
        user.revoke_all_refresh_tokens()
        await self.repository.save(user)
        logger.info(f"User logged out from all devices: {user_id}")

    async def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        """
        Replace the password and sign out every device.

        Raises:
            InvalidCurrentPasswordError: If ``current_password`` is wrong
        """
        user = await self.get_user(user_id)
        if not await self.hasher.verify(current_password, user.hashed_password):
            raise InvalidCurrentPasswordError("Current password is incorrect")

        user.hashed_password = await self.hasher.hash(new_password)
        user.revoke_all_refresh_tokens()
        await self.repository.save(user)
        logger.info(f"Password changed for user {user_id}")

    async def change_email(self, user_id: str, new_email: str, password: str) -> User:
        """
        Move the account to a new email address after re-checking the password.

        Raises:
            InvalidCurrentPasswordError: If ``password`` is wrong
            DuplicateEntryError: If another account uses ``new_email``
        """
        user = await self.get_user(user_id)
        if not await self.hasher.verify(password, user.hashed_password):
            raise InvalidCurrentPasswordError("Password is incorrect")

        new_email = new_email.strip().lower()
        if new_email == user.email:
            return user

        existing = await self.repository.get_by_email(new_email)
        if existing is not None and existing.id != user.id:
            raise DuplicateEntryError(
                "A user with this email address already exists",
                details={"field": "email", "value": new_email},
            )

        user.email = new_email
        user.is_email_verified = False
        user = await self.repository.save(user)
        logger.info(f"Email changed for user {user_id}")
        return user
