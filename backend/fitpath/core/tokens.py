"""
Token Service - issues, verifies and inspects signed JWT access/refresh tokens.

Structural checks (``is_well_formed``, ``extract_from_header``) are kept apart
from cryptographic verification so callers can reject garbage cheaply, and
verification failures are split into three kinds so clients know whether to
refresh silently (expired) or force a new sign-in (invalid / wrong type).
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from .exceptions import InvalidTokenError, TokenExpiredError, WrongTokenTypeError

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"
TOKEN_TYPES = (ACCESS, REFRESH)


@dataclass(frozen=True)
class TokenConfig:
    """Immutable signing configuration handed to ``TokenService``."""
    secret: str
    algorithm: str = "HS256"
    issuer: str = "fitness-app"
    audience: str = "fitness-app-users"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)

    @classmethod
    def from_settings(cls, settings: Any) -> "TokenConfig":
        return cls(
            secret=settings.secret_key,
            algorithm=settings.algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(days=settings.refresh_token_expire_days),
        )


@dataclass(frozen=True)
class TokenPair:
    """Access + refresh token issued together. Durations are in seconds."""
    access_token: str
    refresh_token: str
    expires_in: int
    refresh_expires_in: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresIn": self.expires_in,
            "refreshExpiresIn": self.refresh_expires_in,
        }


class TokenService:
    """Signs and verifies tokens with a single shared secret and algorithm."""

    def __init__(self, config: TokenConfig):
        if not config.secret:
            raise ValueError("TokenService requires a non-empty secret")
        self.config = config

    # ------------------------------------------------------------------ issue

    def _issue(self, user_id: str, token_type: str, expires_delta: timedelta) -> str:
        now = datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "type": token_type,
            "jti": str(uuid.uuid4()),
            "iss": self.config.issuer,
            "aud": self.config.audience,
            "iat": now,
            "exp": now + expires_delta,
        }
        return jwt.encode(claims, self.config.secret, algorithm=self.config.algorithm)

    def issue_access_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a short-lived access token for ``user_id``."""
        return self._issue(user_id, ACCESS, expires_delta or self.config.access_ttl)

    def issue_refresh_token(self, user_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a refresh token for ``user_id``."""
        return self._issue(user_id, REFRESH, expires_delta or self.config.refresh_ttl)

    def issue_token_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access_token(user_id),
            refresh_token=self.issue_refresh_token(user_id),
            expires_in=int(self.config.access_ttl.total_seconds()),
            refresh_expires_in=int(self.config.refresh_ttl.total_seconds()),
        )

    @property
    def access_expires_in(self) -> int:
        return int(self.config.access_ttl.total_seconds())

    # ----------------------------------------------------------------- verify

    def verify(self, token: str, expected_type: str = ACCESS) -> Dict[str, Any]:
        """
        Verify signature, algorithm, issuer, audience, expiry and token type.

        Args:
            token: Encoded JWT
            expected_type: "access" or "refresh"

        Returns:
            Dict[str, Any]: Verified claims

        Raises:
            InvalidTokenError: Signature/issuer/audience/algorithm mismatch or garbage input
            TokenExpiredError: Token is past its expiry
            WrongTokenTypeError: Token ``type`` claim differs from ``expected_type``
        """
        if expected_type not in TOKEN_TYPES:
            raise ValueError(f"Unknown token type: {expected_type}")
        if not self.is_well_formed(token):
            raise InvalidTokenError("Malformed authentication token")

        try:
            claims = jwt.decode(
                token,
                self.config.secret,
                algorithms=[self.config.algorithm],
                audience=self.config.audience,
                issuer=self.config.issuer,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Your session has expired. Please login again")
        except JWTError as e:
            logger.debug(f"Token verification failed: {e}")
            raise InvalidTokenError("Invalid authentication token")

        token_type = claims.get("type")
        if token_type != expected_type:
            raise WrongTokenTypeError(
                f"Invalid token type. Expected {expected_type}, got {token_type}"
            )
        if not claims.get("sub"):
            raise InvalidTokenError("Token has no subject")

        return claims

    # ---------------------------------------------------------------- inspect

    @staticmethod
    def decode(token: str) -> Optional[Dict[str, Any]]:
        """Read claims WITHOUT verifying the signature. Diagnostics only."""
        try:
            return jwt.get_unverified_claims(token)
        except (JWTError, AttributeError, TypeError):
            return None

    @classmethod
    def expiry_of(cls, token: str) -> Optional[datetime]:
        claims = cls.decode(token)
        if not claims or not isinstance(claims.get("exp"), (int, float)):
            return None
        return datetime.fromtimestamp(claims["exp"], tz=timezone.utc)

    @classmethod
    def is_expired(cls, token: str) -> bool:
        """True for expired tokens and for anything that cannot be read."""
        expiry = cls.expiry_of(token)
        if expiry is None:
            return True
        return expiry < datetime.now(timezone.utc)

    @staticmethod
    def extract_from_header(header_value: Optional[str]) -> Optional[str]:
        """Strip a ``Bearer `` prefix; return the raw value otherwise."""
        if not header_value:
            return None
        if header_value.startswith("Bearer "):
            return header_value[len("Bearer "):] or None
        return header_value

    @staticmethod
    def is_well_formed(token: Optional[str]) -> bool:
        """Structural check only: three non-empty dot-separated segments."""
        if not token or not isinstance(token, str):
            return False
        parts = token.split(".")
        return len(parts) == 3 and all(parts)
