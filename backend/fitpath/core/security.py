"""
Password hashing and credential policy.
"""

import logging
import re
from typing import List

import bcrypt
from starlette.concurrency import run_in_threadpool

from .exceptions import HashingError

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes of its input
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 72
FORBIDDEN_PASSWORDS = {
    "password",
    "12345678",
    "qwerty123",
    "admin123",
    "password123",
}

EMAIL_MAX_LENGTH = 254
BLOCKED_EMAIL_DOMAINS = {"tempmail.org", "10minutemail.com", "guerrillamail.com"}


class PasswordHasher:
    """
    Salted bcrypt hashing with a fixed cost factor.

    Hashing and comparison run in the thread pool so request handlers can
    await them without blocking the event loop.
    """

    def __init__(self, rounds: int = 12):
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds

    def hash_sync(self, password: str) -> str:
        """Hash a password."""
        try:
            hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=self.rounds))
        except (ValueError, TypeError) as e:
            logger.error(f"Password hashing failed: {e}")
            raise HashingError("Password hashing failed") from e
        return hashed.decode('utf-8')

    def verify_sync(self, password: str, hashed_password: str) -> bool:
        """Verify a plain password against a hashed password."""
        try:
            return bcrypt.checkpw(password.encode('utf-8'), hashed_password.encode('utf-8'))
        except (ValueError, TypeError) as e:
            logger.error(f"Password comparison failed: {e}")
            raise HashingError("Password comparison failed") from e

    async def hash(self, password: str) -> str:
        return await run_in_threadpool(self.hash_sync, password)

    async def verify(self, password: str, hashed_password: str) -> bool:
        return await run_in_threadpool(self.verify_sync, password, hashed_password)

    @staticmethod
    def is_hash(value: str) -> bool:
        """True if the value looks like a bcrypt hash ($2a$/$2b$/$2y$)."""
        return bool(re.match(r"^\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}$", value or ""))


def validate_password(password: str) -> List[str]:
    """
    Check a candidate password against the password policy.

    Returns:
        List[str]: Human readable problems, empty when the password is acceptable
    """
    errors = []

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password.encode('utf-8')) > PASSWORD_MAX_LENGTH:
        errors.append(f"Password cannot exceed {PASSWORD_MAX_LENGTH} bytes")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if password.lower() in FORBIDDEN_PASSWORDS:
        errors.append("Password is too common, please choose a different password")

    return errors


def validate_email_domain(email: str) -> List[str]:
    """Check an email address against length and blocked-domain rules."""
    errors = []
    if len(email) > EMAIL_MAX_LENGTH:
        errors.append(f"Email cannot exceed {EMAIL_MAX_LENGTH} characters")
    domain = email.rsplit("@", 1)[-1].lower() if "@" in email else ""
    if domain in BLOCKED_EMAIL_DOMAINS:
        errors.append("Email domain is not allowed")
    return errors
