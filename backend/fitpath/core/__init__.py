"""Core module - tokens, password hashing, errors and the onboarding state machine."""

from .tokens import TokenService, TokenConfig, TokenPair
from .security import PasswordHasher

__all__ = ['TokenService', 'TokenConfig', 'TokenPair', 'PasswordHasher']
