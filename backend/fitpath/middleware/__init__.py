"""Middleware module."""

from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import FixedWindowRateLimiter, RateLimitMiddleware

__all__ = ['RequestLoggingMiddleware', 'RateLimitMiddleware', 'FixedWindowRateLimiter']
