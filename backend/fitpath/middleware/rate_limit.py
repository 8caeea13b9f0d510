"""
Per-client rate limiting.

Fixed window counter keyed by client IP: at most ``max_requests`` per
``window_seconds``. Pure ASGI like the request logger, so a rejected request
never reaches the routers. Responses carry ``RateLimit-*`` headers; a 429 also
carries ``Retry-After``.
"""

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after: int  # seconds until the current window ends

    def headers(self) -> Dict[str, str]:
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": str(self.reset_after),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.reset_after)
        return headers


class FixedWindowRateLimiter:
    """
    In-memory fixed window counter.

    Args:
        max_requests: Requests allowed per window and key
        window_seconds: Window length
        now: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        now: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1 or window_seconds <= 0:
            raise ValueError("max_requests and window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._now = now
        # key -> (window start, hits)
        self._windows: Dict[str, Tuple[float, int]] = {}

    def _prune(self, now: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for key in expired:
            del self._windows[key]

    def hit(self, key: str) -> RateLimitDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        now = self._now()
        start, hits = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            self._prune(now)
            start, hits = now, 0

        reset_after = max(1, math.ceil(start + self.window_seconds - now))
        if hits >= self.max_requests:
            return RateLimitDecision(False, self.max_requests, 0, reset_after)

        hits += 1
        self._windows[key] = (start, hits)
        return RateLimitDecision(True, self.max_requests, self.max_requests - hits, reset_after)

    def reset(self) -> None:
        self._windows.clear()


class RateLimitMiddleware:
    """Rejects clients that exceed the limiter with 429 ``RATE_LIMIT_EXCEEDED``."""

    def __init__(
        self,
        app: ASGIApp,
        limiter: FixedWindowRateLimiter,
        exclude_paths: Optional[Iterable[str]] = None,
    ):
        self.app = app
        self.limiter = limiter
        self.exclude_paths = set(exclude_paths or ("/", "/health"))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        client = scope.get("client")
        client_ip = client[0] if client else "unknown"
        decision = self.limiter.hit(f"ip:{client_ip}")

        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {client_ip} on {scope.get('path')}")
            error = RateLimitExceededError(retry_after=decision.reset_after)
            response = JSONResponse(
                status_code=error.status_code,
                content=error.to_dict(),
                headers=decision.headers(),
            )
            await response(scope, receive, send)
            return

        extra_headers = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in decision.headers().items()]

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                message = {**message, "headers": list(message.get("headers", [])) + extra_headers}
            await send(message)

        await self.app(scope, receive, send_wrapper)
