"""
Request logging middleware.

Pure ASGI (not BaseHTTPMiddleware) so the request body can be observed
without consuming it. Bodies are only logged after credential fields are
masked; auth endpoints carry passwords and tokens in both directions.
"""

import json
import logging
import time
import uuid
from typing import Iterable, Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from ..core.logging_config import filter_sensitive_data, truncate_large_data

logger = logging.getLogger(__name__)

MAX_BODY_LOG_LENGTH = 2000


def sanitize_body(raw: bytes, max_length: int = MAX_BODY_LOG_LENGTH) -> Optional[str]:
    """Mask credentials in a JSON body; non-JSON bodies are only truncated."""
    if not raw:
        return None
    text = raw.decode("utf-8", errors="ignore")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        return truncate_large_data(text, max_length=max_length)
    return truncate_large_data(
        json.dumps(filter_sensitive_data(payload), ensure_ascii=False),
        max_length=max_length,
    )


def error_reason(body: Optional[str]) -> Optional[str]:
    """Pull ``code: message`` out of an error payload."""
    if not body:
        return None
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return truncate_large_data(body, max_length=200)
    if isinstance(payload, dict) and payload.get("message"):
        code = payload.get("code")
        return f"{code}: {payload['message']}" if code else str(payload["message"])
    return None


class RequestLoggingMiddleware:
    """Logs method, path, status and duration of every HTTP request."""

    def __init__(self, app: ASGIApp, exclude_paths: Optional[Iterable[str]] = None):
        """
        Args:
            app: The ASGI application
            exclude_paths: Paths that are passed through without logging
        """
        self.app = app
        self.exclude_paths = set(exclude_paths or ("/", "/health"))

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        request_id = uuid.uuid4().hex[:12]
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        client = scope.get("client")
        start_time = time.perf_counter()

        request_body = bytearray()
        response_body = bytearray()
        status_code = 0

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                request_body.extend(message.get("body", b""))
            return message

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            elif message["type"] == "http.response.body":
                response_body.extend(message.get("body", b""))
            await send(message)

        fields = {
            "request_id": request_id,
            "method": method,
            "path": path,
            "client": client[0] if client else None,
        }
        logger.debug(f"Request started: {method} {path}", extra={"extra_fields": fields})

        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {method} {path} - {e}",
                exc_info=True,
                extra={"extra_fields": {**fields, "duration_ms": round(duration_ms, 2)}},
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000
        request_text = sanitize_body(bytes(request_body))
        response_text = sanitize_body(bytes(response_body))

        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        message = f"{method} {path} - {status_code} ({duration_ms:.2f}ms)"
        reason = error_reason(response_text) if status_code >= 400 else None
        if reason:
            message += f" | {reason}"

        logger.log(
            level,
            message,
            extra={"extra_fields": {
                **fields,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
                "request_body": request_text,
                "response_body": response_text if logger.isEnabledFor(logging.DEBUG) else None,
                "error_reason": reason,
            }},
        )
