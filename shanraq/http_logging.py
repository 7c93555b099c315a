"""Request logging middleware."""

from __future__ import annotations

import logging
import time

from typing import Any


logger = logging.getLogger("shanraq.http")


class RequestLoggingMiddleware:
    """ASGI middleware logging method, path, status and duration per request."""

    def __init__(self, app: Any) -> None:
        self.app = app

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        """Handle ASGI request."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        status_code = 500

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            logger.info(
                "%s %s %d %.1fms",
                scope.get("method", ""),
                scope.get("path", ""),
                status_code,
                (time.perf_counter() - start) * 1000,
            )
