"""
Request logging middleware.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    return request.client.host if request.client else ""


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per request with method, path, status and duration.
    """

    def __init__(self, app, logger: logging.Logger) -> None:
        super().__init__(app)
        self.logger = logger

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000
            if status_code >= 500:
                summary, level = "server error", logging.ERROR
            elif status_code >= 400:
                summary, level = "client error", logging.ERROR
            elif status_code >= 300:
                summary, level = "redirection", logging.INFO
            else:
                summary, level = "request completed", logging.INFO

            self.logger.log(
                level,
                "%s method=%s path=%s query=%s status_code=%s duration_ms=%.2f user_agent=%r ip=%s",
                summary,
                request.method,
                request.url.path,
                request.url.query,
                status_code,
                duration_ms,
                request.headers.get("user-agent", ""),
                client_ip(request),
            )
