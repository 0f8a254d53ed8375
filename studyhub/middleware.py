"""HTTP middleware: security headers and request logging."""

import logging
import time
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from studyhub.security import get_security_headers, is_suspicious_user_agent, log_security_event

logger = logging.getLogger(__name__)

SKIP_LOGGING_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Add the security header set to every response.

    Requests from scanner-like user agents are logged as security events
    but still served.
    """

    def __init__(self, app: ASGIApp, environment: str | None = None):
        super().__init__(app)
        self.headers = get_security_headers(environment)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        user_agent = request.headers.get("user-agent")
        if is_suspicious_user_agent(user_agent):
            log_security_event("suspicious_user_agent", request)

        response = await call_next(request)
        for name, value in self.headers.items():
            response.headers[name] = value
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration. Level follows the status code."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.exception("%s %s failed after %.2fms", request.method, path, duration_ms)
            raise

        if path in SKIP_LOGGING_PATHS:
            return response

        duration_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO
        logger.log(level, "%s %s - %d (%.2fms)", request.method, path, status_code, duration_ms)

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response
