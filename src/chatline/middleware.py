"""HTTP middleware: request logging and security headers."""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from .config import settings

logger = logging.getLogger(__name__)


def build_content_security_policy() -> str:
    """CSP allowing the API origin and images served from CloudFront."""
    if settings.is_production:
        connect_src = f"'self' {settings.API_URL}"
    else:
        connect_src = "'self' http://localhost:* https://localhost:* ws://localhost:*"

    return (
        "default-src 'self'; "
        f"connect-src {connect_src}; "
        "script-src 'self' 'unsafe-inline' 'unsafe-eval'; "
        "style-src 'self' 'unsafe-inline'; "
        "img-src 'self' https://*.cloudfront.net https://*.amazonaws.com data:; "
        "font-src 'self' https://fonts.googleapis.com data:"
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the Content-Security-Policy header to every response."""

    def __init__(self, app):
        super().__init__(app)
        self.policy = build_content_security_policy()

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = self.policy
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and latency of each request."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = round((time.perf_counter() - started) * 1000, 2)
            logger.info(
                f"{request.method} {request.url.path} -> {status_code} ({latency_ms}ms)"
            )
