"""
HTTP middleware: request logging context, CSRF protection and security headers.
"""

from __future__ import annotations

import secrets
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.auth import CSRF_COOKIE, SESSION_COOKIE
from app.core.errors import PermissionDeniedError, error_response

log = structlog.get_logger()

SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}

# Endpoints that start a session; a stale cookie must not block them
CSRF_EXEMPT_PATHS = {"/auth/login", "/auth/register"}

# ---------------------------------------------------------------------------
# Request context
# ---------------------------------------------------------------------------


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Bind a request id to every log line emitted while handling a request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            duration_ms = round((time.perf_counter() - started) * 1000, 1)
        response.headers["X-Request-ID"] = request_id
        log.info("request.completed", status=response.status_code, duration_ms=duration_ms)
        return response


# ---------------------------------------------------------------------------
# Security Headers
# ---------------------------------------------------------------------------

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "0",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    # Opportunity search may use the browser's location
    "Permissions-Policy": "camera=(), microphone=(), geolocation=(self)",
    "Content-Security-Policy": (
        "default-src 'self'; "
        "script-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "style-src 'self' 'unsafe-inline' https://cdn.jsdelivr.net; "
        "img-src 'self' data: https:; "
        "frame-ancestors 'none';"
    ),
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security headers to every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


# ---------------------------------------------------------------------------
# CSRF Protection (Double-Submit Cookie)
# ---------------------------------------------------------------------------


class CSRFValidationError(PermissionDeniedError):
    code = "CSRF_VALIDATION_FAILED"


def _needs_csrf_check(request: Request) -> bool:
    if request.method in SAFE_METHODS or request.url.path in CSRF_EXEMPT_PATHS:
        return False
    # Bearer callers do not ride on the browser's cookies
    if request.headers.get("Authorization"):
        return False
    return SESSION_COOKIE in request.cookies


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie CSRF protection for cookie-authenticated writes.

    The ``X-CSRF-Token`` header must echo the ``cs_csrf`` cookie set at login.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        if not _needs_csrf_check(request):
            return await call_next(request)

        cookie_token = request.cookies.get(CSRF_COOKIE) or ""
        header_token = request.headers.get("X-CSRF-Token") or ""
        if not cookie_token or not secrets.compare_digest(cookie_token, header_token):
            log.warning("auth.csrf_rejected", path=request.url.path, method=request.method)
            return error_response(CSRFValidationError("Invalid or missing CSRF token."))

        return await call_next(request)
