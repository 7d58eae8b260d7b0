"""
HTTP middleware for the browser-facing API.

- Security headers on every response (HSTS only in production)
- Double-submit CSRF check for cookie-authenticated writes
"""

from __future__ import annotations

import secrets
from collections.abc import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from scheduler.core import errors
from scheduler.core.config import get_settings

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

# Stripe posts webhooks without cookies; listed so a stray cookie never blocks them
CSRF_EXEMPT_PATHS = frozenset({"/api/stripe/webhook"})

CSP_DIRECTIVES: dict[str, list[str]] = {
    "default-src": ["'self'"],
    "script-src": ["'self'", "'unsafe-inline'", "https://js.stripe.com"],
    "style-src": ["'self'", "'unsafe-inline'"],
    "img-src": ["'self'", "data:"],
    "connect-src": ["'self'", "https://api.stripe.com"],
    "frame-src": ["https://js.stripe.com", "https://checkout.stripe.com"],
    "frame-ancestors": ["'none'"],
}


def build_csp(directives: dict[str, list[str]] = CSP_DIRECTIVES) -> str:
    return "; ".join(f"{name} {' '.join(sources)}" for name, sources in directives.items()) + ";"


def security_headers(production: bool) -> dict[str, str]:
    headers = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "0",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
        "Content-Security-Policy": build_csp(),
    }
    if production:
        headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"
    return headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, production: bool | None = None):
        super().__init__(app)
        if production is None:
            production = get_settings().is_production
        self.headers = security_headers(production)

    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(self.headers)
        return response


class CSRFMiddleware(BaseHTTPMiddleware):
    """
    Double-submit cookie CSRF protection.

    The CSRF cookie is readable by the front end, which echoes it in the
    X-CSRF-Token header. Writes are only checked when a session cookie is
    present, so anonymous flows (register, login, invite accept) pass.
    """

    def __init__(
        self,
        app,
        session_cookie: str | None = None,
        csrf_cookie: str | None = None,
        exempt_paths: Iterable[str] = CSRF_EXEMPT_PATHS,
    ):
        super().__init__(app)
        settings = get_settings()
        self.session_cookie = session_cookie or settings.session_cookie_name
        self.csrf_cookie = csrf_cookie or settings.csrf_cookie_name
        self.exempt_paths = frozenset(exempt_paths)

    def _is_valid(self, request: Request) -> bool:
        cookie_token = request.cookies.get(self.csrf_cookie) or ""
        header_token = request.headers.get("X-CSRF-Token") or ""
        return bool(cookie_token) and secrets.compare_digest(
            cookie_token.encode(), header_token.encode()
        )

    async def dispatch(self, request: Request, call_next) -> Response:
        if (
            request.method in SAFE_METHODS
            or request.url.path in self.exempt_paths
            or self.session_cookie not in request.cookies
        ):
            return await call_next(request)

        if not self._is_valid(request):
            exc = errors.CSRFRejected()
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        return await call_next(request)
