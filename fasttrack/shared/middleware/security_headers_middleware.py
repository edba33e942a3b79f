# fasttrack/shared/middleware/security_headers_middleware.py

"""
Middleware for adding HTTP security headers.
"""

import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from fasttrack.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

PERMISSIONS_POLICY = (
    "accelerometer=(), "
    "camera=(), "
    "geolocation=(), "
    "gyroscope=(), "
    "magnetometer=(), "
    "microphone=(), "
    "payment=(), "
    "usb=()"
)

API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"


class AsyncSecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Adds security headers to API responses.

    The interactive documentation keeps its default policy; everything
    else is JSON or a file download and gets a deny-all CSP and no caching.
    """

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        path = request.url.path
        is_docs_route = path in ["/docs", "/redoc", "/openapi.json"] or path.startswith(("/docs/", "/redoc/"))

        if not is_docs_route:
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Content-Security-Policy"] = API_CSP
            response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
            response.headers["Permissions-Policy"] = PERMISSIONS_POLICY

            # Tokens, applications and artifacts must not end up in shared caches
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"

        if "Server" in response.headers:
            response.headers["Server"] = "FastTrack API"

        if settings.ENVIRONMENT == "production" and settings.USE_HTTPS:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response
