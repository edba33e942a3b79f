# fasttrack/shared/middleware/__init__.py

from fasttrack.shared.middleware.exception_middleware import AsyncExceptionMiddleware
from fasttrack.shared.middleware.logging_middleware import AsyncRequestLoggingMiddleware
from fasttrack.shared.middleware.rate_limiting_middleware import AsyncRateLimitingMiddleware
from fasttrack.shared.middleware.security_headers_middleware import AsyncSecurityHeadersMiddleware

__all__ = [
    "AsyncExceptionMiddleware",
    "AsyncRequestLoggingMiddleware",
    "AsyncRateLimitingMiddleware",
    "AsyncSecurityHeadersMiddleware"
]
