# fasttrack/shared/middleware/rate_limiting_middleware.py

"""
Middleware for request rate limiting.

In-memory, per client IP. The token endpoints get a stricter limit and
repeated 401s on them block the IP for a while.
"""

import time
from datetime import datetime
import logging
from typing import Dict, Tuple, List, Set, Optional
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from fasttrack.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

SENSITIVE_ROUTES = {
    "/api/v1/oauth/app_token",
    "/api/v1/oauth/refresh_token",
}

UNLIMITED_PATHS = {"/", "/up", "/docs", "/redoc", "/openapi.json"}


class AsyncRateLimiter:
    """
    In-memory rate limiting by IP with separate limits for default and sensitive routes.
    """

    def __init__(
            self,
            default_limit: Optional[int] = None,
            sensitive_limit: Optional[int] = None,
            sensitive_routes: Optional[Set[str]] = None,
    ):
        # {ip: [(timestamp, path), ...]}
        self.requests: Dict[str, List[Tuple[float, str]]] = {}
        self.window_time = 60
        self.default_limit = default_limit or settings.RATE_LIMIT_DEFAULT_PER_MINUTE
        self.sensitive_limit = sensitive_limit or settings.RATE_LIMIT_SENSITIVE_PER_MINUTE
        self.sensitive_routes: Set[str] = sensitive_routes or set(SENSITIVE_ROUTES)

        # {ip: release_timestamp}
        self.blocked_ips: Dict[str, float] = {}
        self.block_duration = 300

        # {ip: [(timestamp, path), ...]}
        self.auth_failures: Dict[str, List[Tuple[float, str]]] = {}
        self.auth_failure_limit = 5
        self.auth_block_duration = 600

    def is_sensitive(self, path: str) -> bool:
        return any(path.startswith(route) for route in self.sensitive_routes)

    def _clean_old_requests(self, ip: str):
        """Remove requests outside the time window."""
        if ip not in self.requests:
            return
        cutoff_time = time.time() - self.window_time
        self.requests[ip] = [(ts, path) for ts, path in self.requests[ip] if ts > cutoff_time]
        if not self.requests[ip]:
            del self.requests[ip]

    def _clean_old_auth_failures(self, ip: str):
        """Authentication failures are counted over five windows."""
        if ip not in self.auth_failures:
            return
        cutoff_time = time.time() - (self.window_time * 5)
        self.auth_failures[ip] = [(ts, path) for ts, path in self.auth_failures[ip] if ts > cutoff_time]
        if not self.auth_failures[ip]:
            del self.auth_failures[ip]

    def _clean_expired_blocks(self):
        current_time = time.time()
        for ip in [ip for ip, block_until in self.blocked_ips.items() if block_until <= current_time]:
            del self.blocked_ips[ip]

    def is_blocked(self, ip: str) -> bool:
        self._clean_expired_blocks()
        return ip in self.blocked_ips

    async def add_auth_failure(self, ip: str, path: str):
        self.auth_failures.setdefault(ip, []).append((time.time(), path))
        self._clean_old_auth_failures(ip)
        if len(self.auth_failures.get(ip, [])) >= self.auth_failure_limit:
            await self.block_ip(ip, is_auth_failure=True)

    async def block_ip(self, ip: str, is_auth_failure: bool = False):
        duration = self.auth_block_duration if is_auth_failure else self.block_duration
        block_until = time.time() + duration
        self.blocked_ips[ip] = block_until

        block_type = "authentication failures" if is_auth_failure else "excessive requests"
        logger.warning(
            f"IP {ip} blocked due to {block_type} until "
            f"{datetime.fromtimestamp(block_until).strftime('%Y-%m-%d %H:%M:%S')}"
        )

    async def is_rate_limited(self, ip: str, path: str) -> Tuple[bool, Optional[int]]:
        """
        Check and count a request.

        Returns:
            (is_limited, remaining requests in the window, None when blocked)
        """
        if self.is_blocked(ip):
            return True, None

        self._clean_old_requests(ip)
        history = self.requests.setdefault(ip, [])

        sensitive = self.is_sensitive(path)
        limit = self.sensitive_limit if sensitive else self.default_limit
        if sensitive:
            count = sum(1 for _, req_path in history if self.is_sensitive(req_path))
        else:
            count = len(history)

        if count >= limit:
            if sensitive and count >= limit * 2:
                await self.block_ip(ip)
            return True, 0

        history.append((time.time(), path))
        return False, limit - count - 1

    def reset(self):
        self.requests.clear()
        self.blocked_ips.clear()
        self.auth_failures.clear()


# Global rate limiter instance
async_rate_limiter = AsyncRateLimiter()


class AsyncRateLimitingMiddleware(BaseHTTPMiddleware):
    """
    Middleware that limits the number of requests by IP.
    """

    def __init__(self, app, limiter: Optional[AsyncRateLimiter] = None):
        super().__init__(app)
        self.limiter = limiter or async_rate_limiter

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not settings.RATE_LIMIT_ENABLED or path in UNLIMITED_PATHS:
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        is_limited, remaining = await self.limiter.is_rate_limited(client_ip, path)

        if is_limited:
            logger.warning(f"Rate limit exceeded for IP: {client_ip} on path: {path}")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": "Too many requests. Try again later.",
                    "code": "RATE_LIMIT_EXCEEDED"
                },
                headers={"Retry-After": "60"}
            )

        response = await call_next(request)

        if remaining is not None:
            response.headers["X-RateLimit-Remaining"] = str(remaining)

        if response.status_code == 401 and self.limiter.is_sensitive(path):
            await self.limiter.add_auth_failure(client_ip, path)

        return response
