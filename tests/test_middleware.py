"""
Rate limiting and error mapping.
"""

from unittest.mock import patch

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from fasttrack.adapters.configuration.config import settings
from fasttrack.domain.exceptions import (
    AuthenticationFailedException,
    DeadlinePassedException,
    IncompleteApplicationException,
    InvalidCredentialsException,
    StorageException,
    TokenAuthorityError,
)
from fasttrack.shared.middleware.exception_middleware import AsyncExceptionMiddleware, status_for
from fasttrack.shared.middleware.rate_limiting_middleware import AsyncRateLimiter, AsyncRateLimitingMiddleware

TOKEN_PATH = "/api/v1/oauth/app_token"


@pytest.fixture
def limiter():
    return AsyncRateLimiter(default_limit=3, sensitive_limit=2)


class TestAsyncRateLimiter:

    async def test_default_limit(self, limiter):
        results = [await limiter.is_rate_limited("10.0.0.1", "/api/v1/documents") for _ in range(4)]
        assert results == [(False, 2), (False, 1), (False, 0), (True, 0)]

    async def test_limits_are_per_ip(self, limiter):
        for _ in range(3):
            await limiter.is_rate_limited("10.0.0.1", "/api/v1/documents")
        assert await limiter.is_rate_limited("10.0.0.2", "/api/v1/documents") == (False, 2)

    async def test_sensitive_routes_have_their_own_limit(self, limiter):
        assert limiter.is_sensitive(TOKEN_PATH)
        assert not limiter.is_sensitive("/api/v1/markets")
        await limiter.is_rate_limited("10.0.0.1", TOKEN_PATH)
        await limiter.is_rate_limited("10.0.0.1", TOKEN_PATH)
        assert await limiter.is_rate_limited("10.0.0.1", TOKEN_PATH) == (True, 0)
        assert await limiter.is_rate_limited("10.0.0.1", "/api/v1/markets") == (False, 0)

    async def test_blocks_after_repeated_auth_failures(self, limiter):
        for _ in range(4):
            await limiter.add_auth_failure("10.0.0.1", TOKEN_PATH)
        assert not limiter.is_blocked("10.0.0.1")
        await limiter.add_auth_failure("10.0.0.1", TOKEN_PATH)
        assert limiter.is_blocked("10.0.0.1")
        assert await limiter.is_rate_limited("10.0.0.1", "/api/v1/documents") == (True, None)

    async def test_reset(self, limiter):
        await limiter.block_ip("10.0.0.1")
        limiter.reset()
        assert not limiter.is_blocked("10.0.0.1")


class TestStatusMapping:

    @pytest.mark.parametrize("exc, expected", [
        (DeadlinePassedException(), 410),
        (IncompleteApplicationException(["email"], [3]), 422),
        (InvalidCredentialsException(), 401),
        (AuthenticationFailedException("invalid_client"), 401),
        (AuthenticationFailedException("timeout"), 504),
        (AuthenticationFailedException("unreachable"), 503),
        (TokenAuthorityError("unreachable"), 503),
        (StorageException(), 500),
    ])
    def test_status_for(self, exc, expected):
        assert status_for(exc) == expected


def small_app(limiter):
    app = FastAPI()

    @app.get("/closed")
    async def closed():
        raise DeadlinePassedException()

    @app.get("/authority")
    async def authority():
        raise AuthenticationFailedException("timeout")

    @app.post(TOKEN_PATH)
    async def token():
        raise InvalidCredentialsException("Invalid client credentials")

    @app.get("/ok")
    async def ok():
        return {"ok": True}

    app.add_middleware(AsyncExceptionMiddleware)
    app.add_middleware(AsyncRateLimitingMiddleware, limiter=limiter)
    return app


@pytest_asyncio.fixture
async def http(limiter):
    async with AsyncClient(transport=ASGITransport(app=small_app(limiter)), base_url="http://test") as client:
        yield client


class TestMiddlewareStack:

    async def test_domain_error_body(self, http):
        response = await http.get("/closed")
        body = response.json()
        assert response.status_code == 410
        assert body["code"] == "DEADLINE_PASSED"
        assert body["errors"] == {}

    async def test_server_side_failures_hide_details(self, http):
        response = await http.get("/authority")
        assert response.status_code == 504
        assert response.json()["detail"] == "Service temporarily unavailable"

    async def test_rate_limit_when_enabled(self, http):
        with patch.object(settings, "RATE_LIMIT_ENABLED", True):
            statuses = [(await http.get("/ok")).status_code for _ in range(4)]
            limited = await http.get("/ok")
        assert statuses == [200, 200, 200, 429]
        assert limited.headers["Retry-After"] == "60"
        assert limited.json()["code"] == "RATE_LIMIT_EXCEEDED"

    async def test_rate_limit_disabled(self, http):
        statuses = {(await http.get("/ok")).status_code for _ in range(6)}
        assert statuses == {200}

    async def test_failed_token_requests_block_the_client(self, http, limiter):
        with patch.object(settings, "RATE_LIMIT_ENABLED", True):
            limiter.sensitive_limit = 10
            limiter.default_limit = 100
            for _ in range(5):
                assert (await http.post(TOKEN_PATH)).status_code == 401
            blocked = await http.get("/ok")
        assert blocked.status_code == 429
        assert limiter.is_blocked("127.0.0.1")
