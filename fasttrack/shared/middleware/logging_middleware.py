# fasttrack/shared/middleware/logging_middleware.py

"""
Middleware for HTTP request logging.

Each request gets a short id, taken from ``X-Request-ID`` when the
caller sends one, which prefixes both log lines and is echoed back so
an editor platform can quote it. Headers are never logged: they carry
bearer tokens.
"""

import time
import uuid
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from fasttrack.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 64


def request_id_for(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if incoming and len(incoming) <= MAX_REQUEST_ID_LENGTH and incoming.isprintable():
        return incoming
    return uuid.uuid4().hex[:12]


class AsyncRequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request and its outcome; server errors at warning level.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request_id_for(request)
        request.state.request_id = request_id
        route = f"{request.method} {request.url.path}"

        if settings.ENVIRONMENT == "production":
            logger.info(f"[{request_id}] {route}")
        else:
            client = request.client.host if request.client else "N/A"
            logger.info(f"[{request_id}] {route} | Query: {dict(request.query_params) or 'N/A'} | Client: {client}")

        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(level, f"[{request_id}] {route} -> {response.status_code} in {elapsed_ms:.1f}ms")

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
