# fasttrack/shared/middleware/exception_middleware.py

"""
Middleware for centralized exception handling.

Use cases return ``Err`` values; endpoints unwrap them, which raises the
carried domain exception. This middleware turns those exceptions (and
anything unexpected) into JSON responses.
"""

import time
import logging
import re
import traceback
from typing import Optional, Callable

from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, IntegrityError
from starlette.middleware.base import BaseHTTPMiddleware

from fasttrack.domain.exceptions import AuthenticationFailedException, DomainException
from fasttrack.adapters.configuration.config import settings

# Configure logger
logger = logging.getLogger(__name__)

STATUS_BY_CODE = {
    "RESOURCE_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "RESOURCE_ALREADY_EXISTS": status.HTTP_409_CONFLICT,
    "RESOURCE_INACTIVE": status.HTTP_400_BAD_REQUEST,
    "PERMISSION_DENIED": status.HTTP_403_FORBIDDEN,
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "INVALID_INPUT": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "INVALID_REFERENCE": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "APPLICATION_INCOMPLETE": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "APPLICATION_LOCKED": status.HTTP_409_CONFLICT,
    "ALREADY_SUBMITTED": status.HTTP_409_CONFLICT,
    "DEADLINE_PASSED": status.HTTP_410_GONE,
    "MARKET_CLOSED": status.HTTP_410_GONE,
    "MACHINE_AUTH_NOT_READY": status.HTTP_403_FORBIDDEN,
    "AUTHENTICATION_FAILED": status.HTTP_401_UNAUTHORIZED,
    "DATABASE_OPERATION_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "STORAGE_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "TOKEN_AUTHORITY_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
}

# Authentication failures caused by the authority itself, not by the client
AUTHORITY_FAILURE_STATUS = {
    "timeout": status.HTTP_504_GATEWAY_TIMEOUT,
    "unreachable": status.HTTP_503_SERVICE_UNAVAILABLE,
    "authority_error": status.HTTP_503_SERVICE_UNAVAILABLE,
    "storage_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: DomainException) -> int:
    if isinstance(exc, AuthenticationFailedException) and exc.reason in AUTHORITY_FAILURE_STATUS:
        return AUTHORITY_FAILURE_STATUS[exc.reason]
    return STATUS_BY_CODE.get(exc.internal_code, status.HTTP_400_BAD_REQUEST)


class AsyncExceptionMiddleware(BaseHTTPMiddleware):
    """
    Middleware for centralized exception handling.
    Captures specific exceptions and formats the response accordingly.
    """

    async def dispatch(self, request: Request, call_next: Callable):
        start_time = time.time()
        try:
            response = await call_next(request)
            process_time = time.time() - start_time
            response.headers["X-Process-Time"] = str(process_time)
            return response

        except DomainException as exc:
            status_code = status_for(exc)
            if status_code >= 500:
                logger.error(
                    f"Domain exception: {str(exc)} | Code: {exc.internal_code} | "
                    f"Path: {request.url.path}"
                )
                detail = "Service temporarily unavailable" if status_code >= 503 else "Internal server error"
                return JSONResponse(
                    status_code=status_code,
                    content={"detail": detail, "code": exc.internal_code, "errors": {}},
                )

            logger.info(
                f"Domain exception: {str(exc)} | Code: {exc.internal_code} | "
                f"Path: {request.url.path}"
            )
            return JSONResponse(
                status_code=status_code,
                content={
                    "detail": str(exc),
                    "code": exc.internal_code,
                    "errors": exc.details or {},
                }
            )

        except IntegrityError as exc:
            # Database integrity error
            error_info = str(exc)
            constraint_name = self._extract_constraint_name(error_info)
            logger.error(
                f"Integrity error: Type={type(exc).__name__} | "
                f"Constraint={constraint_name or 'N/A'} | "
                f"Path: {request.url.path}"
            )
            error_message = "Database integrity error" if settings.ENVIRONMENT == "production" else error_info

            return JSONResponse(
                status_code=status.HTTP_409_CONFLICT,
                content={
                    "detail": error_message,
                    "code": f"INTEGRITY_ERROR{f'_{constraint_name}' if constraint_name else ''}"
                }
            )

        except SQLAlchemyError as exc:
            if settings.ENVIRONMENT == "production":
                error_message = "Internal database error"
                logger.error(f"Database error: Type={type(exc).__name__} | Path: {request.url.path}")
            else:
                error_message = str(exc)
                logger.error(f"Database error: {str(exc)} | Path: {request.url.path}")

            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "detail": error_message,
                    "code": "DATABASE_ERROR"
                }
            )

        except Exception as exc:
            # Unhandled exceptions
            if settings.ENVIRONMENT == "production":
                error_message = "Internal server error"
                logger.exception(
                    f"Unhandled exception: Type={type(exc).__name__} | "
                    f"Path: {request.url.path} | "
                    f"Client: {request.client.host if request.client else 'N/A'}"
                )
            else:
                error_message = str(exc)
                logger.exception(
                    f"Unhandled exception: {str(exc)} | "
                    f"Path: {request.url.path}\n"
                    f"Traceback: {traceback.format_exc()}"
                )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={
                    "detail": error_message,
                    "code": "INTERNAL_SERVER_ERROR"
                }
            )

    def _extract_constraint_name(self, error_message: str) -> Optional[str]:
        """Constraint name from an integrity error message, when one can be found."""
        patterns = [
            r'constraint "(.*?)"',
            r'UNIQUE constraint failed: (.*)',
            r'duplicate key value violates unique constraint "(.*?)"'
        ]

        for pattern in patterns:
            match = re.search(pattern, error_message)
            if match:
                return match.group(1)
        return None
