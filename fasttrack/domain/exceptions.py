# fasttrack/domain/exceptions.py

"""
Custom exceptions for the application.

This module defines the pure domain exceptions. They carry an
``internal_code`` that the inbound HTTP adapter maps to a status code,
so the core never depends on the web framework.
"""

from typing import Any, Dict, Iterable, Optional


class DomainException(Exception):
    """
    Base exception for all application errors.

    Attributes:
        detail: Human-readable message, safe to show to the caller
        internal_code: Stable machine-readable error code
        details: Optional structured payload (field errors, id lists)
    """

    internal_code = "DOMAIN_ERROR"

    def __init__(
            self,
            detail: str = "Domain error",
            internal_code: Optional[str] = None,
            details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(detail)
        self.detail = detail
        if internal_code is not None:
            self.internal_code = internal_code
        self.details = details or {}

    def __str__(self) -> str:
        return self.detail


class ResourceNotFoundException(DomainException):
    """Resource not found."""

    internal_code = "RESOURCE_NOT_FOUND"

    def __init__(self, detail: str = "Resource not found", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(detail=f"{detail}{resource_info}")


class ResourceAlreadyExistsException(DomainException):
    """Resource already exists."""

    internal_code = "RESOURCE_ALREADY_EXISTS"

    def __init__(self, detail: str = "Resource already exists", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(detail=f"{detail}{resource_info}")


class ResourceInactiveException(DomainException):
    """Resource found, but it is inactive."""

    internal_code = "RESOURCE_INACTIVE"

    def __init__(self, detail: str = "Resource is inactive", resource_id: Any = None):
        resource_info = f" (ID: {resource_id})" if resource_id is not None else ""
        super().__init__(detail=f"{detail}{resource_info}")


class PermissionDeniedException(DomainException):
    """
    Permission denied.

    The message is deliberately generic: it never names the owner of
    the resource the caller tried to reach.
    """

    internal_code = "PERMISSION_DENIED"

    def __init__(self, detail: str = "Not permitted"):
        super().__init__(detail=detail)


class InvalidCredentialsException(DomainException):
    """Invalid credentials."""

    internal_code = "INVALID_CREDENTIALS"

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(detail=detail)


class InvalidInputException(DomainException):
    """Invalid input data, with per-field detail."""

    internal_code = "INVALID_INPUT"

    def __init__(self, detail: str = "Invalid input data", fields: Optional[Dict[str, str]] = None):
        self.fields = dict(fields or {})
        field_errors = ""
        if self.fields:
            field_errors = ": " + ", ".join([f"{field}: {error}" for field, error in self.fields.items()])
        super().__init__(detail=f"{detail}{field_errors}", details={"fields": self.fields})


class InvalidReferenceException(DomainException):
    """One or more referenced documents do not exist or are not eligible."""

    internal_code = "INVALID_REFERENCE"

    def __init__(self, ids: Iterable[Any], detail: str = "Invalid document references"):
        self.ids = sorted(ids)
        super().__init__(
            detail=f"{detail}: {', '.join(str(i) for i in self.ids)}",
            details={"ids": self.ids},
        )


class DatabaseOperationException(DomainException):
    """
    Error in a storage-layer operation.

    The original error is kept on the instance for logging only; it is
    never part of the message returned to callers.
    """

    internal_code = "DATABASE_OPERATION_ERROR"

    def __init__(self, detail: str = "Error executing database operation",
                 original_error: Optional[Exception] = None):
        super().__init__(detail=detail)
        self.original_error = original_error


class StorageException(DomainException):
    """Blob storage read/write failure."""

    internal_code = "STORAGE_ERROR"

    def __init__(self, detail: str = "Storage operation failed", path: Optional[str] = None):
        super().__init__(detail=detail)
        self.path = path


class ApplicationLockedException(DomainException):
    """Attempt to modify an application that has already been submitted."""

    internal_code = "APPLICATION_LOCKED"

    def __init__(self, detail: str = "Application has been submitted and can no longer be modified"):
        super().__init__(detail=detail)


class AlreadySubmittedException(DomainException):
    """The application was already submitted."""

    internal_code = "ALREADY_SUBMITTED"

    def __init__(self, detail: str = "Application already submitted", submission_id: Optional[str] = None):
        super().__init__(detail=detail, details={"submission_id": submission_id} if submission_id else None)
        self.submission_id = submission_id


class DeadlinePassedException(DomainException):
    """The market deadline has passed."""

    internal_code = "DEADLINE_PASSED"

    def __init__(self, detail: str = "Market deadline passed"):
        super().__init__(detail=detail)


class MarketClosedException(DomainException):
    """The market is no longer accepting applications."""

    internal_code = "MARKET_CLOSED"

    def __init__(self, detail: str = "Market is no longer available for applications"):
        super().__init__(detail=detail)


class IncompleteApplicationException(DomainException):
    """The application is missing contact fields or required documents."""

    internal_code = "APPLICATION_INCOMPLETE"

    def __init__(self, missing_fields: Iterable[str] = (), missing_document_ids: Iterable[int] = ()):
        self.missing_fields = list(missing_fields)
        self.missing_document_ids = sorted(missing_document_ids)
        parts = []
        if self.missing_fields:
            parts.append(f"missing fields: {', '.join(self.missing_fields)}")
        if self.missing_document_ids:
            parts.append(f"missing documents: {', '.join(str(i) for i in self.missing_document_ids)}")
        super().__init__(
            detail="Application incomplete" + (f" ({'; '.join(parts)})" if parts else ""),
            details={
                "missing_fields": self.missing_fields,
                "missing_document_ids": self.missing_document_ids,
            },
        )


class MachineAuthNotReadyException(DomainException):
    """Editor is not authorized, not active or has machine authentication disabled."""

    internal_code = "MACHINE_AUTH_NOT_READY"

    def __init__(self, detail: str = "Editor not ready for app authentication"):
        super().__init__(detail=detail)


class AuthenticationFailedException(DomainException):
    """The token authority refused or failed to issue a token."""

    internal_code = "AUTHENTICATION_FAILED"

    def __init__(self, reason: str = "authority_error"):
        self.reason = reason
        super().__init__(detail=f"Authentication failed: {reason}", details={"reason": reason})


class TokenAuthorityError(DomainException):
    """
    Failure reported by a token authority adapter.

    Never surfaces to callers directly: the credential issuer wraps it
    into AuthenticationFailedException.
    """

    internal_code = "TOKEN_AUTHORITY_ERROR"

    def __init__(self, reason: str = "authority_error", detail: Optional[str] = None):
        self.reason = reason
        super().__init__(detail=detail or f"Token authority error: {reason}")
