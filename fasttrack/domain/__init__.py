# fasttrack/domain/__init__.py

"""
Main module for the application's domain components.

This module exports the domain exceptions and the result type.
"""

from fasttrack.domain.exceptions import (
    DomainException,
    ResourceNotFoundException,
    ResourceAlreadyExistsException,
    ResourceInactiveException,
    PermissionDeniedException,
    InvalidCredentialsException,
    InvalidInputException,
    InvalidReferenceException,
    DatabaseOperationException,
    StorageException,
    ApplicationLockedException,
    AlreadySubmittedException,
    DeadlinePassedException,
    MarketClosedException,
    IncompleteApplicationException,
    MachineAuthNotReadyException,
    AuthenticationFailedException,
    TokenAuthorityError,
)
from fasttrack.domain.result import Ok, Err, Result
