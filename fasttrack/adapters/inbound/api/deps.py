# fasttrack/adapters/inbound/api/deps.py

"""
Dependencies for injection into API endpoints.

This module defines functions that provide dependencies via
FastAPI Depends() for database access, storage, the token authority
and editor authentication.
"""

import logging
from typing import Optional

from fastapi import Depends, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.outbound.persistence.database import get_db
from fasttrack.adapters.outbound.persistence.models import Editor
from fasttrack.adapters.outbound.storage.local_blob_storage import LocalBlobStorage
from fasttrack.adapters.outbound.token_authority.http_token_authority import HttpTokenAuthority
from fasttrack.adapters.outbound.token_authority.local_token_authority import LocalTokenAuthority
from fasttrack.application.ports.outbound import IBlobStorage, ITokenAuthority
from fasttrack.application.use_cases.credential_use_cases import (
    CredentialIssuer,
    SCOPE_APPLICATION_READ,
    SCOPE_MARKET_CONFIG,
    SCOPE_MARKET_READ,
)
from fasttrack.domain.exceptions import InvalidCredentialsException

# Configure logger
logger = logging.getLogger(__name__)

# Missing credentials are reported by the exception middleware, not by HTTPBearer
bearer_scheme = HTTPBearer(auto_error=False)

########################################################################
# Database Session Management
########################################################################

get_db_session = get_db

########################################################################
# Outbound adapters
########################################################################

_blob_storage: Optional[IBlobStorage] = None
_remote_authority: Optional[HttpTokenAuthority] = None


def get_blob_storage() -> IBlobStorage:
    global _blob_storage
    if _blob_storage is None:
        _blob_storage = LocalBlobStorage()
    return _blob_storage


def get_remote_authority() -> HttpTokenAuthority:
    """Shared HTTP client for the remote authority, closed on shutdown."""
    global _remote_authority
    if _remote_authority is None:
        _remote_authority = HttpTokenAuthority()
    return _remote_authority


async def close_remote_authority() -> None:
    global _remote_authority
    if _remote_authority is not None:
        await _remote_authority.close()
        _remote_authority = None


def build_token_authority(db: AsyncSession) -> ITokenAuthority:
    if settings.TOKEN_AUTHORITY_MODE == "remote":
        return get_remote_authority()
    return LocalTokenAuthority(db)


async def get_token_authority(db: AsyncSession = Depends(get_db_session)) -> ITokenAuthority:
    return build_token_authority(db)


async def get_credential_issuer(
        db: AsyncSession = Depends(get_db_session),
        authority: ITokenAuthority = Depends(get_token_authority),
) -> CredentialIssuer:
    return CredentialIssuer(db, authority)


########################################################################
# Editor Token Authentication
########################################################################

async def get_bearer_token(
        credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> str:
    if credentials is None or not credentials.credentials:
        raise InvalidCredentialsException("Missing bearer token")
    return credentials.credentials


def editor_with_scope(required_scope: Optional[str] = None):
    """
    Build a dependency resolving the editor behind the presented machine token.

    Args:
        required_scope: Scope the token must carry, None for any machine scope

    Raises:
        InvalidCredentialsException: Missing, invalid or expired token
        PermissionDeniedException: Token lacks the scope
    """

    async def dependency(
            token: str = Depends(get_bearer_token),
            issuer: CredentialIssuer = Depends(get_credential_issuer),
    ) -> Editor:
        return (await issuer.resolve_bearer(token, required_scope)).unwrap()

    return dependency


get_current_editor = editor_with_scope()
get_market_config_editor = editor_with_scope(SCOPE_MARKET_CONFIG)
get_market_read_editor = editor_with_scope(SCOPE_MARKET_READ)
get_application_read_editor = editor_with_scope(SCOPE_APPLICATION_READ)
