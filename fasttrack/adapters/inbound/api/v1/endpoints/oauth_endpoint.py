# fasttrack/adapters/inbound/api/v1/endpoints/oauth_endpoint.py

"""
Client-credentials endpoints for editor platforms.
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.inbound.api.deps import (
    get_bearer_token,
    get_credential_issuer,
    get_current_editor,
    get_db_session,
)
from fasttrack.adapters.outbound.persistence.models import Editor
from fasttrack.adapters.outbound.persistence.repositories.editor_repository import editor_repository
from fasttrack.adapters.outbound.security.auth_client_manager import ClientAuthManager
from fasttrack.application.dtos.credential_dto import (
    AppStatusResponse,
    AppTokenResponse,
    ClientCredentialsInput,
    RefreshTokenInput,
    RevokeTokenInput,
    RevokeTokenResponse,
)
from fasttrack.application.use_cases.credential_use_cases import CredentialIssuer
from fasttrack.domain.exceptions import InvalidCredentialsException

logger = logging.getLogger(__name__)

router = APIRouter()


def _token_response(result) -> AppTokenResponse:
    return AppTokenResponse(
        access_token=result.access_token,
        token_type=result.token_type,
        expires_in=result.expires_in,
        scope=result.scope,
        created_at=int(time.time()),
    )


@router.post(
    "/app_token",
    response_model=AppTokenResponse,
    summary="App Token - Client credentials grant",
    description="Issues a machine access token for an authorized editor platform.",
)
async def app_token(
        credentials: ClientCredentialsInput,
        db: AsyncSession = Depends(get_db_session),
        issuer: CredentialIssuer = Depends(get_credential_issuer),
):
    editor = await editor_repository.get_by_client_id(db, credentials.client_id)
    if editor is None:
        logger.warning(f"Token request for unknown client {credentials.client_id}")
        raise InvalidCredentialsException("Invalid client credentials")
    await ClientAuthManager.require_secret(credentials.client_secret, editor.client_secret)

    result = await issuer.authenticate(editor, credentials.client_secret)
    return _token_response(result.unwrap())


@router.post(
    "/refresh_token",
    response_model=AppTokenResponse,
    summary="Refresh Token - Re-issue a machine token",
    description="Issues a new token; the presented one stays valid until it expires.",
)
async def refresh_token(
        body: RefreshTokenInput,
        editor: Editor = Depends(get_current_editor),
        issuer: CredentialIssuer = Depends(get_credential_issuer),
):
    await ClientAuthManager.require_secret(body.client_secret, editor.client_secret)
    result = await issuer.refresh(editor, body.client_secret)
    return _token_response(result.unwrap())


@router.get(
    "/app_status",
    response_model=AppStatusResponse,
    summary="App Status - Inspect the presented token",
)
async def app_status(
        token: str = Depends(get_bearer_token),
        editor: Editor = Depends(get_current_editor),
        issuer: CredentialIssuer = Depends(get_credential_issuer),
):
    status = (await issuer.status(editor, token)).unwrap()
    return AppStatusResponse(
        authenticated=True,
        editor_id=editor.id,
        editor_name=editor.name,
        token_expires_at=status.expires_at,
        token_expires_in=status.expires_in,
        scopes=status.scopes,
        last_used_at=status.last_used_at,
        valid=status.valid,
    )


@router.post(
    "/revoke",
    response_model=RevokeTokenResponse,
    summary="Revoke - Revoke a machine token",
)
async def revoke(
        body: RevokeTokenInput,
        token: str = Depends(get_bearer_token),
        editor: Editor = Depends(get_current_editor),
        issuer: CredentialIssuer = Depends(get_credential_issuer),
):
    return RevokeTokenResponse(revoked=await issuer.revoke(editor, body.token or token))
