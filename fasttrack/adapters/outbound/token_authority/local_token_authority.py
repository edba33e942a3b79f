# fasttrack/adapters/outbound/token_authority/local_token_authority.py

"""
In-process token authority.

Issues signed machine JWTs and keeps one ``machine_access_tokens`` row
per token (by ``jti``) for revocation and usage tracking. This is the
default authority; a standalone OAuth server can be used instead through
``HttpTokenAuthority``.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.outbound.persistence.repositories.editor_repository import editor_repository
from fasttrack.adapters.outbound.persistence.repositories.machine_token_repository import machine_token_repository
from fasttrack.adapters.outbound.security.auth_client_manager import ClientAuthManager
from fasttrack.application.ports.outbound import ITokenAuthority
from fasttrack.domain.exceptions import DatabaseOperationException, TokenAuthorityError
from fasttrack.domain.models.credential_domain_model import IssuedToken, TokenIntrospection
from fasttrack.shared.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)


class LocalTokenAuthority(ITokenAuthority):
    """Token authority backed by the service's own database."""

    def __init__(self, db_session: AsyncSession, expires_in: Optional[int] = None):
        self.db_session = db_session
        self.expires_in = expires_in or settings.MACHINE_TOKEN_EXPIRE_SECONDS

    async def issue_token(self, client_id: str, client_secret: str, scopes: List[str]) -> IssuedToken:
        try:
            editor = await editor_repository.get_by_client_id(self.db_session, client_id)
            if editor is None or not await ClientAuthManager.verify_secret(client_secret, editor.client_secret):
                raise TokenAuthorityError("invalid_client", "Client authentication failed")

            token, jti, issued_at, expires_at = await ClientAuthManager.create_machine_token(
                client_id=client_id,
                scopes=scopes,
                expires_delta=timedelta(seconds=self.expires_in),
            )
            await machine_token_repository.add(
                self.db_session,
                jti=jti,
                client_id=client_id,
                scopes=" ".join(scopes),
                issued_at=issued_at,
                expires_at=expires_at,
            )
        except DatabaseOperationException as e:
            logger.error(f"Token storage failed for client {client_id}: {e.original_error}")
            raise TokenAuthorityError("storage_error")

        return IssuedToken(
            access_token=token,
            expires_at=expires_at,
            expires_in=self.expires_in,
            scopes=list(scopes),
        )

    async def introspect(self, token: str) -> Optional[TokenIntrospection]:
        payload = await ClientAuthManager.decode_machine_token(token)
        if payload is None:
            return None
        try:
            record = await machine_token_repository.get_by_jti(self.db_session, payload["jti"])
        except DatabaseOperationException as e:
            logger.error(f"Token lookup failed: {e.original_error}")
            raise TokenAuthorityError("storage_error")
        if record is None:
            return None

        return TokenIntrospection(
            client_id=record.client_id,
            scopes=record.scopes.split(),
            expires_at=as_utc(record.expires_at),
            revoked=record.revoked_at is not None,
            issued_at=as_utc(record.issued_at),
            last_used_at=as_utc(record.last_used_at),
            token_id=record.jti,
        )

    async def mark_used(self, token: str) -> None:
        payload = await ClientAuthManager.decode_machine_token(token)
        if payload is None:
            return
        try:
            await machine_token_repository.mark_used(self.db_session, payload["jti"], utcnow())
        except DatabaseOperationException as e:
            raise TokenAuthorityError("storage_error", str(e))

    async def revoke(self, token: str) -> bool:
        payload = await ClientAuthManager.decode_machine_token(token)
        if payload is None:
            return False
        try:
            return await machine_token_repository.revoke(self.db_session, payload["jti"], utcnow())
        except DatabaseOperationException as e:
            raise TokenAuthorityError("storage_error", str(e))

    async def revoke_expired(self, client_id: str) -> int:
        try:
            return await machine_token_repository.cleanup_expired(self.db_session, utcnow(), client_id=client_id)
        except DatabaseOperationException as e:
            raise TokenAuthorityError("storage_error", str(e))
