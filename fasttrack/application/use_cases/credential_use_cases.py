# fasttrack/application/use_cases/credential_use_cases.py

"""
Machine-to-machine credentials for editor platforms.

Client-credentials flow layered over a token authority (local or
remote). Refreshing means issuing a new token: the grant has no refresh
token and earlier tokens stay valid until they expire or are revoked.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.outbound.persistence.models import Editor
from fasttrack.adapters.outbound.persistence.repositories.editor_repository import editor_repository
from fasttrack.application.ports.inbound import ICredentialIssuer
from fasttrack.application.ports.outbound import ITokenAuthority
from fasttrack.domain.exceptions import (
    AuthenticationFailedException,
    DatabaseOperationException,
    DomainException,
    InvalidCredentialsException,
    MachineAuthNotReadyException,
    PermissionDeniedException,
    TokenAuthorityError,
)
from fasttrack.domain.models.credential_domain_model import (
    MachineAppStatus,
    MachineAuthState,
    TokenIntrospection,
    TokenResult,
    TokenStatus,
)
from fasttrack.domain.result import Ok, Err, Result
from fasttrack.shared.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

SCOPE_MARKET_CONFIG = "app_market_config"
SCOPE_MARKET_READ = "app_market_read"
SCOPE_APPLICATION_READ = "app_application_read"

MACHINE_SCOPES = [SCOPE_MARKET_CONFIG, SCOPE_MARKET_READ, SCOPE_APPLICATION_READ]


class CredentialIssuer(ICredentialIssuer):
    """
    Issues, inspects and maintains machine tokens of editors.

    Every authority call carries a timeout. The client secret is passed
    through to the authority and never logged.
    """

    def __init__(self, db_session: AsyncSession, token_authority: ITokenAuthority, timeout: Optional[float] = None):
        self.db_session = db_session
        self.authority = token_authority
        self.timeout = timeout or settings.TOKEN_AUTHORITY_TIMEOUT_SECONDS

    async def _call(self, coroutine):
        return await asyncio.wait_for(coroutine, timeout=self.timeout)

    async def authenticate(self, editor: Editor, client_secret: str) -> Result[TokenResult, DomainException]:
        if editor is None or not editor.machine_auth_ready:
            logger.info(f"Machine authentication refused for {getattr(editor, 'name', None)}: not ready")
            return Err(MachineAuthNotReadyException())

        editor_id, editor_name = editor.id, editor.name
        try:
            issued = await self._call(self.authority.issue_token(editor.client_id, client_secret, MACHINE_SCOPES))
        except asyncio.TimeoutError:
            logger.error(f"Token authority timed out after {self.timeout}s for editor {editor_name}")
            return Err(AuthenticationFailedException("timeout"))
        except TokenAuthorityError as e:
            logger.error(f"Token authority refused editor {editor_name}: {e.reason}")
            return Err(AuthenticationFailedException(e.reason))

        try:
            await editor_repository.set_token_expiry(self.db_session, editor_id, issued.expires_at)
        except DatabaseOperationException as e:
            logger.error(f"Token issued but expiry not recorded for editor {editor_name}: {e.original_error}")

        logger.info(f"Machine token issued for editor {editor_name}, expires at {issued.expires_at.isoformat()}")
        return Ok(TokenResult(
            access_token=issued.access_token,
            expires_in=issued.expires_in,
            expires_at=issued.expires_at,
            scope=" ".join(issued.scopes),
        ))

    async def refresh(self, editor: Editor, client_secret: str) -> Result[TokenResult, DomainException]:
        logger.info(f"Refreshing machine token for editor {getattr(editor, 'name', None)}")
        return await self.authenticate(editor, client_secret)

    async def _introspect(self, token: str) -> Result[Optional[TokenIntrospection], DomainException]:
        try:
            return Ok(await self._call(self.authority.introspect(token)))
        except asyncio.TimeoutError:
            logger.error(f"Token introspection timed out after {self.timeout}s")
            return Err(AuthenticationFailedException("timeout"))
        except TokenAuthorityError as e:
            logger.error(f"Token introspection failed: {e.reason}")
            return Err(AuthenticationFailedException(e.reason))

    async def status(self, editor: Editor, token: str) -> Result[TokenStatus, DomainException]:
        """Read-only view of a token presented by ``editor``."""
        introspected = await self._introspect(token)
        if not introspected.is_ok:
            return introspected
        info = introspected.value
        if info is None or info.client_id != editor.client_id:
            return Err(InvalidCredentialsException("Invalid token"))

        now = utcnow()
        return Ok(TokenStatus(
            expires_at=info.expires_at,
            expires_in=(
                max(0, int((info.expires_at - now).total_seconds()))
                if info.expires_at is not None else None
            ),
            scopes=list(info.scopes),
            last_used_at=info.last_used_at or as_utc(editor.machine_token_last_used_at),
            valid=info.valid(now),
        ))

    async def revoke(self, editor: Editor, token: str) -> bool:
        editor_id, editor_name = editor.id, editor.name
        recorded = as_utc(editor.machine_token_expires_at)
        try:
            info = await self._call(self.authority.introspect(token))
            if info is None or info.client_id != editor.client_id:
                logger.info(f"Revocation by {editor_name} ignored: token unknown or not theirs")
                return False
            revoked = await self._call(self.authority.revoke(token))
            if revoked:
                logger.info(f"Machine token revoked for editor {editor_name}")
                # only the token the recorded expiry describes may clear it
                if recorded is not None and info.expires_at is not None and info.expires_at >= recorded:
                    await editor_repository.set_token_expiry(self.db_session, editor_id, None)
            return revoked
        except asyncio.TimeoutError:
            logger.error(f"Token revocation timed out for editor {editor_name}")
        except (TokenAuthorityError, DatabaseOperationException) as e:
            logger.error(f"Token revocation failed for editor {editor_name}: {e}")
        return False

    async def cleanup_expired(self, editor: Editor) -> int:
        try:
            removed = await self._call(self.authority.revoke_expired(editor.client_id))
        except asyncio.TimeoutError:
            logger.error(f"Expired token cleanup timed out for editor {editor.name}")
            return 0
        except TokenAuthorityError as e:
            logger.error(f"Expired token cleanup failed for editor {editor.name}: {e.reason}")
            return 0
        if removed:
            logger.info(f"Removed {removed} expired machine tokens of editor {editor.name}")
        return removed

    async def resolve_bearer(self, token: str, required_scope: Optional[str] = None) -> Result[Editor, DomainException]:
        """
        Editor behind a bearer token, with usage stamped on the token and the editor.
        """
        introspected = await self._introspect(token)
        if not introspected.is_ok:
            return introspected
        info = introspected.value
        now = utcnow()
        if info is None or not info.valid(now):
            return Err(InvalidCredentialsException("Invalid or expired token"))
        if required_scope and required_scope not in info.scopes:
            logger.warning(f"Token of client {info.client_id} lacks scope {required_scope}")
            return Err(PermissionDeniedException("Insufficient scope"))

        editor = await editor_repository.get_by_client_id(self.db_session, info.client_id)
        if editor is None or not editor.authorized_and_active:
            return Err(InvalidCredentialsException("Editor not found"))

        editor_id, editor_name = editor.id, editor.name
        try:
            await self._call(self.authority.mark_used(token))
            await editor_repository.record_token_used(self.db_session, editor_id, now)
            await self.db_session.commit()
        except (asyncio.TimeoutError, TokenAuthorityError, DatabaseOperationException, SQLAlchemyError) as e:
            await self.db_session.rollback()
            logger.warning(f"Could not record token usage for editor {editor_name}: {e!r}")
            editor = await editor_repository.get(self.db_session, editor_id)
        return Ok(editor)


class MachineAuthMonitor:
    """
    Reports the machine-auth state of editors from their token metadata
    and refreshes tokens nearing expiry when the caller can supply the secret.
    """

    def __init__(self, db_session: AsyncSession, issuer: CredentialIssuer, threshold: Optional[timedelta] = None):
        self.db_session = db_session
        self.issuer = issuer
        self.threshold = threshold or timedelta(minutes=settings.MACHINE_TOKEN_REFRESH_THRESHOLD_MINUTES)

    def check_status(self, editor: Editor, now: Optional[datetime] = None) -> MachineAppStatus:
        now = now or utcnow()
        if not editor.machine_auth_ready:
            return MachineAppStatus(
                editor_id=editor.id,
                editor_name=editor.name,
                state=MachineAuthState.NOT_READY,
                message="Editor not ready for app authentication",
            )

        expires_at = as_utc(editor.machine_token_expires_at)
        last_used_at = as_utc(editor.machine_token_last_used_at)
        if expires_at is None:
            return MachineAppStatus(
                editor_id=editor.id,
                editor_name=editor.name,
                state=MachineAuthState.NOT_AUTHENTICATED,
                message="No valid app token found",
                last_used_at=last_used_at,
            )
        if expires_at <= now:
            return MachineAppStatus(
                editor_id=editor.id,
                editor_name=editor.name,
                state=MachineAuthState.TOKEN_EXPIRED,
                message="App token expired, refresh required",
                expires_at=expires_at,
                last_used_at=last_used_at,
            )
        return MachineAppStatus(
            editor_id=editor.id,
            editor_name=editor.name,
            state=MachineAuthState.AUTHENTICATED,
            message="App authentication active",
            expires_at=expires_at,
            last_used_at=last_used_at,
            expiring_soon=expires_at < now + self.threshold,
        )

    async def auto_refresh_if_needed(self, editor: Editor, client_secret: Optional[str] = None) -> MachineAppStatus:
        status = self.check_status(editor)
        if not status.needs_refresh:
            return status
        if client_secret is None:
            status.notes.append("refresh requires the client secret")
            return status

        logger.info(f"Auto-refreshing token for editor {editor.name}")
        result = await self.issuer.refresh(editor, client_secret)
        if result.is_ok:
            return MachineAppStatus(
                editor_id=editor.id,
                editor_name=editor.name,
                state=MachineAuthState.REFRESHED,
                message="App token auto-refreshed successfully",
                expires_at=result.value.expires_at,
                last_used_at=status.last_used_at,
            )
        return MachineAppStatus(
            editor_id=editor.id,
            editor_name=editor.name,
            state=MachineAuthState.REFRESH_FAILED,
            message=f"Token refresh failed: {result.error.detail}",
            expires_at=status.expires_at,
            last_used_at=status.last_used_at,
        )

    async def check_all_editors(self) -> List[MachineAppStatus]:
        statuses = []
        now = utcnow()
        for editor in await editor_repository.list_machine_ready(self.db_session):
            status = self.check_status(editor, now)
            logger.info(f"Editor {editor.name} status: {status.state.value} - {status.message}")
            if status.expiring_soon:
                logger.warning(f"Machine token of editor {editor.name} expires at {status.expires_at.isoformat()}")
            statuses.append(status)
        return statuses

    async def cleanup_all(self) -> int:
        removed = 0
        for editor in await editor_repository.list_machine_ready(self.db_session):
            removed += await self.issuer.cleanup_expired(editor)
        return removed
