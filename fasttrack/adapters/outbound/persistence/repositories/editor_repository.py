# fasttrack/adapters/outbound/persistence/repositories/editor_repository.py

"""
Repository for editor operations.

This module implements the repository that performs database operations
related to editor platforms, implementing the IEditorRepository interface.
"""

import secrets
from datetime import datetime
from typing import Optional, List, Tuple
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from fasttrack.adapters.outbound.persistence.models import Editor
from fasttrack.adapters.outbound.security.auth_client_manager import ClientAuthManager
from fasttrack.application.ports.outbound import IEditorRepository
from fasttrack.domain.exceptions import DatabaseOperationException


class AsyncEditorCRUD(AsyncCRUDBase[Editor], IEditorRepository):
    """
    Async implementation of CRUD repository for the Editor entity.

    Extends AsyncCRUDBase with editor-specific operations,
    such as lookup by client_id and machine-token bookkeeping.
    """

    async def get_by_client_id(self, db: AsyncSession, client_id: str) -> Optional[Editor]:
        """
        Find an editor by client_id.

        Raises:
            DatabaseOperationException: In case of database error
        """
        try:
            query = select(Editor).where(Editor.client_id == client_id)
            result = await db.execute(query)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching editor by client_id '{client_id}': {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching editor by client_id",
                original_error=e
            )

    async def list_machine_ready(self, db: AsyncSession) -> List[Editor]:
        """Editors allowed to use the client-credentials flow."""
        try:
            query = (
                select(Editor)
                .where(Editor.authorized.is_(True), Editor.active.is_(True), Editor.machine_auth_enabled.is_(True))
                .order_by(Editor.id)
            )
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing machine-ready editors: {str(e)}")
            raise DatabaseOperationException(
                detail="Error listing editors",
                original_error=e
            )

    async def create_with_credentials(
            self,
            db: AsyncSession,
            *,
            name: str,
            callback_url: str = "",
            authorized: bool = True,
            active: bool = True,
            machine_auth_enabled: bool = True,
            client_id: Optional[str] = None,
            client_secret: Optional[str] = None,
    ) -> Tuple[Editor, str]:
        """
        Create an editor with generated (or given) credentials.

        Returns:
            The editor and the plain client secret; this is the only time
            the secret is available in clear.
        """
        client_id = client_id or secrets.token_urlsafe(16)
        client_secret_plain = client_secret or secrets.token_urlsafe(32)
        editor = await self.create(
            db,
            obj_in={
                "name": name,
                "client_id": client_id,
                "client_secret": await ClientAuthManager.hash_secret(client_secret_plain),
                "callback_url": callback_url,
                "authorized": authorized,
                "active": active,
                "machine_auth_enabled": machine_auth_enabled,
            },
        )
        return editor, client_secret_plain

    async def set_token_expiry(self, db: AsyncSession, editor_id: int, expires_at: Optional[datetime]) -> None:
        """
        Store the expiry of the latest machine token of an editor (None once revoked).

        Plain UPDATE without version check: concurrent issuances resolve
        to whichever write lands last.
        """
        try:
            await db.execute(
                update(Editor).where(Editor.id == editor_id).values(machine_token_expires_at=expires_at)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error recording token expiry for editor {editor_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error recording token metadata",
                original_error=e
            )

    async def record_token_used(self, db: AsyncSession, editor_id: int, used_at: datetime) -> None:
        """Stamp the last machine-token use; flushed with the request transaction."""
        try:
            await db.execute(
                update(Editor).where(Editor.id == editor_id).values(machine_token_last_used_at=used_at)
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error recording token usage for editor {editor_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error recording token metadata",
                original_error=e
            )


# Public instance to be used by use cases
editor_repository = AsyncEditorCRUD(Editor)
