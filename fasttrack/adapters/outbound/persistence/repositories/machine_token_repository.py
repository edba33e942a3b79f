# fasttrack/adapters/outbound/persistence/repositories/machine_token_repository.py

from datetime import datetime
from typing import Optional
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.outbound.persistence.models.machine_token_model import MachineAccessToken
from fasttrack.domain.exceptions import DatabaseOperationException


class AsyncMachineTokenRepository:
    """Repository for the machine tokens issued by the local token authority."""

    @staticmethod
    async def add(
            db: AsyncSession,
            jti: str,
            client_id: str,
            scopes: str,
            issued_at: datetime,
            expires_at: datetime,
    ) -> MachineAccessToken:
        try:
            token = MachineAccessToken(
                jti=jti,
                client_id=client_id,
                scopes=scopes,
                issued_at=issued_at,
                expires_at=expires_at,
            )
            db.add(token)
            await db.commit()
            await db.refresh(token)
            return token
        except SQLAlchemyError as e:
            await db.rollback()
            raise DatabaseOperationException(
                detail="Error storing machine token",
                original_error=e
            )

    @staticmethod
    async def get_by_jti(db: AsyncSession, jti: str) -> Optional[MachineAccessToken]:
        try:
            result = await db.execute(select(MachineAccessToken).where(MachineAccessToken.jti == jti))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise DatabaseOperationException(
                detail="Error fetching machine token",
                original_error=e
            )

    @staticmethod
    async def mark_used(db: AsyncSession, jti: str, used_at: datetime) -> None:
        try:
            await db.execute(
                update(MachineAccessToken).where(MachineAccessToken.jti == jti).values(last_used_at=used_at)
            )
        except SQLAlchemyError as e:
            raise DatabaseOperationException(
                detail="Error recording machine token usage",
                original_error=e
            )

    @staticmethod
    async def revoke(db: AsyncSession, jti: str, revoked_at: datetime) -> bool:
        try:
            result = await db.execute(
                update(MachineAccessToken)
                .where(MachineAccessToken.jti == jti, MachineAccessToken.revoked_at.is_(None))
                .values(revoked_at=revoked_at)
            )
            await db.commit()
            return result.rowcount == 1
        except SQLAlchemyError as e:
            await db.rollback()
            raise DatabaseOperationException(
                detail="Error revoking machine token",
                original_error=e
            )

    @staticmethod
    async def cleanup_expired(db: AsyncSession, now: datetime, client_id: Optional[str] = None) -> int:
        """
        Remove expired tokens to keep the table size manageable.

        Returns:
            Number of records deleted
        """
        try:
            query = delete(MachineAccessToken).where(MachineAccessToken.expires_at < now)
            if client_id is not None:
                query = query.where(MachineAccessToken.client_id == client_id)
            result = await db.execute(query)
            await db.commit()
            return result.rowcount or 0
        except SQLAlchemyError as e:
            await db.rollback()
            raise DatabaseOperationException(
                detail="Error cleaning up expired machine tokens",
                original_error=e
            )


# Create instance
machine_token_repository = AsyncMachineTokenRepository()
