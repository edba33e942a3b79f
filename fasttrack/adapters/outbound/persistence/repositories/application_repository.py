# fasttrack/adapters/outbound/persistence/repositories/application_repository.py

"""
Repository for candidate applications and their attachments.

Status transitions go through conditional UPDATE statements so that the
precondition and the write are one statement at the database.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import update, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from fasttrack.adapters.outbound.persistence.models import Application, ApplicationAttachment
from fasttrack.application.ports.outbound import IApplicationRepository
from fasttrack.domain.exceptions import DatabaseOperationException
from fasttrack.domain.models.application_domain_model import ApplicationStatus


class AsyncApplicationCRUD(AsyncCRUDBase[Application], IApplicationRepository):
    """
    Async implementation of CRUD repository for the Application entity.
    """

    async def get_by_market_and_siret(self, db: AsyncSession, market_id: int, siret: str) -> Optional[Application]:
        try:
            query = select(Application).where(Application.market_id == market_id, Application.siret == siret)
            result = await db.execute(query.execution_options(populate_existing=True))
            return result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching application for market {market_id} / {siret}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching application",
                original_error=e
            )

    async def get_fresh(self, db: AsyncSession, application_id: int) -> Optional[Application]:
        """Load an application, overwriting any stale copy held by the session."""
        try:
            query = select(Application).where(Application.id == application_id)
            result = await db.execute(query.execution_options(populate_existing=True))
            return result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching application {application_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching application",
                original_error=e
            )

    async def get_for_update(self, db: AsyncSession, application_id: int) -> Optional[Application]:
        """
        Load an application with a row lock, bypassing the identity map.

        The lock is taken on the applications row only; SQLite ignores
        FOR UPDATE and serialises writers on its own.
        """
        try:
            query = (
                select(Application)
                .where(Application.id == application_id)
                .with_for_update(of=Application)
                .execution_options(populate_existing=True)
            )
            result = await db.execute(query)
            return result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking application {application_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching application",
                original_error=e
            )

    async def submission_id_taken(self, db: AsyncSession, submission_id: str) -> bool:
        return await self.exists(db, submission_id=submission_id)

    async def mark_submitted(
            self, db: AsyncSession, application_id: int, submission_id: str, submitted_at: datetime
    ) -> bool:
        """
        Transition ``in_progress -> submitted``.

        Returns:
            False when the row was no longer in progress (another caller won)
        """
        result = await db.execute(
            update(Application)
            .where(Application.id == application_id, Application.status == ApplicationStatus.IN_PROGRESS.value)
            .values(
                status=ApplicationStatus.SUBMITTED.value,
                submission_id=submission_id,
                submitted_at=submitted_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def update_contact(self, db: AsyncSession, application_id: int, values: Dict[str, Any]) -> bool:
        """Write contact fields only while the application is in progress."""
        result = await db.execute(
            update(Application)
            .where(Application.id == application_id, Application.status == ApplicationStatus.IN_PROGRESS.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_artifact_paths(
            self,
            db: AsyncSession,
            application_id: int,
            attestation_path: Optional[str] = None,
            dossier_path: Optional[str] = None,
    ) -> None:
        """
        Record artifact locations of a submitted application.

        The status guard keeps an attestation path from ever existing
        without its submission id and time.
        """
        values: Dict[str, Any] = {}
        if attestation_path is not None:
            values["attestation_path"] = attestation_path
        if dossier_path is not None:
            values["dossier_path"] = dossier_path
        if not values:
            return
        try:
            await db.execute(
                update(Application)
                .where(
                    Application.id == application_id,
                    Application.status == ApplicationStatus.SUBMITTED.value,
                    Application.submission_id.is_not(None),
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            self.logger.error(f"Error recording artifacts of application {application_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error recording artifact paths",
                original_error=e
            )

    async def list_missing_artifacts(self, db: AsyncSession, limit: int = 100) -> List[Application]:
        """Submitted applications lacking an attestation or a dossier."""
        try:
            query = (
                select(Application)
                .where(
                    Application.status == ApplicationStatus.SUBMITTED.value,
                    or_(Application.attestation_path.is_(None), Application.dossier_path.is_(None)),
                )
                .order_by(Application.submitted_at, Application.id)
                .limit(limit)
            )
            result = await db.execute(query)
            return list(result.unique().scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing applications with missing artifacts: {str(e)}")
            raise DatabaseOperationException(
                detail="Error listing applications",
                original_error=e
            )

    async def get_attachment(
            self, db: AsyncSession, application_id: int, document_id: int
    ) -> Optional[ApplicationAttachment]:
        query = select(ApplicationAttachment).where(
            ApplicationAttachment.application_id == application_id,
            ApplicationAttachment.document_id == document_id,
        )
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def upsert_attachment(
            self, db: AsyncSession, application_id: int, document_id: int, values: Dict[str, Any]
    ) -> ApplicationAttachment:
        """
        Insert or replace the attachment for (application, document).

        Flushes only; the caller commits together with its status check.
        """
        attachment = await self.get_attachment(db, application_id, document_id)
        if attachment is None:
            attachment = ApplicationAttachment(application_id=application_id, document_id=document_id, **values)
            db.add(attachment)
        else:
            for field, value in values.items():
                setattr(attachment, field, value)
        await db.flush()
        return attachment


application_repository = AsyncApplicationCRUD(Application)
