# fasttrack/application/use_cases/submission_use_cases.py

"""
Submission transaction.

The state change (``in_progress -> submitted`` with its submission id and
time) commits on its own. Artifacts are generated afterwards and a
failure there leaves a submitted application with missing artifacts,
which the repair sweep picks up later.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.outbound.persistence.models import Application
from fasttrack.adapters.outbound.persistence.repositories.application_repository import application_repository
from fasttrack.application.ports.inbound import ISubmissionCoordinator
from fasttrack.application.ports.outbound import IBlobStorage
from fasttrack.application.use_cases.application_use_cases import ApplicationLifecycle
from fasttrack.application.use_cases.artifact_use_cases import ArtifactService
from fasttrack.domain.exceptions import (
    AlreadySubmittedException,
    DatabaseOperationException,
    DeadlinePassedException,
    DomainException,
    IncompleteApplicationException,
    MarketClosedException,
    ResourceNotFoundException,
)
from fasttrack.domain.models.application_domain_model import SubmissionResult
from fasttrack.domain.result import Ok, Err, Result
from fasttrack.domain.services.identifier_service import IdentifierService
from fasttrack.shared.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

MAX_SUBMISSION_ID_ATTEMPTS = 5


class SubmissionCoordinator(ISubmissionCoordinator):
    """
    Submits an application exactly once.
    """

    def __init__(
            self,
            db_session: AsyncSession,
            blob_storage: IBlobStorage,
            artifact_service: Optional[ArtifactService] = None,
    ):
        self.db_session = db_session
        self.artifacts = artifact_service or ArtifactService(db_session, blob_storage)

    async def _unused_submission_id(self) -> str:
        for _ in range(MAX_SUBMISSION_ID_ATTEMPTS):
            candidate = IdentifierService.new_submission_id(utcnow())
            if not await application_repository.submission_id_taken(self.db_session, candidate):
                return candidate
            logger.info(f"Submission id collision on {candidate}, retrying")
        raise DatabaseOperationException(detail="Could not allocate a submission id")

    async def _transition(self, application_id: int) -> Result[Application, DomainException]:
        """
        Preconditions and state write under the application row lock.

        Nothing here trusts an earlier read: the row, its market and its
        attachments are reloaded inside the transaction.
        """
        locked = await application_repository.get_for_update(self.db_session, application_id)
        if locked is None:
            return Err(ResourceNotFoundException(detail="Application not found", resource_id=application_id))
        if locked.submitted:
            return Err(AlreadySubmittedException(submission_id=locked.submission_id))

        now = utcnow()
        if now >= as_utc(locked.market.deadline):
            return Err(DeadlinePassedException())
        if not locked.market.active:
            return Err(MarketClosedException())

        missing_fields, missing_documents = ApplicationLifecycle.missing(locked)
        if missing_fields or missing_documents:
            return Err(IncompleteApplicationException(missing_fields, missing_documents))

        submission_id = await self._unused_submission_id()
        if not await application_repository.mark_submitted(self.db_session, locked.id, submission_id, now):
            current = await application_repository.get_fresh(self.db_session, locked.id)
            return Err(AlreadySubmittedException(submission_id=current.submission_id if current else None))
        return Ok(locked)

    async def submit(self, application: Application) -> Result[SubmissionResult, DomainException]:
        # rollback expires loaded instances
        application_id = application.id
        try:
            outcome = await self._transition(application_id)
            if not outcome.is_ok:
                await self.db_session.rollback()
                logger.info(f"Submission of application {application_id} refused: {outcome.code}")
                return outcome
            await self.db_session.commit()
        except DatabaseOperationException as e:
            await self.db_session.rollback()
            logger.error(f"Submission of application {application_id} failed: {e.original_error}")
            return Err(DatabaseOperationException(detail="Submission failed"))
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.error(f"Submission of application {application_id} failed: {str(e)}")
            return Err(DatabaseOperationException(detail="Submission failed", original_error=e))

        submitted = await application_repository.get_fresh(self.db_session, application_id)
        logger.info(f"Application {submitted.id} submitted as {submitted.submission_id}")

        report = await self.artifacts.regenerate_artifacts(submitted.id)
        if report.errors:
            logger.warning(
                f"Submission {submitted.submission_id} committed without all artifacts: {report.errors}"
            )

        return Ok(SubmissionResult(
            application_id=submitted.id,
            submission_id=submitted.submission_id,
            submitted_at=as_utc(submitted.submitted_at),
            attestation_path=report.attestation_path,
            dossier_path=report.dossier_path,
            artifact_errors=list(report.errors),
        ))
