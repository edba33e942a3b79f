# fasttrack/application/use_cases/application_use_cases.py

"""
Candidate application lifecycle.

An application is created on the first visit of a company (by SIRET) to
a market, edited while ``in_progress`` and frozen once ``submitted``.
"""

import hashlib
import logging
from typing import List, Mapping, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fasttrack.adapters.configuration.config import settings
from fasttrack.adapters.outbound.persistence.models import Application, ApplicationAttachment, Market
from fasttrack.adapters.outbound.persistence.repositories.application_repository import application_repository
from fasttrack.adapters.outbound.persistence.repositories.market_repository import market_repository
from fasttrack.application.ports.inbound import IApplicationLifecycle
from fasttrack.application.ports.outbound import IBlobStorage
from fasttrack.domain.exceptions import (
    ApplicationLockedException,
    DatabaseOperationException,
    DeadlinePassedException,
    DomainException,
    InvalidInputException,
    InvalidReferenceException,
    MarketClosedException,
    ResourceNotFoundException,
    StorageException,
)
from fasttrack.domain.models.application_domain_model import (
    ApplicationStatus,
    CONTACT_FIELDS,
    RequirementCheck,
)
from fasttrack.domain.result import Ok, Err, Result
from fasttrack.domain.services.completeness_service import CompletenessService
from fasttrack.domain.services.identifier_service import IdentifierService
from fasttrack.shared.utils.clock import as_utc, utcnow
from fasttrack.shared.utils.input_validation import InputValidator

logger = logging.getLogger(__name__)


def attachment_blob_path(application_id: int, document_id: int) -> str:
    return f"applications/{application_id}/documents/{document_id}"


class ApplicationLifecycle(IApplicationLifecycle):
    """
    State machine ``in_progress -> submitted`` of a candidate application.
    """

    def __init__(self, db_session: AsyncSession, blob_storage: Optional[IBlobStorage] = None):
        self.db_session = db_session
        self.blob_storage = blob_storage

    # ── Market entry ─────────────────────────────────────────────────────

    async def open_market(self, fast_track_id: str) -> Result[Market, DomainException]:
        """Market lookup for candidates; closed markets are refused."""
        market = await market_repository.get_by_fast_track_id(self.db_session, fast_track_id)
        if market is None:
            return Err(ResourceNotFoundException(detail="Market not found"))
        if as_utc(market.deadline) <= utcnow():
            logger.info(f"Candidate entry refused: market {fast_track_id} deadline passed")
            return Err(DeadlinePassedException())
        if not market.active:
            logger.info(f"Candidate entry refused: market {fast_track_id} inactive")
            return Err(MarketClosedException())
        return Ok(market)

    # ── Find or create ───────────────────────────────────────────────────

    @staticmethod
    def _normalize_siret(siret: str) -> Result[str, InvalidInputException]:
        normalized = IdentifierService.normalize_siret(siret)
        if not IdentifierService.is_siret(normalized):
            return Err(InvalidInputException(fields={"siret": "must be 14 digits"}))
        return Ok(normalized)

    async def find_or_create(
            self, market: Market, siret: str, seed_company_name: Optional[str] = None
    ) -> Result[Application, DomainException]:
        """
        Return the application for (market, siret), creating it in progress when absent.

        Concurrent first visits converge on one row: the insert runs in a
        savepoint and a unique-constraint violation re-reads the winner.
        """
        checked = self._normalize_siret(siret)
        if not checked.is_ok:
            return checked
        siret = checked.value
        market_id, fast_track_id = market.id, market.fast_track_id

        existing = await application_repository.get_by_market_and_siret(self.db_session, market_id, siret)
        if existing is not None:
            return Ok(existing)

        company_name = InputValidator.sanitize_string(seed_company_name or "", InputValidator.MAX_NAME_LENGTH)
        try:
            async with self.db_session.begin_nested():
                self.db_session.add(Application(
                    market_id=market_id,
                    siret=siret,
                    company_name=company_name or IdentifierService.default_company_name(siret),
                    status=ApplicationStatus.IN_PROGRESS.value,
                ))
            await self.db_session.commit()
            logger.info(f"Application created for market {fast_track_id} / SIRET {siret}")
        except IntegrityError:
            # the savepoint is already rolled back, the outer transaction stays usable
            logger.info(f"Concurrent application creation for market {fast_track_id} / SIRET {siret}, "
                        f"loading the existing one")
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.error(f"Error creating application for market {fast_track_id}: {str(e)}")
            return Err(DatabaseOperationException(detail="Error creating application", original_error=e))

        application = await application_repository.get_by_market_and_siret(self.db_session, market_id, siret)
        if application is None:
            return Err(DatabaseOperationException(detail="Error creating application"))
        return Ok(application)

    async def get(self, market: Market, siret: str) -> Result[Application, DomainException]:
        checked = self._normalize_siret(siret)
        if not checked.is_ok:
            return checked
        application = await application_repository.get_by_market_and_siret(self.db_session, market.id, checked.value)
        if application is None:
            return Err(ResourceNotFoundException(detail="Application not found"))
        return Ok(application)

    # ── Mutations ────────────────────────────────────────────────────────

    @staticmethod
    def _clean_contact(fields: Mapping[str, Optional[str]]) -> Result[dict, InvalidInputException]:
        errors, values = {}, {}
        for name, value in fields.items():
            if name not in CONTACT_FIELDS:
                errors[name] = "is not an editable field"
                continue
            if value is None:
                continue
            value = InputValidator.sanitize_string(value, 255)
            if value:
                if name == "email":
                    valid, message = InputValidator.validate_email(value)
                elif name == "phone":
                    valid, message = InputValidator.validate_phone(value)
                else:
                    valid, message = InputValidator.validate_name(value)
                if not valid:
                    errors[name] = message
                    continue
            values[name] = value or None
        if errors:
            return Err(InvalidInputException(fields=errors))
        return Ok(values)

    async def update_contact_info(
            self, application: Application, fields: Mapping[str, Optional[str]]
    ) -> Result[Application, DomainException]:
        """
        Merge contact fields; keys left out (or None) keep their value, "" clears it.
        """
        if application.submitted:
            return Err(ApplicationLockedException())

        cleaned = self._clean_contact(fields)
        if not cleaned.is_ok:
            return cleaned
        if not cleaned.value:
            return Ok(application)

        application_id = application.id
        try:
            updated = await application_repository.update_contact(self.db_session, application_id, cleaned.value)
            if not updated:
                await self.db_session.rollback()
                return Err(ApplicationLockedException())
            await self.db_session.commit()
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.error(f"Error updating contact of application {application_id}: {str(e)}")
            return Err(DatabaseOperationException(detail="Error updating application", original_error=e))

        return Ok(await application_repository.get_fresh(self.db_session, application_id))

    def _check_upload(self, filename: str, content_type: str, data: bytes) -> Optional[InvalidInputException]:
        max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        if not data:
            return InvalidInputException(fields={"file": "is empty"})
        if len(data) > max_bytes:
            return InvalidInputException(fields={"file": f"exceeds {settings.MAX_UPLOAD_SIZE_MB} MB"})
        if content_type not in settings.ALLOWED_UPLOAD_CONTENT_TYPES:
            return InvalidInputException(fields={"file": f"content type {content_type} is not accepted"})
        return None

    async def attach_document(
            self,
            application: Application,
            document_id: int,
            filename: str,
            content_type: str,
            data: bytes,
    ) -> Result[ApplicationAttachment, DomainException]:
        """
        Store the file for one of the market's requirements, replacing any previous one.
        """
        if application.submitted:
            return Err(ApplicationLockedException())

        requirement_ids = {requirement.document_id for requirement in application.market.requirements}
        if document_id not in requirement_ids:
            return Err(InvalidReferenceException([document_id], detail="Document is not required by this market"))

        invalid = self._check_upload(filename, content_type, data)
        if invalid:
            return Err(invalid)
        if self.blob_storage is None:
            raise RuntimeError("ApplicationLifecycle needs a blob storage to attach documents")

        application_id = application.id
        blob_path = attachment_blob_path(application_id, document_id)
        try:
            locked = await application_repository.get_for_update(self.db_session, application_id)
            if locked is None or not locked.in_progress:
                await self.db_session.rollback()
                return Err(ApplicationLockedException())

            await self.blob_storage.write(blob_path, data)
            attachment = await application_repository.upsert_attachment(
                self.db_session,
                application_id,
                document_id,
                {
                    "filename": InputValidator.sanitize_filename(filename),
                    "content_type": content_type,
                    "size": len(data),
                    "sha256": hashlib.sha256(data).hexdigest(),
                    "blob_path": blob_path,
                    "uploaded_at": utcnow(),
                },
            )
            await self.db_session.commit()
        except StorageException as e:
            await self.db_session.rollback()
            return Err(e)
        except SQLAlchemyError as e:
            await self.db_session.rollback()
            logger.error(f"Error attaching document {document_id} to application {application_id}: {str(e)}")
            return Err(DatabaseOperationException(detail="Error attaching document", original_error=e))

        logger.info(f"Document {document_id} attached to application {application_id}")
        return Ok(attachment)

    # ── Predicates ───────────────────────────────────────────────────────

    @staticmethod
    def missing(application: Application) -> Tuple[List[str], List[int]]:
        """(missing contact fields, missing required document ids)"""
        fields = CompletenessService.missing_contact_fields(application.contact())
        documents = CompletenessService.missing_document_ids(
            application.market.required_document_ids, application.attached_document_ids
        )
        return fields, sorted(documents)

    def is_complete(self, application: Application) -> bool:
        return CompletenessService.is_complete(
            application.contact(),
            application.market.required_document_ids,
            application.attached_document_ids,
        )

    def ready_for_submission(self, application: Application) -> bool:
        return self.is_complete(application) and application.in_progress

    def checklist(self, application: Application) -> List[RequirementCheck]:
        return CompletenessService.checklist(application.market.requirements, application.attached_document_ids)
