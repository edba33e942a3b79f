# fasttrack/application/use_cases/market_use_cases.py

"""
Market configuration.

A market is configured in two steps: the editor first submits the basic
information and receives a signed draft token together with the
documents the market type mandates and offers; it then sends the token
back with its optional document choice. Every step re-validates the
whole draft.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.outbound.persistence.models import Document, Editor, Market
from fasttrack.adapters.outbound.persistence.repositories.market_repository import market_repository
from fasttrack.adapters.outbound.security.auth_client_manager import ClientAuthManager
from fasttrack.application.ports.inbound import IMarketConfigurator
from fasttrack.application.use_cases.access_use_cases import AccessGate
from fasttrack.application.use_cases.document_catalog_use_cases import DocumentCatalog
from fasttrack.domain.exceptions import (
    DatabaseOperationException,
    DomainException,
    InvalidInputException,
    PermissionDeniedException,
    ResourceNotFoundException,
)
from fasttrack.domain.models.market_domain_model import MarketDraft
from fasttrack.domain.result import Ok, Err, Result
from fasttrack.domain.services.identifier_service import IdentifierService
from fasttrack.shared.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class DraftPreview:
    """Outcome of the first configuration step."""
    draft_token: str
    draft: MarketDraft
    mandatory_documents: List[Document] = field(default_factory=list)
    optional_documents: List[Document] = field(default_factory=list)


class MarketConfigurator(IMarketConfigurator):
    """
    Creates markets with their document requirements, all or nothing.
    """

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session
        self.catalog = DocumentCatalog(db_session)

    def _gate(self, editor: Editor) -> Optional[PermissionDeniedException]:
        if editor is None or not editor.authorized_and_active:
            logger.warning(
                f"Market configuration refused for editor "
                f"{getattr(editor, 'client_id', None)}: not authorized or inactive"
            )
            return PermissionDeniedException()
        return None

    async def prepare_draft(self, editor: Editor, draft: MarketDraft) -> Result[DraftPreview, DomainException]:
        """
        First step: validate the basic information and sign a continuation token.
        """
        denied = self._gate(editor)
        if denied:
            return Err(denied)

        errors = draft.validate(utcnow())
        if errors:
            return Err(InvalidInputException(fields=errors))

        checked = await self.catalog.validate(draft.optional_document_ids, draft.market_type)
        if not checked.is_ok:
            return checked

        mandatory, optional = await self.catalog.partition(draft.market_type)
        token = await ClientAuthManager.create_draft_token(editor.client_id, draft.to_claims())
        return Ok(DraftPreview(
            draft_token=token,
            draft=draft,
            mandatory_documents=mandatory,
            optional_documents=optional,
        ))

    async def configure_from_token(
            self, editor: Editor, draft_token: str, optional_document_ids: List[int]
    ) -> Result[Market, DomainException]:
        """Second step: restore the signed draft, apply the optional choice and configure."""
        denied = self._gate(editor)
        if denied:
            return Err(denied)
        try:
            claims = await ClientAuthManager.verify_draft_token(draft_token, editor.client_id)
        except InvalidInputException as e:
            return Err(e)

        draft = MarketDraft.from_claims(claims)
        draft.optional_document_ids = list(optional_document_ids)
        return await self.configure(editor, draft)

    async def _unused_fast_track_id(self) -> str:
        while True:
            candidate = IdentifierService.new_fast_track_id()
            if not await market_repository.fast_track_id_taken(self.db_session, candidate):
                return candidate
            logger.warning("Fast track id collision, drawing a new one")

    async def configure(self, editor: Editor, draft: MarketDraft) -> Result[Market, DomainException]:
        """
        Create a market and its requirements in one transaction.

        Requirements are every mandatory document of the market type plus
        the selected optional ones, each with a copy of the document name
        and description.

        Returns:
            Ok(market) or Err(PermissionDenied | InvalidInput | InvalidReference | DatabaseOperation)
        """
        denied = self._gate(editor)
        if denied:
            return Err(denied)

        errors = draft.validate(utcnow())
        if errors:
            logger.debug(f"Market draft rejected for editor {editor.client_id}: {errors}")
            return Err(InvalidInputException(fields=errors))

        checked = await self.catalog.validate(draft.optional_document_ids, draft.market_type)
        if not checked.is_ok:
            return checked
        selected_optional = checked.value
        mandatory = await self.catalog.mandatory_for(draft.market_type)

        requirements = [
            {
                "document_id": document.id,
                "required": required,
                "document_name": document.name,
                "document_description": document.description,
            }
            for documents, required in ((mandatory, True), (selected_optional, False))
            for document in documents
        ]

        client_id = editor.client_id
        try:
            fast_track_id = await self._unused_fast_track_id()
            market = await market_repository.add_market(self.db_session, {
                "fast_track_id": fast_track_id,
                "editor_id": editor.id,
                "title": draft.title.strip(),
                "description": draft.description.strip(),
                "deadline": as_utc(draft.deadline),
                "market_type": draft.market_type,
                "active": True,
            })
            await market_repository.add_requirements(self.db_session, market, requirements)
            await self.db_session.commit()
        except (SQLAlchemyError, DatabaseOperationException) as e:
            await self.db_session.rollback()
            logger.error(f"Market configuration failed for editor {client_id}: {str(e)}")
            return Err(DatabaseOperationException(detail="Market configuration failed", original_error=e))

        logger.info(
            f"Market {fast_track_id} configured by editor {client_id} "
            f"({len(mandatory)} mandatory, {len(selected_optional)} optional documents)"
        )
        return Ok(await market_repository.get_by_fast_track_id(self.db_session, fast_track_id))

    async def list_owned(self, editor: Editor) -> List[Market]:
        """Markets of the editor, newest first."""
        return await market_repository.list_for_editor(self.db_session, editor.id)

    async def get_owned(self, editor: Editor, fast_track_id: str) -> Result[Market, DomainException]:
        """Market lookup for its owning editor."""
        market = await market_repository.get_by_fast_track_id(self.db_session, fast_track_id)
        if market is None:
            return Err(ResourceNotFoundException(detail="Market not found"))
        decision = AccessGate().authorize(editor, market)
        if not decision.allowed:
            return Err(PermissionDeniedException(decision.reason))
        return Ok(market)
