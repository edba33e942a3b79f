# fasttrack/application/use_cases/document_catalog_use_cases.py

"""
Document catalog.

Resolves which catalog documents a market type mandates and which it
offers as optional. Read-only.
"""

import logging
from typing import Iterable, List, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from fasttrack.adapters.outbound.persistence.models import Document
from fasttrack.adapters.outbound.persistence.repositories.document_repository import document_repository
from fasttrack.application.ports.inbound import IDocumentCatalog
from fasttrack.domain.exceptions import InvalidInputException, InvalidReferenceException
from fasttrack.domain.models.market_domain_model import MarketType
from fasttrack.domain.result import Ok, Err, Result
from fasttrack.domain.services.document_rules import DocumentRules

logger = logging.getLogger(__name__)


class DocumentCatalog(IDocumentCatalog):

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    async def partition(self, market_type: str) -> Tuple[List[Document], List[Document]]:
        """(mandatory, optional) documents for a market type, mandatory first then by name."""
        documents = await document_repository.list_active(self.db_session, market_type=market_type)
        return DocumentRules.partition(documents, market_type)

    async def mandatory_for(self, market_type: str) -> List[Document]:
        mandatory, _ = await self.partition(market_type)
        return mandatory

    async def optional_for(self, market_type: str) -> List[Document]:
        _, optional = await self.partition(market_type)
        return optional

    async def list_for(self, market_type: str = None) -> Result[List[Document], InvalidInputException]:
        """Catalog listing; every active document when no market type is given."""
        if market_type is None:
            return Ok(await document_repository.list_active(self.db_session))
        if MarketType.parse(market_type) is None:
            return Err(InvalidInputException(
                fields={"market_type": f"must be one of: {', '.join(MarketType.values())}"}
            ))
        mandatory, optional = await self.partition(market_type)
        return Ok(mandatory + optional)

    async def validate(
            self, optional_ids: Iterable[int], market_type: str
    ) -> Result[List[Document], InvalidReferenceException]:
        """
        Check that every requested id is an active optional document eligible for the market type.

        Returns:
            Ok(documents in id order) or Err naming every offending id
        """
        requested = sorted(set(optional_ids))
        if not requested:
            return Ok([])

        documents = {document.id: document for document in
                     await document_repository.get_many(self.db_session, requested)}
        invalid = [
            doc_id for doc_id in requested
            if doc_id not in documents
            or not DocumentRules.eligible(documents[doc_id], market_type, mandatory=False)
        ]
        if invalid:
            logger.debug(f"Rejected optional documents {invalid} for market type {market_type}")
            return Err(InvalidReferenceException(invalid))

        return Ok([documents[doc_id] for doc_id in requested])
