# fasttrack/adapters/outbound/persistence/repositories/document_repository.py

from typing import Iterable, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from fasttrack.adapters.outbound.persistence.models import Document
from fasttrack.application.ports.outbound import IDocumentRepository
from fasttrack.domain.exceptions import DatabaseOperationException


class AsyncDocumentCRUD(AsyncCRUDBase[Document], IDocumentRepository):
    """Read side of the document catalog."""

    async def list_active(self, db: AsyncSession, market_type: Optional[str] = None) -> List[Document]:
        """
        Active documents, mandatory first then by name.

        With ``market_type`` given, only documents without affinity or with
        that affinity are returned.
        """
        try:
            query = select(Document).where(Document.active.is_(True))
            if market_type is not None:
                query = query.where((Document.market_type.is_(None)) | (Document.market_type == market_type))
            query = query.order_by(Document.mandatory.desc(), Document.name, Document.id)
            result = await db.execute(query)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing catalog documents: {str(e)}")
            raise DatabaseOperationException(
                detail="Error listing documents",
                original_error=e
            )

    async def get_many(self, db: AsyncSession, ids: Iterable[int]) -> List[Document]:
        ids = list(ids)
        if not ids:
            return []
        try:
            result = await db.execute(select(Document).where(Document.id.in_(ids)))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching documents {ids}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching documents",
                original_error=e
            )


document_repository = AsyncDocumentCRUD(Document)
