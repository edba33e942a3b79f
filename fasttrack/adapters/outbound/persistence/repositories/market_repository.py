# fasttrack/adapters/outbound/persistence/repositories/market_repository.py

from typing import Any, Dict, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import SQLAlchemyError

from fasttrack.adapters.outbound.persistence.repositories.base_repository import AsyncCRUDBase
from fasttrack.adapters.outbound.persistence.models import Market, MarketRequirement
from fasttrack.application.ports.outbound import IMarketRepository
from fasttrack.domain.exceptions import DatabaseOperationException


class AsyncMarketCRUD(AsyncCRUDBase[Market], IMarketRepository):
    """
    Async implementation of CRUD repository for the Market entity.

    Markets and their requirements are only ever written together, inside
    the caller's transaction: nothing here commits.
    """

    async def get_by_fast_track_id(self, db: AsyncSession, fast_track_id: str) -> Optional[Market]:
        try:
            query = select(Market).where(Market.fast_track_id == fast_track_id)
            result = await db.execute(query.execution_options(populate_existing=True))
            return result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            self.logger.error(f"Error fetching market '{fast_track_id}': {str(e)}")
            raise DatabaseOperationException(
                detail="Error fetching market",
                original_error=e
            )

    async def fast_track_id_taken(self, db: AsyncSession, fast_track_id: str) -> bool:
        return await self.exists(db, fast_track_id=fast_track_id)

    async def add_market(self, db: AsyncSession, values: Dict[str, Any]) -> Market:
        """Insert the market row and flush to obtain its id."""
        market = Market(**values)
        db.add(market)
        await db.flush()
        return market

    async def add_requirements(
            self, db: AsyncSession, market: Market, requirements: List[Dict[str, Any]]
    ) -> List[MarketRequirement]:
        rows = [MarketRequirement(market_id=market.id, **values) for values in requirements]
        db.add_all(rows)
        await db.flush()
        return rows

    async def list_for_editor(self, db: AsyncSession, editor_id: int) -> List[Market]:
        try:
            query = select(Market).where(Market.editor_id == editor_id).order_by(Market.created_at.desc(), Market.id.desc())
            result = await db.execute(query)
            return list(result.unique().scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing markets of editor {editor_id}: {str(e)}")
            raise DatabaseOperationException(
                detail="Error listing markets",
                original_error=e
            )


market_repository = AsyncMarketCRUD(Market)
