# fasttrack/adapters/outbound/persistence/models/requirement_model.py

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from fasttrack.adapters.outbound.persistence.models.base_model import Base, BigIntPK


class MarketRequirement(Base):
    """
    Binding of a market to a catalog document.

    ``document_name`` and ``document_description`` are copied from the
    catalog when the market is configured; later catalog edits do not
    change what an existing market asks for.
    """
    __tablename__ = "market_requirements"
    __table_args__ = (
        UniqueConstraint("market_id", "document_id", name="uq_market_requirements_market_document"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    market_id = Column(BigIntPK, ForeignKey("markets.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(BigIntPK, ForeignKey("documents.id"), nullable=False, index=True)
    required = Column(Boolean, nullable=False)
    document_name = Column(String(255), nullable=False)
    document_description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    market = relationship("Market", back_populates="requirements")

    def __repr__(self) -> str:
        return f"<MarketRequirement(market_id={self.market_id}, document_id={self.document_id}, required={self.required})>"
