# fasttrack/adapters/outbound/persistence/models/market_model.py

"""
Market model (a published tender).

A market is created once, together with its requirements, and is not
edited afterwards.
"""

from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from fasttrack.adapters.outbound.persistence.models.base_model import Base, BigIntPK


class Market(Base):
    """
    Model representing a market owned by one editor.

    Attributes:
        id: Internal identifier
        fast_track_id: Public opaque identifier (32 hex chars), immutable and unique
        editor_id: Owning editor
        title: Market title
        description: Market description
        deadline: Applications are refused from this instant on
        market_type: supplies, services or works
        active: Inactive markets are closed regardless of the deadline
    """
    __tablename__ = "markets"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    fast_track_id = Column(String(32), unique=True, nullable=False, index=True)
    editor_id = Column(BigIntPK, ForeignKey("editors.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=False)
    market_type = Column(String(20), nullable=False)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    editor = relationship("Editor", back_populates="markets", lazy="joined", innerjoin=True)
    requirements = relationship(
        "MarketRequirement",
        back_populates="market",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="MarketRequirement.document_id",
    )
    applications = relationship("Application", back_populates="market", cascade="all, delete-orphan")

    @property
    def required_document_ids(self):
        return {requirement.document_id for requirement in self.requirements if requirement.required}

    def __repr__(self) -> str:
        return f"<Market(fast_track_id={self.fast_track_id}, title={self.title}, type={self.market_type})>"
