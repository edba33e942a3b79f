# fasttrack/adapters/outbound/persistence/models/document_model.py

"""
Document model for the requirement catalog.

Documents are seeded and administered outside this service; markets
copy what they need at configuration time.
"""

from sqlalchemy import Column, String, Text, Boolean, DateTime, func

from fasttrack.adapters.outbound.persistence.models.base_model import Base, BigIntPK


class Document(Base):
    """
    Model representing a document template of the catalog.

    Attributes:
        id: Unique identifier of the document
        name: Display name
        description: What the candidate must provide
        mandatory: Whether every eligible market requires it
        category: Free-form grouping label (administratif, financier, technique...)
        market_type: Market-type affinity, NULL when it applies to every type
        active: Inactive documents are never offered nor accepted
    """
    __tablename__ = "documents"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    mandatory = Column(Boolean, default=False, nullable=False, index=True)
    category = Column(String(100), nullable=True)
    market_type = Column(String(20), nullable=True, index=True)
    active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Document(id={self.id}, name={self.name}, mandatory={self.mandatory})>"
