# fasttrack/adapters/outbound/persistence/models/attachment_model.py

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from fasttrack.adapters.outbound.persistence.models.base_model import Base, BigIntPK


class ApplicationAttachment(Base):
    """
    Document uploaded by a candidate for one requirement.

    The requirement is identified by ``document_id``; the uploaded file
    name is kept for display and bundle naming only.
    """
    __tablename__ = "application_attachments"
    __table_args__ = (
        UniqueConstraint("application_id", "document_id", name="uq_application_attachments_application_document"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    application_id = Column(BigIntPK, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(BigIntPK, ForeignKey("documents.id"), nullable=False)
    filename = Column(String(255), nullable=False)
    content_type = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    sha256 = Column(String(64), nullable=False)
    blob_path = Column(String(512), nullable=False)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    application = relationship("Application", back_populates="attachments")

    def __repr__(self) -> str:
        return f"<ApplicationAttachment(application_id={self.application_id}, document_id={self.document_id})>"
