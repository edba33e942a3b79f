# fasttrack/adapters/outbound/persistence/models/application_model.py

"""
Application model: one candidate company's bid against one market.
"""

from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship

from fasttrack.adapters.outbound.persistence.models.base_model import Base, BigIntPK
from fasttrack.domain.models.application_domain_model import ApplicationStatus


class Application(Base):
    """
    Model representing a candidate application.

    Attributes:
        id: Internal identifier
        market_id: Market the application targets
        siret: 14-digit company identifier, unique per market
        company_name: Company display name
        email: Contact email
        phone: Contact phone
        contact_person: Contact person name
        status: in_progress or submitted, never reversed
        submission_id: FT<YYYYMMDD><8 hex>, assigned once
        submitted_at: Moment of submission
        attestation_path: Blob path of the attestation PDF
        dossier_path: Blob path of the documents bundle
    """
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("market_id", "siret", name="uq_applications_market_siret"),
    )

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    market_id = Column(BigIntPK, ForeignKey("markets.id", ondelete="CASCADE"), nullable=False, index=True)
    siret = Column(String(14), nullable=False, index=True)
    company_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    contact_person = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=ApplicationStatus.IN_PROGRESS.value, index=True)
    submission_id = Column(String(18), unique=True, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    attestation_path = Column(String(512), nullable=True)
    dossier_path = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    market = relationship("Market", back_populates="applications", lazy="joined", innerjoin=True)
    attachments = relationship(
        "ApplicationAttachment",
        back_populates="application",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ApplicationAttachment.document_id",
    )

    @property
    def submitted(self) -> bool:
        return self.status == ApplicationStatus.SUBMITTED.value

    @property
    def in_progress(self) -> bool:
        return self.status == ApplicationStatus.IN_PROGRESS.value

    @property
    def attached_document_ids(self):
        return {attachment.document_id for attachment in self.attachments}

    def contact(self) -> dict:
        return {
            "company_name": self.company_name,
            "email": self.email,
            "phone": self.phone,
            "contact_person": self.contact_person,
        }

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, siret={self.siret}, status={self.status})>"
