# fasttrack/adapters/outbound/persistence/models/editor_model.py

"""
Editor model for editor-platform tenants.

An editor is the procuring organization's platform. It configures
markets and retrieves submitted artifacts through machine tokens.
"""

from sqlalchemy import Column, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship

from fasttrack.adapters.outbound.persistence.models.base_model import Base, BigIntPK


class Editor(Base):
    """
    Model representing an editor platform (tenant) of the service.

    Attributes:
        id: Unique identifier of the editor
        name: Unique display name
        client_id: Public OAuth client identifier
        client_secret: bcrypt hash of the client secret
        callback_url: Where candidates are sent back after submitting
        authorized: Administrative approval flag
        active: Whether the editor is currently enabled
        machine_auth_enabled: Whether the client-credentials flow is allowed
        machine_token_expires_at: Expiry of the most recently issued machine token
        machine_token_last_used_at: Last time a machine token of this editor was accepted
    """
    __tablename__ = "editors"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    client_id = Column(String(255), unique=True, nullable=False, index=True)
    client_secret = Column(String(255), nullable=False)
    callback_url = Column(String(2048), nullable=False, default="")
    authorized = Column(Boolean, default=False, nullable=False)
    active = Column(Boolean, default=True, nullable=False, index=True)
    machine_auth_enabled = Column(Boolean, default=True, nullable=False, index=True)
    machine_token_expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    machine_token_last_used_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    markets = relationship("Market", back_populates="editor", cascade="all, delete-orphan")

    @property
    def authorized_and_active(self) -> bool:
        return bool(self.authorized and self.active)

    @property
    def machine_auth_ready(self) -> bool:
        return self.authorized_and_active and bool(self.machine_auth_enabled)

    def __repr__(self) -> str:
        return f"<Editor(name={self.name}, client_id={self.client_id}, active={self.active})>"
