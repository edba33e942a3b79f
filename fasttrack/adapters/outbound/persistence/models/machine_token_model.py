# fasttrack/adapters/outbound/persistence/models/machine_token_model.py

"""
Machine access tokens issued by the local token authority.

Only the token id (``jti``) and its metadata are stored, never the
bearer string itself.
"""

from sqlalchemy import Column, String, DateTime

from fasttrack.adapters.outbound.persistence.models.base_model import Base, BigIntPK


class MachineAccessToken(Base):
    """
    Model storing issued machine tokens.

    Attributes:
        jti: JWT ID - unique identifier of the token
        client_id: Editor client the token was issued to
        scopes: Space-separated scope list
        issued_at: Issue time
        expires_at: Natural expiry of the token
        revoked_at: Revocation time, NULL while the token is live
        last_used_at: Last time the token was accepted on an API call
    """
    __tablename__ = "machine_access_tokens"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    jti = Column(String(64), unique=True, nullable=False, index=True)
    client_id = Column(String(255), nullable=False, index=True)
    scopes = Column(String(255), nullable=False)
    issued_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<MachineAccessToken(jti={self.jti}, client_id={self.client_id})>"
