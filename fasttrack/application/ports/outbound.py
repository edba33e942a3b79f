# fasttrack/application/ports/outbound.py

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from fasttrack.domain.models.credential_domain_model import IssuedToken, TokenIntrospection


class IEditorRepository(ABC):
    """Editor repository interface."""

    @abstractmethod
    def get_by_client_id(self, db, client_id: str):
        """Get editor by client_id."""
        pass

    @abstractmethod
    def list_machine_ready(self, db):
        """Editors allowed to use the client-credentials flow."""
        pass

    @abstractmethod
    def set_token_expiry(self, db, editor_id: int, expires_at: Optional[datetime]) -> None:
        """Store the expiry of the latest machine token (last write wins, None once revoked)."""
        pass

    @abstractmethod
    def record_token_used(self, db, editor_id: int, used_at: datetime) -> None:
        """Stamp the last machine-token use."""
        pass


class IDocumentRepository(ABC):
    """Document catalog repository interface."""

    @abstractmethod
    def list_active(self, db, market_type: Optional[str] = None):
        """Active documents, optionally filtered by market-type affinity."""
        pass

    @abstractmethod
    def get_many(self, db, ids: Iterable[int]):
        """Documents by id."""
        pass


class IMarketRepository(ABC):
    """Market repository interface."""

    @abstractmethod
    def get_by_fast_track_id(self, db, fast_track_id: str):
        """Get market by its public identifier."""
        pass

    @abstractmethod
    def fast_track_id_taken(self, db, fast_track_id: str) -> bool:
        """Whether a public identifier is already used."""
        pass

    @abstractmethod
    def add_market(self, db, values: Dict[str, Any]):
        """Insert a market inside the caller's transaction."""
        pass

    @abstractmethod
    def add_requirements(self, db, market, requirements: List[Dict[str, Any]]):
        """Insert the requirements of a market inside the caller's transaction."""
        pass


class IApplicationRepository(ABC):
    """Application repository interface."""

    @abstractmethod
    def get_by_market_and_siret(self, db, market_id: int, siret: str):
        """Get the application of a company for a market."""
        pass

    @abstractmethod
    def get_for_update(self, db, application_id: int):
        """Load an application with a row lock."""
        pass

    @abstractmethod
    def mark_submitted(self, db, application_id: int, submission_id: str, submitted_at: datetime) -> bool:
        """Conditional in_progress -> submitted transition."""
        pass

    @abstractmethod
    def set_artifact_paths(self, db, application_id: int, attestation_path=None, dossier_path=None) -> None:
        """Record artifact locations of a submitted application."""
        pass

    @abstractmethod
    def upsert_attachment(self, db, application_id: int, document_id: int, values: Dict[str, Any]):
        """Insert or replace the attachment for one document."""
        pass


class ITokenAuthority(ABC):
    """
    OAuth token authority the machine flow is layered on.

    Implementations raise TokenAuthorityError on any failure.
    """

    @abstractmethod
    async def issue_token(self, client_id: str, client_secret: str, scopes: List[str]) -> IssuedToken:
        """Issue a token for (client_id, client_secret) with the given scopes."""
        pass

    @abstractmethod
    async def introspect(self, token: str) -> Optional[TokenIntrospection]:
        """What the authority knows about a token; None when it does not know it at all."""
        pass

    @abstractmethod
    async def mark_used(self, token: str) -> None:
        """Record that a token was accepted on an API call."""
        pass

    @abstractmethod
    async def revoke(self, token: str) -> bool:
        """Revoke a token; True when something was revoked."""
        pass

    @abstractmethod
    async def revoke_expired(self, client_id: str) -> int:
        """Drop expired tokens of a client; returns how many were removed."""
        pass


class IBlobStorage(ABC):
    """Durable byte storage addressed by opaque relative paths."""

    @abstractmethod
    async def write(self, path: str, data: bytes) -> None:
        """Write (or overwrite) bytes at path."""
        pass

    @abstractmethod
    async def read(self, path: str) -> bytes:
        """Read bytes at path."""
        pass

    @abstractmethod
    async def exists(self, path: str) -> bool:
        """Check existence at path."""
        pass
