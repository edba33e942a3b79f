# fasttrack/application/ports/inbound.py

from abc import ABC, abstractmethod
from typing import Iterable, List, Mapping, Optional

from fasttrack.domain.models.access_domain_model import AccessDecision
from fasttrack.domain.models.market_domain_model import MarketDraft
from fasttrack.domain.result import Result


class IDocumentCatalog(ABC):
    """Interface for document catalog queries."""

    @abstractmethod
    async def mandatory_for(self, market_type: str) -> List:
        """Active mandatory documents applicable to a market type."""
        pass

    @abstractmethod
    async def optional_for(self, market_type: str) -> List:
        """Active optional documents applicable to a market type."""
        pass

    @abstractmethod
    async def validate(self, optional_ids: Iterable[int], market_type: str) -> Result:
        """Ok(documents) or Err(InvalidReferenceException)."""
        pass


class IMarketConfigurator(ABC):
    """Interface for market configuration."""

    @abstractmethod
    async def configure(self, editor, draft: MarketDraft) -> Result:
        """Atomically create a market and its requirements."""
        pass


class IApplicationLifecycle(ABC):
    """Interface for the candidate application lifecycle."""

    @abstractmethod
    async def find_or_create(self, market, siret: str, seed_company_name: Optional[str] = None) -> Result:
        """Return the application for (market, siret), creating it when absent."""
        pass

    @abstractmethod
    async def update_contact_info(self, application, fields: Mapping[str, Optional[str]]) -> Result:
        """Merge contact fields while the application is in progress."""
        pass

    @abstractmethod
    async def attach_document(self, application, document_id: int, filename: str,
                              content_type: str, data: bytes) -> Result:
        """Store (or replace) the attachment for one requirement."""
        pass

    @abstractmethod
    def is_complete(self, application) -> bool:
        """Contact info present and every required document attached."""
        pass

    @abstractmethod
    def ready_for_submission(self, application) -> bool:
        """Complete and still in progress."""
        pass


class ISubmissionCoordinator(ABC):
    """Interface for the submission transaction."""

    @abstractmethod
    async def submit(self, application) -> Result:
        """Submit an application exactly once."""
        pass


class ICredentialIssuer(ABC):
    """Interface for machine-to-machine credentials."""

    @abstractmethod
    async def authenticate(self, editor, client_secret: str) -> Result:
        """Issue a machine token for an editor."""
        pass

    @abstractmethod
    async def refresh(self, editor, client_secret: str) -> Result:
        """Re-issue a machine token (same as authenticate)."""
        pass

    @abstractmethod
    async def status(self, editor, token: str) -> Result:
        """Read-only status of a token."""
        pass

    @abstractmethod
    async def revoke(self, editor, token: str) -> bool:
        """Best-effort revocation."""
        pass

    @abstractmethod
    async def cleanup_expired(self, editor) -> int:
        """Best-effort removal of expired tokens."""
        pass


class IAccessGate(ABC):
    """Interface for resource ownership checks."""

    @abstractmethod
    def authorize(self, editor, resource) -> AccessDecision:
        """Allow iff the resource's market belongs to the editor."""
        pass
