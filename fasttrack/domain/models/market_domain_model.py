# fasttrack/domain/models/market_domain_model.py

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 255
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 2000
MINIMUM_DEADLINE_LEAD = timedelta(hours=1)


class MarketType(str, Enum):
    """Fixed set of market types a tender can be published under."""
    SUPPLIES = "supplies"
    SERVICES = "services"
    WORKS = "works"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]

    @classmethod
    def parse(cls, value) -> Optional["MarketType"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class MarketDraft:
    """
    Value object for a market being configured.

    Travels between configuration steps inside a signed continuation
    token and is re-validated server-side at every step.
    """
    title: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    market_type: Optional[str] = None
    optional_document_ids: List[int] = field(default_factory=list)

    def validate(self, now: datetime) -> Dict[str, str]:
        """
        Check the field rules that do not need the document catalog.

        Args:
            now: Reference time (timezone-aware UTC)

        Returns:
            Mapping of field name to error message; empty when valid
        """
        errors: Dict[str, str] = {}

        title = (self.title or "").strip()
        if not title:
            errors["title"] = "can't be blank"
        elif not TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH:
            errors["title"] = f"must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"

        description = (self.description or "").strip()
        if not description:
            errors["description"] = "can't be blank"
        elif not DESCRIPTION_MIN_LENGTH <= len(description) <= DESCRIPTION_MAX_LENGTH:
            errors["description"] = (
                f"must be between {DESCRIPTION_MIN_LENGTH} and {DESCRIPTION_MAX_LENGTH} characters"
            )

        if self.deadline is None:
            errors["deadline"] = "can't be blank"
        elif self.deadline.tzinfo is None:
            errors["deadline"] = "must include a timezone"
        elif self.deadline < now + MINIMUM_DEADLINE_LEAD:
            errors["deadline"] = "must be at least 1 hour in the future"

        if not self.market_type:
            errors["market_type"] = "can't be blank"
        elif MarketType.parse(self.market_type) is None:
            errors["market_type"] = f"must be one of: {', '.join(MarketType.values())}"

        if any(not isinstance(doc_id, int) or isinstance(doc_id, bool) for doc_id in self.optional_document_ids):
            errors["optional_document_ids"] = "must be a list of integer ids"

        return errors

    def to_claims(self) -> Dict[str, object]:
        return {
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "market_type": self.market_type,
            "optional_document_ids": list(self.optional_document_ids),
        }

    @classmethod
    def from_claims(cls, claims: Dict[str, object]) -> "MarketDraft":
        deadline = claims.get("deadline")
        return cls(
            title=claims.get("title"),
            description=claims.get("description"),
            deadline=datetime.fromisoformat(deadline) if deadline else None,
            market_type=claims.get("market_type"),
            optional_document_ids=list(claims.get("optional_document_ids") or []),
        )
