# fasttrack/domain/models/access_domain_model.py

from dataclasses import dataclass
from typing import Optional

DENY_REASON = "Access denied - resource not owned by your editor platform"


@dataclass(frozen=True)
class AccessDecision:
    """Allow | Deny(reason). The reason never names the resource owner."""
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str = DENY_REASON) -> "AccessDecision":
        return cls(allowed=False, reason=reason)
