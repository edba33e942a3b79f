# fasttrack/domain/models/credential_domain_model.py

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class IssuedToken:
    """Token returned by a token authority for a client-credentials request."""
    access_token: str
    expires_at: datetime
    expires_in: int
    scopes: List[str]


@dataclass(frozen=True)
class TokenIntrospection:
    """What a token authority knows about a presented token."""
    client_id: str
    scopes: List[str]
    # None when the authority reports no expiry
    expires_at: Optional[datetime]
    revoked: bool = False
    issued_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    token_id: Optional[str] = None

    def expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def valid(self, now: datetime) -> bool:
        return not self.expired(now) and not self.revoked


@dataclass(frozen=True)
class TokenResult:
    """Successful authenticate/refresh outcome."""
    access_token: str
    expires_in: int
    expires_at: datetime
    scope: str
    token_type: str = "Bearer"


@dataclass(frozen=True)
class TokenStatus:
    """Read-only projection of a machine token."""
    expires_at: Optional[datetime]
    expires_in: Optional[int]
    scopes: List[str]
    last_used_at: Optional[datetime]
    valid: bool

    @property
    def expired(self) -> bool:
        return not self.valid

    def expires_soon(self, now: datetime, threshold: timedelta) -> bool:
        return self.expires_at is not None and self.expires_at < now + threshold


class MachineAuthState(str, Enum):
    NOT_READY = "not_ready"
    AUTHENTICATED = "authenticated"
    TOKEN_EXPIRED = "token_expired"
    NOT_AUTHENTICATED = "not_authenticated"
    REFRESHED = "refreshed"
    REFRESH_FAILED = "refresh_failed"


@dataclass
class MachineAppStatus:
    """Machine-authentication status of one editor, as seen from its token metadata."""
    editor_id: int
    editor_name: str
    state: MachineAuthState
    message: str
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    expiring_soon: bool = False
    notes: List[str] = field(default_factory=list)

    @property
    def authenticated(self) -> bool:
        return self.state in (MachineAuthState.AUTHENTICATED, MachineAuthState.REFRESHED)

    @property
    def needs_refresh(self) -> bool:
        if self.state in (MachineAuthState.TOKEN_EXPIRED, MachineAuthState.NOT_AUTHENTICATED):
            return True
        return self.state == MachineAuthState.AUTHENTICATED and self.expiring_soon
