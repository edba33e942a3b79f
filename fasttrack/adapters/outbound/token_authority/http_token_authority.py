# fasttrack/adapters/outbound/token_authority/http_token_authority.py

"""
Token authority client for a standalone OAuth 2 authorization server.

Uses the client-credentials grant (RFC 6749 §4.4), token introspection
(RFC 7662) and token revocation (RFC 7009).
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from fasttrack.adapters.configuration.config import settings
from fasttrack.application.ports.outbound import ITokenAuthority
from fasttrack.domain.exceptions import TokenAuthorityError
from fasttrack.domain.models.credential_domain_model import IssuedToken, TokenIntrospection
from fasttrack.shared.utils.clock import utcnow

logger = logging.getLogger(__name__)


class HttpTokenAuthority(ITokenAuthority):
    """
    Talks to ``<base_url>/oauth/token``, ``/oauth/introspect`` and ``/oauth/revoke``.

    Every request carries a total timeout; transport failures and
    timeouts surface as TokenAuthorityError with reason ``unreachable``
    or ``timeout``.
    """

    def __init__(
            self,
            base_url: Optional[str] = None,
            timeout: Optional[float] = None,
            introspection_client_id: Optional[str] = None,
            introspection_client_secret: Optional[str] = None,
            session: Optional[aiohttp.ClientSession] = None,
    ):
        self._base_url = (base_url or settings.TOKEN_AUTHORITY_URL or "").rstrip("/")
        self._timeout = timeout or settings.TOKEN_AUTHORITY_TIMEOUT_SECONDS
        self._introspection_auth = None
        client_id = introspection_client_id or settings.TOKEN_AUTHORITY_INTROSPECTION_CLIENT_ID
        client_secret = introspection_client_secret or settings.TOKEN_AUTHORITY_INTROSPECTION_CLIENT_SECRET
        if client_id and client_secret:
            self._introspection_auth = aiohttp.BasicAuth(client_id, client_secret)
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout),
                headers={"Accept": "application/json"},
            )
            self._owns_session = True
        return self._session

    async def _post_form(
            self, path: str, data: Dict[str, str], auth: Optional[aiohttp.BasicAuth]
    ) -> Dict[str, Any]:
        if not self._base_url:
            raise TokenAuthorityError("not_configured", "TOKEN_AUTHORITY_URL is not set")

        session = await self._get_session()
        url = f"{self._base_url}{path}"
        try:
            async with session.post(url, data=data, auth=auth) as response:
                if response.status in (400, 401):
                    body = await response.json(content_type=None)
                    raise TokenAuthorityError(
                        (body or {}).get("error", "invalid_client"),
                        f"Token authority refused the request ({response.status})",
                    )
                if response.status >= 400:
                    logger.error(f"Token authority returned HTTP {response.status} for {path}")
                    raise TokenAuthorityError("authority_error", f"HTTP {response.status}")
                if response.status == 204:
                    return {}
                return await response.json(content_type=None) or {}
        except asyncio.TimeoutError:
            logger.error(f"Token authority timed out after {self._timeout}s on {path}")
            raise TokenAuthorityError("timeout")
        except aiohttp.ClientError as e:
            logger.error(f"Token authority unreachable on {path}: {e}")
            raise TokenAuthorityError("unreachable")
        except ValueError:
            raise TokenAuthorityError("authority_error", "Malformed token authority response")

    async def issue_token(self, client_id: str, client_secret: str, scopes: List[str]) -> IssuedToken:
        body = await self._post_form(
            "/oauth/token",
            {"grant_type": "client_credentials", "scope": " ".join(scopes)},
            aiohttp.BasicAuth(client_id, client_secret),
        )
        access_token = body.get("access_token")
        if not access_token:
            raise TokenAuthorityError("authority_error", "No access_token in response")

        expires_in = int(body.get("expires_in") or settings.MACHINE_TOKEN_EXPIRE_SECONDS)
        granted = (body.get("scope") or " ".join(scopes)).split()
        return IssuedToken(
            access_token=access_token,
            expires_at=utcnow() + timedelta(seconds=expires_in),
            expires_in=expires_in,
            scopes=granted,
        )

    async def introspect(self, token: str) -> Optional[TokenIntrospection]:
        body = await self._post_form("/oauth/introspect", {"token": token}, self._introspection_auth)
        if not body.get("active") and not body.get("exp"):
            return None

        exp = body.get("exp")
        # exp is optional in an introspection response; an active token without it does not expire
        expires_at = datetime.fromtimestamp(int(exp), tz=timezone.utc) if exp else None
        iat = body.get("iat")
        return TokenIntrospection(
            client_id=body.get("client_id") or body.get("sub") or "",
            scopes=(body.get("scope") or "").split(),
            expires_at=expires_at,
            # an inactive token that has not expired was revoked
            revoked=not body.get("active") and expires_at is not None and expires_at > utcnow(),
            issued_at=datetime.fromtimestamp(int(iat), tz=timezone.utc) if iat else None,
            token_id=body.get("jti"),
        )

    async def mark_used(self, token: str) -> None:
        # usage is tracked by the remote server itself
        return None

    async def revoke(self, token: str) -> bool:
        await self._post_form("/oauth/revoke", {"token": token}, self._introspection_auth)
        return True

    async def revoke_expired(self, client_id: str) -> int:
        # expired tokens are purged by the remote server
        return 0

    async def close(self) -> None:
        """Close resources."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
