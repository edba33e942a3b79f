# fasttrack/adapters/outbound/security/auth_client_manager.py

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from jose import jwt, JWTError, ExpiredSignatureError
from passlib.context import CryptContext

from fasttrack.adapters.configuration.config import settings
from fasttrack.domain.exceptions import InvalidCredentialsException, InvalidInputException
from fasttrack.shared.utils.clock import utcnow

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM

MACHINE_TOKEN_TYPE = "machine"
DRAFT_TOKEN_TYPE = "market_draft"


class ClientAuthManager:
    """
    Authentication manager for editor platforms (machine clients).

    Hashes and verifies client secrets, and signs the two JWT kinds the
    service issues itself: machine access tokens (local token authority)
    and market draft continuation tokens.
    """

    crypt_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    @classmethod
    async def create_machine_token(
            cls,
            client_id: str,
            scopes: List[str],
            expires_delta: Optional[timedelta] = None,
    ) -> Tuple[str, str, datetime, datetime]:
        """
        Create a machine JWT with 'sub' equal to the editor's client_id and type "machine".

        Returns:
            (token, jti, issued_at, expires_at)
        """
        if expires_delta is None:
            expires_delta = timedelta(seconds=settings.MACHINE_TOKEN_EXPIRE_SECONDS)

        issued_at = utcnow().replace(microsecond=0)
        expire = issued_at + expires_delta
        jti = uuid.uuid4().hex
        payload = {
            "sub": str(client_id),
            "jti": jti,
            "iat": int(issued_at.timestamp()),
            "exp": int(expire.timestamp()),
            "type": MACHINE_TOKEN_TYPE,
            "scope": " ".join(scopes),
        }

        return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM), jti, issued_at, expire

    @classmethod
    async def decode_machine_token(cls, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode a machine JWT without enforcing expiry.

        Expiry is reported by the caller (introspection needs to know about
        expired tokens too). Returns None if the signature or the type is wrong.
        """
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], options={"verify_exp": False})
        except JWTError:
            return None
        if payload.get("type") != MACHINE_TOKEN_TYPE or not payload.get("sub") or not payload.get("jti"):
            return None
        return payload

    @classmethod
    async def create_draft_token(cls, client_id: str, claims: Dict[str, Any]) -> str:
        """Sign a market draft so the next configuration step can pick it up."""
        expire = utcnow() + timedelta(minutes=settings.MARKET_DRAFT_EXPIRE_MINUTES)
        payload = {
            "sub": str(client_id),
            "exp": int(expire.timestamp()),
            "type": DRAFT_TOKEN_TYPE,
            "draft": claims,
        }
        return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)

    @classmethod
    async def verify_draft_token(cls, token: str, client_id: str) -> Dict[str, Any]:
        """
        Decode a draft token and check it belongs to ``client_id``.

        Raises:
            InvalidInputException: If the token is expired, tampered or issued to another editor
        """
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise InvalidInputException(fields={"draft_token": "has expired, start the configuration again"})
        except JWTError:
            raise InvalidInputException(fields={"draft_token": "is invalid"})

        if payload.get("type") != DRAFT_TOKEN_TYPE or payload.get("sub") != str(client_id):
            raise InvalidInputException(fields={"draft_token": "is invalid"})
        return payload.get("draft") or {}

    @classmethod
    async def hash_secret(cls, secret: str) -> str:
        """
        Generate a secure hash of a client secret for storage in the database.
        """
        return cls.crypt_context.hash(secret)

    @classmethod
    async def verify_secret(cls, plain_secret: str, hashed_secret: str) -> bool:
        """
        Compare a plain text client secret with the stored hash.
        """
        if not plain_secret or not hashed_secret:
            return False
        try:
            return cls.crypt_context.verify(plain_secret, hashed_secret)
        except ValueError:
            return False

    @classmethod
    async def require_secret(cls, plain_secret: str, hashed_secret: str) -> None:
        if not await cls.verify_secret(plain_secret, hashed_secret):
            raise InvalidCredentialsException(detail="Invalid client credentials")
