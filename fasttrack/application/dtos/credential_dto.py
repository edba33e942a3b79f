# fasttrack/application/dtos/credential_dto.py

"""
DTOs for the machine-to-machine OAuth endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ClientCredentialsInput(BaseModel):
    client_id: str = Field(..., description="Editor client identifier")
    client_secret: str = Field(..., description="Editor client secret")


class RefreshTokenInput(BaseModel):
    client_secret: str = Field(..., description="Editor client secret")


class RevokeTokenInput(BaseModel):
    token: Optional[str] = Field(None, description="Token to revoke, defaults to the presented one")


class AppTokenResponse(BaseModel):
    access_token: str = Field(..., description="Machine access token")
    token_type: str = Field("Bearer", description="Token type")
    expires_in: int = Field(..., description="Lifetime in seconds")
    scope: str = Field(..., description="Space-separated scopes")
    created_at: int = Field(..., description="Issue time, epoch seconds")


class AppStatusResponse(BaseModel):
    authenticated: bool
    editor_id: int
    editor_name: str
    token_expires_at: Optional[datetime] = None
    token_expires_in: Optional[int] = None
    scopes: List[str]
    last_used_at: Optional[datetime] = None
    valid: bool


class RevokeTokenResponse(BaseModel):
    revoked: bool
