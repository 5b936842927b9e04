"""
Domain models for the OAuth handshake.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from app.models.social import ProviderName


class PKCEPair(BaseModel):
    """Verifier/challenge pair generated per authorization attempt."""

    verifier: str = Field(..., min_length=43, max_length=43)
    challenge: str


class TokenPair(BaseModel):
    """Tokens returned by a provider token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    provider_user_id: Optional[str] = Field(
        None,
        description="Some providers (Instagram) return the account id with the tokens.",
    )


class ProviderProfile(BaseModel):
    """The subset of a provider user profile persisted with the account."""

    username: str
    provider_user_id: Optional[str] = None
    profile_image: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict, repr=False)


class AuthorizationRequest(BaseModel):
    """Everything the initiator hands back to the HTTP layer."""

    url: str
    code_verifier: Optional[str] = None
    session_nonce: Optional[str] = None


class OAuthSession(BaseModel):
    """Server-side record binding a nonce to the identity that started a flow."""

    uid: str
    provider: ProviderName
    expires_at: datetime


__all__ = [
    "AuthorizationRequest",
    "OAuthSession",
    "PKCEPair",
    "ProviderProfile",
    "TokenPair",
]
