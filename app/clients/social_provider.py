"""
Common OAuth 2.0 and publishing behaviour for social providers.

A provider exposes four capabilities: build the consent URL, exchange an
authorization code, fetch the connected profile and publish a post. Variants
override class attributes for endpoints and scopes and implement the
provider-specific profile and posting calls.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Optional
from urllib.parse import urlencode

import httpx

from app.core.config import ProviderSettings
from app.core.errors import ConfigurationError, ParameterValidationError, UpstreamError
from app.models.oauth import ProviderProfile, TokenPair
from app.models.social import ConnectedAccountRecord, MediaAttachment
from app.utils.http import json_body, send_checked

logger = logging.getLogger(__name__)

STAGE_TOKEN = "token"
STAGE_PROFILE = "profile"
STAGE_MEDIA = "media"
STAGE_POST = "post"


class SocialProvider(ABC):
    """Base class for an OAuth 2.0 social provider."""

    name: ClassVar[str]
    display_name: ClassVar[str]
    authorize_url: ClassVar[str]
    token_url: ClassVar[str]
    scopes: ClassVar[tuple[str, ...]]
    scope_separator: ClassVar[str] = " "
    uses_pkce: ClassVar[bool] = False
    # Send client credentials as HTTP Basic auth instead of in the form body.
    basic_auth_token_exchange: ClassVar[bool] = False

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        base_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return f"{self._base_url}/api/auth/{self.name}/callback"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def require_client_id(self) -> str:
        if not self._settings.client_id:
            raise ConfigurationError(
                f"Missing {self.name.upper()}_CLIENT_ID environment variable"
            )
        return self._settings.client_id

    def require_credentials(self) -> tuple[str, str]:
        client_id = self.require_client_id()
        if not self._settings.client_secret:
            raise ConfigurationError(
                f"Missing {self.name.upper()}_CLIENT_SECRET environment variable"
            )
        return client_id, self._settings.client_secret

    def build_authorization_url(
        self, *, state: str, code_challenge: Optional[str] = None
    ) -> str:
        """Construct the provider consent URL."""
        params = {
            "response_type": "code",
            "client_id": self.require_client_id(),
            "redirect_uri": self.redirect_uri,
            "scope": self.scope_separator.join(self.scopes),
            "state": state,
        }
        if self.uses_pkce:
            if not code_challenge:
                raise ValueError(f"{self.display_name} requires a PKCE code challenge")
            params["code_challenge"] = code_challenge
            params["code_challenge_method"] = "S256"
        return f"{self.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, *, code_verifier: str = "") -> TokenPair:
        """Exchange an authorization code for tokens. Never retried."""
        client_id, client_secret = self.require_credentials()
        form = {
            "code": code,
            "grant_type": "authorization_code",
            "client_id": client_id,
            "redirect_uri": self.redirect_uri,
        }
        auth = None
        if self.uses_pkce:
            form["code_verifier"] = code_verifier
        if self.basic_auth_token_exchange:
            auth = httpx.BasicAuth(client_id, client_secret)
        else:
            form["client_secret"] = client_secret

        async with self._client() as client:
            response = await send_checked(
                client,
                "POST",
                self.token_url,
                stage=STAGE_TOKEN,
                data=form,
                auth=auth,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        return self._parse_token_payload(json_body(response, stage=STAGE_TOKEN))

    def _parse_token_payload(self, payload: Dict[str, Any]) -> TokenPair:
        access_token = payload.get("access_token")
        if not access_token:
            raise UpstreamError(
                STAGE_TOKEN, message="Token response did not include an access token"
            )
        return TokenPair(
            access_token=access_token,
            refresh_token=payload.get("refresh_token") or None,
        )

    @abstractmethod
    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        """Fetch the profile of the account that granted ``access_token``."""

    @abstractmethod
    async def create_post(
        self,
        account: ConnectedAccountRecord,
        text: str,
        media: Optional[MediaAttachment] = None,
    ) -> str:
        """Publish a post and return the provider's identifier for it."""

    def _require_media_bytes(self, media: Optional[MediaAttachment]) -> None:
        """Reject attachments that carry only a URL on providers that upload bytes."""
        if media is not None and not media.content:
            raise ParameterValidationError(
                f"{self.display_name} posts need the media file itself, not only a media URL"
            )

    @staticmethod
    def _bearer(access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}


__all__ = [
    "STAGE_MEDIA",
    "STAGE_POST",
    "STAGE_PROFILE",
    "STAGE_TOKEN",
    "SocialProvider",
]
