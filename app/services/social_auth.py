"""
OAuth 2.0 authorization-code flow for linking social accounts.

``start_authorization`` builds the consent URL (with PKCE where the provider
supports it) and ``complete_authorization`` runs the callback stages:
validate parameters, exchange the code, fetch the profile, persist the
account. Every callback outcome is a redirect to the dashboard settings page.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Mapping, Optional
from urllib.parse import urlencode

from pydantic import ValidationError

from app.clients.document_store import DocumentStore
from app.clients.pkce import generate_pkce_pair
from app.clients.social_provider import STAGE_PROFILE, STAGE_TOKEN, SocialProvider
from app.core.config import AppSettings
from app.core.errors import (
    AuthorizationBoundaryError,
    ConfigurationError,
    MissingIdentityError,
    PersistenceError,
    StorageUnavailableError,
    UnsupportedProviderError,
    UpstreamError,
)
from app.core.logging import mask_secret
from app.models.oauth import AuthorizationRequest, OAuthSession
from app.models.social import OAUTH_SESSIONS_COLLECTION, ConnectedAccountRecord
from app.services.accounts import AccountService

logger = logging.getLogger(__name__)

VERIFIER_COOKIE = "code_verifier"
SESSION_COOKIE = "oauth_session"
SETTINGS_PATH = "/dashboard/settings"

ERROR_MISSING_PARAMS = "missing_params"
ERROR_STORAGE_NOT_INITIALIZED = "storage_not_initialized"
ERROR_STATE_MISMATCH = "state_mismatch"
ERROR_TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
ERROR_USER_INFO_FAILED = "user_info_failed"
ERROR_AUTH_FAILED = "auth_failed"

_STAGE_ERROR_CODES = {
    STAGE_TOKEN: ERROR_TOKEN_EXCHANGE_FAILED,
    STAGE_PROFILE: ERROR_USER_INFO_FAILED,
}


class SocialAuthService:
    """Initiate and complete provider OAuth flows."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        providers: Mapping[str, SocialProvider],
        accounts: Optional[AccountService],
        store: Optional[DocumentStore] = None,
    ) -> None:
        self._settings = settings
        self._providers = providers
        self._accounts = accounts
        self._store = store

    def get_provider(self, name: str) -> SocialProvider:
        try:
            return self._providers[name]
        except KeyError as exc:
            raise UnsupportedProviderError(f"Unsupported provider: {name}") from exc

    def settings_redirect(self, **params: str) -> str:
        return f"{self._settings.base_url}{SETTINGS_PATH}?{urlencode(params)}"

    def start_authorization(self, provider_name: str, uid: Optional[str]) -> AuthorizationRequest:
        """
        Build the consent URL for ``uid``.

        Raises ``MissingIdentityError`` without a uid and ``ConfigurationError``
        when the provider client id is not configured.
        """
        provider = self.get_provider(provider_name)
        credentials = self._settings.provider_settings(provider.name)
        logger.info(
            "%s auth configuration check: client_id=%s has_client_secret=%s app_url=%s",
            provider.display_name,
            mask_secret(credentials.client_id),
            bool(credentials.client_secret),
            self._settings.base_url,
        )
        if not uid:
            raise MissingIdentityError("User ID is required")

        pkce = generate_pkce_pair() if provider.uses_pkce else None
        url = provider.build_authorization_url(
            state=uid, code_challenge=pkce.challenge if pkce else None
        )
        session_nonce = None
        if self._settings.oauth.enforce_state_binding:
            session_nonce = self._open_session(provider.name, uid)

        logger.info(
            "Constructed %s auth URL: redirect_uri=%s pkce=%s bound=%s",
            provider.display_name,
            provider.redirect_uri,
            pkce is not None,
            session_nonce is not None,
        )
        return AuthorizationRequest(
            url=url,
            code_verifier=pkce.verifier if pkce else None,
            session_nonce=session_nonce,
        )

    async def complete_authorization(
        self,
        provider_name: str,
        *,
        code: Optional[str],
        state: Optional[str],
        code_verifier: Optional[str],
        session_nonce: Optional[str] = None,
    ) -> str:
        """Run the callback stages and return the settings redirect URL."""
        provider = self.get_provider(provider_name)
        logger.info(
            "%s callback initiated: has_code=%s has_state=%s has_verifier=%s",
            provider.display_name,
            bool(code),
            bool(state),
            bool(code_verifier),
        )
        if not code or not state:
            logger.error(
                "Missing callback parameters: has_code=%s has_state=%s",
                bool(code),
                bool(state),
            )
            return self.settings_redirect(error=ERROR_MISSING_PARAMS)

        if self._accounts is None:
            logger.error(
                "Document store is not initialized; cannot store %s account for user data",
                provider.display_name,
            )
            return self.settings_redirect(error=ERROR_STORAGE_NOT_INITIALIZED)

        try:
            if self._settings.oauth.enforce_state_binding:
                self._consume_session(provider.name, state, session_nonce)

            tokens = await provider.exchange_code(code, code_verifier=code_verifier or "")
            logger.info(
                "%s token exchange successful: has_refresh_token=%s",
                provider.display_name,
                bool(tokens.refresh_token),
            )
            profile = await provider.fetch_profile(tokens.access_token)

            record = ConnectedAccountRecord(
                username=profile.username,
                access_token=tokens.access_token,
                refresh_token=tokens.refresh_token,
                profile_image=profile.profile_image,
                provider_user_id=profile.provider_user_id or tokens.provider_user_id,
            )
            self._accounts.upsert_account(state, provider.name, record)
        except AuthorizationBoundaryError as exc:
            logger.warning("%s callback rejected: %s", provider.display_name, exc)
            return self.settings_redirect(error=ERROR_STATE_MISMATCH)
        except UpstreamError as exc:
            logger.error(
                "%s %s stage failed: status=%s",
                provider.display_name,
                exc.stage,
                exc.status_code,
            )
            return self.settings_redirect(
                error=_STAGE_ERROR_CODES.get(exc.stage, ERROR_AUTH_FAILED)
            )
        except ConfigurationError as exc:
            logger.critical("%s is misconfigured: %s", provider.display_name, exc)
            return self.settings_redirect(error=ERROR_AUTH_FAILED)
        except PersistenceError:
            # The provider considers the app authorized even though nothing was saved.
            logger.exception(
                "Saving %s account failed: path=users/%s", provider.display_name, state
            )
            return self.settings_redirect(error=ERROR_AUTH_FAILED)
        except Exception:  # pylint: disable=broad-except
            logger.exception("%s auth error", provider.display_name)
            return self.settings_redirect(error=ERROR_AUTH_FAILED)

        logger.info("%s account saved for users/%s", provider.display_name, state)
        return self.settings_redirect(success="true")

    def _open_session(self, provider: str, uid: str) -> str:
        if self._store is None:
            raise StorageUnavailableError("State binding requires a document store")
        nonce = secrets.token_urlsafe(32)
        expires_at = datetime.now(timezone.utc) + timedelta(
            seconds=self._settings.oauth.verifier_ttl_seconds
        )
        session = OAuthSession(uid=uid, provider=provider, expires_at=expires_at)
        self._store.set_document(
            OAUTH_SESSIONS_COLLECTION,
            nonce,
            session.model_dump(mode="json"),
            merge=False,
        )
        return nonce

    def _consume_session(self, provider: str, state: str, nonce: Optional[str]) -> None:
        """Check that ``state`` matches the identity that started this flow."""
        if not nonce or self._store is None:
            raise AuthorizationBoundaryError("No OAuth session cookie presented")
        data = self._store.get_document(OAUTH_SESSIONS_COLLECTION, nonce)
        if data is None:
            raise AuthorizationBoundaryError("Unknown or already used OAuth session")
        self._store.delete_document(OAUTH_SESSIONS_COLLECTION, nonce)

        try:
            session = OAuthSession.model_validate(data)
        except ValidationError as exc:
            raise AuthorizationBoundaryError("Malformed OAuth session record") from exc
        if session.expires_at <= datetime.now(timezone.utc):
            raise AuthorizationBoundaryError("OAuth session expired")
        if session.provider != provider or session.uid != state:
            raise AuthorizationBoundaryError("OAuth state does not match the session")


__all__ = [
    "ERROR_AUTH_FAILED",
    "ERROR_MISSING_PARAMS",
    "ERROR_STATE_MISMATCH",
    "ERROR_STORAGE_NOT_INITIALIZED",
    "ERROR_TOKEN_EXCHANGE_FAILED",
    "ERROR_USER_INFO_FAILED",
    "SESSION_COOKIE",
    "SETTINGS_PATH",
    "SocialAuthService",
    "VERIFIER_COOKIE",
]
