"""
Error taxonomy shared by the OAuth flow, provider clients and storage layer.
"""

from __future__ import annotations

from typing import Optional


class SocialDashboardError(Exception):
    """Base class for all application errors."""


class ConfigurationError(SocialDashboardError):
    """A required credential or URL is missing; fatal for the request."""


class ParameterValidationError(SocialDashboardError):
    """A required request parameter is missing or malformed."""


class MissingIdentityError(ParameterValidationError):
    """The caller did not supply an authenticated user identifier."""


class UnsupportedProviderError(ParameterValidationError):
    """The requested social provider is not known."""


class UpstreamError(SocialDashboardError):
    """A provider endpoint failed or answered with a non-2xx status."""

    def __init__(
        self,
        stage: str,
        *,
        status_code: Optional[int] = None,
        body: str = "",
        message: Optional[str] = None,
    ) -> None:
        self.stage = stage
        self.status_code = status_code
        self.body = body
        super().__init__(
            message or f"{stage} request failed with status {status_code}"
        )


class PersistenceError(SocialDashboardError):
    """A document store read or write failed."""


class StorageUnavailableError(PersistenceError):
    """The document store could not be initialized."""


class AccountNotConnectedError(PersistenceError):
    """The user document carries no record for the requested provider."""


class TokenDecryptionError(PersistenceError):
    """A stored token cannot be decrypted with the configured secret."""


class AuthorizationBoundaryError(SocialDashboardError):
    """The callback state is not bound to the identity that started the flow."""


__all__ = [
    "AccountNotConnectedError",
    "AuthorizationBoundaryError",
    "ConfigurationError",
    "MissingIdentityError",
    "ParameterValidationError",
    "PersistenceError",
    "SocialDashboardError",
    "StorageUnavailableError",
    "TokenDecryptionError",
    "UnsupportedProviderError",
    "UpstreamError",
]
