"""
Factory functions to provide shared clients and services as FastAPI dependencies.

The document store is constructed explicitly on first use and cached for the
process; construction failures surface as ``StorageUnavailableError`` and are
retried on the next request.
"""

import logging
from functools import lru_cache
from typing import Annotated, Dict, Optional

from fastapi import Depends

from app.clients import PROVIDER_CLASSES, DocumentStore, SocialProvider, open_document_store
from app.core.config import AppSettings, get_settings
from app.core.errors import StorageUnavailableError
from app.dependencies.config import get_app_settings
from app.services import AccountService, PostingService, SocialAuthService, TokenCipherService

logger = logging.getLogger(__name__)


@lru_cache()
def get_document_store() -> DocumentStore:
    """Open the configured document store once per process."""
    return open_document_store(get_settings().storage)


def get_optional_document_store() -> Optional[DocumentStore]:
    """Document store, or ``None`` when the backend cannot be initialized."""
    try:
        return get_document_store()
    except StorageUnavailableError:
        logger.error("Document store unavailable for this request")
        return None


@lru_cache()
def get_token_cipher_service() -> Optional[TokenCipherService]:
    """Provide token encryption when a secret is configured."""
    secret = get_settings().security.token_encryption_secret
    if not secret:
        return None
    return TokenCipherService(secret=secret)


@lru_cache()
def get_provider_registry() -> Dict[str, SocialProvider]:
    """Construct one client per supported social provider."""
    settings = get_settings()
    return {
        name: provider_cls(
            settings.provider_settings(name),
            base_url=settings.base_url,
            timeout=settings.http_timeout_seconds,
        )
        for name, provider_cls in PROVIDER_CLASSES.items()
    }


def get_account_service(
    store: Annotated[Optional[DocumentStore], Depends(get_optional_document_store)],
    token_cipher: Annotated[
        Optional[TokenCipherService], Depends(get_token_cipher_service)
    ],
) -> Optional[AccountService]:
    """Provide the account persistence service when storage is available."""
    if store is None:
        return None
    return AccountService(store, token_cipher=token_cipher)


def get_social_auth_service(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    providers: Annotated[Dict[str, SocialProvider], Depends(get_provider_registry)],
    accounts: Annotated[Optional[AccountService], Depends(get_account_service)],
    store: Annotated[Optional[DocumentStore], Depends(get_optional_document_store)],
) -> SocialAuthService:
    """Build the OAuth flow service."""
    return SocialAuthService(
        settings=settings, providers=providers, accounts=accounts, store=store
    )


def get_posting_service(
    providers: Annotated[Dict[str, SocialProvider], Depends(get_provider_registry)],
    accounts: Annotated[Optional[AccountService], Depends(get_account_service)],
) -> Optional[PostingService]:
    """Build the posting service when storage is available."""
    if accounts is None:
        return None
    return PostingService(providers=providers, accounts=accounts)


__all__ = [
    "get_account_service",
    "get_document_store",
    "get_optional_document_store",
    "get_posting_service",
    "get_provider_registry",
    "get_social_auth_service",
    "get_token_cipher_service",
]
