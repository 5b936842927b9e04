"""Expose dependency helpers for FastAPI routers."""

from .config import USER_ID_HEADER, get_app_settings, get_user_id
from .clients import (
    get_account_service,
    get_document_store,
    get_optional_document_store,
    get_posting_service,
    get_provider_registry,
    get_social_auth_service,
    get_token_cipher_service,
)

__all__ = [
    "USER_ID_HEADER",
    "get_account_service",
    "get_app_settings",
    "get_document_store",
    "get_optional_document_store",
    "get_posting_service",
    "get_provider_registry",
    "get_social_auth_service",
    "get_token_cipher_service",
    "get_user_id",
]
