"""
Service helpers for publishing posts through connected provider accounts.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from app.clients.social_provider import SocialProvider
from app.core.errors import (
    AccountNotConnectedError,
    MissingIdentityError,
    ParameterValidationError,
    UnsupportedProviderError,
)
from app.models.social import MediaAttachment, PostRecord
from app.services.accounts import AccountService

logger = logging.getLogger(__name__)


class PostingService:
    """Publish a post and record it at the head of the account history."""

    def __init__(
        self,
        *,
        providers: Mapping[str, SocialProvider],
        accounts: AccountService,
    ) -> None:
        self._providers = providers
        self._accounts = accounts

    async def publish(
        self,
        *,
        uid: Optional[str],
        provider_name: str,
        text: str,
        media: Optional[MediaAttachment] = None,
    ) -> PostRecord:
        if not uid:
            raise MissingIdentityError("User ID is required")
        if not text or not text.strip():
            raise ParameterValidationError("Post text is required")
        provider = self._providers.get(provider_name)
        if provider is None:
            raise UnsupportedProviderError(f"Unsupported provider: {provider_name}")

        account = self._accounts.read_account(uid, provider.name)
        if account is None:
            raise AccountNotConnectedError(
                f"No {provider.display_name} account connected for user {uid}"
            )

        logger.info(
            "Publishing %s post: user=%s has_media=%s media_type=%s",
            provider.display_name,
            uid,
            media is not None,
            media.media_type if media else None,
        )
        post_id = await provider.create_post(account, text, media)

        post = PostRecord(
            content=text,
            provider_post_id=post_id,
            has_media=media is not None,
            media_type=media.media_type if media else None,
        )
        self._accounts.prepend_post(uid, provider.name, post)
        return post


__all__ = ["PostingService"]
