"""
Twitter/X OAuth 2.0 (Authorization Code with PKCE) and tweet publishing.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from app.clients.social_provider import (
    STAGE_MEDIA,
    STAGE_POST,
    STAGE_PROFILE,
    SocialProvider,
)
from app.core.errors import UpstreamError
from app.models.oauth import ProviderProfile
from app.models.social import ConnectedAccountRecord, MediaAttachment
from app.utils.http import json_body, send_checked

logger = logging.getLogger(__name__)


class TwitterProvider(SocialProvider):
    """Build Twitter authorization URLs, exchange codes and post tweets."""

    name = "twitter"
    display_name = "Twitter"
    authorize_url = "https://twitter.com/i/oauth2/authorize"
    token_url = "https://api.twitter.com/2/oauth2/token"
    scopes = ("tweet.read", "tweet.write", "users.read", "offline.access", "media.write")
    uses_pkce = True
    basic_auth_token_exchange = True

    USER_INFO_URL = "https://api.twitter.com/2/users/me"
    TWEETS_URL = "https://api.twitter.com/2/tweets"
    MEDIA_UPLOAD_URL = "https://api.x.com/2/media/upload"

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        async with self._client() as client:
            response = await send_checked(
                client,
                "GET",
                self.USER_INFO_URL,
                stage=STAGE_PROFILE,
                params={"user.fields": "username,profile_image_url"},
                headers=self._bearer(access_token),
            )
        payload = json_body(response, stage=STAGE_PROFILE)
        data = payload.get("data") or {}
        username = data.get("username")
        logger.info(
            "Twitter user info fetched: has_username=%s fields=%s",
            bool(username),
            sorted(payload),
        )
        if not username:
            raise UpstreamError(
                STAGE_PROFILE,
                status_code=response.status_code,
                body=response.text,
                message="Twitter profile response did not include a username",
            )
        return ProviderProfile(
            username=username,
            provider_user_id=data.get("id"),
            profile_image=data.get("profile_image_url"),
            raw=payload,
        )

    async def create_post(
        self,
        account: ConnectedAccountRecord,
        text: str,
        media: Optional[MediaAttachment] = None,
    ) -> str:
        self._require_media_bytes(media)
        body: Dict[str, Any] = {"text": text}
        async with self._client() as client:
            if media is not None:
                media_id = await self._upload_media(client, account.access_token, media)
                body["media"] = {"media_ids": [media_id]}

            response = await send_checked(
                client,
                "POST",
                self.TWEETS_URL,
                stage=STAGE_POST,
                json=body,
                headers=self._bearer(account.access_token),
            )
        payload = json_body(response, stage=STAGE_POST)
        data = payload.get("data") or {}
        tweet_id = data.get("id") or payload.get("id_str") or payload.get("id")
        return str(tweet_id) if tweet_id else "unknown"

    async def _upload_media(
        self, client: httpx.AsyncClient, access_token: str, media: MediaAttachment
    ) -> str:
        category = "tweet_video" if media.media_type == "video" else "tweet_image"
        response = await send_checked(
            client,
            "POST",
            self.MEDIA_UPLOAD_URL,
            stage=STAGE_MEDIA,
            data={"media_category": category},
            files={"media": (media.filename, media.content, media.content_type)},
            headers=self._bearer(access_token),
        )
        payload = json_body(response, stage=STAGE_MEDIA)
        media_id = (payload.get("data") or {}).get("id") or payload.get("media_id_string")
        if not media_id:
            raise UpstreamError(
                STAGE_MEDIA,
                status_code=response.status_code,
                body=response.text,
                message="Failed to upload media to Twitter",
            )
        return str(media_id)


__all__ = ["TwitterProvider"]
