"""
Instagram Login (business accounts) and content publishing via the Graph API.

The Graph API fetches media from a public URL; it does not accept uploads,
so posts must carry ``MediaAttachment.url``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from app.clients.social_provider import (
    STAGE_MEDIA,
    STAGE_POST,
    STAGE_PROFILE,
    SocialProvider,
)
from app.core.errors import ParameterValidationError, UpstreamError
from app.models.oauth import ProviderProfile, TokenPair
from app.models.social import ConnectedAccountRecord, MediaAttachment
from app.utils.http import json_body, send_checked

logger = logging.getLogger(__name__)


class InstagramProvider(SocialProvider):
    """Instagram business login and media container publishing."""

    name = "instagram"
    display_name = "Instagram"
    authorize_url = "https://www.instagram.com/oauth/authorize"
    token_url = "https://api.instagram.com/oauth/access_token"
    scopes = ("instagram_business_basic", "instagram_business_content_publish")
    scope_separator = ","

    GRAPH_URL = "https://graph.instagram.com"
    CONTAINER_POLL_ATTEMPTS = 10
    CONTAINER_POLL_INTERVAL_SECONDS = 3.0

    def _parse_token_payload(self, payload: Dict[str, Any]) -> TokenPair:
        # Short-lived token responses are sometimes wrapped in a "data" list.
        entries = payload.get("data")
        if isinstance(entries, list) and entries:
            payload = entries[0]
        pair = super()._parse_token_payload(payload)
        user_id = payload.get("user_id")
        if user_id is not None:
            pair.provider_user_id = str(user_id)
        return pair

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        async with self._client() as client:
            response = await send_checked(
                client,
                "GET",
                f"{self.GRAPH_URL}/me",
                stage=STAGE_PROFILE,
                params={"fields": "user_id,username,profile_picture_url"},
                headers=self._bearer(access_token),
            )
        payload = json_body(response, stage=STAGE_PROFILE)
        username = payload.get("username")
        if not username:
            raise UpstreamError(
                STAGE_PROFILE,
                status_code=response.status_code,
                body=response.text,
                message="Instagram profile response did not include a username",
            )
        user_id = payload.get("user_id") or payload.get("id")
        return ProviderProfile(
            username=username,
            provider_user_id=str(user_id) if user_id is not None else None,
            profile_image=payload.get("profile_picture_url"),
            raw=payload,
        )

    async def create_post(
        self,
        account: ConnectedAccountRecord,
        text: str,
        media: Optional[MediaAttachment] = None,
    ) -> str:
        if media is None or not media.url:
            raise ParameterValidationError(
                "Instagram posts require an image or video available at a public URL"
            )
        ig_user_id = account.provider_user_id or "me"
        headers = self._bearer(account.access_token)

        container: Dict[str, str] = {"caption": text}
        if media.media_type == "video":
            container.update({"media_type": "REELS", "video_url": media.url})
        else:
            container["image_url"] = media.url

        async with self._client() as client:
            response = await send_checked(
                client,
                "POST",
                f"{self.GRAPH_URL}/{ig_user_id}/media",
                stage=STAGE_MEDIA,
                data=container,
                headers=headers,
            )
            creation_id = json_body(response, stage=STAGE_MEDIA).get("id")
            if not creation_id:
                raise UpstreamError(
                    STAGE_MEDIA,
                    status_code=response.status_code,
                    body=response.text,
                    message="Failed to upload media: no Instagram container id",
                )
            if media.media_type == "video":
                await self._wait_for_container(client, headers, str(creation_id))

            response = await send_checked(
                client,
                "POST",
                f"{self.GRAPH_URL}/{ig_user_id}/media_publish",
                stage=STAGE_POST,
                data={"creation_id": str(creation_id)},
                headers=headers,
            )
        post_id = json_body(response, stage=STAGE_POST).get("id")
        return str(post_id) if post_id else "unknown"

    async def _wait_for_container(
        self, client: httpx.AsyncClient, headers: Dict[str, str], creation_id: str
    ) -> None:
        """Poll a video container until Instagram finishes processing it."""
        for _ in range(self.CONTAINER_POLL_ATTEMPTS):
            response = await send_checked(
                client,
                "GET",
                f"{self.GRAPH_URL}/{creation_id}",
                stage=STAGE_MEDIA,
                params={"fields": "status_code"},
                headers=headers,
            )
            status_code = json_body(response, stage=STAGE_MEDIA).get("status_code")
            if status_code == "FINISHED":
                return
            if status_code in ("ERROR", "EXPIRED"):
                raise UpstreamError(
                    STAGE_MEDIA,
                    status_code=response.status_code,
                    body=response.text,
                    message=f"Instagram media container {status_code.lower()}",
                )
            await asyncio.sleep(self.CONTAINER_POLL_INTERVAL_SECONDS)
        logger.warning("Instagram container %s still processing", creation_id)
        raise UpstreamError(STAGE_MEDIA, message="Instagram media processing timed out")


__all__ = ["InstagramProvider"]
