"""
LinkedIn OAuth 2.0 (OpenID Connect sign-in) and member share publishing.
"""

from __future__ import annotations

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

_UPLOAD_MECHANISM = "com.linkedin.digitalmedia.uploading.MediaUploadHttpRequest"


class LinkedInProvider(SocialProvider):
    """LinkedIn sign-in and UGC post creation."""

    name = "linkedin"
    display_name = "LinkedIn"
    authorize_url = "https://www.linkedin.com/oauth/v2/authorization"
    token_url = "https://www.linkedin.com/oauth/v2/accessToken"
    scopes = ("openid", "profile", "email", "w_member_social")

    USER_INFO_URL = "https://api.linkedin.com/v2/userinfo"
    REGISTER_UPLOAD_URL = "https://api.linkedin.com/v2/assets?action=registerUpload"
    UGC_POSTS_URL = "https://api.linkedin.com/v2/ugcPosts"

    async def fetch_profile(self, access_token: str) -> ProviderProfile:
        async with self._client() as client:
            response = await send_checked(
                client,
                "GET",
                self.USER_INFO_URL,
                stage=STAGE_PROFILE,
                headers=self._bearer(access_token),
            )
        payload = json_body(response, stage=STAGE_PROFILE)
        username = payload.get("name") or payload.get("email") or payload.get("sub")
        if not username:
            raise UpstreamError(
                STAGE_PROFILE,
                status_code=response.status_code,
                body=response.text,
                message="LinkedIn userinfo response did not identify the member",
            )
        return ProviderProfile(
            username=username,
            provider_user_id=payload.get("sub"),
            profile_image=payload.get("picture"),
            raw=payload,
        )

    async def create_post(
        self,
        account: ConnectedAccountRecord,
        text: str,
        media: Optional[MediaAttachment] = None,
    ) -> str:
        self._require_media_bytes(media)
        member_id = account.provider_user_id
        if not member_id:
            member_id = (await self.fetch_profile(account.access_token)).provider_user_id
        if not member_id:
            raise UpstreamError(
                STAGE_PROFILE, message="LinkedIn userinfo response did not include a member id"
            )
        author = f"urn:li:person:{member_id}"
        headers = {**self._bearer(account.access_token), "X-Restli-Protocol-Version": "2.0.0"}

        share: Dict[str, Any] = {
            "shareCommentary": {"text": text},
            "shareMediaCategory": "NONE",
        }
        async with self._client() as client:
            if media is not None:
                asset = await self._upload_media(client, headers, author, media)
                share["shareMediaCategory"] = media.media_type.upper()
                share["media"] = [{"status": "READY", "media": asset}]

            response = await send_checked(
                client,
                "POST",
                self.UGC_POSTS_URL,
                stage=STAGE_POST,
                headers=headers,
                json={
                    "author": author,
                    "lifecycleState": "PUBLISHED",
                    "specificContent": {"com.linkedin.ugc.ShareContent": share},
                    "visibility": {
                        "com.linkedin.ugc.MemberNetworkVisibility": "PUBLIC"
                    },
                },
            )
        post_id = response.headers.get("x-restli-id")
        if not post_id and response.content:
            post_id = json_body(response, stage=STAGE_POST).get("id")
        return str(post_id) if post_id else "unknown"

    async def _upload_media(
        self,
        client: httpx.AsyncClient,
        headers: Dict[str, str],
        author: str,
        media: MediaAttachment,
    ) -> str:
        recipe = f"urn:li:digitalmediaRecipe:feedshare-{media.media_type}"
        response = await send_checked(
            client,
            "POST",
            self.REGISTER_UPLOAD_URL,
            stage=STAGE_MEDIA,
            headers=headers,
            json={
                "registerUploadRequest": {
                    "recipes": [recipe],
                    "owner": author,
                    "serviceRelationships": [
                        {
                            "relationshipType": "OWNER",
                            "identifier": "urn:li:userGeneratedContent",
                        }
                    ],
                }
            },
        )
        value = json_body(response, stage=STAGE_MEDIA).get("value") or {}
        upload_url = (
            (value.get("uploadMechanism") or {}).get(_UPLOAD_MECHANISM) or {}
        ).get("uploadUrl")
        asset = value.get("asset")
        if not upload_url or not asset:
            raise UpstreamError(
                STAGE_MEDIA,
                status_code=response.status_code,
                body=response.text,
                message="Failed to upload media: LinkedIn returned no upload target",
            )

        await send_checked(
            client,
            "PUT",
            upload_url,
            stage=STAGE_MEDIA,
            content=media.content,
            headers={
                "Authorization": headers["Authorization"],
                "Content-Type": media.content_type,
            },
        )
        return asset


__all__ = ["LinkedInProvider"]
