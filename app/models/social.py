"""
Persisted document shapes for connected accounts and their post history.

Stored documents use camelCase keys; the models expose snake_case attributes
and serialize back with ``by_alias=True``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

ProviderName = Literal["twitter", "linkedin", "instagram"]
MediaType = Literal["image", "video"]

USERS_COLLECTION = "users"
OAUTH_SESSIONS_COLLECTION = "oauth_sessions"

# provider -> (account field on the user document, history field on the account)
PROVIDER_DOCUMENT_FIELDS: Dict[str, tuple[str, str]] = {
    "twitter": ("twitterAccount", "tweets"),
    "linkedin": ("linkedinAccount", "posts"),
    "instagram": ("instagramAccount", "posts"),
}


def utc_now_iso() -> str:
    """ISO-8601 timestamp in UTC with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


class _DocumentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PostRecord(_DocumentModel):
    """A single published post, stored newest-first in the account history."""

    content: str
    created_at: str = Field(default_factory=utc_now_iso)
    status: Literal["posted"] = "posted"
    provider_post_id: str
    has_media: bool = False
    media_type: Optional[MediaType] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_post_ids(cls, data: Any) -> Any:
        # Older history entries carry ``tweetId`` / ``postId``, or no id at all.
        if isinstance(data, dict) and "providerPostId" not in data and "provider_post_id" not in data:
            legacy_id = data.get("tweetId") or data.get("postId")
            data = {
                **data,
                "providerPostId": str(legacy_id) if legacy_id is not None else "unknown",
            }
        return data

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ConnectedAccountRecord(_DocumentModel):
    """Per-provider account record nested under the user document."""

    username: str
    access_token: str
    refresh_token: Optional[str] = None
    connected_at: str = Field(default_factory=utc_now_iso)
    profile_image: Optional[str] = None
    provider_user_id: Optional[str] = None
    posts: List[PostRecord] = Field(default_factory=list)

    @property
    def history_is_explicit(self) -> bool:
        """True when the caller set ``posts`` rather than relying on the default."""
        return "posts" in self.model_fields_set

    @classmethod
    def from_document(
        cls, data: Dict[str, Any], history_field: str
    ) -> "ConnectedAccountRecord":
        payload = {key: value for key, value in data.items() if key != history_field}
        payload["posts"] = list(data.get(history_field) or [])
        return cls.model_validate(payload)


class MediaAttachment(BaseModel):
    """Media submitted alongside a post."""

    media_type: MediaType = "image"
    filename: str = "upload"
    content_type: str = "application/octet-stream"
    content: bytes = Field(b"", repr=False)
    url: Optional[str] = Field(
        None, description="Publicly reachable copy of the media, when one exists."
    )


def account_fields(provider: str) -> tuple[str, str]:
    """Return ``(account_field, history_field)`` for ``provider``."""
    try:
        return PROVIDER_DOCUMENT_FIELDS[provider]
    except KeyError as exc:
        raise ValueError(f"Unsupported provider: {provider}") from exc


__all__ = [
    "ConnectedAccountRecord",
    "MediaAttachment",
    "MediaType",
    "OAUTH_SESSIONS_COLLECTION",
    "PROVIDER_DOCUMENT_FIELDS",
    "PostRecord",
    "ProviderName",
    "USERS_COLLECTION",
    "account_fields",
    "utc_now_iso",
]
