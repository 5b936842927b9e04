"""
Response models for the dashboard endpoints.

Tokens never leave the server: summaries expose only display fields.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.social import ConnectedAccountRecord, PostRecord


class AccountSummary(BaseModel):
    """Connection state of one provider as shown on the dashboard."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connected: bool = False
    username: Optional[str] = None
    connected_at: Optional[str] = None
    profile_image: Optional[str] = None
    posts: List[PostRecord] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: Optional[ConnectedAccountRecord]) -> "AccountSummary":
        if record is None:
            return cls()
        return cls(
            connected=True,
            username=record.username,
            connected_at=record.connected_at,
            profile_image=record.profile_image,
            posts=record.posts,
        )


class AccountsResponse(BaseModel):
    """Connection state for every supported provider."""

    accounts: Dict[str, AccountSummary]


class PostResponse(BaseModel):
    """Result of publishing a post."""

    id: str = Field(..., description="Identifier assigned by the provider.")
    post: PostRecord


__all__ = ["AccountSummary", "AccountsResponse", "PostResponse"]
