"""
FastAPI dependency utilities for configuration and caller identity.
"""

from typing import Optional

from fastapi import Header

from app.core.config import AppSettings, get_settings

USER_ID_HEADER = "x-user-id"


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return get_settings()


def get_user_id(
    x_user_id: Optional[str] = Header(
        default=None,
        alias=USER_ID_HEADER,
        description="Opaque identifier of the authenticated dashboard user.",
    ),
) -> Optional[str]:
    """Return the caller identity supplied by the session layer, if any."""
    if x_user_id is None:
        return None
    return x_user_id.strip() or None

__all__ = ["USER_ID_HEADER", "get_app_settings", "get_user_id"]
