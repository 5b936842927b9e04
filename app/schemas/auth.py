"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AuthorizationUrlResponse(BaseModel):
    """Consent URL returned when a user starts linking an account."""

    url: str = Field(..., description="Provider authorization URL to redirect the browser to.")


class ErrorResponse(BaseModel):
    """Error body returned by JSON endpoints."""

    error: str


__all__ = ["AuthorizationUrlResponse", "ErrorResponse"]
