"""HTTP utilities mapping transport and status failures onto ``UpstreamError``."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.errors import UpstreamError

logger = logging.getLogger(__name__)

_MAX_LOGGED_BODY = 500


async def send_checked(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    stage: str,
    **kwargs: Any,
) -> httpx.Response:
    """
    Issue a single request and raise ``UpstreamError`` unless it succeeds.

    Requests are never retried: authorization codes are single-use and post
    creation is not idempotent.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        logger.error("%s request to %s timed out", stage, url)
        raise UpstreamError(stage, message=f"{stage} request timed out") from exc
    except httpx.HTTPError as exc:
        logger.error("%s request to %s failed: %s", stage, url, exc.__class__.__name__)
        raise UpstreamError(
            stage, message=f"{stage} request failed: {exc.__class__.__name__}"
        ) from exc

    if response.is_error:
        body = response.text
        logger.error(
            "%s request failed: status=%s body=%s",
            stage,
            response.status_code,
            body[:_MAX_LOGGED_BODY],
        )
        raise UpstreamError(stage, status_code=response.status_code, body=body)
    return response


def json_body(response: httpx.Response, *, stage: str) -> dict[str, Any]:
    """Decode a JSON object body or raise ``UpstreamError``."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise UpstreamError(
            stage,
            status_code=response.status_code,
            body=response.text,
            message=f"{stage} response was not valid JSON",
        ) from exc
    if not isinstance(payload, dict):
        raise UpstreamError(
            stage,
            status_code=response.status_code,
            body=response.text,
            message=f"{stage} response was not a JSON object",
        )
    return payload


__all__ = ["json_body", "send_checked"]
