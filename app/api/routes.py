"""
FastAPI routes for the social dashboard backend.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse

from app.core.config import AppSettings
from app.core.errors import (
    AccountNotConnectedError,
    ConfigurationError,
    MissingIdentityError,
    ParameterValidationError,
    PersistenceError,
    TokenDecryptionError,
    UnsupportedProviderError,
    UpstreamError,
)
from app.dependencies import (
    get_account_service,
    get_app_settings,
    get_posting_service,
    get_social_auth_service,
    get_user_id,
)
from app.models.social import PROVIDER_DOCUMENT_FIELDS, MediaAttachment
from app.schemas import (
    AccountSummary,
    AccountsResponse,
    AuthorizationUrlResponse,
    ErrorResponse,
    PostResponse,
)
from app.services import AccountService, PostingService, SocialAuthService
from app.services.social_auth import SESSION_COOKIE, VERIFIER_COOKIE

router = APIRouter()
logger = logging.getLogger(__name__)


def _set_flow_cookie(
    response: JSONResponse, name: str, value: str, settings: AppSettings
) -> None:
    response.set_cookie(
        name,
        value,
        max_age=settings.oauth.verifier_ttl_seconds,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def _error(status: HTTPStatus, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status, content=ErrorResponse(error=message).model_dump()
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post(
    "/auth/{provider}",
    response_model=AuthorizationUrlResponse,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def start_social_oauth_flow(
    provider: str,
    auth_service: Annotated[SocialAuthService, Depends(get_social_auth_service)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    user_id: Annotated[Optional[str], Depends(get_user_id)],
) -> JSONResponse:
    """
    Kick off the OAuth flow: return the consent URL and set the PKCE verifier cookie.
    """
    try:
        display_name = auth_service.get_provider(provider).display_name
    except UnsupportedProviderError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc

    try:
        auth_request = auth_service.start_authorization(provider, user_id)
    except MissingIdentityError as exc:
        return _error(HTTPStatus.BAD_REQUEST, str(exc))
    except (ConfigurationError, PersistenceError):
        logger.exception("%s auth error", display_name)
        return _error(
            HTTPStatus.INTERNAL_SERVER_ERROR,
            f"Failed to initialize {display_name} authentication",
        )

    response = JSONResponse(
        content=AuthorizationUrlResponse(url=auth_request.url).model_dump()
    )
    if auth_request.code_verifier:
        _set_flow_cookie(response, VERIFIER_COOKIE, auth_request.code_verifier, settings)
    if auth_request.session_nonce:
        _set_flow_cookie(response, SESSION_COOKIE, auth_request.session_nonce, settings)
    return response


@router.get("/auth/{provider}/callback", status_code=HTTPStatus.FOUND)
async def handle_social_oauth_callback(
    provider: str,
    request: Request,
    auth_service: Annotated[SocialAuthService, Depends(get_social_auth_service)],
    code: Optional[str] = Query(default=None, description="Authorization code."),
    state: Optional[str] = Query(default=None, description="User id sent as OAuth state."),
) -> RedirectResponse:
    """Complete the OAuth exchange and redirect back to the dashboard settings page."""
    try:
        redirect_url = await auth_service.complete_authorization(
            provider,
            code=code,
            state=state,
            code_verifier=request.cookies.get(VERIFIER_COOKIE),
            session_nonce=request.cookies.get(SESSION_COOKIE),
        )
    except UnsupportedProviderError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc

    response = RedirectResponse(url=redirect_url, status_code=HTTPStatus.FOUND)
    response.delete_cookie(VERIFIER_COOKIE, path="/")
    response.delete_cookie(SESSION_COOKIE, path="/")
    return response


@router.get("/accounts", response_model=AccountsResponse)
async def list_connected_accounts(
    user_id: Annotated[Optional[str], Depends(get_user_id)],
    accounts: Annotated[Optional[AccountService], Depends(get_account_service)],
) -> AccountsResponse:
    """Connection state and post history of every provider for the caller."""
    if not user_id:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST, detail="User ID is required"
        )
    if accounts is None:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Account storage is unavailable.",
        )
    try:
        connected = accounts.list_accounts(user_id)
    except PersistenceError as exc:
        logger.exception("Failed to read accounts for user %s", user_id)
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Account storage is unavailable.",
        ) from exc

    return AccountsResponse(
        accounts={
            name: AccountSummary.from_record(connected.get(name))
            for name in PROVIDER_DOCUMENT_FIELDS
        }
    )


def _build_media(
    media: Optional[UploadFile],
    content: bytes,
    media_type: Optional[str],
    media_url: Optional[str],
) -> Optional[MediaAttachment]:
    if not content and not media_url:
        return None
    content_type = (media.content_type if media else None) or "application/octet-stream"
    if media_type not in ("image", "video"):
        media_type = "video" if content_type.startswith("video/") else "image"
    return MediaAttachment(
        media_type=media_type,
        filename=(media.filename if media else None) or "upload",
        content_type=content_type,
        content=content,
        url=media_url or None,
    )


@router.post("/{provider}/post", response_model=PostResponse)
async def publish_post(
    provider: str,
    posting: Annotated[Optional[PostingService], Depends(get_posting_service)],
    header_user_id: Annotated[Optional[str], Depends(get_user_id)],
    text: str = Form(default=""),
    user_id: Optional[str] = Form(default=None, alias="userId"),
    media: Optional[UploadFile] = File(default=None),
    media_type: Optional[str] = Form(default=None, alias="mediaType"),
    media_url: Optional[str] = Form(default=None, alias="mediaUrl"),
) -> PostResponse:
    """Publish through the provider API and record the post in the account history."""
    if posting is None:
        raise HTTPException(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail="Account storage is unavailable.",
        )

    content = await media.read() if media is not None else b""
    attachment = _build_media(media, content, media_type, media_url)

    try:
        post = await posting.publish(
            uid=user_id or header_user_id,
            provider_name=provider,
            text=text,
            media=attachment,
        )
    except UnsupportedProviderError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    except ParameterValidationError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc)) from exc
    except AccountNotConnectedError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc)) from exc
    except TokenDecryptionError as exc:
        logger.warning(
            "Stored %s tokens for user %s cannot be decrypted",
            provider,
            user_id or header_user_id,
        )
        raise HTTPException(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail="Stored credentials are no longer readable. Please reconnect your account in settings.",
        ) from exc
    except UpstreamError as exc:
        if exc.status_code == HTTPStatus.UNAUTHORIZED:
            raise HTTPException(
                status_code=HTTPStatus.UNAUTHORIZED,
                detail="Provider authentication failed. Please reconnect your account in settings.",
            ) from exc
        raise HTTPException(
            status_code=HTTPStatus.BAD_GATEWAY,
            detail=f"Provider rejected the {exc.stage} request (status {exc.status_code}).",
        ) from exc
    except PersistenceError as exc:
        logger.exception("Post published but history update failed for %s", provider)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Post was published but could not be saved to your history.",
        ) from exc

    return PostResponse(id=post.provider_post_id, post=post)
