"""Auth endpoints: signup, signin, refresh, logout."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from taskdesk_service.auth.cookies import clear_refresh_cookie, set_refresh_cookie
from taskdesk_service.auth.deps import AuthServiceDep
from taskdesk_service.errors import InvalidRefreshTokenError
from taskdesk_service.rest.schemas import (
    AccessTokenResponse,
    MessageResponse,
    SigninRequest,
    SignupRequest,
)
from taskdesk_service.settings import settings

router = APIRouter(prefix="/auth", tags=["auth"])


def _refresh_cookie(request: Request) -> str | None:
    return request.cookies.get(settings.refresh_cookie_name)


@router.post("/signup", status_code=201, response_class=Response)
async def signup(body: SignupRequest, service: AuthServiceDep) -> Response:
    """Register a new account. The caller signs in separately."""
    await service.register(
        username=body.username,
        email=body.email,
        password=body.password,
        confirm_password=body.confirm_password,
    )
    return Response(status_code=201)


@router.post("/signin", response_model=AccessTokenResponse)
async def signin(
    body: SigninRequest, response: Response, service: AuthServiceDep
) -> AccessTokenResponse:
    """Verify credentials, return an access token and set the refresh cookie."""
    tokens = await service.authenticate_user(body.email, body.password)
    set_refresh_cookie(response, tokens.refresh_token)
    return AccessTokenResponse(access_token=tokens.access_token)


@router.post("/refresh", response_model=AccessTokenResponse)
async def refresh(
    request: Request, response: Response, service: AuthServiceDep
) -> AccessTokenResponse:
    """Exchange the refresh cookie for a new access token and rotate the cookie."""
    raw = _refresh_cookie(request)
    if not raw:
        raise InvalidRefreshTokenError("Refresh token is missing")

    tokens = await service.refresh_access_token(raw)
    set_refresh_cookie(response, tokens.refresh_token)
    return AccessTokenResponse(access_token=tokens.access_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request, response: Response, service: AuthServiceDep
) -> MessageResponse:
    await service.logout_user(_refresh_cookie(request))
    clear_refresh_cookie(response)
    return MessageResponse(message="Logged out successfully")
