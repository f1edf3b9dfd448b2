"""Refresh token cookie transport."""

from __future__ import annotations

from fastapi import Response

from taskdesk_service.settings import settings


def set_refresh_cookie(response: Response, raw_token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=raw_token,
        max_age=settings.refresh_cookie_max_age,
        path="/",
        secure=settings.refresh_cookie_secure,
        httponly=settings.refresh_cookie_http_only,
        samesite=settings.refresh_cookie_same_site,
    )


def clear_refresh_cookie(response: Response) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value="",
        max_age=0,
        path="/",
        secure=settings.refresh_cookie_secure,
        httponly=settings.refresh_cookie_http_only,
        samesite=settings.refresh_cookie_same_site,
    )
