"""FastAPI auth dependencies: the per-request authorization gate.

Every protected request is re-authorized from its bearer token. The token's
signature and expiry are checked with the public key, then the account's
``enabled``/``locked`` flags are re-read so a lock or disable takes effect
immediately.

Authorities are NOT re-read: the principal carries the authority list embedded
in the token at issuance. A role change therefore only takes effect once the
holder's access token expires (at most ``access_token_expire_minutes``). That
staleness window is accepted to avoid a roles/authorities join per request.
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

import structlog
from fastapi import Depends, Request

from taskdesk_service.auth.jwt import MalformedTokenError, TokenCodec, TokenError, get_token_codec
from taskdesk_service.auth.principal import Principal
from taskdesk_service.auth.service import AuthService
from taskdesk_service.db.deps import AccountsRepoDep, SessionDep
from taskdesk_service.db.repositories.accounts import AccountsRepo
from taskdesk_service.errors import AccessDeniedError, PrincipalNotFoundError, UnauthenticatedError

logger = structlog.get_logger(__name__)

BEARER_PREFIX = "Bearer "


def get_codec() -> TokenCodec:
    return get_token_codec()


CodecDep = Annotated[TokenCodec, Depends(get_codec)]


def get_auth_service(session: SessionDep, codec: CodecDep) -> AuthService:
    return AuthService(session, codec)


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


async def authorize_bearer(
    authorization: str | None, codec: TokenCodec, accounts: AccountsRepo
) -> Principal:
    """Turn an ``Authorization`` header value into a live principal."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthenticatedError("Authentication required")

    token = authorization.removeprefix(BEARER_PREFIX).strip()
    if not token:
        raise UnauthenticatedError("Authentication required")

    try:
        claims = codec.verify(token)
    except TokenError as exc:
        logger.info("bearer_token_rejected", reason=type(exc).__name__)
        raise UnauthenticatedError("Invalid or expired token") from exc

    try:
        account_id = UUID(claims["sub"])
    except (KeyError, TypeError, ValueError) as exc:
        raise UnauthenticatedError("Malformed token payload") from exc

    status = await accounts.get_status(account_id)
    if status is None:
        logger.warning("principal_not_found", account_id=str(account_id))
        raise PrincipalNotFoundError()
    enabled, locked = status

    try:
        principal = Principal.from_verified_claims(claims, enabled=enabled, locked=locked)
    except MalformedTokenError as exc:
        raise UnauthenticatedError("Malformed token payload") from exc

    if not principal.is_active:
        logger.warning(
            "inactive_account_rejected",
            account_id=str(account_id),
            enabled=enabled,
            locked=locked,
        )
        raise UnauthenticatedError("Account is disabled or locked")

    return principal


async def get_current_principal(
    request: Request, accounts: AccountsRepoDep, codec: CodecDep
) -> Principal:
    """Resolve the current principal from ``Authorization: Bearer <token>``."""
    principal = await authorize_bearer(request.headers.get("Authorization"), codec, accounts)
    structlog.contextvars.bind_contextvars(account_id=str(principal.account_id))
    return principal


CurrentPrincipalDep = Annotated[Principal, Depends(get_current_principal)]


def require_authority(*authorities: str):
    """Dependency factory that enforces at least one of the given authorities."""

    async def _check(principal: CurrentPrincipalDep) -> Principal:
        if not principal.has_authority(*authorities):
            logger.warning(
                "access_denied",
                account_id=str(principal.account_id),
                required=list(authorities),
            )
            raise AccessDeniedError()
        return principal

    return Depends(_check)
