"""JWT token creation and verification (RS256)."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any
from uuid import UUID

import jwt

from taskdesk_service.auth.keys import SigningKeys, get_signing_keys
from taskdesk_service.settings import settings

ALGORITHM = "RS256"
PROFILE_ID_CLAIM = "profile_id"
EMAIL_CLAIM = "email"
AUTHORITIES_CLAIM = "authorities"

_REGISTERED_CLAIMS = frozenset({"iss", "iat", "exp", "sub"})


class TokenError(Exception):
    """Base class for access token verification failures."""


class InvalidSignatureError(TokenError):
    pass


class TokenExpiredError(TokenError):
    pass


class MalformedTokenError(TokenError):
    pass


def _now_utc() -> datetime:
    return datetime.now(UTC)


class TokenCodec:
    """Signs access tokens with the private key and verifies them with the public key."""

    def __init__(self, keys: SigningKeys, issuer: str, ttl: timedelta) -> None:
        self._keys = keys
        self._issuer = issuer
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def issue(
        self,
        subject: str,
        claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> str:
        """Create a signed JWT. Registered claims in ``claims`` are ignored."""
        now = _now_utc()
        payload: dict[str, Any] = {
            key: value for key, value in (claims or {}).items() if key not in _REGISTERED_CLAIMS
        }
        payload.update(
            {
                "iss": self._issuer,
                "iat": now,
                "exp": now + (expires_delta if expires_delta is not None else self._ttl),
                "sub": subject,
            }
        )
        return jwt.encode(payload, self._keys.private_key, algorithm=ALGORITHM)

    def verify(self, token: str) -> dict[str, Any]:
        """Check signature, expiry and issuer; return the decoded claim set."""
        try:
            return jwt.decode(
                token,
                self._keys.public_key,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "iat", "sub", "iss"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Access token has expired") from exc
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignatureError("Access token signature is invalid") from exc
        except jwt.PyJWTError as exc:
            raise MalformedTokenError(f"Access token is malformed: {exc}") from exc

    def issue_access_token(
        self,
        account_id: UUID,
        profile_id: UUID,
        email: str,
        authorities: Iterable[str],
        expires_delta: timedelta | None = None,
    ) -> str:
        return self.issue(
            str(account_id),
            {
                PROFILE_ID_CLAIM: str(profile_id),
                EMAIL_CLAIM: email,
                AUTHORITIES_CLAIM: list(authorities),
            },
            expires_delta=expires_delta,
        )


@lru_cache
def get_token_codec() -> TokenCodec:
    return TokenCodec(
        keys=get_signing_keys(),
        issuer=settings.jwt_issuer,
        ttl=timedelta(minutes=settings.access_token_expire_minutes),
    )
