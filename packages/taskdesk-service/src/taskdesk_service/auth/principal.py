"""The request-scoped authenticated principal."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from taskdesk_service.auth.jwt import (
    AUTHORITIES_CLAIM,
    EMAIL_CLAIM,
    PROFILE_ID_CLAIM,
    MalformedTokenError,
)
from taskdesk_service.db.models import AccountModel, UserProfileModel


@dataclass(frozen=True)
class Principal:
    """One shape for both construction paths: a credential row or verified claims."""

    account_id: UUID
    profile_id: UUID
    email: str
    authorities: frozenset[str]
    enabled: bool = True
    locked: bool = False

    @classmethod
    def from_credential_record(
        cls,
        account: AccountModel,
        profile: UserProfileModel,
        authorities: Iterable[str],
    ) -> Principal:
        return cls(
            account_id=account.id,
            profile_id=profile.id,
            email=account.email,
            authorities=frozenset(authorities),
            enabled=bool(account.enabled),
            locked=bool(account.locked),
        )

    @classmethod
    def from_verified_claims(
        cls, claims: Mapping[str, Any], enabled: bool, locked: bool
    ) -> Principal:
        """Build from a verified token plus the live status flags.

        Authorities are taken from the token as issued; they are not re-read
        from the database.
        """
        try:
            account_id = UUID(claims["sub"])
            profile_id = UUID(claims[PROFILE_ID_CLAIM])
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedTokenError("Token is missing identity claims") from exc

        authorities = claims.get(AUTHORITIES_CLAIM) or []
        if not isinstance(authorities, list):
            raise MalformedTokenError("Authorities claim must be a list")

        return cls(
            account_id=account_id,
            profile_id=profile_id,
            email=str(claims.get(EMAIL_CLAIM, "")),
            authorities=frozenset(str(a) for a in authorities),
            enabled=enabled,
            locked=locked,
        )

    @property
    def is_active(self) -> bool:
        return self.enabled and not self.locked

    def has_authority(self, *names: str) -> bool:
        return any(name in self.authorities for name in names)
