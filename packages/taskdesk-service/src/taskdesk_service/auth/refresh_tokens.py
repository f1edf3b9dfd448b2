"""Refresh token lifecycle: issue, look up, verify, revoke, sweep.

Only a digest of each refresh secret is stored. The raw value leaves this
module exactly once, in the ``IssuedRefreshToken`` returned by ``create``.
"""

from __future__ import annotations

import base64
import hashlib
import re
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.db.models import RefreshTokenModel
from taskdesk_service.db.repositories.accounts import AccountsRepo
from taskdesk_service.db.repositories.refresh_tokens import RefreshTokensRepo
from taskdesk_service.errors import InvalidRefreshTokenError
from taskdesk_service.settings import settings

logger = structlog.get_logger(__name__)


def _now_utc() -> datetime:
    return datetime.now(UTC)


_JCA_SHA2 = re.compile(r"^sha-(\d+)$")


def _normalise_algorithm(name: str) -> str:
    # "SHA-256" -> "sha256", "SHA3-256" -> "sha3_256"; hashlib names pass through.
    name = _JCA_SHA2.sub(r"sha\1", name.strip().lower())
    return name.replace("-", "_")


def hash_token(raw_token: str, algorithm: str = "sha256") -> str:
    """Base64 digest of the raw secret; the only form that is ever persisted."""
    digest = hashlib.new(_normalise_algorithm(algorithm), raw_token.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def generate_token(length: int) -> str:
    """URL-safe, unpadded base64 of ``length`` random bytes."""
    return base64.urlsafe_b64encode(secrets.token_bytes(length)).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class IssuedRefreshToken:
    raw_token: str
    record: RefreshTokenModel


class RefreshTokenManager:
    def __init__(
        self,
        session: AsyncSession,
        ttl: timedelta | None = None,
        token_length: int | None = None,
        hash_algorithm: str | None = None,
    ) -> None:
        self._session = session
        self._tokens = RefreshTokensRepo(session)
        self._accounts = AccountsRepo(session)
        self._ttl = ttl or timedelta(days=settings.refresh_token_expire_days)
        self._length = token_length or settings.refresh_token_length
        self._algorithm = hash_algorithm or settings.refresh_token_hash_algorithm
        # Fail at construction rather than on first use.
        hashlib.new(_normalise_algorithm(self._algorithm))

    async def create(self, account_id: UUID) -> IssuedRefreshToken:
        """Revoke the account's active tokens and issue a fresh one.

        Flushes but does not commit: the caller's commit makes the revocation
        and the insert visible together. The account row lock keeps two
        concurrent issuances for the same account from both surviving.
        """
        await self._accounts.lock_row(account_id)
        revoked = await self._tokens.revoke_all_for_account(account_id)

        raw_token = generate_token(self._length)
        record = await self._tokens.add(
            account_id=account_id,
            token_hash=hash_token(raw_token, self._algorithm),
            expires_at=_now_utc() + self._ttl,
        )
        logger.info(
            "refresh_token_issued",
            account_id=str(account_id),
            refresh_id=str(record.id),
            revoked_prior=revoked,
            expires_at=record.expires_at.isoformat(),
        )
        return IssuedRefreshToken(raw_token=raw_token, record=record)

    async def find_by_raw_token(self, raw_token: str) -> RefreshTokenModel | None:
        return await self._tokens.get_by_hash(hash_token(raw_token, self._algorithm))

    async def verify_not_expired_or_revoked(self, token: RefreshTokenModel) -> RefreshTokenModel:
        """Return the token if usable; otherwise delete it and raise."""
        if token.revoked or token.is_expired():
            logger.warning(
                "refresh_token_rejected",
                account_id=str(token.account_id),
                refresh_id=str(token.id),
                revoked=bool(token.revoked),
            )
            await self._tokens.delete(token)
            await self._session.commit()
            raise InvalidRefreshTokenError(
                "Refresh token is expired or revoked. Please login again."
            )
        return token

    async def redeem(self, token: RefreshTokenModel) -> None:
        """Consume a verified token so it cannot be presented again.

        Does not commit. Raises if another session already redeemed or
        revoked the token after it was read here.
        """
        if not await self._tokens.claim(token.id):
            logger.warning(
                "refresh_token_replayed",
                account_id=str(token.account_id),
                refresh_id=str(token.id),
            )
            await self._session.rollback()
            raise InvalidRefreshTokenError(
                "Refresh token is expired or revoked. Please login again."
            )

    async def revoke(self, token: RefreshTokenModel) -> None:
        await self._tokens.mark_revoked(token)
        logger.info(
            "refresh_token_revoked", account_id=str(token.account_id), refresh_id=str(token.id)
        )

    async def revoke_all_for_account(self, account_id: UUID) -> int:
        count = await self._tokens.revoke_all_for_account(account_id)
        logger.info("refresh_tokens_revoked_for_account", account_id=str(account_id), count=count)
        return count

    async def delete_expired(self, now: datetime | None = None) -> int:
        """Delete every token past expiry. Does not commit."""
        return await self._tokens.delete_expired(now or _now_utc())
