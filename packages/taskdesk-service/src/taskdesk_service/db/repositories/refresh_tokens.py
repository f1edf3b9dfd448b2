"""Repository for hashed refresh tokens."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.db.models import RefreshTokenModel


class RefreshTokensRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, account_id: UUID, token_hash: str, expires_at: datetime) -> RefreshTokenModel:
        token = RefreshTokenModel(
            account_id=account_id,
            token_hash=token_hash,
            expires_at=expires_at,
            revoked=False,
        )
        self._session.add(token)
        await self._session.flush()
        return token

    async def get_by_hash(self, token_hash: str) -> RefreshTokenModel | None:
        result = await self._session.execute(
            select(RefreshTokenModel).where(RefreshTokenModel.token_hash == token_hash)
        )
        return result.scalars().first()

    async def list_for_account(self, account_id: UUID) -> list[RefreshTokenModel]:
        result = await self._session.execute(
            select(RefreshTokenModel)
            .where(RefreshTokenModel.account_id == account_id)
            .order_by(RefreshTokenModel.created_at)
        )
        return list(result.scalars().all())

    async def revoke_all_for_account(self, account_id: UUID) -> int:
        result = await self._session.execute(
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.account_id == account_id,
                RefreshTokenModel.revoked.is_(False),
            )
            .values(revoked=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount or 0

    async def claim(self, token_id: UUID) -> bool:
        """Flip one live token to revoked. False if it was already revoked.

        The ``revoked`` predicate is evaluated by the database against the
        committed row, so of two sessions claiming the same token only one
        sees a matched row.
        """
        result = await self._session.execute(
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.id == token_id,
                RefreshTokenModel.revoked.is_(False),
            )
            .values(revoked=True)
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount == 1

    async def mark_revoked(self, token: RefreshTokenModel) -> None:
        token.revoked = True
        await self._session.flush()

    async def delete(self, token: RefreshTokenModel) -> None:
        await self._session.delete(token)
        await self._session.flush()

    async def delete_expired(self, now: datetime) -> int:
        result = await self._session.execute(
            delete(RefreshTokenModel).where(RefreshTokenModel.expires_at <= now)
        )
        return result.rowcount or 0
