"""Repository for user profiles (the display-facing companion of an account)."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.db.models import UserProfileModel


class ProfilesRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, account_id: UUID, username: str) -> UserProfileModel:
        """Create the profile for an account. Does not commit."""
        profile = UserProfileModel(account_id=account_id, username=username)
        self._session.add(profile)
        await self._session.flush()
        return profile

    async def get_by_account(self, account_id: UUID) -> UserProfileModel | None:
        result = await self._session.execute(
            select(UserProfileModel).where(UserProfileModel.account_id == account_id)
        )
        return result.scalars().first()

    async def username_exists(self, username: str) -> bool:
        result = await self._session.execute(
            select(UserProfileModel.id).where(UserProfileModel.username == username).limit(1)
        )
        return result.first() is not None
