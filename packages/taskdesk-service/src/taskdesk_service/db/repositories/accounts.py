"""Repository for accounts: credentials, status flags and role membership."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.db.models import (
    AccountModel,
    AuthorityModel,
    RoleModel,
    account_roles,
    role_authorities,
)

ROLE_PREFIX = "ROLE_"


class AccountsRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, account_id: UUID) -> AccountModel | None:
        return await self._session.get(AccountModel, account_id)

    async def get_by_email(self, email: str) -> AccountModel | None:
        result = await self._session.execute(
            select(AccountModel).where(AccountModel.email == email)
        )
        return result.scalars().first()

    async def email_exists(self, email: str) -> bool:
        result = await self._session.execute(
            select(AccountModel.id).where(AccountModel.email == email).limit(1)
        )
        return result.first() is not None

    async def create(
        self, email: str, password_hash: str, role_names: tuple[str, ...] | list[str]
    ) -> AccountModel:
        """Create an account and attach the named roles. Does not commit."""
        result = await self._session.execute(
            select(RoleModel).where(RoleModel.name.in_(role_names))
        )
        roles = list(result.scalars().all())
        missing = set(role_names) - {role.name for role in roles}
        if missing:
            raise RuntimeError(f"Reference roles not found: {sorted(missing)}")

        account = AccountModel(email=email, password_hash=password_hash, enabled=True, locked=False)
        self._session.add(account)
        await self._session.flush()
        for role in roles:
            await self._session.execute(
                account_roles.insert().values(account_id=account.id, role_id=role.id)
            )
        return account

    async def get_status(self, account_id: UUID) -> tuple[bool, bool] | None:
        """Return ``(enabled, locked)`` straight from the row, or None if it's gone."""
        result = await self._session.execute(
            select(AccountModel.enabled, AccountModel.locked).where(AccountModel.id == account_id)
        )
        row = result.first()
        if row is None:
            return None
        return bool(row.enabled), bool(row.locked)

    async def lock_row(self, account_id: UUID) -> None:
        """Take a row lock on the account for the rest of the transaction.

        Serialises refresh-token issuance for one account. SQLite ignores
        FOR UPDATE; its writer lock already serialises the transaction.
        """
        await self._session.execute(
            select(AccountModel.id).where(AccountModel.id == account_id).with_for_update()
        )

    async def role_names_for(self, account_id: UUID) -> list[str]:
        result = await self._session.execute(
            select(RoleModel.name)
            .join(account_roles, account_roles.c.role_id == RoleModel.id)
            .where(account_roles.c.account_id == account_id)
            .order_by(RoleModel.name)
        )
        return list(result.scalars().all())

    async def authorities_for(self, account_id: UUID) -> list[str]:
        """Flattened authority strings: plain authorities, then ``ROLE_<name>`` entries."""
        result = await self._session.execute(
            select(AuthorityModel.name)
            .join(role_authorities, role_authorities.c.authority_id == AuthorityModel.id)
            .join(account_roles, account_roles.c.role_id == role_authorities.c.role_id)
            .where(account_roles.c.account_id == account_id)
            .distinct()
            .order_by(AuthorityModel.name)
        )
        authorities = list(result.scalars().all())
        roles = await self.role_names_for(account_id)
        return authorities + [f"{ROLE_PREFIX}{name}" for name in roles]

    async def set_locked(self, account_id: UUID, locked: bool) -> None:
        await self._session.execute(
            update(AccountModel).where(AccountModel.id == account_id).values(locked=locked)
        )
        await self._session.commit()

    async def set_enabled(self, account_id: UUID, enabled: bool) -> None:
        await self._session.execute(
            update(AccountModel).where(AccountModel.id == account_id).values(enabled=enabled)
        )
        await self._session.commit()
