"""FastAPI dependency injection for database sessions and repositories."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.db.engine import get_session_factory
from taskdesk_service.db.repositories.accounts import AccountsRepo
from taskdesk_service.db.repositories.tasks import TasksRepo


async def get_session() -> AsyncIterator[AsyncSession]:
    """Yield an async DB session, auto-closing on exit."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_session)]


def get_accounts_repo(session: SessionDep) -> AccountsRepo:
    return AccountsRepo(session)


def get_tasks_repo(session: SessionDep) -> TasksRepo:
    return TasksRepo(session)


AccountsRepoDep = Annotated[AccountsRepo, Depends(get_accounts_repo)]
TasksRepoDep = Annotated[TasksRepo, Depends(get_tasks_repo)]
