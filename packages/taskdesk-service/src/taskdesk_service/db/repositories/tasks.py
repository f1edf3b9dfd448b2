"""Repository for tasks, always scoped to the owning account."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskdesk_service.db.models import TaskModel, TaskPriority, TaskStatus
from taskdesk_service.errors import NotFoundError

_UPDATABLE_FIELDS = ("title", "description", "status", "priority", "due_date")


class TasksRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        owner_id: UUID,
        title: str,
        description: str | None = None,
        priority: TaskPriority = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
    ) -> TaskModel:
        task = TaskModel(
            owner_id=owner_id,
            title=title,
            description=description,
            status=TaskStatus.PENDING,
            priority=priority,
            due_date=due_date,
        )
        self._session.add(task)
        await self._session.commit()
        await self._session.refresh(task)
        return task

    async def list_by_owner(
        self,
        owner_id: UUID,
        status: TaskStatus | None = None,
        page: int = 0,
        size: int = 20,
    ) -> tuple[list[TaskModel], int]:
        query = select(TaskModel).where(TaskModel.owner_id == owner_id)
        count_query = select(func.count()).select_from(TaskModel).where(TaskModel.owner_id == owner_id)
        if status:
            query = query.where(TaskModel.status == status)
            count_query = count_query.where(TaskModel.status == status)
        query = query.order_by(TaskModel.created_at.desc()).offset(page * size).limit(size)
        result = await self._session.execute(query)
        total_result = await self._session.execute(count_query)
        return list(result.scalars().all()), total_result.scalar_one()

    async def get_for_owner(self, task_id: UUID, owner_id: UUID) -> TaskModel:
        result = await self._session.execute(
            select(TaskModel).where(TaskModel.id == task_id, TaskModel.owner_id == owner_id)
        )
        task = result.scalars().first()
        if task is None:
            raise NotFoundError(f"Task '{task_id}' not found")
        return task

    async def update(self, task_id: UUID, owner_id: UUID, **fields: Any) -> TaskModel:
        """Apply the given fields, skipping any that are None."""
        task = await self.get_for_owner(task_id, owner_id)
        for key, value in fields.items():
            if key in _UPDATABLE_FIELDS and value is not None:
                setattr(task, key, value)
        await self._session.commit()
        await self._session.refresh(task)
        return task

    async def delete(self, task_id: UUID, owner_id: UUID) -> None:
        task = await self.get_for_owner(task_id, owner_id)
        await self._session.delete(task)
        await self._session.commit()
