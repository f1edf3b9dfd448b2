"""Task endpoints. Every query is scoped to the caller's account."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Response

from taskdesk_service.auth.deps import require_authority
from taskdesk_service.auth.principal import Principal
from taskdesk_service.db.deps import TasksRepoDep
from taskdesk_service.db.models import TaskStatus
from taskdesk_service.db.seed import TASK_READ, TASK_WRITE
from taskdesk_service.rest.schemas import (
    CreateTaskRequest,
    TaskPageResponse,
    TaskResponse,
    TaskSummaryResponse,
    UpdateTaskRequest,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    body: CreateTaskRequest,
    repo: TasksRepoDep,
    principal: Principal = require_authority(TASK_WRITE),
) -> TaskResponse:
    task = await repo.create(
        owner_id=principal.account_id,
        title=body.title,
        description=body.description,
        priority=body.priority,
        due_date=body.due_date,
    )
    return TaskResponse.from_model(task)


@router.get("/me", response_model=TaskPageResponse)
async def list_my_tasks(
    repo: TasksRepoDep,
    principal: Principal = require_authority(TASK_READ),
    status: TaskStatus | None = None,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=20, ge=1, le=100),
) -> TaskPageResponse:
    """List the caller's tasks, newest first, optionally filtered by status."""
    items, total = await repo.list_by_owner(
        principal.account_id, status=status, page=page, size=size
    )
    return TaskPageResponse(
        items=[TaskSummaryResponse.from_model(t) for t in items],
        total=total,
        page=page,
        size=size,
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    repo: TasksRepoDep,
    principal: Principal = require_authority(TASK_READ),
) -> TaskResponse:
    task = await repo.get_for_owner(task_id, principal.account_id)
    return TaskResponse.from_model(task)


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    body: UpdateTaskRequest,
    repo: TasksRepoDep,
    principal: Principal = require_authority(TASK_WRITE),
) -> TaskResponse:
    task = await repo.update(task_id, principal.account_id, **body.model_dump(exclude_none=True))
    return TaskResponse.from_model(task)


@router.delete("/{task_id}", status_code=204, response_class=Response)
async def delete_task(
    task_id: UUID,
    repo: TasksRepoDep,
    principal: Principal = require_authority(TASK_WRITE),
) -> Response:
    await repo.delete(task_id, principal.account_id)
    return Response(status_code=204)
