"""Pydantic request/response models for REST API."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from taskdesk_service.auth.passwords import PASSWORD_POLICY_MESSAGE, meets_password_policy
from taskdesk_service.db.models import TaskModel, TaskPriority, TaskStatus

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SignupRequest(CamelModel):
    username: str = Field(min_length=3, max_length=64)
    email: str = Field(max_length=320)
    password: str
    confirm_password: str

    @field_validator("email")
    @classmethod
    def email_format(cls, v: str) -> str:
        if not _EMAIL_RE.match(v):
            raise ValueError("Must be a well-formed email address")
        return v

    @field_validator("password")
    @classmethod
    def password_policy(cls, v: str) -> str:
        if not meets_password_policy(v):
            raise ValueError(PASSWORD_POLICY_MESSAGE)
        return v


class SigninRequest(CamelModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class AccessTokenResponse(CamelModel):
    access_token: str


class MessageResponse(CamelModel):
    message: str


class ProfileResponse(CamelModel):
    id: str
    username: str
    email: str


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class CreateTaskRequest(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title is required")
        return v


class UpdateTaskRequest(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None


class TaskResponse(CamelModel):
    id: str
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, task: TaskModel) -> TaskResponse:
        return cls(
            id=str(task.id),
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class TaskSummaryResponse(CamelModel):
    id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None

    @classmethod
    def from_model(cls, task: TaskModel) -> TaskSummaryResponse:
        return cls(
            id=str(task.id),
            title=task.title,
            status=task.status,
            priority=task.priority,
            due_date=task.due_date,
        )


class TaskPageResponse(CamelModel):
    items: list[TaskSummaryResponse]
    total: int
    page: int
    size: int
