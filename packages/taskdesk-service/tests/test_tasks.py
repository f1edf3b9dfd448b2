"""Task store and task endpoint tests."""

from __future__ import annotations

import uuid

import pytest

from taskdesk_service.auth.jwt import get_token_codec
from taskdesk_service.db.models import TaskPriority, TaskStatus
from taskdesk_service.db.repositories.tasks import TasksRepo
from taskdesk_service.errors import NotFoundError

PASSWORD = "Aa1!aaaa"


# ---------------------------------------------------------------------------
# Store: ownership scoping
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_defaults(session, account):
    task = await TasksRepo(session).create(owner_id=account.id, title="Write report")

    assert task.status == TaskStatus.PENDING
    assert task.priority == TaskPriority.MEDIUM
    assert task.created_at is not None


@pytest.mark.asyncio
async def test_tasks_are_invisible_to_other_accounts(session, auth_service, account):
    other = await auth_service.register("mallory", "mallory@example.com", PASSWORD, PASSWORD)
    repo = TasksRepo(session)
    task = await repo.create(owner_id=account.id, title="Private")

    items, total = await repo.list_by_owner(other.id)
    assert (items, total) == ([], 0)

    with pytest.raises(NotFoundError):
        await repo.get_for_owner(task.id, other.id)
    with pytest.raises(NotFoundError):
        await repo.update(task.id, other.id, title="Hijacked")
    with pytest.raises(NotFoundError):
        await repo.delete(task.id, other.id)

    assert (await repo.get_for_owner(task.id, account.id)).title == "Private"


@pytest.mark.asyncio
async def test_list_filters_by_status_and_paginates(session, account):
    repo = TasksRepo(session)
    for i in range(3):
        await repo.create(owner_id=account.id, title=f"Task {i}")
    done = await repo.create(owner_id=account.id, title="Done")
    await repo.update(done.id, account.id, status=TaskStatus.COMPLETED)

    completed, total_completed = await repo.list_by_owner(account.id, status=TaskStatus.COMPLETED)
    first_page, total = await repo.list_by_owner(account.id, page=0, size=2)

    assert [t.title for t in completed] == ["Done"]
    assert total_completed == 1
    assert len(first_page) == 2
    assert total == 4


@pytest.mark.asyncio
async def test_update_skips_none_fields(session, account):
    repo = TasksRepo(session)
    task = await repo.create(owner_id=account.id, title="Keep me", description="original")

    updated = await repo.update(task.id, account.id, title=None, priority=TaskPriority.HIGH)

    assert updated.title == "Keep me"
    assert updated.description == "original"
    assert updated.priority == TaskPriority.HIGH


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


def test_task_crud_roundtrip(client, login):
    headers = login()

    created = client.post(
        "/tasks",
        json={"title": "Ship it", "description": "v1", "priority": "HIGH", "dueDate": "2030-01-01T09:00:00Z"},
        headers=headers,
    )
    assert created.status_code == 201
    task = created.json()
    assert task["status"] == "PENDING"
    assert task["priority"] == "HIGH"
    assert task["dueDate"].startswith("2030-01-01T09:00:00")

    task_id = task["id"]
    assert client.get(f"/tasks/{task_id}", headers=headers).json()["title"] == "Ship it"

    updated = client.put(f"/tasks/{task_id}", json={"status": "IN_PROGRESS"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["status"] == "IN_PROGRESS"
    assert updated.json()["title"] == "Ship it"

    assert client.delete(f"/tasks/{task_id}", headers=headers).status_code == 204
    assert client.get(f"/tasks/{task_id}", headers=headers).status_code == 404


def test_list_my_tasks_with_status_filter(client, login):
    headers = login()
    client.post("/tasks", json={"title": "A"}, headers=headers)
    b = client.post("/tasks", json={"title": "B"}, headers=headers).json()
    client.put(f"/tasks/{b['id']}", json={"status": "COMPLETED"}, headers=headers)

    resp = client.get("/tasks/me", params={"status": "COMPLETED"}, headers=headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 1
    assert body["page"] == 0
    assert body["size"] == 20
    assert [t["title"] for t in body["items"]] == ["B"]


def test_other_users_task_is_not_found(client, login):
    owner = login("owner", "owner@x.com")
    task_id = client.post("/tasks", json={"title": "Mine"}, headers=owner).json()["id"]
    intruder = login("intruder", "intruder@x.com")

    assert client.get(f"/tasks/{task_id}", headers=intruder).status_code == 404
    assert client.put(f"/tasks/{task_id}", json={"title": "x"}, headers=intruder).status_code == 404
    assert client.delete(f"/tasks/{task_id}", headers=intruder).status_code == 404
    assert client.get("/tasks/me", headers=intruder).json()["total"] == 0


def test_tasks_require_authentication(client):
    resp = client.get("/tasks/me")

    assert resp.status_code == 401
    assert resp.headers["WWW-Authenticate"] == "Bearer"
    assert resp.json()["code"] == "UNAUTHENTICATED"


def test_missing_task_authority_is_forbidden(client, login):
    headers = login()
    claims = get_token_codec().verify(headers["Authorization"].removeprefix("Bearer "))
    profile_only = get_token_codec().issue_access_token(
        account_id=uuid.UUID(claims["sub"]),
        profile_id=uuid.UUID(claims["profile_id"]),
        email=claims["email"],
        authorities=["PROFILE_READ"],
    )

    resp = client.post(
        "/tasks", json={"title": "Nope"}, headers={"Authorization": f"Bearer {profile_only}"}
    )

    assert resp.status_code == 403
    assert resp.json()["code"] == "ACCESS_DENIED"


def test_blank_title_rejected(client, login):
    headers = login()

    resp = client.post("/tasks", json={"title": "   "}, headers=headers)

    assert resp.status_code == 400
    assert "title" in resp.json()["errors"]
