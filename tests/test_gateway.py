from __future__ import annotations

import uuid

import httpx
import pytest
from httpx import ASGITransport

from tasktracker.gateway.app import create_app
from tasktracker.tasks.operations import TaskOperations
from tests.helpers.store import InMemoryTableClient


def _http(table: InMemoryTableClient) -> httpx.AsyncClient:
    app = create_app(TaskOperations(table))
    return httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_health(table: InMemoryTableClient) -> None:
    async with _http(table) as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_create_list_complete_delete(table: InMemoryTableClient) -> None:
    async with _http(table) as client:
        created = await client.post("/tasks", json={"title": "Ship it", "description": "today"})
        assert created.status_code == 201
        task = created.json()["task"]
        assert task["status"] == "pending"

        listed = await client.get("/tasks")
        assert [t["id"] for t in listed.json()["tasks"]] == [task["id"]]

        done = await client.post(f"/tasks/{task['id']}/complete")
        assert done.status_code == 200
        assert done.json()["task"]["status"] == "completed"

        patched = await client.patch(f"/tasks/{task['id']}", json={"title": "Shipped"})
        assert patched.json()["task"]["title"] == "Shipped"

        deleted = await client.delete(f"/tasks/{task['id']}")
        assert deleted.status_code == 204

        assert (await client.get("/tasks")).json() == {"tasks": []}


@pytest.mark.asyncio
async def test_validation_error_is_422(table: InMemoryTableClient) -> None:
    async with _http(table) as client:
        resp = await client.post("/tasks", json={"title": ""})
    assert resp.status_code == 422
    assert resp.json() == {"detail": "Title is required", "kind": "validation"}
    assert table.calls == []


@pytest.mark.asyncio
async def test_invalid_id_is_422(table: InMemoryTableClient) -> None:
    async with _http(table) as client:
        resp = await client.post("/tasks/not-a-uuid/complete")
    assert resp.status_code == 422
    assert resp.json()["kind"] == "invalid_identifier"


@pytest.mark.asyncio
async def test_missing_row_is_404(table: InMemoryTableClient) -> None:
    async with _http(table) as client:
        resp = await client.patch(f"/tasks/{uuid.uuid4()}", json={"title": "ghost"})
    assert resp.status_code == 404
    assert resp.json() == {"detail": "Failed to update task", "kind": "empty_result"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "message,status,kind",
    [
        ("network error occurred", 503, "network"),
        ("request timeout", 504, "timeout"),
        ("permission denied for table tasks", 502, "remote"),
    ],
)
async def test_store_errors_map_to_status(
    table: InMemoryTableClient, message: str, status: int, kind: str
) -> None:
    table.fail_with["select"] = message
    async with _http(table) as client:
        resp = await client.get("/tasks")
    assert resp.status_code == status
    assert resp.json()["kind"] == kind


@pytest.mark.asyncio
async def test_request_id_is_echoed(table: InMemoryTableClient) -> None:
    async with _http(table) as client:
        given = await client.get("/health", headers={"X-Request-ID": "req-123"})
        generated = await client.get("/health")
    assert given.headers["X-Request-ID"] == "req-123"
    assert generated.headers["X-Request-ID"]
