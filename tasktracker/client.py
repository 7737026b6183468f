from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel

from tasktracker.errors import (
    NetworkError,
    RequestTimeoutError,
    TaskError,
    UnexpectedError,
    error_from_kind,
)
from tasktracker.models.task import Task, TaskFields, TaskPatch


class TaskApiClient:
    """Drives the gateway's task endpoints over HTTP.

    Implements the same five coroutines as `TaskOperations`, so a `TaskState`
    can sit on either. Error bodies (`{"detail", "kind"}`) come back as the
    matching tagged `TaskError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        request_id: str | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if request_id:
            headers["X-Request-ID"] = request_id
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"), timeout=timeout_s, transport=transport, headers=headers
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> TaskApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @staticmethod
    def _body(data: BaseModel | Mapping[str, Any]) -> dict[str, Any]:
        if isinstance(data, TaskPatch):
            return data.changes()
        if isinstance(data, BaseModel):
            return data.model_dump(mode="json", exclude_unset=True)
        return dict(data)

    @staticmethod
    def _error(resp: httpx.Response) -> TaskError:
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and isinstance(body.get("detail"), str):
            return error_from_kind(body.get("kind"), body["detail"])
        return UnexpectedError(f"HTTP {resp.status_code}")

    async def _send(self, method: str, path: str, json_body: Any = None) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, json=json_body)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError() from exc
        except httpx.TransportError as exc:
            raise NetworkError() from exc
        if resp.is_error:
            raise self._error(resp)
        return resp

    async def create_task(self, fields: TaskFields | Mapping[str, Any]) -> Task:
        resp = await self._send("POST", "/tasks", self._body(fields))
        return Task.model_validate(resp.json()["task"])

    async def list_tasks(self) -> list[Task]:
        resp = await self._send("GET", "/tasks")
        return [Task.model_validate(t) for t in resp.json().get("tasks") or []]

    async def update_task(self, task_id: str, patch: TaskPatch | Mapping[str, Any]) -> Task:
        resp = await self._send("PATCH", f"/tasks/{task_id}", self._body(patch))
        return Task.model_validate(resp.json()["task"])

    async def delete_task(self, task_id: str) -> None:
        await self._send("DELETE", f"/tasks/{task_id}")

    async def complete_task(self, task_id: str) -> Task:
        resp = await self._send("POST", f"/tasks/{task_id}/complete")
        return Task.model_validate(resp.json()["task"])


__all__ = ["TaskApiClient"]
