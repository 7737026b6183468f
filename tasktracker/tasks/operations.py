from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, TypeVar

from pydantic import ValidationError as PydanticValidationError

from tasktracker.errors import (
    EmptyResult,
    TaskError,
    UnexpectedError,
    ValidationError,
    normalize_store_error,
)
from tasktracker.models.task import Task, TaskFields, TaskPatch
from tasktracker.observability import Tracer, get_json_logger, get_metrics
from tasktracker.store.interface import OrderBy, StoreResponse, TableClient

from .validations import parse_create_task, parse_task_patch, validate_task_id

CREATE_FAILED = "Failed to create task"
FETCH_FAILED = "Failed to fetch tasks"
UPDATE_FAILED = "Failed to update task"
DELETE_FAILED = "Failed to delete task"
COMPLETE_FAILED = "Failed to complete task"

# Pending before completed, newest first within each status
LIST_ORDER: tuple[OrderBy, ...] = (
    OrderBy("status", descending=True),
    OrderBy("created_at", descending=True),
)

T = TypeVar("T")


class TaskBackend(Protocol):
    """The five task operations, wherever they run (in-process or over HTTP)."""

    async def create_task(self, fields: TaskFields | Mapping[str, Any]) -> Task: ...

    async def list_tasks(self) -> list[Task]: ...

    async def update_task(self, task_id: str, patch: TaskPatch | Mapping[str, Any]) -> Task: ...

    async def delete_task(self, task_id: str) -> None: ...

    async def complete_task(self, task_id: str) -> Task: ...


class TaskOperations:
    """CRUD operations against the `tasks` table.

    Each operation validates its input, performs exactly one round trip and
    turns every failure into a tagged `TaskError`:
    - store-reported errors go through `normalize_store_error`
    - a write that returns no row raises `EmptyResult`
    - anything else raised underneath becomes `UnexpectedError`
    """

    def __init__(self, client: TableClient, *, table: str = "tasks") -> None:
        self._client = client
        self._table = table
        self._logger = get_json_logger("tasktracker.tasks")
        self._tracer = Tracer(self._logger)

    @property
    def client(self) -> TableClient:
        return self._client

    async def _call(
        self,
        operation: str,
        default_message: str,
        run: Callable[[], Awaitable[T]],
        *,
        task_id: str | None = None,
    ) -> T:
        metrics = get_metrics()
        self._logger.info(
            "task call",
            extra={
                "event": "task_call",
                "operation": operation,
                "table": self._table,
                "task_id": task_id,
            },
        )
        metrics.increment("task_calls", {"operation": operation})
        try:
            with self._tracer.span(f"tasks.{operation}", {"task_id": task_id}):
                return await run()
        except TaskError as exc:
            self._log_error(operation, exc, task_id)
            raise
        except Exception as exc:  # noqa: BLE001 - every failure leaves as a TaskError
            wrapped = UnexpectedError(str(exc) or default_message)
            self._log_error(operation, wrapped, task_id)
            raise wrapped from exc

    def _log_error(self, operation: str, exc: TaskError, task_id: str | None) -> None:
        self._logger.error(
            "task error",
            extra={
                "event": "task_error",
                "operation": operation,
                "task_id": task_id,
                "error_kind": exc.kind.value,
                "metadata": {"error": exc.message[:200]},
            },
        )
        get_metrics().increment("task_errors", {"operation": operation, "kind": exc.kind.value})

    @staticmethod
    def _row_or_raise(resp: StoreResponse, default_message: str) -> Task:
        if resp.error is not None:
            raise normalize_store_error(resp.error.message)
        if not resp.data:
            raise EmptyResult(default_message)
        try:
            return Task.model_validate(resp.data)
        except PydanticValidationError as exc:
            raise UnexpectedError(default_message) from exc

    async def create_task(self, fields: TaskFields | Mapping[str, Any]) -> Task:
        row = parse_create_task(fields).to_fields().to_row()

        async def run() -> Task:
            resp = await self._client.insert(self._table, row)
            return self._row_or_raise(resp, CREATE_FAILED)

        return await self._call("create", CREATE_FAILED, run)

    async def list_tasks(self) -> list[Task]:
        async def run() -> list[Task]:
            resp = await self._client.select(self._table, LIST_ORDER)
            if resp.error is not None:
                raise normalize_store_error(resp.error.message)
            try:
                return [Task.model_validate(r) for r in resp.data or []]
            except PydanticValidationError as exc:
                raise UnexpectedError(FETCH_FAILED) from exc

        return await self._call("list", FETCH_FAILED, run)

    async def update_task(self, task_id: str, patch: TaskPatch | Mapping[str, Any]) -> Task:
        tid = validate_task_id(task_id)
        values = parse_task_patch(patch).to_patch().changes()
        if not values:
            raise ValidationError(["No fields to update"])

        async def run() -> Task:
            resp = await self._client.update(self._table, tid, values)
            return self._row_or_raise(resp, UPDATE_FAILED)

        return await self._call("update", UPDATE_FAILED, run, task_id=tid)

    async def delete_task(self, task_id: str) -> None:
        tid = validate_task_id(task_id)

        async def run() -> None:
            resp = await self._client.delete(self._table, tid)
            if resp.error is not None:
                raise normalize_store_error(resp.error.message)

        await self._call("delete", DELETE_FAILED, run, task_id=tid)

    async def complete_task(self, task_id: str) -> Task:
        tid = validate_task_id(task_id)

        async def run() -> Task:
            resp = await self._client.update(self._table, tid, {"status": "completed"})
            return self._row_or_raise(resp, COMPLETE_FAILED)

        return await self._call("complete", COMPLETE_FAILED, run, task_id=tid)


__all__ = [
    "CREATE_FAILED",
    "FETCH_FAILED",
    "UPDATE_FAILED",
    "DELETE_FAILED",
    "COMPLETE_FAILED",
    "LIST_ORDER",
    "TaskBackend",
    "TaskOperations",
]
