from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from tasktracker.errors import ErrorKind, TaskError
from tasktracker.models.task import Task, TaskFields, TaskPatch
from tasktracker.observability import get_json_logger

from .operations import TaskBackend
from .validations import canonical_task_id

ADD_FAILED = "Failed to add task"
FETCH_FAILED = "Failed to fetch tasks"
DELETE_FAILED = "Failed to delete task"
UPDATE_FAILED = "Failed to update task"
COMPLETE_FAILED = "Failed to complete task"

LOADING_FLAGS = (
    "loading_add_task",
    "loading_fetch_tasks",
    "loading_update_task",
    "loading_delete_task",
    "loading_complete_task",
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class TaskStateSnapshot:
    tasks: tuple[Task, ...]
    loading_add_task: bool
    loading_fetch_tasks: bool
    loading_update_task: bool
    loading_delete_task: bool
    loading_complete_task: bool
    error: str | None
    error_kind: ErrorKind | None


Listener = Callable[[TaskStateSnapshot], None]


class TaskState:
    """Client-side cache of the task collection plus per-operation bookkeeping.

    One loading flag per operation kind, so a fetch in flight does not hide a
    delete in flight. `error` holds the last failure message. The backend is
    authoritative: `tasks` only mirrors what it returned.

    Concurrent calls are not serialized; whichever response settles last is
    the one written back to `tasks`.
    """

    def __init__(self, backend: TaskBackend) -> None:
        self._backend = backend
        self._listeners: list[Listener] = []
        self._logger = get_json_logger("tasktracker.state")
        self.tasks: list[Task] = []
        self.loading_add_task = False
        self.loading_fetch_tasks = False
        self.loading_update_task = False
        self.loading_delete_task = False
        self.loading_complete_task = False
        self.error: str | None = None
        self.error_kind: ErrorKind | None = None

    # ---- observation ----

    def snapshot(self) -> TaskStateSnapshot:
        return TaskStateSnapshot(
            tasks=tuple(self.tasks),
            loading_add_task=self.loading_add_task,
            loading_fetch_tasks=self.loading_fetch_tasks,
            loading_update_task=self.loading_update_task,
            loading_delete_task=self.loading_delete_task,
            loading_complete_task=self.loading_complete_task,
            error=self.error,
            error_kind=self.error_kind,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with a snapshot after every change; returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def is_loading(self) -> bool:
        return any(getattr(self, flag) for flag in LOADING_FLAGS)

    def find(self, task_id: str) -> Task | None:
        key = canonical_task_id(task_id)
        return next((t for t in self.tasks if canonical_task_id(t.id) == key), None)

    def _set(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self, name, value)
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)

    def _replaced(self, task_id: str, task: Task) -> list[Task]:
        key = canonical_task_id(task_id)
        return [task if canonical_task_id(t.id) == key else t for t in self.tasks]

    def _without(self, task_id: str) -> list[Task]:
        key = canonical_task_id(task_id)
        return [t for t in self.tasks if canonical_task_id(t.id) != key]

    # ---- operations ----

    async def _track(
        self,
        flag: str,
        default_message: str,
        call: Callable[[], Awaitable[T]],
        apply: Callable[[T], dict[str, Any]],
    ) -> T:
        settled = False
        try:
            self._set(**{flag: True, "error": None, "error_kind": None})
            try:
                result = await call()
            except Exception as exc:
                if isinstance(exc, TaskError):
                    message, kind = exc.message, exc.kind
                else:
                    message, kind = default_message, ErrorKind.UNEXPECTED
                self._logger.warning(
                    "task state error",
                    extra={"event": "state_error", "operation": flag, "error_kind": kind.value},
                )
                settled = True
                self._set(**{flag: False, "error": message, "error_kind": kind})
                raise
            changes = apply(result)
            settled = True
            self._set(**{flag: False, **changes})
            return result
        finally:
            # Cancellation, or a listener raising on the opening change
            if not settled:
                self._set(**{flag: False})

    async def add_task(self, fields: TaskFields | Mapping[str, Any]) -> Task:
        return await self._track(
            "loading_add_task",
            ADD_FAILED,
            lambda: self._backend.create_task(fields),
            lambda task: {"tasks": [task, *self.tasks]},
        )

    async def fetch_tasks(self) -> list[Task]:
        return await self._track(
            "loading_fetch_tasks",
            FETCH_FAILED,
            self._backend.list_tasks,
            lambda tasks: {"tasks": list(tasks)},
        )

    async def delete_task(self, task_id: str) -> None:
        await self._track(
            "loading_delete_task",
            DELETE_FAILED,
            lambda: self._backend.delete_task(task_id),
            lambda _: {"tasks": self._without(task_id)},
        )

    async def update_task(self, task_id: str, patch: TaskPatch | Mapping[str, Any]) -> Task:
        return await self._track(
            "loading_update_task",
            UPDATE_FAILED,
            lambda: self._backend.update_task(task_id, patch),
            lambda task: {"tasks": self._replaced(task_id, task)},
        )

    async def complete_task(self, task_id: str) -> Task:
        return await self._track(
            "loading_complete_task",
            COMPLETE_FAILED,
            lambda: self._backend.complete_task(task_id),
            lambda task: {"tasks": self._replaced(task_id, task)},
        )

    def clear_error(self) -> None:
        if self.error is None and self.error_kind is None:
            return
        self._set(error=None, error_kind=None)


__all__ = [
    "ADD_FAILED",
    "FETCH_FAILED",
    "DELETE_FAILED",
    "UPDATE_FAILED",
    "COMPLETE_FAILED",
    "LOADING_FLAGS",
    "TaskState",
    "TaskStateSnapshot",
]
