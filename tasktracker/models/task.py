from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator

TaskStatus = Literal["pending", "completed"]

TASK_STATUSES: tuple[str, ...] = ("pending", "completed")


class Task(BaseModel):
    """One row of the `tasks` table as returned by the data store.

    - `id`, `created_at` and `updated_at` are assigned by the store
    - Timestamps stay ISO-8601 strings exactly as the store sent them
    - Unknown columns are ignored
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    description: str | None = None
    status: TaskStatus = "pending"
    deadline: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _null_status_is_pending(cls, value: Any) -> Any:
        return "pending" if value is None else value

    def has_description(self) -> bool:
        return self.description is not None

    def has_deadline(self) -> bool:
        return self.deadline is not None

    def is_completed(self) -> bool:
        return self.status == "completed"

    def to_row(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class TaskFields(BaseModel):
    """Fields a caller supplies on create; the store assigns the rest."""

    model_config = ConfigDict(extra="ignore")

    title: str
    description: str | None = None
    status: TaskStatus = "pending"
    deadline: str | None = None

    def to_row(self) -> dict[str, Any]:
        # Absent optionals are left to the store's column defaults
        return self.model_dump(mode="json", exclude_none=True)


class TaskPatch(BaseModel):
    """Partial update.

    Only fields explicitly set are written, so `TaskPatch(description=None)`
    clears the description while `TaskPatch()` leaves it alone.
    """

    model_config = ConfigDict(extra="ignore")

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    deadline: str | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)

    def is_empty(self) -> bool:
        return not self.model_fields_set


__all__ = ["Task", "TaskFields", "TaskPatch", "TaskStatus", "TASK_STATUSES"]
