from __future__ import annotations

import datetime as _dt
import re
from collections.abc import Mapping
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from tasktracker.errors import InvalidIdentifier, ValidationError
from tasktracker.models.task import TaskFields, TaskPatch

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

INVALID_ID_MESSAGE = "Invalid task ID"

# (field, pydantic error type) -> user-facing message
_MESSAGES: dict[tuple[str, str], str] = {
    ("title", "missing"): "Title is required",
    ("title", "string_too_short"): "Title is required",
    ("title", "string_too_long"): f"Title must be less than {TITLE_MAX_LENGTH} characters",
    ("title", "string_type"): "Title must be a string",
    ("description", "string_too_long"): (
        f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters"
    ),
    ("description", "string_type"): "Description must be a string",
    ("deadline", "string_type"): "Deadline must be an ISO-8601 string",
    ("datetime", "datetime_type"): "Deadline must be a valid date",
    ("datetime", "datetime_parsing"): "Deadline must be a valid date",
    ("datetime", "datetime_from_date_parsing"): "Deadline must be a valid date",
    ("id", "missing"): INVALID_ID_MESSAGE,
    ("id", "string_type"): INVALID_ID_MESSAGE,
    ("status", "literal_error"): "Status must be one of: pending, completed",
}


def is_task_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID_RE.match(value))


def canonical_task_id(value: str) -> str:
    """Lowercase form used for every id comparison; UUID hex is case-insensitive."""
    return value.lower()


class TaskInput(BaseModel):
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    deadline: str | None = None


class CreateTaskInput(TaskInput):
    status: Literal["pending", "completed"] = "pending"

    def to_fields(self) -> TaskFields:
        return TaskFields(**self.model_dump(exclude_unset=True))


class UpdateTaskInput(TaskInput):
    """Full edit of an existing task (form layer)."""

    id: str
    status: Literal["pending", "completed"] | None = None

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        if not is_task_id(value):
            raise ValueError(INVALID_ID_MESSAGE)
        return canonical_task_id(value)


class TaskPatchInput(BaseModel):
    """Partial update: every field optional, constrained when present."""

    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    deadline: str | None = None
    status: Literal["pending", "completed"] | None = None

    @field_validator("title")
    @classmethod
    def _title_not_null(cls, value: str | None) -> str | None:
        # Runs only when the caller set the field; the column is NOT NULL
        if value is None:
            raise ValueError("Title is required")
        return value

    def to_patch(self) -> TaskPatch:
        return TaskPatch(**self.model_dump(exclude_unset=True))


class EditTaskFormInput(BaseModel):
    """Edit form variant taking a date/time value instead of a deadline string."""

    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    datetime: _dt.datetime | None = None

    def to_patch(self) -> TaskPatch:
        values: dict[str, Any] = {"title": self.title}
        if "description" in self.model_fields_set:
            values["description"] = self.description
        if "datetime" in self.model_fields_set:
            values["deadline"] = self.datetime.isoformat() if self.datetime else None
        return TaskPatch(**values)


def _message_for(err: Mapping[str, Any]) -> tuple[str, str]:
    loc = err.get("loc") or ()
    field = str(loc[0]) if loc else ""
    etype = str(err.get("type", ""))
    known = _MESSAGES.get((field, etype))
    if known is not None:
        return field, known
    if etype == "value_error":
        ctx = err.get("ctx") or {}
        inner = ctx.get("error")
        if inner is not None:
            return field, str(inner)
    return field, str(err.get("msg", "Invalid value"))


def _convert(exc: PydanticValidationError) -> ValidationError:
    messages: list[str] = []
    fields: list[str] = []
    for err in exc.errors():
        field, message = _message_for(err)
        messages.append(message)
        fields.append(field)
    if "id" in fields:
        return InvalidIdentifier(messages, fields)
    return ValidationError(messages, fields)


M = TypeVar("M", bound=BaseModel)


def _as_mapping(data: Mapping[str, Any] | BaseModel) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data)


def _parse(schema: type[M], data: Mapping[str, Any] | BaseModel) -> M:
    try:
        return schema.model_validate(_as_mapping(data))
    except PydanticValidationError as exc:
        raise _convert(exc) from None


def parse_task(data: Mapping[str, Any] | BaseModel) -> TaskInput:
    return _parse(TaskInput, data)


def parse_create_task(data: Mapping[str, Any] | BaseModel) -> CreateTaskInput:
    return _parse(CreateTaskInput, data)


def parse_update_task(data: Mapping[str, Any] | BaseModel) -> UpdateTaskInput:
    return _parse(UpdateTaskInput, data)


def parse_task_patch(data: Mapping[str, Any] | BaseModel) -> TaskPatchInput:
    return _parse(TaskPatchInput, data)


def parse_edit_form(data: Mapping[str, Any] | BaseModel) -> EditTaskFormInput:
    return _parse(EditTaskFormInput, data)


def validate_task_id(value: Any) -> str:
    if not is_task_id(value):
        raise InvalidIdentifier([INVALID_ID_MESSAGE], ["id"])
    return canonical_task_id(value)


__all__ = [
    "TITLE_MAX_LENGTH",
    "DESCRIPTION_MAX_LENGTH",
    "INVALID_ID_MESSAGE",
    "TaskInput",
    "CreateTaskInput",
    "UpdateTaskInput",
    "TaskPatchInput",
    "EditTaskFormInput",
    "canonical_task_id",
    "is_task_id",
    "parse_task",
    "parse_create_task",
    "parse_update_task",
    "parse_task_patch",
    "parse_edit_form",
    "validate_task_id",
]
