from __future__ import annotations

import datetime as dt

import pytest

from tasktracker.errors import ErrorKind, InvalidIdentifier, ValidationError
from tasktracker.tasks.validations import (
    is_task_id,
    parse_create_task,
    parse_edit_form,
    parse_task,
    parse_task_patch,
    parse_update_task,
    validate_task_id,
)

VALID_ID = "123e4567-e89b-12d3-a456-426614174000"


def test_valid_task_with_description() -> None:
    parsed = parse_task({"title": "Test Task", "description": "Test description"})
    assert parsed.title == "Test Task"
    assert parsed.description == "Test description"


def test_description_is_optional() -> None:
    parsed = parse_task({"title": "Test Task"})
    assert parsed.description is None


@pytest.mark.parametrize(
    "data,message",
    [
        ({"title": ""}, "Title is required"),
        ({}, "Title is required"),
        ({"title": "a" * 201}, "Title must be less than 200 characters"),
        (
            {"title": "ok", "description": "a" * 1001},
            "Description must be less than 1000 characters",
        ),
    ],
)
def test_task_rules(data: dict[str, object], message: str) -> None:
    with pytest.raises(ValidationError) as ei:
        parse_task(data)
    assert ei.value.messages == [message]
    assert ei.value.kind is ErrorKind.VALIDATION


def test_length_boundaries_are_inclusive() -> None:
    parsed = parse_task({"title": "a" * 200, "description": "b" * 1000})
    assert len(parsed.title) == 200
    assert parsed.description is not None and len(parsed.description) == 1000


def test_one_message_per_violated_field() -> None:
    with pytest.raises(ValidationError) as ei:
        parse_task({"title": "", "description": "x" * 1001})
    assert sorted(ei.value.fields) == ["description", "title"]
    assert len(ei.value.messages) == 2


def test_create_defaults_status_to_pending() -> None:
    parsed = parse_create_task({"title": "New Task", "description": "New description"})
    fields = parsed.to_fields()
    assert fields.status == "pending"
    assert fields.to_row() == {
        "title": "New Task",
        "description": "New description",
        "status": "pending",
    }


def test_update_accepts_uuid_and_status() -> None:
    parsed = parse_update_task({"id": VALID_ID, "title": "Updated Task", "status": "completed"})
    assert parsed.id == VALID_ID
    assert parsed.status == "completed"


def test_update_accepts_uppercase_uuid() -> None:
    parsed = parse_update_task({"id": VALID_ID.upper(), "title": "Updated"})
    assert parsed.id == VALID_ID


def test_update_rejects_invalid_uuid() -> None:
    with pytest.raises(InvalidIdentifier) as ei:
        parse_update_task({"id": "invalid-uuid", "title": "Updated Task"})
    assert ei.value.messages == ["Invalid task ID"]
    assert ei.value.kind is ErrorKind.INVALID_IDENTIFIER


def test_update_rejects_unknown_status() -> None:
    with pytest.raises(ValidationError) as ei:
        parse_update_task({"id": VALID_ID, "title": "t", "status": "archived"})
    assert not isinstance(ei.value, InvalidIdentifier)
    assert ei.value.fields == ["status"]


def test_patch_fields_are_optional_but_constrained() -> None:
    assert parse_task_patch({}).to_patch().changes() == {}
    assert parse_task_patch({"status": "pending"}).to_patch().changes() == {"status": "pending"}
    with pytest.raises(ValidationError):
        parse_task_patch({"title": ""})
    with pytest.raises(ValidationError) as ei:
        parse_task_patch({"title": None})
    assert ei.value.messages == ["Title is required"]


def test_patch_distinguishes_absent_from_cleared() -> None:
    cleared = parse_task_patch({"description": None}).to_patch()
    assert cleared.changes() == {"description": None}
    untouched = parse_task_patch({"title": "x"}).to_patch()
    assert "description" not in untouched.changes()


def test_edit_form_converts_datetime_to_deadline() -> None:
    when = dt.datetime(2025, 3, 1, 9, 30, tzinfo=dt.UTC)
    form = parse_edit_form({"title": "Edit", "datetime": when})
    patch = form.to_patch()
    assert patch.changes() == {"title": "Edit", "deadline": when.isoformat()}


def test_edit_form_without_datetime_leaves_deadline_alone() -> None:
    patch = parse_edit_form({"title": "Edit", "description": "d"}).to_patch()
    assert patch.changes() == {"title": "Edit", "description": "d"}


def test_edit_form_rejects_non_dates() -> None:
    with pytest.raises(ValidationError) as ei:
        parse_edit_form({"title": "Edit", "datetime": "not a date"})
    assert ei.value.messages == ["Deadline must be a valid date"]


@pytest.mark.parametrize(
    "value,ok",
    [
        (VALID_ID, True),
        ("123e4567e89b12d3a456426614174000", False),
        ("123e4567-e89b-12d3-a456-42661417400", False),
        ("g23e4567-e89b-12d3-a456-426614174000", False),
        (42, False),
    ],
)
def test_task_id_pattern(value: object, ok: bool) -> None:
    assert is_task_id(value) is ok
    if ok:
        assert validate_task_id(value) == value
    else:
        with pytest.raises(InvalidIdentifier):
            validate_task_id(value)


def test_validate_task_id_returns_canonical_form() -> None:
    assert validate_task_id(VALID_ID.upper()) == VALID_ID
