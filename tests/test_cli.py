from __future__ import annotations

from typing import Any

import pytest

from tasktracker.cli import main
from tasktracker.tasks.operations import TaskOperations
from tests.helpers.store import InMemoryTableClient


def _run(argv: list[str], table: InMemoryTableClient) -> int:
    with pytest.raises(SystemExit) as ei:
        main(argv, backend_factory=lambda _url: TaskOperations(table))
    return int(ei.value.code or 0)


def test_add_then_list(capsys: Any, table: InMemoryTableClient) -> None:
    assert _run(["add", "Buy milk", "--deadline", "2025-01-01T09:00:00+00:00"], table) == 0
    out = capsys.readouterr().out
    assert "Task created" in out
    assert "Buy milk" in out

    assert _run(["list"], table) == 0
    listing = capsys.readouterr().out
    assert "[ ]" in listing
    assert "due 2025-01-01T09:00:00+00:00" in listing


def test_complete_and_delete(capsys: Any, table: InMemoryTableClient) -> None:
    _run(["add", "Walk"], table)
    task_id = next(iter(table.tables["tasks"]))
    capsys.readouterr()

    assert _run(["complete", task_id], table) == 0
    assert _run(["list"], table) == 0
    assert "[x]" in capsys.readouterr().out

    assert _run(["delete", task_id], table) == 0
    assert _run(["list"], table) == 0
    assert "No tasks yet." in capsys.readouterr().out


def test_failures_exit_non_zero(capsys: Any, table: InMemoryTableClient) -> None:
    assert _run(["add", ""], table) == 1
    assert "Title is required" in capsys.readouterr().err

    table.fail_with["select"] = "network unreachable"
    assert _run(["list"], table) == 1
    assert "Network error" in capsys.readouterr().err


def test_edit_sends_only_given_flags(table: InMemoryTableClient) -> None:
    _run(["add", "Draft", "--description", "keep me"], table)
    task_id = next(iter(table.tables["tasks"]))
    assert _run(["edit", task_id, "--title", "Final"], table) == 0
    row = table.tables["tasks"][task_id]
    assert row["title"] == "Final"
    assert row["description"] == "keep me"


def test_no_command_prints_help(capsys: Any) -> None:
    with pytest.raises(SystemExit) as ei:
        main([])
    assert ei.value.code == 2
    assert "tasktracker" in capsys.readouterr().out
