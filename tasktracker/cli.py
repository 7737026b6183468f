from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import Any

from tasktracker.config import load_config
from tasktracker.errors import TaskError
from tasktracker.models.task import TASK_STATUSES, Task
from tasktracker.tasks.notify import ConsoleNotifier, Notification, Notifier
from tasktracker.tasks.operations import TaskBackend
from tasktracker.tasks.state import TaskState


def _format_task(task: Task) -> str:
    mark = "x" if task.is_completed() else " "
    line = f"[{mark}] {task.id}  {task.title}"
    if task.has_deadline():
        line += f"  (due {task.deadline})"
    return line


def _patch_from_args(args: Any) -> dict[str, Any]:
    """Only flags the user actually passed end up in the patch."""
    patch: dict[str, Any] = {}
    for key in ("title", "description", "deadline", "status"):
        value = getattr(args, key, None)
        if value is not None:
            patch[key] = value
    return patch


async def _run_command(args: Any, backend: TaskBackend, notifier: Notifier) -> int:
    state = TaskState(backend)
    cmd = args.cmd

    async def attempt(
        action: Callable[[], Awaitable[Any]], ok_title: str, fail_title: str
    ) -> Any | None:
        try:
            result = await action()
        except TaskError as exc:
            notifier.notify(Notification(fail_title, exc.message, "destructive"))
            return None
        if ok_title:
            notifier.notify(Notification(ok_title, ""))
        return result if result is not None else True

    if cmd == "list":
        if await attempt(state.fetch_tasks, "", "Could not load tasks") is None:
            return 1
        for task in state.tasks:
            sys.stdout.write(_format_task(task) + "\n")
        if not state.tasks:
            sys.stdout.write("No tasks yet.\n")
        return 0

    if cmd == "add":
        fields: dict[str, Any] = {"title": args.title}
        if args.description is not None:
            fields["description"] = args.description
        if args.deadline is not None:
            fields["deadline"] = args.deadline
        created = await attempt(lambda: state.add_task(fields), "Task created", "Error")
        if created is None:
            return 1
        sys.stdout.write(_format_task(created) + "\n")
        return 0

    if cmd == "edit":
        patch = _patch_from_args(args)
        updated = await attempt(
            lambda: state.update_task(args.id, patch), "Task updated", "Error"
        )
        return 0 if updated is not None else 1

    if cmd == "complete":
        done = await attempt(
            lambda: state.complete_task(args.id), "Task completed", "Error"
        )
        return 0 if done is not None else 1

    if cmd == "delete":
        deleted = await attempt(lambda: state.delete_task(args.id), "Task deleted", "Error")
        return 0 if deleted is not None else 1

    return 2


def _serve(host: str, port: int) -> int:
    # Defer import to keep CLI lightweight for client commands
    import uvicorn

    uvicorn.run("tasktracker.gateway.asgi:app", host=host, port=port, log_config=None)
    return 0


def build_parser() -> argparse.ArgumentParser:
    config = load_config()
    parser = argparse.ArgumentParser("tasktracker")
    parser.add_argument(
        "--base-url",
        default=config.base_url,
        help="Gateway URL (default: TASKTRACKER_URL or http://GATEWAY_HOST:GATEWAY_PORT)",
    )
    sub = parser.add_subparsers(dest="cmd")

    p_serve = sub.add_parser("serve", help="Run the HTTP gateway")
    p_serve.add_argument("--host", default=config.gateway_host)
    p_serve.add_argument("--port", type=int, default=config.gateway_port)

    sub.add_parser("list", help="List tasks (pending first, newest first)")

    p_add = sub.add_parser("add", help="Create a task")
    p_add.add_argument("title")
    p_add.add_argument("--description")
    p_add.add_argument("--deadline", help="ISO-8601 timestamp")

    p_edit = sub.add_parser("edit", help="Update fields of a task")
    p_edit.add_argument("id")
    p_edit.add_argument("--title")
    p_edit.add_argument("--description")
    p_edit.add_argument("--deadline")
    p_edit.add_argument("--status", choices=TASK_STATUSES)

    p_complete = sub.add_parser("complete", help="Mark a task completed")
    p_complete.add_argument("id")

    p_delete = sub.add_parser("delete", help="Delete a task")
    p_delete.add_argument("id")
    return parser


def main(
    argv: list[str] | None = None,
    *,
    backend_factory: Callable[[str], Any] | None = None,
) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd is None:
        parser.print_help()
        raise SystemExit(2)
    if args.cmd == "serve":
        raise SystemExit(_serve(args.host, args.port))

    async def _go() -> int:
        if backend_factory is not None:
            return await _run_command(args, backend_factory(args.base_url), ConsoleNotifier())
        from tasktracker.client import TaskApiClient

        async with TaskApiClient(args.base_url) as client:
            return await _run_command(args, client, ConsoleNotifier())

    raise SystemExit(asyncio.run(_go()))


__all__ = ["main", "build_parser"]


if __name__ == "__main__":  # pragma: no cover
    main()
