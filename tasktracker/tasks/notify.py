from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Literal, Protocol, TextIO

from tasktracker.observability import get_json_logger

Variant = Literal["default", "destructive"]


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    description: str
    variant: Variant | None = None

    @property
    def is_destructive(self) -> bool:
        return self.variant == "destructive"


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LogNotifier:
    """Sends notifications to the JSON log; destructive ones at WARNING."""

    def __init__(self, name: str = "tasktracker.notify") -> None:
        self._logger = get_json_logger(name)

    def notify(self, notification: Notification) -> None:
        log = self._logger.warning if notification.is_destructive else self._logger.info
        log(
            notification.title,
            extra={
                "event": "notification",
                "attributes": {
                    "description": notification.description,
                    "variant": notification.variant or "default",
                },
            },
        )


class ConsoleNotifier:
    def __init__(self, out: TextIO | None = None, err: TextIO | None = None) -> None:
        self._out = out or sys.stdout
        self._err = err or sys.stderr

    def notify(self, notification: Notification) -> None:
        stream = self._err if notification.is_destructive else self._out
        line = notification.title
        if notification.description:
            line = f"{line}: {notification.description}"
        stream.write(line + "\n")
        stream.flush()


__all__ = ["Notification", "Notifier", "LogNotifier", "ConsoleNotifier", "Variant"]
