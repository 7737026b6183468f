from __future__ import annotations

import contextvars
import datetime as dt
import json
import logging
import os
import sys
import time
import uuid
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

SENSITIVE_KEYS = {"api_key", "apikey", "token", "authorization", "password", "secret"}

# Extras copied verbatim from the record onto the JSON payload
_STANDARD_EXTRAS = (
    "event",
    "operation",
    "task_id",
    "table",
    "error_kind",
    "status_code",
    "path",
    "span_id",
    "parent_id",
    "duration_ms",
    "request_id",
    "attributes",
    "metadata",
)


def _iso_now() -> str:
    return dt.datetime.now(dt.UTC).isoformat()


def _redact(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in obj.items():
            if isinstance(k, str) and k.lower() in SENSITIVE_KEYS:
                redacted[k] = "[REDACTED]"
            else:
                redacted[k] = _redact(v)
        return redacted
    if isinstance(obj, list | tuple):
        return [_redact(v) for v in obj]
    return obj


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "ts": _iso_now(),
            "level": record.levelname.lower(),
            "service": getattr(record, "service", None) or os.getenv("SERVICE_NAME"),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for attr in _STANDARD_EXTRAS:
            if hasattr(record, attr):
                payload[attr] = getattr(record, attr)
        span_name = getattr(record, "span_name", None)
        if span_name is not None:
            payload["name"] = span_name
        ctx = get_request_context() or {}
        for key, value in ctx.items():
            if key not in payload and value is not None:
                payload[key] = value
        for key in ("attributes", "metadata"):
            if isinstance(payload.get(key), dict):
                payload[key] = _redact(payload[key])
        if record.exc_info:
            exc_type, exc_value, _tb = record.exc_info
            payload["err_type"] = getattr(exc_type, "__name__", str(exc_type))
            if exc_value is not None:
                payload["err"] = str(exc_value)
            payload["stack"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ConsoleLogFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(message)s")

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        parts: list[str] = [_iso_now()[11:19], record.levelname.upper()]
        parts.append(str(getattr(record, "service", None) or record.name))
        event = getattr(record, "event", None)
        if event:
            parts.append(str(event))
        operation = getattr(record, "operation", None)
        if operation:
            parts.append(f"op={operation}")
        task_id = getattr(record, "task_id", None)
        if task_id:
            parts.append(f"task={str(task_id)[:8]}")
        request_id = getattr(record, "request_id", None) or (get_request_context() or {}).get(
            "request_id"
        )
        if request_id:
            parts.append(f"req={str(request_id)[:8]}")
        parts.append("-")
        parts.append(record.getMessage())
        return " ".join(parts)


def _choose_formatter() -> logging.Formatter:
    format_pref = (os.getenv("LOG_FORMAT") or "").strip().lower() or "auto"
    if format_pref == "console":
        return ConsoleLogFormatter()
    if format_pref == "auto" and sys.stdout.isatty():
        return ConsoleLogFormatter()
    return JsonLogFormatter()


def _parse_level(value: str | None, default: int = logging.INFO) -> int:
    name = (value or "").strip().upper()
    if not name:
        return default
    level = getattr(logging, name, None)
    return level if isinstance(level, int) else default


def _level_for_logger(logger_name: str) -> int:
    """Resolve LOG_LEVEL, overridden per prefix by LOG_MODULE_LEVELS (`a.b=debug,c=error`)."""
    base_level = _parse_level(os.getenv("LOG_LEVEL"), logging.INFO)
    overrides = (os.getenv("LOG_MODULE_LEVELS") or "").strip()
    for entry in overrides.split(","):
        prefix, sep, lvl = entry.strip().partition("=")
        prefix = prefix.strip()
        if not sep or not prefix:
            continue
        if logger_name == prefix or logger_name.startswith(prefix + "."):
            return _parse_level(lvl, base_level)
    return base_level


class _StdoutHandler(logging.StreamHandler):  # type: ignore[type-arg]
    """StreamHandler bound to whatever `sys.stdout` is at emit time."""

    def __init__(self) -> None:
        super().__init__(stream=sys.stdout)

    @property  # type: ignore[override]
    def stream(self) -> Any:
        return sys.stdout

    @stream.setter
    def stream(self, value: Any) -> None:
        pass


def get_json_logger(name: str = "tasktracker") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = _StdoutHandler()
        handler.setFormatter(_choose_formatter())
        logger.addHandler(handler)
        logger.setLevel(_level_for_logger(name))
        logger.propagate = False
    return logger


def configure_uvicorn_logging() -> None:
    """Route uvicorn's loggers through our formatter and levels."""
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        for h in list(lg.handlers):
            lg.removeHandler(h)
            h.close()
        handler = _StdoutHandler()
        handler.setFormatter(_choose_formatter())
        lg.addHandler(handler)
        lg.setLevel(_level_for_logger(name))
        lg.propagate = False


# ----------------------------
# Request context helpers
# ----------------------------

_request_context_var: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "tasktracker_request_context", default=None
)


def get_request_context() -> dict[str, Any] | None:
    return _request_context_var.get()


@contextmanager
def use_request_context(request_id: str | None = None, **fields: Any) -> Generator[str, None, None]:
    rid = request_id or str(uuid.uuid4())
    token = _request_context_var.set({"request_id": rid, **fields})
    try:
        yield rid
    finally:
        _request_context_var.reset(token)


# ----------------------------
# Tracing
# ----------------------------


@dataclass
class Span:
    span_id: str
    name: str
    start_ns: int
    parent_id: str | None


_current_span_var: contextvars.ContextVar[Span | None] = contextvars.ContextVar(
    "tasktracker_current_span", default=None
)


class Tracer:
    """Emits `span_start`/`span_end` log events.

    The active span lives in a contextvar so concurrent asyncio tasks each
    see their own parent.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or get_json_logger("tasktracker.trace")

    @contextmanager
    def span(
        self,
        name: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> Generator[Span, None, None]:
        parent = _current_span_var.get()
        span = Span(
            span_id=str(uuid.uuid4()),
            name=name,
            start_ns=time.perf_counter_ns(),
            parent_id=parent.span_id if parent else None,
        )
        self._logger.debug(
            "span start",
            extra={
                "event": "span_start",
                "span_name": name,
                "span_id": span.span_id,
                "parent_id": span.parent_id,
                "metadata": dict(metadata or {}),
            },
        )
        token = _current_span_var.set(span)
        try:
            yield span
        finally:
            _current_span_var.reset(token)
            duration_ms = (time.perf_counter_ns() - span.start_ns) / 1_000_000.0
            self._logger.debug(
                "span end",
                extra={
                    "event": "span_end",
                    "span_name": name,
                    "span_id": span.span_id,
                    "parent_id": span.parent_id,
                    "duration_ms": duration_ms,
                },
            )


# ----------------------------
# Metrics
# ----------------------------


class Metrics:
    def __init__(self) -> None:
        self._counters: dict[tuple[str, tuple[tuple[str, str], ...]], int] = {}

    def increment(
        self,
        name: str,
        labels: Mapping[str, str] | None = None,
        amount: int = 1,
    ) -> None:
        key = (name, tuple(sorted((labels or {}).items())))
        self._counters[key] = self._counters.get(key, 0) + amount

    def value(self, name: str, labels: Mapping[str, str] | None = None) -> int:
        return self._counters.get((name, tuple(sorted((labels or {}).items()))), 0)

    def snapshot(self) -> list[dict[str, Any]]:
        return [
            {"name": name, "labels": dict(label_items), "value": value}
            for (name, label_items), value in sorted(self._counters.items())
        ]


_metrics_singleton: Metrics | None = None


def get_metrics() -> Metrics:
    global _metrics_singleton
    if _metrics_singleton is None:
        _metrics_singleton = Metrics()
    return _metrics_singleton


def reset_metrics() -> None:
    global _metrics_singleton
    _metrics_singleton = Metrics()


__all__ = [
    "JsonLogFormatter",
    "ConsoleLogFormatter",
    "get_json_logger",
    "configure_uvicorn_logging",
    "get_request_context",
    "use_request_context",
    "Span",
    "Tracer",
    "Metrics",
    "get_metrics",
    "reset_metrics",
]
