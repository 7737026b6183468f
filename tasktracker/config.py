from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class AppConfig:
    store_url: str
    store_api_key: str | None
    table: str
    key_prefix: str
    request_timeout_s: float
    gateway_host: str
    gateway_port: int
    base_url: str


def _read_float(raw: str | None, default: float) -> float:
    value = (raw or "").strip()
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_port(raw: str | None, default: int) -> int:
    value = (raw or "").strip()
    try:
        port = int(value) if value else default
    except ValueError:
        return default
    return port if 0 < port < 65536 else default


def load_config(env: dict[str, str] | None = None) -> AppConfig:
    e: dict[str, Any] = dict(os.environ)
    if env:
        e.update(env)
    host = (e.get("GATEWAY_HOST") or "127.0.0.1").strip()
    port = _read_port(e.get("GATEWAY_PORT"), 8000)
    return AppConfig(
        store_url=(e.get("TASKS_STORE_URL") or "redis://localhost:6379/0").strip(),
        store_api_key=e.get("TASKS_STORE_API_KEY") or None,
        table=(e.get("TASKS_TABLE") or "tasks").strip(),
        key_prefix=(e.get("TASKS_STORE_PREFIX") or "tasktracker").strip(),
        request_timeout_s=_read_float(e.get("TASKS_REQUEST_TIMEOUT"), 10.0),
        gateway_host=host,
        gateway_port=port,
        base_url=(e.get("TASKTRACKER_URL") or f"http://{host}:{port}").rstrip("/"),
    )


__all__ = ["AppConfig", "load_config"]
