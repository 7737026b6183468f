from __future__ import annotations

import os
import time
from collections.abc import Callable, Iterator

import pytest

from tasktracker.observability import reset_metrics
from tasktracker.tasks.operations import TaskOperations
from tests.helpers.store import InMemoryTableClient


@pytest.fixture(autouse=True)
def _fresh_metrics() -> Iterator[None]:
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture(autouse=True)
def _json_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep log output machine-readable regardless of the terminal."""
    monkeypatch.setenv("LOG_FORMAT", "json")


@pytest.fixture()
def table() -> InMemoryTableClient:
    return InMemoryTableClient()


@pytest.fixture()
def operations(table: InMemoryTableClient) -> TaskOperations:
    return TaskOperations(table)


def _wait_until(timeout_s: float, pause_s: float, check: Callable[[], bool]) -> bool:
    deadline = time.time() + timeout_s
    while time.time() < deadline:
        if check():
            return True
        time.sleep(pause_s)
    return False


def _redis_ping(url: str) -> bool:
    try:
        import redis

        return bool(redis.Redis.from_url(url, socket_connect_timeout=0.5).ping())
    except Exception:
        return False


@pytest.fixture(scope="session")
def redis_url() -> str:
    """Provide a Redis URL, preferring REDIS_URL, then localhost; skip otherwise."""
    env_url = os.getenv("REDIS_URL")
    if env_url and _wait_until(5.0, 0.2, lambda: _redis_ping(env_url)):
        return env_url
    local_url = "redis://localhost:6379/0"
    if _redis_ping(local_url):
        return local_url
    pytest.skip("Redis not available; set REDIS_URL or start local Redis")


@pytest.fixture()
def unique_prefix() -> str:
    # millisecond prefix to avoid collisions
    return f"test:{int(time.time() * 1000)}"
