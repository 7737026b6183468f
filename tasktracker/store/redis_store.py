from __future__ import annotations

import datetime as _dt
import json
import uuid
from collections.abc import Sequence
from typing import Any, cast

import redis.asyncio as aioredis
from redis import exceptions as redis_exceptions

from .interface import OrderBy, Row, StoreResponse


def _sort_rows(rows: list[Row], order_by: Sequence[OrderBy]) -> list[Row]:
    # Stable sorts applied from the last key to the first give multi-key ordering.
    # Missing values sort as the smallest, like NULLS FIRST ascending.
    out = list(rows)
    for order in reversed(order_by):
        out.sort(
            key=lambda r, c=order.column: (r.get(c) is not None, str(r.get(c) or "")),
            reverse=order.descending,
        )
    return out


class RedisTableClient:
    """Redis-backed table client.

    Data structures:
    - Hash per row: key `{prefix}:{table}:row:{id}` with field `json`
    - Sorted set per table listing ids by `created_at`:
      key `{prefix}:{table}:rows` with score=created_at epoch seconds, member=id
    The store assigns `id`, `created_at` and `updated_at` the way a database
    column default would.
    """

    def __init__(
        self,
        *,
        url: str,
        key_prefix: str = "tasktracker",
        client: aioredis.Redis | None = None,
    ) -> None:
        self._redis: aioredis.Redis = client or aioredis.Redis.from_url(url)
        self._prefix = key_prefix.rstrip(":")

    # key helpers
    def _row_key(self, table: str, row_id: str) -> str:
        return f"{self._prefix}:{table}:row:{row_id}"

    def _index_key(self, table: str) -> str:
        return f"{self._prefix}:{table}:rows"

    async def aclose(self) -> None:
        await self._redis.aclose()

    @staticmethod
    def _failure(exc: redis_exceptions.RedisError) -> StoreResponse:
        if isinstance(exc, redis_exceptions.TimeoutError):
            return StoreResponse.failed(f"request timeout: {exc}")
        if isinstance(exc, redis_exceptions.ConnectionError):
            return StoreResponse.failed(f"network error: {exc}")
        return StoreResponse.failed(str(exc) or exc.__class__.__name__)

    async def _load(self, table: str, row_id: str) -> Row | None:
        raw = cast(bytes | None, await self._redis.hget(self._row_key(table, row_id), "json"))
        if raw is None:
            return None
        return cast(Row, json.loads(raw.decode("utf-8")))

    async def insert(self, table: str, row: Row) -> StoreResponse:
        now = _dt.datetime.now(_dt.UTC)
        stored: dict[str, Any] = dict(row)
        stored["id"] = str(uuid.uuid4())
        stored["created_at"] = now.isoformat()
        stored["updated_at"] = now.isoformat()
        payload = json.dumps(stored, separators=(",", ":"))
        try:
            p = self._redis.pipeline()
            p.hset(self._row_key(table, stored["id"]), mapping={"json": payload})
            p.zadd(self._index_key(table), {stored["id"]: now.timestamp()})
            await p.execute()
        except redis_exceptions.RedisError as exc:
            return self._failure(exc)
        return StoreResponse(data=stored)

    async def select(self, table: str, order_by: Sequence[OrderBy] = ()) -> StoreResponse:
        try:
            ids_bytes = cast(list[bytes], await self._redis.zrange(self._index_key(table), 0, -1))
            rows: list[Row] = []
            for raw_id in ids_bytes:
                row = await self._load(table, raw_id.decode("utf-8"))
                if row is not None:
                    rows.append(row)
        except redis_exceptions.RedisError as exc:
            return self._failure(exc)
        return StoreResponse(data=_sort_rows(rows, order_by))

    async def update(self, table: str, row_id: str, values: Row) -> StoreResponse:
        row_key = self._row_key(table, row_id)
        index_key = self._index_key(table)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        # Aborts the write if a concurrent delete touches either key
                        await pipe.watch(row_key, index_key)
                        if await pipe.zscore(index_key, row_id) is None:
                            return StoreResponse(data=None)
                        raw = cast(bytes | None, await pipe.hget(row_key, "json"))
                        if raw is None:
                            return StoreResponse(data=None)
                        current = cast(Row, json.loads(raw.decode("utf-8")))
                        current.update(
                            {k: v for k, v in values.items() if k not in ("id", "created_at")}
                        )
                        current["updated_at"] = _dt.datetime.now(_dt.UTC).isoformat()
                        pipe.multi()
                        pipe.hset(
                            row_key, mapping={"json": json.dumps(current, separators=(",", ":"))}
                        )
                        await pipe.execute()
                        break
                    except redis_exceptions.WatchError:
                        continue
        except redis_exceptions.RedisError as exc:
            return self._failure(exc)
        return StoreResponse(data=current)

    async def delete(self, table: str, row_id: str) -> StoreResponse:
        try:
            p = self._redis.pipeline()
            p.delete(self._row_key(table, row_id))
            p.zrem(self._index_key(table), row_id)
            await p.execute()
        except redis_exceptions.RedisError as exc:
            return self._failure(exc)
        return StoreResponse()


__all__ = ["RedisTableClient"]
