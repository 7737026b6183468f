from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import httpx

from .interface import OrderBy, Row, StoreResponse


class PostgrestTableClient:
    """Table client for a hosted PostgREST endpoint (e.g. Supabase `/rest/v1`).

    Request mapping:
    - insert: `POST /{table}` with a one-row array body
    - select: `GET /{table}?select=*&order=a.desc,b.desc`
    - update: `PATCH /{table}?id=eq.{id}`
    - delete: `DELETE /{table}?id=eq.{id}`
    Writes ask for `Prefer: return=representation` so the affected row comes back.
    """

    def __init__(
        self,
        *,
        base_url: str,
        api_key: str | None = None,
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _order_param(order_by: Sequence[OrderBy]) -> str:
        return ",".join(f"{o.column}.{'desc' if o.descending else 'asc'}" for o in order_by)

    @staticmethod
    def _error_from_response(resp: httpx.Response) -> StoreResponse:
        message = resp.reason_phrase or f"HTTP {resp.status_code}"
        code: str | None = str(resp.status_code)
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = str(body.get("message") or body.get("error") or message)
            if body.get("code") is not None:
                code = str(body["code"])
        return StoreResponse.failed(message, code)

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, str] | None = None,
        json_body: Any = None,
        returning: bool = False,
    ) -> tuple[httpx.Response | None, StoreResponse | None]:
        headers = {"Prefer": "return=representation"} if returning else None
        try:
            resp = await self._client.request(
                method, f"/{table}", params=params, json=json_body, headers=headers
            )
        except httpx.TimeoutException as exc:
            return None, StoreResponse.failed(f"request timeout: {exc}")
        except httpx.TransportError as exc:
            return None, StoreResponse.failed(f"network error: {exc}")
        if resp.is_error:
            return None, self._error_from_response(resp)
        return resp, None

    @staticmethod
    def _first_row(resp: httpx.Response) -> Row | None:
        if not resp.content:
            return None
        body = resp.json()
        if isinstance(body, list):
            return body[0] if body else None
        return body if isinstance(body, dict) else None

    async def insert(self, table: str, row: Row) -> StoreResponse:
        resp, failure = await self._request("POST", table, json_body=[row], returning=True)
        if failure is not None:
            return failure
        assert resp is not None
        return StoreResponse(data=self._first_row(resp))

    async def select(self, table: str, order_by: Sequence[OrderBy] = ()) -> StoreResponse:
        params = {"select": "*"}
        if order_by:
            params["order"] = self._order_param(order_by)
        resp, failure = await self._request("GET", table, params=params)
        if failure is not None:
            return failure
        assert resp is not None
        body = resp.json() if resp.content else None
        return StoreResponse(data=body if isinstance(body, list) else None)

    async def update(self, table: str, row_id: str, values: Row) -> StoreResponse:
        resp, failure = await self._request(
            "PATCH", table, params={"id": f"eq.{row_id}"}, json_body=values, returning=True
        )
        if failure is not None:
            return failure
        assert resp is not None
        return StoreResponse(data=self._first_row(resp))

    async def delete(self, table: str, row_id: str) -> StoreResponse:
        _resp, failure = await self._request("DELETE", table, params={"id": f"eq.{row_id}"})
        if failure is not None:
            return failure
        return StoreResponse()


__all__ = ["PostgrestTableClient"]
