from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

Row = dict[str, Any]


@dataclass(slots=True)
class StoreError:
    message: str
    code: str | None = None


@dataclass(slots=True)
class StoreResponse:
    """`{data, error}` result of one round trip.

    `data` is a list of rows for select, the affected row for
    insert/update (None when nothing matched) and None for delete.
    """

    data: Any = None
    error: StoreError | None = None

    @classmethod
    def failed(cls, message: str, code: str | None = None) -> StoreResponse:
        return cls(data=None, error=StoreError(message=message, code=code))


@dataclass(frozen=True, slots=True)
class OrderBy:
    column: str
    descending: bool = False


class TableClient(Protocol):
    """Minimal table client for a hosted relational store.

    Keep this tiny and stable to enable swapping backends without changing callers.
    Transport failures should come back as a `StoreError`; implementations may
    still raise for programming errors.
    """

    async def insert(self, table: str, row: Row) -> StoreResponse:
        """Insert one row and return it as stored (id and timestamps assigned)."""

    async def select(self, table: str, order_by: Sequence[OrderBy] = ()) -> StoreResponse:
        """Return every row of the table, ordered by the given keys in turn."""

    async def update(self, table: str, row_id: str, values: Row) -> StoreResponse:
        """Update the row whose id matches and return it, or None if none matched."""

    async def delete(self, table: str, row_id: str) -> StoreResponse:
        """Delete the row whose id matches."""

    async def aclose(self) -> None:
        """Release connections."""


__all__ = ["Row", "StoreError", "StoreResponse", "OrderBy", "TableClient"]
