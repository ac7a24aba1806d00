"""Data store interface.

Services only need simple table operations: column filters, newest-first
ordering and a row limit. No multi-table transactions are involved.

A filter value matches by equality unless it is one of the operators below.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

Row = dict[str, Any]
Filters = Mapping[str, Any]


@dataclass(frozen=True)
class AnyOf:
    """Column equals one of ``values``."""

    values: tuple[Any, ...]


@dataclass(frozen=True)
class AtLeast:
    """Column is greater than or equal to ``value``."""

    value: Any


class AbstractDataStore(ABC):
    """Interface for table-oriented persistence."""

    @abstractmethod
    async def select(
        self,
        table: str,
        *,
        filters: Filters | None = None,
        columns: str = "*",
        order_by: str | None = "created_at",
        descending: bool = True,
        limit: int | None = None,
    ) -> list[Row]:
        """Return rows of ``table`` matching every equality filter."""
        ...

    async def select_one(self, table: str, filters: Filters) -> Row | None:
        rows = await self.select(table, filters=filters, order_by=None, limit=1)
        return rows[0] if rows else None

    @abstractmethod
    async def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        """Insert one row and return it as stored."""
        ...

    @abstractmethod
    async def update(self, table: str, values: Mapping[str, Any], filters: Filters) -> list[Row]:
        """Update matching rows and return them."""
        ...

    @abstractmethod
    async def upsert(self, table: str, values: Mapping[str, Any], *, on_conflict: str) -> Row:
        """Insert or merge one row keyed on the ``on_conflict`` column."""
        ...

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> int:
        """Delete matching rows and return how many were removed."""
        ...

    @abstractmethod
    async def count(self, table: str, *, filters: Filters | None = None) -> int:
        """Count rows matching ``filters``."""
        ...
