"""Supabase data store over the PostgREST HTTP API.

Uses the service-role key, so it must only run server-side.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from arqsite.adapters.database.base import AbstractDataStore, AnyOf, AtLeast, Filters, Row
from arqsite.core.errors import ExternalServiceAppError

logger = logging.getLogger(__name__)


def _quote(value: Any) -> str:
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _filter_value(value: Any) -> str:
    if isinstance(value, AnyOf):
        return f"in.({','.join(_quote(item) for item in value.values)})"
    if isinstance(value, AtLeast):
        return f"gte.{value.value}"
    if value is None:
        return "is.null"
    if isinstance(value, bool):
        return f"is.{str(value).lower()}"
    return f"eq.{value}"


def build_query_params(
    *,
    filters: Filters | None = None,
    columns: str | None = None,
    order_by: str | None = None,
    descending: bool = True,
    limit: int | None = None,
) -> dict[str, str]:
    """Translate select options into PostgREST query parameters."""
    params: dict[str, str] = {}
    if columns:
        params["select"] = columns
    for column, value in (filters or {}).items():
        params[column] = _filter_value(value)
    if order_by:
        params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
    if limit is not None:
        params["limit"] = str(limit)
    return params


def _parse_content_range(header: str | None) -> int:
    # e.g. "0-24/3573" or "*/0"
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class SupabaseRestStore(AbstractDataStore):
    """Thin async wrapper around ``{url}/rest/v1/{table}``."""

    def __init__(
        self,
        *,
        url: str,
        service_role_key: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = f"{url.rstrip('/')}/rest/v1"
        self._service_role_key = service_role_key
        self._timeout = timeout_seconds
        self._transport = transport

    def __repr__(self) -> str:
        return f"<SupabaseRestStore base_url={self.base_url}>"

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_role_key,
            "Authorization": f"Bearer {self._service_role_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: Mapping[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.request(
                    method,
                    f"{self.base_url}/{table}",
                    params=params,
                    json=json,
                    headers=self._headers(prefer),
                )
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as exc:
                logger.error(
                    "database.request_failed",
                    extra={
                        "table": table,
                        "method": method,
                        "http_status": exc.response.status_code,
                    },
                )
                raise ExternalServiceAppError(
                    code="database_error",
                    message="Database request failed",
                    details={"table": table, "http_status": exc.response.status_code},
                ) from exc
            except httpx.HTTPError as exc:
                logger.error(
                    "database.unreachable",
                    extra={"table": table, "method": method, "error_type": type(exc).__name__},
                )
                raise ExternalServiceAppError(
                    code="database_unavailable",
                    message="Database is unreachable",
                    details={"table": table},
                ) from exc

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
        params = build_query_params(
            filters=filters,
            columns=columns,
            order_by=order_by,
            descending=descending,
            limit=limit,
        )
        response = await self._request("GET", table, params=params)
        return list(response.json() or [])

    async def insert(self, table: str, values: Mapping[str, Any]) -> Row:
        response = await self._request(
            "POST", table, json=dict(values), prefer="return=representation"
        )
        rows = response.json() or []
        return rows[0] if rows else dict(values)

    async def update(self, table: str, values: Mapping[str, Any], filters: Filters) -> list[Row]:
        if not filters:
            raise ValueError("update requires at least one filter")
        response = await self._request(
            "PATCH",
            table,
            params=build_query_params(filters=filters),
            json=dict(values),
            prefer="return=representation",
        )
        return list(response.json() or [])

    async def upsert(self, table: str, values: Mapping[str, Any], *, on_conflict: str) -> Row:
        response = await self._request(
            "POST",
            table,
            params={"on_conflict": on_conflict},
            json=dict(values),
            prefer="resolution=merge-duplicates,return=representation",
        )
        rows = response.json() or []
        return rows[0] if rows else dict(values)

    async def delete(self, table: str, filters: Filters) -> int:
        if not filters:
            raise ValueError("delete requires at least one filter")
        response = await self._request(
            "DELETE",
            table,
            params=build_query_params(filters=filters),
            prefer="return=representation",
        )
        return len(response.json() or [])

    async def count(self, table: str, *, filters: Filters | None = None) -> int:
        response = await self._request(
            "HEAD",
            table,
            params=build_query_params(filters=filters, columns="id"),
            prefer="count=exact",
        )
        return _parse_content_range(response.headers.get("content-range"))
