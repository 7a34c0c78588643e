"""HTTP client for the hosted table store (PostgREST-compatible REST API).

Tables are addressed as ``{base_url}/rest/v1/{table}``; filters use the
PostgREST query syntax (``column=gte.value``, ``order=column.asc``). Every
transport, status or decoding failure surfaces as StoreError.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import structlog

from shared.dal.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = structlog.get_logger()

_REST_PREFIX = "/rest/v1"


def _parse_content_range_total(header: str | None) -> int | None:
    """Extract N from a ``Content-Range: 0-9/N`` header, or None when absent/unknown."""
    if not header or "/" not in header:
        return None
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else None


class StoreClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + _REST_PREFIX,
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def select(self, table: str, params: Mapping[str, str | int]) -> list[dict[str, Any]]:
        response = await self._request("GET", table, params=params)
        return self._json_rows(response, table)

    async def insert(self, table: str, row: Mapping[str, Any]) -> dict[str, Any]:
        """Insert one row and return it as stored (with server defaults such as id)."""
        response = await self._request(
            "POST",
            table,
            json=dict(row),
            headers={"Prefer": "return=representation"},
        )
        rows = self._json_rows(response, table)
        if len(rows) != 1:
            raise StoreError(f"insert into {table} returned {len(rows)} rows")
        return rows[0]

    async def upsert(self, table: str, row: Mapping[str, Any], *, on_conflict: str) -> None:
        await self._request(
            "POST",
            table,
            json=dict(row),
            params={"on_conflict": on_conflict},
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    async def count(self, table: str, params: Mapping[str, str | int]) -> int:
        """Count rows matching ``params`` using the exact-count header."""
        response = await self._request(
            "GET",
            table,
            params=params,
            headers={"Prefer": "count=exact", "Range-Unit": "items", "Range": "0-0"},
        )
        total = _parse_content_range_total(response.headers.get("content-range"))
        if total is not None:
            return total
        return len(self._json_rows(response, table))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, table: str, **kwargs: Any) -> httpx.Response:  # noqa: ANN401
        try:
            response = await self._client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StoreError(f"{method} {table} returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {table} failed: {e}") from e
        return response

    @staticmethod
    def _json_rows(response: httpx.Response, table: str) -> list[dict[str, Any]]:
        try:
            data = response.json()
        except ValueError as e:
            raise StoreError(f"{table} returned invalid JSON") from e
        if not isinstance(data, list):
            raise StoreError(f"{table} returned {type(data).__name__}, expected a list of rows")
        return data
