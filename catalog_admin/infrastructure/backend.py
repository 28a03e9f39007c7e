"""Backend client for the hosted data store and blob storage.

Provides the narrow contract the catalog services talk through
(query/insert/update/delete on tables, upload/remove on buckets)
and an HTTP implementation for a PostgREST-style backend service.
"""

from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import quote

import httpx
import structlog

logger = structlog.get_logger()


Row = dict[str, Any]
Filter = tuple[str, str, Any]

FILTER_OPERATORS = frozenset({"eq", "neq", "gt", "gte", "lt", "lte", "is"})


def eq(field: str, value: Any) -> Filter:
    """Build an equality filter."""
    return (field, "eq", value)


class BackendClientError(Exception):
    """Error from a backend table or storage call."""

    def __init__(
        self, resource: str, message: str, status_code: int | None = None
    ) -> None:
        self.resource = resource
        self.message = message
        self.status_code = status_code
        super().__init__(f"[{resource}] {message}")


# ============================================================================
# Backend Contract
# ============================================================================


class Backend(ABC):
    """Contract for the remote data store and blob storage.

    Every call is an independent remote operation: there are no
    multi-statement transactions and no concurrency tokens.
    """

    @abstractmethod
    async def query(
        self,
        table: str,
        filters: list[Filter] | tuple[Filter, ...] = (),
        select: str = "*",
        order: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        """Fetch rows matching all filters.

        Args:
            table: Table name.
            filters: (field, op, value) triples, combined with AND.
            select: Column list, may embed related tables ("id, products(category)").
            order: Column to order by, optionally suffixed ".asc" or ".desc".
            limit: Maximum number of rows.

        Returns:
            Matching rows (empty list when nothing matches).
        """

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it with its generated id."""

    @abstractmethod
    async def update(
        self, table: str, filters: list[Filter], patch: Row
    ) -> list[Row]:
        """Apply a partial update and return the updated rows."""

    @abstractmethod
    async def delete(self, table: str, filters: list[Filter]) -> list[Row]:
        """Delete matching rows and return them."""

    @abstractmethod
    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> str:
        """Store an object and return its storage key."""

    @abstractmethod
    async def remove(self, bucket: str, keys: list[str]) -> None:
        """Delete stored objects."""

    @abstractmethod
    def public_url(self, bucket: str, key: str) -> str:
        """Public URL of a stored object."""

    async def health_check(self) -> bool:
        """Check that the backend is reachable."""
        return True

    async def close(self) -> None:
        """Release any held connections."""


def require_filters(table: str, filters: list[Filter]) -> None:
    """Refuse unfiltered bulk writes."""
    if not filters:
        raise BackendClientError(table, "Refusing to write without filters", 400)


# ============================================================================
# HTTP Backend
# ============================================================================


def _format_filter(op: str, value: Any) -> str:
    if op not in FILTER_OPERATORS:
        raise ValueError(f"Unsupported filter operator: {op}")
    if value is None:
        return "not.is.null" if op == "neq" else "is.null"
    if isinstance(value, bool):
        value = str(value).lower()
        if op == "eq":
            op = "is"
    return f"{op}.{value}"


def _error_text(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return data.get("message") or data.get("error") or response.text
    return response.text


class RestBackend(Backend):
    """HTTP client for a hosted PostgREST + object storage service.

    Tables are reached under /rest/v1 and buckets under /storage/v1.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize backend client.

        Args:
            base_url: Service base URL.
            api_key: Service API key, sent as apikey and bearer token.
            timeout: Request timeout in seconds.
            transport: Optional transport override.
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "apikey": self.api_key,
                    "Authorization": f"Bearer {self.api_key}",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def health_check(self) -> bool:
        """Check backend health.

        Returns:
            True if the REST endpoint answers.
        """
        try:
            client = await self._get_client()
            response = await client.get("/rest/v1/")
            return response.status_code < 500
        except httpx.RequestError as e:
            logger.warning("Backend health check failed", error=str(e))
            return False

    def _filter_params(self, filters: list[Filter] | tuple[Filter, ...]) -> list[tuple[str, str]]:
        return [(field, _format_filter(op, value)) for field, op, value in filters]

    async def _send(
        self,
        resource: str,
        method: str,
        url: str,
        expected: tuple[int, ...],
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            client = await self._get_client()
            response = await client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            logger.error(
                "Backend request failed",
                resource=resource,
                method=method,
                error=str(e),
            )
            raise BackendClientError(resource, f"Request failed: {str(e)}") from e

        if response.status_code not in expected:
            raise BackendClientError(
                resource,
                f"{method} failed: {_error_text(response)}",
                response.status_code,
            )
        return response

    async def query(
        self,
        table: str,
        filters: list[Filter] | tuple[Filter, ...] = (),
        select: str = "*",
        order: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        params = [("select", select.replace(" ", "").replace("\n", ""))]
        params.extend(self._filter_params(filters))
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))

        response = await self._send(
            table, "GET", f"/rest/v1/{table}", (200,), params=params
        )
        return response.json()

    async def insert(self, table: str, row: Row) -> Row:
        response = await self._send(
            table,
            "POST",
            f"/rest/v1/{table}",
            (200, 201),
            json=row,
            headers={"Prefer": "return=representation"},
        )
        rows = response.json()
        if not rows:
            raise BackendClientError(table, "Insert returned no row")
        return rows[0]

    async def update(
        self, table: str, filters: list[Filter], patch: Row
    ) -> list[Row]:
        require_filters(table, filters)
        response = await self._send(
            table,
            "PATCH",
            f"/rest/v1/{table}",
            (200,),
            params=self._filter_params(filters),
            json=patch,
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def delete(self, table: str, filters: list[Filter]) -> list[Row]:
        require_filters(table, filters)
        response = await self._send(
            table,
            "DELETE",
            f"/rest/v1/{table}",
            (200,),
            params=self._filter_params(filters),
            headers={"Prefer": "return=representation"},
        )
        return response.json()

    async def upload(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> str:
        await self._send(
            bucket,
            "POST",
            f"/storage/v1/object/{bucket}/{quote(key)}",
            (200, 201),
            content=data,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "x-upsert": "true" if upsert else "false",
            },
        )
        return key

    async def remove(self, bucket: str, keys: list[str]) -> None:
        if not keys:
            return
        await self._send(
            bucket,
            "DELETE",
            f"/storage/v1/object/{bucket}",
            (200,),
            json={"prefixes": keys},
        )

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(key)}"
