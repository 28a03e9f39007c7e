"""Tests for the HTTP backend client."""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from catalog_admin.infrastructure.backend import BackendClientError, RestBackend, eq


def make_backend(handler) -> tuple[RestBackend, list[httpx.Request]]:
    """Create a backend whose requests are answered by handler and recorded."""
    requests: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    backend = RestBackend(
        base_url="http://backend.test/",
        api_key="anon-key",
        transport=httpx.MockTransport(recording),
    )
    return backend, requests


class TestTables:
    """Tests for table requests."""

    @pytest.mark.asyncio
    async def test_query_builds_filters(self) -> None:
        """Filters become PostgREST params; None is sent as is.null."""
        backend, requests = make_backend(lambda r: httpx.Response(200, json=[{"id": 1}]))

        rows = await backend.query(
            "products",
            [eq("category", "Furniture"), eq("subcategory", None)],
            select="id, products(category)",
            order="id.desc",
            limit=1,
        )

        assert rows == [{"id": 1}]
        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/products"
        params = request.url.params
        assert params["select"] == "id,products(category)"
        assert params["category"] == "eq.Furniture"
        assert params["subcategory"] == "is.null"
        assert params["order"] == "id.desc"
        assert params["limit"] == "1"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"
        await backend.close()

    @pytest.mark.asyncio
    async def test_insert_returns_representation(self) -> None:
        backend, requests = make_backend(
            lambda r: httpx.Response(201, json=[{"id": 7, "category": "A"}])
        )

        row = await backend.insert("products", {"category": "A"})

        assert row == {"id": 7, "category": "A"}
        assert requests[0].headers["Prefer"] == "return=representation"
        assert json.loads(requests[0].content) == {"category": "A"}
        await backend.close()

    @pytest.mark.asyncio
    async def test_update_sends_patch_with_filter(self) -> None:
        backend, requests = make_backend(lambda r: httpx.Response(200, json=[{"id": 3}]))

        rows = await backend.update("addons", [eq("id", 3)], {"title": "New"})

        assert rows == [{"id": 3}]
        assert requests[0].method == "PATCH"
        assert requests[0].url.params["id"] == "eq.3"
        await backend.close()

    @pytest.mark.asyncio
    async def test_error_status_raises(self) -> None:
        """Non-success responses raise with the backend's message."""
        backend, _ = make_backend(
            lambda r: httpx.Response(409, json={"message": "duplicate key"})
        )

        with pytest.raises(BackendClientError) as exc_info:
            await backend.insert("categories", {"id": 1})

        assert exc_info.value.status_code == 409
        assert exc_info.value.resource == "categories"
        assert "duplicate key" in exc_info.value.message
        await backend.close()

    @pytest.mark.asyncio
    async def test_unfiltered_delete_refused(self) -> None:
        backend, requests = make_backend(lambda r: httpx.Response(200, json=[]))

        with pytest.raises(BackendClientError):
            await backend.delete("products", [])

        assert requests == []

    @pytest.mark.asyncio
    async def test_request_error_wrapped(self) -> None:
        backend = RestBackend(base_url="http://backend.test", api_key="k")

        with patch.object(backend, "_get_client", new_callable=AsyncMock) as mock_get_client:
            mock_http_client = AsyncMock()
            mock_http_client.request = AsyncMock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            mock_get_client.return_value = mock_http_client

            with pytest.raises(BackendClientError) as exc_info:
                await backend.query("products")

        assert exc_info.value.status_code is None
        assert "Connection refused" in exc_info.value.message


class TestStorage:
    """Tests for storage requests."""

    @pytest.mark.asyncio
    async def test_upload_quotes_key(self) -> None:
        backend, requests = make_backend(lambda r: httpx.Response(200, json={"Key": "x"}))

        key = await backend.upload(
            "addon", "Mesh Chair-main-1", b"png", content_type="image/png", upsert=True
        )

        assert key == "Mesh Chair-main-1"
        request = requests[0]
        assert request.method == "POST"
        assert request.url.raw_path == b"/storage/v1/object/addon/Mesh%20Chair-main-1"
        assert request.headers["x-upsert"] == "true"
        assert request.headers["Content-Type"] == "image/png"
        assert request.content == b"png"
        await backend.close()

    @pytest.mark.asyncio
    async def test_remove_sends_prefixes(self) -> None:
        backend, requests = make_backend(lambda r: httpx.Response(200, json=[]))

        await backend.remove("addon", ["a", "b"])

        assert requests[0].method == "DELETE"
        assert requests[0].url.path == "/storage/v1/object/addon"
        assert json.loads(requests[0].content) == {"prefixes": ["a", "b"]}
        await backend.close()

    @pytest.mark.asyncio
    async def test_remove_nothing_sends_nothing(self) -> None:
        backend, requests = make_backend(lambda r: httpx.Response(200, json=[]))
        await backend.remove("addon", [])
        assert requests == []

    def test_public_url(self) -> None:
        backend = RestBackend(base_url="http://backend.test/", api_key="k")
        assert (
            backend.public_url("addon", "Gel-3")
            == "http://backend.test/storage/v1/object/public/addon/Gel-3"
        )


class TestHealth:
    """Tests for the backend health check."""

    @pytest.mark.asyncio
    async def test_healthy(self) -> None:
        backend, _ = make_backend(lambda r: httpx.Response(200, json={}))
        assert await backend.health_check() is True
        await backend.close()

    @pytest.mark.asyncio
    async def test_server_error_is_unhealthy(self) -> None:
        backend, _ = make_backend(lambda r: httpx.Response(503))
        assert await backend.health_check() is False
        await backend.close()
