"""Tests for add-on API endpoints."""

from fastapi.testclient import TestClient

from catalog_admin.infrastructure.memory_backend import InMemoryBackend


class TestAddonCategories:
    """Tests for /addons."""

    def test_list(self, client: TestClient, seeded: InMemoryBackend) -> None:
        response = client.get("/addons")
        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["title"] == "Cushions"
        assert item["product_id"] == 1
        assert item["product"]["category"] == "Furniture"

    def test_rename(self, client: TestClient, seeded: InMemoryBackend) -> None:
        response = client.patch("/addons/1", json={"title": "Pillows"})
        assert response.status_code == 200
        assert response.json()["title"] == "Pillows"

    def test_rename_blank(self, client: TestClient, seeded: InMemoryBackend) -> None:
        response = client.patch("/addons/1", json={"title": " "})
        assert response.status_code == 422
        assert seeded.tables["addons"][0]["title"] == "Cushions"

    def test_rename_missing(self, client: TestClient, seeded: InMemoryBackend) -> None:
        assert client.patch("/addons/9", json={"title": "X"}).status_code == 404

    def test_delete(self, client: TestClient, seeded: InMemoryBackend) -> None:
        assert client.delete("/addons/1").status_code == 204
        assert client.get("/addons").json()["total"] == 0
        assert client.get("/addon-variants").json()["total"] == 1


class TestAddonVariants:
    """Tests for /addon-variants."""

    def test_list(self, client: TestClient, seeded: InMemoryBackend) -> None:
        response = client.get("/addon-variants")
        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["addon_title"] == "Cushions"
        assert item["price"] == 10.5
        assert item["image_url"].endswith("/addon/Gel-1")

    def test_get_missing(self, client: TestClient, seeded: InMemoryBackend) -> None:
        assert client.get("/addon-variants/5").status_code == 404

    def test_update(
        self, client: TestClient, seeded: InMemoryBackend, png_base64: str
    ) -> None:
        response = client.patch(
            "/addon-variants/1",
            json={
                "title": "Memory Foam",
                "price": 12,
                "image": {"filename": "ignored", "data": png_base64},
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Memory Foam"
        assert data["price"] == 12
        assert data["image"] == "Memory_Foam-1"

    def test_move_to_other_category(self, client: TestClient, seeded: InMemoryBackend) -> None:
        seeded.seed("addons", [{"title": "Covers", "productid": 1}])
        response = client.patch("/addon-variants/1", json={"addon_id": 2})
        assert response.status_code == 200
        assert response.json()["addon_id"] == 2

    def test_delete(self, client: TestClient, seeded: InMemoryBackend) -> None:
        assert client.delete("/addon-variants/1").status_code == 204
        assert client.get("/addon-variants").json()["total"] == 0
