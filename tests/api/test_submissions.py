"""Tests for the submission API endpoint."""

from fastapi.testclient import TestClient

from catalog_admin.infrastructure.memory_backend import InMemoryBackend


def mesh_chair_payload(image: str) -> dict:
    return {
        "category": "Furniture",
        "subcategory": "Chairs",
        "sub_subcategory": "Office",
        "variants": [
            {
                "title": "Mesh Chair",
                "price": "99",
                "details": "Breathable back",
                "main_image": {"filename": "chair", "data": image},
                "additional_images": [{"filename": "side", "data": image}],
            }
        ],
        "addon_category_title": "Cushions",
        "addons": [
            {"title": "Gel", "price": 10, "image": {"filename": "gel", "data": image}},
            {"title": "Foam", "price": 8, "image": {"filename": "foam", "data": image}},
        ],
    }


class TestSubmit:
    """Tests for POST /submissions."""

    def test_full_submission(
        self, client: TestClient, backend: InMemoryBackend, png_base64: str
    ) -> None:
        response = client.post("/submissions", json=mesh_chair_payload(png_base64))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["product_created"] is True
        assert data["product_id"] == 1
        assert data["addon_category_id"] == 1
        assert data["variants"]["committed"] == [1]
        assert data["addons"]["committed"] == [1, 2]
        assert data["notifications"][-1] == {
            "level": "success",
            "message": "Data inserted successfully!",
        }
        assert set(backend.buckets["addon"]) == {
            "Mesh Chair-main-1",
            "Mesh Chair-0-1",
            "Gel-1",
            "Foam-1",
        }

    def test_partial_failure_still_ok(
        self, client: TestClient, backend: InMemoryBackend, png_base64: str
    ) -> None:
        """Remote failures are reported in the body, not as an error status."""
        backend.faults.fail_upload("Gel-1")

        response = client.post("/submissions", json=mesh_chair_payload(png_base64))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["addons"]["failed"][0]["title"] == "Gel"
        assert data["addons"]["committed"] == [1]
        assert any(n["level"] == "error" for n in data["notifications"])

    def test_atomic_rolls_back(
        self, client: TestClient, backend: InMemoryBackend, png_base64: str
    ) -> None:
        backend.faults.fail_upload("Gel-1")
        payload = mesh_chair_payload(png_base64)
        payload["atomic"] = True

        response = client.post("/submissions", json=payload)

        data = response.json()
        assert data["rolled_back"] is True
        assert backend.tables["products"] == []
        assert backend.tables["product_variants"] == []
        assert backend.buckets["addon"] == {}

    def test_invalid_draft_makes_no_calls(
        self, client: TestClient, backend: InMemoryBackend, png_base64: str
    ) -> None:
        payload = mesh_chair_payload(png_base64)
        payload["subcategory"] = ""
        payload["variants"][0]["price"] = "-5"

        response = client.post("/submissions", json=payload)

        assert response.status_code == 422
        problems = response.json()["details"]["problems"]
        assert "sub_subcategory requires a subcategory" in problems
        assert "variants[0].price must not be negative" in problems
        assert backend.operations == []

    def test_unstorable_price_rejected(
        self, client: TestClient, backend: InMemoryBackend, png_base64: str
    ) -> None:
        payload = mesh_chair_payload(png_base64)
        payload["variants"][0]["price"] = "1e5000"

        response = client.post("/submissions", json=payload)

        assert response.status_code == 422
        assert response.json()["details"]["problems"] == [
            "variants[0].price must not exceed 99999999.99"
        ]
        assert backend.operations == []

    def test_undecodable_image_rejected(
        self, client: TestClient, backend: InMemoryBackend, png_base64: str
    ) -> None:
        payload = mesh_chair_payload(png_base64)
        payload["addons"][1]["image"]["data"] = "not-base64!"

        response = client.post("/submissions", json=payload)

        assert response.status_code == 422
        assert response.json()["details"]["problems"][0].startswith("addons[1].image:")
        assert backend.operations == []

    def test_resolver_failure_reported(
        self, client: TestClient, backend: InMemoryBackend, png_base64: str
    ) -> None:
        backend.faults.fail_query("products")

        response = client.post("/submissions", json=mesh_chair_payload(png_base64))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "QUERY_FAILED"
        assert data["notifications"][0]["message"] == "Error checking existing product."
