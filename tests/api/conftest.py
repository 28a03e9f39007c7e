"""Shared fixtures for API tests."""

import pytest
from fastapi.testclient import TestClient

from catalog_admin.infrastructure.memory_backend import InMemoryBackend
from catalog_admin.infrastructure.provider import set_backend
from catalog_admin.main import app


@pytest.fixture
def client(backend: InMemoryBackend) -> TestClient:
    """Create test client over the in-memory backend."""
    set_backend(backend)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def seeded(backend: InMemoryBackend) -> InMemoryBackend:
    """In-memory backend holding a small catalog."""
    backend.seed(
        "categories",
        [{"id": 1, "name": "Furniture", "subcategories": '["Chairs"]'}],
    )
    backend.seed(
        "products",
        [{"category": "Furniture", "subcategory": "Chairs", "subcategory1": "Office"}],
    )
    backend.seed(
        "product_variants",
        [
            {
                "product_id": 1,
                "title": "Mesh Chair",
                "price": 99,
                "image": "Mesh Chair-main-1",
                "additional_images": '["Mesh Chair-0-1"]',
            }
        ],
    )
    backend.seed("addons", [{"title": "Cushions", "productid": 1}])
    backend.seed(
        "addon_variants",
        [{"addonid": 1, "title": "Gel", "price": 10.5, "image": "Gel-1"}],
    )
    return backend
