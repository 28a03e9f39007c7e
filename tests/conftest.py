"""Shared fixtures for catalog admin tests."""

import base64

import pytest

from catalog_admin.catalog.repository import CatalogRepository
from catalog_admin.domain.entities import CATALOG_RELATIONS
from catalog_admin.domain.value_objects import ImageData
from catalog_admin.infrastructure.memory_backend import InMemoryBackend
from catalog_admin.infrastructure.provider import set_backend

BUCKET = "addon"

PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
)


@pytest.fixture
def png_image() -> ImageData:
    """A tiny decoded PNG."""
    return ImageData(content=PNG_BYTES, content_type="image/png")


@pytest.fixture
def png_base64() -> str:
    """The same PNG as a data URI."""
    return "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode()


@pytest.fixture
def backend() -> InMemoryBackend:
    """Fresh in-memory backend with the catalog relations."""
    return InMemoryBackend(relations=CATALOG_RELATIONS)


@pytest.fixture
def repo(backend: InMemoryBackend) -> CatalogRepository:
    """Catalog repository over the in-memory backend."""
    return CatalogRepository(backend, BUCKET)


@pytest.fixture(autouse=True)
def reset_backend_singleton():
    """Keep the process-wide backend from leaking between tests."""
    set_backend(None)
    yield
    set_backend(None)
