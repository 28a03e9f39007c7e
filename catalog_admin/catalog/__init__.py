"""Catalog access - repository over the backend and the admin screen service."""

from catalog_admin.catalog.repository import CatalogRepository
from catalog_admin.catalog.service import CatalogService, get_catalog_service

__all__ = ["CatalogRepository", "CatalogService", "get_catalog_service"]
