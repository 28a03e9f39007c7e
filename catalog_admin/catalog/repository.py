"""Catalog repository over the backend contract.

Typed reads and single-row writes for every catalog table, plus
image upload/removal in the storage bucket. Backend failures are
translated into domain errors here.
"""

from typing import Any

import structlog

from catalog_admin.domain.entities import (
    ADDON_CATEGORIES_TABLE,
    ADDON_VARIANTS_TABLE,
    CATEGORIES_TABLE,
    PRODUCTS_TABLE,
    VARIANTS_TABLE,
    AddonCategory,
    AddonVariant,
    Category,
    Product,
    Variant,
)
from catalog_admin.domain.exceptions import (
    RecordNotFoundError,
    RemoteQueryError,
    RemoteWriteError,
    UploadError,
)
from catalog_admin.domain.value_objects import CategoryTriple, ImageData
from catalog_admin.infrastructure.backend import (
    Backend,
    BackendClientError,
    Filter,
    Row,
    eq,
)

logger = structlog.get_logger()

VARIANT_TABLE_SELECT = (
    "id, title, price, details, image, additional_images, product_id, "
    "dimensions, manufacturer, segment, "
    "products(category, subcategory, subcategory1)"
)
ADDON_CATEGORY_SELECT = (
    "id, title, productid, products(id, category, subcategory, subcategory1)"
)
ADDON_VARIANT_SELECT = "id, title, price, image, addonid, addons(title)"


class CatalogRepository:
    """Repository for catalog tables and the image bucket.

    Example usage:
        repo = CatalogRepository(get_backend(), bucket="addon")
        categories = await repo.list_categories()
        variant = await repo.get_variant(12)
    """

    def __init__(self, backend: Backend, bucket: str) -> None:
        """Initialize repository.

        Args:
            backend: Backend the tables and bucket live in.
            bucket: Storage bucket for catalog images.
        """
        self.backend = backend
        self.bucket = bucket

    # ------------------------------------------------------------------
    # Generic operations
    # ------------------------------------------------------------------

    async def query(
        self,
        table: str,
        filters: list[Filter] | tuple[Filter, ...] = (),
        select: str = "*",
        order: str | None = None,
        limit: int | None = None,
    ) -> list[Row]:
        try:
            return await self.backend.query(
                table, filters, select=select, order=order, limit=limit
            )
        except BackendClientError as e:
            logger.error("Query failed", table=table, error=str(e))
            raise RemoteQueryError(table, e.message, e.status_code) from e

    async def get_row(self, table: str, record_id: Any, select: str = "*") -> Row:
        """Fetch one row by id.

        Raises:
            RecordNotFoundError: If no row has this id.
        """
        rows = await self.query(table, [eq("id", record_id)], select=select)
        if not rows:
            raise RecordNotFoundError(table, record_id)
        return rows[0]

    async def insert(self, table: str, row: Row) -> Row:
        try:
            return await self.backend.insert(table, row)
        except BackendClientError as e:
            logger.error("Insert failed", table=table, error=str(e))
            raise RemoteWriteError(table, e.message, e.status_code) from e

    async def update(self, table: str, record_id: Any, patch: Row) -> Row:
        """Update one row by id.

        Raises:
            RecordNotFoundError: If no row has this id.
            RemoteWriteError: If the backend rejects the update.
        """
        try:
            rows = await self.backend.update(table, [eq("id", record_id)], patch)
        except BackendClientError as e:
            logger.error("Update failed", table=table, id=record_id, error=str(e))
            raise RemoteWriteError(table, e.message, e.status_code) from e
        if not rows:
            raise RecordNotFoundError(table, record_id)
        return rows[0]

    async def delete(self, table: str, record_id: Any) -> Row:
        """Delete one row by id. No dependent rows are touched.

        Raises:
            RecordNotFoundError: If no row has this id.
            RemoteWriteError: If the backend rejects the delete.
        """
        try:
            rows = await self.backend.delete(table, [eq("id", record_id)])
        except BackendClientError as e:
            logger.error("Delete failed", table=table, id=record_id, error=str(e))
            raise RemoteWriteError(table, e.message, e.status_code) from e
        if not rows:
            raise RecordNotFoundError(table, record_id)
        return rows[0]

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def upload_image(
        self, key: str, image: ImageData, upsert: bool = False
    ) -> str:
        """Upload image bytes under key and return the storage key."""
        try:
            return await self.backend.upload(
                self.bucket,
                key,
                image.content,
                content_type=image.content_type,
                upsert=upsert,
            )
        except BackendClientError as e:
            logger.error("Upload failed", bucket=self.bucket, key=key, error=str(e))
            raise UploadError(self.bucket, e.message, e.status_code) from e

    async def remove_images(self, keys: list[str]) -> None:
        try:
            await self.backend.remove(self.bucket, keys)
        except BackendClientError as e:
            logger.error("Image removal failed", bucket=self.bucket, keys=keys, error=str(e))
            raise RemoteWriteError(self.bucket, e.message, e.status_code) from e

    def image_url(self, key: str | None) -> str | None:
        """Public URL for a storage key, None for a missing key."""
        if not key:
            return None
        return self.backend.public_url(self.bucket, key)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    async def list_categories(self) -> list[Category]:
        rows = await self.query(CATEGORIES_TABLE)
        return sorted((Category.from_row(r) for r in rows), key=lambda c: c.id)

    async def get_category(self, category_id: int) -> Category:
        return Category.from_row(await self.get_row(CATEGORIES_TABLE, category_id))

    async def next_category_id(self) -> int:
        rows = await self.query(
            CATEGORIES_TABLE, select="id", order="id.desc", limit=1
        )
        return rows[0]["id"] + 1 if rows else 1

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    async def find_products(self, triple: CategoryTriple) -> list[Row]:
        """Product rows matching all three fields exactly (None matches NULL)."""
        return await self.query(
            PRODUCTS_TABLE,
            [
                eq("category", triple.category),
                eq("subcategory", triple.subcategory),
                eq("subcategory1", triple.sub_subcategory),
            ],
            select="id",
        )

    async def list_products(self) -> list[Product]:
        rows = await self.query(PRODUCTS_TABLE)
        return [Product.from_row(r) for r in rows]

    # ------------------------------------------------------------------
    # Variants
    # ------------------------------------------------------------------

    async def list_variants(self) -> list[Variant]:
        rows = await self.query(VARIANTS_TABLE, select=VARIANT_TABLE_SELECT)
        return [Variant.from_row(r) for r in rows]

    async def get_variant(self, variant_id: int) -> Variant:
        return Variant.from_row(await self.get_row(VARIANTS_TABLE, variant_id))

    # ------------------------------------------------------------------
    # Add-ons
    # ------------------------------------------------------------------

    async def list_addon_categories(self) -> list[AddonCategory]:
        rows = await self.query(ADDON_CATEGORIES_TABLE, select=ADDON_CATEGORY_SELECT)
        return [AddonCategory.from_row(r) for r in rows]

    async def list_addon_variants(self) -> list[AddonVariant]:
        rows = await self.query(ADDON_VARIANTS_TABLE, select=ADDON_VARIANT_SELECT)
        return [AddonVariant.from_row(r) for r in rows]

    async def get_addon_variant(self, variant_id: int) -> AddonVariant:
        return AddonVariant.from_row(await self.get_row(ADDON_VARIANTS_TABLE, variant_id))
