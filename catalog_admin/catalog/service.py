"""Catalog service for the admin screens.

Backs the listing and edit screens: full-table reads of joined
views and single-row mutations. Deletes never cascade.
"""

import asyncio
import time

import structlog

from catalog_admin.catalog.repository import CatalogRepository
from catalog_admin.domain.drafts import AddonVariantEdit, NamedImage, VariantEdit
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
    dump_name_list,
    parse_name_list,
)
from catalog_admin.domain.exceptions import DraftValidationError, UploadError
from catalog_admin.domain.value_objects import (
    addon_replacement_image_key,
    appended_image_key,
    replacement_image_key,
)
from catalog_admin.infrastructure.config import settings
from catalog_admin.infrastructure.provider import get_backend

logger = structlog.get_logger()


class CatalogService:
    """Service for the catalog admin screens.

    Example usage:
        service = get_catalog_service()
        categories = await service.list_categories()
        await service.rename_addon_category(3, "Cushions")
    """

    def __init__(
        self,
        repo: CatalogRepository | None = None,
        request_id: str | None = None,
    ) -> None:
        """Initialize service.

        Args:
            repo: Catalog repository (built from the global backend if omitted).
            request_id: Request ID for correlation.
        """
        self.repo = repo or CatalogRepository(get_backend(), settings.storage_bucket)
        self.request_id = request_id

    def image_url(self, key: str | None) -> str | None:
        return self.repo.image_url(key)

    # ========================================================================
    # Categories
    # ========================================================================

    async def list_categories(self) -> list[Category]:
        """All categories, ascending by id."""
        return await self.repo.list_categories()

    async def get_category(self, category_id: int) -> Category:
        return await self.repo.get_category(category_id)

    async def category_options(self) -> list[Category]:
        """Categories with their subcategory lists, for the creation form selectors."""
        return [c for c in await self.repo.list_categories() if c.name]

    async def create_category(
        self, name: str, subcategories: str | list[str]
    ) -> Category:
        """Create a category with the next free id.

        Args:
            name: Category name.
            subcategories: List or comma-separated string of subcategory names.

        Returns:
            Created category.

        Raises:
            DraftValidationError: If the name is blank.
        """
        name = (name or "").strip()
        if not name:
            raise DraftValidationError(["name is required"])

        category = Category(
            id=await self.repo.next_category_id(),
            name=name,
            subcategories=parse_name_list(subcategories),
        )
        row = await self.repo.insert(CATEGORIES_TABLE, category.to_row())

        logger.info(
            "Category created",
            category_id=row["id"],
            name=name,
            request_id=self.request_id,
        )
        return Category.from_row(row)

    async def update_category(
        self,
        category_id: int,
        name: str | None = None,
        subcategories: str | list[str] | None = None,
    ) -> Category:
        """Update a category's name and/or subcategories.

        Raises:
            DraftValidationError: If the name is given but blank.
            RecordNotFoundError: If the category does not exist.
        """
        patch = {}
        if name is not None:
            if not name.strip():
                raise DraftValidationError(["name must not be empty"])
            patch["name"] = name.strip()
        if subcategories is not None:
            patch["subcategories"] = dump_name_list(parse_name_list(subcategories))
        if not patch:
            return await self.repo.get_category(category_id)

        row = await self.repo.update(CATEGORIES_TABLE, category_id, patch)
        logger.info("Category updated", category_id=category_id, request_id=self.request_id)
        return Category.from_row(row)

    async def delete_category(self, category_id: int) -> None:
        await self.repo.delete(CATEGORIES_TABLE, category_id)
        logger.info("Category deleted", category_id=category_id, request_id=self.request_id)

    # ========================================================================
    # Products
    # ========================================================================

    async def list_products(self) -> list[Product]:
        return await self.repo.list_products()

    async def delete_product(self, product_id: int) -> None:
        """Delete a product row. Its variants and add-ons are left in place."""
        await self.repo.delete(PRODUCTS_TABLE, product_id)
        logger.info("Product deleted", product_id=product_id, request_id=self.request_id)

    # ========================================================================
    # Variants
    # ========================================================================

    async def list_variants(self) -> list[Variant]:
        """Variant data table, joined with each product's category triple."""
        return await self.repo.list_variants()

    async def get_variant(self, variant_id: int) -> Variant:
        return await self.repo.get_variant(variant_id)

    async def update_variant(self, variant_id: int, edit: VariantEdit) -> Variant:
        """Save the variant edit form.

        New additional images are appended under
        ``{file name}-{variant id}-{timestamp}``; if any of them fails to
        upload, the ones already uploaded are removed and nothing is
        saved. Only then does a new main image replace the stored one
        under ``{file name}-{variant id}``. If that upload fails, the
        appended images are removed again. A failed row update does not
        restore a replaced main image.

        Raises:
            DraftValidationError: If the edit is invalid.
            RecordNotFoundError: If the variant does not exist.
            UploadError: If an image upload fails.
        """
        edit.validate()
        variant = await self.repo.get_variant(variant_id)
        patch = edit.field_patch()

        added: list[str] = []
        if edit.additional_images:
            added = await self._append_images(variant_id, edit.additional_images)
            patch["additional_images"] = dump_name_list(variant.additional_images + added)

        if edit.main_image is not None:
            try:
                patch["image"] = await self.repo.upload_image(
                    replacement_image_key(edit.main_image.name, variant_id),
                    edit.main_image.image,
                    upsert=True,
                )
            except UploadError:
                if added:
                    await self.repo.remove_images(added)
                raise

        if not patch:
            return variant

        row = await self.repo.update(VARIANTS_TABLE, variant_id, patch)
        logger.info(
            "Variant updated",
            variant_id=variant_id,
            fields=sorted(patch),
            request_id=self.request_id,
        )
        return Variant.from_row(row)

    async def _append_images(
        self, variant_id: int, images: tuple[NamedImage, ...]
    ) -> list[str]:
        now_ms = int(time.time() * 1000)
        # same-name files in one batch would collide on the timestamp
        keys = [
            appended_image_key(named.name, variant_id, now_ms + i)
            for i, named in enumerate(images)
        ]
        results = await asyncio.gather(
            *(
                self.repo.upload_image(key, named.image)
                for key, named in zip(keys, images)
            ),
            return_exceptions=True,
        )

        uploaded = [r for r in results if isinstance(r, str)]
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            if uploaded:
                await self.repo.remove_images(uploaded)
            logger.error(
                "Additional image upload failed",
                variant_id=variant_id,
                failed=len(failures),
                request_id=self.request_id,
            )
            raise failures[0]
        return uploaded

    async def remove_additional_image(self, variant_id: int, key: str) -> Variant:
        """Drop one additional image reference from a variant.

        The stored object itself is kept.
        """
        variant = await self.repo.get_variant(variant_id)
        remaining = [k for k in variant.additional_images if k != key]
        row = await self.repo.update(
            VARIANTS_TABLE, variant_id, {"additional_images": dump_name_list(remaining)}
        )
        logger.info(
            "Additional image removed",
            variant_id=variant_id,
            key=key,
            request_id=self.request_id,
        )
        return Variant.from_row(row)

    async def delete_variant(self, variant_id: int) -> None:
        await self.repo.delete(VARIANTS_TABLE, variant_id)
        logger.info("Variant deleted", variant_id=variant_id, request_id=self.request_id)

    # ========================================================================
    # Add-on categories
    # ========================================================================

    async def list_addon_categories(self) -> list[AddonCategory]:
        """Add-on categories joined with their product's category triple."""
        return await self.repo.list_addon_categories()

    async def rename_addon_category(self, addon_id: int, title: str) -> AddonCategory:
        """Set an add-on category's title.

        Raises:
            DraftValidationError: If the title is blank.
            RecordNotFoundError: If the add-on category does not exist.
        """
        if not title or not title.strip():
            raise DraftValidationError(["title cannot be empty"])
        row = await self.repo.update(ADDON_CATEGORIES_TABLE, addon_id, {"title": title.strip()})
        logger.info("Addon category renamed", addon_id=addon_id, request_id=self.request_id)
        return AddonCategory.from_row(row)

    async def delete_addon_category(self, addon_id: int) -> None:
        """Delete an add-on category. Its add-on variants are left in place."""
        await self.repo.delete(ADDON_CATEGORIES_TABLE, addon_id)
        logger.info("Addon category deleted", addon_id=addon_id, request_id=self.request_id)

    # ========================================================================
    # Add-on variants
    # ========================================================================

    async def list_addon_variants(self) -> list[AddonVariant]:
        """Add-on variants joined with their category title."""
        return await self.repo.list_addon_variants()

    async def get_addon_variant(self, variant_id: int) -> AddonVariant:
        return await self.repo.get_addon_variant(variant_id)

    async def update_addon_variant(
        self, variant_id: int, edit: AddonVariantEdit
    ) -> AddonVariant:
        """Save the add-on variant edit form.

        A new image is stored under ``{title}-{id}`` with spaces in the
        title replaced by underscores.

        Raises:
            DraftValidationError: If the edit is invalid.
            RecordNotFoundError: If the add-on variant does not exist.
            UploadError: If the image upload fails.
        """
        edit.validate()
        current = await self.repo.get_addon_variant(variant_id)
        patch = edit.field_patch()

        if edit.image is not None:
            title = patch.get("title", current.title)
            patch["image"] = await self.repo.upload_image(
                addon_replacement_image_key(title, variant_id),
                edit.image,
                upsert=True,
            )

        if not patch:
            return current

        row = await self.repo.update(ADDON_VARIANTS_TABLE, variant_id, patch)
        logger.info(
            "Addon variant updated",
            variant_id=variant_id,
            fields=sorted(patch),
            request_id=self.request_id,
        )
        return AddonVariant.from_row(row)

    async def delete_addon_variant(self, variant_id: int) -> None:
        await self.repo.delete(ADDON_VARIANTS_TABLE, variant_id)
        logger.info("Addon variant deleted", variant_id=variant_id, request_id=self.request_id)


def get_catalog_service(request_id: str | None = None) -> CatalogService:
    """Get catalog service instance.

    Args:
        request_id: Request ID for correlation.

    Returns:
        CatalogService instance.
    """
    return CatalogService(request_id=request_id)
