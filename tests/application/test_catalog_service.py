"""Tests for the catalog admin screen service."""

import json
from decimal import Decimal

import pytest

from catalog_admin.catalog.repository import CatalogRepository
from catalog_admin.catalog.service import CatalogService
from catalog_admin.domain.drafts import AddonVariantEdit, NamedImage, VariantEdit
from catalog_admin.domain.exceptions import (
    DraftValidationError,
    RecordNotFoundError,
    RemoteQueryError,
    UploadError,
)
from catalog_admin.domain.value_objects import ImageData
from catalog_admin.infrastructure.memory_backend import InMemoryBackend


@pytest.fixture
def service(repo: CatalogRepository) -> CatalogService:
    return CatalogService(repo=repo, request_id="req-test")


@pytest.fixture
def catalog(backend: InMemoryBackend) -> InMemoryBackend:
    """Backend seeded with one product, variant, add-on category and add-on."""
    backend.seed(
        "categories",
        [
            {"id": 1, "name": "Furniture", "subcategories": '["Chairs", "Desks"]'},
            {"id": 4, "name": "Lighting", "subcategories": "Lamps"},
        ],
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
                "details": "Breathable",
                "image": "Mesh Chair-main-1",
                "additional_images": '["Mesh Chair-0-1"]',
            }
        ],
    )
    backend.seed("addons", [{"title": "Cushions", "productid": 1}])
    backend.seed(
        "addon_variants",
        [{"addonid": 1, "title": "Gel", "price": 10, "image": "Gel-1"}],
    )
    return backend


class TestCategories:
    """Tests for category screens."""

    @pytest.mark.asyncio
    async def test_list_sorted_by_id(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        catalog.seed("categories", [{"id": 2, "name": "Decor", "subcategories": "[]"}])

        categories = await service.list_categories()

        assert [c.id for c in categories] == [1, 2, 4]
        assert categories[0].subcategories == ["Chairs", "Desks"]
        assert categories[2].subcategories == ["Lamps"]

    @pytest.mark.asyncio
    async def test_create_uses_next_id(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        """New ids are one past the highest existing id."""
        category = await service.create_category("Outdoor", "Tables, Umbrellas")

        assert category.id == 5
        assert category.subcategories == ["Tables", "Umbrellas"]
        stored = next(r for r in catalog.tables["categories"] if r["id"] == 5)
        assert json.loads(stored["subcategories"]) == ["Tables", "Umbrellas"]

    @pytest.mark.asyncio
    async def test_create_first_category(
        self, service: CatalogService, backend: InMemoryBackend
    ) -> None:
        category = await service.create_category("Furniture", ["Chairs"])
        assert category.id == 1

    @pytest.mark.asyncio
    async def test_create_requires_name(self, service: CatalogService) -> None:
        with pytest.raises(DraftValidationError):
            await service.create_category("  ", "")

    @pytest.mark.asyncio
    async def test_update(self, service: CatalogService, catalog: InMemoryBackend) -> None:
        category = await service.update_category(1, name="Home", subcategories=["Sofas"])

        assert category.name == "Home"
        assert category.subcategories == ["Sofas"]

    @pytest.mark.asyncio
    async def test_update_missing(self, service: CatalogService, catalog: InMemoryBackend) -> None:
        with pytest.raises(RecordNotFoundError):
            await service.update_category(99, name="X")

    @pytest.mark.asyncio
    async def test_delete(self, service: CatalogService, catalog: InMemoryBackend) -> None:
        await service.delete_category(4)
        assert [r["id"] for r in catalog.tables["categories"]] == [1]

        with pytest.raises(RecordNotFoundError):
            await service.delete_category(4)

    @pytest.mark.asyncio
    async def test_options(self, service: CatalogService, catalog: InMemoryBackend) -> None:
        options = await service.category_options()
        assert [(c.name, c.subcategories) for c in options] == [
            ("Furniture", ["Chairs", "Desks"]),
            ("Lighting", ["Lamps"]),
        ]

    @pytest.mark.asyncio
    async def test_query_failure_translated(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        catalog.faults.fail_query("categories")
        with pytest.raises(RemoteQueryError):
            await service.list_categories()


class TestProducts:
    """Tests for product screens."""

    @pytest.mark.asyncio
    async def test_delete_does_not_cascade(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        await service.delete_product(1)

        assert await service.list_products() == []
        assert len(catalog.tables["product_variants"]) == 1
        assert len(catalog.tables["addons"]) == 1


class TestVariants:
    """Tests for the variant table and edit form."""

    @pytest.mark.asyncio
    async def test_list_joins_product(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        variants = await service.list_variants()

        assert len(variants) == 1
        assert variants[0].product.sub_subcategory == "Office"
        assert variants[0].price == Decimal("99")
        assert service.image_url(variants[0].image) == (
            "memory://backend/storage/v1/object/public/addon/Mesh Chair-main-1"
        )

    @pytest.mark.asyncio
    async def test_get_missing(self, service: CatalogService, catalog: InMemoryBackend) -> None:
        with pytest.raises(RecordNotFoundError):
            await service.get_variant(99)

    @pytest.mark.asyncio
    async def test_update_fields(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        variant = await service.update_variant(
            1, VariantEdit(title="Mesh Chair Pro", price=Decimal("129.50"), segment="Premium")
        )

        assert variant.title == "Mesh Chair Pro"
        assert variant.price == Decimal("129.5")
        assert variant.segment == "Premium"
        assert variant.details == "Breathable"
        assert catalog.count("upload") == 0

    @pytest.mark.asyncio
    async def test_replace_main_image(
        self,
        service: CatalogService,
        catalog: InMemoryBackend,
        png_image: ImageData,
    ) -> None:
        """The replacement is upserted under {name}-{id}."""
        await catalog.upload("addon", "front-1", b"old")

        variant = await service.update_variant(
            1, VariantEdit(main_image=NamedImage("front", png_image))
        )

        assert variant.image == "front-1"
        assert catalog.buckets["addon"]["front-1"][0] == png_image.content

    @pytest.mark.asyncio
    async def test_append_additional_images(
        self,
        service: CatalogService,
        catalog: InMemoryBackend,
        png_image: ImageData,
    ) -> None:
        variant = await service.update_variant(
            1,
            VariantEdit(
                additional_images=(NamedImage("side", png_image), NamedImage("back", png_image))
            ),
        )

        assert variant.additional_images[0] == "Mesh Chair-0-1"
        assert len(variant.additional_images) == 3
        assert variant.additional_images[1].startswith("side-1-")
        assert variant.additional_images[2].startswith("back-1-")

    @pytest.mark.asyncio
    async def test_append_failure_saves_nothing(
        self,
        service: CatalogService,
        catalog: InMemoryBackend,
        png_image: ImageData,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """If one new image fails, the others are removed and the row is untouched."""
        monkeypatch.setattr("catalog_admin.catalog.service.time.time", lambda: 1700000000.0)
        catalog.faults.fail_upload("back-1-1700000000001")

        with pytest.raises(UploadError):
            await service.update_variant(
                1,
                VariantEdit(
                    title="Renamed",
                    additional_images=(
                        NamedImage("side", png_image),
                        NamedImage("back", png_image),
                    ),
                ),
            )

        assert catalog.buckets.get("addon", {}) == {}
        assert catalog.tables["product_variants"][0]["title"] == "Mesh Chair"
        assert catalog.count("update") == 0

    @pytest.mark.asyncio
    async def test_append_failure_keeps_stored_main_image(
        self,
        service: CatalogService,
        catalog: InMemoryBackend,
        png_image: ImageData,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """The main image is not overwritten when an appended image fails."""
        await catalog.upload("addon", "front-1", b"old front")
        monkeypatch.setattr("catalog_admin.catalog.service.time.time", lambda: 1700000000.0)
        catalog.faults.fail_upload("back-1-1700000000000")

        with pytest.raises(UploadError):
            await service.update_variant(
                1,
                VariantEdit(
                    main_image=NamedImage("front", png_image),
                    additional_images=(NamedImage("back", png_image),),
                ),
            )

        assert catalog.buckets["addon"]["front-1"][0] == b"old front"
        assert catalog.count("update") == 0

    @pytest.mark.asyncio
    async def test_main_image_failure_removes_appended_images(
        self,
        service: CatalogService,
        catalog: InMemoryBackend,
        png_image: ImageData,
    ) -> None:
        catalog.faults.fail_upload("front-1")

        with pytest.raises(UploadError):
            await service.update_variant(
                1,
                VariantEdit(
                    main_image=NamedImage("front", png_image),
                    additional_images=(NamedImage("side", png_image),),
                ),
            )

        assert catalog.buckets["addon"] == {}
        assert catalog.tables["product_variants"][0]["image"] == "Mesh Chair-main-1"
        assert catalog.count("update") == 0

    @pytest.mark.asyncio
    async def test_remove_additional_image(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        variant = await service.remove_additional_image(1, "Mesh Chair-0-1")

        assert variant.additional_images == []
        assert catalog.tables["product_variants"][0]["additional_images"] == "[]"

    @pytest.mark.asyncio
    async def test_invalid_edit_makes_no_calls(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        with pytest.raises(DraftValidationError):
            await service.update_variant(1, VariantEdit(price=Decimal("-1")))
        assert catalog.operations == []

    @pytest.mark.asyncio
    async def test_delete(self, service: CatalogService, catalog: InMemoryBackend) -> None:
        await service.delete_variant(1)
        assert catalog.tables["product_variants"] == []


class TestAddons:
    """Tests for add-on screens."""

    @pytest.mark.asyncio
    async def test_list_addon_categories_joins_product(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        addons = await service.list_addon_categories()

        assert addons[0].title == "Cushions"
        assert addons[0].product.category == "Furniture"

    @pytest.mark.asyncio
    async def test_rename(self, service: CatalogService, catalog: InMemoryBackend) -> None:
        addon = await service.rename_addon_category(1, " Pillows ")
        assert addon.title == "Pillows"

    @pytest.mark.asyncio
    async def test_rename_requires_title(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        with pytest.raises(DraftValidationError):
            await service.rename_addon_category(1, "   ")

    @pytest.mark.asyncio
    async def test_delete_category_keeps_variants(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        await service.delete_addon_category(1)
        assert catalog.tables["addons"] == []
        assert len(catalog.tables["addon_variants"]) == 1

    @pytest.mark.asyncio
    async def test_list_addon_variants_joins_title(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        addons = await service.list_addon_variants()
        assert addons[0].addon_title == "Cushions"
        assert addons[0].price == Decimal("10")

    @pytest.mark.asyncio
    async def test_update_addon_variant_with_image(
        self,
        service: CatalogService,
        catalog: InMemoryBackend,
        png_image: ImageData,
    ) -> None:
        """The image key uses the title with spaces replaced by underscores."""
        addon = await service.update_addon_variant(
            1, AddonVariantEdit(title="Memory Foam", price=Decimal("12"), image=png_image)
        )

        assert addon.title == "Memory Foam"
        assert addon.image == "Memory_Foam-1"
        assert "Memory_Foam-1" in catalog.buckets["addon"]

    @pytest.mark.asyncio
    async def test_update_addon_variant_image_keeps_title(
        self,
        service: CatalogService,
        catalog: InMemoryBackend,
        png_image: ImageData,
    ) -> None:
        addon = await service.update_addon_variant(1, AddonVariantEdit(image=png_image))
        assert addon.image == "Gel-1"

    @pytest.mark.asyncio
    async def test_update_missing_addon_variant(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        with pytest.raises(RecordNotFoundError):
            await service.update_addon_variant(99, AddonVariantEdit(title="X"))

    @pytest.mark.asyncio
    async def test_delete_addon_variant(
        self, service: CatalogService, catalog: InMemoryBackend
    ) -> None:
        await service.delete_addon_variant(1)
        assert catalog.tables["addon_variants"] == []
