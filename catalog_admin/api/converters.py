"""Converters between API schemas and domain objects.

Request payloads are turned into drafts and edits here. Malformed
prices and image data are collected and raised together as one
DraftValidationError.
"""

from collections.abc import Callable
from decimal import Decimal

from catalog_admin.api.schemas import (
    AddonCategoryResponse,
    AddonVariantResponse,
    AddonVariantUpdateRequest,
    CategoryResponse,
    ImageUpload,
    PhaseReportSchema,
    ProductResponse,
    SubmissionRequest,
    SubmissionResponse,
    VariantResponse,
    VariantUpdateRequest,
)
from catalog_admin.application.submission_service import PhaseReport, SubmissionReport
from catalog_admin.domain.drafts import (
    AddonDraft,
    AddonVariantEdit,
    NamedImage,
    ProductDraft,
    VariantDraft,
    VariantEdit,
)
from catalog_admin.domain.entities import (
    AddonCategory,
    AddonVariant,
    Category,
    Product,
    Variant,
)
from catalog_admin.domain.exceptions import DraftValidationError
from catalog_admin.domain.value_objects import ImageData, parse_price


class _Problems:
    """Accumulates field problems while converting a payload."""

    def __init__(self) -> None:
        self.items: list[str] = []

    def price(self, field: str, value: str | float | None) -> Decimal | None:
        try:
            return parse_price(value)
        except ValueError as e:
            self.items.append(f"{field}: {e}")
            return None

    def image(self, field: str, upload: ImageUpload | None) -> ImageData | None:
        if upload is None:
            return None
        try:
            return ImageData.from_base64(upload.data)
        except ValueError as e:
            self.items.append(f"{field}: {e}")
            return None

    def named_image(self, field: str, upload: ImageUpload | None) -> NamedImage | None:
        image = self.image(field, upload)
        if image is None:
            return None
        return NamedImage(name=upload.filename, image=image)

    def raise_if_any(self) -> None:
        if self.items:
            raise DraftValidationError(self.items)


def _price_out(price: Decimal | None) -> float | None:
    return float(price) if price is not None else None


# ============================================================================
# Requests
# ============================================================================


def submission_to_draft(request: SubmissionRequest) -> ProductDraft:
    """Convert the creation form into a validated ProductDraft.

    Raises:
        DraftValidationError: On malformed values or an invalid draft.
    """
    problems = _Problems()
    variants = [
        VariantDraft(
            title=v.title,
            price=problems.price(f"variants[{i}].price", v.price),
            details=v.details,
            main_image=problems.image(f"variants[{i}].main_image", v.main_image),
            additional_images=tuple(
                image
                for j, upload in enumerate(v.additional_images)
                if (image := problems.image(f"variants[{i}].additional_images[{j}]", upload))
            ),
            segment=v.segment,
            dimensions=v.dimensions,
            manufacturer=v.manufacturer,
        )
        for i, v in enumerate(request.variants)
    ]
    addons = [
        AddonDraft(
            title=a.title,
            price=problems.price(f"addons[{i}].price", a.price),
            image=problems.image(f"addons[{i}].image", a.image),
        )
        for i, a in enumerate(request.addons)
    ]
    problems.raise_if_any()

    return ProductDraft.create(
        category=request.category,
        subcategory=request.subcategory,
        sub_subcategory=request.sub_subcategory,
        variants=variants,
        addon_category_title=request.addon_category_title,
        addons=addons,
    )


def variant_update_to_edit(request: VariantUpdateRequest) -> VariantEdit:
    """Convert the variant edit form into a VariantEdit.

    Raises:
        DraftValidationError: On malformed price or image data.
    """
    problems = _Problems()
    edit = VariantEdit(
        title=request.title,
        price=problems.price("price", request.price),
        details=request.details,
        segment=request.segment,
        dimensions=request.dimensions,
        manufacturer=request.manufacturer,
        main_image=problems.named_image("main_image", request.main_image),
        additional_images=tuple(
            named
            for j, upload in enumerate(request.additional_images)
            if (named := problems.named_image(f"additional_images[{j}]", upload))
        ),
    )
    problems.raise_if_any()
    return edit


def addon_variant_update_to_edit(request: AddonVariantUpdateRequest) -> AddonVariantEdit:
    """Convert the add-on variant edit form into an AddonVariantEdit.

    Raises:
        DraftValidationError: On malformed price or image data.
    """
    problems = _Problems()
    edit = AddonVariantEdit(
        title=request.title,
        price=problems.price("price", request.price),
        addon_id=request.addon_id,
        image=problems.image("image", request.image),
    )
    problems.raise_if_any()
    return edit


# ============================================================================
# Responses
# ============================================================================


def category_to_response(category: Category) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        subcategories=list(category.subcategories),
    )


def product_to_response(product: Product) -> ProductResponse:
    return ProductResponse(
        id=product.id,
        category=product.category,
        subcategory=product.subcategory,
        sub_subcategory=product.sub_subcategory,
    )


def variant_to_response(
    variant: Variant, image_url: Callable[[str | None], str | None]
) -> VariantResponse:
    """Convert Variant entity to response schema.

    Args:
        variant: Variant entity.
        image_url: Callable mapping a storage key to its public URL.
    """
    return VariantResponse(
        id=variant.id,
        product_id=variant.product_id,
        title=variant.title,
        price=_price_out(variant.price),
        details=variant.details,
        image=variant.image,
        image_url=image_url(variant.image),
        additional_images=list(variant.additional_images),
        additional_image_urls=[image_url(k) for k in variant.additional_images],
        segment=variant.segment,
        dimensions=variant.dimensions,
        manufacturer=variant.manufacturer,
        product=product_to_response(variant.product) if variant.product else None,
    )


def addon_category_to_response(addon: AddonCategory) -> AddonCategoryResponse:
    return AddonCategoryResponse(
        id=addon.id,
        title=addon.title,
        product_id=addon.product_id,
        product=product_to_response(addon.product) if addon.product else None,
    )


def addon_variant_to_response(
    addon: AddonVariant, image_url: Callable[[str | None], str | None]
) -> AddonVariantResponse:
    return AddonVariantResponse(
        id=addon.id,
        addon_id=addon.addon_id,
        addon_title=addon.addon_title,
        title=addon.title,
        price=_price_out(addon.price),
        image=addon.image,
        image_url=image_url(addon.image),
    )


def _phase_to_schema(phase: PhaseReport) -> PhaseReportSchema:
    return PhaseReportSchema(
        committed=list(phase.committed),
        skipped=list(phase.skipped),
        failed=[vars(f) for f in phase.failed],
        image_failures=[vars(f) for f in phase.image_failures],
        halted=phase.halted,
        aborted=phase.aborted,
    )


def report_to_response(report: SubmissionReport) -> SubmissionResponse:
    """Convert SubmissionReport to response schema."""
    return SubmissionResponse(
        success=report.success,
        product_id=report.product_id,
        product_created=report.product_created,
        addon_category_id=report.addon_category_id,
        variants=_phase_to_schema(report.variants),
        addons=_phase_to_schema(report.addons),
        rolled_back=report.rolled_back,
        notifications=[vars(n) for n in report.notifications],
        error=report.error,
        error_code=report.error_code,
    )
