"""API schemas for the catalog admin.

Pydantic models for request/response validation and serialization.
Images travel as base64 strings (optionally data URIs) and come back
as public URLs.
"""

from typing import Any

from pydantic import BaseModel, Field


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default_factory=list, description="Additional error details")
    request_id: str | None = Field(
        default=None, description="Request ID for correlation"
    )


class ImageUpload(BaseModel):
    """An uploaded image file."""

    filename: str = Field(
        default="image", min_length=1, description="File name without extension"
    )
    data: str = Field(..., min_length=1, description="Base64 content or data URI")


# ============================================================================
# Category Schemas
# ============================================================================


class CategoryCreateRequest(BaseModel):
    """Request to create a category."""

    name: str = Field(..., min_length=1, description="Category name")
    subcategories: str | list[str] = Field(
        default="", description="Subcategory names, a list or comma-separated"
    )


class CategoryUpdateRequest(BaseModel):
    """Request to update a category; omitted fields are unchanged."""

    name: str | None = Field(default=None, description="New category name")
    subcategories: str | list[str] | None = Field(
        default=None, description="Replacement subcategory names"
    )


class CategoryResponse(BaseModel):
    """A category with its subcategory names."""

    id: int
    name: str
    subcategories: list[str] = Field(default_factory=list)


class CategoryListResponse(BaseModel):
    """List of categories."""

    items: list[CategoryResponse]
    total: int


# ============================================================================
# Product Schemas
# ============================================================================


class ProductResponse(BaseModel):
    """A product: one category triple."""

    id: int | None
    category: str
    subcategory: str | None = None
    sub_subcategory: str | None = None


class ProductListResponse(BaseModel):
    """List of products."""

    items: list[ProductResponse]
    total: int


# ============================================================================
# Variant Schemas
# ============================================================================


class VariantResponse(BaseModel):
    """A product variant with resolved image URLs."""

    id: int | None
    product_id: int | None
    title: str
    price: float | None
    details: str | None = None
    image: str | None = Field(default=None, description="Main image storage key")
    image_url: str | None = None
    additional_images: list[str] = Field(default_factory=list)
    additional_image_urls: list[str] = Field(default_factory=list)
    segment: str | None = None
    dimensions: str | None = None
    manufacturer: str | None = None
    product: ProductResponse | None = None


class VariantListResponse(BaseModel):
    """List of variants."""

    items: list[VariantResponse]
    total: int


class VariantUpdateRequest(BaseModel):
    """Variant edit form; omitted fields are unchanged."""

    title: str | None = None
    price: str | float | None = Field(default=None, description="Decimal price")
    details: str | None = None
    segment: str | None = None
    dimensions: str | None = None
    manufacturer: str | None = None
    main_image: ImageUpload | None = Field(
        default=None, description="Replacement main image"
    )
    additional_images: list[ImageUpload] = Field(
        default_factory=list, description="Images appended to the variant"
    )


# ============================================================================
# Add-on Schemas
# ============================================================================


class AddonCategoryResponse(BaseModel):
    """An add-on category with its product's triple."""

    id: int | None
    title: str
    product_id: int | None
    product: ProductResponse | None = None


class AddonCategoryListResponse(BaseModel):
    """List of add-on categories."""

    items: list[AddonCategoryResponse]
    total: int


class AddonCategoryUpdateRequest(BaseModel):
    """Rename an add-on category."""

    title: str = Field(..., description="New title")


class AddonVariantResponse(BaseModel):
    """An add-on variant with its category title."""

    id: int | None
    addon_id: int | None
    addon_title: str | None = None
    title: str
    price: float | None
    image: str | None = None
    image_url: str | None = None


class AddonVariantListResponse(BaseModel):
    """List of add-on variants."""

    items: list[AddonVariantResponse]
    total: int


class AddonVariantUpdateRequest(BaseModel):
    """Add-on variant edit form; omitted fields are unchanged."""

    title: str | None = None
    price: str | float | None = Field(default=None, description="Decimal price")
    addon_id: int | None = Field(default=None, description="Move to another add-on category")
    image: ImageUpload | None = Field(default=None, description="Replacement image")


# ============================================================================
# Submission Schemas
# ============================================================================


class VariantDraftSchema(BaseModel):
    """One variant block of the creation form.

    Blocks missing title, price or main image are skipped, not rejected.
    """

    title: str | None = None
    price: str | float | None = None
    details: str | None = None
    main_image: ImageUpload | None = None
    additional_images: list[ImageUpload] = Field(default_factory=list)
    segment: str | None = None
    dimensions: str | None = None
    manufacturer: str | None = None


class AddonDraftSchema(BaseModel):
    """One add-on block of the creation form."""

    title: str | None = None
    price: str | float | None = None
    image: ImageUpload | None = None


class SubmissionRequest(BaseModel):
    """The whole creation form."""

    category: str = Field(..., description="Category name")
    subcategory: str | None = None
    sub_subcategory: str | None = None
    variants: list[VariantDraftSchema] = Field(default_factory=list)
    addon_category_title: str | None = None
    addons: list[AddonDraftSchema] = Field(default_factory=list)
    atomic: bool = Field(
        default=False,
        description="Undo every write of the submission if anything fails",
    )


class NotificationSchema(BaseModel):
    """A user-facing message produced during submission."""

    level: str
    message: str


class EntityFailureSchema(BaseModel):
    """A variant or add-on that was not persisted."""

    index: int
    title: str | None
    stage: str
    reason: str


class ImageFailureSchema(BaseModel):
    """An additional image that was not uploaded."""

    variant_index: int
    image_index: int
    reason: str


class PhaseReportSchema(BaseModel):
    """Outcome of the variant or add-on phase."""

    committed: list[int] = Field(default_factory=list, description="Inserted row ids")
    skipped: list[int] = Field(default_factory=list, description="Incomplete block indexes")
    failed: list[EntityFailureSchema] = Field(default_factory=list)
    image_failures: list[ImageFailureSchema] = Field(default_factory=list)
    halted: bool = False
    aborted: bool = False


class SubmissionResponse(BaseModel):
    """Outcome of a submission."""

    success: bool
    product_id: int | None
    product_created: bool
    addon_category_id: int | None
    variants: PhaseReportSchema
    addons: PhaseReportSchema
    rolled_back: bool
    notifications: list[NotificationSchema]
    error: str | None = None
    error_code: str | None = None
