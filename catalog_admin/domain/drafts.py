"""Submission drafts.

A product submission is one immutable ``ProductDraft`` holding its
variant and add-on drafts. The whole draft is validated before any
remote call; incomplete variants and add-ons are valid but are
skipped during persistence.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from catalog_admin.domain.exceptions import DraftValidationError
from catalog_admin.domain.value_objects import (
    CategoryTriple,
    ImageData,
    price_problem,
    price_to_json,
)


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class VariantDraft:
    """A pending product variant."""

    title: str | None = None
    price: Decimal | None = None
    details: str | None = None
    main_image: ImageData | None = None
    additional_images: tuple[ImageData, ...] = ()
    segment: str | None = None
    dimensions: str | None = None
    manufacturer: str | None = None

    @property
    def is_complete(self) -> bool:
        """Title, price and main image are all present."""
        return bool(self.title) and self.price is not None and self.main_image is not None

    @property
    def missing(self) -> list[str]:
        fields = []
        if not self.title:
            fields.append("title")
        if self.price is None:
            fields.append("price")
        if self.main_image is None:
            fields.append("main_image")
        return fields


@dataclass(frozen=True)
class AddonDraft:
    """A pending add-on variant."""

    title: str | None = None
    price: Decimal | None = None
    image: ImageData | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.title) and self.price is not None and self.image is not None

    @property
    def missing(self) -> list[str]:
        fields = []
        if not self.title:
            fields.append("title")
        if self.price is None:
            fields.append("price")
        if self.image is None:
            fields.append("image")
        return fields


@dataclass(frozen=True)
class ProductDraft:
    """A whole creation-form submission."""

    category: str
    subcategory: str | None = None
    sub_subcategory: str | None = None
    variants: tuple[VariantDraft, ...] = ()
    addon_category_title: str | None = None
    addons: tuple[AddonDraft, ...] = ()

    @classmethod
    def create(
        cls,
        category: str,
        subcategory: str | None = None,
        sub_subcategory: str | None = None,
        variants: list[VariantDraft] | tuple[VariantDraft, ...] = (),
        addon_category_title: str | None = None,
        addons: list[AddonDraft] | tuple[AddonDraft, ...] = (),
    ) -> "ProductDraft":
        """Build a normalized draft and validate it.

        Blank strings become None; titles are trimmed.

        Raises:
            DraftValidationError: If the draft as a whole is invalid.
        """
        draft = cls(
            category=(category or "").strip(),
            subcategory=_clean(subcategory),
            sub_subcategory=_clean(sub_subcategory),
            variants=tuple(
                VariantDraft(
                    title=_clean(v.title),
                    price=v.price,
                    details=v.details,
                    main_image=v.main_image,
                    additional_images=tuple(v.additional_images),
                    segment=_clean(v.segment),
                    dimensions=_clean(v.dimensions),
                    manufacturer=_clean(v.manufacturer),
                )
                for v in variants
            ),
            addon_category_title=_clean(addon_category_title),
            addons=tuple(
                AddonDraft(title=_clean(a.title), price=a.price, image=a.image)
                for a in addons
            ),
        )
        draft.validate()
        return draft

    @property
    def triple(self) -> CategoryTriple:
        return CategoryTriple(self.category, self.subcategory, self.sub_subcategory)

    def validate(self) -> None:
        """Check the whole draft.

        Raises:
            DraftValidationError: Listing every problem found.
        """
        problems = []
        if not self.category:
            problems.append("category is required")
        if self.sub_subcategory and not self.subcategory:
            problems.append("sub_subcategory requires a subcategory")
        if self.addons and not self.addon_category_title:
            problems.append("addons require an addon_category_title")

        for index, variant in enumerate(self.variants):
            if variant.price is not None and (problem := price_problem(variant.price)):
                problems.append(f"variants[{index}].price {problem}")
        for index, addon in enumerate(self.addons):
            if addon.price is not None and (problem := price_problem(addon.price)):
                problems.append(f"addons[{index}].price {problem}")

        if problems:
            raise DraftValidationError(problems)


# ============================================================================
# Edit Payloads
# ============================================================================


@dataclass(frozen=True)
class NamedImage:
    """An uploaded file: its base name (no extension) and its bytes."""

    name: str
    image: ImageData


@dataclass(frozen=True)
class VariantEdit:
    """Changes to an existing variant; None leaves a field unchanged."""

    title: str | None = None
    price: Decimal | None = None
    details: str | None = None
    segment: str | None = None
    dimensions: str | None = None
    manufacturer: str | None = None
    main_image: NamedImage | None = None
    additional_images: tuple[NamedImage, ...] = ()

    def validate(self) -> None:
        problems = []
        if self.title is not None and not self.title.strip():
            problems.append("title must not be empty")
        if self.price is not None and (problem := price_problem(self.price)):
            problems.append(f"price {problem}")
        if problems:
            raise DraftValidationError(problems)

    def field_patch(self) -> dict[str, Any]:
        """Column values for the plain fields that were given."""
        patch: dict[str, Any] = {}
        if self.title is not None:
            patch["title"] = self.title.strip()
        if self.price is not None:
            patch["price"] = price_to_json(self.price)
        for name in ("details", "segment", "dimensions", "manufacturer"):
            value = getattr(self, name)
            if value is not None:
                patch[name] = value
        return patch


@dataclass(frozen=True)
class AddonVariantEdit:
    """Changes to an existing add-on variant; None leaves a field unchanged."""

    title: str | None = None
    price: Decimal | None = None
    addon_id: int | None = None
    image: ImageData | None = None

    def validate(self) -> None:
        problems = []
        if self.title is not None and not self.title.strip():
            problems.append("title must not be empty")
        if self.price is not None and (problem := price_problem(self.price)):
            problems.append(f"price {problem}")
        if problems:
            raise DraftValidationError(problems)

    def field_patch(self) -> dict[str, Any]:
        patch: dict[str, Any] = {}
        if self.title is not None:
            patch["title"] = self.title.strip()
        if self.price is not None:
            patch["price"] = price_to_json(self.price)
        if self.addon_id is not None:
            patch["addonid"] = self.addon_id
        return patch
