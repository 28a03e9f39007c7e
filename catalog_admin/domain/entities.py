"""Catalog entities.

Each entity maps one row of a backend table. ``from_row`` accepts
the row shapes the store returns (including embedded relations and
legacy JSON-text list columns); ``to_row`` produces the columns
written back.
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, ClassVar

from catalog_admin.domain.value_objects import (
    CategoryTriple,
    parse_price,
    price_to_json,
)

CATEGORIES_TABLE = "categories"
PRODUCTS_TABLE = "products"
VARIANTS_TABLE = "product_variants"
ADDON_CATEGORIES_TABLE = "addons"
ADDON_VARIANTS_TABLE = "addon_variants"

# (table, related table) -> foreign key column on table
CATALOG_RELATIONS: dict[tuple[str, str], str] = {
    (VARIANTS_TABLE, PRODUCTS_TABLE): "product_id",
    (ADDON_CATEGORIES_TABLE, PRODUCTS_TABLE): "productid",
    (ADDON_VARIANTS_TABLE, ADDON_CATEGORIES_TABLE): "addonid",
}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def parse_name_list(value: Any) -> list[str]:
    """Parse a list column stored as a list, JSON text, or comma-separated text."""
    if value is None:
        return []
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    text = str(value).strip()
    if not text:
        return []
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, list):
        return [str(v).strip() for v in parsed if str(v).strip()]
    return [part.strip() for part in text.split(",") if part.strip()]


def dump_name_list(values: list[str]) -> str:
    """Serialize a list column as JSON text."""
    return json.dumps(list(values))


# ============================================================================
# Category
# ============================================================================


@dataclass
class Category:
    """A top-level category and its ordered subcategory names."""

    TABLE: ClassVar[str] = CATEGORIES_TABLE

    id: int
    name: str
    subcategories: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Category":
        return cls(
            id=row["id"],
            name=row.get("name") or "",
            subcategories=parse_name_list(row.get("subcategories")),
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "subcategories": dump_name_list(self.subcategories),
        }


# ============================================================================
# Product
# ============================================================================


@dataclass
class Product:
    """The category grouping under which variants are sold.

    The sub-subcategory lives in the ``subcategory1`` column.
    """

    TABLE: ClassVar[str] = PRODUCTS_TABLE

    id: int | None
    category: str
    subcategory: str | None = None
    sub_subcategory: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Product":
        return cls(
            id=row.get("id"),
            category=row.get("category") or "",
            subcategory=_blank_to_none(row.get("subcategory")),
            sub_subcategory=_blank_to_none(row.get("subcategory1")),
        )

    @classmethod
    def from_triple(cls, triple: CategoryTriple) -> "Product":
        return cls(
            id=None,
            category=triple.category,
            subcategory=triple.subcategory,
            sub_subcategory=triple.sub_subcategory,
        )

    @property
    def triple(self) -> CategoryTriple:
        return CategoryTriple(self.category, self.subcategory, self.sub_subcategory)

    def to_row(self) -> dict[str, Any]:
        row = {
            "category": self.category,
            "subcategory": self.subcategory,
            "subcategory1": self.sub_subcategory,
        }
        if self.id is not None:
            row["id"] = self.id
        return row


# ============================================================================
# Variant
# ============================================================================


@dataclass
class Variant:
    """A purchasable item under a product."""

    TABLE: ClassVar[str] = VARIANTS_TABLE

    id: int | None
    product_id: int
    title: str
    price: Decimal | None
    details: str | None = None
    image: str | None = None
    additional_images: list[str] = field(default_factory=list)
    segment: str | None = None
    dimensions: str | None = None
    manufacturer: str | None = None
    product: Product | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Variant":
        embedded = row.get(PRODUCTS_TABLE)
        return cls(
            id=row.get("id"),
            product_id=row.get("product_id"),
            title=row.get("title") or "",
            price=parse_price(row.get("price")),
            details=row.get("details"),
            image=_blank_to_none(row.get("image")),
            additional_images=parse_name_list(row.get("additional_images")),
            segment=row.get("segment"),
            dimensions=row.get("dimensions"),
            manufacturer=row.get("manufacturer"),
            product=Product.from_row(embedded) if embedded else None,
        )

    def to_row(self) -> dict[str, Any]:
        row = {
            "product_id": self.product_id,
            "title": self.title,
            "price": price_to_json(self.price),
            "details": self.details,
            "image": self.image,
            "additional_images": dump_name_list(self.additional_images),
        }
        for optional in ("segment", "dimensions", "manufacturer"):
            value = getattr(self, optional)
            if value is not None:
                row[optional] = value
        return row


# ============================================================================
# Add-ons
# ============================================================================


@dataclass
class AddonCategory:
    """An optional add-on group attached to a product."""

    TABLE: ClassVar[str] = ADDON_CATEGORIES_TABLE

    id: int | None
    title: str
    product_id: int
    product: Product | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AddonCategory":
        embedded = row.get(PRODUCTS_TABLE)
        return cls(
            id=row.get("id"),
            title=row.get("title") or "",
            product_id=row.get("productid"),
            product=Product.from_row(embedded) if embedded else None,
        )

    def to_row(self) -> dict[str, Any]:
        return {"title": self.title, "productid": self.product_id}


@dataclass
class AddonVariant:
    """A purchasable option inside an add-on category."""

    TABLE: ClassVar[str] = ADDON_VARIANTS_TABLE

    id: int | None
    addon_id: int
    title: str
    price: Decimal | None
    image: str | None = None
    addon_title: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "AddonVariant":
        embedded = row.get(ADDON_CATEGORIES_TABLE)
        return cls(
            id=row.get("id"),
            addon_id=row.get("addonid"),
            title=row.get("title") or "",
            price=parse_price(row.get("price")),
            image=_blank_to_none(row.get("image")),
            addon_title=embedded.get("title") if embedded else None,
        )

    def to_row(self) -> dict[str, Any]:
        return {
            "addonid": self.addon_id,
            "title": self.title,
            "price": price_to_json(self.price),
            "image": self.image,
        }
