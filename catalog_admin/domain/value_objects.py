"""Value objects for the catalog domain.

Immutable values: decoded images, category triples, and the
storage key conventions for uploaded images.
"""

import base64
import binascii
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any


# ============================================================================
# Images
# ============================================================================


@dataclass(frozen=True)
class ImageData:
    """Decoded image bytes with their content type."""

    content: bytes
    content_type: str = "application/octet-stream"

    @classmethod
    def from_base64(cls, value: str) -> "ImageData":
        """Decode a base64 string, optionally a data URI.

        Args:
            value: "data:image/png;base64,...." or bare base64.

        Returns:
            ImageData instance.

        Raises:
            ValueError: If the payload is empty or not valid base64.
        """
        content_type = "application/octet-stream"
        payload = value.strip()
        if payload.startswith("data:") and "," in payload:
            header, payload = payload.split(",", 1)
            mime = header[len("data:"):].split(";", 1)[0]
            if mime:
                content_type = mime

        try:
            content = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 image data: {e}") from e

        if not content:
            raise ValueError("Image data is empty")
        return cls(content=content, content_type=content_type)

    @property
    def size(self) -> int:
        return len(self.content)


# ============================================================================
# Category Triple
# ============================================================================


@dataclass(frozen=True)
class CategoryTriple:
    """The (category, subcategory, sub-subcategory) grouping of a product."""

    category: str
    subcategory: str | None = None
    sub_subcategory: str | None = None

    def as_tuple(self) -> tuple[str, str | None, str | None]:
        return (self.category, self.subcategory, self.sub_subcategory)

    def __str__(self) -> str:
        return " / ".join(p for p in self.as_tuple() if p)


# ============================================================================
# Prices
# ============================================================================


def parse_price(value: Any) -> Decimal | None:
    """Parse a price from a form value or a stored column.

    Returns None for blank values.

    Raises:
        ValueError: If the value is not a number.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        price = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid price: {value!r}") from e
    if not price.is_finite():
        raise ValueError(f"Invalid price: {value!r}")
    return price


MAX_PRICE = Decimal("99999999.99")
CENT = Decimal("0.01")


def price_problem(price: Decimal) -> str | None:
    """Describe what is wrong with a price, or None if it can be stored.

    A storable price is non-negative, at most MAX_PRICE and has no
    more than two decimal places.
    """
    if price < 0:
        return "must not be negative"
    if price > MAX_PRICE:
        return f"must not exceed {MAX_PRICE}"
    if price != price.quantize(CENT):
        return "must have at most 2 decimal places"
    return None


def price_to_json(price: Decimal | None) -> int | float | None:
    """Render a price as a JSON number."""
    if price is None:
        return None
    if price == price.to_integral_value():
        return int(price)
    return float(price)


# ============================================================================
# Storage Keys
# ============================================================================


def variant_main_image_key(title: str, product_id: Any) -> str:
    """Key of a new variant's main image."""
    return f"{title}-main-{product_id}"


def variant_additional_image_key(title: str, index: int, product_id: Any) -> str:
    """Key of a new variant's additional image at position ``index``."""
    return f"{title}-{index}-{product_id}"


def addon_variant_image_key(title: str, addon_category_id: Any) -> str:
    """Key of a new add-on variant's image."""
    return f"{title}-{addon_category_id}"


def replacement_image_key(name: str, record_id: Any) -> str:
    """Key for an image replaced from an edit form."""
    return f"{name}-{record_id}"


def appended_image_key(name: str, record_id: Any, now_ms: int | None = None) -> str:
    """Key for an additional image appended from an edit form."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{name}-{record_id}-{now_ms}"


def addon_replacement_image_key(title: str, record_id: Any) -> str:
    """Key for an add-on variant image replaced from its edit form."""
    return replacement_image_key("_".join(title.split()), record_id)
