"""Domain layer - catalog entities, drafts, value objects and exceptions.

- **Entities**: rows of the catalog tables (Category, Product, Variant,
  AddonCategory, AddonVariant)
- **Drafts**: immutable creation-form submissions validated as a whole
- **Value Objects**: decoded images, category triples, storage key rules
- **Exceptions**: catalog errors carrying a machine-readable error code
"""

from catalog_admin.domain.drafts import AddonDraft, ProductDraft, VariantDraft
from catalog_admin.domain.entities import (
    CATALOG_RELATIONS,
    AddonCategory,
    AddonVariant,
    Category,
    Product,
    Variant,
)
from catalog_admin.domain.exceptions import (
    AmbiguousProductError,
    CatalogError,
    DraftValidationError,
    RecordNotFoundError,
    RemoteError,
    RemoteQueryError,
    RemoteWriteError,
    UploadError,
)
from catalog_admin.domain.value_objects import CategoryTriple, ImageData

__all__ = [
    "AddonCategory",
    "AddonDraft",
    "AddonVariant",
    "AmbiguousProductError",
    "CATALOG_RELATIONS",
    "CatalogError",
    "Category",
    "CategoryTriple",
    "DraftValidationError",
    "ImageData",
    "Product",
    "ProductDraft",
    "RecordNotFoundError",
    "RemoteError",
    "RemoteQueryError",
    "RemoteWriteError",
    "UploadError",
    "Variant",
    "VariantDraft",
]
