"""Product and variant API endpoints.

Provides the product list, the variant data table and the variant
edit screen. Deleting a product leaves its variants in place.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from catalog_admin.api.converters import (
    product_to_response,
    variant_to_response,
    variant_update_to_edit,
)
from catalog_admin.api.schemas import (
    ErrorResponse,
    ProductListResponse,
    VariantListResponse,
    VariantResponse,
    VariantUpdateRequest,
)
from catalog_admin.catalog.service import CatalogService, get_catalog_service

router = APIRouter(tags=["Products"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> CatalogService:
    """Get catalog service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_catalog_service(request_id=request_id)


# ============================================================================
# Products
# ============================================================================


@router.get(
    "/products",
    response_model=ProductListResponse,
    responses={502: {"model": ErrorResponse}},
    summary="List products",
)
async def list_products(
    service: Annotated[CatalogService, Depends(get_service)],
) -> ProductListResponse:
    products = await service.list_products()
    return ProductListResponse(
        items=[product_to_response(p) for p in products],
        total=len(products),
    )


@router.delete(
    "/products/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete product",
)
async def delete_product(
    product_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> Response:
    await service.delete_product(product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Variants
# ============================================================================


@router.get(
    "/variants",
    response_model=VariantListResponse,
    responses={502: {"model": ErrorResponse}},
    summary="List variants",
    description="Every variant joined with its product's category triple.",
)
async def list_variants(
    service: Annotated[CatalogService, Depends(get_service)],
) -> VariantListResponse:
    variants = await service.list_variants()
    return VariantListResponse(
        items=[variant_to_response(v, service.image_url) for v in variants],
        total=len(variants),
    )


@router.get(
    "/variants/{variant_id}",
    response_model=VariantResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get variant",
)
async def get_variant(
    variant_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> VariantResponse:
    variant = await service.get_variant(variant_id)
    return variant_to_response(variant, service.image_url)


@router.patch(
    "/variants/{variant_id}",
    response_model=VariantResponse,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Update variant",
)
async def update_variant(
    variant_id: int,
    request: VariantUpdateRequest,
    service: Annotated[CatalogService, Depends(get_service)],
) -> VariantResponse:
    """Save the variant edit form.

    A new main image replaces the current one. New additional images
    are appended to the existing list; if any of them fails to
    upload, nothing is saved.

    Args:
        variant_id: Variant identifier.
        request: Edited fields and images.
        service: Catalog service.

    Returns:
        Updated variant.
    """
    variant = await service.update_variant(variant_id, variant_update_to_edit(request))
    return variant_to_response(variant, service.image_url)


@router.delete(
    "/variants/{variant_id}/additional-images/{key:path}",
    response_model=VariantResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Remove additional image",
)
async def remove_additional_image(
    variant_id: int,
    key: str,
    service: Annotated[CatalogService, Depends(get_service)],
) -> VariantResponse:
    """Drop one additional image from a variant's list."""
    variant = await service.remove_additional_image(variant_id, key)
    return variant_to_response(variant, service.image_url)


@router.delete(
    "/variants/{variant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete variant",
)
async def delete_variant(
    variant_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> Response:
    await service.delete_variant(variant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
