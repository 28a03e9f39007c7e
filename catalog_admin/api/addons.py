"""Add-on API endpoints.

Provides the add-on category list and rename screen, and the add-on
variant table and edit screen.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from catalog_admin.api.converters import (
    addon_category_to_response,
    addon_variant_to_response,
    addon_variant_update_to_edit,
)
from catalog_admin.api.schemas import (
    AddonCategoryListResponse,
    AddonCategoryResponse,
    AddonCategoryUpdateRequest,
    AddonVariantListResponse,
    AddonVariantResponse,
    AddonVariantUpdateRequest,
    ErrorResponse,
)
from catalog_admin.catalog.service import CatalogService, get_catalog_service

router = APIRouter(tags=["Add-ons"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> CatalogService:
    """Get catalog service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_catalog_service(request_id=request_id)


# ============================================================================
# Add-on Categories
# ============================================================================


@router.get(
    "/addons",
    response_model=AddonCategoryListResponse,
    responses={502: {"model": ErrorResponse}},
    summary="List add-on categories",
)
async def list_addon_categories(
    service: Annotated[CatalogService, Depends(get_service)],
) -> AddonCategoryListResponse:
    addons = await service.list_addon_categories()
    return AddonCategoryListResponse(
        items=[addon_category_to_response(a) for a in addons],
        total=len(addons),
    )


@router.patch(
    "/addons/{addon_id}",
    response_model=AddonCategoryResponse,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Rename add-on category",
)
async def rename_addon_category(
    addon_id: int,
    request: AddonCategoryUpdateRequest,
    service: Annotated[CatalogService, Depends(get_service)],
) -> AddonCategoryResponse:
    addon = await service.rename_addon_category(addon_id, request.title)
    return addon_category_to_response(addon)


@router.delete(
    "/addons/{addon_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete add-on category",
)
async def delete_addon_category(
    addon_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> Response:
    await service.delete_addon_category(addon_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Add-on Variants
# ============================================================================


@router.get(
    "/addon-variants",
    response_model=AddonVariantListResponse,
    responses={502: {"model": ErrorResponse}},
    summary="List add-on variants",
)
async def list_addon_variants(
    service: Annotated[CatalogService, Depends(get_service)],
) -> AddonVariantListResponse:
    addons = await service.list_addon_variants()
    return AddonVariantListResponse(
        items=[addon_variant_to_response(a, service.image_url) for a in addons],
        total=len(addons),
    )


@router.get(
    "/addon-variants/{variant_id}",
    response_model=AddonVariantResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get add-on variant",
)
async def get_addon_variant(
    variant_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> AddonVariantResponse:
    addon = await service.get_addon_variant(variant_id)
    return addon_variant_to_response(addon, service.image_url)


@router.patch(
    "/addon-variants/{variant_id}",
    response_model=AddonVariantResponse,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Update add-on variant",
)
async def update_addon_variant(
    variant_id: int,
    request: AddonVariantUpdateRequest,
    service: Annotated[CatalogService, Depends(get_service)],
) -> AddonVariantResponse:
    """Save the add-on variant edit form.

    Args:
        variant_id: Add-on variant identifier.
        request: Edited fields and optional replacement image.
        service: Catalog service.

    Returns:
        Updated add-on variant.
    """
    addon = await service.update_addon_variant(
        variant_id, addon_variant_update_to_edit(request)
    )
    return addon_variant_to_response(addon, service.image_url)


@router.delete(
    "/addon-variants/{variant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete add-on variant",
)
async def delete_addon_variant(
    variant_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> Response:
    await service.delete_addon_variant(variant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
