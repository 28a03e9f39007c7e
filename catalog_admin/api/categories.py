"""Category API endpoints.

Provides the category listing, creation and edit screens, plus the
options feed for the creation form selectors.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from catalog_admin.api.converters import category_to_response
from catalog_admin.api.schemas import (
    CategoryCreateRequest,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdateRequest,
    ErrorResponse,
)
from catalog_admin.catalog.service import CatalogService, get_catalog_service

router = APIRouter(prefix="/categories", tags=["Categories"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> CatalogService:
    """Get catalog service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_catalog_service(request_id=request_id)


# ============================================================================
# Endpoints
# ============================================================================


@router.get(
    "",
    response_model=CategoryListResponse,
    responses={502: {"model": ErrorResponse}},
    summary="List categories",
)
async def list_categories(
    service: Annotated[CatalogService, Depends(get_service)],
) -> CategoryListResponse:
    """List all categories ordered by id."""
    categories = await service.list_categories()
    return CategoryListResponse(
        items=[category_to_response(c) for c in categories],
        total=len(categories),
    )


@router.get(
    "/options",
    response_model=CategoryListResponse,
    responses={502: {"model": ErrorResponse}},
    summary="Category options",
    description="Categories with their subcategories, for the product creation form.",
)
async def category_options(
    service: Annotated[CatalogService, Depends(get_service)],
) -> CategoryListResponse:
    categories = await service.category_options()
    return CategoryListResponse(
        items=[category_to_response(c) for c in categories],
        total=len(categories),
    )


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        422: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Create category",
)
async def create_category(
    request: CategoryCreateRequest,
    service: Annotated[CatalogService, Depends(get_service)],
) -> CategoryResponse:
    """Create a category.

    The id is one more than the highest existing id. Subcategories
    may be given as a list or a comma-separated string.

    Args:
        request: Category creation request.
        service: Catalog service.

    Returns:
        Created category.
    """
    category = await service.create_category(request.name, request.subcategories)
    return category_to_response(category)


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get category",
)
async def get_category(
    category_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> CategoryResponse:
    return category_to_response(await service.get_category(category_id))


@router.patch(
    "/{category_id}",
    response_model=CategoryResponse,
    responses={
        404: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
    summary="Update category",
)
async def update_category(
    category_id: int,
    request: CategoryUpdateRequest,
    service: Annotated[CatalogService, Depends(get_service)],
) -> CategoryResponse:
    """Update a category's name and/or subcategories."""
    category = await service.update_category(
        category_id,
        name=request.name,
        subcategories=request.subcategories,
    )
    return category_to_response(category)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete category",
)
async def delete_category(
    category_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> Response:
    await service.delete_category(category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
