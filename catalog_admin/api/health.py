"""Health check endpoints.

Provides endpoints for monitoring service health and readiness.
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from catalog_admin.infrastructure.config import settings
from catalog_admin.infrastructure.provider import get_backend

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    service: str
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check service health.

    Returns:
        Health status with service name and version.
    """
    return HealthResponse(
        status="healthy",
        service="catalog-admin",
        version=settings.api_version,
    )


@router.get("/ready")
async def readiness_check() -> JSONResponse:
    """Check if the backend is reachable.

    Returns:
        200 "ready" or 503 "unavailable".
    """
    if await get_backend().health_check():
        return JSONResponse({"status": "ready"})
    return JSONResponse(
        {"status": "unavailable"},
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )
