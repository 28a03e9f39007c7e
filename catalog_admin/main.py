"""Catalog Admin main application module.

This module initializes the FastAPI application and configures
core middleware, routers, and startup/shutdown events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog_admin.api.addons import router as addons_router
from catalog_admin.api.categories import router as categories_router
from catalog_admin.api.health import router as health_router
from catalog_admin.api.middleware import setup_middleware
from catalog_admin.api.products import router as products_router
from catalog_admin.api.submissions import router as submissions_router
from catalog_admin.domain.exceptions import (
    AmbiguousProductError,
    CatalogError,
    DraftValidationError,
    RecordNotFoundError,
    RemoteError,
)
from catalog_admin.infrastructure.config import settings
from catalog_admin.infrastructure.logging_config import configure_logging
from catalog_admin.infrastructure.provider import close_backend, get_backend

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown events.

    Args:
        app: The FastAPI application instance.

    Yields:
        None after startup, cleanup happens after yield.
    """
    # Startup
    configure_logging()
    logger.info(
        "Starting Catalog Admin API",
        version=settings.api_version,
        debug=settings.debug,
        backend=settings.backend_kind,
        bucket=settings.storage_bucket,
    )
    get_backend()

    yield

    # Shutdown
    await close_backend()
    logger.info("Shutting down Catalog Admin API")


app = FastAPI(
    title="Catalog Admin API",
    description="Administrative CRUD for a hosted product catalog",
    version=settings.api_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (must be added before custom middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup custom middleware (request ID, error handling)
setup_middleware(app)

# Include routers
app.include_router(health_router, tags=["Health"])
app.include_router(categories_router)
app.include_router(products_router)
app.include_router(addons_router)
app.include_router(submissions_router)


# ============================================================================
# Custom Exception Handlers
# ============================================================================


def _error_body(
    request: Request, error_code: str, message: str, details: object
) -> dict[str, object]:
    return {
        "error_code": error_code,
        "message": message,
        "details": details,
        "request_id": getattr(request.state, "request_id", None),
    }


def _status_for(exc: CatalogError) -> int:
    if isinstance(exc, RecordNotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, DraftValidationError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, AmbiguousProductError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, RemoteError):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_400_BAD_REQUEST


@app.exception_handler(CatalogError)
async def catalog_exception_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Map domain errors to the standard error body."""
    status_code = _status_for(exc)
    logger.warning(
        "Request failed",
        path=request.url.path,
        error_code=exc.error_code,
        error=exc.message,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content=_error_body(request, exc.error_code, exc.message, exc.details),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request schema errors with consistent format."""
    details = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, "VALIDATION_ERROR", "Invalid request", details),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    detail = exc.detail
    if isinstance(detail, dict):
        error_code = detail.get("error_code", "ERROR")
        message = detail.get("message", str(detail))
        details = detail.get("details", [])
    else:
        error_code = "ERROR"
        message = str(detail)
        details = []

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, error_code, message, details),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions with consistent format."""
    logger.exception(
        "Unhandled exception in handler",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(request, "INTERNAL_ERROR", "An internal error occurred", []),
    )
