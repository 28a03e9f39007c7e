"""API middleware for the catalog admin.

Provides:
- Request ID correlation, with the active backend bound into the log context
- A last-resort JSON error body for exceptions no handler claimed
"""

import time
from typing import Callable
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from catalog_admin.infrastructure.backend import BackendClientError
from catalog_admin.infrastructure.config import settings

logger = structlog.get_logger()


# ============================================================================
# Request Context Middleware
# ============================================================================


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Binds a request ID and the backend in use to every log line.

    The ID is taken from the X-Request-ID header or generated, stored
    on request.state for the routers' services, and echoed back.
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        request_id = request.headers.get(self.HEADER_NAME) or str(uuid4())
        request.state.request_id = request_id
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            backend=settings.backend_kind,
            bucket=settings.storage_bucket,
        )

        start_time = time.perf_counter()
        response = None
        try:
            response = await call_next(request)
        finally:
            logger.info(
                "Admin request handled",
                method=request.method,
                path=request.url.path,
                status_code=getattr(response, "status_code", 500),
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            structlog.contextvars.unbind_contextvars("request_id", "backend", "bucket")

        response.headers[self.HEADER_NAME] = request_id
        return response


# ============================================================================
# Error Middleware
# ============================================================================


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns exceptions that escaped the routers into the standard error body.

    A raw backend client error means a call bypassed the repository's
    translation; it is answered as a bad gateway. Anything else is an
    internal error.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)
        except BackendClientError as e:
            logger.error(
                "Untranslated backend error",
                path=request.url.path,
                resource=e.resource,
                status_code=e.status_code,
                error=e.message,
            )
            return _error_response(
                request,
                status.HTTP_502_BAD_GATEWAY,
                "BACKEND_ERROR",
                e.message,
                {"resource": e.resource, "status_code": e.status_code},
            )
        except Exception as e:
            logger.exception(
                "Unhandled exception",
                path=request.url.path,
                method=request.method,
                error=str(e),
            )
            return _error_response(
                request,
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "INTERNAL_ERROR",
                "An internal error occurred",
                [],
            )


def _error_response(
    request: Request, status_code: int, error_code: str, message: str, details
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "request_id": getattr(request.state, "request_id", None),
        },
    )


# ============================================================================
# Middleware Setup
# ============================================================================


def setup_middleware(app: FastAPI) -> None:
    """Configure all middleware for the application.

    Middleware is added in reverse order (last added = first executed).

    Args:
        app: FastAPI application instance.
    """
    app.add_middleware(ErrorHandlerMiddleware)
    # Outermost, so error responses carry the request ID
    app.add_middleware(RequestIdMiddleware)
