"""Backend provider.

Builds the configured backend once per process and hands it to
services and request handlers.
"""

import structlog

from catalog_admin.domain.entities import CATALOG_RELATIONS
from catalog_admin.infrastructure.backend import Backend, RestBackend
from catalog_admin.infrastructure.config import settings
from catalog_admin.infrastructure.memory_backend import InMemoryBackend

logger = structlog.get_logger()

# Global backend instance
_backend: Backend | None = None


def build_backend() -> Backend:
    """Create a backend from settings.

    Returns:
        RestBackend for "rest", InMemoryBackend for "memory".

    Raises:
        ValueError: On an unknown backend kind.
    """
    kind = settings.backend_kind.lower()
    if kind == "rest":
        backend: Backend = RestBackend(
            base_url=settings.backend_url,
            api_key=settings.backend_api_key,
            timeout=settings.backend_timeout,
        )
    elif kind == "memory":
        backend = InMemoryBackend(relations=CATALOG_RELATIONS)
    else:
        raise ValueError(f"Unknown backend kind: {settings.backend_kind}")

    logger.info("Backend configured", kind=kind, url=settings.backend_url)
    return backend


def get_backend() -> Backend:
    """Get the backend singleton.

    Returns:
        Backend instance.
    """
    global _backend
    if _backend is None:
        _backend = build_backend()
    return _backend


def set_backend(backend: Backend | None) -> None:
    """Replace the backend singleton."""
    global _backend
    _backend = backend


async def close_backend() -> None:
    """Close and forget the backend singleton."""
    global _backend
    if _backend is not None:
        await _backend.close()
        _backend = None
