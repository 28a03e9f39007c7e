"""Domain exceptions.

All catalog-level errors. Services raise these when a draft is
invalid, a record is missing, or the backend rejects a write.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for all catalog exceptions.

    Carries a machine-readable ``error_code`` that the API layer
    puts into the standard error body.
    """

    error_code = "CATALOG_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize catalog error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class RecordNotFoundError(CatalogError):
    """Raised when a row addressed by id does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, table: str, record_id: Any) -> None:
        super().__init__(
            f"No row with id {record_id} in {table}",
            details={"table": table, "id": record_id},
        )


class DraftValidationError(CatalogError):
    """Raised when a draft or edit payload fails validation.

    ``problems`` lists every violation found, not just the first.
    """

    error_code = "VALIDATION_ERROR"

    def __init__(self, problems: list[str]) -> None:
        super().__init__(
            "; ".join(problems),
            details={"problems": problems},
        )
        self.problems = problems


class AmbiguousProductError(CatalogError):
    """Raised when several product rows share one category triple."""

    error_code = "AMBIGUOUS_PRODUCT"

    def __init__(self, triple: tuple[str, str | None, str | None], ids: list[Any]) -> None:
        super().__init__(
            f"{len(ids)} products match {triple}: ids {ids}",
            details={"triple": list(triple), "ids": ids},
        )
        self.ids = ids


# ============================================================================
# Remote Errors
# ============================================================================


class RemoteError(CatalogError):
    """Base class for rejected backend calls."""

    error_code = "BACKEND_ERROR"

    def __init__(
        self, resource: str, message: str, status_code: int | None = None
    ) -> None:
        super().__init__(
            message,
            details={"resource": resource, "status_code": status_code},
        )
        self.resource = resource
        self.status_code = status_code


class RemoteQueryError(RemoteError):
    """Raised when the backend rejects a query."""

    error_code = "QUERY_FAILED"


class RemoteWriteError(RemoteError):
    """Raised when the backend rejects an insert, update or delete."""

    error_code = "WRITE_FAILED"


class UploadError(RemoteError):
    """Raised when the blob store rejects an upload."""

    error_code = "UPLOAD_FAILED"
