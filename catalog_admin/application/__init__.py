"""Application layer - the creation-form submission workflow."""

from catalog_admin.application.submission_service import (
    CatalogResolver,
    SubmissionReport,
    SubmissionService,
    get_submission_service,
)

__all__ = [
    "CatalogResolver",
    "SubmissionReport",
    "SubmissionService",
    "get_submission_service",
]
