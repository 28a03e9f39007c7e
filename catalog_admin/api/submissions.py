"""Submission API endpoint.

Runs the product creation form: resolve the product for the category
triple, then persist variants, then add-ons.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status

from catalog_admin.api.converters import report_to_response, submission_to_draft
from catalog_admin.api.schemas import (
    ErrorResponse,
    SubmissionRequest,
    SubmissionResponse,
)
from catalog_admin.application.submission_service import (
    SubmissionService,
    get_submission_service,
)

router = APIRouter(prefix="/submissions", tags=["Submissions"])


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> SubmissionService:
    """Get submission service with request ID."""
    request_id = getattr(request.state, "request_id", None)
    return get_submission_service(request_id=request_id)


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=status.HTTP_200_OK,
    responses={422: {"model": ErrorResponse}},
    summary="Submit product",
    description="Create or reuse the product for a category triple and add its variants and add-ons.",
)
async def submit_product(
    request: SubmissionRequest,
    service: Annotated[SubmissionService, Depends(get_service)],
) -> SubmissionResponse:
    """Run a product submission.

    The draft is validated as a whole before any write. Remote failures
    do not fail the request: they are reported per phase in the
    response, with ``success`` false.

    Args:
        request: The creation form.
        service: Submission service.

    Returns:
        Submission report.

    Raises:
        DraftValidationError: If the form is invalid (HTTP 422).
    """
    draft = submission_to_draft(request)
    report = await service.submit(draft, atomic=request.atomic)
    return report_to_response(report)
