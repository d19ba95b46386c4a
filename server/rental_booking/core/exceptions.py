"""RFC 9457 problem details for the booking quote API."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

PROBLEM_BASE_URI = "https://example.com/problems"


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def _problem(status_code: int, title: str, slug: str, detail: Optional[str], **extensions: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "type": f"{PROBLEM_BASE_URI}/{slug}",
        "title": title,
        "status": status_code,
    }
    if detail:
        body["detail"] = detail
    body.update({key: value for key, value in extensions.items() if value is not None})
    return body


class ProblemDetailsException(HTTPException):
    """
    HTTP error carrying a problem details body.

    https://tools.ietf.org/rfc/rfc9457.txt
    """

    status: int = 500
    title: str = "Internal Server Error"
    slug: str = "internal-server-error"

    def __init__(self, detail: Optional[str] = None, headers: Optional[Dict[str, str]] = None, **extensions: Any):
        self.problem_details = _problem(self.status, self.title, self.slug, detail, **extensions)
        super().__init__(status_code=self.status, detail=self.problem_details, headers=headers)


class ValidationError(ProblemDetailsException):
    """A request or booking form the service refuses to act on."""

    status = 400
    title = "Validation Error"
    slug = "validation-error"

    def __init__(self, detail: str = "The request data failed validation", errors: Optional[Dict[str, Any]] = None):
        super().__init__(detail=detail, errors=errors or None)


class NotFoundError(ProblemDetailsException):
    status = 404
    title = "Resource Not Found"
    slug = "resource-not-found"

    def __init__(self, resource_type: str = "resource", resource_id: Optional[str] = None, detail: Optional[str] = None):
        if not detail:
            detail = f"The requested {resource_type}"
            if resource_id:
                detail += f" with ID '{resource_id}'"
            detail += " could not be found"
        super().__init__(detail=detail, resource_type=resource_type, resource_id=resource_id)


class DraftNotFoundError(NotFoundError):
    """Unknown or expired booking draft."""

    def __init__(self, draft_id: str):
        super().__init__(
            resource_type="booking_draft",
            resource_id=draft_id,
            detail=f"Booking draft '{draft_id}' does not exist or has expired",
        )


class BookingSubmissionError(ProblemDetailsException):
    """The rental backend rejected a booking creation; the draft is kept for a retry."""

    status = 502
    title = "Booking Submission Failed"
    slug = "booking-submission-failed"

    def __init__(self, draft_id: str, detail: str, upstream_status: Optional[int] = None):
        super().__init__(
            detail=detail,
            draft_id=draft_id,
            retryable=True,
            upstream_status=upstream_status,
        )


async def problem_details_handler(request: Request, exc: ProblemDetailsException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.problem_details,
        headers=exc.headers,
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Convert FastAPI request validation errors to a 422 problem.

    Each pydantic error becomes a violation with a dotted path into the body.
    """
    violations = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        violations.append({
            "path": ".".join(location) or "body",
            "message": error.get("msg", "Invalid value"),
        })

    return JSONResponse(
        status_code=422,
        content=_problem(
            422,
            "Unprocessable Request",
            "request-validation-error",
            "The request body failed validation",
            instance=str(request.url),
            violations=violations,
        ),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Turn an unhandled exception into a 500 problem carrying an error id for log lookup."""
    error_id = str(uuid.uuid4())
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"error_id": error_id, "path": request.url.path}
    )

    return JSONResponse(
        status_code=500,
        content=_problem(
            500,
            ProblemDetailsException.title,
            ProblemDetailsException.slug,
            "An unexpected error occurred while processing the request",
            instance=str(request.url),
            error_id=error_id,
            timestamp=_utc_timestamp(),
        ),
    )
