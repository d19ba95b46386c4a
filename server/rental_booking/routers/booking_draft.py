"""Booking draft router: compose, price, and submit a booking step by step."""

import logging
from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..core.dependencies import BookingServiceDependency, IdempotencyKey
from ..core.exceptions import BookingSubmissionError, ValidationError
from ..schemas.booking import (
    BookingPayload,
    CreateDraftRequest,
    DraftView,
    GetDraftRequest,
    GoToStepRequest,
    SetOfferingQuantityRequest,
    SubmissionStatus,
    SubmitDraftResponse,
    ToggleOfferingRequest,
    UpdateDraftRequest,
)
from ..schemas.common import DraftRequest
from ..schemas.pricing import PricingBreakdown
from ..services.booking_service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking-draft", tags=["booking-draft"])


def _draft_response(view: DraftView) -> JSONResponse:
    return JSONResponse(status_code=200, content=view.model_dump(mode="json"))


@router.post("/create", response_model=DraftView)
async def create_draft(
    request: CreateDraftRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """
    Start a booking draft.

    Loads the offering catalogs and, when the initial fields allow it, the
    package, discount, and vehicle pricing quote. Lookup failures show up in
    `section_errors` instead of failing the request.
    """
    session = await service.create_draft(request)
    return _draft_response(service.build_view(session))


@router.post("/get", response_model=DraftView)
async def get_draft(
    request: GetDraftRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """
    Current draft state; `offering_search` filters the available offerings.

    Catalog or pricing lookups that failed earlier are retried first.
    """
    session = await service.load_draft(request.draft_id)
    return _draft_response(service.build_view(session, offering_search=request.offering_search))


@router.post("/update", response_model=DraftView)
async def update_draft(
    request: UpdateDraftRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """
    Change draft fields.

    Only the fields sent are applied. An explicit null clears a field.
    """
    session = await service.update_draft(request)
    return _draft_response(service.build_view(session))


@router.post("/offering/toggle", response_model=DraftView)
async def toggle_offering(
    request: ToggleOfferingRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """Select or deselect an offering. Mandatory offerings stay selected."""
    session = service.toggle_offering(request.draft_id, request.offering_id, request.selected)
    return _draft_response(service.build_view(session))


@router.post("/offering/quantity", response_model=DraftView)
async def set_offering_quantity(
    request: SetOfferingQuantityRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    session = service.set_offering_quantity(request.draft_id, request.offering_id, request.quantity)
    return _draft_response(service.build_view(session))


@router.post("/step/advance", response_model=DraftView)
async def advance_step(
    request: DraftRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """Move to the next wizard step when the current one is complete."""
    session, changed = service.advance_step(request.draft_id)
    return _draft_response(service.build_view(session, step_changed=changed))


@router.post("/step/goto", response_model=DraftView)
async def go_to_step(
    request: GoToStepRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """Jump to any wizard step already reached."""
    session, changed = service.go_to_step(request.draft_id, request.step)
    return _draft_response(service.build_view(session, step_changed=changed))


@router.post("/pricing", response_model=PricingBreakdown)
async def get_pricing(
    request: DraftRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    session = service.get_session(request.draft_id)
    breakdown = service.compute_pricing(session)
    return JSONResponse(status_code=200, content=breakdown.model_dump(mode="json"))


@router.post("/payload", response_model=BookingPayload)
async def preview_payload(
    request: DraftRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    """
    The booking-creation body that submission would send, without sending it.

    Returned with the rental backend's camelCase field names.
    """
    session = service.get_session(request.draft_id)
    payload = service.build_payload(session)
    return JSONResponse(status_code=200, content=payload.model_dump(mode="json", by_alias=True))


@router.post("/submit", response_model=SubmitDraftResponse)
async def submit_draft(
    request: DraftRequest,
    service: BookingService = BookingServiceDependency,
    idempotency_key: Optional[str] = IdempotencyKey,
) -> JSONResponse:
    """
    Create the booking on the rental backend.

    A draft that fails validation answers 400 with the form message; a
    backend rejection answers 502 with the backend's message. In both cases
    the draft is kept so the user can fix it and retry.
    """
    result = await service.submit(request.draft_id, idempotency_key=idempotency_key)

    if result.status is SubmissionStatus.VALIDATION_FAILED:
        raise ValidationError(detail=result.error)

    if result.status is SubmissionStatus.REJECTED:
        raise BookingSubmissionError(
            draft_id=request.draft_id,
            detail=result.error or "The rental service rejected the booking",
            upstream_status=result.upstream_status,
        )

    logger.info(
        "Booking draft submitted",
        extra={
            "draft_id": result.draft_id,
            "idempotency_key": idempotency_key,
        }
    )

    response = SubmitDraftResponse(
        draft_id=result.draft_id,
        status=result.status,
        booking=result.booking or {},
        payload=result.payload,
    )
    return JSONResponse(status_code=200, content=response.model_dump(mode="json", by_alias=True))


@router.post("/discard")
async def discard_draft(
    request: DraftRequest,
    service: BookingService = BookingServiceDependency,
) -> JSONResponse:
    service.discard(request.draft_id)
    return JSONResponse(status_code=200, content={"draft_id": request.draft_id, "discarded": True})
