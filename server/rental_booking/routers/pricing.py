"""Stateless pricing router for callers that keep their own draft state."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..schemas.booking import QuotePricingRequest
from ..schemas.pricing import PricingBreakdown
from ..services.pricing import compute_breakdown

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/pricing", tags=["pricing"])


@router.post("/quote", response_model=PricingBreakdown)
async def quote_pricing(request: QuotePricingRequest) -> JSONResponse:
    """
    Price an inline draft.

    Selections are taken as sent, including their `included` flags; no
    package reconciliation is applied.
    """
    breakdown = compute_breakdown(
        request.draft,
        request.selections,
        quote=request.quote,
        package=request.package,
        discount=request.discount,
    )

    logger.debug(
        "Stateless pricing computed",
        extra={
            "vehicle_id": request.draft.vehicle_id,
            "subtotal": breakdown.subtotal,
            "total": breakdown.total,
        }
    )

    return JSONResponse(status_code=200, content=breakdown.model_dump(mode="json"))
