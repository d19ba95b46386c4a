"""Pricing breakdown and booking payload assembly over a draft snapshot."""

import logging
from typing import Iterable, Optional

from opentelemetry import trace

from ..core.observability import metrics_collector
from ..schemas.booking import BookingDraft, BookingOfferingLine, BookingPayload, OfferingSelection
from ..schemas.catalog import Discount, Package
from ..schemas.pricing import PricingBreakdown, PricingQuote
from .charges import build_line_items, compute_charges, offering_amount, round2
from .discounts import apply_discount
from .duration import Duration, compute_duration

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def compute_breakdown(
    draft: BookingDraft,
    selections: Iterable[OfferingSelection],
    quote: Optional[PricingQuote] = None,
    package: Optional[Package] = None,
    discount: Optional[Discount] = None,
    duration: Optional[Duration] = None,
) -> PricingBreakdown:
    """
    Price a draft: charges, discount, total, and the display lines.

    Args:
        draft: Draft whose dates drive the duration
        selections: Offering ledger entries
        quote: Vehicle pricing quote, if available
        package: Selected package, if any
        discount: Selected discount, if any
        duration: Precomputed duration for the draft's dates

    Returns:
        PricingBreakdown with totals and ordered line items
    """
    selections = list(selections)
    if duration is None:
        duration = compute_duration(draft.start_date, draft.end_date)

    with tracer.start_as_current_span("booking.compute_pricing") as span:
        charges = compute_charges(duration.total_days, quote, package, selections)
        discounted = apply_discount(discount, charges.subtotal)
        line_items = build_line_items(charges, quote, package, selections)

        span.set_attribute("booking.total_days", duration.total_days)
        span.set_attribute("booking.has_quote", quote is not None)
        span.set_attribute("booking.offering_count", len(selections))
        span.set_attribute("booking.total", discounted.total)

    metrics_collector.record_pricing_computed()

    return PricingBreakdown(
        average_rate=charges.average_rate,
        vehicle_charge=charges.vehicle_charge,
        package_charge=charges.package_charge,
        offering_charge=charges.offering_charge,
        discount_amount=discounted.discount_amount,
        subtotal=charges.subtotal,
        total=discounted.total,
        line_items=line_items,
        included_offering_names=charges.included_offering_names,
    )


def payload_offering_lines(selections: Iterable[OfferingSelection]) -> list[BookingOfferingLine]:
    return [
        BookingOfferingLine(
            offering_id=selection.offering.id,
            quantity=selection.quantity,
            price=selection.offering.unit_price,
            total_price=round2(offering_amount(selection)),
            included=selection.included,
        )
        for selection in selections
    ]


def assemble_payload(
    draft: BookingDraft,
    duration: Duration,
    selections: Iterable[OfferingSelection],
    breakdown: PricingBreakdown,
    quote: Optional[PricingQuote] = None,
) -> BookingPayload:
    """
    Booking-creation payload for a draft that passed the submission guard.

    The rental fee is the subtotal; the final price and the balance due are
    the discounted total.
    """
    return BookingPayload(
        vehicle_id=draft.vehicle_id,
        package_id=draft.package_id,
        discount_id=draft.discount_id,
        start_date=draft.start_date,
        end_date=draft.end_date,
        pickup_location=draft.pickup_location,
        dropoff_location=draft.dropoff_location,
        insurance_policy=draft.insurance_policy,
        total_days=duration.total_days,
        total_rental_fee=breakdown.subtotal,
        final_price=breakdown.total,
        balance_payment=breakdown.total,
        status=draft.status,
        offerings=payload_offering_lines(selections),
        pricing_summary=breakdown.totals(),
        applied_pricing=quote.raw() if quote is not None else None,
    )
