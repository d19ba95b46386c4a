"""Charge aggregation: vehicle, package, and offering charges into a subtotal and bill lines."""

import math
import sys
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..schemas.booking import OfferingSelection
from ..schemas.catalog import Package
from ..schemas.pricing import LineItem, LineItemKind, PricingQuote

EPSILON = sys.float_info.epsilon


def round2(value: float) -> float:
    """
    Round to cents, half up, after nudging by machine epsilon.

    The nudge keeps values like 2.675 (stored as 2.67499...) from rounding
    down. Non-finite input rounds to 0.
    """
    if not math.isfinite(value):
        return 0.0
    scaled = (value + EPSILON) * 100 + 0.5
    if not math.isfinite(scaled):
        # Too large to carry cents
        return value
    return math.floor(scaled) / 100


def format_currency(amount: float) -> str:
    """Render an amount as US dollars, e.g. 1234.5 -> '$1,234.50'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def _format_units(units: float) -> str:
    return f"{units:g}"


def average_rate(quote: Optional[PricingQuote]) -> float:
    """Average daily rate implied by a quote; 0 without a quote or a usable period."""
    if quote is None:
        return 0.0
    divisor = quote.total_full_days + quote.total_partial_hours / 24
    if divisor <= 0:
        return 0.0
    return quote.subtotal / divisor


@dataclass
class ChargeTotals:
    """Charges before discount."""

    average_rate: float = 0.0
    vehicle_charge: float = 0.0
    package_charge: float = 0.0
    offering_charge: float = 0.0
    vehicle_side_amount: float = 0.0
    subtotal: float = 0.0
    included_offering_names: list[str] = field(default_factory=list)


def offering_amount(selection: OfferingSelection) -> float:
    """Charge for the billable units of one entry."""
    return selection.offering.unit_price * selection.billable_quantity


def compute_charges(
    total_days: float,
    quote: Optional[PricingQuote],
    package: Optional[Package],
    selections: Iterable[OfferingSelection],
) -> ChargeTotals:
    """
    Combine the vehicle quote, package modifier, and offerings into a subtotal.

    Args:
        total_days: Fractional rental days from the duration calculator
        quote: Backend pricing quote, if one was fetched
        package: Selected package, if any
        selections: Offering ledger entries

    Returns:
        ChargeTotals with every amount rounded to cents
    """
    rate = average_rate(quote)
    base_vehicle = rate * total_days

    if total_days == 0:
        package_charge = 0.0
    elif package is not None:
        package_charge = round2(base_vehicle * package.modifier)
    else:
        package_charge = round2(base_vehicle)

    offering_sum = 0.0
    included_names = []
    for selection in selections:
        if selection.included:
            included_names.append(selection.offering.display_name)
        if selection.billable_quantity > 0:
            offering_sum += offering_amount(selection)
    offering_charge = round2(offering_sum)

    vehicle_side = package_charge
    if quote is not None and quote.analysis is not None and quote.analysis.subtotal is not None:
        vehicle_side = quote.analysis.subtotal

    return ChargeTotals(
        average_rate=rate,
        vehicle_charge=round2(base_vehicle),
        package_charge=package_charge,
        offering_charge=offering_charge,
        vehicle_side_amount=vehicle_side,
        subtotal=round2(vehicle_side + offering_charge),
        included_offering_names=included_names,
    )


def _quote_lines(quote: PricingQuote) -> list[LineItem]:
    lines = []
    if quote.applicable_pricings:
        for pricing in quote.applicable_pricings:
            label_parts = [part for part in (pricing.category, pricing.rate_type) if part]
            label = " ".join(part.replace("_", " ").title() for part in label_parts) or "Vehicle rate"
            lines.append(LineItem(
                kind=LineItemKind.VEHICLE_RATE,
                label=label,
                amount=round2(pricing.line_total),
                helper=f"{_format_units(pricing.applicable_units)} × {format_currency(pricing.rate)}",
            ))
        return lines

    for label, summary in quote.summaries():
        lines.append(LineItem(
            kind=LineItemKind.VEHICLE_RATE,
            label=label,
            amount=round2(summary.subtotal),
            helper=f"{_format_units(summary.units)} × {format_currency(summary.unit_rate)}",
        ))
    return lines


def build_line_items(
    totals: ChargeTotals,
    quote: Optional[PricingQuote],
    package: Optional[Package],
    selections: Iterable[OfferingSelection],
) -> list[LineItem]:
    """
    Ordered bill lines: rate tiers, package adjustment, fallback rate, offerings.

    Built for display only; the monetary totals come from compute_charges.
    """
    lines: list[LineItem] = []

    if quote is not None:
        lines.extend(_quote_lines(quote))

    if package is not None and package.modifier != 1:
        percent = round2((package.modifier - 1) * 100)
        lines.append(LineItem(
            kind=LineItemKind.PACKAGE_ADJUSTMENT,
            label=f"Package: {package.name}" if package.name else "Package adjustment",
            amount=round2(totals.vehicle_charge * (package.modifier - 1)),
            helper=f"{percent:+g}% of vehicle charge",
        ))

    if quote is None and totals.package_charge > 0:
        lines.append(LineItem(
            kind=LineItemKind.VEHICLE_RATE,
            label="Vehicle rate",
            amount=totals.package_charge,
        ))

    for selection in selections:
        billable = selection.billable_quantity
        if billable <= 0:
            continue
        helper = f"{billable} billable × {format_currency(selection.offering.unit_price)}"
        if selection.included:
            helper += ". First unit covered by package."
        lines.append(LineItem(
            kind=LineItemKind.OFFERING,
            label=selection.offering.display_name,
            amount=round2(offering_amount(selection)),
            helper=helper,
        ))

    return lines
