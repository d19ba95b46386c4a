"""Discount application on top of the computed subtotal."""

from dataclasses import dataclass
from typing import Optional

from ..schemas.catalog import Discount, DiscountType
from .charges import round2


@dataclass(frozen=True)
class DiscountResult:
    discount_amount: float
    total: float


def raw_discount(discount: Discount, subtotal: float) -> float:
    if discount.type is DiscountType.PERCENTAGE:
        return discount.value / 100 * subtotal
    return discount.value


def apply_discount(discount: Optional[Discount], subtotal: float) -> DiscountResult:
    """
    Reduce the subtotal by a discount, never below zero.

    No discount, a non-positive subtotal, or a subtotal under the discount's
    minimum booking amount gives a zero discount.
    """
    amount = 0.0
    if discount is not None and subtotal > 0 and subtotal >= discount.min_booking_amount:
        amount = round2(min(raw_discount(discount, subtotal), subtotal))

    return DiscountResult(
        discount_amount=amount,
        total=round2(subtotal - amount),
    )
