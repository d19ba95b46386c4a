"""Catalog schemas: offerings, packages, and discounts as served by the rental backend."""

from enum import Enum
from typing import Optional

from pydantic import Field

from .common import CamelModel


class OfferingType(str, Enum):
    """Closed set of offering kinds; anything unrecognised is OTHER."""
    GPS = "GPS"
    INSURANCE = "INSURANCE"
    CHILD_SEAT = "CHILD_SEAT"
    WIFI = "WIFI"
    ADDITIONAL_DRIVER = "ADDITIONAL_DRIVER"
    OTHER = "OTHER"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().upper().replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return cls.OTHER

    @property
    def label(self) -> str:
        """Human readable name, e.g. CHILD_SEAT -> 'Child Seat'."""
        if self is OfferingType.GPS:
            return "GPS"
        if self is OfferingType.WIFI:
            return "Wi-Fi"
        return self.value.replace("_", " ").title()


class Offering(CamelModel):
    """An ancillary add-on that can be attached to a booking."""

    id: int = Field(..., description="Offering ID")
    name: str = Field("", description="Offering name")
    offering_type: OfferingType = Field(OfferingType.OTHER, description="Offering kind")
    price: Optional[float] = Field(None, ge=0, description="Unit price")
    is_mandatory: bool = Field(False, description="Whether every booking must carry it")
    max_quantity_per_booking: Optional[int] = Field(None, ge=0, description="Per-booking quantity cap")
    description: Optional[str] = Field(None, description="Offering description")

    @property
    def unit_price(self) -> float:
        return self.price if self.price is not None else 0.0

    @property
    def display_name(self) -> str:
        return self.name or f"Offering #{self.id}"

    def matches(self, term: str) -> bool:
        """Case-insensitive match against name, description, and offering type."""
        lowered = term.strip().lower()
        if not lowered:
            return True
        haystacks = (
            self.name.lower(),
            (self.description or "").lower(),
            self.offering_type.value.lower(),
        )
        return any(lowered in haystack for haystack in haystacks)


class Package(CamelModel):
    """A pricing bundle applying a modifier to the vehicle charge."""

    id: int = Field(..., description="Package ID")
    name: str = Field("", description="Package name")
    price_modifier: Optional[float] = Field(None, ge=0, description="Multiplier on the vehicle base charge")
    offerings: list[Offering] = Field(default_factory=list, description="Offerings bundled for free")
    offering_ids: list[int] = Field(default_factory=list, description="IDs of bundled offerings")

    @property
    def modifier(self) -> float:
        return 1.0 if self.price_modifier is None else self.price_modifier

    @property
    def included_offering_ids(self) -> set[int]:
        return {offering.id for offering in self.offerings} | set(self.offering_ids)


class DiscountType(str, Enum):
    """Discount kinds; the backend's FIXED_AMOUNT spelling maps to FLAT."""
    PERCENTAGE = "PERCENTAGE"
    FLAT = "FLAT"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str) and value.upper() in ("FIXED_AMOUNT", "FIXED", "FLAT"):
            return cls.FLAT
        return None


class Discount(CamelModel):
    """A percentage-off or flat reduction applied to the subtotal."""

    id: int = Field(..., description="Discount ID")
    code: Optional[str] = Field(None, description="Promo code")
    type: DiscountType = Field(..., description="PERCENTAGE or FLAT")
    value: float = Field(..., ge=0, description="Percent (0-100) or flat amount")
    min_booking_amount: float = Field(0, ge=0, description="Subtotal required before the discount applies")
