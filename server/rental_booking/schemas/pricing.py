"""Pricing schemas: the backend's vehicle pricing quote and the computed breakdown."""

from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from .common import CamelModel


class ApplicablePricing(CamelModel):
    """One rate tier the backend applied to the requested period."""

    rate_type: Optional[str] = Field(None, description="DAILY, HOURLY, ...")
    category: Optional[str] = Field(None, description="Tier category, e.g. WEEKDAY")
    applicable_units: float = Field(0, description="Units charged at this rate")
    rate: float = Field(0, description="Unit rate")
    line_total: float = Field(0, description="applicable_units x rate")


class PricingSummary(CamelModel):
    """A named summary bucket (weekday/weekend/holiday x daily/hourly)."""

    category: Optional[str] = Field(None, description="Bucket category")
    units: float = Field(0, description="Units in the bucket")
    unit_rate: float = Field(0, description="Rate per unit")
    subtotal: float = Field(0, description="Bucket subtotal")

    @property
    def is_empty(self) -> bool:
        return not self.units and not self.subtotal


class PricingAnalysis(CamelModel):
    """Optional richer analysis block attached to newer quotes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    subtotal: Optional[float] = Field(None, description="Authoritative vehicle-side subtotal")


SUMMARY_BUCKETS: tuple[tuple[str, str], ...] = (
    ("weekday_daily_summary", "Weekday daily rate"),
    ("weekend_daily_summary", "Weekend daily rate"),
    ("weekday_hourly_summary", "Weekday hourly rate"),
    ("weekend_hourly_summary", "Weekend hourly rate"),
    ("holiday_daily_summary", "Holiday daily rate"),
    ("holiday_hourly_summary", "Holiday hourly rate"),
)


class PricingQuote(CamelModel):
    """
    Server-computed rate breakdown for a vehicle over a date range.

    Authoritative for the vehicle base charge. Unknown fields are kept so the
    quote can be echoed back to the backend unchanged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    vehicle_id: Optional[int] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    total_full_days: float = 0
    total_partial_hours: float = 0
    subtotal: float = 0
    applicable_pricings: Optional[list[ApplicablePricing]] = None
    analysis: Optional[PricingAnalysis] = None
    weekday_daily_summary: Optional[PricingSummary] = None
    weekend_daily_summary: Optional[PricingSummary] = None
    weekday_hourly_summary: Optional[PricingSummary] = None
    weekend_hourly_summary: Optional[PricingSummary] = None
    holiday_daily_summary: Optional[PricingSummary] = None
    holiday_hourly_summary: Optional[PricingSummary] = None

    def summaries(self) -> list[tuple[str, PricingSummary]]:
        """Non-empty named summary buckets in display order."""
        buckets = []
        for field_name, label in SUMMARY_BUCKETS:
            summary = getattr(self, field_name)
            if summary is not None and not summary.is_empty:
                buckets.append((label, summary))
        return buckets

    def raw(self) -> dict:
        """The quote as the backend sent it."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class LineItemKind(str, Enum):
    """What a bill line describes."""
    VEHICLE_RATE = "VEHICLE_RATE"
    PACKAGE_ADJUSTMENT = "PACKAGE_ADJUSTMENT"
    OFFERING = "OFFERING"


class LineItem(CamelModel):
    """One display line of the bill breakdown."""

    kind: LineItemKind
    label: str
    amount: float
    helper: Optional[str] = None


class PricingTotals(CamelModel):
    """Monetary summary carried in the booking payload as pricingSummary."""

    vehicle_charge: float = 0
    package_charge: float = 0
    offering_charge: float = 0
    discount_amount: float = 0
    subtotal: float = 0
    total: float = 0


class PricingBreakdown(PricingTotals):
    """Totals plus the ordered bill lines shown to the user."""

    average_rate: float = 0
    line_items: list[LineItem] = Field(default_factory=list)
    included_offering_names: list[str] = Field(default_factory=list)

    def totals(self) -> PricingTotals:
        return PricingTotals.model_validate(self.model_dump(include=set(PricingTotals.model_fields)))
