"""Booking-related Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from .catalog import Discount, Offering, Package
from .common import CamelModel, DraftRequest
from .pricing import PricingBreakdown, PricingQuote, PricingTotals


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class BookingDraft(CamelModel):
    """The in-progress state of one booking being composed."""

    vehicle_id: Optional[int] = None
    package_id: Optional[int] = None
    discount_id: Optional[int] = None
    start_date: Optional[str] = Field(None, description="ISO-8601 timestamp as entered")
    end_date: Optional[str] = Field(None, description="ISO-8601 timestamp as entered")
    pickup_location: str = ""
    dropoff_location: str = ""
    insurance_policy: str = ""
    status: BookingStatus = BookingStatus.PENDING


class OfferingSelection(CamelModel):
    """One ledger entry: an offering, its requested quantity, and its free-unit flag."""

    offering: Offering
    quantity: int = Field(1, ge=1)
    included: bool = False

    @property
    def billable_quantity(self) -> int:
        return max(0, self.quantity - (1 if self.included else 0))


class BookingOfferingLine(CamelModel):
    """Offering entry of the booking-creation payload."""

    offering_id: int
    quantity: int
    price: float
    total_price: float
    included: bool


class BookingPayload(CamelModel):
    """Validated booking-creation payload sent to the rental backend."""

    vehicle_id: int
    package_id: Optional[int] = None
    discount_id: Optional[int] = None
    start_date: str
    end_date: str
    pickup_location: str
    dropoff_location: str
    insurance_policy: str
    total_days: float
    total_rental_fee: float
    final_price: float
    balance_payment: float
    status: BookingStatus
    offerings: list[BookingOfferingLine] = Field(default_factory=list)
    pricing_summary: PricingTotals
    applied_pricing: Optional[dict[str, Any]] = None


# Request schemas

class CreateDraftRequest(BaseModel):
    """Request schema for starting a booking draft."""

    vehicle_id: Optional[int] = Field(None, description="Vehicle to book")
    package_id: Optional[int] = Field(None, description="Package to apply")
    discount_id: Optional[int] = Field(None, description="Discount to apply")
    start_date: Optional[str] = Field(None, max_length=64, description="Rental start (ISO 8601)")
    end_date: Optional[str] = Field(None, max_length=64, description="Rental end (ISO 8601)")
    pickup_location: Optional[str] = Field(None, max_length=255, description="Pickup location")
    dropoff_location: Optional[str] = Field(None, max_length=255, description="Dropoff location")
    insurance_policy: Optional[str] = Field(None, max_length=2000, description="Insurance notes")
    status: Optional[BookingStatus] = Field(None, description="Initial booking status")


class UpdateDraftRequest(CreateDraftRequest):
    """
    Request schema for changing draft fields.

    Only fields present in the request body are applied; an explicit null
    clears the vehicle, package, discount, or a date.
    """

    draft_id: str = Field(..., min_length=1, description="Booking draft ID")


class ToggleOfferingRequest(DraftRequest):
    """Request schema for selecting or deselecting an offering."""

    offering_id: int = Field(..., description="Offering to toggle")
    selected: bool = Field(..., description="Whether the offering should be on the booking")


class SetOfferingQuantityRequest(DraftRequest):
    """Request schema for changing an offering quantity."""

    offering_id: int = Field(..., description="Offering to update")
    quantity: int = Field(..., description="Requested quantity; clamped to the offering limits")


class GoToStepRequest(DraftRequest):
    """Request schema for navigating the wizard."""

    step: int = Field(..., ge=0, le=2, description="Target step index")


class GetDraftRequest(DraftRequest):
    """Request schema for reading a draft."""

    offering_search: Optional[str] = Field(None, max_length=100, description="Filter for the offering catalog")


class QuotePricingRequest(BaseModel):
    """Stateless pricing request carrying everything the calculation needs."""

    draft: BookingDraft = Field(default_factory=BookingDraft)
    selections: list[OfferingSelection] = Field(default_factory=list)
    package: Optional[Package] = None
    discount: Optional[Discount] = None
    quote: Optional[PricingQuote] = None


# Response schemas

class DurationView(BaseModel):
    """Elapsed rental time for the draft's dates."""

    total_days: float
    total_hours: float
    label: str


class WizardView(BaseModel):
    """Wizard position and per-step gating."""

    current_step: int
    current_step_name: str
    completed_steps: list[int]
    furthest_step: int
    can_proceed: bool
    is_last_step: bool


class DraftView(BaseModel):
    """Everything the dashboard needs to render the booking wizard."""

    draft_id: str
    draft: BookingDraft
    selections: list[OfferingSelection]
    available_offerings: list[Offering]
    package: Optional[Package] = None
    discount: Optional[Discount] = None
    wizard: WizardView
    duration: DurationView
    pricing: PricingBreakdown
    section_errors: dict[str, str] = Field(default_factory=dict)
    form_error: Optional[str] = None
    notification: Optional[str] = None
    step_changed: Optional[bool] = None
    updated_at: datetime


class SubmissionStatus(str, Enum):
    """Outcome of a submission attempt."""
    CREATED = "CREATED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    REJECTED = "REJECTED"


class SubmitDraftResponse(BaseModel):
    """Response schema for a successful submission."""

    draft_id: str
    status: SubmissionStatus
    booking: dict[str, Any] = Field(default_factory=dict)
    payload: BookingPayload
