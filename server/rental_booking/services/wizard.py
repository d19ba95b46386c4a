"""Three-step booking wizard: step gating, navigation, and the final submission guard."""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from ..schemas.booking import BookingDraft, WizardView
from .duration import Duration, compute_duration, parse_timestamp

logger = logging.getLogger(__name__)


class WizardStep(IntEnum):
    """Wizard steps in order."""
    RESERVATION_DETAILS = 0
    LOGISTIC_COVERAGE = 1
    PRICING_OVERVIEW = 2

    @property
    def label(self) -> str:
        return _STEP_LABELS[self]


_STEP_LABELS = {
    WizardStep.RESERVATION_DETAILS: "Reservation details",
    WizardStep.LOGISTIC_COVERAGE: "Logistics & coverage",
    WizardStep.PRICING_OVERVIEW: "Pricing overview",
}

LAST_STEP = WizardStep.PRICING_OVERVIEW

MISSING_VEHICLE = "Please select a vehicle for this booking."
MISSING_DATES = "Start and end dates are required."
INVERTED_DATES = "Start date must be before end date."
ZERO_DURATION = "Booking duration must be greater than zero."
MISSING_LOCATIONS = "Pickup and dropoff locations are required."
NOT_ON_REVIEW_STEP = "Review the pricing overview before submitting the booking."


def can_proceed(step: int, draft: BookingDraft, duration: Optional[Duration] = None) -> bool:
    """Whether the given step is complete enough to move past it."""
    if step == WizardStep.RESERVATION_DETAILS:
        if duration is None:
            duration = compute_duration(draft.start_date, draft.end_date)
        return (
            draft.vehicle_id is not None
            and bool(draft.start_date)
            and bool(draft.end_date)
            and duration.total_days > 0
        )
    if step == WizardStep.LOGISTIC_COVERAGE:
        return bool(draft.pickup_location.strip()) and bool(draft.dropoff_location.strip())
    return True


@dataclass
class WizardState:
    """Position in the wizard plus the steps already validated."""

    current_step: WizardStep = WizardStep.RESERVATION_DETAILS
    completed_steps: set[int] = field(default_factory=set)
    furthest_step: WizardStep = WizardStep.RESERVATION_DETAILS

    @property
    def is_last_step(self) -> bool:
        return self.current_step == LAST_STEP

    def advance(self, draft: BookingDraft, duration: Optional[Duration] = None) -> bool:
        """
        Move forward one step if the current step is satisfied.

        The current step is marked completed whenever its guard passes.

        Returns:
            True if the current step changed
        """
        if not can_proceed(self.current_step, draft, duration):
            logger.debug(
                "Wizard step blocked",
                extra={"step": self.current_step.name}
            )
            return False

        self.completed_steps.add(int(self.current_step))
        if self.is_last_step:
            return False

        self.current_step = WizardStep(self.current_step + 1)
        self.furthest_step = max(self.furthest_step, self.current_step)
        return True

    def go_to(self, step: int) -> bool:
        """
        Jump to any step already reached.

        Returns:
            True if the current step changed
        """
        if step < WizardStep.RESERVATION_DETAILS or step > self.furthest_step:
            return False
        if step == self.current_step:
            return False
        self.current_step = WizardStep(step)
        return True

    def view(self, draft: BookingDraft, duration: Optional[Duration] = None) -> WizardView:
        return WizardView(
            current_step=int(self.current_step),
            current_step_name=self.current_step.label,
            completed_steps=sorted(self.completed_steps),
            furthest_step=int(self.furthest_step),
            can_proceed=can_proceed(self.current_step, draft, duration),
            is_last_step=self.is_last_step,
        )


def validate_submission(
    draft: BookingDraft,
    current_step: int = LAST_STEP,
    duration: Optional[Duration] = None,
) -> Optional[str]:
    """
    Final check before a booking is created.

    Returns:
        The form-level error message, or None when the draft can be submitted
    """
    if current_step != LAST_STEP:
        return NOT_ON_REVIEW_STEP
    if draft.vehicle_id is None:
        return MISSING_VEHICLE
    if not draft.start_date or not draft.end_date:
        return MISSING_DATES

    start_at = parse_timestamp(draft.start_date)
    end_at = parse_timestamp(draft.end_date)
    if start_at is None or end_at is None:
        return MISSING_DATES
    if start_at >= end_at:
        return INVERTED_DATES

    if duration is None:
        duration = compute_duration(draft.start_date, draft.end_date)
    if duration.total_days <= 0:
        return ZERO_DURATION
    if not can_proceed(WizardStep.LOGISTIC_COVERAGE, draft):
        return MISSING_LOCATIONS
    return None
