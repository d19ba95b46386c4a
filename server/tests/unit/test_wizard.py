"""Unit tests for wizard step gating and the submission guard."""

import pytest

from rental_booking.schemas.booking import BookingDraft
from rental_booking.services.wizard import (
    INVERTED_DATES,
    MISSING_DATES,
    MISSING_LOCATIONS,
    MISSING_VEHICLE,
    NOT_ON_REVIEW_STEP,
    WizardState,
    WizardStep,
    can_proceed,
    validate_submission,
)


@pytest.fixture
def complete_draft():
    return BookingDraft(
        vehicle_id=7,
        start_date="2025-03-03T10:00:00",
        end_date="2025-03-06T10:00:00",
        pickup_location="Airport",
        dropoff_location="Downtown",
    )


def test_reservation_step_requires_vehicle_and_dates(complete_draft):
    assert can_proceed(WizardStep.RESERVATION_DETAILS, complete_draft)
    assert not can_proceed(WizardStep.RESERVATION_DETAILS, complete_draft.model_copy(update={"vehicle_id": None}))
    assert not can_proceed(WizardStep.RESERVATION_DETAILS, complete_draft.model_copy(update={"end_date": None}))


def test_reservation_step_requires_positive_duration(complete_draft):
    inverted = complete_draft.model_copy(update={"end_date": "2025-03-01T10:00:00"})

    assert not can_proceed(WizardStep.RESERVATION_DETAILS, inverted)


def test_logistics_step_requires_locations(complete_draft):
    assert can_proceed(WizardStep.LOGISTIC_COVERAGE, complete_draft)
    assert not can_proceed(WizardStep.LOGISTIC_COVERAGE, complete_draft.model_copy(update={"pickup_location": ""}))
    assert not can_proceed(WizardStep.LOGISTIC_COVERAGE, complete_draft.model_copy(update={"dropoff_location": "  "}))


def test_review_step_always_proceeds():
    assert can_proceed(WizardStep.PRICING_OVERVIEW, BookingDraft())


def test_advance_walks_every_step(complete_draft):
    wizard = WizardState()

    assert wizard.advance(complete_draft) is True
    assert wizard.current_step is WizardStep.LOGISTIC_COVERAGE
    assert wizard.advance(complete_draft) is True
    assert wizard.current_step is WizardStep.PRICING_OVERVIEW
    assert wizard.is_last_step

    # Already on the last step
    assert wizard.advance(complete_draft) is False
    assert wizard.completed_steps == {0, 1, 2}


def test_advance_blocked_by_guard():
    wizard = WizardState()

    assert wizard.advance(BookingDraft(vehicle_id=7)) is False
    assert wizard.current_step is WizardStep.RESERVATION_DETAILS
    assert wizard.completed_steps == set()


def test_go_to_visited_steps_only(complete_draft):
    wizard = WizardState()
    assert wizard.go_to(1) is False

    wizard.advance(complete_draft)
    wizard.advance(complete_draft)

    assert wizard.go_to(0) is True
    assert wizard.current_step is WizardStep.RESERVATION_DETAILS
    assert wizard.go_to(2) is True
    assert wizard.go_to(2) is False


def test_view_reports_state(complete_draft):
    wizard = WizardState()
    wizard.advance(complete_draft)

    view = wizard.view(complete_draft)

    assert view.current_step == 1
    assert view.current_step_name == "Logistics & coverage"
    assert view.completed_steps == [0]
    assert view.furthest_step == 1
    assert view.can_proceed is True
    assert view.is_last_step is False


def test_submission_passes_for_complete_draft(complete_draft):
    assert validate_submission(complete_draft) is None


def test_submission_rejects_end_before_start(complete_draft):
    draft = complete_draft.model_copy(update={
        "start_date": "2025-01-01T10:00",
        "end_date": "2025-01-01T09:00",
    })

    assert validate_submission(draft) == INVERTED_DATES


@pytest.mark.parametrize("update,message", [
    ({"vehicle_id": None}, MISSING_VEHICLE),
    ({"start_date": None}, MISSING_DATES),
    ({"end_date": ""}, MISSING_DATES),
    ({"start_date": "2025-03-06T10:00:00"}, INVERTED_DATES),
    ({"pickup_location": ""}, MISSING_LOCATIONS),
])
def test_submission_failures(complete_draft, update, message):
    assert validate_submission(complete_draft.model_copy(update=update)) == message


def test_submission_requires_review_step(complete_draft):
    assert validate_submission(complete_draft, current_step=WizardStep.LOGISTIC_COVERAGE) == NOT_ON_REVIEW_STEP
