"""Service layer package."""

from .booking_service import BookingService, SubmissionResult
from .draft_store import DraftSession, DraftStore
from .offering_ledger import OfferingLedger
from .rental_api_client import RentalApiClient, RentalApiError

__all__ = [
    "BookingService",
    "DraftSession",
    "DraftStore",
    "OfferingLedger",
    "RentalApiClient",
    "RentalApiError",
    "SubmissionResult",
]
