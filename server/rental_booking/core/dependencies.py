"""FastAPI dependencies for the draft store, the rental backend client, and idempotency keys."""

from typing import Optional

from fastapi import Depends, Header, Request

from ..services.booking_service import BookingService
from ..services.draft_store import DraftStore
from ..services.rental_api_client import RentalApiClient
from .exceptions import ValidationError


def get_draft_store(request: Request) -> DraftStore:
    """Draft store created by the application lifespan."""
    return request.app.state.draft_store


def get_rental_api_client(request: Request) -> RentalApiClient:
    """Rental backend client created by the application lifespan."""
    return request.app.state.rental_api_client


def get_booking_service(
    client: RentalApiClient = Depends(get_rental_api_client),
    store: DraftStore = Depends(get_draft_store),
) -> BookingService:
    return BookingService(client, store)


async def get_idempotency_key(
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key")
) -> Optional[str]:
    """
    Optional idempotency key forwarded to the rental backend on submission.

    Raises:
        ValidationError: If the key is blank or longer than 255 characters
    """
    if idempotency_key is None:
        return None

    key = idempotency_key.strip()
    if not key or len(key) > 255:
        raise ValidationError(detail="Idempotency key must be between 1 and 255 characters")
    return key


BookingServiceDependency = Depends(get_booking_service)
IdempotencyKey = Depends(get_idempotency_key)
