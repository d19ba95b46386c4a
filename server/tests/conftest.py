"""Test configuration and fixtures."""

import asyncio
import json
from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from rental_booking.core.dependencies import get_draft_store, get_rental_api_client
from rental_booking.services.booking_service import BookingService
from rental_booking.services.draft_store import DraftStore
from rental_booking.services.rental_api_client import RentalApiClient

RENTAL_API_BASE_URL = "http://rental.test"

# A three-day booking
START_DATE = "2025-03-03T10:00:00"
END_DATE = "2025-03-06T10:00:00"

OFFERINGS = [
    {"id": 1, "name": "GPS Navigator", "offeringType": "GPS", "price": 15.0,
     "isMandatory": False, "maxQuantityPerBooking": 1, "description": "Turn-by-turn navigation"},
    {"id": 2, "name": "Child Seat", "offeringType": "CHILD_SEAT", "price": 20.0,
     "isMandatory": False, "maxQuantityPerBooking": 3, "description": "Rear-facing seat for toddlers"},
    {"id": 3, "name": "Roadside Insurance", "offeringType": "INSURANCE", "price": 12.5,
     "isMandatory": True, "maxQuantityPerBooking": 1, "description": "24/7 roadside assistance"},
    {"id": 4, "name": "Wi-Fi Hotspot", "offeringType": "WIFI", "price": 9.99,
     "isMandatory": False, "maxQuantityPerBooking": 2, "description": None},
]

PACKAGES = {
    10: {"id": 10, "name": "Premium", "priceModifier": 1.5, "offerings": [OFFERINGS[1]]},
    11: {"id": 11, "name": "Basic", "priceModifier": 1.0},
}

# Offerings served from /api/packages/{id}/offerings for packages without embedded ones
PACKAGE_OFFERINGS = {
    11: [OFFERINGS[0]],
}

DISCOUNTS = {
    20: {"id": 20, "code": "SPRING10", "type": "PERCENTAGE", "value": 10},
    21: {"id": 21, "code": "BIGFLAT", "type": "FIXED_AMOUNT", "value": 1000},
    22: {"id": 22, "code": "BIGSPENDER", "type": "PERCENTAGE", "value": 10, "minBookingAmount": 10000},
}

QUOTES = {
    7: {
        "vehicleId": 7,
        "totalFullDays": 3,
        "totalPartialHours": 0,
        "subtotal": 300.0,
        "applicablePricings": [
            {"rateType": "DAILY", "category": "WEEKDAY", "applicableUnits": 3, "rate": 100.0, "lineTotal": 300.0},
        ],
        "currency": "USD",
    },
    8: {
        "vehicleId": 8,
        "totalFullDays": 3,
        "totalPartialHours": 0,
        "subtotal": 280.0,
        "weekdayDailySummary": {"category": "WEEKDAY", "units": 2, "unitRate": 80.0, "subtotal": 160.0},
        "weekendDailySummary": {"category": "WEEKEND", "units": 1, "unitRate": 120.0, "subtotal": 120.0},
        "holidayDailySummary": {"category": "HOLIDAY", "units": 0, "unitRate": 0, "subtotal": 0},
    },
    9: {
        "vehicleId": 9,
        "totalFullDays": 3,
        "totalPartialHours": 0,
        "subtotal": 300.0,
        "applicablePricings": [],
        "analysis": {"subtotal": 275.0, "strategy": "LOYALTY"},
    },
}


def _embedded(offerings: list[dict]) -> dict:
    return {
        "_embedded": {"offerings": offerings},
        "page": {"size": len(offerings), "totalElements": len(offerings), "number": 0},
    }


class FakeRentalBackend:
    """
    In-memory rental backend served through httpx.MockTransport.

    `failures` maps a route name (pricing, package, package_offerings,
    discount, offerings, mandatory, bookings) to a (status, body) pair
    returned instead of the normal answer. `pricing_gates` holds an event
    per vehicle id that the pricing endpoint waits on before answering;
    `booking_gate`, when set, holds booking creation the same way.
    """

    def __init__(self):
        self.offerings = [dict(offering) for offering in OFFERINGS]
        self.packages = {key: dict(value) for key, value in PACKAGES.items()}
        self.package_offerings = dict(PACKAGE_OFFERINGS)
        self.discounts = dict(DISCOUNTS)
        self.quotes = dict(QUOTES)
        self.failures: dict[str, tuple[int, Any]] = {}
        self.pricing_gates: dict[int, asyncio.Event] = {}
        self.booking_gate: Optional[asyncio.Event] = None
        self.requests: list[httpx.Request] = []
        self.bookings: list[dict] = []

    def fail(self, route: str, status_code: int = 500, body: Any = None) -> None:
        self.failures[route] = (status_code, body if body is not None else {"message": "Internal error"})

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def _failure(self, route: str) -> Optional[httpx.Response]:
        if route not in self.failures:
            return None
        status_code, body = self.failures[route]
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        parts = [part for part in path.split("/") if part]

        if request.method == "POST" and path == "/api/rental-pricing/calculate":
            body = json.loads(request.content)
            gate = self.pricing_gates.get(body["vehicleId"])
            if gate is not None:
                await gate.wait()
            failure = self._failure("pricing")
            if failure is not None:
                return failure
            quote = self.quotes.get(body["vehicleId"])
            if quote is None:
                return httpx.Response(404, json={"message": f"Vehicle {body['vehicleId']} not found"})
            return httpx.Response(200, json={**quote, "startDate": body["startDate"], "endDate": body["endDate"]})

        if request.method == "GET" and parts[:2] == ["api", "packages"]:
            package_id = int(parts[2])
            if len(parts) == 4 and parts[3] == "offerings":
                failure = self._failure("package_offerings")
                if failure is not None:
                    return failure
                return httpx.Response(200, json=_embedded(self.package_offerings.get(package_id, [])))
            failure = self._failure("package")
            if failure is not None:
                return failure
            if package_id not in self.packages:
                return httpx.Response(404, json={"error": "Package not found"})
            return httpx.Response(200, json=self.packages[package_id])

        if request.method == "GET" and parts[:2] == ["api", "discounts"]:
            failure = self._failure("discount")
            if failure is not None:
                return failure
            discount_id = int(parts[2])
            if discount_id not in self.discounts:
                return httpx.Response(404, json={"error": "Discount not found"})
            return httpx.Response(200, json=self.discounts[discount_id])

        if request.method == "GET" and path == "/api/offerings/search/findByIsMandatory":
            failure = self._failure("mandatory")
            if failure is not None:
                return failure
            return httpx.Response(200, json=_embedded([o for o in self.offerings if o["isMandatory"]]))

        if request.method == "GET" and path == "/api/offerings":
            failure = self._failure("offerings")
            if failure is not None:
                return failure
            return httpx.Response(200, json=_embedded(self.offerings))

        if request.method == "POST" and path == "/api/bookings":
            if self.booking_gate is not None:
                await self.booking_gate.wait()
            failure = self._failure("bookings")
            if failure is not None:
                return failure
            body = json.loads(request.content)
            booking = {"id": 500 + len(self.bookings) + 1, **body}
            self.bookings.append(booking)
            return httpx.Response(201, json=booking)

        return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})


@pytest.fixture
def fake_backend():
    """Fresh fake rental backend per test."""
    return FakeRentalBackend()


@pytest_asyncio.fixture(scope="function")
async def rental_client(fake_backend):
    """Rental backend client wired to the fake backend."""
    client = RentalApiClient(
        base_url=RENTAL_API_BASE_URL,
        timeout_seconds=5,
        transport=httpx.MockTransport(fake_backend.handler),
    )
    yield client
    await client.aclose()


@pytest.fixture
def draft_store():
    return DraftStore(ttl_seconds=3600, max_size=50)


@pytest.fixture
def booking_service(rental_client, draft_store):
    return BookingService(rental_client, draft_store)


@pytest_asyncio.fixture(scope="function")
async def test_app(rental_client, draft_store):
    """Create a test FastAPI application."""
    from fastapi import FastAPI

    from rental_booking.main import register_exception_handlers, register_routers

    # Simplified test app without lifespan or middleware
    app = FastAPI(
        title="Rental Booking Quote API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )
    register_exception_handlers(app)
    register_routers(app)

    app.dependency_overrides[get_rental_api_client] = lambda: rental_client
    app.dependency_overrides[get_draft_store] = lambda: draft_store

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def sample_draft_data():
    """Reservation details for a three-day booking of vehicle 7."""
    return {
        "vehicle_id": 7,
        "start_date": START_DATE,
        "end_date": END_DATE,
    }
