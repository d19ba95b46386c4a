"""HTTP client for the rental backend: pricing quotes, catalog lookups, and booking creation."""

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError as SchemaValidationError

from ..core.config import settings
from ..schemas.booking import BookingPayload
from ..schemas.catalog import Discount, Offering, Package
from ..schemas.pricing import PricingQuote

logger = logging.getLogger(__name__)


class RentalApiError(Exception):
    """A rental backend call failed or returned an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def extract_error_message(response: httpx.Response) -> str:
    """
    Best human-readable message from a failed backend response.

    Tries message, error, errors[].message, then violations as
    'field: message', then the raw body, then the reason phrase.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message

        error = body.get("error")
        if isinstance(error, str) and error:
            return error

        errors = body.get("errors")
        if isinstance(errors, list):
            messages = [
                item.get("message") for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)

        violations = body.get("violations")
        if isinstance(violations, list):
            parts = []
            for item in violations:
                if not isinstance(item, dict):
                    continue
                field = item.get("field") or item.get("propertyPath") or item.get("path")
                text = item.get("message")
                if field and text:
                    parts.append(f"{field}: {text}")
                elif text:
                    parts.append(text)
            if parts:
                return "; ".join(parts)

    text = response.text.strip()
    if text:
        return text
    return response.reason_phrase or f"HTTP {response.status_code}"


def _embedded_offerings(body: Any) -> list[dict]:
    """Offerings from a HAL collection (`_embedded.offerings`) or a bare list."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        embedded = body.get("_embedded") or {}
        offerings = embedded.get("offerings")
        if isinstance(offerings, list):
            return offerings
        content = body.get("content")
        if isinstance(content, list):
            return content
    return []


class RentalApiClient:
    """
    Async client for the rental backend REST API.

    Every failure, whether transport, HTTP status, or an undecodable body,
    surfaces as RentalApiError so callers can record it per section.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        catalog_page_size: Optional[int] = None,
    ):
        self.base_url = (base_url or settings.rental_api_base_url).rstrip("/")
        self.catalog_page_size = catalog_page_size or settings.offering_catalog_page_size
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds or settings.rental_api_timeout_seconds,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict] = None,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method, path, json=json, params=params, headers=headers
            )
        except httpx.HTTPError as e:
            logger.warning(
                "Rental backend unreachable",
                extra={"method": method, "path": path, "error": str(e)}
            )
            raise RentalApiError(f"Rental service unavailable: {e}") from e

        if response.is_error:
            message = extract_error_message(response)
            logger.warning(
                "Rental backend returned an error",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "error": message,
                }
            )
            raise RentalApiError(message, status_code=response.status_code)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RentalApiError(
                f"Rental service returned an invalid response for {path}",
                status_code=response.status_code,
            ) from e

    def _parse(self, model, data: Any, what: str):
        try:
            return model.model_validate(data)
        except SchemaValidationError as e:
            logger.warning(
                "Unexpected rental backend payload",
                extra={"resource": what, "errors": e.error_count()}
            )
            raise RentalApiError(f"Rental service returned an invalid {what}") from e

    async def get_vehicle_pricing(self, vehicle_id: int, start_date: str, end_date: str) -> PricingQuote:
        """Fetch the authoritative rate breakdown for a vehicle and period."""
        data = await self._request(
            "POST",
            "/api/rental-pricing/calculate",
            json={"vehicleId": vehicle_id, "startDate": start_date, "endDate": end_date},
        )
        return self._parse(PricingQuote, data, "pricing quote")

    async def get_package(self, package_id: int) -> Package:
        """
        Fetch a package with its bundled offerings.

        Packages served without embedded offerings get them from the
        package's offerings sub-resource.
        """
        data = await self._request("GET", f"/api/packages/{package_id}")
        package = self._parse(Package, data, "package")

        if not package.offerings and not package.offering_ids:
            related = await self._request("GET", f"/api/packages/{package_id}/offerings")
            offerings = [
                self._parse(Offering, item, "offering")
                for item in _embedded_offerings(related)
            ]
            package = package.model_copy(update={"offerings": offerings})
        return package

    async def get_discount(self, discount_id: int) -> Discount:
        data = await self._request("GET", f"/api/discounts/{discount_id}")
        return self._parse(Discount, data, "discount")

    async def get_offerings(self) -> list[Offering]:
        """Fetch the first catalog page of offerings."""
        data = await self._request(
            "GET",
            "/api/offerings",
            params={"page": 0, "size": self.catalog_page_size},
        )
        return [self._parse(Offering, item, "offering") for item in _embedded_offerings(data)]

    async def get_mandatory_offerings(self) -> list[Offering]:
        data = await self._request(
            "GET",
            "/api/offerings/search/findByIsMandatory",
            params={"isMandatory": "true"},
        )
        return [self._parse(Offering, item, "offering") for item in _embedded_offerings(data)]

    async def create_booking(
        self,
        payload: BookingPayload,
        idempotency_key: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create a booking on the backend.

        Returns:
            The created booking as returned by the backend
        """
        headers = {"Idempotency-Key": idempotency_key} if idempotency_key else None
        data = await self._request(
            "POST",
            "/api/bookings",
            json=payload.model_dump(mode="json", by_alias=True),
            headers=headers,
        )
        logger.info(
            "Booking created on rental backend",
            extra={"vehicle_id": payload.vehicle_id, "booking_id": data.get("id") if isinstance(data, dict) else None}
        )
        return data if isinstance(data, dict) else {"result": data}
