"""Booking draft service: draft lifecycle, collaborator lookups, pricing, and submission."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..core.exceptions import NotFoundError, ValidationError
from ..core.observability import metrics_collector
from ..schemas.booking import (
    BookingDraft,
    BookingPayload,
    BookingStatus,
    CreateDraftRequest,
    DraftView,
    DurationView,
    SubmissionStatus,
    UpdateDraftRequest,
)
from ..schemas.catalog import Offering
from ..schemas.pricing import PricingBreakdown
from .draft_store import DraftSession, DraftStore
from .duration import Duration, compute_duration
from .pricing import assemble_payload, compute_breakdown
from .rental_api_client import RentalApiClient, RentalApiError
from .wizard import LAST_STEP, validate_submission

logger = logging.getLogger(__name__)

SECTION_PRICING = "pricing"
SECTION_PACKAGE = "package"
SECTION_DISCOUNT = "discount"
SECTION_OFFERINGS = "offerings"
SECTION_MANDATORY_OFFERINGS = "mandatory_offerings"

QUOTE_FIELDS = frozenset({"vehicle_id", "start_date", "end_date"})
TEXT_FIELDS = frozenset({"pickup_location", "dropoff_location", "insurance_policy"})

SUBMISSION_IN_PROGRESS = "A submission for this booking is already in progress."


@dataclass
class SubmissionResult:
    """Outcome of a submission attempt; failures are reported, not raised."""

    draft_id: str
    status: SubmissionStatus
    payload: Optional[BookingPayload] = None
    booking: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    upstream_status: Optional[int] = None

    @property
    def created(self) -> bool:
        return self.status is SubmissionStatus.CREATED


def quote_ready(draft: BookingDraft) -> bool:
    """A pricing quote is only requested once vehicle and both dates are present."""
    return draft.vehicle_id is not None and bool(draft.start_date) and bool(draft.end_date)


class BookingService:
    """Service for booking draft operations."""

    def __init__(self, client: RentalApiClient, store: DraftStore):
        self.client = client
        self.store = store

    # Draft lifecycle

    async def create_draft(self, request: CreateDraftRequest) -> DraftSession:
        """
        Start a draft, load the offering catalogs, and fetch what the initial fields need.

        Lookup failures are recorded per section on the draft; they never
        abort creation.
        """
        values = request.model_dump(exclude_none=True)
        session = self.store.create(BookingDraft(**values))

        await self._load_catalogs(session)
        lookups = []
        if session.draft.package_id is not None:
            lookups.append(self._load_package(session))
        if session.draft.discount_id is not None:
            lookups.append(self._load_discount(session))
        lookups.append(self.refresh_quote(session))
        await asyncio.gather(*lookups)

        self._reconcile(session)
        session.touch()

        logger.info(
            "Booking draft created",
            extra={
                "draft_id": session.draft_id,
                "vehicle_id": session.draft.vehicle_id,
                "package_id": session.draft.package_id,
                "catalog_size": len(session.catalog),
            }
        )
        return session

    def get_session(self, draft_id: str) -> DraftSession:
        return self.store.get(draft_id)

    async def load_draft(self, draft_id: str) -> DraftSession:
        """Look up a draft, first retrying any catalog or pricing lookup that failed."""
        session = self.store.get(draft_id)
        await self._retry_failed_lookups(session)
        return session

    async def _retry_failed_lookups(self, session: DraftSession) -> None:
        errors = session.section_errors
        lookups = []
        if SECTION_OFFERINGS in errors or SECTION_MANDATORY_OFFERINGS in errors:
            lookups.append(self._load_catalogs(session))
        if SECTION_PRICING in errors:
            lookups.append(self.refresh_quote(session))
        if not lookups:
            return

        logger.info(
            "Retrying failed rental backend lookups",
            extra={"draft_id": session.draft_id, "sections": sorted(errors)}
        )
        await asyncio.gather(*lookups)
        self._reconcile(session)

    async def update_draft(self, request: UpdateDraftRequest) -> DraftSession:
        """
        Apply the fields present in the request.

        A changed package or discount is refetched; a change to the vehicle
        or either date refetches the pricing quote, or clears it when the
        quote inputs are incomplete. Lookups that failed earlier are retried
        even when the fields sent are unchanged.
        """
        session = self.store.get(request.draft_id)
        draft = session.draft
        fields = request.model_fields_set - {"draft_id"}

        changes: dict[str, Any] = {}
        for name in fields:
            value = getattr(request, name)
            if name in TEXT_FIELDS and value is None:
                value = ""
            elif name == "status" and value is None:
                value = BookingStatus.PENDING
            if getattr(draft, name) != value:
                changes[name] = value

        errors = session.section_errors
        package_retry = "package_id" in fields and SECTION_PACKAGE in errors
        discount_retry = "discount_id" in fields and SECTION_DISCOUNT in errors
        quote_retry = SECTION_PRICING in errors
        catalog_retry = SECTION_OFFERINGS in errors or SECTION_MANDATORY_OFFERINGS in errors

        if changes:
            session.draft = draft.model_copy(update=changes)
            session.form_error = None

        lookups = []
        if catalog_retry:
            lookups.append(self._load_catalogs(session))
        if "package_id" in changes or package_retry:
            lookups.append(self._load_package(session))
        if "discount_id" in changes or discount_retry:
            lookups.append(self._load_discount(session))
        if QUOTE_FIELDS & changes.keys() or quote_retry:
            lookups.append(self.refresh_quote(session))
        if lookups:
            await asyncio.gather(*lookups)

        if "package_id" in changes or package_retry or catalog_retry:
            self._reconcile(session)

        session.touch()
        logger.info(
            "Booking draft updated",
            extra={"draft_id": session.draft_id, "changed_fields": sorted(changes)}
        )
        return session

    def discard(self, draft_id: str) -> None:
        """
        Drop a draft.

        Raises:
            DraftNotFoundError: If the draft is unknown or expired
        """
        self.store.get(draft_id)
        self.store.discard(draft_id)
        logger.info("Booking draft discarded", extra={"draft_id": draft_id})

    # Offerings

    def toggle_offering(self, draft_id: str, offering_id: int, selected: bool) -> DraftSession:
        """
        Select or deselect an offering on the draft.

        Raises:
            NotFoundError: If the offering is neither in the catalog nor on the draft
        """
        session = self.store.get(draft_id)
        if not session.ledger.knows(offering_id):
            raise NotFoundError(resource_type="offering", resource_id=str(offering_id))

        if session.ledger.toggle(offering_id, selected):
            session.form_error = None
        session.touch()
        return session

    def set_offering_quantity(self, draft_id: str, offering_id: int, quantity: int) -> DraftSession:
        session = self.store.get(draft_id)
        if session.ledger.set_quantity(offering_id, quantity):
            session.form_error = None
        session.touch()
        return session

    # Wizard

    def advance_step(self, draft_id: str) -> tuple[DraftSession, bool]:
        session = self.store.get(draft_id)
        changed = session.wizard.advance(session.draft, self._duration(session))
        session.touch()
        return session, changed

    def go_to_step(self, draft_id: str, step: int) -> tuple[DraftSession, bool]:
        session = self.store.get(draft_id)
        changed = session.wizard.go_to(step)
        if not changed and step > session.wizard.furthest_step:
            logger.info(
                "Refused jump past furthest wizard step",
                extra={
                    "draft_id": draft_id,
                    "requested_step": step,
                    "furthest_step": int(session.wizard.furthest_step),
                }
            )
        session.touch()
        return session, changed

    # Pricing and submission

    def _duration(self, session: DraftSession) -> Duration:
        return compute_duration(session.draft.start_date, session.draft.end_date)

    def compute_pricing(self, session: DraftSession) -> PricingBreakdown:
        return compute_breakdown(
            session.draft,
            session.ledger.selections(),
            quote=session.quote,
            package=session.package,
            discount=session.discount,
            duration=self._duration(session),
        )

    def build_payload(self, session: DraftSession) -> BookingPayload:
        """
        Booking-creation payload preview.

        Raises:
            ValidationError: If the draft would not pass the submission guard
        """
        duration = self._duration(session)
        error = validate_submission(session.draft, LAST_STEP, duration)
        if error:
            raise ValidationError(detail=error)
        return self._payload(session, duration)

    def _payload(self, session: DraftSession, duration: Duration) -> BookingPayload:
        selections = session.ledger.selections()
        breakdown = compute_breakdown(
            session.draft,
            selections,
            quote=session.quote,
            package=session.package,
            discount=session.discount,
            duration=duration,
        )
        return assemble_payload(session.draft, duration, selections, breakdown, session.quote)

    async def submit(self, draft_id: str, idempotency_key: Optional[str] = None) -> SubmissionResult:
        """
        Run the submission guard and create the booking on the backend.

        A guard failure sets the draft's form error; a backend rejection sets
        its notification. Either way the draft is kept for a retry. A created
        booking removes the draft. While one submission awaits the backend,
        another for the same draft is refused.
        """
        session = self.store.get(draft_id)
        if session.submitting:
            metrics_collector.record_submission("in_progress")
            logger.info(
                "Booking submission already in progress",
                extra={"draft_id": draft_id}
            )
            return SubmissionResult(
                draft_id=draft_id,
                status=SubmissionStatus.VALIDATION_FAILED,
                error=SUBMISSION_IN_PROGRESS,
            )

        duration = self._duration(session)
        error = validate_submission(session.draft, session.wizard.current_step, duration)
        if error:
            session.form_error = error
            session.touch()
            metrics_collector.record_submission("validation_failed")
            logger.info(
                "Booking submission blocked by validation",
                extra={"draft_id": draft_id, "error": error}
            )
            return SubmissionResult(
                draft_id=draft_id,
                status=SubmissionStatus.VALIDATION_FAILED,
                error=error,
            )

        session.form_error = None
        payload = self._payload(session, duration)

        session.submitting = True
        try:
            booking = await self.client.create_booking(payload, idempotency_key=idempotency_key)
        except RentalApiError as e:
            session.notification = f"Failed to create booking: {e.message}"
            session.touch()
            metrics_collector.record_submission("rejected")
            logger.warning(
                "Booking submission rejected by rental backend",
                extra={
                    "draft_id": draft_id,
                    "upstream_status": e.status_code,
                    "error": e.message,
                }
            )
            return SubmissionResult(
                draft_id=draft_id,
                status=SubmissionStatus.REJECTED,
                payload=payload,
                error=e.message,
                upstream_status=e.status_code,
            )
        finally:
            session.submitting = False

        self.store.discard(draft_id)
        metrics_collector.record_submission("created")
        logger.info(
            "Booking submitted",
            extra={
                "draft_id": draft_id,
                "vehicle_id": payload.vehicle_id,
                "final_price": payload.final_price,
                "booking_id": booking.get("id"),
            }
        )
        return SubmissionResult(
            draft_id=draft_id,
            status=SubmissionStatus.CREATED,
            payload=payload,
            booking=booking,
        )

    # Collaborator lookups

    def _record_failure(self, session: DraftSession, section: str, error: RentalApiError) -> None:
        session.set_section_error(section, error.message)
        metrics_collector.record_fetch_failure(section)
        logger.warning(
            "Rental backend lookup failed",
            extra={
                "draft_id": session.draft_id,
                "section": section,
                "upstream_status": error.status_code,
                "error": error.message,
            }
        )

    async def _load_catalogs(self, session: DraftSession) -> None:
        offerings, mandatory = await asyncio.gather(
            self.client.get_offerings(),
            self.client.get_mandatory_offerings(),
            return_exceptions=True,
        )

        for section, result in ((SECTION_OFFERINGS, offerings), (SECTION_MANDATORY_OFFERINGS, mandatory)):
            if isinstance(result, RentalApiError):
                self._record_failure(session, section, result)
            elif isinstance(result, BaseException):
                raise result
            else:
                session.set_section_error(section, None)

        if not isinstance(offerings, BaseException):
            session.catalog = offerings
            session.ledger.register(offerings)
        if not isinstance(mandatory, BaseException):
            session.mandatory = mandatory

    async def _load_package(self, session: DraftSession) -> None:
        package_id = session.draft.package_id
        if package_id is None:
            session.package = None
            session.set_section_error(SECTION_PACKAGE, None)
            return

        try:
            package = await self.client.get_package(package_id)
        except RentalApiError as e:
            if session.draft.package_id == package_id:
                session.package = None
                self._record_failure(session, SECTION_PACKAGE, e)
            return

        # The package may have changed again while this lookup was in flight
        if session.draft.package_id == package_id:
            session.package = package
            session.set_section_error(SECTION_PACKAGE, None)

    async def _load_discount(self, session: DraftSession) -> None:
        discount_id = session.draft.discount_id
        if discount_id is None:
            session.discount = None
            session.set_section_error(SECTION_DISCOUNT, None)
            return

        try:
            discount = await self.client.get_discount(discount_id)
        except RentalApiError as e:
            if session.draft.discount_id == discount_id:
                session.discount = None
                self._record_failure(session, SECTION_DISCOUNT, e)
            return

        if session.draft.discount_id == discount_id:
            session.discount = discount
            session.set_section_error(SECTION_DISCOUNT, None)

    async def refresh_quote(self, session: DraftSession) -> None:
        """
        Fetch the pricing quote for the draft's current vehicle and dates.

        Each call takes a new token; a response (or failure) arriving after a
        newer call was made is dropped. Without vehicle and both dates the
        quote is cleared instead.
        """
        token = session.next_quote_token()
        draft = session.draft

        if not quote_ready(draft):
            session.quote = None
            session.set_section_error(SECTION_PRICING, None)
            return

        try:
            quote = await self.client.get_vehicle_pricing(draft.vehicle_id, draft.start_date, draft.end_date)
        except RentalApiError as e:
            if not session.is_latest_quote(token):
                self._drop_stale_quote(session, token)
                return
            session.quote = None
            self._record_failure(session, SECTION_PRICING, e)
            return

        if not session.is_latest_quote(token):
            self._drop_stale_quote(session, token)
            return

        session.quote = quote
        session.set_section_error(SECTION_PRICING, None)

    def _drop_stale_quote(self, session: DraftSession, token: int) -> None:
        metrics_collector.record_stale_quote()
        logger.info(
            "Discarded stale pricing quote",
            extra={
                "draft_id": session.draft_id,
                "quote_token": token,
                "latest_token": session.quote_token,
            }
        )

    def _package_offerings(self, session: DraftSession) -> list[Offering]:
        """Offerings bundled by the selected package, preferring full catalog copies."""
        package = session.package
        if package is None:
            return []

        embedded = {offering.id: offering for offering in package.offerings}
        resolved = []
        for offering_id in sorted(package.included_offering_ids):
            offering = session.ledger.catalog.get(offering_id) or embedded.get(offering_id)
            resolved.append(offering or Offering(id=offering_id))
        return resolved

    def _reconcile(self, session: DraftSession) -> None:
        mandatory = {offering.id: offering for offering in session.mandatory}
        for offering in session.catalog:
            if offering.is_mandatory:
                mandatory.setdefault(offering.id, offering)

        session.ledger.reconcile(mandatory.values(), self._package_offerings(session))

    # Views

    def build_view(
        self,
        session: DraftSession,
        offering_search: Optional[str] = None,
        step_changed: Optional[bool] = None,
    ) -> DraftView:
        """Render the draft for the dashboard."""
        duration = self._duration(session)
        available = session.catalog
        if offering_search:
            available = [offering for offering in available if offering.matches(offering_search)]

        return DraftView(
            draft_id=session.draft_id,
            draft=session.draft,
            selections=session.ledger.selections(),
            available_offerings=available,
            package=session.package,
            discount=session.discount,
            wizard=session.wizard.view(session.draft, duration),
            duration=DurationView(
                total_days=duration.total_days,
                total_hours=duration.total_hours,
                label=duration.label,
            ),
            pricing=compute_breakdown(
                session.draft,
                session.ledger.selections(),
                quote=session.quote,
                package=session.package,
                discount=session.discount,
                duration=duration,
            ),
            section_errors=dict(session.section_errors),
            form_error=session.form_error,
            notification=session.notification,
            step_changed=step_changed,
            updated_at=session.updated_at,
        )
