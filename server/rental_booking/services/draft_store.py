"""In-memory store of booking drafts being composed."""

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..core.config import settings
from ..core.exceptions import DraftNotFoundError
from ..core.observability import metrics_collector
from ..schemas.booking import BookingDraft
from ..schemas.catalog import Discount, Offering, Package
from ..schemas.pricing import PricingQuote
from .offering_ledger import OfferingLedger
from .wizard import WizardState

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DraftSession:
    """
    Everything one user has entered and fetched for a booking in progress.

    `quote_token` increases with every pricing-quote fetch; only the response
    carrying the latest token may replace `quote`. `submitting` is set while a
    booking creation call for the draft is in flight.
    """

    draft_id: str
    draft: BookingDraft = field(default_factory=BookingDraft)
    ledger: OfferingLedger = field(default_factory=OfferingLedger)
    wizard: WizardState = field(default_factory=WizardState)
    package: Optional[Package] = None
    discount: Optional[Discount] = None
    quote: Optional[PricingQuote] = None
    catalog: list[Offering] = field(default_factory=list)
    mandatory: list[Offering] = field(default_factory=list)
    section_errors: dict[str, str] = field(default_factory=dict)
    form_error: Optional[str] = None
    notification: Optional[str] = None
    quote_token: int = 0
    submitting: bool = False
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def next_quote_token(self) -> int:
        self.quote_token += 1
        return self.quote_token

    def is_latest_quote(self, token: int) -> bool:
        return token == self.quote_token

    def set_section_error(self, section: str, message: Optional[str]) -> None:
        if message:
            self.section_errors[section] = message
        else:
            self.section_errors.pop(section, None)


class DraftStore:
    """
    Drafts keyed by id, bounded by count and idle time.

    When full, the least recently used draft is evicted. Drafts idle past
    the TTL are dropped by purge_expired.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, max_size: Optional[int] = None):
        self.ttl = timedelta(seconds=ttl_seconds or settings.draft_ttl_seconds)
        self.max_size = max_size or settings.draft_store_size
        self._drafts: "OrderedDict[str, DraftSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._drafts)

    def __contains__(self, draft_id: str) -> bool:
        return draft_id in self._drafts

    def _publish_size(self) -> None:
        metrics_collector.set_active_drafts(len(self._drafts))

    def create(self, draft: Optional[BookingDraft] = None) -> DraftSession:
        """Register a new draft, evicting the oldest one if the store is full."""
        while len(self._drafts) >= self.max_size:
            evicted_id, _ = self._drafts.popitem(last=False)
            logger.warning(
                "Draft store full, evicting oldest draft",
                extra={"draft_id": evicted_id, "max_size": self.max_size}
            )

        session = DraftSession(draft_id=str(uuid.uuid4()), draft=draft or BookingDraft())
        self._drafts[session.draft_id] = session
        self._publish_size()
        return session

    def get(self, draft_id: str) -> DraftSession:
        """
        Look up a live draft and mark it as recently used.

        Raises:
            DraftNotFoundError: If the draft is unknown or idle past the TTL
        """
        session = self._drafts.get(draft_id)
        if session is None:
            raise DraftNotFoundError(draft_id)

        if self._is_expired(session, _utcnow()):
            del self._drafts[draft_id]
            self._publish_size()
            metrics_collector.record_drafts_expired(1)
            raise DraftNotFoundError(draft_id)

        self._drafts.move_to_end(draft_id)
        return session

    def discard(self, draft_id: str) -> bool:
        removed = self._drafts.pop(draft_id, None) is not None
        if removed:
            self._publish_size()
        return removed

    def _is_expired(self, session: DraftSession, now: datetime) -> bool:
        return session.updated_at + self.ttl <= now

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """
        Drop every draft idle longer than the TTL.

        Returns:
            Number of drafts removed
        """
        now = now or _utcnow()
        expired = [
            draft_id for draft_id, session in self._drafts.items()
            if self._is_expired(session, now)
        ]
        for draft_id in expired:
            del self._drafts[draft_id]

        if expired:
            metrics_collector.record_drafts_expired(len(expired))
            logger.info(
                "Purged idle booking drafts",
                extra={"expired_count": len(expired), "remaining": len(self._drafts)}
            )
        self._publish_size()
        return len(expired)
