"""Background worker for discarding abandoned booking drafts."""

from datetime import datetime, timezone
from typing import Optional

from ..core.config import settings
from ..core.observability import get_logger
from ..services.draft_store import DraftStore
from .base import BaseWorker


class DraftExpiryWorker(BaseWorker):
    """
    Drops drafts that have been idle longer than the store's TTL.

    Covers dashboard sessions that were closed without discarding their
    draft.
    """

    def __init__(self, store: DraftStore, interval_seconds: Optional[float] = None):
        super().__init__(
            name="DraftExpiry",
            interval_seconds=interval_seconds or settings.draft_expiry_interval_seconds,
        )
        self.store = store
        self.log = get_logger(__name__).with_context(worker=self.name)

    async def process(self) -> None:
        now = datetime.now(timezone.utc)
        expired_count = self.store.purge_expired(now)

        if expired_count > 0:
            self.log.info(
                "Expired booking drafts",
                expired_count=expired_count,
                remaining=len(self.store),
                timestamp=now.isoformat(),
            )
