"""Background workers for the rental booking quote service."""

from .draft_expiry_worker import DraftExpiryWorker
from .manager import WorkerManager

__all__ = ["DraftExpiryWorker", "WorkerManager"]
