"""Worker manager for coordinating background tasks."""

import asyncio
import logging

from ..services.draft_store import DraftStore
from .base import BaseWorker
from .draft_expiry_worker import DraftExpiryWorker

logger = logging.getLogger(__name__)


class WorkerManager:
    """Starts, stops, and reports on the service's background workers."""

    def __init__(self, store: DraftStore):
        self.workers: dict[str, BaseWorker] = {
            "draft_expiry": DraftExpiryWorker(store),
        }
        logger.info(f"Initialized {len(self.workers)} workers")

    async def start_all(self) -> None:
        for name, worker in self.workers.items():
            try:
                await worker.start()
            except Exception as e:
                logger.error(f"Failed to start worker {name}: {e!s}", exc_info=True)

        logger.info(f"Started {len(self.workers)} workers")

    async def stop_all(self) -> None:
        """Stop all workers, logging rather than raising individual failures."""
        names = list(self.workers)
        results = await asyncio.gather(
            *(self.workers[name].stop() for name in names),
            return_exceptions=True,
        )

        for name, result in zip(names, results):
            if isinstance(result, Exception):
                logger.error(f"Error stopping worker {name}: {result!s}")

        logger.info("All workers stopped")

    def get_worker(self, name: str) -> BaseWorker:
        """
        Get a specific worker by name.

        Raises:
            KeyError: If worker not found
        """
        return self.workers[name]

    def get_worker_status(self) -> dict[str, bool]:
        return {name: worker.running for name, worker in self.workers.items()}
