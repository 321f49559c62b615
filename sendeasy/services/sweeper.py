"""
Expiration Sweeper - marks and purges expired sessions and transfer blocks
"""

import asyncio
import logging
from datetime import timedelta
from typing import Callable, Optional

from pydantic import BaseModel

from sendeasy.core.utils.clock import Clock, utcnow
from sendeasy.services.file_storage import FileStorage
from sendeasy.storage.base import TransferStore

logger = logging.getLogger(__name__)


class SweepReport(BaseModel):
    """Outcome of one sweep"""

    blocks_marked_expired: int = 0
    blocks_purged: int = 0
    sessions_purged: int = 0
    files_removed: int = 0


class ExpirationSweeper:
    """
    Stateless maintenance pass over the store.

    Blocks move ``Active`` -> ``ExpiredVisible`` when ``expires_at`` passes
    (``is_expired`` is set) and are purged once ``grace`` has also elapsed.
    Sessions are purged as soon as they expire, taking their blocks with
    them. Every phase is idempotent, so overlapping runs are harmless.
    """

    def __init__(
        self,
        store: TransferStore,
        file_storage: Optional[FileStorage] = None,
        grace: timedelta = timedelta(0),
        clock: Clock = utcnow,
    ):
        self.store = store
        self.file_storage = file_storage
        self.grace = grace
        self.clock = clock

    def sweep(self) -> SweepReport:
        now = self.clock()
        report = SweepReport()

        report.blocks_marked_expired = self.store.mark_blocks_expired(now)

        blocks = self.store.purge_blocks_expired_before(now - self.grace)
        sessions = self.store.purge_sessions_expired_before(now)
        report.blocks_purged = blocks.count
        report.sessions_purged = sessions.count

        orphaned = blocks.file_urls + sessions.file_urls
        if self.file_storage is not None:
            for url in orphaned:
                self.file_storage.delete(url)
            report.files_removed = len(orphaned)

        if report.blocks_marked_expired or report.blocks_purged or report.sessions_purged:
            logger.info("Expiration sweep finished", extra=report.model_dump())
        else:
            logger.debug("Expiration sweep found nothing to do")
        return report


async def sweep_periodically(
    run_sweep: Callable[[], SweepReport],
    interval_seconds: float,
) -> None:
    """Run ``run_sweep`` in a worker thread every ``interval_seconds`` until cancelled."""
    while True:
        try:
            await asyncio.to_thread(run_sweep)
        except Exception as e:
            logger.error(f"Expiration sweep failed: {e}", exc_info=True)
        await asyncio.sleep(interval_seconds)
