"""
Expiry sweeper — background purge of expired ledger records.

Expired records are already invisible to reads and reclaimable by claims;
the sweep only reclaims storage.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta

from kungfu import Ok, Error

from idemgate.clock import Clock, SystemClock
from idemgate.ledger import Ledger
from idemgate.observability import get_logger

logger = get_logger(__name__)


class ExpirySweeper:
    """Purges expired records in bounded batches."""

    def __init__(
        self,
        ledger: Ledger,
        *,
        batch_size: int = 500,
        interval: timedelta = timedelta(minutes=1),
        clock: Clock | None = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        self._ledger = ledger
        self._batch_size = batch_size
        self._interval = interval
        self._clock = clock or SystemClock()

    async def sweep_once(self) -> int:
        """
        Purge up to batch_size expired records.

        Returns the number actually purged. Records renewed between the scan
        and the purge survive. Ledger errors are logged and count as zero.
        """
        now = self._clock.now()

        match await self._ledger.read_expired(now=now, limit=self._batch_size):
            case Error(err):
                logger.error("sweep.ledger_unavailable", error=err.message)
                return 0
            case Ok(records):
                pass

        purged = 0
        for record in records:
            match await self._ledger.purge(record.key, now=now):
                case Ok(True):
                    purged += 1
                case Ok(False):
                    pass
                case Error(err):
                    logger.error("sweep.purge_failed", key=record.key, error=err.message)

        logger.info("sweep.completed", scanned=len(records), purged=purged)
        return purged

    async def run(self, stop_event: asyncio.Event) -> None:
        """Sweep every interval until stop_event is set."""
        logger.info(
            "sweep.started",
            interval_s=self._interval.total_seconds(),
            batch_size=self._batch_size,
        )
        while not stop_event.is_set():
            purged = await self.sweep_once()
            # A full batch means more are waiting, go again without pausing.
            if purged >= self._batch_size:
                continue
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval.total_seconds())
            except TimeoutError:
                pass
        logger.info("sweep.stopped")


__all__ = ("ExpirySweeper",)
