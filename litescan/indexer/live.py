"""Scheduled sync loop.

Runs a sync pass every ``interval`` seconds until SIGINT/SIGTERM. A failed
pass is logged and retried on the next tick with the cursor untouched.

Usage:
    litescan watch
"""

from __future__ import annotations

import asyncio
import signal
from datetime import UTC, datetime

from typing import TYPE_CHECKING

from litescan.helpers.config import get_sync_interval
from litescan.helpers.errors import LitescanError
from litescan.helpers.logging import get_logger


if TYPE_CHECKING:
    from litescan.indexer.sync import SyncOrchestrator, SyncResult


logger = get_logger(__name__)


class LiveSyncer:
    """Periodically sync the cache with the chain head."""

    def __init__(self, orchestrator: SyncOrchestrator, interval: float | None = None) -> None:
        self.orchestrator = orchestrator
        self.interval = interval if interval is not None else get_sync_interval()

        # Stats
        self.passes = 0
        self.failures = 0
        self.last_result: SyncResult | None = None
        self.last_pass_time: datetime | None = None

        self._shutdown = asyncio.Event()

    def shutdown(self) -> None:
        """Request a graceful stop after the current pass."""
        logger.info("Shutdown signal received, stopping...")
        self._shutdown.set()

    @property
    def should_shutdown(self) -> bool:
        return self._shutdown.is_set()

    async def tick(self) -> SyncResult | None:
        """Run one pass; return None if it failed."""
        self.passes += 1
        self.last_pass_time = datetime.now(UTC)
        try:
            result = await self.orchestrator.sync()
        except LitescanError as e:
            self.failures += 1
            logger.warning("Sync pass %d failed, retrying in %ss: %s", self.passes, self.interval, e)
            return None
        self.last_result = result
        if not result.skipped:
            logger.info(
                "Pass %d: cursor %d, +%d blocks, +%d transactions, +%d tokens",
                self.passes,
                result.cache.last_scanned_block,
                result.new_blocks,
                result.new_transactions,
                len(result.new_tokens),
            )
        return result

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        """Sync until shutdown is requested."""
        if install_signal_handlers:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self.shutdown)

        logger.info("Watching chain, syncing every %ss", self.interval)
        while not self.should_shutdown:
            await self.tick()
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self.interval)
            except TimeoutError:
                continue

        logger.info(
            "Live syncer stopped after %d passes (%d failed)", self.passes, self.failures
        )


__all__ = ["LiveSyncer"]
