"""Sync orchestrator: scan new blocks, classify new contracts, persist.

One pass moves through ``IDLE -> SCANNING -> CLASSIFYING_TOKENS ->
PERSISTING -> IDLE``. The working cache is a copy of the committed one;
it only replaces the committed cache after a successful persist, so a
failed pass leaves both the store and readers on the previous cursor.
"""

from __future__ import annotations

import asyncio
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from itertools import chain

from typing import TYPE_CHECKING

from litescan.cache.store import merge, sort_tokens
from litescan.helpers.logging import get_logger
from litescan.indexer.scanner import BatchScanner, ScanProgress, ScanResult
from litescan.indexer.tokens import TokenClassifier


if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from litescan.cache.models import Cache, TokenRecord
    from litescan.cache.store import CacheStore
    from litescan.chain.reader import ChainReader


logger = get_logger(__name__)


class SyncState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"
    CLASSIFYING_TOKENS = "classifying_tokens"
    PERSISTING = "persisting"


@dataclass
class SyncResult:
    """Outcome of one sync pass."""

    cache: Cache
    new_blocks: int = 0
    new_transactions: int = 0
    new_contracts: list[str] = field(default_factory=list)
    new_tokens: list[TokenRecord] = field(default_factory=list)
    incomplete_blocks: list[int] = field(default_factory=list)
    skipped: bool = False
    scanned_from: int | None = None
    scanned_to: int | None = None


class SyncOrchestrator:
    """Keeps the persisted cache up to date with the chain.

    Only one pass runs at a time. ``sync()`` coalesces callers: whoever
    arrives while a pass is in flight receives that pass's result.
    ``snapshot()`` never waits for a pass.

    Example:
        ```python
        async with ChainReader() as reader:
            orchestrator = SyncOrchestrator(reader, create_store())
            result = await orchestrator.sync()
            print(result.cache.last_scanned_block)
        ```
    """

    def __init__(
        self,
        reader: ChainReader,
        store: CacheStore,
        *,
        scanner: BatchScanner | None = None,
        classifier: TokenClassifier | None = None,
    ) -> None:
        self.reader = reader
        self.store = store
        self.scanner = scanner or BatchScanner(reader)
        self.classifier = classifier or TokenClassifier(reader)
        self.state = SyncState.IDLE
        self._lock = asyncio.Lock()
        self._inflight: asyncio.Task[SyncResult] | None = None
        self._committed: Cache | None = None

    async def snapshot(self) -> Cache:
        """Last committed cache, loaded from the store on first use."""
        if self._committed is None:
            self._committed = await self.store.load()
        return self._committed

    async def sync(self) -> SyncResult:
        """Run a sync pass, or join the one already in flight."""
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._sync_locked())
        return await asyncio.shield(self._inflight)

    async def _sync_locked(self) -> SyncResult:
        result: SyncResult | None = None
        async with self._lock:
            async for event in self._pass():
                if isinstance(event, SyncResult):
                    result = event
        if result is None:
            msg = "Sync pass ended without a result"
            raise RuntimeError(msg)
        return result

    async def sync_with_progress(self) -> AsyncIterator[ScanProgress | SyncResult]:
        """Run a sync pass, yielding scan progress and finally the result.

        Closing the iterator early cancels the pass; nothing is persisted.
        """
        async with self._lock, aclosing(self._pass()) as events:
            async for event in events:
                yield event

    async def _pass(self) -> AsyncIterator[ScanProgress | SyncResult]:
        try:
            self.state = SyncState.SCANNING
            latest = await self.reader.latest_height()
            committed = await self.snapshot()

            retry = sorted(committed.incomplete_blocks)
            start = committed.last_scanned_block + 1
            if start > latest and not retry:
                logger.debug("Cache is at block %d, nothing to scan", committed.last_scanned_block)
                yield SyncResult(cache=committed, skipped=True)
                return

            new_range = range(start, latest + 1)
            logger.info(
                "Syncing blocks %d-%d (%d to retry)",
                start,
                latest,
                len(retry),
            )
            scan = ScanResult()
            progress_events = self.scanner.scan_numbers(
                chain(retry, new_range), scan, total=len(retry) + len(new_range)
            )
            async with aclosing(progress_events):
                async for progress in progress_events:
                    yield progress

            working = committed.working_copy()
            stats = merge(working, scan.blocks, scan.transactions, scan.contracts)
            working.incomplete_blocks = sorted(set(scan.failed))
            working.last_scanned_block = max(working.last_scanned_block, latest)

            self.state = SyncState.CLASSIFYING_TOKENS
            checked = set(working.checked_contracts)
            unchecked = [a for a in working.contracts if a not in checked]
            new_tokens = await self.classifier.classify(working, unchecked)
            sort_tokens(working)

            working.last_synced = datetime.now(UTC)
            self.state = SyncState.PERSISTING
            await self.store.persist(working)
            self._committed = working

            logger.info(
                "Synced to block %d: %d blocks, %d transactions, %d contracts, %d tokens "
                "(%d incomplete)",
                working.last_scanned_block,
                stats.new_blocks,
                stats.new_transactions,
                len(stats.new_contracts),
                len(new_tokens),
                len(working.incomplete_blocks),
            )
            yield SyncResult(
                cache=working,
                new_blocks=stats.new_blocks,
                new_transactions=stats.new_transactions,
                new_contracts=stats.new_contracts,
                new_tokens=new_tokens,
                incomplete_blocks=list(working.incomplete_blocks),
                scanned_from=start,
                scanned_to=latest,
            )
        except Exception as e:
            logger.error("Sync pass failed while %s: %s", self.state, e)
            raise
        finally:
            self.state = SyncState.IDLE

    async def refresh_tokens(self) -> list[TokenRecord]:
        """Re-probe recorded tokens and persist their refreshed records."""
        async with self._lock:
            working = (await self.snapshot()).working_copy()
            updated = await self.classifier.refresh(working)
            if updated:
                await self.store.persist(working)
                self._committed = working
            return updated

    async def reset(self) -> None:
        """Delete persisted state; the next sync starts from genesis."""
        async with self._lock:
            await self.store.reset()
            self._committed = None


__all__ = [
    "SyncOrchestrator",
    "SyncResult",
    "SyncState",
]
