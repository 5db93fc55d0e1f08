"""Bounded-concurrency block range scanner.

Blocks are fetched in sequential windows; the fetches inside one window run
concurrently. A block whose fetch keeps failing after retries is skipped and
reported, never aborting its siblings. Results are visited in ascending
block order no matter in which order the fetches complete.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from itertools import batched

from typing import TYPE_CHECKING

from pydantic import ValidationError

from litescan.cache.models import BlockSummary, TxSummary
from litescan.helpers.constants import (
    BLOCK_FETCH_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
    SCAN_WINDOW_SIZE,
)
from litescan.helpers.errors import (
    BlockFetchFailed,
    LitescanError,
    NodeUnreachable,
    NotFound,
)
from litescan.helpers.http import retry_with_backoff
from litescan.helpers.logging import get_logger
from litescan.helpers.parsers import normalize_address


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable

    from litescan.chain.models import RpcBlock, RpcReceipt
    from litescan.chain.reader import ChainReader


logger = get_logger(__name__)


@dataclass(frozen=True)
class ScanProgress:
    """Progress after one window: ``scanned`` of ``total`` block numbers."""

    scanned: int
    total: int
    window_lo: int
    window_hi: int
    failed: int = 0

    @property
    def fraction(self) -> float:
        return self.scanned / self.total if self.total else 1.0


@dataclass
class FetchedBlock:
    """A block with embedded transactions plus receipts of its creation txs."""

    block: RpcBlock
    creation_receipts: dict[str, RpcReceipt] = field(default_factory=dict)


@dataclass
class ScanResult:
    """Everything a scan extracted, in ascending block order."""

    blocks: list[BlockSummary] = field(default_factory=list)
    transactions: list[TxSummary] = field(default_factory=list)
    contracts: list[str] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)

    def visit(self, fetched: FetchedBlock) -> None:
        """Record one block, its transactions and any contracts it created."""
        block = fetched.block
        self.blocks.append(
            BlockSummary(
                number=block.number,
                timestamp=block.timestamp,
                miner_address=block.miner.lower(),
                tx_count=block.tx_count,
                gas_used=block.gas_used,
                gas_limit=block.gas_limit,
            )
        )
        for tx in block.full_transactions:
            to = None if tx.is_contract_creation else normalize_address(tx.to)
            self.transactions.append(
                TxSummary(
                    hash=tx.hash,
                    from_address=tx.from_address.lower(),
                    to=to,
                    value_wei=str(tx.value),
                    block_number=block.number,
                    transaction_index=tx.transaction_index,
                    timestamp=block.timestamp,
                    gas_price_wei=str(tx.gas_price),
                )
            )
            receipt = fetched.creation_receipts.get(tx.hash)
            if receipt is not None and receipt.contract_address:
                self.contracts.append(receipt.contract_address.lower())


class BatchScanner:
    """Scan block numbers through a ``ChainReader`` in bounded windows.

    Example:
        ```python
        scanner = BatchScanner(reader, window_size=20)
        result = ScanResult()
        async for progress in scanner.scan(0, 49, result):
            print(f"{progress.scanned}/{progress.total}")
        ```
    """

    def __init__(
        self,
        reader: ChainReader,
        *,
        window_size: int = SCAN_WINDOW_SIZE,
        max_attempts: int = BLOCK_FETCH_ATTEMPTS,
        base_delay: float = RETRY_BASE_DELAY,
        max_delay: float = RETRY_MAX_DELAY,
    ) -> None:
        if window_size < 1:
            msg = "window_size must be at least 1"
            raise ValueError(msg)
        self.reader = reader
        self.window_size = window_size
        self._fetch_with_retry = retry_with_backoff(
            max_retries=max_attempts,
            base_delay=base_delay,
            max_delay=max_delay,
            retry_on=(LitescanError, ValidationError),
            log_errors=False,
        )(self.fetch_block)

    async def fetch_block(self, number: int) -> FetchedBlock:
        """Fetch block ``number`` with transactions and creation receipts.

        Raises:
            NotFound: If the node has no such block or is missing a receipt
            NodeUnreachable: On transport failure
        """
        block = await self.reader.get_block(number, include_txs=True)
        if block is None:
            msg = f"Block {number} not found"
            raise NotFound(msg)

        creations = [tx.hash for tx in block.full_transactions if tx.is_contract_creation]
        receipts = await asyncio.gather(*(self.reader.get_receipt(h) for h in creations))
        missing = [h for h, r in zip(creations, receipts, strict=True) if r is None]
        if missing:
            msg = f"Receipt for {missing[0]} in block {number} not found"
            raise NotFound(msg)

        return FetchedBlock(
            block=block,
            creation_receipts={
                h: r for h, r in zip(creations, receipts, strict=True) if r is not None
            },
        )

    async def _fetch_isolated(self, number: int) -> FetchedBlock | BlockFetchFailed:
        try:
            return await self._fetch_with_retry(number)
        except (LitescanError, ValidationError) as e:
            return BlockFetchFailed(number, e)

    async def scan_numbers(
        self,
        numbers: Iterable[int],
        result: ScanResult,
        *,
        total: int | None = None,
    ) -> AsyncIterator[ScanProgress]:
        """Scan block numbers window by window, yielding progress after each.

        Fetched blocks are visited into ``result``. Stopping iteration early
        leaves ``result`` holding the completed windows only. Cancelling the
        consuming task cancels the fetches of the current window.

        Args:
            numbers: Block numbers in the order they should be visited
            result: Accumulator for blocks, transactions, contracts, failures
            total: Number of blocks, when ``numbers`` has no len()

        Raises:
            NodeUnreachable: If every fetch of a window failed on transport
        """
        if total is None:
            total = len(numbers)  # type: ignore[arg-type]

        scanned = 0
        for window in batched(numbers, self.window_size):
            outcomes = await asyncio.gather(*(self._fetch_isolated(n) for n in window))

            failures = [o for o in outcomes if isinstance(o, BlockFetchFailed)]
            if failures and len(failures) == len(window) and all(
                isinstance(f.cause, NodeUnreachable) for f in failures
            ):
                msg = f"Node unreachable while scanning blocks {window[0]}-{window[-1]}"
                raise NodeUnreachable(msg) from failures[-1].cause

            for outcome in outcomes:
                if isinstance(outcome, BlockFetchFailed):
                    logger.warning("Skipping block %d: %s", outcome.number, outcome.cause)
                    result.failed.append(outcome.number)
                else:
                    result.visit(outcome)

            scanned += len(window)
            yield ScanProgress(
                scanned=scanned,
                total=total,
                window_lo=window[0],
                window_hi=window[-1],
                failed=len(result.failed),
            )

    def scan(
        self, lo: int, hi: int, result: ScanResult
    ) -> AsyncIterator[ScanProgress]:
        """Scan the inclusive range ``[lo, hi]``."""
        numbers = range(lo, hi + 1)
        return self.scan_numbers(numbers, result, total=len(numbers))

    async def run(self, numbers: Iterable[int], *, total: int | None = None) -> ScanResult:
        """Scan to completion and return the result."""
        result = ScanResult()
        async for _ in self.scan_numbers(numbers, result, total=total):
            pass
        return result


__all__ = [
    "BatchScanner",
    "FetchedBlock",
    "ScanProgress",
    "ScanResult",
]
