"""Cache store interface, the JSON-document backend and merge semantics."""

from __future__ import annotations

import asyncio
import json
import operator
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from typing import TYPE_CHECKING

from pydantic import ValidationError

from litescan.cache.models import Cache
from litescan.helpers.config import get_cache_path, get_database_url
from litescan.helpers.errors import CacheCorrupt, PersistError
from litescan.helpers.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Iterable

    from litescan.cache.models import BlockSummary, TokenRecord, TxSummary


logger = get_logger(__name__)


class CacheStore(ABC):
    """Persistence boundary for the chain cache.

    ``load`` never fails on bad state: missing or corrupt data yields an
    empty cache so the next sync rebuilds from genesis. ``persist`` is an
    atomic full overwrite; on failure it raises ``PersistError`` and the
    previously stored state stays intact.
    """

    @abstractmethod
    async def load(self) -> Cache:
        """Return the persisted cache, or an empty one."""
        ...

    @abstractmethod
    async def persist(self, cache: Cache) -> None:
        """Atomically replace the persisted cache with ``cache``."""
        ...

    @abstractmethod
    async def reset(self) -> None:
        """Delete all persisted state."""
        ...

    async def aclose(self) -> None:
        """Release backend resources."""
        return None


class JsonCacheStore(CacheStore):
    """Cache persisted as a single JSON document.

    Every persist rewrites the whole document (temp file + ``os.replace``),
    which bounds this backend to small and medium chains.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = get_cache_path(path)

    def _read(self) -> Cache:
        if not self.path.exists():
            return Cache()
        try:
            raw = self.path.read_text(encoding="utf-8")
            return Cache.model_validate(json.loads(raw))
        except (OSError, ValueError, ValidationError) as e:
            msg = f"{self.path}: {e}"
            raise CacheCorrupt(msg) from e

    def _write(self, cache: Cache) -> None:
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(cache.to_document(), f, separators=(",", ":"))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self.path)
        except OSError as e:
            if tmp.is_file():
                tmp.unlink()
            msg = f"Could not write {self.path}: {e}"
            raise PersistError(msg) from e

    async def load(self) -> Cache:
        try:
            return await asyncio.to_thread(self._read)
        except CacheCorrupt as e:
            logger.warning("Cache state is corrupt, starting from empty: %s", e)
            return Cache()

    async def persist(self, cache: Cache) -> None:
        await asyncio.to_thread(self._write, cache)

    async def reset(self) -> None:
        await asyncio.to_thread(self.path.unlink, missing_ok=True)


def create_store(
    path: str | Path | None = None, database_url: str | None = None
) -> CacheStore:
    """Build the configured store: SQL when a database URL is set, else JSON."""
    url = database_url or get_database_url()
    if url:
        from litescan.cache.db import SqlCacheStore

        return SqlCacheStore(url)
    return JsonCacheStore(path)


@dataclass
class MergeStats:
    """What a merge actually added."""

    new_blocks: int = 0
    new_transactions: int = 0
    new_contracts: list[str] = field(default_factory=list)


def merge(
    cache: Cache,
    blocks: Iterable[BlockSummary],
    transactions: Iterable[TxSummary],
    contracts: Iterable[str],
) -> MergeStats:
    """Append-only union of scan results into ``cache`` (mutated in place).

    Entries are keyed by block number, transaction hash and address; keys
    already present are ignored, so merging the same scan twice is a no-op.
    Existing entries are never modified. Order is restored when retried
    blocks land below entries already present.

    Returns:
        Counts of added blocks and transactions and the list of newly
        seen contract addresses, in discovery order
    """
    stats = MergeStats()

    known_blocks = {b.number for b in cache.blocks}
    last_block = cache.blocks[-1].number if cache.blocks else -1
    reorder_blocks = False
    for block in blocks:
        if block.number in known_blocks:
            continue
        known_blocks.add(block.number)
        reorder_blocks |= block.number < last_block
        last_block = max(last_block, block.number)
        cache.blocks.append(block)
        stats.new_blocks += 1
    if reorder_blocks:
        cache.blocks.sort(key=operator.attrgetter("number"))

    known_txs = {tx.hash for tx in cache.transactions}
    last_key = cache.transactions[-1].order_key if cache.transactions else (-1, -1)
    reorder_txs = False
    for tx in transactions:
        if tx.hash in known_txs:
            continue
        known_txs.add(tx.hash)
        reorder_txs |= tx.order_key < last_key
        last_key = max(last_key, tx.order_key)
        cache.transactions.append(tx)
        stats.new_transactions += 1
    if reorder_txs:
        cache.transactions.sort(key=operator.attrgetter("order_key"))

    known_contracts = set(cache.contracts)
    for address in contracts:
        if address in known_contracts:
            continue
        known_contracts.add(address)
        cache.contracts.append(address)
        stats.new_contracts.append(address)

    return stats


def upsert_token(cache: Cache, record: TokenRecord) -> None:
    """Insert or replace the token record for ``record.address``."""
    cache.tokens = [t for t in cache.tokens if t.address != record.address]
    cache.tokens.append(record)


def mark_checked(cache: Cache, address: str) -> None:
    if address not in cache.checked_contracts:
        cache.checked_contracts.append(address)


def sort_tokens(cache: Cache) -> None:
    """Order tokens by formatted supply, largest first."""
    cache.tokens.sort(key=operator.attrgetter("total_supply_formatted"), reverse=True)


__all__ = [
    "CacheStore",
    "JsonCacheStore",
    "MergeStats",
    "create_store",
    "mark_checked",
    "merge",
    "sort_tokens",
    "upsert_token",
]
