"""SQL cache backend: the cache aggregate stored as keyed tables."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import ValidationError
from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Float,
    Integer,
    String,
    delete,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Mapped, mapped_column

from litescan.cache.models import BlockSummary, Cache, TokenRecord, TxSummary
from litescan.cache.store import CacheStore, sort_tokens
from litescan.helpers.db import (
    Base,
    create_engine,
    create_session_factory,
    create_tables,
    drop_tables,
    insert_ignore_existing,
    upsert_rows,
)
from litescan.helpers.errors import PersistError
from litescan.helpers.logging import get_logger


logger = get_logger(__name__)


class CachedBlockDB(Base):
    """Scanned block summary."""

    __tablename__ = "cache_blocks"

    number: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True)
    miner_address: Mapped[str] = mapped_column(String(42))
    tx_count: Mapped[int] = mapped_column(Integer)
    gas_used: Mapped[int] = mapped_column(BigInteger)
    gas_limit: Mapped[int] = mapped_column(BigInteger)


class CachedTransactionDB(Base):
    """Scanned transaction summary."""

    __tablename__ = "cache_transactions"

    hash: Mapped[str] = mapped_column(String(66), primary_key=True)
    from_address: Mapped[str] = mapped_column(String(42), index=True)
    to: Mapped[str | None] = mapped_column(String(42), nullable=True, index=True)
    value_wei: Mapped[str] = mapped_column(String(80))  # Wei as decimal string
    block_number: Mapped[int] = mapped_column(BigInteger, index=True)
    transaction_index: Mapped[int] = mapped_column(Integer)
    timestamp: Mapped[int] = mapped_column(BigInteger)
    gas_price_wei: Mapped[str] = mapped_column(String(80))


class CachedContractDB(Base):
    """Contract creation target; position preserves discovery order."""

    __tablename__ = "cache_contracts"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    position: Mapped[int] = mapped_column(BigInteger)


class CheckedContractDB(Base):
    """Contract already probed for ERC-20 methods."""

    __tablename__ = "cache_checked_contracts"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    position: Mapped[int] = mapped_column(BigInteger)


class CachedTokenDB(Base):
    """Classified ERC-20 token."""

    __tablename__ = "cache_tokens"

    address: Mapped[str] = mapped_column(String(42), primary_key=True)
    name: Mapped[str] = mapped_column(String)
    symbol: Mapped[str] = mapped_column(String)
    decimals: Mapped[int] = mapped_column(Integer)
    total_supply_raw: Mapped[str] = mapped_column(String(80))
    total_supply_formatted: Mapped[float] = mapped_column(Float)


class SyncStateDB(Base):
    """Single-row scan cursor and sync metadata."""

    __tablename__ = "cache_sync_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_scanned_block: Mapped[int] = mapped_column(BigInteger)
    last_synced: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    incomplete_blocks: Mapped[list[int]] = mapped_column(JSON, default=list)


STATE_ROW_ID = 1


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops the offset of timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class SqlCacheStore(CacheStore):
    """Cache persisted in SQLite (aiosqlite) or PostgreSQL (psycopg).

    Blocks, transactions and contract sets are append-only, so a persist
    only inserts keys the store has not written yet; tokens and the sync
    state are replaced. Everything happens in one transaction.
    """

    def __init__(self, database_url: str) -> None:
        self.engine = create_engine(database_url)
        self.session_factory = create_session_factory(self.engine)
        self._schema_ready = False
        self._known: dict[str, set[object]] | None = None

    async def _ensure_schema(self) -> None:
        if not self._schema_ready:
            await create_tables(self.engine)
            self._schema_ready = True

    async def load(self) -> Cache:
        try:
            return await self._read()
        except (SQLAlchemyError, ValidationError) as e:
            logger.warning("Cache state is unreadable, starting from empty: %s", e)
            return Cache()

    async def _read(self) -> Cache:
        await self._ensure_schema()
        async with self.session_factory() as session:
            state = await session.get(SyncStateDB, STATE_ROW_ID)
            blocks = (
                await session.scalars(select(CachedBlockDB).order_by(CachedBlockDB.number))
            ).all()
            txs = (
                await session.scalars(
                    select(CachedTransactionDB).order_by(
                        CachedTransactionDB.block_number,
                        CachedTransactionDB.transaction_index,
                    )
                )
            ).all()
            contracts = (
                await session.scalars(
                    select(CachedContractDB.address).order_by(CachedContractDB.position)
                )
            ).all()
            checked = (
                await session.scalars(
                    select(CheckedContractDB.address).order_by(CheckedContractDB.position)
                )
            ).all()
            tokens = (await session.scalars(select(CachedTokenDB))).all()

        cache = Cache(
            last_scanned_block=state.last_scanned_block if state else -1,
            last_synced=_as_utc(state.last_synced) if state else None,
            incomplete_blocks=list(state.incomplete_blocks or []) if state else [],
            blocks=[
                BlockSummary(
                    number=b.number,
                    timestamp=b.timestamp,
                    miner_address=b.miner_address,
                    tx_count=b.tx_count,
                    gas_used=b.gas_used,
                    gas_limit=b.gas_limit,
                )
                for b in blocks
            ],
            transactions=[
                TxSummary(
                    hash=t.hash,
                    from_address=t.from_address,
                    to=t.to,
                    value_wei=t.value_wei,
                    block_number=t.block_number,
                    transaction_index=t.transaction_index,
                    timestamp=t.timestamp,
                    gas_price_wei=t.gas_price_wei,
                )
                for t in txs
            ],
            contracts=list(contracts),
            checked_contracts=list(checked),
            tokens=[
                TokenRecord(
                    address=t.address,
                    name=t.name,
                    symbol=t.symbol,
                    decimals=t.decimals,
                    total_supply_raw=t.total_supply_raw,
                    total_supply_formatted=t.total_supply_formatted,
                )
                for t in tokens
            ],
        )
        sort_tokens(cache)
        self._known = self._index(cache)
        return cache

    @staticmethod
    def _index(cache: Cache) -> dict[str, set[object]]:
        return {
            "blocks": {b.number for b in cache.blocks},
            "transactions": {t.hash for t in cache.transactions},
            "contracts": set(cache.contracts),
            "checked": set(cache.checked_contracts),
        }

    async def persist(self, cache: Cache) -> None:
        try:
            if self._known is None:
                # First write without a prior load: learn what is already stored
                await self._read()
        except (SQLAlchemyError, ValidationError) as e:
            msg = f"Could not read stored cache keys: {e}"
            raise PersistError(msg) from e

        known = self._known or self._index(Cache())
        block_rows = [
            b.model_dump() for b in cache.blocks if b.number not in known["blocks"]
        ]
        tx_rows = [
            t.model_dump() for t in cache.transactions if t.hash not in known["transactions"]
        ]
        contract_rows = [
            {"address": a, "position": i}
            for i, a in enumerate(cache.contracts)
            if a not in known["contracts"]
        ]
        checked_rows = [
            {"address": a, "position": i}
            for i, a in enumerate(cache.checked_contracts)
            if a not in known["checked"]
        ]
        token_rows = [t.model_dump() for t in cache.tokens]
        state_row = {
            "id": STATE_ROW_ID,
            "last_scanned_block": cache.last_scanned_block,
            "last_synced": cache.last_synced,
            "incomplete_blocks": list(cache.incomplete_blocks),
        }

        try:
            async with self.session_factory() as session, session.begin():
                await insert_ignore_existing(session, CachedBlockDB, block_rows, ["number"])
                await insert_ignore_existing(
                    session, CachedTransactionDB, tx_rows, ["hash"]
                )
                await insert_ignore_existing(
                    session, CachedContractDB, contract_rows, ["address"]
                )
                await insert_ignore_existing(
                    session, CheckedContractDB, checked_rows, ["address"]
                )
                await session.execute(delete(CachedTokenDB))
                await insert_ignore_existing(session, CachedTokenDB, token_rows, ["address"])
                await upsert_rows(session, SyncStateDB, [state_row], ["id"])
        except SQLAlchemyError as e:
            msg = f"Could not persist cache: {e}"
            raise PersistError(msg) from e

        self._known = self._index(cache)
        logger.debug(
            "Persisted %d blocks, %d transactions, %d tokens",
            len(block_rows),
            len(tx_rows),
            len(token_rows),
        )

    async def reset(self) -> None:
        await drop_tables(self.engine)
        self._schema_ready = False
        self._known = None

    async def aclose(self) -> None:
        await self.engine.dispose()


__all__ = [
    "CachedBlockDB",
    "CachedContractDB",
    "CachedTokenDB",
    "CachedTransactionDB",
    "CheckedContractDB",
    "SqlCacheStore",
    "SyncStateDB",
]
