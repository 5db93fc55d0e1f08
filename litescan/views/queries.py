"""Query surface: named read-only views over a cache snapshot.

Every response is a camelCase JSON-ready dict carrying the snapshot's
``lastScannedBlock``, ``lastSynced`` and ``incompleteBlocks``.
"""

from __future__ import annotations

import asyncio
import re

from typing import TYPE_CHECKING, Any

from litescan.helpers.constants import DASHBOARD_ITEMS, RECENT_BLOCKS
from litescan.helpers.errors import InvalidQueryParameter, LitescanError
from litescan.helpers.logging import get_logger
from litescan.views.graph import network_graph
from litescan.views.heatmap import activity_heatmap, daily_totals, hour_day_grid


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable

    from pydantic import BaseModel

    from litescan.cache.models import Cache
    from litescan.chain.reader import ChainReader


logger = get_logger(__name__)

ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _dump(models: Iterable[BaseModel]) -> list[dict[str, Any]]:
    return [m.model_dump(mode="json", by_alias=True) for m in models]


def metadata(cache: Cache) -> dict[str, Any]:
    """Sync metadata shared by every response."""
    return {
        "lastScannedBlock": cache.last_scanned_block,
        "lastSynced": cache.last_synced.isoformat() if cache.last_synced else None,
        "incompleteBlocks": list(cache.incomplete_blocks),
    }


def _positive(value: int | None, default: int, name: str) -> int:
    if value is None:
        return default
    if value < 1:
        msg = f"{name} must be a positive integer, got {value}"
        raise InvalidQueryParameter(msg)
    return value


async def _all(cache: Cache, reader: ChainReader, **_: Any) -> dict[str, Any]:
    return {
        "transactions": _dump(cache.transactions),
        "tokens": _dump(cache.tokens),
        "contracts": list(cache.contracts),
        **cache.counts(),
    }


async def _transactions(cache: Cache, reader: ChainReader, **_: Any) -> dict[str, Any]:
    return {"transactions": _dump(cache.transactions)}


async def _tokens(cache: Cache, reader: ChainReader, **_: Any) -> dict[str, Any]:
    return {"tokens": _dump(cache.tokens)}


async def _network(cache: Cache, reader: ChainReader, **_: Any) -> dict[str, Any]:
    return await network_graph(cache.transactions, reader)


async def _dashboard(cache: Cache, reader: ChainReader, **_: Any) -> dict[str, Any]:
    try:
        gas_price: str | None = f"{await reader.get_fee_estimate():f}"
    except LitescanError as e:
        logger.warning("Gas price unavailable: %s", e)
        gas_price = None
    return {
        "latestBlocks": _dump(reversed(cache.blocks[-DASHBOARD_ITEMS:])),
        "latestTransactions": _dump(reversed(cache.transactions[-DASHBOARD_ITEMS:])),
        "gasPriceGwei": gas_price,
    }


async def _heatmap(cache: Cache, reader: ChainReader, **_: Any) -> dict[str, Any]:
    heatmap = activity_heatmap(cache.transactions)
    grid = hour_day_grid(heatmap)
    return {
        "heatmap": heatmap,
        "dailyTotals": daily_totals(heatmap),
        "grid": [
            {"day": str(day), "hours": [int(count) for count in counts]}
            for day, counts in grid.iterrows()
        ],
    }


async def _address(
    cache: Cache, reader: ChainReader, *, address: str | None = None, **_: Any
) -> dict[str, Any]:
    if not address or not ADDRESS_RE.match(address):
        msg = f"A 0x-prefixed 20-byte address is required, got {address!r}"
        raise InvalidQueryParameter(msg)

    target = address.lower()
    balance, nonce = await asyncio.gather(
        reader.get_balance(target), reader.get_tx_count(target)
    )
    history = [
        tx for tx in reversed(cache.transactions) if target in (tx.from_address, tx.to)
    ]
    return {
        "address": target,
        "balance": f"{balance:f}",
        "nonce": nonce,
        "isToken": any(t.address == target for t in cache.tokens),
        "isContract": target in cache.contracts,
        "transactions": _dump(history),
    }


async def _blocks(
    cache: Cache, reader: ChainReader, *, limit: int | None = None, **_: Any
) -> dict[str, Any]:
    count = _positive(limit, RECENT_BLOCKS, "limit")
    return {"blocks": _dump(reversed(cache.blocks[-count:]))}


VIEWS: dict[str, Callable[..., Awaitable[dict[str, Any]]]] = {
    "all": _all,
    "transactions": _transactions,
    "tokens": _tokens,
    "network": _network,
    "dashboard": _dashboard,
    "heatmap": _heatmap,
    "address": _address,
    "blocks": _blocks,
}


async def query(
    view: str,
    cache: Cache,
    reader: ChainReader,
    *,
    address: str | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """Answer a named view from ``cache``.

    Args:
        view: One of ``VIEWS``
        cache: Snapshot to read from
        reader: Used by views that need live chain data (balances, gas)
        address: Target of the ``address`` view
        limit: Number of blocks for the ``blocks`` view

    Raises:
        InvalidQueryParameter: Unknown view or bad argument
        NodeUnreachable: A view needing live data could not reach the node

    Example:
        ```python
        response = await query("tokens", await orchestrator.snapshot(), reader)
        response["tokens"][0]["symbol"]
        ```
    """
    handler = VIEWS.get(view)
    if handler is None:
        msg = f"Unknown view {view!r}; expected one of: {', '.join(VIEWS)}"
        raise InvalidQueryParameter(msg)
    body = await handler(cache, reader, address=address, limit=limit)
    return {**body, **metadata(cache)}


__all__ = [
    "VIEWS",
    "metadata",
    "query",
]
