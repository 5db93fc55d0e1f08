"""Address interaction graph built from cached transactions."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass

from typing import TYPE_CHECKING, Any

from litescan.helpers.constants import BALANCE_CONCURRENCY
from litescan.helpers.errors import LitescanError
from litescan.helpers.logging import get_logger
from litescan.helpers.parsers import short_address


if TYPE_CHECKING:
    from collections.abc import Iterable

    from litescan.cache.models import TxSummary
    from litescan.chain.reader import ChainReader


logger = get_logger(__name__)


@dataclass(frozen=True)
class InteractionGraph:
    """Participants in first-seen order and undirected edge weights."""

    participants: list[str]
    edges: dict[tuple[str, str], int]


def build_interaction_graph(transactions: Iterable[TxSummary]) -> InteractionGraph:
    """Count interactions between address pairs in one pass.

    Addresses are compared lower-cased. A transaction with a recipient adds
    one to the edge of its sorted address pair (a self-transfer is a loop);
    contract creations only contribute their sender as a participant.
    """
    participants: dict[str, None] = {}
    edges: Counter[tuple[str, str]] = Counter()
    for tx in transactions:
        sender = tx.from_address.lower()
        participants.setdefault(sender, None)
        if tx.to is None:
            continue
        recipient = tx.to.lower()
        participants.setdefault(recipient, None)
        a, b = sorted((sender, recipient))
        edges[a, b] += 1
    return InteractionGraph(participants=list(participants), edges=dict(edges))


async def fetch_balances(
    reader: ChainReader,
    addresses: Iterable[str],
    *,
    concurrency: int = BALANCE_CONCURRENCY,
) -> dict[str, float]:
    """Current ether balance per address; a failed read yields 0.0."""
    semaphore = asyncio.Semaphore(concurrency)

    async def balance(address: str) -> float:
        async with semaphore:
            try:
                return float(await reader.get_balance(address))
            except LitescanError as e:
                logger.warning("Balance of %s unavailable: %s", address, e)
                return 0.0

    addresses = list(addresses)
    values = await asyncio.gather(*(balance(a) for a in addresses))
    return dict(zip(addresses, values, strict=True))


async def network_graph(
    transactions: Iterable[TxSummary],
    reader: ChainReader,
    *,
    concurrency: int = BALANCE_CONCURRENCY,
) -> dict[str, list[dict[str, Any]]]:
    """Nodes with balances and weighted edges, ready to serialize.

    Example:
        ```python
        graph = await network_graph(cache.transactions, reader)
        # {"nodes": [{"id": "0xab...", "label": "0xab12...cdef", "balance": 1.5}],
        #  "edges": [{"source": "0xab...", "target": "0xcd...", "weight": 3}]}
        ```
    """
    graph = build_interaction_graph(transactions)
    balances = await fetch_balances(reader, graph.participants, concurrency=concurrency)
    return {
        "nodes": [
            {"id": address, "label": short_address(address), "balance": balances[address]}
            for address in graph.participants
        ],
        "edges": [
            {"source": source, "target": target, "weight": weight}
            for (source, target), weight in graph.edges.items()
        ],
    }


__all__ = [
    "InteractionGraph",
    "build_interaction_graph",
    "fetch_balances",
    "network_graph",
]
