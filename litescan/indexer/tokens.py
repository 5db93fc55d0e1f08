"""ERC-20 detection for contracts discovered by the scanner.

A contract is a token when ``name()``, ``symbol()`` and ``totalSupply()``
all answer with decodable values. ``decimals()`` is optional and falls back
to 18. Each contract is probed at most once per sync; the outcome, token or
not, is remembered in ``checked_contracts``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from typing import TYPE_CHECKING

from eth_abi import decode
from eth_abi.exceptions import DecodingError

from litescan.cache.models import TokenRecord
from litescan.cache.store import mark_checked, sort_tokens, upsert_token
from litescan.helpers.constants import (
    DEFAULT_TOKEN_DECIMALS,
    ERC20_SELECTORS,
    PROBE_CONCURRENCY,
)
from litescan.helpers.errors import ContractProbeFailed, LitescanError
from litescan.helpers.logging import get_logger
from litescan.helpers.parsers import format_units


if TYPE_CHECKING:
    from collections.abc import Iterable

    from litescan.cache.models import Cache
    from litescan.chain.reader import ChainReader


logger = get_logger(__name__)


def decode_string(data: bytes) -> str:
    """Decode an ABI ``string`` return value, falling back to ``bytes32``.

    Some early tokens (MKR, SAI) return a right-padded bytes32 instead of a
    dynamic string.

    Raises:
        DecodingError: If the data is neither
    """
    try:
        (value,) = decode(["string"], data)
    except (DecodingError, OverflowError, UnicodeDecodeError):
        if len(data) != 32:
            raise
        value = data.rstrip(b"\x00").decode("utf-8", errors="replace")
    return value.strip("\x00").strip()


def decode_uint(data: bytes) -> int:
    (value,) = decode(["uint256"], data)
    return value


@dataclass(frozen=True)
class ProbeResult:
    """Raw answers of the four ERC-20 read calls (None where a call failed)."""

    address: str
    name: str | None = None
    symbol: str | None = None
    decimals: int | None = None
    total_supply: int | None = None

    def to_token(self) -> TokenRecord | None:
        """Classify the probe; None unless name, symbol and supply are present."""
        if not self.name or not self.symbol or self.total_supply is None:
            return None
        decimals = DEFAULT_TOKEN_DECIMALS if self.decimals is None else self.decimals
        return TokenRecord(
            address=self.address,
            name=self.name,
            symbol=self.symbol,
            decimals=decimals,
            total_supply_raw=str(self.total_supply),
            total_supply_formatted=float(format_units(self.total_supply, decimals)),
        )


class TokenClassifier:
    """Probe contracts for the ERC-20 read interface with bounded concurrency.

    Example:
        ```python
        classifier = TokenClassifier(reader)
        new_tokens = await classifier.classify(cache, ["0xabc..."])
        ```
    """

    def __init__(self, reader: ChainReader, *, concurrency: int = PROBE_CONCURRENCY) -> None:
        self.reader = reader
        self._semaphore = asyncio.Semaphore(concurrency)

    async def _read(self, address: str, method: str) -> bytes:
        try:
            result = await self.reader.call_contract(address, ERC20_SELECTORS[method])
        except LitescanError as e:
            raise ContractProbeFailed(address, method, e) from e
        data = bytes.fromhex(result.removeprefix("0x"))
        if not data:
            raise ContractProbeFailed(address, method, "empty return data")
        return data

    async def _string(self, address: str, method: str) -> str | None:
        try:
            return decode_string(await self._read(address, method))
        except (ContractProbeFailed, DecodingError, OverflowError, ValueError) as e:
            logger.debug("%s", e)
            return None

    async def _uint(self, address: str, method: str) -> int | None:
        try:
            return decode_uint(await self._read(address, method))
        except (ContractProbeFailed, DecodingError, OverflowError, ValueError) as e:
            logger.debug("%s", e)
            return None

    async def probe(self, address: str) -> ProbeResult:
        """Issue the four read calls concurrently; failures leave None."""
        async with self._semaphore:
            name, symbol, decimals, supply = await asyncio.gather(
                self._string(address, "name"),
                self._string(address, "symbol"),
                self._uint(address, "decimals"),
                self._uint(address, "totalSupply"),
            )
        if decimals is not None and decimals > 255:
            decimals = None
        return ProbeResult(
            address=address,
            name=name,
            symbol=symbol,
            decimals=decimals,
            total_supply=supply,
        )

    async def classify(self, cache: Cache, addresses: Iterable[str]) -> list[TokenRecord]:
        """Probe every address not yet checked and record the outcome in ``cache``.

        Every probed address is marked checked, token or not; tokens are
        upserted. ``cache`` is mutated in place.

        Returns:
            The newly classified tokens
        """
        checked = set(cache.checked_contracts)
        pending = list(dict.fromkeys(a for a in addresses if a not in checked))
        if not pending:
            return []

        logger.info("Probing %d contracts for ERC-20", len(pending))
        probes = await asyncio.gather(*(self.probe(a) for a in pending))

        tokens: list[TokenRecord] = []
        for probe in probes:
            mark_checked(cache, probe.address)
            token = probe.to_token()
            if token is not None:
                upsert_token(cache, token)
                tokens.append(token)
                logger.info("Found token %s (%s) at %s", token.name, token.symbol, token.address)
        sort_tokens(cache)
        return tokens

    async def refresh(self, cache: Cache) -> list[TokenRecord]:
        """Re-probe known tokens and replace their records (e.g. new supply).

        A token whose probe now fails keeps its previous record.
        """
        if not cache.tokens:
            return []

        probes = await asyncio.gather(*(self.probe(t.address) for t in cache.tokens))
        updated: list[TokenRecord] = []
        for probe in probes:
            token = probe.to_token()
            if token is None:
                logger.warning("Token %s did not answer, keeping previous record", probe.address)
                continue
            upsert_token(cache, token)
            updated.append(token)
        sort_tokens(cache)
        return updated


__all__ = [
    "ProbeResult",
    "TokenClassifier",
    "decode_string",
    "decode_uint",
]
