"""Chain reader: the only boundary between litescan and the node.

The reader is a thin, stateless façade over ``RPCClient``. It is built
explicitly and handed to every component that needs chain data; it does no
caching of its own.
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

from typing import TYPE_CHECKING, Any, Self

from litescan.chain.models import RpcBlock, RpcReceipt, RpcTransaction
from litescan.helpers.config import get_eth_rpc_url
from litescan.helpers.constants import DEFAULT_TIMEOUT
from litescan.helpers.http import create_http_client
from litescan.helpers.parsers import format_units, parse_hex_int, wei_to_gwei
from litescan.helpers.rpc import RPCClient


if TYPE_CHECKING:
    from types import TracebackType

    import httpx


BLOCK_TAGS = {"latest", "earliest", "pending", "safe", "finalized"}


def block_param(block_id: int | str) -> tuple[str, str]:
    """Map a block number, numeric string, tag or hash to (method, param).

    Example:
        >>> block_param(16)
        ('eth_getBlockByNumber', '0x10')
        >>> block_param("latest")
        ('eth_getBlockByNumber', 'latest')
    """
    if isinstance(block_id, int):
        if block_id < 0:
            msg = f"Block number cannot be negative: {block_id}"
            raise ValueError(msg)
        return "eth_getBlockByNumber", hex(block_id)

    value = block_id.strip()
    if value in BLOCK_TAGS:
        return "eth_getBlockByNumber", value
    if value.isdigit():
        return "eth_getBlockByNumber", hex(int(value))
    if value.startswith("0x") and len(value) == 66:
        return "eth_getBlockByHash", value
    if value.startswith("0x"):
        return "eth_getBlockByNumber", hex(int(value, 16))

    msg = f"Not a block number, tag or hash: {block_id!r}"
    raise ValueError(msg)


class ChainReader:
    """Read-only access to a node over JSON-RPC.

    Every method may raise ``NodeUnreachable`` (transport failure or
    timeout) or ``RPCError`` (node-side error). Lookups of objects that do
    not exist return None.

    Example:
        ```python
        async with ChainReader("http://localhost:8545") as reader:
            height = await reader.latest_height()
            block = await reader.get_block(height, include_txs=True)
        ```
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the reader.

        Args:
            rpc_url: Node endpoint (defaults to ETH_RPC_URL)
            timeout: Per-request timeout in seconds
            client: Optional shared HTTP client; when omitted the reader
                creates and owns one
        """
        self.rpc = RPCClient(get_eth_rpc_url(rpc_url), timeout=timeout)
        self._owns_client = client is None
        self.client = client or create_http_client(timeout=timeout)

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if the reader created it."""
        if self._owns_client:
            await self.client.aclose()

    async def _call(self, method: str, params: list[Any] | None = None) -> Any:
        return await self.rpc.call(self.client, method, params)

    async def latest_height(self) -> int:
        """Latest block number known to the node."""
        return parse_hex_int(await self._call("eth_blockNumber"))

    async def get_block(
        self, block_id: int | str, *, include_txs: bool = False
    ) -> RpcBlock | None:
        """Fetch a block by number, tag or hash.

        Args:
            block_id: Block number, numeric string, tag or 32-byte hash
            include_txs: Embed full transaction objects instead of hashes

        Returns:
            Parsed block, or None if the node has no such block
        """
        method, param = block_param(block_id)
        result = await self._call(method, [param, include_txs])
        if result is None:
            return None
        return RpcBlock.model_validate(result)

    async def get_receipt(self, tx_hash: str) -> RpcReceipt | None:
        """Fetch a transaction receipt, or None if unknown or still pending."""
        result = await self._call("eth_getTransactionReceipt", [tx_hash])
        if result is None:
            return None
        return RpcReceipt.model_validate(result)

    async def get_transaction(
        self, tx_hash: str
    ) -> tuple[RpcTransaction, RpcReceipt | None] | None:
        """Fetch a transaction and its receipt concurrently.

        Returns:
            (transaction, receipt) where receipt is None for pending
            transactions, or None if the node does not know the hash
        """
        tx_result, receipt = await asyncio.gather(
            self._call("eth_getTransactionByHash", [tx_hash]),
            self.get_receipt(tx_hash),
        )
        if tx_result is None:
            return None
        return RpcTransaction.model_validate(tx_result), receipt

    async def get_balance_wei(self, address: str) -> int:
        """Current balance of an address in wei."""
        return parse_hex_int(await self._call("eth_getBalance", [address, "latest"]))

    async def get_balance(self, address: str) -> Decimal:
        """Current balance of an address in ether."""
        return format_units(await self.get_balance_wei(address), 18)

    async def get_tx_count(self, address: str) -> int:
        """Nonce (number of sent transactions) of an address."""
        return parse_hex_int(
            await self._call("eth_getTransactionCount", [address, "latest"])
        )

    async def get_fee_estimate(self) -> Decimal:
        """Current gas price estimate in gwei."""
        return wei_to_gwei(parse_hex_int(await self._call("eth_gasPrice")))

    async def call_contract(self, address: str, data: str) -> str:
        """Read-only eth_call against ``address`` at the latest block.

        Args:
            address: Contract address
            data: ABI-encoded call data (a bare selector for the ERC-20 probe)

        Returns:
            Hex-encoded return data ("0x" when the call returned nothing)

        Raises:
            RPCError: If the call reverted
        """
        result = await self._call(
            "eth_call", [{"to": address, "data": data}, "latest"]
        )
        return result or "0x"


__all__ = ["ChainReader", "block_param"]
