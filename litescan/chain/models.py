"""Pydantic models for node objects returned over JSON-RPC.

Quantities arrive hex-encoded; validators turn them into ints so the rest of
the code never deals with hex strings.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from litescan.helpers.constants import ZERO_ADDRESS
from litescan.helpers.parsers import parse_hex_int


def _hex_quantity(value: Any) -> Any:
    if isinstance(value, str):
        return parse_hex_int(value)
    return value


class RpcTransaction(BaseModel):
    """Transaction object embedded in a block or returned by eth_getTransactionByHash."""

    hash: str
    from_address: str = Field(..., alias="from")
    to: str | None = None
    value: int = 0
    gas: int = 0
    gas_price: int = Field(default=0, alias="gasPrice")
    nonce: int = 0
    input: str = "0x"
    block_number: int | None = Field(default=None, alias="blockNumber")
    block_hash: str | None = Field(default=None, alias="blockHash")
    transaction_index: int = Field(default=0, alias="transactionIndex")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator(
        "value",
        "gas",
        "gas_price",
        "nonce",
        "transaction_index",
        mode="before",
    )
    @classmethod
    def _parse_quantity(cls, value: Any) -> Any:
        # Some nodes omit gasPrice on typed transactions
        if value is None:
            return 0
        return _hex_quantity(value)

    @field_validator("block_number", mode="before")
    @classmethod
    def _parse_block_number(cls, value: Any) -> Any:
        return _hex_quantity(value)

    @property
    def is_contract_creation(self) -> bool:
        """True when the transaction has no destination."""
        return not self.to or self.to.lower() == ZERO_ADDRESS


class RpcBlock(BaseModel):
    """Block object returned by eth_getBlockByNumber / eth_getBlockByHash."""

    number: int
    hash: str | None = None
    parent_hash: str = Field(default="", alias="parentHash")
    miner: str = ZERO_ADDRESS
    timestamp: int
    gas_used: int = Field(default=0, alias="gasUsed")
    gas_limit: int = Field(default=0, alias="gasLimit")
    base_fee_per_gas: int | None = Field(default=None, alias="baseFeePerGas")
    transactions: list[RpcTransaction | str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator(
        "number",
        "timestamp",
        "gas_used",
        "gas_limit",
        "base_fee_per_gas",
        mode="before",
    )
    @classmethod
    def _parse_quantity(cls, value: Any) -> Any:
        return _hex_quantity(value)

    @property
    def tx_count(self) -> int:
        return len(self.transactions)

    @property
    def full_transactions(self) -> list[RpcTransaction]:
        """Embedded transaction objects; empty when fetched with hashes only."""
        return [tx for tx in self.transactions if isinstance(tx, RpcTransaction)]


class RpcReceipt(BaseModel):
    """Receipt returned by eth_getTransactionReceipt."""

    transaction_hash: str = Field(..., alias="transactionHash")
    block_number: int | None = Field(default=None, alias="blockNumber")
    contract_address: str | None = Field(default=None, alias="contractAddress")
    gas_used: int = Field(default=0, alias="gasUsed")
    effective_gas_price: int | None = Field(default=None, alias="effectiveGasPrice")
    status: int | None = None
    logs: list[dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator(
        "block_number", "gas_used", "effective_gas_price", "status", mode="before"
    )
    @classmethod
    def _parse_quantity(cls, value: Any) -> Any:
        return _hex_quantity(value)


__all__ = [
    "RpcBlock",
    "RpcReceipt",
    "RpcTransaction",
]
