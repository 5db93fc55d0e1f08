"""Pydantic models for the persisted chain cache.

Field names are snake_case in Python and camelCase on the wire, which is the
layout of the persisted JSON document and of every query response.
"""

from datetime import datetime

from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field


class BlockSummary(BaseModel):
    """One scanned block."""

    number: int
    timestamp: int = Field(..., description="Unix seconds")
    miner_address: str = Field(..., alias="minerAddress")
    tx_count: int = Field(..., alias="txCount")
    gas_used: int = Field(..., alias="gasUsed")
    gas_limit: int = Field(..., alias="gasLimit")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TxSummary(BaseModel):
    """One scanned transaction."""

    hash: str
    from_address: str = Field(..., alias="from")
    to: str | None = Field(default=None, description="None for contract creation")
    value_wei: str = Field(..., alias="valueWei", description="Wei as decimal string")
    block_number: int = Field(..., alias="blockNumber")
    transaction_index: int = Field(default=0, alias="transactionIndex")
    timestamp: int = Field(..., description="Block timestamp, Unix seconds")
    gas_price_wei: str = Field(default="0", alias="gasPriceWei")

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @property
    def order_key(self) -> tuple[int, int]:
        return self.block_number, self.transaction_index


class TokenRecord(BaseModel):
    """A contract classified as an ERC-20 token."""

    address: str
    name: str
    symbol: str
    decimals: int
    total_supply_raw: str = Field(..., alias="totalSupplyRaw")
    total_supply_formatted: float = Field(..., alias="totalSupplyFormatted")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Cache(BaseModel):
    """The single persisted aggregate produced by sync."""

    last_scanned_block: int = Field(default=-1, alias="lastScannedBlock")
    blocks: list[BlockSummary] = Field(default_factory=list)
    transactions: list[TxSummary] = Field(default_factory=list)
    contracts: list[str] = Field(default_factory=list)
    checked_contracts: list[str] = Field(default_factory=list, alias="checkedContracts")
    tokens: list[TokenRecord] = Field(default_factory=list)
    incomplete_blocks: list[int] = Field(default_factory=list, alias="incompleteBlocks")
    last_synced: datetime | None = Field(default=None, alias="lastSynced")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_empty(self) -> bool:
        return self.last_scanned_block < 0

    def working_copy(self) -> Self:
        """Copy whose collections can be extended without touching this cache.

        Entries are frozen, so copying the containers is enough.
        """
        return self.model_copy(
            update={
                "blocks": list(self.blocks),
                "transactions": list(self.transactions),
                "contracts": list(self.contracts),
                "checked_contracts": list(self.checked_contracts),
                "tokens": list(self.tokens),
                "incomplete_blocks": list(self.incomplete_blocks),
            }
        )

    def counts(self) -> dict[str, int]:
        return {
            "blockCount": len(self.blocks),
            "txCount": len(self.transactions),
            "contractCount": len(self.contracts),
            "tokenCount": len(self.tokens),
        }

    def to_document(self) -> dict[str, Any]:
        """JSON-ready camelCase document."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = [
    "BlockSummary",
    "Cache",
    "TokenRecord",
    "TxSummary",
]
