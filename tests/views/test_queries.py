"""Tests for the named query views."""

import pytest
import pytest_asyncio

from litescan.cache.models import Cache
from litescan.helpers.errors import InvalidQueryParameter, NodeUnreachable
from litescan.indexer.sync import SyncOrchestrator
from litescan.views.queries import VIEWS, metadata, query
from tests.fake_chain import FakeChainReader, erc20_answers, make_address


ALICE = make_address(0xA11CE)
BOB = make_address(0xB0B)


@pytest_asyncio.fixture
async def synced(chain: FakeChainReader, orchestrator: SyncOrchestrator) -> Cache:
    """Cache over ten blocks: two transfers and one token deployment."""
    chain.mine_empty(2)
    deployment, token = chain.deploy(ALICE, erc20_answers("Test Token", "TST", 2, 12_345))
    chain.mine([chain.transfer(ALICE, BOB, 10**18), deployment])
    chain.mine_empty(3)
    chain.mine([chain.transfer(BOB, token, 0)])
    chain.mine_empty(3)
    chain.balances[ALICE] = 25 * 10**17
    chain.nonces[ALICE] = 7
    return (await orchestrator.sync()).cache


class TestQuery:
    """Tests for query dispatch and metadata."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("view", list(VIEWS))
    async def test_metadata_on_every_view(
        self, view: str, synced: Cache, chain: FakeChainReader
    ) -> None:
        """Test that each view carries the sync metadata."""
        response = await query(view, synced, chain, address=ALICE)  # type: ignore[arg-type]

        assert response["lastScannedBlock"] == 9
        assert response["lastSynced"] == synced.last_synced.isoformat()  # type: ignore[union-attr]
        assert response["incompleteBlocks"] == []

    @pytest.mark.asyncio
    async def test_unknown_view(self, chain: FakeChainReader) -> None:
        """Test that an unknown view is a bad parameter."""
        with pytest.raises(InvalidQueryParameter, match="Unknown view 'blocks2'"):
            await query("blocks2", Cache(), chain)  # type: ignore[arg-type]

    def test_metadata_of_empty_cache(self) -> None:
        """Test metadata before the first sync."""
        assert metadata(Cache()) == {
            "lastScannedBlock": -1,
            "lastSynced": None,
            "incompleteBlocks": [],
        }


class TestViews:
    """Tests for the individual views."""

    @pytest.mark.asyncio
    async def test_all(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test the full dump and its counts."""
        response = await query("all", synced, chain)  # type: ignore[arg-type]

        assert response["txCount"] == len(response["transactions"]) == 3
        assert response["blockCount"] == 10
        assert response["contractCount"] == response["tokenCount"] == 1
        assert response["transactions"][0]["from"] == ALICE
        assert response["transactions"][0]["valueWei"] == str(10**18)

    @pytest.mark.asyncio
    async def test_tokens(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test the token list in wire format."""
        response = await query("tokens", synced, chain)  # type: ignore[arg-type]

        (token,) = response["tokens"]
        assert token["symbol"] == "TST"
        assert token["totalSupplyRaw"] == "12345"
        assert token["totalSupplyFormatted"] == 123.45

    @pytest.mark.asyncio
    async def test_transactions_in_chain_order(
        self, synced: Cache, chain: FakeChainReader
    ) -> None:
        """Test that transactions are listed oldest first."""
        response = await query("transactions", synced, chain)  # type: ignore[arg-type]

        order = [(t["blockNumber"], t["transactionIndex"]) for t in response["transactions"]]
        assert order == [(2, 0), (2, 1), (6, 0)]
        assert response["transactions"][1]["to"] is None

    @pytest.mark.asyncio
    async def test_dashboard(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test latest items newest first and the gas price."""
        response = await query("dashboard", synced, chain)  # type: ignore[arg-type]

        assert [b["number"] for b in response["latestBlocks"]] == [9, 8, 7, 6, 5, 4]
        assert response["latestTransactions"][0]["blockNumber"] == 6
        assert response["gasPriceGwei"] == "12"

    @pytest.mark.asyncio
    async def test_dashboard_without_gas_price(
        self, synced: Cache, chain: FakeChainReader
    ) -> None:
        """Test that the dashboard still answers when the node is down."""
        chain.unreachable = True

        response = await query("dashboard", synced, chain)  # type: ignore[arg-type]

        assert response["gasPriceGwei"] is None
        assert len(response["latestBlocks"]) == 6

    @pytest.mark.asyncio
    async def test_network(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test that the network view is the interaction graph."""
        response = await query("network", synced, chain)  # type: ignore[arg-type]

        assert [n["id"] for n in response["nodes"]][:2] == [ALICE, BOB]
        assert response["nodes"][0]["balance"] == 2.5
        assert sum(e["weight"] for e in response["edges"]) == 2

    @pytest.mark.asyncio
    async def test_heatmap(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test that the heatmap accounts for every transaction."""
        response = await query("heatmap", synced, chain)  # type: ignore[arg-type]

        assert sum(response["heatmap"].values()) == 3
        assert sum(response["dailyTotals"].values()) == 3

    @pytest.mark.asyncio
    async def test_heatmap_grid(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test the day-by-hour grid rows of the heatmap view."""
        response = await query("heatmap", synced, chain)  # type: ignore[arg-type]

        [row] = response["grid"]
        assert row["day"] == "2023-11-14"
        assert len(row["hours"]) == 24
        assert row["hours"][22] == 3
        assert sum(row["hours"]) == 3

    @pytest.mark.asyncio
    async def test_heatmap_grid_empty(self, chain: FakeChainReader) -> None:
        """Test that an empty cache has no grid rows."""
        response = await query("heatmap", Cache(), chain)  # type: ignore[arg-type]

        assert response == {"heatmap": {}, "dailyTotals": {}, "grid": []}

    @pytest.mark.asyncio
    async def test_address(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test the address view with mixed-case input."""
        mixed_case = "0x" + ALICE[2:].upper()

        response = await query("address", synced, chain, address=mixed_case)  # type: ignore[arg-type]

        assert response["address"] == ALICE
        assert response["balance"] == "2.5"
        assert response["nonce"] == 7
        assert response["isContract"] is False
        assert response["isToken"] is False
        assert [t["blockNumber"] for t in response["transactions"]] == [2, 2]

    @pytest.mark.asyncio
    async def test_address_of_token(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test that a token address is flagged."""
        token = synced.tokens[0].address

        response = await query("address", synced, chain, address=token)  # type: ignore[arg-type]

        assert response["isToken"] is True
        assert response["isContract"] is True
        assert response["balance"] == "0"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address", [None, "", "0x123", "abc" * 14, "0x" + "g" * 40])
    async def test_address_rejected(
        self, address: str | None, synced: Cache, chain: FakeChainReader
    ) -> None:
        """Test that malformed addresses are bad parameters."""
        with pytest.raises(InvalidQueryParameter):
            await query("address", synced, chain, address=address)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_address_needs_node(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test that the live lookups surface an unreachable node."""
        chain.unreachable = True

        with pytest.raises(NodeUnreachable):
            await query("address", synced, chain, address=ALICE)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_blocks(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test the recent blocks list and its limit."""
        default = await query("blocks", synced, chain)  # type: ignore[arg-type]
        limited = await query("blocks", synced, chain, limit=3)  # type: ignore[arg-type]

        assert len(default["blocks"]) == 10
        assert [b["number"] for b in limited["blocks"]] == [9, 8, 7]
        assert limited["blocks"][0]["minerAddress"] == make_address(0xFEE)

    @pytest.mark.asyncio
    async def test_blocks_bad_limit(self, synced: Cache, chain: FakeChainReader) -> None:
        """Test that the limit must be positive."""
        with pytest.raises(InvalidQueryParameter, match="limit"):
            await query("blocks", synced, chain, limit=0)  # type: ignore[arg-type]
