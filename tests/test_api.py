"""Tests for the HTTP query surface."""

from collections.abc import Iterator

import pytest

from fastapi.testclient import TestClient

from litescan.api import create_app
from litescan.helpers.errors import PersistError
from litescan.indexer.sync import SyncOrchestrator
from tests.fake_chain import FakeChainReader, erc20_answers, make_address


ALICE = make_address(0xA11CE)
BOB = make_address(0xB0B)


@pytest.fixture
def client(chain: FakeChainReader, orchestrator: SyncOrchestrator) -> Iterator[TestClient]:
    """Client for an app over the fake chain."""
    chain.mine_empty(3)
    deployment, _ = chain.deploy(ALICE, erc20_answers("Test Token", "TST", 18, 10**21))
    chain.mine([chain.transfer(ALICE, BOB), deployment])
    app = create_app(orchestrator=orchestrator, reader=chain)  # type: ignore[arg-type]
    with TestClient(app) as test_client:
        yield test_client


class TestCacheEndpoint:
    """Tests for GET /api/cache."""

    def test_default_view_syncs(self, client: TestClient) -> None:
        """Test that the default request syncs and returns everything."""
        response = client.get("/api/cache")

        assert response.status_code == 200
        body = response.json()
        assert body["lastScannedBlock"] == 3
        assert body["txCount"] == 2
        assert body["tokens"][0]["totalSupplyFormatted"] == 1000.0

    def test_snapshot_without_sync(self, client: TestClient, chain: FakeChainReader) -> None:
        """Test that sync=false answers from the committed cache only."""
        response = client.get("/api/cache", params={"type": "transactions", "sync": "false"})

        assert response.status_code == 200
        assert response.json()["lastScannedBlock"] == -1
        assert chain.block_requests == []

    def test_address_view(self, client: TestClient, chain: FakeChainReader) -> None:
        """Test the address view parameters."""
        chain.nonces[ALICE] = 2

        response = client.get("/api/cache", params={"type": "address", "address": ALICE})

        assert response.status_code == 200
        assert response.json()["nonce"] == 2
        assert len(response.json()["transactions"]) == 2

    def test_blocks_limit(self, client: TestClient) -> None:
        """Test the blocks view limit."""
        response = client.get("/api/cache", params={"type": "blocks", "limit": 2})

        assert [b["number"] for b in response.json()["blocks"]] == [3, 2]

    @pytest.mark.parametrize(
        "params",
        [
            {"type": "nonsense"},
            {"type": "address"},
            {"type": "address", "address": "0x123"},
            {"type": "blocks", "limit": "0"},
            {"type": "blocks", "limit": "many"},
        ],
    )
    def test_bad_parameters(self, client: TestClient, params: dict[str, str]) -> None:
        """Test that bad parameters are 400 with an error message."""
        response = client.get("/api/cache", params=params)

        assert response.status_code == 400
        assert response.json()["error"]

    def test_unreachable_node_serves_stale_snapshot(
        self, client: TestClient, chain: FakeChainReader
    ) -> None:
        """Test that a failed sync answers from the last committed cache."""
        assert client.get("/api/cache").json()["lastScannedBlock"] == 3
        chain.mine_empty(2)
        chain.unreachable = True

        response = client.get("/api/cache", params={"type": "transactions"})

        assert response.status_code == 200
        body = response.json()
        assert body["stale"] is True
        assert "connection refused" in body["error"]
        assert body["lastScannedBlock"] == 3
        assert len(body["transactions"]) == 2

    def test_fresh_response_not_stale(self, client: TestClient) -> None:
        """Test that a successful sync carries no stale marker."""
        body = client.get("/api/cache").json()

        assert "stale" not in body
        assert "error" not in body

    def test_unreachable_node_in_view(self, client: TestClient, chain: FakeChainReader) -> None:
        """Test that a view needing the node is 503 when it is down."""
        chain.unreachable = True

        response = client.get(
            "/api/cache", params={"type": "address", "address": ALICE, "sync": "false"}
        )

        assert response.status_code == 503
        assert "connection refused" in response.json()["error"]

    def test_persist_failure_serves_stale_snapshot(
        self, client: TestClient, orchestrator: SyncOrchestrator, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test that a pass that cannot persist leaves the previous snapshot in place."""

        async def failing_persist(cache: object) -> None:
            msg = "disk full"
            raise PersistError(msg)

        monkeypatch.setattr(orchestrator.store, "persist", failing_persist)

        response = client.get("/api/cache")

        assert response.status_code == 200
        body = response.json()
        assert (body["stale"], body["error"]) == (True, "disk full")
        assert body["lastScannedBlock"] == -1


class TestOtherEndpoints:
    """Tests for status, block and transaction lookups."""

    def test_status(self, client: TestClient) -> None:
        """Test that status reports state and counts without syncing."""
        client.get("/api/cache")

        body = client.get("/api/status").json()

        assert body["state"] == "idle"
        assert body["blockCount"] == 4
        assert body["lastScannedBlock"] == 3

    def test_block(self, client: TestClient) -> None:
        """Test a block lookup."""
        response = client.get("/api/block/3")

        assert response.status_code == 200
        assert len(response.json()["transactions"]) == 2

    def test_block_not_found(self, client: TestClient) -> None:
        """Test a block beyond the head."""
        response = client.get("/api/block/99")

        assert response.status_code == 404
        assert response.json() == {"error": "Block 99 not found"}

    def test_block_bad_id(self, client: TestClient) -> None:
        """Test an unparseable block id."""
        assert client.get("/api/block/tip").status_code == 400

    def test_transaction(self, client: TestClient, chain: FakeChainReader) -> None:
        """Test a transaction lookup with its receipt."""
        deployment = chain.blocks[3]["transactions"][1]

        body = client.get(f"/api/tx/{deployment['hash']}").json()

        assert body["transaction"]["hash"] == deployment["hash"]
        assert body["receipt"]["contractAddress"] == make_address(0xC0001)

    def test_transaction_not_found(self, client: TestClient) -> None:
        """Test an unknown hash."""
        assert client.get(f"/api/tx/0x{'0' * 64}").status_code == 404
