"""Tests for the command line entry point."""

import json
from collections.abc import AsyncIterator
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from litescan import cli
from litescan.cache.models import Cache
from litescan.indexer.scanner import ScanProgress
from litescan.indexer.sync import SyncOrchestrator, SyncResult
from tests.fake_chain import FakeChainReader, erc20_answers, make_address


ALICE = make_address(0xA11CE)


@pytest.fixture
def cache_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, chain: FakeChainReader) -> Path:
    """Point the CLI at a temporary JSON cache and the fake chain."""
    path = tmp_path / "cache.json"
    monkeypatch.setenv("LITESCAN_CACHE_PATH", str(path))
    monkeypatch.delenv("LITESCAN_DATABASE_URL", raising=False)
    monkeypatch.setattr(cli, "ChainReader", lambda: chain)
    return path


def stored(path: Path) -> dict:
    return json.loads(path.read_text())


async def stream(*events: ScanProgress | SyncResult) -> AsyncIterator[ScanProgress | SyncResult]:
    for event in events:
        yield event


class TestBuildParser:
    """Tests for argument parsing."""

    def test_query_arguments(self) -> None:
        """Test the query subcommand options."""
        args = cli.build_parser().parse_args(
            ["query", "address", "--address", ALICE, "--no-sync"]
        )

        assert (args.command, args.view, args.address, args.sync) == (
            "query",
            "address",
            ALICE,
            False,
        )
        assert args.limit is None

    def test_query_syncs_by_default(self) -> None:
        """Test that query syncs unless told otherwise."""
        assert cli.build_parser().parse_args(["query", "tokens"]).sync is True

    def test_unknown_view_rejected(self) -> None:
        """Test that the view must be a known name."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["query", "everything"])

    def test_command_required(self) -> None:
        """Test that a subcommand is mandatory."""
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_watch_and_serve_options(self) -> None:
        """Test option defaults and conversions."""
        parser = cli.build_parser()

        assert parser.parse_args(["watch"]).interval is None
        assert parser.parse_args(["watch", "--interval", "2.5"]).interval == 2.5
        serve = parser.parse_args(["serve", "--port", "9000"])
        assert (serve.host, serve.port) == ("127.0.0.1", 9000)


class TestRenderSync:
    """Tests for render_sync function."""

    @pytest.mark.asyncio
    async def test_returns_result(self) -> None:
        """Test that the final result is returned after the progress events."""
        result = SyncResult(cache=Cache(last_scanned_block=39))
        console = Console(file=StringIO(), force_terminal=False)

        returned = await cli.render_sync(
            stream(
                ScanProgress(scanned=20, total=40, window_lo=0, window_hi=19),
                ScanProgress(scanned=40, total=40, window_lo=20, window_hi=39, failed=1),
                result,
            ),
            console,
        )

        assert returned is result

    @pytest.mark.asyncio
    async def test_stream_without_result(self) -> None:
        """Test that a stream ending early yields None."""
        console = Console(file=StringIO(), force_terminal=False)

        assert await cli.render_sync(stream(), console) is None

    @pytest.mark.asyncio
    async def test_skipped_pass_draws_no_bar(self) -> None:
        """Test a pass with nothing to scan."""
        output = StringIO()
        result = SyncResult(cache=Cache(), skipped=True)

        assert await cli.render_sync(stream(result), Console(file=output)) is result
        assert "Scanning blocks" not in output.getvalue()

    @pytest.mark.asyncio
    async def test_drives_real_sync(
        self, chain: FakeChainReader, orchestrator: SyncOrchestrator
    ) -> None:
        """Test rendering an actual sync pass."""
        chain.mine_empty(30)
        console = Console(file=StringIO(), force_terminal=False)

        result = await cli.render_sync(orchestrator.sync_with_progress(), console)

        assert result is not None
        assert result.cache.last_scanned_block == 29


class TestMain:
    """Tests for running commands."""

    def test_sync(self, cache_path: Path, chain: FakeChainReader) -> None:
        """Test that sync persists the cache."""
        chain.mine_empty(5)

        assert cli.main(["sync"]) == 0
        assert stored(cache_path)["lastScannedBlock"] == 4

    def test_sync_unreachable(self, cache_path: Path, chain: FakeChainReader) -> None:
        """Test that a failed pass exits non-zero and writes nothing."""
        chain.mine_empty(5)
        chain.unreachable = True

        assert cli.main(["sync"]) == 1
        assert not cache_path.exists()

    def test_query_prints_json(
        self, cache_path: Path, chain: FakeChainReader, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that query writes the view as JSON."""
        chain.mine_empty(3)
        capsys.readouterr()

        assert cli.main(["query", "blocks", "--limit", "2"]) == 0

        body = json.loads(capsys.readouterr().out)
        assert [b["number"] for b in body["blocks"]] == [2, 1]
        assert body["lastScannedBlock"] == 2

    def test_query_without_sync(
        self, cache_path: Path, chain: FakeChainReader, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that --no-sync leaves the node's blocks alone."""
        chain.mine_empty(3)

        assert cli.main(["query", "transactions", "--no-sync"]) == 0

        assert json.loads(capsys.readouterr().out)["lastScannedBlock"] == -1
        assert chain.block_requests == []

    def test_query_bad_parameter(self, cache_path: Path, chain: FakeChainReader) -> None:
        """Test that a bad view parameter exits non-zero."""
        chain.mine_empty(1)

        assert cli.main(["query", "address", "--no-sync"]) == 1

    def test_tokens(
        self, cache_path: Path, chain: FakeChainReader, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test that tokens refreshes supplies in the stored cache."""
        deployment, address = chain.deploy(ALICE, erc20_answers("Token", "TKN", 0, 5))
        chain.mine([deployment])
        assert cli.main(["sync"]) == 0

        chain.contracts[address] = erc20_answers("Token", "TKN", 0, 8)
        assert cli.main(["tokens"]) == 0

        assert "Refreshed 1 tokens" in capsys.readouterr().out
        assert stored(cache_path)["tokens"][0]["totalSupplyFormatted"] == 8.0

    def test_reset(self, cache_path: Path, chain: FakeChainReader) -> None:
        """Test that reset removes the stored cache."""
        chain.mine_empty(2)
        cli.main(["sync"])

        assert cli.main(["reset"]) == 0

        assert not cache_path.exists()
