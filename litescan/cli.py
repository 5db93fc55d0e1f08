"""Command line entry point.

Usage:
    litescan sync
    litescan watch [--interval 15]
    litescan serve [--host 127.0.0.1] [--port 8000]
    litescan tokens
    litescan reset
    litescan query <view> [--address 0x...] [--limit 25] [--no-sync]
"""

from __future__ import annotations

import json
import sys
from argparse import ArgumentParser, Namespace
from asyncio import run

from typing import TYPE_CHECKING

from rich.console import Console

from litescan.cache.store import create_store
from litescan.chain.reader import ChainReader
from litescan.helpers.config import get_scan_window
from litescan.helpers.errors import LitescanError
from litescan.helpers.logging import get_logger
from litescan.helpers.progress import create_standard_progress
from litescan.indexer.live import LiveSyncer
from litescan.indexer.scanner import BatchScanner, ScanProgress
from litescan.indexer.sync import SyncOrchestrator
from litescan.views.queries import VIEWS, query


if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Sequence

    from litescan.indexer.sync import SyncResult


logger = get_logger(__name__)
console = Console()


async def render_sync(
    events: AsyncIterator[ScanProgress | SyncResult],
    console: Console | None = None,
    *,
    description: str = "Scanning blocks",
) -> SyncResult | None:
    """Drive a ``sync_with_progress()`` stream, drawing one bar for the scan.

    Returns:
        The pass result, or None if the stream ended without one
    """
    result: SyncResult | None = None
    with create_standard_progress(console) as progress:
        task_id = None
        async for event in events:
            if isinstance(event, ScanProgress):
                if task_id is None:
                    task_id = progress.add_task(description, total=event.total)
                label = f"{description} [{event.window_lo}-{event.window_hi}]"
                if event.failed:
                    label += f" [yellow]{event.failed} incomplete[/yellow]"
                progress.update(task_id, completed=event.scanned, description=label)
            else:
                result = event
    return result


async def _with_orchestrator(
    action: Callable[[SyncOrchestrator, ChainReader], Awaitable[int]],
) -> int:
    store = create_store()
    try:
        async with ChainReader() as reader:
            scanner = BatchScanner(reader, window_size=get_scan_window())
            orchestrator = SyncOrchestrator(reader, store, scanner=scanner)
            return await action(orchestrator, reader)
    finally:
        await store.aclose()


async def cmd_sync(args: Namespace) -> int:
    async def action(orchestrator: SyncOrchestrator, reader: ChainReader) -> int:
        result = await render_sync(orchestrator.sync_with_progress(), console)
        if result is None:
            return 1
        if result.skipped:
            console.print(
                f"Cache already at block {result.cache.last_scanned_block}, nothing to do"
            )
            return 0
        console.print(
            f"Synced to block {result.cache.last_scanned_block}: "
            f"+{result.new_blocks} blocks, +{result.new_transactions} transactions, "
            f"+{len(result.new_contracts)} contracts, +{len(result.new_tokens)} tokens"
        )
        if result.incomplete_blocks:
            console.print(
                f"[yellow]{len(result.incomplete_blocks)} blocks incomplete, "
                "retried on next sync[/yellow]"
            )
        return 0

    return await _with_orchestrator(action)


async def cmd_watch(args: Namespace) -> int:
    async def action(orchestrator: SyncOrchestrator, reader: ChainReader) -> int:
        await LiveSyncer(orchestrator, interval=args.interval).run()
        return 0

    return await _with_orchestrator(action)


async def cmd_tokens(args: Namespace) -> int:
    async def action(orchestrator: SyncOrchestrator, reader: ChainReader) -> int:
        updated = await orchestrator.refresh_tokens()
        for token in updated:
            console.print(
                f"{token.symbol:<10} {token.name:<30} {token.total_supply_formatted:>24,.4f}"
            )
        console.print(f"Refreshed {len(updated)} tokens")
        return 0

    return await _with_orchestrator(action)


async def cmd_reset(args: Namespace) -> int:
    store = create_store()
    try:
        await store.reset()
    finally:
        await store.aclose()
    console.print("Cache reset")
    return 0


async def cmd_query(args: Namespace) -> int:
    async def action(orchestrator: SyncOrchestrator, reader: ChainReader) -> int:
        if args.sync:
            cache = (await orchestrator.sync()).cache
        else:
            cache = await orchestrator.snapshot()
        response = await query(
            args.view, cache, reader, address=args.address, limit=args.limit
        )
        sys.stdout.write(json.dumps(response, indent=2) + "\n")
        return 0

    return await _with_orchestrator(action)


def cmd_serve(args: Namespace) -> int:
    import uvicorn

    from litescan.api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return 0


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(prog="litescan", description="Incremental chain indexer and explorer")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("sync", help="Run one sync pass with a progress bar")

    watch = commands.add_parser("watch", help="Sync on a fixed interval")
    watch.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between passes (default: LITESCAN_SYNC_INTERVAL)",
    )

    serve = commands.add_parser("serve", help="Serve the HTTP query API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    commands.add_parser("tokens", help="Re-probe known tokens and persist new supplies")
    commands.add_parser("reset", help="Delete the persisted cache")

    q = commands.add_parser("query", help="Print a view as JSON")
    q.add_argument("view", choices=list(VIEWS))
    q.add_argument("--address", help="Target of the address view")
    q.add_argument("--limit", type=int, help="Number of blocks for the blocks view")
    q.add_argument(
        "--no-sync",
        dest="sync",
        action="store_false",
        help="Answer from the stored cache without syncing first",
    )
    return parser


ASYNC_COMMANDS = {
    "sync": cmd_sync,
    "watch": cmd_watch,
    "tokens": cmd_tokens,
    "reset": cmd_reset,
    "query": cmd_query,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and run the selected command."""
    args = build_parser().parse_args(argv)
    try:
        if args.command == "serve":
            return cmd_serve(args)
        return run(ASYNC_COMMANDS[args.command](args))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt, exiting...")
        return 130
    except (LitescanError, ValueError) as e:
        logger.error("%s failed: %s", args.command, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
