"""HTTP query surface.

``GET /api/cache?type=<view>`` syncs the cache then answers the view. Pass
``sync=false`` to read the last committed snapshot without touching the
node's head. When the sync fails the last snapshot is served with
``"stale": true`` and the failure under ``"error"``. Other errors are
returned as ``{"error": message}`` with a non-2xx status.

Usage:
    litescan serve --port 8000
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from typing import TYPE_CHECKING, Any

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from litescan.cache.store import create_store
from litescan.chain.reader import ChainReader
from litescan.helpers.errors import (
    InvalidQueryParameter,
    LitescanError,
    NodeUnreachable,
    NotFound,
)
from litescan.helpers.logging import get_logger
from litescan.indexer.sync import SyncOrchestrator
from litescan.views.queries import metadata, query


if TYPE_CHECKING:
    from collections.abc import AsyncIterator


logger = get_logger(__name__)


def _error(status: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": message})


def create_app(
    orchestrator: SyncOrchestrator | None = None,
    reader: ChainReader | None = None,
) -> FastAPI:
    """Build the app; without arguments the reader and store come from env."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if orchestrator is not None and reader is not None:
            app.state.reader = reader
            app.state.orchestrator = orchestrator
            yield
            return

        owned_reader = ChainReader()
        store = create_store()
        app.state.reader = owned_reader
        app.state.orchestrator = SyncOrchestrator(owned_reader, store)
        try:
            yield
        finally:
            await store.aclose()
            await owned_reader.aclose()

    app = FastAPI(title="litescan", lifespan=lifespan)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return _error(400, details)

    @app.exception_handler(InvalidQueryParameter)
    async def invalid_parameter(request: Request, exc: InvalidQueryParameter) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(NodeUnreachable)
    async def node_unreachable(request: Request, exc: NodeUnreachable) -> JSONResponse:
        return _error(503, str(exc))

    @app.exception_handler(LitescanError)
    async def litescan_error(request: Request, exc: LitescanError) -> JSONResponse:
        logger.error("Request %s failed: %s", request.url.path, exc)
        return _error(500, str(exc))

    @app.get("/api/cache")
    async def cache_view(
        request: Request,
        view: str = Query("all", alias="type"),
        address: str | None = None,
        limit: int | None = None,
        sync: bool = True,
    ) -> dict[str, Any]:
        orch: SyncOrchestrator = request.app.state.orchestrator
        sync_error: LitescanError | None = None
        if sync:
            try:
                cache = (await orch.sync()).cache
            except LitescanError as e:
                logger.warning("Sync failed, serving last snapshot: %s", e)
                sync_error = e
                cache = await orch.snapshot()
        else:
            cache = await orch.snapshot()
        body = await query(view, cache, request.app.state.reader, address=address, limit=limit)
        if sync_error is not None:
            body = {**body, "stale": True, "error": str(sync_error)}
        return body

    @app.get("/api/status")
    async def status(request: Request) -> dict[str, Any]:
        orch: SyncOrchestrator = request.app.state.orchestrator
        cache = await orch.snapshot()
        return {"state": str(orch.state), **cache.counts(), **metadata(cache)}

    @app.get("/api/block/{block_id}")
    async def block(request: Request, block_id: str) -> dict[str, Any]:
        try:
            result = await request.app.state.reader.get_block(block_id, include_txs=True)
        except ValueError as e:
            raise InvalidQueryParameter(str(e)) from e
        if result is None:
            msg = f"Block {block_id} not found"
            raise NotFound(msg)
        return result.model_dump(mode="json", by_alias=True)

    @app.get("/api/tx/{tx_hash}")
    async def transaction(request: Request, tx_hash: str) -> dict[str, Any]:
        result = await request.app.state.reader.get_transaction(tx_hash)
        if result is None:
            msg = f"Transaction {tx_hash} not found"
            raise NotFound(msg)
        tx, receipt = result
        return {
            "transaction": tx.model_dump(mode="json", by_alias=True),
            "receipt": receipt.model_dump(mode="json", by_alias=True) if receipt else None,
        }

    return app


__all__ = ["create_app"]
