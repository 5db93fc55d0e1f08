"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from litescan.cache.store import JsonCacheStore
from litescan.indexer.scanner import BatchScanner
from litescan.indexer.sync import SyncOrchestrator
from litescan.indexer.tokens import TokenClassifier
from tests.fake_chain import FakeChainReader


@pytest.fixture
def chain() -> FakeChainReader:
    """Empty in-memory chain."""
    return FakeChainReader()


@pytest.fixture
def json_store(tmp_path: Path) -> JsonCacheStore:
    return JsonCacheStore(tmp_path / "cache.json")


@pytest.fixture
def orchestrator(chain: FakeChainReader, json_store: JsonCacheStore) -> SyncOrchestrator:
    """Orchestrator over the fake chain with fast retries."""
    return SyncOrchestrator(
        chain,  # type: ignore[arg-type]
        json_store,
        scanner=BatchScanner(chain, window_size=20, base_delay=0.0),  # type: ignore[arg-type]
        classifier=TokenClassifier(chain),  # type: ignore[arg-type]
    )
