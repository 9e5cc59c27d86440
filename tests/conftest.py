# tests/conftest.py
"""Shared test fixtures.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/

Store fixtures write through a read-write SignalStoreDB, close it, and hand
tests the file URL, so replay tests can reopen it read-only exactly as the
CLI does.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from hypothesis import Phase, Verbosity, settings

from signalflow.core.store import SignalStoreDB, SnapshotStore, SnapshotWriter
from signalflow.engine.clock import MockClock
from tests.fixtures.factories import make_snapshot

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def mock_clock() -> MockClock:
    return MockClock()


# =============================================================================
# Signal store
# =============================================================================


@pytest.fixture
def store_url(tmp_path: Path) -> str:
    """URL of an empty, initialized SQLite signal store file."""
    url = f"sqlite:///{tmp_path / 'signals.db'}"
    SignalStoreDB(url).close()
    return url


@pytest.fixture
def seeded_store_url(store_url: str) -> str:
    """Store file holding three snapshots: sig-raw, sig-structured, sig-novel."""
    with SignalStoreDB(store_url) as db:
        writer = SnapshotWriter(db)
        writer.insert(make_snapshot("sig-raw"))
        writer.insert(make_snapshot("sig-structured", raw_payload=None))
        writer.insert(
            make_snapshot(
                "sig-novel",
                novelty={
                    "novelty_score": 0.81,
                    "novelty_class": "novel",
                    "cohort_id": "BTCUSDT-1h-trend_pullback_v1",
                    "reference_signal_ids": ["sig-b", "sig-a"],
                    "computed_at": "2025-01-01T00:00:05+00:00",
                },
            )
        )
    return store_url


@pytest.fixture
def read_only_store(seeded_store_url: str) -> Iterator[SnapshotStore]:
    db = SignalStoreDB.from_url(seeded_store_url, read_only=True)
    yield SnapshotStore(db)
    db.close()
