# src/signalflow/contracts/replay.py
"""Stored signal snapshots and replay audit artifacts.

StoredSnapshot is the read model of one persisted, scored signal. A
ReplayResult is an ephemeral audit artifact: it is built fresh per replay,
returned to the caller, and never written back by the comparator.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from signalflow.contracts.enums import InputSource


@dataclass(frozen=True, slots=True)
class MarketInfo:
    symbol: str
    timeframe: str
    market: str | None = None


@dataclass(frozen=True, slots=True)
class StrategyInfo:
    name: str
    direction: str


@dataclass(frozen=True, slots=True)
class ScoringRecord:
    """Primary score plus the identity of the math that produced it.

    config_hash is the canonical hash of the scoring configuration and
    logic_version the code-level version tag of the scorer. Both are None
    for snapshots written before they were recorded.
    """

    score: float
    scored_at: datetime | None = None
    decay_params: Mapping[str, Any] | None = None
    config_hash: str | None = None
    logic_version: str | None = None


@dataclass(frozen=True, slots=True)
class DecisionRecord:
    decision: str
    confidence: float
    reason_codes: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ExecutionRecord:
    status: str
    timestamp: str
    type: str | None = None


@dataclass(frozen=True, slots=True)
class ReceiptProvenance:
    mint_status: str
    epoch_id: int | None = None
    receipt_id: str | None = None
    mint_tx_hash: str | None = None


@dataclass(frozen=True, slots=True)
class CanonicalNovelty:
    """Replay-stable subset of a novelty/duplicate classification.

    Excludes computed_at and any other wall-clock field: those differ on
    every replay and must never be reported as a change.
    """

    novelty_score: float
    novelty_class: str
    cohort_id: str
    baseline_id: str | None = None
    reference_signal_ids: tuple[str, ...] = ()
    evidence_notes: str | None = None


@dataclass(frozen=True, slots=True)
class StoredSnapshot:
    """One persisted signal as returned by SnapshotStore.find_one()."""

    signal_id: str
    created_at: datetime
    source: str
    market: MarketInfo
    strategy: StrategyInfo
    scoring: ScoringRecord
    decision: DecisionRecord
    execution: ExecutionRecord
    novelty: Mapping[str, Any] | None = None
    raw_payload: Any = None
    receipt_provenance: ReceiptProvenance | None = None


@dataclass(frozen=True, slots=True)
class ReplayOptions:
    """Execution options passed to the pipeline re-entry point on replay.

    scored_at pins time-decay math to the stored scoring timestamp so decay
    deltas reflect logic drift, not elapsed wall-clock time.
    """

    include_stage_summaries: bool = False
    is_demo: bool = False
    scored_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class SnapshotMeta:
    symbol: str
    timeframe: str
    strategy: str
    direction: str
    source: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class ScoredView:
    """Comparable projection of a scored result (stored or recomputed)."""

    score: float
    scored_at: datetime | None
    decay_params: Mapping[str, Any] | None
    decision: DecisionRecord
    execution: ExecutionRecord
    config_hash: str | None
    logic_version: str | None
    novelty: CanonicalNovelty | None
    decayed_score: float | None = None


@dataclass(frozen=True, slots=True)
class StoredView(ScoredView):
    meta: SnapshotMeta | None = None
    receipt_provenance: ReceiptProvenance | None = None


@dataclass(frozen=True, slots=True)
class Comparison:
    score_delta: float
    decision_changed: bool
    changes: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ReplayMeta:
    ran_at: datetime
    pipeline_version: str
    notes: str
    input_source: InputSource


@dataclass(frozen=True, slots=True)
class ReplayResult:
    signal_id: str
    stored: StoredView
    recomputed: ScoredView
    comparison: Comparison
    replay_meta: ReplayMeta
    found: Literal[True] = field(default=True, init=False)


@dataclass(frozen=True, slots=True)
class ReplayNotFound:
    """Explicit "nothing to replay" outcome.

    Distinguishes an absent signal from a replay that broke; the latter
    raises.
    """

    signal_id: str
    found: Literal[False] = field(default=False, init=False)


type ReplayOutcome = ReplayResult | ReplayNotFound
