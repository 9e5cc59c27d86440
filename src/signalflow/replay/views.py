# src/signalflow/replay/views.py
"""Comparable projections of stored and recomputed results.

The recomputed side is parsed from the live-run result shape the pipeline
entrypoint returns::

    {"score": float, "scored_at"?: ..., "decay_params"?: {...},
     "decision": {"decision": str, "confidence": float, "reason_codes"?: [...]},
     "execution": {"status": str, "timestamp": str, "type"?: str},
     "scoring_config_hash"?: str, "logic_version"?: str, "novelty"?: {...}}

A result missing a required part is a pipeline bug and raises.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any

from signalflow.contracts import (
    DecisionRecord,
    ExecutionRecord,
    ScoredView,
    SnapshotMeta,
    StoredSnapshot,
    StoredView,
)
from signalflow.replay.decay import decayed_record_score, decayed_score
from signalflow.replay.novelty import canonical_novelty


class PipelineResultError(ValueError):
    """Raised when the pipeline entrypoint returns an unusable result."""


def _require(result: Mapping[str, Any], key: str, where: str = "result") -> Any:
    if key not in result or result[key] is None:
        raise PipelineResultError(f"Pipeline {where} missing required field: {key}")
    return result[key]


def stored_view(snapshot: StoredSnapshot, now: datetime, *, default_half_life: float | None = None) -> StoredView:
    scoring = snapshot.scoring
    return StoredView(
        score=scoring.score,
        scored_at=scoring.scored_at,
        decay_params=scoring.decay_params,
        decision=snapshot.decision,
        execution=snapshot.execution,
        config_hash=scoring.config_hash,
        logic_version=scoring.logic_version,
        novelty=canonical_novelty(snapshot.novelty),
        decayed_score=decayed_record_score(scoring, now, default_half_life=default_half_life),
        meta=SnapshotMeta(
            symbol=snapshot.market.symbol,
            timeframe=snapshot.market.timeframe,
            strategy=snapshot.strategy.name,
            direction=snapshot.strategy.direction,
            source=snapshot.source,
            created_at=snapshot.created_at,
        ),
        receipt_provenance=snapshot.receipt_provenance,
    )


def recomputed_view(
    result: Mapping[str, Any],
    *,
    scored_at: datetime | None,
    now: datetime,
    default_half_life: float | None = None,
) -> ScoredView:
    """Project a live-run result.

    scored_at is the STORED timestamp; the result's own scored_at is a
    fresh replay-time value and is ignored.
    """
    if not isinstance(result, Mapping):
        raise PipelineResultError(f"Pipeline returned {type(result).__name__}, expected a mapping")
    score = float(_require(result, "score"))
    decision = _require(result, "decision")
    execution = _require(result, "execution")
    decay_params = result.get("decay_params")
    return ScoredView(
        score=score,
        scored_at=scored_at,
        decay_params=decay_params,
        decision=DecisionRecord(
            decision=str(_require(decision, "decision", "decision")),
            confidence=float(_require(decision, "confidence", "decision")),
            reason_codes=tuple(str(code) for code in decision.get("reason_codes") or ()),
        ),
        execution=ExecutionRecord(
            status=str(_require(execution, "status", "execution")),
            timestamp=str(execution.get("timestamp", "")),
            type=execution.get("type"),
        ),
        config_hash=result.get("scoring_config_hash"),
        logic_version=result.get("logic_version"),
        novelty=canonical_novelty(result.get("novelty")),
        decayed_score=decayed_score(score, scored_at, decay_params, now, default_half_life=default_half_life),
    )
