# src/signalflow/replay/novelty.py
"""Replay-stable novelty classification and cohort ids.

Only CanonicalNovelty is ever compared on replay. computed_at and any other
wall-clock field is dropped on canonicalization, and reference signals are
reduced to their sorted ids.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from signalflow.contracts import CanonicalNovelty

_MARKET_SEPARATORS = re.compile(r"[/\-_]")


def derive_cohort_id(market: str, timeframe: str, strategy: str) -> str:
    """``MARKET-timeframe-strategy`` with separators stripped from the market.

    >>> derive_cohort_id("btc/usdt", "1H", "Trend_Pullback_v1")
    'BTCUSDT-1h-trend_pullback_v1'
    """
    normalized_market = _MARKET_SEPARATORS.sub("", market.upper())
    return f"{normalized_market}-{timeframe.lower()}-{strategy.lower()}"


def _reference_ids(novelty: Mapping[str, Any]) -> tuple[str, ...]:
    ids = novelty.get("reference_signal_ids")
    if ids is None:
        refs = novelty.get("reference_signals") or []
        ids = [ref["signal_id"] if isinstance(ref, Mapping) else ref for ref in refs]
    return tuple(sorted(str(signal_id) for signal_id in ids))


def canonical_novelty(novelty: Mapping[str, Any] | CanonicalNovelty | None) -> CanonicalNovelty | None:
    """Reduce a full novelty result to its replay-stable subset.

    Raises:
        KeyError: novelty_score, novelty_class or cohort_id is missing.
    """
    if novelty is None or isinstance(novelty, CanonicalNovelty):
        return novelty
    return CanonicalNovelty(
        novelty_score=float(novelty["novelty_score"]),
        novelty_class=str(novelty["novelty_class"]),
        cohort_id=str(novelty["cohort_id"]),
        baseline_id=novelty.get("baseline_id"),
        reference_signal_ids=_reference_ids(novelty),
        evidence_notes=novelty.get("evidence_notes"),
    )


def novelty_changes(stored: CanonicalNovelty, recomputed: CanonicalNovelty, *, epsilon: float) -> list[str]:
    """Per-field differences, in field declaration order."""
    changes: list[str] = []
    if abs(recomputed.novelty_score - stored.novelty_score) > epsilon:
        changes.append(f"novelty_score ({stored.novelty_score:.4f} → {recomputed.novelty_score:.4f})")
    for name in ("novelty_class", "cohort_id", "baseline_id"):
        before, after = getattr(stored, name), getattr(recomputed, name)
        if before != after:
            changes.append(f"{name} ({before} → {after})")
    if stored.reference_signal_ids != recomputed.reference_signal_ids:
        changes.append(
            f"reference_signal_ids ([{', '.join(stored.reference_signal_ids)}] → "
            f"[{', '.join(recomputed.reference_signal_ids)}])"
        )
    if stored.evidence_notes != recomputed.evidence_notes:
        changes.append("evidence_notes")
    return changes
