# src/signalflow/replay/comparator.py
"""Stored-vs-recomputed diff.

Every axis always yields exactly one line, "changed" or "unchanged", in a
fixed order. Lines are a pure function of the two views and epsilon, so
replaying the same signal twice produces identical text.
"""

from __future__ import annotations

from signalflow.contracts import CanonicalNovelty, Comparison, ScoredView
from signalflow.replay.novelty import novelty_changes

DEFAULT_EPSILON = 1e-4
UNKNOWN = "unknown"


def _numeric_line(label: str, before: float, after: float, epsilon: float) -> str:
    delta = after - before
    if abs(delta) > epsilon:
        return f"{label} changed by {delta:+.4f} ({before:.4f} → {after:.4f})"
    return f"{label} unchanged ({before:.4f})"


def _categorical_line(label: str, before: str | None, after: str | None) -> str:
    before_text = before if before is not None else UNKNOWN
    after_text = after if after is not None else UNKNOWN
    if before_text != after_text:
        return f"{label} changed: {before_text} → {after_text}"
    return f"{label} unchanged: {before_text}"


def _reason_codes_line(before: tuple[str, ...], after: tuple[str, ...]) -> str:
    before_sorted, after_sorted = sorted(before), sorted(after)
    if before_sorted != after_sorted:
        return f"reason codes changed: [{', '.join(before_sorted)}] → [{', '.join(after_sorted)}]"
    return f"reason codes unchanged: [{', '.join(before_sorted)}]"


def _novelty_line(before: CanonicalNovelty | None, after: CanonicalNovelty | None, epsilon: float) -> str:
    if before is None and after is None:
        return "novelty unchanged: unavailable"
    if before is None:
        assert after is not None
        return f"novelty changed: none → {after.novelty_class}"
    if after is None:
        return f"novelty changed: {before.novelty_class} → none"
    changes = novelty_changes(before, after, epsilon=epsilon)
    if changes:
        return f"novelty changed: {', '.join(changes)}"
    return "novelty unchanged"


def compare(stored: ScoredView, recomputed: ScoredView, *, epsilon: float = DEFAULT_EPSILON) -> Comparison:
    """Diff two scored views on all seven axes.

    score_delta is recomputed minus stored, unrounded.
    """
    changes = (
        _numeric_line("score", stored.score, recomputed.score, epsilon),
        _categorical_line("decision", stored.decision.decision, recomputed.decision.decision),
        _numeric_line("confidence", stored.decision.confidence, recomputed.decision.confidence, epsilon),
        _reason_codes_line(stored.decision.reason_codes, recomputed.decision.reason_codes),
        _categorical_line("scoring config hash", stored.config_hash, recomputed.config_hash),
        _categorical_line("logic version", stored.logic_version, recomputed.logic_version),
        _novelty_line(stored.novelty, recomputed.novelty, epsilon),
    )
    return Comparison(
        score_delta=recomputed.score - stored.score,
        decision_changed=stored.decision.decision != recomputed.decision.decision,
        changes=changes,
    )
