# src/signalflow/replay/decay.py
"""Exponential time decay of stored scores.

Replay always decays from the STORED scored_at. A fresh timestamp would
fold elapsed wall-clock time into the comparison and hide real logic
drift behind it.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from signalflow.contracts import ScoringRecord

# Keys under which decay_params may carry the half-life
_HALF_LIFE_KEYS = ("half_life_minutes", "halfLifeMinutes")


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def apply_time_decay(score: float, scored_at: datetime, now: datetime, half_life_minutes: float) -> float:
    """Halve ``score`` every ``half_life_minutes`` elapsed since ``scored_at``.

    ``now`` earlier than ``scored_at`` counts as no elapsed time.

    Raises:
        ValueError: half_life_minutes is not positive.
    """
    if half_life_minutes <= 0:
        raise ValueError(f"half_life_minutes must be > 0, got {half_life_minutes}")
    elapsed_minutes = max(0.0, (_aware(now) - _aware(scored_at)).total_seconds() / 60)
    return float(score * 0.5 ** (elapsed_minutes / half_life_minutes))


def half_life_from(decay_params: Mapping[str, Any] | None, default: float | None = None) -> float | None:
    if decay_params:
        for key in _HALF_LIFE_KEYS:
            value = decay_params.get(key)
            if isinstance(value, int | float) and not isinstance(value, bool) and value > 0:
                return float(value)
    return default


def decayed_score(
    score: float,
    scored_at: datetime | None,
    decay_params: Mapping[str, Any] | None,
    now: datetime,
    *,
    default_half_life: float | None = None,
) -> float | None:
    """Decayed score, or None when scored_at or a half-life is missing."""
    half_life = half_life_from(decay_params, default_half_life)
    if scored_at is None or half_life is None:
        return None
    return apply_time_decay(score, scored_at, now, half_life)


def decayed_record_score(record: ScoringRecord, now: datetime, *, default_half_life: float | None = None) -> float | None:
    return decayed_score(record.score, record.scored_at, record.decay_params, now, default_half_life=default_half_life)
