# src/signalflow/core/canonical.py
"""Canonical JSON and content hashes.

Values are first reduced to JSON primitives (numpy scalars and arrays,
pandas timestamps and missing markers, datetimes, Decimals, enums,
dataclasses, sets), then serialized per RFC 8785 so that equal content
always yields the same bytes.

Two hashes are built on this: the scoring config hash compared on replay,
and the stage graph topology fingerprint.

NaN and Infinity raise instead of being coerced. A config hash that folded
NaN into null would report "unchanged" for a config whose meaning moved.
"""

from __future__ import annotations

import hashlib
import math
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
import rfc8785

# Recorded next to hashes so a future scheme change is detectable
CANONICAL_VERSION = "sha256-rfc8785-v1"


def _utc_iso(moment: datetime) -> str:
    """ISO 8601 in UTC; naive values are taken to already be UTC."""
    if isinstance(moment, pd.Timestamp):
        stamp = moment.tz_localize("UTC") if moment.tz is None else moment.tz_convert("UTC")
        return stamp.isoformat()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat()


def _finite_float(value: float | np.floating) -> float:
    if math.isnan(value) or math.isinf(value):
        raise ValueError(f"Cannot canonicalize non-finite float: {value}. Use None for missing values, not NaN.")
    return float(value)


def _normalize_value(obj: Any) -> Any:
    """Reduce one scalar to a JSON primitive.

    Raises:
        ValueError: NaN or Infinity, as float, numpy float or Decimal.
    """
    # Before the str/int checks: StrEnum members are str, IntEnum are int
    if isinstance(obj, Enum):
        return _normalize_value(obj.value)
    if isinstance(obj, float | np.floating):
        return _finite_float(obj)
    if obj is None or isinstance(obj, str | int | bool):
        return obj
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.ndarray):
        return [_normalize_for_canonical(item) for item in obj.tolist()]
    if obj is pd.NA or obj is pd.NaT:
        return None
    if isinstance(obj, datetime):
        return _utc_iso(obj)
    if isinstance(obj, Decimal):
        if not obj.is_finite():
            raise ValueError(f"Cannot canonicalize non-finite Decimal: {obj}. Use None for missing values, not NaN/Infinity.")
        return str(obj)
    # Anything else is left for rfc8785 to accept or reject
    return obj


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize containers, then scalars.

    Dataclass instances are expanded with ``asdict`` so frozen contract
    types (e.g. CanonicalNovelty) hash by content.
    """
    if is_dataclass(data) and not isinstance(data, type):
        return _normalize_for_canonical(asdict(data))
    if isinstance(data, Mapping):
        return {str(key): _normalize_for_canonical(value) for key, value in data.items()}
    if isinstance(data, set | frozenset):
        # No inherent order; sort members by their canonical bytes
        return sorted((_normalize_for_canonical(item) for item in data), key=rfc8785.dumps)
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(item) for item in data]
    return _normalize_value(data)


def canonical_json(obj: Any) -> str:
    """RFC 8785 text of obj: sorted keys, no whitespace, shortest numbers.

    Raises:
        ValueError: non-finite numbers anywhere in obj.
        TypeError: a value rfc8785 cannot serialize.
    """
    return rfc8785.dumps(_normalize_for_canonical(obj)).decode("utf-8")


def stable_hash(obj: Any, version: str = CANONICAL_VERSION) -> str:
    """SHA-256 hex digest of ``canonical_json(obj)``."""
    if version != CANONICAL_VERSION:
        raise ValueError(f"Unsupported canonical hash version: {version!r}")
    return hashlib.sha256(canonical_json(obj).encode("utf-8")).hexdigest()


def config_hash(config: Mapping[str, Any]) -> str:
    """Content hash of a scoring configuration.

    Two configs that differ only in key order hash identically; any change
    to a value, including int-vs-float drift such as 1 vs 1.5, changes it.
    """
    return stable_hash(dict(config))
