# src/signalflow/core/dag/models.py
"""Types and helpers for stage-graph operations.

Leaf module: no intra-package imports beyond contracts (prevents import
cycles between builder.py and graph.py).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from signalflow.contracts import Stage

# Anything the builder accepts as one stage declaration
type StageSpec = Stage | Mapping[str, Any]


def coerce_stage(spec: StageSpec) -> Stage:
    """Return spec as a Stage, parsing declarative mappings."""
    if isinstance(spec, Stage):
        return spec
    return Stage.from_mapping(spec)


def _suggest_similar(name: str, candidates: list[str]) -> list[str]:
    """Suggest similar stage ids for unknown-dependency errors."""
    import difflib

    return difflib.get_close_matches(name, candidates, n=3, cutoff=0.6)
