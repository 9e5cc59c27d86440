# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Strategy Categories:
- JSON-safe values (RFC 8785 compatible)
- Stage declarations forming valid DAGs
- Composition node configs
- Scored views for the replay comparator

Usage:
    from tests.property.conftest import acyclic_stage_lists, json_values

    @given(stages=acyclic_stage_lists())
    def test_graph_builds(stages: list[dict]) -> None:
        ...
"""

# =============================================================================
# Hypothesis Settings
# =============================================================================
#
# For standardized @settings decorators, import from tests.property.settings:
#   from tests.property.settings import STANDARD_SETTINGS, DETERMINISM_SETTINGS
#
# Tiers: DETERMINISM (500), STATE_MACHINE (200), STANDARD (100), SLOW (50), QUICK (20)
# =============================================================================

from __future__ import annotations

from datetime import UTC
from typing import Any

from hypothesis import strategies as st

from signalflow.contracts import (
    CanonicalNovelty,
    DecisionRecord,
    ExecutionRecord,
    ScoredView,
)

# =============================================================================
# RFC 8785 / JSON Canonicalization Scheme Constraints
# =============================================================================

# RFC 8785 (JCS) uses JavaScript-safe integers: -(2^53-1) to (2^53-1)
MAX_SAFE_INT = 2**53 - 1
MIN_SAFE_INT = -(2**53 - 1)


# =============================================================================
# Core JSON Strategies
# =============================================================================

# NaN/Infinity excluded: canonical hashing rejects them
json_primitives = (
    st.none()
    | st.booleans()
    | st.integers(min_value=MIN_SAFE_INT, max_value=MAX_SAFE_INT)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=100)
)

json_values = st.recursive(
    json_primitives,
    lambda children: (st.lists(children, max_size=10) | st.dictionaries(st.text(max_size=20), children, max_size=10)),
    max_leaves=50,
)

json_objects = st.dictionaries(st.text(max_size=20), json_values, max_size=10)

utc_datetimes = st.datetimes(timezones=st.just(UTC))


# =============================================================================
# Stage DAG Strategies
# =============================================================================


@st.composite
def acyclic_stage_lists(draw: st.DrawFn, min_stages: int = 1, max_stages: int = 8) -> list[dict[str, Any]]:
    """Stage mappings whose dependencies always form a DAG.

    Dependencies only point at stages earlier in a hidden rank order; the
    declared order is then shuffled so dependencies may point forward.
    """
    count = draw(st.integers(min_value=min_stages, max_value=max_stages))
    ids = [f"stage_{rank}" for rank in range(count)]
    stages = []
    for rank, stage_id in enumerate(ids):
        deps = draw(st.lists(st.sampled_from(ids[:rank]), unique=True, max_size=3)) if rank else []
        stages.append({"id": stage_id, "dependsOn": deps})
    return draw(st.permutations(stages))


@st.composite
def cyclic_stage_lists(draw: st.DrawFn, min_cycle: int = 1, max_cycle: int = 6) -> list[dict[str, Any]]:
    """A dependency ring of stages, optionally with acyclic stages alongside."""
    size = draw(st.integers(min_value=min_cycle, max_value=max_cycle))
    ring = [f"ring_{i}" for i in range(size)]
    stages = [{"id": stage_id, "dependsOn": [ring[i - 1]]} for i, stage_id in enumerate(ring)]
    extras = draw(acyclic_stage_lists(min_stages=0, max_stages=3))
    return draw(st.permutations(stages + extras))


# =============================================================================
# Composition Node Strategies
# =============================================================================


@st.composite
def acyclic_node_configs(draw: st.DrawFn, max_nodes: int = 8) -> list[dict[str, Any]]:
    """Composition node config mappings with random enabled flags and no cycles."""
    count = draw(st.integers(min_value=0, max_value=max_nodes))
    ids = [f"node-{rank}" for rank in range(count)]
    configs = []
    for rank, node_id in enumerate(ids):
        deps = draw(st.lists(st.sampled_from(ids[:rank]), unique=True, max_size=2)) if rank else []
        configs.append(
            {
                "id": node_id,
                "type": draw(st.sampled_from(["required", "enrichment", "ingress"])),
                "plugin": node_id,
                "enabled": draw(st.booleans()),
                "dependencies": deps,
            }
        )
    return draw(st.permutations(configs))


# =============================================================================
# Replay Strategies
# =============================================================================

reason_codes = st.lists(st.sampled_from(["trend_up", "pullback", "volume_spike", "low_liquidity"]), unique=True, max_size=4)

novelties = st.none() | st.builds(
    CanonicalNovelty,
    novelty_score=st.floats(min_value=0, max_value=1),
    novelty_class=st.sampled_from(["novel", "similar", "duplicate"]),
    cohort_id=st.sampled_from(["BTC/USDT:1h", "ETH/USDT:4h"]),
    baseline_id=st.none() | st.just("baseline-1"),
    reference_signal_ids=st.lists(st.sampled_from(["sig-a", "sig-b", "sig-c"]), unique=True, max_size=3).map(tuple),
)

scored_views = st.builds(
    ScoredView,
    score=st.floats(min_value=0, max_value=1),
    scored_at=st.none() | utc_datetimes,
    decay_params=st.none(),
    decision=st.builds(
        DecisionRecord,
        decision=st.sampled_from(["approve", "reject", "watch"]),
        confidence=st.floats(min_value=0, max_value=1),
        reason_codes=reason_codes.map(tuple),
    ),
    execution=st.just(ExecutionRecord(status="pending", timestamp="2025-01-01T00:00:00+00:00")),
    config_hash=st.none() | st.sampled_from(["a" * 64, "b" * 64]),
    logic_version=st.none() | st.sampled_from(["v1", "v2"]),
    novelty=novelties,
)
