# src/signalflow/state/composer.py
"""Per-signal node composition.

NodeComposer runs the enabled nodes of a PipelineState in a stable
topological order:

1. Every NodeConfig is validated (fatal) and every enabled node is
   instantiated from the NodeRegistry before any node executes.
2. Order follows ``dependencies``; nodes with no mutual dependency keep
   their declaration order.
3. Nodes run one at a time on the caller's thread. ``parallel`` is carried
   as a hint only: the state has a single owner and trace start times must
   stay non-decreasing.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import networkx as nx
import structlog

from signalflow.contracts import (
    ConfigurationError,
    ExecutionTraceEntry,
    NodeConfig,
    NodeOutcome,
    PipelineState,
    TraceStatus,
)
from signalflow.engine.clock import DEFAULT_CLOCK, Clock
from signalflow.state.registry import NodeRegistry

slog = structlog.get_logger(__name__)

# Bookkeeping keys the composer writes into enrichment_results. They have no
# trace entry of their own; the validator reports them as orphan warnings.
ENABLED_NODES_KEY = "enabled-nodes"
EXECUTION_ORDER_KEY = "node-execution-order"
BOOKKEEPING_KEYS = frozenset({ENABLED_NODES_KEY, EXECUTION_ORDER_KEY})


@dataclass(frozen=True, slots=True)
class ExecutionMetrics:
    total_time_ms: float
    nodes_executed: int
    nodes_failed: int
    nodes_unavailable: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_time_ms": self.total_time_ms,
            "nodes_executed": self.nodes_executed,
            "nodes_failed": self.nodes_failed,
            "nodes_unavailable": self.nodes_unavailable,
        }


def summarize_trace(trace: Iterable[ExecutionTraceEntry]) -> ExecutionMetrics:
    """Sum durations and count completed/failed entries."""
    total = 0.0
    executed = failed = unavailable = 0
    for entry in trace:
        if entry.duration_ms is not None:
            total += entry.duration_ms
        if entry.status is TraceStatus.COMPLETED:
            executed += 1
            if entry.outcome is NodeOutcome.COMPLETED_UNAVAILABLE:
                unavailable += 1
        elif entry.status is TraceStatus.FAILED:
            failed += 1
    return ExecutionMetrics(total_time_ms=total, nodes_executed=executed, nodes_failed=failed, nodes_unavailable=unavailable)


@dataclass
class CompositionResult:
    state: PipelineState
    metrics: ExecutionMetrics


def coerce_configs(configs: Iterable[NodeConfig | Mapping[str, Any]]) -> list[NodeConfig]:
    """Validate every config, raising on the first malformed one."""
    parsed = [config if isinstance(config, NodeConfig) else NodeConfig.from_mapping(config) for config in configs]
    seen: set[str] = set()
    for config in parsed:
        if config.id in seen:
            raise ConfigurationError(f"Duplicate enrichment node id '{config.id}'")
        seen.add(config.id)
    return parsed


def execution_order(configs: list[NodeConfig]) -> list[str]:
    """Stable topological order of the enabled nodes.

    Dependencies on declared-but-disabled nodes impose no constraint.
    Dependencies on undeclared nodes are configuration errors.

    Raises:
        ConfigurationError: unknown dependency or dependency cycle.
    """
    declared = {config.id for config in configs}
    enabled = [config for config in configs if config.enabled]
    index = {config.id: position for position, config in enumerate(enabled)}

    graph: nx.DiGraph[str] = nx.DiGraph()
    graph.add_nodes_from(index)
    for config in enabled:
        for dep in config.dependencies:
            if dep not in declared:
                raise ConfigurationError(f"Enrichment node '{config.id}' depends on unknown node '{dep}'")
            if dep in index:
                graph.add_edge(dep, config.id)

    try:
        return list(nx.lexicographical_topological_sort(graph, key=index.__getitem__))
    except nx.NetworkXUnfeasible:
        cycle_nodes = {edge[0] for edge in nx.find_cycle(graph)}
        first = min(cycle_nodes, key=index.__getitem__)
        raise ConfigurationError(f"Circular dependency detected involving node '{first}'") from None


class NodeComposer:
    """Runs the configured nodes of one PipelineState."""

    def __init__(self, registry: NodeRegistry, *, clock: Clock | None = None) -> None:
        self._registry = registry
        self._clock = clock or DEFAULT_CLOCK

    def compose(self, state: PipelineState) -> CompositionResult:
        """Execute every enabled node in order.

        Raises:
            ConfigurationError: malformed config, unknown plugin, unknown
                dependency or cycle; raised before any node runs.
            Exception: whatever a fail-hard node raised.
        """
        configs = coerce_configs(state.node_configs)
        order = execution_order(configs)
        by_id = {config.id: config for config in configs}
        nodes = {node_id: self._registry.create(by_id[node_id]) for node_id in order}

        state.node_configs = configs
        state.enrichment_results[ENABLED_NODES_KEY] = [by_id[node_id].to_dict() for node_id in order]
        state.enrichment_results[EXECUTION_ORDER_KEY] = list(order)

        trace_start = len(state.metadata.trace)
        start = self._clock.monotonic()
        for node_id in order:
            state.current_node = node_id
            state.metadata.current_node_start_time = self._clock.now()
            try:
                state = nodes[node_id].execute(state)
            except Exception:
                slog.error("node_failed", signal_id=state.signal_id, node_id=node_id)
                raise

        node_metrics = summarize_trace(state.metadata.trace[trace_start:])
        metrics = ExecutionMetrics(
            total_time_ms=(self._clock.monotonic() - start) * 1000,
            nodes_executed=node_metrics.nodes_executed,
            nodes_failed=node_metrics.nodes_failed,
            nodes_unavailable=node_metrics.nodes_unavailable,
        )
        slog.info("composition_completed", signal_id=state.signal_id, **metrics.to_dict())
        return CompositionResult(state=state, metrics=metrics)
