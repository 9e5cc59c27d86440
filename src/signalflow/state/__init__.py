# src/signalflow/state/__init__.py
"""Per-signal composition layer: nodes, providers, composer, validation, persistence of state."""

from signalflow.state.composer import (
    BOOKKEEPING_KEYS,
    ENABLED_NODES_KEY,
    EXECUTION_ORDER_KEY,
    CompositionResult,
    ExecutionMetrics,
    NodeComposer,
    execution_order,
    summarize_trace,
)
from signalflow.state.manager import StateManager
from signalflow.state.nodes import BaseNode, Node, ProviderBackedNode
from signalflow.state.providers import Provider, ProviderRegistry
from signalflow.state.registry import NodeRegistry, hookimpl, hookspec
from signalflow.state.serializer import StateSerializer
from signalflow.state.validator import StateValidator, ValidationResult

__all__ = [
    "BOOKKEEPING_KEYS",
    "ENABLED_NODES_KEY",
    "EXECUTION_ORDER_KEY",
    "BaseNode",
    "CompositionResult",
    "ExecutionMetrics",
    "Node",
    "NodeComposer",
    "NodeRegistry",
    "Provider",
    "ProviderBackedNode",
    "ProviderRegistry",
    "StateManager",
    "StateSerializer",
    "StateValidator",
    "ValidationResult",
    "execution_order",
    "hookimpl",
    "hookspec",
    "summarize_trace",
]
