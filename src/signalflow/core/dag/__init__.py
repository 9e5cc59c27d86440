# src/signalflow/core/dag/__init__.py
"""Stage dependency graph: validation, construction and queries."""

from signalflow.core.dag.builder import build_stage_graph
from signalflow.core.dag.graph import StageGraph
from signalflow.core.dag.models import StageSpec, coerce_stage

__all__ = [
    "StageGraph",
    "StageSpec",
    "build_stage_graph",
    "coerce_stage",
]
