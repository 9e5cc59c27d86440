# src/signalflow/core/dag/graph.py
"""StageGraph: the validated, read-only dependency graph of a pipeline.

Construction and validation live in builder.py; this module holds the
query and traversal methods. All traversal is id-based lookup, so the
graph serializes with to_dict() and is safe to share across runs.
"""

from __future__ import annotations

from typing import Any

import networkx as nx

from signalflow.contracts import Stage
from signalflow.core.canonical import stable_hash


class StageGraph:
    """Validated stage graph.

    Wraps a NetworkX DiGraph whose edges run parent -> dependent. Every
    ordered query (roots, sinks, dependents, topological order) follows the
    declared stage order, so results are reproducible run to run.
    """

    def __init__(self, stages: tuple[Stage, ...], graph: nx.DiGraph[str]) -> None:
        # Built by build_stage_graph(); callers never construct this directly
        self._stages = {stage.id: stage for stage in stages}
        self._index = {stage.id: index for index, stage in enumerate(stages)}
        self._graph: nx.DiGraph[str] = nx.freeze(graph)

    def __len__(self) -> int:
        return len(self._stages)

    def __contains__(self, stage_id: object) -> bool:
        return stage_id in self._stages

    @property
    def stages(self) -> tuple[Stage, ...]:
        """Stages in declared order."""
        return tuple(self._stages.values())

    @property
    def stage_ids(self) -> list[str]:
        return list(self._stages)

    def get_stage(self, stage_id: str) -> Stage:
        if stage_id not in self._stages:
            raise KeyError(f"Stage not found: {stage_id}")
        return self._stages[stage_id]

    def get_nx_graph(self) -> nx.DiGraph[str]:
        """Return the frozen underlying NetworkX graph."""
        return self._graph

    def _declared(self, ids: Any) -> list[str]:
        return sorted(ids, key=self._index.__getitem__)

    @property
    def roots(self) -> list[str]:
        """Stages with no dependencies; they receive the initial payload."""
        return [stage_id for stage_id in self._stages if self._graph.in_degree(stage_id) == 0]

    @property
    def sinks(self) -> list[str]:
        """Stages with no dependents; their payloads form the run result."""
        return [stage_id for stage_id in self._stages if self._graph.out_degree(stage_id) == 0]

    def parents(self, stage_id: str) -> list[str]:
        """Direct dependencies, in the order the stage declares them."""
        return list(self.get_stage(stage_id).depends_on)

    def dependents(self, stage_id: str) -> list[str]:
        """Stages that list stage_id as a dependency, in declared order."""
        self.get_stage(stage_id)
        return self._declared(self._graph.successors(stage_id))

    @property
    def adjacency(self) -> dict[str, list[str]]:
        """Parent id -> dependent ids (declared order), for every stage."""
        return {stage_id: self.dependents(stage_id) for stage_id in self._stages}

    @property
    def in_degree(self) -> dict[str, int]:
        return {stage_id: self._graph.in_degree(stage_id) for stage_id in self._stages}

    def topological_order(self) -> list[str]:
        """Kahn order with ties broken by declaration order."""
        return list(nx.lexicographical_topological_sort(self._graph, key=self._index.__getitem__))

    def to_dict(self) -> dict[str, Any]:
        return {
            "stages": [
                {
                    "id": stage.id,
                    "kind": stage.kind.value,
                    "depends_on": list(stage.depends_on),
                    "plugin_path": stage.plugin_path,
                }
                for stage in self._stages.values()
            ],
            "adjacency": self.adjacency,
            "in_degree": self.in_degree,
        }

    def topology_hash(self) -> str:
        """Stable fingerprint of ids, kinds, plugin paths and edges.

        Orchestration hints and labels are excluded: they never change what
        a run computes.
        """
        topology = {
            "stages": sorted(
                (
                    {"id": stage.id, "kind": stage.kind.value, "plugin_path": stage.plugin_path}
                    for stage in self._stages.values()
                ),
                key=lambda s: s["id"],
            ),
            "edges": sorted([u, v] for u, v in self._graph.edges()),
        }
        return stable_hash(topology)
