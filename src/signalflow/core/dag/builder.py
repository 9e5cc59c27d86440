# src/signalflow/core/dag/builder.py
"""Stage graph construction and validation.

build_stage_graph() is pure: it reads the stage list, validates it, and
returns a StageGraph or raises GraphDefinitionError. It always runs to
completion before any stage executes.

Validation categories, in order:
1. duplicate stage ids
2. dependencies on undeclared stages (and repeated dependencies)
3. cycles

Every problem in one category is reported together. A failing category
stops the later ones: unknown references cannot be cycle-checked.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

import networkx as nx

from signalflow.contracts import GraphDefinitionError, Stage
from signalflow.core.dag.graph import StageGraph
from signalflow.core.dag.models import StageSpec, _suggest_similar, coerce_stage


def _check_duplicates(stages: list[Stage]) -> list[str]:
    counts = Counter(stage.id for stage in stages)
    # Report in first-declaration order, once per id
    seen: set[str] = set()
    errors = []
    for stage in stages:
        if counts[stage.id] > 1 and stage.id not in seen:
            seen.add(stage.id)
            errors.append(f"Duplicate stage id: '{stage.id}'")
    return errors


def _check_references(stages: list[Stage]) -> list[str]:
    declared = [stage.id for stage in stages]
    known = set(declared)
    errors = []
    for stage in stages:
        repeated = sorted(dep for dep, n in Counter(stage.depends_on).items() if n > 1)
        for dep in repeated:
            errors.append(f"Stage '{stage.id}' lists dependency '{dep}' more than once")
        for dep in stage.depends_on:
            if dep in known:
                continue
            message = f"Stage '{stage.id}' depends on unknown stage '{dep}'"
            suggestions = _suggest_similar(dep, declared)
            if suggestions:
                message += f" (did you mean: {', '.join(repr(s) for s in suggestions)}?)"
            errors.append(message)
    return errors


def _build_nx_graph(stages: list[Stage]) -> nx.DiGraph[str]:
    """Edges run parent -> dependent, so sinks have out-degree 0."""
    graph: nx.DiGraph[str] = nx.DiGraph()
    for index, stage in enumerate(stages):
        graph.add_node(stage.id, stage=stage, index=index)
    for stage in stages:
        for dep in stage.depends_on:
            graph.add_edge(dep, stage.id)
    return graph


def _check_cycles(graph: nx.DiGraph[str]) -> list[str]:
    if nx.is_directed_acyclic_graph(graph):
        return []
    errors = []
    # One representative cycle per strongly connected component
    for component in nx.strongly_connected_components(graph):
        members = sorted(component, key=lambda n: graph.nodes[n]["index"])
        if len(members) == 1 and not graph.has_edge(members[0], members[0]):
            continue
        cycle = nx.find_cycle(graph.subgraph(members), source=members[0])
        path = [edge[0] for edge in cycle]
        path.append(path[0])
        errors.append(f"Stage graph contains a cycle: {' -> '.join(path)}")
    # SCC iteration order is an implementation detail; sort for stable messages
    return sorted(errors)


def build_stage_graph(stages: Iterable[StageSpec]) -> StageGraph:
    """Validate a stage list and build its StageGraph.

    Args:
        stages: Stage instances or declarative mappings, in declared order.

    Returns:
        Validated StageGraph.

    Raises:
        GraphDefinitionError: duplicate ids, unknown dependencies, or cycles.
        ConfigurationError: a mapping could not be parsed into a Stage.
    """
    parsed = [coerce_stage(spec) for spec in stages]

    errors = _check_duplicates(parsed)
    if errors:
        raise GraphDefinitionError(errors)

    errors = _check_references(parsed)
    if errors:
        raise GraphDefinitionError(errors)

    graph = _build_nx_graph(parsed)
    errors = _check_cycles(graph)
    if errors:
        raise GraphDefinitionError(errors)

    return StageGraph(tuple(parsed), graph)
