# src/signalflow/engine/executor.py
"""DAG executor: runs a validated stage graph for one payload.

Scheduling:
- Roots receive the initial payload.
- A single-parent stage receives its parent's output directly.
- A join stage receives {"parents": [...], "inputs": {parent_id: payload}}
  with parents in the order the stage declares them.
- A stage is submitted to the worker pool as soon as its last dependency
  completes. Concurrently-ready stages have no ordering guarantee.

Failure is fail-fast: the first handler exception stops scheduling,
cancels queued stages and re-raises the original exception object at
once. Stages already in flight are left to finish on their worker
threads; their results are discarded. There is no partial result.

The executor is synchronous from the caller's point of view.
"""

from __future__ import annotations

import traceback
from collections.abc import Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any

import structlog

from signalflow.contracts import (
    INITIAL_PAYLOAD_KEY,
    PipelineContext,
    PipelineRunResult,
    Stage,
    StageErrorRecord,
    StageMeta,
    StageStatus,
)
from signalflow.core.dag import StageGraph, StageSpec, build_stage_graph
from signalflow.engine.clock import DEFAULT_CLOCK, Clock
from signalflow.engine.handlers import HandlerRegistry, StageHandler

slog = structlog.get_logger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True, slots=True)
class _StageOutcome:
    meta: StageMeta
    payload: Any = None
    error: BaseException | None = None


def _error_record(exc: BaseException) -> StageErrorRecord:
    return {
        "exception": str(exc),
        "type": type(exc).__name__,
        "traceback": "".join(traceback.format_exception(exc)),
    }


def join_input(parents: list[str], outputs: dict[str, Any]) -> dict[str, Any]:
    """Input for a stage with several parents: named access, never positional."""
    return {"parents": list(parents), "inputs": {parent: outputs[parent] for parent in parents}}


def final_payload(sinks: list[str], outputs: dict[str, Any]) -> Any:
    """One sink -> its payload; several -> {sink_id: payload}; none -> None."""
    if len(sinks) == 1:
        return outputs[sinks[0]]
    if not sinks:
        return None
    return {sink: outputs[sink] for sink in sinks}


def _as_graph(stages: StageGraph | Iterable[StageSpec]) -> StageGraph:
    return stages if isinstance(stages, StageGraph) else build_stage_graph(stages)


class DAGExecutor:
    """Executes stage graphs on a bounded thread pool.

    One executor can run many graphs; each run() call gets its own pool,
    so runs never share in-flight state.
    """

    def __init__(
        self,
        handlers: HandlerRegistry,
        *,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Clock | None = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self._handlers = handlers
        self._max_workers = max_workers
        self._clock = clock or DEFAULT_CLOCK

    def _invoke(self, stage: Stage, handler: StageHandler, payload: Any, context: PipelineContext) -> _StageOutcome:
        """Run one stage and snapshot its metadata.

        Exceptions are captured, not raised: the scheduling thread decides
        what to do with them.
        """
        started_at = self._clock.now()
        start = self._clock.monotonic()
        error: BaseException | None = None
        output: Any = None
        try:
            output = handler.invoke(payload, context)
        except Exception as exc:
            error = exc
        duration_ms = (self._clock.monotonic() - start) * 1000
        meta = StageMeta(
            stage_id=stage.id,
            kind=stage.kind,
            status=StageStatus.FAILED if error is not None else StageStatus.SUCCESS,
            depends_on=stage.depends_on,
            duration_ms=duration_ms,
            started_at=started_at,
            ended_at=self._clock.now(),
            label=stage.label,
            category=stage.category,
            group=stage.group,
            tags=stage.tags,
            timeout_ms=stage.timeout_ms,
            max_retries=stage.max_retries,
            critical=stage.critical,
            error=_error_record(error) if error is not None else None,
        )
        return _StageOutcome(meta=meta, payload=output, error=error)

    def run(
        self,
        stages: StageGraph | Iterable[StageSpec],
        initial_payload: Any,
        context: PipelineContext | None = None,
    ) -> PipelineRunResult:
        """Run every stage once and return the sink payload(s).

        Raises:
            GraphDefinitionError: stages do not form a valid DAG
            ConfigurationError: a stage has no resolvable handler
            Exception: whatever the first failing handler raised
        """
        graph = _as_graph(stages)
        resolved = self._handlers.resolve(graph)
        context = context or PipelineContext()

        order = {stage_id: index for index, stage_id in enumerate(graph.stage_ids)}
        remaining = graph.in_degree
        outputs: dict[str, Any] = {}
        intermediate: dict[str, Any] = {INITIAL_PAYLOAD_KEY: initial_payload}
        stage_meta: list[StageMeta] = []

        slog.debug("dag_run_started", stages=len(graph), roots=graph.roots, max_workers=self._max_workers)

        pool = ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="signalflow-stage")
        try:
            running: dict[Future[_StageOutcome], str] = {}

            def submit(stage_id: str) -> None:
                parents = graph.parents(stage_id)
                if not parents:
                    payload = initial_payload
                elif len(parents) == 1:
                    payload = outputs[parents[0]]
                else:
                    payload = join_input(parents, outputs)
                future = pool.submit(self._invoke, graph.get_stage(stage_id), resolved[stage_id], payload, context)
                running[future] = stage_id

            for root in graph.roots:
                submit(root)

            while running:
                done, _ = wait(running, return_when=FIRST_COMPLETED)
                # Same-batch completions are recorded in declared order
                for future in sorted(done, key=lambda f: order[running[f]]):
                    stage_id = running.pop(future)
                    outcome = future.result()
                    stage_meta.append(outcome.meta)

                    if outcome.error is not None:
                        slog.error(
                            "stage_failed",
                            stage_id=stage_id,
                            error_type=type(outcome.error).__name__,
                            error=str(outcome.error),
                            duration_ms=outcome.meta.duration_ms,
                        )
                        raise outcome.error

                    outputs[stage_id] = outcome.payload
                    intermediate[stage_id] = outcome.payload
                    slog.debug("stage_completed", stage_id=stage_id, duration_ms=outcome.meta.duration_ms)

                    for dependent in graph.dependents(stage_id):
                        remaining[dependent] -= 1
                        if remaining[dependent] == 0:
                            submit(dependent)
        except BaseException:
            # Do not join in-flight siblings; the caller gets the error now
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)

        slog.info("dag_run_completed", stages=len(stage_meta), sinks=graph.sinks)
        return PipelineRunResult(
            payload=final_payload(graph.sinks, outputs),
            stage_meta=stage_meta,
            intermediate_payloads=intermediate,
        )


def run_pipeline_dag(
    stages: StageGraph | Iterable[StageSpec],
    initial_payload: Any,
    context: PipelineContext | None = None,
    handlers: HandlerRegistry | None = None,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    clock: Clock | None = None,
) -> PipelineRunResult:
    """Validate, resolve and run a stage graph in one call."""
    executor = DAGExecutor(handlers or HandlerRegistry(), max_workers=max_workers, clock=clock)
    return executor.run(stages, initial_payload, context)


def run_pipeline_linear(
    stages: Iterable[StageSpec],
    initial_payload: Any,
    context: PipelineContext | None = None,
    handlers: HandlerRegistry | None = None,
    *,
    clock: Clock | None = None,
) -> PipelineRunResult:
    """Run stages one after another in declared order, threading the payload.

    Dependencies are ignored for scheduling; they are only checked for
    validity and copied into stage metadata. The final payload is the last
    stage's output.
    """
    graph = build_stage_graph(stages)
    registry = handlers or HandlerRegistry()
    executor = DAGExecutor(registry, max_workers=1, clock=clock)
    resolved = registry.resolve(graph)
    context = context or PipelineContext()

    payload = initial_payload
    intermediate: dict[str, Any] = {INITIAL_PAYLOAD_KEY: initial_payload}
    stage_meta: list[StageMeta] = []
    for stage in graph.stages:
        outcome = executor._invoke(stage, resolved[stage.id], payload, context)
        stage_meta.append(outcome.meta)
        if outcome.error is not None:
            slog.error("stage_failed", stage_id=stage.id, error_type=type(outcome.error).__name__, error=str(outcome.error))
            raise outcome.error
        payload = outcome.payload
        intermediate[stage.id] = payload

    return PipelineRunResult(payload=payload, stage_meta=stage_meta, intermediate_payloads=intermediate)
