# src/signalflow/state/nodes.py
"""Composition nodes: the per-signal units that read and write PipelineState.

Two failure policies, chosen per node class and never mixed:

- BaseNode (default) is fail-hard: an exception appends a ``failed`` trace
  entry and is re-raised, aborting the composition run.
- ProviderBackedNode is fail-soft: when its external provider is missing,
  unavailable, or errors, it records ``service_available: False`` as data
  and appends a ``completed`` entry tagged ``completed-unavailable``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Protocol

import structlog

from signalflow.contracts import (
    ExecutionTraceEntry,
    NodeOutcome,
    NodeType,
    PipelineState,
    ProviderUnavailableError,
    TraceStatus,
)
from signalflow.engine.clock import DEFAULT_CLOCK, Clock
from signalflow.state.providers import ProviderRegistry

slog = structlog.get_logger(__name__)


class Node(Protocol):
    """What the composer needs from a node."""

    id: str
    type: NodeType
    plugin: str
    parallel: bool
    dependencies: tuple[str, ...]

    def execute(self, state: PipelineState) -> PipelineState: ...


class BaseNode(ABC):
    """Base class for composition nodes with trace bookkeeping.

    Subclasses set the ``plugin`` class attribute (the registry key) and
    implement execute_internal(). They may mutate the state in place and
    return None, or return a state object.
    """

    plugin: ClassVar[str]
    node_type: ClassVar[NodeType] = NodeType.ENRICHMENT

    def __init__(
        self,
        node_id: str | None = None,
        *,
        dependencies: tuple[str, ...] | list[str] = (),
        parallel: bool = False,
        clock: Clock | None = None,
    ) -> None:
        self.id = node_id or self.plugin
        self.type = self.node_type
        self.dependencies = tuple(dependencies)
        self.parallel = parallel
        self._clock = clock or DEFAULT_CLOCK

    @abstractmethod
    def execute_internal(self, state: PipelineState) -> PipelineState | None:
        """Node-specific work."""

    def outcome_for(self, state: PipelineState) -> NodeOutcome:
        """Outcome tag for a run that did not raise."""
        return NodeOutcome.COMPLETED_AVAILABLE

    def execute(self, state: PipelineState) -> PipelineState:
        start_time = self._clock.now()
        start = self._clock.monotonic()
        try:
            result = self.execute_internal(state)
        except Exception as exc:
            state.metadata.trace.append(
                ExecutionTraceEntry(
                    node_id=self.id,
                    node_type=self.type,
                    start_time=start_time,
                    status=TraceStatus.FAILED,
                    end_time=self._clock.now(),
                    duration_ms=(self._clock.monotonic() - start) * 1000,
                    error=str(exc),
                    outcome=NodeOutcome.FAILED,
                )
            )
            raise

        state = result if result is not None else state
        state.metadata.trace.append(
            ExecutionTraceEntry(
                node_id=self.id,
                node_type=self.type,
                start_time=start_time,
                status=TraceStatus.COMPLETED,
                end_time=self._clock.now(),
                duration_ms=(self._clock.monotonic() - start) * 1000,
                outcome=self.outcome_for(state),
            )
        )
        return state

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, plugin={self.plugin!r})"


class ProviderBackedNode(BaseNode):
    """Fail-soft leaf node backed by an external prediction provider.

    Stores under its own id:
        {"prediction": mapping | None, "service_available": bool,
         "timestamp": iso str, "provider_id"?: str, "error"?: str}
    """

    def __init__(
        self,
        providers: ProviderRegistry,
        node_id: str | None = None,
        *,
        dependencies: tuple[str, ...] | list[str] = (),
        parallel: bool = False,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(node_id, dependencies=dependencies, parallel=parallel, clock=clock)
        self.providers = providers

    def build_provider_input(self, state: PipelineState) -> dict[str, Any]:
        """Provider input: the signal plus results of declared dependencies."""
        return {
            "signal_id": state.signal_id,
            "raw_signal": state.raw_signal,
            "enrichment": {dep: state.enrichment_results[dep] for dep in self.dependencies if dep in state.enrichment_results},
        }

    def to_prediction(self, output: Mapping[str, Any]) -> dict[str, Any]:
        """Map provider output to the stored prediction shape."""
        return dict(output)

    def execute_internal(self, state: PipelineState) -> PipelineState:
        provider_id: str | None = None
        prediction: dict[str, Any] | None = None
        error: str | None = None

        # Fail-soft boundary: nothing raised in here aborts the run
        try:
            provider = self.providers.best_provider()
            if provider is None:
                slog.warning("no_provider_available", node_id=self.id, signal_id=state.signal_id)
            else:
                provider_id = provider.provider_id
                output = provider.predict(self.build_provider_input(state))
                prediction = self.to_prediction(output) if output else None
        except ProviderUnavailableError as exc:
            error = str(exc)
            slog.warning("provider_unavailable", node_id=self.id, provider_id=exc.provider_id, reason=exc.reason)
        except Exception as exc:
            error = f"{type(exc).__name__}: {exc}"
            slog.warning("provider_failed", node_id=self.id, provider_id=provider_id, error=error)

        result: dict[str, Any] = {
            "prediction": prediction,
            "service_available": prediction is not None,
            "timestamp": self._clock.now().isoformat(),
        }
        if provider_id is not None:
            result["provider_id"] = provider_id
        if error is not None:
            result["error"] = error
        state.enrichment_results[self.id] = result
        return state

    def outcome_for(self, state: PipelineState) -> NodeOutcome:
        if state.enrichment_results[self.id]["service_available"]:
            return NodeOutcome.COMPLETED_AVAILABLE
        return NodeOutcome.COMPLETED_UNAVAILABLE
