# src/signalflow/contracts/state.py
"""Per-signal pipeline state and execution trace.

One PipelineState exists per in-flight signal and is owned exclusively by
the run that created it. Nodes mutate it in place and append one trace
entry per execution attempt.

Invariants checked by signalflow.state.validator (not enforced here, so
that restored or hand-built states can be inspected):
- RUNNING entries never carry end_time or duration_ms
- COMPLETED/FAILED entries should carry both
- trace start_time values are non-decreasing
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from signalflow.contracts.enums import NodeOutcome, NodeType, TraceStatus
from signalflow.contracts.errors import ConfigurationError


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class NodeConfig:
    """Declared configuration of one composition node.

    Validation is fatal, not advisory: a malformed config raises
    ConfigurationError at construction, which the composer triggers for
    every node before any node executes.
    """

    id: str
    type: NodeType
    plugin: str
    enabled: bool
    parallel: bool = False
    dependencies: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ConfigurationError("Enrichment node missing id")
        if not isinstance(self.type, NodeType):
            try:
                object.__setattr__(self, "type", NodeType(self.type))
            except ValueError:
                raise ConfigurationError(
                    f"Enrichment node '{self.id}' has invalid type '{self.type}'. "
                    f"Expected one of: {', '.join(t.value for t in NodeType)}"
                ) from None
        if not isinstance(self.plugin, str) or not self.plugin.strip():
            raise ConfigurationError(f"Enrichment node '{self.id}' missing plugin")
        # bool is checked by identity: 0/1 and "true" are config mistakes
        if not isinstance(self.enabled, bool):
            raise ConfigurationError(f"Enrichment node '{self.id}' missing or invalid enabled field")
        if not isinstance(self.parallel, bool):
            raise ConfigurationError(f"Enrichment node '{self.id}' has invalid parallel field")
        object.__setattr__(self, "dependencies", tuple(self.dependencies))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> NodeConfig:
        node_id = data.get("id", "")
        return cls(
            id=node_id,
            type=data.get("type"),  # type: ignore[arg-type]  # coerced and checked in __post_init__
            plugin=data.get("plugin", ""),
            enabled=data.get("enabled"),  # type: ignore[arg-type]  # checked in __post_init__
            parallel=data.get("parallel", False),  # type: ignore[arg-type]  # checked in __post_init__
            dependencies=tuple(data.get("dependencies") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "plugin": self.plugin,
            "enabled": self.enabled,
            "parallel": self.parallel,
            "dependencies": list(self.dependencies),
        }


@dataclass(slots=True)
class ExecutionTraceEntry:
    """One record of a node execution attempt.

    outcome tags terminal entries so fail-soft results (completed but
    provider unavailable) stay distinguishable from real completions.
    """

    node_id: str
    node_type: NodeType
    start_time: datetime
    status: TraceStatus
    end_time: datetime | None = None
    duration_ms: float | None = None
    error: str | None = None
    outcome: NodeOutcome | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "node_id": self.node_id,
            "node_type": self.node_type.value,
            "start_time": self.start_time.isoformat(),
            "status": self.status.value,
        }
        if self.end_time is not None:
            data["end_time"] = self.end_time.isoformat()
        if self.duration_ms is not None:
            data["duration_ms"] = self.duration_ms
        if self.error is not None:
            data["error"] = self.error
        if self.outcome is not None:
            data["outcome"] = self.outcome.value
        return data


@dataclass(slots=True)
class StateMetadata:
    start_time: datetime
    trace: list[ExecutionTraceEntry] = field(default_factory=list)
    current_node_start_time: datetime | None = None


@dataclass
class PipelineState:
    """Mutable per-signal record threaded through composition nodes.

    enrichment_results preserves insertion order; node ids are the usual
    keys, plus a few bookkeeping keys written by the composer itself.
    """

    signal_id: str
    raw_signal: Any
    node_configs: list[NodeConfig]
    metadata: StateMetadata
    enrichment_results: dict[str, Any] = field(default_factory=dict)
    current_node: str | None = None

    @classmethod
    def create(
        cls,
        signal_id: str,
        raw_signal: Any,
        node_configs: list[NodeConfig] | None = None,
        *,
        start_time: datetime | None = None,
    ) -> PipelineState:
        return cls(
            signal_id=signal_id,
            raw_signal=raw_signal,
            node_configs=list(node_configs or []),
            metadata=StateMetadata(start_time=start_time or utc_now()),
        )

    @property
    def trace(self) -> list[ExecutionTraceEntry]:
        return self.metadata.trace
