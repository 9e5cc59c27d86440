"""Shared contracts for cross-boundary data types.

Every dataclass, enum and exception that crosses a subsystem boundary
(dag builder, executor, composition layer, store, replay) lives here.

This package is a LEAF MODULE with no outbound dependencies to core,
engine, state or replay. Settings classes are NOT re-exported here; import
them from signalflow.core.config.
"""

from signalflow.contracts.enums import (
    InputSource,
    NodeOutcome,
    NodeType,
    StageKind,
    StageStatus,
    TraceStatus,
)
from signalflow.contracts.errors import (
    ConfigurationError,
    GraphDefinitionError,
    ProviderUnavailableError,
    ReadOnlyStoreError,
    StageErrorRecord,
    StateSerializationError,
)
from signalflow.contracts.replay import (
    CanonicalNovelty,
    Comparison,
    DecisionRecord,
    ExecutionRecord,
    MarketInfo,
    ReceiptProvenance,
    ReplayMeta,
    ReplayNotFound,
    ReplayOptions,
    ReplayOutcome,
    ReplayResult,
    ScoredView,
    ScoringRecord,
    SnapshotMeta,
    StoredSnapshot,
    StoredView,
    StrategyInfo,
)
from signalflow.contracts.stages import (
    INITIAL_PAYLOAD_KEY,
    PipelineContext,
    PipelineRunResult,
    Stage,
    StageMeta,
)
from signalflow.contracts.state import (
    ExecutionTraceEntry,
    NodeConfig,
    PipelineState,
    StateMetadata,
    utc_now,
)

__all__ = [
    "INITIAL_PAYLOAD_KEY",
    "CanonicalNovelty",
    "Comparison",
    "ConfigurationError",
    "DecisionRecord",
    "ExecutionRecord",
    "ExecutionTraceEntry",
    "GraphDefinitionError",
    "InputSource",
    "MarketInfo",
    "NodeConfig",
    "NodeOutcome",
    "NodeType",
    "PipelineContext",
    "PipelineRunResult",
    "PipelineState",
    "ProviderUnavailableError",
    "ReadOnlyStoreError",
    "ReceiptProvenance",
    "ReplayMeta",
    "ReplayNotFound",
    "ReplayOptions",
    "ReplayOutcome",
    "ReplayResult",
    "ScoredView",
    "ScoringRecord",
    "SnapshotMeta",
    "Stage",
    "StageErrorRecord",
    "StageKind",
    "StageMeta",
    "StageStatus",
    "StateMetadata",
    "StateSerializationError",
    "StoredSnapshot",
    "StoredView",
    "StrategyInfo",
    "TraceStatus",
    "utc_now",
]
