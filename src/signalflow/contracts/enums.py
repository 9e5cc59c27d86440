# src/signalflow/contracts/enums.py
"""All status codes, kinds, and outcome tags used across subsystem boundaries.

Values are the strings written into serialized state, stage metadata and
stored snapshots, so renaming a member is a format change.
"""

from enum import StrEnum


class StageKind(StrEnum):
    """Backend of a DAG stage.

    INTERNAL: in-process handler looked up in the HandlerRegistry by stage id
    PLUGIN: importable module exposing a ``run`` callable
    """

    INTERNAL = "internal"
    PLUGIN = "plugin"


class StageStatus(StrEnum):
    """Outcome of one stage invocation in a DAG run."""

    SUCCESS = "success"
    FAILED = "failed"


class NodeType(StrEnum):
    """Type of node in the per-signal composition layer."""

    REQUIRED = "required"
    ENRICHMENT = "enrichment"
    INGRESS = "ingress"


class TraceStatus(StrEnum):
    """Status of one execution trace entry."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Terminal entries are expected to carry end_time and duration_ms."""
        return self in (TraceStatus.COMPLETED, TraceStatus.FAILED)


class NodeOutcome(StrEnum):
    """Per-node outcome tag.

    Only FAILED aborts a composition run. COMPLETED_UNAVAILABLE is the
    fail-soft result of a provider-backed leaf whose provider could not
    answer; it is recorded as data, not raised.
    """

    COMPLETED_AVAILABLE = "completed-available"
    COMPLETED_UNAVAILABLE = "completed-unavailable"
    FAILED = "failed"

    @property
    def aborts_run(self) -> bool:
        return self == NodeOutcome.FAILED


class InputSource(StrEnum):
    """Where a replay input came from.

    RAW_PAYLOAD is the only faithful path. RECONSTRUCTED inputs are rebuilt
    from structured snapshot fields and are lossy by definition.
    """

    RAW_PAYLOAD = "raw_payload"
    RECONSTRUCTED = "reconstructed"
