# src/signalflow/contracts/errors.py
"""Exception types and structured error payloads.

Graph and configuration errors are raised before any work starts. Stage
errors abort only the in-flight run. Provider errors are caught at the
fail-soft node boundary and recorded as data. A missing replay target is
not an exception at all (see ``ReplayNotFound`` in contracts.replay).
"""

from typing import NotRequired, TypedDict


class StageErrorRecord(TypedDict):
    """Schema for a failed stage or node in metadata and trace payloads."""

    exception: str  # str(exc)
    type: str  # Exception class name (e.g., "ValueError")
    traceback: NotRequired[str]


class GraphDefinitionError(ValueError):
    """Raised when a stage list cannot form a valid DAG.

    Covers duplicate stage ids, dependencies on undeclared stages, and
    cycles. Never reaches execution: the builder runs to completion first.

    Attributes:
        errors: Every problem found in the failing validation category.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ConfigurationError(Exception):
    """Raised for malformed node/stage configuration or a missing collaborator.

    The message always names the offending node, stage, or setting.
    """


class ProviderUnavailableError(Exception):
    """Raised by an external provider that cannot answer right now.

    Provider-backed leaf nodes catch this and record a
    ``service_available: False`` result instead of failing the run.
    """

    def __init__(self, provider_id: str, reason: str) -> None:
        self.provider_id = provider_id
        self.reason = reason
        super().__init__(f"Provider '{provider_id}' unavailable: {reason}")


class StateSerializationError(ValueError):
    """Raised when pipeline state cannot be serialized or restored."""


class ReadOnlyStoreError(RuntimeError):
    """Raised when a write statement reaches a store opened read-only."""
