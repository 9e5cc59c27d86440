# src/signalflow/state/validator.py
"""Structural and invariant checks for PipelineState.

Used by tooling and tests, not on the hot path. Hard violations are
errors; soft ones are warnings. Trace chronology is an error while an
enrichment key without a matching trace entry is only a warning: the
composer's bookkeeping keys never have trace entries.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from signalflow.contracts import (
    ExecutionTraceEntry,
    NodeConfig,
    NodeOutcome,
    NodeType,
    PipelineState,
    TraceStatus,
)

MAX_SIGNAL_ID_LENGTH = 255
MAX_ENRICHMENT_ENTRIES = 1000
MAX_TRACE_ENTRIES = 10000


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _parse_timestamp(value: Any) -> datetime | None:
    """datetime or ISO 8601 string -> aware datetime; anything else -> None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


class StateValidator:
    """Validates a PipelineState and reports errors and warnings."""

    def validate(self, state: PipelineState) -> ValidationResult:
        errors: list[str] = []
        warnings: list[str] = []

        if not self._validate_required_fields(state, errors):
            return ValidationResult(valid=False, errors=errors, warnings=warnings)
        self._validate_signal_id(state, errors, warnings)
        self._validate_raw_signal(state, warnings)
        self._validate_enrichment_results(state, errors, warnings)
        self._validate_node_configs(state, errors)
        self._validate_metadata(state, errors)
        self._validate_trace_entries(state, errors, warnings)
        self._validate_invariants(state, errors, warnings)

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    def check_invariants(self, state: PipelineState) -> bool:
        """True when the state is valid and produced no warnings."""
        result = self.validate(state)
        return result.valid and not result.warnings

    def _validate_required_fields(self, state: Any, errors: list[str]) -> bool:
        if state is None:
            errors.append("State is None")
            return False
        for name in ("signal_id", "raw_signal", "enrichment_results", "node_configs", "metadata"):
            if not hasattr(state, name):
                errors.append(f"Missing required field: {name}")
        if errors:
            return False
        if not state.signal_id:
            errors.append("Missing required field: signal_id")
        if state.enrichment_results is None:
            errors.append("Missing required field: enrichment_results")
        if state.node_configs is None:
            errors.append("Missing required field: node_configs")
        if state.metadata is None:
            errors.append("Missing required field: metadata")
        return state.metadata is not None and state.enrichment_results is not None

    def _validate_signal_id(self, state: PipelineState, errors: list[str], warnings: list[str]) -> None:
        signal_id: Any = state.signal_id
        if not signal_id:
            return
        if not isinstance(signal_id, str):
            errors.append("signal_id must be a string")
            return
        if not signal_id.strip():
            errors.append("signal_id cannot be empty")
        if len(signal_id) > MAX_SIGNAL_ID_LENGTH:
            warnings.append(f"signal_id exceeds recommended length of {MAX_SIGNAL_ID_LENGTH} characters")

    def _validate_raw_signal(self, state: PipelineState, warnings: list[str]) -> None:
        if state.raw_signal is None:
            warnings.append("raw_signal is None, expected a value")

    def _validate_enrichment_results(self, state: PipelineState, errors: list[str], warnings: list[str]) -> None:
        results: Any = state.enrichment_results
        if not isinstance(results, Mapping):
            errors.append("enrichment_results must be a mapping")
            return
        for key in results:
            if not isinstance(key, str):
                errors.append(f"enrichment_results key must be a string, got {type(key).__name__}")
            elif not key.strip():
                errors.append("enrichment_results contains empty key")
        if len(results) > MAX_ENRICHMENT_ENTRIES:
            warnings.append(f"enrichment_results contains more than {MAX_ENRICHMENT_ENTRIES} entries, consider pagination")

    def _validate_node_configs(self, state: PipelineState, errors: list[str]) -> None:
        configs: Any = state.node_configs
        if not isinstance(configs, list | tuple):
            errors.append("node_configs must be a list")
            return
        for index, config in enumerate(configs):
            if isinstance(config, NodeConfig):
                continue
            if not isinstance(config, Mapping):
                errors.append(f"node_configs[{index}] must be a NodeConfig or mapping")
                continue
            if not config.get("id"):
                errors.append(f"node_configs[{index}] missing required field: id")
            node_type = config.get("type")
            if not node_type:
                errors.append(f"node_configs[{index}] missing required field: type")
            elif node_type not in NodeType._value2member_map_:
                errors.append(f"node_configs[{index}].type must be one of {', '.join(t.value for t in NodeType)}, got '{node_type}'")
            if not config.get("plugin"):
                errors.append(f"node_configs[{index}] missing required field: plugin")
            if not isinstance(config.get("enabled"), bool):
                errors.append(f"node_configs[{index}] missing or invalid field: enabled")

    def _validate_metadata(self, state: PipelineState, errors: list[str]) -> None:
        metadata = state.metadata
        start_time: Any = getattr(metadata, "start_time", None)
        if start_time is None:
            errors.append("metadata missing required field: start_time")
        elif _parse_timestamp(start_time) is None:
            errors.append("metadata.start_time must be a valid ISO 8601 timestamp")

        node_start: Any = getattr(metadata, "current_node_start_time", None)
        if node_start is not None and _parse_timestamp(node_start) is None:
            errors.append("metadata.current_node_start_time must be a valid ISO 8601 timestamp")

        if not isinstance(getattr(metadata, "trace", None), list):
            errors.append("metadata.trace must be a list")

    def _validate_trace_entries(self, state: PipelineState, errors: list[str], warnings: list[str]) -> None:
        trace: Any = getattr(state.metadata, "trace", None)
        if not isinstance(trace, list):
            return

        statuses = ", ".join(f"'{s.value}'" for s in TraceStatus)
        for i, entry in enumerate(trace):
            prefix = f"metadata.trace[{i}]"
            if not isinstance(entry, ExecutionTraceEntry):
                errors.append(f"{prefix} must be an ExecutionTraceEntry")
                continue

            node_id: Any = entry.node_id
            if not node_id:
                errors.append(f"{prefix} missing required field: node_id")
            elif not isinstance(node_id, str):
                errors.append(f"{prefix}.node_id must be a string")

            if _enum_value(entry.node_type) not in NodeType._value2member_map_:
                errors.append(f"{prefix}.node_type must be one of {', '.join(t.value for t in NodeType)}, got '{entry.node_type}'")

            if entry.start_time is None:
                errors.append(f"{prefix} missing required field: start_time")
            elif _parse_timestamp(entry.start_time) is None:
                errors.append(f"{prefix}.start_time must be a valid ISO 8601 timestamp")

            if entry.end_time is not None and _parse_timestamp(entry.end_time) is None:
                errors.append(f"{prefix}.end_time must be a valid ISO 8601 timestamp")

            duration: Any = entry.duration_ms
            if duration is not None:
                if isinstance(duration, bool) or not isinstance(duration, int | float):
                    errors.append(f"{prefix}.duration_ms must be a number")
                elif duration < 0:
                    errors.append(f"{prefix}.duration_ms cannot be negative")

            status = _enum_value(entry.status)
            if status not in TraceStatus._value2member_map_:
                errors.append(f"{prefix}.status must be one of {statuses}, got '{entry.status}'")
                continue
            terminal = TraceStatus(status).is_terminal

            has_end = entry.end_time is not None
            has_duration = entry.duration_ms is not None
            if terminal:
                if not has_end:
                    warnings.append(f"{prefix} has status '{status}' but missing end_time")
                if not has_duration:
                    warnings.append(f"{prefix} has status '{status}' but missing duration_ms")
            elif status == TraceStatus.RUNNING and (has_end or has_duration):
                errors.append(f"{prefix} has status 'running' but has end_time or duration_ms")
            elif status == TraceStatus.PENDING and (has_end or has_duration):
                errors.append(f"{prefix} has status 'pending' but has end_time or duration_ms")

            outcome = _enum_value(entry.outcome)
            if outcome is not None:
                if outcome not in NodeOutcome._value2member_map_:
                    errors.append(f"{prefix}.outcome is not a known outcome: '{outcome}'")
                elif not terminal or NodeOutcome(outcome).aborts_run != (status == TraceStatus.FAILED):
                    errors.append(f"{prefix} has outcome '{outcome}' inconsistent with status '{status}'")

        if len(trace) > MAX_TRACE_ENTRIES:
            warnings.append(f"metadata.trace contains more than {MAX_TRACE_ENTRIES} entries, consider archiving")

    def _validate_invariants(self, state: PipelineState, errors: list[str], warnings: list[str]) -> None:
        trace: Any = getattr(state.metadata, "trace", None)
        if not isinstance(trace, list):
            return
        previous: datetime | None = None
        for i, entry in enumerate(trace):
            if not isinstance(entry, ExecutionTraceEntry):
                continue
            current = _parse_timestamp(entry.start_time)
            if current is None:
                continue
            if previous is not None and current < previous:
                errors.append(
                    f"metadata.trace[{i}] start_time is before previous entry start_time, "
                    "trace entries must be in chronological order"
                )
            previous = current

        trace_ids = {entry.node_id for entry in trace if isinstance(entry, ExecutionTraceEntry)}
        if state.current_node and state.current_node not in trace_ids:
            warnings.append(f"current_node '{state.current_node}' is not found in metadata.trace")

        if isinstance(state.enrichment_results, Mapping):
            for node_id in state.enrichment_results:
                if node_id not in trace_ids:
                    warnings.append(f"enrichment_results contains entry for node '{node_id}' which is not in metadata.trace")
