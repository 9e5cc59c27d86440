# src/signalflow/state/serializer.py
"""JSON serialization of PipelineState for debugging and checkpoints.

Wire shape::

    {
      "signal_id": "...",
      "raw_signal": ...,
      "enrichment_results": [["node-id", value], ...],
      "node_configs": [{...NodeConfig...}],
      "current_node": "..." | null,
      "metadata": {"start_time": iso, "current_node_start_time": iso | null,
                   "trace": [{...ExecutionTraceEntry...}]}
    }

enrichment_results is a list of pairs so insertion order survives any JSON
consumer. Values (raw signal, enrichment results) must be JSON-native:
dicts with string keys, lists and scalars. Tuples, sets, non-string keys
and other types are a StateSerializationError rather than a lossy coercion.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

from signalflow.contracts import (
    ConfigurationError,
    ExecutionTraceEntry,
    NodeConfig,
    NodeOutcome,
    NodeType,
    PipelineState,
    StateMetadata,
    StateSerializationError,
    TraceStatus,
)

_REQUIRED_FIELDS = ("signal_id", "enrichment_results", "node_configs", "metadata")
_JSON_SCALARS = (str, int, float, bool, type(None))


def _require_json_native(value: Any, where: str) -> None:
    """Reject values json.dumps would coerce (tuples, non-string keys) or refuse."""
    if isinstance(value, _JSON_SCALARS):
        return
    if isinstance(value, list):
        for index, item in enumerate(value):
            _require_json_native(item, f"{where}[{index}]")
        return
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise StateSerializationError(
                    f"Failed to serialize state: {where} has non-string key {key!r} ({type(key).__name__})"
                )
            _require_json_native(item, f"{where}.{key}")
        return
    raise StateSerializationError(
        f"Failed to serialize state: {where} is a {type(value).__name__}, which has no lossless JSON form"
    )


def _to_document(state: PipelineState) -> dict[str, Any]:
    _require_json_native(state.raw_signal, "raw_signal")
    for key, value in state.enrichment_results.items():
        _require_json_native(value, f"enrichment_results.{key}")
    node_start = state.metadata.current_node_start_time
    return {
        "signal_id": state.signal_id,
        "raw_signal": state.raw_signal,
        "enrichment_results": [[key, value] for key, value in state.enrichment_results.items()],
        "node_configs": [config.to_dict() for config in state.node_configs],
        "current_node": state.current_node,
        "metadata": {
            "start_time": state.metadata.start_time.isoformat(),
            "current_node_start_time": node_start.isoformat() if node_start is not None else None,
            "trace": [entry.to_dict() for entry in state.metadata.trace],
        },
    }


def _parse_datetime(value: Any, field_name: str) -> datetime:
    if not isinstance(value, str):
        raise StateSerializationError(f"{field_name} must be an ISO 8601 string, got {type(value).__name__}")
    try:
        return datetime.fromisoformat(value)
    except ValueError as e:
        raise StateSerializationError(f"{field_name} is not a valid ISO 8601 timestamp: {value!r}") from e


def _trace_entry(data: Mapping[str, Any], index: int) -> ExecutionTraceEntry:
    prefix = f"metadata.trace[{index}]"
    for name in ("node_id", "node_type", "start_time", "status"):
        if name not in data:
            raise StateSerializationError(f"Missing required field: {prefix}.{name}")
    try:
        node_type = NodeType(data["node_type"])
        status = TraceStatus(data["status"])
        outcome = NodeOutcome(data["outcome"]) if data.get("outcome") is not None else None
    except ValueError as e:
        raise StateSerializationError(f"{prefix}: {e}") from e
    end_time = data.get("end_time")
    return ExecutionTraceEntry(
        node_id=data["node_id"],
        node_type=node_type,
        start_time=_parse_datetime(data["start_time"], f"{prefix}.start_time"),
        status=status,
        end_time=_parse_datetime(end_time, f"{prefix}.end_time") if end_time is not None else None,
        duration_ms=data.get("duration_ms"),
        error=data.get("error"),
        outcome=outcome,
    )


def _from_document(document: Any) -> PipelineState:
    if not isinstance(document, Mapping):
        raise StateSerializationError(f"Expected JSON object, got {type(document).__name__}")
    for name in _REQUIRED_FIELDS:
        if document.get(name) is None:
            raise StateSerializationError(f"Missing required field: {name}")
    if not document["signal_id"]:
        raise StateSerializationError("Missing required field: signal_id")

    metadata = document["metadata"]
    if not isinstance(metadata, Mapping) or "start_time" not in metadata:
        raise StateSerializationError("Missing required field: metadata.start_time")

    pairs = document["enrichment_results"]
    if not isinstance(pairs, list) or not all(isinstance(pair, list) and len(pair) == 2 for pair in pairs):
        raise StateSerializationError("enrichment_results must be a list of [key, value] pairs")

    try:
        configs = [NodeConfig.from_mapping(config) for config in document["node_configs"]]
    except ConfigurationError as e:
        raise StateSerializationError(f"Invalid node config: {e}") from e

    node_start = metadata.get("current_node_start_time")
    return PipelineState(
        signal_id=document["signal_id"],
        raw_signal=document.get("raw_signal"),
        node_configs=configs,
        metadata=StateMetadata(
            start_time=_parse_datetime(metadata["start_time"], "metadata.start_time"),
            trace=[_trace_entry(entry, i) for i, entry in enumerate(metadata.get("trace") or [])],
            current_node_start_time=(
                _parse_datetime(node_start, "metadata.current_node_start_time") if node_start is not None else None
            ),
        ),
        enrichment_results={key: value for key, value in pairs},
        current_node=document.get("current_node"),
    )


class StateSerializer:
    """Serializes PipelineState to and from JSON text.

    Example:
        serializer = StateSerializer()
        text = serializer.serialize(state)
        restored = serializer.deserialize(text)
    """

    def __init__(self, *, indent: int | None = 2) -> None:
        self._indent = indent

    def _dumps(self, document: Any) -> str:
        try:
            return json.dumps(document, indent=self._indent, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise StateSerializationError(f"Failed to serialize state: {e}") from e

    def serialize(self, state: PipelineState) -> str:
        return self._dumps(_to_document(state))

    def deserialize(self, text: str) -> PipelineState:
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise StateSerializationError(f"Invalid JSON: {e}") from e
        return _from_document(document)

    def serialize_to_file(self, state: PipelineState, path: str | Path) -> None:
        text = self.serialize(state)
        try:
            Path(path).write_text(text, encoding="utf-8")
        except OSError as e:
            raise StateSerializationError(f"Failed to write state to file '{path}': {e}") from e

    def deserialize_from_file(self, path: str | Path) -> PipelineState:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except FileNotFoundError:
            raise StateSerializationError(f"File not found: {path}") from None
        except OSError as e:
            raise StateSerializationError(f"Failed to read state from file '{path}': {e}") from e
        return self.deserialize(text)

    def serialize_many(self, states: Sequence[PipelineState]) -> str:
        return self._dumps([_to_document(state) for state in states])

    def deserialize_many(self, text: str) -> list[PipelineState]:
        try:
            documents = json.loads(text)
        except json.JSONDecodeError as e:
            raise StateSerializationError(f"Invalid JSON: {e}") from e
        if not isinstance(documents, list):
            raise StateSerializationError("Expected JSON array")
        return [_from_document(document) for document in documents]

    def clone(self, state: PipelineState) -> PipelineState:
        """Deep copy through the JSON form."""
        return self.deserialize(self.serialize(state))
