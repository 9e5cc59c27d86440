# tests/state/test_validator.py
"""Tests for PipelineState structural and invariant validation."""

from datetime import UTC, datetime, timedelta

import pytest

T0 = datetime(2025, 1, 1, tzinfo=UTC)


def _entry(node_id: str = "ta", status: str = "completed", *, start=T0, end=T0, duration=1.0, **kwargs):
    from signalflow.contracts import ExecutionTraceEntry, NodeType, TraceStatus

    return ExecutionTraceEntry(
        node_id=node_id,
        node_type=kwargs.pop("node_type", NodeType.ENRICHMENT),
        start_time=start,
        status=TraceStatus(status),
        end_time=end,
        duration_ms=duration,
        **kwargs,
    )


def _state(*trace, **changes):
    from signalflow.contracts import PipelineState

    state = PipelineState.create("sig-1", {"symbol": "BTC/USDT"}, start_time=T0)
    state.metadata.trace.extend(trace)
    for name, value in changes.items():
        setattr(state, name, value)
    return state


@pytest.fixture
def validator():
    from signalflow.state import StateValidator

    return StateValidator()


class TestRequiredFields:
    def test_valid_minimal_state(self, validator) -> None:
        result = validator.validate(_state())

        assert result.valid
        assert result.errors == []
        assert result.warnings == []
        assert validator.check_invariants(_state())

    def test_none_state(self, validator) -> None:
        result = validator.validate(None)

        assert not result.valid
        assert result.errors == ["State is None"]

    def test_empty_signal_id(self, validator) -> None:
        result = validator.validate(_state(signal_id=""))

        assert "Missing required field: signal_id" in result.errors

    def test_whitespace_signal_id(self, validator) -> None:
        assert "signal_id cannot be empty" in validator.validate(_state(signal_id="   ")).errors

    def test_non_string_signal_id(self, validator) -> None:
        assert "signal_id must be a string" in validator.validate(_state(signal_id=42)).errors

    def test_long_signal_id_is_warning(self, validator) -> None:
        result = validator.validate(_state(signal_id="s" * 256))

        assert result.valid
        assert result.warnings == ["signal_id exceeds recommended length of 255 characters"]

    def test_missing_raw_signal_is_warning(self, validator) -> None:
        result = validator.validate(_state(raw_signal=None))

        assert result.valid
        assert "raw_signal is None, expected a value" in result.warnings


class TestEnrichmentResults:
    def test_non_string_key(self, validator) -> None:
        result = validator.validate(_state(enrichment_results={1: "x"}))

        assert "enrichment_results key must be a string, got int" in result.errors

    def test_empty_key(self, validator) -> None:
        assert "enrichment_results contains empty key" in validator.validate(_state(enrichment_results={" ": 1})).errors

    def test_not_a_mapping(self, validator) -> None:
        assert "enrichment_results must be a mapping" in validator.validate(_state(enrichment_results=[1])).errors

    def test_too_many_entries_warns(self, validator) -> None:
        results = {f"node-{i}": i for i in range(1001)}
        trace = [_entry(key) for key in results]

        result = validator.validate(_state(*trace, enrichment_results=results))

        assert "enrichment_results contains more than 1000 entries, consider pagination" in result.warnings

    def test_orphan_result_is_warning_only(self, validator) -> None:
        result = validator.validate(_state(enrichment_results={"ghost": {}}))

        assert result.valid
        assert result.warnings == ["enrichment_results contains entry for node 'ghost' which is not in metadata.trace"]


class TestNodeConfigs:
    def test_node_config_instances_accepted(self, validator) -> None:
        from signalflow.contracts import NodeConfig

        config = NodeConfig(id="ta", type="enrichment", plugin="technical-indicators", enabled=True)

        assert validator.validate(_state(node_configs=[config])).valid

    def test_mapping_configs_checked(self, validator) -> None:
        result = validator.validate(
            _state(node_configs=[{"id": "ta", "type": "sideways", "plugin": "", "enabled": 1}])
        )

        assert "node_configs[0].type must be one of required, enrichment, ingress, got 'sideways'" in result.errors
        assert "node_configs[0] missing required field: plugin" in result.errors
        assert "node_configs[0] missing or invalid field: enabled" in result.errors


class TestMetadata:
    def test_iso_string_start_time_accepted(self, validator) -> None:
        state = _state()
        state.metadata.start_time = "2025-01-01T00:00:00Z"  # type: ignore[assignment]

        assert validator.validate(state).valid

    def test_missing_start_time(self, validator) -> None:
        state = _state()
        state.metadata.start_time = None  # type: ignore[assignment]

        assert "metadata missing required field: start_time" in validator.validate(state).errors

    def test_invalid_start_time(self, validator) -> None:
        state = _state()
        state.metadata.start_time = "yesterday"  # type: ignore[assignment]

        assert "metadata.start_time must be a valid ISO 8601 timestamp" in validator.validate(state).errors

    def test_trace_must_be_list(self, validator) -> None:
        state = _state()
        state.metadata.trace = ()  # type: ignore[assignment]

        assert "metadata.trace must be a list" in validator.validate(state).errors


class TestTraceEntries:
    def test_non_entry_rejected(self, validator) -> None:
        state = _state()
        state.metadata.trace.append({"node_id": "ta"})  # type: ignore[arg-type]

        assert "metadata.trace[0] must be an ExecutionTraceEntry" in validator.validate(state).errors

    def test_negative_duration(self, validator) -> None:
        result = validator.validate(_state(_entry(duration=-1.0)))

        assert "metadata.trace[0].duration_ms cannot be negative" in result.errors

    def test_non_numeric_duration(self, validator) -> None:
        result = validator.validate(_state(_entry(duration="fast")))

        assert "metadata.trace[0].duration_ms must be a number" in result.errors

    def test_completed_without_end_time_warns(self, validator) -> None:
        result = validator.validate(_state(_entry(end=None, duration=None)))

        assert result.valid
        assert "metadata.trace[0] has status 'completed' but missing end_time" in result.warnings
        assert "metadata.trace[0] has status 'completed' but missing duration_ms" in result.warnings

    def test_running_with_end_time_is_error(self, validator) -> None:
        result = validator.validate(_state(_entry(status="running", duration=None)))

        assert result.errors == ["metadata.trace[0] has status 'running' but has end_time or duration_ms"]

    def test_pending_with_duration_is_error(self, validator) -> None:
        result = validator.validate(_state(_entry(status="pending", end=None)))

        assert result.errors == ["metadata.trace[0] has status 'pending' but has end_time or duration_ms"]

    def test_running_without_end_time_is_valid(self, validator) -> None:
        assert validator.validate(_state(_entry(status="running", end=None, duration=None))).valid

    def test_unknown_status(self, validator) -> None:
        entry = _entry()
        entry.status = "stalled"  # type: ignore[assignment]

        result = validator.validate(_state(entry))

        assert any(e.startswith("metadata.trace[0].status must be one of") for e in result.errors)

    @pytest.mark.parametrize(
        ("status", "outcome", "valid"),
        [
            ("completed", "completed-available", True),
            ("completed", "completed-unavailable", True),
            ("failed", "failed", True),
            ("completed", "failed", False),
            ("failed", "completed-available", False),
        ],
    )
    def test_outcome_must_match_status(self, validator, status: str, outcome: str, valid: bool) -> None:
        from signalflow.contracts import NodeOutcome

        result = validator.validate(_state(_entry(status=status, outcome=NodeOutcome(outcome))))

        assert result.valid is valid
        if not valid:
            assert result.errors == [f"metadata.trace[0] has outcome '{outcome}' inconsistent with status '{status}'"]

    def test_outcome_on_running_entry(self, validator) -> None:
        from signalflow.contracts import NodeOutcome

        entry = _entry(status="running", end=None, duration=None, outcome=NodeOutcome.COMPLETED_AVAILABLE)

        assert not validator.validate(_state(entry)).valid

    def test_huge_trace_warns(self, validator) -> None:
        trace = [_entry("ta") for _ in range(10001)]

        result = validator.validate(_state(*trace))

        assert "metadata.trace contains more than 10000 entries, consider archiving" in result.warnings


class TestInvariants:
    def test_out_of_order_trace_is_error(self, validator) -> None:
        result = validator.validate(_state(_entry("a", start=T0 + timedelta(seconds=5)), _entry("b", start=T0)))

        assert result.errors == [
            "metadata.trace[1] start_time is before previous entry start_time, trace entries must be in chronological order"
        ]

    def test_equal_start_times_are_fine(self, validator) -> None:
        assert validator.validate(_state(_entry("a"), _entry("b"))).valid

    def test_current_node_not_in_trace_warns(self, validator) -> None:
        result = validator.validate(_state(current_node="regime"))

        assert result.valid
        assert result.warnings == ["current_node 'regime' is not found in metadata.trace"]
        assert not validator.check_invariants(_state(current_node="regime"))

    def test_composed_state_only_warns_about_bookkeeping(self, validator, mock_clock) -> None:
        from signalflow.state import NodeComposer, NodeRegistry
        from tests.fixtures.composition_nodes import ExampleNodesPlugin, node_config

        registry = NodeRegistry(clock=mock_clock)
        registry.register(ExampleNodesPlugin())
        state = _state()
        state.node_configs = [node_config("technical-indicators"), node_config("regime", deps=("technical-indicators",))]

        composed = NodeComposer(registry, clock=mock_clock).compose(state).state
        result = validator.validate(composed)

        assert result.valid
        assert result.warnings == [
            "enrichment_results contains entry for node 'enabled-nodes' which is not in metadata.trace",
            "enrichment_results contains entry for node 'node-execution-order' which is not in metadata.trace",
        ]
