# src/signalflow/state/manager.py
"""Thread-safe owner of one PipelineState with bounded snapshot history.

Every read hands out a deep copy and every update stores one, so callers
can never mutate the managed state or its history behind the lock.
History index 0 is the initial state until trimming drops it.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Callable

from signalflow.contracts import ExecutionTraceEntry, PipelineState
from signalflow.state.composer import ExecutionMetrics, summarize_trace

DEFAULT_MAX_HISTORY_SIZE = 100


class StateManager:
    """Snapshot-and-rollback wrapper around a PipelineState.

    Example:
        manager = StateManager(PipelineState.create("sig-1", raw))
        manager.update_state(lambda s: composer.compose(s).state)
        index = manager.checkpoint()
        ...
        manager.rollback_to_checkpoint(index)
    """

    def __init__(self, initial_state: PipelineState, max_history_size: int = DEFAULT_MAX_HISTORY_SIZE) -> None:
        if max_history_size < 1:
            raise ValueError(f"max_history_size must be >= 1, got {max_history_size}")
        self._lock = threading.Lock()
        self._state = copy.deepcopy(initial_state)
        self._history: list[PipelineState] = [copy.deepcopy(initial_state)]
        self._max_history_size = max_history_size

    @property
    def state(self) -> PipelineState:
        with self._lock:
            return copy.deepcopy(self._state)

    @property
    def history(self) -> list[PipelineState]:
        with self._lock:
            return copy.deepcopy(self._history)

    @property
    def history_size(self) -> int:
        with self._lock:
            return len(self._history)

    @property
    def max_history_size(self) -> int:
        return self._max_history_size

    @max_history_size.setter
    def max_history_size(self, size: int) -> None:
        if size < 1:
            raise ValueError(f"max_history_size must be >= 1, got {size}")
        with self._lock:
            self._max_history_size = size
            self._trim_history()

    def update_state(self, updater: Callable[[PipelineState], PipelineState]) -> None:
        """Apply updater to the current state and record the result.

        The updater receives a private copy; if it raises, the managed
        state and history are left untouched.
        """
        with self._lock:
            updated = updater(copy.deepcopy(self._state))
            self._state = copy.deepcopy(updated)
            self._append_history(self._state)

    def add_trace_entry(self, entry: ExecutionTraceEntry) -> None:
        with self._lock:
            self._state.metadata.trace.append(copy.deepcopy(entry))

    def trace_entries(self) -> list[ExecutionTraceEntry]:
        with self._lock:
            return copy.deepcopy(self._state.metadata.trace)

    def execution_metrics(self) -> ExecutionMetrics:
        with self._lock:
            return summarize_trace(self._state.metadata.trace)

    def reset(self) -> None:
        """Return to the oldest retained snapshot and drop the rest."""
        with self._lock:
            self._state = copy.deepcopy(self._history[0])
            self._history = [copy.deepcopy(self._state)]

    def rollback(self) -> bool:
        """Step back one snapshot. False when there is nothing to undo."""
        with self._lock:
            if len(self._history) <= 1:
                return False
            self._history.pop()
            self._state = copy.deepcopy(self._history[-1])
            return True

    def clear_history(self) -> None:
        with self._lock:
            self._history = [copy.deepcopy(self._state)]

    def checkpoint(self) -> int:
        """Snapshot the current state; returns its history index."""
        with self._lock:
            self._append_history(self._state)
            return len(self._history) - 1

    def rollback_to_checkpoint(self, index: int) -> bool:
        with self._lock:
            if not 0 <= index < len(self._history):
                return False
            self._state = copy.deepcopy(self._history[index])
            del self._history[index + 1 :]
            return True

    def _append_history(self, state: PipelineState) -> None:
        self._history.append(copy.deepcopy(state))
        self._trim_history()

    def _trim_history(self) -> None:
        overflow = len(self._history) - self._max_history_size
        if overflow > 0:
            del self._history[:overflow]
