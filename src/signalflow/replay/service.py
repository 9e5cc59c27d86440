# src/signalflow/replay/service.py
"""Read-only replay of stored signals through the current pipeline.

ReplayService:
1. loads one StoredSnapshot from a READ-ONLY SnapshotStore
2. rebuilds the pipeline input (raw payload, else lossy reconstruction)
3. re-runs the pipeline entrypoint with the stored scored_at pinned
4. diffs stored against recomputed on every axis

The service never writes: it holds no SnapshotWriter and refuses a store
opened read-write. A missing signal is a ReplayNotFound value; pipeline
errors propagate unchanged.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Self

import structlog
from sqlalchemy.exc import SQLAlchemyError

from signalflow.contracts import (
    ConfigurationError,
    ReplayMeta,
    ReplayNotFound,
    ReplayOptions,
    ReplayOutcome,
    ReplayResult,
)
from signalflow.core.logging import signal_context
from signalflow.core.store import SignalStoreDB, SnapshotStore
from signalflow.engine.clock import DEFAULT_CLOCK, Clock
from signalflow.replay.comparator import DEFAULT_EPSILON, compare
from signalflow.replay.reconstruct import reconstruct_input
from signalflow.replay.views import recomputed_view, stored_view

if TYPE_CHECKING:
    from signalflow.core.config import SignalflowSettings

slog = structlog.get_logger(__name__)

READ_ONLY_NOTE = "Read-only replay; no DB writes performed"

type PipelineEntrypoint = Callable[[dict[str, Any], ReplayOptions], Mapping[str, Any]]


def load_entrypoint(path: str) -> PipelineEntrypoint:
    """Import ``package.module:function``.

    Raises:
        ConfigurationError: malformed path, import failure, missing or
            non-callable attribute.
    """
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"pipeline.entrypoint must look like 'package.module:function', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"pipeline.entrypoint: cannot import module '{module_name}': {e}") from e
    target = getattr(module, attr, None)
    if not callable(target):
        raise ConfigurationError(f"pipeline.entrypoint: '{path}' is not a callable")
    return target  # type: ignore[no-any-return]  # checked callable above


def open_read_only_store(url: str | None, *, table_name: str) -> SnapshotStore:
    """Open the signal store read-only and probe the connection.

    Raises:
        ConfigurationError: no URL configured or the store cannot be opened.
    """
    if not url:
        raise ConfigurationError("Signal store not configured: set store.url (or SIGNALFLOW_STORE__URL)")
    try:
        db = SignalStoreDB.from_url(url, read_only=True, table_name=table_name)
    except SQLAlchemyError as e:
        raise ConfigurationError(f"Cannot open signal store read-only: {e}") from e
    try:
        with db.engine.connect():
            pass
    except SQLAlchemyError as e:
        db.close()
        raise ConfigurationError(f"Cannot open signal store read-only: {e}") from e
    return SnapshotStore(db)


class ReplayService:
    """Replays stored signals and diffs the results.

    Example:
        service = ReplayService(store, run_pipeline, pipeline_version="froggy@1.2")
        outcome = service.replay_signal_by_id("sig-123")
        if outcome.found:
            print("\\n".join(outcome.comparison.changes))

    A service built by from_settings owns its store and closes it on
    close() or on leaving a ``with`` block. A store passed in directly stays
    the caller's to close.
    """

    def __init__(
        self,
        store: SnapshotStore | None,
        pipeline: PipelineEntrypoint,
        *,
        clock: Clock | None = None,
        epsilon: float = DEFAULT_EPSILON,
        pipeline_version: str | None = None,
        half_life_minutes: float | None = None,
    ) -> None:
        if store is None:
            raise ConfigurationError("Signal store not configured: replay needs a read-only SnapshotStore")
        if not store.read_only:
            raise ConfigurationError("Replay requires a signal store opened read-only")
        self._store = store
        self._pipeline = pipeline
        self._clock = clock or DEFAULT_CLOCK
        self._epsilon = epsilon
        self._pipeline_version = pipeline_version
        self._half_life_minutes = half_life_minutes
        self._owns_store = False

    @classmethod
    def from_settings(
        cls,
        settings: SignalflowSettings,
        *,
        pipeline: PipelineEntrypoint | None = None,
        clock: Clock | None = None,
    ) -> ReplayService:
        """Build a service from settings: read-only store plus entrypoint."""
        if pipeline is None:
            if settings.pipeline.entrypoint is None:
                raise ConfigurationError("pipeline.entrypoint not configured")
            pipeline = load_entrypoint(settings.pipeline.entrypoint)
        store = open_read_only_store(settings.store.url, table_name=settings.store.table)
        service = cls(
            store,
            pipeline,
            clock=clock,
            epsilon=settings.replay.epsilon,
            pipeline_version=settings.pipeline.display_version if settings.pipeline.version else None,
            half_life_minutes=settings.replay.half_life_minutes,
        )
        service._owns_store = True
        return service

    def close(self) -> None:
        if self._owns_store:
            self._store.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()

    def replay_signal_by_id(self, signal_id: str) -> ReplayOutcome:
        """Replay one signal.

        Returns:
            ReplayResult, or ReplayNotFound when the store has no such signal.

        Raises:
            ConfigurationError: the store failed while loading the snapshot.
            Exception: anything the pipeline entrypoint raised, unchanged.
        """
        with signal_context(signal_id):
            return self._replay_one(signal_id)

    def _replay_one(self, signal_id: str) -> ReplayOutcome:
        try:
            snapshot = self._store.find_one(signal_id)
        except SQLAlchemyError as e:
            slog.error("signal_store_unavailable", error=str(e))
            raise ConfigurationError(f"Signal store unavailable: {e}") from e
        if snapshot is None:
            slog.warning("replay_signal_not_found")
            return ReplayNotFound(signal_id)

        reconstructed = reconstruct_input(snapshot)
        options = ReplayOptions(include_stage_summaries=False, is_demo=False, scored_at=snapshot.scoring.scored_at)
        slog.info("replay_started", input_source=reconstructed.source.value)

        try:
            result = self._pipeline(reconstructed.payload, options)
        except Exception as exc:
            slog.error("replay_failed", error_type=type(exc).__name__, error=str(exc))
            raise

        ran_at = self._clock.now()
        stored = stored_view(snapshot, ran_at, default_half_life=self._half_life_minutes)
        recomputed = recomputed_view(
            result,
            scored_at=snapshot.scoring.scored_at,
            now=ran_at,
            default_half_life=self._half_life_minutes,
        )
        comparison = compare(stored, recomputed, epsilon=self._epsilon)
        notes = "; ".join((READ_ONLY_NOTE, *reconstructed.notes))

        slog.info(
            "replay_completed",
            score_delta=comparison.score_delta,
            decision_changed=comparison.decision_changed,
        )
        return ReplayResult(
            signal_id=snapshot.signal_id,
            stored=stored,
            recomputed=recomputed,
            comparison=comparison,
            replay_meta=ReplayMeta(
                ran_at=ran_at,
                pipeline_version=self._pipeline_version or snapshot.strategy.name,
                notes=notes,
                input_source=reconstructed.source,
            ),
        )

    def replay_many(self, signal_ids: Iterable[str]) -> list[ReplayOutcome]:
        """Replay signals one after another, in the order given.

        The first pipeline error aborts the batch.
        """
        return [self.replay_signal_by_id(signal_id) for signal_id in signal_ids]
