# src/signalflow/replay/__init__.py
"""Replay and audit comparator for stored signals."""

from signalflow.replay.comparator import DEFAULT_EPSILON, compare
from signalflow.replay.decay import apply_time_decay, decayed_score
from signalflow.replay.novelty import canonical_novelty, derive_cohort_id
from signalflow.replay.reconstruct import LOSSY_NOTE, ReconstructedInput, reconstruct_input
from signalflow.replay.report import render_report, result_to_dict
from signalflow.replay.service import (
    READ_ONLY_NOTE,
    PipelineEntrypoint,
    ReplayService,
    load_entrypoint,
    open_read_only_store,
)
from signalflow.replay.views import PipelineResultError, recomputed_view, stored_view

__all__ = [
    "DEFAULT_EPSILON",
    "LOSSY_NOTE",
    "READ_ONLY_NOTE",
    "PipelineEntrypoint",
    "PipelineResultError",
    "ReconstructedInput",
    "ReplayService",
    "apply_time_decay",
    "canonical_novelty",
    "compare",
    "decayed_score",
    "derive_cohort_id",
    "load_entrypoint",
    "open_read_only_store",
    "reconstruct_input",
    "recomputed_view",
    "render_report",
    "result_to_dict",
    "stored_view",
]
