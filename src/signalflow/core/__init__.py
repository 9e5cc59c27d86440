# src/signalflow/core/__init__.py
"""Core infrastructure: Canonical hashing, Configuration, Stage graph, Logging.

The signal store lives in signalflow.core.store and is imported from
there directly (it pulls in SQLAlchemy).
"""

from signalflow.core.canonical import (
    CANONICAL_VERSION,
    canonical_json,
    config_hash,
    stable_hash,
)
from signalflow.core.config import (
    ConcurrencySettings,
    LoggingSettings,
    PipelineSettings,
    ReplaySettings,
    SignalflowSettings,
    StageSettings,
    StoreSettings,
    load_settings,
    resolve_config,
)
from signalflow.core.dag import StageGraph, build_stage_graph
from signalflow.core.logging import configure_logging, get_logger

__all__ = [
    "CANONICAL_VERSION",
    "ConcurrencySettings",
    "LoggingSettings",
    "PipelineSettings",
    "ReplaySettings",
    "SignalflowSettings",
    "StageGraph",
    "StageSettings",
    "StoreSettings",
    "build_stage_graph",
    "canonical_json",
    "config_hash",
    "configure_logging",
    "get_logger",
    "load_settings",
    "resolve_config",
    "stable_hash",
]
