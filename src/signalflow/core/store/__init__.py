# src/signalflow/core/store/__init__.py
"""Signal store: persisted snapshots of scored signals.

The replay comparator depends only on SnapshotStore.find_one(); writing
goes through SnapshotWriter, which refuses read-only databases.
"""

from signalflow.core.store.database import SignalStoreDB
from signalflow.core.store.repository import SnapshotRepository, SnapshotStore, SnapshotWriter
from signalflow.core.store.schema import DEFAULT_TABLE_NAME, build_signals_table, metadata, signals_table

__all__ = [
    "DEFAULT_TABLE_NAME",
    "SignalStoreDB",
    "SnapshotRepository",
    "SnapshotStore",
    "SnapshotWriter",
    "build_signals_table",
    "metadata",
    "signals_table",
]
