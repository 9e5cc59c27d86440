# src/signalflow/core/store/schema.py
"""SQLAlchemy table definition for persisted signal snapshots.

Uses SQLAlchemy Core (not ORM). Nested snapshot parts that have no fixed
shape (decay params, reason codes, novelty, the raw inbound payload) are
stored as JSON text columns.
"""

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

DEFAULT_TABLE_NAME = "signals"


def build_signals_table(metadata: MetaData, name: str = DEFAULT_TABLE_NAME) -> Table:
    """Define the snapshot table on metadata under the given name."""
    return Table(
        name,
        metadata,
        Column("signal_id", String(64), primary_key=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("source", String(64), nullable=False),
        # Market / strategy
        Column("symbol", String(32), nullable=False),
        Column("timeframe", String(16), nullable=False),
        Column("market", String(32)),
        Column("strategy", String(64), nullable=False),
        Column("direction", String(16), nullable=False),
        # Scoring
        Column("score", Float, nullable=False),
        Column("scored_at", DateTime(timezone=True)),
        Column("decay_params_json", Text),
        Column("scoring_config_hash", String(64)),
        Column("logic_version", String(64)),
        # Decision
        Column("decision", String(32), nullable=False),
        Column("confidence", Float, nullable=False),
        Column("reason_codes_json", Text, nullable=False),
        # Execution
        Column("execution_status", String(32), nullable=False),
        Column("execution_type", String(32)),
        Column("execution_timestamp", String(64), nullable=False),
        # Optional blocks
        Column("novelty_json", Text),
        Column("raw_payload_json", Text),
        Column("receipt_mint_status", String(32)),
        Column("receipt_epoch_id", Integer),
        Column("receipt_id", String(128)),
        Column("receipt_mint_tx_hash", String(128)),
        Index(f"ix_{name}_symbol_created", "symbol", "created_at"),
    )


# Shared metadata for the default table
metadata = MetaData()
signals_table = build_signals_table(metadata)
