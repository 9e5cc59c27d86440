# src/signalflow/core/store/repository.py
"""Snapshot repository: the seam between SQLAlchemy rows and StoredSnapshot.

The store is OUR data: a row with a malformed JSON column or a missing
required value is a bug upstream, so loading crashes rather than guessing.
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.engine import Row as SARow

from signalflow.contracts import (
    DecisionRecord,
    ExecutionRecord,
    MarketInfo,
    ReadOnlyStoreError,
    ReceiptProvenance,
    ScoringRecord,
    StoredSnapshot,
    StrategyInfo,
)
from signalflow.core.canonical import canonical_json
from signalflow.core.store.database import SignalStoreDB

logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back; values were written as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _loads(text: str | None) -> Any:
    return None if text is None else json.loads(text)


def _dumps(value: Any) -> str | None:
    return None if value is None else canonical_json(value)


class SnapshotRepository:
    """Converts between snapshot rows and StoredSnapshot."""

    def load(self, row: SARow[Any]) -> StoredSnapshot:
        """Load StoredSnapshot from database row. Crashes on invalid data."""
        receipt = None
        if row.receipt_mint_status is not None:
            receipt = ReceiptProvenance(
                mint_status=row.receipt_mint_status,
                epoch_id=row.receipt_epoch_id,
                receipt_id=row.receipt_id,
                mint_tx_hash=row.receipt_mint_tx_hash,
            )
        created_at = _as_utc(row.created_at)
        assert created_at is not None  # NOT NULL column
        return StoredSnapshot(
            signal_id=row.signal_id,
            created_at=created_at,
            source=row.source,
            market=MarketInfo(symbol=row.symbol, timeframe=row.timeframe, market=row.market),
            strategy=StrategyInfo(name=row.strategy, direction=row.direction),
            scoring=ScoringRecord(
                score=row.score,
                scored_at=_as_utc(row.scored_at),
                decay_params=_loads(row.decay_params_json),
                config_hash=row.scoring_config_hash,
                logic_version=row.logic_version,
            ),
            decision=DecisionRecord(
                decision=row.decision,
                confidence=row.confidence,
                reason_codes=tuple(_loads(row.reason_codes_json)),
            ),
            execution=ExecutionRecord(
                status=row.execution_status,
                timestamp=row.execution_timestamp,
                type=row.execution_type,
            ),
            novelty=_loads(row.novelty_json),
            raw_payload=_loads(row.raw_payload_json),
            receipt_provenance=receipt,
        )

    def dump(self, snapshot: StoredSnapshot) -> dict[str, Any]:
        """Flatten a StoredSnapshot into column values."""
        receipt = snapshot.receipt_provenance
        return {
            "signal_id": snapshot.signal_id,
            "created_at": snapshot.created_at,
            "source": snapshot.source,
            "symbol": snapshot.market.symbol,
            "timeframe": snapshot.market.timeframe,
            "market": snapshot.market.market,
            "strategy": snapshot.strategy.name,
            "direction": snapshot.strategy.direction,
            "score": snapshot.scoring.score,
            "scored_at": snapshot.scoring.scored_at,
            "decay_params_json": _dumps(snapshot.scoring.decay_params),
            "scoring_config_hash": snapshot.scoring.config_hash,
            "logic_version": snapshot.scoring.logic_version,
            "decision": snapshot.decision.decision,
            "confidence": snapshot.decision.confidence,
            "reason_codes_json": canonical_json(list(snapshot.decision.reason_codes)),
            "execution_status": snapshot.execution.status,
            "execution_type": snapshot.execution.type,
            "execution_timestamp": snapshot.execution.timestamp,
            "novelty_json": _dumps(snapshot.novelty),
            "raw_payload_json": _dumps(snapshot.raw_payload),
            "receipt_mint_status": receipt.mint_status if receipt else None,
            "receipt_epoch_id": receipt.epoch_id if receipt else None,
            "receipt_id": receipt.receipt_id if receipt else None,
            "receipt_mint_tx_hash": receipt.mint_tx_hash if receipt else None,
        }


class SnapshotStore:
    """Read side of the signal store. Issues SELECTs only."""

    def __init__(self, db: SignalStoreDB) -> None:
        self._db = db
        self._repo = SnapshotRepository()

    @property
    def read_only(self) -> bool:
        return self._db.read_only

    def close(self) -> None:
        self._db.close()

    def find_one(self, signal_id: str) -> StoredSnapshot | None:
        table = self._db.table
        with self._db.connection() as conn:
            row = conn.execute(select(table).where(table.c.signal_id == signal_id)).first()
        if row is None:
            logger.debug("Signal %s not found", signal_id)
            return None
        return self._repo.load(row)


class SnapshotWriter:
    """Write side of the signal store.

    Used by ingestion and tests. The replay comparator never holds one.
    """

    def __init__(self, db: SignalStoreDB) -> None:
        if db.read_only:
            raise ReadOnlyStoreError("Cannot create a SnapshotWriter on a read-only signal store")
        self._db = db
        self._repo = SnapshotRepository()

    def insert(self, snapshot: StoredSnapshot) -> None:
        with self._db.connection() as conn:
            conn.execute(self._db.table.insert().values(**self._repo.dump(snapshot)))
        logger.debug("Stored signal %s", snapshot.signal_id)
