# src/signalflow/replay/reconstruct.py
"""Rebuild the pipeline input for a stored signal.

Priority:
1. The retained raw inbound payload, used verbatim. The only faithful path.
2. A best-effort input from the structured market/strategy fields, marked
   lossy. Free-text fields (setup_summary, notes) are left unset: they
   cannot be recovered and are never invented.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from signalflow.contracts import InputSource, StoredSnapshot

LOSSY_NOTE = "Lossy replay: raw payload not retained; input rebuilt from symbol/market/timeframe/strategy/direction"


@dataclass(frozen=True, slots=True)
class ReconstructedInput:
    payload: dict[str, Any]
    source: InputSource
    notes: tuple[str, ...] = ()

    @property
    def lossy(self) -> bool:
        return self.source is InputSource.RECONSTRUCTED


def reconstruct_input(snapshot: StoredSnapshot) -> ReconstructedInput:
    raw = snapshot.raw_payload
    if isinstance(raw, Mapping) and raw:
        payload = copy.deepcopy(dict(raw))
        payload.setdefault("signal_id", snapshot.signal_id)
        return ReconstructedInput(payload=payload, source=InputSource.RAW_PAYLOAD)

    payload = {
        "signal_id": snapshot.signal_id,
        "symbol": snapshot.market.symbol,
        "timeframe": snapshot.market.timeframe,
        "strategy": snapshot.strategy.name,
        "direction": snapshot.strategy.direction,
    }
    if snapshot.market.market is not None:
        payload["market"] = snapshot.market.market
    return ReconstructedInput(payload=payload, source=InputSource.RECONSTRUCTED, notes=(LOSSY_NOTE,))
