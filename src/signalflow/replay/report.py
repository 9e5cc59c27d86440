# src/signalflow/replay/report.py
"""Human-readable and JSON renderings of a ReplayResult."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from enum import Enum
from typing import Any

from signalflow.contracts import ReplayResult, ScoredView

_RULE = "=" * 63


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_jsonable(item) for item in value]
    return value


def result_to_dict(result: ReplayResult) -> dict[str, Any]:
    """JSON-safe dict of the whole result."""
    return _jsonable(dataclasses.asdict(result))  # type: ignore[no-any-return]  # dict in, dict out


def _values_block(title: str, view: ScoredView) -> list[str]:
    lines = [
        title,
        f"   Score:        {view.score:.4f}",
        f"   Decision:     {view.decision.decision}",
        f"   Confidence:   {view.decision.confidence:.4f}",
    ]
    if view.decision.reason_codes:
        lines.append(f"   Reason Codes: [{', '.join(view.decision.reason_codes)}]")
    if view.decayed_score is not None:
        lines.append(f"   Decayed:      {view.decayed_score:.4f}")
    lines.append(f"   Config Hash:  {view.config_hash or 'unknown'}")
    lines.append(f"   Logic Ver:    {view.logic_version or 'unknown'}")
    lines.append("")
    return lines


def render_report(result: ReplayResult) -> str:
    stored = result.stored
    lines = ["", _RULE, "  REPLAY RESULT", _RULE, ""]

    if stored.meta is not None:
        meta = stored.meta
        lines += [
            "SIGNAL METADATA",
            f"   Signal ID:    {result.signal_id}",
            f"   Symbol:       {meta.symbol}",
            f"   Timeframe:    {meta.timeframe}",
            f"   Strategy:     {meta.strategy}",
            f"   Direction:    {meta.direction}",
            f"   Source:       {meta.source}",
            f"   Created At:   {meta.created_at.isoformat()}",
            "",
        ]

    lines += _values_block("STORED VALUES", stored)
    lines += _values_block("RECOMPUTED VALUES", result.recomputed)

    comparison = result.comparison
    lines += [
        "COMPARISON (stored vs recomputed)",
        f"   Score Delta:      {comparison.score_delta:+.4f}",
        f"   Decision Changed: {'YES' if comparison.decision_changed else 'NO'}",
        "",
        "   Changes:",
        *(f"     - {change}" for change in comparison.changes),
        "",
    ]

    receipt = stored.receipt_provenance
    if receipt is not None:
        lines += ["RECEIPT PROVENANCE", f"   Mint Status:  {receipt.mint_status}"]
        if receipt.epoch_id is not None:
            lines.append(f"   Epoch ID:     {receipt.epoch_id}")
        if receipt.receipt_id:
            lines.append(f"   Receipt ID:   {receipt.receipt_id}")
        if receipt.mint_tx_hash:
            lines.append(f"   Mint Tx Hash: {receipt.mint_tx_hash}")
        lines.append("")

    replay_meta = result.replay_meta
    lines += [
        "REPLAY METADATA",
        f"   Ran At:       {replay_meta.ran_at.isoformat()}",
        f"   Pipeline Ver: {replay_meta.pipeline_version}",
        f"   Input Source: {replay_meta.input_source.value}",
        f"   Notes:        {replay_meta.notes}",
        "",
        _RULE,
    ]
    return "\n".join(lines)
