# tests/replay/test_comparator.py
"""Tests for the stored-vs-recomputed comparator."""

from dataclasses import replace

import pytest


def _view(**changes):
    from signalflow.contracts import DecisionRecord, ExecutionRecord, ScoredView

    base = ScoredView(
        score=0.75,
        scored_at=None,
        decay_params=None,
        decision=DecisionRecord(decision="approve", confidence=0.78, reason_codes=("trend_aligned", "volume_ok")),
        execution=ExecutionRecord(status="simulated", timestamp="2025-01-01T00:00:00+00:00"),
        config_hash="a" * 64,
        logic_version="v1",
        novelty=None,
    )
    return replace(base, **changes)


def _decision(decision="approve", confidence=0.78, reason_codes=("trend_aligned", "volume_ok")):
    from signalflow.contracts import DecisionRecord

    return DecisionRecord(decision=decision, confidence=confidence, reason_codes=reason_codes)


def _novelty(**changes):
    from signalflow.contracts import CanonicalNovelty

    base = CanonicalNovelty(
        novelty_score=0.81,
        novelty_class="novel",
        cohort_id="BTCUSDT-1h-trend_pullback_v1",
        reference_signal_ids=("sig-a", "sig-b"),
    )
    return replace(base, **changes)


class TestCompareUnchanged:
    def test_identical_views_report_every_axis_unchanged(self) -> None:
        from signalflow.replay import compare

        comparison = compare(_view(), _view())

        assert comparison.changes == (
            "score unchanged (0.7500)",
            "decision unchanged: approve",
            "confidence unchanged (0.7800)",
            "reason codes unchanged: [trend_aligned, volume_ok]",
            f"scoring config hash unchanged: {'a' * 64}",
            "logic version unchanged: v1",
            "novelty unchanged: unavailable",
        )
        assert comparison.score_delta == 0.0
        assert comparison.decision_changed is False

    def test_reason_code_order_is_not_a_change(self) -> None:
        from signalflow.replay import compare

        comparison = compare(_view(), _view(decision=_decision(reason_codes=("volume_ok", "trend_aligned"))))

        assert comparison.changes[3] == "reason codes unchanged: [trend_aligned, volume_ok]"

    def test_delta_within_epsilon_is_unchanged(self) -> None:
        from signalflow.replay import compare

        comparison = compare(_view(), _view(score=0.75005))

        assert comparison.changes[0] == "score unchanged (0.7500)"
        assert comparison.score_delta == pytest.approx(0.00005)


class TestCompareChanged:
    def test_drifted_result(self) -> None:
        from signalflow.replay import compare

        recomputed = _view(
            score=0.7521,
            decision=_decision("reject", 0.77, ("trend_aligned", "late_entry")),
            config_hash="b" * 64,
            logic_version="v2",
        )

        comparison = compare(_view(), recomputed)

        assert comparison.changes[:6] == (
            "score changed by +0.0021 (0.7500 → 0.7521)",
            "decision changed: approve → reject",
            "confidence changed by -0.0100 (0.7800 → 0.7700)",
            "reason codes changed: [trend_aligned, volume_ok] → [late_entry, trend_aligned]",
            f"scoring config hash changed: {'a' * 64} → {'b' * 64}",
            "logic version changed: v1 → v2",
        )
        assert comparison.decision_changed is True
        assert comparison.score_delta == pytest.approx(0.0021)

    def test_missing_hash_reported_as_unknown(self) -> None:
        from signalflow.replay import compare

        comparison = compare(_view(config_hash=None, logic_version=None), _view(logic_version=None))

        assert comparison.changes[4] == f"scoring config hash changed: unknown → {'a' * 64}"
        assert comparison.changes[5] == "logic version unchanged: unknown"

    def test_custom_epsilon(self) -> None:
        from signalflow.replay import compare

        comparison = compare(_view(), _view(score=0.76), epsilon=0.05)

        assert comparison.changes[0] == "score unchanged (0.7500)"


class TestNoveltyLine:
    def test_appeared(self) -> None:
        from signalflow.replay import compare

        assert compare(_view(), _view(novelty=_novelty())).changes[6] == "novelty changed: none → novel"

    def test_disappeared(self) -> None:
        from signalflow.replay import compare

        assert compare(_view(novelty=_novelty()), _view()).changes[6] == "novelty changed: novel → none"

    def test_unchanged(self) -> None:
        from signalflow.replay import compare

        assert compare(_view(novelty=_novelty()), _view(novelty=_novelty())).changes[6] == "novelty unchanged"

    def test_field_changes_listed(self) -> None:
        from signalflow.replay import compare

        comparison = compare(
            _view(novelty=_novelty()),
            _view(novelty=_novelty(novelty_score=0.42, novelty_class="familiar", reference_signal_ids=("sig-a",))),
        )

        assert comparison.changes[6] == (
            "novelty changed: novelty_score (0.8100 → 0.4200), novelty_class (novel → familiar), "
            "reference_signal_ids ([sig-a, sig-b] → [sig-a])"
        )
