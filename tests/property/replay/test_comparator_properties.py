# tests/property/replay/test_comparator_properties.py
"""Property-based tests for the stored-vs-recomputed comparator.

Replaying the same signal twice must produce byte-identical change lines,
so compare() has to be a pure function of its inputs.
"""

from __future__ import annotations

from hypothesis import given

from signalflow.contracts import ScoredView
from signalflow.replay import compare
from tests.property.conftest import scored_views
from tests.property.settings import DETERMINISM_SETTINGS, STANDARD_SETTINGS


class TestCompareProperties:
    @given(stored=scored_views, recomputed=scored_views)
    @DETERMINISM_SETTINGS
    def test_compare_is_deterministic(self, stored: ScoredView, recomputed: ScoredView) -> None:
        assert compare(stored, recomputed) == compare(stored, recomputed)

    @given(stored=scored_views, recomputed=scored_views)
    @STANDARD_SETTINGS
    def test_always_seven_lines(self, stored: ScoredView, recomputed: ScoredView) -> None:
        comparison = compare(stored, recomputed)

        assert len(comparison.changes) == 7
        assert comparison.changes[0].startswith("score ")
        assert comparison.changes[6].startswith("novelty ")

    @given(view=scored_views)
    @STANDARD_SETTINGS
    def test_self_comparison_reports_no_change(self, view: ScoredView) -> None:
        comparison = compare(view, view)

        assert comparison.score_delta == 0.0
        assert comparison.decision_changed is False
        assert all(" changed" not in line for line in comparison.changes)

    @given(stored=scored_views, recomputed=scored_views)
    @STANDARD_SETTINGS
    def test_score_delta_is_antisymmetric(self, stored: ScoredView, recomputed: ScoredView) -> None:
        assert compare(stored, recomputed).score_delta == -compare(recomputed, stored).score_delta
