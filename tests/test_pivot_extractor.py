"""
Tests for pivot confirmation.

Tests cover:
1. Pivot tests on plain price lists (is_pivot_high, is_pivot_low)
2. Incremental confirmation through PivotExtractor
3. Tick quantisation of pivot prices
4. Agreement between the vectorized and incremental paths
"""

import numpy as np
import pytest

from src.harmonic_analysis.pivot_extractor import (
    PivotExtractor,
    detect_pivot_indices,
    is_pivot_high,
    is_pivot_low,
)
from src.harmonic_analysis.types import PivotKind

from conftest import make_bar, zigzag_bars


class TestPivotFunctions:
    """Tests for the list-based pivot checks."""

    def test_pivot_high_basic(self):
        highs = [100, 101, 102, 103, 104, 105, 104, 103, 102, 101, 100]
        #                          ^ pivot high at index 5
        assert is_pivot_high(5, highs, lookback=2)
        assert not is_pivot_high(3, highs, lookback=2)
        assert not is_pivot_high(7, highs, lookback=2)

    def test_pivot_low_basic(self):
        lows = [100, 99, 98, 97, 96, 95, 96, 97, 98, 99, 100]
        assert is_pivot_low(5, lows, lookback=2)
        assert not is_pivot_low(4, lows, lookback=2)

    def test_tie_disqualifies(self):
        """An equal neighbour means no pivot on either side of the tie."""
        highs = [100, 105, 105, 100]
        assert not is_pivot_high(1, highs, lookback=1)
        assert not is_pivot_high(2, highs, lookback=1)

        lows = [100, 95, 95, 100]
        assert not is_pivot_low(1, lows, lookback=1)
        assert not is_pivot_low(2, lows, lookback=1)

    def test_edges_never_pivot(self):
        highs = [110, 100, 105]
        assert not is_pivot_high(0, highs, lookback=1)
        assert not is_pivot_high(2, highs, lookback=1)


class TestPivotExtractor:
    """Tests for incremental confirmation."""

    def test_needs_full_window(self):
        extractor = PivotExtractor(lookback=2)
        for i, price in enumerate([100, 101, 105, 101]):
            assert extractor.update(make_bar(i, price, price, price, price)) == []
        assert not extractor.is_warm

    def test_pivot_high_confirmed_lookback_bars_later(self):
        extractor = PivotExtractor(lookback=1)
        assert extractor.update(make_bar(0, 100, 101, 99, 100)) == []
        assert extractor.update(make_bar(1, 100, 105, 99.5, 104)) == []
        pivots = extractor.update(make_bar(2, 104, 103, 100, 101))

        assert len(pivots) == 1
        pivot = pivots[0]
        assert pivot.kind is PivotKind.HIGH
        assert pivot.bar_index == 1
        assert pivot.price == 105
        assert pivot.timestamp == make_bar(1, 0, 0, 0, 0).date

    def test_outside_bar_gives_high_and_low(self):
        """A bar that engulfs both neighbours confirms a HIGH and a LOW."""
        extractor = PivotExtractor(lookback=1)
        extractor.update(make_bar(0, 100, 101, 99, 100))
        extractor.update(make_bar(1, 100, 110, 90, 100))
        pivots = extractor.update(make_bar(2, 100, 102, 98, 100))

        assert [p.kind for p in pivots] == [PivotKind.HIGH, PivotKind.LOW]
        assert all(p.bar_index == 1 for p in pivots)

    def test_flat_top_produces_no_pivot(self):
        extractor = PivotExtractor(lookback=1)
        bars = [make_bar(i, h, h, h - 1, h) for i, h in enumerate([100, 105, 105, 100, 99])]
        emitted = [p for bar in bars for p in extractor.update(bar)]
        assert not any(p.kind is PivotKind.HIGH for p in emitted)

    def test_lookback_two(self):
        extractor = PivotExtractor(lookback=2)
        bars = zigzag_bars([100, 110, 100], steps=4)
        emitted = [p for bar in bars for p in extractor.update(bar)]
        assert [(p.bar_index, p.kind) for p in emitted] == [(4, PivotKind.HIGH)]

    def test_zigzag_pivots(self):
        extractor = PivotExtractor(lookback=1)
        emitted = [p for bar in zigzag_bars([120, 100, 150, 119, 130]) for p in extractor.update(bar)]
        assert [(p.bar_index, p.price, p.kind) for p in emitted] == [
            (3, 100, PivotKind.LOW),
            (6, 150, PivotKind.HIGH),
            (9, 119, PivotKind.LOW),
        ]

    def test_quantizes_to_tick(self):
        extractor = PivotExtractor(lookback=1, tick_size=0.25)
        extractor.update(make_bar(0, 100, 100.5, 99, 100))
        extractor.update(make_bar(1, 100, 101.1, 99.5, 101))
        pivots = extractor.update(make_bar(2, 101, 100.7, 100, 100))
        assert pivots[0].price == pytest.approx(101.0)

    def test_quantize_disabled(self):
        extractor = PivotExtractor(lookback=1, tick_size=0.25, quantize=False)
        extractor.update(make_bar(0, 100, 100.5, 99, 100))
        extractor.update(make_bar(1, 100, 101.1, 99.5, 101))
        pivots = extractor.update(make_bar(2, 101, 100.7, 100, 100))
        assert pivots[0].price == 101.1

    def test_reset_clears_window(self):
        extractor = PivotExtractor(lookback=1)
        extractor.update(make_bar(0, 100, 101, 99, 100))
        extractor.update(make_bar(1, 100, 105, 99.5, 104))
        extractor.reset()
        assert extractor.update(make_bar(2, 104, 103, 100, 101)) == []

    def test_invalid_lookback(self):
        with pytest.raises(ValueError):
            PivotExtractor(lookback=0)


class TestVectorizedDetection:
    """Tests for detect_pivot_indices."""

    def test_matches_list_checks(self):
        highs = [1, 3, 2, 5, 4, 4, 6, 1]
        lows = [1, 0, 2, 1, 3, 3, 0, 1]
        high_pos, low_pos = detect_pivot_indices(highs, lows, lookback=1)

        assert list(high_pos) == [i for i in range(len(highs)) if is_pivot_high(i, highs, 1)]
        assert list(low_pos) == [i for i in range(len(lows)) if is_pivot_low(i, lows, 1)]

    def test_short_series(self):
        high_pos, low_pos = detect_pivot_indices([1, 2], [0, 1], lookback=1)
        assert len(high_pos) == 0
        assert len(low_pos) == 0

    @pytest.mark.parametrize("lookback", [1, 2, 3])
    def test_agrees_with_incremental_extractor(self, lookback):
        rng = np.random.default_rng(42)
        closes = 100 + np.cumsum(rng.normal(0, 1, 300))
        highs = closes + rng.uniform(0.1, 1.0, 300)
        lows = closes - rng.uniform(0.1, 1.0, 300)

        high_pos, low_pos = detect_pivot_indices(highs, lows, lookback)

        extractor = PivotExtractor(lookback=lookback)
        emitted = []
        for i in range(300):
            emitted.extend(extractor.update(make_bar(i, closes[i], highs[i], lows[i], closes[i])))

        assert [p.bar_index for p in emitted if p.kind is PivotKind.HIGH] == list(high_pos)
        assert [p.bar_index for p in emitted if p.kind is PivotKind.LOW] == list(low_pos)
