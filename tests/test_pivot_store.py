"""
Tests for PivotStore ordering, duplicate rejection and capacity pruning.
"""

import pytest

from src.harmonic_analysis.pivot_store import PivotStore
from src.harmonic_analysis.types import PivotKind

from conftest import make_pivot


class TestOrdering:

    def test_snapshot_sorted_by_bar_index(self):
        store = PivotStore()
        store.insert(make_pivot(10, 100, PivotKind.LOW))
        store.insert(make_pivot(4, 120, PivotKind.HIGH))
        store.insert(make_pivot(7, 90, PivotKind.LOW))

        assert [p.bar_index for p in store.snapshot()] == [4, 7, 10]
        assert store.latest().bar_index == 10

    def test_same_bar_keeps_insertion_order(self):
        store = PivotStore()
        store.insert(make_pivot(5, 110, PivotKind.HIGH))
        store.insert(make_pivot(5, 90, PivotKind.LOW))
        assert [p.kind for p in store] == [PivotKind.HIGH, PivotKind.LOW]

    def test_snapshot_is_independent(self):
        store = PivotStore()
        store.insert(make_pivot(1, 100, PivotKind.LOW))
        snapshot = store.snapshot()
        store.insert(make_pivot(3, 110, PivotKind.HIGH))
        assert len(snapshot) == 1
        assert len(store) == 2

    def test_empty_store(self):
        store = PivotStore()
        assert len(store) == 0
        assert store.latest() is None
        assert store.snapshot() == []


class TestDuplicates:

    def test_adjacent_same_kind_close_price_rejected(self):
        """Relative threshold: 0.1% of 100 is 0.1."""
        store = PivotStore()
        assert store.insert(make_pivot(10, 100.0, PivotKind.LOW))
        assert not store.insert(make_pivot(11, 100.05, PivotKind.LOW))
        assert len(store) == 1

    def test_same_bar_same_price_rejected(self):
        store = PivotStore()
        assert store.insert(make_pivot(10, 100.0, PivotKind.LOW))
        assert not store.insert(make_pivot(10, 100.0, PivotKind.LOW))

    def test_price_difference_at_threshold_kept(self):
        store = PivotStore(tick_size=0.25)
        store.insert(make_pivot(10, 100.0, PivotKind.LOW))
        # threshold is 2 ticks = 0.5, comparison is strict
        assert store.insert(make_pivot(11, 100.5, PivotKind.LOW))

    def test_tick_threshold(self):
        store = PivotStore(tick_size=0.25)
        store.insert(make_pivot(10, 100.0, PivotKind.LOW))
        assert not store.insert(make_pivot(11, 100.25, PivotKind.LOW))
        assert store.price_threshold(100.0) == 0.5

    def test_different_kind_not_duplicate(self):
        store = PivotStore()
        store.insert(make_pivot(10, 100.0, PivotKind.LOW))
        assert store.insert(make_pivot(10, 100.0, PivotKind.HIGH))

    def test_two_bars_apart_not_duplicate(self):
        store = PivotStore()
        store.insert(make_pivot(10, 100.0, PivotKind.LOW))
        assert store.insert(make_pivot(12, 100.0, PivotKind.LOW))


class TestCapacity:

    def test_prune_keeps_most_recent(self):
        store = PivotStore(capacity=3)
        for i, price in enumerate([100, 110, 95, 115, 90]):
            kind = PivotKind.LOW if i % 2 == 0 else PivotKind.HIGH
            store.insert(make_pivot(i * 2, price, kind))

        removed = store.prune()

        assert [p.bar_index for p in removed] == [0, 2]
        assert [p.bar_index for p in store] == [4, 6, 8]

    def test_prune_under_capacity_is_noop(self):
        store = PivotStore(capacity=3)
        store.insert(make_pivot(1, 100, PivotKind.LOW))
        assert store.prune() == []
        assert len(store) == 1

    def test_prune_explicit_limit(self):
        store = PivotStore()
        for i in range(5):
            store.insert(make_pivot(i * 2, 100 + i * 10, PivotKind.HIGH))
        store.prune(max_size=2)
        assert [p.bar_index for p in store] == [6, 8]

    @pytest.mark.parametrize("capacity", [0, -1])
    def test_invalid_capacity(self, capacity):
        with pytest.raises(ValueError):
            PivotStore(capacity=capacity)

    def test_clear(self):
        store = PivotStore()
        store.insert(make_pivot(1, 100, PivotKind.LOW))
        store.clear()
        assert len(store) == 0
