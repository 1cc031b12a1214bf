"""
Pivot Store

Ordered, deduplicated, capacity-bounded history of confirmed pivots. This
is the only long-lived detection state besides the current pattern.
"""

import logging
from typing import Iterator, List, Optional

from sortedcontainers import SortedKeyList

from .types import Pivot

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class PivotStore:
    """
    Pivots ordered by bar index, ties kept in insertion order.

    Two pivots of the same kind are duplicates when they sit at most one bar
    apart and their prices differ by less than the price-equality threshold:
    `tick_size * duplicate_tick_multiple` when a tick size is known, else
    `price * duplicate_price_pct`. Duplicates are rejected, never merged.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        tick_size: Optional[float] = None,
        duplicate_tick_multiple: float = 2.0,
        duplicate_price_pct: float = 0.001,
    ):
        if capacity <= 0:
            raise ValueError(f"Pivot store capacity must be positive, got {capacity}")
        self.capacity = capacity
        self.tick_size = tick_size
        self.duplicate_tick_multiple = duplicate_tick_multiple
        self.duplicate_price_pct = duplicate_price_pct
        # bisect_right on equal keys keeps insertion order for same-bar pivots
        self._pivots = SortedKeyList(key=lambda p: p.bar_index)

    def __len__(self) -> int:
        return len(self._pivots)

    def __iter__(self) -> Iterator[Pivot]:
        return iter(list(self._pivots))

    def price_threshold(self, price: float) -> float:
        """Price difference below which two pivots count as equal."""
        if self.tick_size:
            return self.tick_size * self.duplicate_tick_multiple
        return abs(price) * self.duplicate_price_pct

    def is_duplicate(self, pivot: Pivot) -> bool:
        threshold = self.price_threshold(pivot.price)
        # Only neighbours within one bar can match
        for existing in self._pivots.irange_key(pivot.bar_index - 1, pivot.bar_index + 1):
            if (
                existing.kind is pivot.kind
                and abs(existing.price - pivot.price) < threshold
            ):
                return True
        return False

    def insert(self, pivot: Pivot) -> bool:
        """
        Add a pivot unless it duplicates one already stored.

        Returns:
            True if the pivot was stored, False if rejected as duplicate.
        """
        if self.is_duplicate(pivot):
            logger.debug("Rejected duplicate pivot %s", pivot)
            return False
        self._pivots.add(pivot)
        return True

    def prune(self, max_size: Optional[int] = None) -> List[Pivot]:
        """
        Evict the oldest pivots until at most max_size remain.

        Args:
            max_size: Size limit; defaults to the store capacity.

        Returns:
            The evicted pivots, oldest first.
        """
        limit = self.capacity if max_size is None else max_size
        if limit < 0:
            raise ValueError(f"max_size cannot be negative, got {limit}")
        excess = len(self._pivots) - limit
        if excess <= 0:
            return []

        removed = list(self._pivots[:excess])
        del self._pivots[:excess]
        logger.info(
            "Removed %d old pivots, keeping %d recent ones", excess, len(self._pivots)
        )
        return removed

    def snapshot(self) -> List[Pivot]:
        """Pivots ordered by bar index, as an independent list."""
        return list(self._pivots)

    def latest(self) -> Optional[Pivot]:
        return self._pivots[-1] if self._pivots else None

    def clear(self) -> None:
        self._pivots.clear()
