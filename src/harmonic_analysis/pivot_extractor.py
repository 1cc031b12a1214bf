"""
Pivot Extractor

Turns a stream of closed bars into confirmed pivots. A bar becomes a pivot
once `lookback` further bars have closed and none of the bars on either
side reached its extreme:

    Pivot high at center c: high[c] > high[i] for every other i in window
    Pivot low  at center c: low[c]  < low[i]  for every other i in window

Ties disqualify the center on both tests, so a flat top produces no pivot.
"""

import logging
from collections import deque
from typing import Deque, List, Optional, Sequence, Tuple

import numpy as np

from .instruments import quantize_price
from .types import Bar, Pivot, PivotKind

logger = logging.getLogger(__name__)


def is_pivot_high(idx: int, highs: Sequence[float], lookback: int) -> bool:
    """
    Check if bar at idx is a pivot high.

    A pivot high is strictly above every other high in the ±lookback window.
    """
    n = len(highs)
    if idx < lookback or idx >= n - lookback:
        return False

    center_high = highs[idx]
    for i in range(idx - lookback, idx + lookback + 1):
        if i != idx and highs[i] >= center_high:
            return False
    return True


def is_pivot_low(idx: int, lows: Sequence[float], lookback: int) -> bool:
    """
    Check if bar at idx is a pivot low.

    A pivot low is strictly below every other low in the ±lookback window.
    """
    n = len(lows)
    if idx < lookback or idx >= n - lookback:
        return False

    center_low = lows[idx]
    for i in range(idx - lookback, idx + lookback + 1):
        if i != idx and lows[i] <= center_low:
            return False
    return True


def detect_pivot_indices(
    highs: Sequence[float],
    lows: Sequence[float],
    lookback: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Vectorized pivot detection over a whole series.

    Equivalent to running is_pivot_high / is_pivot_low at every position,
    using sliding windows instead of a Python loop.

    Args:
        highs: High prices in bar order
        lows: Low prices in bar order
        lookback: Number of bars before/after to check

    Returns:
        Tuple of (pivot_high_positions, pivot_low_positions) as numpy arrays
    """
    highs = np.asarray(highs, dtype=np.float64)
    lows = np.asarray(lows, dtype=np.float64)
    n = len(highs)
    window_size = 2 * lookback + 1

    if n < window_size:
        return np.array([], dtype=np.int64), np.array([], dtype=np.int64)

    high_windows = np.lib.stride_tricks.sliding_window_view(highs, window_size)
    low_windows = np.lib.stride_tricks.sliding_window_view(lows, window_size)

    # Drop the center column so ties with a neighbour fail the strict test
    neighbour_highs = np.delete(high_windows, lookback, axis=1)
    neighbour_lows = np.delete(low_windows, lookback, axis=1)

    center_highs = highs[lookback:n - lookback]
    center_lows = lows[lookback:n - lookback]

    is_high = center_highs > neighbour_highs.max(axis=1)
    is_low = center_lows < neighbour_lows.min(axis=1)

    return (
        np.where(is_high)[0] + lookback,
        np.where(is_low)[0] + lookback,
    )


class PivotExtractor:
    """
    Incremental pivot confirmation over a rolling window of closed bars.

    Feed each closed bar exactly once through update(); the extractor keeps
    only the last 2*lookback+1 bars and tests the bar in the middle.
    """

    def __init__(
        self,
        lookback: int = 1,
        tick_size: Optional[float] = None,
        quantize: bool = True,
    ):
        """
        Args:
            lookback: Confirmation half-window in bars (>= 1).
            tick_size: Instrument tick size used for price quantisation.
            quantize: Round emitted pivot prices to the nearest tick.
        """
        if lookback < 1:
            raise ValueError(f"lookback must be at least 1, got {lookback}")
        self.lookback = lookback
        self.tick_size = tick_size
        self.quantize = quantize
        self._window: Deque[Bar] = deque(maxlen=2 * lookback + 1)

    @property
    def window_size(self) -> int:
        return 2 * self.lookback + 1

    @property
    def is_warm(self) -> bool:
        """True once enough bars are held to test a center bar."""
        return len(self._window) == self.window_size

    def reset(self) -> None:
        self._window.clear()

    def _output_price(self, price: float) -> float:
        if self.quantize:
            return quantize_price(price, self.tick_size)
        return price

    def update(self, bar: Bar) -> List[Pivot]:
        """
        Add a closed bar and return pivots confirmed by it.

        The returned pivots belong to the bar `lookback` positions back,
        not to `bar` itself. At most one HIGH and one LOW are returned.
        """
        self._window.append(bar)
        if not self.is_warm:
            return []

        highs = [b.high for b in self._window]
        lows = [b.low for b in self._window]
        center = self._window[self.lookback]

        pivots: List[Pivot] = []
        if is_pivot_high(self.lookback, highs, self.lookback):
            pivots.append(Pivot(
                bar_index=center.index,
                price=self._output_price(center.high),
                kind=PivotKind.HIGH,
                timestamp=center.date,
            ))
        if is_pivot_low(self.lookback, lows, self.lookback):
            pivots.append(Pivot(
                bar_index=center.index,
                price=self._output_price(center.low),
                kind=PivotKind.LOW,
                timestamp=center.date,
            ))

        if pivots:
            logger.debug(
                "Bar %d confirmed %s", center.index, ", ".join(str(p) for p in pivots)
            )
        return pivots
