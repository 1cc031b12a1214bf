"""
Shared test fixtures and helpers for harmonic analysis tests.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Sequence

import pytest

from src.harmonic_analysis.types import Bar, HarmonicPattern, Pivot, PivotKind

BASE_TIMESTAMP = 1700000000


def make_bar(
    index: int,
    open_: float,
    high: float,
    low: float,
    close: float,
    timestamp: int = None,
) -> Bar:
    """Helper to create Bar objects for testing.

    Args:
        index: Bar index in the sequence
        open_: Opening price
        high: High price
        low: Low price
        close: Closing price
        timestamp: Unix timestamp (defaults to 1700000000 + index * 60)

    Returns:
        Bar object for use in detector tests
    """
    return Bar(
        index=index,
        timestamp=timestamp or BASE_TIMESTAMP + index * 60,
        open=open_,
        high=high,
        low=low,
        close=close,
    )


def zigzag_bars(points: Sequence[float], steps: int = 3, interval: int = 60) -> List[Bar]:
    """
    Flat bars (open = high = low = close) walking linearly through `points`.

    Every interior point becomes a pivot with lookback 1, sitting at bar
    index `i * steps` for the i-th point. The first and last points only
    lead in and out.
    """
    prices = []
    for start, end in zip(points, points[1:]):
        prices.extend(start + (end - start) * k / steps for k in range(steps))
    prices.append(points[-1])
    return [
        make_bar(i, p, p, p, p, timestamp=BASE_TIMESTAMP + i * interval)
        for i, p in enumerate(prices)
    ]


def make_pivot(bar_index: int, price: float, kind: PivotKind) -> Pivot:
    return Pivot(
        bar_index=bar_index,
        price=price,
        kind=kind,
        timestamp=datetime.fromtimestamp(BASE_TIMESTAMP + bar_index * 60, tz=timezone.utc),
    )


def pivots_from_path(prices: Sequence[float], start: int = 0, spacing: int = 2) -> List[Pivot]:
    """
    Alternating pivots at the given prices.

    Kind is inferred from the neighbouring price: a point above the next
    (or, for the last point, above the previous) is a HIGH.
    """
    pivots = []
    for i, price in enumerate(prices):
        neighbour = prices[i + 1] if i + 1 < len(prices) else prices[i - 1]
        kind = PivotKind.HIGH if price > neighbour else PivotKind.LOW
        pivots.append(make_pivot(start + i * spacing, price, kind))
    return pivots


def make_pattern(d_bar: int, template_name: str = "Gartley", detected_at: datetime = None) -> HarmonicPattern:
    """Bullish pattern whose D sits at `d_bar`; earlier points every two bars before it."""
    x, a, b, c, d = pivots_from_path([100, 150, 119, 140.5, 110.7], start=d_bar - 8)
    return HarmonicPattern(
        template_name=template_name,
        x=x, a=a, b=b, c=c, d=d,
        is_bullish=True,
        detected_at=detected_at,
    )


# Bullish Gartley inside the ratio ranges: AB/XA 0.62, BC/AB 0.69, CD/BC 1.39, AD/XA 0.786
GARTLEY_PATH = [120, 100, 150, 119, 140.5, 110.7, 125]

# Bullish Gartley on the exact targets (D = 0.764 of XA, within 5% of 0.786)
EXACT_GARTLEY_PATH = [150, 100, 200, 138.2, 161.8, 123.6, 140]


class FakeClock:
    """Controllable clock for expiry tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()
