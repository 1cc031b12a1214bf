"""Core data types for harmonic pattern detection."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .instruments import InstrumentInfo


@dataclass
class Bar:
    """Single OHLC bar of the detection timeframe"""
    index: int
    timestamp: int
    open: float
    high: float
    low: float
    close: float

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp, tz=timezone.utc)


class PivotKind(Enum):
    """Which extreme a pivot marks."""
    HIGH = "high"
    LOW = "low"

    @property
    def opposite(self) -> "PivotKind":
        return PivotKind.LOW if self is PivotKind.HIGH else PivotKind.HIGH


@dataclass(frozen=True)
class Pivot:
    """A confirmed local extremum (swing high or swing low)."""
    bar_index: int
    price: float
    kind: PivotKind
    timestamp: datetime

    @property
    def is_high(self) -> bool:
        return self.kind is PivotKind.HIGH

    def __str__(self) -> str:
        return f"{self.kind.value.upper()} {self.price:.5g} @ bar {self.bar_index}"


@dataclass(frozen=True)
class HarmonicPattern:
    """
    A completed XABCD formation matched against a ratio template.

    Direction follows the XA leg: a bullish pattern starts at a LOW (X)
    and rallies to a HIGH (A), so D completes as a low where price is
    expected to turn up. Bearish patterns are the mirror image.

    Attributes:
        template_name: Name of the template that matched (e.g. "Gartley").
        x, a, b, c, d: The five pivots, in strictly increasing bar order.
        is_bullish: True when X is a LOW and A is a HIGH.
        detected_at: When the lifecycle accepted the pattern. None while the
            pattern is still a search result that has not been offered.
    """
    template_name: str
    x: Pivot
    a: Pivot
    b: Pivot
    c: Pivot
    d: Pivot
    is_bullish: bool
    detected_at: Optional[datetime] = None

    @property
    def points(self) -> Tuple[Pivot, Pivot, Pivot, Pivot, Pivot]:
        return (self.x, self.a, self.b, self.c, self.d)

    @property
    def direction(self) -> str:
        return "Bullish" if self.is_bullish else "Bearish"

    @property
    def completion_bar(self) -> int:
        """Bar index of D; used for recency comparisons."""
        return self.d.bar_index

    def with_detection_time(self, detected_at: datetime) -> "HarmonicPattern":
        return replace(self, detected_at=detected_at)

    def move_value(self, instrument: "InstrumentInfo") -> float:
        """Currency value of the C -> D move for the given instrument."""
        return instrument.price_to_currency(abs(self.c.price - self.d.price))

    def reversal_zone(self, instrument: "InstrumentInfo", ticks: int = 10) -> Tuple[float, float]:
        """
        Price band around D where the reversal is expected.

        Spans `ticks` ticks either side of D. Instruments without a known
        tick size fall back to 0.1% of D's price per side.
        """
        if instrument.tick_size:
            half_width = instrument.tick_size * ticks
        else:
            half_width = abs(self.d.price) * 0.001
        return (self.d.price - half_width, self.d.price + half_width)

    def __str__(self) -> str:
        points = " ".join(
            f"{label}:{p.price:.5g}" for label, p in zip("XABCD", self.points)
        )
        return f"{self.template_name} {self.direction} [{points}]"
