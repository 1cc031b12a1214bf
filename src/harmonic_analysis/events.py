"""
Harmonic Detection Events

Defines event types emitted by the harmonic detector. Each event captures
a state change that rendering or alerting code may react to.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

from .types import HarmonicPattern, Pivot


@dataclass
class PatternEvent:
    """
    Base event from the harmonic detector.

    Attributes:
        event_type: Discriminator for event type routing/filtering.
        bar_index: Index of the bar being processed when the event occurred.
        timestamp: Datetime when the event occurred.
    """

    event_type: str
    bar_index: int
    timestamp: datetime


@dataclass
class PivotConfirmedEvent(PatternEvent):
    """
    Emitted when a new pivot is stored.

    The pivot's own bar index trails `bar_index` by the pivot lookback.

    Attributes:
        event_type: Always "PIVOT_CONFIRMED".
        pivot: The stored pivot.
    """

    event_type: Literal["PIVOT_CONFIRMED"] = field(default="PIVOT_CONFIRMED", init=False)
    pivot: Optional[Pivot] = None


@dataclass
class PatternDetectedEvent(PatternEvent):
    """
    Emitted when a pattern becomes the current pattern.

    Attributes:
        event_type: Always "PATTERN_DETECTED".
        pattern: The new current pattern, with detected_at set.
        replaced: The pattern it superseded, if any.

    Example:
        >>> event = PatternDetectedEvent(bar_index=120, timestamp=now, pattern=p)
        >>> event.event_type
        'PATTERN_DETECTED'
    """

    event_type: Literal["PATTERN_DETECTED"] = field(default="PATTERN_DETECTED", init=False)
    pattern: Optional[HarmonicPattern] = None
    replaced: Optional[HarmonicPattern] = None

    @property
    def template_name(self) -> str:
        return self.pattern.template_name if self.pattern else ""

    def get_explanation(self) -> str:
        """
        Human-readable summary of the detection.

        Returns:
            Explanation string with the five points and the D completion bar.
        """
        if self.pattern is None:
            return ""
        p = self.pattern
        lines = [
            f"{p.template_name} {p.direction} pattern completed at bar {p.d.bar_index}",
            "  ".join(f"{label}={pt.price:.2f}" for label, pt in zip("XABCD", p.points)),
        ]
        if self.replaced is not None:
            lines.append(f"Replaces {self.replaced.template_name} (D at bar {self.replaced.d.bar_index})")
        return "\n".join(lines)


@dataclass
class PatternExpiredEvent(PatternEvent):
    """
    Emitted when the current pattern outlives its visibility horizon.

    Attributes:
        event_type: Always "PATTERN_EXPIRED".
        pattern: The pattern that is no longer current.
    """

    event_type: Literal["PATTERN_EXPIRED"] = field(default="PATTERN_EXPIRED", init=False)
    pattern: Optional[HarmonicPattern] = None

    def get_explanation(self) -> str:
        if self.pattern is None:
            return ""
        return (
            f"{self.pattern.template_name} {self.pattern.direction} pattern detected at "
            f"{self.pattern.detected_at:%Y-%m-%d %H:%M} expired"
        )
