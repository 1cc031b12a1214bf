"""
Pattern Lifecycle

Owns the single "current pattern" slot.

    IDLE   --offer(first result)------------------> ACTIVE
    ACTIVE --offer(strictly newer D)--------------> ACTIVE (replaced)
    ACTIVE --expire(now > detected_at + horizon)--> IDLE

Once a pattern expires, only a completion newer than the expired pattern's
D can become current again, so a stale pattern that later search passes
still find is not brought back.
"""

import logging
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .types import HarmonicPattern

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    IDLE = "idle"
    ACTIVE = "active"


class PatternLifecycle:
    """Holds zero or one current HarmonicPattern."""

    def __init__(self, visibility_horizon: timedelta = timedelta(days=5)):
        """
        Args:
            visibility_horizon: How long a pattern stays current after
                detection. Zero or negative disables expiry.
        """
        self.visibility_horizon = visibility_horizon
        self._current: Optional[HarmonicPattern] = None
        self._expired_completion_bar: Optional[int] = None

    @property
    def current(self) -> Optional[HarmonicPattern]:
        return self._current

    @property
    def state(self) -> LifecycleState:
        return LifecycleState.ACTIVE if self._current is not None else LifecycleState.IDLE

    @property
    def is_active(self) -> bool:
        return self._current is not None

    @property
    def expiry_enabled(self) -> bool:
        return self.visibility_horizon > timedelta(0)

    def expires_at(self) -> Optional[datetime]:
        """When the current pattern stops being current, or None."""
        if self._current is None or not self.expiry_enabled:
            return None
        return self._current.detected_at + self.visibility_horizon

    def offer(self, pattern: Optional[HarmonicPattern], detected_at: datetime) -> Optional[HarmonicPattern]:
        """
        Offer a search result.

        Args:
            pattern: Result of a search pass (None is accepted and ignored).
            detected_at: Detection time stamped onto an accepted pattern.

        Returns:
            The pattern now current if the offer was accepted, else None.
        """
        if pattern is None:
            return None

        completion_bar = pattern.d.bar_index
        if self._current is not None:
            if completion_bar <= self._current.d.bar_index:
                return None
        elif self._expired_completion_bar is not None and completion_bar <= self._expired_completion_bar:
            logger.debug(
                "Ignoring %s: completion bar %d not newer than expired pattern",
                pattern.template_name, completion_bar,
            )
            return None

        previous = self._current
        self._current = pattern.with_detection_time(detected_at)
        if previous is None:
            logger.info("Pattern detected: %s", self._current)
        else:
            logger.info("Pattern replaced: %s -> %s", previous, self._current)
        return self._current

    def is_expired(self, now: datetime) -> bool:
        expires_at = self.expires_at()
        return expires_at is not None and now > expires_at

    def expire(self, now: datetime) -> Optional[HarmonicPattern]:
        """
        Drop the current pattern if its visibility horizon has passed.

        Returns:
            The expired pattern, or None when nothing expired.
        """
        if not self.is_expired(now):
            return None
        expired = self._current
        self._current = None
        self._expired_completion_bar = expired.d.bar_index
        logger.info("Pattern expired: %s", expired)
        return expired

    def reset(self) -> None:
        self._current = None
        self._expired_completion_bar = None
