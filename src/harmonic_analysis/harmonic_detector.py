"""
Harmonic Detector

Bar-driven engine tying the pipeline together. For each closed bar:

1. Expire the current pattern if its visibility horizon has passed
2. Confirm pivots for the bar `pivot_lookback` positions back
3. Store new pivots (duplicates rejected) and prune to capacity
4. If the pivot set changed and holds at least five pivots, search it
5. Offer the result to the lifecycle; a strictly newer D replaces

Everything is single-threaded and deterministic for a fixed bar sequence
and configuration. Only expiry reads the clock.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Tuple

from .detection_config import HarmonicConfig, MatchStrategy
from .events import (
    PatternDetectedEvent,
    PatternEvent,
    PatternExpiredEvent,
    PivotConfirmedEvent,
)
from .instruments import InstrumentInfo, InstrumentLookup, default_instrument_lookup
from .pattern_catalog import PatternCatalog, RANGE_CATALOG, exact_catalog
from .pattern_lifecycle import PatternLifecycle
from .pattern_search import PIVOTS_PER_PATTERN, find_pattern
from .pivot_extractor import PivotExtractor
from .pivot_store import PivotStore
from .types import Bar, HarmonicPattern, Pivot

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]
EventListener = Callable[[PatternEvent], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def catalog_for_strategy(config: HarmonicConfig) -> PatternCatalog:
    """Default catalog: ratio ranges for direct matching, exact targets for projection."""
    if config.match_strategy is MatchStrategy.PROJECTED:
        return exact_catalog(config.closing_leg_tolerance)
    return RANGE_CATALOG


class HarmonicDetector:
    """
    Incremental XABCD pattern detector for one instrument and timeframe.

    Example:
        >>> detector = HarmonicDetector(symbol="ES 12-25")
        >>> for bar in bars:
        ...     for event in detector.process_bar(bar):
        ...         print(event.event_type)
        >>> detector.current
    """

    def __init__(
        self,
        config: HarmonicConfig = None,
        symbol: str = "",
        instrument_lookup: Optional[InstrumentLookup] = None,
        clock: Optional[Clock] = None,
        catalog: Optional[PatternCatalog] = None,
    ):
        """
        Args:
            config: Detection parameters. Defaults to HarmonicConfig.default().
            symbol: Instrument symbol, resolved through instrument_lookup.
            instrument_lookup: symbol -> InstrumentInfo. Defaults to the
                built-in futures table.
            clock: Returns the current time; stamps detections and drives
                expiry. Defaults to UTC wall-clock time.
            catalog: Templates to match. Defaults per match strategy.
        """
        self.config = config or HarmonicConfig.default()
        self.symbol = symbol
        self.instrument: InstrumentInfo = (instrument_lookup or default_instrument_lookup)(symbol)
        self.clock: Clock = clock or utc_now
        self.catalog = catalog or catalog_for_strategy(self.config)

        tick_size = self.instrument.tick_size
        self._extractor = PivotExtractor(
            lookback=self.config.pivot_lookback,
            tick_size=tick_size,
            quantize=self.config.quantize_to_tick,
        )
        self._store = PivotStore(
            capacity=self.config.pivot_store_capacity,
            tick_size=tick_size,
            duplicate_tick_multiple=self.config.duplicate_tick_multiple,
            duplicate_price_pct=self.config.duplicate_price_pct,
        )
        self._lifecycle = PatternLifecycle(self.config.pattern_visibility_horizon)
        self._listeners: List[EventListener] = []
        self._last_bar_index: Optional[int] = None

    @property
    def current(self) -> Optional[HarmonicPattern]:
        return self._lifecycle.current

    @property
    def pivots(self) -> List[Pivot]:
        return self._store.snapshot()

    @property
    def last_bar_index(self) -> Optional[int]:
        return self._last_bar_index

    @property
    def lifecycle(self) -> PatternLifecycle:
        return self._lifecycle

    def add_listener(self, listener: EventListener) -> None:
        """Register a callback invoked with every emitted event, in order."""
        self._listeners.append(listener)

    def _emit(self, events: List[PatternEvent]) -> List[PatternEvent]:
        for event in events:
            for listener in self._listeners:
                listener(event)
        return events

    def _expire(self, now: datetime) -> List[PatternEvent]:
        expired = self._lifecycle.expire(now)
        if expired is None:
            return []
        bar_index = self._last_bar_index if self._last_bar_index is not None else -1
        return [PatternExpiredEvent(bar_index=bar_index, timestamp=now, pattern=expired)]

    def process_bar(self, bar: Bar) -> List[PatternEvent]:
        """
        Process one closed bar.

        Args:
            bar: Next bar. Its index must not be lower than the last one
                processed; the same index again is ignored.

        Returns:
            Events generated by this bar, also delivered to listeners.

        Raises:
            ValueError: If bar.index is lower than the last processed index.
        """
        if self._last_bar_index is not None:
            if bar.index == self._last_bar_index:
                logger.debug("Ignoring re-delivered bar %d", bar.index)
                return []
            if bar.index < self._last_bar_index:
                raise ValueError(
                    f"Bars must arrive in order: got index {bar.index} "
                    f"after {self._last_bar_index}"
                )
        self._last_bar_index = bar.index

        now = self.clock()
        events: List[PatternEvent] = self._expire(now)

        stored_new = False
        for pivot in self._extractor.update(bar):
            if self._store.insert(pivot):
                stored_new = True
                events.append(PivotConfirmedEvent(bar_index=bar.index, timestamp=bar.date, pivot=pivot))
        self._store.prune()

        if stored_new and len(self._store) >= PIVOTS_PER_PATTERN:
            previous = self._lifecycle.current
            accepted = self._lifecycle.offer(
                find_pattern(self._store.snapshot(), self.catalog, self.config), now
            )
            if accepted is not None:
                events.append(PatternDetectedEvent(
                    bar_index=bar.index,
                    timestamp=now,
                    pattern=accepted,
                    replaced=previous,
                ))

        return self._emit(events)

    def process_bars(
        self,
        bars: Iterable[Bar],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> List[PatternEvent]:
        """
        Process bars in order and return all events.

        Args:
            bars: Bars in ascending index order.
            progress_callback: Optional callback(current, total).
        """
        bars = list(bars)
        total = len(bars)
        all_events: List[PatternEvent] = []
        for i, bar in enumerate(bars):
            all_events.extend(self.process_bar(bar))
            if progress_callback:
                progress_callback(i + 1, total)
        return all_events

    def tick(self, now: Optional[datetime] = None) -> List[PatternEvent]:
        """
        Check expiry without a new bar.

        Args:
            now: Time to check against; defaults to the detector clock.
        """
        return self._emit(self._expire(now or self.clock()))

    def status_text(self) -> str:
        """One-line status for display."""
        current = self._lifecycle.current
        if current is not None:
            return f"{current.template_name} PATTERN DETECTED"
        if self._last_bar_index is not None:
            return f"SCANNING - Pivots:{len(self._store)}"
        return "LOADING DATA..."

    def reset(self) -> None:
        """Forget all bars, pivots and the current pattern. Listeners are kept."""
        self._extractor.reset()
        self._store.clear()
        self._lifecycle.reset()
        self._last_bar_index = None


def run_detection(
    bars: List[Bar],
    config: HarmonicConfig = None,
    symbol: str = "",
    instrument_lookup: Optional[InstrumentLookup] = None,
    clock: Optional[Clock] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
) -> Tuple[HarmonicDetector, List[PatternEvent]]:
    """
    Run detection over historical bars.

    This is process_bar() in a loop, so the result matches feeding the same
    bars live. When no clock is given, each bar's own time is used so that
    detection times and expiry follow the data rather than the wall clock.

    Returns:
        Tuple of (detector with state, all events generated).

    Example:
        >>> detector, events = run_detection(bars, symbol="ES")
        >>> detector.current
    """
    replay_time = {"now": None}

    def bar_clock() -> datetime:
        return replay_time["now"] or utc_now()

    detector = HarmonicDetector(
        config,
        symbol=symbol,
        instrument_lookup=instrument_lookup,
        clock=clock or bar_clock,
    )
    all_events: List[PatternEvent] = []
    total = len(bars)
    for i, bar in enumerate(bars):
        replay_time["now"] = bar.date
        all_events.extend(detector.process_bar(bar))
        if progress_callback:
            progress_callback(i + 1, total)
    return detector, all_events
