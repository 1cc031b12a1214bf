"""
Harmonic Detection Configuration

Centralized configuration for pivot extraction, pattern search and the
pattern lifecycle. All knobs live in one frozen dataclass so a detector
instance is fully described by its config plus the bars it has seen.
"""

from dataclasses import dataclass, asdict
from datetime import timedelta
from enum import Enum
from typing import Any, Dict


class MatchStrategy(Enum):
    """
    How PatternSearch pairs pivots with template ratios.

    PROJECTED: Project the expected price of B, C and D from the template
        ratios and take the nearest stored pivot within price_tolerance.
    DIRECT: Measure the ratio between actual stored pivots and check it
        against the template at every leg.
    """
    PROJECTED = "projected"
    DIRECT = "direct"


@dataclass(frozen=True)
class HarmonicConfig:
    """
    All configurable parameters for harmonic pattern detection.

    Attributes:
        pivot_lookback: Bars required on each side of a candidate pivot.
            A pivot is confirmed `pivot_lookback` bars after it forms. 1-5.
        max_pattern_bars: Maximum bar span of the XA leg.
        price_tolerance: Relative distance allowed between a projected price
            and the pivot chosen for it. PROJECTED matching only.
        closing_leg_tolerance: Tolerance of exact closing-leg templates,
            as a fraction of the target ratio (0.05 = 5%).
        pattern_visibility_horizon: How long a detected pattern stays
            current. Zero or negative disables expiry.
        pivot_store_capacity: Maximum number of pivots retained.
        match_strategy: DIRECT (default) or PROJECTED.
        quantize_to_tick: Round pivot prices to the instrument tick size.
        duplicate_tick_multiple: Two same-kind pivots on adjacent bars are
            duplicates when their prices differ by less than this many ticks.
        duplicate_price_pct: Relative price threshold used instead when the
            instrument has no tick size.

    Example:
        >>> config = HarmonicConfig.default()
        >>> config.pivot_store_capacity
        100
        >>> config.match_strategy
        <MatchStrategy.DIRECT: 'direct'>
    """
    pivot_lookback: int = 1
    max_pattern_bars: int = 50
    price_tolerance: float = 0.015
    closing_leg_tolerance: float = 0.05
    pattern_visibility_horizon: timedelta = timedelta(days=5)
    pivot_store_capacity: int = 100
    match_strategy: MatchStrategy = MatchStrategy.DIRECT
    quantize_to_tick: bool = True
    duplicate_tick_multiple: float = 2.0
    duplicate_price_pct: float = 0.001

    # Pivot lookback bounds supported by the confirmation window
    MIN_LOOKBACK = 1
    MAX_LOOKBACK = 5

    def __post_init__(self):
        if not self.MIN_LOOKBACK <= self.pivot_lookback <= self.MAX_LOOKBACK:
            raise ValueError(
                f"pivot_lookback must be between {self.MIN_LOOKBACK} and "
                f"{self.MAX_LOOKBACK}, got {self.pivot_lookback}"
            )
        if self.max_pattern_bars < 1:
            raise ValueError(f"max_pattern_bars must be at least 1, got {self.max_pattern_bars}")
        if self.price_tolerance <= 0:
            raise ValueError(f"price_tolerance must be positive, got {self.price_tolerance}")
        if self.closing_leg_tolerance <= 0:
            raise ValueError(
                f"closing_leg_tolerance must be positive, got {self.closing_leg_tolerance}"
            )
        if self.pivot_store_capacity <= 0:
            raise ValueError(
                f"pivot_store_capacity must be positive, got {self.pivot_store_capacity}"
            )
        if not isinstance(self.match_strategy, MatchStrategy):
            raise ValueError(f"Unknown match_strategy: {self.match_strategy!r}")
        if self.duplicate_tick_multiple < 0 or self.duplicate_price_pct < 0:
            raise ValueError("Duplicate thresholds cannot be negative")

    @property
    def window_size(self) -> int:
        """Number of bars in the pivot confirmation window."""
        return 2 * self.pivot_lookback + 1

    @property
    def expiry_enabled(self) -> bool:
        return self.pattern_visibility_horizon > timedelta(0)

    @classmethod
    def default(cls) -> "HarmonicConfig":
        """Create a config with default values."""
        return cls()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["pattern_visibility_horizon"] = self.pattern_visibility_horizon.total_seconds()
        data["match_strategy"] = self.match_strategy.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HarmonicConfig":
        """
        Create from dictionary.

        `pattern_visibility_horizon` is read as seconds; a
        `pattern_visibility_days` key is accepted as well.
        """
        if "pattern_visibility_horizon" in data:
            horizon = timedelta(seconds=data["pattern_visibility_horizon"])
        elif "pattern_visibility_days" in data:
            horizon = timedelta(days=data["pattern_visibility_days"])
        else:
            horizon = timedelta(days=5)
        return cls(
            pivot_lookback=data.get("pivot_lookback", 1),
            max_pattern_bars=data.get("max_pattern_bars", 50),
            price_tolerance=data.get("price_tolerance", 0.015),
            closing_leg_tolerance=data.get("closing_leg_tolerance", 0.05),
            pattern_visibility_horizon=horizon,
            pivot_store_capacity=data.get("pivot_store_capacity", 100),
            match_strategy=MatchStrategy(data.get("match_strategy", "direct")),
            quantize_to_tick=data.get("quantize_to_tick", True),
            duplicate_tick_multiple=data.get("duplicate_tick_multiple", 2.0),
            duplicate_price_pct=data.get("duplicate_price_pct", 0.001),
        )

    def with_strategy(self, match_strategy: MatchStrategy) -> "HarmonicConfig":
        """
        Create a new config using a different matching strategy.

        Since HarmonicConfig is frozen, this creates a new instance.

        Example:
            >>> config = HarmonicConfig.default().with_strategy(MatchStrategy.PROJECTED)
            >>> config.match_strategy.value
            'projected'
        """
        return HarmonicConfig(
            pivot_lookback=self.pivot_lookback,
            max_pattern_bars=self.max_pattern_bars,
            price_tolerance=self.price_tolerance,
            closing_leg_tolerance=self.closing_leg_tolerance,
            pattern_visibility_horizon=self.pattern_visibility_horizon,
            pivot_store_capacity=self.pivot_store_capacity,
            match_strategy=match_strategy,
            quantize_to_tick=self.quantize_to_tick,
            duplicate_tick_multiple=self.duplicate_tick_multiple,
            duplicate_price_pct=self.duplicate_price_pct,
        )

    def with_tolerances(
        self,
        price_tolerance: float = None,
        closing_leg_tolerance: float = None,
    ) -> "HarmonicConfig":
        """
        Create a new config with modified matching tolerances.

        Only provided parameters are modified; others keep their current values.
        """
        return HarmonicConfig(
            pivot_lookback=self.pivot_lookback,
            max_pattern_bars=self.max_pattern_bars,
            price_tolerance=price_tolerance if price_tolerance is not None else self.price_tolerance,
            closing_leg_tolerance=(
                closing_leg_tolerance
                if closing_leg_tolerance is not None
                else self.closing_leg_tolerance
            ),
            pattern_visibility_horizon=self.pattern_visibility_horizon,
            pivot_store_capacity=self.pivot_store_capacity,
            match_strategy=self.match_strategy,
            quantize_to_tick=self.quantize_to_tick,
            duplicate_tick_multiple=self.duplicate_tick_multiple,
            duplicate_price_pct=self.duplicate_price_pct,
        )

    def with_pivots(
        self,
        pivot_lookback: int = None,
        pivot_store_capacity: int = None,
        max_pattern_bars: int = None,
    ) -> "HarmonicConfig":
        """Create a new config with modified pivot extraction and storage limits."""
        return HarmonicConfig(
            pivot_lookback=pivot_lookback if pivot_lookback is not None else self.pivot_lookback,
            max_pattern_bars=max_pattern_bars if max_pattern_bars is not None else self.max_pattern_bars,
            price_tolerance=self.price_tolerance,
            closing_leg_tolerance=self.closing_leg_tolerance,
            pattern_visibility_horizon=self.pattern_visibility_horizon,
            pivot_store_capacity=(
                pivot_store_capacity
                if pivot_store_capacity is not None
                else self.pivot_store_capacity
            ),
            match_strategy=self.match_strategy,
            quantize_to_tick=self.quantize_to_tick,
            duplicate_tick_multiple=self.duplicate_tick_multiple,
            duplicate_price_pct=self.duplicate_price_pct,
        )

    def with_visibility_horizon(self, pattern_visibility_horizon: timedelta) -> "HarmonicConfig":
        """
        Create a new config with a different pattern visibility horizon.

        Args:
            pattern_visibility_horizon: How long a pattern stays current after
                detection. timedelta(0) keeps patterns until replaced.
        """
        return HarmonicConfig(
            pivot_lookback=self.pivot_lookback,
            max_pattern_bars=self.max_pattern_bars,
            price_tolerance=self.price_tolerance,
            closing_leg_tolerance=self.closing_leg_tolerance,
            pattern_visibility_horizon=pattern_visibility_horizon,
            pivot_store_capacity=self.pivot_store_capacity,
            match_strategy=self.match_strategy,
            quantize_to_tick=self.quantize_to_tick,
            duplicate_tick_multiple=self.duplicate_tick_multiple,
            duplicate_price_pct=self.duplicate_price_pct,
        )
