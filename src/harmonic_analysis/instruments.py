"""
Instrument tick specifications.

Detection consumes tick information through a plain lookup function so
instruments can be added without touching the engine. The default table
covers a handful of common futures contracts; anything
else resolves to a fallback without a tick size, which makes duplicate
detection use a relative price threshold and disables quantisation.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional


@dataclass(frozen=True)
class InstrumentInfo:
    """
    Tick specification for one instrument.

    Attributes:
        tick_size: Minimum price increment, or None when unknown.
        tick_value: Currency value of one tick.
    """
    tick_size: Optional[float] = None
    tick_value: float = 1.0

    def __post_init__(self):
        if self.tick_size is not None and self.tick_size <= 0:
            raise ValueError(f"tick_size must be positive, got {self.tick_size}")
        if self.tick_value <= 0:
            raise ValueError(f"tick_value must be positive, got {self.tick_value}")

    def price_to_currency(self, price_change: float) -> float:
        """Convert a price movement to currency."""
        if not self.tick_size:
            return price_change * self.tick_value
        return price_change / self.tick_size * self.tick_value

    def currency_to_price(self, value: float) -> float:
        """Convert a currency amount back to a price movement."""
        if not self.tick_size:
            return value / self.tick_value
        return value / self.tick_value * self.tick_size


InstrumentLookup = Callable[[str], InstrumentInfo]

UNKNOWN_INSTRUMENT = InstrumentInfo(tick_size=None, tick_value=1.0)

DEFAULT_INSTRUMENTS: Dict[str, InstrumentInfo] = {
    "6B": InstrumentInfo(tick_size=0.0001, tick_value=6.25),
    "CL": InstrumentInfo(tick_size=0.01, tick_value=10.0),
    "ES": InstrumentInfo(tick_size=0.25, tick_value=12.5),
    "GC": InstrumentInfo(tick_size=0.1, tick_value=10.0),
    "YM": InstrumentInfo(tick_size=1.0, tick_value=5.0),
}


def master_symbol(symbol: str) -> str:
    """
    Reduce a contract name to its master symbol.

    Example:
        >>> master_symbol("ES 12-25")
        'ES'
    """
    parts = (symbol or "").strip().split()
    return parts[0].upper() if parts else ""


def make_instrument_lookup(
    table: Optional[Mapping[str, InstrumentInfo]] = None,
    fallback: InstrumentInfo = UNKNOWN_INSTRUMENT,
) -> InstrumentLookup:
    """
    Build a symbol -> InstrumentInfo lookup over a table.

    Args:
        table: Master symbol -> InstrumentInfo. Defaults to DEFAULT_INSTRUMENTS.
        fallback: Returned for symbols not present in the table.
    """
    entries = dict(DEFAULT_INSTRUMENTS if table is None else table)
    normalized = {master_symbol(name): info for name, info in entries.items()}

    def lookup(symbol: str) -> InstrumentInfo:
        return normalized.get(master_symbol(symbol), fallback)

    return lookup


default_instrument_lookup = make_instrument_lookup()


def quantize_price(price: float, tick_size: Optional[float]) -> float:
    """Round a price to the nearest tick; unchanged when no tick size is known."""
    if not tick_size:
        return price
    return round(price / tick_size) * tick_size
