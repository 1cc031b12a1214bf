# Harmonic Analysis Module
#
# XABCD harmonic pattern detection over a stream of closed OHLC bars.

from .types import Bar, Pivot, PivotKind, HarmonicPattern
from .detection_config import HarmonicConfig, MatchStrategy

# Instrument tick specifications
from .instruments import (
    InstrumentInfo,
    DEFAULT_INSTRUMENTS,
    make_instrument_lookup,
    default_instrument_lookup,
    quantize_price,
)

# Detection pipeline
from .pivot_extractor import PivotExtractor, detect_pivot_indices
from .pivot_store import PivotStore
from .pattern_catalog import (
    PatternCatalog,
    RatioTemplate,
    ExactRatio,
    RatioRange,
    ClosingLeg,
    RANGE_CATALOG,
    EXACT_CATALOG,
    exact_catalog,
)
from .pattern_search import find_pattern, search_direct, search_projected
from .pattern_lifecycle import PatternLifecycle, LifecycleState

# Engine and events
from .events import (
    PatternEvent,
    PivotConfirmedEvent,
    PatternDetectedEvent,
    PatternExpiredEvent,
)
from .harmonic_detector import HarmonicDetector, run_detection, catalog_for_strategy

__all__ = [
    'Bar',
    'Pivot',
    'PivotKind',
    'HarmonicPattern',
    'HarmonicConfig',
    'MatchStrategy',
    'InstrumentInfo',
    'DEFAULT_INSTRUMENTS',
    'make_instrument_lookup',
    'default_instrument_lookup',
    'quantize_price',
    'PivotExtractor',
    'detect_pivot_indices',
    'PivotStore',
    'PatternCatalog',
    'RatioTemplate',
    'ExactRatio',
    'RatioRange',
    'ClosingLeg',
    'RANGE_CATALOG',
    'EXACT_CATALOG',
    'exact_catalog',
    'find_pattern',
    'search_direct',
    'search_projected',
    'PatternLifecycle',
    'LifecycleState',
    'PatternEvent',
    'PivotConfirmedEvent',
    'PatternDetectedEvent',
    'PatternExpiredEvent',
    'HarmonicDetector',
    'run_detection',
    'catalog_for_strategy',
]
