"""
Pattern Search

Scans an ordered pivot snapshot for XABCD quintuples that satisfy a ratio
template. Two matching strategies are supported, selected by
MatchStrategy:

PROJECTED
    From a chosen X and A, project where B should be from the AB/XA target,
    take the nearest real pivot within price_tolerance, then project C from
    the actual B and D from the actual C the same way. The closing leg is
    verified last. There is no backtracking: a failed step ends the attempt
    for that (X, A, template).

DIRECT
    From a chosen X and A, walk every later B, C and D of the right kind,
    measuring each leg ratio between real pivots and rejecting a branch as
    soon as a leg falls outside the template or breaks the zig-zag shape.

Both strategies visit every (X, A) pair and every template and return the
match whose D completed most recently (highest bar index). The first match
found wins a tie. No match is None, never an exception.
"""

import logging
from typing import Callable, Dict, List, Optional, Sequence

from .detection_config import HarmonicConfig, MatchStrategy
from .pattern_catalog import PatternCatalog, RatioTemplate
from .types import HarmonicPattern, Pivot, PivotKind

logger = logging.getLogger(__name__)

PIVOTS_PER_PATTERN = 5


def _is_valid_xa(x: Pivot, a: Pivot, max_pattern_bars: int) -> bool:
    """XA must alternate kind, move with its kinds and span at most max_pattern_bars."""
    if a.kind is x.kind or a.bar_index <= x.bar_index:
        return False
    if a.bar_index - x.bar_index > max_pattern_bars:
        return False
    if x.kind is PivotKind.LOW:
        return a.price > x.price
    return a.price < x.price


def _is_more_recent(candidate: HarmonicPattern, best: Optional[HarmonicPattern]) -> bool:
    return best is None or candidate.d.bar_index > best.d.bar_index


def _build_pattern(template: RatioTemplate, x: Pivot, a: Pivot, b: Pivot, c: Pivot, d: Pivot) -> HarmonicPattern:
    return HarmonicPattern(
        template_name=template.name,
        x=x, a=a, b=b, c=c, d=d,
        is_bullish=x.kind is PivotKind.LOW and a.kind is PivotKind.HIGH,
    )


# --- Projected matching ----------------------------------------------------

def find_pivot_near_price(
    pivots: Sequence[Pivot],
    target_price: float,
    kind: PivotKind,
    after_bar_index: int,
    price_tolerance: float,
) -> Optional[Pivot]:
    """
    Find the pivot of `kind` after `after_bar_index` closest to `target_price`.

    Only pivots within `price_tolerance` (relative to the target) qualify.
    The earliest pivot wins when two are equally close.
    """
    if target_price <= 0:
        return None

    best_match = None
    best_distance = float("inf")
    for pivot in pivots:
        if pivot.kind is not kind or pivot.bar_index <= after_bar_index:
            continue
        distance = abs(pivot.price - target_price)
        if distance / target_price <= price_tolerance and distance < best_distance:
            best_distance = distance
            best_match = pivot
    return best_match


def project_pattern(
    x: Pivot,
    a: Pivot,
    template: RatioTemplate,
    pivots: Sequence[Pivot],
    price_tolerance: float,
) -> Optional[HarmonicPattern]:
    """
    Try to complete `template` from a fixed X and A by price projection.

    Each projection starts from the actual price of the previous point, so
    errors in B carry into where C and D are looked for.
    """
    xa = abs(a.price - x.price)
    # +1 when XA rallies (bullish), -1 when it falls
    sign = 1.0 if a.price > x.price else -1.0

    expected_b = a.price - sign * xa * template.ab_xa.expected
    b = find_pivot_near_price(pivots, expected_b, a.kind.opposite, a.bar_index, price_tolerance)
    if b is None:
        return None

    ab = abs(b.price - a.price)
    if ab == 0:
        return None
    expected_c = b.price + sign * ab * template.bc_ab.expected
    c = find_pivot_near_price(pivots, expected_c, b.kind.opposite, b.bar_index, price_tolerance)
    if c is None:
        return None

    bc = abs(c.price - b.price)
    if bc == 0:
        return None
    expected_d = c.price - sign * bc * template.cd_bc.expected
    d = find_pivot_near_price(pivots, expected_d, c.kind.opposite, c.bar_index, price_tolerance)
    if d is None:
        return None

    if not template.closing_matches(x, a, d):
        logger.debug(
            "%s from X=%s A=%s: closing leg at D=%.5g outside tolerance",
            template.name, x, a, d.price,
        )
        return None

    return _build_pattern(template, x, a, b, c, d)


def search_projected(
    pivots: Sequence[Pivot],
    catalog: PatternCatalog,
    max_pattern_bars: int = 50,
    price_tolerance: float = 0.015,
) -> Optional[HarmonicPattern]:
    """
    Projection-based search over all (X, A) pairs and templates.

    Args:
        pivots: Pivots ordered by bar index.
        catalog: Templates, tried in catalog order for each (X, A).
        max_pattern_bars: Maximum bar span of XA.
        price_tolerance: Relative tolerance between projected and actual price.

    Returns:
        The match with the most recent D, or None.
    """
    best: Optional[HarmonicPattern] = None
    for x_pos, x in enumerate(pivots):
        for a in pivots[x_pos + 1:]:
            if a.bar_index - x.bar_index > max_pattern_bars:
                break
            if not _is_valid_xa(x, a, max_pattern_bars):
                continue
            for template in catalog:
                match = project_pattern(x, a, template, pivots, price_tolerance)
                if match is not None and _is_more_recent(match, best):
                    best = match
    return best


# --- Direct matching -------------------------------------------------------

def _b_in_shape(bullish: bool, x: Pivot, a: Pivot, b: Pivot) -> bool:
    if bullish:
        return x.price < b.price < a.price
    return a.price < b.price < x.price


def _c_in_shape(bullish: bool, a: Pivot, b: Pivot, c: Pivot) -> bool:
    if bullish:
        return b.price < c.price < a.price
    return a.price < c.price < b.price


def _d_in_shape(bullish: bool, b: Pivot, c: Pivot, d: Pivot) -> bool:
    if bullish:
        return d.price < b.price and d.price < c.price
    return d.price > b.price and d.price > c.price


def _direct_matches_from_xa(
    x: Pivot,
    a: Pivot,
    a_pos: int,
    template: RatioTemplate,
    pivots: Sequence[Pivot],
) -> Optional[HarmonicPattern]:
    """Most recent completion of `template` for a fixed X and A."""
    bullish = x.kind is PivotKind.LOW
    xa = abs(a.price - x.price)
    n = len(pivots)
    best: Optional[HarmonicPattern] = None

    for b_pos in range(a_pos + 1, n):
        b = pivots[b_pos]
        if b.kind is not x.kind or b.bar_index <= a.bar_index:
            continue
        ab = abs(b.price - a.price)
        if ab == 0 or not template.ab_xa.matches(ab / xa):
            continue
        if not _b_in_shape(bullish, x, a, b):
            continue

        for c_pos in range(b_pos + 1, n):
            c = pivots[c_pos]
            if c.kind is not a.kind or c.bar_index <= b.bar_index:
                continue
            bc = abs(c.price - b.price)
            if bc == 0 or not template.bc_ab.matches(bc / ab):
                continue
            if not _c_in_shape(bullish, a, b, c):
                continue

            for d_pos in range(c_pos + 1, n):
                d = pivots[d_pos]
                if d.kind is not x.kind or d.bar_index <= c.bar_index:
                    continue
                cd = abs(d.price - c.price)
                if not template.cd_bc.matches(cd / bc):
                    continue
                if not _d_in_shape(bullish, b, c, d):
                    continue
                if not template.closing_matches(x, a, d):
                    continue

                match = _build_pattern(template, x, a, b, c, d)
                if _is_more_recent(match, best):
                    best = match
    return best


def search_direct(
    pivots: Sequence[Pivot],
    catalog: PatternCatalog,
    max_pattern_bars: int = 50,
) -> Optional[HarmonicPattern]:
    """
    Exhaustive ratio-range search with early rejection at every leg.

    Args:
        pivots: Pivots ordered by bar index.
        catalog: Templates, tried in catalog order.
        max_pattern_bars: Maximum bar span of XA.

    Returns:
        The match with the most recent D across all templates, or None.
    """
    best: Optional[HarmonicPattern] = None
    n = len(pivots)
    for template in catalog:
        for x_pos in range(n - PIVOTS_PER_PATTERN + 1):
            x = pivots[x_pos]
            for a_pos in range(x_pos + 1, n):
                a = pivots[a_pos]
                if a.bar_index - x.bar_index > max_pattern_bars:
                    break
                if not _is_valid_xa(x, a, max_pattern_bars):
                    continue
                match = _direct_matches_from_xa(x, a, a_pos, template, pivots)
                if match is not None and _is_more_recent(match, best):
                    best = match
    return best


_SEARCHES: Dict[MatchStrategy, Callable[..., Optional[HarmonicPattern]]] = {
    MatchStrategy.PROJECTED: lambda pivots, catalog, config: search_projected(
        pivots, catalog, config.max_pattern_bars, config.price_tolerance
    ),
    MatchStrategy.DIRECT: lambda pivots, catalog, config: search_direct(
        pivots, catalog, config.max_pattern_bars
    ),
}


def find_pattern(
    pivots: Sequence[Pivot],
    catalog: PatternCatalog,
    config: HarmonicConfig,
) -> Optional[HarmonicPattern]:
    """
    Run one search pass with the strategy selected in `config`.

    Args:
        pivots: Ordered snapshot of the pivot store.
        catalog: Templates to match.
        config: Detection configuration.

    Returns:
        The most recently completed match, or None when nothing matches.
    """
    if len(pivots) < PIVOTS_PER_PATTERN:
        return None
    snapshot: List[Pivot] = list(pivots)
    result = _SEARCHES[config.match_strategy](snapshot, catalog, config)
    logger.debug(
        "%s search over %d pivots: %s",
        config.match_strategy.value, len(snapshot), result if result else "no match",
    )
    return result
