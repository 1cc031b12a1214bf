"""
Pattern Catalog

Fibonacci ratio templates for the classic XABCD formations.

Each template constrains four ratios:

    AB/XA   retracement of XA by B
    BC/AB   retracement of AB by C
    CD/BC   extension of BC by D
    closing retracement of XA by D, measured from A

A constraint is either an exact target with a symmetric relative
tolerance or an inclusive min/max range. The closing leg is tagged XD for
exact templates and AD for range templates; see closing_ratio().
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Union

from .types import Pivot


@dataclass(frozen=True)
class ExactRatio:
    """Target ratio matched when |actual/target - 1| <= tolerance."""
    target: float
    tolerance: float

    def __post_init__(self):
        if self.target <= 0:
            raise ValueError(f"Ratio target must be positive, got {self.target}")
        if self.tolerance <= 0:
            raise ValueError(f"Ratio tolerance must be positive, got {self.tolerance}")

    @property
    def expected(self) -> float:
        return self.target

    def matches(self, value: float) -> bool:
        return abs(value / self.target - 1.0) <= self.tolerance


@dataclass(frozen=True)
class RatioRange:
    """Ratio matched when minimum <= actual <= maximum."""
    minimum: float
    maximum: float

    def __post_init__(self):
        if self.minimum < 0:
            raise ValueError(f"Ratio range minimum cannot be negative, got {self.minimum}")
        if self.minimum > self.maximum:
            raise ValueError(
                f"Ratio range minimum {self.minimum} exceeds maximum {self.maximum}"
            )

    @property
    def expected(self) -> float:
        """Midpoint, used when a range template drives price projection."""
        return (self.minimum + self.maximum) / 2

    def matches(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


RatioConstraint = Union[ExactRatio, RatioRange]


class ClosingLeg(Enum):
    """
    How the closing (fourth) ratio is measured.

    XD: signed price difference (A - D) / (A - X). D beyond A on the far
        side from X gives a negative ratio, which no template accepts.
    AD: magnitude |A - D| / |A - X|, validated against a range.
    """
    XD = "XD"
    AD = "AD"


def closing_ratio(closing_leg: ClosingLeg, x: Pivot, a: Pivot, d: Pivot) -> float:
    """Ratio of D's retracement of the XA leg, measured from A."""
    xa = a.price - x.price
    if xa == 0:
        return float("nan")
    if closing_leg is ClosingLeg.XD:
        return (a.price - d.price) / xa
    return abs(a.price - d.price) / abs(xa)


@dataclass(frozen=True)
class RatioTemplate:
    """
    A named harmonic pattern definition.

    Attributes:
        name: Pattern name ("Gartley", "Bat", ...).
        ab_xa: Constraint on AB / XA.
        bc_ab: Constraint on BC / AB.
        cd_bc: Constraint on CD / BC.
        closing: Constraint on the closing retracement of XA.
        closing_leg: How the closing ratio is measured.
    """
    name: str
    ab_xa: RatioConstraint
    bc_ab: RatioConstraint
    cd_bc: RatioConstraint
    closing: RatioConstraint
    closing_leg: ClosingLeg = ClosingLeg.AD

    def __post_init__(self):
        if not self.name:
            raise ValueError("Ratio template needs a name")
        for leg in (self.ab_xa, self.bc_ab, self.cd_bc, self.closing):
            if not isinstance(leg, (ExactRatio, RatioRange)):
                raise ValueError(f"{self.name}: unsupported constraint {leg!r}")

    def closing_matches(self, x: Pivot, a: Pivot, d: Pivot) -> bool:
        ratio = closing_ratio(self.closing_leg, x, a, d)
        return not math.isnan(ratio) and self.closing.matches(ratio)


class PatternCatalog:
    """
    Read-only, ordered collection of ratio templates.

    Iteration follows insertion order, which is also the order searches try
    templates in.
    """

    def __init__(self, templates: Iterable[RatioTemplate]):
        self._templates: Dict[str, RatioTemplate] = {}
        for template in templates:
            if template.name in self._templates:
                raise ValueError(f"Duplicate template name: {template.name}")
            self._templates[template.name] = template
        if not self._templates:
            raise ValueError("Pattern catalog cannot be empty")

    def __iter__(self) -> Iterator[RatioTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, name: str) -> bool:
        return name in self._templates

    def __getitem__(self, name: str) -> RatioTemplate:
        return self._templates[name]

    @property
    def names(self) -> List[str]:
        return list(self._templates)

    def subset(self, names: Iterable[str]) -> "PatternCatalog":
        """Catalog restricted to the given template names, in catalog order."""
        wanted = set(names)
        unknown = wanted - set(self._templates)
        if unknown:
            raise ValueError(f"Unknown template(s): {', '.join(sorted(unknown))}")
        return PatternCatalog(t for t in self if t.name in wanted)


RANGE_CATALOG = PatternCatalog([
    RatioTemplate(
        "Gartley",
        ab_xa=RatioRange(0.613, 0.623),
        bc_ab=RatioRange(0.382, 0.886),
        cd_bc=RatioRange(1.27, 1.618),
        closing=RatioRange(0.781, 0.791),
    ),
    RatioTemplate(
        "Bat",
        ab_xa=RatioRange(0.382, 0.50),
        bc_ab=RatioRange(0.382, 0.886),
        cd_bc=RatioRange(1.618, 2.618),
        closing=RatioRange(0.881, 0.891),
    ),
    RatioTemplate(
        "Butterfly",
        ab_xa=RatioRange(0.781, 0.791),
        bc_ab=RatioRange(0.382, 0.886),
        cd_bc=RatioRange(1.618, 2.618),
        closing=RatioRange(1.27, 1.618),
    ),
    RatioTemplate(
        "Crab",
        ab_xa=RatioRange(0.382, 0.618),
        bc_ab=RatioRange(0.382, 0.886),
        cd_bc=RatioRange(2.24, 3.618),
        closing=RatioRange(1.613, 1.623),
    ),
])

# Exact targets, chosen so AB - BC + CD lands within tolerance of the
# closing retracement (a projected D can actually complete the pattern).
EXACT_TARGETS = (
    ("Gartley", 0.618, 0.382, 1.618, 0.786),
    ("Bat", 0.5, 0.786, 2.0, 0.886),
    ("Butterfly", 0.786, 0.618, 2.0, 1.27),
    ("Crab", 0.618, 0.786, 3.14, 1.618),
)


def exact_catalog(closing_leg_tolerance: float = 0.05, leg_tolerance: float = 0.05) -> PatternCatalog:
    """
    Build the exact-target catalog.

    Args:
        closing_leg_tolerance: Relative tolerance on the closing XD ratio.
        leg_tolerance: Relative tolerance on AB/XA, BC/AB and CD/BC when the
            catalog is used for direct matching. Projected matching only
            reads the targets of those legs.
    """
    return PatternCatalog(
        RatioTemplate(
            name,
            ab_xa=ExactRatio(ab, leg_tolerance),
            bc_ab=ExactRatio(bc, leg_tolerance),
            cd_bc=ExactRatio(cd, leg_tolerance),
            closing=ExactRatio(closing, closing_leg_tolerance),
            closing_leg=ClosingLeg.XD,
        )
        for name, ab, bc, cd, closing in EXACT_TARGETS
    )


EXACT_CATALOG = exact_catalog()
