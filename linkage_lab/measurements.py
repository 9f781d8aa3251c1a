"""Derived build measurements: diameters, actuator stroke and drill layout."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .constants import MAX_FOLD_ANGLE, MIN_FOLD_ANGLE
from .geometry import StructureGeometry, bounds_of
from .linkage import pivot_span
from .parameters import StructureConfig
from .search import ClosedAngleCache, find_optimal_closed_angle

__all__ = [
    "Measurements",
    "ActuatorStroke",
    "DrillLayout",
    "measure_structure",
    "actuator_stroke",
    "drill_layout",
]


@dataclass(slots=True)
class Measurements:
    inner_diameter: float
    outer_diameter: float
    height: float
    span: float

    def to_dict(self) -> dict:
        return {
            "inner_diameter_in": self.inner_diameter,
            "outer_diameter_in": self.outer_diameter,
            "height_in": self.height,
            "span_in": self.span,
        }


def _plane_axes(structure: StructureGeometry) -> Tuple[int, int]:
    """Coordinate indices of the plane the ring lies in."""
    return (0, 1) if structure.orientation == "arch" else (0, 2)


def _farthest_partner(
    points: List[Tuple[float, float]], radii: List[float], anchor: int, accept
) -> Optional[int]:
    best: Optional[int] = None
    best_dist = -math.inf
    ax, ay = points[anchor]
    for i, (x, y) in enumerate(points):
        if i == anchor or not accept(radii[i]):
            continue
        d = math.hypot(x - ax, y - ay)
        if d > best_dist:
            best_dist = d
            best = i
    return best


def measure_structure(structure: StructureGeometry) -> Measurements:
    """Diameters from the ring pivots, height and span from every beam corner.

    Pivots are measured in the ring plane about the centroid of the
    horizontal beams.  The inner diameter pairs the innermost pivot with the
    farthest pivot whose radius is within 120% of the minimum; the outer
    diameter pairs the outermost pivot with the farthest pivot beyond 80% of
    the maximum.
    """
    horizontals = structure.horizontal_beams()
    inner = outer = 0.0
    if horizontals:
        i, j = _plane_axes(structure)
        centers = [b.center for b in horizontals]
        cx = sum(c[i] for c in centers) / len(centers)
        cy = sum(c[j] for c in centers) / len(centers)
        pivots = [(p[i] - cx, p[j] - cy) for b in horizontals for p in (b.start, b.end)]
        radii = [math.hypot(x, y) for x, y in pivots]
        i_min = min(range(len(pivots)), key=radii.__getitem__)
        i_max = max(range(len(pivots)), key=radii.__getitem__)
        min_r, max_r = radii[i_min], radii[i_max]

        partner = _farthest_partner(pivots, radii, i_min, lambda r: r < min_r * 1.2)
        if partner is not None:
            inner = math.dist(pivots[i_min], pivots[partner])
        partner = _farthest_partner(pivots, radii, i_max, lambda r: r > max_r * 0.8)
        if partner is not None:
            outer = math.dist(pivots[i_max], pivots[partner])

    height = span = 0.0
    if structure.beams:
        lo, hi = bounds_of(structure.iter_corners())
        height = hi[1] - lo[1]
        span = hi[0] - lo[0]
    return Measurements(inner_diameter=inner, outer_diameter=outer, height=height, span=span)


# ---------------------------------------------------------------------------
# Actuator and drilling
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ActuatorStroke:
    """Pivot span of the upright stack fully open and fully closed."""

    open_span: float
    closed_span: float
    stroke: float
    closed_angle: float

    def to_dict(self) -> dict:
        return {
            "open_span_in": self.open_span,
            "closed_span_in": self.closed_span,
            "stroke_in": self.stroke,
            "closed_angle_deg": math.degrees(self.closed_angle),
        }


def actuator_stroke(
    config: StructureConfig, cache: ClosedAngleCache | None = None
) -> ActuatorStroke:
    """Open span at the minimum fold angle against the span at closure.

    Rings that cannot close use the maximum fold angle instead.
    """
    open_span = pivot_span(config, MIN_FOLD_ANGLE)
    closed_angle = find_optimal_closed_angle(config, MAX_FOLD_ANGLE, cache)
    if closed_angle is None:
        closed_angle = MAX_FOLD_ANGLE
    closed_span = pivot_span(config, closed_angle)
    return ActuatorStroke(
        open_span=open_span,
        closed_span=closed_span,
        stroke=abs(closed_span - open_span),
        closed_angle=closed_angle,
    )


@dataclass(slots=True)
class DrillLayout:
    """Hole positions measured from the bottom end of each beam, in inches."""

    horizontal_pivot: float
    vertical_holes: Tuple[float, float, float]

    def to_dict(self) -> dict:
        bottom, top, center = self.vertical_holes
        return {
            "horizontal_pivot_in": self.horizontal_pivot,
            "vertical_bottom_in": bottom,
            "vertical_top_in": top,
            "vertical_center_in": center,
        }


def drill_layout(config: StructureConfig) -> DrillLayout:
    v_total = config.v_total_in
    return DrillLayout(
        horizontal_pivot=config.offset_bot_in + config.h_active_in * config.pivot_ratio,
        vertical_holes=(
            config.bracket_offset_in,
            v_total - config.bracket_offset_in,
            v_total / 2.0,
        ),
    )
