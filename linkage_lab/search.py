"""Fold-angle searches: nearest collision-free angle and ring closure."""

from __future__ import annotations

import logging
import math
from typing import Callable, Dict, List, Optional, Tuple

from .assembly import assemble_structure
from .cache import GeometryCache
from .collision import CollisionThresholds, detect_collisions
from .constants import (
    CROSSING_DEDUPE_WINDOW,
    FALLBACK_MAX_ITERATIONS,
    FINE_STEP,
    FINE_WINDOW,
    FULL_TURN,
    MAX_FOLD_ANGLE,
    MIN_FOLD_ANGLE,
    NEAR_TARGET_WINDOW,
    OVERFOLD_TOLERANCE,
    SAFE_SEARCH_RANGE,
    SEARCH_STEP,
)
from .linkage import total_rotation
from .parameters import StructureConfig

log = logging.getLogger(__name__)

__all__ = [
    "ClosedAngleCache",
    "find_safe_fold_angle",
    "find_optimal_closed_angle",
    "closure_crossings",
]

_CLOSURE_TOLERANCE = math.radians(1.0)
_PROBE = math.radians(5.0)


def _in_range(angle: float) -> bool:
    return MIN_FOLD_ANGLE <= angle <= MAX_FOLD_ANGLE


def find_safe_fold_angle(
    config: StructureConfig,
    target: float,
    previous: float | None = None,
    thresholds: CollisionThresholds | None = None,
    cache: GeometryCache | None = None,
) -> Optional[float]:
    """Nearest angle to ``target`` whose assembled structure has no collisions.

    Offsets grow in half-degree steps up to 30 degrees.  At each offset the
    side the user was moving away from is tried first: if ``target`` is
    below ``previous`` the search tries larger angles first.  Pass a
    ``GeometryCache`` built on ``assemble_structure`` to share the solved
    structures with later callers.
    """
    if previous is None:
        directions: Tuple[int, ...] = (-1, 1)
    else:
        d = 1 if target < previous else -1
        directions = (d, -d)

    solver = cache.get if cache is not None else assemble_structure
    steps = int(round(SAFE_SEARCH_RANGE / SEARCH_STEP))
    for k in range(steps + 1):
        offset = k * SEARCH_STEP
        for direction in directions:
            angle = target + offset * direction
            if not _in_range(angle):
                continue
            structure = solver(config, angle)
            if not detect_collisions(structure, thresholds):
                if k:
                    log.info(
                        "Safe fold angle %.1f deg (requested %.1f deg)",
                        math.degrees(angle),
                        math.degrees(target),
                    )
                return angle
            if k == 0:
                break
    log.info("No collision-free fold angle within 30 deg of %.1f deg", math.degrees(target))
    return None


# ---------------------------------------------------------------------------
# Ring closure
# ---------------------------------------------------------------------------


def closure_crossings(rotation: Callable[[float], float]) -> List[float]:
    """Angles where ``rotation`` crosses a full turn, plus near-closed samples.

    Each crossing is interpolated linearly between the bracketing samples.
    A sample within 2 degrees of a full turn is kept too unless a crossing
    already lies within 5 degrees of it.
    """
    crossings: List[float] = []
    prev_angle = MIN_FOLD_ANGLE
    prev_diff = rotation(prev_angle) - FULL_TURN
    steps = int((MAX_FOLD_ANGLE - MIN_FOLD_ANGLE) / SEARCH_STEP + 1e-9)
    for k in range(1, steps + 1):
        angle = MIN_FOLD_ANGLE + k * SEARCH_STEP
        diff = rotation(angle) - FULL_TURN
        if (prev_diff > 0 and diff <= 0) or (prev_diff <= 0 and diff > 0):
            ratio = abs(prev_diff) / (abs(prev_diff) + abs(diff))
            crossings.append(prev_angle + ratio * SEARCH_STEP)
        if abs(diff) < NEAR_TARGET_WINDOW:
            if all(abs(existing - angle) >= CROSSING_DEDUPE_WINDOW for existing in crossings):
                crossings.append(angle)
        prev_angle = angle
        prev_diff = diff
    return crossings


def _walk_towards_closure(rotation: Callable[[float], float], current: float) -> Optional[float]:
    at_current = rotation(current)
    higher = rotation(min(current + _PROBE, MAX_FOLD_ANGLE))
    if at_current > FULL_TURN:
        direction = 1 if higher < at_current else -1
    else:
        direction = 1 if higher > at_current else -1

    angle = current
    for _ in range(FALLBACK_MAX_ITERATIONS):
        angle += direction * SEARCH_STEP
        if not _in_range(angle):
            break
        if abs(rotation(angle) - FULL_TURN) < _CLOSURE_TOLERANCE:
            return angle
    return None


def _refine(rotation: Callable[[float], float], angle: float) -> float:
    best = angle
    best_diff = abs(rotation(angle) - FULL_TURN)
    steps = int(round(FINE_WINDOW / FINE_STEP))
    for k in range(-steps, steps + 1):
        candidate = angle + k * FINE_STEP
        if not _in_range(candidate):
            continue
        diff = abs(rotation(candidate) - FULL_TURN)
        if diff < best_diff:
            best_diff = diff
            best = candidate
    return best


class ClosedAngleCache:
    """Memo of closure crossings for ``find_optimal_closed_angle``.

    Closure depends on the module count, the pivot split and the two skew
    angles only; beam lengths scale the linkage without changing its
    rotation.  The crossing list does not depend on where a search starts,
    so every lookup still picks the crossing nearest its own angle.
    """

    def __init__(self) -> None:
        self._entries: Dict[Tuple[int, float, float, float], List[float]] = {}

    @staticmethod
    def key_for(config: StructureConfig) -> Tuple[int, float, float, float]:
        return (
            config.module_count,
            config.pivot_pct,
            config.hoberman_angle_deg,
            config.pivot_angle_deg,
        )

    def __contains__(self, config: StructureConfig) -> bool:
        return self.key_for(config) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, config: StructureConfig) -> Optional[List[float]]:
        return self._entries.get(self.key_for(config))

    def put(self, config: StructureConfig, crossings: List[float]) -> None:
        self._entries[self.key_for(config)] = list(crossings)

    def invalidate(self) -> None:
        self._entries.clear()


def find_optimal_closed_angle(
    config: StructureConfig,
    current: float,
    cache: ClosedAngleCache | None = None,
) -> Optional[float]:
    """Fold angle at which the chained modules close into a full ring.

    Picks the closure crossing nearest to ``current``; a currently over-folded
    ring only accepts crossings whose rotation is within 5 degrees of a full
    turn.  Without a crossing, walks from ``current`` in the direction that
    approaches closure.  The winner is refined on a 0.1 degree grid.
    Returns None when the ring cannot close.
    """

    def rotation(angle: float) -> float:
        return total_rotation(config, angle)

    crossings = cache.get(config) if cache is not None else None
    if crossings is None:
        crossings = closure_crossings(rotation)
        if cache is not None:
            cache.put(config, crossings)
    else:
        log.debug("Closure crossings cached for %d modules", config.module_count)

    overfolded = rotation(current) > FULL_TURN
    best: Optional[float] = None
    best_distance = math.inf
    for crossing in crossings:
        if overfolded and abs(rotation(crossing) - FULL_TURN) >= OVERFOLD_TOLERANCE:
            continue
        gap = abs(crossing - current)
        if gap < best_distance:
            best_distance = gap
            best = crossing

    if best is None:
        best = _walk_towards_closure(rotation, current)
    if best is not None:
        best = _refine(rotation, best)
        log.info(
            "Ring closes at %.2f deg (total rotation %.2f deg)",
            math.degrees(best),
            math.degrees(rotation(best)),
        )
    else:
        log.info("Ring with %d modules cannot close", config.module_count)
    return best
