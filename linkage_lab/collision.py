"""Beam-level collision detection on an assembled structure."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .constants import (
    ANGULAR_SPACING_FRACTION,
    BEAM_LENGTH_FRACTION,
    FULL_TURN,
    MIN_OVERLAP_EDGE,
    MIN_OVERLAP_VOLUME,
    OVERFOLD_TOLERANCE,
)
from .geometry import Beam, StructureGeometry
from .vec3 import Vector3, distance

log = logging.getLogger(__name__)

__all__ = [
    "CollisionThresholds",
    "CollisionRecord",
    "Overlap",
    "aabb_overlap",
    "classify_beam",
    "detect_collisions",
]

Bounds = Tuple[Vector3, Vector3]


@dataclass(slots=True, frozen=True)
class CollisionThresholds:
    """Empirical limits of the overlap and over-folding heuristics."""

    min_overlap_edge: float = MIN_OVERLAP_EDGE
    min_overlap_volume: float = MIN_OVERLAP_VOLUME
    angular_spacing_fraction: float = ANGULAR_SPACING_FRACTION
    beam_length_fraction: float = BEAM_LENGTH_FRACTION
    overfold_tolerance: float = OVERFOLD_TOLERANCE


@dataclass(slots=True, frozen=True)
class CollisionRecord:
    beam: Beam
    other: Beam
    type: str
    message: Optional[str] = None


@dataclass(slots=True, frozen=True)
class Overlap:
    x: float
    y: float
    z: float

    @property
    def volume(self) -> float:
        return self.x * self.y * self.z

    @property
    def max_dim(self) -> float:
        return max(self.x, self.y, self.z)

    def significant(self, thresholds: CollisionThresholds) -> bool:
        return (
            self.max_dim > thresholds.min_overlap_edge
            and self.volume > thresholds.min_overlap_volume
        )


def aabb_overlap(a: Bounds, b: Bounds) -> Optional[Overlap]:
    """Overlap extents of two boxes, or None unless all three are positive."""
    extents = [min(a[1][k], b[1][k]) - max(a[0][k], b[0][k]) for k in range(3)]
    if any(e <= 0 for e in extents):
        return None
    return Overlap(*extents)


def classify_beam(bounds: Bounds) -> str:
    """``"vertical"`` when the Y extent exceeds half the larger plan extent."""
    lo, hi = bounds
    y_span = hi[1] - lo[1]
    plan = max(hi[0] - lo[0], hi[2] - lo[2])
    return "vertical" if y_span > plan * 0.5 else "horizontal"


@dataclass(slots=True)
class _Entry:
    beam: Beam
    bounds: Bounds
    angle: float = field(init=False)

    def __post_init__(self) -> None:
        c = self.beam.center
        self.angle = math.atan2(c[2], c[0])


def _angular_distance(a: float, b: float) -> float:
    diff = abs(a % FULL_TURN - b % FULL_TURN)
    return min(diff, FULL_TURN - diff)


def _overfold_records(
    structure: StructureGeometry, total: float
) -> List[CollisionRecord]:
    message = f"Ring over-folded: {math.degrees(total):.1f} deg exceeds 360 deg"
    last = structure.module_count - 1
    first_beams = [b for b in structure.beams if b.module_index == 0 and b.is_horizontal]
    last_beams = [b for b in structure.beams if b.module_index == last and b.is_horizontal]
    records = [
        CollisionRecord(a, b, "geometric-overfold", message)
        for a in first_beams
        for b in last_beams
        if a.is_top == b.is_top
    ]
    if not records and len(structure.beams) >= 2:
        records.append(
            CollisionRecord(structure.beams[0], structure.beams[1], "geometric-overfold", message)
        )
    return records


def _modules_adjacent(a: int, b: int, module_count: int) -> bool:
    diff = abs(a - b)
    return diff <= 1 or diff == module_count - 1


def detect_collisions(
    structure: StructureGeometry,
    thresholds: CollisionThresholds | None = None,
) -> List[CollisionRecord]:
    """Report colliding beam pairs.

    A ring that has turned past a full revolution short-circuits with
    ``geometric-overfold`` records.  Otherwise vertical beams are tested
    against horizontal beams by box overlap, and horizontal beams of
    non-adjacent modules by box overlap or angular proximity
    (``over-folding``).  Beams of different array copies are never paired.
    """
    limits = thresholds or CollisionThresholds()
    total = structure.total_rotation
    if total > FULL_TURN + limits.overfold_tolerance:
        records = _overfold_records(structure, total)
        log.debug("Over-folded ring: %.1f deg", math.degrees(total))
        return records

    vertical: List[_Entry] = []
    horizontal: List[_Entry] = []
    for beam in structure.beams:
        bounds = beam.bounds()
        entry = _Entry(beam, bounds)
        if classify_beam(bounds) == "vertical":
            vertical.append(entry)
        else:
            horizontal.append(entry)

    records: List[CollisionRecord] = []
    for v in vertical:
        for h in horizontal:
            if v.beam.array_index != h.beam.array_index:
                continue
            overlap = aabb_overlap(v.bounds, h.bounds)
            if overlap is not None and overlap.significant(limits):
                records.append(CollisionRecord(v.beam, h.beam, "vertical-horizontal"))

    records.extend(_over_folding(horizontal, structure.module_count, limits))
    return records


def _over_folding(
    horizontal: Sequence[_Entry], module_count: int, limits: CollisionThresholds
) -> List[CollisionRecord]:
    records: List[CollisionRecord] = []
    min_separation = (FULL_TURN / max(module_count, 1)) * limits.angular_spacing_fraction
    for i, h1 in enumerate(horizontal):
        for h2 in horizontal[i + 1 :]:
            if h1.beam.array_index != h2.beam.array_index:
                continue
            if _modules_adjacent(h1.beam.module_index, h2.beam.module_index, module_count):
                continue
            if h1.bounds[1][1] < h2.bounds[0][1] or h2.bounds[1][1] < h1.bounds[0][1]:
                continue

            overlap = aabb_overlap(h1.bounds, h2.bounds)
            if overlap is not None and overlap.significant(limits):
                records.append(CollisionRecord(h1.beam, h2.beam, "over-folding"))
                continue

            if _angular_distance(h1.angle, h2.angle) < min_separation:
                span = max(
                    distance(h1.beam.corners[0], h1.beam.corners[4]),
                    distance(h2.beam.corners[0], h2.beam.corners[4]),
                )
                if distance(h1.beam.center, h2.beam.center) < span * limits.beam_length_fraction:
                    records.append(CollisionRecord(h1.beam, h2.beam, "over-folding"))
    return records
