"""Global shape transforms applied after assembly.

Ring mode keeps the native frame.  Arch mode stands the ring up on its two
feet and grounds it; the array step then repeats the result along Z.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Iterable, Optional, Tuple

from .geometry import Beam, StructureGeometry, bounds_of
from .parameters import StructureConfig
from .vec3 import Vector3, centroid, midpoint, sub

log = logging.getLogger(__name__)

__all__ = [
    "RingTransform",
    "ArchTransform",
    "find_arch_feet",
    "apply_array",
    "orient_structure",
]

_CAP_TYPES = ("vertical-cap", "fixed-beam-cap")


def _radius_xz(p: Vector3) -> float:
    return math.hypot(p[0], p[2])


def _outermost(points: Iterable[Vector3]) -> Optional[Vector3]:
    best: Optional[Vector3] = None
    best_radius = -math.inf
    for p in points:
        r = _radius_xz(p)
        if r > best_radius:
            best_radius = r
            best = p
    return best


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


class RingTransform:
    """Identity: the ring stays flat with its fold axis along +Y."""

    def point(self, p: Vector3) -> Vector3:
        return p

    def direction(self, v: Vector3) -> Vector3:
        return v

    def apply(self, structure: StructureGeometry) -> StructureGeometry:
        return structure


def find_arch_feet(structure: StructureGeometry) -> Tuple[Vector3, Vector3]:
    """Outermost pivots of the first and last modules in the native frame.

    Cap uprights, when present, define the left foot instead of the first
    module's ring beams.
    """
    left: Optional[Vector3] = None
    caps = [b for b in structure.beams if b.stack_type in _CAP_TYPES]
    if caps:
        left = _outermost(p for b in caps for p in (b.start, b.end, *b.corners))

    right: Optional[Vector3] = None
    ring = [b for b in structure.beams if b.is_horizontal]
    if len(ring) >= 2:
        first = min(b.module_index for b in ring)
        last = max(b.module_index for b in ring)
        if left is None:
            left = _outermost(
                p for b in ring if b.module_index == first for p in (b.start, b.end)
            )
        right = _outermost(p for b in ring if b.module_index == last for p in (b.start, b.end))

    if left is None or right is None:
        cx, cy, cz = centroid(structure.iter_corners())
        log.debug("Arch feet not found; falling back to the structure centroid")
        left = left or (cx - 10.0, cy, cz)
        right = right or (cx + 10.0, cy, cz)
    return left, right


@dataclass(slots=True, frozen=True)
class ArchTransform:
    """Rotate the feet onto the X axis and tip the ring upright.

    ``(x, y, z) -> (x', z' * flip, -y)`` after centring on the feet midpoint
    and rotating about Y by ``-foot_angle + user_rotation``.
    """

    center: Vector3
    cos_r: float
    sin_r: float
    flip: float

    @classmethod
    def for_structure(cls, structure: StructureGeometry, config: StructureConfig) -> "ArchTransform":
        left, right = find_arch_feet(structure)
        foot_angle = math.atan2(right[2] - left[2], right[0] - left[0])
        rotation = -foot_angle + math.radians(config.arch_rotation_deg)
        return cls(
            center=midpoint(left, right),
            cos_r=math.cos(rotation),
            sin_r=math.sin(rotation),
            flip=-1.0 if config.arch_flip_vertical else 1.0,
        )

    def direction(self, v: Vector3) -> Vector3:
        x2 = v[0] * self.cos_r - v[2] * self.sin_r
        z2 = v[0] * self.sin_r + v[2] * self.cos_r
        return (x2, z2 * self.flip, -v[1])

    def point(self, p: Vector3) -> Vector3:
        return self.direction(sub(p, self.center))

    def apply(self, structure: StructureGeometry) -> StructureGeometry:
        upright = structure.transformed(self.point, self.direction)
        if not upright.beams:
            return replace(upright, orientation="arch")
        lo, _ = bounds_of(upright.iter_corners())
        grounded = upright.translated((0.0, -lo[1], 0.0))
        _, hi = bounds_of(grounded.iter_corners())
        max_abs_x = max(abs(c[0]) for c in grounded.iter_corners())
        return replace(
            grounded,
            orientation="arch",
            max_height=max(hi[1], 0.0),
            max_radius=max_abs_x,
        )


# ---------------------------------------------------------------------------
# Array
# ---------------------------------------------------------------------------


def _depth_z(beams: Iterable[Beam]) -> float:
    lo = math.inf
    hi = -math.inf
    for beam in beams:
        for p in (*beam.corners, beam.start, beam.end):
            lo = min(lo, p[2])
            hi = max(hi, p[2])
    return hi - lo if hi >= lo else 0.0


def apply_array(structure: StructureGeometry, count: int) -> StructureGeometry:
    """Repeat the structure ``count`` times along Z, end to end, centred on Z=0."""
    if count <= 1:
        return structure
    depth = _depth_z(structure.beams)
    start = -(count - 1) * depth / 2.0

    beams = []
    brackets = []
    bolts = []
    for i in range(count):
        offset = start + i * depth

        def shift(p: Vector3, dz: float = offset) -> Vector3:
            return (p[0], p[1], p[2] + dz)

        def keep(v: Vector3) -> Vector3:
            return v

        beams.extend(b.transformed(shift, keep, array_index=i) for b in structure.beams)
        brackets.extend(b.transformed(shift, keep, array_index=i) for b in structure.brackets)
        bolts.extend(b.transformed(shift, keep, array_index=i) for b in structure.bolts)

    log.debug("Arrayed %d copies at %.2f in depth", count, depth)
    return replace(
        structure,
        beams=tuple(beams),
        brackets=tuple(brackets),
        bolts=tuple(bolts),
        modules=(),
        faces=(),
        array_count=count,
    )


def orient_structure(structure: StructureGeometry, config: StructureConfig) -> StructureGeometry:
    """Apply the configured orientation and then the array repeat."""
    if config.is_arch:
        oriented = ArchTransform.for_structure(structure, config).apply(structure)
    else:
        oriented = RingTransform().apply(structure)
    return apply_array(oriented, config.array_count)
