"""Immutable geometry records produced by every solve.

Beams, brackets, bolts and faces are value objects.  Transforms never mutate
them; ``transformed`` returns a new record with points mapped by one callable
and directions by another (directions skip translation).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import math
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from .vec3 import (
    UP,
    Vector2,
    Vector3,
    add,
    cross,
    distance,
    midpoint,
    neg,
    normalize,
    rotate_2d,
    scale,
    sub,
)

__all__ = [
    "PointMap",
    "HORIZONTAL_TYPES",
    "UPRIGHT_TYPES",
    "BeamFace",
    "Beam",
    "Bracket",
    "Bolt",
    "Face",
    "ModuleGeometry",
    "ModuleFrame",
    "StructureGeometry",
    "bounds_of",
]

PointMap = Callable[[Vector3], Vector3]

HORIZONTAL_TYPES = ("horizontal-bottom", "horizontal-top")
# Uprights that belong to a module's face set (caps are excluded).
UPRIGHT_TYPES = ("vertical", "fixed-beam")

# Quad index order per face: -Z, +Z, -Y, +Y, -X, +X in beam-local axes.
_FACE_INDICES: Tuple[Tuple[int, int, int, int], ...] = (
    (0, 3, 2, 1),
    (4, 5, 6, 7),
    (0, 1, 5, 4),
    (3, 7, 6, 2),
    (0, 4, 7, 3),
    (1, 2, 6, 5),
)


def bounds_of(points: Iterable[Vector3]) -> Tuple[Vector3, Vector3]:
    """Axis-aligned bounding box ``(min, max)`` of *points*."""
    it = iter(points)
    first = next(it)
    lo = list(first)
    hi = list(first)
    for p in it:
        for k in range(3):
            if p[k] < lo[k]:
                lo[k] = p[k]
            elif p[k] > hi[k]:
                hi[k] = p[k]
    return (lo[0], lo[1], lo[2]), (hi[0], hi[1], hi[2])


# ---------------------------------------------------------------------------
# Beams
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class BeamFace:
    indices: Tuple[int, int, int, int]
    normal: Vector3


@dataclass(slots=True, frozen=True)
class Beam:
    """Oriented rectangular prism between two endpoints.

    ``axis_z`` runs along the beam, ``axis_x`` spans the width and ``axis_y``
    the thickness.  Corners 0-3 surround ``start`` and 4-7 surround ``end``.
    """

    start: Vector3
    end: Vector3
    width: float
    thickness: float
    axis_x: Vector3
    axis_y: Vector3
    axis_z: Vector3
    corners: Tuple[Vector3, ...]
    faces: Tuple[BeamFace, ...]
    module_index: int = -1
    stack_type: str = "unknown"
    stack_id: int = -1
    pattern_id: Optional[str] = None
    array_index: int = 0

    @classmethod
    def between(
        cls,
        start: Vector3,
        end: Vector3,
        width: float,
        thickness: float,
        *,
        module_index: int = -1,
        stack_type: str = "unknown",
        stack_id: int = -1,
        pattern_id: Optional[str] = None,
    ) -> "Beam":
        axis_z = normalize(sub(end, start))
        up = UP if abs(axis_z[1]) <= 0.99 else (1.0, 0.0, 0.0)
        axis_x = normalize(cross(axis_z, up))
        axis_y = normalize(cross(axis_x, axis_z))

        hw = width / 2.0
        ht = thickness / 2.0
        offsets = ((-hw, -ht), (hw, -ht), (hw, ht), (-hw, ht))
        corners = tuple(
            add(add(anchor, scale(axis_x, u)), scale(axis_y, v))
            for anchor in (start, end)
            for u, v in offsets
        )
        normals = (neg(axis_z), axis_z, neg(axis_y), axis_y, neg(axis_x), axis_x)
        faces = tuple(BeamFace(idx, n) for idx, n in zip(_FACE_INDICES, normals))
        return cls(
            start=start,
            end=end,
            width=width,
            thickness=thickness,
            axis_x=axis_x,
            axis_y=axis_y,
            axis_z=axis_z,
            corners=corners,
            faces=faces,
            module_index=module_index,
            stack_type=stack_type,
            stack_id=stack_id,
            pattern_id=pattern_id,
        )

    @property
    def center(self) -> Vector3:
        return midpoint(self.start, self.end)

    @property
    def length(self) -> float:
        return distance(self.start, self.end)

    @property
    def is_horizontal(self) -> bool:
        return self.stack_type in HORIZONTAL_TYPES

    @property
    def is_top(self) -> bool:
        return self.stack_type == "horizontal-top"

    def bounds(self) -> Tuple[Vector3, Vector3]:
        return bounds_of(self.corners)

    def transformed(self, point: PointMap, direction: PointMap, **changes: Any) -> "Beam":
        return replace(
            self,
            start=point(self.start),
            end=point(self.end),
            axis_x=direction(self.axis_x),
            axis_y=direction(self.axis_y),
            axis_z=direction(self.axis_z),
            corners=tuple(point(c) for c in self.corners),
            faces=tuple(BeamFace(f.indices, direction(f.normal)) for f in self.faces),
            **changes,
        )


# ---------------------------------------------------------------------------
# Fasteners
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Bracket:
    """Box bracket joining a ring to an upright stack at one pivot.

    ``height`` is the signed extent along ``extend_dir`` (positive for the
    bottom ring, which extends upward in the native frame).
    """

    position: Vector3
    height: float
    width: float
    depth: float
    thickness: float
    beam_dir: Vector3
    right: Vector3
    bolt_dir: Vector3
    extend_dir: Vector3
    is_bottom: bool
    module_index: int
    is_cap: bool = False
    array_index: int = 0

    def transformed(self, point: PointMap, direction: PointMap, **changes: Any) -> "Bracket":
        return replace(
            self,
            position=point(self.position),
            beam_dir=direction(self.beam_dir),
            right=direction(self.right),
            bolt_dir=direction(self.bolt_dir),
            extend_dir=direction(self.extend_dir),
            **changes,
        )


@dataclass(slots=True, frozen=True)
class Bolt:
    start: Vector3
    end: Vector3
    direction: Vector3
    radius: float
    head_radius: float
    head_height: float
    module_index: int
    array_index: int = 0

    @property
    def center(self) -> Vector3:
        return midpoint(self.start, self.end)

    @property
    def length(self) -> float:
        return distance(self.start, self.end)

    def transformed(self, point: PointMap, direction: PointMap, **changes: Any) -> "Bolt":
        return replace(
            self,
            start=point(self.start),
            end=point(self.end),
            direction=direction(self.direction),
            **changes,
        )


# ---------------------------------------------------------------------------
# Faces and modules
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Face:
    """Planar quad spanned by a top beam and the bottom beam of the same pattern.

    Corners are ordered ``(tl, tr, br, bl)``.  ``normal`` points away from the
    owning module's centroid; ``slide_axis`` equals the width axis and is what
    moves the A and B panel sets apart.
    """

    corners: Tuple[Vector3, Vector3, Vector3, Vector3]
    center: Vector3
    width: float
    height: float
    width_axis: Vector3
    height_axis: Vector3
    normal: Vector3
    slide_axis: Vector3
    module_index: int
    face_index: int
    is_a_face: bool
    array_index: int = 0

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(slots=True, frozen=True)
class ModuleGeometry:
    index: int
    array_index: int
    top_beams: Tuple[Beam, Beam]
    bottom_beams: Tuple[Beam, Beam]
    uprights: Tuple[Beam, ...]
    faces: Tuple[Face, ...]
    center: Vector3


@dataclass(slots=True, frozen=True)
class ModuleFrame:
    """Placement of one module in the native ring plane.

    Frames stay in solver coordinates: orientation and array copies move the
    3D primitives only, so ``map`` always reproduces the unoriented assembly.
    """

    origin: Vector2
    rotation: float

    def map(self, p: Vector2, height: float) -> Vector3:
        rx, rz = rotate_2d(p, self.rotation)
        return (self.origin[0] + rx, height, self.origin[1] + rz)


# ---------------------------------------------------------------------------
# Whole structure
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class StructureGeometry:
    """Everything one solve produces.  Owned by the caller, never shared."""

    beams: Tuple[Beam, ...]
    brackets: Tuple[Bracket, ...]
    bolts: Tuple[Bolt, ...]
    max_radius: float
    max_height: float
    fold_angle: float
    relative_rotation: float
    module_count: int
    orientation: str = "ring"
    frames: Tuple[ModuleFrame, ...] = ()  # native plane, see ModuleFrame
    modules: Tuple[ModuleGeometry, ...] = ()
    faces: Tuple[Face, ...] = ()
    structure_center: Vector3 = (0.0, 0.0, 0.0)
    array_count: int = 1

    @property
    def total_rotation(self) -> float:
        return abs(self.relative_rotation) * self.module_count

    def horizontal_beams(self) -> List[Beam]:
        return [b for b in self.beams if b.is_horizontal]

    def iter_corners(self) -> Iterator[Vector3]:
        for beam in self.beams:
            yield from beam.corners

    def transformed(self, point: PointMap, direction: PointMap) -> "StructureGeometry":
        """Map beams and fasteners.

        ``frames`` keep native coordinates; faces and modules must be rebuilt
        afterwards.
        """
        return replace(
            self,
            beams=tuple(b.transformed(point, direction) for b in self.beams),
            brackets=tuple(b.transformed(point, direction) for b in self.brackets),
            bolts=tuple(b.transformed(point, direction) for b in self.bolts),
            modules=(),
            faces=(),
        )

    def translated(self, offset: Vector3) -> "StructureGeometry":
        return self.transformed(lambda p: add(p, offset), lambda v: v)

    def summary(self) -> Dict[str, Any]:
        counts: Dict[str, int] = {}
        for beam in self.beams:
            counts[beam.stack_type] = counts.get(beam.stack_type, 0) + 1
        return {
            "orientation": self.orientation,
            "modules": self.module_count,
            "array_count": self.array_count,
            "beams": len(self.beams),
            "beams_by_type": counts,
            "brackets": len(self.brackets),
            "bolts": len(self.bolts),
            "faces": len(self.faces),
            "max_radius": round(self.max_radius, 3),
            "max_height": round(self.max_height, 3),
            "total_rotation_deg": round(math.degrees(self.total_rotation), 3),
        }


