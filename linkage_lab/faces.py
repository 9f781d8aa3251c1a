"""Recover modules and panel faces from the flat beam list."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from .geometry import (
    UPRIGHT_TYPES,
    Beam,
    Face,
    ModuleGeometry,
    StructureGeometry,
)
from .vec3 import (
    Vector3,
    add,
    centroid,
    cross,
    dot,
    neg,
    norm,
    normalize,
    scale,
    sub,
)

log = logging.getLogger(__name__)

__all__ = [
    "resolve_module_beams",
    "build_face",
    "build_modules",
    "build_structure_geometry",
]


def _pick_pair(beams: Sequence[Beam]) -> Optional[Tuple[Beam, Beam]]:
    """Return the (A, B) beams of one ring level.

    Pattern tags decide when both are present; otherwise the beams are
    ordered by centre X and the extremes are taken.
    """
    if len(beams) < 2:
        return None
    a = [b for b in beams if b.pattern_id == "A"]
    b = [b for b in beams if b.pattern_id == "B"]
    if a and b:
        return a[0], b[0]
    ordered = sorted(beams, key=lambda beam: beam.center[0])
    return ordered[0], ordered[-1]


def resolve_module_beams(
    top: Sequence[Beam], bottom: Sequence[Beam]
) -> Optional[Tuple[Tuple[Beam, Beam], Tuple[Beam, Beam]]]:
    """``((topA, topB), (botA, botB))`` for one module, or None if incomplete."""
    top_pair = _pick_pair(top)
    bottom_pair = _pick_pair(bottom)
    if top_pair is None or bottom_pair is None:
        return None
    return top_pair, bottom_pair


def build_face(
    top: Beam,
    bottom: Beam,
    *,
    is_a_face: bool,
    module_index: int,
    face_index: int,
    module_center: Vector3,
    orientation: str,
    array_index: int = 0,
) -> Face:
    """Quad spanned by a top beam and its same-pattern bottom beam.

    The normal is flipped to point away from ``module_center`` measured in
    the plane across the structure axis (XZ for rings, XY for arches).
    """
    same_direction = dot(sub(top.end, top.start), sub(bottom.end, bottom.start)) > 0
    tl, tr = top.start, top.end
    bl, br = (bottom.start, bottom.end) if same_direction else (bottom.end, bottom.start)
    center = centroid((tl, tr, br, bl))

    top_edge = sub(tr, tl)
    bottom_edge = sub(br, bl)
    left_edge = sub(bl, tl)
    right_edge = sub(br, tr)
    width = (norm(top_edge) + norm(bottom_edge)) / 2.0
    height = (norm(left_edge) + norm(right_edge)) / 2.0

    width_axis = normalize(add(top_edge, bottom_edge))
    height_axis = normalize(add(left_edge, right_edge))
    normal = normalize(cross(width_axis, height_axis))

    away = sub(center, module_center)
    if orientation == "arch":
        away = (away[0], away[1], 0.0)
    else:
        away = (away[0], 0.0, away[2])
    if norm(away) > 0.1:
        hint = normalize(away)
    else:
        hint = normalize(add(top.axis_y, bottom.axis_y))

    if dot(normal, hint) < 0:
        normal = neg(normal)
        height_axis = neg(height_axis)

    height_axis = normalize(sub(height_axis, scale(normal, dot(height_axis, normal))))
    width_axis = normalize(cross(height_axis, normal))

    return Face(
        corners=(tl, tr, br, bl),
        center=center,
        width=width,
        height=height,
        width_axis=width_axis,
        height_axis=height_axis,
        normal=normal,
        slide_axis=width_axis,
        module_index=module_index,
        face_index=face_index,
        is_a_face=is_a_face,
        array_index=array_index,
    )


def build_modules(structure: StructureGeometry) -> List[ModuleGeometry]:
    """Group ring beams by array copy and module, two faces per module."""
    top: Dict[Tuple[int, int], List[Beam]] = defaultdict(list)
    bottom: Dict[Tuple[int, int], List[Beam]] = defaultdict(list)
    uprights: Dict[Tuple[int, int], List[Beam]] = defaultdict(list)
    for beam in structure.beams:
        key = (beam.array_index, beam.module_index)
        if beam.stack_type == "horizontal-top":
            top[key].append(beam)
        elif beam.stack_type == "horizontal-bottom":
            bottom[key].append(beam)
        elif beam.stack_type in UPRIGHT_TYPES:
            uprights[key].append(beam)

    modules: List[ModuleGeometry] = []
    face_index = 0
    for key in sorted(set(top) | set(bottom)):
        array_index, module_index = key
        resolved = resolve_module_beams(top.get(key, ()), bottom.get(key, ()))
        if resolved is None:
            log.debug("Module %d (copy %d) lacks a beam pair; no faces", module_index, array_index)
            continue
        (top_a, top_b), (bot_a, bot_b) = resolved
        center = centroid((top_a.center, top_b.center, bot_a.center, bot_b.center))
        faces = tuple(
            build_face(
                t,
                b,
                is_a_face=is_a,
                module_index=module_index,
                face_index=face_index + k,
                module_center=center,
                orientation=structure.orientation,
                array_index=array_index,
            )
            for k, (t, b, is_a) in enumerate(((top_a, bot_a, True), (top_b, bot_b, False)))
        )
        face_index += 2
        modules.append(
            ModuleGeometry(
                index=module_index,
                array_index=array_index,
                top_beams=(top_a, top_b),
                bottom_beams=(bot_a, bot_b),
                uprights=tuple(uprights.get(key, ())),
                faces=faces,
                center=center,
            )
        )
    return modules


def build_structure_geometry(structure: StructureGeometry) -> StructureGeometry:
    """Attach modules, faces and the structure centre to a solved structure."""
    modules = build_modules(structure)
    ring = structure.horizontal_beams()
    center = centroid(b.center for b in ring) if ring else structure.structure_center
    return replace(
        structure,
        modules=tuple(modules),
        faces=tuple(f for m in modules for f in m.faces),
        structure_center=center,
    )
