"""Beam stack builder.

A stack is a set of parallel beams at one logical position, offset sideways
so that the A and B patterns of a scissor cross over each other.  Ring stacks
offset along +Y by beam thickness; upright stacks offset across the upright
plane by beam width and are re-centred on the true pivot line.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from .geometry import Beam
from .vec3 import (
    UP,
    Vector3,
    add,
    centroid,
    cross,
    dot,
    midpoint,
    norm,
    normalize,
    scale,
    sub,
)

log = logging.getLogger(__name__)

__all__ = [
    "Segment",
    "UprightStack",
    "stack_offsets",
    "build_stack",
    "upright_stack_direction",
    "build_upright_stack",
]

Segment = Tuple[Vector3, Vector3]

_DEFAULT_OFFSET_DIR: Vector3 = (1.0, 0.0, 0.0)


def stack_offsets(count: int, spacing: float, gap: float) -> List[float]:
    """Signed offsets of ``count`` beams of size ``spacing`` centred on zero."""
    total = count * spacing + (count - 1) * gap
    start = -total / 2.0 + spacing / 2.0
    return [start + i * (spacing + gap) for i in range(count)]


def _uses_pattern_a(index: int, reverse: bool) -> bool:
    return (index % 2 != 0) if reverse else (index % 2 == 0)


def build_stack(
    pattern_a: Segment,
    pattern_b: Segment,
    count: int,
    width: float,
    thickness: float,
    gap: float,
    offset_dir: Vector3,
    *,
    module_index: int,
    stack_type: str,
    stack_id: int,
    reverse: bool = False,
) -> List[Beam]:
    """Distribute ``count`` beams along ``offset_dir``, alternating A/B."""
    direction = normalize(offset_dir)
    if norm(direction) < 0.001:
        log.debug("Degenerate stack offset for %s module %d", stack_type, module_index)
        direction = _DEFAULT_OFFSET_DIR

    beams: List[Beam] = []
    for i, offset in enumerate(stack_offsets(count, thickness, gap)):
        is_a = _uses_pattern_a(i, reverse)
        start, end = pattern_a if is_a else pattern_b
        shift = scale(direction, offset)
        beams.append(
            Beam.between(
                add(start, shift),
                add(end, shift),
                width,
                thickness,
                module_index=module_index,
                stack_type=stack_type,
                stack_id=stack_id,
                pattern_id="A" if is_a else "B",
            )
        )
    return beams


def _is_perpendicular(v: Vector3, a: Vector3, b: Vector3, tol: float) -> bool:
    return norm(v) >= 0.1 and abs(dot(v, a)) <= tol and abs(dot(v, b)) <= tol


def upright_stack_direction(dir_a: Vector3, dir_b: Vector3, radial: Vector3) -> Vector3:
    """Unit vector perpendicular to both upright patterns.

    Falls back through progressively cruder constructions when the two
    patterns are (nearly) parallel.
    """
    avg = normalize(scale(add(dir_a, dir_b), 0.5))
    stack = normalize(cross(dir_a, dir_b))
    if norm(stack) < 0.1:
        stack = normalize(cross(radial, avg))

    if not _is_perpendicular(stack, dir_a, dir_b, 0.1):
        stack = normalize(cross(avg, UP))
        if not _is_perpendicular(stack, dir_a, dir_b, 0.1):
            if abs(avg[1]) > 0.9:
                perp: Vector3 = (1.0, 0.0, 0.0)
            elif abs(avg[0]) > 0.9:
                perp = (0.0, 0.0, 1.0)
            else:
                perp = (-avg[2], 0.0, avg[0])
            stack = normalize(sub(perp, scale(avg, dot(perp, avg))))

    for d in (dir_a, dir_b):
        if abs(dot(stack, d)) > 0.01:
            stack = normalize(sub(stack, scale(d, dot(stack, d))))

    if norm(stack) < 0.1:
        stack = normalize(cross(dir_a, UP))
        if norm(stack) < 0.1:
            stack = normalize((-radial[2], radial[1], radial[0]))
    return stack


@dataclass(slots=True, frozen=True)
class UprightStack:
    beams: Tuple[Beam, ...]
    stack_dir: Vector3
    average_dir: Vector3
    center: Vector3


def build_upright_stack(
    bottom_inner: Vector3,
    top_outer: Vector3,
    bottom_outer: Vector3,
    top_inner: Vector3,
    count: int,
    width: float,
    thickness: float,
    gap: float,
    end_offset: float,
    *,
    module_index: int,
    stack_type: str,
    stack_id: int,
    reverse: bool = False,
) -> UprightStack:
    """Build one scissor upright stack between the two rings.

    Pattern A runs bottom-inner to top-outer, pattern B bottom-outer to
    top-inner.  Beams stack along their width and the stack is shifted so the
    mean beam midpoint lands on the centre pivot.  Each beam is lengthened
    by ``end_offset`` past both pivots.
    """
    vec_a = sub(top_outer, bottom_inner)
    vec_b = sub(top_inner, bottom_outer)
    dir_a = normalize(vec_a)
    dir_b = normalize(vec_b)
    mid_a = midpoint(bottom_inner, top_outer)
    mid_b = midpoint(bottom_outer, top_inner)
    avg_dir = normalize(scale(add(dir_a, dir_b), 0.5))

    pivot_bottom = midpoint(bottom_inner, bottom_outer)
    pivot_top = midpoint(top_outer, top_inner)
    center = midpoint(pivot_bottom, pivot_top)

    stack_dir = upright_stack_direction(dir_a, dir_b, normalize(pivot_bottom))
    offsets = stack_offsets(count, width, gap)

    placed = [
        add(mid_a if _uses_pattern_a(i, reverse) else mid_b, scale(stack_dir, off))
        for i, off in enumerate(offsets)
    ]
    to_center = sub(center, centroid(placed))
    centering = scale(stack_dir, dot(to_center, stack_dir))

    beams: List[Beam] = []
    for i, off in enumerate(offsets):
        is_a = _uses_pattern_a(i, reverse)
        if is_a:
            bottom, top, pattern_dir = bottom_inner, top_outer, dir_a
        else:
            bottom, top, pattern_dir = bottom_outer, top_inner, dir_b
        shift = add(centering, scale(stack_dir, off))
        start = add(add(bottom, shift), scale(pattern_dir, -end_offset))
        end = add(add(top, shift), scale(pattern_dir, end_offset))
        beams.append(
            Beam.between(
                start,
                end,
                width,
                thickness,
                module_index=module_index,
                stack_type=stack_type,
                stack_id=stack_id,
                pattern_id="A" if is_a else "B",
            )
        )
    return UprightStack(
        beams=tuple(beams), stack_dir=stack_dir, average_dir=avg_dir, center=center
    )
