"""Planar scissor-linkage solver.

One module of the structure is a pair of crossing horizontal beams.  Their
four end pivots are solved analytically from the fold angle: the active
segment of each beam (pivot to inner end) and the passive segment (pivot to
outer end) rotate about the shared crossing point at the origin.

Joint naming follows the module drawn with its crossing at the origin:

* ``bl`` / ``br`` - inner ends (active length) on the left / right side
* ``tl`` / ``tr`` - outer ends (passive length) on the left / right side

Pattern A runs ``bl -> tr``, pattern B runs ``br -> tl``.  Consecutive
modules share a pivot: module *i*'s ``br`` is module *i+1*'s ``bl``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from .constants import MIN_SAFE_DIMENSION
from .parameters import StructureConfig
from .vec3 import Vector2

__all__ = [
    "JointSet",
    "solve_joints",
    "joints_for_config",
    "relative_rotation",
    "total_rotation",
    "pivot_span",
]


@dataclass(slots=True, frozen=True)
class JointSet:
    """Four pivot positions of one module plus the module-to-module rotation."""

    bl: Vector2
    tr: Vector2
    br: Vector2
    tl: Vector2
    relative_rotation: float
    active_length: float
    passive_length: float

    def mirrored(self) -> "JointSet":
        """Reflection about the solver's X axis."""
        def flip(p: Vector2) -> Vector2:
            return (p[0], -p[1])

        return JointSet(
            bl=flip(self.bl),
            tr=flip(self.tr),
            br=flip(self.br),
            tl=flip(self.tl),
            relative_rotation=-self.relative_rotation,
            active_length=self.active_length,
            passive_length=self.passive_length,
        )

    def as_tuple(self) -> Tuple[Vector2, Vector2, Vector2, Vector2]:
        return (self.bl, self.tr, self.br, self.tl)


def solve_joints(
    fold_angle: float,
    active_length: float,
    pivot_ratio: float,
    hoberman_angle: float = 0.0,
    pivot_angle: float = 0.0,
) -> JointSet:
    """Solve the four pivots of one module.

    ``active_length`` is the pivot-to-pivot length of a horizontal beam; it
    is floored at ``MIN_SAFE_DIMENSION``.  ``pivot_ratio`` (0-1) places the
    crossing along the beam.  All angles are radians.

    The relative rotation is the angle from the ``bl -> tl`` edge to the
    ``br -> tr`` edge.  It is left unwrapped: a module that turns past half
    a revolution keeps counting, so the chain total grows through closure
    instead of folding back.
    """
    safe = max(MIN_SAFE_DIMENSION, active_length)
    active = safe * pivot_ratio
    passive = safe * (1.0 - pivot_ratio)
    half = fold_angle / 2.0

    a1_bottom = math.pi - half
    a1_top = -half + hoberman_angle
    a2_bottom = math.pi + half + pivot_angle
    a2_top = half - hoberman_angle + pivot_angle

    bl = (active * math.cos(a1_bottom), active * math.sin(a1_bottom))
    tr = (passive * math.cos(a1_top), passive * math.sin(a1_top))
    br = (active * math.cos(a2_bottom), active * math.sin(a2_bottom))
    tl = (passive * math.cos(a2_top), passive * math.sin(a2_top))

    right = math.atan2(tr[1] - br[1], tr[0] - br[0])
    left = math.atan2(tl[1] - bl[1], tl[0] - bl[0])
    return JointSet(
        bl=bl,
        tr=tr,
        br=br,
        tl=tl,
        relative_rotation=right - left,
        active_length=active,
        passive_length=passive,
    )


def joints_for_config(config: StructureConfig, fold_angle: float) -> JointSet:
    return solve_joints(
        fold_angle,
        config.h_active_in,
        config.pivot_ratio,
        config.hoberman_angle,
        config.pivot_angle,
    )


def relative_rotation(config: StructureConfig, fold_angle: float) -> float:
    return joints_for_config(config, fold_angle).relative_rotation


def total_rotation(config: StructureConfig, fold_angle: float) -> float:
    """Accumulated rotation of the whole chain, ``|relative| * modules``."""
    return abs(relative_rotation(config, fold_angle)) * config.module_count


def pivot_span(config: StructureConfig, fold_angle: float) -> float:
    """Distance between the inner and outer upright pivots (``br`` to ``tr``)."""
    joints = joints_for_config(config, fold_angle)
    return math.hypot(joints.tr[0] - joints.br[0], joints.tr[1] - joints.br[1])
