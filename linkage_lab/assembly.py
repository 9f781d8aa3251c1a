"""Structure assembler: chains modules into a ring and emits all members.

The native frame has the fold axis along +Y: the bottom ring sits at y=0,
the top ring at ``top_height`` and the 2D solver plane maps to (x, z).
Every module shares one ``JointSet``; module *i+1* is rotated by the
relative rotation and translated so its ``bl`` pivot lands on module *i*'s
``br`` pivot.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, List

from .constants import (
    BOLT_EXTRA_LENGTH,
    BOLT_HEAD_HEIGHT,
    BOLT_HEAD_RADIUS,
    BOLT_RADIUS,
    BRACKET_MIN_SIZE,
    BRACKET_SIZE_MULT,
    BRACKET_THICKNESS,
    FIXED_BEAM_MIN_LENGTH,
    MIN_UPRIGHT_HEIGHT,
)
from .geometry import Beam, Bolt, Bracket, ModuleFrame, StructureGeometry
from .linkage import JointSet, joints_for_config
from .parameters import StructureConfig
from .stacks import build_stack, build_upright_stack
from .vec3 import (
    UP,
    Vector2,
    Vector3,
    add,
    cross,
    distance,
    extend_2d,
    intersect_lines_2d,
    norm,
    normalize,
    rotate_2d,
    scale,
    sub,
)

log = logging.getLogger(__name__)

__all__ = [
    "upright_height",
    "assemble_structure",
    "solve",
]


def upright_height(config: StructureConfig, joints: JointSet) -> float:
    """Clear height between the rings' upright pivots.

    Fixed beams hold the rings a constant vertical beam length apart;
    scissor uprights shrink as the pivot span (``br`` to ``tr``) grows.
    """
    if config.use_fixed_beams:
        return config.v_total_in
    span = math.hypot(joints.tr[0] - joints.br[0], joints.tr[1] - joints.br[1])
    safe_v = config.v_active_in
    if safe_v > span:
        return math.sqrt(safe_v * safe_v - span * span)
    return 0.0


@dataclass(slots=True)
class _Collector:
    beams: List[Beam]
    brackets: List[Bracket]
    bolts: List[Bolt]


def _cross_bolt(pos: Vector3, direction: Vector3, length: float, module_index: int) -> Bolt:
    half = scale(direction, length / 2.0)
    return Bolt(
        start=sub(pos, half),
        end=add(pos, half),
        direction=direction,
        radius=BOLT_RADIUS,
        head_radius=BOLT_HEAD_RADIUS,
        head_height=BOLT_HEAD_HEIGHT,
        module_index=module_index,
    )


def _bracket(
    config: StructureConfig,
    pos: Vector3,
    is_bottom: bool,
    beam_dir: Vector3,
    bolt_dir: Vector3,
    module_index: int,
    is_cap: bool,
) -> Bracket:
    sign = 1.0 if is_bottom else -1.0
    return Bracket(
        position=pos,
        height=config.bracket_offset_in * sign,
        width=max(config.v_beam_width_in * BRACKET_SIZE_MULT, BRACKET_MIN_SIZE),
        depth=max(config.v_beam_thickness_in * BRACKET_SIZE_MULT, BRACKET_MIN_SIZE),
        thickness=BRACKET_THICKNESS,
        beam_dir=beam_dir,
        right=normalize(cross(beam_dir, UP)),
        bolt_dir=bolt_dir,
        extend_dir=(0.0, sign, 0.0),
        is_bottom=is_bottom,
        module_index=module_index,
        is_cap=is_cap,
    )


def _scissor_uprights(
    config: StructureConfig,
    frame: ModuleFrame,
    inner: Vector2,
    outer: Vector2,
    top_height: float,
    module_index: int,
    out: _Collector,
    *,
    cap: bool,
) -> None:
    """Upright stack on one pivot pair with its brackets and cross bolts."""
    y_min = config.bracket_offset_in
    y_max = top_height - config.bracket_offset_in
    bottom_inner = frame.map(inner, y_min)
    top_outer = frame.map(outer, y_max)
    bottom_outer = frame.map(outer, y_min)
    top_inner = frame.map(inner, y_max)

    stack = build_upright_stack(
        bottom_inner,
        top_outer,
        bottom_outer,
        top_inner,
        config.v_stack_count,
        config.v_beam_width_in,
        config.v_beam_thickness_in,
        config.stack_gap_in,
        config.vert_end_offset_in,
        module_index=module_index,
        stack_type="vertical-cap" if cap else "vertical",
        stack_id=-1 if cap else module_index,
        reverse=config.v_stack_reverse,
    )
    out.beams.extend(stack.beams)

    # Brackets sit on the rings themselves, directly under/over the pivots.
    ring_inner_bottom = frame.map(inner, 0.0)
    ring_outer_bottom = frame.map(outer, 0.0)
    ring_inner_top = frame.map(inner, top_height)
    ring_outer_top = frame.map(outer, top_height)
    if cap:
        beam_dir = normalize(
            add(
                normalize(sub(ring_outer_top, ring_inner_bottom)),
                normalize(sub(ring_inner_top, ring_outer_bottom)),
            )
        )
    else:
        beam_dir = stack.average_dir
    for pos, is_bottom in (
        (ring_inner_bottom, True),
        (ring_outer_bottom, True),
        (ring_inner_top, False),
        (ring_outer_top, False),
    ):
        out.brackets.append(
            _bracket(config, pos, is_bottom, beam_dir, stack.stack_dir, module_index, cap)
        )

    bolt_length = config.v_stack_thickness() + BOLT_EXTRA_LENGTH
    for pos in (bottom_inner, bottom_outer, top_outer, top_inner, stack.center):
        out.bolts.append(_cross_bolt(pos, stack.stack_dir, bolt_length, module_index))


def _fixed_beams(
    config: StructureConfig,
    frame: ModuleFrame,
    inner: Vector2,
    outer: Vector2,
    top_height: float,
    module_index: int,
    out: _Collector,
    *,
    cap: bool,
) -> None:
    stack_type = "fixed-beam-cap" if cap else "fixed-beam"
    for k, pivot in enumerate((inner, outer)):
        start = frame.map(pivot, 0.0)
        end = frame.map(pivot, top_height)
        if distance(start, end) <= FIXED_BEAM_MIN_LENGTH:
            continue
        out.beams.append(
            Beam.between(
                start,
                end,
                config.v_beam_width_in,
                config.v_beam_thickness_in,
                module_index=module_index,
                stack_type=stack_type,
                stack_id=(-2 - k) if cap else module_index * 2 + k,
            )
        )


def _ring_bolts(
    config: StructureConfig,
    frame: ModuleFrame,
    visible: Dict[str, Vector2],
    top_height: float,
    module_index: int,
) -> List[Bolt]:
    """Vertical bolts through the ring stacks at the horizontal X crossing."""
    bl, tr, br, tl = visible["bl"], visible["tr"], visible["br"], visible["tl"]
    crossing = intersect_lines_2d(bl, tr, br, tl)
    if crossing is None:
        crossing = (
            (bl[0] + tr[0] + br[0] + tl[0]) / 4.0,
            (bl[1] + tr[1] + br[1] + tl[1]) / 4.0,
        )
    length = config.h_stack_thickness() + BOLT_EXTRA_LENGTH
    return [
        _cross_bolt(frame.map(crossing, height), UP, length, module_index)
        for height in (0.0, top_height)
    ]


def assemble_structure(config: StructureConfig, fold_angle: float) -> StructureGeometry:
    """Build the native (ring-frame) geometry for one fold angle.

    Faces and modules are not populated here; see ``solve``.
    """
    if not math.isfinite(fold_angle):
        raise ValueError("Fold angle must be finite")

    joints = joints_for_config(config, fold_angle)
    z_height = upright_height(config, joints)
    top_height = z_height + 2.0 * config.bracket_offset_in
    visible = {
        "bl": extend_2d(joints.bl, config.offset_bot_in),
        "tr": extend_2d(joints.tr, config.offset_top_in),
        "br": extend_2d(joints.br, config.offset_bot_in),
        "tl": extend_2d(joints.tl, config.offset_top_in),
    }
    scissor = z_height > MIN_UPRIGHT_HEIGHT and not config.use_fixed_beams

    out = _Collector(beams=[], brackets=[], bolts=[])
    frames: List[ModuleFrame] = []
    origin: Vector2 = (0.0, 0.0)
    rotation = 0.0
    max_radius = 0.0

    for i in range(config.module_count):
        frame = ModuleFrame(origin=origin, rotation=rotation)
        frames.append(frame)
        cap = i == 0 and config.arch_cap_uprights

        for height, stack_type, stack_id in (
            (0.0, "horizontal-bottom", i * 2),
            (top_height, "horizontal-top", i * 2 + 1),
        ):
            out.beams.extend(
                build_stack(
                    (frame.map(visible["bl"], height), frame.map(visible["tr"], height)),
                    (frame.map(visible["br"], height), frame.map(visible["tl"], height)),
                    config.h_stack_count,
                    config.h_beam_width_in,
                    config.h_beam_thickness_in,
                    config.stack_gap_in,
                    UP,
                    module_index=i,
                    stack_type=stack_type,
                    stack_id=stack_id,
                )
            )

        if scissor:
            _scissor_uprights(config, frame, joints.br, joints.tr, top_height, i, out, cap=False)
            if cap:
                _scissor_uprights(config, frame, joints.bl, joints.tl, top_height, i, out, cap=True)
        if config.use_fixed_beams:
            _fixed_beams(config, frame, joints.br, joints.tr, top_height, i, out, cap=False)
            if cap:
                _fixed_beams(config, frame, joints.bl, joints.tl, top_height, i, out, cap=True)

        out.bolts.extend(_ring_bolts(config, frame, visible, top_height, i))
        max_radius = max(max_radius, norm(frame.map(visible["tr"], 0.0)))

        next_rotation = rotation + joints.relative_rotation
        here = rotate_2d(joints.br, rotation)
        there = rotate_2d(joints.bl, next_rotation)
        origin = (origin[0] + here[0] - there[0], origin[1] + here[1] - there[1])
        rotation = next_rotation

    max_height = (
        z_height
        + 2.0 * config.bracket_offset_in
        + config.h_beam_thickness_in
        + config.vert_end_offset_in
    )
    log.debug(
        "Assembled %d modules at %.2f deg: %d beams, %d brackets, %d bolts",
        config.module_count,
        math.degrees(fold_angle),
        len(out.beams),
        len(out.brackets),
        len(out.bolts),
    )
    return StructureGeometry(
        beams=tuple(out.beams),
        brackets=tuple(out.brackets),
        bolts=tuple(out.bolts),
        max_radius=max_radius,
        max_height=max_height,
        fold_angle=fold_angle,
        relative_rotation=joints.relative_rotation,
        module_count=config.module_count,
        orientation="ring",
        frames=tuple(frames),
    )


def solve(config: StructureConfig, fold_angle: float) -> StructureGeometry:
    """Assemble, orient, array and derive faces: the full per-angle pipeline."""
    from .faces import build_structure_geometry
    from .orientation import orient_structure

    native = assemble_structure(config, fold_angle)
    oriented = orient_structure(native, config)
    return build_structure_geometry(oriented)
