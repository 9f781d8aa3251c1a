import math

import pytest

from linkage_lab.linkage import (
    joints_for_config,
    pivot_span,
    relative_rotation,
    solve_joints,
    total_rotation,
)
from linkage_lab.parameters import StructureConfig


def _close(a, b, tol=1e-9):
    return all(math.isclose(x, y, abs_tol=tol) for x, y in zip(a, b))


def test_joint_lengths_follow_pivot_split():
    joints = solve_joints(math.radians(100), 93.0, 0.415)
    assert math.isclose(joints.active_length, 93.0 * 0.415)
    assert math.isclose(joints.passive_length, 93.0 * 0.585)
    assert math.isclose(math.hypot(*joints.bl), joints.active_length)
    assert math.isclose(math.hypot(*joints.br), joints.active_length)
    assert math.isclose(math.hypot(*joints.tl), joints.passive_length)
    assert math.isclose(math.hypot(*joints.tr), joints.passive_length)


def test_active_length_is_floored():
    joints = solve_joints(math.radians(90), 0.0, 0.5)
    assert math.isclose(joints.active_length, 0.5)
    assert math.isclose(joints.passive_length, 0.5)


def test_negative_fold_mirrors_joints():
    angle = math.radians(70)
    forward = solve_joints(angle, 93.0, 0.415)
    mirrored = solve_joints(-angle, 93.0, 0.415)
    expected = forward.mirrored()
    for got, want in zip(mirrored.as_tuple(), expected.as_tuple()):
        assert _close(got, want)
    assert math.isclose(mirrored.relative_rotation, expected.relative_rotation, abs_tol=1e-12)


def test_centered_pivot_never_rotates():
    for deg in (10, 45, 90, 135, 170):
        joints = solve_joints(math.radians(deg), 93.0, 0.5)
        assert abs(joints.relative_rotation) < 1e-12


def test_relative_rotation_matches_closed_form():
    # With no skew, rotation is -2 * atan(k * tan(fold / 2)).
    active, ratio = 93.0, 0.415
    k = (1 - 2 * ratio)
    for deg in (20, 60, 100, 150):
        half = math.radians(deg) / 2
        expected = -2 * math.atan(k * math.tan(half))
        got = solve_joints(math.radians(deg), active, ratio).relative_rotation
        assert math.isclose(got, expected, abs_tol=1e-9)


def test_total_rotation_rises_through_closure():
    config = StructureConfig()
    totals = [total_rotation(config, math.radians(deg)) for deg in range(120, 176)]
    assert all(later > earlier for earlier, later in zip(totals, totals[1:]))
    assert totals[0] < 2 * math.pi < totals[-1]


def test_skewed_module_turns_past_half_a_revolution():
    # Three modules with a 30 degree pivot skew close near 138.8 degrees and
    # have wound a second full turn by about 161.2 degrees.
    config = StructureConfig(module_count=3, pivot_angle_deg=30.0)
    rel = relative_rotation(config, math.radians(161.21))
    assert abs(rel) > math.pi
    total = total_rotation(config, math.radians(161.21))
    assert math.isclose(total, 4 * math.pi, abs_tol=math.radians(2))


def test_total_rotation_scales_with_modules():
    config = StructureConfig()
    angle = math.radians(100)
    single = abs(relative_rotation(config, angle))
    assert math.isclose(total_rotation(config, angle), single * config.module_count)


def test_rotation_does_not_depend_on_beam_length():
    angle = math.radians(120)
    short = StructureConfig(h_length_ft=4.0)
    long = StructureConfig(h_length_ft=16.0)
    assert math.isclose(relative_rotation(short, angle), relative_rotation(long, angle))


def test_pivot_span_formula():
    config = StructureConfig()
    angle = math.radians(100)
    joints = joints_for_config(config, angle)
    half = angle / 2
    a, p = joints.active_length, joints.passive_length
    expected = math.hypot((a + p) * math.cos(half), (a - p) * math.sin(half))
    assert math.isclose(pivot_span(config, angle), expected)


@pytest.mark.parametrize("deg", [5.0, 90.0, 175.0])
def test_joints_for_config_uses_active_length(deg):
    config = StructureConfig(h_length_ft=8.0, offset_top_in=2.0, offset_bot_in=1.0)
    joints = joints_for_config(config, math.radians(deg))
    assert math.isclose(joints.active_length + joints.passive_length, 96.0 - 3.0)
