import math
from dataclasses import replace

import pytest

from linkage_lab.assembly import assemble_structure, solve, upright_height
from linkage_lab.linkage import joints_for_config, pivot_span
from linkage_lab.parameters import StructureConfig


ANGLE = math.radians(100)


def _count(structure, stack_type):
    return sum(1 for b in structure.beams if b.stack_type == stack_type)


def test_member_counts_per_module():
    config = StructureConfig()
    structure = assemble_structure(config, ANGLE)
    n = config.module_count
    assert _count(structure, "horizontal-bottom") == n * config.h_stack_count
    assert _count(structure, "horizontal-top") == n * config.h_stack_count
    assert _count(structure, "vertical") == n * config.v_stack_count
    assert len(structure.brackets) == n * 4
    # Two ring bolts plus five upright cross bolts per module.
    assert len(structure.bolts) == n * 7
    assert len(structure.frames) == n


def test_modules_share_pivots():
    config = StructureConfig(module_count=6)
    joints = joints_for_config(config, ANGLE)
    structure = assemble_structure(config, ANGLE)
    for here, there in zip(structure.frames, structure.frames[1:]):
        a = here.map(joints.br, 0.0)
        b = there.map(joints.bl, 0.0)
        assert math.dist(a, b) < 1e-9
    for here, there in zip(structure.frames, structure.frames[1:]):
        assert math.isclose(there.rotation - here.rotation, joints.relative_rotation)


def test_ring_heights_and_stack_ids():
    config = StructureConfig()
    structure = assemble_structure(config, ANGLE)
    z = upright_height(config, joints_for_config(config, ANGLE))
    top = z + 2 * config.bracket_offset_in
    for beam in structure.beams:
        if beam.stack_type == "horizontal-bottom":
            assert abs(beam.start[1]) <= config.h_stack_thickness() / 2 + 1e-9
            assert beam.stack_id == beam.module_index * 2
        elif beam.stack_type == "horizontal-top":
            assert abs(beam.start[1] - top) <= config.h_stack_thickness() / 2 + 1e-9
            assert beam.stack_id == beam.module_index * 2 + 1
    expected = z + 2 * config.bracket_offset_in + config.h_beam_thickness_in + config.vert_end_offset_in
    assert math.isclose(structure.max_height, expected)
    assert structure.max_radius > 0


def test_upright_height_grows_as_span_shrinks():
    config = StructureConfig()
    low = upright_height(config, joints_for_config(config, math.radians(40)))
    high = upright_height(config, joints_for_config(config, math.radians(140)))
    assert pivot_span(config, math.radians(40)) > pivot_span(config, math.radians(140))
    assert low < high


def test_collapsed_uprights_are_omitted():
    # A short vertical beam cannot bridge the pivot span at all.
    config = StructureConfig(v_length_ft=2.0)
    structure = assemble_structure(config, ANGLE)
    assert _count(structure, "vertical") == 0
    assert structure.brackets == ()
    assert len(structure.bolts) == config.module_count * 2


def test_fixed_beams_replace_uprights():
    config = StructureConfig(use_fixed_beams=True)
    structure = assemble_structure(config, ANGLE)
    assert _count(structure, "vertical") == 0
    fixed = [b for b in structure.beams if b.stack_type == "fixed-beam"]
    assert len(fixed) == config.module_count * 2
    top = config.v_total_in + 2 * config.bracket_offset_in
    for beam in fixed:
        assert math.isclose(beam.length, top)
        assert beam.start[0] == beam.end[0] and beam.start[2] == beam.end[2]
    assert structure.brackets == ()


def test_cap_uprights_on_first_module():
    config = StructureConfig(arch_cap_uprights=True)
    structure = assemble_structure(config, ANGLE)
    caps = [b for b in structure.beams if b.stack_type == "vertical-cap"]
    assert len(caps) == config.v_stack_count
    assert all(b.module_index == 0 and b.stack_id == -1 for b in caps)
    assert sum(1 for b in structure.brackets if b.is_cap) == 4

    fixed = assemble_structure(replace(config, use_fixed_beams=True), ANGLE)
    fixed_caps = [b for b in fixed.beams if b.stack_type == "fixed-beam-cap"]
    assert sorted(b.stack_id for b in fixed_caps) == [-3, -2]


def test_brackets_extend_toward_the_other_ring():
    structure = assemble_structure(StructureConfig(), ANGLE)
    for bracket in structure.brackets:
        if bracket.is_bottom:
            assert bracket.height > 0 and bracket.extend_dir == (0.0, 1.0, 0.0)
        else:
            assert bracket.height < 0 and bracket.extend_dir == (0.0, -1.0, 0.0)


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), -float("inf")])
def test_non_finite_angle_rejected(bad):
    with pytest.raises(ValueError):
        assemble_structure(StructureConfig(), bad)


def test_solve_attaches_faces():
    config = StructureConfig()
    structure = solve(config, ANGLE)
    assert len(structure.modules) == config.module_count
    assert len(structure.faces) == 2 * config.module_count
    assert structure.summary()["faces"] == 2 * config.module_count
