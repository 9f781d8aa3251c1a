import math
from dataclasses import replace

from linkage_lab.assembly import assemble_structure, solve
from linkage_lab.geometry import bounds_of
from linkage_lab.orientation import (
    ArchTransform,
    RingTransform,
    apply_array,
    find_arch_feet,
    orient_structure,
)
from linkage_lab.parameters import StructureConfig


ANGLE = math.radians(110)


def _depth(structure):
    lo, hi = bounds_of(p for b in structure.beams for p in (*b.corners, b.start, b.end))
    return hi[2] - lo[2]


def _center_z(structure):
    lo, hi = bounds_of(structure.iter_corners())
    return (lo[2] + hi[2]) / 2


def test_ring_transform_is_identity():
    native = assemble_structure(StructureConfig(), ANGLE)
    assert RingTransform().apply(native) is native
    assert orient_structure(native, StructureConfig()) is native


def test_arch_feet_land_on_the_ground_line():
    config = StructureConfig(orientation="arch")
    native = assemble_structure(config, ANGLE)
    left, right = find_arch_feet(native)
    transform = ArchTransform.for_structure(native, config)
    l2 = transform.point(left)
    r2 = transform.point(right)
    assert math.isclose(l2[1], 0.0, abs_tol=1e-9)
    assert math.isclose(r2[1], 0.0, abs_tol=1e-9)
    assert l2[0] < 0 < r2[0]
    assert math.isclose(l2[0], -r2[0], abs_tol=1e-9)


def test_arch_is_grounded():
    config = StructureConfig(orientation="arch")
    structure = solve(config, ANGLE)
    lo, hi = bounds_of(structure.iter_corners())
    assert structure.orientation == "arch"
    assert math.isclose(lo[1], 0.0, abs_tol=1e-9)
    assert math.isclose(structure.max_height, hi[1])
    assert math.isclose(structure.max_radius, max(abs(c[0]) for c in structure.iter_corners()))


def test_arch_flip_mirrors_height():
    config = StructureConfig(orientation="arch")
    native = assemble_structure(config, ANGLE)
    plain = ArchTransform.for_structure(native, config)
    flipped = ArchTransform.for_structure(native, replace(config, arch_flip_vertical=True))
    p = native.beams[5].end
    a, b = plain.point(p), flipped.point(p)
    assert math.isclose(a[0], b[0])
    assert math.isclose(a[1], -b[1])
    assert math.isclose(a[2], b[2])


def test_arch_feet_prefer_cap_uprights():
    config = StructureConfig(orientation="arch", arch_cap_uprights=True)
    native = assemble_structure(config, ANGLE)
    left, _ = find_arch_feet(native)
    cap_points = {
        p for b in native.beams if b.stack_type == "vertical-cap" for p in (b.start, b.end, *b.corners)
    }
    assert left in cap_points


def test_array_repeats_along_z():
    config = StructureConfig(array_count=3)
    single = solve(replace(config, array_count=1), ANGLE)
    arrayed = solve(config, ANGLE)
    n = len(single.beams)
    assert len(arrayed.beams) == 3 * n
    assert len(arrayed.brackets) == 3 * len(single.brackets)
    assert len(arrayed.bolts) == 3 * len(single.bolts)
    assert len(arrayed.faces) == 3 * len(single.faces)
    assert arrayed.array_count == 3
    assert {b.array_index for b in arrayed.beams} == {0, 1, 2}

    depth = _depth(single)
    for i in range(n):
        first = arrayed.beams[i].start[2]
        second = arrayed.beams[n + i].start[2]
        assert math.isclose(second - first, depth, abs_tol=1e-9)
    lo, hi = bounds_of(arrayed.iter_corners())
    assert math.isclose(lo[2] + hi[2], _center_z(single) * 2, abs_tol=1e-6)


def test_array_of_one_is_unchanged():
    native = assemble_structure(StructureConfig(), ANGLE)
    assert apply_array(native, 1) is native


def test_arch_array_keeps_ground():
    config = StructureConfig(orientation="arch", array_count=2)
    structure = solve(config, ANGLE)
    lo, _ = bounds_of(structure.iter_corners())
    assert math.isclose(lo[1], 0.0, abs_tol=1e-9)
    assert len({f.array_index for f in structure.faces}) == 2


def test_frames_stay_in_native_plane():
    config = StructureConfig(orientation="arch", array_count=2)
    native = assemble_structure(config, ANGLE)
    oriented = solve(config, ANGLE)
    assert oriented.frames == native.frames
    assert oriented.beams[0].start != native.beams[0].start
