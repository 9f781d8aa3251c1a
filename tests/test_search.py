import math
from dataclasses import replace

import pytest

from linkage_lab import search
from linkage_lab.assembly import assemble_structure
from linkage_lab.cache import GeometryCache
from linkage_lab.collision import detect_collisions
from linkage_lab.constants import MAX_FOLD_ANGLE, MIN_FOLD_ANGLE
from linkage_lab.linkage import total_rotation
from linkage_lab.parameters import StructureConfig
from linkage_lab.search import (
    ClosedAngleCache,
    closure_crossings,
    find_optimal_closed_angle,
    find_safe_fold_angle,
)


FULL_TURN = 2 * math.pi


class TestClosure:
    """Ring closure search over the fold range."""

    @pytest.mark.parametrize("modules", [3, 4, 6, 8, 12, 16, 24])
    def test_closes_within_a_degree(self, modules):
        config = StructureConfig(module_count=modules)
        angle = find_optimal_closed_angle(config, math.radians(90))
        assert angle is not None
        assert MIN_FOLD_ANGLE <= angle <= MAX_FOLD_ANGLE
        assert abs(total_rotation(config, angle) - FULL_TURN) < math.radians(1)

    def test_default_ring_angle(self):
        angle = find_optimal_closed_angle(StructureConfig(), math.radians(90))
        assert abs(math.degrees(angle) - 135.4) < 0.5

    def test_more_modules_close_earlier(self):
        few = find_optimal_closed_angle(StructureConfig(module_count=6), math.radians(90))
        many = find_optimal_closed_angle(StructureConfig(module_count=16), math.radians(90))
        assert many < few

    def test_overfolded_start_still_closes(self):
        config = StructureConfig()
        assert total_rotation(config, math.radians(170)) > FULL_TURN
        angle = find_optimal_closed_angle(config, math.radians(170))
        assert abs(total_rotation(config, angle) - FULL_TURN) < math.radians(1)

    def test_centered_pivot_cannot_close(self):
        config = StructureConfig(pivot_pct=50.0)
        assert find_optimal_closed_angle(config, math.radians(90)) is None

    def test_closed_ring_is_not_overfolded(self):
        config = StructureConfig()
        angle = find_optimal_closed_angle(config, math.radians(90))
        records = detect_collisions(assemble_structure(config, angle))
        assert not [r for r in records if r.type == "geometric-overfold"]

    def test_second_winding_is_not_a_closure(self):
        config = StructureConfig(module_count=3, pivot_angle_deg=30.0)
        crossings = closure_crossings(lambda angle: total_rotation(config, angle))
        assert any(abs(math.degrees(c) - 138.8) < 1.0 for c in crossings)
        assert not [c for c in crossings if c > math.radians(150)]
        angle = find_optimal_closed_angle(config, math.radians(161))
        assert abs(math.degrees(angle) - 138.8) < 1.0

    def test_crossings_of_synthetic_rotation(self):
        # Steep and linear, crossing a full turn between two samples.
        def rotation(angle):
            return FULL_TURN + 10.0 * (angle - math.radians(90.25))

        crossings = closure_crossings(rotation)
        assert len(crossings) == 1
        assert math.isclose(crossings[0], math.radians(90.25), abs_tol=1e-9)


class TestClosedAngleCache:
    def test_cache_reuses_result(self):
        cache = ClosedAngleCache()
        config = StructureConfig()
        first = find_optimal_closed_angle(config, math.radians(90), cache)
        assert len(cache) == 1 and config in cache
        second = find_optimal_closed_angle(config, math.radians(60), cache)
        assert second == first

    def test_beam_length_shares_entry(self):
        cache = ClosedAngleCache()
        config = StructureConfig()
        find_optimal_closed_angle(config, math.radians(90), cache)
        assert replace(config, h_length_ft=12.0) in cache
        assert replace(config, module_count=9) not in cache

    def test_each_start_picks_its_own_crossing(self, monkeypatch):
        # A rotation curve that closes twice, near 45.25 and 135.25 degrees.
        def rotation(config, angle):
            return FULL_TURN * (1.0 + 0.5 * math.cos(2.0 * (angle - math.radians(90.25))))

        monkeypatch.setattr(search, "total_rotation", rotation)
        cache = ClosedAngleCache()
        config = StructureConfig()
        low = find_optimal_closed_angle(config, math.radians(60), cache)
        high = find_optimal_closed_angle(config, MAX_FOLD_ANGLE, cache)
        assert len(cache) == 1
        assert abs(math.degrees(low) - 45.25) < 0.5
        assert abs(math.degrees(high) - 135.25) < 0.5

    def test_none_is_cached(self):
        cache = ClosedAngleCache()
        config = StructureConfig(pivot_pct=50.0)
        assert find_optimal_closed_angle(config, math.radians(90), cache) is None
        assert config in cache
        cache.invalidate()
        assert len(cache) == 0


class TestSafeAngle:
    def test_result_is_collision_free(self):
        config = StructureConfig(bracket_offset_in=6.0)
        target = math.radians(100)
        angle = find_safe_fold_angle(config, target)
        assert angle is not None
        assert abs(angle - target) <= math.radians(30) + 1e-9
        assert detect_collisions(assemble_structure(config, angle)) == []

    def test_clear_ring_keeps_the_target(self):
        # With three modules every pair is adjacent, so only the uprights and
        # the over-fold check can collide.
        config = StructureConfig(module_count=3, bracket_offset_in=6.0)
        target = math.radians(100)
        assert find_safe_fold_angle(config, target) == target
        assert detect_collisions(assemble_structure(config, target)) == []

    def test_opening_backs_out_of_overfold(self):
        config = StructureConfig(module_count=3, bracket_offset_in=6.0)
        target = math.radians(175)
        assert total_rotation(config, target) > FULL_TURN + math.radians(5)
        angle = find_safe_fold_angle(config, target, previous=math.radians(170))
        assert angle is not None
        assert target - math.radians(30) <= angle < target
        assert total_rotation(config, angle) <= FULL_TURN + math.radians(5)
        assert detect_collisions(assemble_structure(config, angle)) == []

    def test_default_brackets_always_collide(self):
        # Three inch brackets leave the upright ends inside the ring stacks.
        assert find_safe_fold_angle(StructureConfig(), math.radians(100)) is None

    def test_solved_structures_are_shared(self):
        config = StructureConfig(module_count=3, bracket_offset_in=6.0)
        cache = GeometryCache(solver=assemble_structure)
        angle = find_safe_fold_angle(config, math.radians(100), cache=cache)
        assert cache.misses == 1 and cache.hits == 0
        cache.get(config, angle)
        assert cache.hits == 1

    def test_gives_up_when_everything_collides(self, monkeypatch):
        monkeypatch.setattr(search, "detect_collisions", lambda structure, thresholds=None: ["hit"])
        assert find_safe_fold_angle(StructureConfig(), math.radians(100)) is None

    def test_clear_target_is_returned_unchanged(self, monkeypatch):
        monkeypatch.setattr(search, "detect_collisions", lambda structure, thresholds=None: [])
        target = math.radians(100)
        assert find_safe_fold_angle(StructureConfig(), target) == target

    @pytest.mark.parametrize("previous_deg, expected_deg", [(110.0, 101.0), (90.0, 99.0)])
    def test_direction_follows_user_motion(self, monkeypatch, previous_deg, expected_deg):
        target = math.radians(100)

        def fake(structure, thresholds=None):
            clear = abs(structure.fold_angle - target) > math.radians(0.75)
            return [] if clear else ["hit"]

        monkeypatch.setattr(search, "detect_collisions", fake)
        angle = find_safe_fold_angle(StructureConfig(), target, math.radians(previous_deg))
        assert math.isclose(math.degrees(angle), expected_deg, abs_tol=1e-9)

    def test_respects_fold_range(self, monkeypatch):
        seen = []

        def fake(structure, thresholds=None):
            seen.append(structure.fold_angle)
            return ["hit"]

        monkeypatch.setattr(search, "detect_collisions", fake)
        find_safe_fold_angle(StructureConfig(), math.radians(170))
        assert seen and all(MIN_FOLD_ANGLE <= a <= MAX_FOLD_ANGLE for a in seen)
