import math
from dataclasses import replace

import pytest

from linkage_lab.cache import GeometryCache
from linkage_lab.parameters import StructureConfig


class _CountingSolver:
    def __init__(self):
        self.calls = []

    def __call__(self, config, fold_angle):
        self.calls.append((config, fold_angle))
        return ("solved", config.module_count, fold_angle)


def test_hit_returns_same_object():
    solver = _CountingSolver()
    cache = GeometryCache(solver=solver)
    config = StructureConfig()
    first = cache.get(config, 1.5)
    second = cache.get(config, 1.5)
    assert first is second
    assert len(solver.calls) == 1
    assert (cache.hits, cache.misses) == (1, 1)


def test_config_change_misses():
    solver = _CountingSolver()
    cache = GeometryCache(solver=solver)
    config = StructureConfig()
    cache.get(config, 1.5)
    cache.get(replace(config, bracket_offset_in=4.0), 1.5)
    cache.get(config, 1.6)
    assert len(solver.calls) == 3
    assert len(cache) == 3


def test_lru_eviction():
    solver = _CountingSolver()
    cache = GeometryCache(max_entries=2, solver=solver)
    config = StructureConfig()
    cache.get(config, 1.0)
    cache.get(config, 2.0)
    cache.get(config, 1.0)  # refresh 1.0, so 2.0 is the oldest
    cache.get(config, 3.0)
    assert len(cache) == 2
    cache.get(config, 1.0)
    assert len(solver.calls) == 3
    cache.get(config, 2.0)
    assert len(solver.calls) == 4


def test_invalidate():
    solver = _CountingSolver()
    cache = GeometryCache(solver=solver)
    cache.get(StructureConfig(), 1.0)
    cache.invalidate()
    assert len(cache) == 0
    cache.get(StructureConfig(), 1.0)
    assert len(solver.calls) == 2


def test_rejects_empty_cache():
    with pytest.raises(ValueError):
        GeometryCache(max_entries=0)


def test_default_solver_builds_geometry():
    cache = GeometryCache()
    structure = cache.get(StructureConfig(module_count=4), math.radians(120))
    assert len(structure.faces) == 8
