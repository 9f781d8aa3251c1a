"""Memoizing wrapper around the structure solvers."""

from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Callable, Tuple

from .assembly import solve
from .geometry import StructureGeometry
from .parameters import StructureConfig

log = logging.getLogger(__name__)

__all__ = ["GeometryCache"]

Solver = Callable[[StructureConfig, float], StructureGeometry]


class GeometryCache:
    """LRU map from ``(config digest, fold angle)`` to solved geometry.

    Results are immutable so a cached structure can be handed to any number
    of callers.  Any change to a config field changes its digest, so a stale
    entry is simply never hit again; ``invalidate`` drops everything.
    """

    def __init__(self, max_entries: int = 32, solver: Solver = solve) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._solver = solver
        self._entries: "OrderedDict[Tuple[str, float], StructureGeometry]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def key_for(config: StructureConfig, fold_angle: float) -> Tuple[str, float]:
        return (config.geometry_key(), float(fold_angle))

    def get(self, config: StructureConfig, fold_angle: float) -> StructureGeometry:
        key = self.key_for(config, fold_angle)
        cached = self._entries.get(key)
        if cached is not None:
            self._entries.move_to_end(key)
            self.hits += 1
            log.debug("Geometry cache hit (%d entries)", len(self._entries))
            return cached

        self.misses += 1
        log.debug("Geometry cache miss (%d entries)", len(self._entries))
        result = self._solver(config, fold_angle)
        self._entries[key] = result
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
        return result

    def invalidate(self) -> None:
        self._entries.clear()
