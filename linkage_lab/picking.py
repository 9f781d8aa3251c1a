"""Ray picking against beam faces (Moller-Trumbore)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Tuple

from .geometry import Beam
from .vec3 import Vector3, add, cross, dot, normalize, scale, sub

__all__ = [
    "Ray",
    "Hit",
    "BeamHit",
    "ray_triangle_intersect",
    "ray_quad_intersect",
    "pick_beam",
]

EPSILON = 1e-7


@dataclass(slots=True, frozen=True)
class Ray:
    origin: Vector3
    direction: Vector3

    @classmethod
    def towards(cls, origin: Vector3, target: Vector3) -> "Ray":
        return cls(origin, normalize(sub(target, origin)))


@dataclass(slots=True, frozen=True)
class Hit:
    t: float
    point: Vector3


@dataclass(slots=True, frozen=True)
class BeamHit:
    beam: Beam
    point: Vector3
    distance: float


def ray_triangle_intersect(ray: Ray, v0: Vector3, v1: Vector3, v2: Vector3) -> Optional[Hit]:
    edge1 = sub(v1, v0)
    edge2 = sub(v2, v0)
    h = cross(ray.direction, edge2)
    a = dot(edge1, h)
    if -EPSILON < a < EPSILON:
        return None

    f = 1.0 / a
    s = sub(ray.origin, v0)
    u = f * dot(s, h)
    if u < 0.0 or u > 1.0:
        return None

    q = cross(s, edge1)
    v = f * dot(ray.direction, q)
    if v < 0.0 or u + v > 1.0:
        return None

    t = f * dot(edge2, q)
    if t <= EPSILON:
        return None
    return Hit(t, add(ray.origin, scale(ray.direction, t)))


def ray_quad_intersect(
    ray: Ray, corners: Sequence[Vector3], indices: Tuple[int, int, int, int]
) -> Optional[Hit]:
    """Test the quad as triangles (0, 1, 2) and (0, 2, 3)."""
    v0, v1, v2, v3 = (corners[i] for i in indices)
    hit = ray_triangle_intersect(ray, v0, v1, v2)
    if hit is not None:
        return hit
    return ray_triangle_intersect(ray, v0, v2, v3)


def pick_beam(ray: Ray, beams: Iterable[Beam]) -> Optional[BeamHit]:
    """Closest beam hit along ``ray``, or None."""
    best: Optional[BeamHit] = None
    best_t = math.inf
    for beam in beams:
        for face in beam.faces:
            hit = ray_quad_intersect(ray, beam.corners, face.indices)
            if hit is not None and hit.t < best_t:
                best_t = hit.t
                best = BeamHit(beam, hit.point, hit.t)
    return best
