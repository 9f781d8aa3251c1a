"""Vector algebra for the linkage engine (pure Python tuples).

3D helpers operate on ``Vector3 = Tuple[float, float, float]`` and 2D helpers
on ``Vector2 = Tuple[float, float]``.  The solver works in a 2D plane; the
assembler lifts that plane into 3D with the fold axis along +Y.
"""

from __future__ import annotations

import math
from typing import Iterable, Tuple

__all__ = [
    "Vector2",
    "Vector3",
    "ZERO",
    "UP",
    "norm",
    "normalize",
    "dot",
    "cross",
    "sub",
    "add",
    "scale",
    "neg",
    "distance",
    "lerp",
    "midpoint",
    "centroid",
    "rotate_2d",
    "extend_2d",
    "norm_2d",
    "intersect_lines_2d",
]

Vector2 = Tuple[float, float]
Vector3 = Tuple[float, float, float]

ZERO: Vector3 = (0.0, 0.0, 0.0)
UP: Vector3 = (0.0, 1.0, 0.0)


def norm(v: Vector3) -> float:
    """Euclidean length of *v*."""
    return math.sqrt(v[0] * v[0] + v[1] * v[1] + v[2] * v[2])


def normalize(v: Vector3) -> Vector3:
    """Unit vector in the direction of *v*, or (0,0,0) if degenerate."""
    n = norm(v)
    if n <= 1e-12:
        return ZERO
    return (v[0] / n, v[1] / n, v[2] / n)


def dot(a: Vector3, b: Vector3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


def cross(a: Vector3, b: Vector3) -> Vector3:
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def sub(a: Vector3, b: Vector3) -> Vector3:
    return (a[0] - b[0], a[1] - b[1], a[2] - b[2])


def add(a: Vector3, b: Vector3) -> Vector3:
    return (a[0] + b[0], a[1] + b[1], a[2] + b[2])


def scale(v: Vector3, s: float) -> Vector3:
    return (v[0] * s, v[1] * s, v[2] * s)


def neg(v: Vector3) -> Vector3:
    return (-v[0], -v[1], -v[2])


def distance(a: Vector3, b: Vector3) -> float:
    return norm(sub(a, b))


def lerp(a: Vector3, b: Vector3, t: float) -> Vector3:
    """Linear interpolation between *a* and *b* at parameter *t*."""
    return (
        a[0] + (b[0] - a[0]) * t,
        a[1] + (b[1] - a[1]) * t,
        a[2] + (b[2] - a[2]) * t,
    )


def midpoint(a: Vector3, b: Vector3) -> Vector3:
    return lerp(a, b, 0.5)


def centroid(points: Iterable[Vector3]) -> Vector3:
    """Arithmetic mean of *points*; (0,0,0) for an empty iterable."""
    sx = sy = sz = 0.0
    count = 0
    for p in points:
        sx += p[0]
        sy += p[1]
        sz += p[2]
        count += 1
    if count == 0:
        return ZERO
    return (sx / count, sy / count, sz / count)


# ---------------------------------------------------------------------------
# 2D helpers (solver plane)
# ---------------------------------------------------------------------------


def rotate_2d(p: Vector2, angle: float) -> Vector2:
    """Rotate *p* counter-clockwise by *angle* radians about the origin."""
    c = math.cos(angle)
    s = math.sin(angle)
    return (p[0] * c - p[1] * s, p[0] * s + p[1] * c)


def norm_2d(p: Vector2) -> float:
    return math.hypot(p[0], p[1])


def extend_2d(p: Vector2, dist: float) -> Vector2:
    """Push *p* radially away from the origin by *dist*."""
    length = norm_2d(p)
    if length == 0:
        return p
    k = 1.0 + dist / length
    return (p[0] * k, p[1] * k)


def intersect_lines_2d(
    a0: Vector2, a1: Vector2, b0: Vector2, b1: Vector2, eps: float = 1e-4
) -> Vector2 | None:
    """Intersection of the infinite lines a0-a1 and b0-b1, or None if parallel."""
    d1x, d1y = a1[0] - a0[0], a1[1] - a0[1]
    d2x, d2y = b1[0] - b0[0], b1[1] - b0[1]
    denom = d1x * d2y - d1y * d2x
    if abs(denom) <= eps:
        return None
    t = ((b0[0] - a0[0]) * d2y - (b0[1] - a0[1]) * d2x) / denom
    return (a0[0] + t * d1x, a0[1] + t * d1y)
