"""Shared numeric constants for the linkage engine.

Lengths are inches, angles are radians unless the name says otherwise.
"""

from __future__ import annotations

import math

__all__ = [
    "MIN_FOLD_ANGLE",
    "MAX_FOLD_ANGLE",
    "INCHES_PER_FOOT",
    "MIN_SAFE_DIMENSION",
    "BRACKET_SIZE_MULT",
    "BRACKET_MIN_SIZE",
    "BRACKET_THICKNESS",
    "BOLT_RADIUS",
    "BOLT_HEAD_RADIUS",
    "BOLT_HEAD_HEIGHT",
    "BOLT_EXTRA_LENGTH",
    "FIXED_BEAM_MIN_LENGTH",
    "MIN_UPRIGHT_HEIGHT",
    "PANEL_SEPARATION_BASELINE",
    "TOP_FACE_NORMAL_Y",
    "CONFIG_VERSION",
    "FULL_TURN",
    "SEARCH_STEP",
    "SAFE_SEARCH_RANGE",
    "FINE_STEP",
    "FINE_WINDOW",
    "NEAR_TARGET_WINDOW",
    "CROSSING_DEDUPE_WINDOW",
    "OVERFOLD_TOLERANCE",
    "FALLBACK_MAX_ITERATIONS",
    "MIN_OVERLAP_EDGE",
    "MIN_OVERLAP_VOLUME",
    "ANGULAR_SPACING_FRACTION",
    "BEAM_LENGTH_FRACTION",
]

MIN_FOLD_ANGLE = math.radians(5.0)
MAX_FOLD_ANGLE = math.radians(175.0)
FULL_TURN = 2.0 * math.pi

INCHES_PER_FOOT = 12.0
# Floor for active linkage lengths so a module never collapses to a point.
MIN_SAFE_DIMENSION = 1.0

BRACKET_SIZE_MULT = 1.2
BRACKET_MIN_SIZE = 2.5
BRACKET_THICKNESS = 0.25

BOLT_RADIUS = 0.25
BOLT_HEAD_RADIUS = 0.4
BOLT_HEAD_HEIGHT = 0.15
# Added to the clamped stack thickness for head and nut.
BOLT_EXTRA_LENGTH = 1.0

FIXED_BEAM_MIN_LENGTH = 0.1
# Scissor uprights are only emitted once the rings are this far apart.
MIN_UPRIGHT_HEIGHT = 1.0

# Built-in offset along the face height axis before the user separation.
PANEL_SEPARATION_BASELINE = 4.6
TOP_FACE_NORMAL_Y = 0.7

CONFIG_VERSION = 2

# Angle search.
SEARCH_STEP = math.radians(0.5)
SAFE_SEARCH_RANGE = math.radians(30.0)
FINE_STEP = math.radians(0.1)
FINE_WINDOW = math.radians(2.0)
NEAR_TARGET_WINDOW = math.radians(2.0)
CROSSING_DEDUPE_WINDOW = math.radians(5.0)
OVERFOLD_TOLERANCE = math.radians(5.0)
FALLBACK_MAX_ITERATIONS = 200

# Collision heuristics.
MIN_OVERLAP_EDGE = 0.5
MIN_OVERLAP_VOLUME = 0.25
ANGULAR_SPACING_FRACTION = 0.3
BEAM_LENGTH_FRACTION = 0.8
