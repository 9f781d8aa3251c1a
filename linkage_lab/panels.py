"""Flat panel placement on module faces."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .constants import PANEL_SEPARATION_BASELINE, TOP_FACE_NORMAL_Y
from .geometry import Face, StructureGeometry
from .parameters import PanelLayout
from .vec3 import Vector3, add, scale

log = logging.getLogger(__name__)

__all__ = [
    "Panel",
    "classify_face",
    "place_on_face",
    "place_on_faces",
    "place_panels",
]


@dataclass(slots=True, frozen=True)
class Panel:
    """Rectangular slab; ``axis_y`` is the face normal, ``axis_z`` runs along the length."""

    center: Vector3
    width: float
    length: float
    thickness: float
    axis_x: Vector3
    axis_y: Vector3
    axis_z: Vector3
    corners: Tuple[Vector3, ...]
    face_index: int
    module_index: int
    array_index: int = 0


def classify_face(face: Face) -> str:
    """``"top"`` for roughly horizontal faces, ``"side"`` otherwise."""
    return "top" if abs(face.normal[1]) > TOP_FACE_NORMAL_Y else "side"


def _panel_corners(
    center: Vector3,
    axis_x: Vector3,
    axis_y: Vector3,
    axis_z: Vector3,
    width: float,
    length: float,
    thickness: float,
) -> Tuple[Vector3, ...]:
    hw = width / 2.0
    hl = length / 2.0
    ht = thickness / 2.0
    offsets = ((-hw, -hl), (hw, -hl), (hw, hl), (-hw, hl))
    corners = []
    for t in (-ht, ht):
        for u, v in offsets:
            p = add(center, scale(axis_x, u))
            p = add(p, scale(axis_z, v))
            corners.append(add(p, scale(axis_y, t)))
    return tuple(corners)


def place_on_face(face: Face, layout: PanelLayout) -> List[Panel]:
    """Lay a rows x cols grid of panels on one face.

    The grid centre starts at the face centre and is moved along the height
    axis (separation), the slide axis and finally the normal (lift plus half
    the panel thickness).
    """
    base = add(face.center, scale(face.height_axis, layout.separation_in + PANEL_SEPARATION_BASELINE))
    base = add(base, scale(face.slide_axis, layout.slide_in))
    base = add(base, scale(face.normal, layout.lift_in + layout.panel_thickness_in / 2.0))

    rows, cols = layout.grid_rows, layout.grid_cols
    panels: List[Panel] = []
    for row in range(rows):
        for col in range(cols):
            local_x = (col - (cols - 1) / 2.0) * (layout.panel_width_in + layout.padding_x_in)
            local_y = (row - (rows - 1) / 2.0) * (layout.panel_length_in + layout.padding_y_in)
            center = add(add(base, scale(face.width_axis, local_x)), scale(face.height_axis, local_y))
            panels.append(
                Panel(
                    center=center,
                    width=layout.panel_width_in,
                    length=layout.panel_length_in,
                    thickness=layout.panel_thickness_in,
                    axis_x=face.width_axis,
                    axis_y=face.normal,
                    axis_z=face.height_axis,
                    corners=_panel_corners(
                        center,
                        face.width_axis,
                        face.normal,
                        face.height_axis,
                        layout.panel_width_in,
                        layout.panel_length_in,
                        layout.panel_thickness_in,
                    ),
                    face_index=face.face_index,
                    module_index=face.module_index,
                    array_index=face.array_index,
                )
            )
    return panels


def place_on_faces(faces: Iterable[Face], layout: PanelLayout) -> List[Panel]:
    """Place panels on every face the layout's face mask allows."""
    panels: List[Panel] = []
    for idx, face in enumerate(faces):
        if not layout.face_enabled(idx):
            continue
        panels.extend(place_on_face(face, layout))
    return panels


def place_panels(structure: StructureGeometry, layout: PanelLayout) -> List[Panel]:
    """Panels for a solved structure.

    Arch walls are all "side" faces.  Rings split faces into top and side
    by their normal; each class is gated by its own switch.
    """
    if not layout.enabled:
        return []
    panels: List[Panel] = []
    for idx, face in enumerate(structure.faces):
        if not layout.face_enabled(idx):
            continue
        kind = "side" if structure.orientation == "arch" else classify_face(face)
        if kind == "top" and not layout.top_panels:
            continue
        if kind == "side" and not layout.side_panels:
            continue
        panels.extend(place_on_face(face, layout))
    log.debug("Placed %d panels on %d faces", len(panels), len(structure.faces))
    return panels
