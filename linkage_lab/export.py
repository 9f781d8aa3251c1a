"""JSON exports of a solved structure.

The geometry file carries everything a renderer needs; the manifest is a
per-beam cut list.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .geometry import Beam, Bolt, Bracket, Face, StructureGeometry
from .panels import Panel
from .vec3 import Vector3

__all__ = [
    "beam_name",
    "serialize_structure",
    "export_geometry",
    "export_manifest",
]

_TYPE_PREFIX = {
    "horizontal-bottom": "HB",
    "horizontal-top": "HT",
    "vertical": "V",
    "vertical-cap": "VC",
    "fixed-beam": "F",
    "fixed-beam-cap": "FC",
}


def _pt(p: Vector3, digits: int = 4) -> List[float]:
    return [round(c, digits) for c in p]


def beam_name(beam: Beam, sequence: int) -> str:
    """Cut-list label, e.g. ``HB-03-A-1`` or ``V-00-B-2``; copies get ``/n``."""
    prefix = _TYPE_PREFIX.get(beam.stack_type, "X")
    name = f"{prefix}-{beam.module_index:02d}-{beam.pattern_id or '-'}-{sequence}"
    if beam.array_index:
        name += f"/{beam.array_index}"
    return name


def _beam_dict(beam: Beam) -> Dict[str, Any]:
    return {
        "start": _pt(beam.start),
        "end": _pt(beam.end),
        "width": beam.width,
        "thickness": beam.thickness,
        "corners": [_pt(c) for c in beam.corners],
        "module_index": beam.module_index,
        "stack_type": beam.stack_type,
        "stack_id": beam.stack_id,
        "pattern_id": beam.pattern_id,
        "array_index": beam.array_index,
    }


def _bracket_dict(bracket: Bracket) -> Dict[str, Any]:
    return {
        "position": _pt(bracket.position),
        "height": bracket.height,
        "width": bracket.width,
        "depth": bracket.depth,
        "beam_dir": _pt(bracket.beam_dir),
        "bolt_dir": _pt(bracket.bolt_dir),
        "extend_dir": _pt(bracket.extend_dir),
        "is_bottom": bracket.is_bottom,
        "is_cap": bracket.is_cap,
        "module_index": bracket.module_index,
        "array_index": bracket.array_index,
    }


def _bolt_dict(bolt: Bolt) -> Dict[str, Any]:
    return {
        "start": _pt(bolt.start),
        "end": _pt(bolt.end),
        "radius": bolt.radius,
        "module_index": bolt.module_index,
        "array_index": bolt.array_index,
    }


def _face_dict(face: Face) -> Dict[str, Any]:
    return {
        "corners": [_pt(c) for c in face.corners],
        "center": _pt(face.center),
        "normal": _pt(face.normal),
        "width": round(face.width, 4),
        "height": round(face.height, 4),
        "module_index": face.module_index,
        "face_index": face.face_index,
        "is_a_face": face.is_a_face,
        "array_index": face.array_index,
    }


def _panel_dict(panel: Panel) -> Dict[str, Any]:
    return {
        "center": _pt(panel.center),
        "corners": [_pt(c) for c in panel.corners],
        "face_index": panel.face_index,
        "module_index": panel.module_index,
    }


def serialize_structure(
    structure: StructureGeometry, panels: Sequence[Panel] = ()
) -> Dict[str, Any]:
    return {
        "fold_angle_deg": round(math.degrees(structure.fold_angle), 4),
        "summary": structure.summary(),
        "structure_center": _pt(structure.structure_center),
        "beams": [_beam_dict(b) for b in structure.beams],
        "brackets": [_bracket_dict(b) for b in structure.brackets],
        "bolts": [_bolt_dict(b) for b in structure.bolts],
        "faces": [_face_dict(f) for f in structure.faces],
        "panels": [_panel_dict(p) for p in panels],
    }


def export_geometry(
    structure: StructureGeometry, destination: Path, panels: Sequence[Panel] = ()
) -> None:
    """Write the solved geometry as JSON."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    payload = serialize_structure(structure, panels)
    destination.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    logging.info("Wrote geometry %s", destination)


def export_manifest(structure: StructureGeometry, destination: Path) -> None:
    """Write per-beam cut metadata as a JSON manifest."""
    counters: Dict[tuple, int] = {}
    manifest = []
    for beam in structure.beams:
        key = (beam.stack_type, beam.module_index, beam.pattern_id, beam.array_index)
        counters[key] = counters.get(key, 0) + 1
        manifest.append(
            {
                "name": beam_name(beam, counters[key]),
                "length": round(beam.length, 3),
                "width": beam.width,
                "thickness": beam.thickness,
                "group": beam.stack_type,
                "module": beam.module_index,
                "pattern": beam.pattern_id,
                "array_index": beam.array_index,
            }
        )
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    logging.info("Wrote manifest %s", destination)
