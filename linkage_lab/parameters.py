"""Configuration records and layered parameter loading for the linkage engine.

Parameters are resolved in two layers, lowest to highest precedence:

1. JSON file (primary) - persisted project configuration.
2. CLI overrides - runtime tweaks for headless runs.

``StructureConfig`` is the immutable engine input.  Panel layout, cost rates
and the requested fold angle live in sibling records so that the solver never
sees anything it does not need.  Everything here is pure Python.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
import hashlib
import json
import logging
import math

from .constants import CONFIG_VERSION, INCHES_PER_FOOT, MIN_SAFE_DIMENSION

__all__ = [
    "ORIENTATIONS",
    "StructureConfig",
    "PanelLayout",
    "CostRates",
    "LinkageParameters",
    "load_json_config",
    "apply_overrides",
    "parse_cli_overrides",
    "load_parameters",
]

ORIENTATIONS = ("ring", "arch")

# Fields of StructureConfig that are persisted under the "mode" group.
_MODE_FIELDS = (
    "orientation",
    "arch_flip_vertical",
    "arch_rotation_deg",
    "arch_cap_uprights",
    "use_fixed_beams",
    "array_count",
)


def _check_range(label: str, value: float, lo: float, hi: float) -> None:
    if not math.isfinite(value):
        raise ValueError(f"{label} must be a finite number")
    if not lo <= value <= hi:
        raise ValueError(f"{label} must be within [{lo:g}, {hi:g}], got {value:g}")


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class StructureConfig:
    """Geometry-affecting parameters of one linkage structure.

    Lengths of the beams are in feet, every other dimension in inches and the
    skew angles in degrees.  The instance is immutable; derive variants with
    ``dataclasses.replace``.
    """

    module_count: int = 8
    h_length_ft: float = 8.0
    v_length_ft: float = 8.0
    pivot_pct: float = 41.5
    hoberman_angle_deg: float = 0.0
    pivot_angle_deg: float = 0.0
    h_stack_count: int = 2
    v_stack_count: int = 3
    v_stack_reverse: bool = False
    offset_top_in: float = 1.5
    offset_bot_in: float = 1.5
    vert_end_offset_in: float = 1.5
    bracket_offset_in: float = 3.0
    stack_gap_in: float = 0.0
    h_beam_width_in: float = 3.5
    h_beam_thickness_in: float = 1.5
    v_beam_width_in: float = 1.5
    v_beam_thickness_in: float = 3.5

    # Global shape
    orientation: str = "ring"
    arch_flip_vertical: bool = False
    arch_rotation_deg: float = 0.0
    arch_cap_uprights: bool = False
    use_fixed_beams: bool = False
    array_count: int = 1

    def validate(self) -> None:
        if int(self.module_count) != self.module_count or not 1 <= self.module_count <= 40:
            raise ValueError("Module count must be an integer within [1, 40]")
        _check_range("Horizontal beam length", self.h_length_ft, 2, 24)
        _check_range("Vertical beam length", self.v_length_ft, 2, 24)
        _check_range("Pivot percentage", self.pivot_pct, 0, 100)
        _check_range("Hoberman angle", self.hoberman_angle_deg, -90, 90)
        _check_range("Pivot angle", self.pivot_angle_deg, -180, 180)
        for label, count in (
            ("Horizontal stack count", self.h_stack_count),
            ("Vertical stack count", self.v_stack_count),
        ):
            if int(count) != count or not 1 <= count <= 6:
                raise ValueError(f"{label} must be an integer within [1, 6]")
        _check_range("Top offset", self.offset_top_in, 0, 48)
        _check_range("Bottom offset", self.offset_bot_in, 0, 48)
        _check_range("Vertical end offset", self.vert_end_offset_in, 0, 24)
        _check_range("Bracket offset", self.bracket_offset_in, 0, 12)
        _check_range("Stack gap", self.stack_gap_in, -2, 1)
        _check_range("Horizontal beam width", self.h_beam_width_in, 0.5, 12)
        _check_range("Horizontal beam thickness", self.h_beam_thickness_in, 0.5, 12)
        _check_range("Vertical beam width", self.v_beam_width_in, 0.5, 12)
        _check_range("Vertical beam thickness", self.v_beam_thickness_in, 0.5, 12)
        if self.orientation not in ORIENTATIONS:
            raise ValueError(f"Orientation must be one of {', '.join(ORIENTATIONS)}")
        _check_range("Arch rotation", self.arch_rotation_deg, -180, 180)
        if int(self.array_count) != self.array_count or not 1 <= self.array_count <= 20:
            raise ValueError("Array count must be an integer within [1, 20]")

    # -- derived dimensions (inches / radians) ------------------------------

    @property
    def h_total_in(self) -> float:
        return self.h_length_ft * INCHES_PER_FOOT

    @property
    def h_active_in(self) -> float:
        """Pivot-to-pivot length of a horizontal beam."""
        return self.h_total_in - self.offset_top_in - self.offset_bot_in

    @property
    def v_total_in(self) -> float:
        return self.v_length_ft * INCHES_PER_FOOT

    @property
    def v_active_in(self) -> float:
        return max(MIN_SAFE_DIMENSION, self.v_total_in - 2 * self.vert_end_offset_in)

    @property
    def pivot_ratio(self) -> float:
        return self.pivot_pct / 100.0

    @property
    def hoberman_angle(self) -> float:
        return math.radians(self.hoberman_angle_deg)

    @property
    def pivot_angle(self) -> float:
        return math.radians(self.pivot_angle_deg)

    @property
    def is_arch(self) -> bool:
        return self.orientation == "arch"

    def h_stack_thickness(self) -> float:
        """Total depth of one horizontal stack along +Y."""
        n = self.h_stack_count
        return n * self.h_beam_thickness_in + (n - 1) * self.stack_gap_in

    def v_stack_thickness(self) -> float:
        """Total width of one upright stack (uprights stack along their width)."""
        n = self.v_stack_count
        return n * self.v_beam_width_in + (n - 1) * self.stack_gap_in

    def geometry_key(self) -> str:
        """Stable digest of every field; equal configs share a key."""
        payload = json.dumps(asdict(self), sort_keys=True)
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Panels and costs
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class PanelLayout:
    """Grid of flat panels placed on every enabled face."""

    enabled: bool = False
    panel_length_in: float = 65.0
    panel_width_in: float = 39.0
    panel_thickness_in: float = 1.5
    padding_x_in: float = 2.0
    padding_y_in: float = 2.0
    grid_rows: int = 2
    grid_cols: int = 2
    rated_watts: float = 400.0
    lift_in: float = 2.0
    slide_in: float = 0.5
    separation_in: float = 0.0
    top_panels: bool = True
    side_panels: bool = True
    face_mask: Optional[Tuple[bool, ...]] = None

    def __post_init__(self) -> None:
        if self.face_mask is not None and not isinstance(self.face_mask, tuple):
            object.__setattr__(self, "face_mask", tuple(bool(v) for v in self.face_mask))

    def validate(self) -> None:
        for label, value in (
            ("Panel length", self.panel_length_in),
            ("Panel width", self.panel_width_in),
            ("Panel thickness", self.panel_thickness_in),
        ):
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{label} must be positive")
        _check_range("Panel padding X", self.padding_x_in, 0, 24)
        _check_range("Panel padding Y", self.padding_y_in, 0, 24)
        if self.grid_rows < 1 or self.grid_cols < 1:
            raise ValueError("Panel grid must have at least one row and column")
        _check_range("Rated watts", self.rated_watts, 0, 5000)
        _check_range("Panel lift", self.lift_in, -24, 48)
        _check_range("Panel slide", self.slide_in, -48, 48)
        _check_range("Panel separation", self.separation_in, -48, 48)

    def face_enabled(self, index: int) -> bool:
        mask = self.face_mask
        if mask is None or index >= len(mask):
            return True
        return bool(mask[index])

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["face_mask"] = list(self.face_mask) if self.face_mask is not None else None
        return data


@dataclass(slots=True, frozen=True)
class CostRates:
    """Unit prices used by the bill of materials."""

    h_beam: float = 12.0
    v_beam: float = 10.0
    bolt: float = 0.75
    bracket: float = 5.0
    solar_panel: float = 150.0

    def validate(self) -> None:
        _check_range("Horizontal beam cost", self.h_beam, 0, 1000)
        _check_range("Vertical beam cost", self.v_beam, 0, 1000)
        _check_range("Bolt cost", self.bolt, 0, 1000)
        _check_range("Bracket cost", self.bracket, 0, 1000)
        _check_range("Solar panel cost", self.solar_panel, 0, 10000)


# ---------------------------------------------------------------------------
# Aggregate project parameters
# ---------------------------------------------------------------------------

_GROUPS: Tuple[Tuple[str, type], ...] = (
    ("structure", StructureConfig),
    ("panels", PanelLayout),
    ("costs", CostRates),
)


def _field_names(cls: type) -> Tuple[str, ...]:
    return tuple(f.name for f in fields(cls))


@dataclass(slots=True)
class LinkageParameters:
    """Everything a headless run needs: structure, panels, costs, fold angle.

    ``fold_angle_deg`` is in degrees (the persisted convention); ``None``
    means "use the optimal closed angle".
    """

    structure: StructureConfig = field(default_factory=StructureConfig)
    panels: PanelLayout = field(default_factory=PanelLayout)
    costs: CostRates = field(default_factory=CostRates)
    fold_angle_deg: float | None = None

    def validate(self) -> None:
        self.structure.validate()
        self.panels.validate()
        self.costs.validate()
        if self.fold_angle_deg is not None:
            _check_range("Fold angle", self.fold_angle_deg, 5, 175)

    @property
    def fold_angle(self) -> float | None:
        if self.fold_angle_deg is None:
            return None
        return math.radians(self.fold_angle_deg)

    def to_flat_dict(self) -> Dict[str, Any]:
        """Single-level mapping of every field name to its value."""
        flat: Dict[str, Any] = {}
        flat.update(self.structure.to_dict())
        flat.update(self.panels.to_dict())
        flat.update(asdict(self.costs))
        flat["fold_angle_deg"] = self.fold_angle_deg
        return flat

    def to_dict(self) -> Dict[str, Any]:
        """Versioned nested form grouped by structure/mode/panels/costs."""
        structure = self.structure.to_dict()
        mode = {key: structure.pop(key) for key in _MODE_FIELDS}
        return {
            "version": CONFIG_VERSION,
            "structure": structure,
            "mode": mode,
            "panels": self.panels.to_dict(),
            "costs": asdict(self.costs),
            "fold_angle_deg": self.fold_angle_deg,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LinkageParameters":
        """Build from the nested form, or from a flat (version 1) mapping."""
        version = int(data.get("version", 1))
        if version > CONFIG_VERSION:
            raise ValueError(
                f"Config version {version} is newer than supported version {CONFIG_VERSION}"
            )
        if version >= 2:
            flat: Dict[str, Any] = {}
            for group in ("structure", "mode", "panels", "costs"):
                section = data.get(group) or {}
                if not isinstance(section, Mapping):
                    raise ValueError(f"Config group '{group}' must be an object")
                flat.update(section)
            if "fold_angle_deg" in data:
                flat["fold_angle_deg"] = data["fold_angle_deg"]
        else:
            flat = {k: v for k, v in data.items() if k != "version"}
        return cls._from_flat(flat)

    @classmethod
    def _from_flat(cls, flat: Mapping[str, Any]) -> "LinkageParameters":
        known = {"fold_angle_deg"}
        grouped: Dict[str, Dict[str, Any]] = {}
        for group, record_cls in _GROUPS:
            names = _field_names(record_cls)
            known.update(names)
            grouped[group] = {k: flat[k] for k in names if k in flat}
        unknown = sorted(set(flat) - known)
        if unknown:
            raise KeyError(f"Unknown parameter '{unknown[0]}'")
        panels_data = grouped["panels"]
        if panels_data.get("face_mask") is not None:
            panels_data["face_mask"] = tuple(bool(v) for v in panels_data["face_mask"])
        fold = flat.get("fold_angle_deg")
        params = cls(
            structure=replace(StructureConfig(), **grouped["structure"]),
            panels=replace(PanelLayout(), **panels_data),
            costs=replace(CostRates(), **grouped["costs"]),
            fold_angle_deg=None if fold is None else float(fold),
        )
        params.validate()
        return params


def load_json_config(path: Path | str | None) -> Dict[str, Any]:
    """Load the JSON config file or return an empty dict if no path is given."""

    if path is None:
        return {}
    json_path = Path(path)
    if not json_path.exists():
        raise FileNotFoundError(f"Config file not found: {json_path}")
    data = json.loads(json_path.read_text(encoding="utf-8"))
    if not isinstance(data, Mapping):
        raise ValueError("Top-level JSON config must be an object")
    return dict(data)


def apply_overrides(
    base: LinkageParameters, overrides: Mapping[str, Any]
) -> LinkageParameters:
    """Return a copy of ``base`` with flat field overrides applied."""

    merged = base.to_flat_dict()
    for key, value in overrides.items():
        if key not in merged:
            raise KeyError(f"Unknown parameter '{key}'")
        merged[key] = value
    return LinkageParameters._from_flat(merged)


def parse_cli_overrides(
    args: Optional[Iterable[str]] = None,
) -> Tuple[Dict[str, Any], Any]:
    """Parse CLI-style overrides using argparse conventions."""

    import argparse

    parser = argparse.ArgumentParser(description="Scissor-linkage ring/arch generator")
    parser.add_argument("--config", type=str, help="Path to JSON config", default=None)
    parser.add_argument("--out-dir", type=str, default="exports", help="Export folder")
    parser.add_argument("--geometry-name", type=str, default="linkage_geometry.json")
    parser.add_argument("--manifest-name", type=str, default="linkage_manifest.json")
    parser.add_argument("--cost-name", type=str, default="linkage_cost")
    parser.add_argument("--skip-geometry", action="store_true", help="Disable geometry export")
    parser.add_argument(
        "--safe-angle",
        action="store_true",
        help="Nudge the fold angle to the nearest collision-free angle",
    )
    parser.add_argument("--modules", type=int, help="Number of modules")
    parser.add_argument("--h-length", type=float, help="Horizontal beam length in feet")
    parser.add_argument("--v-length", type=float, help="Vertical beam length in feet")
    parser.add_argument("--pivot", type=float, help="Pivot split percentage (0-100)")
    parser.add_argument("--hoberman-angle", type=float, help="Hoberman skew angle in degrees")
    parser.add_argument("--pivot-angle", type=float, help="Pivot skew angle in degrees")
    parser.add_argument(
        "--stacks",
        type=int,
        nargs=2,
        metavar=("HORIZONTAL", "VERTICAL"),
        help="Beams per horizontal / vertical stack",
    )
    parser.add_argument("--stack-gap", type=float, help="Gap between stacked beams in inches")
    parser.add_argument(
        "--orientation",
        type=str,
        choices=list(ORIENTATIONS),
        help="Global shape: closed ring or standing arch",
    )
    parser.add_argument("--arch-rotation", type=float, help="Extra arch rotation in degrees")
    parser.add_argument("--arch-flip", action="store_true", help="Flip the arch vertically")
    parser.add_argument(
        "--cap-uprights",
        action="store_true",
        help="Add uprights on the open end of the first module",
    )
    parser.add_argument(
        "--fixed-beams",
        action="store_true",
        help="Use straight fixed beams instead of scissor uprights",
    )
    parser.add_argument("--array-count", type=int, help="Number of copies along the tunnel axis")
    parser.add_argument("--fold-angle", type=float, help="Fold angle in degrees")
    parser.add_argument("--panels", action="store_true", help="Place solar panels on faces")
    parser.add_argument(
        "--panel-grid",
        type=int,
        nargs=2,
        metavar=("ROWS", "COLS"),
        help="Panel grid per face",
    )

    parsed, unknown = parser.parse_known_args(args=args)
    if unknown:
        logging.info("Ignoring unknown CLI args: %s", " ".join(unknown))
    overrides: Dict[str, Any] = {}
    if parsed.modules is not None:
        overrides["module_count"] = parsed.modules
    if parsed.h_length is not None:
        overrides["h_length_ft"] = parsed.h_length
    if parsed.v_length is not None:
        overrides["v_length_ft"] = parsed.v_length
    if parsed.pivot is not None:
        overrides["pivot_pct"] = parsed.pivot
    if parsed.hoberman_angle is not None:
        overrides["hoberman_angle_deg"] = parsed.hoberman_angle
    if parsed.pivot_angle is not None:
        overrides["pivot_angle_deg"] = parsed.pivot_angle
    if parsed.stacks is not None:
        overrides["h_stack_count"], overrides["v_stack_count"] = parsed.stacks
    if parsed.stack_gap is not None:
        overrides["stack_gap_in"] = parsed.stack_gap
    if parsed.orientation is not None:
        overrides["orientation"] = parsed.orientation
    if parsed.arch_rotation is not None:
        overrides["arch_rotation_deg"] = parsed.arch_rotation
    if parsed.arch_flip:
        overrides["arch_flip_vertical"] = True
    if parsed.cap_uprights:
        overrides["arch_cap_uprights"] = True
    if parsed.fixed_beams:
        overrides["use_fixed_beams"] = True
    if parsed.array_count is not None:
        overrides["array_count"] = parsed.array_count
    if parsed.fold_angle is not None:
        overrides["fold_angle_deg"] = parsed.fold_angle
    if parsed.panels:
        overrides["enabled"] = True
    if parsed.panel_grid is not None:
        overrides["grid_rows"], overrides["grid_cols"] = parsed.panel_grid

    return overrides, parsed


def load_parameters(
    config_path: Path | str | None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> LinkageParameters:
    """Load parameters using the JSON -> CLI precedence chain."""

    data = load_json_config(config_path)
    params = LinkageParameters.from_dict(data)
    if cli_overrides:
        params = apply_overrides(params, cli_overrides)
    return params
