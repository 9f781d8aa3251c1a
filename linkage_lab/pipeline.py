"""Headless run of the linkage generator as an ordered list of steps.

The default steps resolve a fold angle, solve, check collisions, lay out
panels, measure, cost and export; all of them share one ``PipelineContext``.
Optional stages are spliced in by name::

    pipeline = LinkagePipeline()
    pipeline.insert_after("fold_angle", SafeAngleStep())
    pipeline.run(PipelineContext(params=params, out_dir=Path("exports")))
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .assembly import assemble_structure
from .cache import GeometryCache
from .collision import CollisionRecord
from .geometry import StructureGeometry
from .panels import Panel
from .parameters import LinkageParameters
from .search import ClosedAngleCache

__all__ = [
    "PipelineContext",
    "PipelineStep",
    "LinkagePipeline",
    "FoldAngleStep",
    "SafeAngleStep",
    "SolveStep",
    "CollisionCheckStep",
    "PanelLayoutStep",
    "MeasurementStep",
    "CostEstimationStep",
    "GeometryExportStep",
    "ManifestExportStep",
    "default_steps",
]

_FALLBACK_FOLD_DEG = 90.0


# ---------------------------------------------------------------------------
# Pipeline context
# ---------------------------------------------------------------------------


@dataclass
class PipelineContext:
    """Mutable state bag passed through every pipeline step."""

    params: LinkageParameters
    out_dir: Path = field(default_factory=lambda: Path("exports"))

    geometry_name: str = "linkage_geometry.json"
    manifest_name: str = "linkage_manifest.json"
    cost_name: str = "linkage_cost"

    closed_angle_cache: ClosedAngleCache = field(default_factory=ClosedAngleCache)
    # Unoriented structures shared by the safe-angle search and the collision check.
    native_cache: GeometryCache = field(
        default_factory=lambda: GeometryCache(solver=assemble_structure)
    )

    # Populated by steps.
    fold_angle: float | None = None
    structure: StructureGeometry | None = None
    collisions: List[CollisionRecord] = field(default_factory=list)
    panels: List[Panel] = field(default_factory=list)
    measurements: Dict[str, Any] = field(default_factory=dict)
    cost_estimate: Any = None


# ---------------------------------------------------------------------------
# Step base class
# ---------------------------------------------------------------------------


class PipelineStep(ABC):
    """One named stage; ``execute`` reads and fills the shared context."""

    name: str = "unnamed"

    def should_run(self, ctx: PipelineContext) -> bool:
        return True

    @abstractmethod
    def execute(self, ctx: PipelineContext) -> None:
        ...


# ---------------------------------------------------------------------------
# Concrete steps
# ---------------------------------------------------------------------------


class FoldAngleStep(PipelineStep):
    """Resolve the working fold angle.

    An explicit angle wins; otherwise the ring's closure angle is used.
    """

    name = "fold_angle"

    def execute(self, ctx: PipelineContext) -> None:
        from .search import find_optimal_closed_angle

        angle = ctx.params.fold_angle
        if angle is None:
            fallback = math.radians(_FALLBACK_FOLD_DEG)
            angle = find_optimal_closed_angle(
                ctx.params.structure, fallback, ctx.closed_angle_cache
            )
            if angle is None:
                logging.warning(
                    "Ring cannot close; using %.1f deg fold angle", _FALLBACK_FOLD_DEG
                )
                angle = fallback
        ctx.fold_angle = angle
        logging.info("Fold angle %.2f deg", math.degrees(angle))


class SafeAngleStep(PipelineStep):
    """Nudge the fold angle to the nearest collision-free one, if any.

    Not part of the default steps; insert it after ``fold_angle``.
    """

    name = "safe_angle"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.fold_angle is not None

    def execute(self, ctx: PipelineContext) -> None:
        from .search import find_safe_fold_angle

        safe = find_safe_fold_angle(
            ctx.params.structure, ctx.fold_angle, cache=ctx.native_cache
        )
        if safe is None:
            logging.warning(
                "No collision-free angle near %.1f deg; keeping it",
                math.degrees(ctx.fold_angle),
            )
            return
        ctx.fold_angle = safe
        logging.info("Safe fold angle %.2f deg", math.degrees(safe))


class SolveStep(PipelineStep):
    """Assemble, orient and derive faces for the resolved angle."""

    name = "solve"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.fold_angle is not None

    def execute(self, ctx: PipelineContext) -> None:
        from .assembly import solve

        ctx.structure = solve(ctx.params.structure, ctx.fold_angle)
        summary = ctx.structure.summary()
        logging.info(
            "Solved %d modules: %d beams, %d brackets, %d bolts, %d faces",
            summary["modules"],
            summary["beams"],
            summary["brackets"],
            summary["bolts"],
            summary["faces"],
        )


class CollisionCheckStep(PipelineStep):
    """Check the native ring for beam collisions and report them."""

    name = "collision_check"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.fold_angle is not None

    def execute(self, ctx: PipelineContext) -> None:
        from .collision import detect_collisions

        native = ctx.native_cache.get(ctx.params.structure, ctx.fold_angle)
        ctx.collisions = detect_collisions(native)
        if not ctx.collisions:
            logging.info("No collisions")
            return
        by_type: Dict[str, int] = {}
        for record in ctx.collisions:
            by_type[record.type] = by_type.get(record.type, 0) + 1
        logging.warning("%d collisions detected: %s", len(ctx.collisions), by_type)
        messages = {r.message for r in ctx.collisions if r.message}
        for message in sorted(messages):
            logging.warning("%s", message)


class PanelLayoutStep(PipelineStep):
    """Place panels on the enabled faces."""

    name = "panel_layout"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.params.panels.enabled and ctx.structure is not None

    def execute(self, ctx: PipelineContext) -> None:
        from .panels import place_panels

        ctx.panels = place_panels(ctx.structure, ctx.params.panels)
        logging.info("Placed %d panels", len(ctx.panels))


class MeasurementStep(PipelineStep):
    """Diameters, actuator stroke and drill layout."""

    name = "measurements"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.structure is not None

    def execute(self, ctx: PipelineContext) -> None:
        from .measurements import actuator_stroke, drill_layout, measure_structure

        config = ctx.params.structure
        measured = measure_structure(ctx.structure)
        stroke = actuator_stroke(config, ctx.closed_angle_cache)
        ctx.measurements = {
            **measured.to_dict(),
            "actuator": stroke.to_dict(),
            "drill": drill_layout(config).to_dict(),
        }
        logging.info(
            "Outer diameter %.1f in, height %.1f in, actuator stroke %.2f in",
            measured.outer_diameter,
            measured.height,
            stroke.stroke,
        )


class CostEstimationStep(PipelineStep):
    """Generate cost estimate and BOM."""

    name = "cost_estimation"

    def execute(self, ctx: PipelineContext) -> None:
        from .costing import cost_estimate, write_cost_csv, write_cost_report

        try:
            estimate = cost_estimate(ctx.params, len(ctx.panels))
            ctx.cost_estimate = estimate
            write_cost_report(estimate, ctx.params, ctx.out_dir / f"{ctx.cost_name}.json")
            write_cost_csv(estimate, ctx.out_dir / f"{ctx.cost_name}.csv")
        except (OSError, ValueError) as exc:
            logging.warning("Cost estimation failed: %s", exc)


class GeometryExportStep(PipelineStep):
    """Write the solved geometry as JSON."""

    name = "geometry_export"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.structure is not None

    def execute(self, ctx: PipelineContext) -> None:
        from .export import export_geometry

        try:
            export_geometry(ctx.structure, ctx.out_dir / ctx.geometry_name, ctx.panels)
        except (OSError, ValueError) as exc:
            logging.warning("Geometry export failed: %s", exc)


class ManifestExportStep(PipelineStep):
    """Write per-beam JSON manifest."""

    name = "manifest_export"

    def should_run(self, ctx: PipelineContext) -> bool:
        return ctx.structure is not None and bool(ctx.structure.beams)

    def execute(self, ctx: PipelineContext) -> None:
        from .export import export_manifest

        export_manifest(ctx.structure, ctx.out_dir / ctx.manifest_name)


# ---------------------------------------------------------------------------
# Pipeline orchestrator
# ---------------------------------------------------------------------------


def default_steps() -> List[PipelineStep]:
    """Return the standard ordered list of pipeline steps."""
    return [
        FoldAngleStep(),
        SolveStep(),
        CollisionCheckStep(),
        PanelLayoutStep(),
        MeasurementStep(),
        CostEstimationStep(),
        GeometryExportStep(),
        ManifestExportStep(),
    ]


class LinkagePipeline:
    """Runs the default steps, or a caller-supplied list, in order."""

    def __init__(self, steps: List[PipelineStep] | None = None) -> None:
        self.steps = steps if steps is not None else default_steps()

    def run(self, ctx: PipelineContext) -> None:
        ctx.out_dir.mkdir(parents=True, exist_ok=True)
        for step in self.steps:
            if step.should_run(ctx):
                logging.info("[pipeline] %s", step.name)
                step.execute(ctx)

    def step_names(self) -> List[str]:
        return [s.name for s in self.steps]

    def _index(self, name: str) -> int:
        names = self.step_names()
        if name not in names:
            raise KeyError(f"No pipeline step named {name!r}")
        return names.index(name)

    def insert_after(self, name: str, step: PipelineStep) -> None:
        self.steps.insert(self._index(name) + 1, step)

    def remove(self, name: str) -> None:
        del self.steps[self._index(name)]
