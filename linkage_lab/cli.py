"""Headless command-line run of the linkage pipeline."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, Optional

from .parameters import load_parameters, parse_cli_overrides
from .pipeline import LinkagePipeline, PipelineContext, SafeAngleStep

__all__ = ["configure_logging", "main"]


def configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def main(argv: Optional[Iterable[str]] = None) -> int:
    configure_logging()
    overrides, cli = parse_cli_overrides(argv)
    params = load_parameters(cli.config, overrides)
    config = params.structure
    logging.info(
        "Parameters: modules=%d h=%.1fft v=%.1fft pivot=%.1f%% orientation=%s",
        config.module_count,
        config.h_length_ft,
        config.v_length_ft,
        config.pivot_pct,
        config.orientation,
    )

    ctx = PipelineContext(
        params=params,
        out_dir=Path(cli.out_dir),
        geometry_name=cli.geometry_name,
        manifest_name=cli.manifest_name,
        cost_name=cli.cost_name,
    )
    pipeline = LinkagePipeline()
    if cli.safe_angle:
        pipeline.insert_after("fold_angle", SafeAngleStep())
    if cli.skip_geometry:
        pipeline.remove("geometry_export")
    pipeline.run(ctx)

    if ctx.fold_angle is not None:
        logging.info("Done at %.2f deg fold angle", math.degrees(ctx.fold_angle))
    return 0
