"""Bill of materials and cost estimate for a linkage structure."""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from .parameters import CostRates, LinkageParameters, StructureConfig

__all__ = [
    "BomItem",
    "CostEstimate",
    "bill_of_materials",
    "cost_estimate",
    "write_cost_report",
    "write_cost_csv",
]

# Ring bolts (2 per ring), upright pivot bolts (4) and centre bolts (2).
BOLTS_PER_MODULE = 4 + 2 + 2
BRACKETS_PER_MODULE = 4


@dataclass(slots=True)
class BomItem:
    """One line in the Bill of Materials."""
    category: str
    description: str
    unit: str
    quantity: int
    unit_price: float
    total: float


@dataclass
class CostEstimate:
    bom: List[BomItem]
    total: float
    panel_count: int = 0
    capacity_kw: float = 0.0
    module_count: int = 0
    counts: Dict[str, int] = field(default_factory=dict)


def bill_of_materials(config: StructureConfig, panel_count: int = 0) -> Dict[str, int]:
    n = config.module_count
    return {
        "h_beams": n * 2 * config.h_stack_count,
        "v_beams": n * config.v_stack_count,
        "brackets": n * BRACKETS_PER_MODULE,
        "bolts": n * BOLTS_PER_MODULE,
        "solar_panels": panel_count,
    }


def _line(category: str, description: str, quantity: int, price: float) -> BomItem:
    return BomItem(
        category=category,
        description=description,
        unit="pcs",
        quantity=quantity,
        unit_price=price,
        total=quantity * price,
    )


def cost_estimate(params: LinkageParameters, panel_count: int = 0) -> CostEstimate:
    """Cost every BOM line with the configured unit rates.

    Panels are only costed when the panel layout is enabled.
    """
    config = params.structure
    rates: CostRates = params.costs
    panels = panel_count if params.panels.enabled else 0
    counts = bill_of_materials(config, panels)

    bom = [
        _line("timber", f"Horizontal beam {config.h_length_ft:g} ft", counts["h_beams"], rates.h_beam),
        _line("timber", f"Vertical beam {config.v_length_ft:g} ft", counts["v_beams"], rates.v_beam),
        _line("hardware", "U-bracket", counts["brackets"], rates.bracket),
        _line("hardware", "Pivot bolt", counts["bolts"], rates.bolt),
    ]
    if panels:
        bom.append(_line("solar", "Solar panel", panels, rates.solar_panel))

    total = sum(item.total for item in bom)
    capacity_kw = panels * params.panels.rated_watts / 1000.0
    logging.info("Cost estimate: %.2f total over %d BOM lines", total, len(bom))
    return CostEstimate(
        bom=bom,
        total=total,
        panel_count=panels,
        capacity_kw=capacity_kw,
        module_count=config.module_count,
        counts=counts,
    )


# ---------------------------------------------------------------------------
# Report writers
# ---------------------------------------------------------------------------


def write_cost_report(estimate: CostEstimate, params: LinkageParameters, path: Path) -> None:
    """Write cost estimate as JSON."""
    report: Dict[str, Any] = {
        "summary": {
            "total": estimate.total,
            "module_count": estimate.module_count,
            "panel_count": estimate.panel_count,
            "capacity_kw": estimate.capacity_kw,
            "counts": estimate.counts,
        },
        "rates": {
            "h_beam": params.costs.h_beam,
            "v_beam": params.costs.v_beam,
            "bolt": params.costs.bolt,
            "bracket": params.costs.bracket,
            "solar_panel": params.costs.solar_panel,
        },
        "bom": [
            {
                "category": item.category,
                "description": item.description,
                "unit": item.unit,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total": item.total,
            }
            for item in estimate.bom
        ],
    }

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(report, f, indent=2)
    logging.info("Cost report written to %s", path)


def write_cost_csv(estimate: CostEstimate, path: Path) -> None:
    """Write BOM as CSV."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["Category", "Description", "Unit", "Quantity", "Unit Price", "Total"])
        for item in estimate.bom:
            writer.writerow([
                item.category,
                item.description,
                item.unit,
                item.quantity,
                f"{item.unit_price:.2f}",
                f"{item.total:.2f}",
            ])
        writer.writerow([])
        if estimate.panel_count:
            writer.writerow(["", "Array capacity (kW)", "", "", "", f"{estimate.capacity_kw:.2f}"])
        writer.writerow(["", "GRAND TOTAL", "", "", "", f"{estimate.total:.2f}"])
    logging.info("Cost CSV written to %s", path)
