import csv
import json
import math
from dataclasses import replace

import pytest

from linkage_lab.assembly import solve
from linkage_lab.constants import MIN_FOLD_ANGLE
from linkage_lab.costing import bill_of_materials, cost_estimate, write_cost_csv, write_cost_report
from linkage_lab.linkage import pivot_span
from linkage_lab.measurements import actuator_stroke, drill_layout, measure_structure
from linkage_lab.parameters import LinkageParameters, PanelLayout, StructureConfig
from linkage_lab.search import ClosedAngleCache, find_optimal_closed_angle


class TestCosting:
    def test_bill_of_materials_counts(self):
        counts = bill_of_materials(StructureConfig(), panel_count=5)
        assert counts == {
            "h_beams": 32,
            "v_beams": 24,
            "brackets": 32,
            "bolts": 64,
            "solar_panels": 5,
        }

    def test_total_without_panels(self):
        estimate = cost_estimate(LinkageParameters(), panel_count=16)
        # Panels are ignored while the layout is disabled.
        assert estimate.panel_count == 0
        assert math.isclose(estimate.total, 32 * 12 + 24 * 10 + 32 * 5 + 64 * 0.75)
        assert len(estimate.bom) == 4

    def test_total_with_panels(self):
        params = LinkageParameters(panels=replace(PanelLayout(), enabled=True))
        estimate = cost_estimate(params, panel_count=16)
        assert math.isclose(estimate.total, 832.0 + 16 * 150.0)
        assert math.isclose(estimate.capacity_kw, 6.4)
        assert estimate.bom[-1].category == "solar"

    def test_reports_written(self, tmp_path):
        params = LinkageParameters(panels=replace(PanelLayout(), enabled=True))
        estimate = cost_estimate(params, panel_count=4)
        write_cost_report(estimate, params, tmp_path / "cost.json")
        write_cost_csv(estimate, tmp_path / "cost.csv")

        report = json.loads((tmp_path / "cost.json").read_text())
        assert math.isclose(report["summary"]["total"], estimate.total)
        assert len(report["bom"]) == 5

        with open(tmp_path / "cost.csv", newline="") as f:
            rows = list(csv.reader(f))
        assert rows[0][0] == "Category"
        assert rows[-1][1] == "GRAND TOTAL"
        assert rows[-1][-1] == f"{estimate.total:.2f}"


class TestMeasurements:
    @pytest.fixture(scope="class")
    def closed(self):
        config = StructureConfig()
        angle = find_optimal_closed_angle(config, math.radians(90))
        return solve(config, angle)

    def test_closed_ring_diameters(self, closed):
        measured = measure_structure(closed)
        assert measured.inner_diameter > 0
        assert measured.outer_diameter > measured.inner_diameter
        assert measured.height > 0
        assert measured.span > 0
        assert set(measured.to_dict()) == {"inner_diameter_in", "outer_diameter_in", "height_in", "span_in"}

    def test_arch_measured_in_its_own_plane(self):
        structure = solve(StructureConfig(orientation="arch"), math.radians(120))
        measured = measure_structure(structure)
        assert measured.outer_diameter > 0
        assert math.isclose(measured.height, structure.max_height)

    def test_actuator_stroke(self):
        config = StructureConfig()
        cache = ClosedAngleCache()
        stroke = actuator_stroke(config, cache)
        assert config in cache
        assert math.isclose(stroke.open_span, pivot_span(config, MIN_FOLD_ANGLE))
        assert math.isclose(stroke.closed_span, pivot_span(config, stroke.closed_angle))
        assert math.isclose(stroke.stroke, abs(stroke.closed_span - stroke.open_span))
        assert abs(math.degrees(stroke.closed_angle) - 135.4) < 0.5
        assert stroke.to_dict()["stroke_in"] > 0

    def test_actuator_stroke_with_shared_cache(self):
        config = StructureConfig()
        cache = ClosedAngleCache()
        find_optimal_closed_angle(config, math.radians(90), cache)
        shared = actuator_stroke(config, cache)
        assert shared.closed_angle == actuator_stroke(config).closed_angle

    def test_drill_layout(self):
        layout = drill_layout(StructureConfig())
        assert math.isclose(layout.horizontal_pivot, 1.5 + 93.0 * 0.415)
        assert layout.vertical_holes == (3.0, 93.0, 48.0)
        assert layout.to_dict()["vertical_center_in"] == 48.0
