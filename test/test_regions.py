"""
Tests für Regionen-Extraktion, Enthaltensein und den Abgleich gespeicherter Profil-Auswahlen.

Run: pytest test/test_regions.py -v
"""

import math

import pytest

from sketchassist.diagnostics import DiagnosticLog, ErrorCategory
from sketchassist.geometry import Circle2D, Ellipse2D, Line2D, polygon_signed_area
from sketchassist.regions import (
    ProfileSelection, ReconcileConfig, Region,
    build_profile_selection, extract_regions, reconcile_selection, region_at, region_contains,
)

SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]


def _rect(x0, y0, x1, y1):
    return [(x0, y0), (x1, y0), (x1, y1), (x0, y1)]


@pytest.fixture
def candidates():
    """Region a: 4x4 bei (2,2), Region b: Fläche 50 bei (9,9)."""
    a = Region.from_loops("a", _rect(0, 0, 4, 4), boundary_ids=["l1", "l2", "l3", "l4"])
    b = Region("b", _rect(4, 4, 14, 9), boundary_ids=["l5", "l6", "l7", "l8"], area=50.0, centroid=(9.0, 9.0))
    return [a, b]


class TestContainment:

    def test_inside_outside(self):
        region = Region.from_loops("sq", SQUARE)
        assert region_contains((5, 5), region)
        assert not region_contains((15, 5), region)

    def test_edge_is_deterministic(self):
        region = Region.from_loops("sq", SQUARE)
        first = region_contains((10, 5), region)
        assert region_contains((10, 5), region) == first

    def test_void_is_subtracted(self):
        region = Region.from_loops("holed", SQUARE, voids=[_rect(4, 4, 6, 6)])
        assert region.area == pytest.approx(96.0)
        assert not region_contains((5, 5), region)
        assert region_contains((1, 1), region)

    def test_region_at_prefers_smallest(self):
        big = Region.from_loops("big", SQUARE)
        small = Region.from_loops("small", _rect(4, 4, 6, 6))
        assert region_at((5, 5), [big, small]).id == "small"
        assert region_at((1, 1), [big, small]).id == "big"
        assert region_at((50, 50), [big, small]) is None


class TestExtraction:

    def test_line_loop(self, square_sketch):
        regions = extract_regions(square_sketch.entities)

        assert len(regions) == 1
        region = regions[0]
        assert region.id == "loop_0"
        assert region.area == pytest.approx(100.0)
        assert region.centroid == pytest.approx((5.0, 5.0))
        assert set(region.boundary_ids) == {l.id for l in square_sketch.lines}

    def test_circle_and_ellipse(self, sketch):
        circle = sketch.add_entity(Circle2D((3, 3), 2.0))
        ellipse = sketch.add_entity(Ellipse2D((20, 0), 3.0, 1.0))

        regions = {r.id: r for r in extract_regions(sketch.entities)}

        assert regions[f"region_{circle.id}"].area == pytest.approx(math.pi * 4.0)
        assert len(regions[f"region_{circle.id}"].outer) == 32
        assert regions[f"region_{ellipse.id}"].centroid == (20.0, 0.0)

    def test_open_chain_gives_nothing(self, sketch):
        sketch.add_entity(Line2D((0, 0), (10, 0)))
        sketch.add_entity(Line2D((10, 0), (10, 10)))
        assert extract_regions(sketch.entities) == []

    def test_construction_and_preview_are_ignored(self, square_sketch):
        square_sketch.add_entity(Circle2D((30, 30), 1.0, construction=True))
        square_sketch.set_preview(Circle2D((40, 40), 1.0, id="preview_circle"))
        assert len(extract_regions(square_sketch.entities)) == 1


class TestProfileSelection:

    def test_legacy_flat_loops_are_migrated(self):
        selection = ProfileSelection.from_raw(["x"], [[[0, 0], [4, 0], [4, 4], [0, 4]]])
        assert selection.explicit
        assert len(selection.regions) == 1
        assert selection.regions[0] == [_rect(0.0, 0.0, 4.0, 4.0)]

    def test_nested_loops_stay_profiles(self):
        raw = [[[[0, 0], [10, 0], [10, 10], [0, 10]], [[4, 4], [6, 4], [6, 6], [4, 6]]]]
        selection = ProfileSelection.from_raw([], raw)
        assert len(selection.regions) == 1
        assert len(selection.regions[0]) == 2

    def test_empty_regions_is_explicit_empty(self):
        selection = ProfileSelection.from_raw(["x"], [])
        assert selection.explicit
        assert selection.regions == []

    def test_missing_regions_is_not_explicit(self):
        assert not ProfileSelection.from_raw(["x"], None).explicit

    def test_dict_round_trip(self, candidates):
        selection = build_profile_selection(candidates, ["a"])
        restored = ProfileSelection.from_dict(selection.to_dict())
        assert restored.profiles == selection.profiles
        assert restored.regions == selection.regions
        assert restored.explicit

    def test_legacy_dict(self):
        data = {"profiles": ["l1"], "profile_regions": [[[0, 0], [4, 0], [4, 4]]]}
        assert len(ProfileSelection.from_dict(data).regions) == 1

    def test_unknown_version(self):
        with pytest.raises(ValueError):
            ProfileSelection.from_dict({"version": 99})

    def test_malformed_regions(self):
        with pytest.raises(ValueError):
            ProfileSelection.from_raw([], [1, 2, 3])

    def test_outer_loop_is_counter_clockwise(self):
        clockwise = list(reversed(_rect(0, 0, 4, 4)))
        region = Region.from_loops("cw", clockwise, boundary_ids=["l1"])
        selection = build_profile_selection([region], ["cw"])
        assert polygon_signed_area(selection.regions[0][0]) > 0

    def test_boundary_ids_deduplicated(self):
        r1 = Region.from_loops("r1", _rect(0, 0, 4, 4), boundary_ids=["shared", "x"])
        r2 = Region.from_loops("r2", _rect(4, 0, 8, 4), boundary_ids=["shared", "y"])
        selection = build_profile_selection([r1, r2], ["r1", "r2"])
        assert selection.profiles == ["shared", "x", "y"]


class TestReconcile:

    def test_matches_by_area_and_centroid(self, candidates):
        selection = ProfileSelection(regions=[[_rect(0, 0, 4, 4)]], explicit=True)
        assert reconcile_selection(selection, candidates) == ["a"]

    def test_idempotent(self, candidates):
        selected = reconcile_selection(build_profile_selection(candidates, ["a"]), candidates)
        again = reconcile_selection(build_profile_selection(candidates, selected), candidates)
        assert selected == again == ["a"]

    def test_no_selection_selects_all(self, candidates):
        assert reconcile_selection(None, candidates) == ["a", "b"]
        assert reconcile_selection(ProfileSelection(), candidates) == ["a", "b"]

    def test_explicit_empty_selects_nothing(self, candidates):
        assert reconcile_selection(ProfileSelection(explicit=True), candidates) == []

    def test_no_match_selects_all_with_diagnostic(self, candidates):
        log = DiagnosticLog()
        selection = ProfileSelection(regions=[[_rect(100, 100, 130, 130)]], explicit=True)

        assert reconcile_selection(selection, candidates, diagnostics=log) == ["a", "b"]
        assert log.filter(ErrorCategory.RECONCILIATION)

    def test_threshold_is_configurable(self, candidates):
        selection = ProfileSelection(regions=[[_rect(0, 0, 4, 4.5)]], explicit=True)
        assert reconcile_selection(selection, candidates) == ["a"]
        strict = ReconcileConfig(match_threshold=0.5)
        assert reconcile_selection(selection, candidates, strict) == ["a", "b"]

    def test_ids_narrow_candidates(self, candidates):
        # Schleife liegt näher an b, aber die IDs gehören zu a
        selection = ProfileSelection(profiles=["l1", "l2", "l3", "l4"],
                                     regions=[[_rect(2, 3.5, 10, 8.5)]], explicit=True)
        assert reconcile_selection(selection, candidates) == ["a"]

    def test_unknown_ids_fall_back_to_all_candidates(self, candidates):
        selection = ProfileSelection(profiles=["gone"], regions=[[_rect(2, 3.5, 10, 8.5)]], explicit=True)
        assert reconcile_selection(selection, candidates) == ["b"]

    def test_ids_only_selects_narrowed(self, candidates):
        selection = ProfileSelection(profiles=["l5", "l6", "l7", "l8"])
        assert reconcile_selection(selection, candidates) == ["b"]

    def test_degenerate_loop_is_skipped(self, candidates):
        log = DiagnosticLog()
        selection = ProfileSelection(regions=[[[(0.0, 0.0), (1.0, 1.0)]]], explicit=True)
        assert reconcile_selection(selection, candidates, diagnostics=log) == ["a", "b"]
