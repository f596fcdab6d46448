"""
Tests für die Bemaßungs-Inferenz und die Platzierung am Klickpunkt.

Run: pytest test/test_dimensions.py -v
"""

import math

import pytest

from sketchassist.constraints import ConstraintPoint, ConstraintType, make_parallel
from sketchassist.dimensions import (
    DimensionInferencer, DimensionKind, SelectionCandidate,
    measure, placement_anchor, placement_offset, propose_dimension,
)
from sketchassist.geometry import Arc2D, Circle2D, Line2D, Point2D
from sketchassist.tools import MeasureTool, ToolContext

RAW = SelectionCandidate.raw_point


def _dimension_line(base, target, offset, line_dir=(1.0, 0.0)):
    """
    Maßlinie nach der Zeichenkonvention: Start bei base + perp * (1 + offset[1]),
    Richtung base -> target (bzw. Linien-Normale, wenn beide zusammenfallen).
    """
    dx, dy = target[0] - base[0], target[1] - base[1]
    length = math.hypot(dx, dy)
    if length < 1e-4:
        dx, dy, length = -line_dir[1], line_dir[0], 1.0
    nx, ny = dx / length, dy / length
    d = 1.0 + offset[1]
    return (base[0] - ny * d, base[1] + nx * d), (nx, ny)


def _passes_through(click, start, direction):
    return abs((click[0] - start[0]) * direction[1] - (click[1] - start[1]) * direction[0]) < 1e-9


class TestTwoPoints:

    def test_horizontal_band(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((10, 0))], sketch, cursor=(5, 8))
        assert proposal.kind == DimensionKind.HORIZONTAL_DISTANCE
        assert proposal.value == pytest.approx(10.0)
        assert proposal.label == "H 10.00"

    def test_vertical_band(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((0, 10))], sketch, cursor=(8, 5))
        assert proposal.kind == DimensionKind.VERTICAL_DISTANCE
        assert proposal.value == pytest.approx(10.0)
        assert proposal.label == "V 10.00"

    def test_both_bands_is_aligned(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((10, 10))], sketch, cursor=(5, 5))
        assert proposal.kind == DimensionKind.DISTANCE
        assert proposal.value == pytest.approx(math.sqrt(200))

    def test_outside_bands_is_aligned(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((10, 10))], sketch, cursor=(20, 20))
        assert proposal.kind == DimensionKind.DISTANCE

    def test_band_edges_are_exclusive(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((10, 10))], sketch, cursor=(10, 20))
        assert proposal.kind == DimensionKind.DISTANCE

    def test_no_cursor_is_aligned(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((10, 0))], sketch)
        assert proposal.kind == DimensionKind.DISTANCE

    def test_entity_points_and_origin(self, sketch):
        line = sketch.add_entity(Line2D((3, 4), (10, 4)))
        proposal = propose_dimension([SelectionCandidate.origin(), SelectionCandidate.point(line.id, 0)], sketch)
        assert proposal.value == pytest.approx(5.0)


class TestSingleSelection:

    def test_line_length(self, sketch):
        line = sketch.add_entity(Line2D((0, 0), (3, 4)))
        proposal = propose_dimension([SelectionCandidate.entity(line.id)], sketch)
        assert proposal.kind == DimensionKind.LENGTH
        assert proposal.value == pytest.approx(5.0)

    def test_circle_radius(self, sketch):
        circle = sketch.add_entity(Circle2D((0, 0), 2.5))
        proposal = propose_dimension([SelectionCandidate.entity(circle.id)], sketch)
        assert proposal.kind == DimensionKind.RADIUS
        assert proposal.label == "R2.50"

    def test_arc_radius(self, sketch):
        arc = sketch.add_entity(Arc2D((0, 0), 4.0, 0.0, 1.0))
        assert propose_dimension([SelectionCandidate.entity(arc.id)], sketch).value == pytest.approx(4.0)

    def test_point_alone_is_invalid(self, sketch):
        point = sketch.add_entity(Point2D(1, 1))
        assert not propose_dimension([SelectionCandidate.entity(point.id)], sketch).is_valid


class TestTwoLines:

    def test_parallel_lines(self, sketch):
        a = sketch.add_entity(Line2D((0, 0), (10, 0)))
        b = sketch.add_entity(Line2D((0, 3), (10, 3)))
        proposal = propose_dimension([SelectionCandidate.entity(a.id), SelectionCandidate.entity(b.id)], sketch)
        assert proposal.kind == DimensionKind.DISTANCE_PARALLEL_LINES
        assert proposal.value == pytest.approx(3.0)

    def test_existing_parallel_constraint_wins(self, sketch):
        a = sketch.add_entity(Line2D((0, 0), (10, 0)))
        b = sketch.add_entity(Line2D((0, 3), (10, 6)))
        sel = [SelectionCandidate.entity(a.id), SelectionCandidate.entity(b.id)]
        assert propose_dimension(sel, sketch).kind == DimensionKind.ANGLE

        sketch.add_constraint(make_parallel(a.id, b.id))
        proposal = propose_dimension(sel, sketch)
        assert proposal.kind == DimensionKind.DISTANCE_PARALLEL_LINES
        assert proposal.value == pytest.approx(4.5)

    def test_angle(self, sketch):
        a = sketch.add_entity(Line2D((0, 0), (10, 0)))
        b = sketch.add_entity(Line2D((0, 0), (10, 10)))
        proposal = propose_dimension([SelectionCandidate.entity(a.id), SelectionCandidate.entity(b.id)], sketch)
        assert proposal.kind == DimensionKind.ANGLE
        assert proposal.value == pytest.approx(math.pi / 4)
        assert proposal.label == "45.0°"
        assert proposal.measure_points[0] == pytest.approx((0.0, 0.0))

    def test_angle_is_acute(self, sketch):
        a = sketch.add_entity(Line2D((0, 0), (10, 0)))
        b = sketch.add_entity(Line2D((0, 0), (-10, 10)))
        proposal = propose_dimension([SelectionCandidate.entity(a.id), SelectionCandidate.entity(b.id)], sketch)
        assert proposal.value == pytest.approx(math.pi / 4)


def test_point_to_line(sketch):
    point = sketch.add_entity(Point2D(5, 4))
    line = sketch.add_entity(Line2D((0, 0), (10, 0)))
    proposal = propose_dimension([SelectionCandidate.entity(point.id), SelectionCandidate.entity(line.id)], sketch)

    assert proposal.kind == DimensionKind.DISTANCE_POINT_LINE
    assert proposal.value == pytest.approx(4.0)
    assert proposal.measure_points[0] == pytest.approx((5.0, 0.0))
    assert proposal.measure_points[1] == pytest.approx((5.0, 4.0))


def test_line_then_point_order(sketch):
    line = sketch.add_entity(Line2D((0, 0), (10, 0)))
    proposal = propose_dimension([SelectionCandidate.entity(line.id), RAW((2, -3))], sketch)
    assert proposal.kind == DimensionKind.DISTANCE_POINT_LINE
    assert proposal.value == pytest.approx(3.0)


class TestInvalidSelections:

    def test_missing_entity(self, sketch):
        proposal = propose_dimension([SelectionCandidate.point("missing", 0), RAW((1, 1))], sketch)
        assert not proposal.is_valid
        assert proposal.kind is None

    def test_missing_single_entity(self, sketch):
        assert not propose_dimension([SelectionCandidate.entity("missing")], sketch).is_valid

    def test_empty_and_too_many(self, sketch):
        assert not propose_dimension([], sketch).is_valid
        assert not propose_dimension([RAW((0, 0)), RAW((1, 0)), RAW((2, 0))], sketch).is_valid

    def test_invalid_gives_no_constraint(self, sketch):
        proposal = propose_dimension([], sketch)
        assert proposal.to_constraint(sketch) is None


class TestPlacement:

    def test_horizontal_offset_passes_through_click(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((10, 0))], sketch, cursor=(5, 8))
        offset = placement_offset(proposal, (5, 8))
        assert offset == pytest.approx((0.0, 8.0))
        assert placement_anchor(proposal, offset) == pytest.approx((5.0, 8.0))

    def test_aligned_offset_passes_through_click(self, sketch):
        proposal = propose_dimension([RAW((0, 0)), RAW((10, 10))], sketch)
        offset = placement_offset(proposal, (0, 10))
        assert offset[0] == pytest.approx(0.0)
        assert offset[1] == pytest.approx(math.sqrt(50) - 1.0)
        assert placement_anchor(proposal, offset) == pytest.approx((0.0, 10.0))

    def test_radius_offset(self, sketch):
        circle = sketch.add_entity(Circle2D((0, 0), 5.0))
        proposal = propose_dimension([SelectionCandidate.entity(circle.id)], sketch)
        offset = placement_offset(proposal, (0, 8))
        assert offset == pytest.approx((math.pi / 2, 3.0))
        assert placement_anchor(proposal, offset) == pytest.approx((0.0, 8.0))

    def test_angle_offset(self, sketch):
        a = sketch.add_entity(Line2D((0, 0), (10, 0)))
        b = sketch.add_entity(Line2D((0, 0), (10, 10)))
        proposal = propose_dimension([SelectionCandidate.entity(a.id), SelectionCandidate.entity(b.id)], sketch)
        offset = placement_offset(proposal, (3, 1))
        assert placement_anchor(proposal, offset) == pytest.approx((3.0, 1.0))

    @pytest.mark.parametrize("click", [(3.0, 2.0), (-3.0, 2.0), (7.5, 6.0)])
    def test_point_line_follows_click_side(self, sketch, click):
        point = sketch.add_entity(Point2D(0, 5))
        line = sketch.add_entity(Line2D((0, 0), (10, 0)))
        proposal = propose_dimension([SelectionCandidate.entity(point.id), SelectionCandidate.entity(line.id)],
                                     sketch)

        offset = placement_offset(proposal, click)

        # Fußpunkt (0,0) ist p1, gemessen wird zum Punkt (0,5)
        start, direction = _dimension_line((0.0, 0.0), (0.0, 5.0), offset)
        assert start[0] == pytest.approx(click[0])
        assert _passes_through(click, start, direction)

    def test_point_on_line_uses_line_normal(self, sketch):
        line = sketch.add_entity(Line2D((0, 0), (10, 0)))
        proposal = propose_dimension([SelectionCandidate.entity(line.id), RAW((4, 0))], sketch)
        assert proposal.value == pytest.approx(0.0)

        offset = placement_offset(proposal, (6, 3))

        start, direction = _dimension_line((4.0, 0.0), (4.0, 0.0), offset, line_dir=(1.0, 0.0))
        assert start == pytest.approx((6.0, 0.0))
        assert _passes_through((6.0, 3.0), start, direction)

    def test_parallel_lines_follow_click(self, sketch):
        a = sketch.add_entity(Line2D((0, 0), (10, 0)))
        b = sketch.add_entity(Line2D((0, 3), (10, 3)))
        proposal = propose_dimension([SelectionCandidate.entity(a.id), SelectionCandidate.entity(b.id)], sketch)
        assert proposal.kind == DimensionKind.DISTANCE_PARALLEL_LINES

        offset = placement_offset(proposal, (8.0, 1.5))

        # p1 liegt auf der ersten Linie unter der Mitte der zweiten
        start, direction = _dimension_line((5.0, 0.0), (5.0, 3.0), offset)
        assert start == pytest.approx((8.0, 0.0))
        assert _passes_through((8.0, 1.5), start, direction)


class TestDimensionInferencer:

    def test_finish_adds_horizontal_distance(self, sketch):
        line = sketch.add_entity(Line2D((0, 0), (10, 0)))
        selection = [SelectionCandidate.point(line.id, 0), SelectionCandidate.point(line.id, 1)]

        constraint = DimensionInferencer().finish(selection, sketch, (5, 8))

        assert constraint.type == ConstraintType.HORIZONTAL_DISTANCE
        assert constraint.value == pytest.approx(10.0)
        assert constraint.points == [ConstraintPoint(line.id, 0), ConstraintPoint(line.id, 1)]
        assert constraint.style.offset == pytest.approx((0.0, 8.0))
        assert sketch.constraints == [constraint]

    def test_finish_line_length_as_distance(self, sketch):
        line = sketch.add_entity(Line2D((0, 0), (3, 4)))
        constraint = DimensionInferencer().finish([SelectionCandidate.entity(line.id)], sketch, (0, 5))
        assert constraint.type == ConstraintType.DISTANCE
        assert constraint.value == pytest.approx(5.0)

    def test_raw_points_cannot_be_committed(self, sketch):
        assert DimensionInferencer().finish([RAW((0, 0)), RAW((10, 0))], sketch, (5, 8)) is None
        assert sketch.constraints == []

    def test_update_tracks_current(self, sketch):
        inferencer = DimensionInferencer()
        inferencer.update([RAW((0, 0)), RAW((10, 0))], sketch, (5, 8))
        assert inferencer.current.kind == DimensionKind.HORIZONTAL_DISTANCE
        inferencer.update([RAW((0, 0)), RAW((10, 0))], sketch, (20, 20))
        assert inferencer.current.kind == DimensionKind.DISTANCE


class TestMeasure:

    def test_measure_ignores_cursor_bands(self, sketch):
        result = measure([RAW((0, 0)), RAW((3, 4))], sketch)
        assert result.kind == DimensionKind.DISTANCE
        assert result.value == pytest.approx(5.0)

    def test_measure_tool_does_not_touch_sketch(self, sketch):
        a = sketch.add_entity(Line2D((20, 20), (30, 20)))
        b = sketch.add_entity(Line2D((20, 23), (30, 23)))
        tool = MeasureTool(ToolContext(sketch))

        tool.on_click((25.0, 20.3))
        tool.on_click((26.0, 23.3))

        assert tool.last_measurement.kind == DimensionKind.DISTANCE_PARALLEL_LINES
        assert tool.last_measurement.value == pytest.approx(3.0)
        assert sketch.constraints == []
        assert tool.selection == []
        assert {a.id, b.id} == {c.entity_id for c in tool.last_measurement.selection}
