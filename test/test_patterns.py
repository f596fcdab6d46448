"""
Tests für Spiegeln, lineares und kreisförmiges Muster (Funktionen und Werkzeuge).

Run: pytest test/test_patterns.py -v
"""

import math

import pytest

from sketchassist.constraints import ConstraintPoint, ConstraintType, ORIGIN_ID
from sketchassist.geometry import Arc2D, Circle2D, Line2D, Point2D, is_preview_id
from sketchassist.operations import circular_pattern, linear_pattern, mirror_entities
from sketchassist.sketch import HistoryKind
from sketchassist.tools import (
    CircularPatternTool, LinearPatternTool, MirrorTool, ToolContext,
)


def _count(constraints, ctype):
    return sum(1 for c in constraints if c.type == ctype)


class TestLinearPattern:

    def test_copies_and_equal_constraints(self, sketch):
        direction = sketch.add_entity(Line2D((0, -20), (10, -20)))
        line = sketch.add_entity(Line2D((0, 5), (0, 8)))
        circle = sketch.add_entity(Circle2D((3, 3), 1.0))

        result = linear_pattern(sketch, direction.id, [line.id, circle.id], count=3, spacing=5.0)

        assert len(result.entities) == (3 - 1) * 2
        assert _count(result.constraints, ConstraintType.EQUAL) == 4
        copies_of_line = [e for e in result.entities if result.source_of[e.id] == line.id]
        assert [c.start for c in copies_of_line] == [pytest.approx((5.0, 5.0)), pytest.approx((10.0, 5.0))]

    def test_flip_reverses_direction(self, sketch):
        direction = sketch.add_entity(Line2D((0, -20), (10, -20)))
        point = sketch.add_entity(Point2D(1, 1))
        result = linear_pattern(sketch, direction.id, [point.id], count=2, spacing=4.0, flip=True)
        assert result.entities[0].pos == pytest.approx((-3.0, 1.0))

    def test_points_get_no_equal(self, sketch):
        direction = sketch.add_entity(Line2D((0, -20), (10, -20)))
        point = sketch.add_entity(Point2D(1, 1))
        result = linear_pattern(sketch, direction.id, [point.id], count=4, spacing=1.0)
        assert len(result.entities) == 3
        assert result.constraints == []

    def test_count_below_two(self, sketch):
        direction = sketch.add_entity(Line2D((0, -20), (10, -20)))
        line = sketch.add_entity(Line2D((0, 5), (0, 8)))
        assert linear_pattern(sketch, direction.id, [line.id], count=1, spacing=5.0) is None

    def test_invalid_direction(self, sketch):
        circle = sketch.add_entity(Circle2D((3, 3), 1.0))
        assert linear_pattern(sketch, circle.id, [circle.id], count=3, spacing=5.0) is None


class TestCircularPattern:

    def test_quarter_turns_about_point(self, sketch):
        center = sketch.add_entity(Point2D(5, 5))
        line = sketch.add_entity(Line2D((6, 5), (8, 5)))

        result = circular_pattern(sketch, center.id, [line.id], count=4)

        assert len(result.entities) == 3
        first = result.entities[0]
        assert first.start == pytest.approx((5.0, 6.0))
        assert first.end == pytest.approx((5.0, 8.0))
        assert _count(result.constraints, ConstraintType.EQUAL) == 3

    def test_arc_angles_follow_rotation(self, sketch):
        arc = sketch.add_entity(Arc2D((10, 0), 1.0, 0.0, math.pi / 2))
        result = circular_pattern(sketch, ORIGIN_ID, [arc.id], count=4)

        copy = result.entities[0]
        assert copy.center == pytest.approx((0.0, 10.0))
        assert copy.start_angle == pytest.approx(math.pi / 2)
        assert copy.end_angle == pytest.approx(math.pi)

    def test_partial_angle_and_flip(self, sketch):
        point = sketch.add_entity(Point2D(10, 0))
        result = circular_pattern(sketch, ORIGIN_ID, [point.id], count=2,
                                  total_angle=math.pi, flip=True)
        assert result.entities[0].pos == pytest.approx((0.0, -10.0))

    def test_circle_center_as_reference(self, sketch):
        hub = sketch.add_entity(Circle2D((0, 0), 2.0))
        point = sketch.add_entity(Point2D(4, 0))
        result = circular_pattern(sketch, hub.id, [hub.id, point.id], count=2)
        # Das Zentrum selbst wird nicht kopiert
        assert len(result.entities) == 1

    def test_unknown_center(self, sketch):
        point = sketch.add_entity(Point2D(4, 0))
        assert circular_pattern(sketch, "missing", [point.id], count=3) is None


class TestMirror:

    def test_line_gets_symmetric_pairs(self, sketch):
        axis = sketch.add_entity(Line2D((0, -10), (0, 10)))
        line = sketch.add_entity(Line2D((2, 1), (4, 3)))

        result = mirror_entities(sketch, axis.id, [line.id])

        copy = result.entities[0]
        assert copy.start == pytest.approx((-2.0, 1.0))
        assert copy.end == pytest.approx((-4.0, 3.0))
        symmetric = [c for c in result.constraints if c.type == ConstraintType.SYMMETRIC]
        assert len(symmetric) == 2
        assert symmetric[0].points == [ConstraintPoint(line.id, 0), ConstraintPoint(copy.id, 0)]
        assert symmetric[0].entities == [axis.id]

    def test_circle_gets_equal(self, sketch):
        axis = sketch.add_entity(Line2D((0, -10), (0, 10)))
        circle = sketch.add_entity(Circle2D((3, 3), 1.0))
        result = mirror_entities(sketch, axis.id, [circle.id])

        assert result.entities[0].center == pytest.approx((-3.0, 3.0))
        types = [c.type for c in result.constraints]
        assert types == [ConstraintType.SYMMETRIC, ConstraintType.EQUAL]

    def test_arc_keeps_counter_clockwise_sweep(self, sketch):
        axis = sketch.add_entity(Line2D((0, -10), (0, 10)))
        arc = sketch.add_entity(Arc2D((3, 0), 1.0, 0.0, math.pi / 2))

        copy = mirror_entities(sketch, axis.id, [arc.id]).entities[0]

        assert copy.center == pytest.approx((-3.0, 0.0))
        assert copy.start_angle == pytest.approx(math.pi / 2)
        assert copy.end_angle == pytest.approx(math.pi)
        assert copy.sweep == pytest.approx(math.pi / 2)

    def test_axis_is_not_mirrored(self, sketch):
        axis = sketch.add_entity(Line2D((0, -10), (0, 10)))
        assert mirror_entities(sketch, axis.id, [axis.id]).entities == []

    def test_invalid_axis(self, sketch):
        circle = sketch.add_entity(Circle2D((3, 3), 1.0))
        assert mirror_entities(sketch, circle.id, [circle.id]) is None


class TestReplicationTools:

    @pytest.fixture
    def context(self, sketch):
        return ToolContext(sketch)

    def test_mirror_preview_matches_confirm(self, context):
        sketch = context.sketch
        axis = sketch.add_entity(Line2D((0, -10), (0, 10)))
        line = sketch.add_entity(Line2D((2, 1), (4, 3)))

        tool = MirrorTool(context)
        assert tool.select_reference(axis.id)
        assert tool.toggle_target(line.id)
        tool.refresh_preview()

        previews = [e for e in sketch.entities if is_preview_id(e.id)]
        assert len(previews) == 1
        assert all(e.id.startswith("preview_mirror") for e in previews)
        preview_geometry = (previews[0].start, previews[0].end)

        result = tool.confirm()

        assert not any(is_preview_id(e.id) for e in sketch.entities)
        committed = sketch.get_entity(result.entities[0].id)
        assert (committed.start, committed.end) == preview_geometry
        assert _count(sketch.constraints, ConstraintType.SYMMETRIC) == 2
        assert sketch.history[-1].kind == HistoryKind.MIRROR
        assert tool.reference_id is None

    def test_reference_must_be_line(self, context):
        circle = context.sketch.add_entity(Circle2D((3, 3), 1.0))
        tool = MirrorTool(context)
        assert not tool.select_reference(circle.id)
        assert tool.phase == 0

    def test_toggle_removes_target(self, context):
        sketch = context.sketch
        axis = sketch.add_entity(Line2D((0, -10), (0, 10)))
        line = sketch.add_entity(Line2D((2, 1), (4, 3)))
        tool = MirrorTool(context)
        tool.select_reference(axis.id)

        assert tool.toggle_target(line.id)
        assert not tool.toggle_target(line.id)
        assert tool.targets == []
        assert not tool.toggle_target(axis.id)
        assert tool.confirm() is None

    def test_linear_pattern_tool_by_clicks(self, context):
        sketch = context.sketch
        direction = sketch.add_entity(Line2D((20, -20), (30, -20)))
        circle = sketch.add_entity(Circle2D((23, 23), 1.0))

        tool = LinearPatternTool(context, count=3, spacing=5.0)
        tool.on_click((25.0, -20.2))
        assert tool.reference_id == direction.id
        tool.on_click((24.1, 23.0))
        assert tool.targets == [circle.id]

        result = tool.confirm()

        assert len(result.entities) == 2
        assert len(sketch.circles) == 3
        assert _count(sketch.constraints, ConstraintType.EQUAL) == 2
        assert sketch.history[-1].kind == HistoryKind.PATTERN
        assert sketch.history[-1].detail["count"] == 3

    def test_circular_pattern_tool_picks_origin(self, context):
        sketch = context.sketch
        point = sketch.add_entity(Point2D(10, 10))

        tool = CircularPatternTool(context, count=4)
        tool.on_click((0.1, 0.1))
        assert tool.reference_id == ORIGIN_ID
        tool.toggle_target(point.id)

        result = tool.confirm()
        assert len(result.entities) == 3
        assert result.entities[1].pos == pytest.approx((-10.0, -10.0))

    def test_cancel_clears_selection_and_preview(self, context):
        sketch = context.sketch
        axis = sketch.add_entity(Line2D((0, -10), (0, 10)))
        line = sketch.add_entity(Line2D((2, 1), (4, 3)))
        tool = MirrorTool(context)
        tool.select_reference(axis.id)
        tool.toggle_target(line.id)
        tool.refresh_preview()

        tool.cancel()

        assert tool.targets == []
        assert tool.reference_id is None
        assert len(sketch.entities) == 2
