"""
Tests für die Offset-Operation.

Run: pytest test/test_offset.py -v
"""

import pytest

from sketchassist.constraints import ConstraintPoint, ConstraintType
from sketchassist.geometry import Circle2D, Line2D
from sketchassist.operations import OffsetOperation, ResultStatus, offset_line, offset_lines
from sketchassist.sketch import HistoryKind


def test_offset_line_moves_along_left_normal():
    copy = offset_line(Line2D((0, 0), (10, 0)), 2.0)
    assert copy.start == pytest.approx((0.0, 2.0))
    assert copy.end == pytest.approx((10.0, 2.0))


def test_flip_negates_direction():
    copy = offset_line(Line2D((0, 0), (10, 0)), 2.0, flip=True)
    assert copy.start == pytest.approx((0.0, -2.0))


def test_round_trip_restores_original(sketch):
    original = sketch.add_entity(Line2D((1.5, -3.0), (7.25, 4.5)))

    there = offset_lines(sketch, [original.id], 3.7).entities[0]
    sketch.add_entity(there)
    back = offset_lines(sketch, [there.id], 3.7, flip=True).entities[0]

    assert back.start == pytest.approx(original.start, abs=1e-6)
    assert back.end == pytest.approx(original.end, abs=1e-6)


def test_constraints_per_copy(sketch):
    line = sketch.add_entity(Line2D((0, 0), (10, 0)))
    result = offset_lines(sketch, [line.id], 2.0)

    copy = result.entities[0]
    types = [c.type for c in result.constraints]
    assert types == [ConstraintType.PARALLEL, ConstraintType.DISTANCE_POINT_LINE]
    distance_c = result.constraints[1]
    assert distance_c.points == [ConstraintPoint(copy.id, 0)]
    assert distance_c.entities == [line.id]
    assert distance_c.value == pytest.approx(2.0)


def test_adjacent_copies_are_stitched(sketch):
    a = sketch.add_entity(Line2D((0, 0), (5, 0)))
    b = sketch.add_entity(Line2D((5, 0), (10, 0)))
    result = offset_lines(sketch, [a.id, b.id], 1.0)

    copy_a, copy_b = result.entities
    stitches = [c for c in result.constraints if c.type == ConstraintType.COINCIDENT]
    assert len(stitches) == 1
    assert stitches[0].points == [ConstraintPoint(copy_a.id, 1), ConstraintPoint(copy_b.id, 0)]


def test_non_lines_give_none(sketch):
    circle = sketch.add_entity(Circle2D((0, 0), 3.0))
    assert offset_lines(sketch, [circle.id], 1.0) is None
    assert offset_lines(sketch, ["missing"], 1.0) is None


def test_degenerate_line_is_skipped(sketch):
    line = sketch.add_entity(Line2D((1, 1), (1, 1)))
    assert offset_lines(sketch, [line.id], 1.0).entities == []


class TestOffsetOperation:

    def test_execute_commits(self, sketch):
        line = sketch.add_entity(Line2D((0, 0), (10, 0)))
        op = OffsetOperation(sketch)
        result = op.execute([line.id], 2.0)

        assert result.success
        assert op.last_result is result
        assert len(sketch.lines) == 2
        assert len(sketch.constraints) == 2
        assert sketch.history[-1].kind == HistoryKind.OFFSET

    def test_no_target(self, sketch):
        result = OffsetOperation(sketch).execute([], 2.0)
        assert result.status == ResultStatus.NO_TARGET
        assert sketch.entities == []

    def test_only_degenerate_lines_is_noop(self, sketch):
        dot = sketch.add_entity(Line2D((1, 1), (1, 1)))
        before = list(sketch.history)

        result = OffsetOperation(sketch).execute([dot.id], 2.0)

        assert result.is_noop
        assert sketch.history == before
        assert len(sketch.lines) == 1

    def test_partial_skip_is_warning(self, sketch):
        line = sketch.add_entity(Line2D((0, 0), (10, 0)))
        dot = sketch.add_entity(Line2D((1, 1), (1, 1)))

        result = OffsetOperation(sketch).execute([line.id, dot.id], 2.0)

        assert result.status == ResultStatus.WARNING
        assert result.success
        assert result.data.skipped == 1
        assert len(sketch.lines) == 3

    def test_preview_does_not_touch_sketch(self, sketch):
        line = sketch.add_entity(Line2D((0, 0), (10, 0)))
        preview = OffsetOperation(sketch).preview([line.id], 2.0)

        assert len(preview) == 1
        assert preview[0].id.startswith("preview_")
        assert len(sketch.entities) == 1
        assert sketch.constraints == []
