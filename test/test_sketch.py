"""
Tests für den Sketch-Container: Referenz-Pruning, Vorschau, Snapshot, Serialisierung.

Run: pytest test/test_sketch.py -v
"""

import pytest

from sketchassist.constraints import (
    Constraint, ConstraintPoint, ConstraintType,
    make_coincident, make_distance, make_equal, make_fix, make_horizontal,
)
from sketchassist.geometry import Circle2D, Line2D, Point2D
from sketchassist.sketch import HistoryKind, Sketch


def test_remove_entity_prunes_referencing_constraints(square_sketch):
    bottom, right, top, left = square_sketch.lines
    square_sketch.add_constraint(make_horizontal(bottom.id))
    square_sketch.add_constraint(make_coincident(ConstraintPoint(bottom.id, 1), ConstraintPoint(right.id, 0)))
    square_sketch.add_constraint(make_equal(top.id, left.id))

    pruned = square_sketch.remove_entity(bottom.id)

    assert pruned == 2
    assert [c.type for c in square_sketch.constraints] == [ConstraintType.EQUAL]
    assert square_sketch.history[-1].kind == HistoryKind.DELETE_GEOMETRY


def test_remove_unknown_entity_is_noop(sketch):
    assert sketch.remove_entity("missing") == 0
    assert sketch.history == []


def test_constraint_with_missing_reference_is_refused(sketch):
    line = sketch.add_entity(Line2D((0, 0), (1, 0)))
    assert sketch.add_constraint(make_equal(line.id, "missing")) is None
    assert sketch.constraints == []


def test_constraint_on_preview_is_refused(sketch):
    line = sketch.add_entity(Line2D((0, 0), (1, 0)))
    sketch.set_preview(Line2D((0, 1), (1, 1), id="preview_line"))
    assert sketch.add_constraint(make_equal(line.id, "preview_line")) is None


def test_duplicate_constraint_is_refused(sketch):
    a = sketch.add_entity(Line2D((0, 0), (1, 0)))
    b = sketch.add_entity(Line2D((0, 1), (1, 1)))
    assert sketch.add_constraint(make_equal(a.id, b.id)) is not None
    # Equal ist symmetrisch
    assert sketch.add_constraint(make_equal(b.id, a.id)) is None
    assert len(sketch.constraints) == 1


@pytest.mark.parametrize("constraint", [
    Constraint(ConstraintType.COINCIDENT, points=[ConstraintPoint("a", 0)]),
    Constraint(ConstraintType.DISTANCE, points=[ConstraintPoint("a", 0), ConstraintPoint("a", 1)]),
    Constraint(ConstraintType.FIX, points=[ConstraintPoint("a", 0)]),
])
def test_malformed_constraint_is_refused(sketch, constraint):
    sketch.add_entity(Line2D((0, 0), (1, 0), id="a"))
    assert sketch.add_constraint(constraint) is None


def test_duplicate_entity_id_raises(sketch):
    sketch.add_entity(Point2D(0, 0, id="p"))
    with pytest.raises(ValueError):
        sketch.add_entity(Point2D(1, 1, id="p"))


def test_preview_requires_prefix(sketch):
    with pytest.raises(ValueError):
        sketch.set_preview(Line2D((0, 0), (1, 0), id="line"))


def test_strip_previews_by_prefix(sketch):
    sketch.set_preview(Line2D((0, 0), (1, 0), id="preview_line"))
    sketch.set_preview(Circle2D((0, 0), 1.0, id="preview_circle"))

    assert sketch.strip_previews("preview_line") == 1
    assert [e.id for e in sketch.entities] == ["preview_circle"]


def test_resolve_point(sketch):
    line = sketch.add_entity(Line2D((1, 2), (3, 4)))
    assert sketch.resolve_point(ConstraintPoint(line.id, 1)) == (3.0, 4.0)
    assert sketch.resolve_point(ConstraintPoint.origin()) == (0.0, 0.0)
    assert sketch.resolve_point(ConstraintPoint(line.id, 5)) is None
    assert sketch.resolve_point(ConstraintPoint("missing", 0)) is None


def test_snapshot_is_independent_and_without_previews(sketch):
    line = sketch.add_entity(Line2D((0, 0), (1, 0)))
    sketch.set_preview(Line2D((0, 1), (1, 1), id="preview_line"))

    snapshot = sketch.snapshot()
    sketch.replace_entity(Line2D((0, 0), (5, 0), id=line.id))

    assert [e.id for e in snapshot.entities] == [line.id]
    assert snapshot.get_entity(line.id).end == (1.0, 0.0)
    assert snapshot.id == sketch.id


def test_dict_round_trip(square_sketch):
    bottom = square_sketch.lines[0]
    square_sketch.add_constraint(make_horizontal(bottom.id))
    square_sketch.add_constraint(make_distance(ConstraintPoint(bottom.id, 0), ConstraintPoint(bottom.id, 1), 10.0))
    square_sketch.add_constraint(make_fix(ConstraintPoint(bottom.id, 0), (0.0, 0.0)))
    square_sketch.set_preview(Line2D((0, 1), (1, 1), id="preview_line"))

    restored = Sketch.from_dict(square_sketch.to_dict())

    assert restored.id == square_sketch.id
    assert restored.entities == square_sketch.committed_entities()
    assert [c.signature() for c in restored.constraints] == [c.signature() for c in square_sketch.constraints]
    assert len(restored.history) == len(square_sketch.history)


def test_from_dict_drops_dangling_constraints():
    data = {
        "id": "s1",
        "entities": [Line2D((0, 0), (1, 0), id="a").to_dict()],
        "constraints": [make_equal("a", "gone").to_dict(), make_horizontal("a").to_dict()],
    }
    restored = Sketch.from_dict(data)
    assert [c.type for c in restored.constraints] == [ConstraintType.HORIZONTAL]


def test_newer_format_is_rejected(sketch):
    data = sketch.to_dict()
    data["format"] += 1
    with pytest.raises(ValueError):
        Sketch.from_dict(data)
