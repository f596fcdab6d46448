"""
SketchAssist - Offset Operation
===============================

Parallele Offset-Linien mit verbundenen Ecken.

Pro ausgewählter Linie entsteht eine Kopie, verschoben um ``distance``
entlang der Normalen (-dy, dx)/len (Vorzeichen per ``flip``), dazu
Parallel(original, kopie) und DistancePointLine(kopie.start, original).
Kopien, deren Endpunkte zusammenfallen, werden per Coincident verbunden.

Verwendung:
    from sketchassist.operations import OffsetOperation

    op = OffsetOperation(sketch)
    result = op.execute([l1.id, l2.id], distance=2.0)
    if result.success:
        ...
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from loguru import logger

from config.tolerances import Tolerances
from .base import SketchOperation, OperationResult
from ..constraints import (
    Constraint, ConstraintPoint, DimensionStyle,
    make_coincident, make_distance_point_line, make_parallel,
)
from ..geometry import Line2D, Vec2, distance as point_distance, new_entity_id, PREVIEW_PREFIX
from ..sketch import Sketch, HistoryKind


@dataclass
class OffsetResult:
    entities: List[Line2D] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)
    skipped: int = 0


def offset_line(line: Line2D, distance: float, flip: bool = False,
                new_id: Optional[str] = None) -> Optional[Line2D]:
    """Verschobene Kopie einer Linie, None bei Länge < OFFSET_MIN_LENGTH."""
    dx = line.end[0] - line.start[0]
    dy = line.end[1] - line.start[1]
    length = (dx * dx + dy * dy) ** 0.5
    if length < Tolerances.OFFSET_MIN_LENGTH:
        return None
    nx, ny = -dy / length, dx / length
    d = -distance if flip else distance
    return Line2D(
        start=(line.start[0] + nx * d, line.start[1] + ny * d),
        end=(line.end[0] + nx * d, line.end[1] + ny * d),
        id=new_id or new_entity_id(),
        construction=line.construction,
    )


def _endpoint_pairs(a: Line2D, b: Line2D):
    for ia, pa in ((0, a.start), (1, a.end)):
        for ib, pb in ((0, b.start), (1, b.end)):
            yield ia, pa, ib, pb


def offset_lines(sketch: Sketch, selected_ids: Sequence[str], distance: float,
                 flip: bool = False, with_constraints: bool = True,
                 preview: bool = False) -> Optional[OffsetResult]:
    """
    Offset für alle ausgewählten Linien.

    Returns:
        OffsetResult oder None, wenn keine ausgewählte Entity eine Linie ist
    """
    originals = [e for e in (sketch.get_entity(i) for i in selected_ids) if isinstance(e, Line2D)]
    if not originals:
        return None

    result = OffsetResult()
    pairs = []
    for n, original in enumerate(originals):
        new_id = f"{PREVIEW_PREFIX}offset_{n}" if preview else None
        copy = offset_line(original, distance, flip, new_id)
        if copy is None:
            logger.debug(f"[Offset] Degenerierte Linie übersprungen: {original.id[:8]}")
            result.skipped += 1
            continue
        result.entities.append(copy)
        pairs.append((original, copy))

    if not with_constraints:
        return result

    for original, copy in pairs:
        result.constraints.append(make_parallel(original.id, copy.id))
        result.constraints.append(make_distance_point_line(
            ConstraintPoint(copy.id, 0), original.id, abs(distance),
            style=DimensionStyle(offset=(0.0, 0.0)),
        ))

    copies = [copy for _, copy in pairs]
    for i in range(len(copies)):
        for j in range(i + 1, len(copies)):
            for ia, pa, ib, pb in _endpoint_pairs(copies[i], copies[j]):
                if point_distance(pa, pb) < Tolerances.OFFSET_STITCH:
                    result.constraints.append(make_coincident(
                        ConstraintPoint(copies[i].id, ia), ConstraintPoint(copies[j].id, ib)))
    return result


class OffsetOperation(SketchOperation):
    """Offset ausgewählter Linien als Sketch-Operation."""
    history_kind = HistoryKind.OFFSET
    log_tag = "Offset"

    def execute(self, selected_ids: Sequence[str], distance: float,
                flip: bool = False) -> OperationResult:
        result = offset_lines(self.sketch, selected_ids, distance, flip)
        if result is None:
            return self._finish(OperationResult.no_target("Keine Linie ausgewählt"))
        if not result.entities:
            return self._finish(OperationResult.no_target("Nur degenerierte Linien ausgewählt"))

        for entity in result.entities:
            self.sketch.add_entity(entity)
        added = self.sketch.add_constraints(result.constraints)
        self._commit([e.id for e in result.entities], [c.id for c in added],
                     detail={"distance": distance, "flip": flip})
        logger.info(f"[Offset] {len(result.entities)} Linien, {len(added)} Constraints (d={distance})")
        if result.skipped:
            return self._finish(OperationResult.warning(
                f"{result.skipped} degenerierte Linien übersprungen", result))
        return self._finish(OperationResult.ok(f"{len(result.entities)} Offset-Linien", result))

    def preview(self, selected_ids: Sequence[str], distance: float, flip: bool = False) -> List[Line2D]:
        """Vorschau-Geometrie ohne Constraints und ohne Sketch-Änderung."""
        result = offset_lines(self.sketch, selected_ids, distance, flip,
                              with_constraints=False, preview=True)
        return result.entities if result else []
