"""
SketchAssist - Trim Operation
=============================

Testbare Trim-Operation mit klarer Schnittstelle.

Verwendung:
    from sketchassist.operations import TrimOperation

    op = TrimOperation(sketch)
    result = op.find_segment(click_point)

    if result.success:
        op.execute_trim(result.segment)

Ablauf:
- Nächste Linie zum Klick (Segment-Abstand <= TRIM_HIT_DISTANCE)
- Parameter t des Klicks auf der Linie (unbegrenzte Projektion)
- Schnittparameter mit allen anderen Linien, nur wenn auf beiden Segmenten
- Nächster Schnitt links und rechts von t begrenzt das zu entfernende Stück;
  fehlt ein Schnitt auf einer Seite, bleibt das unberührte Linienende die Grenze
- Ohne Schnittpunkte: No-Op
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .base import SketchOperation, OperationResult
from ..constraints import ConstraintPoint
from ..geometry import (
    Line2D, Vec2, clone_entity, is_preview_id,
    point_segment_distance, project_parameter, segment_intersection,
)
from ..sketch import Sketch, HistoryKind

# Schnitte näher als das an einem Linienende zählen nicht als Schnittkante
TRIM_END_EPSILON = 1e-3


@dataclass
class TrimSegment:
    """Beschreibt das zu entfernende Stück [t_start, t_end] einer Linie."""
    target: Line2D
    t_start: float
    t_end: float
    click_t: float
    cut_params: List[float] = field(default_factory=list)

    @property
    def keeps_start(self) -> bool:
        return self.t_start > TRIM_END_EPSILON

    @property
    def keeps_end(self) -> bool:
        return self.t_end < 1.0 - TRIM_END_EPSILON

    def point_at(self, t: float) -> Vec2:
        s, e = self.target.start, self.target.end
        return (s[0] + t * (e[0] - s[0]), s[1] + t * (e[1] - s[1]))


@dataclass
class TrimResult:
    """Ergebnis einer Trim-Analyse."""
    success: bool
    segment: Optional[TrimSegment] = None
    error: str = ""

    @classmethod
    def ok(cls, segment: TrimSegment) -> 'TrimResult':
        return cls(success=True, segment=segment)

    @classmethod
    def no_target(cls) -> 'TrimResult':
        return cls(success=False, error="Kein Ziel gefunden")

    @classmethod
    def no_intersections(cls) -> 'TrimResult':
        return cls(success=False, error="Keine Schnittpunkte")


def find_closest_line(sketch: Sketch, point: Vec2,
                      max_distance: float = Tolerances.TRIM_HIT_DISTANCE) -> Optional[Line2D]:
    best, best_d = None, float("inf")
    for line in sketch.lines:
        if is_preview_id(line.id):
            continue
        d = point_segment_distance(point, line.start, line.end)
        if d < best_d:
            best, best_d = line, d
    if best is None or best_d > max_distance:
        return None
    return best


def cut_parameters(sketch: Sketch, target: Line2D) -> List[float]:
    """Sortierte Schnittparameter von target mit allen anderen Linien."""
    params = []
    for other in sketch.lines:
        if other.id == target.id or is_preview_id(other.id):
            continue
        hit = segment_intersection(target.start, target.end, other.start, other.end)
        if hit is None:
            continue
        t = hit[1]
        if TRIM_END_EPSILON < t < 1.0 - TRIM_END_EPSILON:
            params.append(t)
    return sorted(params)


class TrimOperation(SketchOperation):
    """
    Trim für Linien.

    Trennt Analyse (find_segment) von Ausführung (execute_trim).
    Das ermöglicht Preview ohne Änderung am Sketch.
    """
    history_kind = HistoryKind.TRIM
    log_tag = "Trim"

    def find_segment(self, click_point: Vec2) -> TrimResult:
        target = find_closest_line(self.sketch, click_point)
        if target is None:
            return TrimResult.no_target()

        params = cut_parameters(self.sketch, target)
        if not params:
            return TrimResult.no_intersections()

        click_t = project_parameter(click_point, target.start, target.end)
        left = max((t for t in params if t < click_t), default=0.0)
        right = min((t for t in params if t > click_t), default=1.0)

        if is_enabled("sketch_debug"):
            logger.debug(f"[Trim] {target.id[:8]} click_t={click_t:.4f} cuts={params} -> [{left:.4f}, {right:.4f}]")
        return TrimResult.ok(TrimSegment(target, left, right, click_t, params))

    def execute_trim(self, segment: TrimSegment) -> OperationResult:
        """Entfernt [t_start, t_end] aus der Ziel-Linie."""
        target = segment.target
        sketch = self.sketch

        if segment.keeps_start and segment.keeps_end:
            # Mittelstück: Linie wird in zwei Linien geteilt
            head = clone_entity(target, id=target.id, end=segment.point_at(segment.t_start))
            tail = clone_entity(target, start=segment.point_at(segment.t_end))
            sketch.replace_entity(head)
            sketch.add_entity(tail)
            self._retarget_endpoint(target.id, tail.id)
            changed = [head.id, tail.id]
        elif segment.keeps_start:
            head = clone_entity(target, id=target.id, end=segment.point_at(segment.t_start))
            sketch.replace_entity(head)
            self._drop_endpoint_constraints(target.id, 1)
            changed = [head.id]
        elif segment.keeps_end:
            tail = clone_entity(target, id=target.id, start=segment.point_at(segment.t_end))
            sketch.replace_entity(tail)
            self._drop_endpoint_constraints(target.id, 0)
            changed = [tail.id]
        else:
            sketch.remove_entity(target.id)
            changed = []

        self._commit([target.id] + [c for c in changed if c != target.id],
                     detail={"t_start": segment.t_start, "t_end": segment.t_end})
        logger.info(f"[Trim] {target.id[:8]}: [{segment.t_start:.4f}, {segment.t_end:.4f}] entfernt")
        return self._finish(OperationResult.ok("Getrimmt", changed))

    def execute(self, click_point: Vec2) -> OperationResult:
        """Analyse und Ausführung in einem Schritt; No-Op ohne Ziel oder Schnitte."""
        found = self.find_segment(click_point)
        if not found.success:
            if found.error == TrimResult.no_intersections().error:
                return self._finish(OperationResult.no_intersections())
            return self._finish(OperationResult.no_target())
        return self.execute_trim(found.segment)

    def _drop_endpoint_constraints(self, line_id: str, index: int):
        """Constraints am verschobenen Endpunkt passen nicht mehr zur Geometrie."""
        moved = ConstraintPoint(line_id, index)
        before = len(self.sketch.constraints)
        self.sketch.constraints = [c for c in self.sketch.constraints if moved not in c.points]
        dropped = before - len(self.sketch.constraints)
        if dropped:
            logger.debug(f"[Trim] {dropped} Constraints am getrimmten Ende entfernt")

    def _retarget_endpoint(self, old_id: str, new_id: str):
        """Punkt-Referenzen auf das alte Linienende zeigen nach dem Teilen auf die neue Linie."""
        old_end = ConstraintPoint(old_id, 1)
        for constraint in self.sketch.constraints:
            constraint.points = [ConstraintPoint(new_id, 1) if p == old_end else p
                                 for p in constraint.points]


def trim_at(sketch: Sketch, click_point: Vec2) -> OperationResult:
    """Funktionale Kurzform von TrimOperation(sketch).execute(click_point)."""
    return TrimOperation(sketch).execute(click_point)
