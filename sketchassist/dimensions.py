"""
SketchAssist - Dimension Inference
==================================

Klassifiziert eine mehrdeutige Auswahl (1-2 Kandidaten) plus Cursor-Position
in einen vorgeschlagenen Bemaßungstyp mit Wert, und berechnet beim Abschluss
den Style-Offset, damit die Maßgeometrie durch den Klickpunkt läuft.

Verwendung:
    from sketchassist.dimensions import DimensionInferencer, SelectionCandidate

    inferencer = DimensionInferencer()
    proposal = inferencer.propose(
        [SelectionCandidate.raw_point((0, 0)), SelectionCandidate.raw_point((10, 0))],
        sketch, cursor=(5, 8),
    )
    proposal.kind   # DimensionKind.HORIZONTAL_DISTANCE
    proposal.value  # 10.0

Regeln:
    1 Linie                    -> Length
    1 Kreis/Bogen              -> Radius
    2 Punkte                   -> Distance, per Cursor-Band Horizontal/Vertical
    2 Linien parallel          -> DistanceParallelLines
    2 Linien sonst             -> Angle
    Punkt + Linie              -> DistancePointLine

Offset-Konventionen (wie im Renderer):
    Ausgerichtete Distanzen: Maßlinie bei p1 + perp * (1 + offset[1]),
                             offset[0] entlang der Messrichtung ab Mitte
    Horizontal:              Maßlinie bei mid_y + offset[1]
    Vertikal:                Maßlinie bei mid_x + offset[0]
    Radius:                  offset[0] = Winkel des Leaders,
                             offset[1] = Abstand über den Radius hinaus
    Winkel:                  offset[0] = Winkel um den Scheitel,
                             offset[1] = Bogenradius
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
from enum import Enum
import math

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .constraints import (
    Constraint, ConstraintPoint, ConstraintType, DimensionStyle,
    make_angle, make_distance, make_distance_parallel_lines,
    make_distance_point_line, make_radius,
)
from .geometry import (
    Vec2, Point2D, Line2D, Circle2D, Arc2D,
    cross, distance, dot, foot_point, midpoint, point_line_distance,
    segment_intersection, unit_vector,
)
from .sketch import Sketch


class CandidateKind(Enum):
    ORIGIN = "origin"
    POINT = "point"
    ENTITY = "entity"


@dataclass(frozen=True)
class SelectionCandidate:
    """
    Leichte Auswahl-Referenz für Bemaßungs- und Muster-Werkzeuge.

    Punkt-Kandidaten tragen entweder (entity_id, index) oder nur eine
    explizite Position. Die Position dient auch der Vorschau-Anzeige.
    """
    kind: CandidateKind
    entity_id: Optional[str] = None
    index: Optional[int] = None
    position: Optional[Vec2] = None

    @classmethod
    def origin(cls) -> 'SelectionCandidate':
        return cls(CandidateKind.ORIGIN, position=(0.0, 0.0))

    @classmethod
    def point(cls, entity_id: str, index: int, position: Optional[Vec2] = None) -> 'SelectionCandidate':
        return cls(CandidateKind.POINT, entity_id, index, position)

    @classmethod
    def raw_point(cls, position: Vec2) -> 'SelectionCandidate':
        return cls(CandidateKind.POINT, position=(float(position[0]), float(position[1])))

    @classmethod
    def entity(cls, entity_id: str) -> 'SelectionCandidate':
        return cls(CandidateKind.ENTITY, entity_id)

    def to_constraint_point(self, sketch: Sketch) -> Optional[ConstraintPoint]:
        if self.kind == CandidateKind.ORIGIN:
            return ConstraintPoint.origin()
        if self.kind == CandidateKind.POINT and self.entity_id is not None and self.index is not None:
            return ConstraintPoint(self.entity_id, self.index)
        if self.kind == CandidateKind.ENTITY and isinstance(sketch.get_entity(self.entity_id), Point2D):
            return ConstraintPoint(self.entity_id, 0)
        return None


class DimensionKind(Enum):
    LENGTH = "Length"
    RADIUS = "Radius"
    DISTANCE = "Distance"
    HORIZONTAL_DISTANCE = "HorizontalDistance"
    VERTICAL_DISTANCE = "VerticalDistance"
    DISTANCE_POINT_LINE = "DistancePointLine"
    DISTANCE_PARALLEL_LINES = "DistanceParallelLines"
    ANGLE = "Angle"


_ALIGNED_KINDS = (
    DimensionKind.LENGTH,
    DimensionKind.DISTANCE,
    DimensionKind.DISTANCE_POINT_LINE,
    DimensionKind.DISTANCE_PARALLEL_LINES,
)


@dataclass
class DimensionProposal:
    """
    Vorgeschlagene Bemaßung.

    measure_points: (p1, p2) der gemessenen Strecke bzw. (Zentrum,) beim Radius
                    bzw. (Scheitel,) beim Winkel. Bei Punkt-Linie und parallelen
                    Linien liegt p1 auf der Bezugslinie.
    reference_direction: Richtung der Bezugslinie; liefert die Messrichtung,
                         wenn p1 und p2 zusammenfallen
    """
    kind: Optional[DimensionKind]
    value: float = 0.0
    label: str = ""
    is_valid: bool = False
    selection: Tuple[SelectionCandidate, ...] = field(default_factory=tuple)
    measure_points: Tuple[Vec2, ...] = field(default_factory=tuple)
    radius: float = 0.0
    reason: str = ""
    reference_direction: Optional[Vec2] = None

    @classmethod
    def invalid(cls, reason: str, selection: Sequence[SelectionCandidate] = ()) -> 'DimensionProposal':
        return cls(kind=None, is_valid=False, selection=tuple(selection), reason=reason)

    def default_offset(self) -> Tuple[float, float]:
        if self.kind == DimensionKind.RADIUS:
            return Tolerances.DIMENSION_RADIUS_OFFSET
        return Tolerances.DIMENSION_DEFAULT_OFFSET

    def to_constraint(self, sketch: Sketch, offset: Optional[Tuple[float, float]] = None) -> Optional[Constraint]:
        """Erzeugt den Constraint, None wenn die Auswahl nicht referenzierbar ist."""
        if not self.is_valid:
            return None
        style = DimensionStyle(offset=tuple(offset) if offset is not None else self.default_offset())
        kind, sel = self.kind, self.selection

        if kind == DimensionKind.LENGTH:
            line_id = sel[0].entity_id
            return make_distance(ConstraintPoint(line_id, 0), ConstraintPoint(line_id, 1), self.value, style)
        if kind == DimensionKind.RADIUS:
            return make_radius(sel[0].entity_id, self.value, style)
        if kind in (DimensionKind.DISTANCE, DimensionKind.HORIZONTAL_DISTANCE, DimensionKind.VERTICAL_DISTANCE):
            p1, p2 = (c.to_constraint_point(sketch) for c in sel)
            if p1 is None or p2 is None:
                return None
            ctype = {
                DimensionKind.DISTANCE: ConstraintType.DISTANCE,
                DimensionKind.HORIZONTAL_DISTANCE: ConstraintType.HORIZONTAL_DISTANCE,
                DimensionKind.VERTICAL_DISTANCE: ConstraintType.VERTICAL_DISTANCE,
            }[kind]
            return make_distance(p1, p2, self.value, style, kind=ctype)
        if kind == DimensionKind.DISTANCE_POINT_LINE:
            point_c, line_c = _split_point_line(sketch, sel)
            point = point_c.to_constraint_point(sketch)
            if point is None:
                return None
            return make_distance_point_line(point, line_c.entity_id, self.value, style)
        if kind == DimensionKind.DISTANCE_PARALLEL_LINES:
            return make_distance_parallel_lines(sel[0].entity_id, sel[1].entity_id, self.value, style)
        if kind == DimensionKind.ANGLE:
            return make_angle(sel[0].entity_id, sel[1].entity_id, self.value, style)
        return None


# =============================================================================
# Auflösung der Kandidaten
# =============================================================================

def _resolve_point(sketch: Sketch, candidate: SelectionCandidate) -> Optional[Vec2]:
    """Position eines punktartigen Kandidaten oder None."""
    if candidate.kind == CandidateKind.ORIGIN:
        return (0.0, 0.0)
    if candidate.kind == CandidateKind.POINT:
        if candidate.entity_id is None:
            return candidate.position
        if candidate.index is None:
            return None
        return sketch.resolve_point(ConstraintPoint(candidate.entity_id, candidate.index))
    entity = sketch.get_entity(candidate.entity_id) if candidate.entity_id else None
    if isinstance(entity, Point2D):
        return entity.pos
    return None


def _resolve_line(sketch: Sketch, candidate: SelectionCandidate) -> Optional[Line2D]:
    if candidate.kind != CandidateKind.ENTITY or candidate.entity_id is None:
        return None
    entity = sketch.get_entity(candidate.entity_id)
    return entity if isinstance(entity, Line2D) else None


def _split_point_line(sketch: Sketch, selection: Sequence[SelectionCandidate]):
    a, b = selection
    if _resolve_line(sketch, a) is not None:
        return b, a
    return a, b


def _lines_tied_parallel(sketch: Sketch, line1_id: str, line2_id: str) -> bool:
    """Bestehender Parallel-Constraint oder Winkel-Constraint mit 0 bzw. pi."""
    pair = {line1_id, line2_id}
    for c in sketch.constraints:
        if set(c.entities) != pair:
            continue
        if c.type == ConstraintType.PARALLEL:
            return True
        if c.type == ConstraintType.ANGLE and c.value is not None:
            if (abs(c.value) < Tolerances.DIMENSION_ANGLE_PARALLEL
                    or abs(abs(c.value) - math.pi) < Tolerances.DIMENSION_ANGLE_PARALLEL):
                return True
    return False


def _fmt(value: float) -> str:
    return f"{value:.2f}"


# =============================================================================
# Inferenz
# =============================================================================

def _propose_two_points(selection, p1: Vec2, p2: Vec2, cursor: Optional[Vec2]) -> DimensionProposal:
    kind = DimensionKind.DISTANCE
    value = distance(p1, p2)
    if cursor is not None:
        min_x, max_x = min(p1[0], p2[0]), max(p1[0], p2[0])
        min_y, max_y = min(p1[1], p2[1]), max(p1[1], p2[1])
        in_x_band = min_x < cursor[0] < max_x
        in_y_band = min_y < cursor[1] < max_y
        if in_x_band and not in_y_band:
            kind, value = DimensionKind.HORIZONTAL_DISTANCE, abs(p2[0] - p1[0])
        elif in_y_band and not in_x_band:
            kind, value = DimensionKind.VERTICAL_DISTANCE, abs(p2[1] - p1[1])

    prefix = {DimensionKind.HORIZONTAL_DISTANCE: "H ", DimensionKind.VERTICAL_DISTANCE: "V "}.get(kind, "")
    return DimensionProposal(kind, value, prefix + _fmt(value), True, tuple(selection), (p1, p2))


def _propose_two_lines(sketch: Sketch, selection, l1: Line2D, l2: Line2D) -> DimensionProposal:
    u1, u2 = l1.direction, l2.direction
    if u1 is None or u2 is None:
        return DimensionProposal.invalid("Degenerierte Linie", selection)

    parallel = abs(cross(u1, u2)) < Tolerances.DIMENSION_PARALLEL or _lines_tied_parallel(sketch, l1.id, l2.id)
    if parallel:
        other = l2.midpoint
        foot = foot_point(other, l1.start, l1.end)
        value = point_line_distance(other, l1.start, l1.end)
        return DimensionProposal(DimensionKind.DISTANCE_PARALLEL_LINES, value, _fmt(value), True,
                                 tuple(selection), (foot, other), reference_direction=u1)

    value = math.acos(max(-1.0, min(1.0, abs(dot(u1, u2)))))
    hit = segment_intersection(l1.start, l1.end, l2.start, l2.end, bounded=False)
    vertex = hit[0] if hit else midpoint(l1.midpoint, l2.midpoint)
    return DimensionProposal(DimensionKind.ANGLE, value, f"{math.degrees(value):.1f}°", True,
                             tuple(selection), (vertex,))


def propose_dimension(selection: Sequence[SelectionCandidate], sketch: Sketch,
                      cursor: Optional[Vec2] = None) -> DimensionProposal:
    """
    Bemaßungsvorschlag für eine Auswahl von 1-2 Kandidaten.

    Nicht auflösbare Referenzen liefern einen ungültigen Vorschlag statt
    einer Exception.
    """
    selection = tuple(selection)

    if len(selection) == 1:
        candidate = selection[0]
        line = _resolve_line(sketch, candidate)
        if line is not None:
            value = line.length
            return DimensionProposal(DimensionKind.LENGTH, value, _fmt(value), True,
                                     selection, (line.start, line.end))
        entity = sketch.get_entity(candidate.entity_id) if candidate.kind == CandidateKind.ENTITY else None
        if isinstance(entity, (Circle2D, Arc2D)):
            return DimensionProposal(DimensionKind.RADIUS, entity.radius, "R" + _fmt(entity.radius), True,
                                     selection, (entity.center,), radius=entity.radius)
        return DimensionProposal.invalid("Keine bemaßbare Einzelauswahl", selection)

    if len(selection) != 2:
        return DimensionProposal.invalid(f"{len(selection)} Kandidaten ausgewählt", selection)

    a, b = selection
    pa, pb = _resolve_point(sketch, a), _resolve_point(sketch, b)
    if pa is not None and pb is not None:
        return _propose_two_points(selection, pa, pb, cursor)

    la, lb = _resolve_line(sketch, a), _resolve_line(sketch, b)
    if la is not None and lb is not None:
        return _propose_two_lines(sketch, selection, la, lb)

    point, line = (pa, lb) if pa is not None else (pb, la)
    if point is not None and line is not None:
        if line.direction is None:
            return DimensionProposal.invalid("Degenerierte Linie", selection)
        value = point_line_distance(point, line.start, line.end)
        foot = foot_point(point, line.start, line.end)
        return DimensionProposal(DimensionKind.DISTANCE_POINT_LINE, value, _fmt(value), True,
                                 selection, (foot, point), reference_direction=line.direction)

    return DimensionProposal.invalid("Auswahl nicht auflösbar", selection)


# =============================================================================
# Platzierung
# =============================================================================

def _aligned_frame(proposal: DimensionProposal):
    p1, p2 = proposal.measure_points[0], proposal.measure_points[1]
    n = unit_vector(p1, p2)
    if n is None:
        # Punkt liegt auf der Bezugslinie: Normale der Linie
        ref = proposal.reference_direction
        n = (-ref[1], ref[0]) if ref is not None else (1.0, 0.0)
    perp = (-n[1], n[0])
    return p1, p2, n, perp


def placement_offset(proposal: DimensionProposal, click: Vec2) -> Tuple[float, float]:
    """
    Style-Offset, mit dem die Maßgeometrie durch den Klickpunkt läuft.

    Zerlegt den Klick in dieselbe Parallel-/Senkrecht-Basis, die auch für
    die Wertberechnung verwendet wurde.
    """
    if not proposal.is_valid:
        return Tolerances.DIMENSION_DEFAULT_OFFSET
    kind = proposal.kind

    if kind in _ALIGNED_KINDS:
        p1, p2, n, perp = _aligned_frame(proposal)
        mid = midpoint(p1, p2)
        along = (click[0] - mid[0]) * n[0] + (click[1] - mid[1]) * n[1]
        across = (click[0] - p1[0]) * perp[0] + (click[1] - p1[1]) * perp[1]
        return (along, across - Tolerances.DIMENSION_BASE_GAP)

    if kind in (DimensionKind.HORIZONTAL_DISTANCE, DimensionKind.VERTICAL_DISTANCE):
        mid = midpoint(proposal.measure_points[0], proposal.measure_points[1])
        return (click[0] - mid[0], click[1] - mid[1])

    if kind == DimensionKind.RADIUS:
        center = proposal.measure_points[0]
        angle = math.atan2(click[1] - center[1], click[0] - center[0])
        return (angle, distance(center, click) - proposal.radius)

    if kind == DimensionKind.ANGLE:
        vertex = proposal.measure_points[0]
        angle = math.atan2(click[1] - vertex[1], click[0] - vertex[0])
        return (angle, distance(vertex, click))

    return Tolerances.DIMENSION_DEFAULT_OFFSET


def placement_anchor(proposal: DimensionProposal, offset: Tuple[float, float]) -> Vec2:
    """Umkehrung von placement_offset: der Punkt, durch den die Maßgeometrie läuft."""
    kind = proposal.kind
    if kind in _ALIGNED_KINDS:
        p1, p2, n, perp = _aligned_frame(proposal)
        mid = midpoint(p1, p2)
        across = offset[1] + Tolerances.DIMENSION_BASE_GAP
        return (mid[0] + n[0] * offset[0] + perp[0] * across,
                mid[1] + n[1] * offset[0] + perp[1] * across)

    if kind in (DimensionKind.HORIZONTAL_DISTANCE, DimensionKind.VERTICAL_DISTANCE):
        mid = midpoint(proposal.measure_points[0], proposal.measure_points[1])
        return (mid[0] + offset[0], mid[1] + offset[1])

    if kind == DimensionKind.RADIUS:
        center = proposal.measure_points[0]
        r = proposal.radius + offset[1]
        return (center[0] + r * math.cos(offset[0]), center[1] + r * math.sin(offset[0]))

    if kind == DimensionKind.ANGLE:
        vertex = proposal.measure_points[0]
        return (vertex[0] + offset[1] * math.cos(offset[0]), vertex[1] + offset[1] * math.sin(offset[0]))

    raise ValueError(f"Keine Platzierung für {kind}")


class DimensionInferencer:
    """
    Beobachtet Auswahl und Cursor unabhängig von den Zeichenwerkzeugen.

    ``update`` berechnet den Vorschlag bei jeder Mausbewegung neu, bevor er
    im selben Event gelesen wird.
    """

    def __init__(self):
        self.current: Optional[DimensionProposal] = None

    def propose(self, selection: Sequence[SelectionCandidate], sketch: Sketch,
                cursor: Optional[Vec2] = None) -> DimensionProposal:
        return propose_dimension(selection, sketch, cursor)

    def update(self, selection: Sequence[SelectionCandidate], sketch: Sketch,
               cursor: Optional[Vec2]) -> DimensionProposal:
        self.current = propose_dimension(selection, sketch, cursor)
        if is_enabled("sketch_input_logging"):
            logger.debug(f"[Dimension] {self.current.kind} {self.current.label}")
        return self.current

    def finish(self, selection: Sequence[SelectionCandidate], sketch: Sketch,
               click: Vec2) -> Optional[Constraint]:
        """Vorschlag am Klickpunkt festschreiben und als Constraint in den Sketch übernehmen."""
        proposal = propose_dimension(selection, sketch, click)
        if not proposal.is_valid:
            logger.debug(f"[Dimension] Kein Vorschlag: {proposal.reason}")
            return None
        constraint = proposal.to_constraint(sketch, placement_offset(proposal, click))
        if constraint is None:
            return None
        added = sketch.add_constraint(constraint)
        if added is not None:
            logger.info(f"[Dimension] {proposal.kind.value} = {proposal.label}")
        self.current = None
        return added


def measure(selection: Sequence[SelectionCandidate], sketch: Sketch) -> Optional[DimensionProposal]:
    """Nicht-treibende Messung zweier Kandidaten (gleiche Wertregeln, kein Cursor-Band)."""
    proposal = propose_dimension(selection, sketch, None)
    return proposal if proposal.is_valid else None
