"""
SketchAssist - Constraint System
================================

Geometrische und dimensionale Constraints, referenziert über Entity-IDs.

Constraints tragen nie literale Positionen ihrer Punkte: ein ConstraintPoint
ist immer (Entity-ID, Punkt-Index) oder der Ursprung. Positionen werden bei
Bedarf aus der aktuellen Geometrie abgeleitet (``Sketch.resolve_point``).

Belegung je Typ:
    COINCIDENT              points=[a, b]
    HORIZONTAL, VERTICAL    entities=[line]
    PARALLEL, PERPENDICULAR entities=[line, line]
    EQUAL                   entities=[e1, e2]
    FIX                     points=[p], position
    TANGENT                 entities=[line|arc, arc]
    SYMMETRIC               points=[p1, p2], entities=[axis]
    DISTANCE, HORIZONTAL_DISTANCE, VERTICAL_DISTANCE
                            points=[p1, p2], value
    DISTANCE_POINT_LINE     points=[p], entities=[line], value
    DISTANCE_PARALLEL_LINES entities=[line, line], value
    ANGLE                   entities=[line, line], value (Radians)
    RADIUS                  entities=[circle|arc], value
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
from enum import Enum, auto
import uuid

from .geometry import Vec2

# Sentinel-ID für den Sketch-Ursprung
ORIGIN_ID = "00000000-0000-0000-0000-000000000000"


class ConstraintType(Enum):
    """Verfügbare Constraint-Typen"""
    # Geometrisch
    COINCIDENT = auto()         # Zwei Punkte zusammen
    HORIZONTAL = auto()         # Linie horizontal
    VERTICAL = auto()           # Linie vertikal
    PARALLEL = auto()           # Zwei Linien parallel
    PERPENDICULAR = auto()      # Zwei Linien senkrecht
    EQUAL = auto()              # Gleiche Länge / gleicher Radius
    FIX = auto()                # Punkt fixiert
    TANGENT = auto()            # Tangential
    SYMMETRIC = auto()          # Zwei Punkte symmetrisch zu Achse

    # Dimensionen
    DISTANCE = auto()
    HORIZONTAL_DISTANCE = auto()
    VERTICAL_DISTANCE = auto()
    DISTANCE_POINT_LINE = auto()
    DISTANCE_PARALLEL_LINES = auto()
    ANGLE = auto()
    RADIUS = auto()


DIMENSIONAL_TYPES = frozenset({
    ConstraintType.DISTANCE,
    ConstraintType.HORIZONTAL_DISTANCE,
    ConstraintType.VERTICAL_DISTANCE,
    ConstraintType.DISTANCE_POINT_LINE,
    ConstraintType.DISTANCE_PARALLEL_LINES,
    ConstraintType.ANGLE,
    ConstraintType.RADIUS,
})

# (Anzahl Punkte, Anzahl Entities) je Typ
_LAYOUT: Dict[ConstraintType, Tuple[int, int]] = {
    ConstraintType.COINCIDENT: (2, 0),
    ConstraintType.HORIZONTAL: (0, 1),
    ConstraintType.VERTICAL: (0, 1),
    ConstraintType.PARALLEL: (0, 2),
    ConstraintType.PERPENDICULAR: (0, 2),
    ConstraintType.EQUAL: (0, 2),
    ConstraintType.FIX: (1, 0),
    ConstraintType.TANGENT: (0, 2),
    ConstraintType.SYMMETRIC: (2, 1),
    ConstraintType.DISTANCE: (2, 0),
    ConstraintType.HORIZONTAL_DISTANCE: (2, 0),
    ConstraintType.VERTICAL_DISTANCE: (2, 0),
    ConstraintType.DISTANCE_POINT_LINE: (1, 1),
    ConstraintType.DISTANCE_PARALLEL_LINES: (0, 2),
    ConstraintType.ANGLE: (0, 2),
    ConstraintType.RADIUS: (0, 1),
}


@dataclass(frozen=True)
class ConstraintPoint:
    """Referenz auf einen Punkt einer Entity oder auf den Ursprung."""
    entity_id: str
    index: int = 0

    @classmethod
    def origin(cls) -> 'ConstraintPoint':
        return cls(ORIGIN_ID, 0)

    @property
    def is_origin(self) -> bool:
        return self.entity_id == ORIGIN_ID

    def to_dict(self) -> dict:
        return {"id": self.entity_id, "index": self.index}

    @classmethod
    def from_dict(cls, data: dict) -> 'ConstraintPoint':
        return cls(data["id"], int(data.get("index", 0)))


@dataclass
class DimensionStyle:
    """
    Darstellung einer Bemaßung.

    offset: 2D-Versatz der Maßlinie/des Texts (Bedeutung je Typ, siehe
            ``sketchassist.dimensions``)
    expression: optionaler symbolischer Ausdruck ("width * 2")
    """
    offset: Tuple[float, float] = (0.0, 1.0)
    expression: Optional[str] = None

    def to_dict(self) -> dict:
        return {"offset": list(self.offset), "expression": self.expression}

    @classmethod
    def from_dict(cls, data: dict) -> 'DimensionStyle':
        offset = data.get("offset", (0.0, 1.0))
        return cls(offset=(float(offset[0]), float(offset[1])), expression=data.get("expression"))


@dataclass
class Constraint:
    """Ein Constraint mit typisierter Referenzliste."""
    type: ConstraintType
    points: List[ConstraintPoint] = field(default_factory=list)
    entities: List[str] = field(default_factory=list)
    value: Optional[float] = None
    position: Optional[Vec2] = None  # Nur FIX
    style: Optional[DimensionStyle] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_dimensional(self) -> bool:
        return self.type in DIMENSIONAL_TYPES

    def referenced_ids(self) -> Set[str]:
        """Alle referenzierten Entity-IDs (ohne Ursprung)."""
        ids = {p.entity_id for p in self.points if not p.is_origin}
        ids.update(self.entities)
        return ids

    def references(self, entity_id: str) -> bool:
        return entity_id in self.referenced_ids()

    def is_valid(self) -> bool:
        """Prüft ob Punkt- und Entity-Anzahl zum Typ passen."""
        n_points, n_entities = _LAYOUT[self.type]
        if len(self.points) != n_points or len(self.entities) != n_entities:
            return False
        if self.is_dimensional and self.value is None:
            return False
        if self.type == ConstraintType.FIX and self.position is None:
            return False
        return True

    def signature(self) -> tuple:
        """Vergleichsschlüssel für Duplikat-Erkennung (ohne ID und Style)."""
        points = tuple((p.entity_id, p.index) for p in self.points)
        if self.type in (ConstraintType.COINCIDENT, ConstraintType.PARALLEL,
                         ConstraintType.PERPENDICULAR, ConstraintType.EQUAL):
            # Symmetrische Relationen
            points = tuple(sorted(points))
            entities = tuple(sorted(self.entities))
        else:
            entities = tuple(self.entities)
        return (self.type, points, entities, self.value, self.position)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "type": self.type.name,
            "points": [p.to_dict() for p in self.points],
            "entities": list(self.entities),
        }
        if self.value is not None:
            data["value"] = self.value
        if self.position is not None:
            data["position"] = list(self.position)
        if self.style is not None:
            data["style"] = self.style.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Constraint':
        position = data.get("position")
        style = data.get("style")
        return cls(
            type=ConstraintType[data["type"]],
            points=[ConstraintPoint.from_dict(p) for p in data.get("points", [])],
            entities=list(data.get("entities", [])),
            value=data.get("value"),
            position=(float(position[0]), float(position[1])) if position is not None else None,
            style=DimensionStyle.from_dict(style) if style is not None else None,
            id=data.get("id") or str(uuid.uuid4()),
        )

    def __repr__(self):
        refs = [f"{p.entity_id[:8]}.{p.index}" for p in self.points] + [e[:8] for e in self.entities]
        value = f"={self.value:.4g}" if self.value is not None else ""
        return f"Constraint({self.type.name}{value}: {', '.join(refs)})"


# === Factory-Funktionen ===

def make_coincident(a: ConstraintPoint, b: ConstraintPoint) -> Constraint:
    return Constraint(ConstraintType.COINCIDENT, points=[a, b])


def make_horizontal(line_id: str) -> Constraint:
    return Constraint(ConstraintType.HORIZONTAL, entities=[line_id])


def make_vertical(line_id: str) -> Constraint:
    return Constraint(ConstraintType.VERTICAL, entities=[line_id])


def make_parallel(line1_id: str, line2_id: str) -> Constraint:
    return Constraint(ConstraintType.PARALLEL, entities=[line1_id, line2_id])


def make_perpendicular(line1_id: str, line2_id: str) -> Constraint:
    return Constraint(ConstraintType.PERPENDICULAR, entities=[line1_id, line2_id])


def make_equal(entity1_id: str, entity2_id: str) -> Constraint:
    """Gleiche Länge (Linien) bzw. gleicher Radius (Kreise/Bögen)."""
    return Constraint(ConstraintType.EQUAL, entities=[entity1_id, entity2_id])


def make_fix(point: ConstraintPoint, position: Vec2) -> Constraint:
    return Constraint(ConstraintType.FIX, points=[point],
                      position=(float(position[0]), float(position[1])))


def make_tangent(entity1_id: str, entity2_id: str) -> Constraint:
    return Constraint(ConstraintType.TANGENT, entities=[entity1_id, entity2_id])


def make_symmetric(p1: ConstraintPoint, p2: ConstraintPoint, axis_id: str) -> Constraint:
    return Constraint(ConstraintType.SYMMETRIC, points=[p1, p2], entities=[axis_id])


def make_distance(p1: ConstraintPoint, p2: ConstraintPoint, value: float,
                  style: Optional[DimensionStyle] = None,
                  kind: ConstraintType = ConstraintType.DISTANCE) -> Constraint:
    """Punkt-Punkt Abstand; kind wählt DISTANCE / HORIZONTAL_DISTANCE / VERTICAL_DISTANCE."""
    if kind not in (ConstraintType.DISTANCE, ConstraintType.HORIZONTAL_DISTANCE,
                    ConstraintType.VERTICAL_DISTANCE):
        raise ValueError(f"Kein Punkt-Punkt-Abstand: {kind}")
    return Constraint(kind, points=[p1, p2], value=float(value), style=style or DimensionStyle())


def make_distance_point_line(point: ConstraintPoint, line_id: str, value: float,
                             style: Optional[DimensionStyle] = None) -> Constraint:
    return Constraint(ConstraintType.DISTANCE_POINT_LINE, points=[point], entities=[line_id],
                      value=float(value), style=style or DimensionStyle())


def make_distance_parallel_lines(line1_id: str, line2_id: str, value: float,
                                 style: Optional[DimensionStyle] = None) -> Constraint:
    return Constraint(ConstraintType.DISTANCE_PARALLEL_LINES, entities=[line1_id, line2_id],
                      value=float(value), style=style or DimensionStyle())


def make_angle(line1_id: str, line2_id: str, value: float,
               style: Optional[DimensionStyle] = None) -> Constraint:
    """Winkel zwischen zwei Linien in Radians."""
    return Constraint(ConstraintType.ANGLE, entities=[line1_id, line2_id],
                      value=float(value), style=style or DimensionStyle())


def make_radius(entity_id: str, value: float, style: Optional[DimensionStyle] = None) -> Constraint:
    return Constraint(ConstraintType.RADIUS, entities=[entity_id], value=float(value),
                      style=style or DimensionStyle(offset=(0.7, 0.7)))
