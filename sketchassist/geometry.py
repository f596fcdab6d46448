"""
SketchAssist - Geometrie-Primitives
===================================

Entities (Punkt, Linie, Kreis, Bogen, Ellipse) und reine Geometrie-Funktionen:
Abstände, Segment-Schnitt, Winding-Number, Shoelace-Fläche, Rotation, Spiegelung.

Alle Positionen sind ebenen-lokale 2D-Koordinaten als ``(x, y)``-Tupel.
Winkel sind im Bogenmaß, Bögen laufen gegen den Uhrzeigersinn von
``start_angle`` nach ``end_angle``.

Punkt-Indizes (für ConstraintPoint):
    Point    0 = Position
    Line     0 = Start, 1 = Ende
    Circle   0 = Zentrum
    Arc      0 = Zentrum, 1 = Startpunkt, 2 = Endpunkt
    Ellipse  0 = Zentrum
"""

from dataclasses import dataclass, field, replace
from typing import ClassVar, Dict, List, Optional, Sequence, Tuple, Union
from enum import Enum, auto
import math
import uuid

import numpy as np

from config.tolerances import Tolerances

Vec2 = Tuple[float, float]

# Transiente Vorschau-Entities tragen dieses Präfix und werden nie committet
PREVIEW_PREFIX = "preview_"


def new_entity_id() -> str:
    """Kollisionsresistente Entity-ID (UUID4)."""
    return str(uuid.uuid4())


def is_preview_id(entity_id: Optional[str]) -> bool:
    return bool(entity_id) and entity_id.startswith(PREVIEW_PREFIX)


class GeometryType(Enum):
    """Geometrie-Typen"""
    POINT = auto()
    LINE = auto()
    CIRCLE = auto()
    ARC = auto()
    ELLIPSE = auto()


def _vec(value) -> Vec2:
    # Solver-Antworten liefern gelegentlich Listen oder NumPy-Skalare
    return (float(value[0]), float(value[1]))


# =============================================================================
# Entities
# =============================================================================

@dataclass
class Point2D:
    """Freier Sketch-Punkt."""
    x: float = 0.0
    y: float = 0.0
    id: str = field(default_factory=new_entity_id)
    construction: bool = False

    geometry_type: ClassVar[GeometryType] = GeometryType.POINT
    point_indices: ClassVar[Tuple[int, ...]] = (0,)

    def __post_init__(self):
        self.x = float(self.x)
        self.y = float(self.y)

    @property
    def pos(self) -> Vec2:
        return (self.x, self.y)

    def point_at(self, index: int) -> Optional[Vec2]:
        return self.pos if index == 0 else None

    def to_dict(self) -> dict:
        return {
            "type": "Point",
            "id": self.id,
            "pos": [self.x, self.y],
            "construction": self.construction,
        }


@dataclass
class Line2D:
    """Liniensegment zwischen zwei Positionen."""
    start: Vec2 = (0.0, 0.0)
    end: Vec2 = (0.0, 0.0)
    id: str = field(default_factory=new_entity_id)
    construction: bool = False

    geometry_type: ClassVar[GeometryType] = GeometryType.LINE
    point_indices: ClassVar[Tuple[int, ...]] = (0, 1)

    def __post_init__(self):
        self.start = _vec(self.start)
        self.end = _vec(self.end)

    @property
    def length(self) -> float:
        return distance(self.start, self.end)

    @property
    def midpoint(self) -> Vec2:
        return midpoint(self.start, self.end)

    @property
    def direction(self) -> Optional[Vec2]:
        """Einheitsvektor Start -> Ende, None bei degenerierter Linie."""
        return unit_vector(self.start, self.end)

    def point_at(self, index: int) -> Optional[Vec2]:
        if index == 0:
            return self.start
        if index == 1:
            return self.end
        return None

    def to_dict(self) -> dict:
        return {
            "type": "Line",
            "id": self.id,
            "start": list(self.start),
            "end": list(self.end),
            "construction": self.construction,
        }


@dataclass
class Circle2D:
    """Vollkreis."""
    center: Vec2 = (0.0, 0.0)
    radius: float = 1.0
    id: str = field(default_factory=new_entity_id)
    construction: bool = False

    geometry_type: ClassVar[GeometryType] = GeometryType.CIRCLE
    point_indices: ClassVar[Tuple[int, ...]] = (0,)

    def __post_init__(self):
        self.center = _vec(self.center)
        self.radius = float(self.radius)

    def point_at(self, index: int) -> Optional[Vec2]:
        return self.center if index == 0 else None

    def to_dict(self) -> dict:
        return {
            "type": "Circle",
            "id": self.id,
            "center": list(self.center),
            "radius": self.radius,
            "construction": self.construction,
        }


@dataclass
class Arc2D:
    """Kreisbogen, gegen den Uhrzeigersinn von start_angle nach end_angle (Radians)."""
    center: Vec2 = (0.0, 0.0)
    radius: float = 1.0
    start_angle: float = 0.0
    end_angle: float = math.pi
    id: str = field(default_factory=new_entity_id)
    construction: bool = False

    geometry_type: ClassVar[GeometryType] = GeometryType.ARC
    point_indices: ClassVar[Tuple[int, ...]] = (0, 1, 2)

    def __post_init__(self):
        self.center = _vec(self.center)
        self.radius = float(self.radius)
        self.start_angle = float(self.start_angle)
        self.end_angle = float(self.end_angle)

    @property
    def start_point(self) -> Vec2:
        return point_on_circle(self.center, self.radius, self.start_angle)

    @property
    def end_point(self) -> Vec2:
        return point_on_circle(self.center, self.radius, self.end_angle)

    @property
    def sweep(self) -> float:
        """Überstrichener Winkel in [0, 2pi)."""
        return (self.end_angle - self.start_angle) % (2 * math.pi)

    def point_at(self, index: int) -> Optional[Vec2]:
        if index == 0:
            return self.center
        if index == 1:
            return self.start_point
        if index == 2:
            return self.end_point
        return None

    def to_dict(self) -> dict:
        return {
            "type": "Arc",
            "id": self.id,
            "center": list(self.center),
            "radius": self.radius,
            "start_angle": self.start_angle,
            "end_angle": self.end_angle,
            "construction": self.construction,
        }


@dataclass
class Ellipse2D:
    """Ellipse mit Halbachsen und Rotation der Hauptachse (Radians)."""
    center: Vec2 = (0.0, 0.0)
    semi_major: float = 1.0
    semi_minor: float = 0.5
    rotation: float = 0.0
    id: str = field(default_factory=new_entity_id)
    construction: bool = False

    geometry_type: ClassVar[GeometryType] = GeometryType.ELLIPSE
    point_indices: ClassVar[Tuple[int, ...]] = (0,)

    def __post_init__(self):
        self.center = _vec(self.center)
        self.semi_major = float(self.semi_major)
        self.semi_minor = float(self.semi_minor)
        self.rotation = float(self.rotation)

    def point_at(self, index: int) -> Optional[Vec2]:
        return self.center if index == 0 else None

    def to_dict(self) -> dict:
        return {
            "type": "Ellipse",
            "id": self.id,
            "center": list(self.center),
            "semi_major": self.semi_major,
            "semi_minor": self.semi_minor,
            "rotation": self.rotation,
            "construction": self.construction,
        }


Entity = Union[Point2D, Line2D, Circle2D, Arc2D, Ellipse2D]

_ENTITY_CLASSES: Dict[str, type] = {
    "Point": Point2D,
    "Line": Line2D,
    "Circle": Circle2D,
    "Arc": Arc2D,
    "Ellipse": Ellipse2D,
}


def entity_from_dict(data: dict) -> Entity:
    """Stellt eine Entity aus ``to_dict()``-Daten wieder her."""
    kind = data.get("type")
    if kind not in _ENTITY_CLASSES:
        raise ValueError(f"Unbekannter Entity-Typ: {kind!r}")
    payload = {k: v for k, v in data.items() if k != "type"}
    if kind == "Point":
        x, y = payload.pop("pos")
        payload["x"], payload["y"] = x, y
    return _ENTITY_CLASSES[kind](**payload)


def clone_entity(entity: Entity, **changes) -> Entity:
    """Kopie mit neuer ID (und optional geänderten Feldern)."""
    changes.setdefault("id", new_entity_id())
    return replace(entity, **changes)


# =============================================================================
# Vektor-Helfer
# =============================================================================

def distance(a: Vec2, b: Vec2) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def midpoint(a: Vec2, b: Vec2) -> Vec2:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def unit_vector(a: Vec2, b: Vec2) -> Optional[Vec2]:
    """Normierte Richtung a -> b, None wenn a und b zusammenfallen."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    length = math.hypot(dx, dy)
    if length < Tolerances.EPSILON_MATH:
        return None
    return (dx / length, dy / length)


def cross(u: Vec2, v: Vec2) -> float:
    return u[0] * v[1] - u[1] * v[0]


def dot(u: Vec2, v: Vec2) -> float:
    return u[0] * v[0] + u[1] * v[1]


def point_on_circle(center: Vec2, radius: float, angle: float) -> Vec2:
    return (center[0] + radius * math.cos(angle), center[1] + radius * math.sin(angle))


def angle_of(center: Vec2, point: Vec2) -> float:
    """Polarwinkel von point um center (atan2)."""
    return math.atan2(point[1] - center[1], point[0] - center[0])


# =============================================================================
# Abstände und Schnitte
# =============================================================================

def segment_intersection(p1: Vec2, p2: Vec2, p3: Vec2, p4: Vec2,
                         bounded: bool = True) -> Optional[Tuple[Vec2, float, float]]:
    """
    Schnitt der Segmente p1-p2 und p3-p4 (2x2 lineares System).

    Returns:
        (Schnittpunkt, t auf p1-p2, s auf p3-p4) oder None bei Parallelität.
        Mit ``bounded=True`` nur wenn t und s beide in [0, 1] liegen.
    """
    d1 = (p2[0] - p1[0], p2[1] - p1[1])
    d2 = (p4[0] - p3[0], p4[1] - p3[1])
    denom = cross(d1, d2)
    if abs(denom) < Tolerances.EPSILON_PARALLEL:
        return None

    delta = (p3[0] - p1[0], p3[1] - p1[1])
    t = cross(delta, d2) / denom
    s = cross(delta, d1) / denom

    if bounded and not (0.0 <= t <= 1.0 and 0.0 <= s <= 1.0):
        return None
    return (p1[0] + t * d1[0], p1[1] + t * d1[1]), t, s


def line_line_intersection(line1: Line2D, line2: Line2D,
                           bounded: bool = True) -> Optional[Vec2]:
    """Schnittpunkt zweier Linien-Entities."""
    hit = segment_intersection(line1.start, line1.end, line2.start, line2.end, bounded)
    return hit[0] if hit else None


def project_parameter(point: Vec2, a: Vec2, b: Vec2) -> float:
    """Unbegrenzter Parameter t der Projektion von point auf die Gerade a-b."""
    dx, dy = b[0] - a[0], b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq < Tolerances.EPSILON_MATH:
        return 0.0
    return ((point[0] - a[0]) * dx + (point[1] - a[1]) * dy) / length_sq


def point_segment_distance(point: Vec2, a: Vec2, b: Vec2) -> float:
    """Abstand zum Segment (Projektion auf [0, 1] geklemmt)."""
    t = max(0.0, min(1.0, project_parameter(point, a, b)))
    closest = (a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1]))
    return distance(point, closest)


def point_line_distance(point: Vec2, a: Vec2, b: Vec2) -> float:
    """Senkrechter Abstand zur unendlich verlängerten Geraden a-b."""
    direction = unit_vector(a, b)
    if direction is None:
        return distance(point, a)
    return abs(cross(direction, (point[0] - a[0], point[1] - a[1])))


def foot_point(point: Vec2, a: Vec2, b: Vec2) -> Vec2:
    """Lotfußpunkt von point auf der Geraden a-b."""
    t = project_parameter(point, a, b)
    return (a[0] + t * (b[0] - a[0]), a[1] + t * (b[1] - a[1]))


# =============================================================================
# Polygone
# =============================================================================

def polygon_signed_area(points: Sequence[Vec2]) -> float:
    """Shoelace-Formel, positiv für gegen den Uhrzeigersinn."""
    if len(points) < 3:
        return 0.0
    pts = np.asarray(points, dtype=float)
    x, y = pts[:, 0], pts[:, 1]
    return float(0.5 * np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def polygon_area(points: Sequence[Vec2]) -> float:
    return abs(polygon_signed_area(points))


def mean_point(points: Sequence[Vec2]) -> Vec2:
    if not points:
        return (0.0, 0.0)
    pts = np.asarray(points, dtype=float)
    mx, my = pts.mean(axis=0)
    return (float(mx), float(my))


def polygon_centroid(points: Sequence[Vec2]) -> Vec2:
    """
    Flächenschwerpunkt eines einfachen Polygons.

    Degenerierte Polygone (|Fläche| < REGION_AREA_EPSILON) liefern den
    Mittelwert der Punkte.
    """
    area = polygon_signed_area(points)
    if abs(area) < Tolerances.REGION_AREA_EPSILON:
        return mean_point(points)
    pts = np.asarray(points, dtype=float)
    x, y = pts[:, 0], pts[:, 1]
    x_next, y_next = np.roll(x, -1), np.roll(y, -1)
    factor = x * y_next - x_next * y
    cx = np.sum((x + x_next) * factor) / (6.0 * area)
    cy = np.sum((y + y_next) * factor) / (6.0 * area)
    return (float(cx), float(cy))


def _is_left(a: Vec2, b: Vec2, p: Vec2) -> float:
    return (b[0] - a[0]) * (p[1] - a[1]) - (p[0] - a[0]) * (b[1] - a[1])


def winding_number(point: Vec2, polygon: Sequence[Vec2]) -> int:
    """
    Winding-Number von point bezüglich des geschlossenen Polygons.

    Punkte exakt auf einer Kante liefern deterministisch dasselbe Ergebnis
    (Kanten nach oben zählen nur bei echtem Links-Liegen).
    """
    wn = 0
    n = len(polygon)
    for i in range(n):
        a = polygon[i]
        b = polygon[(i + 1) % n]
        if a[1] <= point[1]:
            if b[1] > point[1] and _is_left(a, b, point) > 0:
                wn += 1
        elif b[1] <= point[1] and _is_left(a, b, point) < 0:
            wn -= 1
    return wn


def point_in_polygon(point: Vec2, polygon: Sequence[Vec2]) -> bool:
    if len(polygon) < 3:
        return False
    return winding_number(point, polygon) != 0


# =============================================================================
# Transformationen
# =============================================================================

def rotate_point(point: Vec2, center: Vec2, angle: float) -> Vec2:
    c, s = math.cos(angle), math.sin(angle)
    dx, dy = point[0] - center[0], point[1] - center[1]
    return (center[0] + dx * c - dy * s, center[1] + dx * s + dy * c)


def reflect_point(point: Vec2, a: Vec2, b: Vec2) -> Optional[Vec2]:
    """
    Spiegelt point an der Geraden durch a und b.

    Standard-Formel mit a' = (dx²-dy²)/L², b' = 2dxdy/L². None wenn die
    Achse degeneriert ist.
    """
    dx, dy = b[0] - a[0], b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq < Tolerances.EPSILON_MATH:
        return None
    ca = (dx * dx - dy * dy) / length_sq
    cb = 2.0 * dx * dy / length_sq
    px, py = point[0] - a[0], point[1] - a[1]
    return (ca * px + cb * py + a[0], cb * px - ca * py + a[1])


def translate_point(point: Vec2, offset: Vec2) -> Vec2:
    return (point[0] + offset[0], point[1] + offset[1])


def normalize_angle(angle: float) -> float:
    """Winkel nach (-pi, pi]."""
    return math.atan2(math.sin(angle), math.cos(angle))


# =============================================================================
# Tessellierung
# =============================================================================

def tessellate_circle(center: Vec2, radius: float,
                      segments: int = Tolerances.REGION_TESSELLATION_SEGMENTS) -> List[Vec2]:
    angles = np.linspace(0.0, 2.0 * math.pi, segments, endpoint=False)
    xs = center[0] + radius * np.cos(angles)
    ys = center[1] + radius * np.sin(angles)
    return [(float(x), float(y)) for x, y in zip(xs, ys)]


def tessellate_ellipse(center: Vec2, semi_major: float, semi_minor: float, rotation: float,
                       segments: int = Tolerances.REGION_TESSELLATION_SEGMENTS) -> List[Vec2]:
    angles = np.linspace(0.0, 2.0 * math.pi, segments, endpoint=False)
    local_x = semi_major * np.cos(angles)
    local_y = semi_minor * np.sin(angles)
    c, s = math.cos(rotation), math.sin(rotation)
    xs = center[0] + local_x * c - local_y * s
    ys = center[1] + local_x * s + local_y * c
    return [(float(x), float(y)) for x, y in zip(xs, ys)]
