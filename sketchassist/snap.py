"""
SketchAssist - Snap Detection
=============================

Fangpunkte für die Cursor-Position: Endpunkte, Mittelpunkte, Zentren,
Linien-Schnittpunkte, Ursprung, Achsen und Raster.

Verwendung:
    from sketchassist.snap import SnapDetector, SnapConfig

    detector = SnapDetector(SnapConfig(enable_grid=True))
    point, snap = detector.resolve((4.9, 0.1), sketch)

Ranking: feste Prioritätstabelle (kleiner gewinnt), bei Gleichstand der
euklidische Abstand. Reine Funktion der Eingaben, keine Seiteneffekte.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from enum import Enum
import math

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .geometry import (
    Vec2, Point2D, Line2D, Circle2D, Arc2D, Ellipse2D,
    distance, midpoint, segment_intersection, point_segment_distance, is_preview_id,
)
from .sketch import Sketch


class SnapType(Enum):
    ENDPOINT = "Endpoint"
    MIDPOINT = "Midpoint"
    CENTER = "Center"
    INTERSECTION = "Intersection"
    ORIGIN = "Origin"
    AXIS_X = "AxisX"
    AXIS_Y = "AxisY"
    GRID = "Grid"


PRIORITY_MAP = {
    SnapType.ENDPOINT: 1,
    SnapType.CENTER: 2,
    SnapType.INTERSECTION: 3,
    SnapType.MIDPOINT: 4,
    SnapType.ORIGIN: 5,
    SnapType.AXIS_X: 6,
    SnapType.AXIS_Y: 6,
    SnapType.GRID: 10,
}


@dataclass
class SnapConfig:
    """Schaltbare Snap-Kategorien plus Fangradius und Rasterabstand."""
    enable_endpoint: bool = True
    enable_midpoint: bool = True
    enable_center: bool = True
    enable_intersection: bool = True
    enable_origin: bool = True
    enable_grid: bool = False
    snap_radius: float = Tolerances.SNAP_RADIUS
    grid_spacing: float = Tolerances.SNAP_GRID_SPACING


@dataclass
class SnapPoint:
    """
    Fangpunkt-Kandidat. Flüchtig, wird bei jeder Mausbewegung neu berechnet.

    entity_id/point_index: Besitzer-Entity und Punkt-Index, falls vorhanden.
    related_ids: weitere beteiligte Entities (Schnittpunkt: beide Linien).
    """
    position: Vec2
    snap_type: SnapType
    entity_id: Optional[str] = None
    distance: float = 0.0
    point_index: Optional[int] = None
    related_ids: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def priority(self) -> int:
        return PRIORITY_MAP[self.snap_type]

    @property
    def is_hard(self) -> bool:
        """Geometrie-Snap (alles außer Raster)."""
        return self.snap_type != SnapType.GRID

    def sort_key(self) -> Tuple[int, float]:
        return (self.priority, self.distance)


def _candidate(cursor: Vec2, position: Vec2, snap_type: SnapType, radius: float,
               entity_id: Optional[str] = None, point_index: Optional[int] = None,
               related_ids: Tuple[str, ...] = ()) -> Optional[SnapPoint]:
    d = distance(cursor, position)
    if d > radius:
        return None
    return SnapPoint(position, snap_type, entity_id, d, point_index, related_ids)


def find_snaps(cursor: Vec2, sketch: Sketch, config: SnapConfig) -> List[SnapPoint]:
    """Alle Fangpunkte im Radius, nach Priorität und Abstand sortiert."""
    radius = config.snap_radius
    found: List[Optional[SnapPoint]] = []

    for entity in sketch.entities:
        if is_preview_id(entity.id):
            continue

        if isinstance(entity, Line2D):
            if config.enable_endpoint:
                found.append(_candidate(cursor, entity.start, SnapType.ENDPOINT, radius, entity.id, 0))
                found.append(_candidate(cursor, entity.end, SnapType.ENDPOINT, radius, entity.id, 1))
            if config.enable_midpoint:
                found.append(_candidate(cursor, entity.midpoint, SnapType.MIDPOINT, radius, entity.id))

        elif isinstance(entity, (Circle2D, Ellipse2D)):
            if config.enable_center:
                found.append(_candidate(cursor, entity.center, SnapType.CENTER, radius, entity.id, 0))

        elif isinstance(entity, Arc2D):
            if config.enable_center:
                found.append(_candidate(cursor, entity.center, SnapType.CENTER, radius, entity.id, 0))
            if config.enable_endpoint:
                found.append(_candidate(cursor, entity.start_point, SnapType.ENDPOINT, radius, entity.id, 1))
                found.append(_candidate(cursor, entity.end_point, SnapType.ENDPOINT, radius, entity.id, 2))

        elif isinstance(entity, Point2D):
            if config.enable_endpoint:
                found.append(_candidate(cursor, entity.pos, SnapType.ENDPOINT, radius, entity.id, 0))

    if config.enable_intersection:
        lines = [line for line in sketch.lines if not is_preview_id(line.id)]
        for i in range(len(lines)):
            for j in range(i + 1, len(lines)):
                a, b = lines[i], lines[j]
                hit = segment_intersection(a.start, a.end, b.start, b.end)
                if hit is None:
                    continue
                found.append(_candidate(cursor, hit[0], SnapType.INTERSECTION, radius,
                                        a.id, related_ids=(a.id, b.id)))

    if config.enable_origin:
        found.append(_candidate(cursor, (0.0, 0.0), SnapType.ORIGIN, radius))

    # Achsen werden unabhängig von den Kategorie-Schaltern immer geprüft
    if abs(cursor[1]) <= radius:
        found.append(_candidate(cursor, (cursor[0], 0.0), SnapType.AXIS_X, radius))
    if abs(cursor[0]) <= radius:
        found.append(_candidate(cursor, (0.0, cursor[1]), SnapType.AXIS_Y, radius))

    if config.enable_grid and config.grid_spacing > 0:
        spacing = config.grid_spacing
        node = (round(cursor[0] / spacing) * spacing, round(cursor[1] / spacing) * spacing)
        found.append(_candidate(cursor, node, SnapType.GRID, radius))

    snaps = [s for s in found if s is not None]
    snaps.sort(key=SnapPoint.sort_key)

    if is_enabled("sketch_input_logging"):
        logger.debug(f"[Snap] cursor=({cursor[0]:.3f}, {cursor[1]:.3f}) -> "
                     f"{[(s.snap_type.value, round(s.distance, 4)) for s in snaps]}")
    return snaps


def resolve_snap(cursor: Vec2, sketch: Sketch, config: SnapConfig) -> Tuple[Vec2, Optional[SnapPoint]]:
    """Effektiver Punkt und bester Fangpunkt (oder Cursor und None)."""
    snaps = find_snaps(cursor, sketch, config)
    if not snaps:
        return cursor, None
    best = snaps[0]
    return best.position, best


class SnapDetector:
    """Bindet eine SnapConfig an find_snaps/resolve_snap."""

    def __init__(self, config: Optional[SnapConfig] = None):
        self.config = config or SnapConfig()

    def find_snaps(self, cursor: Vec2, sketch: Sketch) -> List[SnapPoint]:
        return find_snaps(cursor, sketch, self.config)

    def resolve(self, cursor: Vec2, sketch: Sketch) -> Tuple[Vec2, Optional[SnapPoint]]:
        return resolve_snap(cursor, sketch, self.config)


# =============================================================================
# Hit-Test
# =============================================================================

@dataclass
class EntityHit:
    entity_id: str
    kind: str  # "point" oder "entity"
    distance: float


def find_closest_entity(point: Vec2, sketch: Sketch,
                        tolerance: float = Tolerances.PICK_TOLERANCE) -> Optional[EntityHit]:
    """
    Nächste Entity innerhalb der Toleranz.

    Punkte werden über ihre Position getroffen, Linien über das Segment,
    Kreise und Bögen über den Umfang, Ellipsen über ihr Zentrum.
    """
    best: Optional[EntityHit] = None
    for entity in sketch.committed_entities():
        if isinstance(entity, Point2D):
            d, kind = distance(point, entity.pos), "point"
        elif isinstance(entity, Line2D):
            d, kind = point_segment_distance(point, entity.start, entity.end), "entity"
        elif isinstance(entity, Circle2D):
            d, kind = abs(distance(point, entity.center) - entity.radius), "entity"
        elif isinstance(entity, Arc2D):
            d, kind = _arc_distance(point, entity), "entity"
        elif isinstance(entity, Ellipse2D):
            d, kind = distance(point, entity.center), "entity"
        else:
            continue
        if d <= tolerance and (best is None or d < best.distance):
            best = EntityHit(entity.id, kind, d)
    return best


def _arc_distance(point: Vec2, arc: Arc2D) -> float:
    angle = math.atan2(point[1] - arc.center[1], point[0] - arc.center[0])
    rel = (angle - arc.start_angle) % (2 * math.pi)
    if rel <= arc.sweep:
        return abs(distance(point, arc.center) - arc.radius)
    return min(distance(point, arc.start_point), distance(point, arc.end_point))
