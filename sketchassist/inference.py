"""
SketchAssist - Constraint Inference
===================================

Wandelt akzeptierte Fangpunkte beim Erzeugen neuer Geometrie in Constraints:

    Endpoint / Center / Intersection -> Coincident mit dem gefangenen Punkt
    Midpoint                         -> DistancePointLine = 0 (Punkt auf Linie)
    Origin                           -> Fix bei (0, 0)

Zusätzlich die Richtungs-Inferenz des Linien-Werkzeugs (Horizontal/Vertikal,
Parallel/Senkrecht zu bestehenden Linien).

Gleiche Eingaben liefern immer dieselbe Constraint-Liste in derselben Reihenfolge.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple
from enum import Enum
import math

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .constraints import (
    Constraint, ConstraintPoint, DimensionStyle,
    make_coincident, make_distance_point_line, make_fix,
    make_horizontal, make_vertical, make_parallel, make_perpendicular,
)
from .geometry import Vec2, Line2D, distance, midpoint, is_preview_id
from .sketch import Sketch
from .snap import SnapPoint, SnapType


_COINCIDENT_SNAPS = (SnapType.ENDPOINT, SnapType.CENTER, SnapType.INTERSECTION)


def _snapped_point(sketch: Sketch, snap: SnapPoint) -> Optional[ConstraintPoint]:
    """Findet den ConstraintPoint, auf den ein Fangpunkt zeigt."""
    if snap.entity_id is not None and snap.point_index is not None:
        return ConstraintPoint(snap.entity_id, snap.point_index)

    # Schnittpunkte: nur wenn sie auf einem echten Punkt einer beteiligten Entity liegen
    candidates = snap.related_ids or ((snap.entity_id,) if snap.entity_id else ())
    for entity_id in candidates:
        entity = sketch.get_entity(entity_id)
        if entity is None:
            continue
        for index in entity.point_indices:
            pos = entity.point_at(index)
            if pos is not None and distance(pos, snap.position) <= Tolerances.COMPARE_POINT:
                return ConstraintPoint(entity_id, index)
    return None


def _constraint_for_snap(sketch: Sketch, new_point: ConstraintPoint,
                         snap: SnapPoint) -> Optional[Constraint]:
    if snap.snap_type in _COINCIDENT_SNAPS:
        target = _snapped_point(sketch, snap)
        if target is None:
            return None
        if target.entity_id == new_point.entity_id:
            return None
        return make_coincident(new_point, target)

    if snap.snap_type == SnapType.MIDPOINT:
        if snap.entity_id is None or snap.entity_id == new_point.entity_id:
            return None
        return make_distance_point_line(new_point, snap.entity_id, 0.0,
                                        style=DimensionStyle(offset=(0.0, 0.0)))

    if snap.snap_type == SnapType.ORIGIN:
        return make_fix(new_point, (0.0, 0.0))

    return None


def constraints_for_new_entity(sketch: Sketch, new_entity_id: str,
                               start_snap: Optional[SnapPoint],
                               end_snap: Optional[SnapPoint],
                               start_index: int = 0, end_index: int = 1) -> List[Constraint]:
    """
    Auto-Constraints für eine neu erzeugte Entity.

    Args:
        sketch: Sketch, in dem die neue Entity bereits enthalten ist
        new_entity_id: ID der neuen Entity
        start_snap: Fangpunkt für Punkt-Index ``start_index`` (Start/Zentrum)
        end_snap: Fangpunkt für Punkt-Index ``end_index`` (Ende)

    Returns:
        Constraints in deterministischer Reihenfolge (Start vor Ende)
    """
    result: List[Constraint] = []
    for snap, index in ((start_snap, start_index), (end_snap, end_index)):
        if snap is None:
            continue
        constraint = _constraint_for_snap(sketch, ConstraintPoint(new_entity_id, index), snap)
        if constraint is not None:
            result.append(constraint)

    if result and is_enabled("sketch_input_logging"):
        logger.debug(f"[Inference] {new_entity_id[:8]}: {result}")
    return result


# =============================================================================
# Richtungs-Inferenz (Linien-Werkzeug)
# =============================================================================

class DirectionKind(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    PARALLEL = "parallel"
    PERPENDICULAR = "perpendicular"


@dataclass
class DirectionInference:
    """Gefangene Richtung: korrigierter Endpunkt plus abzuleitender Constraint."""
    position: Vec2
    kind: DirectionKind
    entity_id: Optional[str] = None
    confidence: float = 1.0
    display_position: Vec2 = field(default=(0.0, 0.0))

    def to_constraint(self, line_id: str) -> Optional[Constraint]:
        if self.kind == DirectionKind.HORIZONTAL:
            return make_horizontal(line_id)
        if self.kind == DirectionKind.VERTICAL:
            return make_vertical(line_id)
        if self.entity_id is None:
            return None
        if self.kind == DirectionKind.PARALLEL:
            return make_parallel(line_id, self.entity_id)
        return make_perpendicular(line_id, self.entity_id)


def _project_on_direction(start: Vec2, current: Vec2, angle: float) -> Vec2:
    ux, uy = math.cos(angle), math.sin(angle)
    along = (current[0] - start[0]) * ux + (current[1] - start[1]) * uy
    return (start[0] + along * ux, start[1] + along * uy)


def infer_line_direction(start: Vec2, current: Vec2, sketch: Sketch,
                         snap: Optional[SnapPoint] = None) -> Optional[DirectionInference]:
    """
    Richtungsfang für die Linie start -> current.

    Harte Geometrie-Snaps (alles außer Raster) haben Vorrang; dann
    Horizontal/Vertikal, dann Parallel/Senkrecht zu einer der ersten
    LINE_INFERENCE_MAX_CANDIDATES Linien.
    """
    if snap is not None and snap.is_hard:
        return None
    if not is_enabled("line_direction_inference"):
        return None

    dx, dy = current[0] - start[0], current[1] - start[1]
    if math.hypot(dx, dy) < 0.01:
        return None

    display = midpoint(start, current)
    angle = math.atan2(dy, dx)
    abs_angle = abs(angle)

    hv_tol = Tolerances.LINE_INFERENCE_HV_ANGLE
    horizontal_diff = min(abs_angle, abs(abs_angle - math.pi))
    if horizontal_diff < hv_tol:
        return DirectionInference((current[0], start[1]), DirectionKind.HORIZONTAL,
                                  confidence=1.0 - horizontal_diff / hv_tol, display_position=display)
    vertical_diff = abs(abs_angle - math.pi / 2)
    if vertical_diff < hv_tol:
        return DirectionInference((start[0], current[1]), DirectionKind.VERTICAL,
                                  confidence=1.0 - vertical_diff / hv_tol, display_position=display)

    tol = Tolerances.LINE_INFERENCE_PARALLEL_ANGLE
    checked = 0
    for entity in sketch.entities:
        if checked >= Tolerances.LINE_INFERENCE_MAX_CANDIDATES:
            break
        if not isinstance(entity, Line2D) or is_preview_id(entity.id):
            continue
        checked += 1

        line_angle = math.atan2(entity.end[1] - entity.start[1], entity.end[0] - entity.start[0])
        diff = abs(angle - line_angle)
        if diff > math.pi:
            diff = 2 * math.pi - diff
        if diff > math.pi / 2:
            diff = math.pi - diff

        if diff < tol:
            # Richtung der Referenzlinie übernehmen (Orientierung zum Cursor)
            ref = line_angle if math.cos(angle - line_angle) >= 0 else line_angle + math.pi
            return DirectionInference(_project_on_direction(start, current, ref), DirectionKind.PARALLEL,
                                      entity.id, 1.0 - diff / tol, display)
        perp_diff = abs(diff - math.pi / 2)
        if perp_diff < tol:
            ref = line_angle + math.pi / 2
            if math.cos(angle - ref) < 0:
                ref += math.pi
            return DirectionInference(_project_on_direction(start, current, ref), DirectionKind.PERPENDICULAR,
                                      entity.id, 1.0 - perp_diff / tol, display)
    return None
