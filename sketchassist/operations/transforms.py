"""
SketchAssist - Replikations-Transformationen
============================================

Spiegeln, lineares und kreisförmiges Muster. Vorschau und Commit nutzen
dieselben Funktionen: die Vorschau ist das Ergebnis ohne Constraints und mit
Vorschau-IDs, das Commit-Ergebnis enthält zusätzlich die Constraints.

Verwendung:
    from sketchassist.operations.transforms import linear_pattern

    result = linear_pattern(sketch, direction_id, [line.id], count=3, spacing=5.0)
    if result is not None:
        for entity in result.entities: ...
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence
import math

from loguru import logger

from config.tolerances import Tolerances
from ..constraints import (
    Constraint, ConstraintPoint, ORIGIN_ID,
    make_equal, make_symmetric,
)
from ..geometry import (
    Entity, Vec2, Point2D, Line2D, Circle2D, Arc2D, Ellipse2D,
    PREVIEW_PREFIX, angle_of, clone_entity, new_entity_id, is_preview_id,
    reflect_point, rotate_point, translate_point,
)
from ..sketch import Sketch


@dataclass
class Replication:
    """Neue Entities plus Constraints; source_of bildet Kopie-ID -> Original-ID ab."""
    entities: List[Entity] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)
    source_of: Dict[str, str] = field(default_factory=dict)

    def add(self, original: Entity, copy: Entity):
        self.entities.append(copy)
        self.source_of[copy.id] = original.id


def _id_factory(preview_tag: Optional[str]) -> Callable[[], str]:
    if preview_tag is None:
        return new_entity_id
    counter = iter(range(1_000_000))
    return lambda: f"{PREVIEW_PREFIX}{preview_tag}_{next(counter)}"


def _targets(sketch: Sketch, target_ids: Sequence[str], exclude: Optional[str] = None) -> List[Entity]:
    """Existierende, nicht-transiente Ziel-Entities in Auswahlreihenfolge."""
    result = []
    for entity_id in target_ids:
        if entity_id == exclude or is_preview_id(entity_id):
            continue
        entity = sketch.get_entity(entity_id)
        if entity is not None:
            result.append(entity)
    return result


# =============================================================================
# Einzel-Transformationen
# =============================================================================

def mirror_entity(entity: Entity, axis_start: Vec2, axis_end: Vec2, new_id: str) -> Optional[Entity]:
    """Spiegelt eine Entity an der Geraden axis_start-axis_end."""
    def m(p: Vec2) -> Optional[Vec2]:
        return reflect_point(p, axis_start, axis_end)

    if m(axis_start) is None:
        return None

    if isinstance(entity, Point2D):
        x, y = m(entity.pos)
        return clone_entity(entity, id=new_id, x=x, y=y)
    if isinstance(entity, Line2D):
        return clone_entity(entity, id=new_id, start=m(entity.start), end=m(entity.end))
    if isinstance(entity, Circle2D):
        return clone_entity(entity, id=new_id, center=m(entity.center))
    if isinstance(entity, Arc2D):
        center = m(entity.center)
        # Spiegelung kehrt den Umlaufsinn um: Start und Ende tauschen
        new_start = m(entity.end_point)
        new_end = m(entity.start_point)
        return clone_entity(entity, id=new_id, center=center,
                            start_angle=angle_of(center, new_start),
                            end_angle=angle_of(center, new_end))
    if isinstance(entity, Ellipse2D):
        axis_angle = math.atan2(axis_end[1] - axis_start[1], axis_end[0] - axis_start[0])
        return clone_entity(entity, id=new_id, center=m(entity.center),
                            rotation=2.0 * axis_angle - entity.rotation)
    return None


def translate_entity(entity: Entity, offset: Vec2, new_id: str) -> Optional[Entity]:
    if isinstance(entity, Point2D):
        x, y = translate_point(entity.pos, offset)
        return clone_entity(entity, id=new_id, x=x, y=y)
    if isinstance(entity, Line2D):
        return clone_entity(entity, id=new_id, start=translate_point(entity.start, offset),
                            end=translate_point(entity.end, offset))
    if isinstance(entity, (Circle2D, Arc2D, Ellipse2D)):
        return clone_entity(entity, id=new_id, center=translate_point(entity.center, offset))
    return None


def rotate_entity(entity: Entity, center: Vec2, angle: float, new_id: str) -> Optional[Entity]:
    """Dreht eine Entity um center. Bogenwinkel werden per atan2 neu bestimmt."""
    if isinstance(entity, Point2D):
        x, y = rotate_point(entity.pos, center, angle)
        return clone_entity(entity, id=new_id, x=x, y=y)
    if isinstance(entity, Line2D):
        return clone_entity(entity, id=new_id, start=rotate_point(entity.start, center, angle),
                            end=rotate_point(entity.end, center, angle))
    if isinstance(entity, Circle2D):
        return clone_entity(entity, id=new_id, center=rotate_point(entity.center, center, angle))
    if isinstance(entity, Arc2D):
        new_center = rotate_point(entity.center, center, angle)
        new_start = rotate_point(entity.start_point, center, angle)
        new_end = rotate_point(entity.end_point, center, angle)
        return clone_entity(entity, id=new_id, center=new_center,
                            start_angle=angle_of(new_center, new_start),
                            end_angle=angle_of(new_center, new_end))
    if isinstance(entity, Ellipse2D):
        return clone_entity(entity, id=new_id, center=rotate_point(entity.center, center, angle),
                            rotation=entity.rotation + angle)
    return None


def _equal_for(original: Entity, copy: Entity) -> Optional[Constraint]:
    if isinstance(original, (Line2D, Circle2D, Arc2D)):
        return make_equal(original.id, copy.id)
    return None


# =============================================================================
# Spiegeln
# =============================================================================

def _symmetric_pairs(original: Entity) -> List[tuple]:
    """(Original-Index, Kopie-Index) Paare für Symmetric-Constraints."""
    if isinstance(original, Point2D):
        return [(0, 0)]
    if isinstance(original, Line2D):
        return [(0, 0), (1, 1)]
    if isinstance(original, Arc2D):
        # Start/Ende der Kopie sind vertauscht
        return [(0, 0), (1, 2), (2, 1)]
    if isinstance(original, (Circle2D, Ellipse2D)):
        return [(0, 0)]
    return []


def mirror_entities(sketch: Sketch, axis_id: str, target_ids: Sequence[str],
                    with_constraints: bool = True,
                    preview_tag: Optional[str] = None) -> Optional[Replication]:
    """
    Spiegelt die Ziele an der Achsen-Linie.

    Pro gespiegeltem Punkt ein Symmetric-Constraint zur Achse, Kreise
    zusätzlich Equal. None wenn die Achse fehlt oder degeneriert ist.
    """
    axis = sketch.get_entity(axis_id)
    if not isinstance(axis, Line2D) or axis.length < Tolerances.EPSILON_MATH:
        logger.debug(f"[Mirror] Ungültige Achse: {axis_id}")
        return None

    next_id = _id_factory(preview_tag)
    result = Replication()
    for original in _targets(sketch, target_ids, exclude=axis_id):
        copy = mirror_entity(original, axis.start, axis.end, next_id())
        if copy is None:
            continue
        result.add(original, copy)
        if not with_constraints:
            continue
        for src_index, dst_index in _symmetric_pairs(original):
            result.constraints.append(make_symmetric(
                ConstraintPoint(original.id, src_index), ConstraintPoint(copy.id, dst_index), axis.id))
        if isinstance(original, Circle2D):
            result.constraints.append(make_equal(original.id, copy.id))
    return result


# =============================================================================
# Lineares Muster
# =============================================================================

def linear_pattern(sketch: Sketch, direction_id: str, target_ids: Sequence[str],
                   count: int, spacing: float, flip: bool = False,
                   with_constraints: bool = True,
                   preview_tag: Optional[str] = None) -> Optional[Replication]:
    """
    Kopien 1..count-1, jeweils um spacing * i entlang der Richtungslinie verschoben.

    None wenn count < 2 oder die Richtungslinie kürzer als
    PATTERN_MIN_DIRECTION_LENGTH ist.
    """
    if count < 2:
        return None
    direction_line = sketch.get_entity(direction_id)
    if not isinstance(direction_line, Line2D):
        return None
    length = direction_line.length
    if length < Tolerances.PATTERN_MIN_DIRECTION_LENGTH:
        return None

    ux = (direction_line.end[0] - direction_line.start[0]) / length
    uy = (direction_line.end[1] - direction_line.start[1]) / length
    if flip:
        ux, uy = -ux, -uy

    next_id = _id_factory(preview_tag)
    targets = _targets(sketch, target_ids)
    result = Replication()
    for i in range(1, count):
        offset = (ux * spacing * i, uy * spacing * i)
        for original in targets:
            copy = translate_entity(original, offset, next_id())
            if copy is None:
                continue
            result.add(original, copy)
            if with_constraints:
                equal = _equal_for(original, copy)
                if equal is not None:
                    result.constraints.append(equal)
    return result


# =============================================================================
# Kreisförmiges Muster
# =============================================================================

def resolve_pattern_center(sketch: Sketch, center_id: str) -> Optional[Vec2]:
    """Drehzentrum: Ursprung, Punkt oder Zentrum von Kreis/Bogen/Ellipse."""
    if center_id == ORIGIN_ID:
        return (0.0, 0.0)
    entity = sketch.get_entity(center_id)
    if isinstance(entity, Point2D):
        return entity.pos
    if isinstance(entity, (Circle2D, Arc2D, Ellipse2D)):
        return entity.center
    return None


def circular_pattern(sketch: Sketch, center_id: str, target_ids: Sequence[str],
                     count: int, total_angle: float = 2.0 * math.pi, flip: bool = False,
                     with_constraints: bool = True,
                     preview_tag: Optional[str] = None) -> Optional[Replication]:
    """Kopien 1..count-1, jeweils um total_angle * i / count gedreht (Vorzeichen per flip)."""
    if count < 2:
        return None
    center = resolve_pattern_center(sketch, center_id)
    if center is None:
        return None

    sign = -1.0 if flip else 1.0
    next_id = _id_factory(preview_tag)
    targets = _targets(sketch, target_ids, exclude=center_id)
    result = Replication()
    for i in range(1, count):
        angle = sign * total_angle * i / count
        for original in targets:
            copy = rotate_entity(original, center, angle, next_id())
            if copy is None:
                continue
            result.add(original, copy)
            if with_constraints:
                equal = _equal_for(original, copy)
                if equal is not None:
                    result.constraints.append(equal)
    return result
