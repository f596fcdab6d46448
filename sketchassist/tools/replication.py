"""
SketchAssist - Replikations-Werkzeuge
=====================================

Zwei-Phasen-Werkzeuge: Phase 1 wählt die Referenz (Spiegelachse,
Richtungslinie, Drehzentrum), Phase 2 sammelt Ziel-Entities als Toggle-Menge.
``preview()`` und ``confirm()`` rufen dieselben Transformationen aus
operations.transforms auf; die Vorschau lässt nur die Constraints weg.
"""

from abc import abstractmethod
from typing import List, Optional, Tuple
import math

from loguru import logger

from .base import BaseTool, SketchTool
from ..constraints import ORIGIN_ID
from ..geometry import Vec2, Entity, Point2D, Line2D, Circle2D, Arc2D, Ellipse2D
from ..operations.transforms import Replication, circular_pattern, linear_pattern, mirror_entities
from ..sketch import HistoryKind
from ..snap import SnapPoint, SnapType, find_closest_entity

PHASE_REFERENCE = 0
PHASE_TARGETS = 1


class ReplicationTool(BaseTool):
    """Gemeinsame Auswahl-Logik der Replikations-Werkzeuge."""

    reference_types: Tuple[type, ...] = (Line2D,)
    history_kind = HistoryKind.PATTERN

    def __init__(self, context):
        super().__init__(context)
        self.reference_id: Optional[str] = None
        self.targets: List[str] = []

    @property
    def phase(self) -> int:
        return PHASE_REFERENCE if self.reference_id is None else PHASE_TARGETS

    def select_reference(self, entity_id: str) -> bool:
        entity = self.sketch.get_entity(entity_id)
        if not isinstance(entity, self.reference_types):
            logger.debug(f"[{self.tool.name}] Ungültige Referenz: {entity_id}")
            return False
        self.reference_id = entity_id
        self.tool_step = 1
        self.status = "Ziele wählen"
        return True

    def toggle_target(self, entity_id: str) -> bool:
        """Fügt ein Ziel hinzu oder entfernt es. Returns: True wenn jetzt ausgewählt."""
        if entity_id == self.reference_id or not self.sketch.has_entity(entity_id):
            return False
        if entity_id in self.targets:
            self.targets.remove(entity_id)
            return False
        self.targets.append(entity_id)
        return True

    def handle_click(self, pos: Vec2, snap: Optional[SnapPoint]):
        hit = find_closest_entity(pos, self.sketch)
        if self.phase == PHASE_REFERENCE:
            if hit is not None:
                self.select_reference(hit.entity_id)
            return
        if hit is not None:
            self.toggle_target(hit.entity_id)
            self.refresh_preview()

    def on_move(self, cursor: Vec2):
        self.resolve(cursor)

    def cancel(self):
        super().cancel()
        self.reference_id = None
        self.targets = []

    # === Vorschau / Bestätigung ===

    @abstractmethod
    def compute(self, with_constraints: bool, preview_tag: Optional[str] = None) -> Optional[Replication]:
        """Transformation der Ziele, mit oder ohne Constraints."""

    def _history_detail(self) -> dict:
        return {"reference": self.reference_id}

    def preview(self) -> List[Entity]:
        """Transformierte Geometrie ohne Constraints."""
        if self.reference_id is None or not self.targets:
            return []
        result = self.compute(with_constraints=False, preview_tag=self.tool.value)
        return result.entities if result else []

    def refresh_preview(self):
        self._clear_preview()
        self._set_preview(self.preview())

    def confirm(self) -> Optional[Replication]:
        """Schreibt die Replikation fest. None wenn nichts zu erzeugen ist."""
        if self.reference_id is None or not self.targets:
            logger.debug(f"[{self.tool.name}] Keine Referenz oder keine Ziele")
            return None
        result = self.compute(with_constraints=True)
        if result is None or not result.entities:
            logger.debug(f"[{self.tool.name}] Keine Geometrie erzeugt")
            self.cancel()
            return None

        added = self._commit(result.entities, lambda: result.constraints)
        self.sketch.record(self.history_kind,
                           entity_ids=[e.id for e in result.entities],
                           constraint_ids=[c.id for c in added],
                           detail=self._history_detail())
        logger.info(f"[{self.tool.name}] {len(result.entities)} Kopien aus {len(self.targets)} Zielen")
        self.cancel()
        return result


class MirrorTool(ReplicationTool):
    tool = SketchTool.MIRROR
    history_kind = HistoryKind.MIRROR

    def compute(self, with_constraints, preview_tag=None):
        return mirror_entities(self.sketch, self.reference_id, self.targets,
                               with_constraints=with_constraints, preview_tag=preview_tag)


class LinearPatternTool(ReplicationTool):
    tool = SketchTool.PATTERN_LINEAR

    def __init__(self, context, count: int = 2, spacing: float = 10.0, flip: bool = False):
        super().__init__(context)
        self.count = count
        self.spacing = spacing
        self.flip = flip

    def compute(self, with_constraints, preview_tag=None):
        return linear_pattern(self.sketch, self.reference_id, self.targets, self.count, self.spacing,
                              flip=self.flip, with_constraints=with_constraints, preview_tag=preview_tag)

    def _history_detail(self):
        return {"reference": self.reference_id, "type": "linear",
                "count": self.count, "spacing": self.spacing, "flip": self.flip}


class CircularPatternTool(ReplicationTool):
    """Kreismuster um Ursprung, Punkt oder Zentrum von Kreis/Bogen/Ellipse."""
    tool = SketchTool.PATTERN_CIRCULAR
    reference_types = (Point2D, Circle2D, Arc2D, Ellipse2D)

    def __init__(self, context, count: int = 4, total_angle: float = 2.0 * math.pi, flip: bool = False):
        super().__init__(context)
        self.count = count
        self.total_angle = total_angle
        self.flip = flip

    def select_reference(self, entity_id: str) -> bool:
        if entity_id == ORIGIN_ID:
            self.reference_id = ORIGIN_ID
            self.tool_step = 1
            self.status = "Ziele wählen"
            return True
        return super().select_reference(entity_id)

    def handle_click(self, pos, snap):
        if self.phase == PHASE_REFERENCE and snap is not None and snap.snap_type == SnapType.ORIGIN:
            self.select_reference(ORIGIN_ID)
            return
        if self.phase == PHASE_REFERENCE and snap is not None and snap.snap_type == SnapType.CENTER:
            self.select_reference(snap.entity_id)
            return
        super().handle_click(pos, snap)

    def compute(self, with_constraints, preview_tag=None):
        return circular_pattern(self.sketch, self.reference_id, self.targets, self.count,
                                total_angle=self.total_angle, flip=self.flip,
                                with_constraints=with_constraints, preview_tag=preview_tag)

    def _history_detail(self):
        return {"reference": self.reference_id, "type": "circular", "count": self.count,
                "total_angle": self.total_angle, "flip": self.flip}
