"""
SketchAssist - Sketch
=====================

Container für Konstruktionsebene, Entities, Constraints und History.

Der Sketch gehört der Editier-Session und wird komplett ersetzt, sobald der
externe Solver einen gelösten Sketch zurückliefert.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from enum import Enum
import copy
import time
import uuid

from loguru import logger

from config.version import SKETCH_FORMAT
from .geometry import (
    Entity, Point2D, Line2D, Circle2D, Arc2D, Ellipse2D, Vec2,
    entity_from_dict, is_preview_id,
)
from .constraints import Constraint, ConstraintPoint


@dataclass
class SketchPlane:
    """Konstruktionsebene (Ursprung + orthonormale Basis) im Modellraum."""
    origin: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    x_dir: Tuple[float, float, float] = (1.0, 0.0, 0.0)
    y_dir: Tuple[float, float, float] = (0.0, 1.0, 0.0)
    normal: Tuple[float, float, float] = (0.0, 0.0, 1.0)

    def to_dict(self) -> dict:
        return {
            "origin": list(self.origin),
            "x_dir": list(self.x_dir),
            "y_dir": list(self.y_dir),
            "normal": list(self.normal),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SketchPlane':
        return cls(**{k: tuple(float(v) for v in data[k]) for k in ("origin", "x_dir", "y_dir", "normal") if k in data})


class HistoryKind(Enum):
    """Art eines History-Eintrags (Nachvollziehbarkeit, kein Undo)."""
    ADD_GEOMETRY = "AddGeometry"
    ADD_CONSTRAINT = "AddConstraint"
    DELETE_GEOMETRY = "DeleteGeometry"
    TRIM = "Trim"
    MIRROR = "Mirror"
    PATTERN = "Pattern"
    OFFSET = "Offset"


@dataclass
class HistoryEntry:
    kind: HistoryKind
    entity_ids: List[str] = field(default_factory=list)
    constraint_ids: List[str] = field(default_factory=list)
    detail: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "entity_ids": list(self.entity_ids),
            "constraint_ids": list(self.constraint_ids),
            "detail": dict(self.detail),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'HistoryEntry':
        return cls(
            kind=HistoryKind(data["kind"]),
            entity_ids=list(data.get("entity_ids", [])),
            constraint_ids=list(data.get("constraint_ids", [])),
            detail=dict(data.get("detail", {})),
            timestamp=float(data.get("timestamp", 0.0)),
        )


@dataclass
class Sketch:
    """2D-Sketch: Ebene, geordnete Entities, geordnete Constraints, History."""
    name: str = "Sketch"
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    plane: SketchPlane = field(default_factory=SketchPlane)
    entities: List[Entity] = field(default_factory=list)
    constraints: List[Constraint] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)

    # === Zugriff ===

    def get_entity(self, entity_id: str) -> Optional[Entity]:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        return None

    def has_entity(self, entity_id: str) -> bool:
        return self.get_entity(entity_id) is not None

    def committed_entities(self) -> List[Entity]:
        """Alle Entities ohne Vorschau-Geometrie."""
        return [e for e in self.entities if not is_preview_id(e.id)]

    def _of_type(self, cls) -> list:
        return [e for e in self.entities if isinstance(e, cls) and not is_preview_id(e.id)]

    @property
    def points(self) -> List[Point2D]:
        return self._of_type(Point2D)

    @property
    def lines(self) -> List[Line2D]:
        return self._of_type(Line2D)

    @property
    def circles(self) -> List[Circle2D]:
        return self._of_type(Circle2D)

    @property
    def arcs(self) -> List[Arc2D]:
        return self._of_type(Arc2D)

    @property
    def ellipses(self) -> List[Ellipse2D]:
        return self._of_type(Ellipse2D)

    def resolve_point(self, ref: ConstraintPoint) -> Optional[Vec2]:
        """Aktuelle Position eines ConstraintPoint, None wenn nicht auflösbar."""
        if ref.is_origin:
            return (0.0, 0.0)
        entity = self.get_entity(ref.entity_id)
        if entity is None:
            return None
        return entity.point_at(ref.index)

    def constraints_for(self, entity_id: str) -> List[Constraint]:
        return [c for c in self.constraints if c.references(entity_id)]

    # === Entities ===

    def add_entity(self, entity: Entity, record: bool = True) -> Entity:
        """Fügt eine Entity hinzu. IDs müssen eindeutig sein."""
        if self.has_entity(entity.id):
            raise ValueError(f"Entity-ID bereits vergeben: {entity.id}")
        self.entities.append(entity)
        if record and not is_preview_id(entity.id):
            self.record(HistoryKind.ADD_GEOMETRY, entity_ids=[entity.id],
                        detail={"geometry": entity.to_dict()})
        return entity

    def replace_entity(self, entity: Entity) -> bool:
        """Ersetzt die Entity mit gleicher ID (z.B. nach Trim)."""
        for i, existing in enumerate(self.entities):
            if existing.id == entity.id:
                self.entities[i] = entity
                return True
        return False

    def remove_entity(self, entity_id: str, record: bool = True) -> int:
        """
        Entfernt eine Entity und alle Constraints, die sie referenzieren.

        Returns:
            Anzahl entfernter Constraints
        """
        before = len(self.entities)
        self.entities = [e for e in self.entities if e.id != entity_id]
        if len(self.entities) == before:
            return 0

        pruned = [c for c in self.constraints if c.references(entity_id)]
        if pruned:
            pruned_ids = {c.id for c in pruned}
            self.constraints = [c for c in self.constraints if c.id not in pruned_ids]
            logger.debug(f"[Sketch] {len(pruned)} Constraints mit Referenz auf {entity_id[:8]} entfernt")

        if record and not is_preview_id(entity_id):
            self.record(HistoryKind.DELETE_GEOMETRY, entity_ids=[entity_id],
                        constraint_ids=[c.id for c in pruned])
        return len(pruned)

    def set_preview(self, entity: Entity):
        """Setzt/ersetzt eine Vorschau-Entity (ID mit Präfix 'preview_')."""
        if not is_preview_id(entity.id):
            raise ValueError(f"Keine Vorschau-ID: {entity.id}")
        if not self.replace_entity(entity):
            self.entities.append(entity)

    def strip_previews(self, prefix: Optional[str] = None) -> int:
        """
        Entfernt Vorschau-Entities, optional nur die mit gegebenem Präfix.

        Returns:
            Anzahl entfernter Entities
        """
        before = len(self.entities)
        self.entities = [
            e for e in self.entities
            if not (is_preview_id(e.id) and (prefix is None or e.id.startswith(prefix)))
        ]
        return before - len(self.entities)

    # === Constraints ===

    def _constraint_exists(self, constraint: Constraint) -> bool:
        signature = constraint.signature()
        return any(c.signature() == signature for c in self.constraints)

    def add_constraint(self, constraint: Constraint, record: bool = True) -> Optional[Constraint]:
        """
        Fügt einen Constraint hinzu.

        Ungültige Belegung, nicht auflösbare Referenzen und Duplikate werden
        verworfen (None).
        """
        if not constraint.is_valid():
            logger.debug(f"[Sketch] Ungültiger Constraint verworfen: {constraint}")
            return None
        missing = [eid for eid in constraint.referenced_ids() if not self.has_entity(eid)]
        if missing:
            logger.debug(f"[Sketch] Constraint mit unbekannten Referenzen verworfen: {constraint} ({missing})")
            return None
        if any(is_preview_id(eid) for eid in constraint.referenced_ids()):
            logger.debug(f"[Sketch] Constraint auf Vorschau-Geometrie verworfen: {constraint}")
            return None
        if self._constraint_exists(constraint):
            return None

        self.constraints.append(constraint)
        if record:
            self.record(HistoryKind.ADD_CONSTRAINT, constraint_ids=[constraint.id],
                        detail={"constraint": constraint.to_dict()})
        return constraint

    def add_constraints(self, constraints: Iterable[Constraint]) -> List[Constraint]:
        """Fügt mehrere Constraints in Reihenfolge hinzu, gibt die übernommenen zurück."""
        added = []
        for constraint in constraints:
            if self.add_constraint(constraint) is not None:
                added.append(constraint)
        return added

    def prune_dangling_constraints(self) -> int:
        """Entfernt Constraints mit Referenzen auf nicht mehr existierende Entities."""
        keep = [c for c in self.constraints
                if all(self.has_entity(eid) for eid in c.referenced_ids())]
        removed = len(self.constraints) - len(keep)
        self.constraints = keep
        return removed

    # === History ===

    def record(self, kind: HistoryKind, entity_ids: Optional[List[str]] = None,
               constraint_ids: Optional[List[str]] = None,
               detail: Optional[Dict[str, Any]] = None) -> HistoryEntry:
        entry = HistoryEntry(kind, list(entity_ids or []), list(constraint_ids or []), dict(detail or {}))
        self.history.append(entry)
        return entry

    # === Snapshot / Serialisierung ===

    def snapshot(self) -> 'Sketch':
        """Tiefe Kopie ohne Vorschau-Geometrie (für Solver-Übertragung)."""
        clone = copy.deepcopy(self)
        clone.strip_previews()
        return clone

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": SKETCH_FORMAT,
            "id": self.id,
            "name": self.name,
            "plane": self.plane.to_dict(),
            "entities": [e.to_dict() for e in self.committed_entities()],
            "constraints": [c.to_dict() for c in self.constraints],
            "history": [h.to_dict() for h in self.history],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Sketch':
        if data.get("format", SKETCH_FORMAT) > SKETCH_FORMAT:
            raise ValueError(f"Sketch-Format {data['format']} ist neuer als {SKETCH_FORMAT}")
        sketch = cls(
            name=data.get("name", "Sketch"),
            id=data.get("id") or str(uuid.uuid4()),
            plane=SketchPlane.from_dict(data.get("plane", {})),
        )
        for edata in data.get("entities", []):
            sketch.entities.append(entity_from_dict(edata))
        for cdata in data.get("constraints", []):
            try:
                constraint = Constraint.from_dict(cdata)
            except (KeyError, ValueError) as e:
                logger.debug(f"[Sketch.from_dict] Constraint übersprungen: {e}")
                continue
            sketch.constraints.append(constraint)
        sketch.history = [HistoryEntry.from_dict(h) for h in data.get("history", [])]
        dropped = sketch.prune_dangling_constraints()
        if dropped:
            logger.warning(f"[Sketch.from_dict] {dropped} Constraints mit fehlenden Referenzen verworfen")
        return sketch

    def __repr__(self):
        return (f"Sketch('{self.name}', {len(self.committed_entities())} entities, "
                f"{len(self.constraints)} constraints, {len(self.history)} history)")
