"""
SketchAssist - Werkzeug-Basis
=============================

Gemeinsamer Ablauf aller Zeichenwerkzeuge:

    on_move(pos)  -> Snap auflösen, Vorschau aktualisieren
    on_click(pos) -> Snap auflösen, Schritt weiterschalten oder abschließen
    cancel()      -> Vorschau entfernen, Schritt zurücksetzen

Beim Abschluss (``_commit``):
    1. eigene Vorschau-Entities entfernen
    2. Entities hinzufügen (Historie: AddGeometry)
    3. Auto-Constraints hinzufügen (Historie: AddConstraint)
    4. Solver-Update anstoßen (context.notify_commit)

Ein degenerierter Abschluss (Länge/Radius unter Toleranz) bricht still ab.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence
from enum import Enum

from loguru import logger

from config.feature_flags import is_enabled
from ..constraints import Constraint
from ..geometry import Entity, Vec2, PREVIEW_PREFIX
from ..sketch import Sketch
from ..snap import SnapDetector, SnapPoint


class SketchTool(Enum):
    """Verfügbare Werkzeuge"""
    POINT = "point"
    LINE = "line"
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARC = "arc"
    ELLIPSE = "ellipse"
    POLYGON = "polygon"
    SLOT = "slot"
    MIRROR = "mirror"
    PATTERN_LINEAR = "linearPattern"
    PATTERN_CIRCULAR = "circularPattern"
    MEASURE = "measure"


@dataclass
class ToolContext:
    """
    Umgebung eines Werkzeugs.

    on_commit wird nach jeder festgeschriebenen Änderung mit dem Sketch
    aufgerufen (Solver-Anfrage, Regionen-Neuberechnung).
    """
    sketch: Sketch
    snapper: SnapDetector = field(default_factory=SnapDetector)
    construction_mode: bool = False
    on_commit: Optional[Callable[[Sketch], None]] = None
    temp_point: Optional[Vec2] = None

    def notify_commit(self):
        if self.on_commit is not None:
            self.on_commit(self.sketch)


class BaseTool(ABC):
    """
    Abstrakte Basis für Zeichenwerkzeuge.

    tool_step zählt die bereits gesetzten Klicks, tool_points hält die
    (gefangenen) Positionen, tool_snaps die zugehörigen Fangpunkte.
    """

    tool: SketchTool

    def __init__(self, context: ToolContext):
        self.context = context
        self.tool_step = 0
        self.tool_points: List[Vec2] = []
        self.tool_snaps: List[Optional[SnapPoint]] = []
        self.status = ""

    @property
    def sketch(self) -> Sketch:
        return self.context.sketch

    @property
    def preview_prefix(self) -> str:
        # Mit Trenner, sonst wäre "preview_line" Präfix von "preview_linearPattern"
        return f"{PREVIEW_PREFIX}{self.tool.value}_"

    def preview_id(self, suffix: str = "0") -> str:
        return f"{self.preview_prefix}{suffix}"

    @property
    def is_active(self) -> bool:
        return self.tool_step > 0

    # === Eingabe ===

    def resolve(self, cursor: Vec2):
        """Cursor -> (effektive Position, Fangpunkt)."""
        pos, snap = self.context.snapper.resolve(cursor, self.sketch)
        self.context.temp_point = pos
        return pos, snap

    def on_move(self, cursor: Vec2):
        pos, snap = self.resolve(cursor)
        self._clear_preview()
        if self.tool_step > 0:
            self.update_preview(pos, snap)

    def on_click(self, cursor: Vec2):
        pos, snap = self.resolve(cursor)
        if is_enabled("sketch_input_logging"):
            logger.debug(f"[{self.tool.name}] Klick {pos} snap={snap.snap_type.value if snap else None} step={self.tool_step}")
        self.handle_click(pos, snap)

    def cancel(self):
        """Bricht den laufenden Vorgang ab, der Sketch bleibt unverändert."""
        self._clear_preview()
        self.tool_step = 0
        self.tool_points = []
        self.tool_snaps = []
        self.context.temp_point = None
        self.status = ""

    @abstractmethod
    def handle_click(self, pos: Vec2, snap: Optional[SnapPoint]):
        """Klick mit bereits aufgelöster Position verarbeiten."""

    def update_preview(self, pos: Vec2, snap: Optional[SnapPoint]):
        """Vorschau für den aktuellen Schritt; Standard: keine."""

    # === Hilfen ===

    def _push(self, pos: Vec2, snap: Optional[SnapPoint]):
        self.tool_points.append(pos)
        self.tool_snaps.append(snap)
        self.tool_step += 1

    def _set_preview(self, entities: Sequence[Entity]):
        for entity in entities:
            self.sketch.set_preview(entity)

    def _clear_preview(self):
        self.sketch.strip_previews(self.preview_prefix)

    def _commit(self, entities: Sequence[Entity],
                constraints: Callable[[], List[Constraint]]) -> List[Constraint]:
        """
        Schreibt Entities und Auto-Constraints fest.

        constraints wird erst nach dem Hinzufügen der Entities ausgewertet,
        damit die Inferenz die neuen Entities bereits sieht.
        """
        self._clear_preview()
        for entity in entities:
            self.sketch.add_entity(entity)
        added = self.sketch.add_constraints(constraints())
        logger.info(f"[{self.tool.name}] {len(entities)} Entities, {len(added)} Constraints")
        self.context.notify_commit()
        return added
