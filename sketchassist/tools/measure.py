"""
SketchAssist - Mess-Werkzeug

Nicht-treibende Messung zwischen zwei gewählten Kandidaten. Verändert den
Sketch nie; das Ergebnis lebt nur in der Sitzung.
"""

from typing import List, Optional

from loguru import logger

from .base import BaseTool, SketchTool
from ..dimensions import DimensionProposal, SelectionCandidate, measure
from ..geometry import Vec2
from ..snap import SnapPoint, SnapType, find_closest_entity


class MeasureTool(BaseTool):
    tool = SketchTool.MEASURE

    def __init__(self, context):
        super().__init__(context)
        self.selection: List[SelectionCandidate] = []
        self.measurements: List[DimensionProposal] = []

    @property
    def last_measurement(self) -> Optional[DimensionProposal]:
        return self.measurements[-1] if self.measurements else None

    def candidate_at(self, pos: Vec2, snap: Optional[SnapPoint]) -> SelectionCandidate:
        """Fangpunkt vor Entity-Treffer vor freiem Punkt."""
        if snap is not None:
            if snap.snap_type == SnapType.ORIGIN:
                return SelectionCandidate.origin()
            if snap.entity_id is not None and snap.point_index is not None:
                return SelectionCandidate.point(snap.entity_id, snap.point_index, snap.position)
        hit = find_closest_entity(pos, self.sketch)
        if hit is not None:
            return SelectionCandidate.entity(hit.entity_id)
        return SelectionCandidate.raw_point(pos)

    def handle_click(self, pos, snap):
        candidate = self.candidate_at(pos, snap)
        if candidate in self.selection:
            self.selection.remove(candidate)
            return
        self.selection.append(candidate)
        if len(self.selection) < 2:
            self.tool_step = 1
            return

        result = measure(self.selection, self.sketch)
        if result is None:
            logger.debug("[Measure] Auswahl nicht messbar")
        else:
            self.measurements.append(result)
            logger.info(f"[Measure] {result.kind.value}: {result.label}")
        self.selection = []
        self.tool_step = 0

    def cancel(self):
        super().cancel()
        self.selection = []

    def clear(self):
        self.measurements = []
