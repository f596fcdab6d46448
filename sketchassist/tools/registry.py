"""
SketchAssist - Werkzeug-Registry

Bildet Werkzeug-IDs auf Klassen ab. Unbekannte IDs sind ein Programmierfehler (KeyError).
"""

from typing import Dict, Type, Union

from .base import BaseTool, SketchTool, ToolContext
from .creation import (
    PointTool, LineTool, RectangleTool, CircleTool, ArcTool,
    EllipseTool, PolygonTool, SlotTool,
)
from .measure import MeasureTool
from .replication import MirrorTool, LinearPatternTool, CircularPatternTool

TOOL_REGISTRY: Dict[SketchTool, Type[BaseTool]] = {
    SketchTool.POINT: PointTool,
    SketchTool.LINE: LineTool,
    SketchTool.RECTANGLE: RectangleTool,
    SketchTool.CIRCLE: CircleTool,
    SketchTool.ARC: ArcTool,
    SketchTool.ELLIPSE: EllipseTool,
    SketchTool.POLYGON: PolygonTool,
    SketchTool.SLOT: SlotTool,
    SketchTool.MIRROR: MirrorTool,
    SketchTool.PATTERN_LINEAR: LinearPatternTool,
    SketchTool.PATTERN_CIRCULAR: CircularPatternTool,
    SketchTool.MEASURE: MeasureTool,
}


def create_tool(tool_id: Union[str, SketchTool], context: ToolContext, **options) -> BaseTool:
    """Instanziert ein Werkzeug per Enum oder String-ID ("line", "circularPattern", ...)."""
    if not isinstance(tool_id, SketchTool):
        try:
            tool_id = SketchTool(tool_id)
        except ValueError:
            raise KeyError(f"Unbekanntes Werkzeug: {tool_id}") from None
    return TOOL_REGISTRY[tool_id](context, **options)
