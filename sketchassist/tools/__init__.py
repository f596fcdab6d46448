"""
SketchAssist - Werkzeuge

Zustandsautomaten für Zeichen- und Replikations-Werkzeuge.
"""

from .base import BaseTool, SketchTool, ToolContext
from .creation import (
    PointTool, LineTool, RectangleTool, CircleTool, ArcTool,
    EllipseTool, PolygonTool, SlotTool,
)
from .measure import MeasureTool
from .replication import ReplicationTool, MirrorTool, LinearPatternTool, CircularPatternTool
from .registry import TOOL_REGISTRY, create_tool

__all__ = [
    'BaseTool', 'SketchTool', 'ToolContext',
    'PointTool', 'LineTool', 'RectangleTool', 'CircleTool', 'ArcTool',
    'EllipseTool', 'PolygonTool', 'SlotTool',
    'MeasureTool',
    'ReplicationTool', 'MirrorTool', 'LinearPatternTool', 'CircularPatternTool',
    'TOOL_REGISTRY', 'create_tool',
]
