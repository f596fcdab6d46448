"""
SketchAssist - Zeichenwerkzeuge
===============================

Ein Werkzeug pro Entity-Art. Jedes hält nur die minimalen Klick-Anker
(tool_points) und schreibt beim letzten Klick Geometrie plus Constraints fest.

    Punkt:     1 Klick
    Linie:     Start, Ende (mit Richtungs-Inferenz)
    Rechteck:  Ecke, Gegenecke
    Kreis:     Zentrum, Radiuspunkt
    Bogen:     Zentrum, Start, Ende
    Ellipse:   Zentrum, Hauptachsen-Ende, Nebenachse
    Polygon:   Zentrum, Eckpunkt
    Langloch:  Zentrum 1, Zentrum 2, Breite
"""

from typing import List, Optional
import math

from loguru import logger

from config.tolerances import Tolerances
from .base import BaseTool, SketchTool
from ..constraints import (
    Constraint, ConstraintPoint,
    make_coincident, make_equal, make_horizontal, make_vertical,
    make_parallel, make_tangent,
)
from ..geometry import (
    Vec2, Point2D, Line2D, Circle2D, Arc2D, Ellipse2D,
    angle_of, distance, new_entity_id, point_on_circle,
)
from ..inference import constraints_for_new_entity, infer_line_direction, DirectionInference
from ..snap import SnapPoint


def _cp(entity_id: str, index: int) -> ConstraintPoint:
    return ConstraintPoint(entity_id, index)


class PointTool(BaseTool):
    tool = SketchTool.POINT

    def handle_click(self, pos: Vec2, snap: Optional[SnapPoint]):
        point = Point2D(pos[0], pos[1], construction=self.context.construction_mode)
        self._commit([point], lambda: constraints_for_new_entity(self.sketch, point.id, snap, None))
        self.cancel()


class LineTool(BaseTool):
    """Linie aus zwei Klicks. Ohne harten Snap am Ende greift die Richtungs-Inferenz."""
    tool = SketchTool.LINE

    def __init__(self, context):
        super().__init__(context)
        self.direction: Optional[DirectionInference] = None

    def _effective_end(self, pos: Vec2, snap: Optional[SnapPoint]) -> Vec2:
        self.direction = infer_line_direction(self.tool_points[0], pos, self.sketch, snap)
        return self.direction.position if self.direction else pos

    def update_preview(self, pos, snap):
        end = self._effective_end(pos, snap)
        self._set_preview([Line2D(self.tool_points[0], end, id=self.preview_id(),
                                  construction=self.context.construction_mode)])

    def handle_click(self, pos, snap):
        if self.tool_step == 0:
            self._push(pos, snap)
            self.status = "Endpunkt wählen"
            return

        start, start_snap = self.tool_points[0], self.tool_snaps[0]
        end = self._effective_end(pos, snap)
        if distance(start, end) < Tolerances.SKETCH_MIN_LENGTH:
            logger.debug("[Line] Degenerierte Linie verworfen")
            self.cancel()
            return

        direction = self.direction
        line = Line2D(start, end, construction=self.context.construction_mode)

        def build() -> List[Constraint]:
            result = constraints_for_new_entity(self.sketch, line.id, start_snap, snap)
            if direction is not None:
                inferred = direction.to_constraint(line.id)
                if inferred is not None:
                    result.append(inferred)
            return result

        self._commit([line], build)
        self.cancel()

    def cancel(self):
        super().cancel()
        self.direction = None


class RectangleTool(BaseTool):
    """Rechteck aus zwei Ecken: unten, rechts, oben, links."""
    tool = SketchTool.RECTANGLE

    @staticmethod
    def _corners(p1: Vec2, p2: Vec2):
        (x1, y1), (x2, y2) = p1, p2
        return [(x1, y1), (x2, y1), (x2, y2), (x1, y2)]

    def _lines(self, p1: Vec2, p2: Vec2, preview: bool = False) -> List[Line2D]:
        c = self._corners(p1, p2)
        return [
            Line2D(c[i], c[(i + 1) % 4],
                   id=self.preview_id(str(i)) if preview else new_entity_id(),
                   construction=self.context.construction_mode)
            for i in range(4)
        ]

    def update_preview(self, pos, snap):
        self._set_preview(self._lines(self.tool_points[0], pos, preview=True))

    def handle_click(self, pos, snap):
        if self.tool_step == 0:
            self._push(pos, snap)
            self.status = "Gegenecke wählen"
            return

        p1, start_snap = self.tool_points[0], self.tool_snaps[0]
        if (abs(pos[0] - p1[0]) < Tolerances.SKETCH_MIN_LENGTH
                or abs(pos[1] - p1[1]) < Tolerances.SKETCH_MIN_LENGTH):
            logger.debug("[Rectangle] Degeneriertes Rechteck verworfen")
            self.cancel()
            return

        bottom, right, top, left = lines = self._lines(p1, pos)

        def build() -> List[Constraint]:
            result = [
                make_horizontal(bottom.id), make_vertical(right.id),
                make_horizontal(top.id), make_vertical(left.id),
            ]
            for i in range(4):
                result.append(make_coincident(_cp(lines[i].id, 1), _cp(lines[(i + 1) % 4].id, 0)))
            result += constraints_for_new_entity(self.sketch, bottom.id, start_snap, None)
            result += constraints_for_new_entity(self.sketch, top.id, snap, None)
            return result

        self._commit(lines, build)
        self.cancel()


class CircleTool(BaseTool):
    tool = SketchTool.CIRCLE

    def update_preview(self, pos, snap):
        radius = distance(self.tool_points[0], pos)
        if radius >= Tolerances.SKETCH_MIN_RADIUS:
            self._set_preview([Circle2D(self.tool_points[0], radius, id=self.preview_id(),
                                        construction=self.context.construction_mode)])

    def handle_click(self, pos, snap):
        if self.tool_step == 0:
            self._push(pos, snap)
            self.status = "Radius wählen"
            return

        center, center_snap = self.tool_points[0], self.tool_snaps[0]
        radius = distance(center, pos)
        if radius < Tolerances.SKETCH_MIN_RADIUS:
            logger.debug("[Circle] Radius zu klein, verworfen")
            self.cancel()
            return

        circle = Circle2D(center, radius, construction=self.context.construction_mode)
        self._commit([circle], lambda: constraints_for_new_entity(self.sketch, circle.id, center_snap, None))
        self.cancel()


class ArcTool(BaseTool):
    """Bogen: Zentrum, Startpunkt (Radius + Startwinkel), Endpunkt (Endwinkel)."""
    tool = SketchTool.ARC

    def update_preview(self, pos, snap):
        center = self.tool_points[0]
        if self.tool_step == 1:
            radius = distance(center, pos)
            if radius >= Tolerances.SKETCH_MIN_RADIUS:
                self._set_preview([Line2D(center, pos, id=self.preview_id("radius"), construction=True)])
            return
        radius = distance(center, self.tool_points[1])
        self._set_preview([Arc2D(center, radius, angle_of(center, self.tool_points[1]), angle_of(center, pos),
                                 id=self.preview_id(), construction=self.context.construction_mode)])

    def handle_click(self, pos, snap):
        if self.tool_step == 0:
            self._push(pos, snap)
            self.status = "Startpunkt wählen"
            return
        if self.tool_step == 1:
            if distance(self.tool_points[0], pos) < Tolerances.SKETCH_MIN_RADIUS:
                logger.debug("[Arc] Startpunkt fällt mit Zentrum zusammen, verworfen")
                self.cancel()
                return
            self._push(pos, snap)
            self.status = "Endpunkt wählen"
            return

        center, center_snap = self.tool_points[0], self.tool_snaps[0]
        start = self.tool_points[1]
        if distance(center, pos) < Tolerances.SKETCH_MIN_RADIUS:
            logger.debug("[Arc] Endpunkt fällt mit Zentrum zusammen, verworfen")
            self.cancel()
            return

        arc = Arc2D(center, distance(center, start), angle_of(center, start), angle_of(center, pos),
                    construction=self.context.construction_mode)
        self._commit([arc], lambda: constraints_for_new_entity(self.sketch, arc.id, center_snap, None))
        self.cancel()


class EllipseTool(BaseTool):
    """Ellipse: Zentrum, Hauptachsen-Ende, dann Nebenachse über den senkrechten Anteil."""
    tool = SketchTool.ELLIPSE

    def _minor(self, pos: Vec2) -> float:
        center, major = self.tool_points[0], self.tool_points[1]
        rotation = angle_of(center, major)
        vx, vy = pos[0] - center[0], pos[1] - center[1]
        minor = abs(vx * -math.sin(rotation) + vy * math.cos(rotation))
        return minor if minor > 1e-6 else Tolerances.SKETCH_FALLBACK_HALF_WIDTH

    def update_preview(self, pos, snap):
        center = self.tool_points[0]
        if self.tool_step == 1:
            if distance(center, pos) >= Tolerances.SKETCH_MIN_LENGTH:
                self._set_preview([Line2D(center, pos, id=self.preview_id("axis"), construction=True)])
            return
        major = self.tool_points[1]
        self._set_preview([Ellipse2D(center, distance(center, major), self._minor(pos), angle_of(center, major),
                                     id=self.preview_id(), construction=self.context.construction_mode)])

    def handle_click(self, pos, snap):
        if self.tool_step == 0:
            self._push(pos, snap)
            self.status = "Hauptachse wählen"
            return
        if self.tool_step == 1:
            if distance(self.tool_points[0], pos) < Tolerances.SKETCH_MIN_LENGTH:
                logger.debug("[Ellipse] Hauptachse zu kurz, verworfen")
                self.cancel()
                return
            self._push(pos, snap)
            self.status = "Nebenachse wählen"
            return

        center, center_snap = self.tool_points[0], self.tool_snaps[0]
        major = self.tool_points[1]
        ellipse = Ellipse2D(center, distance(center, major), self._minor(pos), angle_of(center, major),
                            construction=self.context.construction_mode)
        self._commit([ellipse], lambda: constraints_for_new_entity(self.sketch, ellipse.id, center_snap, None))
        self.cancel()


class PolygonTool(BaseTool):
    """
    Regelmäßiges Polygon mit Konstruktions-Speichen.

    Speichen: Zentrum -> Ecke i (Konstruktion), Umfang: Ecke i -> Ecke i+1.
    Equal über alle Speichen und alle Seiten, Coincident verbindet Speichen-Ende,
    Seiten-Anfang und Ende der vorherigen Seite.
    """
    tool = SketchTool.POLYGON

    def __init__(self, context, num_sides: int = Tolerances.SKETCH_POLYGON_SIDES):
        super().__init__(context)
        if num_sides < 3:
            raise ValueError(f"Polygon braucht mindestens 3 Seiten, nicht {num_sides}")
        self.num_sides = num_sides

    def _vertices(self, center: Vec2, vertex: Vec2) -> List[Vec2]:
        radius = distance(center, vertex)
        rotation = angle_of(center, vertex)
        n = self.num_sides
        return [point_on_circle(center, radius, rotation + 2.0 * math.pi * i / n) for i in range(n)]

    def _perimeter(self, vertices: List[Vec2], preview: bool = False) -> List[Line2D]:
        n = len(vertices)
        return [
            Line2D(vertices[i], vertices[(i + 1) % n],
                   id=self.preview_id(str(i)) if preview else new_entity_id(),
                   construction=self.context.construction_mode)
            for i in range(n)
        ]

    def update_preview(self, pos, snap):
        if distance(self.tool_points[0], pos) > Tolerances.SKETCH_MIN_RADIUS:
            self._set_preview(self._perimeter(self._vertices(self.tool_points[0], pos), preview=True))

    def handle_click(self, pos, snap):
        if self.tool_step == 0:
            self._push(pos, snap)
            self.status = "Eckpunkt wählen"
            return

        center, center_snap = self.tool_points[0], self.tool_snaps[0]
        if distance(center, pos) <= Tolerances.SKETCH_MIN_RADIUS:
            logger.debug("[Polygon] Radius zu klein, verworfen")
            self.cancel()
            return

        vertices = self._vertices(center, pos)
        spokes = [Line2D(center, v, construction=True) for v in vertices]
        perimeter = self._perimeter(vertices)

        def build() -> List[Constraint]:
            result = []
            for i in range(1, self.num_sides):
                result.append(make_equal(spokes[0].id, spokes[i].id))
                result.append(make_equal(perimeter[0].id, perimeter[i].id))
                result.append(make_coincident(_cp(spokes[0].id, 0), _cp(spokes[i].id, 0)))
            for i in range(self.num_sides):
                previous = perimeter[i - 1]
                result.append(make_coincident(_cp(spokes[i].id, 1), _cp(perimeter[i].id, 0)))
                result.append(make_coincident(_cp(previous.id, 1), _cp(perimeter[i].id, 0)))
            result += constraints_for_new_entity(self.sketch, spokes[0].id, center_snap, None)
            return result

        self._commit(spokes + perimeter, build)
        self.cancel()


class SlotTool(BaseTool):
    """
    Langloch: zwei Halbkreis-Bögen um die Achsenenden plus zwei Tangenten-Linien.

    Bogen 1 läuft von angle + pi/2 (oben) nach angle + 3pi/2 (unten),
    Bogen 2 von angle - pi/2 (unten) nach angle + pi/2 (oben).
    """
    tool = SketchTool.SLOT

    def _half_width(self, pos: Vec2) -> float:
        c1, c2 = self.tool_points[0], self.tool_points[1]
        angle = angle_of(c1, c2)
        vx, vy = pos[0] - c1[0], pos[1] - c1[1]
        half_width = abs(vx * -math.sin(angle) + vy * math.cos(angle))
        return half_width if half_width > Tolerances.SKETCH_MIN_RADIUS else Tolerances.SKETCH_FALLBACK_HALF_WIDTH

    def _build(self, half_width: float, preview: bool = False):
        c1, c2 = self.tool_points[0], self.tool_points[1]
        angle = angle_of(c1, c2)
        nx, ny = -math.sin(angle) * half_width, math.cos(angle) * half_width
        top1, bottom1 = (c1[0] + nx, c1[1] + ny), (c1[0] - nx, c1[1] - ny)
        top2, bottom2 = (c2[0] + nx, c2[1] + ny), (c2[0] - nx, c2[1] - ny)

        def eid(tag):
            return self.preview_id(tag) if preview else new_entity_id()

        construction = self.context.construction_mode
        arc1 = Arc2D(c1, half_width, angle + math.pi / 2, angle + 3 * math.pi / 2, id=eid("a1"),
                     construction=construction)
        arc2 = Arc2D(c2, half_width, angle - math.pi / 2, angle + math.pi / 2, id=eid("a2"),
                     construction=construction)
        line1 = Line2D(top1, top2, id=eid("l1"), construction=construction)
        line2 = Line2D(bottom1, bottom2, id=eid("l2"), construction=construction)
        return arc1, arc2, line1, line2

    def update_preview(self, pos, snap):
        if self.tool_step == 1:
            if distance(self.tool_points[0], pos) >= Tolerances.SKETCH_MIN_LENGTH:
                self._set_preview([Line2D(self.tool_points[0], pos, id=self.preview_id("axis"), construction=True)])
            return
        self._set_preview(self._build(self._half_width(pos), preview=True))

    def handle_click(self, pos, snap):
        if self.tool_step == 0:
            self._push(pos, snap)
            self.status = "Zweites Zentrum wählen"
            return
        if self.tool_step == 1:
            if distance(self.tool_points[0], pos) < Tolerances.SKETCH_MIN_LENGTH:
                logger.debug("[Slot] Achse zu kurz, verworfen")
                self.cancel()
                return
            self._push(pos, snap)
            self.status = "Breite wählen"
            return

        c1, c2 = self.tool_points[0], self.tool_points[1]
        start_snap, end_snap = self.tool_snaps[0], self.tool_snaps[1]
        arc1, arc2, line1, line2 = self._build(self._half_width(pos))
        axis = Line2D(c1, c2, construction=True)

        def build() -> List[Constraint]:
            result = [
                make_coincident(_cp(axis.id, 0), _cp(arc1.id, 0)),
                make_coincident(_cp(axis.id, 1), _cp(arc2.id, 0)),
                make_parallel(line1.id, line2.id),
                make_parallel(line1.id, axis.id),
                make_parallel(line2.id, axis.id),
                make_equal(arc1.id, arc2.id),
                make_coincident(_cp(line1.id, 0), _cp(arc1.id, 1)),
                make_coincident(_cp(line2.id, 0), _cp(arc1.id, 2)),
                make_coincident(_cp(line1.id, 1), _cp(arc2.id, 2)),
                make_coincident(_cp(line2.id, 1), _cp(arc2.id, 1)),
                make_tangent(line1.id, arc1.id),
                make_tangent(line2.id, arc1.id),
                make_tangent(line1.id, arc2.id),
                make_tangent(line2.id, arc2.id),
            ]
            result += constraints_for_new_entity(self.sketch, axis.id, start_snap, end_snap)
            return result

        self._commit([axis, arc1, arc2, line1, line2], build)
        self.cancel()
