"""
SketchAssist - Regionen / Profile
=================================

Geschlossene Regionen für abhängige Features (Extrude):

- Lokaler Fallback (``extract_regions``): Kreise und Ellipsen als eigene
  Regionen, geschlossene Linienzüge über eine Endpunkt-Nachbarschaft.
  Regionen aus Kurvenschnitten (Linse zweier Kreise) liefert nur der
  externe Regionen-Dienst.
- Punkt-Enthaltensein per Winding-Number, Löcher (voids) abgezogen.
- Abgleich einer gespeicherten Profil-Auswahl gegen neu berechnete Regionen,
  deren IDs zwischen zwei Berechnungen nicht stabil sind.

Usage:
    from sketchassist.regions import extract_regions, reconcile_selection, ProfileSelection

    regions = extract_regions(sketch.entities)
    saved = ProfileSelection.from_dict(feature_params)
    selected_ids = reconcile_selection(saved, regions)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import math

from loguru import logger
from shapely.geometry import Polygon as ShapelyPolygon
from shapely.geometry.polygon import orient

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from config.version import PROFILE_SELECTION_FORMAT
from .diagnostics import DiagnosticLog, ErrorCategory, ErrorSeverity
from .geometry import (
    Vec2, Entity, Line2D, Circle2D, Ellipse2D,
    distance, is_preview_id, mean_point, polygon_area, polygon_centroid, polygon_signed_area,
    tessellate_circle, tessellate_ellipse, winding_number,
)

Loop = List[Vec2]


@dataclass
class Region:
    """
    Geschlossene Region: äußere Schleife, optionale Löcher, erzeugende Entities.

    provisional=True markiert Regionen aus dem lokalen Fallback, solange das
    Ergebnis des Regionen-Dienstes aussteht.
    """
    id: str
    outer: Loop
    voids: List[Loop] = field(default_factory=list)
    boundary_ids: List[str] = field(default_factory=list)
    area: float = 0.0
    centroid: Vec2 = (0.0, 0.0)
    provisional: bool = False

    @classmethod
    def from_loops(cls, region_id: str, outer: Sequence[Vec2], voids: Sequence[Sequence[Vec2]] = (),
                   boundary_ids: Sequence[str] = (), provisional: bool = False) -> 'Region':
        """Region mit Netto-Fläche und Schwerpunkt (Löcher via shapely abgezogen)."""
        outer = [(float(x), float(y)) for x, y in outer]
        voids = [[(float(x), float(y)) for x, y in void] for void in voids if len(void) >= 3]
        if voids:
            poly = ShapelyPolygon(outer, voids)
            if not poly.is_valid:
                logger.debug(f"[Regions] Ungültiges Polygon {region_id}, repariere mit buffer(0)")
                poly = poly.buffer(0)
            area = float(poly.area)
            centroid = (float(poly.centroid.x), float(poly.centroid.y)) if area > 0 else mean_point(outer)
        else:
            area = polygon_area(outer)
            centroid = polygon_centroid(outer)
        return cls(region_id, outer, voids, list(boundary_ids), area, centroid, provisional)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "boundary_points": [list(p) for p in self.outer],
            "voids": [[list(p) for p in void] for void in self.voids],
            "boundary_entity_ids": list(self.boundary_ids),
            "area": self.area,
            "centroid": list(self.centroid),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Region':
        """Region aus einer Antwort des Regionen-Dienstes."""
        try:
            region = cls.from_loops(data["id"], data["boundary_points"], data.get("voids", []),
                                    data.get("boundary_entity_ids", []))
        except (KeyError, TypeError) as e:
            raise ValueError(f"Ungültige Region: {e}") from e
        if "area" in data:
            region.area = float(data["area"])
        if "centroid" in data:
            region.centroid = (float(data["centroid"][0]), float(data["centroid"][1]))
        return region


# =============================================================================
# Lokaler Fallback
# =============================================================================

def _point_key(p: Vec2) -> Tuple[str, str]:
    return (f"{p[0]:.6f}", f"{p[1]:.6f}")


def _trace_loops(lines: List[Line2D]) -> List[Tuple[List[Line2D], Loop]]:
    """Geschlossene Linienzüge über exakt übereinstimmende Endpunkt-Schlüssel."""
    endpoint_map: Dict[Tuple[str, str], List[Tuple[Line2D, bool]]] = {}
    for line in lines:
        endpoint_map.setdefault(_point_key(line.start), []).append((line, True))
        endpoint_map.setdefault(_point_key(line.end), []).append((line, False))

    loops = []
    used = set()
    for line in lines:
        if line.id in used:
            continue
        loop_lines, loop_points = [line], [line.start]
        visited = {line.id}
        current_end = line.end
        closed = False

        while len(loop_lines) < len(lines):
            neighbors = endpoint_map.get(_point_key(current_end), [])
            next_entry = next(((n, is_start) for n, is_start in neighbors if n.id not in visited), None)
            if next_entry is None:
                break
            next_line, is_start = next_entry
            visited.add(next_line.id)
            loop_lines.append(next_line)
            loop_points.append(current_end)
            current_end = next_line.end if is_start else next_line.start
            if _point_key(current_end) == _point_key(line.start):
                closed = True
                break

        if closed and len(loop_lines) >= 3:
            used.update(l.id for l in loop_lines)
            loops.append((loop_lines, loop_points))
        elif is_enabled("sketch_debug"):
            logger.debug(f"[Regions] Kein geschlossener Zug ab {line.id[:8]} ({len(loop_lines)} Linien)")
    return loops


def extract_regions(entities: Iterable[Entity],
                    segments: int = Tolerances.REGION_TESSELLATION_SEGMENTS) -> List[Region]:
    """
    Lokale Regionen-Berechnung.

    Kreise/Ellipsen: tesselliert, analytische Fläche, Zentrum als Schwerpunkt.
    Linienzüge: mindestens 3 Linien, Shoelace-Fläche, Mittelwert-Schwerpunkt.
    Konstruktions-Geometrie und Vorschau-Entities werden ignoriert.
    """
    entities = [e for e in entities if not e.construction and not is_preview_id(e.id)]
    regions: List[Region] = []

    for entity in entities:
        if isinstance(entity, Circle2D):
            regions.append(Region(
                f"region_{entity.id}", tessellate_circle(entity.center, entity.radius, segments),
                boundary_ids=[entity.id], area=math.pi * entity.radius ** 2,
                centroid=entity.center,
            ))
        elif isinstance(entity, Ellipse2D):
            regions.append(Region(
                f"region_{entity.id}",
                tessellate_ellipse(entity.center, entity.semi_major, entity.semi_minor, entity.rotation, segments),
                boundary_ids=[entity.id], area=math.pi * entity.semi_major * entity.semi_minor,
                centroid=entity.center,
            ))

    lines = [e for e in entities if isinstance(e, Line2D)]
    for n, (loop_lines, points) in enumerate(_trace_loops(lines)):
        regions.append(Region(
            f"loop_{n}", points, boundary_ids=[l.id for l in loop_lines],
            area=polygon_area(points), centroid=mean_point(points),
        ))

    logger.debug(f"[Regions] Fallback: {len(regions)} Regionen aus {len(entities)} Entities")
    return regions


def region_contains(point: Vec2, region: Region) -> bool:
    """Winding-Number über die äußere Schleife, abzüglich Enthaltensein in einem Loch."""
    if len(region.outer) < 3 or winding_number(point, region.outer) == 0:
        return False
    return not any(len(void) >= 3 and winding_number(point, void) != 0 for void in region.voids)


def region_at(point: Vec2, regions: Sequence[Region]) -> Optional[Region]:
    """Kleinste Region, die den Punkt enthält (Klick-Auswahl)."""
    hits = [r for r in regions if region_contains(point, r)]
    return min(hits, key=lambda r: r.area) if hits else None


# =============================================================================
# Persistierte Auswahl
# =============================================================================

def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_loop(raw) -> Loop:
    try:
        return [(float(p[0]), float(p[1])) for p in raw]
    except (TypeError, IndexError, ValueError) as e:
        raise ValueError(f"Ungültige Punktliste: {e}") from e


@dataclass
class ProfileSelection:
    """
    Gespeicherte Profil-Auswahl eines Features.

    profiles: Entity-IDs der Ränder aller gewählten Regionen (dedupliziert)
    regions:  pro Profil [äußere Schleife, *Löcher]
    explicit: True wenn der Nutzer die Auswahl bestätigt hat (leer = nichts gewählt)
    """
    profiles: List[str] = field(default_factory=list)
    regions: List[List[Loop]] = field(default_factory=list)
    explicit: bool = False
    version: int = PROFILE_SELECTION_FORMAT

    @property
    def outer_loops(self) -> List[Loop]:
        return [profile[0] for profile in self.regions if profile and profile[0]]

    @property
    def is_empty(self) -> bool:
        return not self.profiles and not self.regions

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "profiles": list(self.profiles),
            "regions": [[[list(p) for p in loop] for loop in profile] for profile in self.regions],
            "explicit": self.explicit,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional['ProfileSelection']:
        """Aktuelles Format oder Legacy-Parameter (profiles + profile_regions)."""
        if not data:
            return None
        if data.get("version") == PROFILE_SELECTION_FORMAT:
            return cls(
                profiles=[str(i) for i in data.get("profiles", [])],
                regions=[[_as_loop(loop) for loop in profile] for profile in data.get("regions", [])],
                explicit=bool(data.get("explicit", True)),
            )
        if "version" in data:
            raise ValueError(f"Unbekanntes Auswahl-Format: {data['version']}")
        return cls.from_raw(data.get("profiles"), data.get("profile_regions"))

    @classmethod
    def from_raw(cls, profiles: Optional[Sequence[str]], profile_regions: Optional[Sequence]) -> 'ProfileSelection':
        """
        Einmalige Migration der Legacy-Verschachtelung.

        Alt:  [Schleife][Punkt]          -> jede Schleife wird ein Profil ohne Löcher
        Neu:  [Profil][Schleife][Punkt]  -> unverändert
        Ein explizit leeres profile_regions gilt als bestätigte leere Auswahl.
        """
        ids = [str(i) for i in (profiles or [])]
        if profile_regions is None:
            return cls(profiles=ids)

        raw = list(profile_regions)
        if not raw:
            return cls(profiles=ids, explicit=True)

        try:
            legacy = _is_number(raw[0][0][0])
        except (TypeError, IndexError) as e:
            raise ValueError(f"Ungültige profile_regions: {e}") from e

        if legacy:
            regions = [[_as_loop(loop)] for loop in raw]
            logger.debug(f"[Regions] Legacy-Auswahl migriert: {len(regions)} Schleifen")
        else:
            regions = [[_as_loop(loop) for loop in profile] for profile in raw]
        return cls(profiles=ids, regions=regions, explicit=True)


def build_profile_selection(regions: Sequence[Region], selected_ids: Sequence[str]) -> ProfileSelection:
    """
    Auswahl für die Persistenz: deduplizierte Rand-IDs plus Schleifen pro Profil.

    Äußere Schleifen werden gegen den Uhrzeigersinn, Löcher im Uhrzeigersinn abgelegt.
    """
    wanted = set(selected_ids)
    chosen = [r for r in regions if r.id in wanted]

    entity_ids: List[str] = []
    for region in chosen:
        for entity_id in region.boundary_ids:
            if entity_id not in entity_ids:
                entity_ids.append(entity_id)

    loops = []
    for region in chosen:
        if len(region.outer) < 3:
            loops.append([list(region.outer)] + [list(v) for v in region.voids])
            continue
        poly = orient(ShapelyPolygon(region.outer, region.voids), sign=1.0)
        outer = [(float(x), float(y)) for x, y in list(poly.exterior.coords)[:-1]]
        holes = [[(float(x), float(y)) for x, y in list(ring.coords)[:-1]] for ring in poly.interiors]
        loops.append([outer] + holes)

    return ProfileSelection(profiles=entity_ids, regions=loops, explicit=True)


# =============================================================================
# Abgleich
# =============================================================================

@dataclass
class ReconcileConfig:
    """Akzeptanzschwelle und Schwerpunkt-Gewicht; in Sketch-Einheiten, nicht skalenfrei."""
    match_threshold: float = Tolerances.REGION_MATCH_THRESHOLD
    centroid_weight: float = Tolerances.REGION_CENTROID_WEIGHT


def _loop_signature(loop: Loop) -> Tuple[float, Vec2]:
    """Fläche und Schwerpunkt einer gespeicherten Schleife (Shoelace)."""
    area = polygon_signed_area(loop)
    if abs(area) > Tolerances.REGION_AREA_EPSILON:
        return abs(area), polygon_centroid(loop)
    return abs(area), mean_point(loop)


def match_score(region: Region, area: float, centroid: Vec2, config: ReconcileConfig) -> float:
    return abs(region.area - area) + config.centroid_weight * distance(region.centroid, centroid)


def reconcile_selection(selection: Optional[ProfileSelection], candidates: Sequence[Region],
                        config: Optional[ReconcileConfig] = None,
                        diagnostics: Optional[DiagnosticLog] = None) -> List[str]:
    """
    Findet die gemeinten Regionen einer gespeicherten Auswahl.

    1. Kandidaten auf Regionen einschränken, deren Rand-IDs vollständig in der
       Auswahl liegen (sonst alle Kandidaten, Warnung).
    2. Gespeicherte Schleifen: pro Schleife bester Kandidat nach
       |dA| + w * |dC|, nur unterhalb der Schwelle.
    3. Ohne Schleifen, aber mit ID-Treffern: alle eingeschränkten Kandidaten.
    4. Sonst: alle Regionen.

    Returns:
        IDs der ausgewählten Regionen in Kandidaten-Reihenfolge
    """
    config = config or ReconcileConfig()
    all_ids = [r.id for r in candidates]

    if selection is None or (selection.is_empty and not selection.explicit):
        return all_ids
    if selection.is_empty:
        return []

    narrowed = list(candidates)
    id_matched = False
    if selection.profiles:
        saved = set(selection.profiles)
        matched = [r for r in candidates if r.boundary_ids and set(r.boundary_ids) <= saved]
        if matched:
            narrowed, id_matched = matched, True
        else:
            logger.warning("[Regions] Keine Region passt zu den gespeicherten IDs, prüfe alle Regionen")

    saved_loops = selection.outer_loops
    if saved_loops:
        matched_ids = set()
        for i, loop in enumerate(saved_loops):
            if len(loop) < 3:
                continue
            area, centroid = _loop_signature(loop)
            best, best_score = None, float("inf")
            for region in narrowed:
                score = match_score(region, area, centroid, config)
                if is_enabled("sketch_debug"):
                    logger.debug(f"[Regions] Schleife {i} vs {region.id}: score={score:.4f}")
                if score < best_score:
                    best, best_score = region, score
            if best is not None and best_score < config.match_threshold:
                matched_ids.add(best.id)
            else:
                logger.warning(f"[Regions] Kein Treffer für Schleife {i} (bester Score {best_score:.4f})")
                if diagnostics is not None:
                    diagnostics.add(ErrorCategory.RECONCILIATION, f"Kein Treffer für gespeicherte Schleife {i}",
                                    ErrorSeverity.INFO, loop_index=i, best_score=best_score)

        if matched_ids:
            result = [rid for rid in all_ids if rid in matched_ids]
            logger.info(f"[Regions] {len(result)} Regionen über Geometrie wiedergefunden")
            return result

        if diagnostics is not None:
            diagnostics.add(ErrorCategory.RECONCILIATION, "Gespeicherte Auswahl passt zu keiner Region, wähle alle",
                            ErrorSeverity.INFO, saved_loops=len(saved_loops))
        return all_ids

    if id_matched:
        logger.info(f"[Regions] Legacy: {len(narrowed)} Regionen über IDs gewählt")
        return [r.id for r in narrowed]

    return all_ids
