"""
SketchAssist - Zentralisierte Toleranz-Konfiguration
====================================================

Alle Toleranzen und Schwellwerte des Sketch-Assist-Kerns an einem Ort.

Toleranz-Philosophie:
- Numerik (Division, Parallelität): 1e-9 / 1e-10
- Vergleich von Punkten (Offset-Stitching): 1e-6
- Degenerierte Geometrie (Klick-Zittern): 1e-3
- Interaktion (Snap-Radius, Trim-Treffer): Sketch-Einheiten

Verwendung:
    from config.tolerances import Tolerances

    radius = Tolerances.SNAP_RADIUS

    # Oder via Convenience-Funktionen
    from config.tolerances import sketch_tolerance
    eps = sketch_tolerance()
"""

import math


class Tolerances:
    """
    Zentrale Toleranz-Konstanten für SketchAssist.

    Kategorien:
    - SNAP_*: Fangpunkte
    - LINE_INFERENCE_*: Richtungs-Inferenz des Linien-Werkzeugs
    - SKETCH_*: Geometrie-Erzeugung (Degenerations-Checks)
    - OFFSET_* / TRIM_*: Sketch-Operationen
    - DIMENSION_*: Bemaßungs-Inferenz und Platzierung
    - REGION_*: Profil-Extraktion und Abgleich
    - EPSILON_*: Numerische Stabilität
    """

    # =========================================================================
    # Snapping
    # =========================================================================

    # Fangradius in Sketch-Einheiten
    SNAP_RADIUS = 0.5

    # Raster-Abstand (Grid-Snap ist per Default aus)
    SNAP_GRID_SPACING = 1.0

    # Toleranz für Hit-Tests beim Auswählen von Entities
    PICK_TOLERANCE = 0.5

    # =========================================================================
    # Richtungs-Inferenz (Linien-Werkzeug)
    # =========================================================================

    # Horizontal/Vertikal-Fangwinkel
    LINE_INFERENCE_HV_ANGLE = math.radians(5.0)

    # Parallel/Senkrecht-Fangwinkel zu bestehenden Linien
    LINE_INFERENCE_PARALLEL_ANGLE = math.radians(3.0)

    # Maximal geprüfte Referenzlinien
    LINE_INFERENCE_MAX_CANDIDATES = 10

    # =========================================================================
    # Geometrie-Erzeugung
    # =========================================================================

    # Unterhalb dieser Länge gilt eine Linie als Fehlklick
    SKETCH_MIN_LENGTH = 1e-3

    # Unterhalb dieses Radius gilt ein Kreis/Bogen/Polygon als Fehlklick
    SKETCH_MIN_RADIUS = 1e-3

    # Ersatz-Halbachse/-breite wenn der dritte Klick auf der Achse liegt
    SKETCH_FALLBACK_HALF_WIDTH = 0.1

    # Standard-Eckenzahl für Polygone
    SKETCH_POLYGON_SIDES = 6

    # Richtungslinie für lineare Muster
    PATTERN_MIN_DIRECTION_LENGTH = 1e-4

    # =========================================================================
    # Offset / Trim
    # =========================================================================

    # Offset-Kopien mit gemeinsamen Ecken werden verbunden
    OFFSET_STITCH = 1e-6

    # Kürzere Linien werden beim Offset übersprungen
    OFFSET_MIN_LENGTH = 1e-9

    # Maximaler Abstand Klick -> Linie beim Trimmen
    TRIM_HIT_DISTANCE = 2.0

    # =========================================================================
    # Bemaßung
    # =========================================================================

    # |Kreuzprodukt| der Einheitsvektoren unterhalb dessen zwei Linien parallel sind
    DIMENSION_PARALLEL = 0.1

    # Winkel-Constraint mit 0 oder pi gilt als Parallelität
    DIMENSION_ANGLE_PARALLEL = 0.01

    # Standard-Offset für Distanz-Bemaßungen [entlang, senkrecht]
    DIMENSION_DEFAULT_OFFSET = (0.0, 1.0)

    # Standard-Offset für Radius-Bemaßungen
    DIMENSION_RADIUS_OFFSET = (0.7, 0.7)

    # Grundabstand der Maßlinie bei ausgerichteten Distanzen
    DIMENSION_BASE_GAP = 1.0

    # =========================================================================
    # Regionen / Profile
    # =========================================================================

    # Segmente pro Kreis/Ellipse bei der Tessellierung
    REGION_TESSELLATION_SEGMENTS = 32

    # Flächen unterhalb gelten als degeneriert (Schwerpunkt = Mittelwert)
    REGION_AREA_EPSILON = 1e-6

    # Gewicht des Schwerpunkt-Abstands im Abgleich-Score
    REGION_CENTROID_WEIGHT = 10.0

    # Akzeptanzschwelle für den Abgleich gespeicherter Profile.
    # Empirischer Wert in Sketch-Einheiten, skaliert nicht mit der Sketch-Größe.
    REGION_MATCH_THRESHOLD = 100.0

    # Wartezeit auf den Regionen-Service bevor lokal extrahiert wird
    REGION_SERVICE_TIMEOUT_S = 0.5

    # =========================================================================
    # Mathematische Epsilon-Werte (Numerische Stabilität)
    # =========================================================================

    # Vermeidet Division durch Null
    EPSILON_MATH = 1e-9

    # Parallele Segmente beim Schnittpunkt-Test
    EPSILON_PARALLEL = 1e-10

    # Punkt-Vergleich (sind zwei Punkte "gleich"?)
    COMPARE_POINT = 1e-6


# =============================================================================
# Convenience-Funktionen
# =============================================================================

def sketch_tolerance() -> float:
    """Gibt die Standard-Degenerations-Toleranz zurück."""
    return Tolerances.SKETCH_MIN_LENGTH


def snap_radius() -> float:
    """Gibt den Standard-Fangradius zurück."""
    return Tolerances.SNAP_RADIUS


def region_match_threshold() -> float:
    """Gibt die Standard-Akzeptanzschwelle des Profil-Abgleichs zurück."""
    return Tolerances.REGION_MATCH_THRESHOLD


# =============================================================================
# Toleranz-Validierung (für Debugging)
# =============================================================================

def validate_tolerances():
    """
    Validiert dass alle Toleranzen sinnvolle Werte haben.
    Nützlich für Tests und Debugging.
    """
    issues = []

    if Tolerances.SNAP_RADIUS <= 0:
        issues.append(f"SNAP_RADIUS muss positiv sein: {Tolerances.SNAP_RADIUS}")

    # Stitching darf nicht gröber sein als die Degenerations-Grenze
    if Tolerances.OFFSET_STITCH >= Tolerances.SKETCH_MIN_LENGTH:
        issues.append(
            f"OFFSET_STITCH ({Tolerances.OFFSET_STITCH}) nicht kleiner als "
            f"SKETCH_MIN_LENGTH ({Tolerances.SKETCH_MIN_LENGTH})"
        )

    if Tolerances.REGION_TESSELLATION_SEGMENTS < 3:
        issues.append(f"REGION_TESSELLATION_SEGMENTS zu klein: {Tolerances.REGION_TESSELLATION_SEGMENTS}")

    return issues


# Automatische Validierung beim Import (nur Warnung, kein Fehler)
_validation_issues = validate_tolerances()
if _validation_issues:
    from loguru import logger
    for issue in _validation_issues:
        logger.warning(f"Toleranz-Validierung: {issue}")
