"""
SketchAssist - Feature Flags
============================

Schalter für Debug-Ausgaben und abschaltbare Assist-Funktionen.
Die Test-Suite setzt vor jedem Test die Defaults (test/conftest.py).
"""

from typing import Dict

# Feature Flag Registry
# =====================
# Debug-Flags loggen pro Pointer-Event und bleiben per Default aus.

FEATURE_FLAGS: Dict[str, bool] = {
    # Debug-Modi
    "sketch_input_logging": False,  # Jedes Pointer-Event und jeder Snap-Kandidat
    "sketch_debug": False,  # Algorithmus-Interna ([Regions] Scores, [Trim] Parameter)

    # Assist-Funktionen
    "line_direction_inference": True,  # H/V- und Parallel/Senkrecht-Fang beim Linien-Werkzeug
    "region_service_fallback": True,  # Lokale Profil-Extraktion wenn der Regionen-Service nicht antwortet
}


def is_enabled(flag: str) -> bool:
    """Unbekannte Flags gelten als aus."""
    return bool(FEATURE_FLAGS.get(flag, False))


def set_flag(flag: str, value: bool) -> None:
    """Setzt ein Flag zur Laufzeit (Tests, Debug-Sitzungen)."""
    FEATURE_FLAGS[flag] = bool(value)


def get_all_flags() -> Dict[str, bool]:
    """Kopie aller Flags, Änderungen daran wirken nicht zurück."""
    return dict(FEATURE_FLAGS)
