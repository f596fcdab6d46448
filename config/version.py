"""
SketchAssist - Versionen
========================

Paketversion und Format-Versionen der persistierten Daten.
Import: from config.version import VERSION, SKETCH_FORMAT, PROFILE_SELECTION_FORMAT
"""

VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

# "alpha", "beta", "rc1" oder leer für ein Release
VERSION_SUFFIX = "alpha"

APP_NAME = "SketchAssist"

VERSION = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"
VERSION_STRING = f"{VERSION}-{VERSION_SUFFIX}" if VERSION_SUFFIX else VERSION

# Sketch.to_dict / Sketch.from_dict
SKETCH_FORMAT = 1

# Gespeicherte Profil-Auswahl (sketchassist.regions.ProfileSelection).
# Version 1 ist das alte, unversionierte Format mit Tiefen-Erkennung.
PROFILE_SELECTION_FORMAT = 2


def get_version_info() -> dict:
    """Versions- und Formatinfo als Dictionary (für Debug-Ausgaben)."""
    return {
        "app_name": APP_NAME,
        "version": VERSION,
        "version_string": VERSION_STRING,
        "sketch_format": SKETCH_FORMAT,
        "profile_selection_format": PROFILE_SELECTION_FORMAT,
    }
