import pytest

from config.feature_flags import set_flag
from sketchassist.geometry import Line2D
from sketchassist.sketch import Sketch


# Feature Flag Defaults - Single Source of Truth für Test-Isolation
# =================================================================
# WICHTIG: Jeder Test muss mit sauberen Feature-Flags starten.
# Diese Defaults müssen mit config/feature_flags.py synchron gehalten werden.
FEATURE_FLAG_DEFAULTS = {
    # Debug-Modi
    "sketch_input_logging": False,
    "sketch_debug": False,

    # Assist-Funktionen
    "line_direction_inference": True,
    "region_service_fallback": True,
}


@pytest.fixture(autouse=True)
def _global_feature_flag_isolation():
    """
    Globale Feature-Flag-Isolation.

    Stellt sicher, dass jeder Test mit sauberen, deterministischen
    Feature-Flags startet.
    """
    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)

    yield

    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)


@pytest.fixture
def sketch():
    return Sketch("test")


@pytest.fixture
def square_sketch():
    """Geschlossenes Quadrat (0,0)-(10,10) aus vier Linien."""
    s = Sketch("square")
    corners = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
    for i in range(4):
        s.add_entity(Line2D(corners[i], corners[(i + 1) % 4]))
    return s


@pytest.fixture
def crossing_sketch():
    """Zwei Linien, die sich bei (5,5) kreuzen."""
    s = Sketch("crossing")
    first = s.add_entity(Line2D((0.0, 0.0), (10.0, 10.0)))
    second = s.add_entity(Line2D((0.0, 10.0), (10.0, 0.0)))
    return s, first, second
