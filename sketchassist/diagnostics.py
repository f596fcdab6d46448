"""
SketchAssist - Diagnostics
==========================

Niedrigschwellige Diagnose-Einträge für Bedingungen, die keine Exception
rechtfertigen (Fallback angewendet, Dienst nicht erreichbar, ...).

Usage:
    from sketchassist.diagnostics import DiagnosticLog, ErrorCategory

    log = DiagnosticLog()
    selected = reconcile_selection(selection, regions, diagnostics=log)
    for d in log.filter(ErrorCategory.RECONCILIATION):
        print(d.message)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import time

from loguru import logger


class ErrorCategory(Enum):
    """Fehler-Klassifizierung."""
    GEOMETRIC_DEGENERACY = "geometric_degeneracy"   # Null-Länge, Null-Radius
    UNRESOLVED_REFERENCE = "unresolved_reference"   # Entity-ID fehlt im Sketch
    RECONCILIATION = "reconciliation"               # Gespeicherte Auswahl passt nicht
    SERVICE = "service"                             # Solver/Regionen-Dienst nicht verfügbar


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"


@dataclass
class Diagnostic:
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


class DiagnosticLog:
    """Sammelt Diagnosen einer Sitzung in Eingangsreihenfolge."""

    def __init__(self):
        self._entries: List[Diagnostic] = []

    def add(self, category: ErrorCategory, message: str,
            severity: ErrorSeverity = ErrorSeverity.INFO, **context) -> Diagnostic:
        entry = Diagnostic(category, severity, message, dict(context))
        self._entries.append(entry)
        log = logger.warning if severity == ErrorSeverity.WARNING else logger.debug
        log(f"[Diagnostics] {category.value}: {message}")
        return entry

    def filter(self, category: Optional[ErrorCategory] = None,
               severity: Optional[ErrorSeverity] = None) -> List[Diagnostic]:
        return [
            d for d in self._entries
            if (category is None or d.category == category)
            and (severity is None or d.severity == severity)
        ]

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)
