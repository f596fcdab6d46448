"""
SketchAssist - Sketch-Operationen
=================================

Gemeinsame Ergebnis-Typen und Basisklasse für Offset und Trim.

Eine Operation ändert den Sketch nur bei Erfolg und schreibt dann genau einen
History-Eintrag. Kein Ziel oder keine Schnitte sind ein No-Op, kein Fehler.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Optional, Sequence
from enum import Enum

from loguru import logger

from ..sketch import HistoryEntry, HistoryKind, Sketch


class ResultStatus(Enum):
    SUCCESS = "success"
    WARNING = "warning"  # Ausgeführt, aber mit übersprungenen Eingaben
    NO_TARGET = "no_target"
    NO_INTERSECTIONS = "no_intersections"


@dataclass
class OperationResult:
    """
    Ergebnis einer Sketch-Operation.

    data trägt operationsspezifische Details (Trim: geänderte Linien-IDs,
    Offset: OffsetResult).
    """
    status: ResultStatus
    message: str = ""
    data: Any = None

    @property
    def success(self) -> bool:
        return self.status in (ResultStatus.SUCCESS, ResultStatus.WARNING)

    @property
    def is_noop(self) -> bool:
        return self.status in (ResultStatus.NO_TARGET, ResultStatus.NO_INTERSECTIONS)

    @classmethod
    def ok(cls, message: str = "", data: Any = None) -> 'OperationResult':
        return cls(ResultStatus.SUCCESS, message, data)

    @classmethod
    def warning(cls, message: str, data: Any = None) -> 'OperationResult':
        return cls(ResultStatus.WARNING, message, data)

    @classmethod
    def no_target(cls, message: str = "Kein Ziel gefunden") -> 'OperationResult':
        return cls(ResultStatus.NO_TARGET, message)

    @classmethod
    def no_intersections(cls, message: str = "Keine Schnittpunkte") -> 'OperationResult':
        return cls(ResultStatus.NO_INTERSECTIONS, message)


class SketchOperation(ABC):
    """
    Basisklasse für Operationen auf einem Sketch.

    Subklassen setzen ``history_kind`` und ``log_tag`` und rufen nach einer
    erfolgreichen Änderung ``_commit`` auf.
    """
    history_kind: ClassVar[HistoryKind]
    log_tag: ClassVar[str] = "Operation"

    def __init__(self, sketch: Sketch):
        self.sketch = sketch
        self.last_result: Optional[OperationResult] = None

    @abstractmethod
    def execute(self, *args, **kwargs) -> OperationResult:
        """Führt die Operation aus und liefert ein OperationResult."""

    def _commit(self, entity_ids: Sequence[str], constraint_ids: Sequence[str] = (),
                detail: Optional[Dict[str, Any]] = None) -> HistoryEntry:
        return self.sketch.record(self.history_kind, entity_ids=list(entity_ids),
                                  constraint_ids=list(constraint_ids), detail=detail)

    def _finish(self, result: OperationResult) -> OperationResult:
        self.last_result = result
        if not result.success:
            logger.debug(f"[{self.log_tag}] No-Op: {result.message}")
        return result
