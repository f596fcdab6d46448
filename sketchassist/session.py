"""
SketchAssist - Editier-Sitzung
==============================

Eingabe-Dispatcher für einen Sketch: aktives Werkzeug, Bemaßungs-Vorschlag,
Solver-Anbindung mit Epochen-Schutz und Regionen-Anfrage mit begrenzter
Wartezeit.

Ablauf pro Event (synchron, ein Schreiber):
    pointer_move -> Snap, Werkzeug-Vorschau, Bemaßungs-Vorschlag neu berechnen
    pointer_down -> Werkzeug-Schritt bzw. Commit -> Solver-Push (epoch, snapshot)

Der Solver antwortet asynchron; ``apply_solver_reply`` verwirft Antworten,
deren Epoche älter als die letzte lokale Änderung ist.

Usage:
    session = SketchSession(solver=push_to_solver, region_service=fetch_regions)
    session.set_tool("line")
    session.pointer_down((0, 0))
    session.pointer_down((10, 0))
    ...
    session.apply_solver_reply(epoch, solved_sketch)
"""

from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FuturesTimeout
from typing import Any, Callable, List, Optional, Sequence, Union

from loguru import logger

from config.feature_flags import is_enabled
from config.tolerances import Tolerances
from .constraints import Constraint
from .diagnostics import DiagnosticLog, ErrorCategory, ErrorSeverity
from .dimensions import DimensionInferencer, DimensionProposal, SelectionCandidate
from .geometry import Vec2
from .operations import OffsetOperation, OperationResult, TrimOperation
from .regions import (
    ProfileSelection, ReconcileConfig, Region,
    build_profile_selection, extract_regions, reconcile_selection,
)
from .sketch import Sketch
from .snap import SnapConfig, SnapDetector
from .tools import BaseTool, SketchTool, ToolContext, create_tool

SolverCallable = Callable[[int, Sketch], Any]
RegionCallable = Callable[[str], Sequence[Union[Region, dict]]]
Listener = Callable[[Sketch], None]


class SketchSession:
    """
    Hält den Sketch einer Editier-Sitzung und verteilt Eingaben.

    Args:
        sketch: Start-Sketch (neu, wenn None)
        solver: wird nach jedem Commit mit (epoch, snapshot) aufgerufen
        region_service: liefert zu einer Sketch-ID die autoritativen Regionen
        snap_config: Fang-Einstellungen
        region_timeout: maximale Wartezeit auf den Regionen-Dienst (Sekunden)
    """

    def __init__(self, sketch: Optional[Sketch] = None,
                 solver: Optional[SolverCallable] = None,
                 region_service: Optional[RegionCallable] = None,
                 snap_config: Optional[SnapConfig] = None,
                 reconcile_config: Optional[ReconcileConfig] = None,
                 region_timeout: float = Tolerances.REGION_SERVICE_TIMEOUT_S):
        self.sketch = sketch or Sketch()
        self.solver = solver
        self.region_service = region_service
        self.reconcile_config = reconcile_config or ReconcileConfig()
        self.region_timeout = region_timeout
        self.diagnostics = DiagnosticLog()

        self.context = ToolContext(self.sketch, SnapDetector(snap_config), on_commit=self._on_commit)
        self.active_tool: Optional[BaseTool] = None

        self.epoch = 0
        self._listeners: List[Listener] = []

        self.dimension = DimensionInferencer()
        self.selection: List[SelectionCandidate] = []

        self.regions: List[Region] = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="regions")
        self._pending_regions: Optional[Future] = None
        self._pending_epoch = 0

    # === Beobachter ===

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Registriert einen Listener; Rückgabe meldet ihn wieder ab."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _emit(self):
        for listener in list(self._listeners):
            listener(self.sketch)

    # === Werkzeuge ===

    def set_tool(self, tool_id: Union[str, SketchTool, None], **options) -> Optional[BaseTool]:
        """Wechselt das Werkzeug; offene Klicks und Vorschau des alten werden verworfen."""
        self.cancel()
        self.active_tool = create_tool(tool_id, self.context, **options) if tool_id is not None else None
        return self.active_tool

    def cancel(self):
        if self.active_tool is not None:
            self.active_tool.cancel()

    def pointer_move(self, cursor: Vec2) -> Optional[DimensionProposal]:
        if self.active_tool is not None:
            self.active_tool.on_move(cursor)
        if self.selection:
            return self.dimension.update(self.selection, self.sketch, cursor)
        return None

    def pointer_down(self, cursor: Vec2):
        if is_enabled("sketch_input_logging"):
            logger.debug(f"[Session] pointer_down {cursor} tool={self.active_tool.tool.value if self.active_tool else None}")
        if self.active_tool is not None:
            self.active_tool.on_click(cursor)

    # === Auswahl / Bemaßung ===

    def toggle_selection(self, candidate: SelectionCandidate):
        if candidate in self.selection:
            self.selection.remove(candidate)
        else:
            self.selection.append(candidate)

    def clear_selection(self):
        self.selection = []
        self.dimension.current = None

    def finish_dimension(self, click: Vec2) -> Optional[Constraint]:
        constraint = self.dimension.finish(self.selection, self.sketch, click)
        if constraint is not None:
            self.clear_selection()
            self._on_commit(self.sketch)
        return constraint

    # === Operationen ===

    def trim(self, click: Vec2) -> OperationResult:
        result = TrimOperation(self.sketch).execute(click)
        if result.success:
            self._on_commit(self.sketch)
        return result

    def offset(self, line_ids: Sequence[str], distance: float, flip: bool = False) -> OperationResult:
        result = OffsetOperation(self.sketch).execute(line_ids, distance, flip)
        if result.success:
            self._on_commit(self.sketch)
        return result

    # === Solver ===

    def _on_commit(self, sketch: Sketch):
        self.epoch += 1
        snapshot = sketch.snapshot()
        self._mark_regions_stale()
        if self.solver is not None:
            try:
                self.solver(self.epoch, snapshot)
            except Exception as e:
                logger.warning(f"[Session] Solver-Push fehlgeschlagen: {e}")
                self.diagnostics.add(ErrorCategory.SERVICE, f"Solver nicht erreichbar: {e}",
                                     ErrorSeverity.WARNING, epoch=self.epoch)
        self._emit()

    def apply_solver_reply(self, epoch: int, solved: Optional[Sketch]) -> bool:
        """
        Übernimmt einen gelösten Sketch, wenn er zur aktuellen Epoche gehört.

        Returns:
            True wenn übernommen; False bei veralteter Antwort oder ohne Update
        """
        if solved is None:
            logger.debug(f"[Session] Solver ohne Update (Epoche {epoch})")
            return False
        if epoch < self.epoch:
            logger.warning(f"[Session] Veraltete Solver-Antwort verworfen: Epoche {epoch} < {self.epoch}")
            return False

        if self.active_tool is not None:
            self.active_tool.cancel()
        self.sketch = solved
        self.context.sketch = solved
        self._mark_regions_stale()
        self._emit()
        return True

    # === Regionen ===

    def _fallback_regions(self) -> List[Region]:
        regions = extract_regions(self.sketch.entities)
        for region in regions:
            region.provisional = True
        return regions

    @staticmethod
    def _to_regions(raw: Sequence[Union[Region, dict]]) -> List[Region]:
        return [r if isinstance(r, Region) else Region.from_dict(r) for r in raw]

    def request_regions(self) -> List[Region]:
        """
        Regionen für abhängige Features.

        Wartet höchstens region_timeout auf den Dienst; danach lokale
        Fallback-Regionen (provisional=True), bis eine spätere Antwort sie ersetzt.
        """
        if self.region_service is None:
            self.regions = self._fallback_regions()
            return self.regions

        future = self._executor.submit(self.region_service, self.sketch.id)
        self._pending_epoch = self.epoch
        try:
            self.regions = self._to_regions(future.result(timeout=self.region_timeout))
            self._pending_regions = None
            return self.regions
        except FuturesTimeout:
            logger.warning(f"[Session] Regionen-Dienst nach {self.region_timeout:.2f}s ohne Antwort, nutze Fallback")
            self.diagnostics.add(ErrorCategory.SERVICE, "Regionen-Dienst Timeout", ErrorSeverity.WARNING,
                                 sketch_id=self.sketch.id)
            self._pending_regions = future
        except Exception as e:
            logger.warning(f"[Session] Regionen-Dienst fehlgeschlagen: {e}")
            self.diagnostics.add(ErrorCategory.SERVICE, f"Regionen-Dienst fehlgeschlagen: {e}",
                                 ErrorSeverity.WARNING, sketch_id=self.sketch.id)

        if is_enabled("region_service_fallback"):
            self.regions = self._fallback_regions()
        return self.regions

    def poll_regions(self) -> bool:
        """Übernimmt eine nachträglich eingetroffene Dienst-Antwort. Returns: True wenn übernommen."""
        future = self._pending_regions
        if future is None or not future.done():
            return False
        self._pending_regions = None
        try:
            raw = future.result()
        except Exception as e:
            logger.warning(f"[Session] Verspätete Regionen-Antwort fehlerhaft: {e}")
            return False
        return self.apply_region_reply(self.sketch.id, raw, self._pending_epoch)

    def apply_region_reply(self, sketch_id: str, raw: Sequence[Union[Region, dict]],
                           epoch: Optional[int] = None) -> bool:
        """
        Autoritative Regionen ersetzen provisorische.

        epoch ist die Epoche, zu der die Anfrage gestellt wurde. Antworten für
        andere Sketche oder von vor dem letzten lokalen Commit werden verworfen.
        """
        if sketch_id != self.sketch.id:
            logger.debug(f"[Session] Regionen für fremden Sketch {sketch_id} ignoriert")
            return False
        if epoch is not None and epoch < self.epoch:
            logger.warning(f"[Session] Veraltete Regionen-Antwort verworfen: Epoche {epoch} < {self.epoch}")
            return False
        self.regions = self._to_regions(raw)
        logger.info(f"[Session] {len(self.regions)} autoritative Regionen übernommen")
        self._emit()
        return True

    def _mark_regions_stale(self):
        """Nach einer lokalen Änderung gelten bisherige Regionen nur noch als vorläufig."""
        for region in self.regions:
            region.provisional = True

    @property
    def regions_provisional(self) -> bool:
        return any(r.provisional for r in self.regions)

    def select_profiles(self, saved: Optional[ProfileSelection]) -> List[str]:
        return reconcile_selection(saved, self.regions, self.reconcile_config, self.diagnostics)

    def confirm_profiles(self, selected_ids: Sequence[str]) -> ProfileSelection:
        return build_profile_selection(self.regions, selected_ids)

    def close(self):
        self.cancel()
        self._executor.shutdown(wait=False)
