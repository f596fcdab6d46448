"""
SketchAssist - Sketch Operations Module
=======================================

Offset, Trim und die Replikations-Transformationen (Spiegeln, Muster).
Jede Operation ist eigenständig testbar.

Verwendung:
    from sketchassist.operations import TrimOperation

    op = TrimOperation(sketch)
    result = op.execute(click_point)

    if result.success:
        # Operation erfolgreich
    else:
        print(result.message)
"""

from .base import OperationResult, ResultStatus, SketchOperation
from .offset import OffsetOperation, OffsetResult, offset_line, offset_lines
from .trim import TrimOperation, TrimResult, TrimSegment, trim_at
from .transforms import (
    Replication, mirror_entities, linear_pattern, circular_pattern,
    mirror_entity, translate_entity, rotate_entity, resolve_pattern_center,
)

__all__ = [
    # Core
    'OperationResult',
    'ResultStatus',
    'SketchOperation',
    # Offset
    'OffsetOperation',
    'OffsetResult',
    'offset_line',
    'offset_lines',
    # Trim
    'TrimOperation',
    'TrimResult',
    'TrimSegment',
    'trim_at',
    # Replikation
    'Replication',
    'mirror_entities',
    'linear_pattern',
    'circular_pattern',
    'mirror_entity',
    'translate_entity',
    'rotate_entity',
    'resolve_pattern_center',
]
