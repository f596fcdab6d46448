"""
SketchAssist - Geometrie-Assistenz für 2D-Sketches
"""

from .geometry import (
    Point2D, Line2D, Circle2D, Arc2D, Ellipse2D, Entity,
    GeometryType, PREVIEW_PREFIX,
    new_entity_id, is_preview_id, clone_entity,
    segment_intersection, point_in_polygon, winding_number,
    polygon_area, polygon_centroid,
)

from .constraints import (
    Constraint, ConstraintType, ConstraintPoint, DimensionStyle, ORIGIN_ID,
    make_coincident, make_horizontal, make_vertical,
    make_parallel, make_perpendicular, make_equal, make_fix,
    make_tangent, make_symmetric, make_distance,
    make_distance_point_line, make_distance_parallel_lines,
    make_angle, make_radius,
)

from .sketch import Sketch, SketchPlane, HistoryKind, HistoryEntry

from .snap import SnapDetector, SnapConfig, SnapPoint, SnapType, find_snaps, resolve_snap, find_closest_entity

from .inference import constraints_for_new_entity, infer_line_direction

from .dimensions import (
    DimensionInferencer, DimensionProposal, DimensionKind, SelectionCandidate,
    propose_dimension, placement_offset, placement_anchor,
)

from .regions import (
    Region, ProfileSelection, ReconcileConfig,
    extract_regions, region_contains, reconcile_selection, build_profile_selection,
)

from .diagnostics import Diagnostic, DiagnosticLog, ErrorCategory, ErrorSeverity

from .session import SketchSession
