"""Curve engine for connections.

Pure functions: they read nodes and connections and return geometry or new
control point lists. Mutation is left to the scene model.
"""

from __future__ import annotations

import logging
import math
from typing import Callable, List, Optional, Sequence, Tuple

from .errors import CapacityExceeded, InvalidGeometry
from .geometry import (
    bezier_point,
    cubic_path,
    distance,
    edge_point,
    line_path,
    midpoint,
    quadratic_path,
    sample_bezier,
    unit_vector,
)
from .types import ControlPoint, Point, SceneConnection, SceneNode

logger = logging.getLogger(__name__)

ADDED = "added"
REMOVED = "removed"

# Default curve: control points at 1/3 and 2/3 of the chord, bent sideways.
DEFAULT_CURVE_FRACTIONS = (0.33, 0.67)
DEFAULT_CURVATURE_RATIO = 0.3
DEFAULT_CURVATURE_LIMIT = 60.0


def connection_endpoints(source: SceneNode, target: SceneNode) -> Tuple[Point, Point]:
    """Project both centres onto their node boundaries along the centre line.

    Raises InvalidGeometry when the centres coincide.
    """
    if unit_vector(source.center, target.center) is None:
        raise InvalidGeometry(f"coincident endpoints for {source.id} and {target.id}")
    start = edge_point(source.center, target.center, source.shape.radius)
    end = edge_point(target.center, source.center, target.shape.radius)
    return start, end


def safe_endpoints(source: SceneNode, target: SceneNode) -> Tuple[Point, Point]:
    """Like connection_endpoints, but degenerate pairs collapse to one point."""
    try:
        return connection_endpoints(source, target)
    except InvalidGeometry as exc:
        logger.info("%s; drawing a zero-length path", exc)
        return source.center, source.center


def control_polygon(start: Point, points: Sequence[ControlPoint], end: Point) -> List[Point]:
    return [start, *((cp.x, cp.y) for cp in points), end]


def path_for(start: Point, points: Sequence[ControlPoint], end: Point) -> str:
    """Path string whose degree is picked by the number of control points."""
    if not points:
        return line_path(start, end)
    if len(points) == 1:
        return quadratic_path(start, (points[0].x, points[0].y), end)
    first, second = points[0], points[1]
    return cubic_path(start, (first.x, first.y), (second.x, second.y), end)


def connection_path(connection: SceneConnection, source: SceneNode, target: SceneNode) -> str:
    start, end = safe_endpoints(source, target)
    return path_for(start, connection.control_points, end)


def point_at(connection: SceneConnection, source: SceneNode, target: SceneNode, t: float) -> Point:
    start, end = safe_endpoints(source, target)
    return bezier_point(control_polygon(start, connection.control_points, end), t)


def sample(connection: SceneConnection, source: SceneNode, target: SceneNode, steps: int = 24) -> List[Point]:
    start, end = safe_endpoints(source, target)
    return sample_bezier(control_polygon(start, connection.control_points, end), steps)


def label_anchor(connection: SceneConnection, source: SceneNode, target: SceneNode) -> Point:
    return point_at(connection, source, target, 0.5)


def nearest_control_point(
    points: Sequence[ControlPoint], at: Point, tolerance: float
) -> Optional[ControlPoint]:
    """Closest control point within ``tolerance`` of ``at``, if any."""
    best: Optional[ControlPoint] = None
    best_distance = tolerance
    for cp in points:
        d = distance((cp.x, cp.y), at)
        if d <= best_distance:
            best = cp
            best_distance = d
    return best


def near_endpoint(connection: SceneConnection, source: SceneNode, target: SceneNode, at: Point, clearance: float) -> bool:
    start, end = safe_endpoints(source, target)
    return distance(start, at) <= clearance or distance(end, at) <= clearance


def toggle_control_point(
    points: Sequence[ControlPoint],
    at: Point,
    tolerance: float,
    max_points: int,
    make_id: Callable[[], str],
) -> Tuple[str, List[ControlPoint]]:
    """Click-to-edit topology.

    A click within ``tolerance`` of an existing point removes the closest one;
    anywhere else appends a new point. Returns the action and the new list.
    Raises CapacityExceeded when appending past ``max_points``.
    """
    hit = nearest_control_point(points, at, tolerance)
    if hit is not None:
        return REMOVED, [cp for cp in points if cp.id != hit.id]
    if len(points) >= max_points:
        raise CapacityExceeded(f"a connection holds at most {max_points} control points")
    return ADDED, [*points, ControlPoint(make_id(), float(at[0]), float(at[1]))]


def follow_shift(
    old_source: Point, old_target: Point, new_source: Point, new_target: Point, factor: float
) -> Point:
    """Translation applied to control points when a connection's endpoints move."""
    old_mid = midpoint(old_source, old_target)
    new_mid = midpoint(new_source, new_target)
    return ((new_mid[0] - old_mid[0]) * factor, (new_mid[1] - old_mid[1]) * factor)


def shifted(points: Sequence[ControlPoint], shift: Point) -> List[ControlPoint]:
    return [ControlPoint(cp.id, cp.x + shift[0], cp.y + shift[1]) for cp in points]


def default_control_points(start: Point, end: Point) -> List[Point]:
    """Two points along the chord, offset perpendicular to it."""
    length = distance(start, end)
    if length < 1.0:
        return []
    angle = math.atan2(end[1] - start[1], end[0] - start[0])
    perp = angle + math.pi / 2.0
    curvature = min(length * DEFAULT_CURVATURE_RATIO, DEFAULT_CURVATURE_LIMIT)
    result = []
    for fraction in DEFAULT_CURVE_FRACTIONS:
        result.append(
            (
                start[0] + math.cos(angle) * length * fraction + math.cos(perp) * curvature,
                start[1] + math.sin(angle) * length * fraction + math.sin(perp) * curvature,
            )
        )
    return result


def preview_path(start: Point, end: Point) -> str:
    """Path for the rubber-band link shown while a connection is being drawn."""
    length = distance(start, end)
    if length < 1.0:
        return line_path(start, end)
    mid = midpoint(start, end)
    angle = math.atan2(end[1] - start[1], end[0] - start[0]) + math.pi / 2.0
    bend = min(length * DEFAULT_CURVATURE_RATIO, DEFAULT_CURVATURE_LIMIT) / 2.0
    control = (mid[0] + math.cos(angle) * bend, mid[1] + math.sin(angle) * bend)
    return quadratic_path(start, control, end)
