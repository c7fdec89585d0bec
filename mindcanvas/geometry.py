"""Pure geometry helpers shared by the curve engine, hit testing and rendering.

Points are ``(x, y)`` tuples and rectangles are ``(x, y, width, height)``
tuples with a non-negative size.
"""

from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from .types import Point, ShapeKind

Rect = Tuple[float, float, float, float]


def distance(a: Point, b: Point) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def lerp(start: float, end: float, factor: float) -> float:
    return start + (end - start) * factor


def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)


def unit_vector(a: Point, b: Point) -> Optional[Point]:
    """Return the unit vector from ``a`` to ``b``, or None if they coincide."""
    length = distance(a, b)
    if length == 0.0:
        return None
    return ((b[0] - a[0]) / length, (b[1] - a[1]) / length)


def edge_point(center: Point, toward: Point, radius: float) -> Point:
    """Project from ``center`` towards ``toward`` onto a circle of ``radius``."""
    unit = unit_vector(center, toward)
    if unit is None:
        return center
    return (center[0] + unit[0] * radius, center[1] + unit[1] * radius)


def point_segment_distance(p: Point, a: Point, b: Point) -> float:
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        return distance(p, a)
    t = clamp(((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / length_sq, 0.0, 1.0)
    return distance(p, (a[0] + t * dx, a[1] + t * dy))


def polyline_distance(p: Point, points: Sequence[Point]) -> float:
    if not points:
        return math.inf
    if len(points) == 1:
        return distance(p, points[0])
    return min(point_segment_distance(p, points[i], points[i + 1]) for i in range(len(points) - 1))


def normalize_rect(a: Point, b: Point) -> Rect:
    x = min(a[0], b[0])
    y = min(a[1], b[1])
    return (x, y, abs(b[0] - a[0]), abs(b[1] - a[1]))


def rects_overlap(a: Rect, b: Rect) -> bool:
    return not (
        a[0] > b[0] + b[2]
        or a[0] + a[2] < b[0]
        or a[1] > b[1] + b[3]
        or a[1] + a[3] < b[1]
    )


def polygon_points(sides: int, radius_x: float, radius_y: float, center: Point = (0.0, 0.0)) -> List[Point]:
    """Regular polygon vertices starting at the top, clockwise in screen space."""
    step = 2.0 * math.pi / sides
    start = -math.pi / 2.0
    return [
        (center[0] + radius_x * math.cos(start + i * step), center[1] + radius_y * math.sin(start + i * step))
        for i in range(sides)
    ]


def point_in_polygon(p: Point, vertices: Sequence[Point]) -> bool:
    """Even-odd rule; points on the boundary count as inside."""
    inside = False
    count = len(vertices)
    for i in range(count):
        a = vertices[i]
        b = vertices[(i + 1) % count]
        if point_segment_distance(p, a, b) <= 1e-9:
            return True
        if (a[1] > p[1]) != (b[1] > p[1]):
            cross_x = a[0] + (p[1] - a[1]) * (b[0] - a[0]) / (b[1] - a[1])
            if p[0] < cross_x:
                inside = not inside
    return inside


def shape_vertices(kind: ShapeKind, width: float, height: float, center: Point = (0.0, 0.0)) -> List[Point]:
    """Vertices of the polygonal outlines; empty for circles and rectangles."""
    cx, cy = center
    hw = width / 2.0
    hh = height / 2.0
    if kind == ShapeKind.TRIANGLE:
        return [(cx, cy - hh), (cx + hw, cy + hh), (cx - hw, cy + hh)]
    if kind == ShapeKind.DIAMOND:
        return [(cx, cy - hh), (cx + hw, cy), (cx, cy + hh), (cx - hw, cy)]
    if kind == ShapeKind.PENTAGON:
        return polygon_points(5, hw, hh, center)
    if kind == ShapeKind.HEXAGON:
        return polygon_points(6, hw, hh, center)
    return []


def point_in_shape(p: Point, kind: ShapeKind, width: float, height: float, center: Point) -> bool:
    """Return True if ``p`` lies inside the outline (boundary included)."""
    hw = width / 2.0
    hh = height / 2.0
    dx = p[0] - center[0]
    dy = p[1] - center[1]
    if kind == ShapeKind.CIRCLE:
        # Circles render with r = width / 2.
        return dx * dx + dy * dy <= hw * hw
    if kind in (ShapeKind.RECTANGLE, ShapeKind.ROUNDED_RECTANGLE):
        return abs(dx) <= hw and abs(dy) <= hh
    return point_in_polygon(p, shape_vertices(kind, width, height, center))


# --- Bezier -----------------------------------------------------------------
def bezier_point(control: Sequence[Point], t: float) -> Point:
    """Evaluate a Bezier curve of any degree with De Casteljau's algorithm."""
    points = list(control)
    while len(points) > 1:
        points = [
            (lerp(points[i][0], points[i + 1][0], t), lerp(points[i][1], points[i + 1][1], t))
            for i in range(len(points) - 1)
        ]
    return points[0]


def sample_bezier(control: Sequence[Point], steps: int = 24) -> List[Point]:
    if len(control) == 2:
        return [control[0], control[1]]
    return [bezier_point(control, i / steps) for i in range(steps + 1)]


# --- Path mini-language -----------------------------------------------------
def fmt(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def _pt(p: Point) -> str:
    return f"{fmt(p[0])} {fmt(p[1])}"


def line_path(start: Point, end: Point) -> str:
    return f"M {_pt(start)} L {_pt(end)}"


def quadratic_path(start: Point, control: Point, end: Point) -> str:
    return f"M {_pt(start)} Q {_pt(control)} {_pt(end)}"


def cubic_path(start: Point, control1: Point, control2: Point, end: Point) -> str:
    return f"M {_pt(start)} C {_pt(control1)} {_pt(control2)} {_pt(end)}"


def polygon_path(vertices: Sequence[Point]) -> str:
    head, *rest = vertices
    return f"M {_pt(head)} " + " ".join(f"L {_pt(v)}" for v in rest) + " Z"


def rounded_rect_path(width: float, height: float, radius: float) -> str:
    hw = width / 2.0
    hh = height / 2.0
    r = max(0.0, min(radius, hw, hh))
    return (
        f"M {fmt(-hw + r)} {fmt(-hh)} "
        f"L {fmt(hw - r)} {fmt(-hh)} Q {fmt(hw)} {fmt(-hh)} {fmt(hw)} {fmt(-hh + r)} "
        f"L {fmt(hw)} {fmt(hh - r)} Q {fmt(hw)} {fmt(hh)} {fmt(hw - r)} {fmt(hh)} "
        f"L {fmt(-hw + r)} {fmt(hh)} Q {fmt(-hw)} {fmt(hh)} {fmt(-hw)} {fmt(hh - r)} "
        f"L {fmt(-hw)} {fmt(-hh + r)} Q {fmt(-hw)} {fmt(-hh)} {fmt(-hw + r)} {fmt(-hh)} Z"
    )


def shape_outline_path(kind: ShapeKind, width: float, height: float, corner_radius: float = 0.0) -> str:
    """Outline of a shape relative to its centre; empty for circles."""
    if kind == ShapeKind.CIRCLE:
        return ""
    if kind == ShapeKind.RECTANGLE:
        # Plain rectangles still get slightly softened corners.
        return rounded_rect_path(width, height, min(8.0, width / 4.0, height / 4.0))
    if kind == ShapeKind.ROUNDED_RECTANGLE:
        return rounded_rect_path(width, height, corner_radius)
    return polygon_path(shape_vertices(kind, width, height))
