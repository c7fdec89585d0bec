"""Hit testing: which scene element lies under a world point.

Priority, highest first: control point handles of the selected connection,
node interiors (topmost first), node connection rings, connection labels,
connection trunks, empty canvas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from . import curves
from .config import EditorConfig
from .geometry import distance, point_in_shape, polyline_distance
from .types import Point, SceneNode, ShapeKind

if TYPE_CHECKING:
    from .model import SceneModel

CONTROL_POINT = "control_point"
NODE = "node"
RING = "ring"
LABEL = "label"
CONNECTION = "connection"
CANVAS = "canvas"


@dataclass(frozen=True)
class Hit:
    kind: str = CANVAS
    node_id: str = ""
    connection_id: str = ""
    point_id: str = ""


def in_ring(node: SceneNode, at: Point, zoom: float, config: EditorConfig) -> bool:
    """True if ``at`` lies in the band around a node that starts a connection."""
    shape = node.shape
    d = distance(node.center, at)
    outer = shape.radius + config.ring_width_px / zoom
    if d > outer:
        return False
    if point_in_shape(at, shape.kind, shape.width, shape.height, node.center):
        return False
    if shape.kind == ShapeKind.CIRCLE:
        return d > shape.width / 2.0 + config.ring_inner_gap_px / zoom
    return True


def node_at(model: "SceneModel", at: Point) -> Optional[str]:
    """Topmost node whose outline contains ``at``."""
    for node in reversed(model.nodes()):
        if point_in_shape(at, node.shape.kind, node.shape.width, node.shape.height, node.center):
            return node.id
    return None


def hit_test(
    model: "SceneModel",
    at: Point,
    zoom: float,
    selected_connection: str = "",
    config: Optional[EditorConfig] = None,
) -> Hit:
    config = config or model.config

    selected = model.getConnection(selected_connection) if selected_connection else None
    if selected is not None:
        handle = curves.nearest_control_point(selected.control_points, at, config.control_point_hit_px / zoom)
        if handle is not None:
            return Hit(CONTROL_POINT, connection_id=selected.id, point_id=handle.id)

    node_id = node_at(model, at)
    if node_id is not None:
        return Hit(NODE, node_id=node_id)

    for node in reversed(model.nodes()):
        if in_ring(node, at, zoom, config):
            return Hit(RING, node_id=node.id)

    connections = model.connection_list()
    for connection in reversed(connections):
        if not connection.label:
            continue
        ends = model.endpoints_of(connection)
        if ends is None:
            continue
        if distance(curves.label_anchor(connection, *ends), at) <= config.label_hit_px / zoom:
            return Hit(LABEL, connection_id=connection.id)

    half_stroke = config.hit_stroke_px / 2.0 / zoom
    for connection in reversed(connections):
        ends = model.endpoints_of(connection)
        if ends is None:
            continue
        if polyline_distance(at, curves.sample(connection, *ends)) <= half_stroke:
            return Hit(CONNECTION, connection_id=connection.id)

    return Hit()
