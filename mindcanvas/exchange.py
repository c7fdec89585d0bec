"""Exchange JSON codec.

Nodes and connections are written with camelCase keys so exported scenes can
be read by any client of the format::

    {"nodes": [{"id", "x", "y", "text", "shape", "style", "image"?}],
     "connections": [{"id", "from", "to", "controlPoints", "style", "label"?}]}
"""

from __future__ import annotations

import math
from dataclasses import fields
from typing import Any, Dict, Mapping, Optional

from .constants import DEFAULT_NODE_TEXT, MAX_CONTROL_POINTS, SHAPE_PRESETS
from .errors import PersistenceFailure
from .types import (
    ConnectionStyle,
    ControlPoint,
    NodeShape,
    NodeStyle,
    SceneConnection,
    SceneNode,
    ShapeKind,
)

NODE_STYLE_KEYS = {
    "backgroundColor": "background_color",
    "borderColor": "border_color",
    "textColor": "text_color",
    "fontFamily": "font_family",
    "fontSize": "font_size",
    "fontWeight": "font_weight",
    "textAlign": "text_align",
}

NODE_SHAPE_KEYS = {
    "type": "kind",
    "width": "width",
    "height": "height",
    "cornerRadius": "corner_radius",
}

CONNECTION_STYLE_KEYS = {
    "stroke": "stroke",
    "strokeWidth": "stroke_width",
    "strokeDasharray": "stroke_dasharray",
}


def _camel(keys: Mapping[str, str], obj: Any) -> Dict[str, Any]:
    return {camel: getattr(obj, attr) for camel, attr in keys.items()}


def normalize_patch(keys: Mapping[str, str], patch: Mapping[str, Any]) -> Dict[str, Any]:
    """Map a camelCase or snake_case patch onto dataclass field names.

    Unknown keys are dropped.
    """
    known = set(keys.values())
    result: Dict[str, Any] = {}
    for key, value in patch.items():
        attr = keys.get(key, key)
        if attr in known:
            result[attr] = value
    return result


def coerce_fields(target: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert values to the types of the matching fields on ``target``.

    Raises ValueError/TypeError on values that cannot be converted.
    """
    converted: Dict[str, Any] = {}
    for field_info in fields(target):
        if field_info.name not in values:
            continue
        current = getattr(target, field_info.name)
        value = values[field_info.name]
        if isinstance(current, ShapeKind):
            converted[field_info.name] = value if isinstance(value, ShapeKind) else ShapeKind(str(value))
        elif isinstance(current, float):
            number = float(value)
            if not math.isfinite(number):
                raise ValueError(f"{field_info.name} must be finite")
            converted[field_info.name] = number
        else:
            converted[field_info.name] = type(current)(value)
    return converted


def shape_from_preset(name: Optional[str]) -> NodeShape:
    preset = SHAPE_PRESETS.get((name or "circle").lower())
    if preset is None:
        raise ValueError(f"unknown shape: {name}")
    return NodeShape(
        kind=preset["kind"],
        width=float(preset["width"]),
        height=float(preset["height"]),
        corner_radius=float(preset["corner_radius"]),
    )


def node_to_dict(node: SceneNode) -> Dict[str, Any]:
    shape = _camel(NODE_SHAPE_KEYS, node.shape)
    shape["type"] = node.shape.kind.value
    data: Dict[str, Any] = {
        "id": node.id,
        "x": node.x,
        "y": node.y,
        "text": node.text,
        "shape": shape,
        "style": _camel(NODE_STYLE_KEYS, node.style),
    }
    if node.image:
        data["image"] = node.image
    return data


def node_from_dict(data: Mapping[str, Any]) -> SceneNode:
    """Build a node from exchange data; raises on anything unusable."""
    node_id = str(data["id"])
    if not node_id:
        raise ValueError("node id must not be empty")
    x = float(data["x"])
    y = float(data["y"])
    if not (math.isfinite(x) and math.isfinite(y)):
        raise ValueError("node position must be finite")

    shape_data = data.get("shape") or {}
    shape = shape_from_preset(shape_data.get("type", "circle"))
    shape_values = coerce_fields(shape, normalize_patch(NODE_SHAPE_KEYS, shape_data))
    for attr, value in shape_values.items():
        setattr(shape, attr, value)
    if shape.width <= 0 or shape.height <= 0:
        raise ValueError("node size must be positive")

    style = NodeStyle()
    for attr, value in coerce_fields(style, normalize_patch(NODE_STYLE_KEYS, data.get("style") or {})).items():
        setattr(style, attr, value)

    text = str(data.get("text") or "").strip() or DEFAULT_NODE_TEXT
    return SceneNode(
        id=node_id,
        x=x,
        y=y,
        text=text,
        shape=shape,
        style=style,
        image=str(data.get("image") or ""),
    )


def connection_to_dict(connection: SceneConnection) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": connection.id,
        "from": connection.from_id,
        "to": connection.to_id,
        "controlPoints": [{"id": cp.id, "x": cp.x, "y": cp.y} for cp in connection.control_points],
        "style": _camel(CONNECTION_STYLE_KEYS, connection.style),
    }
    if connection.label:
        data["label"] = connection.label
    return data


def connection_from_dict(data: Mapping[str, Any], max_points: int = MAX_CONTROL_POINTS) -> SceneConnection:
    """Build a connection; control points past ``max_points`` are dropped."""
    connection_id = str(data["id"])
    from_id = str(data["from"])
    to_id = str(data["to"])
    if not connection_id or from_id == to_id:
        raise ValueError("connection needs an id and two distinct endpoints")

    points = []
    for index, point in enumerate((data.get("controlPoints") or [])[:max_points]):
        x = float(point["x"])
        y = float(point["y"])
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError("control point must be finite")
        points.append(ControlPoint(str(point.get("id") or f"cp{index + 1}"), x, y))

    style = ConnectionStyle()
    for attr, value in coerce_fields(style, normalize_patch(CONNECTION_STYLE_KEYS, data.get("style") or {})).items():
        setattr(style, attr, value)

    return SceneConnection(
        id=connection_id,
        from_id=from_id,
        to_id=to_id,
        control_points=points,
        style=style,
        label=str(data.get("label") or ""),
    )


def check_scene(data: Any) -> None:
    """Raise PersistenceFailure unless ``data`` has the exchange layout."""
    if not isinstance(data, dict):
        raise PersistenceFailure("scene JSON must be an object")
    for key in ("nodes", "connections"):
        entries = data.get(key)
        if entries is not None and not isinstance(entries, list):
            raise PersistenceFailure(f"scene {key} must be a list")
