"""Data types for MindCanvas scenes.

This module contains the core data structures shared by the scene model,
the curve engine and the render bridge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

Point = Tuple[float, float]


class ShapeKind(Enum):
    """Supported node outlines."""

    CIRCLE = "circle"
    RECTANGLE = "rectangle"
    ROUNDED_RECTANGLE = "rounded-rectangle"
    TRIANGLE = "triangle"
    DIAMOND = "diamond"
    PENTAGON = "pentagon"
    HEXAGON = "hexagon"


@dataclass
class NodeShape:
    """Outline of a node, centred on the node position."""

    kind: ShapeKind = ShapeKind.CIRCLE
    width: float = 80.0
    height: float = 80.0
    corner_radius: float = 15.0

    @property
    def radius(self) -> float:
        return max(self.width, self.height) / 2.0


@dataclass
class NodeStyle:
    background_color: str = "#374151"
    border_color: str = "#4B5563"
    text_color: str = "#F9FAFB"
    font_family: str = "Poppins"
    font_size: float = 14.0
    font_weight: int = 400
    text_align: str = "center"


@dataclass
class ConnectionStyle:
    stroke: str = "#6B7280"
    stroke_width: float = 2.0
    stroke_dasharray: str = "none"


@dataclass
class SceneNode:
    """A labeled shape placed on the canvas."""

    id: str
    x: float
    y: float
    text: str = "New Node"
    shape: NodeShape = field(default_factory=NodeShape)
    style: NodeStyle = field(default_factory=NodeStyle)
    image: str = ""  # data URL for the optional image overlay

    @property
    def center(self) -> Point:
        return (self.x, self.y)


@dataclass
class ControlPoint:
    """A Bezier control point owned by exactly one connection."""

    id: str
    x: float
    y: float


@dataclass
class SceneConnection:
    """An undirected link between two nodes.

    ``from_id``/``to_id`` only record the creation direction; the pair is
    unordered for identity purposes.
    """

    id: str
    from_id: str
    to_id: str
    control_points: List[ControlPoint] = field(default_factory=list)
    style: ConnectionStyle = field(default_factory=ConnectionStyle)
    label: str = ""

    @property
    def pair(self) -> frozenset:
        return frozenset((self.from_id, self.to_id))

    def touches(self, node_id: str) -> bool:
        return self.from_id == node_id or self.to_id == node_id
