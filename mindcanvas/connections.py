"""Connection operations mixin for SceneModel.

Connections are undirected: at most one exists per unordered node pair. The
store keeps control point lists but never computes curve geometry on its own;
callers pass in the positions they want.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional, Sequence

from PySide6.QtCore import Signal, Slot

from . import curves
from .errors import CapacityExceeded, InvalidGeometry, NotFound, SceneError
from .exchange import CONNECTION_STYLE_KEYS, coerce_fields, normalize_patch
from .types import ControlPoint, Point, SceneConnection, SceneNode

if TYPE_CHECKING:
    from .config import EditorConfig

logger = logging.getLogger(__name__)


class ConnectionMixin:
    """Mixin providing connection and control point operations."""

    # Signals (will be defined in SceneModel)
    edgesChanged: Signal
    connectionsChanged: Signal
    noticeRaised: Signal

    # Attributes expected from SceneModel
    _config: "EditorConfig"
    _nodes: Dict[str, SceneNode]
    _connections: Dict[str, SceneConnection]
    _pairs: Dict[frozenset, str]
    _next_id: Callable[[str], str]
    _require_node: Callable[[str], SceneNode]
    _report: Callable[[SceneError], None]
    _record: Callable[[str, Sequence[str]], None]
    _touch_connections: Callable[[Sequence[str]], None]

    # --- Lookups ------------------------------------------------------------
    def getConnection(self, connection_id: str) -> Optional[SceneConnection]:
        return self._connections.get(connection_id)

    def connection_list(self) -> List[SceneConnection]:
        return list(self._connections.values())

    @Slot(result=list)
    def connectionIds(self) -> List[str]:
        return list(self._connections)

    def _require_connection(self, connection_id: str) -> SceneConnection:
        connection = self._connections.get(connection_id)
        if connection is None:
            raise NotFound("connection", connection_id)
        return connection

    @Slot(str, str, result=str)
    def connectionBetween(self, a: str, b: str) -> str:
        """Id of the connection joining ``a`` and ``b`` in either direction."""
        return self._pairs.get(frozenset((a, b)), "")

    @Slot(str, result=list)
    def connectionsForNode(self, node_id: str) -> List[str]:
        return [conn.id for conn in self._connections.values() if conn.touches(node_id)]

    def endpoints_of(self, connection: SceneConnection) -> Optional[tuple]:
        source = self._nodes.get(connection.from_id)
        target = self._nodes.get(connection.to_id)
        if source is None or target is None:
            return None
        return source, target

    @Slot(str, result=str)
    def connectionPath(self, connection_id: str) -> str:
        connection = self._connections.get(connection_id)
        if connection is None:
            return ""
        ends = self.endpoints_of(connection)
        if ends is None:
            return ""
        return curves.connection_path(connection, *ends)

    # --- Connection management ---------------------------------------------
    def add_connection(self, from_id: str, to_id: str) -> SceneConnection:
        """Connect two nodes, returning the existing link for a known pair.

        Raises NotFound, InvalidGeometry for a self-link and CapacityExceeded
        at the connection ceiling.
        """
        self._require_node(from_id)
        self._require_node(to_id)
        if from_id == to_id:
            raise InvalidGeometry(f"cannot connect {from_id} to itself")
        existing = self._pairs.get(frozenset((from_id, to_id)))
        if existing is not None:
            return self._connections[existing]
        if len(self._connections) >= self._config.max_connections:
            raise CapacityExceeded(f"connection limit of {self._config.max_connections} reached")

        connection = SceneConnection(self._next_id("conn"), from_id, to_id)
        self._connections[connection.id] = connection
        self._pairs[connection.pair] = connection.id
        self._touch_connections([connection.id])
        self._record("addConnection", [connection.id])
        return connection

    @Slot(str, str, result=str)
    def addConnection(self, from_id: str, to_id: str) -> str:
        try:
            return self.add_connection(from_id, to_id).id
        except SceneError as exc:
            self._report(exc)
            return ""

    def remove_connection(self, connection_id: str) -> None:
        connection = self._require_connection(connection_id)
        del self._connections[connection_id]
        self._pairs.pop(connection.pair, None)
        self._touch_connections([connection_id])
        self._record("removeConnection", [connection_id])

    @Slot(str, result=bool)
    def removeConnection(self, connection_id: str) -> bool:
        try:
            self.remove_connection(connection_id)
        except SceneError as exc:
            self._report(exc)
            return False
        return True

    @Slot(str, result=bool)
    def deleteConnection(self, connection_id: str) -> bool:
        return self.removeConnection(connection_id)

    @Slot(str, str, result=bool)
    def setConnectionLabel(self, connection_id: str, label: str) -> bool:
        try:
            connection = self._require_connection(connection_id)
        except SceneError as exc:
            self._report(exc)
            return False
        label = label.strip()
        if connection.label != label:
            connection.label = label
            self._touch_connections([connection_id])
            self._record("setConnectionLabel", [connection_id])
        return True

    @Slot(str, "QVariant", result=bool)
    def setConnectionStyle(self, connection_id: str, patch: Dict[str, Any]) -> bool:
        try:
            connection = self._require_connection(connection_id)
            values = coerce_fields(connection.style, normalize_patch(CONNECTION_STYLE_KEYS, dict(patch or {})))
        except SceneError as exc:
            self._report(exc)
            return False
        except (TypeError, ValueError) as exc:
            logger.info("Rejected connection style for %s: %s", connection_id, exc)
            self.noticeRaised.emit("InvalidStyle", str(exc))
            return False
        if values:
            connection.style = replace(connection.style, **values)
            self._touch_connections([connection_id])
            self._record("setConnectionStyle", [connection_id])
        return True

    # --- Control points -----------------------------------------------------
    def set_control_points(self, connection_id: str, points: Iterable[Any]) -> List[ControlPoint]:
        """Replace the control point list, keeping given ids and minting new ones.

        ``points`` may hold ControlPoint objects, ``(x, y)`` pairs or dicts with
        ``x``/``y`` (and optionally ``id``). Raises CapacityExceeded past the cap.
        """
        connection = self._require_connection(connection_id)
        new_points: List[ControlPoint] = []
        for point in points:
            if isinstance(point, ControlPoint):
                new_points.append(replace(point))
            elif isinstance(point, dict):
                new_points.append(
                    ControlPoint(str(point.get("id") or self._next_id("cp")), float(point["x"]), float(point["y"]))
                )
            else:
                new_points.append(ControlPoint(self._next_id("cp"), float(point[0]), float(point[1])))
        if len(new_points) > self._config.max_control_points:
            raise CapacityExceeded(
                f"a connection holds at most {self._config.max_control_points} control points"
            )
        connection.control_points = new_points
        self._touch_connections([connection_id])
        self._record("setControlPoints", [connection_id])
        return new_points

    @Slot(str, list, result=bool)
    def setControlPoints(self, connection_id: str, points: List[Any]) -> bool:
        try:
            self.set_control_points(connection_id, points)
        except SceneError as exc:
            self._report(exc)
            return False
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            logger.info("Rejected control points for %s: %s", connection_id, exc)
            self.noticeRaised.emit(InvalidGeometry.kind, str(exc))
            return False
        return True

    def move_control_point(self, connection_id: str, point_id: str, x: float, y: float) -> None:
        connection = self._require_connection(connection_id)
        for cp in connection.control_points:
            if cp.id == point_id:
                if (cp.x, cp.y) != (x, y):
                    cp.x = float(x)
                    cp.y = float(y)
                    self._touch_connections([connection_id])
                    self._record("moveControlPoint", [connection_id])
                return
        raise NotFound("control point", point_id)

    @Slot(str, str, float, float, result=bool)
    def moveControlPoint(self, connection_id: str, point_id: str, x: float, y: float) -> bool:
        try:
            self.move_control_point(connection_id, point_id, x, y)
        except SceneError as exc:
            self._report(exc)
            return False
        return True

    @Slot(str, result=bool)
    def clearControlPoints(self, connection_id: str) -> bool:
        """Make the connection a straight line."""
        return self.setControlPoints(connection_id, [])

    def toggle_control_point(self, connection_id: str, at: Point, tolerance: float) -> str:
        """Add or remove a control point depending on proximity to ``at``.

        Returns ``"added"`` or ``"removed"``. Raises NotFound or
        CapacityExceeded.
        """
        connection = self._require_connection(connection_id)
        action, points = curves.toggle_control_point(
            connection.control_points,
            at,
            tolerance,
            self._config.max_control_points,
            lambda: self._next_id("cp"),
        )
        connection.control_points = points
        self._touch_connections([connection_id])
        self._record("addControlPoint" if action == curves.ADDED else "removeControlPoint", [connection_id])
        return action

    @Slot(str, float, float, float, result=str)
    def toggleControlPoint(self, connection_id: str, x: float, y: float, tolerance: float) -> str:
        try:
            return self.toggle_control_point(connection_id, (x, y), tolerance)
        except SceneError as exc:
            self._report(exc)
            return ""

    @Slot(str, result=bool)
    def curveConnection(self, connection_id: str) -> bool:
        """Give a connection the default two-point curve."""
        connection = self._connections.get(connection_id)
        if connection is None:
            self._report(NotFound("connection", connection_id))
            return False
        ends = self.endpoints_of(connection)
        if ends is None:
            self._report(NotFound("node", connection.from_id))
            return False
        start, end = curves.safe_endpoints(*ends)
        return self.setControlPoints(connection_id, curves.default_control_points(start, end))

    def shift_control_points(self, connection_id: str, shift: Point) -> None:
        """Translate every control point of a connection by ``shift``."""
        connection = self._require_connection(connection_id)
        if not connection.control_points or shift == (0.0, 0.0):
            return
        connection.control_points = curves.shifted(connection.control_points, shift)
        self._touch_connections([connection_id])
        self._record("moveControlPoint", [connection_id])
