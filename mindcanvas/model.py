"""Core SceneModel class for MindCanvas.

This module provides the Qt model holding nodes and connections. Storage is
keyed by id; the list rows seen by QML, the ``connections`` property and the
exchange JSON are projections of it.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import replace
from itertools import count
from typing import Any, Dict, Iterator, List, Optional, Sequence

from PySide6.QtCore import (
    QAbstractListModel,
    QModelIndex,
    Property,
    Qt,
    Signal,
    Slot,
)

from .clipboard import ClipboardMixin
from .config import EditorConfig
from .connections import ConnectionMixin
from .constants import DEFAULT_NODE_TEXT
from .errors import CapacityExceeded, InvalidGeometry, NotFound, PersistenceFailure, SceneError
from .exchange import (
    NODE_SHAPE_KEYS,
    NODE_STYLE_KEYS,
    check_scene,
    coerce_fields,
    connection_from_dict,
    connection_to_dict,
    node_from_dict,
    node_to_dict,
    normalize_patch,
    shape_from_preset,
)
from .geometry import Rect, rects_overlap
from .types import NodeStyle, SceneConnection, SceneNode

logger = logging.getLogger(__name__)


class SceneModel(ConnectionMixin, ClipboardMixin, QAbstractListModel):
    """Qt model exposing scene nodes to QML."""

    IdRole = Qt.UserRole + 1
    XRole = Qt.UserRole + 2
    YRole = Qt.UserRole + 3
    WidthRole = Qt.UserRole + 4
    HeightRole = Qt.UserRole + 5
    TextRole = Qt.UserRole + 6
    ShapeRole = Qt.UserRole + 7
    CornerRadiusRole = Qt.UserRole + 8
    BackgroundColorRole = Qt.UserRole + 9
    BorderColorRole = Qt.UserRole + 10
    TextColorRole = Qt.UserRole + 11
    FontFamilyRole = Qt.UserRole + 12
    FontSizeRole = Qt.UserRole + 13
    FontWeightRole = Qt.UserRole + 14
    TextAlignRole = Qt.UserRole + 15
    ImageRole = Qt.UserRole + 16

    itemsChanged = Signal()
    edgesChanged = Signal()
    nodesChanged = Signal(list)
    connectionsChanged = Signal(list)
    operationApplied = Signal(str, list)
    noticeRaised = Signal(str, str)

    def __init__(self, config: Optional[EditorConfig] = None):
        super().__init__()
        self._config = config or EditorConfig()
        self._nodes: Dict[str, SceneNode] = {}
        self._connections: Dict[str, SceneConnection] = {}
        self._pairs: Dict[frozenset, str] = {}
        self._id_source = count()
        self._operation: Optional[str] = None
        self._operation_ids: List[str] = []

    @property
    def config(self) -> EditorConfig:
        return self._config

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._id_source)}"

    def _row_of(self, node_id: str) -> int:
        for row, key in enumerate(self._nodes):
            if key == node_id:
                return row
        return -1

    def _require_node(self, node_id: str) -> SceneNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise NotFound("node", node_id)
        return node

    def _report(self, exc: SceneError) -> None:
        """Log a recoverable error and surface it as a transient notice."""
        if isinstance(exc, NotFound):
            logger.warning("%s", exc)
        else:
            logger.info("%s", exc)
        self.noticeRaised.emit(exc.kind, str(exc))

    # --- Change notification ------------------------------------------------
    def _record(self, name: str, ids: Sequence[str]) -> None:
        if self._operation is not None:
            self._operation_ids.extend(i for i in ids if i not in self._operation_ids)
            return
        self.operationApplied.emit(name, list(ids))

    def _touch_nodes(self, node_ids: Sequence[str], roles: Optional[List[int]] = None) -> None:
        for node_id in node_ids:
            row = self._row_of(node_id)
            if row >= 0:
                index = self.index(row, 0)
                self.dataChanged.emit(index, index, roles or [])
        if node_ids:
            self.nodesChanged.emit(list(node_ids))

    def _touch_connections(self, connection_ids: Sequence[str]) -> None:
        if connection_ids:
            self.connectionsChanged.emit(list(connection_ids))
            self.edgesChanged.emit()

    def begin_operation(self, name: str) -> None:
        """Group following mutations into one ``operationApplied`` emission."""
        if self._operation is None:
            self._operation = name
            self._operation_ids = []

    def end_operation(self) -> None:
        name, ids = self._operation, self._operation_ids
        self._operation = None
        self._operation_ids = []
        if name is not None and ids:
            self.operationApplied.emit(name, ids)

    @contextmanager
    def operation(self, name: str) -> Iterator[None]:
        nested = self._operation is not None
        self.begin_operation(name)
        try:
            yield
        finally:
            if not nested:
                self.end_operation()

    # --- Qt model overrides -------------------------------------------------
    def rowCount(self, parent: QModelIndex | None = QModelIndex()) -> int:  # type: ignore[override]
        return len(self._nodes)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):  # type: ignore[override]
        if not index.isValid() or not (0 <= index.row() < len(self._nodes)):
            return None

        node = list(self._nodes.values())[index.row()]
        if role == self.IdRole:
            return node.id
        if role == self.XRole:
            return node.x
        if role == self.YRole:
            return node.y
        if role == self.WidthRole:
            return node.shape.width
        if role == self.HeightRole:
            return node.shape.height
        if role == self.TextRole:
            return node.text
        if role == self.ShapeRole:
            return node.shape.kind.value
        if role == self.CornerRadiusRole:
            return node.shape.corner_radius
        if role == self.BackgroundColorRole:
            return node.style.background_color
        if role == self.BorderColorRole:
            return node.style.border_color
        if role == self.TextColorRole:
            return node.style.text_color
        if role == self.FontFamilyRole:
            return node.style.font_family
        if role == self.FontSizeRole:
            return node.style.font_size
        if role == self.FontWeightRole:
            return node.style.font_weight
        if role == self.TextAlignRole:
            return node.style.text_align
        if role == self.ImageRole:
            return node.image
        return None

    def roleNames(self) -> Dict[int, bytes]:  # type: ignore[override]
        return {
            self.IdRole: b"nodeId",
            self.XRole: b"x",
            self.YRole: b"y",
            self.WidthRole: b"width",
            self.HeightRole: b"height",
            self.TextRole: b"text",
            self.ShapeRole: b"shape",
            self.CornerRadiusRole: b"cornerRadius",
            self.BackgroundColorRole: b"backgroundColor",
            self.BorderColorRole: b"borderColor",
            self.TextColorRole: b"textColor",
            self.FontFamilyRole: b"fontFamily",
            self.FontSizeRole: b"fontSize",
            self.FontWeightRole: b"fontWeight",
            self.TextAlignRole: b"textAlign",
            self.ImageRole: b"image",
        }

    # --- Properties exposed to QML -----------------------------------------
    @Property(int, notify=itemsChanged)
    def count(self) -> int:
        return len(self._nodes)

    @Property(int, notify=edgesChanged)
    def connectionCount(self) -> int:
        return len(self._connections)

    @Property(list, notify=edgesChanged)
    def connections(self) -> List[Dict[str, Any]]:
        return [connection_to_dict(conn) for conn in self._connections.values()]

    # --- Lookups ------------------------------------------------------------
    def getNode(self, node_id: str) -> Optional[SceneNode]:
        return self._nodes.get(node_id)

    def nodes(self) -> List[SceneNode]:
        """Nodes in paint order; the last one is drawn on top."""
        return list(self._nodes.values())

    @Slot(result=list)
    def nodeIds(self) -> List[str]:
        return list(self._nodes)

    def nodesInRect(self, rect: Rect) -> List[str]:
        """Ids of nodes whose bounding box overlaps ``rect`` (world units)."""
        result = []
        for node in self._nodes.values():
            bounds = (
                node.x - node.shape.width / 2.0,
                node.y - node.shape.height / 2.0,
                node.shape.width,
                node.shape.height,
            )
            if rects_overlap(bounds, rect):
                result.append(node.id)
        return result

    # --- Node management ----------------------------------------------------
    def add_node(
        self,
        x: float,
        y: float,
        text: Optional[str] = None,
        shape: Optional[str] = None,
        style: Optional[Dict[str, Any]] = None,
        image: str = "",
    ) -> SceneNode:
        """Create and insert a node centred on (x, y).

        Raises CapacityExceeded at the node ceiling and InvalidGeometry for an
        unknown shape.
        """
        if len(self._nodes) >= self._config.max_nodes:
            raise CapacityExceeded(f"node limit of {self._config.max_nodes} reached")
        try:
            node_shape = shape_from_preset(shape)
            node_style = NodeStyle()
            for attr, value in coerce_fields(node_style, normalize_patch(NODE_STYLE_KEYS, style or {})).items():
                setattr(node_style, attr, value)
        except (TypeError, ValueError) as exc:
            raise InvalidGeometry(str(exc)) from exc

        label = text.strip() if text and text.strip() else DEFAULT_NODE_TEXT
        node = SceneNode(
            id=self._next_id("node"),
            x=float(x),
            y=float(y),
            text=label,
            shape=node_shape,
            style=node_style,
            image=image or "",
        )
        self._insert_node(node)
        return node

    def _insert_node(self, node: SceneNode) -> None:
        row = len(self._nodes)
        self.beginInsertRows(QModelIndex(), row, row)
        self._nodes[node.id] = node
        self.endInsertRows()
        self.itemsChanged.emit()
        self.nodesChanged.emit([node.id])
        self._record("addNode", [node.id])

    @Slot(float, float, str, result=str)
    def addNode(self, x: float, y: float, text: str = "") -> str:
        try:
            return self.add_node(x, y, text).id
        except SceneError as exc:
            self._report(exc)
            return ""

    @Slot(str, float, float, str, result=str)
    def addShapedNode(self, shape: str, x: float, y: float, text: str = "") -> str:
        try:
            return self.add_node(x, y, text, shape=shape).id
        except SceneError as exc:
            self._report(exc)
            return ""

    def remove_node(self, node_id: str) -> List[str]:
        """Remove a node and every connection touching it.

        Returns the ids of the removed connections.
        """
        self._require_node(node_id)
        removed = [conn.id for conn in self._connections.values() if conn.touches(node_id)]
        for connection_id in removed:
            connection = self._connections.pop(connection_id)
            self._pairs.pop(connection.pair, None)

        row = self._row_of(node_id)
        self.beginRemoveRows(QModelIndex(), row, row)
        del self._nodes[node_id]
        self.endRemoveRows()
        self.itemsChanged.emit()
        self.nodesChanged.emit([node_id])
        self._touch_connections(removed)
        self._record("removeNode", [node_id, *removed])
        return removed

    @Slot(str, result=list)
    def removeNode(self, node_id: str) -> List[str]:
        try:
            return self.remove_node(node_id)
        except SceneError as exc:
            self._report(exc)
            return []

    @Slot(str, result=list)
    def deleteNode(self, node_id: str) -> List[str]:
        return self.removeNode(node_id)

    @Slot(list, result=list)
    def deleteNodes(self, node_ids: List[str]) -> List[str]:
        """Remove several nodes; returns every removed connection id."""
        removed: List[str] = []
        with self.operation("deleteNodes"):
            for node_id in node_ids:
                removed.extend(self.removeNode(str(node_id)))
        return removed

    def move_node(self, node_id: str, x: float, y: float) -> List[str]:
        """Reposition a node; returns the ids of the connections touching it."""
        node = self._require_node(node_id)
        touching = [conn.id for conn in self._connections.values() if conn.touches(node_id)]
        if node.x == x and node.y == y:
            return touching
        node.x = float(x)
        node.y = float(y)
        self._touch_nodes([node_id], [self.XRole, self.YRole])
        self._touch_connections(touching)
        self._record("moveNode", [node_id])
        return touching

    @Slot(str, float, float, result=list)
    def moveNode(self, node_id: str, x: float, y: float) -> List[str]:
        try:
            return self.move_node(node_id, x, y)
        except SceneError as exc:
            self._report(exc)
            return []

    @Slot(str, str, result=bool)
    def updateNodeText(self, node_id: str, text: str) -> bool:
        try:
            node = self._require_node(node_id)
        except SceneError as exc:
            self._report(exc)
            return False
        label = text.strip() or DEFAULT_NODE_TEXT
        if node.text != label:
            node.text = label
            self._touch_nodes([node_id], [self.TextRole])
            self._record("updateNodeText", [node_id])
        return True

    @Slot(str, "QVariant", result=bool)
    def updateNodeStyle(self, node_id: str, patch: Dict[str, Any]) -> bool:
        """Merge a style patch (camelCase or snake_case keys) into a node."""
        try:
            node = self._require_node(node_id)
            values = coerce_fields(node.style, normalize_patch(NODE_STYLE_KEYS, dict(patch or {})))
        except SceneError as exc:
            self._report(exc)
            return False
        except (TypeError, ValueError) as exc:
            logger.info("Rejected style patch for %s: %s", node_id, exc)
            self.noticeRaised.emit("InvalidStyle", str(exc))
            return False
        if not values:
            return True
        node.style = replace(node.style, **values)
        self._touch_nodes([node_id])
        self._record("updateNodeStyle", [node_id])
        return True

    @Slot(str, "QVariant", result=bool)
    def updateNodeShape(self, node_id: str, patch: Dict[str, Any]) -> bool:
        """Merge a shape patch; non-positive sizes are rejected."""
        try:
            node = self._require_node(node_id)
            try:
                values = coerce_fields(node.shape, normalize_patch(NODE_SHAPE_KEYS, dict(patch or {})))
            except (TypeError, ValueError) as exc:
                raise InvalidGeometry(f"invalid shape for {node_id}: {exc}") from exc
            shape = replace(node.shape, **values)
            if shape.width <= 0 or shape.height <= 0:
                raise InvalidGeometry(f"node size must be positive, got {shape.width}x{shape.height}")
        except SceneError as exc:
            self._report(exc)
            return False
        if shape == node.shape:
            return True
        node.shape = shape
        touching = [conn.id for conn in self._connections.values() if conn.touches(node_id)]
        self._touch_nodes([node_id])
        self._touch_connections(touching)
        self._record("updateNodeShape", [node_id])
        return True

    @Slot(str, str, result=bool)
    def setNodeImage(self, node_id: str, image: str) -> bool:
        try:
            node = self._require_node(node_id)
        except SceneError as exc:
            self._report(exc)
            return False
        if node.image != image:
            node.image = image
            self._touch_nodes([node_id], [self.ImageRole])
            self._record("setNodeImage", [node_id])
        return True

    @Slot()
    def clear(self) -> None:
        self.beginResetModel()
        self._nodes.clear()
        self._connections.clear()
        self._pairs.clear()
        self._id_source = count()
        self.endResetModel()
        self.itemsChanged.emit()
        self.edgesChanged.emit()
        self._record("clear", [])

    # --- Serialization ------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Serialize the scene to the exchange format."""
        return {
            "nodes": [node_to_dict(node) for node in self._nodes.values()],
            "connections": [connection_to_dict(conn) for conn in self._connections.values()],
        }

    def from_dict(self, data: Dict[str, Any]) -> None:
        """Replace the scene with exchange data.

        Entries that cannot be decoded, duplicate ids, dangling endpoints and
        duplicate pairs are skipped with a warning. A document whose node or
        connection collection is not a list raises PersistenceFailure and the
        scene is left as it was.
        """
        check_scene(data)
        nodes: Dict[str, SceneNode] = {}
        for entry in data.get("nodes", []) or []:
            try:
                node = node_from_dict(entry)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping invalid node %r: %s", entry, exc)
                continue
            if node.id in nodes:
                logger.warning("Skipping duplicate node id %s", node.id)
                continue
            nodes[node.id] = node

        connections: Dict[str, SceneConnection] = {}
        pairs: Dict[frozenset, str] = {}
        for entry in data.get("connections", []) or []:
            try:
                connection = connection_from_dict(entry, self._config.max_control_points)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping invalid connection %r: %s", entry, exc)
                continue
            if connection.from_id not in nodes or connection.to_id not in nodes:
                logger.warning("Skipping connection %s with a missing endpoint", connection.id)
                continue
            if connection.id in connections or connection.pair in pairs:
                logger.warning("Skipping duplicate connection %s", connection.id)
                continue
            connections[connection.id] = connection
            pairs[connection.pair] = connection.id

        # Track highest ID number to resume ID generation
        max_id = 0
        for item_id in [*nodes, *connections, *(cp.id for c in connections.values() for cp in c.control_points)]:
            try:
                id_parts = item_id.rsplit("_", 1)
                if len(id_parts) == 2:
                    max_id = max(max_id, int(id_parts[1]) + 1)
            except ValueError:
                pass

        self.beginResetModel()
        self._nodes = nodes
        self._connections = connections
        self._pairs = pairs
        self._id_source = count(max_id)
        self.endResetModel()
        self.itemsChanged.emit()
        self.edgesChanged.emit()
        self.nodesChanged.emit(list(nodes))
        self.connectionsChanged.emit(list(connections))

    def applyState(self, snapshot: Dict[str, Any]) -> None:
        """Restore a snapshot taken with ``to_dict`` (used by history)."""
        self.from_dict(snapshot)

    @Slot(result=str)
    def exportJson(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @Slot(str, result=bool)
    def importJson(self, text: str) -> bool:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            logger.warning("Could not parse scene JSON: %s", exc)
            self.noticeRaised.emit("PersistenceFailure", str(exc))
            return False
        try:
            self.from_dict(data)
        except PersistenceFailure as exc:
            logger.warning("Rejected scene JSON: %s", exc)
            self.noticeRaised.emit(exc.kind, str(exc))
            return False
        self._record("import", [])
        return True
