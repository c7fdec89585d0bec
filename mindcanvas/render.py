"""Render bridge: turns the scene into a flat render tree for QML.

Everything is in world coordinates under one group transform that encodes the
viewport. Model changes are coalesced by a FrameScheduler so that each element
is rebuilt at most once per frame.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from PySide6.QtCore import Property, QObject, Signal, Slot

from . import curves
from .constants import CONTROL_POINT_FILL, PREVIEW_STROKE, SELECTED_CONNECTION_STROKE
from .geometry import shape_outline_path
from .interaction import InteractionController
from .model import SceneModel
from .scheduler import FrameScheduler
from .subscriptions import SignalSubscriptions
from .types import SceneConnection, SceneNode, ShapeKind
from .viewport import Viewport

logger = logging.getLogger(__name__)


def node_item(node: SceneNode) -> Dict[str, Any]:
    shape = node.shape
    item: Dict[str, Any] = {
        "id": node.id,
        "x": node.x,
        "y": node.y,
        "width": shape.width,
        "height": shape.height,
        "shape": shape.kind.value,
        "label": node.text,
        "backgroundColor": node.style.background_color,
        "borderColor": node.style.border_color,
        "textColor": node.style.text_color,
        "fontFamily": node.style.font_family,
        "fontSize": node.style.font_size,
        "fontWeight": node.style.font_weight,
        "textAlign": node.style.text_align,
        "image": node.image,
    }
    if shape.kind == ShapeKind.CIRCLE:
        item["primitive"] = "circle"
        item["radius"] = shape.width / 2.0
        item["path"] = ""
    else:
        item["primitive"] = "path"
        item["radius"] = 0.0
        item["path"] = shape_outline_path(shape.kind, shape.width, shape.height, shape.corner_radius)
    return item


def connection_item(
    connection: SceneConnection,
    source: SceneNode,
    target: SceneNode,
    selected: bool,
    hit_stroke_px: float,
) -> Dict[str, Any]:
    style = connection.style
    label_x, label_y = curves.label_anchor(connection, source, target)
    return {
        "id": connection.id,
        "path": curves.connection_path(connection, source, target),
        "stroke": SELECTED_CONNECTION_STROKE if selected else style.stroke,
        "strokeWidth": style.stroke_width + 1.0 if selected else style.stroke_width,
        "strokeDasharray": style.stroke_dasharray,
        "hitStrokeWidthPx": hit_stroke_px,
        "label": connection.label,
        "labelX": label_x,
        "labelY": label_y,
        "selected": selected,
    }


class RenderBridge(QObject):
    """Read-only projection of model, viewport and interaction overlays."""

    transformChanged = Signal()
    sceneChanged = Signal()
    elementsUpdated = Signal(list, list, arguments=["nodeIds", "connectionIds"])
    overlaysChanged = Signal()

    def __init__(
        self,
        model: SceneModel,
        viewport: Viewport,
        interaction: InteractionController,
        scheduler: Optional[FrameScheduler] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._model = model
        self._viewport = viewport
        self._interaction = interaction
        self._config = model.config
        self._scheduler = scheduler or FrameScheduler(self._config.frame_interval_ms, self)
        self._nodes: Dict[str, Dict[str, Any]] = {}
        self._connections: Dict[str, Dict[str, Any]] = {}
        self._selected_connection = interaction.selectedConnectionId
        self.frames = 0

        self._subscriptions = SignalSubscriptions()
        self._subscriptions.subscribe(model.nodesChanged, self._scheduler.schedule_nodes)
        self._subscriptions.subscribe(model.connectionsChanged, self._scheduler.schedule_connections)
        self._subscriptions.subscribe(model.modelReset, self._scheduler.schedule_full)
        self._subscriptions.subscribe(self._scheduler.frameReady, self._apply_frame)
        self._subscriptions.subscribe(viewport.viewportChanged, self._on_viewport_changed)
        self._subscriptions.subscribe(interaction.selectionChanged, self._on_selection_changed)
        self._subscriptions.subscribe(interaction.overlayChanged, self.overlaysChanged)
        self._subscriptions.subscribe(interaction.labelEditChanged, self.overlaysChanged)

        self._rebuild()

    def close(self) -> None:
        self._subscriptions.close()
        self._scheduler.cancel()

    @property
    def scheduler(self) -> FrameScheduler:
        return self._scheduler

    # --- Properties exposed to QML -----------------------------------------
    @Property("QVariant", notify=transformChanged)
    def transform(self) -> Dict[str, float]:
        return self._viewport.group_transform()

    @Property(list, notify=sceneChanged)
    def nodeItems(self) -> List[Dict[str, Any]]:
        return [self._nodes[node_id] for node_id in self._model.nodeIds() if node_id in self._nodes]

    @Property(list, notify=sceneChanged)
    def connectionItems(self) -> List[Dict[str, Any]]:
        return [self._connections[cid] for cid in self._model.connectionIds() if cid in self._connections]

    @Property("QVariant", notify=overlaysChanged)
    def overlays(self) -> Dict[str, Any]:
        return self.build_overlays()

    @Slot(str, result="QVariant")
    def nodeItem(self, node_id: str) -> Dict[str, Any]:
        return self._nodes.get(node_id, {})

    @Slot(str, result="QVariant")
    def connectionItem(self, connection_id: str) -> Dict[str, Any]:
        return self._connections.get(connection_id, {})

    # --- Frame handling -----------------------------------------------------
    def _build_connection(self, connection_id: str) -> None:
        connection = self._model.getConnection(connection_id)
        ends = self._model.endpoints_of(connection) if connection is not None else None
        if ends is None:
            self._connections.pop(connection_id, None)
            return
        self._connections[connection_id] = connection_item(
            connection,
            *ends,
            selected=connection_id == self._selected_connection,
            hit_stroke_px=self._config.hit_stroke_px,
        )

    def _build_node(self, node_id: str) -> None:
        node = self._model.getNode(node_id)
        if node is None:
            self._nodes.pop(node_id, None)
            return
        self._nodes[node_id] = node_item(node)

    def _rebuild(self) -> None:
        self._nodes = {node.id: node_item(node) for node in self._model.nodes()}
        self._connections = {}
        for connection_id in self._model.connectionIds():
            self._build_connection(connection_id)

    @Slot(list, list, bool)
    def _apply_frame(self, node_ids: List[str], connection_ids: List[str], full: bool) -> None:
        self.frames += 1
        if full:
            self._rebuild()
            node_ids = self._model.nodeIds()
            connection_ids = self._model.connectionIds()
        else:
            for node_id in node_ids:
                self._build_node(node_id)
            for connection_id in connection_ids:
                self._build_connection(connection_id)
        logger.debug("Frame %d: %d nodes, %d connections", self.frames, len(node_ids), len(connection_ids))
        self.elementsUpdated.emit(node_ids, connection_ids)
        self.sceneChanged.emit()
        self.overlaysChanged.emit()

    def flush(self) -> None:
        """Apply pending changes now instead of waiting for the timer."""
        self._scheduler.flush()

    def _on_viewport_changed(self) -> None:
        self.transformChanged.emit()
        if self._interaction.label_edit is not None:
            self.overlaysChanged.emit()

    def _on_selection_changed(self) -> None:
        previous = self._selected_connection
        current = self._interaction.selectedConnectionId
        self._selected_connection = current
        dirty = [cid for cid in (previous, current) if cid]
        if dirty:
            self._scheduler.schedule_connections(dirty)
        self.overlaysChanged.emit()

    # --- Overlays -----------------------------------------------------------
    def build_overlays(self) -> Dict[str, Any]:
        interaction = self._interaction
        overlays: Dict[str, Any] = {
            "previewPath": interaction.preview_path(),
            "previewStroke": PREVIEW_STROKE,
            "selectionRect": None,
            "pending": None,
            "handles": [],
            "handleRadiusPx": self._config.control_point_hit_px / 2.0,
            "handleFill": CONTROL_POINT_FILL,
            "selectedNodeIds": interaction.selectedNodeIds,
            "labelEditor": None,
        }

        rect = interaction.selection_rect()
        if rect is not None:
            overlays["selectionRect"] = {"x": rect[0], "y": rect[1], "width": rect[2], "height": rect[3]}

        pending = interaction.pending
        if pending is not None:
            overlays["pending"] = {
                "x": pending.point[0],
                "y": pending.point[1],
                "path": interaction.pending_path(),
                "confirmRadiusPx": self._config.pending_confirm_px,
            }

        connection = self._model.getConnection(interaction.selectedConnectionId)
        if connection is not None:
            overlays["handles"] = [
                {"connectionId": connection.id, "id": cp.id, "x": cp.x, "y": cp.y}
                for cp in connection.control_points
            ]

        session = interaction.label_edit
        position = interaction.label_editor_position()
        if session is not None and position is not None:
            overlays["labelEditor"] = {
                "kind": session.kind,
                "targetId": session.target_id,
                "text": session.text,
                "x": position[0],
                "y": position[1],
            }
        return overlays
