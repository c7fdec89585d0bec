"""Clipboard operations mixin for SceneModel.

This module provides copy/paste of nodes (and the connections among them)
and pasting clipboard images onto nodes.
"""

from __future__ import annotations

import base64
import json
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, List, Optional, Sequence

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QMimeData, Signal, Slot
from PySide6.QtGui import QGuiApplication
from PySide6.QtQml import QJSValue

from .constants import CLIPBOARD_FORMAT, CLIPBOARD_MIME_TYPE
from .errors import SceneError
from .exchange import connection_from_dict, connection_to_dict, node_from_dict, node_to_dict
from .types import SceneConnection, SceneNode

if TYPE_CHECKING:
    from .config import EditorConfig

logger = logging.getLogger(__name__)


class ClipboardMixin:
    """Mixin providing clipboard operations."""

    # Signals (will be defined in SceneModel)
    itemsChanged: Signal
    noticeRaised: Signal

    # Attributes expected from SceneModel
    _config: "EditorConfig"
    _nodes: Dict[str, SceneNode]
    _connections: Dict[str, SceneConnection]
    _next_id: Callable[[str], str]
    _insert_node: Callable[[SceneNode], None]
    _report: Callable[[SceneError], None]
    _touch_connections: Callable[[Sequence[str]], None]
    operation: Callable[[str], Iterator[None]]
    add_connection: Callable[[str, str], SceneConnection]
    set_control_points: Callable[[str, Sequence[Any]], Any]
    setNodeImage: Callable[[str, str], bool]

    def _write_clipboard_payload(self, payload: Dict[str, Any]) -> bool:
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            return False
        payload_text = json.dumps(payload)
        mime_data = QMimeData()
        mime_data.setData(CLIPBOARD_MIME_TYPE, QByteArray(payload_text.encode("utf-8")))
        mime_data.setText(payload_text)
        clipboard.setMimeData(mime_data)
        return True

    def _read_clipboard_payload(self) -> Optional[Dict[str, Any]]:
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            return None
        mime_data = clipboard.mimeData()
        if mime_data is None:
            return None
        payload_text: Optional[str] = None
        if mime_data.hasFormat(CLIPBOARD_MIME_TYPE):
            raw = mime_data.data(CLIPBOARD_MIME_TYPE)
            payload_text = bytes(raw).decode("utf-8")
        elif mime_data.hasText():
            payload_text = mime_data.text()
        if not payload_text:
            return None
        try:
            payload = json.loads(payload_text)
        except json.JSONDecodeError:
            return None
        if not isinstance(payload, dict):
            return None
        if payload.get("format") != CLIPBOARD_FORMAT:
            return None
        return payload

    @Slot("QVariant", result=bool)
    def copyNodesToClipboard(self, node_ids: Any) -> bool:
        if isinstance(node_ids, QJSValue):
            node_ids = node_ids.toVariant()
        if not node_ids or not isinstance(node_ids, (list, tuple, set)):
            return False
        nodes = [self._nodes[str(node_id)] for node_id in node_ids if str(node_id) in self._nodes]
        if not nodes:
            return False
        valid_ids = {node.id for node in nodes}
        connections = [
            connection_to_dict(conn)
            for conn in self._connections.values()
            if conn.from_id in valid_ids and conn.to_id in valid_ids
        ]
        payload = {
            "format": CLIPBOARD_FORMAT,
            "version": 1,
            "nodes": [node_to_dict(node) for node in nodes],
            "connections": connections,
        }
        return self._write_clipboard_payload(payload)

    @Slot(result=bool)
    def hasClipboardNodes(self) -> bool:
        return self._read_clipboard_payload() is not None

    def paste_nodes(self, x: float, y: float) -> List[str]:
        """Paste clipboard nodes centred on (x, y) with fresh ids.

        Connections among the pasted nodes come along with their control
        points shifted by the same offset. Returns the new node ids.
        """
        payload = self._read_clipboard_payload()
        if not payload:
            return []
        nodes: List[SceneNode] = []
        for entry in payload.get("nodes", []) or []:
            try:
                nodes.append(node_from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping invalid clipboard node: %s", exc)
        if not nodes:
            return []

        min_x = min(node.x - node.shape.width / 2.0 for node in nodes)
        max_x = max(node.x + node.shape.width / 2.0 for node in nodes)
        min_y = min(node.y - node.shape.height / 2.0 for node in nodes)
        max_y = max(node.y + node.shape.height / 2.0 for node in nodes)
        offset_x = x - (min_x + max_x) / 2.0
        offset_y = y - (min_y + max_y) / 2.0

        id_map: Dict[str, str] = {}
        with self.operation("pasteNodes"):
            for node in nodes:
                if len(self._nodes) >= self._config.max_nodes:
                    logger.info("Node limit reached while pasting")
                    self.noticeRaised.emit("CapacityExceeded", "node limit reached")
                    break
                old_id = node.id
                node.id = self._next_id("node")
                node.x += offset_x
                node.y += offset_y
                self._insert_node(node)
                id_map[old_id] = node.id

            for entry in payload.get("connections", []) or []:
                try:
                    data = connection_from_dict(entry, self._config.max_control_points)
                except (KeyError, TypeError, ValueError, AttributeError):
                    continue
                if data.from_id not in id_map or data.to_id not in id_map:
                    continue
                try:
                    connection = self.add_connection(id_map[data.from_id], id_map[data.to_id])
                    self.set_control_points(
                        connection.id, [(cp.x + offset_x, cp.y + offset_y) for cp in data.control_points]
                    )
                except SceneError as exc:
                    self._report(exc)
                    continue
                connection.label = data.label
                connection.style = data.style
                self._touch_connections([connection.id])
        return list(id_map.values())

    @Slot(float, float, result=list)
    def pasteNodesFromClipboard(self, x: float, y: float) -> List[str]:
        return self.paste_nodes(x, y)

    @Slot(str, result=bool)
    def pasteImageToNode(self, node_id: str) -> bool:
        """Attach the clipboard image to a node as a PNG data URL."""
        if node_id not in self._nodes:
            return False
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            return False

        mime_data = clipboard.mimeData()
        if mime_data is None or not mime_data.hasImage():
            return False

        image = clipboard.image()
        if image.isNull():
            return False

        # Convert QImage to base64-encoded PNG
        byte_array = QByteArray()
        buffer = QBuffer(byte_array)
        buffer.open(QIODevice.WriteOnly)
        image.save(buffer, "PNG")
        buffer.close()

        image_data = base64.b64encode(byte_array.data()).decode("ascii")
        if not image_data:
            return False
        return self.setNodeImage(node_id, f"data:image/png;base64,{image_data}")

    @Slot(result=bool)
    def hasClipboardImage(self) -> bool:
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            return False
        mime_data = clipboard.mimeData()
        if mime_data is None:
            return False
        return mime_data.hasImage()
