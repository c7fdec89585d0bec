"""Frame coalescing for redraws.

Changes reported between two frames are merged so every element is redrawn
at most once per frame.
"""

from __future__ import annotations

from typing import Iterable, Optional

from PySide6.QtCore import QObject, QTimer, Signal, Slot


class FrameScheduler(QObject):
    """Collects dirty node and connection ids and flushes them once per frame."""

    frameReady = Signal(list, list, bool, arguments=["nodeIds", "connectionIds", "full"])

    def __init__(self, interval_ms: int = 16, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._pending_nodes: set = set()
        self._pending_connections: set = set()
        self._full = False
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(1, int(interval_ms)))
        self._timer.timeout.connect(self.flush)

    @property
    def pending(self) -> bool:
        return self._full or bool(self._pending_nodes) or bool(self._pending_connections)

    def _arm(self) -> None:
        if not self._timer.isActive():
            self._timer.start()

    def schedule_nodes(self, node_ids: Iterable[str]) -> None:
        self._pending_nodes.update(node_ids)
        self._arm()

    def schedule_connections(self, connection_ids: Iterable[str]) -> None:
        self._pending_connections.update(connection_ids)
        self._arm()

    @Slot()
    def schedule_full(self) -> None:
        self._full = True
        self._arm()

    @Slot()
    def flush(self) -> None:
        """Emit everything collected so far and start a new frame."""
        self._timer.stop()
        if not self.pending:
            return
        nodes = sorted(self._pending_nodes)
        connections = sorted(self._pending_connections)
        full = self._full
        self._pending_nodes = set()
        self._pending_connections = set()
        self._full = False
        self.frameReady.emit(nodes, connections, full)

    def cancel(self) -> None:
        self._timer.stop()
        self._pending_nodes.clear()
        self._pending_connections.clear()
        self._full = False
