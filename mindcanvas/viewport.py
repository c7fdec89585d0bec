"""Viewport: pan offset and zoom factor for the infinite canvas.

World coordinates are pan/zoom independent; device coordinates are pixels of
the render surface. ``world = origin + device / zoom``.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

from PySide6.QtCore import Property, QObject, QPointF, Signal, Slot

from .config import EditorConfig
from .geometry import clamp
from .types import Point


class Viewport(QObject):
    """Owns origin and zoom; converts between device and world space.

    Mutators only touch the viewport fields and emit ``viewportChanged``;
    redrawing is left to whoever listens.
    """

    viewportChanged = Signal()

    def __init__(
        self,
        device_width: float = 1280.0,
        device_height: float = 800.0,
        config: Optional[EditorConfig] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._config = config or EditorConfig()
        self._origin_x = 0.0
        self._origin_y = 0.0
        self._zoom = 1.0
        self._device_width = max(1.0, float(device_width))
        self._device_height = max(1.0, float(device_height))

    # --- Properties exposed to QML -----------------------------------------
    @Property(float, notify=viewportChanged)
    def originX(self) -> float:
        return self._origin_x

    @Property(float, notify=viewportChanged)
    def originY(self) -> float:
        return self._origin_y

    @Property(float, notify=viewportChanged)
    def zoom(self) -> float:
        return self._zoom

    @Property(float, notify=viewportChanged)
    def visibleWidth(self) -> float:
        return self._device_width / self._zoom

    @Property(float, notify=viewportChanged)
    def visibleHeight(self) -> float:
        return self._device_height / self._zoom

    @Property(float, notify=viewportChanged)
    def deviceWidth(self) -> float:
        return self._device_width

    @Property(float, notify=viewportChanged)
    def deviceHeight(self) -> float:
        return self._device_height

    @property
    def min_zoom(self) -> float:
        return self._config.min_zoom

    @property
    def max_zoom(self) -> float:
        return self._config.max_zoom

    # --- Conversions --------------------------------------------------------
    def screen_to_world(self, dx: float, dy: float) -> Point:
        return (self._origin_x + dx / self._zoom, self._origin_y + dy / self._zoom)

    def world_to_screen(self, wx: float, wy: float) -> Point:
        return ((wx - self._origin_x) * self._zoom, (wy - self._origin_y) * self._zoom)

    def to_world_length(self, device_length: float) -> float:
        return device_length / self._zoom

    @Slot(float, float, result=QPointF)
    def screenToWorld(self, dx: float, dy: float) -> QPointF:
        return QPointF(*self.screen_to_world(dx, dy))

    @Slot(float, float, result=QPointF)
    def worldToScreen(self, wx: float, wy: float) -> QPointF:
        return QPointF(*self.world_to_screen(wx, wy))

    # --- Mutators -----------------------------------------------------------
    def _clamp_zoom(self, value: float) -> float:
        return clamp(value, self._config.min_zoom, self._config.max_zoom)

    @Slot(float, float, float, result=bool)
    def zoomAt(self, dx: float, dy: float, factor: float) -> bool:
        """Rescale by ``factor`` keeping the world point under (dx, dy) fixed.

        Zoom saturates at the configured bounds. Returns True if anything
        changed.
        """
        if not math.isfinite(factor) or factor <= 0.0:
            return False
        new_zoom = self._clamp_zoom(self._zoom * factor)
        if new_zoom == self._zoom:
            return False
        anchor_x, anchor_y = self.screen_to_world(dx, dy)
        self._zoom = new_zoom
        self._origin_x = anchor_x - dx / new_zoom
        self._origin_y = anchor_y - dy / new_zoom
        self.viewportChanged.emit()
        return True

    @Slot(float, float)
    def pan(self, ddx: float, ddy: float) -> None:
        """Shift the origin by a device-space delta (grab semantics)."""
        if ddx == 0.0 and ddy == 0.0:
            return
        self._origin_x -= ddx / self._zoom
        self._origin_y -= ddy / self._zoom
        self.viewportChanged.emit()

    @Slot(float, float, float)
    def wheel(self, dx: float, dy: float, delta: float) -> None:
        if delta == 0.0:
            return
        factor = self._config.wheel_zoom_out if delta < 0 else self._config.wheel_zoom_in
        self.zoomAt(dx, dy, factor)

    @Slot()
    def zoomIn(self) -> None:
        self.zoomAt(self._device_width / 2.0, self._device_height / 2.0, self._config.zoom_step)

    @Slot()
    def zoomOut(self) -> None:
        self.zoomAt(self._device_width / 2.0, self._device_height / 2.0, 1.0 / self._config.zoom_step)

    @Slot()
    def resetZoom(self) -> None:
        self.setViewport(0.0, 0.0, 1.0)

    @Slot(float, float, float)
    def setViewport(self, x: float, y: float, zoom: float) -> None:
        new_zoom = self._clamp_zoom(zoom) if math.isfinite(zoom) and zoom > 0.0 else self._zoom
        if (x, y, new_zoom) == (self._origin_x, self._origin_y, self._zoom):
            return
        self._origin_x = float(x)
        self._origin_y = float(y)
        self._zoom = new_zoom
        self.viewportChanged.emit()

    @Slot(float, float)
    def setDeviceSize(self, width: float, height: float) -> None:
        width = max(1.0, float(width))
        height = max(1.0, float(height))
        if (width, height) == (self._device_width, self._device_height):
            return
        self._device_width = width
        self._device_height = height
        self.viewportChanged.emit()

    @Slot(float, float)
    def centerOn(self, wx: float, wy: float) -> None:
        self.setViewport(
            wx - self._device_width / (2.0 * self._zoom),
            wy - self._device_height / (2.0 * self._zoom),
            self._zoom,
        )

    # --- Render contract ----------------------------------------------------
    def group_transform(self) -> Dict[str, float]:
        """One transform mapping world to device: scale, then translate."""
        return {
            "scale": self._zoom,
            "translateX": -self._origin_x * self._zoom,
            "translateY": -self._origin_y * self._zoom,
        }

    # --- Serialization ------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "x": self._origin_x,
            "y": self._origin_y,
            "zoom": self._zoom,
            "width": self._device_width / self._zoom,
            "height": self._device_height / self._zoom,
        }

    def from_dict(self, data: Dict[str, Any]) -> None:
        try:
            x = float(data.get("x", 0.0))
            y = float(data.get("y", 0.0))
            zoom = float(data.get("zoom", 1.0))
        except (TypeError, ValueError):
            return
        self.setViewport(x, y, zoom)
