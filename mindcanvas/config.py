"""Tunable editor settings.

Every distance ending in ``_px`` is measured in device pixels and converted
to world units with the current zoom at the point of use.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional

from PySide6.QtCore import QSettings

from .constants import MAX_CONTROL_POINTS

logger = logging.getLogger(__name__)

SETTINGS_GROUP = "editor"


@dataclass(frozen=True)
class EditorConfig:
    """Configuration consumed by the viewport, curves and interaction layers."""

    min_zoom: float = 0.1
    max_zoom: float = 5.0
    zoom_step: float = 1.2
    wheel_zoom_in: float = 1.1
    wheel_zoom_out: float = 0.9

    ring_width_px: float = 30.0
    ring_inner_gap_px: float = 2.0
    control_point_hit_px: float = 20.0
    edit_tolerance_px: float = 25.0
    hit_stroke_px: float = 20.0
    endpoint_clearance_px: float = 30.0
    drag_threshold_px: float = 5.0
    pending_confirm_px: float = 24.0
    label_hit_px: float = 24.0
    drop_margin_px: float = 20.0

    shift_factor: float = 0.5
    max_control_points: int = MAX_CONTROL_POINTS
    max_nodes: int = 1000
    max_connections: int = 2000

    frame_interval_ms: int = 16

    def validated(self) -> "EditorConfig":
        """Return a copy with inconsistent values pulled back into range."""
        min_zoom = self.min_zoom if self.min_zoom > 0 else 0.1
        max_zoom = max(self.max_zoom, min_zoom)
        ring_width = min(max(self.ring_width_px, 15.0), 30.0)
        inner_gap = min(max(self.ring_inner_gap_px, 0.0), ring_width)
        control_points = min(max(int(self.max_control_points), 0), MAX_CONTROL_POINTS)
        return replace(
            self,
            min_zoom=min_zoom,
            max_zoom=max_zoom,
            ring_width_px=ring_width,
            ring_inner_gap_px=inner_gap,
            max_control_points=control_points,
            max_nodes=max(1, int(self.max_nodes)),
            max_connections=max(1, int(self.max_connections)),
            frame_interval_ms=max(1, int(self.frame_interval_ms)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorConfig":
        values: Dict[str, Any] = {}
        for field_info in fields(cls):
            if field_info.name not in data:
                continue
            default = getattr(cls, field_info.name)
            try:
                values[field_info.name] = type(default)(data[field_info.name])
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid setting %s=%r", field_info.name, data[field_info.name])
        return cls(**values).validated()

    @classmethod
    def from_settings(cls, settings: Optional[QSettings] = None) -> "EditorConfig":
        """Load overrides stored under the ``editor/`` settings group."""
        if settings is None:
            settings = QSettings("MindCanvas", "MindCanvas")
        stored: Dict[str, Any] = {}
        settings.beginGroup(SETTINGS_GROUP)
        try:
            for key in settings.childKeys():
                stored[key] = settings.value(key)
        finally:
            settings.endGroup()
        return cls.from_dict(stored)

    def to_settings(self, settings: QSettings) -> None:
        settings.beginGroup(SETTINGS_GROUP)
        try:
            for key, value in self.to_dict().items():
                settings.setValue(key, value)
        finally:
            settings.endGroup()
        settings.sync()
