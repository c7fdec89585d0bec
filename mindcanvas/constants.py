"""Constants and presets for MindCanvas scenes."""

from typing import Any, Dict

from PySide6.QtCore import Qt

from .types import ShapeKind


CLIPBOARD_MIME_TYPE = "application/x-mindcanvas-scene"
CLIPBOARD_FORMAT = "mindcanvas-scene"
PROJECT_EXTENSION = ".mindmap"

DEFAULT_NODE_TEXT = "New Node"

# Maximum number of control points on one connection (cubic Bezier).
MAX_CONTROL_POINTS = 2


SHAPE_PRESETS: Dict[str, Dict[str, Any]] = {
    "circle": {
        "kind": ShapeKind.CIRCLE,
        "width": 80.0,
        "height": 80.0,
        "corner_radius": 15.0,
    },
    "rectangle": {
        "kind": ShapeKind.RECTANGLE,
        "width": 120.0,
        "height": 60.0,
        "corner_radius": 8.0,
    },
    "rounded-rectangle": {
        "kind": ShapeKind.ROUNDED_RECTANGLE,
        "width": 120.0,
        "height": 60.0,
        "corner_radius": 15.0,
    },
    "triangle": {
        "kind": ShapeKind.TRIANGLE,
        "width": 90.0,
        "height": 80.0,
        "corner_radius": 0.0,
    },
    "diamond": {
        "kind": ShapeKind.DIAMOND,
        "width": 100.0,
        "height": 100.0,
        "corner_radius": 0.0,
    },
    "pentagon": {
        "kind": ShapeKind.PENTAGON,
        "width": 90.0,
        "height": 90.0,
        "corner_radius": 0.0,
    },
    "hexagon": {
        "kind": ShapeKind.HEXAGON,
        "width": 100.0,
        "height": 90.0,
        "corner_radius": 0.0,
    },
}

SELECTED_CONNECTION_STROKE = "#38BDF8"
PREVIEW_STROKE = "#3498db"
CONTROL_POINT_FILL = "#FF6B35"

# Pointer buttons and keyboard values as delivered by QML events.
BUTTON_PRIMARY = Qt.MouseButton.LeftButton.value
BUTTON_SECONDARY = Qt.MouseButton.RightButton.value
BUTTON_MIDDLE = Qt.MouseButton.MiddleButton.value

MOD_SHIFT = Qt.KeyboardModifier.ShiftModifier.value
MOD_CONTROL = Qt.KeyboardModifier.ControlModifier.value
MOD_ALT = Qt.KeyboardModifier.AltModifier.value
MOD_META = Qt.KeyboardModifier.MetaModifier.value

KEY_ESCAPE = Qt.Key.Key_Escape.value
KEY_RETURN = Qt.Key.Key_Return.value
KEY_ENTER = Qt.Key.Key_Enter.value
KEY_SPACE = Qt.Key.Key_Space.value
KEY_DELETE = Qt.Key.Key_Delete.value
KEY_BACKSPACE = Qt.Key.Key_Backspace.value
KEY_A = Qt.Key.Key_A.value
KEY_C = Qt.Key.Key_C.value
KEY_V = Qt.Key.Key_V.value
KEY_PLUS = Qt.Key.Key_Plus.value
KEY_EQUAL = Qt.Key.Key_Equal.value
KEY_MINUS = Qt.Key.Key_Minus.value
KEY_ZERO = Qt.Key.Key_0.value
