"""MindCanvas: an interactive mind-map canvas built with PySide6 and QML.

The scene model owns nodes and connections; the viewport maps between
device and world coordinates; the interaction controller turns pointer
and key events into model edits; the render bridge hands QML a flat,
frame-coalesced render tree.
"""

from .config import EditorConfig
from .constants import CLIPBOARD_MIME_TYPE, SHAPE_PRESETS
from .errors import CapacityExceeded, InvalidGeometry, NotFound, PersistenceFailure, SceneError
from .interaction import InteractionController
from .model import SceneModel
from .project import ProjectManager
from .qml import MINDCANVAS_QML
from .render import RenderBridge
from .scheduler import FrameScheduler
from .types import (
    ConnectionStyle,
    ControlPoint,
    NodeShape,
    NodeStyle,
    SceneConnection,
    SceneNode,
    ShapeKind,
)
from .ui import create_mindcanvas_window, main
from .viewport import Viewport

__all__ = [
    "CLIPBOARD_MIME_TYPE",
    "CapacityExceeded",
    "ConnectionStyle",
    "ControlPoint",
    "EditorConfig",
    "FrameScheduler",
    "InteractionController",
    "InvalidGeometry",
    "MINDCANVAS_QML",
    "NodeShape",
    "NodeStyle",
    "NotFound",
    "PersistenceFailure",
    "ProjectManager",
    "RenderBridge",
    "SHAPE_PRESETS",
    "SceneConnection",
    "SceneError",
    "SceneModel",
    "ShapeKind",
    "Viewport",
    "create_mindcanvas_window",
    "main",
]
