"""QML UI definition for MindCanvas."""

from __future__ import annotations

from pathlib import Path

QML_DIR = Path(__file__).with_name("qml_ui")
MINDCANVAS_QML_PATH = QML_DIR / "MindCanvasWindow.qml"


def load_mindcanvas_qml() -> str:
    """Return the MindCanvas QML source as a string."""
    return MINDCANVAS_QML_PATH.read_text(encoding="utf-8")


MINDCANVAS_QML = load_mindcanvas_qml()

__all__ = [
    "MINDCANVAS_QML",
    "MINDCANVAS_QML_PATH",
    "QML_DIR",
    "load_mindcanvas_qml",
]
