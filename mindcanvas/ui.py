"""UI creation functions for MindCanvas."""

from __future__ import annotations

import logging
import os
import sys

from PySide6.QtCore import QUrl
from PySide6.QtQml import QQmlApplicationEngine

from .config import EditorConfig
from .interaction import InteractionController
from .model import SceneModel
from .project import ProjectManager
from .qml import MINDCANVAS_QML_PATH, QML_DIR
from .render import RenderBridge
from .viewport import Viewport

logger = logging.getLogger(__name__)


def create_mindcanvas_window(
    scene_model: SceneModel,
    viewport: Viewport,
    interaction: InteractionController,
    render_bridge: RenderBridge,
    project_manager=None,
) -> QQmlApplicationEngine:
    """Create and return a QQmlApplicationEngine hosting the MindCanvas UI."""
    engine = QQmlApplicationEngine()
    engine.rootContext().setContextProperty("sceneModel", scene_model)
    engine.rootContext().setContextProperty("viewport", viewport)
    engine.rootContext().setContextProperty("interaction", interaction)
    engine.rootContext().setContextProperty("renderBridge", render_bridge)
    engine.rootContext().setContextProperty("projectManager", project_manager)
    engine.addImportPath(str(QML_DIR))
    engine.load(QUrl.fromLocalFile(str(MINDCANVAS_QML_PATH)))
    return engine


def main() -> int:
    """Main entry point for MindCanvas standalone mode."""
    from PySide6.QtWidgets import QApplication

    logging.basicConfig(
        level=os.environ.get("MINDCANVAS_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    smoke_mode = "--smoke" in sys.argv or os.environ.get("MINDCANVAS_SMOKE") == "1"

    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)

    config = EditorConfig.from_settings()
    scene_model = SceneModel(config)
    viewport = Viewport(config=config)
    interaction = InteractionController(scene_model, viewport, config)
    render_bridge = RenderBridge(scene_model, viewport, interaction)
    project_manager = ProjectManager(scene_model, viewport)

    engine = create_mindcanvas_window(
        scene_model,
        viewport,
        interaction,
        render_bridge,
        project_manager=project_manager,
    )
    if not engine.rootObjects():
        logger.error("Failed to load %s", MINDCANVAS_QML_PATH)
        return 1

    if smoke_mode:
        render_bridge.close()
        interaction.close()
        return 0

    # Load file from command line argument if provided
    args = [arg for arg in sys.argv[1:] if not arg.startswith("--")]
    if args:
        file_path = args[0]
        if file_path.startswith("file://"):
            file_path = file_path[7:]
        if os.path.exists(file_path):
            project_manager.loadProject(file_path)

    try:
        return app.exec()
    finally:
        render_bridge.close()
        interaction.close()
