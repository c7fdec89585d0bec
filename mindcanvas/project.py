"""Saving and loading MindCanvas project files.

A project file is JSON::

    {"version": "1.0", "saved_at": "<iso timestamp>",
     "scene": {<exchange JSON>}, "viewport": {"x", "y", "zoom", ...}}
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from PySide6.QtCore import Property, QObject, QSettings, QUrl, Signal, Slot

from .constants import PROJECT_EXTENSION
from .errors import PersistenceFailure
from .exchange import check_scene
from .model import SceneModel
from .viewport import Viewport

logger = logging.getLogger(__name__)


class ProjectManager(QObject):
    """Manager for saving and loading project files."""

    PROJECT_VERSION = "1.0"
    MAX_RECENT_PROJECTS = 8

    saveCompleted = Signal(str)  # Emitted with file path after successful save
    loadCompleted = Signal(str)  # Emitted with file path after successful load
    errorOccurred = Signal(str)  # Emitted with error message on failure
    recentProjectsChanged = Signal()
    currentFilePathChanged = Signal()

    def __init__(
        self,
        model: SceneModel,
        viewport: Optional[Viewport] = None,
        settings: Optional[QSettings] = None,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self._model = model
        self._viewport = viewport
        self._settings = settings if settings is not None else QSettings("MindCanvas", "MindCanvas")
        self._current_file_path: str = ""
        self._recent_projects: List[str] = self._load_recent_projects()

    # --- Recent projects ----------------------------------------------------
    def _load_recent_projects(self) -> List[str]:
        stored = self._settings.value("recentProjects", [])
        # QSettings may return a string if only one item, or None
        if stored is None:
            return []
        if isinstance(stored, str):
            stored = [stored] if stored else []
        if isinstance(stored, list):
            return [p for p in stored if p and os.path.exists(p)][: self.MAX_RECENT_PROJECTS]
        return []

    def _save_recent_projects(self) -> None:
        self._settings.setValue("recentProjects", self._recent_projects)
        self._settings.sync()

    def _add_to_recent(self, file_path: str) -> None:
        if not file_path or not os.path.exists(file_path):
            return
        if file_path in self._recent_projects:
            self._recent_projects.remove(file_path)
        self._recent_projects.insert(0, file_path)
        self._recent_projects = self._recent_projects[: self.MAX_RECENT_PROJECTS]
        self._save_recent_projects()
        self.recentProjectsChanged.emit()

    @Property("QVariantList", notify=recentProjectsChanged)
    def recentProjects(self) -> List[str]:
        return self._recent_projects

    @Slot(result=list)
    def getRecentProjectNames(self) -> List[Dict[str, str]]:
        result = []
        for path in self._recent_projects:
            name = os.path.basename(path)
            if name.endswith(PROJECT_EXTENSION):
                name = name[: -len(PROJECT_EXTENSION)]
            result.append({"name": name, "path": path})
        return result

    @Slot()
    def clearRecentProjects(self) -> None:
        self._recent_projects = []
        self._save_recent_projects()
        self.recentProjectsChanged.emit()

    @Property(str, notify=currentFilePathChanged)
    def currentFilePath(self) -> str:
        return self._current_file_path

    @Slot(result=bool)
    def hasCurrentFile(self) -> bool:
        return bool(self._current_file_path)

    def _normalize_file_path(self, file_path: str) -> str:
        """Convert file URLs into local paths, including Windows file URLs."""
        if file_path.startswith("file:"):
            url = QUrl(file_path)
            if url.isLocalFile():
                file_path = url.toLocalFile()
            else:
                file_path = url.path()
        if os.name == "nt" and file_path.startswith("/") and len(file_path) > 2 and file_path[2] == ":":
            file_path = file_path[1:]
        return file_path

    # --- Save / load --------------------------------------------------------
    def build_project_data(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "version": self.PROJECT_VERSION,
            "saved_at": datetime.now().isoformat(),
            "scene": self._model.to_dict(),
        }
        if self._viewport is not None:
            data["viewport"] = self._viewport.to_dict()
        return data

    def write_project(self, file_path: str) -> str:
        """Write the project to disk and return the final path.

        Raises PersistenceFailure; the scene is never modified.
        """
        file_path = self._normalize_file_path(file_path)
        if not file_path:
            raise PersistenceFailure("No file path specified")
        if not file_path.endswith(PROJECT_EXTENSION):
            file_path += PROJECT_EXTENSION
        # A failed write leaves any existing file at file_path intact.
        temp_path = f"{file_path}.tmp"
        try:
            payload = json.dumps(self.build_project_data(), ensure_ascii=False, indent=2)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(temp_path, file_path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise PersistenceFailure(f"Failed to save project: {e}") from e
        return file_path

    def read_project(self, file_path: str) -> Dict[str, Any]:
        """Read and validate a project file without touching the scene."""
        file_path = self._normalize_file_path(file_path)
        if not file_path:
            raise PersistenceFailure("No file path specified")
        if not os.path.exists(file_path):
            raise PersistenceFailure(f"File not found: {file_path}")
        try:
            with open(file_path, "r", encoding="utf-8") as f:
                project_data = json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceFailure(f"Invalid project file format: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceFailure(f"Failed to load project: {e}") from e

        if not isinstance(project_data, dict):
            raise PersistenceFailure("Corrupted project file: top level is not an object")
        # Bare exchange JSON (nodes/connections at the root) is accepted too.
        try:
            check_scene(project_data.get("scene", project_data))
        except PersistenceFailure as e:
            raise PersistenceFailure(f"Corrupted project file: {e}") from e
        return project_data

    @Slot(str, result=bool)
    def saveProject(self, file_path: str) -> bool:
        try:
            file_path = self.write_project(file_path)
        except PersistenceFailure as e:
            logger.error("%s", e)
            self.errorOccurred.emit(str(e))
            return False

        self._current_file_path = file_path
        self.currentFilePathChanged.emit()
        self._add_to_recent(file_path)
        self.saveCompleted.emit(file_path)
        logger.info("Project saved to: %s", file_path)
        return True

    @Slot(result=bool)
    def saveCurrentProject(self) -> bool:
        if not self._current_file_path:
            self.errorOccurred.emit("No current project file selected")
            return False
        return self.saveProject(self._current_file_path)

    @Slot(str, result=bool)
    def loadProject(self, file_path: str) -> bool:
        try:
            project_data = self.read_project(file_path)
        except PersistenceFailure as e:
            logger.error("%s", e)
            self.errorOccurred.emit(str(e))
            return False

        file_path = self._normalize_file_path(file_path)
        self._model.from_dict(project_data.get("scene", project_data))
        viewport_data = project_data.get("viewport")
        if self._viewport is not None and isinstance(viewport_data, dict):
            self._viewport.from_dict(viewport_data)

        self._current_file_path = file_path
        self.currentFilePathChanged.emit()
        self._add_to_recent(file_path)
        self.loadCompleted.emit(file_path)
        logger.info("Project loaded from: %s", file_path)
        return True

    @Slot()
    def newProject(self) -> None:
        self._model.clear()
        if self._viewport is not None:
            self._viewport.resetZoom()
        self._current_file_path = ""
        self.currentFilePathChanged.emit()
