"""Tests for saving and loading project files."""

import json

import pytest
from PySide6.QtCore import QSettings, QUrl

from mindcanvas import ProjectManager, SceneModel, Viewport


@pytest.fixture
def settings(tmp_path):
    return QSettings(str(tmp_path / "settings.ini"), QSettings.IniFormat)


@pytest.fixture
def manager(model, viewport, settings):
    return ProjectManager(model, viewport, settings)


@pytest.fixture
def errors(manager):
    received = []
    manager.errorOccurred.connect(lambda message: received.append(message))
    return received


def _scene(model):
    a = model.addNode(0.0, 0.0, "Root")
    b = model.addNode(300.0, 100.0, "Leaf")
    connection_id = model.addConnection(a, b)
    model.setControlPoints(connection_id, [(150.0, -20.0)])
    return a, b, connection_id


class TestSave:
    def test_save_appends_extension_and_writes_scene(self, model, viewport, manager, tmp_path):
        _scene(model)
        viewport.setViewport(5.0, 6.0, 1.5)
        saved = []
        manager.saveCompleted.connect(lambda path: saved.append(path))
        assert manager.saveProject(str(tmp_path / "plan"))
        path = tmp_path / "plan.mindmap"
        assert saved == [str(path)]
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["version"] == ProjectManager.PROJECT_VERSION
        assert len(data["scene"]["nodes"]) == 2
        assert data["viewport"]["zoom"] == 1.5
        assert manager.currentFilePath == str(path)
        assert manager.hasCurrentFile()

    def test_save_accepts_file_urls(self, model, manager, tmp_path):
        _scene(model)
        url = QUrl.fromLocalFile(str(tmp_path / "from_url.mindmap")).toString()
        assert manager.saveProject(url)
        assert (tmp_path / "from_url.mindmap").exists()

    def test_save_failure_reports_error(self, model, manager, tmp_path, errors):
        _scene(model)
        assert not manager.saveProject(str(tmp_path / "missing_dir" / "plan"))
        assert len(errors) == 1
        assert model.count == 2
        assert not manager.hasCurrentFile()

    def test_failed_write_keeps_existing_file(self, model, manager, tmp_path, errors, monkeypatch):
        _scene(model)
        path = tmp_path / "plan.mindmap"
        assert manager.saveProject(str(path))
        saved = path.read_text(encoding="utf-8")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("mindcanvas.project.os.replace", broken_replace)
        model.addNode(50.0, 50.0, "Extra")
        assert not manager.saveProject(str(path))
        assert path.read_text(encoding="utf-8") == saved
        assert not (tmp_path / "plan.mindmap.tmp").exists()
        assert errors == ["Failed to save project: disk full"]

    def test_save_current_without_path(self, manager, errors):
        assert not manager.saveCurrentProject()
        assert errors == ["No current project file selected"]


class TestLoad:
    def test_round_trip_restores_scene_and_viewport(self, model, viewport, manager, settings, tmp_path):
        _scene(model)
        viewport.setViewport(-40.0, 12.0, 0.5)
        manager.saveProject(str(tmp_path / "plan.mindmap"))

        other_model = SceneModel()
        other_viewport = Viewport()
        other = ProjectManager(other_model, other_viewport, settings)
        assert other.loadProject(str(tmp_path / "plan.mindmap"))
        assert other_model.to_dict() == model.to_dict()
        assert (other_viewport.originX, other_viewport.originY, other_viewport.zoom) == (-40.0, 12.0, 0.5)

    def test_bare_exchange_json_is_accepted(self, model, manager, tmp_path):
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"nodes": [{"id": "n_1", "x": 1, "y": 2}], "connections": []}), encoding="utf-8")
        assert manager.loadProject(str(path))
        assert model.nodeIds() == ["n_1"]

    @pytest.mark.parametrize(
        "content",
        [
            "{broken",
            "[]",
            json.dumps({"scene": {"nodes": "not a list"}}),
            json.dumps({"scene": {"nodes": [], "connections": 5}}),
            json.dumps({"nodes": [], "connections": {"id": "c"}}),
            json.dumps({"scene": "nothing here"}),
        ],
    )
    def test_corrupt_files_leave_scene_untouched(self, model, manager, tmp_path, errors, content):
        _scene(model)
        before = model.to_dict()
        path = tmp_path / "bad.mindmap"
        path.write_text(content, encoding="utf-8")
        assert not manager.loadProject(str(path))
        assert model.to_dict() == before
        assert len(errors) == 1

    def test_missing_file(self, manager, tmp_path, errors):
        assert not manager.loadProject(str(tmp_path / "nope.mindmap"))
        assert errors[0].startswith("File not found")

    def test_new_project_clears_state(self, model, viewport, manager, tmp_path):
        _scene(model)
        manager.saveProject(str(tmp_path / "plan"))
        viewport.setViewport(10.0, 10.0, 2.0)
        manager.newProject()
        assert model.count == 0
        assert viewport.zoom == 1.0
        assert manager.currentFilePath == ""


class TestRecentProjects:
    def test_recent_list_is_most_recent_first(self, model, manager, settings, tmp_path):
        _scene(model)
        manager.saveProject(str(tmp_path / "one"))
        manager.saveProject(str(tmp_path / "two"))
        manager.saveProject(str(tmp_path / "one"))
        names = [entry["name"] for entry in manager.getRecentProjectNames()]
        assert names == ["one", "two"]

        reopened = ProjectManager(model, None, settings)
        assert reopened.recentProjects == manager.recentProjects

    def test_clear_recent_projects(self, model, manager, tmp_path):
        _scene(model)
        manager.saveProject(str(tmp_path / "one"))
        manager.clearRecentProjects()
        assert manager.recentProjects == []

    def test_recent_list_is_capped(self, model, manager, tmp_path):
        for i in range(ProjectManager.MAX_RECENT_PROJECTS + 2):
            manager.saveProject(str(tmp_path / f"p{i}"))
        assert len(manager.recentProjects) == ProjectManager.MAX_RECENT_PROJECTS
