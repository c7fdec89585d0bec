"""Shared pytest fixtures for the Qt application and a small scene."""

import sys

import pytest
from PySide6.QtCore import QCoreApplication
from PySide6.QtGui import QGuiApplication

from mindcanvas import EditorConfig, InteractionController, SceneModel, Viewport


@pytest.fixture(scope="session")
def app():
    """Provide a single QGuiApplication for all tests."""
    instance = QGuiApplication.instance()
    if instance is None:
        instance = QGuiApplication(sys.argv)

    yield instance

    # Avoid PySide shutdown crashes when clipboard owns QMimeData.
    clipboard = QGuiApplication.clipboard()
    if clipboard is not None:
        clipboard.clear()

    QCoreApplication.processEvents()


@pytest.fixture
def config():
    return EditorConfig()


@pytest.fixture
def model(app, config):
    return SceneModel(config)


@pytest.fixture
def viewport(app, config):
    return Viewport(800.0, 600.0, config=config)


@pytest.fixture
def controller(model, viewport, config):
    instance = InteractionController(model, viewport, config)
    yield instance
    instance.close()


@pytest.fixture
def two_nodes(model):
    """Two circles 400 world units apart on the x axis."""
    a = model.addNode(0.0, 0.0, "A")
    b = model.addNode(400.0, 0.0, "B")
    return a, b
