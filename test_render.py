"""Tests for the render bridge and frame coalescing."""

import pytest

from mindcanvas import FrameScheduler, RenderBridge
from mindcanvas.constants import BUTTON_PRIMARY, SELECTED_CONNECTION_STROKE
from mindcanvas.render import connection_item, node_item


@pytest.fixture
def bridge(model, viewport, controller):
    instance = RenderBridge(model, viewport, controller)
    yield instance
    instance.close()


class TestItems:
    def test_circle_and_path_primitives(self, model):
        circle = model.getNode(model.addNode(10.0, 20.0, "C"))
        hexagon = model.getNode(model.addShapedNode("hexagon", 0.0, 0.0, "H"))
        item = node_item(circle)
        assert (item["primitive"], item["radius"], item["label"]) == ("circle", 40.0, "C")
        item = node_item(hexagon)
        assert item["primitive"] == "path"
        assert item["path"].startswith("M 0 -45")

    def test_connection_item(self, model, two_nodes):
        a, b = two_nodes
        connection = model.getConnection(model.addConnection(a, b))
        connection.label = "why"
        item = connection_item(connection, model.getNode(a), model.getNode(b), False, 20.0)
        assert item["path"] == "M 40 0 L 360 0"
        assert (item["labelX"], item["labelY"]) == (200.0, 0.0)
        assert item["hitStrokeWidthPx"] == 20.0
        selected = connection_item(connection, model.getNode(a), model.getNode(b), True, 20.0)
        assert selected["stroke"] == SELECTED_CONNECTION_STROKE
        assert selected["strokeWidth"] == item["strokeWidth"] + 1.0


class TestBridge:
    def test_initial_tree(self, model, bridge, two_nodes):
        bridge.flush()
        assert [item["id"] for item in bridge.nodeItems] == list(two_nodes)
        assert bridge.connectionItems == []

    def test_changes_are_coalesced_per_frame(self, model, bridge, two_nodes):
        a, b = two_nodes
        connection_id = model.addConnection(a, b)
        bridge.flush()
        frames = bridge.frames
        updates = []
        bridge.elementsUpdated.connect(lambda nodes, connections: updates.append((nodes, connections)))

        for x in (10.0, 20.0, 30.0):
            model.moveNode(a, x, 0.0)
        assert bridge.scheduler.pending
        assert bridge.nodeItem(a)["x"] == 0.0

        bridge.flush()
        assert bridge.frames == frames + 1
        assert updates == [([a], [connection_id])]
        assert bridge.nodeItem(a)["x"] == 30.0
        assert bridge.connectionItem(connection_id)["path"] == "M 70 0 L 360 0"

    def test_removed_elements_leave_the_tree(self, model, bridge, two_nodes):
        a, b = two_nodes
        connection_id = model.addConnection(a, b)
        bridge.flush()
        model.removeNode(a)
        bridge.flush()
        assert bridge.nodeItem(a) == {}
        assert bridge.connectionItem(connection_id) == {}
        assert [item["id"] for item in bridge.nodeItems] == [b]

    def test_reset_rebuilds_everything(self, model, bridge, two_nodes):
        bridge.flush()
        model.importJson('{"nodes": [{"id": "x_1", "x": 5, "y": 5}], "connections": []}')
        bridge.flush()
        assert [item["id"] for item in bridge.nodeItems] == ["x_1"]

    def test_selection_restyles_connection(self, model, controller, bridge, two_nodes):
        a, b = two_nodes
        connection_id = model.addConnection(a, b)
        bridge.flush()
        controller.selectConnection(connection_id)
        bridge.flush()
        assert bridge.connectionItem(connection_id)["selected"]
        controller.clearSelection()
        bridge.flush()
        assert not bridge.connectionItem(connection_id)["selected"]

    def test_transform_follows_viewport(self, viewport, bridge):
        changes = []
        bridge.transformChanged.connect(lambda: changes.append(True))
        viewport.setViewport(10.0, 5.0, 2.0)
        assert changes == [True]
        assert bridge.transform == {"scale": 2.0, "translateX": -20.0, "translateY": -10.0}

    def test_close_stops_listening(self, model, bridge, two_nodes):
        bridge.flush()
        bridge.close()
        model.moveNode(two_nodes[0], 50.0, 50.0)
        assert not bridge.scheduler.pending


class TestOverlays:
    def test_preview_and_handles(self, model, controller, bridge, two_nodes):
        a, b = two_nodes
        controller.pointerDown(55.0, 0.0, BUTTON_PRIMARY, 0, 0)
        controller.pointerMove(200.0, 100.0, 0)
        assert bridge.overlays["previewPath"].startswith("M ")
        controller.pointerUp(390.0, 0.0, BUTTON_PRIMARY, 0)
        overlays = bridge.build_overlays()
        assert overlays["previewPath"] == ""
        connection_id = controller.selectedConnectionId
        model.setControlPoints(connection_id, [(200.0, 50.0)])
        handles = bridge.build_overlays()["handles"]
        assert [(h["x"], h["y"]) for h in handles] == [(200.0, 50.0)]

    def test_pending_and_selection_rect(self, controller, bridge, two_nodes):
        controller.pointerDown(55.0, 0.0, BUTTON_PRIMARY, 0, 0)
        controller.pointerUp(250.0, 250.0, BUTTON_PRIMARY, 0)
        pending = bridge.build_overlays()["pending"]
        assert (pending["x"], pending["y"]) == (250.0, 250.0)
        assert pending["confirmRadiusPx"] == 24.0
        controller.cancelPendingConnection()

        controller.pointerDown(-100.0, -100.0, BUTTON_PRIMARY, 0, 0)
        controller.pointerMove(100.0, 100.0, 0)
        rect = bridge.build_overlays()["selectionRect"]
        assert rect == {"x": -100.0, "y": -100.0, "width": 200.0, "height": 200.0}

    def test_label_editor_position_tracks_viewport(self, viewport, controller, bridge, two_nodes):
        a, _ = two_nodes
        controller.startNodeEdit(a)
        viewport.setViewport(-100.0, -50.0, 2.0)
        editor = bridge.build_overlays()["labelEditor"]
        assert (editor["x"], editor["y"]) == (200.0, 100.0)
        assert editor["text"] == "A"


def test_scheduler_flushes_sorted_ids(app):
    scheduler = FrameScheduler(16)
    frames = []
    scheduler.frameReady.connect(lambda nodes, connections, full: frames.append((nodes, connections, full)))
    scheduler.schedule_nodes(["b", "a"])
    scheduler.schedule_nodes(["a"])
    scheduler.schedule_full()
    scheduler.flush()
    scheduler.flush()
    assert frames == [(["a", "b"], [], True)]
    scheduler.schedule_connections(["c"])
    scheduler.cancel()
    scheduler.flush()
    assert len(frames) == 1
