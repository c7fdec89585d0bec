"""Tests for the viewport transform."""

import math

import pytest

from mindcanvas import EditorConfig, Viewport


class TestConversions:
    def test_identity_by_default(self, viewport):
        assert viewport.screen_to_world(10.0, 20.0) == (10.0, 20.0)
        assert viewport.zoom == 1.0

    @pytest.mark.parametrize("zoom", [0.1, 0.5, 1.0, 2.5, 5.0])
    def test_round_trip(self, viewport, zoom):
        viewport.setViewport(-120.0, 75.5, zoom)
        for point in [(0.0, 0.0), (123.4, 56.7), (-800.0, 1e4)]:
            back = viewport.world_to_screen(*viewport.screen_to_world(*point))
            assert back == pytest.approx(point, rel=1e-9, abs=1e-9)

    def test_qml_slots_return_points(self, viewport):
        viewport.setViewport(10.0, 20.0, 2.0)
        world = viewport.screenToWorld(100.0, 100.0)
        assert (world.x(), world.y()) == pytest.approx((60.0, 70.0))
        screen = viewport.worldToScreen(60.0, 70.0)
        assert (screen.x(), screen.y()) == pytest.approx((100.0, 100.0))

    def test_visible_size_follows_zoom(self, viewport):
        viewport.setViewport(0.0, 0.0, 2.0)
        assert viewport.visibleWidth == pytest.approx(400.0)
        assert viewport.visibleHeight == pytest.approx(300.0)


class TestZoom:
    def test_anchor_point_stays_fixed(self, viewport):
        viewport.setViewport(33.0, -12.0, 0.8)
        anchor = (250.0, 410.0)
        before = viewport.screen_to_world(*anchor)
        assert viewport.zoomAt(anchor[0], anchor[1], 1.7)
        assert viewport.screen_to_world(*anchor) == pytest.approx(before)
        assert viewport.zoom == pytest.approx(1.36)

    def test_zoom_saturates_at_bounds(self, viewport):
        viewport.zoomAt(0.0, 0.0, 100.0)
        assert viewport.zoom == 5.0
        assert not viewport.zoomAt(0.0, 0.0, 2.0)
        viewport.zoomAt(0.0, 0.0, 1e-6)
        assert viewport.zoom == pytest.approx(0.1)

    @pytest.mark.parametrize("factor", [0.0, -1.0, math.nan, math.inf])
    def test_invalid_factors_are_ignored(self, viewport, factor):
        changes = []
        viewport.viewportChanged.connect(lambda: changes.append(True))
        assert not viewport.zoomAt(10.0, 10.0, factor)
        assert viewport.zoom == 1.0
        assert changes == []

    def test_zoom_in_out_and_reset(self, viewport):
        centre = viewport.screen_to_world(400.0, 300.0)
        viewport.zoomIn()
        assert viewport.zoom == pytest.approx(1.2)
        assert viewport.screen_to_world(400.0, 300.0) == pytest.approx(centre)
        viewport.zoomOut()
        assert viewport.zoom == pytest.approx(1.0)
        viewport.pan(50.0, 50.0)
        viewport.resetZoom()
        assert (viewport.originX, viewport.originY, viewport.zoom) == (0.0, 0.0, 1.0)

    def test_wheel_direction(self, viewport):
        viewport.wheel(0.0, 0.0, 120.0)
        assert viewport.zoom == pytest.approx(1.1)
        viewport.wheel(0.0, 0.0, -120.0)
        assert viewport.zoom == pytest.approx(0.99)

    def test_custom_bounds(self, app):
        viewport = Viewport(config=EditorConfig(min_zoom=0.5, max_zoom=2.0))
        viewport.zoomAt(0.0, 0.0, 10.0)
        assert viewport.zoom == 2.0


class TestPan:
    def test_grab_semantics(self, viewport):
        viewport.setViewport(0.0, 0.0, 2.0)
        viewport.pan(100.0, -40.0)
        assert viewport.originX == pytest.approx(-50.0)
        assert viewport.originY == pytest.approx(20.0)

    def test_zero_pan_emits_nothing(self, viewport):
        changes = []
        viewport.viewportChanged.connect(lambda: changes.append(True))
        viewport.pan(0.0, 0.0)
        assert changes == []
        viewport.pan(1.0, 0.0)
        assert changes == [True]

    def test_center_on(self, viewport):
        viewport.centerOn(1000.0, 500.0)
        assert viewport.screen_to_world(400.0, 300.0) == pytest.approx((1000.0, 500.0))


def test_group_transform_maps_world_to_device(viewport):
    viewport.setViewport(15.0, -30.0, 1.5)
    transform = viewport.group_transform()
    wx, wy = 100.0, 40.0
    device = (wx * transform["scale"] + transform["translateX"], wy * transform["scale"] + transform["translateY"])
    assert device == pytest.approx(viewport.world_to_screen(wx, wy))


def test_serialization_round_trip(viewport, app):
    viewport.setViewport(12.0, 34.0, 0.75)
    restored = Viewport(800.0, 600.0)
    restored.from_dict(viewport.to_dict())
    assert (restored.originX, restored.originY, restored.zoom) == (12.0, 34.0, 0.75)
    restored.from_dict({"x": "bad"})
    assert restored.originX == 12.0
