"""Tests for hit testing priorities."""

from mindcanvas.hittest import CANVAS, CONNECTION, CONTROL_POINT, LABEL, NODE, RING, hit_test, node_at


def test_node_interior_and_ring(model, two_nodes):
    a, _ = two_nodes
    assert hit_test(model, (10.0, 10.0), 1.0).kind == NODE
    ring = hit_test(model, (55.0, 0.0), 1.0)
    assert (ring.kind, ring.node_id) == (RING, a)
    assert hit_test(model, (41.0, 0.0), 1.0).kind == CANVAS
    assert hit_test(model, (75.0, 0.0), 1.0).kind == CANVAS


def test_ring_width_is_constant_in_device_pixels(model, two_nodes):
    assert hit_test(model, (60.0, 0.0), 1.0).kind == RING
    assert hit_test(model, (60.0, 0.0), 2.0).kind == CANVAS
    assert hit_test(model, (100.0, 0.0), 0.5).kind == RING


def test_ring_around_polygonal_shape(model):
    node_id = model.addShapedNode("rectangle", 0.0, 300.0, "")
    assert hit_test(model, (0.0, 340.0), 1.0).kind == RING
    assert hit_test(model, (0.0, 320.0), 1.0).node_id == node_id


def test_topmost_node_wins(model):
    model.addNode(0.0, 0.0, "below")
    top = model.addNode(20.0, 0.0, "above")
    assert node_at(model, (10.0, 0.0)) == top


def test_trunk_and_label(model, two_nodes):
    a, b = two_nodes
    connection_id = model.addConnection(a, b)
    hit = hit_test(model, (200.0, 8.0), 1.0)
    assert (hit.kind, hit.connection_id) == (CONNECTION, connection_id)
    assert hit_test(model, (200.0, 15.0), 1.0).kind == CANVAS
    model.setConnectionLabel(connection_id, "label")
    assert hit_test(model, (200.0, 15.0), 1.0).kind == LABEL


def test_handles_only_for_selected_connection(model, two_nodes):
    a, b = two_nodes
    connection_id = model.addConnection(a, b)
    model.setControlPoints(connection_id, [(30.0, 0.0)])
    assert hit_test(model, (30.0, 0.0), 1.0).kind == NODE
    hit = hit_test(model, (30.0, 0.0), 1.0, selected_connection=connection_id)
    assert hit.kind == CONTROL_POINT
    assert hit.point_id == model.getConnection(connection_id).control_points[0].id
