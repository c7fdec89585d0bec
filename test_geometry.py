"""Tests for the pure geometry helpers."""

import math

import pytest

from mindcanvas.geometry import (
    bezier_point,
    cubic_path,
    edge_point,
    fmt,
    line_path,
    normalize_rect,
    point_in_shape,
    point_segment_distance,
    polyline_distance,
    quadratic_path,
    rects_overlap,
    shape_outline_path,
    unit_vector,
)
from mindcanvas.types import ShapeKind


def test_unit_vector_of_coincident_points_is_none():
    assert unit_vector((1.0, 1.0), (1.0, 1.0)) is None
    assert unit_vector((0.0, 0.0), (3.0, 4.0)) == pytest.approx((0.6, 0.8))


def test_edge_point_projects_onto_radius():
    assert edge_point((0.0, 0.0), (10.0, 0.0), 4.0) == pytest.approx((4.0, 0.0))
    assert edge_point((5.0, 5.0), (5.0, 5.0), 4.0) == (5.0, 5.0)


def test_segment_and_polyline_distance():
    assert point_segment_distance((5.0, 3.0), (0.0, 0.0), (10.0, 0.0)) == pytest.approx(3.0)
    assert point_segment_distance((-4.0, 3.0), (0.0, 0.0), (10.0, 0.0)) == pytest.approx(5.0)
    assert polyline_distance((0.0, 0.0), []) == math.inf
    assert polyline_distance((0.0, 1.0), [(0.0, 0.0), (5.0, 0.0), (5.0, 5.0)]) == pytest.approx(1.0)


def test_rect_helpers():
    assert normalize_rect((10.0, 10.0), (0.0, 5.0)) == (0.0, 5.0, 10.0, 5.0)
    assert rects_overlap((0.0, 0.0, 10.0, 10.0), (5.0, 5.0, 10.0, 10.0))
    assert not rects_overlap((0.0, 0.0, 10.0, 10.0), (11.0, 0.0, 5.0, 5.0))


@pytest.mark.parametrize(
    "kind, inside, outside",
    [
        (ShapeKind.CIRCLE, (30.0, 0.0), (40.0, 40.0)),
        (ShapeKind.RECTANGLE, (45.0, 45.0), (55.0, 0.0)),
        (ShapeKind.DIAMOND, (20.0, 20.0), (40.0, 40.0)),
        (ShapeKind.TRIANGLE, (0.0, 30.0), (45.0, -45.0)),
        (ShapeKind.HEXAGON, (0.0, 0.0), (49.0, 49.0)),
    ],
)
def test_point_in_shape(kind, inside, outside):
    assert point_in_shape(inside, kind, 100.0, 100.0, (0.0, 0.0))
    assert not point_in_shape(outside, kind, 100.0, 100.0, (0.0, 0.0))


def test_bezier_point_endpoints_and_midpoint():
    control = [(0.0, 0.0), (50.0, 100.0), (100.0, 0.0)]
    assert bezier_point(control, 0.0) == (0.0, 0.0)
    assert bezier_point(control, 1.0) == (100.0, 0.0)
    assert bezier_point(control, 0.5) == pytest.approx((50.0, 50.0))


def test_path_strings():
    assert line_path((0.0, 0.0), (10.5, -2.0)) == "M 0 0 L 10.5 -2"
    assert quadratic_path((0.0, 0.0), (5.0, 5.0), (10.0, 0.0)) == "M 0 0 Q 5 5 10 0"
    assert cubic_path((0.0, 0.0), (1.0, 2.0), (3.0, 4.0), (5.0, 6.0)) == "M 0 0 C 1 2 3 4 5 6"
    assert fmt(-0.0001) == "0"
    assert fmt(1.23456) == "1.235"


def test_shape_outline_paths():
    assert shape_outline_path(ShapeKind.CIRCLE, 80.0, 80.0) == ""
    diamond = shape_outline_path(ShapeKind.DIAMOND, 100.0, 60.0)
    assert diamond.startswith("M 0 -30")
    assert diamond.endswith("Z")
    assert "Q" in shape_outline_path(ShapeKind.ROUNDED_RECTANGLE, 120.0, 60.0, 15.0)
