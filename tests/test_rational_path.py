"""Tests for line and arc path primitives."""
import math

import numpy as np
import pytest

from rational_path import RationalArc, RationalLine, total_length
from rational_point import Point2D, Point3D

H = math.sqrt(0.5)


class TestRationalLine:
    def test_length_and_distance(self):
        line = RationalLine(Point2D(0, 0), Point2D(2, 0))
        assert line.length == pytest.approx(2.0)
        assert line.dist_to_point(Point2D(1, 1)) == pytest.approx(1.0)

    def test_distance_clamps_to_ends(self):
        line = RationalLine(Point2D(0, 0), Point2D(2, 0))
        assert line.dist_to_point(Point2D(3, 0)) == pytest.approx(1.0)
        assert line.dist_to_point(Point2D(-1, 0)) == pytest.approx(1.0)

    def test_zero_length_line(self):
        line = RationalLine(Point3D(1, 1, 1), Point3D(1, 1, 1))
        assert line.dist_to_point(Point3D(1, 1, 2)) == pytest.approx(1.0)

    def test_as_points(self):
        line = RationalLine(Point2D(0, 0), Point2D(2, 0))
        assert line.as_points() == [Point2D(0, 0), Point2D(2, 0)]


class TestRationalArc:
    """Quarter circle around the origin."""

    @pytest.fixture
    def quarter(self):
        return RationalArc(Point2D(0, 0), Point2D(1, 0), Point2D(H, H), Point2D(0, 1), 1.0)

    def test_sweep_and_length(self, quarter):
        assert quarter.angle == pytest.approx(math.pi / 2)
        assert quarter.length == pytest.approx(math.pi / 2)

    def test_distance_on_sweep(self, quarter):
        assert quarter.dist_to_point(Point2D(2, 0)) == pytest.approx(1.0)
        assert quarter.dist_to_point(Point2D(H, H)) == pytest.approx(0.0, abs=1e-12)

    def test_distance_outside_sweep_uses_ends(self, quarter):
        assert quarter.dist_to_point(Point2D(0, -1)) == pytest.approx(math.sqrt(2))

    def test_clockwise_arc(self):
        arc = RationalArc(Point2D(0, 0), Point2D(0, 1), Point2D(H, H), Point2D(1, 0), 1.0)
        assert arc.angle == pytest.approx(math.pi / 2)
        assert arc.dist_to_point(Point2D(-1, 0)) == pytest.approx(math.sqrt(2))

    def test_arc_in_3d_counts_off_plane_distance(self):
        arc = RationalArc(
            Point3D(0, 0, 0), Point3D(1, 0, 0), Point3D(H, H, 0), Point3D(0, 1, 0), 1.0
        )
        assert arc.dist_to_point(Point3D(H, H, 1)) == pytest.approx(1.0)

    def test_as_points_on_circle(self, quarter):
        pts = quarter.as_points(9)
        assert pts[0] == quarter.a
        assert pts[-1] == quarter.c
        radii = [math.hypot(p.x, p.y) for p in pts]
        np.testing.assert_allclose(radii, 1.0)


def test_total_length():
    paths = [RationalLine(Point2D(0, 0), Point2D(1, 0)), RationalLine(Point2D(1, 0), Point2D(1, 2))]
    assert total_length(paths) == pytest.approx(3.0)
