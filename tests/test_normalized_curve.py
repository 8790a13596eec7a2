"""Tests for arc-length parameterisation and curve searches."""
import numpy as np
import pytest

from catmull_rom import CatmullRom
from normalized_curve import LUT_SIZE, MAX_RESOLUTION
from rational_bezier import RationalBezier
from rational_point import Point2D, Point3D, RationalPlane


@pytest.fixture
def skewed_curve():
    """Quadratic whose Bezier parameter runs at very uneven speed."""
    return RationalBezier([Point2D(0, 0), Point2D(1, 5), Point2D(10, 0)])


@pytest.fixture
def x_line():
    return RationalBezier([Point3D(0, 0, 0), Point3D(10, 0, 0)])


class TestArcLengthUniformity:
    """Samples at even u are evenly spaced along the curve."""

    def test_bezier_spacing(self, skewed_curve):
        pts = skewed_curve.get_many(np.linspace(0.0, 1.0, 21))[:, :2]
        dists = np.linalg.norm(np.diff(pts, axis=0), axis=1)
        assert dists.std() / dists.mean() < 1e-2

    def test_sample_distances(self, skewed_curve):
        dists = skewed_curve.sample_distances(10)
        assert len(dists) == 10
        assert dists.sum() == pytest.approx(skewed_curve.length, rel=1e-3)

    def test_catmull_rom_spacing(self):
        curve = CatmullRom([Point2D(0, 0), Point2D(1, 3), Point2D(2, 3.5), Point2D(6, 4)])
        pts = curve.get_many(np.linspace(0.0, 1.0, 11))[:, :2]
        dists = np.linalg.norm(np.diff(pts, axis=0), axis=1)
        assert dists.std() / dists.mean() < 1e-2

    def test_lut_layout(self, skewed_curve):
        assert len(skewed_curve.lut) == LUT_SIZE
        assert skewed_curve.lut[0].d == 0.0
        assert skewed_curve.lut[-1].d == pytest.approx(skewed_curve.length)
        t, d, angle, a, aa = skewed_curve.lut_arrays()
        assert np.all(np.diff(d) > 0)
        assert a[-1] == pytest.approx(angle.sum())
        assert aa[-1] == pytest.approx((angle * angle).sum())


class TestEndpoints:
    def test_get_ends_are_exact(self, skewed_curve):
        assert skewed_curve.get(0.0) == Point2D(0, 0)
        assert skewed_curve.get(1.0) == Point2D(10, 0)

    def test_get_clamps(self, skewed_curve):
        assert skewed_curve.get(-0.5) == Point2D(0, 0)
        assert skewed_curve.get(1.5) == Point2D(10, 0)

    def test_line_length(self):
        line = RationalBezier([Point2D(0, 0), Point2D(3, 4)])
        assert line.length == pytest.approx(5.0)
        assert line.get(0.5).spatial() == pytest.approx((1.5, 2.0))


class TestSampling:
    def test_min_resolution(self, x_line):
        assert x_line.get_min_resolution(0.0, 1.0) == 201
        assert x_line.get_min_resolution(1.0, 0.0) == 201
        assert x_line.get_min_resolution(0.5, 0.5) == 0

    def test_get_n_in_range(self, x_line):
        pts = x_line.get_n_in_range(4, 1.0, 0.5)
        assert len(pts) == 5
        assert [p.x for p in pts] == pytest.approx([10.0, 8.75, 7.5, 6.25, 5.0])

    def test_arc_param(self, x_line):
        t = x_line.lut[100].t
        assert x_line.arc_param(t) == pytest.approx(100 / MAX_RESOLUTION, abs=1e-9)

    def test_as_list(self, x_line):
        assert len(x_line.as_list()) == LUT_SIZE


class TestSearches:
    def test_find_in_lut(self, x_line):
        idx = x_line.find_in_lut(lambda p: p.x - 5.0)
        assert abs(idx - 125) <= 1

    def test_find_in_lut_never_reached(self, x_line):
        assert x_line.find_in_lut(lambda p: p.x - 50.0) == LUT_SIZE

    def test_find_on_curve(self, x_line):
        found = x_line.find_on_curve(0.0, 1.0, lambda p: p.x - 7.0)
        assert found.t == pytest.approx(0.7, abs=1e-6)
        assert found.p.x == pytest.approx(7.0, abs=1e-5)

    def test_find_on_curve_falling(self, x_line):
        found = x_line.find_on_curve(0.0, 1.0, lambda p: 7.0 - p.x)
        assert found.t == pytest.approx(0.7, abs=1e-6)

    def test_find_smallest_on_curve(self, x_line):
        target = Point3D(5, 1, 0)
        found = x_line.find_smallest_on_curve(0.0, 1.0, lambda p: p.dist(target))
        assert found.t == pytest.approx(0.5, abs=1e-3)

    def test_find_dimm_dist(self, x_line):
        assert x_line.find_dimm_dist(0, 2.5).t == pytest.approx(0.25, abs=1e-6)

    def test_find_dimm_dist_sentinels(self, x_line):
        before = x_line.find_dimm_dist(0, -1.0)
        assert before.t == 0.0
        assert before.p == x_line.get(0.0)
        after = x_line.find_dimm_dist(0, 11.0)
        assert after.t == 1.0
        assert after.p == x_line.get(1.0)

    def test_plane_intersection(self, x_line):
        plane = RationalPlane(Point3D(2.5, 0, 0), Point3D(1, 0, 0))
        found = x_line.find_plane_intersection(plane)
        assert len(found) == 1
        assert found[0].t == pytest.approx(0.25, abs=1e-9)
        assert found[0].p.x == pytest.approx(2.5)

    def test_plane_miss(self, x_line):
        plane = RationalPlane(Point3D(20, 0, 0), Point3D(1, 0, 0))
        assert x_line.find_plane_intersection(plane) == []

    def test_plane_crossed_twice(self):
        arch = RationalBezier([Point3D(0, 0, 0), Point3D(5, 10, 0), Point3D(10, 0, 0)])
        plane = RationalPlane(Point3D(0, 2, 0), Point3D(0, 1, 0))
        found = arch.find_plane_intersection(plane)
        assert len(found) == 2
        assert found[0].t < found[1].t
        for cp in found:
            assert cp.p.y == pytest.approx(2.0, abs=1e-9)


class TestArea:
    def test_linear_section_area(self):
        # z = 1.5 y on 0 <= y <= 2 integrates to 3
        line = RationalBezier([Point3D(0, 0, 0), Point3D(0, 2, 3)])
        assert line.find_area(0.0, 1.0, 1, 2) == pytest.approx(3.0)

    def test_empty_range(self):
        line = RationalBezier([Point3D(0, 0, 0), Point3D(0, 2, 3)])
        assert line.find_area(0.6, 0.2, 1, 2) == 0.0
