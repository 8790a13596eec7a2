"""Tests for the Catmull-Rom division curve spline."""
import numpy as np
import pytest

from catmull_rom import CatmullRom
from rational_point import Point2D


@pytest.fixture
def uv_points():
    return [Point2D(0.0, 0.2), Point2D(1.0, 0.4), Point2D(2.0, 0.5), Point2D(3.0, 0.45)]


class TestCatmullRom:
    def test_endpoints_exact(self, uv_points):
        curve = CatmullRom(uv_points)
        assert curve.get(0.0) == uv_points[0]
        assert curve.get(1.0) == uv_points[-1]

    def test_passes_near_interior_controls(self, uv_points):
        curve = CatmullRom(uv_points)
        lut = np.array([entry.p.spatial() for entry in curve.lut])
        for control in uv_points[1:-1]:
            gaps = np.linalg.norm(lut - np.array(control.spatial()), axis=1)
            assert gaps.min() < 0.02

    def test_segment_count(self, uv_points):
        assert CatmullRom(uv_points).num_segments == len(uv_points) - 1
        assert CatmullRom(uv_points, flip_ends=False).num_segments == len(uv_points) - 3

    def test_without_flip_spans_inner_controls(self, uv_points):
        curve = CatmullRom(uv_points, flip_ends=False)
        assert curve.get(0.0) == uv_points[1]
        assert curve.get(1.0) == uv_points[-2]

    def test_two_points_is_a_line(self):
        curve = CatmullRom([Point2D(0, 0), Point2D(4, 2)])
        assert curve.length == pytest.approx(np.hypot(4, 2), rel=1e-6)

    def test_too_few_points(self):
        with pytest.raises(ValueError):
            CatmullRom([Point2D(0, 0)])
        with pytest.raises(ValueError):
            CatmullRom([Point2D(0, 0), Point2D(1, 0), Point2D(2, 0)], flip_ends=False)

    def test_repeated_points_do_not_blow_up(self):
        curve = CatmullRom([Point2D(0, 0), Point2D(0, 0), Point2D(1, 1)])
        assert np.isfinite(curve.length)

    def test_lookup_by_u(self, uv_points):
        curve = CatmullRom(uv_points)
        assert curve.find_dimm_dist(0, 1.0).p.y == pytest.approx(0.4, abs=1e-4)
        # Outside the u range the nearest end is used
        assert curve.find_dimm_dist(0, 5.0).p == uv_points[-1]
        assert curve.find_dimm_dist(0, -1.0).p == uv_points[0]
