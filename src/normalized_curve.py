"""
Arc-length normalised curves.

NormalizedCurve turns any parametric evaluator into a curve addressed by a
uniform arc-length parameter ``u`` in [0, 1]. The lookup table (LUT) is built
once at construction: the curve is sampled at MAX_RESOLUTION + 1 parameter
values, then re-sampled for a fixed number of rounds at the parameters that
would give uniform arc-length spacing under the previous table. The LUT is
then augmented with the turning angle at each sample plus its running sum and
sum of squares, which the Bezier segmenter uses as a curvature-variance cost.

All public queries take and return the arc-length parameter. The underlying
curve parameter is only visible through ``get_internal``/``evaluate``.
"""
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Sequence

import numpy as np

from rational_point import (
    RationalBounds,
    RationalPlane,
    RationalPoint,
    strip_area,
)

logger = logging.getLogger(__name__)

MAX_RESOLUTION = 250
MIN_STEP = 1.0 / MAX_RESOLUTION
MIN_STEP_FACTOR = 4.0 / 5.0
RELAXATION_ROUNDS = 20
MAX_SEARCH_ITERATIONS = 30
AREA_STEPS = 1000
LUT_SIZE = MAX_RESOLUTION + 1


@dataclass(frozen=True)
class LutEntry:
    """One row of a curve's arc-length lookup table."""
    p: RationalPoint
    direction: RationalPoint   # unit chord direction towards the next sample
    d: float                   # arc length from the start of the curve
    t: float                   # underlying curve parameter
    angle: float               # turning angle at this sample (radians)
    a: float                   # running sum of turning angles
    aa: float                  # running sum of squared turning angles


@dataclass(frozen=True)
class CurvePoint:
    """A point found on a curve and its arc-length parameter."""
    p: RationalPoint
    t: float


class NormalizedCurve(ABC):
    """Abstract arc-length parameterised curve.

    Subclasses implement ``evaluate(ts)``, returning an (N, dim + 1) array of
    points (weight last) for an array of curve parameters, and set
    ``point_type`` before calling ``super().__init__()``.
    """

    point_type = None

    def __init__(self):
        self.lut: List[LutEntry] = []
        self.length = 0.0
        self.populate_lut()

    # ─── Evaluation ──────────────────────────────────────────────────────

    @abstractmethod
    def evaluate(self, ts: np.ndarray) -> np.ndarray:
        """Evaluate the underlying curve at parameters ``ts``."""

    def get_internal(self, t: float) -> RationalPoint:
        return self.point_type.from_array(self.evaluate(np.array([t], dtype=float))[0])

    @property
    def dimension(self) -> int:
        return self.point_type.DIMENSION

    # ─── LUT construction ────────────────────────────────────────────────

    def populate_lut(self) -> None:
        ts = np.linspace(0.0, 1.0, LUT_SIZE)
        pts = self.evaluate(ts)
        d = self._arc_lengths(pts)

        for _ in range(RELAXATION_ROUNDS):
            if d[-1] <= 0.0:
                break
            targets = np.linspace(0.0, d[-1], LUT_SIZE)
            next_ts = np.interp(targets, d, ts)
            next_ts[0], next_ts[-1] = 0.0, 1.0
            next_pts = self.evaluate(next_ts)
            ts, pts = next_ts, next_pts
            d = self._arc_lengths(pts)

        self._lut_t = ts
        self._lut_d = d
        self._lut_points = pts
        self.length = float(d[-1])

        spatial = pts[:, :-1]
        chords = np.diff(spatial, axis=0)
        chord_len = np.linalg.norm(chords, axis=1)
        safe = np.where(chord_len > 0.0, chord_len, 1.0)
        units = chords / safe[:, None]
        directions = np.vstack([units, units[-1:]])

        angles = np.zeros(LUT_SIZE)
        cos = np.einsum("ij,ij->i", units[:-1], units[1:])
        # Clamp before arccos: rounding can push |cos| just past 1
        angles[1:-1] = np.arccos(np.clip(cos, -1.0, 1.0))
        valid = (chord_len[:-1] > 0.0) & (chord_len[1:] > 0.0)
        angles[1:-1] = np.where(valid, angles[1:-1], 0.0)
        self._lut_angle = angles
        self._lut_a = np.cumsum(angles)
        self._lut_aa = np.cumsum(angles * angles)

        point_type = self.point_type
        self.lut = [
            LutEntry(
                p=point_type.from_array(pts[i]),
                direction=point_type.from_array(np.append(directions[i], 0.0)),
                d=float(d[i]),
                t=float(ts[i]),
                angle=float(angles[i]),
                a=float(self._lut_a[i]),
                aa=float(self._lut_aa[i]),
            )
            for i in range(LUT_SIZE)
        ]
        self.bounds = RationalBounds.from_points([entry.p for entry in self.lut])
        self.corners = self.bounds.corners()

    @staticmethod
    def _arc_lengths(pts: np.ndarray) -> np.ndarray:
        seg = np.linalg.norm(np.diff(pts[:, :-1], axis=0), axis=1)
        return np.concatenate([[0.0], np.cumsum(seg)])

    # ─── Arc-length access ───────────────────────────────────────────────

    def _internal_params(self, us: np.ndarray) -> np.ndarray:
        if self.length <= 0.0:
            return np.clip(us, 0.0, 1.0)
        return np.interp(np.clip(us, 0.0, 1.0) * self.length, self._lut_d, self._lut_t)

    def get(self, u: float) -> RationalPoint:
        """Point at arc-length fraction ``u``; clamped to the end points."""
        if u <= 0.0:
            return self.lut[0].p
        if u >= 1.0:
            return self.lut[-1].p
        return self.get_internal(float(self._internal_params(np.array([u]))[0]))

    def get_many(self, us: Sequence[float]) -> np.ndarray:
        """Vectorised ``get``: (N, dim + 1) array for arc-length fractions."""
        us = np.asarray(us, dtype=float)
        result = self.evaluate(self._internal_params(us))
        result[us <= 0.0] = self._lut_points[0]
        result[us >= 1.0] = self._lut_points[-1]
        return result

    def arc_param(self, t: float) -> float:
        """Arc-length fraction of the underlying parameter ``t``."""
        if self.length <= 0.0:
            return float(t)
        return float(np.interp(t, self._lut_t, self._lut_d)) / self.length

    def get_n_in_range(self, n: int, t_min: float, t_max: float) -> List[RationalPoint]:
        """``n + 1`` points evenly spaced in arc length between two fractions."""
        us = np.linspace(t_min, t_max, n + 1)
        return [self.point_type.from_array(row) for row in self.get_many(us)]

    def as_list(self) -> List[RationalPoint]:
        return [entry.p for entry in self.lut]

    def get_min_resolution(self, t_min: float, t_max: float) -> int:
        """Number of samples needed between two fractions to avoid aliasing."""
        t_low, t_high = min(t_min, t_max), max(t_min, t_max)
        id_low = math.floor(t_low * LUT_SIZE)
        id_high = math.floor(t_high * LUT_SIZE)
        return math.ceil(MIN_STEP_FACTOR * (id_high - id_low))

    # ─── Searches ────────────────────────────────────────────────────────

    def find_in_lut(self, f: Callable[[RationalPoint], float]) -> int:
        """Index of the first LUT entry where increasing ``f`` reaches zero.

        Returns ``len(lut)`` when ``f`` is negative over the whole table.
        """
        low, high = 0, len(self.lut)
        while low < high:
            mid = (low + high) // 2
            if f(self.lut[mid].p) < 0:
                low = mid + 1
            else:
                high = mid
        return low

    def find_on_curve(
        self,
        t_min: float,
        t_max: float,
        f: Callable[[RationalPoint], float],
    ) -> CurvePoint:
        """Bisect for a root of ``f`` between two arc-length fractions.

        ``f`` must change sign across the bracket. Stops after
        MAX_SEARCH_ITERATIONS and returns the current estimate.
        """
        low, high = t_min, t_max
        rising = f(self.get(high)) >= f(self.get(low))
        mid = (low + high) / 2
        p = self.get(mid)
        for _ in range(MAX_SEARCH_ITERATIONS):
            mid = (low + high) / 2
            p = self.get(mid)
            val = f(p)
            if val == 0:
                break
            if (val > 0) == rising:
                high = mid
            else:
                low = mid
        return CurvePoint(p, mid)

    def find_smallest_on_curve(
        self,
        t_min: float,
        t_max: float,
        f: Callable[[RationalPoint], float],
    ) -> CurvePoint:
        """Ternary search for the minimum of ``f`` between two fractions.

        Assumes ``f`` is unimodal over the bracket; stops early once the
        value reaches zero or after MAX_SEARCH_ITERATIONS.
        """
        low, high = t_min, t_max
        mid_2 = (low + high) / 2
        p_2 = self.get(mid_2)
        d_2 = f(p_2)
        for _ in range(MAX_SEARCH_ITERATIONS):
            if d_2 <= 0:
                break
            step = (high - low) / 4
            mid_1, mid_3 = low + step, high - step
            p_1, p_3 = self.get(mid_1), self.get(mid_3)
            d_1, d_3 = f(p_1), f(p_3)
            if d_1 < d_2 and d_1 < d_3:
                high = mid_2
                mid_2, p_2, d_2 = mid_1, p_1, d_1
            elif d_3 < d_2:
                low = mid_2
                mid_2, p_2, d_2 = mid_3, p_3, d_3
            else:
                low, high = mid_1, mid_3
        return CurvePoint(p_2, mid_2)

    def find_dimm_dist(self, axis: int, dist: float) -> CurvePoint:
        """Point where coordinate ``axis`` first reaches ``dist``.

        The LUT gives a coarse bracket which is refined by bisection. If the
        curve starts at or beyond ``dist`` the start point is returned with
        ``t = 0``; if it never reaches ``dist`` the end point with ``t = 1``.
        """
        values = self._lut_points[:, axis] - dist
        if values[0] >= 0:
            return CurvePoint(self.lut[0].p, 0.0)
        above = np.nonzero(values >= 0)[0]
        if len(above) == 0:
            return CurvePoint(self.lut[-1].p, 1.0)
        idx = int(above[0])
        if values[idx] == 0:
            return CurvePoint(self.lut[idx].p, self._fraction(idx))
        return self.find_on_curve(
            self._fraction(idx - 1),
            self._fraction(idx),
            lambda p: p.dimm_dist_f(axis, dist),
        )

    def _fraction(self, idx: int) -> float:
        if self.length <= 0.0:
            return idx / MAX_RESOLUTION
        return float(self._lut_d[idx]) / self.length

    def find_plane_intersection(self, plane: RationalPlane) -> List[CurvePoint]:
        """All crossings of the curve with ``plane``, in curve order."""
        corner_signs = [
            np.sign(plane.signed_distance(c)) for c in self.corners
        ]
        if abs(sum(corner_signs)) == len(corner_signs):
            return []

        origin = plane.origin.spatial_array()
        normal = plane.direction.spatial_array()
        s = (self._lut_points[:, :-1] - origin) @ normal

        results: List[CurvePoint] = []
        for i in range(LUT_SIZE):
            if s[i] == 0.0:
                results.append(CurvePoint(self.lut[i].p, self._fraction(i)))
                continue
            if i + 1 < LUT_SIZE and s[i] * s[i + 1] < 0.0:
                frac = s[i] / (s[i] - s[i + 1])
                row = self._lut_points[i] * (1 - frac) + self._lut_points[i + 1] * frac
                u = self._fraction(i) * (1 - frac) + self._fraction(i + 1) * frac
                results.append(CurvePoint(self.point_type.from_array(row), u))
        return results

    def find_area(
        self,
        t_low: float,
        t_up: float,
        height_axis: int,
        width_axis: int,
    ) -> float:
        """Cross-sectional area between two fractions by trapezoid summation.

        Each strip contributes its height along ``height_axis`` times the
        mean coordinate along ``width_axis``.
        """
        if t_up <= t_low:
            return 0.0
        pts = self.get_many(np.linspace(t_low, t_up, AREA_STEPS + 1))
        areas = strip_area(
            pts[:-1, height_axis], pts[1:, height_axis],
            pts[:-1, width_axis], pts[1:, width_axis],
        )
        return abs(float(np.sum(areas)))

    # ─── Summaries ───────────────────────────────────────────────────────

    def lut_arrays(self):
        """(t, d, angle, a, aa) arrays of the LUT."""
        return self._lut_t, self._lut_d, self._lut_angle, self._lut_a, self._lut_aa

    def sample_distances(self, n: int) -> np.ndarray:
        """Chord lengths between ``n + 1`` uniformly spaced arc-length samples."""
        pts = self.get_many(np.linspace(0.0, 1.0, n + 1))
        return np.linalg.norm(np.diff(pts[:, :-1], axis=0), axis=1)

