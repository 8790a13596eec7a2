"""
Catmull-Rom spline through 2D points, used for division curves in (u, t)
parameter space.
"""
from typing import Sequence

import numpy as np

from normalized_curve import NormalizedCurve
from rational_point import Point2D, points_to_array

# Knot spacing floor so repeated control points don't divide by zero
MIN_KNOT = 1e-12


class CatmullRom(NormalizedCurve):
    """Interpolating spline through ``controls``.

    Args:
        controls: points to pass through. With ``flip_ends`` the curve spans
            all of them; without it the first and last act only as tangent
            guides and the curve runs from ``controls[1]`` to ``controls[-2]``.
        alpha: knot parameterisation exponent (0.5 is centripetal).
        tension: 0 gives the standard spline, 1 collapses the tangents.
        flip_ends: add mirrored phantom points beyond each end.
    """

    point_type = Point2D

    def __init__(
        self,
        controls: Sequence[Point2D],
        alpha: float = 0.95,
        tension: float = 0.05,
        flip_ends: bool = True,
    ):
        controls = list(controls)
        if flip_ends:
            if len(controls) < 2:
                raise ValueError("CatmullRom needs at least 2 control points")
            first = controls[0].mul(2).sub(controls[1])
            last = controls[-1].mul(2).sub(controls[-2])
            controls = [first] + controls + [last]
        elif len(controls) < 4:
            raise ValueError("CatmullRom without flipped ends needs at least 4 points")

        self.controls = controls
        self.alpha = alpha
        self.tension = tension

        pts = points_to_array(controls, spatial=True)
        s = 1.0 - tension
        coeffs = []
        for i in range(1, len(pts) - 2):
            p0, p1, p2, p3 = pts[i - 1], pts[i], pts[i + 1], pts[i + 2]
            t01 = max(np.linalg.norm(p1 - p0) ** alpha, MIN_KNOT)
            t12 = max(np.linalg.norm(p2 - p1) ** alpha, MIN_KNOT)
            t23 = max(np.linalg.norm(p3 - p2) ** alpha, MIN_KNOT)

            m1 = (p2 - p1 + ((p1 - p0) / t01 - (p2 - p0) / (t01 + t12)) * t12) * s
            m2 = (p2 - p1 + ((p3 - p2) / t23 - (p3 - p1) / (t12 + t23)) * t12) * s

            a = 2.0 * (p1 - p2) + m1 + m2
            b = -3.0 * (p1 - p2) - 2.0 * m1 - m2
            coeffs.append((a, b, m1, p1))
        self._coeffs = np.array(coeffs)  # (segments, 4, 2)
        super().__init__()

    @property
    def num_segments(self) -> int:
        return len(self._coeffs)

    def evaluate(self, ts: np.ndarray) -> np.ndarray:
        ts = np.asarray(ts, dtype=float)
        n = self.num_segments
        t_rel = np.clip(ts, 0.0, 1.0) * n
        idx = np.clip(np.floor(t_rel).astype(int), 0, n - 1)
        t = (t_rel - idx)[:, None]
        c = self._coeffs[idx]
        xy = c[:, 0] * t ** 3 + c[:, 1] * t ** 2 + c[:, 2] * t + c[:, 3]

        result = np.ones((len(ts), 3))
        result[:, :2] = xy
        result[ts >= 1.0] = self.controls[-2].to_array()
        result[ts <= 0.0] = self.controls[1].to_array()
        return result

    def __repr__(self) -> str:
        return f"CatmullRom(segments={self.num_segments}, length={self.length:.4g})"
