"""
Rational Bezier curves and their segmentation into arcs and lines.

Segmentation splits the LUT index range into contiguous groups with low
turning-angle variance, 1D k-means style: each interior divisor is nudged
one sample left or right while that lowers the summed variance of its two
neighbouring groups. Each group then becomes a RationalSegment. The group
count grows from ``min_segments`` until the fitted error is within the
tolerance or ``max_segments`` is reached.
"""
import logging
import math
from typing import Dict, List, Sequence, Tuple

import numpy as np

from normalized_curve import LUT_SIZE, NormalizedCurve
from rational_point import RationalPoint, points_to_array
from rational_segment import RationalSegment

logger = logging.getLogger(__name__)

# Upper bound on divisor relaxation sweeps per segment count
MAX_DIVISOR_PASSES = 4 * LUT_SIZE


class RationalBezier(NormalizedCurve):
    """Bezier curve with per-control-point weights.

    ``get_internal(t)`` is the rational Bernstein form
    ``sum(w_i B_i(t) P_i) / sum(w_i B_i(t))``; ``t <= 0`` and ``t >= 1``
    return the end control points exactly.
    """

    def __init__(self, controls: Sequence[RationalPoint]):
        controls = list(controls)
        if len(controls) < 2:
            raise ValueError(
                f"A Bezier curve needs at least 2 control points, got {len(controls)}"
            )
        point_type = type(controls[0])
        if any(type(c) is not point_type for c in controls):
            raise ValueError("Control points must all have the same dimension")
        if any(c.w <= 0 for c in controls):
            raise ValueError("Control point weights must be positive")

        self.controls = controls
        self.point_type = point_type
        self._control_array = points_to_array(controls)
        degree = len(controls) - 1
        self._binomials = np.array(
            [math.comb(degree, i) for i in range(degree + 1)], dtype=float
        )
        self._segments: Dict[Tuple[float, int, int], List[RationalSegment]] = {}
        super().__init__()

    @property
    def degree(self) -> int:
        return len(self.controls) - 1

    def evaluate(self, ts: np.ndarray) -> np.ndarray:
        ts = np.asarray(ts, dtype=float)
        n = self.degree
        idx = np.arange(n + 1)
        inner = np.clip(ts, 0.0, 1.0)[:, None]
        basis = self._binomials * inner ** idx * (1.0 - inner) ** (n - idx)

        weights = self._control_array[:, -1]
        weighted = basis * weights
        denom = weighted.sum(axis=1)
        denom = np.where(denom > 0.0, denom, 1.0)

        result = np.empty((len(ts), self._control_array.shape[1]))
        result[:, :-1] = (weighted @ self._control_array[:, :-1]) / denom[:, None]
        result[:, -1] = (weighted @ weights) / denom

        result[ts <= 0.0] = self._control_array[0]
        result[ts >= 1.0] = self._control_array[-1]
        return result

    def get_internal(self, t: float) -> RationalPoint:
        if t <= 0:
            return self.controls[0]
        if t >= 1:
            return self.controls[-1]
        return super().get_internal(t)

    # ─── Segmentation ────────────────────────────────────────────────────

    def find_segments(
        self,
        variance_tolerance: float,
        min_segments: int = 1,
        max_segments: int = 1,
    ) -> List[RationalSegment]:
        """Approximate the curve by arcs and lines.

        Results are cached per argument triple.

        Args:
            variance_tolerance: acceptable total fitted error.
            min_segments: segment count to start from.
            max_segments: largest segment count to try.

        Returns:
            The segmentation within tolerance with the fewest segments, or
            the lowest-error segmentation tried if none is within tolerance.
        """
        key = (variance_tolerance, min_segments, max_segments)
        if key in self._segments:
            return self._segments[key]

        if min_segments < 1:
            raise ValueError(f"min_segments must be at least 1, got {min_segments}")
        max_segments = max(min_segments, max_segments)
        max_segments = min(max_segments, LUT_SIZE - 1)
        min_segments = min(min_segments, max_segments)

        best: List[RationalSegment] = []
        best_error = math.inf
        for num_segs in range(min_segments, max_segments + 1):
            segments = self._build_segments(self._find_divisors(num_segs))
            error = total_error(segments)
            if error < best_error:
                best, best_error = segments, error
            if error <= variance_tolerance:
                best = segments
                break

        logger.debug(
            "Segmented curve into %d segments (error %.4g)", len(best), best_error
        )
        self._segments[key] = best
        return best

    def _find_divisors(self, num_segs: int) -> List[int]:
        """LUT indices splitting the table into ``num_segs`` low-variance groups."""
        _, _, angles, _, _ = self.lut_arrays()
        s1 = np.concatenate([[0.0], np.cumsum(angles)])
        s2 = np.concatenate([[0.0], np.cumsum(angles * angles)])

        def cost(lo: int, hi: int) -> float:
            n = hi - lo
            if n <= 0:
                return 0.0
            total = s1[hi] - s1[lo]
            return (s2[hi] - s2[lo]) - total * total / n

        last = LUT_SIZE - 1
        divisors = [round(i * last / num_segs) for i in range(num_segs + 1)]

        for _ in range(MAX_DIVISOR_PASSES):
            changed = False
            for i in range(1, num_segs):
                lo, mid, hi = divisors[i - 1], divisors[i], divisors[i + 1]
                current = cost(lo, mid) + cost(mid, hi)
                for candidate in (mid - 1, mid + 1):
                    if candidate <= lo or candidate >= hi:
                        continue
                    if cost(lo, candidate) + cost(candidate, hi) < current - 1e-15:
                        divisors[i] = candidate
                        changed = True
                        break
            if not changed:
                break
        return divisors

    def _build_segments(self, divisors: List[int]) -> List[RationalSegment]:
        segments = []
        for lo, hi in zip(divisors[:-1], divisors[1:]):
            start, end = self.lut[lo], self.lut[hi]
            segments.append(
                RationalSegment(
                    self,
                    start.p,
                    self._fraction(lo),
                    end.p,
                    self._fraction(hi),
                )
            )
        return segments

    def as_polyline(self, n: int = 50) -> List[RationalPoint]:
        return self.get_n_in_range(n, 0.0, 1.0)

    def __repr__(self) -> str:
        return f"RationalBezier(degree={self.degree}, length={self.length:.4g})"


def total_error(segments: Sequence[RationalSegment]) -> float:
    return float(sum(seg.error for seg in segments))
