"""
Arc-or-line approximation of one sub-range of a curve.

The fitted primitive passes through the sub-range's end points and a third
point on the curve. That middle point is chosen by a quaternary search over
the curve parameter minimising an arc-length weighted point-to-path error,
sampled at N_CHECKS interior points. The search assumes the error is
unimodal over the bracket, which holds for the smooth hull curves it is used
on; it is capped at MAX_SEARCH_ITERATIONS rounds.
"""
import numpy as np

from normalized_curve import MAX_SEARCH_ITERATIONS
from rational_math import circle_center
from rational_path import RationalArc, RationalLine, RationalPath
from rational_point import RationalPoint

N_CHECKS = 100
# Stop refining once the bracket is narrower than this (arc-length fraction)
MIN_BRACKET = 1e-7


class RationalSegment:
    """Best line or arc through ``[start_t, end_t]`` of ``parent``.

    Args:
        parent: the NormalizedCurve the segment approximates.
        start_p, end_p: curve points at the segment ends.
        start_t, end_t: arc-length fractions of the ends on ``parent``.
    """

    def __init__(
        self,
        parent,
        start_p: RationalPoint,
        start_t: float,
        end_p: RationalPoint,
        end_t: float,
    ):
        self.parent = parent
        self.start_p = start_p
        self.start_t = start_t
        self.end_p = end_p
        self.end_t = end_t

        samples = parent.get_many(np.linspace(start_t, end_t, N_CHECKS + 2))
        # Interior points only, each weighted by the chord leading up to it
        self._samples = samples[1:-1, :-1]
        self._weights = np.linalg.norm(np.diff(samples[:-1, :-1], axis=0), axis=1)

        self.mid_t, self.segment, self.error = self._fit()

    @property
    def is_arc(self) -> bool:
        return isinstance(self.segment, RationalArc)

    def make_path(self, mid_p: RationalPoint) -> RationalPath:
        center = circle_center(self.start_p, mid_p, self.end_p)
        if center is None:
            return RationalLine(self.start_p, self.end_p)
        return RationalArc(
            center, self.start_p, mid_p, self.end_p, center.dist(self.start_p)
        )

    def path_error(self, path: RationalPath) -> float:
        return float(np.sum(path.distances(self._samples) * self._weights))

    def _candidate(self, t: float):
        path = self.make_path(self.parent.get(t))
        return path, self.path_error(path)

    def _fit(self):
        low, high = self.start_t, self.end_t
        best_t = (low + high) / 2
        best_path, best_error = self._candidate(best_t)

        for _ in range(MAX_SEARCH_ITERATIONS):
            step = (high - low) / 4
            if step < MIN_BRACKET or best_error == 0.0:
                break
            round_best = None
            for t in (low + step, low + 2 * step, low + 3 * step):
                path, error = self._candidate(t)
                if round_best is None or error < round_best[2]:
                    round_best = (t, path, error)
            t, path, error = round_best
            if error < best_error:
                best_t, best_path, best_error = t, path, error
            low, high = max(self.start_t, t - step), min(self.end_t, t + step)

        return best_t, best_path, best_error

    def __repr__(self) -> str:
        kind = "arc" if self.is_arc else "line"
        return (
            f"RationalSegment({kind}, t=[{self.start_t:.4f}, {self.end_t:.4f}], "
            f"error={self.error:.4g})"
        )
