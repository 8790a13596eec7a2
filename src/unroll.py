"""
Side-angle-side unrolling of pairs of 3D polylines into the plane.

Two neighbouring cross-sections ``a`` and ``b`` are sampled to the same
number of points and laid out as a strip of triangles. Each new 2D point is
placed by side-angle-side from its predecessor: the step length along its
own polyline and the angle to the opposite polyline are kept exactly. Step
lengths along ``a`` and ``b`` and the first triangle therefore keep their 3D
values. Rung and diagonal lengths are only exact on developable strips and
drift on twisted ones, and nothing prevents a strongly curved strip from
overlapping itself.
"""
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from normalized_curve import NormalizedCurve
from rational_math import interpolate_steps
from rational_point import Point2D, Point3D, points_to_array


@dataclass(frozen=True)
class Interval:
    """A parameter range on a curve; ``start`` may exceed ``end``."""
    start: float
    end: float

    @property
    def low(self) -> float:
        return min(self.start, self.end)

    @property
    def high(self) -> float:
        return max(self.start, self.end)


@dataclass
class UnrollResult:
    """Flattened strip between two polylines.

    Directions are unit vectors: along ``a`` from each end inwards, and from
    ``b`` across to ``a`` at each end.
    """
    a_flat: List[Point2D]
    b_flat: List[Point2D]
    a_start_dir: Point2D     # a_flat[0] -> a_flat[1]
    a_end_dir: Point2D       # a_flat[-1] -> a_flat[-2]
    start_advance: Point2D   # b_flat[0] -> a_flat[0]
    end_advance: Point2D     # b_flat[-1] -> a_flat[-1]


# ─── Trilateration ───────────────────────────────────────────────────────────

def _third_xy(
    f0: Tuple[float, float],
    f1: Tuple[float, float],
    dist_02: float,
    angle_102: float,
    direction: Tuple[float, float],
) -> Tuple[float, float]:
    kx, ky = f1[0] - f0[0], f1[1] - f0[1]
    lk = math.hypot(kx, ky)
    if lk == 0.0:
        dl = math.hypot(direction[0], direction[1])
        if dl == 0.0:
            return f0
        return (f0[0] + dist_02 * direction[0] / dl, f0[1] + dist_02 * direction[1] / dl)
    ux, uy = kx / lk, ky / lk
    c, s = math.cos(angle_102), math.sin(angle_102)
    # Rotations of the base direction by +angle and -angle
    v1 = (ux * c - uy * s, ux * s + uy * c)
    v2 = (ux * c + uy * s, -ux * s + uy * c)
    dot_1 = v1[0] * direction[0] + v1[1] * direction[1]
    dot_2 = v2[0] * direction[0] + v2[1] * direction[1]
    v = v1 if dot_1 > dot_2 else v2
    return (f0[0] + dist_02 * v[0], f0[1] + dist_02 * v[1])


def get_flat_third(
    f0: Point2D,
    f1: Point2D,
    dist_02: float,
    angle_102: float,
    direction: Point2D,
) -> Point2D:
    """Third triangle corner in 2D from two placed corners.

    The new point lies ``dist_02`` from ``f0`` at ``angle_102`` to the base
    ``f0 -> f1``; of the two mirror-image candidates the one further along
    ``direction`` wins. A zero-length base places the point along
    ``direction``.
    """
    x, y = _third_xy(f0.spatial(), f1.spatial(), dist_02, angle_102, direction.spatial())
    return Point2D(x, y)


def flat_third_from_3d(
    p0: Point3D,
    f0: Point2D,
    p1: Point3D,
    f1: Point2D,
    p2: Point3D,
    direction: Point2D,
) -> Point2D:
    """Flatten ``p2`` given the 2D images ``f0``, ``f1`` of ``p0``, ``p1``."""
    vec_01 = p1.sub(p0)
    vec_02 = p2.sub(p0)
    return get_flat_third(f0, f1, vec_02.magnitude(), vec_01.angle(vec_02), direction)


def _angles(v: np.ndarray, w: np.ndarray) -> np.ndarray:
    """Row-wise angle between two (N, 3) vector arrays, 0 for zero rows."""
    denom = np.linalg.norm(v, axis=1) * np.linalg.norm(w, axis=1)
    dots = np.einsum("ij,ij->i", v, w)
    cos = np.divide(dots, denom, out=np.ones_like(dots), where=denom > 0.0)
    return np.arccos(np.clip(cos, -1.0, 1.0))


def _unit(x: float, y: float) -> Point2D:
    length = math.hypot(x, y)
    if length == 0.0:
        return Point2D(0.0, 0.0)
    return Point2D(float(x / length), float(y / length))


# ─── Strip unrolling ─────────────────────────────────────────────────────────

def unroll_internal(
    a: Sequence[Point3D],
    b: Sequence[Point3D],
    anchor: Point2D,
    edge_dir: Point2D,
    side_dir: Point2D,
) -> UnrollResult:
    """Unroll two equal-length polylines.

    ``b[0]`` is placed at ``anchor`` and ``b[1]`` along ``edge_dir``;
    ``a[0]`` goes on the ``side_dir`` side of that edge. Every later point is
    placed at its 3D step length from its predecessor, at the 3D angle
    between that step and the rung to the opposite polyline, keeping the
    side it was heading to. Only step lengths and the first triangle are
    exact on a non-developable strip.
    """
    if len(a) != len(b):
        raise ValueError(f"Polylines differ in length: {len(a)} != {len(b)}")
    if len(a) < 2:
        raise ValueError("Need at least 2 points per polyline to unroll")

    pa = points_to_array(a, spatial=True)
    pb = points_to_array(b, spatial=True)
    n = len(pa)
    fa = np.zeros((n, 2))
    fb = np.zeros((n, 2))

    # Side lengths and angles of every triangle, measured in 3D up front
    step_a = pa[1:] - pa[:-1]
    step_b = pb[1:] - pb[:-1]
    across = pb[:-1] - pa[:-1]
    len_a = np.linalg.norm(step_a, axis=1)
    len_b = np.linalg.norm(step_b, axis=1)
    angle_a = _angles(across, step_a)     # at a[i-1], between b[i-1] and a[i]
    angle_b = _angles(-across, step_b)    # at b[i-1], between a[i-1] and b[i]

    edge = _unit(edge_dir.x, edge_dir.y)
    fb[0] = (anchor.x, anchor.y)
    fb[1] = fb[0] + np.array([edge.x, edge.y]) * len_b[0]
    start = pa[0] - pb[0]
    fa[0] = _third_xy(
        tuple(fb[0]), tuple(fb[1]), float(np.linalg.norm(start)),
        float(_angles(step_b[:1], start[None, :])[0]), (side_dir.x, side_dir.y),
    )
    fa[1] = _third_xy(
        tuple(fa[0]), tuple(fb[0]), float(len_a[0]), float(angle_a[0]), (edge.x, edge.y)
    )

    for i in range(2, n):
        dir_a = tuple(fa[i - 1] - fa[i - 2])
        dir_b = tuple(fb[i - 1] - fb[i - 2])
        fa[i] = _third_xy(
            tuple(fa[i - 1]), tuple(fb[i - 1]), float(len_a[i - 1]), float(angle_a[i - 1]), dir_a
        )
        fb[i] = _third_xy(
            tuple(fb[i - 1]), tuple(fa[i - 1]), float(len_b[i - 1]), float(angle_b[i - 1]), dir_b
        )

    a_flat = [Point2D(float(x), float(y)) for x, y in fa]
    b_flat = [Point2D(float(x), float(y)) for x, y in fb]
    return UnrollResult(
        a_flat=a_flat,
        b_flat=b_flat,
        a_start_dir=_unit(*(fa[1] - fa[0])),
        a_end_dir=_unit(*(fa[-2] - fa[-1])),
        start_advance=_unit(*(fa[0] - fb[0])),
        end_advance=_unit(*(fa[-1] - fb[-1])),
    )


def unroll_point_set(
    a: Sequence[Point3D],
    b: Sequence[Point3D],
    reverse: bool,
    anchor: Point2D,
    edge_dir: Point2D,
    side_dir: Point2D,
) -> UnrollResult:
    """Unroll two polylines of any length; the longer is resampled to match."""
    steps = min(len(a), len(b))
    points_a = list(a) if len(a) == steps else interpolate_steps(a, steps)
    points_b = list(b) if len(b) == steps else interpolate_steps(b, steps)
    if reverse:
        points_a.reverse()
        points_b.reverse()
    return unroll_internal(points_a, points_b, anchor, edge_dir, side_dir)


def unroll_curves(
    a: NormalizedCurve,
    a_interval: Interval,
    b: NormalizedCurve,
    b_interval: Interval,
    anchor: Point2D,
    edge_dir: Point2D,
    side_dir: Point2D,
) -> UnrollResult:
    """Unroll two curves over their intervals.

    Both are sampled evenly in arc length, with as many samples as the
    coarser interval needs.
    """
    num_points = max(
        1,
        min(
            a.get_min_resolution(a_interval.start, a_interval.end),
            b.get_min_resolution(b_interval.start, b_interval.end),
        ),
    )
    points_a = a.get_n_in_range(num_points, a_interval.start, a_interval.end)
    points_b = b.get_n_in_range(num_points, b_interval.start, b_interval.end)
    return unroll_internal(points_a, points_b, anchor, edge_dir, side_dir)
