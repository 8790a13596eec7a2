"""
Small geometric helpers shared by the curve, surface and unroll modules.
"""
import math
from typing import List, Optional, Sequence, TypeVar

import numpy as np

from rational_point import Point2D, RationalPoint, points_to_array

P = TypeVar("P", bound=RationalPoint)

# Squared triangle normal below this fraction of |t|^2 |u|^2 counts as colinear
COLINEAR_EPSILON = 1e-12


def circle_center(a: P, b: P, c: P) -> Optional[P]:
    """Centre of the circle through three points, or None if they are colinear.

    Works for 2D and 3D points; the result has weight 1.
    """
    pa, pb, pc = a.spatial_array(), b.spatial_array(), c.spatial_array()
    t = pb - pa
    u = pc - pa
    v = pc - pb
    tt = float(t @ t)
    uu = float(u @ u)
    if len(t) == 2:
        wsl = float(t[0] * u[1] - t[1] * u[0]) ** 2
    else:
        w = np.cross(t, u)
        wsl = float(w @ w)
    if tt == 0.0 or uu == 0.0 or wsl < COLINEAR_EPSILON * tt * uu:
        return None
    center = pa + (u * tt * float(u @ v) - t * uu * float(t @ v)) / (2.0 * wsl)
    return type(a).from_array(center)


def triangle_area(a: P, b: P, c: P) -> float:
    return 0.5 * abs(a.sub(b).cross_mag(c.sub(b)))


def interpolate_line(line: Sequence[P], t: float) -> P:
    """Point at fraction ``t`` of the polyline's index range."""
    if t <= 0 or len(line) == 1:
        return line[0]
    if t >= 1:
        return line[-1]
    pos = t * (len(line) - 1)
    idx = int(math.floor(pos))
    if idx >= len(line) - 1:
        return line[-1]
    frac = pos - idx
    return line[idx].mul(1.0 - frac).add(line[idx + 1].mul(frac))


def interpolate_steps(line: Sequence[P], n: int) -> List[P]:
    """Resample a polyline to ``n`` points evenly spaced in index."""
    if n < 2:
        raise ValueError(f"Need at least 2 steps, got {n}")
    return [interpolate_line(line, i / (n - 1)) for i in range(n)]


def relay_line(line: Sequence[P], n: int) -> List[P]:
    """Resample a polyline to ``n`` points evenly spaced in arc length."""
    if len(line) == n:
        return list(line)
    if n < 2:
        raise ValueError(f"Need at least 2 points, got {n}")
    arr = points_to_array(line)
    seg = np.linalg.norm(np.diff(arr[:, :-1], axis=0), axis=1)
    dists = np.concatenate([[0.0], np.cumsum(seg)])
    if dists[-1] == 0.0:
        return [line[0]] * n
    targets = np.linspace(0.0, dists[-1], n)
    cols = [np.interp(targets, dists, arr[:, k]) for k in range(arr.shape[1])]
    point_type = type(line[0])
    result = [point_type.from_array(row) for row in np.stack(cols, axis=1)]
    result[0] = line[0]
    result[-1] = line[-1]
    return result


def middle_value(arr: Sequence):
    return arr[len(arr) // 2]


def rotate_points(
    points: Sequence[Point2D],
    angle: float,
    origin: Optional[Point2D] = None,
) -> List[Point2D]:
    """Rotate 2D points counter-clockwise by ``angle`` about ``origin``."""
    if origin is None:
        origin = Point2D(0.0, 0.0)
    c, s = math.cos(angle), math.sin(angle)
    result = []
    for p in points:
        dx, dy = p.x - origin.x, p.y - origin.y
        result.append(Point2D(origin.x + dx * c - dy * s, origin.y + dx * s + dy * c, p.w))
    return result


def colinear_filter_points(points: Sequence[P], tolerance: float = 1e-9) -> List[P]:
    """Drop interior points that lie on a straight run.

    A point is dropped when the triangle it forms with the last kept point
    and its successor has area below ``tolerance`` times the squared chord.
    """
    if len(points) < 3:
        return list(points)
    result = [points[0]]
    for i in range(1, len(points) - 1):
        prev, curr, nxt = result[-1], points[i], points[i + 1]
        chord = prev.dist(nxt)
        if chord == 0.0:
            continue
        if triangle_area(prev, curr, nxt) > tolerance * chord * chord:
            result.append(curr)
    result.append(points[-1])
    return result
