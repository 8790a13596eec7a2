"""
Puzzle-tooth joints along flattened panel edges.

A toothed edge keeps its end buffers straight and replaces each tooth
interval of width ``w`` with a four point zig-zag: the interval start, two
flank points ``w / 2`` from each end at ``puzzle_tooth_angle`` off the edge,
and the interval end. Teeth alternate sides so neighbouring panels
interlock.
"""
import logging
import math
from typing import List, Sequence

import numpy as np

from rational_point import Point2D, points_to_array

logger = logging.getLogger(__name__)

# Teeth left after the end buffers; above this count two more are dropped
MAX_TEETH_BEFORE_TRIM = 6


class DistanceEnhancedPath:
    """A 2D polyline with cumulative arc length at each vertex."""

    def __init__(self, path: Sequence[Point2D]):
        if len(path) == 0:
            raise ValueError("Cannot measure an empty path")
        self.path = list(path)
        arr = points_to_array(self.path, spatial=True)
        seg = np.linalg.norm(np.diff(arr, axis=0), axis=1)
        self.distances = np.concatenate([[0.0], np.cumsum(seg)])

    def d_length(self) -> float:
        return float(self.distances[-1])

    def __len__(self) -> int:
        return len(self.path)

    def point_at(self, dist: float) -> Point2D:
        """Point ``dist`` along the path, clamped to its ends."""
        if dist <= 0:
            return self.path[0]
        if dist >= self.d_length():
            return self.path[-1]
        i = int(np.searchsorted(self.distances, dist, side="right")) - 1
        i = min(i, len(self.path) - 2)
        span = self.distances[i + 1] - self.distances[i]
        if span == 0.0:
            return self.path[i]
        frac = (dist - self.distances[i]) / span
        a, b = self.path[i], self.path[i + 1]
        return Point2D(a.x + (b.x - a.x) * frac, a.y + (b.y - a.y) * frac)

    def points_before(self, dist: float) -> List[Point2D]:
        return [p for p, d in zip(self.path, self.distances) if d < dist]

    def points_after(self, dist: float) -> List[Point2D]:
        return [p for p, d in zip(self.path, self.distances) if d > dist]


def tooth_count(length: float, puzzle_tooth_width: float) -> int:
    n_teeth = math.floor(length / puzzle_tooth_width) - 2
    if n_teeth > MAX_TEETH_BEFORE_TRIM:
        n_teeth -= 2
    return n_teeth


def point_path_to_puzzle_teeth(
    path: Sequence[Point2D],
    puzzle_tooth_width: float,
    puzzle_tooth_angle: float,
) -> List[Point2D]:
    """Replace the middle of ``path`` with alternating puzzle teeth.

    Args:
        path: 2D polyline of the edge.
        puzzle_tooth_width: length of edge each tooth occupies.
        puzzle_tooth_angle: angle of the tooth flanks off the edge (radians).

    Returns:
        The toothed polyline, or a copy of ``path`` when it is too short to
        hold a tooth.
    """
    if puzzle_tooth_width <= 0:
        raise ValueError(f"puzzle_tooth_width must be positive, got {puzzle_tooth_width}")
    if len(path) < 2:
        return list(path)

    enhanced = DistanceEnhancedPath(path)
    length = enhanced.d_length()
    n_teeth = tooth_count(length, puzzle_tooth_width)
    if n_teeth < 1:
        return list(path)

    buffer = (length - n_teeth * puzzle_tooth_width) / 2
    positions = [buffer + i * puzzle_tooth_width for i in range(n_teeth + 1)]
    half = puzzle_tooth_width / 2

    result = enhanced.points_before(positions[0])
    prev = enhanced.point_at(positions[0])
    result.append(prev)
    for i in range(1, len(positions)):
        curr = enhanced.point_at(positions[i])
        ex, ey = curr.x - prev.x, curr.y - prev.y
        span = math.hypot(ex, ey)
        if span == 0.0:
            continue
        ex, ey = ex / span, ey / span
        outside = i % 2 == 0
        flank = puzzle_tooth_angle if outside else -puzzle_tooth_angle
        c, s = math.cos(flank), math.sin(flank)

        # Forward edge turned by +flank from the start, backward edge by -flank
        # from the end, so both flanks lean to the same side
        a = Point2D(prev.x + half * (ex * c - ey * s), prev.y + half * (ex * s + ey * c))
        b = Point2D(curr.x + half * (-ex * c - ey * s), curr.y + half * (ex * s - ey * c))
        result.extend([a, b, curr])
        prev = curr

    result.extend(enhanced.points_after(positions[-1]))
    logger.debug("Added %d puzzle teeth along %.3f of edge", n_teeth, length)
    return result
