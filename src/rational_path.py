"""
Line and circular arc primitives used to approximate curve segments.

Both primitives work for 2D and 3D points and expose a vectorised
``distances`` used by the segment fitter's error sampling.
"""
import math
from typing import List, Sequence

import numpy as np

from rational_point import RationalPoint


class RationalPath:
    """Common interface for fitted path primitives."""

    length: float

    def distances(self, points: np.ndarray) -> np.ndarray:
        """Distance from each row of an (N, dim) array to this path."""
        raise NotImplementedError

    def dist_to_point(self, point: RationalPoint) -> float:
        return float(self.distances(point.spatial_array()[None, :])[0])

    def as_points(self, n: int = 16) -> List[RationalPoint]:
        raise NotImplementedError


class RationalLine(RationalPath):
    """Straight segment from ``a`` to ``b``."""

    def __init__(self, a: RationalPoint, b: RationalPoint):
        self.a = a
        self.b = b
        self._pa = a.spatial_array()
        self._ab = b.spatial_array() - self._pa
        self.length = float(np.linalg.norm(self._ab))

    def distances(self, points: np.ndarray) -> np.ndarray:
        rel = points - self._pa
        ll = self.length * self.length
        if ll == 0.0:
            return np.linalg.norm(rel, axis=1)
        s = np.clip(rel @ self._ab / ll, 0.0, 1.0)
        closest = s[:, None] * self._ab
        return np.linalg.norm(rel - closest, axis=1)

    def as_points(self, n: int = 2) -> List[RationalPoint]:
        return [self.a, self.b]

    def __repr__(self) -> str:
        return f"RationalLine({self.a!r}, {self.b!r})"


class RationalArc(RationalPath):
    """Circular arc from ``a`` through ``b`` to ``c`` around ``center``."""

    def __init__(
        self,
        center: RationalPoint,
        a: RationalPoint,
        b: RationalPoint,
        c: RationalPoint,
        radius: float,
    ):
        self.center = center
        self.a = a
        self.b = b
        self.c = c
        self.radius = radius

        self._pc = center.spatial_array()
        va = a.spatial_array() - self._pc
        vb = b.spatial_array() - self._pc
        vc = c.spatial_array() - self._pc
        self._e1 = va / np.linalg.norm(va)
        rej = vb - (vb @ self._e1) * self._e1
        if np.linalg.norm(rej) < 1e-12 * radius:
            rej = vc - (vc @ self._e1) * self._e1
        self._e2 = rej / np.linalg.norm(rej)

        # Orient the in-plane basis so angles grow from a through b to c
        phi_b = self._plane_angle(vb[None, :])[0]
        phi_c = self._plane_angle(vc[None, :])[0]
        if phi_b > phi_c:
            self._e2 = -self._e2
            phi_c = 2 * math.pi - phi_c if phi_c > 0 else 0.0
        self.angle = float(phi_c)
        self.length = self.radius * self.angle

    def _plane_angle(self, rel: np.ndarray) -> np.ndarray:
        phi = np.arctan2(rel @ self._e2, rel @ self._e1)
        return np.mod(phi, 2 * math.pi)

    def distances(self, points: np.ndarray) -> np.ndarray:
        rel = points - self._pc
        x = rel @ self._e1
        y = rel @ self._e2
        in_plane = x[:, None] * self._e1 + y[:, None] * self._e2
        off_plane = np.linalg.norm(rel - in_plane, axis=1)
        radial = np.hypot(x, y)
        phi = np.mod(np.arctan2(y, x), 2 * math.pi)

        on_arc = np.hypot(radial - self.radius, off_plane)
        to_a = np.linalg.norm(points - self.a.spatial_array(), axis=1)
        to_c = np.linalg.norm(points - self.c.spatial_array(), axis=1)
        return np.where(phi <= self.angle, on_arc, np.minimum(to_a, to_c))

    def as_points(self, n: int = 16) -> List[RationalPoint]:
        phis = np.linspace(0.0, self.angle, max(n, 2))
        rows = (
            self._pc
            + self.radius * np.cos(phis)[:, None] * self._e1
            + self.radius * np.sin(phis)[:, None] * self._e2
        )
        point_type = type(self.a)
        result = [point_type.from_array(row) for row in rows]
        result[0] = self.a
        result[-1] = self.c
        return result

    def __repr__(self) -> str:
        return (
            f"RationalArc(center={self.center!r}, radius={self.radius:.4g}, "
            f"angle={self.angle:.4g})"
        )


def total_length(paths: Sequence[RationalPath]) -> float:
    return sum(p.length for p in paths)
