"""
Homogeneous 2D/3D point types for the hull geometry kernel.

Points carry a weight ``w`` used by rational Bezier evaluation. Arithmetic
(add/sub/mul/div) is component-wise including ``w``; metric operations
(dot, angle, dist, magnitude) use the spatial components only.
"""
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np


class RationalPoint(ABC):
    """Shared vector algebra for Point2D and Point3D.

    Subclasses are frozen dataclasses whose fields are the spatial
    coordinates followed by ``w``.
    """

    DIMENSION = 0

    # ─── Component access ────────────────────────────────────────────────

    @abstractmethod
    def spatial(self) -> Tuple[float, ...]:
        """Coordinates without the weight."""

    def components(self) -> Tuple[float, ...]:
        return self.spatial() + (self.w,)

    @classmethod
    def from_components(cls, values: Sequence[float]) -> "RationalPoint":
        return cls(*(float(v) for v in values))

    def to_array(self) -> np.ndarray:
        """Spatial coordinates followed by the weight, shape (dim + 1,)."""
        return np.array(self.components(), dtype=float)

    def spatial_array(self) -> np.ndarray:
        return np.array(self.spatial(), dtype=float)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "RationalPoint":
        """Build a point from a (dim,) or (dim + 1,) array (w defaults to 1)."""
        values = [float(v) for v in arr]
        if len(values) == cls.DIMENSION:
            values.append(1.0)
        if len(values) != cls.DIMENSION + 1:
            raise ValueError(
                f"{cls.__name__} needs {cls.DIMENSION} or {cls.DIMENSION + 1} "
                f"values, got {len(values)}"
            )
        return cls(*values)

    @classmethod
    def zero(cls) -> "RationalPoint":
        return cls.from_components([0.0] * cls.DIMENSION + [1.0])

    def _check(self, other: "RationalPoint") -> None:
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot combine {type(self).__name__} with {type(other).__name__}"
            )

    # ─── Component-wise arithmetic (includes w) ──────────────────────────

    def add(self, other: "RationalPoint") -> "RationalPoint":
        self._check(other)
        return self.from_components(
            [a + b for a, b in zip(self.components(), other.components())]
        )

    def sub(self, other: "RationalPoint") -> "RationalPoint":
        self._check(other)
        return self.from_components(
            [a - b for a, b in zip(self.components(), other.components())]
        )

    def mul(self, n: float) -> "RationalPoint":
        return self.from_components([a * n for a in self.components()])

    def div(self, n: float) -> "RationalPoint":
        return self.from_components([a / n for a in self.components()])

    def __add__(self, other):
        return self.add(other)

    def __sub__(self, other):
        return self.sub(other)

    def __mul__(self, n):
        return self.mul(n)

    __rmul__ = __mul__

    def __truediv__(self, n):
        return self.div(n)

    def __neg__(self):
        return self.mul(-1.0)

    # ─── Metric operations (spatial only) ────────────────────────────────

    def dot(self, other: "RationalPoint") -> float:
        self._check(other)
        return sum(a * b for a, b in zip(self.spatial(), other.spatial()))

    def magnitude(self) -> float:
        return math.sqrt(sum(a * a for a in self.spatial()))

    def dist(self, other: "RationalPoint") -> float:
        self._check(other)
        return math.sqrt(
            sum((a - b) ** 2 for a, b in zip(self.spatial(), other.spatial()))
        )

    def as_unit(self) -> "RationalPoint":
        mag = self.magnitude()
        if mag == 0.0:
            raise ValueError("Cannot normalise a zero-length vector")
        return self.div(mag)

    def angle(self, other: "RationalPoint") -> float:
        """Angle between two vectors in radians.

        The cosine is clamped to [-1, 1] before ``acos``; rounding can push
        it just outside that range for (anti)parallel vectors.
        """
        denom = self.magnitude() * other.magnitude()
        if denom == 0.0:
            return 0.0
        cos = self.dot(other) / denom
        if cos >= 1.0:
            return 0.0
        if cos <= -1.0:
            return math.pi
        return math.acos(cos)

    def co_vec(self, other: "RationalPoint") -> "RationalPoint":
        """Component of this vector along ``other``."""
        other_mag = other.magnitude()
        return other.mul(self.dot(other) / (other_mag * other_mag))

    def rej_vec(self, other: "RationalPoint") -> "RationalPoint":
        """Component of this vector perpendicular to ``other``."""
        return self.sub(self.co_vec(other))

    @abstractmethod
    def cross_mag(self, other: "RationalPoint") -> float:
        """Magnitude of the cross product of the spatial parts."""

    # ─── Per-axis helpers ────────────────────────────────────────────────

    def axis_value(self, axis: int) -> float:
        """Coordinate along ``axis``; ``axis == DIMENSION`` addresses w."""
        return self.components()[axis]

    def dimm_dist_f(self, axis: int, dist: float) -> float:
        return self.axis_value(axis) - dist

    def diff_dimm(self, other: "RationalPoint", axis: int) -> float:
        return self.axis_value(axis) - other.axis_value(axis)

    def set_dimm(self, n: float, axis: int) -> "RationalPoint":
        values = list(self.components())
        values[axis] = n
        return self.from_components(values)

    def mul_dimm(self, n: float, axis: int) -> "RationalPoint":
        return self.set_dimm(self.axis_value(axis) * n, axis)

    def div_dimm(self, n: float, axis: int) -> "RationalPoint":
        return self.mul_dimm(1.0 / n, axis)

    @classmethod
    def get_axis(cls, axis: int) -> "RationalPoint":
        values = [0.0] * cls.DIMENSION + [1.0]
        values[axis] = 1.0
        return cls.from_components(values)

    def axis_angle(self, axis: int, other: "RationalPoint") -> float:
        """Angle between the vector self -> other and a coordinate axis."""
        return other.sub(self).angle(self.get_axis(axis))

    def min(self, other: "RationalPoint") -> "RationalPoint":
        self._check(other)
        return self.from_components(
            [min(a, b) for a, b in zip(self.components(), other.components())]
        )

    def max(self, other: "RationalPoint") -> "RationalPoint":
        self._check(other)
        return self.from_components(
            [max(a, b) for a, b in zip(self.components(), other.components())]
        )

    def in_box(self, low: "RationalPoint", high: "RationalPoint") -> bool:
        return all(
            lo < v < hi
            for v, lo, hi in zip(self.spatial(), low.spatial(), high.spatial())
        )

    def corners(self, other: "RationalPoint") -> List["RationalPoint"]:
        """All 2^n corners of the box spanned by self and other."""
        result = []
        lows, highs = self.spatial(), other.spatial()
        for mask in range(2 ** self.DIMENSION):
            values = [
                highs[i] if mask & (1 << i) else lows[i]
                for i in range(self.DIMENSION)
            ]
            result.append(self.from_components(values + [1.0]))
        return result

    def area(self, other: "RationalPoint", height_axis: int, width_axis: int) -> float:
        """Trapezoid strip area between this point and ``other``.

        Height is the difference along ``height_axis``, width the mean of the
        two coordinates along ``width_axis``.
        """
        return strip_area(
            other.axis_value(height_axis), self.axis_value(height_axis),
            self.axis_value(width_axis), other.axis_value(width_axis),
        )


@dataclass(frozen=True)
class Point2D(RationalPoint):
    """A weighted 2D point."""
    x: float
    y: float
    w: float = 1.0

    DIMENSION = 2

    def spatial(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def cross(self, other: "Point2D") -> float:
        """Signed z component of the 3D cross product."""
        self._check(other)
        return self.x * other.y - self.y * other.x

    def cross_mag(self, other: "Point2D") -> float:
        return abs(self.cross(other))

    def rotate(self, angle: float) -> "Point2D":
        c, s = math.cos(angle), math.sin(angle)
        return Point2D(self.x * c - self.y * s, self.x * s + self.y * c, self.w)

    def perpendicular(self) -> "Point2D":
        """This vector rotated a quarter turn counter-clockwise."""
        return Point2D(-self.y, self.x, self.w)

    def project(self, axis: int) -> "Point2D":
        return self

    def flat_rotation(self, axis: int, radius: float, angle: float) -> "Point2D":
        """Offset by ``radius`` in direction ``angle`` within the plane."""
        return Point2D(
            self.x + radius * math.cos(angle),
            self.y + radius * math.sin(angle),
            self.w,
        )


@dataclass(frozen=True)
class Point3D(RationalPoint):
    """A weighted 3D point."""
    x: float
    y: float
    z: float
    w: float = 1.0

    DIMENSION = 3

    def spatial(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)

    def cross(self, other: "Point3D") -> "Point3D":
        self._check(other)
        return Point3D(
            self.y * other.z - self.z * other.y,
            self.z * other.x - self.x * other.z,
            self.x * other.y - self.y * other.x,
            0.0,
        )

    def cross_mag(self, other: "Point3D") -> float:
        return self.cross(other).magnitude()

    def project(self, axis: int) -> Point2D:
        """Drop ``axis`` and return the remaining two coordinates."""
        kept = [v for i, v in enumerate(self.spatial()) if i != axis]
        return Point2D(kept[0], kept[1], self.w)

    def flat_rotation(self, axis: int, radius: float, angle: float) -> Point2D:
        return self.project(axis).flat_rotation(axis, radius, angle)


@dataclass(frozen=True)
class RationalPlane:
    """A cutting plane through ``origin`` with normal ``direction``."""
    origin: Point3D
    direction: Point3D

    def signed_distance(self, p: Point3D) -> float:
        return p.sub(self.origin).dot(self.direction)


class RationalBounds:
    """Running axis-aligned bounds over a set of points."""

    def __init__(self, first: RationalPoint):
        self.min = first
        self.max = first

    @classmethod
    def from_points(cls, points: Sequence[RationalPoint]) -> "RationalBounds":
        if not points:
            raise ValueError("Cannot bound an empty point set")
        bounds = cls(points[0])
        for p in points[1:]:
            bounds.consume(p)
        return bounds

    def consume(self, p: RationalPoint) -> None:
        self.min = self.min.min(p)
        self.max = self.max.max(p)

    def corners(self) -> List[RationalPoint]:
        return self.min.corners(self.max)

    def contains(self, p: RationalPoint) -> bool:
        return p.in_box(self.min, self.max)


def points_to_array(points: Sequence[RationalPoint], spatial: bool = False) -> np.ndarray:
    """Stack points into an (N, dim + 1) array, or (N, dim) when ``spatial``."""
    if spatial:
        return np.array([p.spatial() for p in points], dtype=float)
    return np.array([p.components() for p in points], dtype=float)


def array_to_points(arr: np.ndarray, point_type) -> List[RationalPoint]:
    return [point_type.from_array(row) for row in arr]


def strip_area(height_0, height_1, width_0, width_1):
    """Signed trapezoid area of strips running from ``0`` to ``1``.

    Works on floats or numpy arrays of matching shape.
    """
    return (height_1 - height_0) * (width_0 + width_1) / 2.0
