"""
Lofted rational Bezier surface across a set of rail curves.

The surface is discretised into cross-sections ("surface curves"), one per
``u`` step, each a RationalBezier through the rails' points at that ``u``.
Cross-sections are built from the far (tip) end back to ``u = 0`` so the
segment count chosen for one carries to the next. Wherever a cross-section
is split into several arc/line segments, the split positions are collected
in (u, t) space and grouped into division curves: the seams along which the
flattened surface is cut into panels.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from catmull_rom import CatmullRom
from normalized_curve import MIN_STEP
from rational_bezier import RationalBezier
from rational_point import Point2D, Point3D, RationalPlane

logger = logging.getLogger(__name__)


@dataclass
class PanelSplit:
    """Force ``n`` segments on every cross-section below ``t`` (a u value)."""
    t: float
    n: int


@dataclass
class SurfaceConfig:
    """Tuning for cross-section segmentation."""
    variance_tolerance: float = 10000.0   # total fitted error allowed per cross-section
    min_segments: int = 1
    max_segments: int = 1
    bulkhead_sort_axis: int = 1           # axis bulkhead polylines are ordered along


@dataclass
class SurfaceCurve:
    """One cross-section of the surface.

    ``intersections[k]`` holds the arc-length parameters where plane ``k``
    crosses this cross-section, largest first.
    """
    u: float
    curve: RationalBezier
    intersections: List[List[float]] = field(default_factory=list)


@dataclass
class DivisionCurve:
    """A seam in (u, t) space between cross-section indices id_start..id_end."""
    id_start: int
    start: float          # u of the first point
    id_end: int
    end: float            # u of the last point
    t_curve: CatmullRom   # through the (u, t) points
    p_line: List[Point3D] # the same points on the surface

    def t_at(self, u: float) -> float:
        """Cross-section parameter of the seam at ``u``.

        Outside [start, end] the nearest end value is used.
        """
        return self.t_curve.find_dimm_dist(0, u).p.y


@dataclass
class TipFlattening:
    """2D placement of the surface's last cross-section relative to its tip."""
    upper: Point2D            # t = 1 end of the last cross-section
    lower: Point2D            # t = 0 end of the last cross-section
    edge_direction: Point2D   # unit direction from ``upper`` down the cross-section
    advance_direction: Point2D  # unit direction away from the tip


class RationalBezierSurface:
    """Surface lofted across ``controls`` (one control polygon per rail).

    Args:
        controls: rail control polygons, each at least 2 Point3D.
        panels: optional schedule forcing segment counts near the tip.
        intersecting_planes: planes whose crossings are tracked per
            cross-section (bulkheads).
        config: segmentation tuning; defaults to SurfaceConfig().
    """

    def __init__(
        self,
        controls: Sequence[Sequence[Point3D]],
        panels: Optional[Sequence[PanelSplit]] = None,
        intersecting_planes: Optional[Sequence[RationalPlane]] = None,
        config: Optional[SurfaceConfig] = None,
    ):
        if config is None:
            config = SurfaceConfig()
        if len(controls) < 2:
            raise ValueError(f"A surface needs at least 2 rail curves, got {len(controls)}")
        self.config = config
        self.panels = sorted(panels or [], key=lambda p: p.t, reverse=True)
        self.intersecting_planes = list(intersecting_planes or [])

        self.control_curves = [RationalBezier(cs) for cs in controls]
        self.divisions = min(c.get_min_resolution(0, 1) for c in self.control_curves)
        if self.divisions < 2:
            raise ValueError("Rail curves are too short to loft a surface")

        tips = np.array([c.controls[-1].spatial() for c in self.control_curves])
        self.tip = Point3D(*tips.mean(axis=0))

        self.surface_curves: List[SurfaceCurve] = [None] * self.divisions
        self.intersecting_lines: List[List[Point3D]] = [
            [] for _ in self.intersecting_planes
        ]
        divisors = self._build_surface_curves()
        self.division_curves = self._build_division_curves(divisors)

        axis = config.bulkhead_sort_axis
        for line in self.intersecting_lines:
            line.sort(key=lambda p: p.axis_value(axis), reverse=True)

        logger.info(
            "Built surface: %d cross-sections, %d division curves, %d bulkhead planes",
            len(self.surface_curves),
            len(self.division_curves),
            len(self.intersecting_planes),
        )

    # ─── Construction ────────────────────────────────────────────────────

    def _build_surface_curves(self) -> Dict[int, List[tuple]]:
        """Build cross-sections from the tip back; return split points per id."""
        config = self.config
        schedule = list(self.panels)
        forced: Optional[int] = None
        n_segments = config.min_segments
        divisors: Dict[int, List[tuple]] = {}

        for idx in range(self.divisions - 1, -1, -1):
            u = idx / self.divisions
            # Thresholds crossed within one step force the largest count
            while schedule and u < schedule[0].t:
                forced = max(forced or 0, schedule.pop(0).n)

            curve = RationalBezier([c.get(u) for c in self.control_curves])
            if forced is not None:
                segments = curve.find_segments(config.variance_tolerance, forced, forced)
                forced = None
            else:
                low = max(config.min_segments, n_segments)
                segments = curve.find_segments(
                    config.variance_tolerance, low, max(config.max_segments, low)
                )
            n_segments = len(segments)

            if n_segments > 1:
                divisors[idx] = [
                    (Point2D(u, seg.end_t), seg.end_p) for seg in segments[:-1]
                ]

            intersections = []
            for plane, line in zip(self.intersecting_planes, self.intersecting_lines):
                found = curve.find_plane_intersection(plane)
                intersections.append(sorted((cp.t for cp in found), reverse=True))
                line.extend(cp.p for cp in found)

            self.surface_curves[idx] = SurfaceCurve(u, curve, intersections)
        return divisors

    def _build_division_curves(self, divisors: Dict[int, List[tuple]]) -> List[DivisionCurve]:
        """Group split points by index across consecutive cross-sections."""
        groups: List[List[tuple]] = []
        open_groups: Dict[int, List[tuple]] = {}
        for idx in range(self.divisions):
            points = divisors.get(idx, [])
            for k in list(open_groups):
                if k >= len(points):
                    groups.append(open_groups.pop(k))
            for k, (t_point, p) in enumerate(points):
                open_groups.setdefault(k, []).append((idx, t_point, p))
        groups.extend(open_groups.values())

        division_curves = []
        for group in groups:
            hull = convex_chain(group)
            if len(hull) < 2:
                logger.debug("Skipping division curve with %d point(s)", len(hull))
                continue
            division_curves.append(
                DivisionCurve(
                    id_start=hull[0][0],
                    start=hull[0][1].x,
                    id_end=hull[-1][0],
                    end=hull[-1][1].x,
                    t_curve=CatmullRom([entry[1] for entry in hull], 0.95, 0.05, True),
                    p_line=[entry[2] for entry in hull],
                )
            )
        return division_curves

    # ─── Queries ─────────────────────────────────────────────────────────

    def get_point_on_surface(self, u: float, t: float) -> Point3D:
        """Blend the two cross-sections bracketing ``u`` at parameter ``t``."""
        curves = self.surface_curves
        idx = min(max(int(math.floor(u * len(curves))), 0), len(curves) - 2)
        while idx > 0 and curves[idx].u > u:
            idx -= 1
        while idx < len(curves) - 2 and curves[idx + 1].u < u:
            idx += 1

        c_low, c_high = curves[idx], curves[idx + 1]
        frac = (u - c_low.u) / (c_high.u - c_low.u)
        frac = min(max(frac, 0.0), 1.0)
        a = c_low.curve.get(t)
        b = c_high.curve.get(t)
        return a.mul(1.0 - frac).add(b.mul(frac))

    def flatten_tip(
        self,
        direction: float,
        p: Point2D,
        clockwise: bool = False,
    ) -> TipFlattening:
        """Place the last cross-section in 2D around a flattened tip at ``p``.

        The upper corner lands at angle ``direction`` from ``p``; the lower
        corner and a point just below the upper corner are rotated from it by
        their true angles at the tip, clockwise or counter-clockwise.
        """
        last = self.surface_curves[-1].curve
        tip = self.tip
        top = last.get(1.0)
        bottom = last.get(0.0)
        near = last.get(1.0 - MIN_STEP)
        sign = -1.0 if clockwise else 1.0

        def place(q: Point3D) -> Point2D:
            angle = top.sub(tip).angle(q.sub(tip))
            return p.flat_rotation(0, q.dist(tip), direction + sign * angle)

        upper = p.flat_rotation(0, top.dist(tip), direction)
        lower = place(bottom)
        near_flat = place(near)
        edge = near_flat.sub(upper)
        if edge.magnitude() == 0.0:
            edge = lower.sub(upper)
        advance = upper.sub(p)
        return TipFlattening(
            upper=upper,
            lower=lower,
            edge_direction=Point2D(*edge.as_unit().spatial()),
            advance_direction=Point2D(*advance.as_unit().spatial()),
        )

    def volume_under(
        self,
        waterline: float,
        height_axis: int = 1,
        width_axis: int = 2,
    ) -> float:
        """Volume between the surface and the ``width_axis = 0`` plane below
        ``waterline`` along ``height_axis``.

        Each cross-section's area below the waterline is multiplied by the
        distance to the next cross-section. Cross-sections that start above
        the waterline contribute nothing.
        """
        volume = 0.0
        curves = self.surface_curves
        for current, following in zip(curves[:-1], curves[1:]):
            length = current.curve.lut[0].p.dist(following.curve.lut[0].p)
            wl = current.curve.find_dimm_dist(height_axis, waterline)
            if wl.t <= 0:
                continue
            volume += length * current.curve.find_area(0.0, wl.t, height_axis, width_axis)
        return volume

    def grid(self, n_t: int = 20) -> np.ndarray:
        """(len(surface_curves) + 1, n_t + 1, 3) sample grid ending at the tip."""
        ts = np.linspace(0.0, 1.0, n_t + 1)
        rows = [sc.curve.get_many(ts)[:, :3] for sc in self.surface_curves]
        rows.append(np.tile(self.tip.spatial_array(), (n_t + 1, 1)))
        return np.stack(rows)


def convex_chain(points: List[tuple]) -> List[tuple]:
    """Monotone-chain filter over (id, Point2D, Point3D) entries in (u, t).

    Drops entries that would make the chain turn the wrong way, leaving one
    side of the convex hull.
    """
    chain: List[tuple] = []
    for entry in points:
        nxt = entry[1]
        while len(chain) >= 2:
            a = chain[-2][1].sub(nxt)
            b = chain[-1][1].sub(nxt)
            if a.cross(b) <= 0:
                chain.pop()
            else:
                break
        chain.append(entry)
    return chain
