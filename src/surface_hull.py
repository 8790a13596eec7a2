"""
Two-sided hull built from lee and wind rail sets.

Each side is a RationalBezierSurface sharing the panel schedule and bulkhead
planes. The hull flattens both sides into panels, unrolls the transom and
bulkheads between the sides, measures displaced volume and exports a
triangle mesh preview.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np
import trimesh

from flatten_node import FlattenedSide, flatten_surface
from rational_bezier_surface import PanelSplit, RationalBezierSurface, SurfaceConfig
from rational_math import rotate_points
from rational_point import Point2D, Point3D, RationalPlane
from unroll import Interval, UnrollResult, unroll_curves, unroll_point_set

logger = logging.getLogger(__name__)

# Start frame for unrolling between the two sides: anchor, first edge
# pointing down, second side placed towards +x
ORIGIN = Point2D(0.0, 0.0)
DOWN = Point2D(0.0, -1.0)
ACROSS = Point2D(1.0, 0.0)


@dataclass
class HullConfig:
    """Hull-wide settings."""
    surface: SurfaceConfig = field(default_factory=SurfaceConfig)
    puzzle_tooth_width: float = 0.5       # edge length per tooth
    puzzle_tooth_angle: float = math.pi / 18  # flank angle off the edge (radians)
    align_output: bool = False            # rotate panels so the top edge runs along -x

    def __post_init__(self):
        if self.puzzle_tooth_width <= 0:
            raise ValueError(
                f"puzzle_tooth_width must be positive, got {self.puzzle_tooth_width}"
            )


@dataclass
class FlattenResult:
    """Flattened sides; a side not requested is None."""
    lee: Optional[FlattenedSide] = None
    wind: Optional[FlattenedSide] = None

    def sides(self) -> List[FlattenedSide]:
        return [side for side in (self.lee, self.wind) if side is not None]


class BezierSurfaceHull:
    """Hull with a lee and a wind surface.

    Args:
        wind_curves: rail control polygons of the wind side.
        lee_curves: rail control polygons of the lee side.
        panels: segment count schedule applied to both sides.
        intersecting_planes: bulkhead planes applied to both sides.
        config: defaults to HullConfig().
    """

    def __init__(
        self,
        wind_curves: Sequence[Sequence[Point3D]],
        lee_curves: Sequence[Sequence[Point3D]],
        panels: Optional[Sequence[PanelSplit]] = None,
        intersecting_planes: Optional[Sequence[RationalPlane]] = None,
        config: Optional[HullConfig] = None,
    ):
        if config is None:
            config = HullConfig()
        self.config = config
        self.intersecting_planes = list(intersecting_planes or [])
        self.surface_lee = RationalBezierSurface(
            lee_curves, panels, self.intersecting_planes, config.surface
        )
        self.surface_wind = RationalBezierSurface(
            wind_curves, panels, self.intersecting_planes, config.surface
        )

    def flatten(self, lee: bool = True, wind: bool = True) -> FlattenResult:
        """Flatten the requested sides into panels."""
        config = self.config
        result = FlattenResult()
        if lee:
            result.lee = flatten_surface(
                self.surface_lee,
                config.puzzle_tooth_width,
                config.puzzle_tooth_angle,
                prefix="LEE",
                align_output=config.align_output,
            )
        if wind:
            result.wind = flatten_surface(
                self.surface_wind,
                config.puzzle_tooth_width,
                config.puzzle_tooth_angle,
                prefix="WIND",
                align_output=config.align_output,
            )
        return result

    def unroll_transom(self) -> List[Point2D]:
        """Closed outline of the transom between the two sides' ``u = 0``
        cross-sections, with the top edge along +x."""
        full = Interval(1.0, 0.0)
        unroll = unroll_curves(
            self.surface_lee.surface_curves[0].curve, full,
            self.surface_wind.surface_curves[0].curve, full,
            ORIGIN, DOWN, ACROSS,
        )
        return _level_outline(unroll)

    def unroll_bulkhead(self, idx: int) -> List[Point2D]:
        """Closed outline of bulkhead ``idx`` between the two sides.

        Returns an empty list when either side has too few intersection
        points. Raises IndexError for an unknown plane.
        """
        if not 0 <= idx < len(self.intersecting_planes):
            raise IndexError(
                f"Bulkhead {idx} out of range for {len(self.intersecting_planes)} planes"
            )
        line_lee = self.surface_lee.intersecting_lines[idx]
        line_wind = self.surface_wind.intersecting_lines[idx]
        if len(line_lee) < 2 or len(line_wind) < 2:
            logger.warning(
                "No points for bulkhead %d (lee %d, wind %d)",
                idx, len(line_lee), len(line_wind),
            )
            return []

        unroll = unroll_point_set(line_lee, line_wind, False, ORIGIN, DOWN, ACROSS)
        return _level_outline(unroll)

    def volume_under(self, waterline: float) -> float:
        """Volume of both sides below ``waterline``."""
        return self.surface_lee.volume_under(waterline) + self.surface_wind.volume_under(
            waterline
        )

    def to_mesh(self, n_t: int = 20) -> trimesh.Trimesh:
        """Triangle mesh of both sides for previewing."""
        meshes = [
            surface_to_mesh(self.surface_lee, n_t),
            surface_to_mesh(self.surface_wind, n_t),
        ]
        return trimesh.util.concatenate(meshes)


def _level_outline(unroll: UnrollResult) -> List[Point2D]:
    """``a`` then reversed ``b`` as one outline, rotated so the first
    cross-over from ``b`` to ``a`` runs along +x."""
    outline = unroll.a_flat + list(reversed(unroll.b_flat))
    top = unroll.a_flat[0].sub(unroll.b_flat[0])
    if top.magnitude() == 0.0:
        return outline
    return rotate_points(outline, -math.atan2(top.y, top.x), unroll.b_flat[0])


def surface_to_mesh(surface: RationalBezierSurface, n_t: int = 20) -> trimesh.Trimesh:
    """Quad grid of ``surface`` (cross-sections then tip), split into triangles."""
    grid = surface.grid(n_t)
    rows, cols = grid.shape[0], grid.shape[1]
    vertices = grid.reshape(-1, 3)

    r, c = np.meshgrid(np.arange(rows - 1), np.arange(cols - 1), indexing="ij")
    v00 = (r * cols + c).ravel()
    v01 = v00 + 1
    v10 = v00 + cols
    v11 = v10 + 1
    faces = np.concatenate([
        np.stack([v00, v10, v11], axis=1),
        np.stack([v00, v11, v01], axis=1),
    ])
    return trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
