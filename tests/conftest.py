"""
Shared test fixtures for the hull geometry kernel.
"""
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rational_bezier_surface import PanelSplit, RationalBezierSurface
from rational_point import Point3D, RationalPlane
from surface_hull import BezierSurfaceHull, HullConfig


def _rail(points):
    return [Point3D(*p) for p in points]


BILGE = [(0, -2, 0, 1), (5, -2, 0, 1), (10, 0, 0, 1)]
CHINE = [(0, -1.5, 2, 1), (5, -1.5, 2.5, 1), (10, 0, 0, 1)]
GUNNEL = [(0, 0, 3, 1), (5, 0, 3, 1), (10, 0, 0, 1)]


def _mirror(rail):
    return [(x, y, -z, w) for x, y, z, w in rail]


@pytest.fixture(scope="session")
def bilge_rail():
    return _rail(BILGE)


@pytest.fixture(scope="session")
def gunnel_rail():
    return _rail(GUNNEL)


@pytest.fixture(scope="session")
def two_rail_surface(bilge_rail, gunnel_rail):
    """Bilge + gunnel, no panel schedule, no planes: a single panel."""
    return RationalBezierSurface([bilge_rail, gunnel_rail], panels=[])


@pytest.fixture(scope="session")
def waterline_plane():
    """Horizontal plane at z = 1."""
    return RationalPlane(Point3D(0, 0, 1), Point3D(0, 0, 1))


@pytest.fixture(scope="session")
def three_rail_surface(waterline_plane):
    """Bilge, chine and gunnel with two segments forced below u = 0.6."""
    return RationalBezierSurface(
        [_rail(BILGE), _rail(CHINE), _rail(GUNNEL)],
        panels=[PanelSplit(0.6, 2)],
        intersecting_planes=[waterline_plane],
    )


@pytest.fixture(scope="session")
def mirrored_hull():
    """Lee side from BILGE/GUNNEL, wind side mirrored across z = 0.

    Plane 0 cuts both sides lengthwise at y = -1; plane 1 misses the hull.
    """
    planes = [
        RationalPlane(Point3D(0, -1, 0), Point3D(0, 1, 0)),
        RationalPlane(Point3D(20, 0, 0), Point3D(1, 0, 0)),
    ]
    return BezierSurfaceHull(
        wind_curves=[_rail(_mirror(BILGE)), _rail(_mirror(GUNNEL))],
        lee_curves=[_rail(BILGE), _rail(GUNNEL)],
        panels=[],
        intersecting_planes=planes,
        config=HullConfig(puzzle_tooth_width=0.5),
    )


@pytest.fixture(scope="session")
def two_seam_surface():
    """Three rails with two segments forced below u = 0.8 and three below
    u = 0.4: two seams, the second ending inside the first's upper band."""
    return RationalBezierSurface(
        [_rail(BILGE), _rail(CHINE), _rail(GUNNEL)],
        panels=[PanelSplit(0.8, 2), PanelSplit(0.4, 3)],
    )
