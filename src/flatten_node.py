"""
Recursive flattening of a lofted surface into 2D panels.

A FlattenNode owns a band of the surface between two bound functions
``t = bound(u)`` and unrolls consecutive cross-sections clipped to that band,
walking from the tip end towards ``u = 0``. When a division curve ends inside
the band, the node stops at that cross-section and hands the rest of the band
to two children: an UpperNode between the node's upper bound and the division
curve, and a LowerNode between the division curve and the node's lower bound.
Children start from the 2D points and directions their parent finished with,
and non-root children cut puzzle teeth into their leading edge.
"""
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from shapely.geometry import Polygon

from normalized_curve import MIN_STEP
from puzzle_teeth import point_path_to_puzzle_teeth
from rational_bezier_surface import DivisionCurve, RationalBezierSurface, SurfaceCurve
from rational_math import interpolate_line, rotate_points
from rational_point import Point2D
from unroll import Interval, UnrollResult, unroll_curves

logger = logging.getLogger(__name__)

Bound = Callable[[float], float]


@dataclass
class FillResult:
    """Where a filled node ended, for its children to start from."""
    upper_point: Point2D
    lower_point: Point2D
    down_dir: Point2D        # from upper_point along the last cross-section
    up_dir: Point2D          # from lower_point along the last cross-section
    upper_advance: Point2D   # away from the filled area at upper_point
    lower_advance: Point2D   # away from the filled area at lower_point


class FlattenNode(ABC):
    """One panel of the flattened surface.

    Args:
        n_bulkheads: number of intersecting planes to collect lines for.
        prefix: label shared by all nodes of one side.
        depth: 0 for the root.
        idx: position among the parent's children.
        start_seg_idx: surface curve index the node starts at (its leading
            edge); filling walks down from here.
        reference_point: 2D position of the leading edge's first point.
        reference_direction: direction the leading edge leaves that point.
        advance_direction: side of the leading edge the panel grows towards.
        upper_bound, lower_bound: band limits in cross-section parameter.
    """

    def __init__(
        self,
        n_bulkheads: int,
        prefix: str,
        depth: int,
        idx: int,
        start_seg_idx: int,
        reference_point: Point2D,
        reference_direction: Point2D,
        advance_direction: Point2D,
        upper_bound: Bound,
        lower_bound: Bound,
    ):
        self.prefix = prefix
        self.depth = depth
        self.idx = idx
        self.start_seg_idx = start_seg_idx
        self.reference_point = reference_point
        self.reference_direction = reference_direction
        self.advance_direction = advance_direction
        self.upper_bound = upper_bound
        self.lower_bound = lower_bound
        self.children: List["FlattenNode"] = []
        self.start: List[Point2D] = []
        self.trailing: List[Point2D] = []
        self.upper_nodes: List[Point2D] = []
        self.lower_nodes: List[Point2D] = []
        self.bulkheads: List[List[Point2D]] = [[] for _ in range(n_bulkheads)]
        self.end_seg_idx: Optional[int] = None

    @property
    def name(self) -> str:
        return f"{self.prefix}, {self.depth}, {self.idx}"

    # ─── Orientation specific ────────────────────────────────────────────

    @abstractmethod
    def get_bounded_interval(self, u: float) -> Interval:
        """Interval to sample the cross-section at ``u`` over."""

    @abstractmethod
    def upper_first(self, points: Sequence[Point2D]) -> List[Point2D]:
        """Reorder points sampled over ``get_bounded_interval`` upper to lower."""

    @abstractmethod
    def fill_result(self, flattened: UnrollResult) -> FillResult:
        """Describe the last unrolled cross-section in upper/lower terms."""

    # ─── Filling ─────────────────────────────────────────────────────────

    def append_segment(
        self,
        points: List[Point2D],
        curve: SurfaceCurve,
        interval: Interval,
    ) -> None:
        """Record a flattened cross-section's ends and bulkhead crossings."""
        ordered = self.upper_first(points)
        self.upper_nodes.append(ordered[0])
        self.lower_nodes.append(ordered[-1])

        span = interval.end - interval.start
        for bulkhead, crossings in zip(self.bulkheads, curve.intersections):
            for t in crossings:
                if interval.low <= t <= interval.high:
                    frac = (t - interval.start) / span if span != 0 else 0.0
                    bulkhead.append(interpolate_line(points, frac))

    def fill(
        self,
        surface_curves: Sequence[SurfaceCurve],
        idx_end: int,
        puzzle_tooth_width: float,
        puzzle_tooth_angle: float,
    ) -> FillResult:
        """Unroll cross-sections from ``start_seg_idx`` down to ``idx_end``.

        The root also records its first cross-section; children share that
        cross-section with their parent and only record it as their
        (toothed) leading edge.
        """
        if not 0 <= idx_end < self.start_seg_idx:
            raise ValueError(
                f"Cannot fill node {self.name} from {self.start_seg_idx} to {idx_end}"
            )

        b_curve = surface_curves[self.start_seg_idx]
        b_interval = self.get_bounded_interval(b_curve.u)
        anchor = self.reference_point
        edge_dir = self.reference_direction
        side_dir = self.advance_direction
        flattened = None

        for i in range(self.start_seg_idx - 1, idx_end - 1, -1):
            a_curve = surface_curves[i]
            a_interval = self.get_bounded_interval(a_curve.u)
            flattened = unroll_curves(
                a_curve.curve, a_interval,
                b_curve.curve, b_interval,
                anchor, edge_dir, side_dir,
            )
            if i == self.start_seg_idx - 1:
                if self.depth == 0:
                    self.append_segment(flattened.b_flat, b_curve, b_interval)
                else:
                    self.start = point_path_to_puzzle_teeth(
                        flattened.b_flat, puzzle_tooth_width, puzzle_tooth_angle
                    )
            self.append_segment(flattened.a_flat, a_curve, a_interval)

            anchor = flattened.a_flat[0]
            edge_dir = flattened.a_start_dir
            side_dir = flattened.start_advance
            b_curve, b_interval = a_curve, a_interval

        self.trailing = self.upper_first(flattened.a_flat)
        self.end_seg_idx = idx_end
        logger.debug(
            "Filled node %s over surface curves %d..%d",
            self.name, self.start_seg_idx, idx_end,
        )
        return self.fill_result(flattened)

    # ─── Output ──────────────────────────────────────────────────────────

    def leading_edge(self) -> List[Point2D]:
        """Leading edge ordered from the upper bound to the lower bound."""
        return self.upper_first(self.start)

    def outline(self) -> List[Point2D]:
        """Closed panel outline: upper boundary, far edge, lower boundary
        reversed, leading edge reversed."""
        points = list(self.upper_nodes)
        if self.children:
            for child in self.children:
                points.extend(child.leading_edge())
        else:
            points.extend(self.trailing)
        points.extend(reversed(self.lower_nodes))
        points.extend(reversed(self.leading_edge()))
        return points

    def to_continuous_points(self) -> List[Point2D]:
        return node_to_continuous_points(self)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.name}, curves {self.start_seg_idx}.."
            f"{self.end_seg_idx}, children={len(self.children)})"
        )


class UpperNode(FlattenNode):
    """Node that samples its cross-sections from the upper bound down."""

    def get_bounded_interval(self, u: float) -> Interval:
        start = self.upper_bound(u)
        end = min(self.lower_bound(u), start)
        return Interval(start, end)

    def upper_first(self, points: Sequence[Point2D]) -> List[Point2D]:
        return list(points)

    def fill_result(self, flattened: UnrollResult) -> FillResult:
        return FillResult(
            upper_point=flattened.a_flat[0],
            lower_point=flattened.a_flat[-1],
            down_dir=flattened.a_start_dir,
            up_dir=flattened.a_end_dir,
            upper_advance=flattened.start_advance,
            lower_advance=flattened.end_advance,
        )


class LowerNode(FlattenNode):
    """Node that samples its cross-sections from the lower bound up."""

    def get_bounded_interval(self, u: float) -> Interval:
        start = self.lower_bound(u)
        end = max(self.upper_bound(u), start)
        return Interval(start, end)

    def upper_first(self, points: Sequence[Point2D]) -> List[Point2D]:
        return list(reversed(points))

    def fill_result(self, flattened: UnrollResult) -> FillResult:
        return FillResult(
            upper_point=flattened.a_flat[-1],
            lower_point=flattened.a_flat[0],
            down_dir=flattened.a_end_dir,
            up_dir=flattened.a_start_dir,
            upper_advance=flattened.end_advance,
            lower_advance=flattened.start_advance,
        )


# ─── Recursion ───────────────────────────────────────────────────────────────

def try_split(
    node: FlattenNode,
    surface_curves: Sequence[SurfaceCurve],
    curve: DivisionCurve,
    puzzle_tooth_width: float,
    puzzle_tooth_angle: float,
) -> bool:
    """Split ``node`` at ``curve`` if the curve ends inside the node's band.

    On success the node is filled down to the split and gets two children.
    Returns whether the curve was consumed.
    """
    end = curve.t_curve.get(1.0)
    upper = node.upper_bound(end.x)
    lower = node.lower_bound(end.x)
    if not lower + MIN_STEP < end.y < upper - MIN_STEP:
        return False

    split_index = min(curve.id_end, node.start_seg_idx - 1)
    if split_index < 1:
        return False

    result = node.fill(surface_curves, split_index, puzzle_tooth_width, puzzle_tooth_angle)
    n_bulkheads = len(node.bulkheads)
    upper_child = UpperNode(
        n_bulkheads, node.prefix, node.depth + 1, len(node.children), split_index,
        result.upper_point, result.down_dir, result.upper_advance,
        node.upper_bound, curve.t_at,
    )
    node.children.append(upper_child)
    lower_child = LowerNode(
        n_bulkheads, node.prefix, node.depth + 1, len(node.children), split_index,
        result.lower_point, result.up_dir, result.lower_advance,
        curve.t_at, node.lower_bound,
    )
    node.children.append(lower_child)
    return True


def split_node_recursive(
    node: FlattenNode,
    surface_curves: Sequence[SurfaceCurve],
    curves: Sequence[DivisionCurve],
    puzzle_tooth_width: float,
    puzzle_tooth_angle: float,
) -> None:
    """Fill ``node``, splitting at the first division curve it can consume.

    Curves the node cannot consume are passed on to its children.
    """
    remaining = list(curves)
    for i, curve in enumerate(remaining):
        if try_split(node, surface_curves, curve, puzzle_tooth_width, puzzle_tooth_angle):
            rest = remaining[:i] + remaining[i + 1:]
            for child in node.children:
                split_node_recursive(
                    child, surface_curves, rest, puzzle_tooth_width, puzzle_tooth_angle
                )
            return
    node.fill(surface_curves, 0, puzzle_tooth_width, puzzle_tooth_angle)


def node_as_list(node: FlattenNode) -> List[FlattenNode]:
    """Depth-first list of ``node`` and its descendants."""
    nodes = [node]
    for child in node.children:
        nodes.extend(node_as_list(child))
    return nodes


def node_to_continuous_points(node: FlattenNode) -> List[Point2D]:
    """Outline of the whole tree.

    The outermost upper boundary (following each node's first child) then
    the outermost lower boundary (following each node's last child),
    reversed. Each consumed cross-section contributes one point to each.
    """
    upper: List[Point2D] = []
    current = node
    while current is not None:
        upper.extend(current.upper_nodes)
        current = current.children[0] if current.children else None

    lower: List[Point2D] = []
    current = node
    while current is not None:
        lower.extend(current.lower_nodes)
        current = current.children[-1] if current.children else None

    return upper + lower[::-1]


# ─── Whole-surface flattening ────────────────────────────────────────────────

@dataclass
class FlattenedSide:
    """Flattened panels of one surface."""
    root: FlattenNode
    nodes: List[FlattenNode]
    panels: List[List[Point2D]]
    bulkhead_lines: List[List[List[Point2D]]]   # per plane, one polyline per node
    outline: List[Point2D]
    rotation: float = 0.0
    issues: List[str] = field(default_factory=list)

    def panel_polygons(self) -> List[Polygon]:
        return [to_polygon(panel) for panel in self.panels if len(panel) >= 3]

    def outline_polygon(self) -> Polygon:
        return to_polygon(self.outline)

    def validate_geometry(self) -> List[str]:
        """Check panels and outline for geometry issues.

        Returns list of warning strings (empty = ok).
        """
        issues = []
        outline = self.outline_polygon()
        if outline.is_empty or outline.area <= 0.0:
            issues.append("Outline polygon is empty")
        elif not outline.is_valid:
            issues.append("Outline polygon self-intersects")
        for node, panel in zip(self.nodes, self.panels):
            if len(panel) < 3:
                issues.append(f"Panel {node.name} has only {len(panel)} points")
                continue
            poly = to_polygon(panel)
            if not poly.is_valid:
                issues.append(f"Panel {node.name} self-intersects")
        return issues


def to_polygon(points: Sequence[Point2D]) -> Polygon:
    return Polygon([(p.x, p.y) for p in points])


def flatten_surface(
    surface: RationalBezierSurface,
    puzzle_tooth_width: float,
    puzzle_tooth_angle: float,
    prefix: str = "",
    align_output: bool = False,
) -> FlattenedSide:
    """Flatten ``surface`` into panels.

    The tip is placed at the origin with the surface extending towards -x.
    With ``align_output`` every output point is rotated so the chord of the
    upper boundary runs along -x.
    """
    origin = Point2D(0.0, 0.0)
    tip = surface.flatten_tip(math.pi, origin, clockwise=False)
    root = UpperNode(
        len(surface.intersecting_planes), prefix, 0, 0,
        len(surface.surface_curves) - 1,
        tip.upper, tip.edge_direction, tip.advance_direction,
        lambda u: 1.0, lambda u: 0.0,
    )
    root.start = [origin]

    curves = sorted(surface.division_curves, key=lambda c: c.end, reverse=True)
    split_node_recursive(
        root, surface.surface_curves, curves, puzzle_tooth_width, puzzle_tooth_angle
    )

    nodes = node_as_list(root)
    panels = [node.outline() for node in nodes]
    bulkhead_lines = [
        [node.bulkheads[k] for node in nodes if len(node.bulkheads[k]) >= 2]
        for k in range(len(surface.intersecting_planes))
    ]
    outline = node_to_continuous_points(root)

    rotation = 0.0
    if align_output and len(outline) >= 2:
        chord = root.upper_nodes[-1].sub(root.upper_nodes[0])
        if chord.magnitude() > 0.0:
            rotation = math.pi - math.atan2(chord.y, chord.x)
            panels = [rotate_points(panel, rotation) for panel in panels]
            bulkhead_lines = [
                [rotate_points(line, rotation) for line in lines]
                for lines in bulkhead_lines
            ]
            outline = rotate_points(outline, rotation)

    side = FlattenedSide(root, nodes, panels, bulkhead_lines, outline, rotation)
    side.issues = side.validate_geometry()
    for issue in side.issues:
        logger.warning("%s: %s", prefix or "surface", issue)
    logger.info(
        "Flattened %s into %d panels (%d outline points)",
        prefix or "surface", len(nodes), len(outline),
    )
    return side
