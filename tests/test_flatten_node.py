"""Tests for recursive surface flattening."""
import math

import pytest

from flatten_node import (
    LowerNode,
    UpperNode,
    flatten_surface,
    node_as_list,
    node_to_continuous_points,
    split_node_recursive,
    try_split,
)
from puzzle_teeth import point_path_to_puzzle_teeth
from rational_point import Point2D
from unroll import Interval, unroll_curves

TOOTH_WIDTH = 0.5
TOOTH_ANGLE = math.pi / 18


@pytest.fixture(scope="module")
def single_panel(two_rail_surface):
    return flatten_surface(two_rail_surface, TOOTH_WIDTH, TOOTH_ANGLE, prefix="LEE")


@pytest.fixture(scope="module")
def split_panels(three_rail_surface):
    return flatten_surface(three_rail_surface, TOOTH_WIDTH, TOOTH_ANGLE, prefix="LEE")


def _node(upper=1.0, lower=0.0, start=10, cls=UpperNode):
    return cls(
        0, "T", 0, 0, start,
        Point2D(0, 0), Point2D(0, -1), Point2D(-1, 0),
        lambda u: upper, lambda u: lower,
    )


class TestSinglePanel:
    """Two rails, no panel schedule and no planes."""

    def test_one_node(self, single_panel):
        assert len(single_panel.nodes) == 1
        assert single_panel.root.children == []
        assert len(single_panel.panels) == 1

    def test_outline_covers_every_cross_section(self, single_panel, two_rail_surface):
        assert len(single_panel.outline) == 2 * two_rail_surface.divisions

    def test_no_bulkheads(self, single_panel):
        assert single_panel.bulkhead_lines == []

    def test_outline_is_a_real_polygon(self, single_panel):
        polygon = single_panel.outline_polygon()
        assert not polygon.is_empty
        assert polygon.area > 0.0

    def test_panel_closes_at_tip(self, single_panel):
        root = single_panel.root
        assert root.leading_edge() == [Point2D(0, 0)]
        assert single_panel.panels[0][-1] == Point2D(0, 0)
        assert single_panel.panels[0][0] == root.upper_nodes[0]

    def test_upper_edge_keeps_rail_spacing(self, single_panel, two_rail_surface):
        curves = two_rail_surface.surface_curves
        upper = single_panel.root.upper_nodes
        n = len(curves)
        for i in range(0, n - 1, 25):
            expected = curves[n - 1 - i].curve.get(1.0).dist(curves[n - 2 - i].curve.get(1.0))
            assert upper[i].dist(upper[i + 1]) == pytest.approx(expected, rel=1e-6)

    def test_panel_grows_away_from_tip(self, single_panel):
        upper = single_panel.root.upper_nodes
        assert upper[-1].x < upper[0].x < 0.0

    def test_root_consumes_all_cross_sections(self, single_panel, two_rail_surface):
        root = single_panel.root
        assert root.start_seg_idx == two_rail_surface.divisions - 1
        assert root.end_seg_idx == 0
        assert len(root.upper_nodes) == len(root.lower_nodes) == two_rail_surface.divisions


class TestSplitPanels:
    """One division curve splits the root into an upper and a lower child."""

    def test_tree_shape(self, split_panels):
        root = split_panels.root
        assert len(split_panels.nodes) == 3
        assert [type(c) for c in root.children] == [UpperNode, LowerNode]
        assert all(child.children == [] for child in root.children)
        assert node_as_list(root) == split_panels.nodes

    def test_children_start_at_the_split(self, split_panels, three_rail_surface):
        root = split_panels.root
        split = three_rail_surface.division_curves[0].id_end
        assert root.end_seg_idx == split
        for child in root.children:
            assert child.start_seg_idx == split
            assert child.end_seg_idx == 0
            assert child.depth == 1

    def test_outline_covers_every_cross_section(self, split_panels, three_rail_surface):
        assert len(split_panels.outline) == 2 * three_rail_surface.divisions
        assert split_panels.root.to_continuous_points() == node_to_continuous_points(
            split_panels.root
        )

    def test_boundary_counts_balance(self, split_panels):
        for node in split_panels.nodes:
            assert len(node.upper_nodes) == len(node.lower_nodes)

    def test_children_continue_from_parent(self, split_panels):
        root = split_panels.root
        upper_child, lower_child = root.children
        assert upper_child.leading_edge()[0] == root.upper_nodes[-1]
        assert lower_child.leading_edge()[-1] == root.lower_nodes[-1]

    def test_panel_outline_includes_child_edges(self, split_panels):
        root = split_panels.root
        panel = split_panels.panels[0]
        expected = (
            len(root.upper_nodes)
            + sum(len(c.leading_edge()) for c in root.children)
            + len(root.lower_nodes)
            + 1
        )
        assert len(panel) == expected

    def test_bulkhead_lines(self, split_panels):
        assert len(split_panels.bulkhead_lines) == 1
        lines = split_panels.bulkhead_lines[0]
        assert len(lines) >= 1
        for line in lines:
            assert len(line) >= 2

    def test_polygons(self, split_panels):
        assert len(split_panels.panel_polygons()) == 3
        assert split_panels.outline_polygon().area > 0.0


class TestNodeMechanics:
    def test_upper_node_interval(self):
        node = _node(upper=0.8, lower=0.3)
        interval = node.get_bounded_interval(0.5)
        assert (interval.start, interval.end) == (0.8, 0.3)

    def test_lower_node_interval(self):
        node = _node(upper=0.8, lower=0.3, cls=LowerNode)
        interval = node.get_bounded_interval(0.5)
        assert (interval.start, interval.end) == (0.3, 0.8)

    def test_crossed_bounds_collapse(self):
        upper = _node(upper=0.3, lower=0.6).get_bounded_interval(0.1)
        assert upper.start == upper.end == 0.3
        lower = _node(upper=0.3, lower=0.6, cls=LowerNode).get_bounded_interval(0.1)
        assert lower.start == lower.end == 0.6

    def test_fill_range_checked(self, two_rail_surface):
        node = _node(start=10)
        with pytest.raises(ValueError):
            node.fill(two_rail_surface.surface_curves, 10, TOOTH_WIDTH, TOOTH_ANGLE)
        with pytest.raises(ValueError):
            node.fill(two_rail_surface.surface_curves, -1, TOOTH_WIDTH, TOOTH_ANGLE)

    def test_split_rejected_outside_bounds(self, three_rail_surface):
        node = _node(upper=0.999, lower=0.998, start=200)
        division = three_rail_surface.division_curves[0]
        surface_curves = three_rail_surface.surface_curves
        assert not try_split(node, surface_curves, division, TOOTH_WIDTH, TOOTH_ANGLE)
        assert node.children == []
        assert node.upper_nodes == []

    def test_split_rejected_too_close_to_start(self, three_rail_surface):
        node = _node(start=1)
        division = three_rail_surface.division_curves[0]
        assert not try_split(
            node, three_rail_surface.surface_curves, division, TOOTH_WIDTH, TOOTH_ANGLE
        )

    def test_non_root_leading_edge_is_toothed(self, two_rail_surface):
        node = UpperNode(
            0, "T", 1, 0, 10,
            Point2D(0, 0), Point2D(0, -1), Point2D(-1, 0),
            lambda u: 1.0, lambda u: 0.0,
        )
        curves = two_rail_surface.surface_curves
        node.fill(curves, 0, 0.2, TOOTH_ANGLE)

        full = Interval(1.0, 0.0)
        first = unroll_curves(
            curves[9].curve, full, curves[10].curve, full,
            Point2D(0, 0), Point2D(0, -1), Point2D(-1, 0),
        )
        assert node.start == point_path_to_puzzle_teeth(first.b_flat, 0.2, TOOTH_ANGLE)
        assert node.start != first.b_flat
        assert node.start[0] == Point2D(0, 0)
        # Children record their leading edge only, not as a boundary point
        assert len(node.upper_nodes) == 10


class TestAlignment:
    def test_align_output_levels_top_edge(self, two_rail_surface):
        side = flatten_surface(two_rail_surface, TOOTH_WIDTH, TOOTH_ANGLE, align_output=True)
        n = two_rail_surface.divisions
        first, last = side.outline[0], side.outline[n - 1]
        assert side.rotation != 0.0
        assert last.y == pytest.approx(first.y, abs=1e-9)
        assert last.x < first.x


class TestNestedSplits:
    """Two seams: the root splits at the first, and the second is passed on
    to both children but only the upper child can use it."""

    @pytest.fixture(scope="class")
    def nested(self, two_seam_surface):
        return flatten_surface(two_seam_surface, TOOTH_WIDTH, TOOTH_ANGLE, prefix="LEE")

    def test_tree_shape(self, nested, two_seam_surface):
        assert len(two_seam_surface.division_curves) == 2
        shape = [
            (node.start_seg_idx, node.end_seg_idx, type(node), node.depth)
            for node in nested.nodes
        ]
        assert shape == [
            (200, 160, UpperNode, 0),
            (160, 80, UpperNode, 1),
            (80, 0, UpperNode, 2),
            (80, 0, LowerNode, 2),
            (160, 0, LowerNode, 1),
        ]

    def test_children_start_where_parent_ends(self, nested):
        for node in nested.nodes:
            for child in node.children:
                assert child.start_seg_idx == node.end_seg_idx
                assert child.depth == node.depth + 1

    def test_unused_seam_leaves_lower_child_whole(self, nested):
        upper_child, lower_child = nested.root.children
        assert len(upper_child.children) == 2
        assert lower_child.children == []

    def test_outline_covers_every_cross_section(self, nested, two_seam_surface):
        assert len(nested.outline) == 2 * two_seam_surface.divisions

    def test_geometry_is_valid(self, nested):
        assert nested.validate_geometry() == []
        assert nested.issues == []
        assert len(nested.panel_polygons()) == 5

    def test_recursion_matches_flatten_surface(self, nested, two_seam_surface):
        root = UpperNode(
            0, "LEE", 0, 0, len(two_seam_surface.surface_curves) - 1,
            nested.root.reference_point,
            nested.root.reference_direction,
            nested.root.advance_direction,
            lambda u: 1.0, lambda u: 0.0,
        )
        root.start = [Point2D(0, 0)]
        curves = sorted(two_seam_surface.division_curves, key=lambda c: c.end, reverse=True)
        split_node_recursive(
            root, two_seam_surface.surface_curves, curves, TOOTH_WIDTH, TOOTH_ANGLE
        )
        assert node_to_continuous_points(root) == nested.outline
        assert [n.name for n in node_as_list(root)] == [n.name for n in nested.nodes]
