"""Tests for the planar geometry primitives."""

import math

import pytest

from py_punchmap.core.geometry import (
    DegenerateGeometryWarning,
    Edge,
    Point,
    bounding_box,
    centroid,
    distance_point_to_segment,
    inset_cap_polygon,
    open_ring,
    point_in_polygon,
    rank_edges_by_length,
)

SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10)]
L_SHAPE = [(0, 0), (10, 0), (10, 5), (5, 5), (5, 10), (0, 10)]


class TestPointInPolygon:
    """Test the ray-casting containment test."""

    def test_inside_and_outside(self):
        """Test points clearly inside and outside a square."""
        assert point_in_polygon((5, 5), SQUARE)
        assert not point_in_polygon((15, 5), SQUARE)
        assert not point_in_polygon((-1, -1), SQUARE)

    def test_closed_ring_matches_open_ring(self):
        """Test that a repeated closing vertex does not change the result."""
        closed = SQUARE + [SQUARE[0]]
        for p in [(5, 5), (9.9, 0.1), (15, 5), (5, -3)]:
            assert point_in_polygon(p, closed) == point_in_polygon(p, SQUARE)

    def test_concave_notch(self):
        """Test that the notch of an L-shape is outside."""
        assert point_in_polygon((2, 8), L_SHAPE)
        assert point_in_polygon((8, 2), L_SHAPE)
        assert not point_in_polygon((8, 8), L_SHAPE)

    def test_degenerate_ring(self):
        """Test that rings with fewer than 3 vertices contain nothing."""
        assert not point_in_polygon((0, 0), [])
        assert not point_in_polygon((1, 0), [(0, 0), (2, 0)])


class TestDistanceToSegment:
    """Test point-to-segment distance."""

    def test_perpendicular_projection(self):
        assert distance_point_to_segment((5, 3), (0, 0), (10, 0)) == pytest.approx(3.0)

    def test_clamped_to_endpoint(self):
        """Test that projections beyond the segment clamp to the endpoint."""
        assert distance_point_to_segment((13, 4), (0, 0), (10, 0)) == pytest.approx(5.0)
        assert distance_point_to_segment((-3, -4), (0, 0), (10, 0)) == pytest.approx(5.0)

    def test_zero_length_segment(self):
        assert distance_point_to_segment((3, 4), (0, 0), (0, 0)) == pytest.approx(5.0)


class TestCentroid:
    """Test the vertex-mean centroid."""

    def test_square(self):
        assert centroid(SQUARE) == Point(5.0, 5.0)

    def test_closing_vertex_not_double_counted(self):
        assert centroid(SQUARE + [SQUARE[0]]) == Point(5.0, 5.0)

    def test_is_vertex_mean_not_area_centroid(self):
        """Test that the L-shape gives the plain vertex average."""
        c = centroid(L_SHAPE)
        assert c.x == pytest.approx(30 / 6)
        assert c.y == pytest.approx(30 / 6)

    def test_empty_ring_warns(self):
        with pytest.warns(DegenerateGeometryWarning):
            assert centroid([]) == Point(0.0, 0.0)


class TestEdges:
    """Test edge ranking and helpers."""

    def test_open_ring_strips_closing_vertex(self):
        assert open_ring(SQUARE + [SQUARE[0]]) == [Point(*p) for p in SQUARE]

    def test_bounding_box(self):
        assert bounding_box(L_SHAPE) == (0.0, 0.0, 10.0, 10.0)

    def test_rectangle_ranking(self):
        """Test that the short sides of a rectangle rank first."""
        rect = [(0, 0), (20, 0), (20, 10), (0, 10)]
        ranked = rank_edges_by_length(rect)
        assert [e.index for e in ranked] == [1, 3, 0, 2]
        assert [e.length for e in ranked] == [10.0, 10.0, 20.0, 20.0]

    def test_ties_keep_ring_order(self):
        ranked = rank_edges_by_length(SQUARE)
        assert [e.index for e in ranked] == [0, 1, 2, 3]

    def test_closed_ring_has_no_zero_edge(self):
        ranked = rank_edges_by_length(SQUARE + [SQUARE[0]])
        assert len(ranked) == 4
        assert ranked[0].length == 10.0


class TestInsetCap:
    """Test cap quadrilateral construction."""

    def test_normal_points_towards_interior(self):
        edge = Edge(0, Point(0, 0), Point(0, 10), 10.0)
        quad = inset_cap_polygon(edge, (10, 5), 2.0)
        assert quad == [Point(0, 0), Point(0, 10), Point(2, 10), Point(2, 0)]

    def test_normal_flip_is_independent_of_edge_direction(self):
        """Test that reversing the edge still insets towards the interior."""
        edge = Edge(0, Point(0, 10), Point(0, 0), 10.0)
        quad = inset_cap_polygon(edge, (10, 5), 2.0)
        assert all(p.x in (0.0, 2.0) for p in quad)
        assert {p.x for p in quad[2:]} == {2.0}

    def test_zero_length_edge(self):
        """Test that a zero-length edge gives a zero-area quad."""
        edge = Edge(0, Point(1, 1), Point(1, 1), 0.0)
        quad = inset_cap_polygon(edge, (5, 5), 3.0)
        assert len(quad) == 4
        for p in quad:
            assert math.isclose(p.x, 1.0) and math.isclose(p.y, 1.0)
