"""Tests for terminal cap geometry."""

import math

import numpy as np
import pytest

from py_punchmap.core.caps import END, START, compute_caps
from py_punchmap.core.geometry import DegenerateGeometryWarning, Point

WIDE = [(0, 0), (20, 0), (20, 10), (0, 10)]


def cap_xs(cap):
    return sorted({round(p.x, 9) for p in cap.ring})


def cap_ys(cap):
    return sorted({round(p.y, 9) for p in cap.ring})


class TestComputeCaps:
    """Test cap selection and shape."""

    def test_rectangle_caps_on_short_sides(self):
        caps = compute_caps(WIDE, 2.0, feature_id="T1")
        assert caps.start.ring == [Point(20, 0), Point(20, 10), Point(18, 10), Point(18, 0)]
        assert caps.end.ring == [Point(0, 10), Point(0, 0), Point(2, 0), Point(2, 10)]
        assert caps.start.edge_role == START
        assert caps.end.edge_role == END
        assert caps.start.feature_id == caps.end.feature_id == "T1"

    @pytest.mark.parametrize("shift", [0, 1, 2, 3])
    def test_vertex_rotation_picks_same_sides(self, shift):
        """Test that the caps follow geometry, not vertex order."""
        ring = WIDE[shift:] + WIDE[:shift]
        caps = compute_caps(ring, 2.0)
        sides = sorted([cap_xs(caps.start), cap_xs(caps.end)])
        assert sides == [[0.0, 2.0], [18.0, 20.0]]

    def test_tall_rectangle(self):
        """Test that swapping which pair is shorter moves the caps."""
        tall = [(0, 0), (10, 0), (10, 20), (0, 20)]
        caps = compute_caps(tall, 2.0)
        sides = sorted([cap_ys(caps.start), cap_ys(caps.end)])
        assert sides == [[0.0, 2.0], [18.0, 20.0]]

    def test_reversed_winding(self):
        caps = compute_caps(list(reversed(WIDE)), 2.0)
        sides = sorted([cap_xs(caps.start), cap_xs(caps.end)])
        assert sides == [[0.0, 2.0], [18.0, 20.0]]

    def test_diagonal_rectangle(self):
        """Test a rectangle rotated by 45 degrees."""
        ring = [(0, 0), (20, 20), (15, 25), (-5, 5)]
        caps = compute_caps(ring, math.sqrt(2))
        np.testing.assert_allclose(caps.start.ring, [(20, 20), (15, 25), (14, 24), (19, 19)], atol=1e-9)
        np.testing.assert_allclose(caps.end.ring, [(-5, 5), (0, 0), (1, 1), (-4, 6)], atol=1e-9)

    def test_caps_stay_inside(self):
        caps = compute_caps(WIDE, 3.0)
        for cap in caps:
            for p in cap.ring:
                assert 0.0 <= p.x <= 20.0
                assert 0.0 <= p.y <= 10.0

    def test_closed_ring(self):
        caps = compute_caps(WIDE + [WIDE[0]], 2.0)
        assert caps == compute_caps(WIDE, 2.0)

    def test_triangle(self):
        """Test that a 3-vertex ring still yields two caps."""
        caps = compute_caps([(0, 0), (10, 0), (0, 3)], 1.0)
        assert len(caps.start.ring) == 4
        assert len(caps.end.ring) == 4

    def test_two_vertices_warns(self):
        with pytest.warns(DegenerateGeometryWarning):
            caps = compute_caps([(0, 0), (10, 0)], 1.0)
        assert len(caps.start.ring) == 4
        assert len(caps.end.ring) == 4

    def test_single_vertex(self):
        with pytest.warns(DegenerateGeometryWarning):
            caps = compute_caps([(3, 3)], 1.0)
        assert caps.start.ring == caps.end.ring

    def test_empty_ring(self):
        with pytest.warns(DegenerateGeometryWarning):
            caps = compute_caps([], 1.0)
        assert caps.start.ring == [Point(0.0, 0.0)] * 4
        assert caps.end.edge_role == END
