"""Tests for deterministic marker placement."""

import pytest

from py_punchmap.core.geometry import DegenerateGeometryWarning, Point, point_in_polygon
from py_punchmap.core.markers import MarkerPlacer, place

RECT = [(0, 0), (40, 0), (40, 20), (0, 20)]
L_SHAPE = [(0, 0), (10, 0), (10, 5), (5, 5), (5, 10), (0, 10)]
TRIANGLE = [(0, 0), (30, 0), (0, 30)]
MARKER_IDS = ["1700000000000", "punch-a", "punch-b", "R3_T14-7", "x"]


class TestPlace:
    """Test the placement function."""

    def test_deterministic(self):
        """Test that the same id and polygon give bit-identical points."""
        for marker_id in MARKER_IDS:
            assert place(RECT, marker_id) == place(RECT, marker_id)

    @pytest.mark.parametrize("polygon", [RECT, L_SHAPE, TRIANGLE])
    def test_contained(self, polygon):
        """Test that sampled points land inside the polygon."""
        for marker_id in MARKER_IDS:
            p = place(polygon, marker_id)
            assert point_in_polygon(p, polygon)

    def test_ids_spread_out(self):
        points = {place(RECT, marker_id) for marker_id in MARKER_IDS}
        assert len(points) == len(MARKER_IDS)

    def test_closed_ring_same_as_open(self):
        assert place(RECT + [RECT[0]], "punch-a") == place(RECT, "punch-a")

    def test_world_scale_coordinates(self):
        """Test placement inside a small lon/lat sized table."""
        table = [(-1.7061, 52.7120), (-1.7060, 52.7120), (-1.7060, 52.71205), (-1.7061, 52.71205)]
        p = place(table, "punch-a")
        assert point_in_polygon(p, table)

    def test_fallback_for_near_zero_area(self):
        """Test the vertex-mean fallback when sampling cannot hit a sliver."""
        sliver = [(0.0, 0.0), (100.0, 100.0), (100.0 - 1e-9, 100.0)]
        p = place(sliver, "punch-a")
        assert p.x == pytest.approx((200.0 - 1e-9) / 3)
        assert p.y == pytest.approx(200.0 / 3)

    def test_fallback_when_out_of_tries(self):
        assert place(RECT, "punch-a", max_tries=0) == Point(20.0, 10.0)

    def test_too_few_vertices_warns(self):
        with pytest.warns(DegenerateGeometryWarning):
            p = place([(0, 0), (4, 2)], "punch-a")
        assert p == Point(2.0, 1.0)

    def test_zero_area_bbox_warns(self):
        with pytest.warns(DegenerateGeometryWarning):
            p = place([(0, 0), (5, 0), (10, 0)], "punch-a")
        assert p == Point(5.0, 0.0)


class TestMarkerPlacer:
    """Test the session location cache."""

    def test_location_is_cached(self):
        """Test that a location never moves once assigned."""
        placer = MarkerPlacer()
        first = placer.location_for(RECT, "punch-a")
        again = placer.location_for(TRIANGLE, "punch-a")
        assert again == first
        assert first.marker_id == "punch-a"
        assert "punch-a" in placer
        assert len(placer) == 1

    def test_forget(self):
        placer = MarkerPlacer()
        placer.location_for(RECT, "punch-a")
        placer.forget("punch-a")
        assert "punch-a" not in placer
        assert placer.location_for(TRIANGLE, "punch-a").point == place(TRIANGLE, "punch-a")

    def test_clear(self):
        placer = MarkerPlacer()
        placer.location_for(RECT, "punch-a")
        placer.location_for(RECT, "punch-b")
        placer.clear()
        assert len(placer) == 0

    def test_max_tries_setting(self):
        placer = MarkerPlacer(max_tries=0)
        assert placer.place(RECT, "punch-a") == Point(20.0, 10.0)
