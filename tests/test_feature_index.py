"""Tests for the feature index and its screen ring cache."""

import pytest

from py_punchmap.core.feature_index import DuplicateIdError, Feature, FeatureIndex
from py_punchmap.core.geometry import Point
from py_punchmap.core.projection import ViewTransform


def square(fid, x0, y0, size=10, anchor=None):
    ring = [(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)]
    return Feature.from_coords(fid, ring, anchor=anchor)


@pytest.fixture
def view():
    return ViewTransform(origin=(0, 0), scale=2.0)


@pytest.fixture
def index(view):
    idx = FeatureIndex(view)
    idx.load([square("A", 0, 0), square("B", 20, 0)])
    return idx


class TestFeature:
    """Test the Feature record."""

    def test_from_coords_strips_closing_vertex(self):
        f = Feature.from_coords(1, [(0, 0), (1, 0), (1, 1), (0, 0)])
        assert f.id == "1"
        assert f.world_ring == (Point(0, 0), Point(1, 0), Point(1, 1))

    def test_anchor_defaults_to_centroid(self):
        assert square("A", 0, 0).anchor_point == Point(5.0, 5.0)

    def test_explicit_anchor(self):
        assert square("A", 0, 0, anchor=(1, 2)).anchor_point == Point(1.0, 2.0)


class TestFeatureIndex:
    """Test loading and the screen ring cache."""

    def test_load_builds_cache(self, index):
        assert index.ids() == ["A", "B"]
        assert index.get_screen_ring("A") == [Point(0, 0), Point(20, 0), Point(20, 20), Point(0, 20)]
        assert index.get_screen_ring("missing") is None
        assert len(index) == 2
        assert "B" in index

    def test_duplicate_id_keeps_previous_index(self, index):
        """Test that a rejected load leaves the old features and cache."""
        before = index.get_screen_ring("A")
        with pytest.raises(DuplicateIdError) as excinfo:
            index.load([square("C", 0, 0), square("C", 50, 50)])
        assert excinfo.value.feature_id == "C"
        assert index.ids() == ["A", "B"]
        assert index.get_screen_ring("A") == before

    def test_cache_only_changes_on_notification(self, index, view):
        """Test that a view change is not picked up until the index is told."""
        view.zoom_at(2.0)
        assert index.get_screen_ring("A")[2] == Point(20, 20)
        index.on_view_transform_changed()
        assert index.get_screen_ring("A")[2] == Point(40, 40)

    def test_reload_replaces_features(self, index):
        index.load([square("Z", 0, 0)])
        assert index.ids() == ["Z"]
        assert index.get_screen_ring("A") is None

    def test_screen_rings_in_load_order(self, index):
        entries = list(index.screen_rings())
        assert [e.feature_id for e in entries] == ["A", "B"]
        assert entries[1].bounds == (40.0, 0.0, 60.0, 20.0)

    def test_bounds_proximity(self, index):
        entry = next(index.screen_rings())
        assert entry.near(Point(25, 10), 5.0)
        assert not entry.near(Point(26, 10), 5.0)

    def test_anchors(self, index):
        assert dict(index.anchors()) == {"A": Point(5.0, 5.0), "B": Point(25.0, 5.0)}

    def test_without_projector(self):
        idx = FeatureIndex()
        idx.load([square("A", 0, 0)])
        assert idx.get_screen_ring("A") is None
        with pytest.raises(RuntimeError):
            idx.on_view_transform_changed()
