"""Tests for nearest-feature hit testing."""

import pytest

from py_punchmap.core.feature_index import Feature, FeatureIndex
from py_punchmap.core.hit_testing import HitResult, HitTester
from py_punchmap.core.projection import ViewTransform


def square(fid, x0, y0, size=10):
    return Feature.from_coords(fid, [(x0, y0), (x0 + size, y0), (x0 + size, y0 + size), (x0, y0 + size)])


@pytest.fixture
def tester():
    index = FeatureIndex(ViewTransform())
    index.load([square("A", 0, 0), square("B", 12, 0)])
    return HitTester(index)


class TestHitTester:
    """Test hit testing against cached screen rings."""

    def test_inside_wins_over_nearby_edge(self, tester):
        """Test that containment beats a neighbour's edge within tolerance."""
        assert tester.find_nearest((9, 5), 16) == HitResult("A", 0.0)
        assert tester.find_nearest((13, 5), 16) == HitResult("B", 0.0)

    def test_inside_later_feature(self, tester):
        """Test that a later feature containing the point beats an earlier near one."""
        assert tester.find_nearest((15, 5), 16) == HitResult("B", 0.0)

    def test_edge_distance(self, tester):
        hit = tester.find_nearest((30, 5), 16)
        assert hit.feature_id == "B"
        assert hit.distance_px == pytest.approx(8.0)

    def test_outside_tolerance(self, tester):
        assert tester.find_nearest((30, 5), 5) is None
        assert tester.find_nearest((5, 100), 16) is None

    def test_tie_goes_to_first_feature(self, tester):
        hit = tester.find_nearest((11, 5), 16)
        assert hit == HitResult("A", 1.0)

    def test_corner_distance(self, tester):
        hit = tester.find_nearest((-3, -4), 16)
        assert hit.feature_id == "A"
        assert hit.distance_px == pytest.approx(5.0)

    def test_tolerance_is_inclusive(self, tester):
        assert tester.find_nearest((-3, -4), 5.0) is not None

    def test_empty_index(self):
        assert HitTester(FeatureIndex(ViewTransform())).find_nearest((0, 0), 100) is None

    def test_uses_screen_space(self):
        """Test that hit testing follows the zoomed screen rings."""
        view = ViewTransform(scale=4.0)
        index = FeatureIndex(view)
        index.load([square("A", 0, 0)])
        tester = HitTester(index)
        assert tester.find_nearest((35, 20), 1) == HitResult("A", 0.0)
        assert tester.find_nearest((45, 20), 1) is None
