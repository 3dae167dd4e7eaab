"""Nearest-feature lookup for screen points with a pixel tolerance."""

import math
from typing import NamedTuple, Optional

from .feature_index import FeatureIndex
from .geometry import Point, as_point, distance_point_to_segment, point_in_polygon


class HitResult(NamedTuple):
    feature_id: str
    distance_px: float


class HitTester:
    """
    Finds the feature under (or nearest to) a screen point.

    A point inside a polygon scores 0; otherwise the score is the distance to
    the polygon's closest edge. The lowest score within tolerance wins and the
    first feature in load order wins ties.
    """

    def __init__(self, index: FeatureIndex):
        self.index = index

    def find_nearest(self, screen_point, tolerance_px: float) -> Optional[HitResult]:
        p = as_point(screen_point)
        best_id = None
        best_dist = math.inf

        for entry in self.index.screen_rings():
            # Cannot beat the tolerance from outside the grown bounds
            if not entry.near(p, tolerance_px):
                continue

            dist = self._ring_distance(p, entry.ring)
            if dist < best_dist:
                best_id, best_dist = entry.feature_id, dist
                if best_dist == 0.0:
                    break

        if best_id is None or best_dist > tolerance_px:
            return None
        return HitResult(best_id, best_dist)

    @staticmethod
    def _ring_distance(p: Point, ring) -> float:
        if point_in_polygon(p, ring):
            return 0.0
        n = len(ring)
        d_min = math.inf
        for i in range(n):
            d = distance_point_to_segment(p, ring[i], ring[(i + 1) % n])
            if d < d_min:
                d_min = d
        return d_min
