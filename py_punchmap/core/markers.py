"""
Deterministic marker placement inside feature polygons.

Punch markers attached to a table have no stored position of their own; they
are scattered inside the table polygon. To keep a marker from jumping around
between sessions its position is sampled from a generator seeded by the
marker id, so the same id and polygon always give the same point.
"""

from typing import Dict, NamedTuple, Sequence

import structlog

from .geometry import Point, bounding_box, open_ring, point_in_polygon, warn_degenerate
from .prng import Mulberry32, hash_string

logger = structlog.get_logger()

DEFAULT_MAX_TRIES = 100


class MarkerLocation(NamedTuple):
    marker_id: str
    point: Point


def _vertex_mean(pts: Sequence[Point]) -> Point:
    n = len(pts)
    if n == 0:
        return Point(0.0, 0.0)
    return Point(sum(p.x for p in pts) / n, sum(p.y for p in pts) / n)


def place(polygon: Sequence, marker_id: str, max_tries: int = DEFAULT_MAX_TRIES) -> Point:
    """
    Stable point inside ``polygon`` for ``marker_id`` (world space).

    Rejection-samples the bounding box with a generator seeded from the
    marker id. Falls back to the vertex mean when no sample lands inside,
    or when the polygon has fewer than 3 vertices or a zero-area bounding
    box.
    """
    pts = open_ring(polygon)
    if len(pts) < 3:
        warn_degenerate("Marker polygon has fewer than 3 vertices",
                        marker_id=marker_id, vertices=len(pts))
        return _vertex_mean(pts)

    min_x, min_y, max_x, max_y = bounding_box(pts)
    if max_x <= min_x or max_y <= min_y:
        warn_degenerate("Marker polygon has zero-area bounding box", marker_id=marker_id)
        return _vertex_mean(pts)

    rng = Mulberry32(hash_string(marker_id))
    for _ in range(max_tries):
        x = rng.uniform(min_x, max_x)
        y = rng.uniform(min_y, max_y)
        candidate = Point(x, y)
        if point_in_polygon(candidate, pts):
            return candidate

    logger.debug("Marker sampling exhausted, using vertex mean",
                 marker_id=marker_id, tries=max_tries)
    return _vertex_mean(pts)


class MarkerPlacer:
    """
    Session cache of marker locations.

    A location is computed the first time a marker id is requested and is
    returned unchanged afterwards, even if asked with another polygon.
    """

    def __init__(self, max_tries: int = DEFAULT_MAX_TRIES):
        self.max_tries = max_tries
        self._locations: Dict[str, MarkerLocation] = {}

    def place(self, polygon: Sequence, marker_id: str) -> Point:
        return place(polygon, marker_id, self.max_tries)

    def location_for(self, polygon: Sequence, marker_id: str) -> MarkerLocation:
        location = self._locations.get(marker_id)
        if location is None:
            location = MarkerLocation(marker_id, self.place(polygon, marker_id))
            self._locations[marker_id] = location
        return location

    def forget(self, marker_id: str) -> None:
        """Drop a deleted marker's cached location."""
        self._locations.pop(marker_id, None)

    def clear(self) -> None:
        self._locations.clear()

    def __contains__(self, marker_id) -> bool:
        return marker_id in self._locations

    def __len__(self) -> int:
        return len(self._locations)
