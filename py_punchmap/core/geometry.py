"""
Planar geometry primitives used by hit testing, marker placement and caps.

All functions are pure and work in whichever coordinate space they are
given (world or screen). Callers must not mix the two within one call.
"""

import math
import warnings
from typing import List, NamedTuple, Sequence, Tuple

import numpy as np
import structlog

logger = structlog.get_logger()


class Point(NamedTuple):
    """A 2-D point in world or screen space."""
    x: float
    y: float


class Edge(NamedTuple):
    """A ring edge from ``start`` to ``end``; ``index`` is its position in the ring."""
    index: int
    start: Point
    end: Point
    length: float


class DegenerateGeometryWarning(UserWarning):
    """Geometry too small to work with; a documented fallback was returned."""


def warn_degenerate(message: str, **context) -> None:
    """Log and emit a DegenerateGeometryWarning."""
    logger.warning(message, **context)
    warnings.warn(message, DegenerateGeometryWarning, stacklevel=3)


def as_point(p) -> Point:
    """Coerce an (x, y) pair into a Point."""
    if isinstance(p, Point):
        return p
    return Point(float(p[0]), float(p[1]))


def open_ring(ring: Sequence) -> List[Point]:
    """Return the ring without its closing vertex, if it has one."""
    pts = [as_point(p) for p in ring]
    if len(pts) > 1 and pts[0] == pts[-1]:
        pts.pop()
    return pts


def point_in_polygon(p, ring: Sequence) -> bool:
    """
    Ray-casting parity test.

    Works for open and closed rings; the closing edge is only counted once.
    Points exactly on the boundary may fall either way.
    """
    p = as_point(p)
    pts = open_ring(ring)
    n = len(pts)
    if n < 3:
        return False

    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = pts[i]
        xj, yj = pts[j]
        if (yi > p.y) != (yj > p.y):
            x_cross = (xj - xi) * (p.y - yi) / (yj - yi) + xi
            if p.x < x_cross:
                inside = not inside
        j = i
    return inside


def distance_point_to_segment(p, a, b) -> float:
    """Euclidean distance from p to the closest point of segment ab."""
    p, a, b = as_point(p), as_point(a), as_point(b)
    abx, aby = b.x - a.x, b.y - a.y
    ab2 = abx * abx + aby * aby
    if ab2 == 0.0:
        return math.hypot(p.x - a.x, p.y - a.y)
    t = ((p.x - a.x) * abx + (p.y - a.y) * aby) / ab2
    t = max(0.0, min(1.0, t))
    return math.hypot(p.x - (a.x + t * abx), p.y - (a.y + t * aby))


def centroid(ring: Sequence) -> Point:
    """
    Arithmetic mean of the ring's vertices.

    This is not the area-weighted centroid. For the near-rectangular
    tables this package deals with the two are practically identical.
    """
    pts = open_ring(ring)
    if not pts:
        warn_degenerate("Centroid of empty ring", vertices=0)
        return Point(0.0, 0.0)
    mean = np.asarray(pts, dtype=float).mean(axis=0)
    return Point(float(mean[0]), float(mean[1]))


def bounding_box(ring: Sequence) -> Tuple[float, float, float, float]:
    """Axis-aligned bounds as (min_x, min_y, max_x, max_y)."""
    arr = np.asarray(open_ring(ring), dtype=float)
    if arr.size == 0:
        return 0.0, 0.0, 0.0, 0.0
    min_x, min_y = arr.min(axis=0)
    max_x, max_y = arr.max(axis=0)
    return float(min_x), float(min_y), float(max_x), float(max_y)


def ring_edges(ring: Sequence) -> List[Edge]:
    """Edges of the ring in order, including the closing edge."""
    pts = open_ring(ring)
    n = len(pts)
    edges = []
    for i in range(n):
        a, b = pts[i], pts[(i + 1) % n]
        edges.append(Edge(i, a, b, math.hypot(b.x - a.x, b.y - a.y)))
    return edges


def rank_edges_by_length(ring: Sequence) -> List[Edge]:
    """Edges sorted by ascending length; equal lengths keep ring order."""
    return sorted(ring_edges(ring), key=lambda e: (e.length, e.index))


def inset_cap_polygon(edge: Edge, interior_point, thickness: float) -> List[Point]:
    """
    Quadrilateral spanning ``edge`` and reaching ``thickness`` into the shape.

    The edge normal is flipped when it points away from ``interior_point``.
    A zero-length edge yields a zero-area quad instead of failing.
    """
    interior_point = as_point(interior_point)
    p0, p1 = edge.start, edge.end
    ex, ey = p1.x - p0.x, p1.y - p0.y
    length = math.hypot(ex, ey) or 1.0
    ex, ey = ex / length, ey / length

    nx, ny = -ey, ex
    mid_x, mid_y = (p0.x + p1.x) / 2.0, (p0.y + p1.y) / 2.0
    if nx * (interior_point.x - mid_x) + ny * (interior_point.y - mid_y) < 0:
        nx, ny = -nx, -ny

    ox, oy = nx * thickness, ny * thickness
    return [
        p0,
        p1,
        Point(p1.x + ox, p1.y + oy),
        Point(p0.x + ox, p0.y + oy),
    ]
