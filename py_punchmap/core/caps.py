"""
Terminal caps of a table polygon.

A table's two short sides carry its connectors. Each cap is a thin strip
hugging one short edge, ``thickness`` deep into the table. Caps are purely
visual and are recomputed from the screen ring whenever needed.
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Sequence

import structlog

from .geometry import (
    Edge,
    Point,
    centroid,
    inset_cap_polygon,
    open_ring,
    rank_edges_by_length,
    warn_degenerate,
)

logger = structlog.get_logger()

START = "start"
END = "end"


@dataclass(frozen=True)
class CapPolygon:
    feature_id: str
    edge_role: str  # "start" or "end"
    ring: List[Point]


class CapPair(NamedTuple):
    start: CapPolygon
    end: CapPolygon


def compute_caps(ring: Sequence, thickness: float, feature_id: str = "") -> CapPair:
    """
    Caps on the two shortest edges of ``ring``.

    The shortest edge becomes the start cap, the next shortest the end cap;
    equal lengths are ordered by edge index. Degenerate rings never raise:
    a ring with a single edge uses it for both caps, and an empty ring yields
    two zero-area caps at the origin.
    """
    pts = open_ring(ring)
    if len(pts) < 3:
        warn_degenerate("Cap ring has fewer than 3 vertices",
                        feature_id=feature_id, vertices=len(pts))

    if not pts:
        origin = Point(0.0, 0.0)
        empty = [origin, origin, origin, origin]
        return CapPair(CapPolygon(feature_id, START, list(empty)),
                       CapPolygon(feature_id, END, list(empty)))

    ranked: List[Edge] = rank_edges_by_length(pts)
    first = ranked[0]
    second = ranked[1] if len(ranked) > 1 else ranked[0]
    center = centroid(pts)

    return CapPair(
        CapPolygon(feature_id, START, inset_cap_polygon(first, center, thickness)),
        CapPolygon(feature_id, END, inset_cap_polygon(second, center, thickness)),
    )
