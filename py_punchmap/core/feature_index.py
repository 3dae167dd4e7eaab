"""
Indexed set of polygon features with a screen-space ring cache.

Screen rings are only recomputed when the host reports a view change
(``on_view_transform_changed``). Pointer handlers read the cache and never
re-project, so their cost does not depend on pointer-event frequency.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import structlog

from .geometry import Point, as_point, bounding_box, centroid, open_ring
from .projection import CoordinateProjector

logger = structlog.get_logger()


class DuplicateIdError(ValueError):
    """Two features in one load share the same id."""

    def __init__(self, feature_id: str):
        super().__init__(f"Duplicate feature id: {feature_id!r}")
        self.feature_id = feature_id


@dataclass(frozen=True)
class Feature:
    """A table/panel polygon in world coordinates. Immutable once loaded."""

    id: str
    world_ring: Tuple[Point, ...]
    anchor: Optional[Point] = None  # world point used for box selection

    @classmethod
    def from_coords(cls, feature_id: str, ring: Sequence, anchor=None) -> "Feature":
        return cls(
            id=str(feature_id),
            world_ring=tuple(open_ring(ring)),
            anchor=as_point(anchor) if anchor is not None else None,
        )

    @property
    def anchor_point(self) -> Point:
        """Explicit anchor, or the vertex-mean centroid of the ring."""
        if self.anchor is not None:
            return self.anchor
        return centroid(self.world_ring)


@dataclass
class ScreenRing:
    """Cached screen-space ring of one feature."""

    feature_id: str
    ring: List[Point]
    bounds: Tuple[float, float, float, float] = field(default=(0.0, 0.0, 0.0, 0.0))

    def near(self, p: Point, radius: float) -> bool:
        """Whether p lies within the bounds grown by radius."""
        min_x, min_y, max_x, max_y = self.bounds
        return (min_x - radius <= p.x <= max_x + radius
                and min_y - radius <= p.y <= max_y + radius)


class FeatureIndex:
    """Holds loaded features in load order and their cached screen rings."""

    def __init__(self, projector: Optional[CoordinateProjector] = None):
        self.projector = projector
        self._features: Dict[str, Feature] = {}
        self._screen_cache: Dict[str, ScreenRing] = {}

    def load(self, features: Iterable[Feature]) -> None:
        """
        Replace the index with ``features``.

        Raises DuplicateIdError when two features share an id; in that case
        the previously loaded features and cache stay in place.
        """
        incoming: Dict[str, Feature] = {}
        for feature in features:
            if feature.id in incoming:
                logger.warning("Rejecting feature load", duplicate_id=feature.id)
                raise DuplicateIdError(feature.id)
            incoming[feature.id] = feature

        self._features = incoming
        self._screen_cache = {}
        logger.info("Features loaded", count=len(incoming))

        if self.projector is not None:
            self.on_view_transform_changed()

    def on_view_transform_changed(self) -> None:
        """Rebuild the screen ring of every feature through the projector."""
        if self.projector is None:
            raise RuntimeError("FeatureIndex has no projector attached")

        project = self.projector.project
        cache: Dict[str, ScreenRing] = {}
        for fid, feature in self._features.items():
            ring = [as_point(project(p)) for p in feature.world_ring]
            cache[fid] = ScreenRing(fid, ring, bounding_box(ring))
        self._screen_cache = cache
        logger.debug("Screen ring cache rebuilt", count=len(cache))

    def get_screen_ring(self, feature_id: str) -> Optional[List[Point]]:
        entry = self._screen_cache.get(feature_id)
        return entry.ring if entry is not None else None

    def screen_rings(self) -> Iterator[ScreenRing]:
        """Cached rings in feature load order."""
        for fid in self._features:
            entry = self._screen_cache.get(fid)
            if entry is not None:
                yield entry

    def get(self, feature_id: str) -> Optional[Feature]:
        return self._features.get(feature_id)

    def ids(self) -> List[str]:
        return list(self._features)

    def anchors(self) -> Iterator[Tuple[str, Point]]:
        """(feature id, world anchor) pairs in load order."""
        for fid, feature in self._features.items():
            yield fid, feature.anchor_point

    def __contains__(self, feature_id) -> bool:
        return feature_id in self._features

    def __len__(self) -> int:
        return len(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self._features.values())
