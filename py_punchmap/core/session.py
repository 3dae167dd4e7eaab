"""
Host-side composition of the inspection engine.

``InspectionSession`` wires a projector, the feature index, hit tester,
gesture controller and status store together, and forwards view-change
notifications to the index so the screen-ring cache is rebuilt before the
next pointer event is handled.
"""

from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import structlog

from ..config import InteractionSettings, Settings, get_interaction_settings, get_settings
from ..utils.log_config import configure_logging
from .caps import CapPair, CapPolygon, compute_caps
from .feature_index import Feature, FeatureIndex
from .geometry import Point, as_point, open_ring, point_in_polygon
from .gestures import GestureController, PointerButton, Tool
from .hit_testing import HitResult, HitTester
from .markers import MarkerLocation, MarkerPlacer
from .projection import CoordinateProjector
from .status_store import (
    FREE_GROUP_ID,
    BlobStore,
    FeatureStatus,
    FileBlobStore,
    MarkerRecord,
    ProgressSummary,
    StatusStore,
)

logger = structlog.get_logger()


class InspectionSession:
    """One user's inspection map: features, interaction state and status."""

    def __init__(
        self,
        projector: CoordinateProjector,
        medium: Optional[BlobStore] = None,
        settings: Optional[InteractionSettings] = None,
        tool: Tool = Tool.SELECT,
        boundaries: Optional[Iterable[Sequence]] = None,
    ):
        self.projector = projector
        self.boundaries: List[List[Point]] = []
        if boundaries is not None:
            self.set_boundaries(boundaries)
        self.settings = settings or get_interaction_settings()
        self.index = FeatureIndex(projector)
        self.hit_tester = HitTester(self.index)
        self.store = StatusStore(medium)
        self.placer = MarkerPlacer(self.settings.marker_max_tries)
        self.gestures = GestureController(
            self.index, self.store, projector,
            hit_tester=self.hit_tester, settings=self.settings, tool=tool,
        )

        subscribe = getattr(projector, "subscribe", None)
        if callable(subscribe):
            subscribe(self.on_view_transform_changed)

        self.store.load()

    @classmethod
    def from_settings(cls, projector: CoordinateProjector,
                      settings: Optional[Settings] = None, **kwargs) -> "InspectionSession":
        """Build a session persisting to ``settings.state_file`` with logging configured."""
        settings = settings or get_settings()
        configure_logging(settings.log_level, settings.log_format)
        return cls(projector, medium=FileBlobStore(settings.state_file),
                   settings=settings.interaction, **kwargs)

    # Features

    def load_features(self, features: Iterable[Feature]) -> None:
        """Replace the loaded features. DuplicateIdError leaves the old ones in place."""
        self.index.load(features)
        known = set(self.index.ids())
        orphans = [fid for fid, _ in self.store.items() if fid not in known]
        if orphans:
            logger.info("Ignoring statuses of unknown features", count=len(orphans))

    def on_view_transform_changed(self) -> None:
        self.index.on_view_transform_changed()

    def set_boundaries(self, rings: Iterable[Sequence]) -> None:
        """Site boundary rings (world space). Free markers must fall inside one."""
        self.boundaries = [open_ring(ring) for ring in rings]
        logger.info("Site boundary set", rings=len(self.boundaries))

    # Queries

    def hit(self, screen_point) -> Optional[HitResult]:
        return self.hit_tester.find_nearest(screen_point, self.settings.hit_tolerance_px)

    def status(self, feature_id: str) -> FeatureStatus:
        return self.store.get_status(feature_id)

    def statuses(self) -> Iterator[Tuple[str, FeatureStatus]]:
        """Statuses of loaded features in load order, for export tooling."""
        return self.store.items(self.index.ids())

    def summary(self) -> ProgressSummary:
        return self.store.summary(self.index.ids())

    def caps_for(self, feature_id: str) -> Optional[CapPair]:
        """Caps of a feature, computed in screen space and returned in world space."""
        ring = self.index.get_screen_ring(feature_id)
        if ring is None:
            return None
        caps = compute_caps(ring, self.settings.cap_thickness_px, feature_id)
        return CapPair(self._cap_to_world(caps.start), self._cap_to_world(caps.end))

    def _cap_to_world(self, cap: CapPolygon) -> CapPolygon:
        ring = [as_point(self.projector.unproject(p)) for p in cap.ring]
        return CapPolygon(cap.feature_id, cap.edge_role, ring)

    def cap_at(self, screen_point) -> Optional[CapPolygon]:
        """Screen-space cap containing ``screen_point``, start cap first."""
        p = as_point(screen_point)
        for entry in self.index.screen_rings():
            if not entry.near(p, 0.0):
                continue
            caps = compute_caps(entry.ring, self.settings.cap_thickness_px, entry.feature_id)
            for cap in caps:
                if point_in_polygon(p, cap.ring):
                    return cap
        return None

    def click_cap(self, screen_point, button=PointerButton.PRIMARY) -> Optional[CapPolygon]:
        """
        Mark the cap under the pointer: primary button finishes it, secondary
        button clears it. The other cap of the table is left alone.

        Returns the cap that was hit, or None.
        """
        button = PointerButton(button)
        cap = self.cap_at(screen_point)
        if cap is None:
            return None
        done = button != PointerButton.SECONDARY
        self.store.set_cap(cap.feature_id, cap.edge_role, done)
        logger.debug("Cap clicked", feature_id=cap.feature_id, edge_role=cap.edge_role, done=done)
        return cap

    # Markers

    def accepts_free_marker(self, location) -> bool:
        """Free markers go inside the site boundary (when one is set) and off every table."""
        p = as_point(location)
        if any(point_in_polygon(p, feature.world_ring) for feature in self.index):
            return False
        if self.boundaries and not any(point_in_polygon(p, ring) for ring in self.boundaries):
            return False
        return True

    def marker_location(self, feature_id: str, marker_id: str) -> Optional[MarkerLocation]:
        feature = self.index.get(feature_id)
        if feature is None:
            return None
        return self.placer.location_for(feature.world_ring, marker_id)

    def marker_locations(self, feature_id: str) -> List[MarkerLocation]:
        status = self.store.peek(feature_id)
        if status is None or feature_id not in self.index:
            return []
        return [self.marker_location(feature_id, m.marker_id) for m in status.markers]

    def add_marker(self, feature_id: str, note: str = "", photo_ref: Optional[str] = None,
                   tag: str = "", location=None) -> MarkerRecord:
        """
        Attach a punch to a feature, or to the free group with a world location.
        """
        if feature_id == FREE_GROUP_ID:
            if location is None:
                raise ValueError("Free markers need a world location")
            loc = as_point(location)
            if not self.accepts_free_marker(loc):
                logger.info("Free marker rejected", x=loc.x, y=loc.y)
                raise ValueError(f"Free marker at ({loc.x}, {loc.y}) is on a table or outside the site boundary")
            record = MarkerRecord(note=note, photo_ref=photo_ref, tag=tag, location=(loc.x, loc.y))
        else:
            if feature_id not in self.index:
                raise KeyError(f"Unknown feature: {feature_id!r}")
            record = MarkerRecord(note=note, photo_ref=photo_ref, tag=tag)
            self.marker_location(feature_id, record.marker_id)

        self.store.add_marker(feature_id, record)
        logger.info("Marker added", feature_id=feature_id, marker_id=record.marker_id)
        return record

    def remove_marker(self, feature_id: str, marker_id: str) -> bool:
        removed = self.store.remove_marker(feature_id, marker_id)
        if removed:
            self.placer.forget(marker_id)
        return removed

    def clear_markers(self, feature_id: str) -> int:
        status = self.store.peek(feature_id)
        if status is not None:
            for marker in status.markers:
                self.placer.forget(marker.marker_id)
        return self.store.clear_markers(feature_id)

    def reset(self) -> None:
        """Explicit reset: every feature back to defaults."""
        self.store.reset_all()
        self.placer.clear()
