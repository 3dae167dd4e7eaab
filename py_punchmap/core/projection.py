"""
World <-> screen projection.

The engine only depends on the ``CoordinateProjector`` protocol. The map
widget of a real host implements it; ``ViewTransform`` is a plain pan/zoom
affine transform used by tests, demos and headless hosts.
"""

from typing import Callable, List, Protocol

import structlog

from .geometry import Point, as_point

logger = structlog.get_logger()


class CoordinateProjector(Protocol):
    """Converts between world and screen coordinates for the current view."""

    def project(self, world_point: Point) -> Point:
        ...

    def unproject(self, screen_point: Point) -> Point:
        ...


class ViewTransform:
    """
    Affine pan/zoom projector.

    screen = (world - origin) * scale, with the y axis optionally flipped so
    that north is up on screen. Listeners registered with ``subscribe`` are
    called after every pan or zoom.
    """

    def __init__(self, origin=(0.0, 0.0), scale: float = 1.0, flip_y: bool = False):
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.origin = as_point(origin)
        self.scale = float(scale)
        self.flip_y = flip_y
        self._listeners: List[Callable[[], None]] = []

    def project(self, world_point) -> Point:
        p = as_point(world_point)
        sy = -1.0 if self.flip_y else 1.0
        return Point((p.x - self.origin.x) * self.scale,
                     sy * (p.y - self.origin.y) * self.scale)

    def unproject(self, screen_point) -> Point:
        p = as_point(screen_point)
        sy = -1.0 if self.flip_y else 1.0
        return Point(p.x / self.scale + self.origin.x,
                     sy * p.y / self.scale + self.origin.y)

    def subscribe(self, callback: Callable[[], None]) -> None:
        """Register a callback fired after the view changes."""
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def pan(self, dx_px: float, dy_px: float) -> None:
        """Move the view content by a screen-space offset."""
        sy = -1.0 if self.flip_y else 1.0
        self.origin = Point(self.origin.x - dx_px / self.scale,
                            self.origin.y - sy * dy_px / self.scale)
        self._changed()

    def zoom_at(self, factor: float, screen_point=(0.0, 0.0)) -> None:
        """Zoom by ``factor`` keeping the world point under ``screen_point`` fixed."""
        if factor <= 0:
            raise ValueError(f"zoom factor must be positive, got {factor}")
        anchor = self.unproject(screen_point)
        self.scale *= factor
        moved = self.project(anchor)
        sp = as_point(screen_point)
        sy = -1.0 if self.flip_y else 1.0
        self.origin = Point(self.origin.x + (moved.x - sp.x) / self.scale,
                            self.origin.y + sy * (moved.y - sp.y) / self.scale)
        self._changed()

    def _changed(self) -> None:
        logger.debug("View transform changed", origin=tuple(self.origin), scale=self.scale)
        for callback in list(self._listeners):
            callback()
