"""
Pointer gesture handling for the inspection map.

One press-to-release interaction is a gesture session. The primary button
starts a pending click that becomes a box selection once the pointer moves
past the drag threshold; the secondary button erases; the middle button
pans and is left to the map widget. With the paint tool, the primary
button paints instead.

Brush gestures (paint/erase) keep the set of features they already touched
so that a feature crossed several times in one drag is only changed once.
"""

import time
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Callable, FrozenSet, List, Optional, Set, Tuple

import structlog

from ..config import InteractionSettings, get_interaction_settings
from .feature_index import FeatureIndex
from .geometry import Point, as_point
from .hit_testing import HitResult, HitTester
from .projection import CoordinateProjector
from .status_store import StatusStore

logger = structlog.get_logger()


class PointerButton(IntEnum):
    """Mouse button codes as reported by browsers."""
    PRIMARY = 0
    AUXILIARY = 1
    SECONDARY = 2


class GestureMode(str, Enum):
    NONE = "none"
    CLICK_PENDING = "click_pending"
    BOX_SELECT = "box_select"
    PAINT = "paint"
    ERASE = "erase"
    PAN = "pan"


class Tool(str, Enum):
    """What the primary button does."""
    SELECT = "select"
    PAINT = "paint"


class IntentKind(str, Enum):
    SELECT_FEATURE = "select_feature"
    TOGGLE_STATUS = "toggle_status"
    PAINT_FEATURE = "paint_feature"
    ERASE_FEATURE = "erase_feature"
    BOX_SELECT_UPDATE = "box_select_update"
    CLEAR_SELECTION = "clear_selection"


@dataclass(frozen=True)
class Intent:
    kind: IntentKind
    feature_id: Optional[str] = None
    feature_ids: Tuple[str, ...] = ()


@dataclass
class GestureSession:
    """State of one pointer-down to pointer-up interaction."""

    mode: GestureMode
    button: PointerButton
    start_screen_point: Point
    start_world_point: Point
    start_time: float
    additive: bool = False
    last_screen_point: Optional[Point] = None
    moved: bool = False
    visited_feature_ids: Set[str] = field(default_factory=set)
    baseline_selection: FrozenSet[str] = frozenset()
    box: Optional[Tuple[Point, Point]] = None


IntentListener = Callable[[Intent], None]
HoverListener = Callable[[Optional[str]], None]


class GestureController:
    """
    Turns pointer events into status-store intents.

    The controller is IDLE while ``session`` is None and ACTIVE otherwise.
    Events must be delivered in order and handled synchronously.
    """

    def __init__(
        self,
        index: FeatureIndex,
        store: StatusStore,
        projector: CoordinateProjector,
        hit_tester: Optional[HitTester] = None,
        settings: Optional[InteractionSettings] = None,
        tool: Tool = Tool.SELECT,
    ):
        self.index = index
        self.store = store
        self.projector = projector
        self.hit_tester = hit_tester or HitTester(index)
        self.settings = settings or get_interaction_settings()
        self.tool = tool

        self.session: Optional[GestureSession] = None
        self.hovered_feature_id: Optional[str] = None
        self._suppress_click = False
        self._intent_listeners: List[IntentListener] = []
        self._hover_listeners: List[HoverListener] = []

    # Observation

    @property
    def is_idle(self) -> bool:
        return self.session is None

    @property
    def mode(self) -> GestureMode:
        return self.session.mode if self.session is not None else GestureMode.NONE

    def on_intent(self, listener: IntentListener) -> None:
        self._intent_listeners.append(listener)

    def on_hover(self, listener: HoverListener) -> None:
        self._hover_listeners.append(listener)

    # Pointer events

    def pointer_down(self, button, screen_point, additive: bool = False,
                     timestamp: Optional[float] = None) -> None:
        """
        Start a gesture.

        Args:
            button: PointerButton (or its browser code)
            screen_point: pointer position in screen pixels
            additive: whether the additive modifier (shift/ctrl) is held
            timestamp: event time in seconds; defaults to time.monotonic()
        """
        if self.session is not None:
            logger.debug("Ignoring pointer down during active gesture", mode=self.session.mode.value)
            return

        try:
            button = PointerButton(button)
        except ValueError:
            logger.debug("Ignoring unsupported pointer button", button=button)
            return

        p = as_point(screen_point)
        now = time.monotonic() if timestamp is None else timestamp
        self._suppress_click = False

        if button == PointerButton.AUXILIARY:
            mode = GestureMode.PAN
        elif button == PointerButton.SECONDARY:
            mode = GestureMode.ERASE
        elif self.tool == Tool.PAINT:
            mode = GestureMode.PAINT
        else:
            mode = GestureMode.CLICK_PENDING
            if not additive:
                self._clear_selection()

        self.session = GestureSession(
            mode=mode,
            button=button,
            start_screen_point=p,
            start_world_point=as_point(self.projector.unproject(p)),
            start_time=now,
            additive=additive,
            last_screen_point=p,
            baseline_selection=frozenset(self.store.selected_ids()),
        )
        logger.debug("Gesture started", mode=mode.value, x=p.x, y=p.y, additive=additive)

        if mode == GestureMode.PAN:
            self._set_hover(None)
        elif mode in (GestureMode.PAINT, GestureMode.ERASE):
            self._apply_brush(self._hit(p))

    def pointer_move(self, screen_point, timestamp: Optional[float] = None) -> None:
        p = as_point(screen_point)
        session = self.session

        if session is None:
            self._hit(p)
            return
        if session.mode == GestureMode.PAN:
            return

        session.last_screen_point = p
        hit = self._hit(p)

        if session.mode == GestureMode.CLICK_PENDING:
            if self._exceeds_drag_threshold(session.start_screen_point, p):
                session.moved = True
                session.mode = GestureMode.BOX_SELECT
                logger.debug("Press promoted to box select")
                self._update_box(p)
        elif session.mode == GestureMode.BOX_SELECT:
            self._update_box(p)
        elif session.mode in (GestureMode.PAINT, GestureMode.ERASE):
            self._apply_brush(hit)

    def pointer_up(self, screen_point=None, timestamp: Optional[float] = None) -> None:
        session = self.session
        if session is None:
            return

        p = as_point(screen_point) if screen_point is not None else session.last_screen_point
        now = time.monotonic() if timestamp is None else timestamp

        if session.mode == GestureMode.CLICK_PENDING:
            if self._exceeds_drag_threshold(session.start_screen_point, p):
                session.moved = True
            elapsed = now - session.start_time
            if not session.moved and elapsed < self.settings.click_max_duration_s:
                self._click(p)
        elif session.mode == GestureMode.BOX_SELECT:
            self._update_box(p)
            self._suppress_click = True
        elif session.mode in (GestureMode.PAINT, GestureMode.ERASE):
            self._apply_brush(self._hit(p))

        logger.debug("Gesture finished", mode=session.mode.value,
                     visited=len(session.visited_feature_ids))
        self.session = None

    def pointer_leave(self, timestamp: Optional[float] = None) -> None:
        """Pointer left the surface: finish the gesture as if released."""
        if self.session is not None:
            self.pointer_up(None, timestamp)
        self._set_hover(None)

    def click(self, screen_point=None) -> bool:
        """
        Filter a native click event from the host.

        Returns False exactly once after a box selection finished, so the
        release of a drag is not also handled as a click.
        """
        if self._suppress_click:
            self._suppress_click = False
            return False
        return True

    # Internals

    def _hit(self, p: Point) -> Optional[HitResult]:
        hit = self.hit_tester.find_nearest(p, self.settings.hit_tolerance_px)
        self._set_hover(hit.feature_id if hit is not None else None)
        return hit

    def _exceeds_drag_threshold(self, start: Point, p: Point) -> bool:
        limit = self.settings.drag_threshold_px
        return abs(p.x - start.x) > limit or abs(p.y - start.y) > limit

    def _click(self, p: Point) -> None:
        hit = self.hit_tester.find_nearest(p, self.settings.hit_tolerance_px)
        if hit is None:
            if self.settings.clear_on_empty_click:
                self._clear_selection()
            return

        fid = hit.feature_id
        self.store.set_selected(fid, True)
        self._emit(Intent(IntentKind.SELECT_FEATURE, feature_id=fid))
        if self.settings.click_advances_stage:
            self.store.advance_stage(fid)
            self._emit(Intent(IntentKind.TOGGLE_STATUS, feature_id=fid))

    def _apply_brush(self, hit: Optional[HitResult]) -> None:
        session = self.session
        if hit is None or hit.feature_id in session.visited_feature_ids:
            return

        fid = hit.feature_id
        session.visited_feature_ids.add(fid)
        if session.mode == GestureMode.PAINT:
            self.store.advance_stage(fid)
            self._emit(Intent(IntentKind.PAINT_FEATURE, feature_id=fid))
        else:
            self.store.reset_stage(fid)
            self._emit(Intent(IntentKind.ERASE_FEATURE, feature_id=fid))

    def _update_box(self, p: Point) -> None:
        session = self.session
        session.box = (session.start_screen_point, p)

        a = as_point(self.projector.unproject(session.start_screen_point))
        b = as_point(self.projector.unproject(p))
        min_x, max_x = min(a.x, b.x), max(a.x, b.x)
        min_y, max_y = min(a.y, b.y), max(a.y, b.y)

        in_box = [
            fid for fid, anchor in self.index.anchors()
            if min_x <= anchor.x <= max_x and min_y <= anchor.y <= max_y
        ]
        if session.additive:
            in_box_set = set(in_box)
            kept = [fid for fid in sorted(session.baseline_selection) if fid not in in_box_set]
            target = kept + in_box
        else:
            target = in_box

        self.store.set_selection(target)
        self._emit(Intent(IntentKind.BOX_SELECT_UPDATE, feature_ids=tuple(target)))

    def _clear_selection(self) -> None:
        if self.store.clear_all_selected():
            self._emit(Intent(IntentKind.CLEAR_SELECTION))

    def _set_hover(self, feature_id: Optional[str]) -> None:
        if feature_id == self.hovered_feature_id:
            return
        self.hovered_feature_id = feature_id
        for listener in list(self._hover_listeners):
            listener(feature_id)

    def _emit(self, intent: Intent) -> None:
        for listener in list(self._intent_listeners):
            listener(intent)
