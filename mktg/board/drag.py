"""
Drag session controller: tap vs. long-press-to-drag.

Gesture lifecycle:
  idle → pressing → dragging → settled (commit)
              │          └────→ idle    (no target / cancel / same place)
              └─────────────→ settled   (tap: open detail)

A session owns its long-press timer. Every way out of `pressing` cancels
that timer, so a quick run of press/release cycles never leaves one armed.
"""
import asyncio
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_LONG_PRESS_MS = 500
DEFAULT_MOVE_TOLERANCE_PX = 5.0

Point = Tuple[float, float]


class Phase(Enum):
    IDLE = "idle"
    PRESSING = "pressing"
    DRAGGING = "dragging"
    SETTLED = "settled"


class Gesture(Enum):
    """How a pointer-up resolved."""
    TAP = "tap"                # detail view opened
    COMMIT = "commit"          # one move emitted
    NOOP = "noop"              # dropped where it started
    CANCELLED = "cancelled"    # no target, invalid target, or cancel()
    IGNORED = "ignored"        # no active session


@dataclass(frozen=True)
class DropTarget:
    container: str
    index: int


@dataclass(frozen=True)
class CommittedMove:
    """The single output of a completed drag."""
    item_id: str
    origin: str
    destination: str
    index: int
    origin_index: Optional[int] = None

    @property
    def is_same_place(self) -> bool:
        return self.origin == self.destination and self.index == self.origin_index


@dataclass
class DragSession:
    """One in-progress pointer interaction. Discarded when it settles."""
    item_id: str
    origin: str
    origin_index: int
    start: Point = (0.0, 0.0)
    pointer: Point = (0.0, 0.0)
    phase: Phase = Phase.PRESSING
    timer: Any = field(default=None, repr=False)

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


def loop_scheduler(delay: float, callback: Callable[[], None]):
    """Default timer: asyncio call_later on the running loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


class DragController:
    """
    Turns raw pointer input into at most one committed move per gesture.

    Callbacks:
        on_tap(item_id, container)   — pointer released before the long press
        on_commit(CommittedMove)     — drag dropped on a valid new place

    is_valid_target(container) decides whether a drop lands anywhere.
    schedule(delay_secs, fn) must return a handle with .cancel().
    """

    def __init__(
        self,
        on_commit: Callable[[CommittedMove], None],
        on_tap: Optional[Callable[[str, str], None]] = None,
        long_press_ms: int = DEFAULT_LONG_PRESS_MS,
        move_tolerance_px: float = DEFAULT_MOVE_TOLERANCE_PX,
        is_valid_target: Optional[Callable[[str], bool]] = None,
        schedule: Callable[[float, Callable[[], None]], Any] = loop_scheduler,
    ):
        self.on_commit = on_commit
        self.on_tap = on_tap
        self.long_press_ms = long_press_ms
        self.move_tolerance_px = move_tolerance_px
        self.is_valid_target = is_valid_target or (lambda container: bool(container))
        self.schedule = schedule
        self.session: Optional[DragSession] = None

    @property
    def phase(self) -> Phase:
        return self.session.phase if self.session else Phase.IDLE

    # ── Input ────────────────────────────────────────────────────────────

    def pointer_down(self, item_id: str, container: str, index: int, pos: Point = (0.0, 0.0)) -> bool:
        """Start pressing an item. Ignored while another gesture is active."""
        if self.session is not None:
            logger.debug(f"pointer_down on {item_id} ignored: {self.session.phase.value} in progress")
            return False

        session = DragSession(
            item_id=item_id,
            origin=container,
            origin_index=index,
            start=pos,
            pointer=pos,
        )
        self.session = session
        session.timer = self.schedule(self.long_press_ms / 1000, lambda: self._long_press_elapsed(session))
        return True

    def pointer_move(self, pos: Point) -> None:
        session = self.session
        if session is None:
            return
        session.pointer = pos
        if session.phase is Phase.PRESSING:
            dx = pos[0] - session.start[0]
            dy = pos[1] - session.start[1]
            if math.hypot(dx, dy) > self.move_tolerance_px:
                self._begin_drag(session)

    def drag_start(self) -> None:
        """The pointer library reports a drag start; skip the rest of the press."""
        if self.session is not None and self.session.phase is Phase.PRESSING:
            self._begin_drag(self.session)

    def pointer_up(self, target: Optional[DropTarget] = None) -> Gesture:
        session = self.session
        if session is None:
            return Gesture.IGNORED

        if session.phase is Phase.PRESSING:
            session.cancel_timer()
            session.phase = Phase.SETTLED
            self.session = None
            logger.debug(f"tap on {session.item_id}")
            if self.on_tap:
                self.on_tap(session.item_id, session.origin)
            return Gesture.TAP

        # DRAGGING
        if target is None or not self.is_valid_target(target.container):
            self._reset(session)
            return Gesture.CANCELLED

        move = CommittedMove(
            item_id=session.item_id,
            origin=session.origin,
            destination=target.container,
            index=target.index,
            origin_index=session.origin_index,
        )
        if move.is_same_place:
            self._reset(session)
            return Gesture.NOOP

        session.phase = Phase.SETTLED
        self.session = None
        logger.debug(f"commit {move}")
        self.on_commit(move)
        return Gesture.COMMIT

    def cancel(self) -> None:
        """Pointer left the surface or the gesture was aborted."""
        if self.session is not None:
            self._reset(self.session)

    # ── Internals ────────────────────────────────────────────────────────

    def _long_press_elapsed(self, session: DragSession) -> None:
        # A stale timer from an already-settled session must not revive it
        if self.session is not session or session.phase is not Phase.PRESSING:
            return
        session.timer = None
        self._begin_drag(session)

    def _begin_drag(self, session: DragSession) -> None:
        session.cancel_timer()
        session.phase = Phase.DRAGGING
        logger.debug(f"drag started on {session.item_id} from {session.origin}")

    def _reset(self, session: DragSession) -> None:
        session.cancel_timer()
        session.phase = Phase.IDLE
        if self.session is session:
            self.session = None
