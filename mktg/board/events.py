"""
Event bridge: connects drag gestures to board store updates.

The drag controller settles a gesture; this module turns a tap into a
`detail_open` event and a committed drop into an optimistic store move,
then reports how the move ended.

Events (subscribe by name):
    detail_open     item, record
    board_changed   grouping
    move_committed  item_id, move
    move_failed     item_id, message, retryable    (already rolled back)
    move_rejected   item_id, message               (move still in flight)
"""
import asyncio
import logging
from typing import Callable, Dict, Optional, Set

from .drag import CommittedMove, DragController, DEFAULT_LONG_PRESS_MS, DEFAULT_MOVE_TOLERANCE_PX, loop_scheduler
from .errors import InvalidMoveError, MoveFailed, MoveInFlightError
from .store import BoardStore, MoveOutcome

logger = logging.getLogger(__name__)


class BoardEventBridge:
    """Routes drag controller output to a board store and its subscribers."""

    def __init__(
        self,
        store: BoardStore,
        long_press_ms: int = DEFAULT_LONG_PRESS_MS,
        move_tolerance_px: float = DEFAULT_MOVE_TOLERANCE_PX,
        schedule=loop_scheduler,
    ):
        self.store = store
        self.subscribers: Dict[str, list] = {}  # event_type -> list of callbacks
        self._tasks: Set[asyncio.Task] = set()
        self.controller = DragController(
            on_commit=self.on_commit,
            on_tap=self.on_tap,
            long_press_ms=long_press_ms,
            move_tolerance_px=move_tolerance_px,
            is_valid_target=store.accepts,
            schedule=schedule,
        )
        store.subscribe(lambda grouping: self._emit("board_changed", grouping=grouping))

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        self.subscribers[event_type].append(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers."""
        for callback in self.subscribers.get(event_type, []):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")

    def on_tap(self, item_id: str, container: str) -> None:
        """Short press settled: hand the full record to the detail view."""
        item = self.store.get(item_id)
        if item is None:
            logger.warning(f"Tap on unknown item {item_id} in {container}")
            return
        self._emit("detail_open", item=item, record=item.raw)

    def on_commit(self, move: CommittedMove) -> asyncio.Task:
        """Drop settled: run the move without blocking the input loop."""
        task = asyncio.get_running_loop().create_task(self.apply_move(move))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def apply_move(self, move: CommittedMove) -> Optional[MoveOutcome]:
        """Commit a move through the store. Failures stay inside the board."""
        try:
            outcome = await self.store.commit_move(move)
        except MoveFailed as e:
            self._emit("move_failed", item_id=e.item_id, message=e.message, retryable=e.retryable)
            return None
        except MoveInFlightError as e:
            self._emit("move_rejected", item_id=e.item_id, message=str(e))
            return None
        except InvalidMoveError as e:
            logger.warning(f"Discarding move {move}: {e}")
            return None

        if outcome is MoveOutcome.CONFIRMED:
            self._emit("move_committed", item_id=move.item_id, move=move)
        return outcome

    async def drain(self) -> None:
        """Wait for every move still in flight to confirm or roll back."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
