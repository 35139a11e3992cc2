"""
Board state store: in-memory grouping with optimistic moves.

A move is a two-phase commit:
  1. snapshot the grouping, apply the move, mark the item in flight
  2. await the sync adapter, then confirm (keep) or roll back (restore)

The grouping is an immutable value that is swapped whole, so a reader
never sees a half-applied move. Only one move per item may be in flight.
"""
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .calendar_grid import MonthGrid, build_month_grid
from .drag import CommittedMove
from .errors import (
    InvalidItemError,
    InvalidMoveError,
    InvariantViolation,
    MoveFailed,
    MoveInFlightError,
    PersistError,
)
from .schema import (
    ChannelStatus,
    DATED_VARIANTS,
    SchedulableItem,
    Variant,
    column_to_status,
    statuses_for,
    status_to_column,
)
from .sync import SyncAdapter

logger = logging.getLogger(__name__)


class MoveOutcome(Enum):
    CONFIRMED = "confirmed"    # backend accepted; optimistic state stands
    NOOP = "noop"              # same container, same index
    DISCARDED = "discarded"    # destination is not a container of this board


@dataclass(frozen=True)
class Grouping:
    """Immutable snapshot of every item and the ordered containers holding them."""
    items: Dict[str, SchedulableItem]
    containers: Dict[str, Tuple[str, ...]]

    def container_of(self, key: str) -> Optional[str]:
        for name, keys in self.containers.items():
            if key in keys:
                return name
        return None

    def index_of(self, key: str) -> Optional[int]:
        name = self.container_of(key)
        if name is None:
            return None
        return self.containers[name].index(key)

    def column(self, name: str) -> List[SchedulableItem]:
        return [self.items[k] for k in self.containers.get(name, ())]


@dataclass
class _PendingMove:
    before: Grouping
    after: Grouping
    original: SchedulableItem
    origin: str
    origin_index: int


class BoardStore:
    """
    Shared engine for status boards and the calendar.

    Subclasses say how an item maps to a container and how placing it in a
    new container changes it (status for boards, date for the calendar).
    """

    def __init__(self, adapter: SyncAdapter):
        self.adapter = adapter
        self._grouping = Grouping(items={}, containers={c: () for c in self.container_names()})
        self._pending: Dict[str, _PendingMove] = {}
        self._listeners: List[Callable[[Grouping], None]] = []

    # ── Subclass hooks ───────────────────────────────────────────────────

    def container_names(self) -> List[str]:
        raise NotImplementedError

    def key_of(self, item: SchedulableItem) -> str:
        raise NotImplementedError

    def container_for(self, item: SchedulableItem) -> Optional[str]:
        raise NotImplementedError

    def place(self, item: SchedulableItem, container: str) -> SchedulableItem:
        """Return the item as it looks once it sits in `container`."""
        raise NotImplementedError

    def persisted_value(self, item: SchedulableItem):
        """The field value the backend is asked to store for a placed item."""
        raise NotImplementedError

    def accepts(self, container: str) -> bool:
        return container in self._grouping.containers

    # ── Reads ────────────────────────────────────────────────────────────

    def snapshot(self) -> Grouping:
        return self._grouping

    def columns(self) -> Dict[str, List[SchedulableItem]]:
        g = self._grouping
        return {name: g.column(name) for name in g.containers}

    def get(self, key: str) -> Optional[SchedulableItem]:
        return self._grouping.items.get(key)

    def in_flight(self, key: str) -> bool:
        return key in self._pending

    def subscribe(self, callback: Callable[[Grouping], None]) -> None:
        """Called with the new grouping every time it is replaced."""
        self._listeners.append(callback)

    # ── Loading ──────────────────────────────────────────────────────────

    def load(self, items: Iterable[SchedulableItem]) -> None:
        """Replace the working set with authoritative items from the feed.

        Items in flight keep their optimistic placement; the pending move
        will confirm or roll back on its own.
        """
        containers: Dict[str, List[str]] = {c: [] for c in self.container_names()}
        by_key: Dict[str, SchedulableItem] = {}
        for item in items:
            self._check_item(item)
            container = self.container_for(item)
            if container is None or container not in containers:
                continue
            key = self.key_of(item)
            if key in by_key:
                raise InvalidItemError(f"Duplicate item {key} in feed")
            if key in self._pending:
                continue
            by_key[key] = item
            containers[container].append(key)

        # Keep optimistic placements for in-flight items
        for key in self._pending:
            current = self._grouping
            name = current.container_of(key)
            if name is not None and name in containers:
                by_key[key] = current.items[key]
                pos = min(current.index_of(key), len(containers[name]))
                containers[name].insert(pos, key)

        self._replace(Grouping(
            items=by_key,
            containers={name: tuple(keys) for name, keys in containers.items()},
        ))
        logger.info(f"{self.describe()}: loaded {len(by_key)} items")

    def _check_item(self, item: SchedulableItem) -> None:
        pass

    # ── Moves ────────────────────────────────────────────────────────────

    def move_item(self, key: str, from_container: str, to_container: str, to_index: int) -> Grouping:
        """Optimistically apply a move. Returns the grouping from before it.

        The item stays in flight until confirm() or rollback() settles it;
        commit_move() does both around the persist call.

        Raises MoveInFlightError if the item already has a pending move,
        InvalidMoveError if it is not in `from_container` or the destination
        is unknown.
        """
        if key in self._pending:
            raise MoveInFlightError(key)

        before = self._grouping
        if key not in before.containers.get(from_container, ()):
            raise InvalidMoveError(f"{key} is not in {from_container!r}")
        if to_container not in before.containers:
            raise InvalidMoveError(f"Unknown destination {to_container!r}")

        origin_index = before.containers[from_container].index(key)
        original = before.items[key]

        containers = {name: list(keys) for name, keys in before.containers.items()}
        containers[from_container].remove(key)
        target = containers[to_container]
        index = max(0, min(to_index, len(target)))
        target.insert(index, key)

        items = dict(before.items)
        if to_container != from_container:
            items[key] = self.place(original, to_container)

        after = Grouping(
            items=items,
            containers={name: tuple(keys) for name, keys in containers.items()},
        )
        self._replace(after)
        self._pending[key] = _PendingMove(
            before=before,
            after=after,
            original=original,
            origin=from_container,
            origin_index=origin_index,
        )
        logger.info(f"{self.describe()}: {key} {from_container} → {to_container}[{index}] (pending)")
        return before

    async def commit_move(self, move: CommittedMove) -> MoveOutcome:
        """Apply, persist, then confirm or roll back.

        Raises MoveFailed (after rollback) when the backend rejects the move.
        """
        if not self.accepts(move.destination):
            logger.debug(f"{self.describe()}: drop on {move.destination!r} discarded")
            return MoveOutcome.DISCARDED

        key = move.item_id
        if key not in self._pending:
            current = self._grouping
            if current.container_of(key) != move.origin:
                raise InvalidMoveError(f"{key} is not in {move.origin!r}")
            if (move.origin == move.destination
                    and current.index_of(key) == self._clamped_index(move)):
                return MoveOutcome.NOOP

        self.move_item(key, move.origin, move.destination, move.index)
        placed = self._grouping.items[key]

        try:
            await self.adapter.persist_move(placed, self.persisted_value(placed))
        except PersistError as e:
            self._rollback(key)
            logger.warning(
                f"{self.describe()}: move of {key} rolled back "
                f"({'transient' if e.retryable else 'permanent'}): {e.reason}"
            )
            raise MoveFailed(key, failure_message(placed, e), retryable=e.retryable) from e
        except BaseException:
            self._rollback(key)
            raise

        self._pending.pop(key, None)
        logger.info(f"{self.describe()}: {key} confirmed in {move.destination}")
        return MoveOutcome.CONFIRMED

    def confirm(self, key: str) -> None:
        """Settle a move applied with move_item(), keeping its placement."""
        if self._pending.pop(key, None) is None:
            raise InvalidMoveError(f"{key} has no pending move")

    def rollback(self, key: str) -> None:
        """Undo a move applied with move_item()."""
        if key not in self._pending:
            raise InvalidMoveError(f"{key} has no pending move")
        self._rollback(key)

    def _clamped_index(self, move: CommittedMove) -> int:
        size = len(self._grouping.containers.get(move.destination, ()))
        if move.origin == move.destination:
            size -= 1
        return max(0, min(move.index, size))

    def _rollback(self, key: str) -> None:
        pending = self._pending.pop(key, None)
        if pending is None:
            return

        if self._grouping is pending.after:
            self._replace(pending.before)
            return

        # Another item moved since; put back only this one
        current = self._grouping
        containers = {name: list(keys) for name, keys in current.containers.items()}
        for keys in containers.values():
            if key in keys:
                keys.remove(key)
        origin = containers.setdefault(pending.origin, [])
        origin.insert(min(pending.origin_index, len(origin)), key)
        items = dict(current.items)
        items[key] = pending.original
        self._replace(Grouping(
            items=items,
            containers={name: tuple(keys) for name, keys in containers.items()},
        ))

    def _replace(self, grouping: Grouping) -> None:
        check_partition(grouping, self.container_for)
        self._grouping = grouping
        for callback in list(self._listeners):
            try:
                callback(grouping)
            except Exception as e:
                logger.error(f"Grouping listener failed: {e}")

    def check_invariants(self) -> None:
        check_partition(self._grouping, self.container_for)

    def describe(self) -> str:
        return type(self).__name__


def check_partition(grouping: Grouping, container_for: Callable[[SchedulableItem], Optional[str]]) -> None:
    """Every item in exactly one container, matching its own field."""
    seen: Dict[str, str] = {}
    for name, keys in grouping.containers.items():
        for key in keys:
            if key in seen:
                raise InvariantViolation(f"{key} is in both {seen[key]!r} and {name!r}")
            if key not in grouping.items:
                raise InvariantViolation(f"{name!r} references unknown item {key}")
            seen[key] = name
    missing = set(grouping.items) - set(seen)
    if missing:
        raise InvariantViolation(f"Items in no container: {sorted(missing)}")
    for key, name in seen.items():
        expected = container_for(grouping.items[key])
        if expected != name:
            raise InvariantViolation(f"{key} sits in {name!r} but belongs in {expected!r}")


def failure_message(item: SchedulableItem, error: PersistError) -> str:
    """User-facing text for a rolled-back move."""
    if error.retryable:
        return f"Failed to update {item.variant.value} \"{item.title}\". Please try again."
    return f"Update to {item.variant.value} \"{item.title}\" was rejected: {error.reason}"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Status boards (tasks, campaigns, channels)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class StatusBoard(BoardStore):
    """Kanban board of one variant, one column per status."""

    def __init__(self, variant: Variant, adapter: SyncAdapter):
        self.variant = variant
        super().__init__(adapter)

    def container_names(self) -> List[str]:
        return [status_to_column(s) for s in statuses_for(self.variant)]

    def key_of(self, item: SchedulableItem) -> str:
        return item.item_id

    def container_for(self, item: SchedulableItem) -> Optional[str]:
        return item.column

    def place(self, item: SchedulableItem, container: str) -> SchedulableItem:
        status = column_to_status(self.variant, container)
        if status is None:
            raise InvalidMoveError(f"No {self.variant.value} status for column {container!r}")
        return item.with_status(status)

    def persisted_value(self, item: SchedulableItem):
        return item.status

    def _check_item(self, item: SchedulableItem) -> None:
        if item.variant is not self.variant:
            raise InvalidItemError(
                f"{item.variant.value} {item.item_id} does not belong on the {self.variant.value} board"
            )

    async def toggle_pause(self, item_id: str) -> MoveOutcome:
        """Pause an active channel, or resume a paused/delayed one."""
        if self.variant is not Variant.CHANNEL:
            raise InvalidMoveError("Only channels can be paused")
        item = self.get(item_id)
        if item is None:
            raise InvalidMoveError(f"Unknown channel {item_id}")
        target = ChannelStatus.PAUSED if item.status is ChannelStatus.ACTIVE else ChannelStatus.ACTIVE
        move = CommittedMove(
            item_id=item_id,
            origin=item.column,
            destination=status_to_column(target),
            index=0,
            origin_index=self._grouping.index_of(item_id),
        )
        return await self.commit_move(move)

    def describe(self) -> str:
        return f"{self.variant.value}-board"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Calendar
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class CalendarBoard(BoardStore):
    """
    Month calendar of tasks and campaigns; containers are the month's dates.

    Items dated outside the displayed month are parked and come back when
    show_month() navigates to them.
    """

    def __init__(self, year: int, month: int, adapter: SyncAdapter, today: Optional[date] = None):
        self.today = today
        self.grid: MonthGrid = build_month_grid(year, month, today)
        self._parked: Dict[str, SchedulableItem] = {}
        super().__init__(adapter)

    def container_names(self) -> List[str]:
        return self.grid.dates()

    def key_of(self, item: SchedulableItem) -> str:
        return item.calendar_id

    def container_for(self, item: SchedulableItem) -> Optional[str]:
        return item.scheduled_date

    def place(self, item: SchedulableItem, container: str) -> SchedulableItem:
        return item.with_date(container)

    def persisted_value(self, item: SchedulableItem):
        return item.scheduled_date

    def _check_item(self, item: SchedulableItem) -> None:
        if item.variant not in DATED_VARIANTS:
            raise InvalidItemError(f"{item.variant.value} {item.item_id} cannot go on the calendar")

    def load(self, items: Iterable[SchedulableItem]) -> None:
        items = list(items)
        for item in items:
            self._check_item(item)
        # Undated tasks and campaigns stay off the calendar
        eligible = [i for i in items if i.calendar_eligible]
        month_dates = set(self.grid.dates())
        self._parked = {
            self.key_of(i): i for i in eligible if i.scheduled_date not in month_dates
        }
        super().load(i for i in eligible if i.scheduled_date in month_dates)

    def show_month(self, year: int, month: int) -> None:
        """Navigate to another month, regrouping every known item."""
        if self._pending:
            raise MoveInFlightError(next(iter(self._pending)))
        everything = list(self._parked.values()) + list(self._grouping.items.values())
        self.grid = build_month_grid(year, month, self.today)
        self._grouping = Grouping(items={}, containers={c: () for c in self.container_names()})
        self.load(everything)

    def cell(self, iso_date: str) -> List[SchedulableItem]:
        return self._grouping.column(iso_date)

    def describe(self) -> str:
        return f"calendar-{self.grid.year}-{self.grid.month + 1:02d}"
