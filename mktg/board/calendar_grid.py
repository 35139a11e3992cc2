"""
Month grid for the calendar view.

The grid is a flat list of slots, Sunday-first, always a whole number of
7-day rows. Leading and trailing slots are empty placeholders (date=None).
Months are 0-indexed (0 = January) to match the view layer.
"""
import calendar
from dataclasses import dataclass
from datetime import date
from typing import Optional, List, Tuple, Dict, Iterable

WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class DayCell:
    """One slot of the month grid."""
    date: Optional[str] = None     # YYYY-MM-DD, None for padding slots
    day: Optional[int] = None
    is_today: bool = False

    @property
    def is_placeholder(self) -> bool:
        return self.date is None


@dataclass(frozen=True)
class MonthGrid:
    year: int
    month: int                     # 0-indexed
    cells: Tuple[DayCell, ...]

    @property
    def title(self) -> str:
        return f"{calendar.month_name[self.month + 1]} {self.year}"

    def weeks(self) -> List[Tuple[DayCell, ...]]:
        return [self.cells[i:i + 7] for i in range(0, len(self.cells), 7)]

    def date_cells(self) -> List[DayCell]:
        return [c for c in self.cells if not c.is_placeholder]

    def dates(self) -> List[str]:
        return [c.date for c in self.date_cells()]

    def __contains__(self, iso_date: str) -> bool:
        return any(c.date == iso_date for c in self.cells)


def _check_month(month: int) -> None:
    if not 0 <= month <= 11:
        raise ValueError(f"month must be 0..11, got {month}")


def first_weekday(year: int, month: int) -> int:
    """Day-of-week of the 1st, Sunday = 0."""
    _check_month(month)
    # calendar.weekday is Monday = 0
    return (calendar.weekday(year, month + 1, 1) + 1) % 7


def days_in_month(year: int, month: int) -> int:
    _check_month(month)
    return calendar.monthrange(year, month + 1)[1]


def build_month_grid(year: int, month: int, today: Optional[date] = None) -> MonthGrid:
    """Lay out (year, month) as Sunday-first weeks.

    today defaults to the current date; pass it explicitly for a
    deterministic grid.
    """
    if today is None:
        today = date.today()
    today_iso = today.isoformat()

    leading = first_weekday(year, month)
    count = days_in_month(year, month)

    cells: List[DayCell] = [DayCell() for _ in range(leading)]
    for day in range(1, count + 1):
        iso = f"{year:04d}-{month + 1:02d}-{day:02d}"
        cells.append(DayCell(date=iso, day=day, is_today=(iso == today_iso)))

    trailing = (7 - (len(cells) % 7)) % 7
    cells.extend(DayCell() for _ in range(trailing))

    return MonthGrid(year=year, month=month, cells=tuple(cells))


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Step the displayed month forwards/backwards, wrapping the year."""
    _check_month(month)
    total = year * 12 + month + delta
    return total // 12, total % 12


def place_items(grid: MonthGrid, items: Iterable) -> Dict[str, list]:
    """Group calendar-eligible items by the grid day they fall on.

    Every day of the month gets a key (possibly empty list). Items dated
    outside the displayed month, or without a date, are left out.
    """
    placed: Dict[str, list] = {d: [] for d in grid.dates()}
    for item in items:
        if item.scheduled_date in placed:
            placed[item.scheduled_date].append(item)
    return placed
