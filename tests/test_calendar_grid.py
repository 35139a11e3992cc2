"""Tests for the month grid engine."""
import calendar
from datetime import date

import pytest

from mktg.board.calendar_grid import (
    WEEKDAY_LABELS,
    build_month_grid,
    days_in_month,
    first_weekday,
    place_items,
    shift_month,
)
from conftest import task, campaign


class TestBuildMonthGrid:

    def test_march_2025_layout(self):
        grid = build_month_grid(2025, 2, today=date(2024, 1, 1))
        assert len(grid.cells) == 42
        assert len(grid.weeks()) == 6
        assert len(grid.date_cells()) == 31
        # 1st of March 2025 is a Saturday
        leading = 0
        while grid.cells[leading].is_placeholder:
            leading += 1
        assert leading == 6
        assert grid.cells[leading].date == "2025-03-01"
        assert grid.cells[-1].is_placeholder

    def test_dates_are_zero_padded_and_ascending(self):
        grid = build_month_grid(2025, 0, today=date(2024, 1, 1))
        dates = grid.dates()
        assert dates[0] == "2025-01-01"
        assert dates[8] == "2025-01-09"
        assert dates == sorted(dates)

    def test_february_2015_fits_in_four_rows(self):
        # Starts on a Sunday, 28 days
        grid = build_month_grid(2015, 1, today=date(2024, 1, 1))
        assert len(grid.cells) == 28
        assert grid.cells[0].date == "2015-02-01"

    def test_leap_february(self):
        grid = build_month_grid(2024, 1, today=date(2020, 1, 1))
        assert grid.dates()[-1] == "2024-02-29"

    def test_today_flag(self):
        grid = build_month_grid(2025, 2, today=date(2025, 3, 15))
        flagged = [c for c in grid.cells if c.is_today]
        assert len(flagged) == 1
        assert flagged[0].date == "2025-03-15"

    def test_today_outside_month_flags_nothing(self):
        grid = build_month_grid(2025, 2, today=date(2025, 4, 1))
        assert not any(c.is_today for c in grid.cells)

    def test_idempotent(self):
        a = build_month_grid(2025, 5, today=date(2025, 6, 3))
        b = build_month_grid(2025, 5, today=date(2025, 6, 3))
        assert a == b

    def test_every_month_of_a_decade(self):
        for year in range(2020, 2031):
            for month in range(12):
                grid = build_month_grid(year, month, today=date(2025, 3, 15))
                assert len(grid.cells) % 7 == 0
                assert 28 <= len(grid.cells) <= 42
                assert len(grid.date_cells()) == calendar.monthrange(year, month + 1)[1]
                assert sum(c.is_today for c in grid.cells) <= 1
                assert grid.cells[first_weekday(year, month)].day == 1

    def test_invalid_month(self):
        with pytest.raises(ValueError):
            build_month_grid(2025, 12)
        with pytest.raises(ValueError):
            build_month_grid(2025, -1)

    def test_title_uses_displayed_month(self):
        grid = build_month_grid(2025, 2, today=date(2025, 7, 1))
        assert grid.title == "March 2025"

    def test_contains(self):
        grid = build_month_grid(2025, 2, today=date(2025, 7, 1))
        assert "2025-03-31" in grid
        assert "2025-04-01" not in grid


class TestHelpers:

    def test_weekday_labels_sunday_first(self):
        assert WEEKDAY_LABELS[0] == "Sun"
        assert len(WEEKDAY_LABELS) == 7

    def test_days_in_month(self):
        assert days_in_month(2025, 1) == 28
        assert days_in_month(2025, 2) == 31

    def test_shift_month_wraps(self):
        assert shift_month(2025, 0, -1) == (2024, 11)
        assert shift_month(2025, 11, 1) == (2026, 0)
        assert shift_month(2025, 5, 0) == (2025, 5)
        assert shift_month(2025, 2, 14) == (2026, 4)

    def test_place_items_groups_by_day(self):
        grid = build_month_grid(2025, 2, today=date(2025, 3, 1))
        items = [
            campaign(1, launch="2025-03-10"),
            task(2, due="2025-03-10"),
            task(3, due="2025-04-02"),
            task(4),
        ]
        placed = place_items(grid, items)
        assert len(placed) == 31
        assert [i.item_id for i in placed["2025-03-10"]] == ["1", "2"]
        assert all(i.item_id not in ("3", "4") for day in placed.values() for i in day)
