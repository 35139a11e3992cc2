"""Tests for the schedulable item schema and status mapping."""
import pytest

from mktg.board.errors import InvalidItemError
from mktg.board.schema import (
    CampaignStatus,
    ChannelStatus,
    SchedulableItem,
    TaskStatus,
    Variant,
    column_to_status,
    parse_date,
    parse_status,
    status_to_column,
    statuses_for,
)
from conftest import task


def test_status_sets():
    assert [s.value for s in statuses_for(Variant.TASK)] == ["To-do", "In Progress", "Done"]
    assert [s.value for s in statuses_for(Variant.CHANNEL)] == ["Active", "Paused", "Delayed"]
    assert [s.value for s in statuses_for(Variant.CAMPAIGN)] == [
        "Planned", "In Progress", "Launched", "Delayed",
    ]


def test_status_column_mapping_is_total_and_invertible():
    for variant in Variant:
        columns = [status_to_column(s) for s in statuses_for(variant)]
        assert len(set(columns)) == len(columns)
        for status in statuses_for(variant):
            assert column_to_status(variant, status_to_column(status)) is status


def test_unknown_column_maps_to_none():
    assert column_to_status(Variant.TASK, "Launched") is None
    assert column_to_status(Variant.CHANNEL, "") is None


def test_parse_status_accepts_value_and_name():
    assert parse_status(Variant.TASK, "In Progress") is TaskStatus.IN_PROGRESS
    assert parse_status(Variant.TASK, "in_progress") is TaskStatus.IN_PROGRESS
    assert parse_status(Variant.TASK, "todo") is TaskStatus.TODO
    assert parse_status(Variant.CAMPAIGN, "launched") is CampaignStatus.LAUNCHED


def test_parse_status_rejects_foreign_values():
    with pytest.raises(InvalidItemError):
        parse_status(Variant.CHANNEL, "Inactive")
    with pytest.raises(InvalidItemError):
        parse_status(Variant.TASK, None)


def test_item_rejects_status_from_other_variant():
    with pytest.raises(InvalidItemError):
        SchedulableItem(item_id="1", variant=Variant.TASK, title="x", status=ChannelStatus.ACTIVE)


def test_channel_cannot_carry_date():
    with pytest.raises(InvalidItemError):
        SchedulableItem(
            item_id="1", variant=Variant.CHANNEL, title="x",
            status=ChannelStatus.ACTIVE, scheduled_date="2025-03-01",
        )


def test_parse_date():
    assert parse_date("2025-03-10T00:00:00Z") == "2025-03-10"
    assert parse_date("") is None
    assert parse_date(None) is None
    with pytest.raises(InvalidItemError):
        parse_date("tomorrow")


def test_from_record_task():
    item = SchedulableItem.from_record(Variant.TASK, {
        "id": 4, "title": "Write brief", "status": "Done",
        "due_date": "2025-03-02", "description": "Q2",
    })
    assert item.item_id == "4"
    assert item.status is TaskStatus.DONE
    assert item.scheduled_date == "2025-03-02"
    assert item.calendar_id == "task-4"
    assert item.raw["title"] == "Write brief"


def test_from_record_campaign_uses_name_and_launch_date():
    item = SchedulableItem.from_record(Variant.CAMPAIGN, {
        "id": 7, "name": "Spring Launch", "launch_date": "2025-03-10", "status": "Planned",
    })
    assert item.title == "Spring Launch"
    assert item.scheduled_date == "2025-03-10"
    assert item.column == "Planned"


def test_from_record_missing_status_defaults_to_first_column():
    item = SchedulableItem.from_record(Variant.TASK, {"id": 1, "title": "New"})
    assert item.status is TaskStatus.TODO
    assert not item.calendar_eligible


def test_from_record_requires_id():
    with pytest.raises(InvalidItemError):
        SchedulableItem.from_record(Variant.TASK, {"title": "no id"})


def test_with_status_and_date_return_new_items():
    original = task(1, due="2025-03-01")
    moved = original.with_status(TaskStatus.DONE).with_date("2025-03-05")
    assert original.status is TaskStatus.TODO
    assert original.scheduled_date == "2025-03-01"
    assert moved.status is TaskStatus.DONE
    assert moved.scheduled_date == "2025-03-05"


def test_to_dict():
    data = task(3, status=TaskStatus.IN_PROGRESS).to_dict()
    assert data["id"] == "3"
    assert data["variant"] == "task"
    assert data["status"] == "In Progress"
    assert data["scheduled_date"] is None


def test_variant_from_str():
    assert Variant.from_str("Campaign") is Variant.CAMPAIGN
    with pytest.raises(InvalidItemError):
        Variant.from_str("persona")
