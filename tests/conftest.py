"""Shared test fixtures for the scheduling surface tests."""

import sys
from pathlib import Path

import pytest

# Ensure the repo root is importable without installing
sys.path.insert(0, str(Path(__file__).parent.parent))

from mktg.board.schema import SchedulableItem, Variant, TaskStatus, CampaignStatus, ChannelStatus
from mktg.board.sync import InMemorySyncAdapter


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Stands in for loop.call_later; tests fire timers by hand."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def armed(self):
        return [t for t in self.timers if not t.cancelled]

    def fire_all(self):
        for timer in list(self.timers):
            if not timer.cancelled:
                timer.callback()


def task(item_id, status=TaskStatus.TODO, due=None, title=None):
    return SchedulableItem(
        item_id=str(item_id),
        variant=Variant.TASK,
        title=title or f"Task {item_id}",
        status=status,
        scheduled_date=due,
    )


def campaign(item_id, status=CampaignStatus.PLANNED, launch=None, title=None):
    return SchedulableItem(
        item_id=str(item_id),
        variant=Variant.CAMPAIGN,
        title=title or f"Campaign {item_id}",
        status=status,
        scheduled_date=launch,
    )


def channel(item_id, status=ChannelStatus.ACTIVE, title=None):
    return SchedulableItem(
        item_id=str(item_id),
        variant=Variant.CHANNEL,
        title=title or f"Channel {item_id}",
        status=status,
    )


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def adapter():
    return InMemorySyncAdapter()
