"""
Schedulable item schema and status vocabulary.

Variants and their columns:
  Task      To-do → In Progress → Done
  Campaign  Planned → In Progress → Launched → Delayed
  Channel   Active → Paused → Delayed

Items are immutable values. A move never edits an item in place; it builds
a new one with with_status() / with_date() and swaps it into the grouping.
"""
from enum import Enum
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional, Dict, Any, Tuple, Type

from .errors import InvalidItemError


class Variant(Enum):
    """Kinds of schedulable item, each with its own id namespace."""
    TASK = "task"
    CAMPAIGN = "campaign"
    CHANNEL = "channel"

    @classmethod
    def from_str(cls, value: str) -> "Variant":
        try:
            return cls(value.lower())
        except ValueError:
            raise InvalidItemError(f"Unknown variant: {value!r}")


class TaskStatus(Enum):
    """Task board columns."""
    TODO = "To-do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class CampaignStatus(Enum):
    """Campaign board columns."""
    PLANNED = "Planned"
    IN_PROGRESS = "In Progress"
    LAUNCHED = "Launched"
    DELAYED = "Delayed"


class ChannelStatus(Enum):
    """Channel board columns."""
    ACTIVE = "Active"
    PAUSED = "Paused"
    DELAYED = "Delayed"


STATUS_ENUMS: Dict[Variant, Type[Enum]] = {
    Variant.TASK: TaskStatus,
    Variant.CAMPAIGN: CampaignStatus,
    Variant.CHANNEL: ChannelStatus,
}

# Variants that may carry a scheduled date (calendar-eligible)
DATED_VARIANTS = (Variant.TASK, Variant.CAMPAIGN)

# Backend field holding the scheduled date, per variant
DATE_FIELDS: Dict[Variant, str] = {
    Variant.TASK: "due_date",
    Variant.CAMPAIGN: "launch_date",
}

# Backend field holding the display label, per variant
TITLE_FIELDS: Dict[Variant, str] = {
    Variant.TASK: "title",
    Variant.CAMPAIGN: "name",
    Variant.CHANNEL: "name",
}


def statuses_for(variant: Variant) -> Tuple[Enum, ...]:
    """Ordered status set for a variant; this is also the column order."""
    return tuple(STATUS_ENUMS[variant])


def status_to_column(status: Enum) -> str:
    """Column id for a status. Total over every variant's status enum."""
    if not isinstance(status, tuple(STATUS_ENUMS.values())):
        raise InvalidItemError(f"Not a board status: {status!r}")
    return status.value


def column_to_status(variant: Variant, column: str) -> Optional[Enum]:
    """Inverse of status_to_column for one variant. None if no such column."""
    try:
        return STATUS_ENUMS[variant](column)
    except ValueError:
        return None


def parse_status(variant: Variant, value: Any) -> Enum:
    """Coerce a backend status string into the variant's enum.

    Accepts the display value ("In Progress") or the enum name
    ("IN_PROGRESS"). Anything else is an invalid item, never a silent default.
    """
    enum_cls = STATUS_ENUMS[variant]
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value)
        except ValueError:
            pass
        try:
            return enum_cls[value.strip().upper().replace("-", "_").replace(" ", "_")]
        except KeyError:
            pass
    raise InvalidItemError(f"Invalid {variant.value} status: {value!r}")


def parse_date(value: Any) -> Optional[str]:
    """Normalize a backend date into YYYY-MM-DD, or None when absent.

    The backend sometimes returns full timestamps ("2025-03-10T00:00:00Z");
    only the calendar date part matters here.
    """
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()[:10]
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        raise InvalidItemError(f"Invalid date: {value!r}")


@dataclass(frozen=True)
class SchedulableItem:
    """One task, campaign or channel as placed on a board or calendar."""

    item_id: str
    variant: Variant
    title: str
    status: Enum
    scheduled_date: Optional[str] = None   # YYYY-MM-DD, dated variants only
    description: str = ""
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.status, STATUS_ENUMS[self.variant]):
            raise InvalidItemError(
                f"{self.variant.value} {self.item_id}: status {self.status!r} "
                f"is not one of {[s.value for s in statuses_for(self.variant)]}"
            )
        if self.scheduled_date is not None and self.variant not in DATED_VARIANTS:
            raise InvalidItemError(
                f"{self.variant.value} {self.item_id} cannot carry a scheduled date"
            )

    @property
    def key(self) -> Tuple[Variant, str]:
        """Identity across variants (task 3 and campaign 3 are different items)."""
        return (self.variant, self.item_id)

    @property
    def calendar_id(self) -> str:
        return f"{self.variant.value}-{self.item_id}"

    @property
    def column(self) -> str:
        return status_to_column(self.status)

    @property
    def calendar_eligible(self) -> bool:
        return self.scheduled_date is not None

    def with_status(self, status: Enum) -> "SchedulableItem":
        return replace(self, status=status)

    def with_date(self, scheduled_date: str) -> "SchedulableItem":
        return replace(self, scheduled_date=parse_date(scheduled_date))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the board server's JSON responses."""
        return {
            "id": self.item_id,
            "calendar_id": self.calendar_id,
            "variant": self.variant.value,
            "title": self.title,
            "status": self.status.value,
            "scheduled_date": self.scheduled_date,
            "description": self.description,
        }

    @classmethod
    def from_record(cls, variant: Variant, data: Dict[str, Any]) -> "SchedulableItem":
        """Build an item from a backend record.

        Backend shapes differ per variant: tasks use title/due_date, campaigns
        use name/launch_date, channels use name and have no date. The generic
        keys (title, status, scheduled_date) are accepted for every variant.
        """
        if not isinstance(data, dict):
            raise InvalidItemError(f"{variant.value} record is not an object: {data!r}")
        if data.get("id") in (None, ""):
            raise InvalidItemError(f"{variant.value} record has no id: {data!r}")

        title = data.get(TITLE_FIELDS[variant]) or data.get("title") or ""

        # Records without a status fall into the variant's first column
        raw_status = data.get("status")
        if raw_status in (None, ""):
            status = statuses_for(variant)[0]
        else:
            status = parse_status(variant, raw_status)

        scheduled = None
        if variant in DATED_VARIANTS:
            scheduled = parse_date(
                data.get(DATE_FIELDS[variant], data.get("scheduled_date"))
            )

        return cls(
            item_id=str(data["id"]),
            variant=variant,
            title=str(title),
            status=status,
            scheduled_date=scheduled,
            description=data.get("description") or "",
            raw=dict(data),
        )
