"""
Inbound data feed: read tasks, campaigns and channels from the backend.

The backend is inconsistent about envelopes: some list endpoints return a
bare JSON array, others wrap it ({"campaigns": [...]}). Both are accepted.
A variant that cannot be read comes back empty so the other boards still load.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from .errors import InvalidItemError
from .schema import SchedulableItem, Variant
from .sync import RESOURCES

logger = logging.getLogger(__name__)


@dataclass
class FeedResult:
    tasks: List[SchedulableItem] = field(default_factory=list)
    campaigns: List[SchedulableItem] = field(default_factory=list)
    channels: List[SchedulableItem] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def for_variant(self, variant: Variant) -> List[SchedulableItem]:
        return {
            Variant.TASK: self.tasks,
            Variant.CAMPAIGN: self.campaigns,
            Variant.CHANNEL: self.channels,
        }[variant]

    def calendar_items(self) -> List[SchedulableItem]:
        return [i for i in self.campaigns + self.tasks if i.calendar_eligible]


def unwrap(body: Any, resource: str) -> List[Dict[str, Any]]:
    """Accept `[...]` or `{"<resource>": [...]}`."""
    if isinstance(body, list):
        return body
    if isinstance(body, dict) and isinstance(body.get(resource), list):
        return body[resource]
    raise InvalidItemError(f"Unexpected {resource} payload: {str(body)[:120]}")


def parse_records(variant: Variant, records: List[Dict[str, Any]]) -> List[SchedulableItem]:
    """Normalize backend records, skipping (and logging) malformed ones."""
    items = []
    for record in records:
        try:
            items.append(SchedulableItem.from_record(variant, record))
        except InvalidItemError as e:
            logger.warning(f"Skipping {variant.value} record: {e}")
    return items


class BoardFeed:
    """Reads the full entity set used to (re)populate boards and the calendar."""

    def __init__(self, api_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, variant: Variant) -> List[SchedulableItem]:
        resource = RESOURCES[variant]
        url = f"{self.api_url}/api/{resource}"
        r = self.session.get(url, timeout=self.timeout)
        r.raise_for_status()
        return parse_records(variant, unwrap(r.json(), resource))

    def load_all(self) -> FeedResult:
        result = FeedResult()
        for variant in (Variant.TASK, Variant.CAMPAIGN, Variant.CHANNEL):
            try:
                items = self.fetch(variant)
            except (requests.RequestException, ValueError, InvalidItemError) as e:
                logger.warning(f"Could not load {RESOURCES[variant]}: {e}")
                result.errors[RESOURCES[variant]] = str(e)
                continue
            result.for_variant(variant).extend(items)
        logger.info(
            f"Feed loaded: {len(result.tasks)} tasks, "
            f"{len(result.campaigns)} campaigns, {len(result.channels)} channels"
        )
        return result


# Shown when running offline (no backend configured)
SAMPLE_RECORDS: Dict[Variant, List[Dict[str, Any]]] = {
    Variant.TASK: [
        {"id": 1, "title": "Draft launch email", "status": "To-do", "due_date": "2025-03-04"},
        {"id": 2, "title": "Book webinar speakers", "status": "In Progress", "due_date": "2025-03-12"},
        {"id": 3, "title": "Persona interviews", "status": "Done"},
    ],
    Variant.CAMPAIGN: [
        {"id": 1, "name": "Spring Launch", "status": "Planned", "launch_date": "2025-03-10"},
        {"id": 2, "name": "Partner Webinar", "status": "In Progress", "launch_date": "2025-03-20"},
    ],
    Variant.CHANNEL: [
        {"id": 1, "name": "Email Marketing", "type": "Email", "status": "Active"},
        {"id": 2, "name": "Social Media", "type": "Social", "status": "Active"},
        {"id": 3, "name": "Paid Search", "type": "Paid Ads", "status": "Paused"},
    ],
}


def sample_feed() -> FeedResult:
    result = FeedResult()
    for variant, records in SAMPLE_RECORDS.items():
        result.for_variant(variant).extend(parse_records(variant, records))
    return result
