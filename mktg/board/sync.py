"""
Sync adapters: persist a committed move to the source of truth.

The board store only knows `await adapter.persist_move(item, value)`.
It either returns (accepted) or raises PersistError with `retryable` set
for failures where a later attempt may succeed.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

import requests

from .errors import PersistError
from .schema import DATE_FIELDS, TITLE_FIELDS, SchedulableItem, Variant

logger = logging.getLogger(__name__)

# Status codes worth retrying: timeouts, throttling, server trouble
RETRYABLE_STATUS = {408, 425, 429, 500, 502, 503, 504}

# REST collection per variant on the dashboard backend
RESOURCES: Dict[Variant, str] = {
    Variant.TASK: "tasks",
    Variant.CAMPAIGN: "campaigns",
    Variant.CHANNEL: "channels",
}


class SyncAdapter:
    """Interface the board store persists moves through."""

    async def persist_move(self, item: SchedulableItem, value: Any) -> None:
        raise NotImplementedError


# The backend's PUT for these replaces the whole row
FULL_RECORD_VARIANTS = {Variant.TASK, Variant.CHANNEL}


def move_payload(item: SchedulableItem, value: Any) -> Dict[str, Any]:
    """Request body for a move.

    A status move changes {"status": ...}; a calendar move changes the
    variant's date field. Campaigns take a partial update. Tasks and
    channels get their full record (minus the id) with the change applied.
    """
    if isinstance(value, Enum):
        changed = {"status": value.value}
    else:
        field_name = DATE_FIELDS.get(item.variant)
        if field_name is None:
            raise PersistError(f"{item.variant.value} items have no date field", retryable=False)
        changed = {field_name: value}
    if item.variant not in FULL_RECORD_VARIANTS:
        return changed

    body = {k: v for k, v in item.raw.items() if k != "id"}
    body[TITLE_FIELDS[item.variant]] = item.title
    body["status"] = item.status.value
    date_field = DATE_FIELDS.get(item.variant)
    if date_field and item.scheduled_date is not None:
        body[date_field] = item.scheduled_date
    body.update(changed)
    return body


class HttpSyncAdapter(SyncAdapter):
    """PUTs moves to the dashboard backend's REST API."""

    def __init__(self, api_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def url_for(self, item: SchedulableItem) -> str:
        return f"{self.api_url}/api/{RESOURCES[item.variant]}/{item.item_id}"

    async def persist_move(self, item: SchedulableItem, value: Any) -> None:
        url = self.url_for(item)
        payload = move_payload(item, value)
        # requests blocks; keep the event loop free while it runs
        await asyncio.to_thread(self._put, url, payload)

    def _put(self, url: str, payload: Dict[str, Any]) -> None:
        try:
            r = self.session.put(url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise PersistError(f"Timed out after {self.timeout}s: {e}", retryable=True)
        except requests.ConnectionError as e:
            raise PersistError(f"Backend unreachable: {e}", retryable=True)
        except requests.RequestException as e:
            raise PersistError(f"Request failed: {e}", retryable=False)

        if r.ok:
            logger.info(f"PUT {url} {payload} → {r.status_code}")
            return

        reason = _error_reason(r)
        logger.warning(f"PUT {url} rejected: {r.status_code} {reason}")
        raise PersistError(
            reason,
            retryable=r.status_code in RETRYABLE_STATUS,
            status_code=r.status_code,
        )


def _error_reason(response: requests.Response) -> str:
    """Pull the backend's {"error": ...} message, falling back to the status line."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code} {response.reason or ''}".strip()


class InMemorySyncAdapter(SyncAdapter):
    """
    Records persisted moves instead of sending them anywhere.

    Used for offline mode and tests. Failures can be scripted:
        fail_next(2, retryable=True)  — next two calls fail
        fail_for.add("7")             — every call for item id 7 fails
    `gate`, when set, is awaited before each call completes so tests can
    hold a move in flight.
    """

    def __init__(self):
        self.calls: List[Tuple[Variant, str, Any]] = []
        self.fail_for: Set[str] = set()
        self._failures: List[bool] = []
        self.gate: Optional[asyncio.Event] = None
        self.records: Dict[Tuple[Variant, str], Dict[str, Any]] = {}

    def fail_next(self, count: int = 1, retryable: bool = True) -> None:
        self._failures.extend([retryable] * count)

    async def persist_move(self, item: SchedulableItem, value: Any) -> None:
        stored = value.value if isinstance(value, Enum) else value
        self.calls.append((item.variant, item.item_id, stored))
        if self.gate is not None:
            await self.gate.wait()
        if self._failures:
            retryable = self._failures.pop(0)
            raise PersistError("Scripted failure", retryable=retryable)
        if item.item_id in self.fail_for:
            raise PersistError(f"{item.variant.value} {item.item_id} is locked", retryable=False)
        self.records.setdefault(item.key, {}).update(move_payload(item, value))
