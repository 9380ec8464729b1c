"""
Client-side query cache with optimistic booking mutations.

Booking and cancelling update the cached event and booking lists before
the server answers, so a UI can render the result immediately:

  1. snapshot the affected cache entries
  2. apply the speculative change
  3. send the request
  4. on an API error or a transport failure restore the snapshot and re-raise
  5. either way mark both entries stale; the next read refetches them so
     the cache converges on server state
"""

import copy
import itertools
from datetime import datetime, timezone
from typing import Callable, Hashable, Optional

import httpx

from eventhub.client.api import ApiError, EventHubClient
from eventhub.core.logging import get_logger

logger = get_logger(__name__)

QueryKey = tuple[Hashable, ...]

EVENTS_KEY: QueryKey = ("events",)


def bookings_key(user_id: int) -> QueryKey:
    return ("bookings", user_id)


class QueryCache:
    def __init__(self):
        self._data: dict[QueryKey, list[dict]] = {}
        self._stale: set[QueryKey] = set()

    def get(self, key: QueryKey) -> Optional[list[dict]]:
        return self._data.get(key)

    def set(self, key: QueryKey, value: list[dict]) -> None:
        self._data[key] = value
        self._stale.discard(key)

    def update(self, key: QueryKey, fn: Callable[[list[dict]], list[dict]]) -> None:
        self._data[key] = fn(self._data.get(key, []))

    def snapshot(self, *keys: QueryKey) -> dict[QueryKey, Optional[list[dict]]]:
        return {key: copy.deepcopy(self._data.get(key)) for key in keys}

    def restore(self, snapshot: dict[QueryKey, Optional[list[dict]]]) -> None:
        for key, value in snapshot.items():
            if value is None:
                self._data.pop(key, None)
            else:
                self._data[key] = value

    def invalidate(self, *keys: QueryKey) -> None:
        self._stale.update(keys)

    def is_stale(self, key: QueryKey) -> bool:
        return key not in self._data or key in self._stale


class OptimisticBookings:
    """Booking list and event list for one signed-in user, updated optimistically."""

    def __init__(self, client: EventHubClient, user_id: int, cache: Optional[QueryCache] = None):
        self.client = client
        self.user_id = user_id
        self.cache = cache or QueryCache()
        # Provisional bookings get negative ids so they never collide with real ones
        self._temp_ids = itertools.count(-1, -1)

    @property
    def bookings_key(self) -> QueryKey:
        return bookings_key(self.user_id)

    async def events(self) -> list[dict]:
        if self.cache.is_stale(EVENTS_KEY):
            self.cache.set(EVENTS_KEY, await self.client.list_events())
        return self.cache.get(EVENTS_KEY)

    async def bookings(self) -> list[dict]:
        if self.cache.is_stale(self.bookings_key):
            self.cache.set(self.bookings_key, await self.client.list_bookings())
        return self.cache.get(self.bookings_key)

    def _adjust_attendees(self, event_id: int, delta: int) -> None:
        def apply(events: list[dict]) -> list[dict]:
            return [
                {**e, "current_attendees": max((e.get("current_attendees") or 0) + delta, 0)}
                if e["id"] == event_id else e
                for e in events
            ]

        self.cache.update(EVENTS_KEY, apply)

    def _settle(self) -> None:
        self.cache.invalidate(EVENTS_KEY, self.bookings_key)

    async def book(self, event_id: int) -> dict:
        snapshot = self.cache.snapshot(EVENTS_KEY, self.bookings_key)

        now = datetime.now(timezone.utc).isoformat()
        event = next((e for e in self.cache.get(EVENTS_KEY) or [] if e["id"] == event_id), None)
        provisional = {
            "id": next(self._temp_ids),
            "event_id": event_id,
            "user_id": self.user_id,
            "created_at": now,
            "updated_at": now,
            "event": copy.deepcopy(event),
            "provisional": True,
        }
        self._adjust_attendees(event_id, +1)
        self.cache.update(self.bookings_key, lambda old: [*old, provisional])

        try:
            booking = await self.client.book(event_id)
        except (ApiError, httpx.HTTPError) as e:
            self.cache.restore(snapshot)
            logger.info("optimistic_booking_rolled_back", event_id=event_id, error=str(e))
            raise
        finally:
            self._settle()

        return booking

    async def cancel(self, booking_id: int) -> None:
        snapshot = self.cache.snapshot(EVENTS_KEY, self.bookings_key)

        removed = next((b for b in self.cache.get(self.bookings_key) or [] if b["id"] == booking_id), None)
        if removed is not None:
            self._adjust_attendees(removed["event_id"], -1)
        self.cache.update(self.bookings_key, lambda old: [b for b in old if b["id"] != booking_id])

        try:
            await self.client.cancel_booking(booking_id)
        except (ApiError, httpx.HTTPError) as e:
            self.cache.restore(snapshot)
            logger.info("optimistic_cancel_rolled_back", booking_id=booking_id, error=str(e))
            raise
        finally:
            self._settle()
