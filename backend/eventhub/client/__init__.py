from eventhub.client.api import ApiError, EventHubClient
from eventhub.client.cache import EVENTS_KEY, OptimisticBookings, QueryCache, bookings_key

__all__ = ["ApiError", "EventHubClient", "OptimisticBookings", "QueryCache", "EVENTS_KEY", "bookings_key"]
