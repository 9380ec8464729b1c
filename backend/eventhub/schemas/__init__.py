from eventhub.schemas.user import UserCreate, UserLogin, UserResponse, CreatorSummary
from eventhub.schemas.event import (
    EventCreate,
    EventUpdate,
    EventFilters,
    EventResponse,
    EventWithCreatorResponse,
)
from eventhub.schemas.booking import BookingCreate, BookingResponse, BookingWithEventResponse
from eventhub.schemas.admin import StatsResponse, MessageResponse

__all__ = [
    "UserCreate", "UserLogin", "UserResponse", "CreatorSummary",
    "EventCreate", "EventUpdate", "EventFilters", "EventResponse", "EventWithCreatorResponse",
    "BookingCreate", "BookingResponse", "BookingWithEventResponse",
    "StatsResponse", "MessageResponse",
]
