"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import datetime
from pydantic import BaseModel

from eventhub.schemas.event import EventResponse


class BookingCreate(BaseModel):
    event_id: int


class BookingResponse(BaseModel):
    id: int
    user_id: int
    event_id: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingWithEventResponse(BookingResponse):
    event: EventResponse
