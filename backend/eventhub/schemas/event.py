"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime, timezone
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel, Field, model_validator

from eventhub.schemas.user import CreatorSummary


def _to_utc(value: datetime) -> datetime:
    # Naive input is taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_to_utc)]


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: UTCDateTime
    end_date: Optional[UTCDateTime] = None
    category: str = Field(..., min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=255)
    max_attendees: int = Field(..., gt=0, le=100000)

    @model_validator(mode="after")
    def check_time_window(self):
        if self.end_date is not None and self.end_date < self.date:
            raise ValueError("end_date must not be before date")
        return self


class EventUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    max_attendees: Optional[int] = Field(None, gt=0, le=100000)


class EventFilters(BaseModel):
    category: list[str] = Field(default_factory=list)
    location: list[str] = Field(default_factory=list)
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    search: Optional[str] = None
    created_by: Optional[int] = None

    def cache_key(self) -> str:
        return self.model_dump_json(exclude_defaults=True)


class EventResponse(BaseModel):
    id: int
    title: str
    description: Optional[str]
    date: datetime
    end_date: Optional[datetime]
    category: str
    location: str
    max_attendees: int
    current_attendees: int = 0
    created_by: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class EventWithCreatorResponse(EventResponse):
    creator: CreatorSummary
