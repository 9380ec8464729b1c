"""
Event endpoints with Redis caching on filtered list operations.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.session import get_db
from eventhub.schemas.admin import MessageResponse
from eventhub.schemas.event import EventCreate, EventFilters, EventResponse, EventUpdate
from eventhub.services import event_service
from eventhub.services.cache_service import get_cached_events, set_cached_events, invalidate_event_cache
from eventhub.core.metrics import record_admin_action
from eventhub.core.security import CurrentUser, get_current_user, require_admin
from eventhub.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


def _split_csv(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def event_filters(
    category: Optional[str] = Query(None, description="Comma separated categories"),
    location: Optional[str] = Query(None, description="Comma separated locations"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    search: Optional[str] = Query(None, max_length=255),
    created_by: Optional[int] = Query(None),
) -> EventFilters:
    return EventFilters(
        category=_split_csv(category),
        location=_split_csv(location),
        start_date=start_date,
        end_date=end_date,
        search=search or None,
        created_by=created_by,
    )


@router.get("", response_model=list[EventResponse])
async def list_events_endpoint(
    filters: EventFilters = Depends(event_filters),
    _: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    List events matching every supplied filter, ordered by start date.
    Results are cached per filter set until the next event or booking change.
    """
    key = filters.cache_key()
    cached = await get_cached_events(key)
    if cached is not None:
        logger.info("events_list_cache_hit", filters=key)
        return cached

    events = await event_service.list_events(db, filters)
    payload = [EventResponse.model_validate(e).model_dump(mode="json") for e in events]
    await set_cached_events(key, payload)
    return payload


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event. Admin only."""
    event = await event_service.create_event(db, event_data, admin)
    await invalidate_event_cache()
    return event


@router.get("/popular", response_model=list[EventResponse])
async def popular_events_endpoint(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """Events with the most bookings first."""
    return await event_service.popular_events(db, limit)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    """Get a single event by ID. Not cached (needs live attendee counts)."""
    return await event_service.get_event(db, event_id)


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    changes: EventUpdate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Partially update an event. Admins or the event's creator."""
    event = await event_service.update_event(db, event_id, changes, user)
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event_endpoint(
    event_id: int,
    _: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event and all its bookings. Admin only."""
    await event_service.delete_event(db, event_id)
    await invalidate_event_cache()
    record_admin_action("delete_event")
    return MessageResponse(message="Event deleted successfully")
