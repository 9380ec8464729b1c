"""
Event service: filtered listing, CRUD and the popularity ranking.

Attendee counts are derived on every read with a LEFT OUTER JOIN onto
bookings grouped by event, so an event with no bookings reports 0.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Select, and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status

from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger
from eventhub.core.security import CurrentUser
from eventhub.models.booking import Booking
from eventhub.models.event import Event
from eventhub.schemas.event import EventCreate, EventFilters, EventUpdate
from eventhub.services.booking_service import count_bookings

logger = get_logger(__name__)
settings = get_settings()

attendee_count = func.count(Booking.id).label("current_attendees")


def _with_attendees(*criteria) -> Select:
    query = (
        select(Event, attendee_count)
        .outerjoin(Booking, Booking.event_id == Event.id)
        .group_by(Event.id)
    )
    if criteria:
        query = query.where(and_(*criteria))
    return query


def _annotate(rows) -> list[Event]:
    events = []
    for event, count in rows:
        event.current_attendees = count
        events.append(event)
    return events


def _escape_like(text: str) -> str:
    # Search is a literal substring match
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_filter_criteria(filters: EventFilters) -> list:
    """Translate filter parameters into a list of conjunctive predicates."""
    criteria = []
    if filters.category:
        criteria.append(Event.category.in_(filters.category))
    if filters.location:
        criteria.append(Event.location.in_(filters.location))
    if filters.start_date is not None:
        criteria.append(Event.date >= filters.start_date)
    if filters.end_date is not None:
        criteria.append(Event.date <= filters.end_date)
    if filters.created_by is not None:
        criteria.append(Event.created_by == filters.created_by)
    if filters.search:
        pattern = f"%{_escape_like(filters.search)}%"
        criteria.append(or_(
            Event.title.ilike(pattern, escape="\\"),
            Event.description.ilike(pattern, escape="\\"),
        ))
    return criteria


async def list_events(db: AsyncSession, filters: EventFilters) -> list[Event]:
    query = _with_attendees(*build_filter_criteria(filters)).order_by(Event.date.asc(), Event.id.asc())
    result = await db.execute(query)
    return _annotate(result.all())


async def get_event(db: AsyncSession, event_id: int) -> Event:
    result = await db.execute(_with_attendees(Event.id == event_id))
    row = result.one_or_none()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    return _annotate([row])[0]


async def popular_events(db: AsyncSession, limit: int = 10) -> list[Event]:
    """Events ranked by number of bookings, busiest first."""
    query = (
        _with_attendees()
        .order_by(attendee_count.desc(), Event.date.asc())
        .limit(limit)
    )
    result = await db.execute(query)
    return _annotate(result.all())


async def list_events_with_creator(db: AsyncSession) -> list[Event]:
    query = _with_attendees().options(selectinload(Event.creator)).order_by(Event.date.asc())
    result = await db.execute(query)
    return _annotate(result.all())


async def count_upcoming(db: AsyncSession, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    return (await db.execute(select(func.count(Event.id)).where(Event.date >= now))).scalar_one()


async def create_event(db: AsyncSession, event_data: EventCreate, creator: CurrentUser) -> Event:
    event = Event(**event_data.model_dump(), created_by=creator.id)
    db.add(event)
    await db.flush()
    await db.refresh(event)
    event.current_attendees = 0

    logger.info("event_created", event_id=event.id, title=event.title, capacity=event.max_attendees)
    return event


async def update_event(db: AsyncSession, event_id: int, changes: EventUpdate, editor: CurrentUser) -> Event:
    """
    Apply a partial update.

    Only admins and the event's creator may edit. Capacity may not be
    lowered below the number of existing bookings.
    """
    event = await get_event(db, event_id)

    if not editor.is_admin and event.created_by != editor.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the event creator or an admin can edit this event",
        )

    updates = changes.model_dump(exclude_unset=True)
    for field in ("title", "date", "category", "location", "max_attendees"):
        if field in updates and updates[field] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{field} cannot be null",
            )

    new_start = updates.get("date", event.date)
    new_end = updates.get("end_date", event.end_date)
    if new_end is not None and _as_aware(new_end) < _as_aware(new_start):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before date",
        )

    fields = sorted(updates)
    new_capacity = updates.pop("max_attendees", None)
    if new_capacity is not None:
        await resize_capacity(db, event.id, new_capacity)

    for field, value in updates.items():
        setattr(event, field, value)
    await db.flush()
    await db.refresh(event)
    event.current_attendees = await count_bookings(db, event.id)

    logger.info("event_updated", event_id=event.id, fields=fields)
    return event


async def resize_capacity(db: AsyncSession, event_id: int, new_capacity: int) -> None:
    """
    Change an event's capacity through the admission claim.

    The write bumps `version` under the same predicate bookings use, so an
    admission that counted against the old capacity loses its claim and
    re-checks. Lowering below the current bookings is a 400.
    """
    for attempt in range(1, settings.BOOKING_MAX_RETRIES + 1):
        seen_version = (
            await db.execute(select(Event.version).where(Event.id == event_id))
        ).scalar_one_or_none()
        if seen_version is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Event not found",
            )

        booked = await count_bookings(db, event_id)
        if new_capacity < booked:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"max_attendees cannot be lower than current bookings ({booked})",
            )

        result = await db.execute(
            update(Event)
            .where(Event.id == event_id, Event.version == seen_version)
            .values(version=Event.version + 1, max_attendees=new_capacity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return
        logger.info("capacity_change_retry", event_id=event_id, attempt=attempt)

    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail="Event is being booked right now. Please try again.",
    )


async def delete_event(db: AsyncSession, event_id: int) -> None:
    result = await db.execute(select(Event.id).where(Event.id == event_id))
    if result.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )

    removed = await db.execute(delete(Booking).where(Booking.event_id == event_id))
    await db.execute(delete(Event).where(Event.id == event_id))
    await db.flush()

    logger.info("event_deleted", event_id=event_id, bookings_removed=removed.rowcount)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
