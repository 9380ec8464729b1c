"""
Booking service with concurrency-safe admission.

ADMISSION STRATEGY: Conditional Claim with Retry
================================================

Problem:
  Two users try to take the last place on an event simultaneously.
  Both count the bookings, both see count < capacity, both insert.
  Result: Overbooking.

Solution:
  Every admission claims the event row with a conditional write in the same
  transaction as the insert:

  1. Read the event's current version and capacity, count its bookings
  2. Reject if count >= capacity
  3. UPDATE events SET version = version + 1
     WHERE id = :event_id AND version = :seen_version
       AND max_attendees > :booked
  4. If rows_affected == 0, another admission (or a capacity change) for
     this event got there first -> re-count and retry
  5. Insert the booking

  The UPDATE takes the row lock until commit, so a competing admission
  blocks on step 3 and then fails its version predicate. Its retry reads
  the committed count, which already includes the winner's booking.
  Capacity edits bump the same version (see event_service.update_event),
  so an admission that read the old capacity cannot win its claim.

  Duplicates are checked up front for a clean error, and the
  (user_id, event_id) unique constraint rejects any duplicate that races
  past the check. A foreign key failure on insert means the event was
  deleted underneath us and is reported as 404.
"""

import time

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status

from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger
from eventhub.core.metrics import admission_retries, booking_latency, record_booking_attempt
from eventhub.core.security import CurrentUser
from eventhub.models.booking import Booking
from eventhub.models.event import Event

logger = get_logger(__name__)
settings = get_settings()


async def count_bookings(db: AsyncSession, event_id: int) -> int:
    result = await db.execute(select(func.count(Booking.id)).where(Booking.event_id == event_id))
    return result.scalar_one()


async def claim_admission(db: AsyncSession, event_id: int, seen_version: int, booked: int) -> bool:
    """
    Bump the event's version if nobody else has since `seen_version` was
    read and the event still has room beyond `booked` places.
    """
    result = await db.execute(
        update(Event)
        .where(
            Event.id == event_id,
            Event.version == seen_version,
            Event.max_attendees > booked,
        )
        .values(version=Event.version + 1, updated_at=Event.updated_at)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _event_exists(db: AsyncSession, event_id: int) -> bool:
    result = await db.execute(select(Event.id).where(Event.id == event_id))
    return result.scalar_one_or_none() is not None


async def _has_booking(db: AsyncSession, user_id: int, event_id: int) -> bool:
    result = await db.execute(
        select(Booking.id).where(Booking.user_id == user_id, Booking.event_id == event_id)
    )
    return result.first() is not None


def _reject(outcome: str, status_code: int, detail: str, **log_fields) -> HTTPException:
    record_booking_attempt(outcome)
    logger.warning("booking_rejected", reason=outcome, **log_fields)
    return HTTPException(status_code=status_code, detail=detail)


async def book_event(db: AsyncSession, user: CurrentUser, event_id: int) -> Booking:
    """
    Admit `user` to `event_id`.

    Checks, in order: event exists (404), no existing booking for this
    user (409), capacity not reached (400). Retries the capacity check up
    to BOOKING_MAX_RETRIES times when a concurrent admission wins the claim.
    """
    started = time.perf_counter()

    if not await _event_exists(db, event_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")

    if await _has_booking(db, user.id, event_id):
        raise _reject(
            "duplicate",
            status.HTTP_409_CONFLICT,
            "Already booked for this event",
            event_id=event_id,
            user_id=user.id,
        )

    for attempt in range(1, settings.BOOKING_MAX_RETRIES + 1):
        row = (
            await db.execute(
                select(Event.version, Event.max_attendees).where(Event.id == event_id)
            )
        ).one_or_none()

        if row is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")

        booked = await count_bookings(db, event_id)
        if booked >= row.max_attendees:
            raise _reject(
                "full",
                status.HTTP_400_BAD_REQUEST,
                "Event is fully booked",
                event_id=event_id,
                booked=booked,
                capacity=row.max_attendees,
            )

        if not await claim_admission(db, event_id, row.version, booked):
            admission_retries.inc()
            logger.info("booking_retry", event_id=event_id, attempt=attempt, reason="version_conflict")
            continue

        booking = Booking(user_id=user.id, event_id=event_id)
        try:
            async with db.begin_nested():
                db.add(booking)
                await db.flush()
        except IntegrityError:
            if not await _event_exists(db, event_id):
                raise _reject(
                    "missing",
                    status.HTTP_404_NOT_FOUND,
                    "Event not found",
                    event_id=event_id,
                    user_id=user.id,
                )
            raise _reject(
                "duplicate",
                status.HTTP_409_CONFLICT,
                "Already booked for this event",
                event_id=event_id,
                user_id=user.id,
            )
        await db.refresh(booking)

        record_booking_attempt("created")
        booking_latency.observe(time.perf_counter() - started)
        logger.info(
            "booking_created",
            booking_id=booking.id,
            user_id=user.id,
            event_id=event_id,
            attendees=booked + 1,
            capacity=row.max_attendees,
            attempt=attempt,
        )
        return booking

    raise _reject(
        "contention",
        status.HTTP_409_CONFLICT,
        "Booking failed due to high demand. Please try again.",
        event_id=event_id,
        attempts=settings.BOOKING_MAX_RETRIES,
    )


async def cancel_booking(db: AsyncSession, user: CurrentUser, booking_id: int) -> Booking:
    """Delete a booking. Owners may cancel their own, admins any."""
    booking = await db.get(Booking, booking_id)

    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )

    if booking.user_id != user.id and not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only cancel your own bookings",
        )

    await db.delete(booking)
    await db.flush()

    logger.info(
        "booking_cancelled",
        booking_id=booking.id,
        user_id=booking.user_id,
        event_id=booking.event_id,
        cancelled_by=user.id,
    )
    return booking


async def get_user_bookings(db: AsyncSession, user_id: int) -> list[Booking]:
    """Bookings for a user with their events, soonest event first."""
    counts = (
        select(Booking.event_id, func.count(Booking.id).label("current_attendees"))
        .group_by(Booking.event_id)
        .subquery()
    )
    result = await db.execute(
        select(Booking, counts.c.current_attendees)
        .join(Event, Booking.event_id == Event.id)
        .join(counts, counts.c.event_id == Event.id)
        .where(Booking.user_id == user_id)
        .options(selectinload(Booking.event))
        .order_by(Event.date.asc(), Booking.id.asc())
    )

    bookings = []
    for booking, current in result.all():
        booking.event.current_attendees = current
        bookings.append(booking)
    return bookings
