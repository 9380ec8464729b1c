"""
Booking endpoints backed by the concurrency-safe admission in booking_service.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.session import get_db
from eventhub.schemas.admin import MessageResponse
from eventhub.schemas.booking import BookingCreate, BookingResponse, BookingWithEventResponse
from eventhub.services.booking_service import book_event, cancel_booking, get_user_bookings
from eventhub.services.cache_service import invalidate_event_cache
from eventhub.core.security import CurrentUser, get_current_user

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a place on an event for the signed-in user.

    409 if the user already holds a booking for the event, 400 if the event
    is full, 404 if it does not exist.
    """
    booking = await book_event(db, user, booking_data.event_id)
    await invalidate_event_cache()
    return booking


@router.delete("/{booking_id}", response_model=MessageResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel (delete) a booking, freeing its place."""
    await cancel_booking(db, user, booking_id)
    await invalidate_event_cache()
    return MessageResponse(message="Booking cancelled successfully")


@router.get("", response_model=list[BookingWithEventResponse])
async def list_bookings(
    user_id: Optional[int] = Query(None, description="Admins may list another user's bookings"),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Bookings of the signed-in user, with their events."""
    target = user.id if user_id is None else user_id
    if target != user.id and not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return await get_user_bookings(db, target)
