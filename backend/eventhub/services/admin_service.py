"""
Administrative operations: role changes and dashboard statistics.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_admin_action
from eventhub.core.security import ROLE_ADMIN, ROLE_USER, CurrentUser
from eventhub.models.booking import Booking
from eventhub.models.event import Event
from eventhub.models.user import User
from eventhub.schemas.admin import StatsResponse
from eventhub.services.event_service import count_upcoming

logger = get_logger(__name__)


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at.asc(), User.id.asc()))
    return list(result.scalars().all())


async def set_role(db: AsyncSession, actor: CurrentUser, user_id: int, role: str) -> User:
    """
    Set a user's role. Applying the same role twice is a no-op.
    Admins cannot demote themselves.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )

    if role == ROLE_USER and user.id == actor.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Admins cannot demote themselves",
        )

    action = "promote" if role == ROLE_ADMIN else "demote"
    if user.role == role:
        logger.info("role_unchanged", user_id=user.id, role=role, actor_id=actor.id)
        return user

    user.role = role
    await db.flush()
    await db.refresh(user)

    record_admin_action(action)
    logger.info(f"user_{action}d", user_id=user.id, role=role, actor_id=actor.id)
    return user


async def get_stats(db: AsyncSession) -> StatsResponse:
    total_users = (await db.execute(select(func.count(User.id)))).scalar_one()
    total_events = (await db.execute(select(func.count(Event.id)))).scalar_one()
    total_bookings = (await db.execute(select(func.count(Booking.id)))).scalar_one()
    return StatsResponse(
        total_users=total_users,
        total_events=total_events,
        total_bookings=total_bookings,
        upcoming_events=await count_upcoming(db),
    )
