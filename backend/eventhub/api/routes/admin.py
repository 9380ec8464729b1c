"""
Admin-only endpoints: user roles, event moderation and dashboard stats.
Every route here depends on require_admin, so non-admins get 403.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.session import get_db
from eventhub.core.metrics import record_admin_action
from eventhub.core.security import ROLE_ADMIN, ROLE_USER, CurrentUser, require_admin
from eventhub.schemas.admin import MessageResponse, StatsResponse
from eventhub.schemas.event import EventWithCreatorResponse
from eventhub.schemas.user import UserResponse
from eventhub.services import admin_service, event_service
from eventhub.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("/users", response_model=list[UserResponse])
async def list_users(db: AsyncSession = Depends(get_db)):
    return await admin_service.list_users(db)


@router.post("/users/{user_id}/promote", response_model=UserResponse)
async def promote_user(
    user_id: int,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.set_role(db, admin, user_id, ROLE_ADMIN)


@router.post("/users/{user_id}/demote", response_model=UserResponse)
async def demote_user(
    user_id: int,
    admin: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await admin_service.set_role(db, admin, user_id, ROLE_USER)


@router.get("/events", response_model=list[EventWithCreatorResponse])
async def list_events_with_creators(db: AsyncSession = Depends(get_db)):
    return await event_service.list_events_with_creator(db)


@router.delete("/events/{event_id}", response_model=MessageResponse)
async def delete_event(event_id: int, db: AsyncSession = Depends(get_db)):
    await event_service.delete_event(db, event_id)
    await invalidate_event_cache()
    record_admin_action("delete_event")
    return MessageResponse(message="Event deleted successfully")


@router.get("/stats", response_model=StatsResponse)
async def stats(db: AsyncSession = Depends(get_db)):
    return await admin_service.get_stats(db)
