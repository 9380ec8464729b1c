"""
Authentication endpoints: register, login, logout and the session probe.
"""

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.db.session import get_db
from eventhub.schemas.admin import MessageResponse
from eventhub.schemas.user import UserCreate, UserResponse, UserLogin
from eventhub.services.auth_service import register_user, authenticate_user, get_user
from eventhub.core.security import (
    CurrentUser,
    clear_session_cookie,
    create_access_token,
    get_current_user,
    set_session_cookie,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _start_session(response: Response, user) -> None:
    token = create_access_token(user.id, user.email, user.role)
    set_session_cookie(response, token)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, response: Response, db: AsyncSession = Depends(get_db)):
    """Register a new account and sign it in."""
    user = await register_user(db, user_data)
    _start_session(response, user)
    return user


@router.post("/login", response_model=UserResponse)
async def login(login_data: UserLogin, response: Response, db: AsyncSession = Depends(get_db)):
    """Check credentials and set the session cookie."""
    user = await authenticate_user(db, login_data)
    _start_session(response, user)
    return user


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    clear_session_cookie(response)
    return MessageResponse(message="Logged out")


@router.get("/me", response_model=UserResponse)
async def me(
    current: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Return the signed-in user. A token for a deleted user clears the cookie."""
    user = await get_user(db, current.id)
    if user is None:
        response = JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "User not found"},
        )
        clear_session_cookie(response)
        return response
    return user
