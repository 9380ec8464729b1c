"""
Authentication service handling user registration and login.
"""

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger
from eventhub.core.security import ROLE_ADMIN, ROLE_USER, hash_password, verify_password
from eventhub.models.user import User
from eventhub.schemas.user import UserCreate, UserLogin

logger = get_logger(__name__)
settings = get_settings()


def _role_for_code(admin_code: str | None) -> str:
    if not admin_code:
        return ROLE_USER
    expected = settings.ADMIN_REGISTRATION_CODE
    if not expected or not secrets.compare_digest(admin_code, expected):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin code",
        )
    return ROLE_ADMIN


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password.
    Raises 409 if the email is taken and 403 on a wrong admin code.
    """
    if await get_user_by_email(db, user_data.email):
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    role = _role_for_code(user_data.admin_code)

    user = User(
        name=user_data.name.strip(),
        email=user_data.email.lower(),
        hashed_password=hash_password(user_data.password),
        role=role,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email, role=user.role)
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> User:
    """Return the user for valid credentials, 401 otherwise."""
    user = await get_user_by_email(db, login_data.email)

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    logger.info("user_logged_in", user_id=user.id)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    return await db.get(User, user_id)
