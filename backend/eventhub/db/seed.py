"""
Create the default admin account if it does not exist yet.

Usage:
    python -m eventhub.db.seed

Credentials come from DEFAULT_ADMIN_EMAIL / DEFAULT_ADMIN_PASSWORD /
DEFAULT_ADMIN_NAME. Running it again is a no-op.
"""

import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.config import get_settings
from eventhub.core.logging import get_logger, setup_logging
from eventhub.core.security import ROLE_ADMIN, hash_password
from eventhub.db.session import SessionLocal
from eventhub.models.user import User

logger = get_logger(__name__)


async def seed_admin(db: AsyncSession) -> tuple[User, bool]:
    """Return the admin user and whether it was created by this call."""
    settings = get_settings()
    email = settings.DEFAULT_ADMIN_EMAIL.lower()

    existing = (await db.execute(select(User).where(User.email == email))).scalar_one_or_none()
    if existing is not None:
        logger.info("admin_seed_skipped", email=email, reason="already_exists")
        return existing, False

    admin = User(
        name=settings.DEFAULT_ADMIN_NAME,
        email=email,
        hashed_password=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        role=ROLE_ADMIN,
    )
    db.add(admin)
    await db.flush()
    await db.refresh(admin)
    logger.info("admin_seeded", user_id=admin.id, email=email)
    return admin, True


async def main() -> None:
    setup_logging()
    async with SessionLocal() as session:
        async with session.begin():
            await seed_admin(session)


if __name__ == "__main__":
    asyncio.run(main())
