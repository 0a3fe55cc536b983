from typing import Iterable, List

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base
from app.models.users import User, UserRole


async def seed_admin_users(db: AsyncSession, emails: Iterable[str]) -> List[User]:
    """Creates allowlisted admins or promotes existing accounts to the admin role"""
    admins = []
    for email in {email.strip().lower() for email in emails if email.strip()}:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is None:
            user = User(
                sid=Base.generate_sid(),
                email=email,
                role=UserRole.ADMIN,
                points_enabled=False,
                total_points=0,
            )
            db.add(user)
            logger.info(f"Created admin user {user.sid}")
        elif user.role != UserRole.ADMIN:
            user.role = UserRole.ADMIN
            logger.info(f"Promoted user {user.sid} to admin")

        admins.append(user)

    await db.commit()
    return admins
