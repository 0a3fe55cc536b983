from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.users import User


async def set_points_enabled(db: AsyncSession, user: User, enabled: bool) -> User:
    user.points_enabled = enabled
    await db.commit()
    await db.refresh(user)
    return user


async def award_points(db: AsyncSession, user_sid: str, points: int) -> Optional[int]:
    """Adds points for opted-in users only; returns points awarded or None"""
    if points <= 0:
        return None

    result = await db.execute(
        update(User)
        .where(User.sid == user_sid, User.points_enabled.is_(True))
        .values(total_points=User.total_points + points)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return points if result.rowcount == 1 else None
