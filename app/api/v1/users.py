from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.dependencies import get_current_user
from app.db.session import get_db
from app.models.base import Base
from app.models.users import User, NotificationPreference, PushPermission
from app.schemas.user import (
    PointsStatus, PointsUpdate, NotificationPreferenceResponse, NotificationPreferenceUpdate,
)
from app.services.points import set_points_enabled

router = APIRouter()


@router.get("/me/points", response_model=PointsStatus)
async def get_points(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me/points", response_model=PointsStatus)
async def update_points(
        points_in: PointsUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    return await set_points_enabled(db, current_user, points_in.points_enabled)


async def get_or_create_preferences(db: AsyncSession, user: User) -> NotificationPreference:
    result = await db.execute(
        select(NotificationPreference).where(NotificationPreference.user_sid == user.sid)
    )
    preferences = result.scalar_one_or_none()
    if preferences is None:
        preferences = NotificationPreference(
            sid=Base.generate_sid(),
            user_sid=user.sid,
            push_enabled=False,
            permission_status=PushPermission.DEFAULT,
        )
        db.add(preferences)
        await db.commit()
        await db.refresh(preferences)
    return preferences


@router.get("/me/notifications", response_model=NotificationPreferenceResponse)
async def get_notification_preferences(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    return await get_or_create_preferences(db, current_user)


@router.put("/me/notifications", response_model=NotificationPreferenceResponse)
async def update_notification_preferences(
        preferences_in: NotificationPreferenceUpdate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    preferences = await get_or_create_preferences(db, current_user)
    updates = preferences_in.model_dump(exclude_unset=True)
    if "permission_status" in updates and updates["permission_status"] is not None:
        updates["permission_status"] = PushPermission(updates["permission_status"].value)

    for field, value in updates.items():
        setattr(preferences, field, value)
    await db.commit()
    await db.refresh(preferences)
    return preferences
