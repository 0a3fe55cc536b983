from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from app.db.session import get_db
from app.models.catalog import LocalEvent, Ad
from app.schemas.catalog import EventResponse, AdResponse

router = APIRouter()


@router.get("/events", response_model=List[EventResponse])
async def get_active_events(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(LocalEvent)
        .where(LocalEvent.active.is_(True))
        .order_by(LocalEvent.date_time)
    )
    return result.scalars().all()


@router.get("/ads", response_model=List[AdResponse])
async def get_active_ads(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Ad).where(Ad.active.is_(True)))
    return result.scalars().all()
