from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional

from app.core.dependencies import get_admin_user
from app.core.exceptions import NotFound
from app.db.session import get_db
from app.models.base import Base
from app.models.catalog import LocalEvent, Ad, TruckLocation, Setting
from app.schemas.catalog import (
    EventCreate, EventUpdate, EventResponse, AdCreate, AdUpdate, AdResponse,
    TruckLocationUpdate, TruckLocationResponse, SettingUpdate, SettingResponse,
)
from app.schemas.order import OrderResponse
from app.services.orders import OrderLedger

router = APIRouter(dependencies=[Depends(get_admin_user)])


async def get_or_404(db: AsyncSession, model, sid: str, label: str):
    result = await db.execute(select(model).where(model.sid == sid))
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFound(f"{label} not found")
    return record


async def apply_updates(db: AsyncSession, record, updates: dict):
    for field, value in updates.items():
        setattr(record, field, value)
    await db.commit()
    await db.refresh(record)
    return record


# Events

@router.get("/events", response_model=List[EventResponse])
async def get_all_events(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(LocalEvent).order_by(LocalEvent.date_time))
    return result.scalars().all()


@router.post("/events", response_model=EventResponse)
async def create_event(event_in: EventCreate, db: AsyncSession = Depends(get_db)):
    event = LocalEvent(sid=Base.generate_sid(), **event_in.model_dump())
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


@router.put("/events/{event_sid}", response_model=EventResponse)
async def update_event(event_sid: str, event_in: EventUpdate, db: AsyncSession = Depends(get_db)):
    event = await get_or_404(db, LocalEvent, event_sid, "Event")
    return await apply_updates(db, event, event_in.model_dump(exclude_unset=True))


@router.delete("/events/{event_sid}")
async def delete_event(event_sid: str, db: AsyncSession = Depends(get_db)):
    event = await get_or_404(db, LocalEvent, event_sid, "Event")
    await db.delete(event)
    await db.commit()
    return {"success": True}


# Ads

@router.get("/ads", response_model=List[AdResponse])
async def get_all_ads(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Ad))
    return result.scalars().all()


@router.post("/ads", response_model=AdResponse)
async def create_ad(ad_in: AdCreate, db: AsyncSession = Depends(get_db)):
    ad = Ad(sid=Base.generate_sid(), **ad_in.model_dump())
    db.add(ad)
    await db.commit()
    await db.refresh(ad)
    return ad


@router.put("/ads/{ad_sid}", response_model=AdResponse)
async def update_ad(ad_sid: str, ad_in: AdUpdate, db: AsyncSession = Depends(get_db)):
    ad = await get_or_404(db, Ad, ad_sid, "Ad")
    return await apply_updates(db, ad, ad_in.model_dump(exclude_unset=True))


@router.delete("/ads/{ad_sid}")
async def delete_ad(ad_sid: str, db: AsyncSession = Depends(get_db)):
    ad = await get_or_404(db, Ad, ad_sid, "Ad")
    await db.delete(ad)
    await db.commit()
    return {"success": True}


# Truck location

@router.get("/location", response_model=Optional[TruckLocationResponse])
async def get_truck_location(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(TruckLocation).limit(1))
    return result.scalar_one_or_none()


@router.put("/location", response_model=TruckLocationResponse)
async def update_truck_location(location_in: TruckLocationUpdate, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(TruckLocation).limit(1))
    location = result.scalar_one_or_none()
    if location is None:
        location = TruckLocation(sid=Base.generate_sid())
        db.add(location)
    return await apply_updates(db, location, location_in.model_dump())


# Settings

@router.get("/settings", response_model=List[SettingResponse])
async def get_all_settings(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Setting).order_by(Setting.key))
    return result.scalars().all()


@router.get("/settings/{key}", response_model=SettingResponse)
async def get_setting(key: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Setting).where(Setting.key == key))
    setting = result.scalar_one_or_none()
    if setting is None:
        raise NotFound("Setting not found")
    return setting


@router.put("/settings/{key}", response_model=SettingResponse)
async def set_setting(key: str, setting_in: SettingUpdate, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Setting).where(Setting.key == key))
    setting = result.scalar_one_or_none()
    if setting is None:
        setting = Setting(sid=Base.generate_sid(), key=key)
        db.add(setting)
    return await apply_updates(db, setting, {"value": setting_in.value})


# Orders

@router.get("/orders", response_model=List[OrderResponse])
async def get_all_orders(db: AsyncSession = Depends(get_db)):
    return await OrderLedger(db).list_orders()
