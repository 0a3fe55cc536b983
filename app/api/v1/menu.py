from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from redis.asyncio import Redis
from typing import List, Optional

from app.core.dependencies import get_admin_user
from app.core.exceptions import NotFound
from app.db.redis import get_app_redis
from app.db.session import get_db
from app.models.base import Base
from app.models.catalog import Item
from app.models.users import User
from app.schemas.catalog import ItemCreate, ItemUpdate, ItemResponse, StockUpdate
from app.services.realtime import publish_event

router = APIRouter()


async def get_item_or_404(db: AsyncSession, item_sid: str) -> Item:
    result = await db.execute(select(Item).where(Item.sid == item_sid))
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFound("Item not found", code="ITEM_NOT_FOUND")
    return item


def item_payload(item: Item) -> dict:
    return ItemResponse.model_validate(item).model_dump(mode="json")


@router.get("", response_model=List[ItemResponse])
async def get_items(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Item).order_by(Item.category, Item.name))
    return result.scalars().all()


@router.post("", response_model=ItemResponse)
async def create_item(
        item_in: ItemCreate,
        admin: User = Depends(get_admin_user),
        db: AsyncSession = Depends(get_db),
        redis: Optional[Redis] = Depends(get_app_redis),
):
    item = Item(sid=Base.generate_sid(), **item_in.model_dump())
    db.add(item)
    await db.commit()
    await db.refresh(item)

    await publish_event("ITEM_CREATED", item_payload(item), redis=redis)
    return item


@router.patch("/{item_sid}/stock", response_model=ItemResponse)
async def update_item_stock(
        item_sid: str,
        stock_in: StockUpdate,
        admin: User = Depends(get_admin_user),
        db: AsyncSession = Depends(get_db),
        redis: Optional[Redis] = Depends(get_app_redis),
):
    item = await get_item_or_404(db, item_sid)
    item.stock = stock_in.stock
    await db.commit()
    await db.refresh(item)

    await publish_event("STOCK_UPDATED", item_payload(item), redis=redis)
    return item


@router.put("/{item_sid}", response_model=ItemResponse)
async def update_item(
        item_sid: str,
        item_in: ItemUpdate,
        admin: User = Depends(get_admin_user),
        db: AsyncSession = Depends(get_db),
        redis: Optional[Redis] = Depends(get_app_redis),
):
    item = await get_item_or_404(db, item_sid)
    for field, value in item_in.model_dump(exclude_unset=True).items():
        setattr(item, field, value)
    await db.commit()
    await db.refresh(item)

    await publish_event("ITEM_UPDATED", item_payload(item), redis=redis)
    return item


@router.delete("/{item_sid}")
async def delete_item(
        item_sid: str,
        admin: User = Depends(get_admin_user),
        db: AsyncSession = Depends(get_db),
        redis: Optional[Redis] = Depends(get_app_redis),
):
    item = await get_item_or_404(db, item_sid)
    await db.delete(item)
    await db.commit()

    await publish_event("ITEM_DELETED", {"id": item_sid}, redis=redis)
    return {"success": True}
