from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.dependencies import get_current_user
from app.core.exceptions import NotFound
from app.db.session import get_db
from app.models.orders import DeliveryMethod
from app.models.users import User
from app.schemas.order import OrderCreate, OrderResponse
from app.services.orders import OrderLedger
from app.services.pricing import Pricing, get_pricing

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
        order_in: OrderCreate,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
        pricing: Pricing = Depends(get_pricing),
):
    cart = await pricing.price_cart(order_in.items)
    return await OrderLedger(db).create_order(
        user_sid=current_user.sid,
        cart=cart,
        client_total=order_in.total,
        delivery_method=DeliveryMethod(order_in.delivery_method.value),
        delivery_data=order_in.delivery_data,
    )


@router.get("", response_model=List[OrderResponse])
async def list_my_orders(
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    return await OrderLedger(db).list_user_orders(current_user.sid)


@router.get("/{order_sid}", response_model=OrderResponse)
async def get_order(
        order_sid: str,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
):
    order = await OrderLedger(db).get_order(order_sid)
    if order is None or order.user_sid != current_user.sid:
        raise NotFound("Order not found or access denied", code="ORDER_NOT_FOUND")
    return order
