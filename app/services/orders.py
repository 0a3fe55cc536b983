from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import select, update, or_, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import Base, utcnow
from app.models.orders import Order, PaymentStatus, PaymentMethod, DeliveryMethod
from app.services.pricing import PricedCart


class OrderLedger:
    """
    Durable record of orders and the single source of truth for what is owed.

    Payment status changes go through transition_payment_status, a
    compare-and-swap on the current status: a write only lands if the row
    is still in one of the expected states.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_order(
            self,
            user_sid: str,
            cart: PricedCart,
            client_total: Optional[Decimal] = None,
            delivery_method: DeliveryMethod = DeliveryMethod.PICKUP,
            delivery_data: Optional[Dict[str, Any]] = None,
    ) -> Order:
        order = Order(
            sid=Base.generate_sid(),
            user_sid=user_sid,
            items=cart.snapshot(),
            subtotal=cart.subtotal,
            tax=cart.tax,
            total=cart.total,
            client_total=client_total,
            status="pending",
            payment_status=PaymentStatus.PENDING,
            payment_attempts=0,
            delivery_method=delivery_method,
            delivery_data=delivery_data,
        )
        self.db.add(order)
        await self.db.commit()
        await self.db.refresh(order)

        if client_total is not None and client_total != cart.total:
            logger.warning(
                f"Order {order.sid}: client total {client_total} differs from catalog total {cart.total}"
            )
        logger.info(f"Order {order.sid} created for user {user_sid}, total {order.total}")
        return order

    async def get_order(self, order_sid: str) -> Optional[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.sid == order_sid)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_orders(self) -> List[Order]:
        result = await self.db.execute(select(Order).order_by(Order.created_at.desc()))
        return list(result.scalars().all())

    async def list_user_orders(self, user_sid: str) -> List[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.user_sid == user_sid)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def transition_payment_status(
            self,
            order_sid: str,
            expected: Iterable[PaymentStatus],
            new_status: PaymentStatus,
            transaction_id: Optional[str] = None,
            payment_method: Optional[PaymentMethod] = None,
            payment_amount: Optional[Decimal] = None,
            increment_attempt: bool = False,
            stale_before: Optional[datetime] = None,
    ) -> Optional[Order]:
        """
        Moves an order to new_status if its current status is in expected.

        stale_before additionally matches a `processing` row whose last
        transition is older than the given time. Returns the updated order,
        or None when the row did not match (missing order or lost race).
        """
        expected = list(expected)
        if PaymentStatus.COMPLETED in expected:
            raise ValueError("A completed payment can never be transitioned")

        status_matches = Order.payment_status.in_(expected)
        if stale_before is not None:
            status_matches = or_(
                status_matches,
                and_(
                    Order.payment_status == PaymentStatus.PROCESSING,
                    Order.payment_updated_at < stale_before,
                ),
            )

        values: Dict[str, Any] = {
            "payment_status": new_status,
            "payment_updated_at": utcnow(),
        }
        if transaction_id is not None:
            values["transaction_id"] = transaction_id
        if payment_method is not None:
            values["payment_method"] = payment_method
        if payment_amount is not None:
            values["payment_amount"] = payment_amount
        if increment_attempt:
            values["payment_attempts"] = Order.payment_attempts + 1

        result = await self.db.execute(
            update(Order)
            .where(Order.sid == order_sid, status_matches)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        if result.rowcount != 1:
            logger.warning(f"Order {order_sid}: transition to {new_status.value} rejected, status changed concurrently")
            return None

        logger.info(f"Order {order_sid}: payment status -> {new_status.value}")
        return await self.get_order(order_sid)
