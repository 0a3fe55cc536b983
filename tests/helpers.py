from datetime import timedelta
from decimal import Decimal
from typing import List
import uuid

import nanoid

from app.models.base import utcnow
from app.models.orders import Order, PaymentStatus
from app.models.users import User, UserRole
from app.services.square import ChargeRequest, ChargeResult


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def verification_expiry(minutes: int = 10):
    return utcnow() + timedelta(minutes=minutes)


async def create_user(db_session, email: str, role: UserRole = UserRole.CUSTOMER) -> User:
    user = User(
        id=uuid.uuid4(),
        sid=nanoid.generate(size=22),
        email=email,
        role=role,
        points_enabled=False,
        total_points=0,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def create_order(db_session, user: User, total: Decimal = Decimal("21.20"),
                       payment_status: PaymentStatus = PaymentStatus.PENDING, **fields) -> Order:
    values = dict(
        id=uuid.uuid4(),
        sid=nanoid.generate(size=22),
        user_sid=user.sid,
        items=[{"id": "item", "name": "Test Burger", "unit_price": "10.00", "quantity": 2}],
        subtotal=Decimal("20.00"),
        tax=total - Decimal("20.00"),
        total=total,
        status="pending",
        payment_status=payment_status,
        payment_currency="USD",
        payment_attempts=0,
    )
    values.update(fields)
    order = Order(**values)
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order)
    return order


class FakeProcessor:
    """Records charge requests and answers with a canned result or error"""

    def __init__(self, error: Exception = None):
        self.error = error
        self.requests: List[ChargeRequest] = []

    async def create_payment(self, request: ChargeRequest) -> ChargeResult:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return ChargeResult(
            id=f"sq_{len(self.requests)}",
            status="COMPLETED",
            amount=request.amount,
            currency=request.currency,
            created_at="2026-10-18T12:00:00Z",
        )
