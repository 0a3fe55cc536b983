import pytest
import uuid
from datetime import timedelta
from decimal import Decimal
from sqlalchemy.exc import IntegrityError

from app.models.base import Base, utcnow
from app.models.catalog import Item, Setting
from app.models.orders import Order, PaymentStatus, DeliveryMethod
from app.models.users import User, UserRole, EmailVerification, NotificationPreference, PushPermission


def test_base_model_generate_sid():
    """Test the generation of short IDs"""
    sid = Base.generate_sid()
    assert isinstance(sid, str)
    assert len(sid) == 22  # NanoID default length


def test_table_names():
    assert User.__tablename__ == "user"
    assert EmailVerification.__tablename__ == "emailverification"
    assert Order.__tablename__ == "orders"
    assert Item.__tablename__ == "item"


def test_utcnow_is_naive():
    assert utcnow().tzinfo is None


def test_verification_expiry():
    now = utcnow()
    challenge = EmailVerification(email="a@example.com", code="123456", expires_at=now + timedelta(minutes=1))
    assert challenge.is_expired(now) is False
    assert challenge.is_expired(now + timedelta(minutes=1)) is True


@pytest.mark.asyncio
async def test_user_defaults(db_session):
    user = User(email="defaults@example.com")
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)

    assert isinstance(user.id, uuid.UUID)
    assert len(user.sid) == 22
    assert user.role == UserRole.CUSTOMER
    assert user.points_enabled is False
    assert user.total_points == 0
    assert user.created_at is not None


@pytest.mark.asyncio
async def test_order_defaults_and_relationship(db_session, test_user):
    order = Order(
        user_sid=test_user.sid,
        items=[{"id": "x", "name": "Taco", "unit_price": "3.00", "quantity": 1}],
        subtotal=Decimal("3.00"),
        total=Decimal("3.18"),
    )
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order, ["user"])

    assert order.payment_status == PaymentStatus.PENDING
    assert order.payment_attempts == 0
    assert order.payment_currency == "USD"
    assert order.delivery_method == DeliveryMethod.PICKUP
    assert order.items[0]["name"] == "Taco"
    assert order.user.email == test_user.email


@pytest.mark.asyncio
async def test_notification_preference_defaults(db_session, test_user):
    preference = NotificationPreference(user_sid=test_user.sid)
    db_session.add(preference)
    await db_session.commit()
    await db_session.refresh(preference)

    assert preference.push_enabled is False
    assert preference.permission_status == PushPermission.DEFAULT


@pytest.mark.asyncio
async def test_setting_key_unique(db_session):
    db_session.add(Setting(key="banner", value="a"))
    await db_session.commit()

    db_session.add(Setting(key="banner", value="b"))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()
