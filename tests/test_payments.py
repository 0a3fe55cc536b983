import asyncio
import json as jsonlib

import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

from app.core.config import settings
from app.core.exceptions import (
    NotFound, Conflict, ServiceUnavailable, ValidationError, CardDeclined, InsufficientFunds,
    VerificationRequired, PaymentFailed, PaymentProcessingFailed,
)
from app.main import app
from app.models.base import utcnow
from app.models.orders import PaymentStatus, PaymentMethod
from app.schemas.payment import PaymentRequest
from app.services.orders import OrderLedger
from app.services.payment import PaymentCoordinator, idempotency_key, classify_decline
from app.services.realtime import FANOUT_CHANNEL
from app.services.square import ProcessorDeclined, ProcessorUnavailable, get_payment_processor
from tests.helpers import FakeProcessor, create_order


def payment_request(order, **fields) -> PaymentRequest:
    return PaymentRequest(sourceId="cnon:card-nonce-ok", orderId=order.sid, **fields)


def coordinator(db_session, processor, **kwargs) -> PaymentCoordinator:
    return PaymentCoordinator(db_session, processor, fanout=AsyncMock(return_value=0), **kwargs)


def test_idempotency_key_is_attempt_scoped():
    assert idempotency_key("order1", 1) == idempotency_key("order1", 1)
    assert idempotency_key("order1", 1) != idempotency_key("order1", 2)
    assert idempotency_key("order1", 1) != idempotency_key("order2", 1)


@pytest.mark.parametrize("code, exc_class", [
    ("CARD_DECLINED", CardDeclined),
    ("INSUFFICIENT_FUNDS", InsufficientFunds),
    ("VERIFY_CVV", VerificationRequired),
    ("SOMETHING_NEW", PaymentFailed),
])
def test_classify_decline(code, exc_class):
    error = classify_decline(ProcessorDeclined([{"code": code}]))
    assert type(error) is exc_class
    assert error.status_code == 402
    assert error.extra["declineCode"] == code


@pytest.mark.asyncio
async def test_pay_charges_stored_total(db_session, test_user, test_order):
    """Test the charge amount comes from the order row"""
    processor = FakeProcessor()
    service = coordinator(db_session, processor)

    outcome = await service.pay(test_user, payment_request(test_order, verificationToken="verf:abc"))

    assert len(processor.requests) == 1
    charge = processor.requests[0]
    assert charge.amount == 2120
    assert charge.currency == "USD"
    assert charge.reference_id == test_order.sid
    assert charge.verification_token == "verf:abc"
    assert charge.idempotency_key == idempotency_key(test_order.sid, 1)

    assert outcome.order.payment_status == PaymentStatus.COMPLETED
    assert outcome.order.transaction_id == "sq_1"
    assert outcome.order.payment_amount == Decimal("21.20")
    assert outcome.order.payment_method == PaymentMethod.CARD
    assert outcome.order.payment_attempts == 1

    service.fanout.assert_awaited_once()
    event_type, data = service.fanout.await_args[0]
    assert event_type == "ORDER_PAID"
    assert data["orderId"] == test_order.sid


@pytest.mark.asyncio
async def test_pay_foreign_order(db_session, other_user, test_order):
    processor = FakeProcessor()
    with pytest.raises(NotFound) as excinfo:
        await coordinator(db_session, processor).pay(other_user, payment_request(test_order))

    assert excinfo.value.code == "ORDER_NOT_FOUND"
    assert processor.requests == []
    assert (await OrderLedger(db_session).get_order(test_order.sid)).payment_status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_pay_missing_order(db_session, test_user):
    processor = FakeProcessor()
    request = PaymentRequest(sourceId="cnon:card-nonce-ok", orderId="missing")
    with pytest.raises(NotFound) as excinfo:
        await coordinator(db_session, processor).pay(test_user, request)
    assert excinfo.value.code == "ORDER_NOT_FOUND"


@pytest.mark.asyncio
async def test_pay_twice_charges_once(db_session, test_user, test_order):
    """Test a completed order is never charged again"""
    processor = FakeProcessor()
    service = coordinator(db_session, processor)

    await service.pay(test_user, payment_request(test_order))
    with pytest.raises(Conflict) as excinfo:
        await service.pay(test_user, payment_request(test_order))

    assert excinfo.value.code == "ORDER_ALREADY_PAID"
    assert len(processor.requests) == 1


@pytest.mark.asyncio
async def test_pay_while_processing(db_session, test_user):
    processor = FakeProcessor()
    order = await create_order(
        db_session, test_user,
        payment_status=PaymentStatus.PROCESSING,
        payment_updated_at=utcnow(),
    )

    with pytest.raises(Conflict) as excinfo:
        await coordinator(db_session, processor).pay(test_user, payment_request(order))

    assert excinfo.value.code == "PAYMENT_IN_PROGRESS"
    assert processor.requests == []


@pytest.mark.asyncio
async def test_pay_stale_processing_is_retryable(db_session, test_user):
    processor = FakeProcessor()
    order = await create_order(
        db_session, test_user,
        payment_status=PaymentStatus.PROCESSING,
        payment_updated_at=utcnow() - timedelta(minutes=30),
        payment_attempts=1,
    )

    outcome = await coordinator(db_session, processor, stale_after=timedelta(minutes=5)).pay(
        test_user, payment_request(order)
    )

    assert outcome.order.payment_status == PaymentStatus.COMPLETED
    assert processor.requests[0].idempotency_key == idempotency_key(order.sid, 2)


@pytest.mark.asyncio
async def test_pay_without_processor(db_session, test_user, test_order):
    with pytest.raises(ServiceUnavailable) as excinfo:
        await coordinator(db_session, None).pay(test_user, payment_request(test_order))

    assert excinfo.value.code == "PAYMENT_SERVICE_UNAVAILABLE"
    order = await OrderLedger(db_session).get_order(test_order.sid)
    assert order.payment_status == PaymentStatus.PENDING
    assert order.payment_attempts == 0


@pytest.mark.asyncio
async def test_pay_declined_then_retry(db_session, test_user, test_order):
    """Test a decline leaves the order failed and the next attempt uses a new key"""
    processor = FakeProcessor(error=ProcessorDeclined([{"code": "INSUFFICIENT_FUNDS"}]))
    service = coordinator(db_session, processor)

    with pytest.raises(InsufficientFunds):
        await service.pay(test_user, payment_request(test_order))

    order = await OrderLedger(db_session).get_order(test_order.sid)
    assert order.payment_status == PaymentStatus.FAILED
    assert order.transaction_id is None
    service.fanout.assert_not_awaited()

    processor.error = None
    outcome = await service.pay(test_user, payment_request(test_order))

    assert outcome.order.payment_status == PaymentStatus.COMPLETED
    assert outcome.order.payment_attempts == 2
    keys = [request.idempotency_key for request in processor.requests]
    assert keys == [idempotency_key(test_order.sid, 1), idempotency_key(test_order.sid, 2)]


@pytest.mark.asyncio
async def test_pay_verification_required(db_session, test_user, test_order):
    processor = FakeProcessor(error=ProcessorDeclined([{"code": "VERIFY_CVV"}]))

    with pytest.raises(VerificationRequired) as excinfo:
        await coordinator(db_session, processor).pay(test_user, payment_request(test_order))

    assert excinfo.value.to_dict()["requiresVerification"] is True


@pytest.mark.asyncio
async def test_pay_processor_unavailable(db_session, test_user, test_order):
    """Test a timeout leaves the order failed, not stuck in processing"""
    processor = FakeProcessor(error=ProcessorUnavailable("timeout"))

    with pytest.raises(PaymentProcessingFailed) as excinfo:
        await coordinator(db_session, processor).pay(test_user, payment_request(test_order))

    assert excinfo.value.status_code == 502
    assert excinfo.value.extra["retryable"] is True
    order = await OrderLedger(db_session).get_order(test_order.sid)
    assert order.payment_status == PaymentStatus.FAILED


@pytest.mark.asyncio
async def test_pay_awards_points_when_opted_in(db_session, test_user, test_order):
    test_user.points_enabled = True
    await db_session.commit()

    outcome = await coordinator(db_session, FakeProcessor(), points_per_dollar=1).pay(
        test_user, payment_request(test_order)
    )

    assert outcome.points_awarded == 21
    await db_session.refresh(test_user)
    assert test_user.total_points == 21


@pytest.mark.asyncio
async def test_pay_no_points_when_opted_out(db_session, test_user, test_order):
    outcome = await coordinator(db_session, FakeProcessor()).pay(test_user, payment_request(test_order))

    assert outcome.points_awarded is None
    await db_session.refresh(test_user)
    assert test_user.total_points == 0


@pytest.mark.asyncio
async def test_payment_endpoint_ignores_client_amount(authorized_client, fake_processor, test_order, mock_redis):
    response = await authorized_client.post(
        f"{settings.API_V1_STR}/payments",
        json={
            "sourceId": "cnon:card-nonce-ok",
            "paymentMethod": "apple_pay",
            "currency": "USD",
            "orderId": test_order.sid,
            "amount": 1,
        }
    )
    assert response.status_code == 200
    json = response.json()
    assert json["success"] is True
    assert json["payment"]["id"] == "sq_1"
    assert json["payment"]["totalMoney"] == {"amount": 2120, "currency": "USD"}
    assert json["order"]["payment_status"] == "completed"
    assert json["order"]["payment_method"] == "apple_pay"
    assert fake_processor.requests[0].amount == 2120

    channel, message = mock_redis.publish.await_args[0]
    assert channel == FANOUT_CHANNEL
    assert jsonlib.loads(message)["type"] == "ORDER_PAID"


@pytest.mark.asyncio
async def test_payment_endpoint_requires_auth(client, test_order):
    response = await client.post(
        f"{settings.API_V1_STR}/payments",
        json={"sourceId": "cnon:card-nonce-ok", "orderId": test_order.sid}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_payment_endpoint_declined(authorized_client, test_order):
    app.dependency_overrides[get_payment_processor] = lambda: FakeProcessor(
        error=ProcessorDeclined([{"code": "CARD_DECLINED", "detail": "raw processor text"}])
    )

    response = await authorized_client.post(
        f"{settings.API_V1_STR}/payments",
        json={"sourceId": "cnon:card-nonce-declined", "orderId": test_order.sid}
    )
    assert response.status_code == 402
    json = response.json()
    assert json["code"] == "CARD_DECLINED"
    assert json["declineCode"] == "CARD_DECLINED"
    assert "raw processor text" not in response.text


@pytest.mark.asyncio
async def test_payment_endpoint_not_configured(authorized_client, test_order):
    app.dependency_overrides[get_payment_processor] = lambda: None

    response = await authorized_client.post(
        f"{settings.API_V1_STR}/payments",
        json={"sourceId": "cnon:card-nonce-ok", "orderId": test_order.sid}
    )
    assert response.status_code == 503
    assert response.json()["code"] == "PAYMENT_SERVICE_UNAVAILABLE"


@pytest.mark.asyncio
async def test_payment_endpoint_rejects_bad_currency(authorized_client, test_order):
    response = await authorized_client.post(
        f"{settings.API_V1_STR}/payments",
        json={"sourceId": "cnon:card-nonce-ok", "orderId": test_order.sid, "currency": "usd"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_concurrent_payments_charge_once(session_factory, test_user, test_order):
    """Test simultaneous pay() calls on one order produce a single charge"""
    processor = FakeProcessor()

    async def attempt():
        async with session_factory() as db:
            try:
                await coordinator(db, processor).pay(test_user, payment_request(test_order))
                return "ok"
            except Conflict as e:
                return e.code

    results = await asyncio.gather(*(attempt() for _ in range(5)))

    assert results.count("ok") == 1
    assert set(results) - {"ok"} <= {"PAYMENT_IN_PROGRESS", "ORDER_ALREADY_PAID"}
    assert len(processor.requests) == 1

    async with session_factory() as db:
        order = await OrderLedger(db).get_order(test_order.sid)
    assert order.payment_status == PaymentStatus.COMPLETED
    assert order.payment_attempts == 1


@pytest.mark.asyncio
async def test_pay_rejects_other_currency(db_session, test_user, test_order):
    """Test the stored total is never re-denominated by the request currency"""
    processor = FakeProcessor()

    with pytest.raises(ValidationError) as excinfo:
        await coordinator(db_session, processor).pay(test_user, payment_request(test_order, currency="JPY"))

    assert excinfo.value.code == "CURRENCY_MISMATCH"
    assert excinfo.value.extra["currency"] == "USD"
    assert processor.requests == []
    order = await OrderLedger(db_session).get_order(test_order.sid)
    assert order.payment_status == PaymentStatus.PENDING
    assert order.payment_attempts == 0


@pytest.mark.asyncio
async def test_pay_publishes_through_redis(db_session, test_user, test_order, mock_redis):
    outcome = await PaymentCoordinator(db_session, FakeProcessor(), redis=mock_redis).pay(
        test_user, payment_request(test_order)
    )

    assert outcome.order.payment_currency == "USD"
    channel, message = mock_redis.publish.await_args[0]
    assert channel == FANOUT_CHANNEL
    assert jsonlib.loads(message)["data"]["orderId"] == test_order.sid


@pytest.mark.asyncio
async def test_payment_endpoint_currency_mismatch(authorized_client, fake_processor, test_order):
    response = await authorized_client.post(
        f"{settings.API_V1_STR}/payments",
        json={"sourceId": "cnon:card-nonce-ok", "orderId": test_order.sid, "currency": "EUR"}
    )
    assert response.status_code == 400
    assert response.json()["code"] == "CURRENCY_MISMATCH"
    assert fake_processor.requests == []
