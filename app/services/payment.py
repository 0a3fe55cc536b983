from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional
import uuid

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    NotFound, Conflict, ServiceUnavailable, ValidationError, PaymentDeclined, CardDeclined,
    InsufficientFunds, VerificationRequired, PaymentFailed, PaymentProcessingFailed,
)
from app.core.metrics import PAYMENT_ATTEMPTS
from app.models.base import utcnow
from app.models.orders import Order, PaymentStatus, PaymentMethod
from app.models.users import User
from app.schemas.payment import PaymentRequest
from app.services.orders import OrderLedger
from app.services.points import award_points
from app.services.pricing import quantize_money, to_minor_units
from app.services.realtime import publish_event
from app.services.square import (
    ChargeRequest, ChargeResult, PaymentProcessor, ProcessorDeclined, ProcessorError,
)

IDEMPOTENCY_NAMESPACE = uuid.UUID("6f1c1f4e-6d0b-4c4e-9a55-2f3f1b7e8a10")

DECLINE_CLASSES = {
    "CARD_DECLINED": CardDeclined,
    "CVV_FAILURE": CardDeclined,
    "GENERIC_DECLINE": CardDeclined,
    "ADDRESS_VERIFICATION_FAILURE": CardDeclined,
    "INVALID_EXPIRATION": CardDeclined,
    "CARD_EXPIRED": CardDeclined,
    "INSUFFICIENT_FUNDS": InsufficientFunds,
    "VERIFY_CVV": VerificationRequired,
    "VERIFY_AVS": VerificationRequired,
    "CARD_DECLINED_VERIFICATION_REQUIRED": VerificationRequired,
}

Fanout = Callable[..., Awaitable[int]]


def idempotency_key(order_sid: str, attempt: int) -> str:
    """Stable for one attempt, different for the next one"""
    return str(uuid.uuid5(IDEMPOTENCY_NAMESPACE, f"{order_sid}:{attempt}"))


def classify_decline(error: ProcessorDeclined) -> PaymentDeclined:
    exc_class = DECLINE_CLASSES.get(error.code, PaymentFailed)
    return exc_class(declineCode=error.code or "PAYMENT_FAILED")


@dataclass
class PaymentOutcome:
    order: Order
    charge: ChargeResult
    points_awarded: Optional[int] = None


class PaymentCoordinator:
    """
    Drives one payment attempt for an order:

    ownership check -> already-paid guard -> currency check -> processor configured ->
    amount from the stored order total -> CAS to processing ->
    charge -> CAS to completed or failed.

    The caller is expected to have authenticated `user` already (token
    verified, token email equal to the user's current email).
    """

    def __init__(
            self,
            db: AsyncSession,
            processor: Optional[PaymentProcessor],
            fanout: Fanout = publish_event,
            redis: Optional[Any] = None,
            stale_after: Optional[timedelta] = None,
            points_per_dollar: Optional[int] = None,
    ):
        self.db = db
        self.ledger = OrderLedger(db)
        self.processor = processor
        self.fanout = fanout
        self.redis = redis
        self.stale_after = stale_after or timedelta(seconds=settings.PAYMENT_PROCESSING_STALE_SECONDS)
        self.points_per_dollar = settings.POINTS_PER_DOLLAR if points_per_dollar is None else points_per_dollar

    async def pay(self, user: User, request: PaymentRequest) -> PaymentOutcome:
        order = await self.ledger.get_order(request.order_id)
        # Missing and foreign orders look the same to the caller
        if order is None or order.user_sid != user.sid:
            raise NotFound("Order not found or access denied", code="ORDER_NOT_FOUND")

        if order.payment_status == PaymentStatus.COMPLETED:
            raise Conflict("Order already paid", code="ORDER_ALREADY_PAID")

        # The stored total is denominated in the order's currency
        if request.currency != order.payment_currency:
            raise ValidationError(
                f"Order {order.sid} is payable in {order.payment_currency} only",
                code="CURRENCY_MISMATCH",
                currency=order.payment_currency,
            )

        if self.processor is None:
            raise ServiceUnavailable(
                "Payment service unavailable",
                code="PAYMENT_SERVICE_UNAVAILABLE",
                details="Payment processing is not configured. Please contact support.",
            )

        amount = quantize_money(order.total)

        processing = await self.ledger.transition_payment_status(
            order.sid,
            expected=[PaymentStatus.PENDING, PaymentStatus.FAILED],
            new_status=PaymentStatus.PROCESSING,
            increment_attempt=True,
            stale_before=utcnow() - self.stale_after,
        )
        if processing is None:
            current = await self.ledger.get_order(order.sid)
            if current is not None and current.payment_status == PaymentStatus.COMPLETED:
                raise Conflict("Order already paid", code="ORDER_ALREADY_PAID")
            raise Conflict("A payment for this order is already in progress", code="PAYMENT_IN_PROGRESS")

        charge_request = ChargeRequest(
            source_id=request.source_id,
            amount=to_minor_units(amount),
            currency=order.payment_currency,
            idempotency_key=idempotency_key(order.sid, processing.payment_attempts),
            reference_id=order.sid,
            verification_token=request.verification_token,
            note=f"Payment for order {order.sid} - Total: {amount}",
        )
        logger.info(
            f"Order {order.sid}: charging {charge_request.amount} {charge_request.currency} "
            f"(attempt {processing.payment_attempts})"
        )

        try:
            charge = await self.processor.create_payment(charge_request)
        except ProcessorDeclined as e:
            await self._mark_failed(order.sid)
            PAYMENT_ATTEMPTS.labels(outcome="declined").inc()
            logger.info(f"Order {order.sid}: payment declined ({e.code})")
            raise classify_decline(e)
        except ProcessorError as e:
            await self._mark_failed(order.sid)
            PAYMENT_ATTEMPTS.labels(outcome="error").inc()
            logger.error(f"Order {order.sid}: payment processor error: {str(e)}")
            raise PaymentProcessingFailed(retryable=True)

        completed = await self._mark_completed(order.sid, charge, request, amount)
        PAYMENT_ATTEMPTS.labels(outcome="completed").inc()

        points = await award_points(self.db, user.sid, int(amount) * self.points_per_dollar)

        await self.fanout("ORDER_PAID", {
            "orderId": completed.sid,
            "total": completed.total,
            "items": completed.items,
        }, redis=self.redis)

        return PaymentOutcome(order=completed, charge=charge, points_awarded=points)

    async def _mark_failed(self, order_sid: str):
        failed = await self.ledger.transition_payment_status(
            order_sid,
            expected=[PaymentStatus.PROCESSING],
            new_status=PaymentStatus.FAILED,
        )
        if failed is None:
            logger.warning(f"Order {order_sid}: left processing before the failure could be recorded")

    async def _mark_completed(
            self,
            order_sid: str,
            charge: ChargeResult,
            request: PaymentRequest,
            amount: Decimal,
    ) -> Order:
        # FAILED is accepted too: a stale sweep may have failed the row while
        # the processor was still answering, and the charge did go through.
        completed = await self.ledger.transition_payment_status(
            order_sid,
            expected=[PaymentStatus.PROCESSING, PaymentStatus.FAILED],
            new_status=PaymentStatus.COMPLETED,
            transaction_id=charge.id,
            payment_method=PaymentMethod(request.payment_method.value),
            payment_amount=amount,
        )
        if completed is None:
            logger.critical(
                f"Order {order_sid}: charge {charge.id} succeeded but the order was already completed, refund required"
            )
            raise Conflict("Order already paid", code="ORDER_ALREADY_PAID")

        logger.info(f"Order {order_sid}: payment {charge.id} completed")
        return completed
