from fastapi import APIRouter, Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.dependencies import get_current_user
from app.db.redis import get_app_redis
from app.db.session import get_db
from app.models.users import User
from app.schemas.order import OrderResponse
from app.schemas.payment import PaymentRequest, PaymentResponse, PaymentSummary, Money
from app.services.payment import PaymentCoordinator
from app.services.square import PaymentProcessor, get_payment_processor

router = APIRouter()


@router.post("", response_model=PaymentResponse)
async def create_payment(
        payment_in: PaymentRequest,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
        processor: Optional[PaymentProcessor] = Depends(get_payment_processor),
        redis: Optional[Redis] = Depends(get_app_redis),
):
    outcome = await PaymentCoordinator(db, processor, redis=redis).pay(current_user, payment_in)

    return PaymentResponse(
        success=True,
        payment=PaymentSummary(
            id=outcome.charge.id,
            status=outcome.charge.status,
            total_money=Money(amount=outcome.charge.amount, currency=outcome.charge.currency),
            created_at=outcome.charge.created_at,
        ),
        order=OrderResponse.model_validate(outcome.order),
    )
