# app/schemas/payment.py
from pydantic import BaseModel, Field
from typing import Optional
from app.schemas.order import OrderResponse, PaymentMethod


class PaymentRequest(BaseModel):
    """
    Charge request for an existing order.

    Carries no amount. The charge is taken from the stored order total
    and unknown keys such as "amount" are ignored.
    """
    source_id: str = Field(..., min_length=1, alias="sourceId")
    payment_method: PaymentMethod = Field(PaymentMethod.CARD, alias="paymentMethod")
    verification_token: Optional[str] = Field(None, alias="verificationToken")
    currency: str = Field("USD", pattern=r"^[A-Z]{3}$")
    order_id: str = Field(..., min_length=1, alias="orderId")

    class Config:
        populate_by_name = True


class Money(BaseModel):
    amount: int
    currency: str


class PaymentSummary(BaseModel):
    id: str
    status: str
    total_money: Money = Field(..., alias="totalMoney")
    created_at: Optional[str] = Field(None, alias="createdAt")

    class Config:
        populate_by_name = True


class PaymentResponse(BaseModel):
    success: bool
    payment: PaymentSummary
    order: OrderResponse
