# app/schemas/order.py
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime
from decimal import Decimal
from enum import Enum


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    CARD = "card"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"


class DeliveryMethod(str, Enum):
    PICKUP = "pickup"
    GRUBHUB = "grubhub"
    DOORDASH = "doordash"


class CartLine(BaseModel):
    id: str
    quantity: int = Field(..., gt=0, le=100)
    # Display-only fields sent by the storefront; prices are re-read from the menu
    name: Optional[str] = None
    price: Optional[Decimal] = None


class OrderCreate(BaseModel):
    items: List[CartLine] = Field(..., min_length=1)
    total: Optional[Decimal] = Field(None, ge=0)
    delivery_method: DeliveryMethod = Field(DeliveryMethod.PICKUP, alias="deliveryMethod")
    delivery_data: Optional[Dict[str, Any]] = Field(None, alias="deliveryData")

    class Config:
        populate_by_name = True


class OrderLine(BaseModel):
    id: str
    name: str
    unit_price: Decimal
    quantity: int


class OrderResponse(BaseModel):
    sid: str
    user_sid: str
    items: List[OrderLine]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    client_total: Optional[Decimal] = None
    status: str
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    payment_amount: Optional[Decimal] = None
    payment_currency: str
    payment_attempts: int
    delivery_method: DeliveryMethod
    delivery_data: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
