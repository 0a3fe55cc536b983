# app/models/orders.py
from sqlalchemy import Column, String, Integer, Numeric, DateTime, ForeignKey, Enum, JSON
from sqlalchemy.orm import relationship
import enum
from app.models.base import Base, utcnow


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"


class DeliveryMethod(str, enum.Enum):
    PICKUP = "pickup"
    GRUBHUB = "grubhub"
    DOORDASH = "doordash"


class Order(Base):
    __tablename__ = "orders"

    user_sid = Column(String(22), ForeignKey("user.sid"), nullable=False, index=True)
    user = relationship("User")
    # [{"id", "name", "unit_price", "quantity"}, ...] snapshot at creation
    items = Column(JSON, nullable=False)
    subtotal = Column(Numeric(10, 2), nullable=False)
    tax = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    client_total = Column(Numeric(10, 2), nullable=True)
    status = Column(String, nullable=False, default="pending")

    payment_status = Column(Enum(PaymentStatus), nullable=False, default=PaymentStatus.PENDING)
    transaction_id = Column(String, nullable=True)
    payment_method = Column(Enum(PaymentMethod), nullable=True)
    payment_amount = Column(Numeric(10, 2), nullable=True)
    payment_currency = Column(String(3), nullable=False, default="USD")
    payment_attempts = Column(Integer, nullable=False, default=0)
    payment_updated_at = Column(DateTime, nullable=True)

    delivery_method = Column(Enum(DeliveryMethod), nullable=False, default=DeliveryMethod.PICKUP)
    delivery_data = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow)
