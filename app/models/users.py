# app/models/users.py
from sqlalchemy import Column, String, Boolean, Integer, Enum, DateTime, ForeignKey, Text
from app.models.base import Base, utcnow
import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class User(Base):
    email = Column(String, unique=True, nullable=False, index=True)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.CUSTOMER)
    points_enabled = Column(Boolean, nullable=False, default=False)
    total_points = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)


class EmailVerification(Base):
    email = Column(String, nullable=False, index=True)
    code = Column(String(6), nullable=False)
    attempts = Column(Integer, nullable=False, default=0)
    verified = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    def is_expired(self, now=None) -> bool:
        return self.expires_at <= (now or utcnow())


class PushPermission(str, enum.Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class NotificationPreference(Base):
    user_sid = Column(String(22), ForeignKey("user.sid"), unique=True, nullable=False)
    push_enabled = Column(Boolean, nullable=False, default=False)
    push_token = Column(Text, nullable=True)
    permission_status = Column(Enum(PushPermission), nullable=False, default=PushPermission.DEFAULT)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
