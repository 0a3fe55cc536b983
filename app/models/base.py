# app/models/base.py
from sqlalchemy import Column, String, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr
from datetime import datetime, timezone
import uuid
import nanoid


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sid = Column(String(22), unique=True, nullable=False, index=True, default=lambda: Base.generate_sid())

    @declared_attr
    def __tablename__(cls):
        return cls.__name__.lower()

    @staticmethod
    def generate_sid():
        """Генерирует короткий ID для внешнего API"""
        return nanoid.generate(size=22)
