# app/models/catalog.py
from sqlalchemy import Column, String, Integer, Numeric, DateTime, Boolean, Text
from app.models.base import Base, utcnow


class Item(Base):
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    category = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    available = Column(Boolean, nullable=False, default=True)
    tax_rate = Column(Numeric(5, 4), nullable=False, default=0.06)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class LocalEvent(Base):
    event_name = Column(String, nullable=False)
    date_time = Column(DateTime, nullable=False)
    location = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    active = Column(Boolean, nullable=False, default=True)


class Ad(Base):
    biz_name = Column(String, nullable=False)
    image_url = Column(String, nullable=True)
    location = Column(String, nullable=False)
    link = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    active = Column(Boolean, nullable=False, default=True)


class TruckLocation(Base):
    latitude = Column(Numeric(10, 8), nullable=True)
    longitude = Column(Numeric(11, 8), nullable=True)
    # miles, used for geofencing
    radius = Column(Numeric(5, 2), nullable=False, default=5)
    gps_enabled = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


class Setting(Base):
    key = Column(String, unique=True, nullable=False)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
