# app/schemas/catalog.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    category: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    available: bool = True
    tax_rate: Decimal = Field(Decimal("0.0600"), ge=0, le=1, max_digits=5, decimal_places=4)


class ItemCreate(ItemBase):
    pass


class ItemUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    available: Optional[bool] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=1, max_digits=5, decimal_places=4)


class StockUpdate(BaseModel):
    stock: int = Field(..., ge=0)


class ItemResponse(ItemBase):
    sid: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EventBase(BaseModel):
    event_name: str = Field(..., min_length=1)
    date_time: datetime
    location: str = Field(..., min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    active: bool = True


class EventCreate(EventBase):
    pass


class EventUpdate(BaseModel):
    event_name: Optional[str] = Field(None, min_length=1)
    date_time: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    active: Optional[bool] = None


class EventResponse(EventBase):
    sid: str

    class Config:
        from_attributes = True


class AdBase(BaseModel):
    biz_name: str = Field(..., min_length=1)
    image_url: Optional[str] = None
    location: str = Field(..., min_length=1)
    link: Optional[str] = None
    description: Optional[str] = None
    active: bool = True


class AdCreate(AdBase):
    pass


class AdUpdate(BaseModel):
    biz_name: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1)
    link: Optional[str] = None
    description: Optional[str] = None
    active: Optional[bool] = None


class AdResponse(AdBase):
    sid: str

    class Config:
        from_attributes = True


class TruckLocationUpdate(BaseModel):
    latitude: Optional[Decimal] = Field(None, ge=-90, le=90)
    longitude: Optional[Decimal] = Field(None, ge=-180, le=180)
    radius: Decimal = Field(Decimal("5.00"), gt=0, max_digits=5, decimal_places=2)
    gps_enabled: bool = False


class TruckLocationResponse(TruckLocationUpdate):
    sid: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SettingUpdate(BaseModel):
    value: str


class SettingResponse(BaseModel):
    key: str
    value: Optional[str] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
