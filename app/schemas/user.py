# app/schemas/user.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    CUSTOMER = "customer"


class PushPermission(str, Enum):
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class VerificationRequest(BaseModel):
    email: EmailStr


class UserVerify(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class UserResponse(BaseModel):
    sid: str
    email: str
    role: UserRole
    points_enabled: bool
    total_points: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VerificationRequestResponse(BaseModel):
    success: bool
    message: str
    email: str


class AuthResponse(BaseModel):
    success: bool
    token: str
    user: UserResponse
    message: str


class CurrentUserResponse(BaseModel):
    user: UserResponse


class PointsStatus(BaseModel):
    points_enabled: bool
    total_points: int

    class Config:
        from_attributes = True


class PointsUpdate(BaseModel):
    points_enabled: bool


class NotificationPreferenceResponse(BaseModel):
    push_enabled: bool
    push_token: Optional[str] = None
    permission_status: PushPermission

    class Config:
        from_attributes = True


class NotificationPreferenceUpdate(BaseModel):
    push_enabled: Optional[bool] = None
    push_token: Optional[str] = None
    permission_status: Optional[PushPermission] = None
