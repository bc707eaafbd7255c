from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    full_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=6)
    role: str = Field(default="farmer", pattern="^(farmer|trader|warehouse_owner|logistics_provider)$")


class LoginRequest(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


# Checked in the endpoint so missing fields give 400 like login
class ChangePasswordRequest(BaseModel):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class UserSettings(BaseModel):
    notifications: Dict[str, Any]
    preferences: Dict[str, Any]
    security: Dict[str, Any]


class UserSettingsUpdate(BaseModel):
    notifications: Optional[Dict[str, Any]] = None
    preferences: Optional[Dict[str, Any]] = None
    security: Optional[Dict[str, Any]] = None


# Returned to clients - never carries the password hash
class UserResponse(UserBase):
    id: int
    role: str
    kyc_verified: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserPublic(BaseModel):
    id: int
    username: str
    full_name: str
    role: str

    class Config:
        from_attributes = True
