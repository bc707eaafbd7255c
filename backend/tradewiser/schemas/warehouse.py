"""Warehouse schemas"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class WarehouseCreate(BaseModel):
    name: str = Field(..., min_length=1)
    address: str
    district: Optional[str] = None
    city: str
    state: str
    pincode: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    capacity: float = Field(..., gt=0)
    available_space: Optional[float] = None  # defaults to capacity
    channel_type: str = Field(default="green", pattern="^(green|orange|red)$")
    specializations: List[str] = []
    facilities: List[str] = []
    storage_rate_per_mt_month: float = Field(default=0, ge=0)


class WarehouseResponse(BaseModel):
    id: int
    name: str
    address: str
    district: Optional[str] = None
    city: str
    state: str
    pincode: str
    latitude: float
    longitude: float
    capacity: float
    available_space: float
    channel_type: str
    owner_id: Optional[int] = None
    specializations: Optional[List[str]] = None
    facilities: Optional[List[str]] = None
    storage_rate_per_mt_month: float = 0
    utilization: float = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NearbyWarehouseResponse(WarehouseResponse):
    distance_km: float


class WarehouseFeePayment(BaseModel):
    """Storage fee payment"""
    amount: float = Field(..., gt=0)
    payment_method: str = Field(default="upi")
    notes: Optional[str] = None
