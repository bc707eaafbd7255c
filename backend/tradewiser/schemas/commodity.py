"""Commodity schemas"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class CommodityCreate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    quantity: Optional[float] = None
    warehouse_id: Optional[int] = None
    measurement_unit: str = "MT"
    quality_parameters: Dict[str, Any] = {}
    grade_assigned: Optional[str] = None
    valuation: Optional[float] = Field(default=None, gt=0)


class CommodityResponse(BaseModel):
    id: int
    name: str
    type: str
    quantity: float
    measurement_unit: str
    quality_parameters: Optional[Dict[str, Any]] = None
    grade_assigned: Optional[str] = None
    warehouse_id: Optional[int] = None
    owner_id: Optional[int] = None
    status: str
    channel_type: str
    valuation: Optional[float] = None
    deposit_date: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    class Config:
        from_attributes = True
