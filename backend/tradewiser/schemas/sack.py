"""Commodity sack schemas"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, model_validator


class SackBatchCreate(BaseModel):
    receipt_id: int
    weight: float = Field(default=50, ge=10, le=100)  # kg per sack
    quantity: int = Field(default=1, ge=1, le=1000)  # number of sacks
    generate_qr_codes: bool = True
    is_owner_hidden: bool = False


class SackTransfer(BaseModel):
    to_warehouse_id: Optional[int] = None
    to_owner_id: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self):
        if self.to_warehouse_id is None and self.to_owner_id is None:
            raise ValueError("to_warehouse_id or to_owner_id is required")
        return self


class SackResponse(BaseModel):
    id: int
    sack_id: str
    receipt_id: int
    commodity_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    owner_id: Optional[int] = None
    weight: float
    measurement_unit: Optional[str] = None
    status: str
    is_owner_hidden: bool = False
    qr_code_url: Optional[str] = None
    location_in_warehouse: Optional[str] = None
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None

    class Config:
        from_attributes = True


class SackMovementResponse(BaseModel):
    id: int
    sack_id: int
    from_warehouse_id: Optional[int] = None
    to_warehouse_id: Optional[int] = None
    from_owner_id: Optional[int] = None
    to_owner_id: Optional[int] = None
    movement_type: str
    transaction_hash: Optional[str] = None
    notes: Optional[str] = None
    movement_date: datetime

    class Config:
        from_attributes = True


class SackQualityCreate(BaseModel):
    quality_parameters: Dict[str, Any]
    grade_assigned: Optional[str] = None
    notes: Optional[str] = None


class SackQualityResponse(BaseModel):
    id: int
    sack_id: int
    inspector_id: Optional[int] = None
    quality_parameters: Dict[str, Any]
    grade_assigned: Optional[str] = None
    notes: Optional[str] = None
    inspection_date: datetime

    class Config:
        from_attributes = True
