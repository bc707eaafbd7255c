"""Process (deposit / withdrawal workflow) schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class DepositCreate(BaseModel):
    """New deposit request - creates the commodity and its deposit process"""
    type: str = "deposit"
    commodity_name: Optional[str] = None
    commodity_type: Optional[str] = None
    quantity: Optional[float] = None
    warehouse_id: Optional[int] = None
    delivery_method: Optional[str] = None  # managed_pickup / self_delivery
    scheduled_date: Optional[str] = None
    scheduled_time: Optional[str] = None
    pickup_address: Optional[str] = None
    estimated_value: Optional[float] = None


class ProcessUpdate(BaseModel):
    status: Optional[str] = Field(default=None, pattern="^(pending|in_progress|completed|failed)$")
    current_stage: Optional[str] = None
    stage_progress: Optional[Dict[str, str]] = None
    metadata: Optional[Dict[str, Any]] = None


class JumpToStage(BaseModel):
    stage: str


class ProcessResponse(BaseModel):
    id: int
    commodity_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    user_id: int
    process_type: str
    status: str
    current_stage: Optional[str] = None
    stage_progress: Optional[Dict[str, str]] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="process_metadata")
    start_time: Optional[datetime] = None
    estimated_completion_time: Optional[datetime] = None
    completed_time: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True


class StageState(BaseModel):
    stage: str
    status: str


class ProgressResponse(BaseModel):
    """Deposit tracker view"""
    process_id: int
    process_type: str
    status: str
    current_stage: Optional[str]
    stages: List[StageState]
    progress_percentage: int
