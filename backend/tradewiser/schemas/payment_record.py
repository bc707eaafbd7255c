"""Payment record schemas"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel


class PaymentRecordResponse(BaseModel):
    id: int
    payment_no: str
    user_id: int
    payment_type: str
    amount: float
    payment_method: Optional[str] = None
    reference_id: Optional[int] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    payment_date: datetime
    
    type_display: str = ""
    method_display: str = ""

    class Config:
        from_attributes = True


class PaymentRecordListResponse(BaseModel):
    data: List[PaymentRecordResponse]
    total: int
    page: int
    limit: int
