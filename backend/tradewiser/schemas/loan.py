"""Loan schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class LoanCreate(BaseModel):
    amount: float = Field(..., gt=0)
    collateral_receipt_ids: List[int] = Field(..., min_length=1)
    duration_days: int = Field(default=180, ge=7, le=1095)
    interest_rate: Optional[float] = Field(default=None, gt=0, le=100)


class LoanRepay(BaseModel):
    amount: float = Field(..., gt=0)
    payment_method: str = Field(default="upi", min_length=1)
    transaction_reference: Optional[str] = None


class LoanResponse(BaseModel):
    id: int
    user_id: int
    amount: float
    interest_rate: float
    start_date: Optional[datetime] = None
    end_date: datetime
    status: str
    collateral_receipt_ids: List[int]
    outstanding_amount: Optional[float] = None
    repayment_schedule: Optional[List[Dict[str, Any]]] = None

    class Config:
        from_attributes = True


class LoanRepaymentResponse(BaseModel):
    id: int
    loan_id: int
    amount: float
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None
    paid_at: datetime

    class Config:
        from_attributes = True


class RepaymentResult(BaseModel):
    loan: LoanResponse
    repayment: LoanRepaymentResponse
    payment_no: str
    fully_repaid: bool
    released_receipt_ids: List[int] = []
