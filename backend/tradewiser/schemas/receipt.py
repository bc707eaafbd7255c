"""Warehouse receipt schemas"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class ReceiptCreate(BaseModel):
    """Manual receipt entry"""
    quantity: float = Field(..., gt=0)
    warehouse_id: int
    commodity_id: Optional[int] = None
    commodity_name: Optional[str] = None
    measurement_unit: str = "MT"
    valuation: Optional[float] = None
    quality_grade: Optional[str] = None
    process_id: Optional[int] = None


class ReceiptResponse(BaseModel):
    id: int
    receipt_number: str
    commodity_id: Optional[int] = None
    owner_id: Optional[int] = None
    warehouse_id: Optional[int] = None
    quantity: float
    measurement_unit: Optional[str] = None
    status: str
    blockchain_hash: Optional[str] = None
    verification_code: Optional[str] = None
    issued_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    valuation: Optional[float] = None
    liens: Optional[Dict[str, Any]] = None
    external_id: Optional[str] = None
    external_source: Optional[str] = None
    commodity_name: Optional[str] = None
    quality_grade: Optional[str] = None
    warehouse_name: Optional[str] = None
    warehouse_address: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="receipt_metadata")

    class Config:
        from_attributes = True
        populate_by_name = True


class ReceiptUploadResponse(BaseModel):
    success: bool
    receipt: ReceiptResponse
    message: str
    verification_status: str


class ExternalReceiptImport(BaseModel):
    provider: str
    external_id: str


class ReceiptTransferCreate(BaseModel):
    to_user_id: int
    transfer_type: str = Field(default="ownership", pattern="^(ownership|pledge)$")
    notes: Optional[str] = None


class ReceiptTransferResponse(BaseModel):
    id: int
    receipt_id: int
    from_user_id: Optional[int] = None
    to_user_id: Optional[int] = None
    transfer_type: str
    transfer_date: datetime
    transaction_hash: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class WithdrawalRequest(BaseModel):
    quantity: Optional[float] = Field(default=None, gt=0)  # empty = full withdrawal


class VerifiedReceipt(BaseModel):
    receipt_number: str
    commodity_name: str
    quantity: float
    measurement_unit: Optional[str]
    warehouse_name: str
    status: str
    issued_date: Optional[datetime]
    expiry_date: Optional[datetime]
    blockchain_hash: Optional[str]
    quality_grade: Optional[str]


class ReceiptVerification(BaseModel):
    """Public verification result (QR code scan)"""
    valid: bool
    reason: Optional[str] = None
    receipt: VerifiedReceipt


class QRCodeResponse(BaseModel):
    receipt_id: int
    verification_code: str
    verification_url: str


class CreditAvailable(BaseModel):
    eligible_receipts: int
    total_valuation: float
    loan_to_value_ratio: float
    available_credit: float
    receipt_ids: List[int]
