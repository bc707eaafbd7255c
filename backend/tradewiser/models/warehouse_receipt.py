"""
Electronic warehouse receipt (eWR) and its transfer history
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from tradewiser.db.base import Base


class WarehouseReceipt(Base):
    """Warehouse receipt - ownership record for a deposited commodity

    Status:
    - active: can be transferred, withdrawn or pledged
    - processing: a withdrawal is in progress
    - withdrawn: commodity fully released
    - transferred: superseded by a transfer
    - collateralized: pledged against a loan
    """
    __tablename__ = "warehouse_receipts"

    id = Column(Integer, primary_key=True, index=True)
    receipt_number = Column(String(60), unique=True, nullable=False, index=True)
    
    commodity_id = Column(Integer, ForeignKey("commodities.id"), index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True)
    
    quantity = Column(DECIMAL(12, 2), nullable=False)
    measurement_unit = Column(String(10), default="MT")
    status = Column(String(20), nullable=False, default="processing", index=True)
    
    blockchain_hash = Column(String(100))
    # Printed into the QR code, looked up by the public verify page
    verification_code = Column(String(20), unique=True, index=True)
    
    issued_date = Column(DateTime, default=datetime.utcnow)
    expiry_date = Column(DateTime)
    valuation = Column(DECIMAL(14, 2))
    
    # Pledges, withdrawal bookkeeping, import verification state
    liens = Column(JSON)
    
    # === Orange channel: receipts imported from an external system ===
    external_id = Column(String(100), index=True)
    external_source = Column(String(50))
    commodity_name = Column(String(150))
    quality_grade = Column(String(20))
    warehouse_name = Column(String(150))
    warehouse_address = Column(String(255))
    attachment_path = Column(String(255))
    receipt_metadata = Column(JSON)

    commodity = relationship("Commodity", foreign_keys=[commodity_id])
    owner = relationship("User", foreign_keys=[owner_id])
    warehouse = relationship("Warehouse", foreign_keys=[warehouse_id])
    transfers = relationship(
        "ReceiptTransfer",
        back_populates="receipt",
        cascade="all, delete-orphan",
        order_by="ReceiptTransfer.transfer_date"
    )

    def __repr__(self):
        return f"<WarehouseReceipt {self.receipt_number}: {self.quantity} {self.measurement_unit} [{self.status}]>"
    
    @property
    def is_expired(self) -> bool:
        return bool(self.expiry_date and self.expiry_date < datetime.utcnow())
    
    @property
    def display_commodity_name(self) -> str:
        if self.commodity_name:
            return self.commodity_name
        if self.commodity:
            return self.commodity.name
        return ""
    
    @property
    def display_warehouse_name(self) -> str:
        if self.warehouse_name:
            return self.warehouse_name
        if self.warehouse:
            return self.warehouse.name
        return ""


class ReceiptTransfer(Base):
    """Receipt transfer log

    transfer_type:
    - ownership: receipt endorsed to another user
    - collateral: receipt pledged against a loan
    - pledge: receipt pledged outside the platform
    - release: pledge released after repayment
    """
    __tablename__ = "receipt_transfers"

    id = Column(Integer, primary_key=True, index=True)
    receipt_id = Column(Integer, ForeignKey("warehouse_receipts.id"), nullable=False, index=True)
    from_user_id = Column(Integer, ForeignKey("users.id"))
    to_user_id = Column(Integer, ForeignKey("users.id"))
    transfer_type = Column(String(20), nullable=False)
    transfer_date = Column(DateTime, default=datetime.utcnow)
    transaction_hash = Column(String(100), index=True)
    notes = Column(Text)
    transfer_metadata = Column(JSON)

    receipt = relationship("WarehouseReceipt", back_populates="transfers")

    def __repr__(self):
        return f"<ReceiptTransfer {self.transfer_type}: {self.from_user_id} -> {self.to_user_id}>"
