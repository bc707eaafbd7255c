"""
Payment records - storage fees and loan repayments made through the platform
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL
from sqlalchemy.orm import relationship
from tradewiser.db.base import Base


class PaymentRecord(Base):
    """Payment record

    payment_type:
    - warehouse_fee: storage fee paid to a warehouse (reference_id = warehouse id)
    - loan_repayment: repayment towards a loan (reference_id = loan id)
    """
    __tablename__ = "payment_records"

    id = Column(Integer, primary_key=True, index=True)
    
    # Format: FEE20250725001 / LRP20250725001
    payment_no = Column(String(50), unique=True, nullable=False, index=True)
    
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    payment_type = Column(String(20), nullable=False, index=True)
    amount = Column(DECIMAL(14, 2), nullable=False)
    
    # upi / bank_transfer / card / cash
    payment_method = Column(String(30), default="bank_transfer")
    reference_id = Column(Integer, index=True)
    status = Column(String(20), default="completed")
    notes = Column(Text)
    
    payment_date = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<PaymentRecord {self.payment_no}: {self.payment_type} ₹{self.amount}>"
    
    @property
    def type_display(self) -> str:
        type_map = {
            "warehouse_fee": "Warehouse storage fee",
            "loan_repayment": "Loan repayment"
        }
        return type_map.get(self.payment_type, self.payment_type)
    
    @property
    def method_display(self) -> str:
        method_map = {
            "upi": "UPI",
            "bank_transfer": "Bank transfer",
            "card": "Card",
            "cash": "Cash",
            "net_banking": "Net banking"
        }
        return method_map.get(self.payment_method, self.payment_method)
