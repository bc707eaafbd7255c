"""
Loans collateralised by warehouse receipts
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from tradewiser.db.base import Base


class Loan(Base):
    """Receipt-backed loan

    Status:
    - pending: applied, not disbursed
    - active: disbursed, outstanding > 0
    - repaid: outstanding reached 0, collateral released
    - defaulted: end date passed with money still outstanding
    """
    __tablename__ = "loans"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    
    amount = Column(DECIMAL(14, 2), nullable=False)
    interest_rate = Column(DECIMAL(5, 2), nullable=False)  # % per year
    start_date = Column(DateTime, default=datetime.utcnow)
    end_date = Column(DateTime, nullable=False)
    
    status = Column(String(20), nullable=False, default="pending", index=True)
    
    collateral_receipt_ids = Column(JSON, nullable=False)
    outstanding_amount = Column(DECIMAL(14, 2))
    repayment_schedule = Column(JSON)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])
    repayments = relationship(
        "LoanRepayment",
        back_populates="loan",
        cascade="all, delete-orphan",
        order_by="LoanRepayment.paid_at"
    )

    def __repr__(self):
        return f"<Loan {self.id}: ₹{self.amount} [{self.status}] outstanding ₹{self.outstanding_amount}>"
    
    @property
    def repaid_amount(self) -> Decimal:
        return Decimal(str(self.amount or 0)) - Decimal(str(self.outstanding_amount or 0))


class LoanRepayment(Base):
    __tablename__ = "loan_repayments"

    id = Column(Integer, primary_key=True, index=True)
    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    amount = Column(DECIMAL(14, 2), nullable=False)
    payment_method = Column(String(30), default="bank_transfer")
    transaction_reference = Column(String(60))
    paid_at = Column(DateTime, default=datetime.utcnow)

    loan = relationship("Loan", back_populates="repayments")

    def __repr__(self):
        return f"<LoanRepayment loan={self.loan_id} ₹{self.amount}>"
