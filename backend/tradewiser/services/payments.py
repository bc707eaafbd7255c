"""
Payment record bookkeeping
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.models.payment_record import PaymentRecord

PAYMENT_PREFIXES = {
    "warehouse_fee": "FEE",
    "loan_repayment": "LRP",
}


async def generate_payment_no(db: AsyncSession, payment_type: str, now: Optional[datetime] = None) -> str:
    """Payment number: prefix + UTC date + daily sequence (3 digits, growing past 999)"""
    prefix = PAYMENT_PREFIXES.get(payment_type, "PAY")
    stem = f"{prefix}{(now or datetime.utcnow()).strftime('%Y%m%d')}"

    result = await db.execute(
        select(PaymentRecord.payment_no).where(PaymentRecord.payment_no.like(f"{stem}%"))
    )
    # numeric max, "1000" sorts below "999" as text
    taken = [int(no[len(stem):]) for no in result.scalars() if no[len(stem):].isdigit()]
    seq = max(taken, default=0) + 1

    return f"{stem}{seq:03d}"


async def record_payment(
    db: AsyncSession,
    *,
    user_id: int,
    payment_type: str,
    amount,
    payment_method: str,
    reference_id: Optional[int] = None,
    notes: Optional[str] = None
) -> PaymentRecord:
    """Add a completed payment to the session, the caller commits"""
    now = datetime.utcnow()
    payment = PaymentRecord(
        payment_no=await generate_payment_no(db, payment_type, now),
        user_id=user_id,
        payment_type=payment_type,
        amount=Decimal(str(amount)),
        payment_method=payment_method,
        reference_id=reference_id,
        status="completed",
        notes=notes,
        payment_date=now
    )
    db.add(payment)
    return payment
