"""
Receipt-backed lending rules
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.config import settings
from tradewiser.models.loan import Loan
from tradewiser.models.warehouse_receipt import WarehouseReceipt

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


def is_eligible_collateral(receipt: WarehouseReceipt) -> bool:
    """Active and not expired"""
    return receipt.status == "active" and not receipt.is_expired


def max_loan_amount(receipts: Iterable[WarehouseReceipt]) -> Decimal:
    total = sum((to_money(r.valuation) for r in receipts), Decimal("0"))
    return to_money(total * Decimal(str(settings.LOAN_TO_VALUE_RATIO)))


def build_repayment_schedule(amount, interest_rate, start: datetime, duration_days: int) -> List[dict]:
    """
    Single bullet repayment at maturity with simple interest

    Args:
        amount: principal
        interest_rate: % per year
        start: disbursement date
        duration_days: loan tenure

    Returns:
        list of {due_date, principal, interest, total}
    """
    principal = to_money(amount)
    interest = to_money(principal * Decimal(str(interest_rate)) / 100 * Decimal(duration_days) / 365)
    due = start + timedelta(days=duration_days)
    return [{
        "due_date": due.isoformat(),
        "principal": float(principal),
        "interest": float(interest),
        "total": float(principal + interest)
    }]


async def get_eligible_receipts(db: AsyncSession, user_id: int) -> List[WarehouseReceipt]:
    result = await db.execute(
        select(WarehouseReceipt)
        .where(WarehouseReceipt.owner_id == user_id, WarehouseReceipt.status == "active")
        .order_by(WarehouseReceipt.issued_date.desc())
    )
    return [r for r in result.scalars().all() if not r.is_expired]


async def mark_defaulted_loans(db: AsyncSession, now: Optional[datetime] = None) -> List[int]:
    """Active loans past their end date with money outstanding become defaulted"""
    now = now or datetime.utcnow()
    result = await db.execute(
        select(Loan).where(Loan.status == "active", Loan.end_date < now)
    )
    defaulted = []
    for loan in result.scalars().all():
        if to_money(loan.outstanding_amount) > 0:
            loan.status = "defaulted"
            defaulted.append(loan.id)

    if defaulted:
        await db.commit()
        logger.warning(f"⚠️ Marked {len(defaulted)} loan(s) as defaulted: {defaulted}")
    return defaulted
