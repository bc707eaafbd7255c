"""Payment history"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.deps import get_db, get_current_user
from tradewiser.models.payment_record import PaymentRecord
from tradewiser.models.user import User
from tradewiser.schemas.payment_record import PaymentRecordResponse, PaymentRecordListResponse

router = APIRouter()


@router.get("/history", response_model=PaymentRecordListResponse)
async def payment_history(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    payment_type: Optional[str] = Query(None)) -> Any:
    """Current user's payments, newest first"""
    conditions = [PaymentRecord.user_id == current_user.id]
    if payment_type:
        conditions.append(PaymentRecord.payment_type == payment_type)

    # Total count
    total_result = await db.execute(select(func.count(PaymentRecord.id)).where(and_(*conditions)))
    total = total_result.scalar() or 0

    # Page
    query = (
        select(PaymentRecord)
        .where(and_(*conditions))
        .order_by(PaymentRecord.payment_date.desc(), PaymentRecord.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    payments = result.scalars().all()

    return PaymentRecordListResponse(
        data=[PaymentRecordResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        limit=limit
    )
