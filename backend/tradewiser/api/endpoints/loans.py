"""Loans against warehouse receipts"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.config import settings
from tradewiser.core.deps import get_db, get_current_user, get_broadcast_service
from tradewiser.models.loan import Loan, LoanRepayment
from tradewiser.models.user import User
from tradewiser.models.warehouse_receipt import WarehouseReceipt, ReceiptTransfer
from tradewiser.schemas.loan import (
    LoanCreate, LoanRepay, LoanResponse, LoanRepaymentResponse, RepaymentResult
)
from tradewiser.schemas.receipt import CreditAvailable
from tradewiser.services import lending
from tradewiser.services.broadcast import BroadcastService
from tradewiser.services.payments import record_payment
from tradewiser.services.receipts import generate_transaction_hash

logger = logging.getLogger(__name__)

router = APIRouter()
credit_router = APIRouter()


async def get_owned_loan(db: AsyncSession, loan_id: int, user: User) -> Loan:
    loan = await db.get(Loan, loan_id)
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    if loan.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to access this loan")
    return loan


@router.get("", response_model=List[LoanResponse])
async def list_loans(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)) -> Any:
    result = await db.execute(
        select(Loan).where(Loan.user_id == current_user.id).order_by(Loan.created_at.desc(), Loan.id.desc())
    )
    return result.scalars().all()


@router.get("/{loan_id}", response_model=LoanResponse)
async def get_loan(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    loan_id: int) -> Any:
    return await get_owned_loan(db, loan_id, current_user)


@router.post("", response_model=LoanResponse, status_code=201)
async def create_loan(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    loan_in: LoanCreate) -> Any:
    """
    Disburse a loan against the user's active receipts

    The amount may not exceed LOAN_TO_VALUE_RATIO of the pledged valuation.
    Pledged receipts become collateralized until the loan is repaid.
    """
    receipt_ids = list(dict.fromkeys(loan_in.collateral_receipt_ids))
    result = await db.execute(select(WarehouseReceipt).where(WarehouseReceipt.id.in_(receipt_ids)))
    receipts = {r.id: r for r in result.scalars().all()}

    for receipt_id in receipt_ids:
        receipt = receipts.get(receipt_id)
        if not receipt:
            raise HTTPException(status_code=404, detail=f"Receipt {receipt_id} not found")
        if receipt.owner_id != current_user.id:
            raise HTTPException(status_code=403, detail=f"Receipt {receipt_id} does not belong to you")
        if not lending.is_eligible_collateral(receipt):
            raise HTTPException(status_code=400, detail=f"Receipt {receipt_id} is not available as collateral (status: {receipt.status})")

    max_amount = lending.max_loan_amount(receipts.values())
    amount = lending.to_money(loan_in.amount)
    if amount > max_amount:
        raise HTTPException(
            status_code=400,
            detail=f"Loan amount exceeds maximum of ₹{max_amount} ({int(settings.LOAN_TO_VALUE_RATIO * 100)}% of collateral value)"
        )

    interest_rate = loan_in.interest_rate if loan_in.interest_rate is not None else settings.DEFAULT_INTEREST_RATE
    start = datetime.utcnow()
    loan = Loan(
        user_id=current_user.id,
        amount=amount,
        interest_rate=Decimal(str(interest_rate)),
        start_date=start,
        end_date=start + timedelta(days=loan_in.duration_days),
        status="active",
        collateral_receipt_ids=receipt_ids,
        outstanding_amount=amount,
        repayment_schedule=lending.build_repayment_schedule(amount, interest_rate, start, loan_in.duration_days)
    )
    db.add(loan)
    await db.flush()

    for receipt in receipts.values():
        receipt.status = "collateralized"
        receipt.liens = {**(receipt.liens or {}), "loan_id": loan.id}
        db.add(ReceiptTransfer(
            receipt_id=receipt.id,
            from_user_id=current_user.id,
            to_user_id=None,
            transfer_type="collateral",
            transfer_date=start,
            transaction_hash=generate_transaction_hash(receipt.receipt_number, loan.id, "collateral"),
            transfer_metadata={"loan_id": loan.id}
        ))

    await db.commit()
    await db.refresh(loan)

    logger.info(f"🏦 Loan {loan.id} disbursed: ₹{loan.amount} against receipts {receipt_ids}")
    response = LoanResponse.model_validate(loan)
    await broadcast.broadcast_loan_update(current_user.id, loan.id, response.model_dump())
    for receipt in receipts.values():
        await broadcast.broadcast_receipt_update(current_user.id, receipt.id, {"status": receipt.status, "loan_id": loan.id})
    return response


@router.post("/{loan_id}/repay", response_model=RepaymentResult)
async def repay_loan(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    loan_id: int,
    repay_in: LoanRepay) -> Any:
    """Repay part or all of a loan; full repayment releases the collateral"""
    loan = await get_owned_loan(db, loan_id, current_user)
    if loan.status not in ("active", "defaulted"):
        raise HTTPException(status_code=400, detail=f"Loan is not open for repayment (status: {loan.status})")

    amount = lending.to_money(repay_in.amount)
    outstanding = lending.to_money(loan.outstanding_amount)
    if amount > outstanding:
        raise HTTPException(status_code=400, detail=f"Repayment exceeds outstanding amount of ₹{outstanding}")

    now = datetime.utcnow()
    repayment = LoanRepayment(
        loan_id=loan.id,
        amount=amount,
        payment_method=repay_in.payment_method,
        transaction_reference=repay_in.transaction_reference,
        paid_at=now
    )
    db.add(repayment)
    payment = await record_payment(
        db,
        user_id=current_user.id,
        payment_type="loan_repayment",
        amount=amount,
        payment_method=repay_in.payment_method,
        reference_id=loan.id,
        notes=f"Repayment for loan #{loan.id}"
    )

    loan.outstanding_amount = outstanding - amount
    released: List[int] = []
    fully_repaid = loan.outstanding_amount <= 0
    if fully_repaid:
        loan.outstanding_amount = Decimal("0.00")
        loan.status = "repaid"

        result = await db.execute(
            select(WarehouseReceipt).where(WarehouseReceipt.id.in_(loan.collateral_receipt_ids or []))
        )
        for receipt in result.scalars().all():
            if receipt.status != "collateralized":
                continue
            receipt.status = "active"
            liens = dict(receipt.liens or {})
            liens.pop("loan_id", None)
            receipt.liens = liens
            db.add(ReceiptTransfer(
                receipt_id=receipt.id,
                from_user_id=None,
                to_user_id=current_user.id,
                transfer_type="release",
                transfer_date=now,
                transaction_hash=generate_transaction_hash(receipt.receipt_number, loan.id, "release"),
                transfer_metadata={"loan_id": loan.id}
            ))
            released.append(receipt.id)

    await db.commit()
    await db.refresh(loan)
    await db.refresh(repayment)

    logger.info(f"💸 Loan {loan.id} repayment ₹{amount} ({payment.payment_no}), outstanding ₹{loan.outstanding_amount}")
    loan_response = LoanResponse.model_validate(loan)
    await broadcast.broadcast_loan_update(current_user.id, loan.id, loan_response.model_dump())
    for receipt_id in released:
        await broadcast.broadcast_receipt_update(current_user.id, receipt_id, {"status": "active", "released_from_loan": loan.id})

    return RepaymentResult(
        loan=loan_response,
        repayment=LoanRepaymentResponse.model_validate(repayment),
        payment_no=payment.payment_no,
        fully_repaid=fully_repaid,
        released_receipt_ids=released
    )


@router.get("/{loan_id}/repayments", response_model=List[LoanRepaymentResponse])
async def list_repayments(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    loan_id: int) -> Any:
    loan = await get_owned_loan(db, loan_id, current_user)
    result = await db.execute(
        select(LoanRepayment).where(LoanRepayment.loan_id == loan.id).order_by(LoanRepayment.paid_at, LoanRepayment.id)
    )
    return result.scalars().all()


@credit_router.get("/available", response_model=CreditAvailable)
async def available_credit(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)) -> Any:
    """Credit that could be drawn against every eligible receipt"""
    receipts = await lending.get_eligible_receipts(db, current_user.id)
    total_valuation = sum((lending.to_money(r.valuation) for r in receipts), Decimal("0"))
    return CreditAvailable(
        eligible_receipts=len(receipts),
        total_valuation=float(total_valuation),
        loan_to_value_ratio=settings.LOAN_TO_VALUE_RATIO,
        available_credit=float(lending.max_loan_amount(receipts)),
        receipt_ids=[r.id for r in receipts]
    )
