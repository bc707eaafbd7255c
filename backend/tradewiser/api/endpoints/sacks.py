"""Sack-level tracking of receipted commodities"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.deps import get_db, get_current_user, get_broadcast_service
from tradewiser.models.commodity_sack import CommoditySack, SackMovement, SackQualityAssessment
from tradewiser.models.user import User
from tradewiser.models.warehouse import Warehouse
from tradewiser.models.warehouse_receipt import WarehouseReceipt
from tradewiser.schemas.sack import (
    SackBatchCreate, SackTransfer, SackResponse, SackMovementResponse,
    SackQualityCreate, SackQualityResponse
)
from tradewiser.services.broadcast import BroadcastService
from tradewiser.services.receipts import generate_transaction_hash

logger = logging.getLogger(__name__)

router = APIRouter()


def sack_code(receipt_id: int, seq: int) -> str:
    return f"SK-{receipt_id}-{seq:05d}"


async def get_owned_sack(db: AsyncSession, sack_id: int, user: User) -> CommoditySack:
    sack = await db.get(CommoditySack, sack_id)
    if not sack:
        raise HTTPException(status_code=404, detail="Sack not found")
    if sack.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to access this sack")
    return sack


@router.post("/batch", response_model=List[SackResponse], status_code=201)
async def create_sack_batch(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    batch_in: SackBatchCreate) -> Any:
    """
    Split a receipt into sacks

    Total sack weight for a receipt may not exceed its quantity in kg (MT x 1000).
    """
    receipt = await db.get(WarehouseReceipt, batch_in.receipt_id)
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt not found")
    if receipt.owner_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to access this receipt")
    if receipt.status != "active":
        raise HTTPException(status_code=400, detail=f"Sacks can only be generated for active receipts (status: {receipt.status})")

    totals = await db.execute(
        select(func.count(CommoditySack.id), func.coalesce(func.sum(CommoditySack.weight), 0))
        .where(CommoditySack.receipt_id == receipt.id)
    )
    existing_count, existing_weight = totals.one()

    capacity_kg = Decimal(str(receipt.quantity)) * 1000
    weight = Decimal(str(batch_in.weight))
    new_weight = weight * batch_in.quantity
    if Decimal(str(existing_weight)) + new_weight > capacity_kg:
        raise HTTPException(
            status_code=400,
            detail=f"Total sack weight would exceed receipt quantity ({capacity_kg} kg, {existing_weight} kg already allocated)"
        )

    sacks = []
    for offset in range(1, batch_in.quantity + 1):
        code = sack_code(receipt.id, existing_count + offset)
        sacks.append(CommoditySack(
            sack_id=code,
            receipt_id=receipt.id,
            commodity_id=receipt.commodity_id,
            warehouse_id=receipt.warehouse_id,
            owner_id=current_user.id,
            weight=weight,
            measurement_unit="kg",
            status="active",
            is_owner_hidden=batch_in.is_owner_hidden,
            qr_code_url=f"/sacks/verify/{code}" if batch_in.generate_qr_codes else None
        ))
    db.add_all(sacks)
    await db.commit()
    for sack in sacks:
        await db.refresh(sack)

    logger.info(f"🧺 {len(sacks)} sacks of {weight}kg created for receipt {receipt.receipt_number}")
    return sacks


@router.get("", response_model=List[SackResponse])
async def list_sacks(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    receipt_id: Optional[int] = Query(None),
    include_hidden: bool = Query(False)) -> Any:
    query = select(CommoditySack).where(CommoditySack.owner_id == current_user.id)
    if receipt_id is not None:
        query = query.where(CommoditySack.receipt_id == receipt_id)
    if not include_hidden:
        query = query.where(CommoditySack.is_owner_hidden.is_(False))
    result = await db.execute(query.order_by(CommoditySack.id))
    return result.scalars().all()


@router.get("/{sack_id}", response_model=SackResponse)
async def get_sack(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    sack_id: int) -> Any:
    return await get_owned_sack(db, sack_id, current_user)


@router.post("/{sack_id}/transfer")
async def transfer_sack(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    sack_id: int,
    transfer_in: SackTransfer) -> Any:
    """Move a sack to another warehouse and/or owner"""
    sack = await get_owned_sack(db, sack_id, current_user)
    if sack.status == "withdrawn":
        raise HTTPException(status_code=400, detail="Withdrawn sacks cannot be transferred")

    if transfer_in.to_warehouse_id is not None:
        if not await db.get(Warehouse, transfer_in.to_warehouse_id):
            raise HTTPException(status_code=404, detail="Target warehouse not found")
    if transfer_in.to_owner_id is not None:
        if transfer_in.to_owner_id == current_user.id:
            raise HTTPException(status_code=400, detail="Cannot transfer a sack to yourself")
        if not await db.get(User, transfer_in.to_owner_id):
            raise HTTPException(status_code=404, detail="Target owner not found")

    owner_changes = transfer_in.to_owner_id is not None
    movement = SackMovement(
        sack_id=sack.id,
        from_warehouse_id=sack.warehouse_id,
        to_warehouse_id=transfer_in.to_warehouse_id if transfer_in.to_warehouse_id is not None else sack.warehouse_id,
        from_owner_id=sack.owner_id,
        to_owner_id=transfer_in.to_owner_id if owner_changes else sack.owner_id,
        movement_type="ownership_transfer" if owner_changes else "warehouse_transfer",
        transaction_hash=generate_transaction_hash(sack.sack_id, current_user.id, transfer_in.to_owner_id, transfer_in.to_warehouse_id),
        notes=transfer_in.notes,
        movement_date=datetime.utcnow()
    )
    db.add(movement)

    if transfer_in.to_warehouse_id is not None:
        sack.warehouse_id = transfer_in.to_warehouse_id
    if owner_changes:
        sack.owner_id = transfer_in.to_owner_id
        sack.status = "transferred"

    await db.commit()
    await db.refresh(sack)
    await db.refresh(movement)

    logger.info(f"🧺 Sack {sack.sack_id} {movement.movement_type} ({movement.transaction_hash[:12]}...)")
    sack_response = SackResponse.model_validate(sack)
    payload = {"sack": sack_response.model_dump(), "movement_type": movement.movement_type}
    await broadcast.broadcast_commodity_update(current_user.id, sack.commodity_id or 0, payload)
    if owner_changes:
        await broadcast.broadcast_commodity_update(sack.owner_id, sack.commodity_id or 0, payload)
    return {
        "sack": sack_response,
        "movement": SackMovementResponse.model_validate(movement)
    }


@router.get("/{sack_id}/movements", response_model=List[SackMovementResponse])
async def list_sack_movements(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    sack_id: int) -> Any:
    sack = await get_owned_sack(db, sack_id, current_user)
    result = await db.execute(
        select(SackMovement)
        .where(SackMovement.sack_id == sack.id)
        .order_by(SackMovement.movement_date.desc(), SackMovement.id.desc())
    )
    return result.scalars().all()


@router.get("/{sack_id}/quality-history", response_model=List[SackQualityResponse])
async def get_quality_history(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    sack_id: int) -> Any:
    sack = await get_owned_sack(db, sack_id, current_user)
    result = await db.execute(
        select(SackQualityAssessment)
        .where(SackQualityAssessment.sack_id == sack.id)
        .order_by(SackQualityAssessment.inspection_date.desc(), SackQualityAssessment.id.desc())
    )
    return result.scalars().all()


@router.post("/{sack_id}/quality-history", response_model=SackQualityResponse, status_code=201)
async def add_quality_assessment(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    sack_id: int,
    assessment_in: SackQualityCreate) -> Any:
    sack = await get_owned_sack(db, sack_id, current_user)
    assessment = SackQualityAssessment(
        sack_id=sack.id,
        inspector_id=current_user.id,
        quality_parameters=dict(assessment_in.quality_parameters),
        grade_assigned=assessment_in.grade_assigned,
        notes=assessment_in.notes,
        inspection_date=datetime.utcnow()
    )
    db.add(assessment)
    await db.commit()
    await db.refresh(assessment)
    return assessment
