"""Deposit and withdrawal processes with manual stage control"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.deps import get_db, get_current_user, get_broadcast_service
from tradewiser.models.commodity import Commodity
from tradewiser.models.process import Process
from tradewiser.models.user import User
from tradewiser.models.warehouse import Warehouse
from tradewiser.models.warehouse_receipt import WarehouseReceipt
from tradewiser.schemas.process import (
    DepositCreate, ProcessUpdate, JumpToStage, ProcessResponse, ProgressResponse, StageState
)
from tradewiser.schemas.receipt import ReceiptResponse
from tradewiser.services import stages
from tradewiser.services.broadcast import BroadcastService
from tradewiser.services.commodities import new_commodity

logger = logging.getLogger(__name__)

router = APIRouter()
deposits_router = APIRouter()

DEPOSIT_ESTIMATED_DAYS = 7

# written by the server when a withdrawal starts; clients cannot change them
WITHDRAWAL_METADATA_KEYS = ("receipt_id", "receipt_number", "quantity", "partial")


async def get_owned_process(db: AsyncSession, process_id: int, user: User) -> Process:
    """Process by id, 404 when missing and 403 when it belongs to someone else"""
    process = await db.get(Process, process_id)
    if not process:
        raise HTTPException(status_code=404, detail="Process not found")
    if process.user_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to access this process")
    return process


async def publish_process(broadcast: BroadcastService, process: Process) -> ProcessResponse:
    """Serialize the process and push it to the owner's sockets"""
    response = ProcessResponse.model_validate(process)
    await broadcast.broadcast_process_update(process.user_id, process.id, response.model_dump())
    return response


def build_progress(process: Process) -> ProgressResponse:
    return ProgressResponse(
        process_id=process.id,
        process_type=process.process_type,
        status=process.status,
        current_stage=process.current_stage,
        stages=[
            StageState(**s)
            for s in stages.describe_stages(process.process_type, process.current_stage, process.stage_progress)
        ],
        progress_percentage=stages.progress_percentage(
            process.process_type, process.current_stage, process.stage_progress
        )
    )


async def create_deposit(
    db: AsyncSession,
    user: User,
    broadcast: BroadcastService,
    deposit_in: DepositCreate
) -> ProcessResponse:
    """
    Create the commodity and its deposit process

    The process starts at pickup_scheduled with the request details kept in metadata.
    """
    if not deposit_in.commodity_name or not deposit_in.commodity_type \
            or deposit_in.quantity is None or deposit_in.warehouse_id is None:
        raise HTTPException(
            status_code=400,
            detail="Missing required fields: commodity_name, commodity_type, quantity, warehouse_id"
        )
    if deposit_in.quantity <= 0:
        raise HTTPException(status_code=400, detail="Quantity must be greater than zero")

    warehouse = await db.get(Warehouse, deposit_in.warehouse_id)
    if not warehouse:
        raise HTTPException(status_code=404, detail="Warehouse not found")

    commodity = new_commodity(
        owner_id=user.id,
        name=deposit_in.commodity_name,
        commodity_type=deposit_in.commodity_type,
        quantity=deposit_in.quantity,
        warehouse_id=warehouse.id,
        valuation=deposit_in.estimated_value
    )
    db.add(commodity)
    await db.flush()

    now = datetime.utcnow()
    process = Process(
        commodity_id=commodity.id,
        warehouse_id=warehouse.id,
        user_id=user.id,
        process_type="deposit",
        status="in_progress",
        current_stage=stages.DEPOSIT_STAGES[0],
        stage_progress=stages.initial_progress("deposit"),
        process_metadata={
            "delivery_method": deposit_in.delivery_method or "managed_pickup",
            "scheduled_date": deposit_in.scheduled_date,
            "scheduled_time": deposit_in.scheduled_time,
            "pickup_address": deposit_in.pickup_address,
            "estimated_value": deposit_in.estimated_value,
            "warehouse_name": warehouse.name,
        },
        start_time=now,
        estimated_completion_time=now + timedelta(days=DEPOSIT_ESTIMATED_DAYS)
    )
    db.add(process)
    await db.commit()
    await db.refresh(process)

    logger.info(f"📦 Deposit process {process.id} created: {commodity.name} {commodity.quantity} MT -> {warehouse.name}")
    return await publish_process(broadcast, process)


@router.post("", response_model=ProcessResponse, status_code=201)
async def create_process(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    deposit_in: DepositCreate) -> Any:
    if deposit_in.type != "deposit":
        raise HTTPException(status_code=400, detail="Withdrawals are started from a receipt")
    return await create_deposit(db, current_user, broadcast, deposit_in)


@deposits_router.post("", response_model=ProcessResponse, status_code=201)
async def create_deposit_request(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    deposit_in: DepositCreate) -> Any:
    return await create_deposit(db, current_user, broadcast, deposit_in)


@deposits_router.get("/{process_id}/progress", response_model=ProgressResponse)
async def get_deposit_progress(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    process_id: int) -> Any:
    process = await get_owned_process(db, process_id, current_user)
    return build_progress(process)


@router.get("", response_model=List[ProcessResponse])
async def list_processes(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)) -> Any:
    result = await db.execute(
        select(Process)
        .where(Process.user_id == current_user.id)
        .order_by(Process.start_time.desc(), Process.id.desc())
    )
    return [ProcessResponse.model_validate(p) for p in result.scalars().all()]


@router.get("/{process_id}", response_model=ProcessResponse)
async def get_process(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    process_id: int) -> Any:
    process = await get_owned_process(db, process_id, current_user)
    return ProcessResponse.model_validate(process)


@router.patch("/{process_id}", response_model=ProcessResponse)
async def update_process(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    process_id: int,
    process_in: ProcessUpdate) -> Any:
    """
    Partial update; stage_progress and metadata are merged into the stored values

    Setting a withdrawal to completed finishes it like complete-withdrawal;
    setting it to failed releases the held receipt.
    """
    process = await get_owned_process(db, process_id, current_user)

    if process_in.metadata:
        locked = [k for k in WITHDRAWAL_METADATA_KEYS if k in process_in.metadata]
        if locked:
            raise HTTPException(status_code=400, detail=f"Metadata keys cannot be changed: {', '.join(locked)}")

    receipt = None
    if process.process_type == "withdrawal" and process_in.status in ("completed", "failed") \
            and process.status != process_in.status:
        receipt = await held_withdrawal_receipt(db, process, current_user)

    if process_in.stage_progress:
        invalid = {k: v for k, v in process_in.stage_progress.items() if v not in stages.STAGE_STATUSES}
        if invalid:
            raise HTTPException(status_code=400, detail=f"Invalid stage status: {invalid}")
        process.stage_progress = {**(process.stage_progress or {}), **process_in.stage_progress}

    if process_in.metadata:
        process.process_metadata = {**(process.process_metadata or {}), **process_in.metadata}

    if process_in.current_stage is not None:
        process.current_stage = process_in.current_stage

    if receipt is not None and process_in.status == "completed":
        await apply_withdrawal(db, process, receipt)
    elif process_in.status is not None:
        process.status = process_in.status
        if process_in.status == "completed" and not process.completed_time:
            process.completed_time = datetime.utcnow()
        if receipt is not None:
            release_withdrawal(process, receipt)

    await db.commit()
    await db.refresh(process)
    if receipt is not None:
        await db.refresh(receipt)
        await publish_receipt(broadcast, receipt)
    return await publish_process(broadcast, process)


@router.post("/{process_id}/advance-stage", response_model=ProcessResponse)
async def advance_stage(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    process_id: int) -> Any:
    """
    Complete the current stage and move to the next; completing the last stage completes the process

    The last withdrawal stage also settles the held receipt.
    """
    process = await get_owned_process(db, process_id, current_user)
    if process.status == "completed":
        raise HTTPException(status_code=400, detail="Process is already completed")

    following = stages.next_stage(process.process_type, process.current_stage)
    if following is None and process.process_type == "withdrawal":
        receipt = await held_withdrawal_receipt(db, process, current_user)
        await apply_withdrawal(db, process, receipt)
        await db.commit()
        await db.refresh(receipt)
        await db.refresh(process)
        await publish_receipt(broadcast, receipt)
        return await publish_process(broadcast, process)

    stage_list = stages.stages_for(process.process_type)
    progress = dict(process.stage_progress or {})
    if process.current_stage in stage_list:
        progress[process.current_stage] = "completed"

    if following is None:
        process.status = "completed"
        process.completed_time = datetime.utcnow()
    else:
        progress[following] = "in_progress"
        process.current_stage = following
        process.status = "in_progress"
    process.stage_progress = progress

    await db.commit()
    await db.refresh(process)
    logger.info(f"⏩ Process {process.id} -> {process.current_stage} [{process.status}]")
    return await publish_process(broadcast, process)


@router.post("/{process_id}/jump-to-stage", response_model=ProcessResponse)
async def jump_to_stage(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    process_id: int,
    jump_in: JumpToStage) -> Any:
    process = await get_owned_process(db, process_id, current_user)
    if jump_in.stage not in stages.stages_for(process.process_type):
        raise HTTPException(status_code=400, detail=f"Invalid stage '{jump_in.stage}' for {process.process_type} process")

    process.stage_progress = stages.progress_until(jump_in.stage, process.process_type)
    process.current_stage = jump_in.stage
    process.status = "in_progress"
    process.completed_time = None

    await db.commit()
    await db.refresh(process)
    return await publish_process(broadcast, process)


@router.post("/{process_id}/reset-stages", response_model=ProcessResponse)
async def reset_stages(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    process_id: int) -> Any:
    process = await get_owned_process(db, process_id, current_user)
    stage_list = stages.stages_for(process.process_type)

    process.current_stage = stage_list[0]
    process.stage_progress = {s: "pending" for s in stage_list}
    process.status = "in_progress"
    process.completed_time = None

    await db.commit()
    await db.refresh(process)
    return await publish_process(broadcast, process)


async def held_withdrawal_receipt(db: AsyncSession, process: Process, user: User) -> WarehouseReceipt:
    """
    Receipt currently held by this withdrawal

    The receipt's withdrawal lien, written when the withdrawal started, is the
    record of which process holds it and how much is coming out.
    """
    if process.process_type != "withdrawal":
        raise HTTPException(status_code=400, detail="Process is not a withdrawal")

    receipt_id = (process.process_metadata or {}).get("receipt_id")
    receipt = await db.get(WarehouseReceipt, receipt_id) if receipt_id else None
    if not receipt:
        raise HTTPException(status_code=404, detail="Receipt for this withdrawal not found")
    if receipt.owner_id != user.id:
        raise HTTPException(status_code=403, detail="Not authorized to withdraw this receipt")

    lien = (receipt.liens or {}).get("withdrawal") or {}
    if receipt.status != "processing" or lien.get("process_id") != process.id:
        if process.status == "completed":
            raise HTTPException(status_code=400, detail="Withdrawal already completed")
        raise HTTPException(status_code=400, detail="Receipt is not held by this withdrawal")
    return receipt


async def apply_withdrawal(db: AsyncSession, process: Process, receipt: WarehouseReceipt):
    """
    Take the lien quantity out of the receipt and complete the process

    Full withdrawal marks the receipt withdrawn. A partial one reduces the receipt
    quantity, scales its valuation and makes it active again.
    Returns (partial, withdrawn_quantity).
    """
    liens = dict(receipt.liens or {})
    lien = liens.pop("withdrawal")
    original_quantity = Decimal(str(receipt.quantity))
    withdrawn_quantity = Decimal(str(lien.get("quantity") or original_quantity))
    if withdrawn_quantity <= 0 or withdrawn_quantity > original_quantity:
        raise HTTPException(
            status_code=400,
            detail=f"Withdrawal quantity must be greater than zero and at most {original_quantity}"
        )
    partial = withdrawn_quantity < original_quantity
    now = datetime.utcnow()

    history = list(liens.get("withdrawals", []))
    history.append({
        "process_id": process.id,
        "quantity": float(withdrawn_quantity),
        "partial": partial,
        "completed_at": now.isoformat()
    })
    liens["withdrawals"] = history
    receipt.liens = liens

    commodity = await db.get(Commodity, receipt.commodity_id) if receipt.commodity_id else None
    if partial:
        remaining = original_quantity - withdrawn_quantity
        if receipt.valuation is not None:
            ratio = remaining / original_quantity
            receipt.valuation = (Decimal(str(receipt.valuation)) * ratio).quantize(Decimal("0.01"))
        receipt.quantity = remaining
        receipt.status = "active"
        if commodity:
            commodity.quantity = remaining
    else:
        receipt.status = "withdrawn"
        if commodity:
            commodity.status = "withdrawn"

    process.stage_progress = stages.all_completed("withdrawal")
    process.current_stage = stages.WITHDRAWAL_STAGES[-1]
    process.status = "completed"
    process.completed_time = now
    process.process_metadata = {
        **(process.process_metadata or {}),
        "completed_at": now.isoformat(),
        "partial": partial
    }

    logger.info(f"🚚 Withdrawal {process.id} completed: {withdrawn_quantity} from {receipt.receipt_number} ({'partial' if partial else 'full'})")
    return partial, withdrawn_quantity


def release_withdrawal(process: Process, receipt: WarehouseReceipt):
    """Failed withdrawal: drop the lien and give the receipt back to its owner"""
    liens = dict(receipt.liens or {})
    liens.pop("withdrawal", None)
    receipt.liens = liens
    receipt.status = "active"
    logger.warning(f"⚠️ Withdrawal {process.id} failed, {receipt.receipt_number} released")


async def publish_receipt(broadcast: BroadcastService, receipt: WarehouseReceipt) -> ReceiptResponse:
    response = ReceiptResponse.model_validate(receipt)
    await broadcast.broadcast_receipt_update(receipt.owner_id, receipt.id, response.model_dump())
    return response


@router.post("/{process_id}/complete-withdrawal")
async def complete_withdrawal(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    process_id: int) -> Any:
    """Finish a withdrawal whose receipt is still held by it"""
    process = await get_owned_process(db, process_id, current_user)
    receipt = await held_withdrawal_receipt(db, process, current_user)
    partial, withdrawn_quantity = await apply_withdrawal(db, process, receipt)

    await db.commit()
    await db.refresh(receipt)
    await db.refresh(process)

    receipt_response = await publish_receipt(broadcast, receipt)
    process_response = await publish_process(broadcast, process)
    return {
        "process": process_response,
        "receipt": receipt_response,
        "partial": partial,
        "withdrawn_quantity": float(withdrawn_quantity)
    }
