"""
Quality assessment and eWR generation shortcuts

Used while lab and warehouse integrations are not connected: the assessment
returns fixed results per commodity type and the eWR is issued immediately.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.api.endpoints.processes import get_owned_process, publish_process
from tradewiser.core.deps import get_db, get_current_user, get_broadcast_service
from tradewiser.models.commodity import Commodity
from tradewiser.models.user import User
from tradewiser.models.warehouse import Warehouse
from tradewiser.models.warehouse_receipt import WarehouseReceipt
from tradewiser.schemas.commodity import CommodityResponse
from tradewiser.schemas.receipt import ReceiptResponse
from tradewiser.services import grading, receipts as receipt_ids, stages
from tradewiser.services.broadcast import BroadcastService

logger = logging.getLogger(__name__)

router = APIRouter()

EWR_INSURANCE_COVERAGE = 80  # % of valuation


async def get_deposit_commodity(db: AsyncSession, process) -> Commodity:
    if process.process_type != "deposit":
        raise HTTPException(status_code=400, detail="Process is not a deposit")
    commodity = await db.get(Commodity, process.commodity_id) if process.commodity_id else None
    if not commodity:
        raise HTTPException(status_code=404, detail="Commodity for this process not found")
    return commodity


@router.post("/quality-assessment/{process_id}")
@router.post("/complete-assessment/{process_id}")
async def complete_quality_assessment(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    process_id: int) -> Any:
    """Grade and price the commodity, then move the process to ewr_generation"""
    process = await get_owned_process(db, process_id, current_user)
    commodity = await get_deposit_commodity(db, process)
    if process.status == "completed" or (process.process_metadata or {}).get("receipt_id"):
        raise HTTPException(status_code=400, detail="Deposit already has a receipt; it cannot be reassessed")

    quality =grading.assess_quality(commodity.type)
    pricing = grading.calculate_pricing(commodity.type, float(commodity.quantity), quality["score"])

    commodity.quality_parameters = quality
    commodity.grade_assigned = quality["grade"]
    commodity.valuation = Decimal(str(pricing["total_value"]))
    commodity.status = "processing"

    process.current_stage = "ewr_generation"
    process.stage_progress = stages.progress_until("ewr_generation", "deposit")
    process.status = "in_progress"
    process.process_metadata = {
        **(process.process_metadata or {}),
        "quality_assessment": quality,
        "pricing": pricing,
        "assessed_at": datetime.utcnow().isoformat()
    }

    await db.commit()
    await db.refresh(commodity)
    await db.refresh(process)

    logger.info(f"🔬 Quality assessed for process {process.id}: grade {quality['grade']} score {quality['score']}")
    commodity_response = CommodityResponse.model_validate(commodity)
    await broadcast.broadcast_commodity_update(current_user.id, commodity.id, commodity_response.model_dump())
    return {
        "process": await publish_process(broadcast, process),
        "commodity": commodity_response,
        "quality": quality,
        "pricing": pricing
    }


@router.post("/generate-ewr/{process_id}")
async def generate_ewr(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    process_id: int) -> Any:
    """Issue the electronic warehouse receipt and complete the deposit"""
    process = await get_owned_process(db, process_id, current_user)
    commodity = await get_deposit_commodity(db, process)

    existing = await db.execute(
        select(WarehouseReceipt.id).where(WarehouseReceipt.commodity_id == commodity.id)
    )
    if existing.first() or (process.process_metadata or {}).get("receipt_id"):
        raise HTTPException(status_code=400, detail="A receipt has already been generated for this deposit")

    warehouse = await db.get(Warehouse, process.warehouse_id) if process.warehouse_id else None
    issued = datetime.utcnow()
    receipt_number = receipt_ids.generate_ewr_number(commodity.id, issued)
    valuation = Decimal(str(commodity.valuation)) if commodity.valuation else receipt_ids.default_valuation(commodity.quantity)

    receipt = WarehouseReceipt(
        receipt_number=receipt_number,
        commodity_id=commodity.id,
        owner_id=current_user.id,
        warehouse_id=process.warehouse_id,
        quantity=commodity.quantity,
        measurement_unit=commodity.measurement_unit or "MT",
        status="active",
        blockchain_hash=receipt_ids.generate_blockchain_hash(receipt_number, current_user.id, commodity.quantity, issued),
        verification_code=receipt_ids.generate_verification_code(),
        issued_date=issued,
        expiry_date=receipt_ids.default_expiry(issued),
        valuation=valuation,
        liens={},
        commodity_name=commodity.name,
        quality_grade=commodity.grade_assigned,
        warehouse_name=warehouse.name if warehouse else None,
        warehouse_address=warehouse.address if warehouse else None,
        receipt_metadata={
            "process_id": process.id,
            "channel": commodity.channel_type,
            "quality_parameters": commodity.quality_parameters,
            "insurance": {
                "coverage_percentage": EWR_INSURANCE_COVERAGE,
                "insured_value": float(valuation * EWR_INSURANCE_COVERAGE / 100),
            }
        }
    )
    db.add(receipt)
    await db.flush()

    commodity.status = "active"
    process.current_stage = stages.DEPOSIT_STAGES[-1]
    process.stage_progress = stages.all_completed("deposit")
    process.status = "completed"
    process.completed_time = issued
    process.process_metadata = {**(process.process_metadata or {}), "receipt_id": receipt.id}

    await db.commit()
    await db.refresh(receipt)
    await db.refresh(process)

    logger.info(f"📜 eWR {receipt.receipt_number} issued for process {process.id} (₹{receipt.valuation})")
    receipt_response = ReceiptResponse.model_validate(receipt)
    await broadcast.broadcast_receipt_update(current_user.id, receipt.id, receipt_response.model_dump())
    return {
        "receipt": receipt_response,
        "process": await publish_process(broadcast, process)
    }
