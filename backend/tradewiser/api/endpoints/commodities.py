"""Commodity lots owned by the current user"""

import logging
from typing import Any, List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.deps import get_db, get_current_user, get_broadcast_service
from tradewiser.models.commodity import Commodity
from tradewiser.models.user import User
from tradewiser.models.warehouse import Warehouse
from tradewiser.schemas.commodity import CommodityCreate, CommodityResponse
from tradewiser.services.broadcast import BroadcastService
from tradewiser.services.commodities import new_commodity

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[CommodityResponse])
async def list_commodities(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)) -> Any:
    result = await db.execute(
        select(Commodity)
        .where(Commodity.owner_id == current_user.id)
        .order_by(Commodity.deposit_date.desc(), Commodity.id.desc())
    )
    return result.scalars().all()


@router.get("/{commodity_id}", response_model=CommodityResponse)
async def get_commodity(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    commodity_id: int) -> Any:
    commodity = await db.get(Commodity, commodity_id)
    if not commodity:
        raise HTTPException(status_code=404, detail="Commodity not found")
    if commodity.owner_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized to view this commodity")
    return commodity


@router.post("", response_model=CommodityResponse, status_code=201)
async def create_commodity(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    commodity_in: CommodityCreate) -> Any:
    if not commodity_in.name or not commodity_in.type or commodity_in.warehouse_id is None \
            or commodity_in.quantity is None:
        raise HTTPException(status_code=400, detail="Missing required fields: name, type, quantity, warehouse_id")
    if commodity_in.quantity <= 0:
        raise HTTPException(status_code=400, detail="Quantity must be greater than zero")

    warehouse = await db.get(Warehouse, commodity_in.warehouse_id)
    if not warehouse:
        raise HTTPException(status_code=404, detail="Warehouse not found")

    commodity = new_commodity(
        owner_id=current_user.id,
        name=commodity_in.name,
        commodity_type=commodity_in.type,
        quantity=commodity_in.quantity,
        warehouse_id=warehouse.id,
        measurement_unit=commodity_in.measurement_unit,
        quality_parameters=commodity_in.quality_parameters,
        grade_assigned=commodity_in.grade_assigned,
        valuation=commodity_in.valuation
    )
    db.add(commodity)
    await db.commit()
    await db.refresh(commodity)

    logger.info(f"🌾 Commodity created: {commodity.name} {commodity.quantity} {commodity.measurement_unit}")
    response = CommodityResponse.model_validate(commodity)
    await broadcast.broadcast_commodity_update(current_user.id, commodity.id, response.model_dump())
    return response
