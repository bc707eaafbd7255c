"""Warehouse directory, nearby search and storage fee payments"""

import logging
import math
from typing import Any, List, Optional
from decimal import Decimal
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.deps import get_db, get_current_user, get_broadcast_service
from tradewiser.models.user import User
from tradewiser.models.warehouse import Warehouse
from tradewiser.schemas.warehouse import (
    WarehouseCreate, WarehouseResponse, NearbyWarehouseResponse, WarehouseFeePayment
)
from tradewiser.schemas.payment_record import PaymentRecordResponse
from tradewiser.services.broadcast import BroadcastService
from tradewiser.services.payments import record_payment

logger = logging.getLogger(__name__)

router = APIRouter()

EARTH_RADIUS_KM = 6371


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in km"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@router.get("", response_model=List[WarehouseResponse])
async def list_warehouses(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    state: Optional[str] = Query(None),
    district: Optional[str] = Query(None),
    city: Optional[str] = Query(None)) -> Any:
    query = select(Warehouse)
    if state:
        query = query.where(func.lower(Warehouse.state) == state.lower())
    if district:
        query = query.where(func.lower(Warehouse.district) == district.lower())
    if city:
        query = query.where(func.lower(Warehouse.city) == city.lower())
    result = await db.execute(query.order_by(Warehouse.name))
    return result.scalars().all()


@router.get("/nearby", response_model=List[NearbyWarehouseResponse])
async def nearby_warehouses(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    radius: float = Query(50, gt=0, description="km"),
    limit: Optional[int] = Query(None, ge=1, le=100)) -> Any:
    """Warehouses within ``radius`` km, nearest first"""
    if lat is None or lng is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude are required")

    result = await db.execute(select(Warehouse))
    nearby = []
    for warehouse in result.scalars().all():
        distance = haversine_km(lat, lng, float(warehouse.latitude), float(warehouse.longitude))
        if distance <= radius:
            nearby.append((distance, warehouse))

    nearby.sort(key=lambda item: item[0])
    if limit:
        nearby = nearby[:limit]

    return [
        NearbyWarehouseResponse(
            **WarehouseResponse.model_validate(w).model_dump(),
            distance_km=round(distance, 2)
        )
        for distance, w in nearby
    ]


@router.get("/by-state/{state}", response_model=List[WarehouseResponse])
async def warehouses_by_state(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    state: str) -> Any:
    result = await db.execute(
        select(Warehouse).where(func.lower(Warehouse.state) == state.lower()).order_by(Warehouse.name)
    )
    return result.scalars().all()


@router.get("/by-district/{district}", response_model=List[WarehouseResponse])
async def warehouses_by_district(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    district: str) -> Any:
    result = await db.execute(
        select(Warehouse).where(func.lower(Warehouse.district) == district.lower()).order_by(Warehouse.name)
    )
    return result.scalars().all()


@router.get("/by-commodity/{commodity}", response_model=List[WarehouseResponse])
async def warehouses_by_commodity(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    commodity: str) -> Any:
    """Warehouses whose specializations mention the commodity (case-insensitive)"""
    needle = commodity.lower()
    result = await db.execute(select(Warehouse).order_by(Warehouse.name))
    return [
        w for w in result.scalars().all()
        if any(needle in str(s).lower() for s in (w.specializations or []))
    ]


@router.get("/{warehouse_id}", response_model=WarehouseResponse)
async def get_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    warehouse_id: int) -> Any:
    warehouse = await db.get(Warehouse, warehouse_id)
    if not warehouse:
        raise HTTPException(status_code=404, detail="Warehouse not found")
    return warehouse


@router.post("", response_model=WarehouseResponse, status_code=201)
async def create_warehouse(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    warehouse_in: WarehouseCreate) -> Any:
    available = warehouse_in.available_space
    if available is None:
        available = warehouse_in.capacity
    if available > warehouse_in.capacity:
        raise HTTPException(status_code=400, detail="Available space cannot exceed capacity")

    warehouse = Warehouse(
        name=warehouse_in.name,
        address=warehouse_in.address,
        district=warehouse_in.district,
        city=warehouse_in.city,
        state=warehouse_in.state,
        pincode=warehouse_in.pincode,
        latitude=Decimal(str(warehouse_in.latitude)),
        longitude=Decimal(str(warehouse_in.longitude)),
        capacity=Decimal(str(warehouse_in.capacity)),
        available_space=Decimal(str(available)),
        channel_type=warehouse_in.channel_type,
        owner_id=current_user.id,
        specializations=list(warehouse_in.specializations),
        facilities=list(warehouse_in.facilities),
        storage_rate_per_mt_month=Decimal(str(warehouse_in.storage_rate_per_mt_month))
    )
    db.add(warehouse)
    await db.commit()
    await db.refresh(warehouse)
    logger.info(f"🏭 Warehouse created: {warehouse.name} ({warehouse.city})")
    return warehouse


@router.post("/{warehouse_id}/pay-fees", response_model=PaymentRecordResponse)
async def pay_warehouse_fees(
    *,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    broadcast: BroadcastService = Depends(get_broadcast_service),
    warehouse_id: int,
    payment_in: WarehouseFeePayment) -> Any:
    """Record a storage fee payment to a warehouse"""
    warehouse = await db.get(Warehouse, warehouse_id)
    if not warehouse:
        raise HTTPException(status_code=404, detail="Warehouse not found")

    payment = await record_payment(
        db,
        user_id=current_user.id,
        payment_type="warehouse_fee",
        amount=payment_in.amount,
        payment_method=payment_in.payment_method,
        reference_id=warehouse.id,
        notes=payment_in.notes or f"Storage fee - {warehouse.name}"
    )
    await db.commit()
    await db.refresh(payment)

    logger.info(f"💰 Fee payment {payment.payment_no}: ₹{payment.amount} to warehouse {warehouse.id}")
    response = PaymentRecordResponse.model_validate(payment)
    await broadcast.broadcast_warehouse_update(current_user.id, warehouse.id, {
        "event": "fee_paid",
        "payment": response.model_dump()
    })
    return response
