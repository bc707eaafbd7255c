"""
Test data seeding
- demo farmer account
- mandi-based warehouses
- commodities with issued receipts
- one active loan against a receipt

Safe to run repeatedly: existing records are reused.
"""

import asyncio
import sys
import os
from datetime import datetime, timedelta
from decimal import Decimal

# Project path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tradewiser.core.security import get_password_hash
from tradewiser.db.init_db import ensure_tables_exist
from tradewiser.db.session import SessionLocal
from tradewiser.models import User, Warehouse, Commodity, WarehouseReceipt, Loan, ReceiptTransfer
from tradewiser.services import receipts as receipt_ids
from tradewiser.services.lending import build_repayment_schedule, max_loan_amount

DEMO_USERNAME = "testuser"
DEMO_PASSWORD = "password123"

WAREHOUSES = [
    {
        "name": "Azadpur Mandi Warehouse",
        "address": "Azadpur Mandi, GT Karnal Road",
        "district": "North West Delhi",
        "city": "Delhi",
        "state": "Delhi",
        "pincode": "110033",
        "latitude": "28.7041",
        "longitude": "77.1750",
        "capacity": "10000",
        "available_space": "7500",
        "specializations": ["wheat", "rice", "pulses"],
        "facilities": ["pest_control", "security", "weighbridge"],
        "storage_rate_per_mt_month": "120",
    },
    {
        "name": "Vashi APMC Storage",
        "address": "APMC Market, Sector 19, Vashi",
        "district": "Thane",
        "city": "Navi Mumbai",
        "state": "Maharashtra",
        "pincode": "400703",
        "latitude": "19.0771",
        "longitude": "73.0080",
        "capacity": "15000",
        "available_space": "8000",
        "specializations": ["oilseeds", "spices", "pulses"],
        "facilities": ["loading_dock", "security", "fumigation"],
        "storage_rate_per_mt_month": "150",
    },
    {
        "name": "Khanna Grain Market Godown",
        "address": "New Grain Market, Khanna",
        "district": "Ludhiana",
        "city": "Khanna",
        "state": "Punjab",
        "pincode": "141401",
        "latitude": "30.7046",
        "longitude": "76.2210",
        "capacity": "20000",
        "available_space": "12000",
        "specializations": ["wheat", "maize", "paddy"],
        "facilities": ["humidity_control", "pest_control", "weighbridge"],
        "storage_rate_per_mt_month": "100",
    },
]

COMMODITIES = [
    # name, type, quantity (MT), warehouse index
    ("Wheat", "cereals", "50", 0),
    ("Chana Dal", "pulses", "20", 1),
    ("Mustard Seed", "oilseeds", "30", 2),
]


async def get_or_create_user(db: AsyncSession) -> User:
    print("👤 Demo user...")
    result = await db.execute(select(User).where(User.username == DEMO_USERNAME))
    user = result.scalar_one_or_none()
    if user:
        print(f"   ✓ exists: {user.username}")
        return user

    user = User(
        username=DEMO_USERNAME,
        password=get_password_hash(DEMO_PASSWORD),
        full_name="Test Farmer",
        email="testuser@example.com",
        phone="9876543210",
        role="farmer",
        kyc_verified=True,
        business_details={"name": "Test Farm", "address": "Sonipat, Haryana"}
    )
    db.add(user)
    await db.flush()
    print(f"   ✓ created: {user.username} / {DEMO_PASSWORD}")
    return user


async def get_or_create_warehouses(db: AsyncSession, owner: User) -> list:
    print("🏭 Warehouses...")
    warehouses = []
    for data in WAREHOUSES:
        result = await db.execute(select(Warehouse).where(Warehouse.name == data["name"]))
        warehouse = result.scalar_one_or_none()
        if not warehouse:
            warehouse = Warehouse(
                name=data["name"],
                address=data["address"],
                district=data.get("district"),
                city=data["city"],
                state=data["state"],
                pincode=data["pincode"],
                latitude=Decimal(data["latitude"]),
                longitude=Decimal(data["longitude"]),
                capacity=Decimal(data["capacity"]),
                available_space=Decimal(data["available_space"]),
                channel_type="green",
                owner_id=owner.id,
                specializations=data["specializations"],
                facilities=data["facilities"],
                storage_rate_per_mt_month=Decimal(data["storage_rate_per_mt_month"])
            )
            db.add(warehouse)
            await db.flush()
            print(f"   ✓ created: {warehouse.name}")
        else:
            print(f"   ✓ exists: {warehouse.name}")
        warehouses.append(warehouse)
    return warehouses


async def create_commodities_and_receipts(db: AsyncSession, owner: User, warehouses: list) -> list:
    print("🌾 Commodities and receipts...")
    receipts = []
    for name, commodity_type, quantity, index in COMMODITIES:
        warehouse = warehouses[index]
        result = await db.execute(
            select(Commodity).where(Commodity.owner_id == owner.id, Commodity.name == name)
        )
        commodity = result.scalar_one_or_none()
        if commodity:
            result = await db.execute(select(WarehouseReceipt).where(WarehouseReceipt.commodity_id == commodity.id))
            receipt = result.scalars().first()
            if receipt:
                print(f"   ✓ exists: {name} -> {receipt.receipt_number}")
                receipts.append(receipt)
                continue
        else:
            commodity = Commodity(
                name=name,
                type=commodity_type,
                quantity=Decimal(quantity),
                measurement_unit="MT",
                quality_parameters={},
                grade_assigned="A",
                warehouse_id=warehouse.id,
                owner_id=owner.id,
                status="active",
                channel_type="green",
                valuation=receipt_ids.default_valuation(quantity)
            )
            db.add(commodity)
            await db.flush()

        issued = datetime.utcnow()
        number = receipt_ids.generate_ewr_number(commodity.id, issued)
        receipt = WarehouseReceipt(
            receipt_number=number,
            commodity_id=commodity.id,
            owner_id=owner.id,
            warehouse_id=warehouse.id,
            quantity=commodity.quantity,
            measurement_unit="MT",
            status="active",
            blockchain_hash=receipt_ids.generate_blockchain_hash(number, owner.id, commodity.quantity, issued),
            verification_code=receipt_ids.generate_verification_code(),
            issued_date=issued,
            expiry_date=receipt_ids.default_expiry(issued),
            valuation=commodity.valuation,
            liens={},
            commodity_name=commodity.name,
            quality_grade=commodity.grade_assigned,
            warehouse_name=warehouse.name,
            warehouse_address=warehouse.address,
            receipt_metadata={"seeded": True}
        )
        db.add(receipt)
        await db.flush()
        receipts.append(receipt)
        print(f"   ✓ created: {name} {quantity} MT -> {receipt.receipt_number} (code {receipt.verification_code})")
    return receipts


async def create_demo_loan(db: AsyncSession, owner: User, receipts: list) -> None:
    print("🏦 Demo loan...")
    result = await db.execute(select(Loan).where(Loan.user_id == owner.id))
    if result.scalars().first():
        print("   ✓ exists")
        return

    collateral = next((r for r in receipts if r.status == "active"), None)
    if not collateral:
        print("   ⚠ no active receipt to pledge, skipped")
        return

    amount = (max_loan_amount([collateral]) / 2).quantize(Decimal("0.01"))
    start = datetime.utcnow()
    loan = Loan(
        user_id=owner.id,
        amount=amount,
        interest_rate=Decimal("12.00"),
        start_date=start,
        end_date=start + timedelta(days=180),
        status="active",
        collateral_receipt_ids=[collateral.id],
        outstanding_amount=amount,
        repayment_schedule=build_repayment_schedule(amount, 12, start, 180)
    )
    db.add(loan)
    await db.flush()

    collateral.status = "collateralized"
    collateral.liens = {"loan_id": loan.id}
    db.add(ReceiptTransfer(
        receipt_id=collateral.id,
        from_user_id=owner.id,
        transfer_type="collateral",
        transfer_date=start,
        transaction_hash=receipt_ids.generate_transaction_hash(collateral.receipt_number, loan.id),
        transfer_metadata={"loan_id": loan.id}
    ))
    print(f"   ✓ created: ₹{amount} against {collateral.receipt_number}")


async def main():
    print("=" * 50)
    print("TradeWiser test data")
    print("=" * 50)

    await ensure_tables_exist()
    async with SessionLocal() as db:
        user = await get_or_create_user(db)
        warehouses = await get_or_create_warehouses(db, user)
        receipts = await create_commodities_and_receipts(db, user, warehouses)
        await create_demo_loan(db, user, receipts)
        await db.commit()

    print("\n✅ Done!")
    print(f"   Login: {DEMO_USERNAME} / {DEMO_PASSWORD}")


if __name__ == "__main__":
    asyncio.run(main())
