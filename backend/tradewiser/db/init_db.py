import asyncio

from tradewiser.db.session import engine
from tradewiser.db.base import Base

# Import every model so its table is registered on Base.metadata
from tradewiser.models import (  # noqa: F401
    User, Warehouse, Commodity, WarehouseReceipt, ReceiptTransfer,
    Loan, LoanRepayment, Process, CommoditySack, SackMovement,
    SackQualityAssessment, PaymentRecord
)


async def ensure_tables_exist() -> None:
    """
    Create any missing tables (called on application startup)
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def reset_database() -> None:
    """
    Drop and recreate every table
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)


if __name__ == "__main__":
    asyncio.run(ensure_tables_exist())
