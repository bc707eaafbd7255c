"""API router aggregation"""
from fastapi import APIRouter

from tradewiser.api.endpoints import (
    auth, users, warehouses, commodities, processes, bypass,
    receipts, loans, sacks, payments, realtime, system
)

api_router = APIRouter()

# Accounts
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(users.account_router, prefix="/user", tags=["Users"])

# Storage
api_router.include_router(warehouses.router, prefix="/warehouses", tags=["Warehouses"])
api_router.include_router(commodities.router, prefix="/commodities", tags=["Commodities"])
api_router.include_router(processes.router, prefix="/processes", tags=["Processes"])
api_router.include_router(processes.deposits_router, prefix="/deposits", tags=["Processes"])
api_router.include_router(bypass.router, prefix="/bypass", tags=["Quality & eWR"])
api_router.include_router(sacks.router, prefix="/commodity-sacks", tags=["Commodity sacks"])

# Receipts and finance
api_router.include_router(receipts.router, prefix="/receipts", tags=["Receipts"])
api_router.include_router(loans.router, prefix="/loans", tags=["Loans"])
api_router.include_router(loans.credit_router, prefix="/credit", tags=["Loans"])
api_router.include_router(payments.router, prefix="/payment", tags=["Payments"])

# System
api_router.include_router(realtime.router, tags=["Realtime"])
api_router.include_router(system.router, tags=["System"])
