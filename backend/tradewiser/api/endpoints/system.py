"""System endpoints"""

from datetime import datetime
from typing import Any
from fastapi import APIRouter

from tradewiser import __version__
from tradewiser.services.scheduler import get_scheduler_status

router = APIRouter()


@router.get("/test")
async def api_test() -> Any:
    """Connectivity check used by the smoke test script"""
    return {
        "message": "TradeWiser API is working",
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat()
    }


@router.get("/system/scheduler")
async def scheduler_status() -> Any:
    return get_scheduler_status()
