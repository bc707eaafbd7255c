"""
Commodity creation shared by direct entry and deposit requests
"""

from decimal import Decimal
from typing import Any, Dict, Optional

from tradewiser.models.commodity import Commodity
from tradewiser.services.receipts import default_valuation


def new_commodity(
    *,
    owner_id: int,
    name: str,
    commodity_type: str,
    quantity,
    warehouse_id: int,
    measurement_unit: str = "MT",
    status: str = "active",
    channel_type: str = "green",
    quality_parameters: Optional[Dict[str, Any]] = None,
    grade_assigned: Optional[str] = None,
    valuation=None
) -> Commodity:
    """Unsaved Commodity with the platform defaults applied"""
    return Commodity(
        name=name,
        type=commodity_type,
        quantity=Decimal(str(quantity)),
        measurement_unit=measurement_unit or "MT",
        quality_parameters=quality_parameters or {},
        grade_assigned=grade_assigned or "pending",
        warehouse_id=warehouse_id,
        owner_id=owner_id,
        status=status,
        channel_type=channel_type,
        valuation=Decimal(str(valuation)) if valuation else default_valuation(quantity)
    )
