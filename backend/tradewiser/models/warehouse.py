"""
Warehouse model - storage facilities that accept deposits
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from tradewiser.db.base import Base


class Warehouse(Base):
    """Warehouse

    Channel types:
    - green: TradeWiser-managed warehouse, receipts issued on the platform
    - orange: partner warehouse, receipts imported from an external system
    - red: self-declared storage, receipts need manual verification
    """
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    address = Column(String(255), nullable=False)
    district = Column(String(80), index=True)
    city = Column(String(80), nullable=False, index=True)
    state = Column(String(80), nullable=False, index=True)
    pincode = Column(String(10), nullable=False)
    
    latitude = Column(DECIMAL(10, 6), nullable=False)
    longitude = Column(DECIMAL(10, 6), nullable=False)
    
    # Capacity in MT
    capacity = Column(DECIMAL(12, 2), nullable=False)
    available_space = Column(DECIMAL(12, 2), nullable=False)
    
    channel_type = Column(String(10), nullable=False, default="green")
    owner_id = Column(Integer, ForeignKey("users.id"), index=True)
    
    # e.g. ["wheat", "rice", "pulses"]
    specializations = Column(JSON)
    # e.g. ["cold_storage", "fumigation", "weighbridge"]
    facilities = Column(JSON)
    
    # Storage fee (Rs per MT per month)
    storage_rate_per_mt_month = Column(DECIMAL(10, 2), default=Decimal("0.00"))
    
    created_at = Column(DateTime, default=datetime.utcnow)

    owner = relationship("User", foreign_keys=[owner_id])

    def __repr__(self):
        return f"<Warehouse {self.name} ({self.city}, {self.state})>"
    
    @property
    def utilization(self) -> float:
        """Percentage of capacity in use"""
        if not self.capacity:
            return 0.0
        used = Decimal(str(self.capacity)) - Decimal(str(self.available_space or 0))
        return float(used / Decimal(str(self.capacity)) * 100)
