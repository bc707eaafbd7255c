"""
Sack-level tracking - each receipt can be split into physically separable sacks
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, DECIMAL, Boolean
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from tradewiser.db.base import Base


class CommoditySack(Base):
    __tablename__ = "commodity_sacks"

    id = Column(Integer, primary_key=True, index=True)
    # Human readable id printed on the sack, e.g. SK-12-00001
    sack_id = Column(String(40), unique=True, nullable=False, index=True)
    
    receipt_id = Column(Integer, ForeignKey("warehouse_receipts.id"), nullable=False, index=True)
    commodity_id = Column(Integer, ForeignKey("commodities.id"), index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True)
    
    weight = Column(DECIMAL(8, 2), nullable=False)  # kg
    measurement_unit = Column(String(10), default="kg")
    # active / withdrawn / transferred
    status = Column(String(20), nullable=False, default="active")
    is_owner_hidden = Column(Boolean, default=False)
    qr_code_url = Column(String(255))
    location_in_warehouse = Column(String(50))
    
    created_at = Column(DateTime, default=datetime.utcnow)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    receipt = relationship("WarehouseReceipt", foreign_keys=[receipt_id])
    movements = relationship(
        "SackMovement",
        back_populates="sack",
        cascade="all, delete-orphan"
    )
    quality_assessments = relationship(
        "SackQualityAssessment",
        back_populates="sack",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<CommoditySack {self.sack_id}: {self.weight}kg>"


class SackMovement(Base):
    """Movement log: warehouse_transfer / ownership_transfer"""
    __tablename__ = "sack_movements"

    id = Column(Integer, primary_key=True, index=True)
    sack_id = Column(Integer, ForeignKey("commodity_sacks.id"), nullable=False, index=True)
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id"))
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id"))
    from_owner_id = Column(Integer, ForeignKey("users.id"))
    to_owner_id = Column(Integer, ForeignKey("users.id"))
    movement_type = Column(String(30), nullable=False)
    transaction_hash = Column(String(100), index=True)
    notes = Column(Text)
    movement_date = Column(DateTime, default=datetime.utcnow, index=True)

    sack = relationship("CommoditySack", back_populates="movements")


class SackQualityAssessment(Base):
    __tablename__ = "sack_quality_assessments"

    id = Column(Integer, primary_key=True, index=True)
    sack_id = Column(Integer, ForeignKey("commodity_sacks.id"), nullable=False, index=True)
    inspector_id = Column(Integer, ForeignKey("users.id"))
    quality_parameters = Column(JSON, nullable=False)
    grade_assigned = Column(String(20))
    notes = Column(Text)
    inspection_date = Column(DateTime, default=datetime.utcnow, index=True)

    sack = relationship("CommoditySack", back_populates="quality_assessments")
