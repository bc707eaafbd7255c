"""
Commodity model - a deposited lot of produce
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, DECIMAL
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from tradewiser.db.base import Base


class Commodity(Base):
    __tablename__ = "commodities"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    # cereals / pulses / oilseeds / spices / vegetables / others
    type = Column(String(50), nullable=False)
    quantity = Column(DECIMAL(12, 2), nullable=False)
    measurement_unit = Column(String(10), nullable=False, default="MT")
    
    quality_parameters = Column(JSON)
    grade_assigned = Column(String(20), default="pending")
    
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True)
    
    # active / processing / withdrawn / transferred
    status = Column(String(20), nullable=False, default="processing", index=True)
    channel_type = Column(String(10), nullable=False, default="green")
    valuation = Column(DECIMAL(14, 2))
    
    deposit_date = Column(DateTime, default=datetime.utcnow)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    warehouse = relationship("Warehouse", foreign_keys=[warehouse_id])
    owner = relationship("User", foreign_keys=[owner_id])

    def __repr__(self):
        return f"<Commodity {self.name}: {self.quantity} {self.measurement_unit}>"
