"""
Deposit / withdrawal workflow tracking
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.dialects.sqlite import JSON
from sqlalchemy.orm import relationship
from tradewiser.db.base import Base


class Process(Base):
    """Multi-stage workflow for a deposit or withdrawal

    stage_progress maps a stage name to pending / in_progress / completed / failed.
    current_stage is compared positionally against the stage list of the process type.
    """
    __tablename__ = "processes"

    id = Column(Integer, primary_key=True, index=True)
    commodity_id = Column(Integer, ForeignKey("commodities.id"), index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    
    # deposit / withdrawal
    process_type = Column(String(20), nullable=False, index=True)
    # pending / in_progress / completed / failed
    status = Column(String(20), nullable=False, default="pending", index=True)
    current_stage = Column(String(50))
    stage_progress = Column(JSON)
    # Delivery method, pickup address, withdrawal quantity ...
    process_metadata = Column(JSON)
    
    start_time = Column(DateTime, default=datetime.utcnow)
    estimated_completion_time = Column(DateTime)
    completed_time = Column(DateTime)

    commodity = relationship("Commodity", foreign_keys=[commodity_id])
    warehouse = relationship("Warehouse", foreign_keys=[warehouse_id])
    user = relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<Process {self.id} {self.process_type}: {self.current_stage} [{self.status}]>"
