from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.dialects.sqlite import JSON

from tradewiser.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(50), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    full_name = Column(String(100), nullable=False)
    email = Column(String(120), unique=True, index=True, nullable=False)
    phone = Column(String(20))
    # farmer / trader / warehouse_owner / logistics_provider
    role = Column(String(30), nullable=False, default="farmer")
    kyc_verified = Column(Boolean, nullable=False, default=False)
    business_details = Column(JSON)
    # notifications / preferences / security, merged over the defaults on read
    settings = Column(JSON)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
