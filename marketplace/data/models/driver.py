# marketplace/data/models/driver.py
from sqlalchemy import Column, Integer, String

from marketplace.data.database import Base


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(30), nullable=True)
    vehicle_type = Column(String(50), nullable=False)
    capacity = Column(Integer, nullable=False)
    availability_status = Column(String(20), nullable=False, default="available")  # available, busy, offline
