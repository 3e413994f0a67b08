# marketplace/data/models/assignment.py
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, String, DateTime
from sqlalchemy.orm import relationship

from marketplace.data.database import Base

ASSIGNMENT_STATUSES = ("pending", "in_progress", "completed", "cancelled")
ACTIVE_ASSIGNMENT_STATUSES = ("pending", "in_progress")


class AssignmentModel(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False, index=True)

    schedule_time = Column(DateTime(timezone=True), nullable=False)
    special_notes = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default="pending")

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    order = relationship("OrderModel")
    driver = relationship("DriverModel")

    @property
    def order_no(self) -> str | None:
        return self.order.order_no if self.order else None

    @property
    def driver_name(self) -> str | None:
        return self.driver.name if self.driver else None

    @property
    def vehicle_type(self) -> str | None:
        return self.driver.vehicle_type if self.driver else None
