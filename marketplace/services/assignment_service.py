# marketplace/services/assignment_service.py
from datetime import datetime, timezone
from typing import Dict, Any

from sqlalchemy.orm import Session

from marketplace.data.models.assignment import (
    AssignmentModel,
    ASSIGNMENT_STATUSES,
    ACTIVE_ASSIGNMENT_STATUSES,
)
from marketplace.data.models.driver import DriverModel
from marketplace.data.models.order import OrderModel
from marketplace.errors import (
    MarketplaceError,
    ConflictError,
    InsufficientCapacityError,
    NotFoundError,
    TransactionFailure,
    ValidationError,
)
from marketplace.repos.assignment_repo import AssignmentRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.cart_service import require_id
from marketplace.services.notification_service import NotificationPublisher
from marketplace.utils.clock import as_utc
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

MAX_NOTES_LENGTH = 500
ASSIGNABLE_ORDER_STATUSES = ("pending", "paid", "processing")


def _validate_schedule(schedule_time: datetime | None, now: datetime | None = None) -> datetime:
    if schedule_time is None:
        raise ValidationError("Schedule time is required")
    schedule_time = as_utc(schedule_time)
    if schedule_time <= (now or datetime.now(timezone.utc)):
        raise ValidationError("Schedule time must be in the future")
    return schedule_time


def _validate_notes(notes: str | None):
    if notes and len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"Special notes cannot exceed {MAX_NOTES_LENGTH} characters")


class AssignmentService:
    """
    Binds orders to drivers.

    Remaining capacity is a fresh aggregate over the driver's pending and
    in_progress assignments, read without row locks, so two concurrent
    requests can both see the last free slot.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = AssignmentRepo(db)
        self.order_repo = OrderRepo(db)

    #query
    def get_assignment(self, assignment_id: int) -> AssignmentModel:
        require_id(assignment_id, "assignment")
        assignment = self.repo.get_assignment(assignment_id)
        if not assignment:
            raise NotFoundError("Assignment", assignment_id)
        return assignment

    def list_assignments(self) -> list[AssignmentModel]:
        return self.repo.find_all()

    def list_by_driver(self, driver_id: int) -> list[AssignmentModel]:
        require_id(driver_id, "driver")
        return self.repo.find_by_driver(driver_id)

    def list_by_status(self, status: str) -> list[AssignmentModel]:
        if status not in ASSIGNMENT_STATUSES:
            raise ValidationError("Invalid assignment status")
        return self.repo.find_by_status(status)

    def get_driver(self, driver_id: int) -> DriverModel:
        require_id(driver_id, "driver")
        driver = self.repo.get_driver(driver_id)
        if not driver:
            raise NotFoundError("Driver", driver_id)
        return driver

    def remaining_capacity(self, driver: DriverModel | int) -> int:
        if isinstance(driver, int):
            driver = self.get_driver(driver)
        return driver.capacity - self.repo.committed_quantity(driver.id)

    def assignable_drivers(self) -> list[Dict[str, Any]]:
        pool = []
        for driver in self.repo.find_drivers(availability_status="available"):
            remaining = self.remaining_capacity(driver)
            if remaining <= 0:
                continue
            pool.append(
                {
                    "id": driver.id,
                    "name": driver.name,
                    "vehicle_type": driver.vehicle_type,
                    "capacity": driver.capacity,
                    "availability_status": driver.availability_status,
                    "remaining_capacity": remaining,
                }
            )
        return pool

    #commands
    def create_assignment(
        self,
        order_id: int,
        driver_id: int,
        schedule_time: datetime,
        special_notes: str | None = None,
    ) -> AssignmentModel:
        require_id(order_id, "order")
        require_id(driver_id, "driver")
        schedule_time = _validate_schedule(schedule_time)
        _validate_notes(special_notes)

        order = self.db.get(OrderModel, order_id)
        if not order:
            raise NotFoundError("Order", order_id)
        driver = self.get_driver(driver_id)

        if order.status not in ASSIGNABLE_ORDER_STATUSES:
            raise ConflictError(f"Order in status '{order.status}' cannot be assigned")
        if order.assignment_status == "assigned":
            raise ConflictError(f"Order {order.order_no} is already assigned")
        if driver.availability_status != "available":
            raise ConflictError(f"Driver {driver.name} is not available")

        required = self.order_repo.total_quantity(order.id)
        if required <= 0:
            raise ConflictError("Order has no items to assign")

        remaining = self.remaining_capacity(driver)
        if required > remaining:
            raise InsufficientCapacityError(driver.id, remaining, required)

        try:
            assignment = self.repo.create_assignment(
                AssignmentModel(
                    order_id=order.id,
                    driver_id=driver.id,
                    schedule_time=schedule_time,
                    special_notes=special_notes or None,
                    status="pending",
                )
            )
            order.assignment_status = "assigned"
            driver.availability_status = "busy"
            self.repo.commit()
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Assignment of order {order_id} to driver {driver_id} failed: {e!r}")
            raise TransactionFailure("Failed to create assignment") from e

        logger.info(f"Assignment {assignment.id}: order {order_id} -> driver {driver_id}")
        NotificationPublisher.driver_assigned(assignment.id)
        return assignment

    def update_assignment(
        self,
        assignment_id: int,
        schedule_time: datetime | None = None,
        special_notes: str | None = None,
        status: str | None = None,
    ) -> AssignmentModel:
        if schedule_time is not None:
            schedule_time = _validate_schedule(schedule_time)
        _validate_notes(special_notes)
        if status is not None and status not in ASSIGNMENT_STATUSES:
            raise ValidationError("Invalid assignment status")

        assignment = self.get_assignment(assignment_id)
        status_changes = status is not None and status != assignment.status
        # completed and cancelled are terminal
        if status_changes and assignment.status not in ACTIVE_ASSIGNMENT_STATUSES:
            raise ConflictError(f"Assignment in status '{assignment.status}' cannot be reopened")

        if schedule_time is not None:
            assignment.schedule_time = schedule_time
        if special_notes is not None:
            assignment.special_notes = special_notes
        if status_changes:
            assignment.status = status
            if status not in ACTIVE_ASSIGNMENT_STATUSES:
                self._release(assignment, unassign_order=status == "cancelled")

        self.repo.commit()
        return assignment

    def delete_assignment(self, assignment_id: int):
        require_id(assignment_id, "assignment")

        try:
            assignment = self.repo.get_assignment(assignment_id)
            if not assignment:
                raise NotFoundError("Assignment", assignment_id)

            if assignment.status in ACTIVE_ASSIGNMENT_STATUSES:
                self._release(assignment, unassign_order=True)
            self.repo.delete_assignment(assignment)
            self.repo.commit()
        except MarketplaceError:
            self.repo.rollback()
            raise
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Deleting assignment {assignment_id} failed: {e!r}")
            raise TransactionFailure("Failed to delete assignment") from e

        logger.info(f"Assignment {assignment_id} deleted")

    def _release(self, assignment: AssignmentModel, unassign_order: bool):
        if unassign_order and assignment.order:
            assignment.order.assignment_status = "unassigned"
        if assignment.driver and assignment.driver.availability_status == "busy":
            self.db.flush()
            others = [
                a
                for a in self.repo.find_by_driver(assignment.driver_id)
                if a.id != assignment.id and a.status in ACTIVE_ASSIGNMENT_STATUSES
            ]
            if not others:
                assignment.driver.availability_status = "available"
