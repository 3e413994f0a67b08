# marketplace/repos/assignment_repo.py
from sqlalchemy import select, func
from sqlalchemy.orm import Session, joinedload

from marketplace.data.models.assignment import AssignmentModel, ACTIVE_ASSIGNMENT_STATUSES
from marketplace.data.models.driver import DriverModel
from marketplace.data.models.order import OrderItemModel


class AssignmentRepo:
    def __init__(self, db: Session):
        self.db = db

    def _query(self):
        return select(AssignmentModel).options(
            joinedload(AssignmentModel.order),
            joinedload(AssignmentModel.driver),
        )

    def get_assignment(self, assignment_id: int) -> AssignmentModel | None:
        return self.db.execute(
            self._query().where(AssignmentModel.id == assignment_id)
        ).scalar_one_or_none()

    def find_all(self) -> list[AssignmentModel]:
        return list(
            self.db.execute(
                self._query().order_by(AssignmentModel.created_at.desc(), AssignmentModel.id.desc())
            ).scalars()
        )

    def find_by_driver(self, driver_id: int) -> list[AssignmentModel]:
        return list(
            self.db.execute(
                self._query()
                .where(AssignmentModel.driver_id == driver_id)
                .order_by(AssignmentModel.created_at.desc(), AssignmentModel.id.desc())
            ).scalars()
        )

    def find_by_status(self, status: str) -> list[AssignmentModel]:
        return list(
            self.db.execute(
                self._query()
                .where(AssignmentModel.status == status)
                .order_by(AssignmentModel.created_at.desc(), AssignmentModel.id.desc())
            ).scalars()
        )

    def create_assignment(self, assignment: AssignmentModel) -> AssignmentModel:
        self.db.add(assignment)
        self.db.flush()
        return assignment

    def delete_assignment(self, assignment: AssignmentModel):
        self.db.delete(assignment)
        self.db.flush()

    def get_driver(self, driver_id: int) -> DriverModel | None:
        return self.db.get(DriverModel, driver_id)

    def find_drivers(self, availability_status: str | None = None) -> list[DriverModel]:
        query = select(DriverModel).order_by(DriverModel.id)
        if availability_status:
            query = query.where(DriverModel.availability_status == availability_status)
        return list(self.db.execute(query).scalars())

    def committed_quantity(self, driver_id: int) -> int:
        """Sum of order item qty over the driver's pending/in_progress assignments (no row lock)."""
        qty = self.db.execute(
            select(func.coalesce(func.sum(OrderItemModel.qty), 0))
            .select_from(AssignmentModel)
            .join(OrderItemModel, OrderItemModel.order_id == AssignmentModel.order_id)
            .where(
                AssignmentModel.driver_id == driver_id,
                AssignmentModel.status.in_(ACTIVE_ASSIGNMENT_STATUSES),
            )
        ).scalar_one()
        return int(qty)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
