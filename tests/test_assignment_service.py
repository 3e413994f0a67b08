"""Tests for driver assignment."""

from datetime import datetime, timedelta, timezone

import pytest

from marketplace.data.models.assignment import AssignmentModel
from marketplace.data.models.notification import NotificationModel
from marketplace.errors import (
    ConflictError,
    InsufficientCapacityError,
    NotFoundError,
    TransactionFailure,
    ValidationError,
)
from marketplace.repos.assignment_repo import AssignmentRepo
from marketplace.services.assignment_service import AssignmentService


@pytest.fixture
def assignments(session):
    return AssignmentService(session)


@pytest.fixture
def order(make_product, place_order):
    return place_order(1, [(make_product("Apples"), 6), (make_product("Beans"), 4)])


class TestCreateAssignment:
    def test_binds_order_and_driver(self, session, assignments, order, make_driver, tomorrow):
        driver = make_driver(capacity=50)

        assignment = assignments.create_assignment(order.id, driver.id, tomorrow, "Leave at the gate")

        assert assignment.status == "pending"
        assert assignment.order_no == order.order_no
        assert assignment.driver_name == driver.name
        session.refresh(order)
        session.refresh(driver)
        assert order.assignment_status == "assigned"
        assert driver.availability_status == "busy"
        assert assignments.remaining_capacity(driver.id) == 40

    def test_driver_assigned_notification(self, session, assignments, order, make_driver, tomorrow):
        driver = make_driver(name="Marek Nowak", phone="+48 600 300 400")
        assignments.create_assignment(order.id, driver.id, tomorrow)

        notification = session.query(NotificationModel).filter_by(notification_type="driver_assigned").one()
        assert notification.order_id == order.id
        assert "Marek Nowak (+48 600 300 400)" in notification.message

    def test_insufficient_capacity(self, session, assignments, order, make_driver, tomorrow):
        driver = make_driver(capacity=9)

        with pytest.raises(InsufficientCapacityError) as exc:
            assignments.create_assignment(order.id, driver.id, tomorrow)

        assert (exc.value.remaining, exc.value.required) == (9, 10)
        assert session.query(AssignmentModel).count() == 0
        session.refresh(driver)
        assert driver.availability_status == "available"

    def test_capacity_counts_active_assignments_only(
        self, session, assignments, make_product, place_order, make_driver, tomorrow
    ):
        driver = make_driver(capacity=10)
        first = place_order(1, [(make_product(), 6)])
        second = place_order(2, [(make_product(), 6)])

        done = assignments.create_assignment(first.id, driver.id, tomorrow)
        assignments.update_assignment(done.id, status="completed")
        assert assignments.remaining_capacity(driver.id) == 10

        assignments.create_assignment(second.id, driver.id, tomorrow)
        assert assignments.remaining_capacity(driver.id) == 4

    def test_busy_driver(self, assignments, make_product, place_order, make_driver, tomorrow):
        driver = make_driver(capacity=100)
        first = place_order(1, [(make_product(), 1)])
        second = place_order(2, [(make_product(), 1)])
        assignments.create_assignment(first.id, driver.id, tomorrow)

        with pytest.raises(ConflictError, match="not available"):
            assignments.create_assignment(second.id, driver.id, tomorrow)

    def test_order_already_assigned(self, assignments, order, make_driver, tomorrow):
        assignments.create_assignment(order.id, make_driver("A").id, tomorrow)
        with pytest.raises(ConflictError, match="already assigned"):
            assignments.create_assignment(order.id, make_driver("B").id, tomorrow)

    def test_cancelled_order(self, session, assignments, order, make_driver, tomorrow):
        order.status = "cancelled"
        session.commit()
        with pytest.raises(ConflictError, match="cannot be assigned"):
            assignments.create_assignment(order.id, make_driver().id, tomorrow)

    def test_failed_commit_rolls_back(self, session, assignments, order, make_driver, tomorrow, monkeypatch):
        driver = make_driver()

        def broken_commit(self):
            self.db.flush()
            raise RuntimeError("disk full")

        monkeypatch.setattr(AssignmentRepo, "commit", broken_commit)

        with pytest.raises(TransactionFailure, match="Failed to create assignment"):
            assignments.create_assignment(order.id, driver.id, tomorrow)

        monkeypatch.undo()
        assert session.query(AssignmentModel).count() == 0
        session.refresh(order)
        session.refresh(driver)
        assert order.assignment_status == "unassigned"
        assert driver.availability_status == "available"

    def test_schedule_must_be_in_future(self, assignments, order, make_driver):
        yesterday = datetime.now(timezone.utc) - timedelta(days=1)
        with pytest.raises(ValidationError, match="future"):
            assignments.create_assignment(order.id, make_driver().id, yesterday)

    def test_notes_length(self, assignments, order, make_driver, tomorrow):
        with pytest.raises(ValidationError, match="500"):
            assignments.create_assignment(order.id, make_driver().id, tomorrow, "x" * 501)

    def test_missing_order_or_driver(self, assignments, order, make_driver, tomorrow):
        with pytest.raises(NotFoundError, match="Order"):
            assignments.create_assignment(999, make_driver().id, tomorrow)
        with pytest.raises(NotFoundError, match="Driver"):
            assignments.create_assignment(order.id, 999, tomorrow)


class TestUpdateAndDelete:
    def test_cancel_releases_order_and_driver(self, session, assignments, order, make_driver, tomorrow):
        driver = make_driver()
        assignment = assignments.create_assignment(order.id, driver.id, tomorrow)

        assignments.update_assignment(assignment.id, status="cancelled")

        session.refresh(order)
        session.refresh(driver)
        assert order.assignment_status == "unassigned"
        assert driver.availability_status == "available"

    def test_reschedule_and_notes(self, assignments, order, make_driver, tomorrow):
        assignment = assignments.create_assignment(order.id, make_driver().id, tomorrow)
        later = tomorrow + timedelta(days=2)

        updated = assignments.update_assignment(assignment.id, schedule_time=later, special_notes="Ring twice")

        assert updated.special_notes == "Ring twice"
        assert updated.status == "pending"

    def test_invalid_status(self, assignments, order, make_driver, tomorrow):
        assignment = assignments.create_assignment(order.id, make_driver().id, tomorrow)
        with pytest.raises(ValidationError):
            assignments.update_assignment(assignment.id, status="teleported")

    def test_delete_releases(self, session, assignments, order, make_driver, tomorrow):
        driver = make_driver()
        assignment = assignments.create_assignment(order.id, driver.id, tomorrow)

        assignments.delete_assignment(assignment.id)

        assert session.query(AssignmentModel).count() == 0
        session.refresh(order)
        session.refresh(driver)
        assert order.assignment_status == "unassigned"
        assert driver.availability_status == "available"

    @pytest.mark.parametrize("finished", ["cancelled", "completed"])
    @pytest.mark.parametrize("reopened", ["pending", "in_progress"])
    def test_finished_assignment_cannot_be_reopened(
        self, session, assignments, make_product, place_order, make_driver, tomorrow, finished, reopened
    ):
        driver = make_driver(capacity=10)
        first = place_order(1, [(make_product(), 6)])
        second = place_order(2, [(make_product(), 6)])
        old = assignments.create_assignment(first.id, driver.id, tomorrow)
        assignments.update_assignment(old.id, status=finished)
        assignments.create_assignment(second.id, driver.id, tomorrow)

        with pytest.raises(ConflictError, match="cannot be reopened"):
            assignments.update_assignment(old.id, status=reopened)

        session.refresh(old)
        assert old.status == finished
        assert assignments.remaining_capacity(driver.id) == 4

    def test_cancelled_order_gets_one_active_assignment(self, session, assignments, order, make_driver, tomorrow):
        old = assignments.create_assignment(order.id, make_driver("A").id, tomorrow)
        assignments.update_assignment(old.id, status="cancelled")
        assignments.create_assignment(order.id, make_driver("B").id, tomorrow)

        with pytest.raises(ConflictError):
            assignments.update_assignment(old.id, status="pending")

        active = session.query(AssignmentModel).filter(
            AssignmentModel.order_id == order.id,
            AssignmentModel.status.in_(["pending", "in_progress"]),
        )
        assert active.count() == 1

    def test_delete_finished_keeps_driver_busy_with_other_work(
        self, session, assignments, make_product, place_order, make_driver, tomorrow
    ):
        driver = make_driver(capacity=12)
        first = place_order(1, [(make_product(), 6)])
        second = place_order(2, [(make_product(), 6)])
        done = assignments.create_assignment(first.id, driver.id, tomorrow)
        assignments.update_assignment(done.id, status="completed")
        assignments.create_assignment(second.id, driver.id, tomorrow)

        assignments.delete_assignment(done.id)

        session.refresh(driver)
        session.refresh(first)
        session.refresh(second)
        assert driver.availability_status == "busy"
        assert second.assignment_status == "assigned"
        assert first.assignment_status == "assigned"
        assert assignments.remaining_capacity(driver.id) == 6

    def test_failed_delete_rolls_back(self, session, assignments, order, make_driver, tomorrow, monkeypatch):
        driver = make_driver()
        assignment = assignments.create_assignment(order.id, driver.id, tomorrow)

        def broken_commit(self):
            self.db.flush()
            raise RuntimeError("disk full")

        monkeypatch.setattr(AssignmentRepo, "commit", broken_commit)

        with pytest.raises(TransactionFailure, match="Failed to delete assignment"):
            assignments.delete_assignment(assignment.id)

        monkeypatch.undo()
        assert session.query(AssignmentModel).count() == 1
        session.refresh(order)
        session.refresh(driver)
        assert order.assignment_status == "assigned"
        assert driver.availability_status == "busy"

    def test_delete_missing(self, assignments):
        with pytest.raises(NotFoundError):
            assignments.delete_assignment(42)


class TestQueries:
    def test_lists(self, assignments, order, make_driver, tomorrow):
        driver = make_driver()
        assignment = assignments.create_assignment(order.id, driver.id, tomorrow)

        assert [a.id for a in assignments.list_assignments()] == [assignment.id]
        assert [a.id for a in assignments.list_by_driver(driver.id)] == [assignment.id]
        assert [a.id for a in assignments.list_by_status("pending")] == [assignment.id]
        assert assignments.list_by_status("completed") == []

    def test_list_by_unknown_status(self, assignments):
        with pytest.raises(ValidationError):
            assignments.list_by_status("lost")

    def test_assignable_drivers(self, assignments, make_driver):
        free = make_driver("Free", capacity=30)
        make_driver("Offline", availability_status="offline")
        make_driver("Full", capacity=0)

        pool = assignments.assignable_drivers()

        assert [d["id"] for d in pool] == [free.id]
        assert pool[0]["remaining_capacity"] == 30
