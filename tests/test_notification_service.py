"""Tests for notifications, milestones and the product scan."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from marketplace.data.models.notification import MilestoneModel, NotificationModel
from marketplace.data.models.order import OrderModel
from marketplace.errors import NotFoundError, ValidationError
from marketplace.services.notification_service import NotificationPublisher, NotificationService


@pytest.fixture
def notifications(session):
    return NotificationService(session)


def _settled_order(session, buyer_id, total, status="paid"):
    order = OrderModel(
        order_no=f"ORD-TEST-{buyer_id}-{session.query(OrderModel).count()}",
        buyer_id=buyer_id,
        subtotal=Decimal(total),
        tax=Decimal("0"),
        shipping_fee=Decimal("0"),
        total=Decimal(total),
        status=status,
        assignment_status="unassigned",
        contact={},
        shipping={},
    )
    session.add(order)
    session.commit()
    return order


class TestFeed:
    def test_unread_and_mark_read(self, notifications):
        first = notifications.record_event("new_product", "one")
        notifications.record_event("new_product", "two")

        assert notifications.unread_count() == 2
        notifications.mark_as_read(first.id)

        assert notifications.unread_count() == 1
        assert [n.message for n in notifications.get_unread()] == ["two"]
        assert len(notifications.get_all()) == 2

    def test_mark_all_and_delete(self, notifications):
        kept = notifications.record_event("new_product", "one")
        notifications.record_event("new_product", "two")

        assert notifications.mark_all_as_read() == 2
        assert notifications.unread_count() == 0

        notifications.delete(kept.id)
        assert len(notifications.get_all()) == 1

    def test_missing_notification(self, notifications):
        with pytest.raises(NotFoundError):
            notifications.mark_as_read(77)
        with pytest.raises(NotFoundError):
            notifications.delete(77)

    def test_limit(self, notifications):
        for i in range(3):
            notifications.record_event("new_product", str(i))

        assert len(notifications.get_all(limit=2)) == 2
        with pytest.raises(ValidationError):
            notifications.get_all(limit=0)


class TestStateAlerts:
    def test_repeated_scans_keep_one_unread_alert(self, session, notifications, make_product):
        product = make_product("Leeks", current_stock=1, daily_limit=100)

        assert notifications.scan_products() == {"expired": 0, "low_stock": 1}
        product.current_stock = 2
        session.commit()
        notifications.scan_products()

        [alert] = session.query(NotificationModel).filter_by(notification_type="low_stock").all()
        assert alert.product_id == product.id
        assert "Current stock: 2 kg (2.0% of daily limit)" in alert.message

    def test_new_alert_after_previous_was_read(self, session, notifications, make_product):
        make_product(current_stock=1, daily_limit=100)
        notifications.scan_products()
        notifications.mark_all_as_read()

        notifications.scan_products()

        assert session.query(NotificationModel).filter_by(notification_type="low_stock").count() == 2
        assert notifications.unread_count() == 1

    def test_expired_products(self, session, notifications, make_product):
        old = make_product("Lettuce", created_at=datetime.now(timezone.utc) - timedelta(days=8))
        make_product("Fresh lettuce")

        assert notifications.scan_products()["expired"] == 1

        alert = session.query(NotificationModel).filter_by(notification_type="expired").one()
        assert alert.product_id == old.id
        assert "(8 days old)" in alert.message

    def test_healthy_products_raise_nothing(self, notifications, make_product):
        make_product(current_stock=50, daily_limit=100)
        make_product(current_stock=0, daily_limit=0)

        assert notifications.scan_products() == {"expired": 0, "low_stock": 0}
        assert notifications.unread_count() == 0

    def test_events_are_never_deduplicated(self, notifications, make_product):
        product = make_product()
        notifications.notify_new_product(product.id)
        notifications.notify_new_product(product.id)

        assert notifications.unread_count() == 2


class TestCleanup:
    def test_deletes_old_read_notifications_only(self, session, notifications):
        old_read = notifications.record_event("new_product", "old read")
        old_unread = notifications.record_event("new_product", "old unread")
        notifications.record_event("new_product", "fresh")
        month_ago = datetime.now(timezone.utc) - timedelta(days=40)
        old_read.is_read = True
        old_read.updated_at = month_ago
        old_unread.updated_at = month_ago
        session.commit()

        assert notifications.cleanup_old_notifications(days=30) == 1
        assert {n.message for n in notifications.get_all()} == {"old unread", "fresh"}


class TestMilestones:
    def test_fires_once_per_threshold(self, session, notifications):
        _settled_order(session, 1, "600.00")
        _settled_order(session, 1, "500.00")

        created = notifications.evaluate_milestones(1)
        again = notifications.evaluate_milestones(1)

        assert [n.notification_type for n in created] == ["milestone_earnings"]
        assert again == []
        assert session.query(MilestoneModel).filter_by(user_id=1).count() == 1

    def test_crossing_several_thresholds(self, session, notifications):
        _settled_order(session, 1, "6000.00")

        created = notifications.evaluate_milestones(1)

        assert [n.message for n in created] == [
            "Congratulations! You've reached Rs 1,000+ in total purchases!",
            "Congratulations! You've reached Rs 5,000+ in total purchases!",
        ]

    def test_order_count_ladder(self, session, notifications):
        for _ in range(10):
            _settled_order(session, 2, "1.00")

        created = notifications.evaluate_milestones(2)
        assert [n.message for n in created] == ["Amazing! You've completed 10+ orders!"]

    def test_pending_and_cancelled_orders_do_not_count(self, session, notifications):
        _settled_order(session, 1, "2000.00", status="pending")
        _settled_order(session, 1, "2000.00", status="cancelled")

        assert notifications.evaluate_milestones(1) == []

    def test_per_buyer(self, session, notifications):
        _settled_order(session, 1, "1500.00")
        notifications.evaluate_milestones(1)

        _settled_order(session, 2, "1500.00")
        assert len(notifications.evaluate_milestones(2)) == 1

    def test_concurrent_evaluation_skips_recorded_threshold(self, database, session, notifications, monkeypatch):
        _settled_order(session, 1, "1200.00")
        with database.session() as other:
            other.add(MilestoneModel(user_id=1, milestone_type="earnings", milestone_value=1000))
            other.commit()

        # the other evaluation wins between the existence check and the insert
        monkeypatch.setattr(notifications.repo, "has_milestone", lambda *args: False)

        assert notifications.evaluate_milestones(1) == []
        assert session.query(NotificationModel).count() == 0


class TestPublisher:
    def test_eager_publish_records_event(self, session, make_product):
        product = make_product("Kale")

        NotificationPublisher.new_product(product.id, "Pomorskie")

        notification = session.query(NotificationModel).one()
        assert notification.message == 'New product "Kale" has been added to Pomorskie province inventory.'

    def test_task_failure_is_swallowed(self, session):
        NotificationPublisher.order_placed(9999)

        assert session.query(NotificationModel).count() == 0
