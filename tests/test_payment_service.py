"""Tests for order payment."""

import pytest

from marketplace.data.models.notification import NotificationModel
from marketplace.data.models.order import OrderModel
from marketplace.data.models.payment import PaymentModel
from marketplace.errors import ConflictError, NotFoundError, PaymentValidationError, TransactionFailure
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.payment_service import PaymentService


@pytest.fixture
def payments(session):
    return PaymentService(session)


class TestProcessPayment:
    def test_cash_on_delivery(self, session, payments, make_product, place_order):
        order = place_order(1, [(make_product(), 2)])

        result = payments.process_payment(order.id, "cod")

        assert result["order"].status == "paid"
        assert result["payment"].method == "COD"
        assert result["payment"].amount == order.total
        assert result["payment"].card_last4 is None
        assert result["invoice"]["method"] == "Cash on Delivery"
        assert result["invoice"]["customer_name"] == "Jan Kowalski"
        assert result["invoice"]["email"] == "jan.kowalski@poczta.pl"
        assert result["invoice"]["order_no"] == order.order_no

    def test_card_stores_only_last4(self, session, payments, make_product, place_order):
        order = place_order(1, [(make_product(), 1)])

        result = payments.process_payment(order.id, "CARD", "4539 1488 0343 6467")

        payment = session.get(PaymentModel, result["payment"].id)
        assert payment.card_last4 == "6467"
        assert result["invoice"]["method"] == "Credit Card"

    def test_invalid_card_leaves_order_pending(self, session, payments, make_product, place_order):
        order = place_order(1, [(make_product(), 1)])

        with pytest.raises(PaymentValidationError, match="Invalid card number"):
            payments.process_payment(order.id, "CARD", "4539148803436468")

        session.refresh(order)
        assert order.status == "pending"
        assert session.query(PaymentModel).count() == 0

    def test_failed_payment_insert_leaves_order_pending(
        self, session, payments, make_product, place_order, monkeypatch
    ):
        order = place_order(1, [(make_product(), 1)])

        def broken_add_payment(self, payment):
            raise RuntimeError("disk full")

        monkeypatch.setattr(OrderRepo, "add_payment", broken_add_payment)

        with pytest.raises(TransactionFailure, match="Failed to process payment"):
            payments.process_payment(order.id, "COD")

        session.refresh(order)
        assert order.status == "pending"
        assert session.query(PaymentModel).count() == 0

    def test_unknown_method(self, payments, make_product, place_order):
        order = place_order(1, [(make_product(), 1)])
        with pytest.raises(PaymentValidationError, match="COD or CARD"):
            payments.process_payment(order.id, "BITCOIN")

    def test_cannot_pay_twice(self, payments, make_product, place_order):
        order = place_order(1, [(make_product(), 1)])
        payments.process_payment(order.id, "COD")

        with pytest.raises(ConflictError, match="cannot be paid"):
            payments.process_payment(order.id, "COD")

    def test_cannot_pay_cancelled_order(self, session, payments, make_product, place_order):
        order = place_order(1, [(make_product(), 1)])
        order.status = "cancelled"
        session.commit()

        with pytest.raises(ConflictError):
            payments.process_payment(order.id, "COD")

    def test_unknown_order(self, payments):
        with pytest.raises(NotFoundError):
            payments.process_payment(12345, "COD")

    def test_payment_triggers_milestones(self, session, payments, make_product, place_order):
        product = make_product("Honey", "500.00", current_stock=50)
        order = place_order(1, [(product, 2)])

        payments.process_payment(order.id, "COD")

        milestones = session.query(NotificationModel).filter_by(notification_type="milestone_earnings").all()
        assert [m.order_id for m in milestones] == [order.id]
        assert "1,000" in milestones[0].message
        assert session.get(OrderModel, order.id).status == "paid"


def test_payment_methods_catalogue():
    methods = PaymentService.payment_methods()
    assert [m["code"] for m in methods] == ["COD", "CARD"]
    assert [m["requires_card"] for m in methods] == [False, True]
