# marketplace/services/order_service.py
import secrets
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel, OrderItemModel, ORDER_STATUSES
from marketplace.data.models.payment import PaymentModel
from marketplace.domain.pricing import compute_totals
from marketplace.domain.schemas import ContactInfo, ShippingInfo
from marketplace.errors import (
    MarketplaceError,
    ConflictError,
    EmptyCartError,
    NoActiveCartError,
    NotFoundError,
    TransactionFailure,
    ValidationError,
)
from marketplace.repos.cart_repo import CartRepo
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.cart_service import require_id
from marketplace.services.notification_service import NotificationPublisher
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

# "paid" is set only by mark_paid
SETTABLE_STATUSES = tuple(s for s in ORDER_STATUSES if s != "paid")
PAYMENT_METHODS = ("COD", "CARD")


def generate_order_no(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class OrderService:
    """
    Order lifecycle: pending -> paid -> processing -> shipped -> delivered,
    cancelled from any non-terminal state.

    Orders are immutable snapshots of the cart at checkout; only status and
    assignment_status change afterwards.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrderRepo(db)
        self.cart_repo = CartRepo(db)

    def checkout(self, buyer_id: int, contact: ContactInfo, shipping: ShippingInfo) -> OrderModel:
        """
        Use case: convert the buyer's active cart into an order.

        1. load the active cart
        2. load priced cart items
        3. compute subtotal / tax / total
        4. insert Order + OrderItems (name and price copied)
        5. complete the cart and delete its items

        Steps 1-5 commit together or not at all. Stock is not re-checked or
        decremented here, only at add-to-cart time.
        """
        require_id(buyer_id, "user")

        try:
            cart = self.cart_repo.get_active_cart_by_buyer(buyer_id)
            if not cart:
                raise NoActiveCartError(buyer_id)

            rows = self.cart_repo.get_priced_items(cart.id)
            if not rows:
                raise EmptyCartError(cart.id)

            totals = compute_totals((product.price, item.qty) for item, product in rows)

            order = self.repo.create_order(
                OrderModel(
                    order_no=generate_order_no(),
                    buyer_id=buyer_id,
                    subtotal=totals.subtotal,
                    tax=totals.tax,
                    shipping_fee=totals.shipping_fee,
                    total=totals.total,
                    status="pending",
                    assignment_status="unassigned",
                    contact=contact.model_dump(mode="json", by_alias=True),
                    shipping=shipping.model_dump(mode="json", by_alias=True),
                ),
                [
                    OrderItemModel(
                        product_id=product.id,
                        name=product.name,
                        price=product.price,
                        qty=item.qty,
                    )
                    for item, product in rows
                ],
            )

            self.cart_repo.complete_cart(cart)
            self.repo.commit()
        except MarketplaceError:
            self.repo.rollback()
            raise
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Checkout failed for buyer {buyer_id}: {e!r}")
            raise TransactionFailure("Failed to process checkout") from e

        logger.info(f"Order {order.id} ({order.order_no}) created from cart {cart.id}")
        NotificationPublisher.order_placed(order.id)
        return order

    #query
    def get_order(self, order_id: int, user_id: int | None = None) -> OrderModel:
        require_id(order_id, "order")
        order = self.repo.get_order(order_id)

        if not order or (user_id is not None and order.buyer_id != user_id):
            raise NotFoundError("Order", order_id)
        return order

    def list_user_orders(self, user_id: int) -> list[OrderModel]:
        require_id(user_id, "user")
        return self.repo.get_orders_by_buyer(user_id)

    def user_order_stats(self, user_id: int) -> Dict[str, Any]:
        orders = self.list_user_orders(user_id)
        by_status = {status: 0 for status in ORDER_STATUSES}
        for order in orders:
            by_status[order.status] = by_status.get(order.status, 0) + 1

        return {
            "total_orders": len(orders),
            "total_spent": sum((Decimal(str(o.total)) for o in orders), Decimal("0.00")),
            "orders_by_status": by_status,
            "latest_order": orders[0] if orders else None,
        }

    #commands
    def mark_paid(self, order_id: int, method: str, card_last4: str | None = None) -> PaymentModel:
        """Order -> paid plus one Payment row, in one transaction; milestones are checked afterwards."""
        require_id(order_id, "order")
        if method not in PAYMENT_METHODS:
            raise ValidationError("Payment method must be COD or CARD")

        try:
            order = self.repo.get_order(order_id)
            if not order:
                raise NotFoundError("Order", order_id)
            if order.status != "pending":
                raise ConflictError(f"Order {order.order_no} cannot be paid in status '{order.status}'")

            order.status = "paid"
            payment = self.repo.add_payment(
                PaymentModel(
                    order_id=order.id,
                    method=method,
                    amount=order.total,
                    status="completed",
                    card_last4=card_last4,
                )
            )
            self.repo.commit()
        except MarketplaceError:
            self.repo.rollback()
            raise
        except Exception as e:
            self.repo.rollback()
            logger.error(f"Payment failed for order {order_id}: {e!r}")
            raise TransactionFailure("Failed to process payment") from e

        logger.info(f"Order {order_id} paid via {method}, payment {payment.id}")
        NotificationPublisher.payment_received(order.buyer_id, order.id)
        return payment

    def update_status(self, order_id: int, status: str) -> OrderModel:
        # flat allowed-value check, no transition graph
        require_id(order_id, "order")
        if not status:
            raise ValidationError("Order status is required")
        if status not in SETTABLE_STATUSES:
            raise ValidationError(
                f"Invalid order status. Must be one of: {', '.join(SETTABLE_STATUSES)}"
            )

        order = self.get_order(order_id)
        order.status = status
        self.repo.commit()

        logger.info(f"Order {order_id} status -> {status}")
        return order

    def cancel_order(self, order_id: int) -> OrderModel:
        order = self.get_order(order_id)

        if order.status == "cancelled":
            raise ConflictError("Order is already cancelled")
        if order.status == "delivered":
            raise ConflictError("Cannot cancel a delivered order")

        order.status = "cancelled"
        self.repo.commit()

        logger.info(f"Order {order_id} cancelled")
        NotificationPublisher.order_cancelled(order.id, order.total)
        return order
