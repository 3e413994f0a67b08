# marketplace/repos/order_repo.py
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session, selectinload

from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.data.models.payment import PaymentModel

# statuses that count as money received
SETTLED_STATUSES = ("paid", "processing", "shipped", "delivered")


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel, items: list[OrderItemModel]) -> OrderModel:
        order.items = items
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(OrderModel.id == order_id)
        ).scalar_one_or_none()

    def get_orders_by_buyer(self, buyer_id: int) -> list[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.buyer_id == buyer_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars()
        )

    def total_quantity(self, order_id: int) -> int:
        qty = self.db.execute(
            select(func.coalesce(func.sum(OrderItemModel.qty), 0)).where(OrderItemModel.order_id == order_id)
        ).scalar_one()
        return int(qty)

    def settled_totals(self, buyer_id: int) -> tuple[Decimal, int]:
        """(sum of totals, number of orders) over the buyer's settled orders."""
        earned, count = self.db.execute(
            select(func.coalesce(func.sum(OrderModel.total), 0), func.count(OrderModel.id)).where(
                OrderModel.buyer_id == buyer_id,
                OrderModel.status.in_(SETTLED_STATUSES),
            )
        ).one()
        return Decimal(str(earned)), int(count)

    def add_payment(self, payment: PaymentModel) -> PaymentModel:
        self.db.add(payment)
        self.db.flush()
        return payment

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
