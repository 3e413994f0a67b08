# every model imported here so SQLAlchemy registers it in Base.metadata

from marketplace.data.models.product import ProductModel
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.data.models.order import OrderModel, OrderItemModel
from marketplace.data.models.payment import PaymentModel
from marketplace.data.models.driver import DriverModel
from marketplace.data.models.assignment import AssignmentModel
from marketplace.data.models.notification import NotificationModel, MilestoneModel

__all__ = [
    "ProductModel",
    "CartModel",
    "CartItemModel",
    "OrderModel",
    "OrderItemModel",
    "PaymentModel",
    "DriverModel",
    "AssignmentModel",
    "NotificationModel",
    "MilestoneModel",
]
