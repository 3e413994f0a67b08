# marketplace/services/stock_service.py
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.orm import Session

from marketplace.data.models.product import ProductModel
from marketplace.errors import NotFoundError, ValidationError, InsufficientStockError
from marketplace.repos.product_repo import ProductRepo
from marketplace.services.notification_service import NotificationPublisher
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class StockService:
    """Owns product stock: availability and atomic adjustments."""

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFoundError("Product", product_id)
        return product

    def check_availability(self, product_id: int) -> Dict[str, Any]:
        product = self.get_product(product_id)
        return {
            "available": product.status == "active" and product.current_stock > 0,
            "current_stock": product.current_stock,
            "daily_limit": product.daily_limit,
            "status": product.status,
        }

    def register_product(
        self,
        name: str,
        price: Decimal,
        unit: str = "kg",
        current_stock: int = 0,
        daily_limit: int = 0,
        province_name: str | None = None,
    ) -> ProductModel:
        product = self.repo.create_product(
            ProductModel(
                name=name,
                price=price,
                unit=unit,
                current_stock=current_stock,
                daily_limit=daily_limit,
                status="active",
            )
        )
        self.repo.commit()
        logger.info(f"Product {product.id} registered ({name})")

        NotificationPublisher.new_product(product.id, province_name)
        return product

    def adjust_stock(self, product_id: int, delta: int, notify: bool = True) -> ProductModel:
        """current_stock += delta in a single conditional UPDATE; refuses to go negative."""
        if delta == 0:
            raise ValidationError("Stock change must not be zero")

        product = self.get_product(product_id)
        old_stock = product.current_stock

        rowcount = self.repo.adjust_stock(product_id, delta)
        if rowcount == 0:
            self.repo.rollback()
            current = self.get_product(product_id).current_stock
            raise InsufficientStockError(product_id, current, delta)

        self.repo.commit()
        self.repo.db.refresh(product)
        logger.info(f"Stock for product {product_id} changed by {delta}, now {product.current_stock}")

        if notify:
            NotificationPublisher.stock_updated(product_id, old_stock, product.current_stock)
        return product

    def record_supply(self, product_id: int, supplier_name: str, quantity: int) -> ProductModel:
        """Supplier intake: positive adjustment plus a supplier_added event."""
        if quantity <= 0:
            raise ValidationError("Supplied quantity must be greater than 0")
        if not supplier_name or not supplier_name.strip():
            raise ValidationError("Supplier name is required")

        product = self.adjust_stock(product_id, quantity, notify=False)
        NotificationPublisher.supplier_added(product_id, supplier_name.strip(), quantity)
        return product
