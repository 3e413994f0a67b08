# marketplace/services/cart_service.py
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Dict, Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketplace.data.models.cart import CartModel
from marketplace.domain.pricing import compute_totals, round2
from marketplace.errors import ValidationError, OutOfStockError
from marketplace.repos.cart_repo import CartRepo
from marketplace.services.stock_service import StockService
from marketplace.utils.settings import MAX_ITEM_QTY, TAX_RATE, SHIPPING_FEE, CART_ABANDON_DAYS
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


def require_id(value: int, label: str):
    if value is None or value <= 0:
        raise ValidationError(f"Valid {label} ID is required")


class CartService:
    """
    Buyer's active cart.
    commands (add, update, remove, clear) always act on the buyer's own
    active cart, item ids are never trusted on their own
    query (get) re-prices every call from the current rows
    """

    def __init__(self, db: Session, stock_service: StockService | None = None):
        self.repo = CartRepo(db)
        self.stock = stock_service or StockService(db)

    def ensure_active_cart(self, buyer_id: int) -> CartModel:
        require_id(buyer_id, "buyer")

        existing = self.repo.get_active_cart_by_buyer(buyer_id)
        if existing:
            return existing

        try:
            created = self.repo.create_cart(CartModel(buyer_id=buyer_id, status="active"))
            self.repo.commit()
        except IntegrityError:
            # a concurrent request created it first (unique active cart per buyer)
            self.repo.rollback()
            winner = self.repo.get_active_cart_by_buyer(buyer_id)
            if winner is None:
                raise
            return winner

        logger.info(f"Created cart {created.id} for buyer {buyer_id}")
        return created

    #query
    def get_cart(self, buyer_id: int) -> Dict[str, Any]:
        cart = self.ensure_active_cart(buyer_id)
        return self._view(cart)

    def _view(self, cart: CartModel) -> Dict[str, Any]:
        rows = self.repo.get_priced_items(cart.id)
        totals = compute_totals((product.price, item.qty) for item, product in rows)

        return {
            "cart": {"id": cart.id, "buyer_id": cart.buyer_id, "status": cart.status},
            "items": [
                {
                    "id": item.id,
                    "product_id": product.id,
                    "name": product.name,
                    "price": product.price,
                    "qty": item.qty,
                    "line_total": round2(Decimal(str(product.price)) * item.qty),
                }
                for item, product in rows
            ],
            "totals": totals.as_dict(),
        }

    #commands
    def add_item(self, buyer_id: int, product_id: int, qty: int | None = 1) -> Dict[str, Any]:
        require_id(product_id, "product")
        qty = qty if qty and qty > 0 else 1
        if qty > MAX_ITEM_QTY:
            raise ValidationError(f"Quantity cannot exceed {MAX_ITEM_QTY} items")

        cart = self.ensure_active_cart(buyer_id)

        product = self.stock.get_product(product_id)
        if product.status != "active":
            raise OutOfStockError(product.name, reason="Product is not available for sale")
        if product.current_stock < qty:
            raise OutOfStockError(product.name)

        # atomic increment on (cart_id, product_id); concurrent adds never lose updates
        self.repo.upsert_item(cart.id, product_id, qty)
        self.repo.touch(cart)
        self.repo.commit()

        logger.info(f"Added {qty} x product {product_id} to cart {cart.id}")
        return self._view(cart)

    def update_qty(self, buyer_id: int, item_id: int, qty: int) -> Dict[str, Any]:
        require_id(item_id, "item")
        if qty > MAX_ITEM_QTY:
            raise ValidationError(f"Quantity cannot exceed {MAX_ITEM_QTY} items")

        cart = self.ensure_active_cart(buyer_id)

        if qty <= 0:
            self.repo.delete_item(cart.id, item_id)
        else:
            self.repo.set_item_qty(cart.id, item_id, qty)
        self.repo.touch(cart)
        self.repo.commit()

        return self._view(cart)

    def remove_item(self, buyer_id: int, item_id: int) -> Dict[str, Any]:
        require_id(item_id, "item")
        cart = self.ensure_active_cart(buyer_id)

        deleted = self.repo.delete_item(cart.id, item_id)
        self.repo.touch(cart)
        self.repo.commit()

        if deleted:
            logger.info(f"Removed item {item_id} from cart {cart.id}")
        return self._view(cart)

    def clear_cart(self, buyer_id: int) -> Dict[str, Any]:
        cart = self.ensure_active_cart(buyer_id)

        deleted = self.repo.delete_items(cart.id)
        self.repo.touch(cart)
        self.repo.commit()

        logger.info(f"Cleared {deleted} items from cart {cart.id}")
        return self._view(cart)

    def abandon_stale_carts(self, days: int = CART_ABANDON_DAYS, now: datetime | None = None) -> int:
        """Active carts untouched for `days` become abandoned; the next access starts a fresh cart."""
        now = now or datetime.now(timezone.utc)
        stale = self.repo.find_stale_active_carts(now - timedelta(days=days))
        for cart in stale:
            cart.status = "abandoned"
        self.repo.commit()

        logger.info(f"Marked {len(stale)} carts as abandoned")
        return len(stale)

    @staticmethod
    def config() -> Dict[str, Any]:
        return {
            "tax_rate": Decimal(str(TAX_RATE)),
            "shipping_fee": round2(SHIPPING_FEE),
            "max_item_qty": MAX_ITEM_QTY,
        }
